"""
FinanceFlow - Source Package

A personal finance tracker for households: monthly income and expenses,
investments, bank accounts and net worth, per user and per year.

DESIGN PRINCIPLES:
1. Amounts are persisted in one base currency (CHF)
2. Display currency is applied at read/write time only
3. History is the source of truth for past values
4. Every edit is persisted immediately
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinanceFlow Team"
