"""Input validation package."""

from financeflow.validation.validator import (
    EXPORT_TYPE,
    ValidationIssue,
    ValidationResult,
    parse_amount,
    validate_category_name,
    validate_import_payload,
)

__all__ = [
    "EXPORT_TYPE",
    "ValidationIssue",
    "ValidationResult",
    "parse_amount",
    "validate_category_name",
    "validate_import_payload",
]
