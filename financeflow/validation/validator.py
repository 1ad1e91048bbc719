"""
Input Validation

DESIGN DECISION: Three kinds of user input reach the core, and each has
its own policy:

1. AMOUNTS typed into a field:
   - Never rejected. Anything unparseable counts as 0.
   - Localized forms are accepted ("1 000,50", "1'000.50", "1.000,50",
     "1,000.50"): the last of "," and "." is the decimal mark.

2. CATEGORY NAMES (create / rename):
   - Must be non-empty and unique within the month section.
   - Rejections are reported back as issues; nothing is raised.

3. IMPORT FILES:
   - Checked completely before anything is written.
   - Any problem rejects the whole file.
"""

import math
import re
from typing import Any, Optional

from pydantic import BaseModel, Field

from financeflow.models.finance import Section


EXPORT_TYPE = "financeflow_export"

MAX_CATEGORY_NAME_LENGTH = 100

# Leading number, the way a browser's parseFloat reads it
_NUMBER_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

# Thousands separators: apostrophes and every kind of space
_SEPARATORS = re.compile(r"['’\s]")


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'duplicate', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one piece of input."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_message(self) -> Optional[str]:
        return self.issues[0].message if self.issues else None


def _result(issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
    )


def _normalize_decimal_mark(text: str) -> str:
    """
    Rewrite the decimal mark as "." and drop the other mark.

    The last of "," and "." is the decimal mark, unless it occurs more
    than once ("1.000.000"), in which case there is none.
    """
    last = max(text.rfind(","), text.rfind("."))
    if last < 0:
        return text
    mark = text[last]
    other = "." if mark == "," else ","
    text = text.replace(other, "")
    if text.count(mark) > 1:
        return text.replace(mark, "")
    return text.replace(mark, ".")


def parse_amount(value: Any) -> float:
    """
    Parse a user-entered amount. Never raises.

    Invalid, empty, NaN and infinite input all give 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    text = _normalize_decimal_mark(_SEPARATORS.sub("", str(value)))
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return 0.0

    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def validate_category_name(
    name: str,
    section: Section,
    current_name: Optional[str] = None,
) -> ValidationResult:
    """
    Check a new category name against a month section.

    Args:
        name: Proposed name
        section: Section the category will live in
        current_name: Name being renamed, if this is a rename
    """
    issues = []
    cleaned = (name or "").strip()

    if not cleaned:
        issues.append(ValidationIssue(
            field="name",
            issue_type="missing",
            message="Le nom de la catégorie est obligatoire.",
            severity="error",
        ))
    elif len(cleaned) > MAX_CATEGORY_NAME_LENGTH:
        issues.append(ValidationIssue(
            field="name",
            issue_type="too_long",
            message=f"Le nom de la catégorie dépasse {MAX_CATEGORY_NAME_LENGTH} caractères.",
            severity="error",
        ))
    elif cleaned != current_name and section.find(cleaned) is not None:
        issues.append(ValidationIssue(
            field="name",
            issue_type="duplicate",
            message=f"Une catégorie nommée '{cleaned}' existe déjà pour ce mois.",
            severity="error",
        ))

    return _result(issues)


def validate_import_payload(payload: Any) -> ValidationResult:
    """
    Structural check of a parsed import file.

    Only the envelope is checked here; the user and year records are
    validated against their models by the export service.
    """
    issues = []

    if not isinstance(payload, dict):
        issues.append(ValidationIssue(
            field="payload",
            issue_type="invalid_format",
            message="Format de fichier invalide.",
            severity="error",
        ))
        return _result(issues)

    metadata = payload.get("metadata")
    if not isinstance(metadata, dict) or metadata.get("type") != EXPORT_TYPE:
        issues.append(ValidationIssue(
            field="metadata.type",
            issue_type="invalid_format",
            message="Format de fichier invalide.",
            severity="error",
        ))

    if not isinstance(payload.get("user"), dict):
        issues.append(ValidationIssue(
            field="user",
            issue_type="missing",
            message="Le fichier ne contient pas d'utilisateur.",
            severity="error",
        ))

    data = payload.get("data", {})
    if not isinstance(data, dict):
        issues.append(ValidationIssue(
            field="data",
            issue_type="invalid_format",
            message="Les données annuelles sont illisibles.",
            severity="error",
        ))
    else:
        for year_key in data:
            if not str(year_key).isdigit():
                issues.append(ValidationIssue(
                    field=f"data.{year_key}",
                    issue_type="invalid_format",
                    message=f"Année invalide: {year_key}",
                    severity="error",
                ))

    return _result(issues)
