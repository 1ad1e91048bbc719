"""
Export / Import Snapshots

A snapshot is one user with all of their year data:

    {
      "metadata": {"version": "1.0", "export_date": ..., "type": "financeflow_export"},
      "user": {...},
      "data": {"2025": {...YearData...}, ...}
    }

Export then import gives back exactly the same records, history included.

Import is all-or-nothing: the whole file is parsed and validated
before the first write.
"""

import json
from datetime import datetime
from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError

from financeflow.logger import get_logger
from financeflow.models.finance import User, YearData, utcnow
from financeflow.services.storage.repository import FinanceRepository
from financeflow.validation.validator import EXPORT_TYPE, validate_import_payload


EXPORT_VERSION = "1.0"

logger = get_logger(__name__)


class InvalidImportError(Exception):
    """The import file is not a FinanceFlow snapshot."""
    pass


class ExportMetadata(BaseModel):
    version: str = EXPORT_VERSION
    export_date: datetime = Field(default_factory=utcnow)
    type: str = EXPORT_TYPE


class ExportSnapshot(BaseModel):
    metadata: ExportMetadata = Field(default_factory=ExportMetadata)
    user: User
    data: dict[int, YearData] = Field(default_factory=dict)


def build_snapshot(user: User, data: dict[int, YearData]) -> ExportSnapshot:
    return ExportSnapshot(user=user, data=dict(sorted(data.items())))


def export_user(repository: FinanceRepository, user_id: str) -> ExportSnapshot:
    """
    Snapshot of one stored user.

    Raises:
        KeyError: If the user does not exist
    """
    user = repository.get_user(user_id)
    if user is None:
        raise KeyError(f"Unknown user: {user_id}")
    return build_snapshot(user, repository.load_all_years(user_id))


def dump_snapshot(snapshot: ExportSnapshot) -> str:
    """Serialize a snapshot to pretty-printed JSON."""
    return snapshot.model_dump_json(indent=2)


def snapshot_filename(snapshot: ExportSnapshot) -> str:
    """e.g. financeflow_Jean_Dupont_2025-03-01.json"""
    name = "_".join(snapshot.user.name.split())
    return f"financeflow_{name}_{snapshot.metadata.export_date.date().isoformat()}.json"


def load_snapshot(raw: Union[str, bytes, dict[str, Any]]) -> ExportSnapshot:
    """
    Parse and validate an import file.

    Raises:
        InvalidImportError: If the content is not valid JSON or not a snapshot
    """
    if isinstance(raw, dict):
        payload = raw
    else:
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidImportError("Erreur lors de la lecture du fichier JSON.") from e

    result = validate_import_payload(payload)
    if not result.is_valid:
        raise InvalidImportError(result.first_message or "Format de fichier invalide.")

    try:
        snapshot = ExportSnapshot.model_validate(payload)
    except ValidationError as e:
        raise InvalidImportError("Format de fichier invalide.") from e

    for key, year_data in snapshot.data.items():
        if key != year_data.year:
            raise InvalidImportError(
                f"Format de fichier invalide: l'année {key} contient les données de {year_data.year}."
            )
    return snapshot


def import_snapshot(
    repository: FinanceRepository,
    raw: Union[str, bytes, dict[str, Any]],
) -> ExportSnapshot:
    """
    Restore a snapshot: upsert the user and overwrite each year it contains.

    Years not present in the file are left untouched.

    Raises:
        InvalidImportError: Nothing has been written
    """
    try:
        snapshot = load_snapshot(raw)
    except InvalidImportError as e:
        logger.warning("import_rejected", reason=str(e))
        raise

    repository.save_user(snapshot.user)
    for year_data in snapshot.data.values():
        repository.save_year(snapshot.user.id, year_data)

    logger.info(
        "import_completed",
        user_id=snapshot.user.id,
        years=sorted(snapshot.data),
    )
    return snapshot
