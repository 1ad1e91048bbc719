"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a remote backend because:
1. Non-technical users can see (and back up) their data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

The sheet holds one row per key: [key, value, updated_at].
Values are the same JSON strings the local backends store.

TRADEOFFS:
- A cell holds at most 50,000 characters; one year of data fits easily
- No transactions (last write wins, which matches the app model)
- Every call lists the sheet; fine for a few dozen keys
"""

from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from financeflow.config import get_settings
from financeflow.config.settings import GoogleSheetsSettings
from financeflow.logger import get_logger
from financeflow.services.storage.interface import (
    ConnectionError,
    KeyValueStore,
    StorageError,
)


STORE_COLUMNS = [
    "key",
    "value",
    "updated_at",
]

logger = get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_store_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.store_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.store_sheet_name,
                rows=1000,
                cols=len(STORE_COLUMNS),
            )
            sheet.append_row(STORE_COLUMNS)
        return sheet


class GoogleSheetsStore(KeyValueStore):
    """
    Google Sheets implementation of the keyed store.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _rows(self) -> list[list[str]]:
        """All data rows (header excluded)."""
        return self._client.get_store_sheet().get_all_values()[1:]

    def _find_row(self, key: str) -> Optional[tuple[int, list[str]]]:
        """Sheet row number (1-based, header is row 1) and content of a key."""
        for idx, row in enumerate(self._rows(), start=2):
            if row and row[0] == key:
                return idx, row
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def get(self, key: str) -> Optional[str]:
        """Read a value from the sheet."""
        try:
            found = self._find_row(key)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read key {key}: {e}")

        if found is None:
            return None
        _, row = found
        return row[1] if len(row) > 1 else ""

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def set(self, key: str, value: str) -> None:
        """Write a value, updating the key's row in place if it exists."""
        new_row = [key, value, datetime.now(timezone.utc).isoformat()]
        try:
            sheet = self._client.get_store_sheet()
            found = self._find_row(key)
            if found is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                idx, _ = found
                for col_idx, cell in enumerate(new_row, start=1):
                    sheet.update_cell(idx, col_idx, cell)
        except ConnectionError:
            raise
        except Exception as e:
            logger.error("sheets_write_failed", key=key, error=str(e))
            raise StorageError(f"Failed to write key {key}: {e}")

    def delete(self, key: str) -> bool:
        """Delete the key's row."""
        try:
            found = self._find_row(key)
            if found is None:
                return False
            idx, _ = found
            self._client.get_store_sheet().delete_rows(idx)
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete key {key}: {e}")

    def keys(self, prefix: str = "") -> list[str]:
        try:
            return sorted(
                row[0] for row in self._rows()
                if row and row[0] and row[0].startswith(prefix)
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list keys: {e}")
