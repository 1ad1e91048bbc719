"""
Abstract Storage Interface

DESIGN DECISION: Persistence is a plain keyed store of JSON strings.
This allows us to:
1. Keep the browser-style "one blob per key" layout of the data
2. Use in-memory storage for testing
3. Swap a local JSON file for Google Sheets without touching business logic

The interface is intentionally tiny: get, set, delete, list keys.
Typed access (users, year data, tracked items) lives in the repository.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract interface for keyed storage.

    Any storage implementation must implement these methods.
    Calls are synchronous; the last write to a key wins.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value, overwriting any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """
        List stored keys starting with prefix, sorted.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
