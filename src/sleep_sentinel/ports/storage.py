"""Storage port interface.

The night history, settings and sync cursor are each persisted as an
independent text blob in a simple key-value store.
"""

from abc import ABC, abstractmethod

SETTINGS_KEY = "settings"
NIGHTS_KEY = "nights"
ANCHOR_KEY = "anchor"


class KeyValueStorePort(ABC):
    """Abstract interface for blob persistence.

    Implementations must not raise on a missing key; `get` returns None.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Retrieve the blob stored under `key`.

        Args:
            key: Blob key

        Returns:
            The stored text, or None when absent
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous blob."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the blob under `key`; a missing key is not an error."""
