"""Document storage port: put bytes under a key, get a public URL back.

``put`` overwrites whatever is stored under the key.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """The document could not be stored."""


class DocumentStore(ABC):
    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return its public URL."""
        ...

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None when nothing is stored under ``key``."""
        ...

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...
