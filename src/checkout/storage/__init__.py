"""Document store factory.

Provides get_document_store() / set_document_store():
- LocalDocumentStore when INVOICE_STORAGE_DIR is configured
- InMemoryDocumentStore otherwise
"""

from checkout.config import get_settings
from checkout.storage.port import DocumentStore

_current_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    global _current_store
    if _current_store is None:
        settings = get_settings()
        if settings.invoice_storage_dir:
            from checkout.storage.local_store import LocalDocumentStore

            _current_store = LocalDocumentStore(settings.invoice_storage_dir, settings.invoice_public_base_url)
        else:
            from checkout.storage.memory_store import InMemoryDocumentStore

            _current_store = InMemoryDocumentStore(settings.invoice_public_base_url)
    return _current_store


def set_document_store(store: DocumentStore) -> None:
    """Override the active store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_document_store() -> None:
    global _current_store
    _current_store = None
