"""In-memory document store for development and tests."""

from checkout.storage.port import DocumentStore


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, base_url: str = "memory://invoices") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.put_count: int = 0

    def put(self, key: str, data: bytes, content_type: str) -> str:
        self.objects[key] = (data, content_type)
        self.put_count += 1
        return self.public_url(key)

    def get(self, key: str) -> bytes | None:
        stored = self.objects.get(key)
        return stored[0] if stored else None

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"
