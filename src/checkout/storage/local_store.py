"""Filesystem document store, served read-only under a public base URL."""

import os
import tempfile
from pathlib import Path

import structlog

from checkout.storage.port import DocumentStore, StorageError

logger = structlog.get_logger(__name__)


class LocalDocumentStore(DocumentStore):
    def __init__(self, root_dir: str | Path, base_url: str) -> None:
        self.root = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Storage key escapes the storage root: {key}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> str:  # noqa: ARG002
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file and rename so readers never see a partial document
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StorageError(f"Could not store {key}: {exc}") from exc

        logger.debug("Document stored", key=key, size=len(data))
        return self.public_url(key)

    def get(self, key: str) -> bytes | None:
        path = self._path_for(key)
        return path.read_bytes() if path.exists() else None

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"
