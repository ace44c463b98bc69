"""Integration tests for the filesystem document store."""

import pytest
from checkout.storage.local_store import LocalDocumentStore
from checkout.storage.port import StorageError


@pytest.fixture()
def store(tmp_path):
    return LocalDocumentStore(tmp_path / "invoices", base_url="http://localhost:8000/invoices/files/")


class TestLocalDocumentStore:
    def test_put_and_get(self, store):
        url = store.put("ORD-1.pdf", b"%PDF-1.4 test", "application/pdf")

        assert url == "http://localhost:8000/invoices/files/ORD-1.pdf"
        assert store.get("ORD-1.pdf") == b"%PDF-1.4 test"

    def test_put_replaces_existing_document(self, store):
        store.put("ORD-1.pdf", b"first", "application/pdf")
        store.put("ORD-1.pdf", b"second", "application/pdf")

        assert store.get("ORD-1.pdf") == b"second"

    def test_missing_document(self, store):
        assert store.get("nothing.pdf") is None

    def test_key_cannot_escape_root(self, store):
        with pytest.raises(StorageError):
            store.put("../outside.pdf", b"x", "application/pdf")

    def test_no_temp_files_left_behind(self, store, tmp_path):
        store.put("ORD-1.pdf", b"data", "application/pdf")

        assert [p.name for p in (tmp_path / "invoices").iterdir()] == ["ORD-1.pdf"]
