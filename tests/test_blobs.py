"""Tests for core.blobs."""

import pytest

from core.blobs import FileBlobStore, MemoryBlobStore, artifact_key


def test_artifact_key_layout():
    assert artifact_key("abc123") == "uiforge/generations/abc123.html"
    assert artifact_key("abc123", prefix="tenant") == "tenant/generations/abc123.html"


def test_file_store_round_trip(tmp_path):
    store = FileBlobStore(str(tmp_path))
    key = store.put("uiforge/generations/a.html", "<html>é</html>", "text/html")
    assert key == "uiforge/generations/a.html"
    assert store.get(key) == "<html>é</html>".encode("utf-8")
    assert (tmp_path / "uiforge" / "generations" / "a.html").exists()


def test_file_store_missing_key(tmp_path):
    assert FileBlobStore(str(tmp_path)).get("nope.html") is None


def test_file_store_rejects_escape(tmp_path):
    store = FileBlobStore(str(tmp_path / "root"))
    with pytest.raises(ValueError, match="escapes"):
        store.put("../outside.html", "x")


def test_memory_store_keeps_content_type():
    store = MemoryBlobStore()
    store.put("k", b"<p></p>", "text/html; charset=utf-8")
    assert store.get("k") == b"<p></p>"
    assert store.content_type("k") == "text/html; charset=utf-8"
    assert store.get("other") is None
