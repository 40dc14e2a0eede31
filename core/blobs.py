"""Blob storage for final artifacts, keyed by opaque string paths."""

import os
import threading

from config.defaults import DEFAULTS


def artifact_key(generation_id, prefix=None):
    """Blob key of a generation's final HTML."""
    return f"{prefix or DEFAULTS['blob_prefix']}/generations/{generation_id}.html"


class FileBlobStore:
    """Stores blobs as files under a root directory."""

    def __init__(self, root):
        self.root = root

    def _resolve(self, key):
        full_path = os.path.join(self.root, key)
        resolved = os.path.realpath(full_path)
        if not resolved.startswith(os.path.realpath(self.root) + os.sep):
            raise ValueError(f"Blob key escapes storage root: {key}")
        return resolved

    def put(self, key, data, content_type="application/octet-stream"):
        # content_type only matters to remote stores; files carry it in the extension
        if isinstance(data, str):
            data = data.encode("utf-8")
        resolved = self._resolve(key)
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with open(resolved, "wb") as f:
            f.write(data)
        return key

    def get(self, key):
        resolved = self._resolve(key)
        if not os.path.isfile(resolved):
            return None
        with open(resolved, "rb") as f:
            return f.read()


class MemoryBlobStore:
    """Process-local blob store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._blobs = {}

    def put(self, key, data, content_type="application/octet-stream"):
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            self._blobs[key] = (data, content_type)
        return key

    def get(self, key):
        with self._lock:
            item = self._blobs.get(key)
        return item[0] if item else None

    def content_type(self, key):
        with self._lock:
            item = self._blobs.get(key)
        return item[1] if item else None
