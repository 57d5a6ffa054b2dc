"""
Blob store for uploaded files (poster images, payment proofs).

The core only keeps the returned path string; raw bytes never reach the
database. Swappable through get_blob_store() like any other collaborator.
"""

import asyncio
import base64
import binascii
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from unihub.core.config import get_settings
from unihub.core.exceptions import BadRequest
from unihub.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class BlobStore(ABC):
    @abstractmethod
    async def store(self, data: bytes, suggested_ext: str, prefix: str = "file") -> str:
        """Persist bytes and return the public path."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove a stored blob. Missing blobs are ignored."""


class LocalBlobStore(BlobStore):
    """Files under UPLOAD_DIR, addressed as {UPLOAD_URL_PREFIX}/{name}."""

    def __init__(self, root: str, url_prefix: str):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _name_for(self, path: str) -> Optional[str]:
        if not path.startswith(self.url_prefix + "/"):
            return None
        name = path[len(self.url_prefix) + 1:]
        # Only flat names we generated ourselves
        if not name or "/" in name or "\\" in name or name.startswith("."):
            return None
        return name

    async def store(self, data: bytes, suggested_ext: str, prefix: str = "file") -> str:
        ext = suggested_ext if suggested_ext.startswith(".") else f".{suggested_ext}"
        if not ext[1:].isalnum():
            ext = ".bin"
        name = f"{prefix}-{uuid.uuid4().hex}{ext.lower()}"

        def _write() -> None:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / name).write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info("blob_stored", name=name, size=len(data))
        return f"{self.url_prefix}/{name}"

    async def delete(self, path: str) -> None:
        name = self._name_for(path)
        if name is None:
            logger.warning("blob_delete_skipped", path=path)
            return
        await asyncio.to_thread((self.root / name).unlink, True)
        logger.info("blob_deleted", name=name)


def decode_upload(encoded: str, max_bytes: int) -> bytes:
    """Decode a base64 payload (optionally a data: URL) from a JSON body."""
    if encoded.startswith("data:") and "," in encoded:
        encoded = encoded.split(",", 1)[1]
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadRequest("Upload is not valid base64") from e
    if not data:
        raise BadRequest("Upload is empty")
    if len(data) > max_bytes:
        raise BadRequest("Upload is too large", max_bytes=max_bytes, size=len(data))
    return data


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return _blob_store
