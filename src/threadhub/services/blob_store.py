"""Blob storage capability for post media and avatars."""

from __future__ import annotations

import asyncio
import mimetypes
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

MEDIA_FOLDER = "thread/media"
AVATAR_FOLDER = "thread/avatars"


class BlobStoreError(RuntimeError):
    """Raised when a blob cannot be stored or removed."""


@dataclass(frozen=True)
class StoredBlob:
    """Reference to a stored blob."""

    url: str
    public_id: str

    def as_media(self) -> dict[str, str]:
        return {"url": self.url, "public_id": self.public_id}


@dataclass(frozen=True)
class Upload:
    """In-memory file received from a client."""

    filename: str
    content_type: str
    data: bytes


@runtime_checkable
class BlobStore(Protocol):
    """Interface for pluggable blob storage backends."""

    async def store(self, data: bytes, folder: str, content_type: str) -> StoredBlob:
        """Persist ``data`` under ``folder`` and return its reference."""
        ...

    async def delete(self, public_id: str) -> None:
        """Remove a blob; raises :class:`BlobStoreError` on failure."""
        ...


class LocalBlobStore:
    """Store blobs on the local filesystem under ``root``."""

    def __init__(self, root: Path | str, base_url: str = "/media") -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    async def store(self, data: bytes, folder: str, content_type: str) -> StoredBlob:
        extension = mimetypes.guess_extension(content_type) or ""
        public_id = f"{folder.strip('/')}/{secrets.token_hex(16)}{extension}"
        path = self._path_for(public_id)
        try:
            await asyncio.to_thread(self._write_file, path, data)
        except OSError as err:
            raise BlobStoreError(f"Could not store blob {public_id}: {err}") from err
        return StoredBlob(url=f"{self._base_url}/{public_id}", public_id=public_id)

    async def delete(self, public_id: str) -> None:
        path = self._path_for(public_id)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as err:
            raise BlobStoreError(f"Could not delete blob {public_id}: {err}") from err

    async def exists(self, public_id: str) -> bool:
        return await asyncio.to_thread(self._path_for(public_id).exists)

    # -- internal helpers --

    def _path_for(self, public_id: str) -> Path:
        path = (self._root / public_id).resolve()
        if self._root.resolve() not in path.parents:
            raise BlobStoreError(f"Blob id escapes the storage root: {public_id}")
        return path

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
