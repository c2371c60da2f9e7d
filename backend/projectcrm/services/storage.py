"""Blob storage for uploaded documents."""

import asyncio
import re
import time
from pathlib import Path

import structlog

from projectcrm.config import get_settings

logger = structlog.get_logger()

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/svg+xml",
        "image/webp",
        "application/pdf",
        "text/markdown",
        "text/plain",
        "text/x-markdown",
    }
)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def is_allowed_upload(mime_type: str, filename: str) -> bool:
    """Images, PDFs and markdown/plain text are accepted."""
    return mime_type in ALLOWED_MIME_TYPES or filename.lower().endswith(".md")


def category_for(mime_type: str, filename: str) -> str:
    """Derive a document category from its mime type and name."""
    if mime_type.startswith("image/"):
        return "logo" if "logo" in filename.lower() else "image"
    if mime_type == "application/pdf":
        return "pdf"
    if "markdown" in mime_type or filename.lower().endswith(".md"):
        return "markdown"
    return "general"


def make_storage_path(filename: str, timestamp_ms: int | None = None) -> str:
    """Unique object name: ``<epoch ms>-<sanitized file name>``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}-{_UNSAFE_CHARS.sub('_', filename)}"


class DocumentStorage:
    """Stores document blobs under a directory served at a public URL."""

    def __init__(self, root: Path, public_url: str):
        self.root = root
        self.public_url = public_url.rstrip("/")

    def _path(self, storage_path: str) -> Path:
        path = (self.root / storage_path).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage path escapes the upload directory: {storage_path}")
        return path

    def url_for(self, storage_path: str) -> str:
        """Public URL of a stored object."""
        return f"{self.public_url}/{storage_path}"

    async def save(self, storage_path: str, content: bytes) -> None:
        """Write an object; existing objects are never overwritten."""
        path = self._path(storage_path)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("xb") as handle:
                handle.write(content)

        await asyncio.to_thread(_write)
        logger.info("blob_stored", storage_path=storage_path, size=len(content))

    async def remove(self, storage_path: str) -> None:
        """Delete an object."""
        path = self._path(storage_path)
        await asyncio.to_thread(path.unlink)
        logger.info("blob_removed", storage_path=storage_path)


def get_storage() -> DocumentStorage:
    """Storage configured from settings (FastAPI dependency)."""
    settings = get_settings()
    return DocumentStorage(settings.upload_dir, settings.storage_public_url)
