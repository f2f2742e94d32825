import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

from classroom.config import UPLOAD_DIR

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """A file handed in by the user, before it is stored."""

    original_name: str
    content: bytes
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StoredFile:
    storage_path: str
    public_url: str | None = None


def file_type_from_mime(mime_type: str) -> str:
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type == "application/pdf":
        return "pdf"
    return "document"


class LocalFileStorage:
    """Stores uploads under a directory on disk."""

    def __init__(self, root: str | None = None, base_url: str | None = None):
        self.root = Path(root or UPLOAD_DIR)
        self.base_url = base_url

    def upload(self, file: UploadedFile, folder: str) -> StoredFile:
        safe_name = os.path.basename(file.original_name) or "file"
        rel_path = f"{folder}/{uuid.uuid4().hex}_{safe_name}"
        target = self.root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(file.content)
        public_url = f"{self.base_url.rstrip('/')}/{rel_path}" if self.base_url else None
        return StoredFile(storage_path=rel_path, public_url=public_url)

    def delete(self, storage_path: str) -> None:
        target = self.root / storage_path
        if target.exists():
            target.unlink()
        else:
            logger.warning("Stored file already missing: %s", storage_path)
