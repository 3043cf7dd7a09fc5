"""
Object storage for provider verification documents.

Only KYC submission uses it; the lifecycle engine never touches documents.
"""

import os
from pathlib import Path, PurePosixPath
from typing import Optional
from uuid import uuid4

from handyhive.config import KYC_UPLOAD_DIR
from handyhive.logger import get_logger

logger = get_logger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


class UploadError(Exception):
    pass


class LocalDocumentStorage:
    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Optional[Path]:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            return None
        return target

    def upload(self, path: str, data: bytes) -> str:
        """Store ``data`` under ``path`` (relative to the storage root) and return the path"""
        target = self._resolve(path)
        if target is None:
            raise UploadError(f"Invalid storage path: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Failed to store document {path}: {e}")
            raise UploadError("Could not store document") from e
        logger.info(f"Stored document {path} ({len(data)} bytes)")
        return path

    def exists(self, path: str) -> bool:
        target = self._resolve(path)
        return target is not None and os.path.isfile(target)

    def belongs_to(self, path: str, owner_id: str) -> bool:
        """True when ``path`` is a stored document inside ``owner_id``'s folder"""
        parts = PurePosixPath(path).parts
        if len(parts) < 2 or parts[0] != str(owner_id) or ".." in parts or "\\" in path:
            return False
        target = self._resolve(path)
        return target is not None and (self.root / str(owner_id)) in target.parents and target.is_file()


def document_path(user_id: str, folder: str, content_type: str) -> str:
    """Storage key for a provider's document: <user>/<folder>/<random><ext>"""
    return f"{user_id}/{folder}/{uuid4().hex}{ALLOWED_CONTENT_TYPES[content_type]}"


document_storage = LocalDocumentStorage(KYC_UPLOAD_DIR)


def get_document_storage() -> LocalDocumentStorage:
    return document_storage
