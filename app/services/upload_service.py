import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import uuid4

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}

URL_PREFIX = "/uploads/"
CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredFile:
    ref: str
    path: Path
    original_name: str
    mime_type: str
    size: int


class UploadStorage:
    def __init__(self, upload_dir, max_bytes: int = 5 * 1024 * 1024):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def path_for(self, ref: str) -> Path:
        # only the basename is trusted
        return self.upload_dir / Path(ref).name

    def save(self, upload: UploadFile, prefix: str) -> StoredFile:
        mime_type = (upload.content_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise InvalidInputError("Invalid file type")

        original_name = upload.filename or "upload"
        ext = Path(original_name).suffix.lower() or ALLOWED_MIME_TYPES[mime_type]
        name = f"{prefix}_{uuid4().hex}{ext}"

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.upload_dir, suffix=".part")
        size = 0
        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = upload.file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise InvalidInputError("File is too large")
                    out.write(chunk)
            final_path = self.upload_dir / name
            os.replace(tmp_path, final_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info("Stored upload %s (%s, %s bytes)", name, mime_type, size)
        return StoredFile(
            ref=URL_PREFIX + name,
            path=final_path,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
        )

    def delete(self, ref: Optional[str]) -> bool:
        """Best-effort removal. A missing file is not an error."""
        if not ref:
            return False
        try:
            self.path_for(ref).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError:
            logger.warning("Could not delete stored file %s", ref, exc_info=True)
            return False

    @contextmanager
    def stored(self, upload: Optional[UploadFile], prefix: str):
        """
        Yields a StoredFile (or None when nothing was uploaded). If the body
        of the block fails, the stored file is removed again.
        """
        if upload is None or not upload.filename:
            yield None
            return

        stored = self.save(upload, prefix)
        try:
            yield stored
        except BaseException:
            self.delete(stored.ref)
            raise


def get_storage() -> UploadStorage:
    return UploadStorage(settings.UPLOAD_DIR, settings.MAX_UPLOAD_BYTES)
