import logging
import os
import time
import uuid
from pathlib import Path

import anyio

from app.config import Settings
from app.errors import PayloadTooLargeError, UnsupportedTypeError, ValidationError
from app.models import UploadedDocument

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    'pdf': {'application/pdf', 'application/x-pdf'},
    'doc': {'application/msword'},
    'docx': {'application/vnd.openxmlformats-officedocument.wordprocessingml.document'},
}


def normalize_mime(mime_type: str) -> str:
    return (mime_type or '').split(';', 1)[0].strip().lower()


class StorageService:
    """Validates incoming resumes and streams them into the local upload store."""

    def __init__(self, settings: Settings):
        self.upload_dir = Path(settings.upload_dir)
        self.max_bytes = settings.max_upload_bytes
        self.chunk_size = settings.upload_chunk_size
        self._dir_ready = False

    def _ensure_dir(self):
        if not self._dir_ready:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            self._dir_ready = True

    @staticmethod
    def check_type(filename: str, mime_type: str) -> str:
        """Both the extension and the declared MIME type must agree. Returns the extension."""
        ext = os.path.splitext(filename)[1].lower().lstrip('.')
        allowed = ALLOWED_TYPES.get(ext)
        if not allowed or normalize_mime(mime_type) not in allowed:
            logger.info(f"Rejected upload {filename!r} with type {mime_type!r}")
            raise UnsupportedTypeError()
        return ext

    @staticmethod
    def make_storage_name(ext: str) -> str:
        timestamp = int(time.time() * 1000)
        return f"resume-{timestamp}-{uuid.uuid4().hex[:16]}.{ext}"

    async def accept(self, reader, filename: str, mime_type: str) -> UploadedDocument:
        """
        Stream an upload into the store.
        `reader` is anything with an async `read(size)`, e.g. a FastAPI UploadFile.
        Nothing is left on disk when validation fails.
        """
        if not filename:
            raise ValidationError("Resume file is required")

        ext = self.check_type(filename, mime_type)
        self._ensure_dir()

        storage_name = self.make_storage_name(ext)
        final_path = anyio.Path(self.upload_dir / storage_name)
        part_path = anyio.Path(self.upload_dir / f".{storage_name}.part")

        size = 0
        try:
            async with await anyio.open_file(part_path, 'xb') as fh:
                while True:
                    chunk = await reader.read(self.chunk_size)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        logger.info(f"Rejected upload {filename!r}: over {self.max_bytes} bytes")
                        raise PayloadTooLargeError()
                    await fh.write(chunk)
        except BaseException:
            # sync unlink so cleanup still happens while being cancelled
            Path(part_path).unlink(missing_ok=True)
            raise

        if size == 0:
            await part_path.unlink(missing_ok=True)
            raise ValidationError("Uploaded file is empty")

        await part_path.rename(final_path)
        logger.info(f"Stored upload {filename!r} as {storage_name} ({size} bytes)")

        return UploadedDocument(
            storage_ref=storage_name,
            original_name=filename,
            mime_type=normalize_mime(mime_type),
            size_bytes=size,
        )

    async def read(self, document: UploadedDocument) -> bytes:
        return await anyio.Path(self.upload_dir / document.storage_ref).read_bytes()
