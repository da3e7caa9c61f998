"""
Internship Records Service

Progress logs and file attachments of an internship. Only the intern writes
records; the intern, the assigned teacher and the host enterprise read them.
"""
import logging
import os
import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os
from sqlalchemy import select

from internhub.config import MAX_UPLOAD_BYTES, UPLOAD_DIR
from internhub.database import transaction, AsyncSessionLocal
from internhub.errors import ForbiddenError, ValidationError
from internhub.models.internship import InternshipFile, InternshipLog
from internhub.models.user import Role
from internhub.services.internship_service import get_internship_service
from internhub.services.lifecycle import require_text

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png"}
ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
}


def validate_upload(file_name: Optional[str], content_type: Optional[str], size: int) -> str:
    """
    Check an attachment before it is stored.

    Returns:
        The lower-cased file extension

    Raises:
        ValidationError: Missing or empty file, too large, or unsupported type
    """
    if not file_name:
        raise ValidationError.for_field("file", "Please choose a file to upload")
    if size <= 0:
        raise ValidationError.for_field("file", "Uploaded file is empty")
    if size > MAX_UPLOAD_BYTES:
        raise ValidationError.for_field(
            "file", f"File size must not exceed {MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
        )

    extension = os.path.splitext(file_name)[1].lower()
    if extension not in ALLOWED_EXTENSIONS and (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationError.for_field(
            "file", "Unsupported file type; allowed: PDF, Word documents and JPG/PNG images"
        )
    return extension


async def read_upload(upload, chunk_size: int = 64 * 1024) -> bytes:
    """
    Read an uploaded file in chunks, stopping as soon as it exceeds MAX_UPLOAD_BYTES.

    Raises:
        ValidationError: File larger than MAX_UPLOAD_BYTES
    """
    chunks = []
    size = 0
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        size += len(chunk)
        if size > MAX_UPLOAD_BYTES:
            raise ValidationError.for_field(
                "file", f"File size must not exceed {MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
            )
        chunks.append(chunk)
    return b"".join(chunks)


class InternshipRecordsService:
    """Logs and attachments kept per internship"""

    async def _require_intern(self, session, internship_id: int, user_id: int, role: Role):
        if role != Role.STUDENT:
            raise ForbiddenError("Only the intern can add records to this internship")
        return await get_internship_service().load_for_party(session, internship_id, user_id, role)

    async def submit_log(
        self,
        internship_id: int,
        user_id: int,
        role: Role,
        content: Optional[str],
        log_date: Optional[date],
    ) -> InternshipLog:
        """Append a progress log written by the intern."""
        content = require_text("content", content, "Log content must not be empty")
        if log_date is None:
            raise ValidationError.for_field("log_date", "Log date is required")

        async with transaction() as session:
            await self._require_intern(session, internship_id, user_id, role)
            log = InternshipLog(
                internship_id=internship_id,
                content=content,
                log_date=log_date,
                created_at=datetime.utcnow(),
            )
            session.add(log)

        logger.info(f"Log {log.id} added to internship {internship_id}")
        return log

    async def list_logs(self, internship_id: int, user_id: int, role: Role) -> Dict[str, Any]:
        async with AsyncSessionLocal() as session:
            await get_internship_service().load_for_party(session, internship_id, user_id, role)
            result = await session.execute(
                select(InternshipLog)
                .where(InternshipLog.internship_id == internship_id)
                .order_by(InternshipLog.log_date.desc(), InternshipLog.created_at.desc())
            )
            logs = list(result.scalars().all())
        return {"logs": logs, "total": len(logs)}

    async def upload_file(
        self,
        internship_id: int,
        user_id: int,
        role: Role,
        file_name: Optional[str],
        content_type: Optional[str],
        data: bytes,
    ) -> InternshipFile:
        """
        Store an attachment under UPLOAD_DIR and record it.

        The caller is authorized before anything touches the disk, and the
        file is written before the record's transaction opens. The stored
        file is removed again if the record cannot be written.
        """
        extension = validate_upload(file_name, content_type, len(data))

        async with AsyncSessionLocal() as session:
            await self._require_intern(session, internship_id, user_id, role)

        directory = os.path.join(UPLOAD_DIR, str(internship_id))
        stored_path = os.path.join(directory, f"{uuid.uuid4().hex}{extension}")

        await aiofiles.os.makedirs(directory, exist_ok=True)
        try:
            async with aiofiles.open(stored_path, "wb") as handle:
                await handle.write(data)

            async with transaction() as session:
                record = InternshipFile(
                    internship_id=internship_id,
                    file_name=os.path.basename(file_name),
                    file_path=stored_path,
                    file_size=len(data),
                    file_type=content_type,
                    uploaded_at=datetime.utcnow(),
                )
                session.add(record)
        except Exception:
            if await aiofiles.os.path.exists(stored_path):
                await aiofiles.os.remove(stored_path)
            raise

        logger.info(f"File {record.file_name} ({record.file_size} bytes) uploaded to internship {internship_id}")
        return record

    async def list_files(self, internship_id: int, user_id: int, role: Role) -> Dict[str, Any]:
        async with AsyncSessionLocal() as session:
            await get_internship_service().load_for_party(session, internship_id, user_id, role)
            result = await session.execute(
                select(InternshipFile)
                .where(InternshipFile.internship_id == internship_id)
                .order_by(InternshipFile.uploaded_at.desc(), InternshipFile.id.desc())
            )
            files = list(result.scalars().all())
        return {"files": files, "total": len(files)}


# Global instance
_records_service: Optional[InternshipRecordsService] = None


def get_records_service() -> InternshipRecordsService:
    """Get or create global InternshipRecordsService instance."""
    global _records_service
    if _records_service is None:
        _records_service = InternshipRecordsService()
    return _records_service
