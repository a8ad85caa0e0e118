"""
File Service
============

Uploads to object storage with a ``file_uploads`` record per object.

Objects are stored in the ``settings.storage_bucket`` bucket at
``<upload_type>/<user_id>/<timestamp>-<random>.<ext>``. Resume and
profile-picture uploads also update the owner's ``resume_url`` /
``avatar_url``.
"""

from __future__ import annotations

import logging
import secrets
import time
import uuid
from pathlib import Path
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manpower.core.config import settings
from manpower.models.file_upload import FileUpload, UploadType
from manpower.models.user import User
from manpower.storage import StorageProvider

logger = logging.getLogger(__name__)

# Accepted content types (or ``.ext`` suffixes) per upload type; absent = any
ACCEPTED_TYPES: dict[UploadType, tuple[str, ...]] = {
    UploadType.PROFILE_PICTURE: ("image/*",),
    UploadType.RESUME: (
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        ".pdf",
        ".doc",
        ".docx",
    ),
}


class FileUploadError(Exception):
    """Base exception for file upload errors."""


class FileTooLargeError(FileUploadError):
    def __init__(self, limit_mb: int) -> None:
        self.limit_mb = limit_mb
        super().__init__(f"File size must be less than {limit_mb}MB")


class UnsupportedFileTypeError(FileUploadError):
    def __init__(self, accepted: tuple[str, ...]) -> None:
        self.accepted = accepted
        super().__init__(f"File type not supported. Accepted types: {', '.join(accepted)}")


class UploadNotFoundError(FileUploadError):
    def __init__(self, file_id: uuid.UUID) -> None:
        self.file_id = file_id
        super().__init__(f"File with id '{file_id}' not found.")


class FilePermissionError(FileUploadError):
    pass


def _is_accepted(file_name: str, content_type: str, accepted: tuple[str, ...]) -> bool:
    lowered = file_name.lower()
    for rule in accepted:
        if rule.endswith("/*"):
            if content_type.startswith(rule[:-1]):
                return True
        elif rule.startswith("."):
            if lowered.endswith(rule):
                return True
        elif content_type == rule:
            return True
    return False


def validate_file(upload_type: UploadType, file_name: str, content_type: str, size: int) -> None:
    """Raise if the file is too large or of a type the upload type refuses."""
    if size > settings.max_upload_size_mb * 1024 * 1024:
        raise FileTooLargeError(settings.max_upload_size_mb)
    accepted = ACCEPTED_TYPES.get(upload_type)
    if accepted and not _is_accepted(file_name, content_type or "", accepted):
        raise UnsupportedFileTypeError(accepted)


def build_storage_path(upload_type: UploadType, user_id: uuid.UUID, file_name: str) -> str:
    ext = Path(file_name).suffix.lstrip(".").lower() or "bin"
    stamp = int(time.time() * 1000)
    return f"{upload_type.value}/{user_id}/{stamp}-{secrets.token_hex(6)}.{ext}"


async def upload_file(
    db: AsyncSession,
    storage: StorageProvider,
    user: User,
    *,
    upload_type: UploadType,
    file_name: str,
    content_type: str,
    data: bytes,
    job_id: Optional[uuid.UUID] = None,
    proposal_id: Optional[uuid.UUID] = None,
    contract_id: Optional[uuid.UUID] = None,
) -> FileUpload:
    """Store an object and record it.

    Raises:
        FileTooLargeError, UnsupportedFileTypeError.
    """
    validate_file(upload_type, file_name, content_type, len(data))

    bucket = settings.storage_bucket
    storage_path = build_storage_path(upload_type, user.id, file_name)
    storage.upload(bucket, storage_path, data, content_type)
    file_url = storage.get_public_url(bucket, storage_path)

    record = FileUpload(
        user_id=user.id,
        job_id=job_id,
        proposal_id=proposal_id,
        contract_id=contract_id,
        file_name=file_name,
        file_url=file_url,
        storage_path=storage_path,
        file_type=content_type or "application/octet-stream",
        file_size=len(data),
        upload_type=upload_type,
    )
    db.add(record)

    if upload_type == UploadType.RESUME:
        user.resume_url = file_url
    elif upload_type == UploadType.PROFILE_PICTURE:
        user.avatar_url = file_url

    try:
        await db.flush()
    except Exception:
        # Keep storage in step with the database
        storage.delete(bucket, storage_path)
        raise

    logger.info(
        "File uploaded: id=%s user=%s type=%s size=%d",
        record.id,
        user.id,
        upload_type.value,
        len(data),
    )
    return record


async def delete_file(db: AsyncSession, file_id: uuid.UUID, user: User) -> str:
    """Delete the record of an upload owned by ``user``.

    Returns the storage path of the object; the caller removes it with
    ``remove_stored_object`` once the deletion is committed.
    """
    record = (
        await db.execute(select(FileUpload).where(FileUpload.id == file_id))
    ).scalar_one_or_none()
    if record is None:
        raise UploadNotFoundError(file_id)
    if record.user_id != user.id:
        raise FilePermissionError("You can only delete your own files.")

    storage_path = record.storage_path
    await db.delete(record)
    await db.flush()
    logger.info("File record deleted: id=%s user=%s", file_id, user.id)
    return storage_path


def remove_stored_object(storage: StorageProvider, storage_path: str) -> bool:
    """Remove a stored object; returns False when it was already gone."""
    if not storage.exists(settings.storage_bucket, storage_path):
        logger.warning("Stored object %s already absent", storage_path)
        return False
    storage.delete(settings.storage_bucket, storage_path)
    return True


async def list_files(
    db: AsyncSession,
    user: User,
    *,
    job_id: Optional[uuid.UUID] = None,
    proposal_id: Optional[uuid.UUID] = None,
    contract_id: Optional[uuid.UUID] = None,
    upload_type: Optional[UploadType] = None,
) -> Sequence[FileUpload]:
    """Uploads owned by ``user``, optionally narrowed to one association."""
    filters = [FileUpload.user_id == user.id]
    if job_id is not None:
        filters.append(FileUpload.job_id == job_id)
    if proposal_id is not None:
        filters.append(FileUpload.proposal_id == proposal_id)
    if contract_id is not None:
        filters.append(FileUpload.contract_id == contract_id)
    if upload_type is not None:
        filters.append(FileUpload.upload_type == upload_type)
    stmt = select(FileUpload).where(*filters).order_by(FileUpload.created_at.desc())
    return (await db.execute(stmt)).scalars().all()
