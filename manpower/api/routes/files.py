"""
File Upload Routes
==================

Routes:
  POST   /api/v1/files              -- upload a file (multipart)
  GET    /api/v1/files              -- own uploads, optionally filtered
  DELETE /api/v1/files/{file_id}    -- delete an own upload
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status

from manpower.api.deps import CurrentUser, DBSession, Gateway
from manpower.api.schemas.common import MessageResponse
from manpower.api.schemas.file import FileListResponse, FileUploadOut, FileUploadResponse
from manpower.models.file_upload import UploadType
from manpower.services import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["Files"])


@router.post(
    "",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file",
    description=(
        "Stores the file and records it. Resume and profile picture uploads "
        "also update the caller's profile."
    ),
)
async def upload_file(
    db: DBSession,
    gateway: Gateway,
    current_user: CurrentUser,
    file: UploadFile = File(...),
    upload_type: UploadType = Form(...),
    job_id: Optional[uuid.UUID] = Form(default=None),
    proposal_id: Optional[uuid.UUID] = Form(default=None),
    contract_id: Optional[uuid.UUID] = Form(default=None),
) -> FileUploadResponse:
    data = await file.read()
    try:
        record = await file_service.upload_file(
            db,
            gateway.storage,
            current_user,
            upload_type=upload_type,
            file_name=file.filename or "upload",
            content_type=file.content_type or "application/octet-stream",
            data=data,
            job_id=job_id,
            proposal_id=proposal_id,
            contract_id=contract_id,
        )
    except file_service.FileTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc))
    except file_service.UnsupportedFileTypeError as exc:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc))

    await db.commit()
    if upload_type in (UploadType.RESUME, UploadType.PROFILE_PICTURE):
        await gateway.auth.notify_user_updated(current_user.id)
    return FileUploadResponse(data=FileUploadOut.model_validate(record), message="File uploaded.")


@router.get("", response_model=FileListResponse, summary="Own uploads")
async def list_files(
    db: DBSession,
    current_user: CurrentUser,
    job_id: Optional[uuid.UUID] = Query(default=None),
    proposal_id: Optional[uuid.UUID] = Query(default=None),
    contract_id: Optional[uuid.UUID] = Query(default=None),
    upload_type: Optional[UploadType] = Query(default=None),
) -> FileListResponse:
    records = await file_service.list_files(
        db,
        current_user,
        job_id=job_id,
        proposal_id=proposal_id,
        contract_id=contract_id,
        upload_type=upload_type,
    )
    return FileListResponse(data=[FileUploadOut.model_validate(r) for r in records])


@router.delete("/{file_id}", response_model=MessageResponse, summary="Delete an own upload")
async def delete_file(
    file_id: uuid.UUID,
    db: DBSession,
    gateway: Gateway,
    current_user: CurrentUser,
) -> MessageResponse:
    try:
        storage_path = await file_service.delete_file(db, file_id, current_user)
    except file_service.UploadNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except file_service.FilePermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    await db.commit()
    file_service.remove_stored_object(gateway.storage, storage_path)
    return MessageResponse(message="File deleted.")
