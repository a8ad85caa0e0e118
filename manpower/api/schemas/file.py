"""
Pydantic v2 schemas for file upload endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from manpower.models.file_upload import UploadType


class FileUploadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    job_id: Optional[uuid.UUID] = None
    proposal_id: Optional[uuid.UUID] = None
    contract_id: Optional[uuid.UUID] = None
    file_name: str
    file_url: str
    file_type: str
    file_size: Optional[int] = None
    upload_type: UploadType
    created_at: datetime


class FileUploadResponse(BaseModel):
    data: FileUploadOut
    message: Optional[str] = None


class FileListResponse(BaseModel):
    data: list[FileUploadOut]
