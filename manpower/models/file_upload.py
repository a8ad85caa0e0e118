"""
SQLAlchemy model for file_uploads.
Corresponds to migration 0001_initial_schema.
"""

import enum
import uuid
from typing import Optional

from sqlalchemy import BigInteger, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UploadType(str, enum.Enum):
    JOB_ATTACHMENT = "job_attachment"
    PROPOSAL_ATTACHMENT = "proposal_attachment"
    RESUME = "resume"
    PROFILE_PICTURE = "profile_picture"
    MESSAGE_ATTACHMENT = "message_attachment"


class FileUpload(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "file_uploads"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Optional associations
    job_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True
    )
    proposal_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("proposals.id", ondelete="SET NULL"), nullable=True
    )
    contract_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True
    )

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    storage_path: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(String(150), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    upload_type: Mapped[UploadType] = mapped_column(
        Enum(UploadType, name="upload_type"),
        nullable=False,
    )

    owner: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<FileUpload(id={self.id}, name={self.file_name!r}, "
            f"type={self.upload_type})>"
        )
