"""Unit tests for upload validation and storage path layout."""

import uuid
from unittest.mock import MagicMock

import pytest

from manpower.core.config import settings
from manpower.models.file_upload import FileUpload, UploadType
from manpower.services import file_service
from manpower.services.file_service import (
    FilePermissionError,
    FileTooLargeError,
    UnsupportedFileTypeError,
)
from manpower.storage import LocalStorageProvider
from tests.conftest import scalar_result

MB = 1024 * 1024


class TestValidateFile:

    def test_size_limit(self):
        limit = settings.max_upload_size_mb * MB
        file_service.validate_file(UploadType.JOB_ATTACHMENT, "a.zip", "application/zip", limit)
        with pytest.raises(FileTooLargeError, match=f"{settings.max_upload_size_mb}MB"):
            file_service.validate_file(UploadType.JOB_ATTACHMENT, "a.zip", "application/zip", limit + 1)

    def test_profile_picture_must_be_image(self):
        file_service.validate_file(UploadType.PROFILE_PICTURE, "me.png", "image/png", 10)
        with pytest.raises(UnsupportedFileTypeError):
            file_service.validate_file(UploadType.PROFILE_PICTURE, "me.pdf", "application/pdf", 10)

    @pytest.mark.parametrize(
        "name, content_type",
        [
            ("cv.pdf", "application/pdf"),
            ("cv.docx", "application/octet-stream"),
            ("CV.DOC", ""),
        ],
    )
    def test_resume_accepts_documents(self, name, content_type):
        file_service.validate_file(UploadType.RESUME, name, content_type, 10)

    def test_resume_refuses_images(self):
        with pytest.raises(UnsupportedFileTypeError, match="Accepted types"):
            file_service.validate_file(UploadType.RESUME, "cv.jpg", "image/jpeg", 10)

    def test_attachments_accept_any_type(self):
        file_service.validate_file(UploadType.MESSAGE_ATTACHMENT, "x.bin", "", 10)


class TestStoragePath:

    def test_layout(self):
        user_id = uuid.uuid4()
        path = file_service.build_storage_path(UploadType.RESUME, user_id, "My CV.PDF")
        folder, owner, name = path.split("/")
        assert folder == "resume"
        assert owner == str(user_id)
        assert name.endswith(".pdf")

    def test_missing_extension(self):
        path = file_service.build_storage_path(UploadType.JOB_ATTACHMENT, uuid.uuid4(), "README")
        assert path.endswith(".bin")

    def test_paths_are_unique(self):
        user_id = uuid.uuid4()
        paths = {
            file_service.build_storage_path(UploadType.RESUME, user_id, "cv.pdf")
            for _ in range(20)
        }
        assert len(paths) == 20


class TestDeleteFile:

    @pytest.fixture
    def record(self, sample_employee):
        upload = MagicMock(spec=FileUpload)
        upload.id = uuid.uuid4()
        upload.user_id = sample_employee.id
        upload.storage_path = f"resume/{sample_employee.id}/cv.pdf"
        return upload

    @pytest.mark.asyncio
    async def test_deletes_record_and_returns_path(self, mock_db, record, sample_employee):
        mock_db.execute.return_value = scalar_result(record)

        path = await file_service.delete_file(mock_db, record.id, sample_employee)

        assert path == record.storage_path
        mock_db.delete.assert_awaited_once_with(record)
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_owner_deletes(self, mock_db, record, sample_client):
        mock_db.execute.return_value = scalar_result(record)

        with pytest.raises(FilePermissionError):
            await file_service.delete_file(mock_db, record.id, sample_client)
        mock_db.delete.assert_not_awaited()


class TestRemoveStoredObject:

    def test_removes_existing_object(self, tmp_path):
        storage = LocalStorageProvider(base_dir=str(tmp_path), public_base_url="http://test")
        storage.upload(settings.storage_bucket, "resume/u/cv.pdf", b"%PDF")

        assert file_service.remove_stored_object(storage, "resume/u/cv.pdf") is True
        assert storage.exists(settings.storage_bucket, "resume/u/cv.pdf") is False

    def test_missing_object(self, tmp_path):
        storage = LocalStorageProvider(base_dir=str(tmp_path), public_base_url="http://test")
        assert file_service.remove_stored_object(storage, "resume/u/gone.pdf") is False
