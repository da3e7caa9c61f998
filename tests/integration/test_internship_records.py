"""
Integration tests for InternshipRecordsService

Tests progress logs and attachment uploads.
"""
import os
from datetime import date

import pytest

from internhub.errors import ForbiddenError, ValidationError
from internhub.models.user import Role
from internhub.services import internship_records
from internhub.services.internship_records import get_records_service, read_upload, validate_upload

pytestmark = pytest.mark.integration

PDF_BYTES = b"%PDF-1.4 weekly report"


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Fresh upload directory per test"""
    directory = str(tmp_path / "uploads")
    monkeypatch.setattr(internship_records, "UPLOAD_DIR", directory)
    return directory


class ChunkedUpload:
    """Minimal stand-in for an uploaded file read in chunks"""

    def __init__(self, data):
        self.data = data
        self.reads = 0

    async def read(self, size=-1):
        self.reads += 1
        chunk, self.data = (self.data, b"") if size < 0 else (self.data[:size], self.data[size:])
        return chunk


class TestLogs:
    """Intern-written progress logs"""

    async def test_submit_and_list(self, make_internship, campus):
        internship = await make_internship()
        service = get_records_service()

        await service.submit_log(internship.id, campus.students[0], Role.STUDENT, "Set up CI", date(2026, 1, 5))
        log = await service.submit_log(
            internship.id, campus.students[0], Role.STUDENT, "  Wrote API tests  ", date(2026, 1, 12)
        )
        assert log.id is not None
        assert log.content == "Wrote API tests"

        for user_id, role in [(campus.teacher, Role.TEACHER), (campus.enterprise, Role.ENTERPRISE)]:
            result = await service.list_logs(internship.id, user_id, role)
            assert result["total"] == 2
            assert [entry.log_date for entry in result["logs"]] == [date(2026, 1, 12), date(2026, 1, 5)]

    async def test_empty_content_rejected(self, make_internship, campus):
        internship = await make_internship()
        with pytest.raises(ValidationError):
            await get_records_service().submit_log(internship.id, campus.students[0], Role.STUDENT, "   ", date.today())

    async def test_missing_date_rejected(self, make_internship, campus):
        internship = await make_internship()
        with pytest.raises(ValidationError):
            await get_records_service().submit_log(internship.id, campus.students[0], Role.STUDENT, "Notes", None)

    async def test_only_the_intern_writes(self, make_internship, campus):
        internship = await make_internship()
        service = get_records_service()

        with pytest.raises(ForbiddenError):
            await service.submit_log(internship.id, campus.teacher, Role.TEACHER, "Looks good", date.today())
        with pytest.raises(ForbiddenError):
            await service.submit_log(internship.id, campus.students[1], Role.STUDENT, "Not mine", date.today())

    async def test_outsider_cannot_read(self, make_internship, campus):
        internship = await make_internship()
        with pytest.raises(ForbiddenError):
            await get_records_service().list_logs(internship.id, campus.other_enterprise, Role.ENTERPRISE)


class TestUploads:
    """Attachment validation and storage"""

    async def test_pdf_upload_stored(self, make_internship, campus):
        internship = await make_internship()
        service = get_records_service()

        record = await service.upload_file(
            internship.id, campus.students[0], Role.STUDENT, "report.pdf", "application/pdf", PDF_BYTES
        )

        assert record.file_name == "report.pdf"
        assert record.file_size == len(PDF_BYTES)
        assert record.file_path.endswith(".pdf")
        with open(record.file_path, "rb") as handle:
            assert handle.read() == PDF_BYTES

        listed = await service.list_files(internship.id, campus.teacher, Role.TEACHER)
        assert [item.id for item in listed["files"]] == [record.id]

    async def test_unsupported_type_rejected(self, make_internship, campus):
        internship = await make_internship()
        with pytest.raises(ValidationError):
            await get_records_service().upload_file(
                internship.id, campus.students[0], Role.STUDENT, "tool.exe", "application/octet-stream", b"MZ"
            )

    async def test_oversized_file_rejected(self, make_internship, campus, monkeypatch):
        monkeypatch.setattr(internship_records, "MAX_UPLOAD_BYTES", 8)
        internship = await make_internship()

        with pytest.raises(ValidationError):
            await get_records_service().upload_file(
                internship.id, campus.students[0], Role.STUDENT, "report.pdf", "application/pdf", PDF_BYTES
            )

    async def test_forbidden_upload_leaves_no_file(self, make_internship, campus, upload_dir):
        internship = await make_internship()
        directory = os.path.join(upload_dir, str(internship.id))

        with pytest.raises(ForbiddenError):
            await get_records_service().upload_file(
                internship.id, campus.students[1], Role.STUDENT, "report.pdf", "application/pdf", PDF_BYTES
            )

        assert not os.path.exists(directory)

    async def test_failed_record_removes_stored_file(self, make_internship, campus, monkeypatch, upload_dir):
        internship = await make_internship()

        def broken_record(**values):
            raise RuntimeError("record could not be built")

        monkeypatch.setattr(internship_records, "InternshipFile", broken_record)

        with pytest.raises(RuntimeError):
            await get_records_service().upload_file(
                internship.id, campus.students[0], Role.STUDENT, "report.pdf", "application/pdf", PDF_BYTES
            )

        assert os.listdir(os.path.join(upload_dir, str(internship.id))) == []


class TestValidateUpload:
    """validate_upload without storage"""

    def test_extension_is_normalised(self):
        assert validate_upload("Photo.PNG", "image/png", 10) == ".png"

    def test_known_mime_type_accepted_without_extension(self):
        assert validate_upload("scan", "application/pdf", 10) == ""

    @pytest.mark.parametrize("name, size", [(None, 10), ("", 10), ("report.pdf", 0)])
    def test_missing_or_empty(self, name, size):
        with pytest.raises(ValidationError):
            validate_upload(name, "application/pdf", size)


class TestReadUpload:
    """Bounded chunked reads of incoming files"""

    async def test_reads_whole_file(self):
        upload = ChunkedUpload(PDF_BYTES)
        assert await read_upload(upload, chunk_size=4) == PDF_BYTES

    async def test_stops_once_limit_exceeded(self, monkeypatch):
        monkeypatch.setattr(internship_records, "MAX_UPLOAD_BYTES", 8)
        upload = ChunkedUpload(b"x" * 1000)

        with pytest.raises(ValidationError):
            await read_upload(upload, chunk_size=4)
        assert upload.reads == 3
