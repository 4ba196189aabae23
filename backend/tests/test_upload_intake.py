"""
Upload intake tests: limit checks, staging, promotion and discard.

No mail transport involved; files live under pytest's tmp_path.
"""

import io

import pytest
from fastapi import UploadFile

from app.errors import InvalidRequest, PayloadTooLarge
from app.services.attachment_store import AttachmentStore
from app.services.upload_intake import UploadIntake


def _upload(filename: str, content: bytes = b"x", report_size: bool = True) -> UploadFile:
    """Build an in-memory UploadFile the way the multipart parser would."""
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content) if report_size else None,
    )


@pytest.fixture()
def store(tmp_path):
    return AttachmentStore(tmp_path / "files")


@pytest.fixture()
def intake(tmp_path, store):
    return UploadIntake(staging_dir=tmp_path / "uploads", store=store, max_files=10, max_file_bytes=1024)


class TestCheckLimits:
    def test_exactly_ten_files_accepted(self, intake):
        intake.check_limits([_upload(f"f{i}.txt") for i in range(10)])

    def test_eleventh_file_rejected(self, intake):
        with pytest.raises(PayloadTooLarge) as exc_info:
            intake.check_limits([_upload(f"f{i}.txt") for i in range(11)])
        assert "Too many attachments" in exc_info.value.message

    def test_empty_file_parts_not_counted(self, intake):
        intake.check_limits([_upload(f"f{i}.txt") for i in range(10)] + [_upload("", b"")])

    def test_oversized_file_rejected(self, intake):
        with pytest.raises(PayloadTooLarge):
            intake.check_limits([_upload("big.bin", b"0" * 1025)])

    def test_file_at_limit_accepted(self, intake):
        intake.check_limits([_upload("edge.bin", b"0" * 1024)])


class TestStage:
    @pytest.mark.asyncio
    async def test_stage_writes_to_scratch_area_in_order(self, tmp_path, intake, store):
        staged = await intake.stage([_upload("a.txt", b"A"), _upload("b.txt", b"BB")])

        assert [s.filename for s in staged] == ["a.txt", "b.txt"]
        assert [s.size for s in staged] == [1, 2]
        for item in staged:
            assert item.path.parent == tmp_path / "uploads"
            assert item.path.name.endswith("-" + item.filename)
        assert staged[1].path.read_bytes() == b"BB"
        # Nothing reaches the store until promotion.
        assert store.list() == []

    @pytest.mark.asyncio
    async def test_same_name_twice_gets_distinct_staged_paths(self, intake):
        staged = await intake.stage([_upload("a.txt", b"1"), _upload("a.txt", b"2")])
        assert staged[0].path != staged[1].path

    @pytest.mark.asyncio
    async def test_unreported_oversize_caught_while_reading(self, tmp_path, intake):
        """A file whose size was not reported is still stopped at the limit."""
        files = [_upload("ok.txt", b"fine"), _upload("big.bin", b"0" * 2048, report_size=False)]

        with pytest.raises(PayloadTooLarge):
            await intake.stage(files)

        assert list((tmp_path / "uploads").iterdir()) == []

    @pytest.mark.asyncio
    async def test_client_path_is_reduced_to_basename(self, intake):
        staged = await intake.stage([_upload("C:\\docs\\q1.pdf")])
        assert staged[0].filename == "q1.pdf"

    @pytest.mark.asyncio
    async def test_unusable_upload_name_rejected(self, intake):
        with pytest.raises(InvalidRequest):
            await intake.stage([_upload("..")])

    @pytest.mark.asyncio
    async def test_empty_file_part_skipped(self, tmp_path, intake):
        """A form submitted with no file chosen sends one unnamed, empty part."""
        staged = await intake.stage([_upload("", b""), _upload("a.txt")])

        assert [s.filename for s in staged] == ["a.txt"]
        assert len(list((tmp_path / "uploads").iterdir())) == 1

    @pytest.mark.asyncio
    async def test_no_files(self, intake):
        assert await intake.stage([]) == []


class TestPromoteAndDiscard:
    @pytest.mark.asyncio
    async def test_promote_saves_new_and_keeps_existing(self, tmp_path, intake, store):
        existing = tmp_path / "files" / "dup.txt"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old")

        staged = await intake.stage([_upload("new.txt", b"n"), _upload("dup.txt", b"incoming")])
        saved = intake.promote(staged)

        assert saved == ["new.txt"]
        assert store.list() == ["dup.txt", "new.txt"]
        assert existing.read_bytes() == b"old"
        assert list((tmp_path / "uploads").iterdir()) == []

    @pytest.mark.asyncio
    async def test_discard_removes_staged_files(self, tmp_path, intake, store):
        staged = await intake.stage([_upload("a.txt"), _upload("b.txt")])
        staged[0].path.unlink()  # already gone is fine

        intake.discard(staged)

        assert list((tmp_path / "uploads").iterdir()) == []
        assert store.list() == []
