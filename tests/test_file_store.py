"""
Unit tests for the file store.

Uses a real temporary directory: the store is a thin layer over the file
system, so mocking ``open`` would test nothing.
"""

import io
import os
import re
from unittest.mock import patch

import pytest

from investor_intake.core.exceptions import StorageError, StorageErrorCode
from investor_intake.services import file_store as file_store_module
from investor_intake.services.file_store import (
    FileStore,
    generate_stored_name,
    sanitize_filename,
)

from .conftest import PDF_BYTES, PNG_BYTES, make_payload

STORED_NAME = re.compile(r"^\d{13}-[0-9a-z]{6}-(?P<name>.+)$")


class TestNaming:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("passport.pdf", "passport.pdf"),
            ("my résumé (1).pdf", "my_r_sum___1_.pdf"),
            ("../../etc/passwd", ".._.._etc_passwd"),
            ("ID-Card.v2.PNG", "ID-Card.v2.PNG"),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected

    def test_generated_name_scheme(self):
        name = generate_stored_name("scan 1.png", now_ms=1718000000000)
        assert re.fullmatch(r"1718000000000-[0-9a-z]{6}-scan_1\.png", name)

    def test_generated_names_differ(self):
        names = {generate_stored_name("a.pdf", now_ms=1) for _ in range(50)}
        assert len(names) > 1


class TestSaveAll:
    @pytest.mark.asyncio
    async def test_writes_every_file_in_order(self, tmp_path):
        store = FileStore(str(tmp_path / "uploads"))
        stored = await store.save_all(
            [
                make_payload("passport.pdf", PDF_BYTES),
                make_payload("selfie.png", PNG_BYTES, "image/png"),
            ]
        )

        assert [s.original_name for s in stored] == ["passport.pdf", "selfie.png"]
        assert [s.mime_type for s in stored] == ["application/pdf", "image/png"]
        assert [s.size for s in stored] == [len(PDF_BYTES), len(PNG_BYTES)]
        for s, content in zip(stored, (PDF_BYTES, PNG_BYTES)):
            assert os.path.dirname(s.stored_path) == str(tmp_path / "uploads")
            match = STORED_NAME.match(os.path.basename(s.stored_path))
            assert match and match.group("name") == s.original_name
            with open(s.stored_path, "rb") as fh:
                assert fh.read() == content

    @pytest.mark.asyncio
    async def test_creates_nested_directory(self, tmp_path):
        upload_dir = tmp_path / "a" / "b" / "uploads"
        await FileStore(str(upload_dir)).save_all([make_payload()])
        assert len(os.listdir(upload_dir)) == 1

    @pytest.mark.asyncio
    async def test_stream_content_copied_from_start(self, tmp_path):
        stream = io.BytesIO(PDF_BYTES)
        stream.seek(0, os.SEEK_END)
        payload = make_payload()
        payload.content = stream

        [stored] = await FileStore(str(tmp_path)).save_all([payload])
        with open(stored.stored_path, "rb") as fh:
            assert fh.read() == PDF_BYTES


class TestFailures:
    @pytest.mark.asyncio
    async def test_path_too_long_rejects_batch_before_directory(self, tmp_path):
        upload_dir = tmp_path / "uploads"
        store = FileStore(str(upload_dir), max_path_length=len(str(upload_dir)) + 40)

        with pytest.raises(StorageError) as exc_info:
            await store.save_all(
                [make_payload("short.pdf"), make_payload("x" * 60 + ".pdf")]
            )

        err = exc_info.value
        assert err.code == StorageErrorCode.PATH_TOO_LONG
        assert err.file_name == "x" * 60 + ".pdf"
        assert "results in a path that is too long" in err.message
        assert not upload_dir.exists()

    @pytest.mark.asyncio
    async def test_directory_unavailable(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = FileStore(str(blocker / "uploads"))

        with pytest.raises(StorageError) as exc_info:
            await store.save_all([make_payload()])

        assert exc_info.value.code == StorageErrorCode.DIRECTORY_UNAVAILABLE
        assert exc_info.value.message == "Failed to store uploaded files. Please try again later."

    @pytest.mark.asyncio
    async def test_write_failure_removes_files_from_batch(self, tmp_path):
        real_write = file_store_module._write_file
        calls = []

        def flaky_write(path, content):
            calls.append(path)
            if len(calls) == 2:
                raise OSError(28, "No space left on device")
            real_write(path, content)

        with patch.object(file_store_module, "_write_file", side_effect=flaky_write):
            with pytest.raises(StorageError) as exc_info:
                await FileStore(str(tmp_path)).save_all(
                    [make_payload("one.pdf"), make_payload("two.pdf"), make_payload("three.pdf")]
                )

        assert exc_info.value.code == StorageErrorCode.WRITE_FAILED
        assert exc_info.value.file_name == "two.pdf"
        assert len(calls) == 2
        assert os.listdir(tmp_path) == []

    @pytest.mark.asyncio
    async def test_existing_files_untouched_on_failure(self, tmp_path):
        (tmp_path / "someone-else.pdf").write_bytes(b"keep")

        with patch.object(file_store_module, "_write_file", side_effect=OSError("boom")):
            with pytest.raises(StorageError):
                await FileStore(str(tmp_path)).save_all([make_payload()])

        assert os.listdir(tmp_path) == ["someone-else.pdf"]


class TestDirectoryStatus:
    def test_missing_directory(self, tmp_path):
        status = FileStore(str(tmp_path / "missing")).directory_status()
        assert status["exists"] is False
        assert status["writable"] is False

    def test_writable_directory(self, tmp_path):
        status = FileStore(str(tmp_path)).directory_status()
        assert status == {"path": str(tmp_path), "exists": True, "writable": True}
