"""
File store — writes validated uploads into the flat upload directory.

Naming scheme::

    <epoch-ms>-<6 random base36 chars>-<sanitized original name>

Sanitization replaces every character outside ``[A-Za-z0-9.-]`` with ``_``,
which also strips any path component a client might smuggle in the name.
The timestamp plus random token makes names unique without any locking;
files are opened with exclusive create so an improbable collision fails
instead of overwriting.

Blocking file-system calls run in the default thread-pool executor so the
event loop keeps serving other requests while large documents are written.
"""

import asyncio
import logging
import os
import re
import secrets
import shutil
import string
import time
from dataclasses import dataclass
from functools import partial
from typing import BinaryIO, List, Optional, Sequence, Union

from investor_intake.core.config import settings
from investor_intake.core.exceptions import StorageError, StorageErrorCode
from investor_intake.validation.files import FileDescriptor
from investor_intake.validation.rules import MAX_STORED_PATH_LENGTH, path_too_long_message

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")
_BASE36 = string.digits + string.ascii_lowercase
_TOKEN_LENGTH = 6
_COPY_CHUNK_SIZE = 64 * 1024


@dataclass
class FilePayload:
    """A validated upload: its declared metadata plus bytes or a readable stream."""

    descriptor: FileDescriptor
    content: Union[bytes, BinaryIO]


@dataclass(frozen=True)
class StoredFile:
    stored_path: str
    original_name: str
    size: int
    mime_type: str


def sanitize_filename(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


def generate_stored_name(original_name: str, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    token = "".join(secrets.choice(_BASE36) for _ in range(_TOKEN_LENGTH))
    return f"{now_ms}-{token}-{sanitize_filename(original_name)}"


def _write_file(path: str, content: Union[bytes, BinaryIO]) -> None:
    """Create ``path`` exclusively, write ``content``, and fsync before returning."""
    with open(path, "xb") as out:
        if isinstance(content, (bytes, bytearray)):
            out.write(content)
        else:
            if content.seekable():
                content.seek(0)
            shutil.copyfileobj(content, out, _COPY_CHUNK_SIZE)
        out.flush()
        os.fsync(out.fileno())


class FileStore:
    """
    Saves batches of uploads under ``upload_dir``.

    A batch is all-or-nothing on disk: if any write fails, the files this
    batch already wrote are removed before the error is raised.
    """

    def __init__(self, upload_dir: str, max_path_length: int = MAX_STORED_PATH_LENGTH):
        self.upload_dir = upload_dir
        self.max_path_length = max_path_length

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    def _plan(self, payloads: Sequence[FilePayload]) -> List[str]:
        """Assign a stored path to every payload, rejecting the batch on any over-long path."""
        paths = []
        for payload in payloads:
            name = generate_stored_name(payload.descriptor.name)
            path = os.path.join(self.upload_dir, name)
            if len(path) > self.max_path_length:
                raise StorageError(
                    StorageErrorCode.PATH_TOO_LONG,
                    detail=f"stored path of {len(path)} chars exceeds {self.max_path_length}",
                    message=path_too_long_message(payload.descriptor.name),
                    file_name=payload.descriptor.name,
                )
            paths.append(path)
        return paths

    async def _ensure_directory(self) -> None:
        try:
            await self._run(partial(os.makedirs, exist_ok=True), self.upload_dir)
        except OSError as exc:
            raise StorageError(
                StorageErrorCode.DIRECTORY_UNAVAILABLE,
                detail=f"cannot create upload directory {self.upload_dir!r}: {exc}",
            ) from exc

    async def _discard(self, paths: Sequence[str]) -> None:
        for path in paths:
            try:
                await self._run(os.remove, path)
            except OSError:
                logger.warning("Could not remove partially stored file %s", path, exc_info=True)

    async def save_all(self, payloads: Sequence[FilePayload]) -> List[StoredFile]:
        """
        Write every payload in order and return one :class:`StoredFile` each.

        Raises :class:`StorageError` with ``PATH_TOO_LONG`` (nothing created),
        ``DIRECTORY_UNAVAILABLE`` (nothing written) or ``WRITE_FAILED``
        (this batch's files removed again).
        """
        paths = self._plan(payloads)
        await self._ensure_directory()

        stored: List[StoredFile] = []
        written: List[str] = []
        for payload, path in zip(payloads, paths):
            try:
                await self._run(_write_file, path, payload.content)
            except OSError as exc:
                # A partially written target is ours to remove; a name
                # collision (FileExistsError) belongs to another request.
                partial_target = not isinstance(exc, FileExistsError) and os.path.exists(path)
                await self._discard(written + ([path] if partial_target else []))
                raise StorageError(
                    StorageErrorCode.WRITE_FAILED,
                    detail=f"writing {payload.descriptor.name!r} to {path!r} failed: {exc}",
                    file_name=payload.descriptor.name,
                ) from exc
            written.append(path)
            stored.append(
                StoredFile(
                    stored_path=path,
                    original_name=payload.descriptor.name,
                    size=payload.descriptor.size,
                    mime_type=payload.descriptor.mime_type,
                )
            )

        logger.debug("Stored %d file(s) under %s", len(stored), self.upload_dir)
        return stored

    def directory_status(self) -> dict:
        """Existence and writability of the upload directory, for the health check."""
        exists = os.path.isdir(self.upload_dir)
        return {
            "path": self.upload_dir,
            "exists": exists,
            "writable": exists and os.access(self.upload_dir, os.W_OK),
        }


def get_file_store() -> FileStore:
    """FastAPI dependency returning a store bound to the configured directory."""
    return FileStore(settings.UPLOAD_DIR)
