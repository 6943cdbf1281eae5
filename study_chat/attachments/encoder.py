"""Attachment encoding for user-supplied files."""

import asyncio
import base64
import mimetypes
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from ..errors import EncodingFailure
from ..logging_config import get_logger
from ..models import Attachment

logger = get_logger(__name__)


class FileSource(Protocol):
    """A user-provided file: declared metadata plus lazily read bytes."""

    name: str
    mime_type: str
    size: int

    async def read(self) -> bytes:
        """Read the full file content."""
        ...


@dataclass
class InMemoryFile:
    """File whose bytes are already in memory (e.g. an upload body)."""

    name: str
    data: bytes
    mime_type: str = ""

    @property
    def size(self) -> int:
        return len(self.data)

    async def read(self) -> bytes:
        return self.data


class LocalFile:
    """File on the local filesystem, read off the event loop."""

    def __init__(self, path: str | Path, mime_type: str | None = None):
        self._path = Path(path)
        self.name = self._path.name
        self.mime_type = mime_type or guess_mime_type(self.name)
        self.size = self._path.stat().st_size

    async def read(self) -> bytes:
        return await asyncio.to_thread(self._path.read_bytes)


@dataclass
class EncodedBatch:
    """Result of encoding several files: successes in input order plus failures."""

    attachments: list[Attachment] = field(default_factory=list)
    failures: list[EncodingFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def guess_mime_type(name: str) -> str:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or "application/octet-stream"


def to_data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class IAttachmentEncoder(Protocol):
    """Converts user files into Attachment records."""

    async def encode(self, file: FileSource) -> Attachment:
        """Encode one file. Raises EncodingFailure if it cannot be read."""
        ...

    async def encode_batch(self, files: Sequence[FileSource]) -> EncodedBatch:
        """Encode files concurrently, dropping the ones that fail."""
        ...


class AttachmentEncoder:
    """Inlines images as data URIs; other files travel as metadata only."""

    async def encode(self, file: FileSource) -> Attachment:
        mime_type = file.mime_type or guess_mime_type(file.name)

        inline_data = None
        size = file.size
        if mime_type.startswith("image/"):
            try:
                data = await file.read()
            except Exception as e:
                raise EncodingFailure(file.name, f"Failed to read {file.name}: {e}") from e
            inline_data = to_data_uri(mime_type, data)
            size = len(data)

        return Attachment(
            id=str(uuid.uuid4()),
            name=file.name,
            mime_type=mime_type,
            size_bytes=size,
            inline_data=inline_data,
        )

    async def encode_batch(self, files: Sequence[FileSource]) -> EncodedBatch:
        results = await asyncio.gather(
            *[self.encode(file) for file in files],
            return_exceptions=True,
        )

        batch = EncodedBatch()
        for file, result in zip(files, results):
            if isinstance(result, EncodingFailure):
                logger.warning("Dropping attachment %s: %s", file.name, result.message)
                batch.failures.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                batch.attachments.append(result)

        return batch
