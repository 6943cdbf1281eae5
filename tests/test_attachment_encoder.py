"""Tests for AttachmentEncoder."""

import asyncio
import base64
from dataclasses import dataclass, field

import pytest

from study_chat.attachments import (
    AttachmentEncoder,
    InMemoryFile,
    LocalFile,
    guess_mime_type,
    to_data_uri,
)
from study_chat.errors import EncodingFailure, ErrorKind

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@dataclass
class TrackingFile:
    """File double that records reads and can fail or block."""

    name: str
    mime_type: str = ""
    size: int = 0
    data: bytes = b""
    error: Exception | None = None
    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event | None = None
    reads: int = 0

    async def read(self) -> bytes:
        self.reads += 1
        self.started.set()
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def encoder():
    return AttachmentEncoder()


class TestEncode:
    """Tests for single file encoding."""

    async def test_image_is_inlined_as_data_uri(self, encoder):
        """Test that image bytes become a base64 data URI."""
        attachment = await encoder.encode(InMemoryFile("diagram.png", PNG_BYTES, "image/png"))

        assert attachment.name == "diagram.png"
        assert attachment.mime_type == "image/png"
        assert attachment.size_bytes == len(PNG_BYTES)
        assert attachment.inline_data == (
            "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
        )
        assert attachment.is_image

    async def test_non_image_is_never_read(self, encoder):
        """Test that other files keep metadata only."""
        file = TrackingFile("notes.pdf", "application/pdf", size=2048)
        attachment = await encoder.encode(file)

        assert file.reads == 0
        assert attachment.inline_data is None
        assert attachment.size_bytes == 2048
        assert not attachment.is_image

    async def test_mime_type_guessed_from_name(self, encoder):
        """Test that a missing mime type is derived from the file name."""
        attachment = await encoder.encode(InMemoryFile("photo.jpg", b"jpeg-bytes"))
        assert attachment.mime_type == "image/jpeg"
        assert attachment.inline_data.startswith("data:image/jpeg;base64,")

    async def test_read_failure_raises_encoding_failure(self, encoder):
        """Test that an unreadable image surfaces as EncodingFailure."""
        file = TrackingFile("broken.png", "image/png", error=OSError("disk gone"))

        with pytest.raises(EncodingFailure) as exc_info:
            await encoder.encode(file)

        assert exc_info.value.file_name == "broken.png"
        assert exc_info.value.kind == ErrorKind.ENCODING
        assert isinstance(exc_info.value.__cause__, OSError)

    async def test_ids_are_unique(self, encoder):
        """Test that every attachment gets its own id."""
        a = await encoder.encode(InMemoryFile("a.txt", b"a"))
        b = await encoder.encode(InMemoryFile("a.txt", b"a"))
        assert a.id != b.id


class TestEncodeBatch:
    """Tests for concurrent batch encoding."""

    async def test_failed_file_is_dropped_and_order_kept(self, encoder):
        """Test that one failing file of three leaves the other two in order."""
        files = [
            InMemoryFile("first.png", PNG_BYTES, "image/png"),
            TrackingFile("second.png", "image/png", error=OSError("unreadable")),
            InMemoryFile("third.txt", b"text", "text/plain"),
        ]
        batch = await encoder.encode_batch(files)

        assert [a.name for a in batch.attachments] == ["first.png", "third.txt"]
        assert [f.file_name for f in batch.failures] == ["second.png"]
        assert not batch.ok

    async def test_reads_run_concurrently(self, encoder):
        """Test that every read starts before any of them completes."""
        release = asyncio.Event()
        files = [
            TrackingFile(f"img{i}.png", "image/png", data=PNG_BYTES, release=release)
            for i in range(3)
        ]

        task = asyncio.create_task(encoder.encode_batch(files))
        await asyncio.wait_for(
            asyncio.gather(*(f.started.wait() for f in files)), timeout=1.0
        )
        release.set()
        batch = await asyncio.wait_for(task, timeout=1.0)

        assert batch.ok
        assert [a.name for a in batch.attachments] == ["img0.png", "img1.png", "img2.png"]

    async def test_empty_batch(self, encoder):
        """Test that no files produce an empty successful batch."""
        batch = await encoder.encode_batch([])
        assert batch.attachments == []
        assert batch.ok

    async def test_unexpected_error_propagates(self, encoder):
        """Test that errors other than read failures are not swallowed."""

        class BadFile:
            name = "bad.png"
            size = 0

            @property
            def mime_type(self):
                raise RuntimeError("broken source")

            async def read(self):
                return b""

        with pytest.raises(RuntimeError, match="broken source"):
            await encoder.encode_batch([BadFile()])


class TestLocalFile:
    """Tests for the filesystem-backed file source."""

    async def test_reads_file_from_disk(self, tmp_path, encoder):
        """Test that a local image is sized and inlined."""
        path = tmp_path / "chart.png"
        path.write_bytes(PNG_BYTES)

        file = LocalFile(path)
        assert file.name == "chart.png"
        assert file.mime_type == "image/png"
        assert file.size == len(PNG_BYTES)

        attachment = await encoder.encode(file)
        assert attachment.inline_data == to_data_uri("image/png", PNG_BYTES)


def test_guess_mime_type_fallback():
    """Test that unknown extensions fall back to octet-stream."""
    assert guess_mime_type("archive.unknownext") == "application/octet-stream"
    assert guess_mime_type("notes.txt") == "text/plain"
