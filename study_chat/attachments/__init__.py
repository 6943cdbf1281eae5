"""Attachments module."""

from .encoder import (
    AttachmentEncoder,
    EncodedBatch,
    FileSource,
    IAttachmentEncoder,
    InMemoryFile,
    LocalFile,
    guess_mime_type,
    to_data_uri,
)

__all__ = [
    "AttachmentEncoder",
    "EncodedBatch",
    "FileSource",
    "IAttachmentEncoder",
    "InMemoryFile",
    "LocalFile",
    "guess_mime_type",
    "to_data_uri",
]
