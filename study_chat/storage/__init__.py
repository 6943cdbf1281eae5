"""Storage module."""

from .storage import IChatStore, Storage

__all__ = ["IChatStore", "Storage"]
