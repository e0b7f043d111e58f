"""Errors raised by the object note database."""

from __future__ import annotations

from pathlib import Path


class NotesDbError(Exception):
    """Base class for object note database failures."""


class StorageError(NotesDbError):
    """The backing file could not be opened, read or written."""

    def __init__(self, message: str, path: Path | None = None, error: OSError | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.error = error


class CorruptFormatError(NotesDbError):
    """The persisted document did not parse, or its root is not an element."""


class InvalidTextError(NotesDbError, ValueError):
    """A name or comment holds characters an XML document cannot carry."""
