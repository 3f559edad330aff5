"""Exception types shared across the dictionary store."""

from __future__ import annotations

from typing import Any


class JpdictError(Exception):
    """Base class for dictionary errors."""


class FormatError(JpdictError):
    """Index or chunk bytes could not be decoded, or would not fit the format."""


class InvalidEntryError(JpdictError):
    """An upstream record cannot be turned into a dictionary entry."""


class UnknownPartOfSpeech(InvalidEntryError):
    """A part-of-speech tag matched no known category."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"Unknown part of speech: {tag!r}")
        self.tag = tag


class DuplicateSourceError(JpdictError):
    """An entry with the same source was already written."""

    def __init__(self, source: Any) -> None:
        super().__init__(f"Duplicate entry source: {source}")
        self.source = source


class WriterClosedError(JpdictError):
    """The writer was already finished."""


__all__ = [
    "JpdictError",
    "FormatError",
    "InvalidEntryError",
    "UnknownPartOfSpeech",
    "DuplicateSourceError",
    "WriterClosedError",
]
