"""
Error taxonomy for browser data import.

Fatal-to-source errors abort one source and are reported to the caller as
``SourceError`` entries. Contained errors (``TruncatedInput``,
``MalformedRecord``) only ever skip the unit being decoded.
"""
from typing import Optional


class BrowserImportError(Exception):
    """Base class for all importer errors."""

    fatal = True

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} ({self.path})"
        return self.message


class InvalidSignature(BrowserImportError):
    """The buffer does not start with the expected file signature."""


class SourceUnavailable(BrowserImportError):
    """The source file is missing or cannot be read."""


class DocumentParseError(BrowserImportError):
    """A JSON or property-list document could not be parsed."""


class QueryFailed(BrowserImportError):
    """A bookmark database could not be opened or queried."""


class UnsupportedBrowser(BrowserImportError):
    """The requested source kind is not known."""


class ImportCancelled(BrowserImportError):
    """The import was cancelled before the source finished."""


class TruncatedInput(BrowserImportError):
    """A read would go past the end of the available bytes."""

    fatal = False


class MalformedRecord(BrowserImportError):
    """A single record is unusable and is skipped."""

    fatal = False
