"""Error types raised while discovering, extracting and reporting packages."""
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NOT_FOUND = 'not-found'
    IO = 'io'
    PARSE = 'parse'
    UNSUPPORTED_SYNTAX = 'unsupported-syntax'
    SCHEMA_VERSION = 'schema-version'
    EXTRACTOR_NOT_FOUND = 'extractor-not-found'
    NO_PACKAGES_FOUND = 'no-packages-found'
    UNSUPPORTED_FORMAT = 'unsupported-format'

    def __str__(self) -> str:
        return self.value


class LockbomError(Exception):
    """Base class of every error raised by lockbom."""
    kind: ErrorKind = ErrorKind.IO


class NotFoundError(LockbomError, FileNotFoundError):
    """A requested file or sibling manifest does not exist."""
    kind = ErrorKind.NOT_FOUND


class FileIOError(LockbomError):
    kind = ErrorKind.IO


class ParseError(LockbomError):
    """The file is structurally invalid for the selected extractor."""
    kind = ErrorKind.PARSE


class UnsupportedSyntaxError(ParseError):
    """The file is valid but uses a construct that is not interpreted."""
    kind = ErrorKind.UNSUPPORTED_SYNTAX


class SchemaVersionError(ParseError):
    kind = ErrorKind.SCHEMA_VERSION


class IncompatibleFormatError(ParseError):
    """The file is not in a format the extractor can read."""


class ExtractorNotFoundError(LockbomError):
    kind = ErrorKind.EXTRACTOR_NOT_FOUND


class NoPackagesFoundError(LockbomError):
    """Nothing was recovered; `results` still holds what the scan produced."""
    kind = ErrorKind.NO_PACKAGES_FOUND

    def __init__(self, message: str = 'no packages found in scan', results: Any = None):
        super().__init__(message)
        self.results = results


class UnsupportedFormatError(LockbomError, ValueError):
    kind = ErrorKind.UNSUPPORTED_FORMAT


class UnsupportedVerbosityError(UnsupportedFormatError):
    pass
