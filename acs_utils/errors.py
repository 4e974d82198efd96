"""
Error taxonomy shared by every loader.

Each error carries an ``ErrorKind`` so callers can record a failure in a
load result without inspecting exception types.
"""

from enum import Enum


class ErrorKind(Enum):
    FORMAT = "format"
    METADATA = "metadata"
    LOAD = "load"
    DUPLICATE_KEY = "duplicate_key"


class AcsImportError(Exception):
    """Base class for import failures."""
    kind = ErrorKind.LOAD


class FormatError(AcsImportError):
    """A file name or record could not be decoded."""
    kind = ErrorKind.FORMAT


class MetadataInconsistencyError(AcsImportError):
    """Lookup metadata references a table it does not describe."""
    kind = ErrorKind.METADATA


class LoadError(AcsImportError):
    """The persistence layer rejected a write."""
    kind = ErrorKind.LOAD


class DuplicateKeyError(LoadError):
    """A row collided with an existing primary or unique key."""
    kind = ErrorKind.DUPLICATE_KEY
