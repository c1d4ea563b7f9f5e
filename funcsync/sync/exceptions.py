"""Exceptions raised while synchronizing annotated functions."""

from typing import Optional


class SyncError(Exception):
    """Base class for synchronization failures."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ParseFailure(SyncError):
    """Source text could not be decoded or parsed into a syntax tree."""


class PersistFailure(SyncError):
    """A rewritten file could not be written back to storage."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(path, f"failed to write file: {cause}")
        self.cause = cause


class BuildError(SyncError):
    """Build step failure for a single resource.

    Wraps the underlying error so the driver can record it and carry on
    with the remaining resources of the run.
    """

    def __init__(self, path: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(path, message)
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
        }
