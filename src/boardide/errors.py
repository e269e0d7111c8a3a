"""
Error taxonomy shared by the document store, the share codec and the session
controller. Every failure a user can trigger derives from WorkspaceError so the
controller can turn it into a notification without crashing the session.
"""


class WorkspaceError(Exception):
    """Base class for recoverable workspace failures."""


class InvalidArgument(WorkspaceError):
    """Empty name, malformed patch or oversized content."""


class NotFound(WorkspaceError):
    """Operation on an unknown record id."""

    def __init__(self, file_id: str):
        super().__init__(f"File with ID {file_id} not found.")
        self.file_id = file_id


class CorruptedRecord(WorkspaceError):
    """Stored bytes for a record cannot be decoded."""

    def __init__(self, file_id: str, reason: str = ""):
        message = f"Stored data for file {file_id} is corrupted"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.file_id = file_id


class QuotaExceeded(WorkspaceError):
    """The persistence layer rejected a write for capacity reasons."""


class StorageWriteError(WorkspaceError):
    """Any other failure while writing to the persistence layer."""


class VersionLoadFailure(WorkspaceError):
    """The rendering library for a version could not be fetched or initialised."""

    def __init__(self, version: str, reason: str = ""):
        message = f"Failed to load board library {version}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.version = version


class EncodingFailure(WorkspaceError):
    """A share payload could not be serialized."""


class DecodingFailure(WorkspaceError):
    """A share token is malformed at some stage."""
