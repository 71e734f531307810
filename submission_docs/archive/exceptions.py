class ArchiveError(Exception):
    """Base exception for archive streaming errors."""


class EntryError(ArchiveError):
    """Raised when an entry cannot be written to the archive sink."""


class ArchiveCancelledError(EntryError):
    """Raised when the archive was cancelled while entries were being written."""


class FinalizeError(ArchiveError):
    """Raised when the archive trailer cannot be written."""
