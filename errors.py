"""Exception types shared across the sync pipeline."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for every failure raised by the sync pipeline."""


class FetchError(SyncError):
    """Remote data could not be obtained (network, timeout, bad status, empty body)."""


class ProfileFetchError(SyncError):
    """No usable profile data was obtained. The only error that aborts a run."""


class ParseError(SyncError):
    """Remote data was obtained but is not a well-formed DBLP person record."""


class WriteCollisionError(SyncError):
    """A target note path is occupied by a note for a different record."""


class MalformedNoteError(SyncError):
    """An existing note lacks the metadata block an operation relies on."""
