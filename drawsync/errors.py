from __future__ import annotations


class DrawSyncError(RuntimeError):
    """Base class for fatal sync failures."""


class ConfigurationError(DrawSyncError):
    """Raised when a history URL or another setting is missing or invalid."""


class FetchError(DrawSyncError):
    """Raised when fetching a remote page or archive fails."""


class DiscoveryError(DrawSyncError):
    """Raised when the history page cannot yield an archive list."""


class NoArchivesError(DrawSyncError):
    """Raised when discovery returns no archive for a game."""


class NoDrawsError(DrawSyncError):
    """Raised when no valid draw survives parsing across all archives."""


class SyncCancelled(Exception):
    """Raised at a suspension point once the cancellation signal is set."""


def check_cancelled(cancel) -> None:
    """Raise :class:`SyncCancelled` if ``cancel`` (anything with ``is_set()``) is set."""

    if cancel is not None and cancel.is_set():
        raise SyncCancelled("sync cancelled")


__all__ = [
    "DrawSyncError",
    "ConfigurationError",
    "FetchError",
    "DiscoveryError",
    "NoArchivesError",
    "NoDrawsError",
    "SyncCancelled",
    "check_cancelled",
]
