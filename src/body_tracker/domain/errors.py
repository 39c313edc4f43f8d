"""Error taxonomy for the measurement data engine."""


class BodyTrackerError(Exception):
    """Base class for errors raised by the tracker core."""


class ValidationFailure(BodyTrackerError):
    """Input rejected at the boundary before reaching the repository."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class EntryNotFound(BodyTrackerError):
    """An operation referenced an entry id that is not stored."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Entry not found: {entry_id}")
        self.entry_id = entry_id


class PersistenceFailure(BodyTrackerError):
    """The underlying store is unavailable or rejected a write."""


class InvalidImportFormat(BodyTrackerError):
    """An import document is missing its entries sequence."""
