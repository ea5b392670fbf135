"""
Error taxonomy for the LifeLog engine.

Stage failures are caught at the pipeline stage boundary; manual
endpoints let them propagate so the caller sees the reason.
"""


class LifeLogError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(LifeLogError):
    """A provider needed for the operation is not configured."""


class ProviderError(LifeLogError):
    """An external provider call failed."""


class MalformedResponseError(ProviderError):
    """A provider answered, but not in the expected shape."""


class EntryNotFoundError(LifeLogError):
    """No entry exists with the requested id."""

    def __init__(self, entry_id):
        super().__init__(f"Entry not found: {entry_id}")
        self.entry_id = entry_id


class InvalidInputError(LifeLogError):
    """Required input is missing or malformed. Raised before any mutation."""


class EmptyWindowError(LifeLogError):
    """No entries fall inside the requested time window."""


class InvalidObserverError(LifeLogError):
    """An observer failed registration checks."""
