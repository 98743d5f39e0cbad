"""Exception types for Chronicle."""


class ChronicleError(Exception):
    """Base class for all Chronicle errors."""


class StoreError(ChronicleError):
    """A read or write against the article store failed."""


class HistoryUnavailableError(StoreError):
    """The recent-history window could not be loaded.

    Classification cannot proceed without history, so callers must retry or
    skip the batch rather than treat every candidate as novel.
    """


class ConfigError(ChronicleError, ValueError):
    """A configuration value is missing or out of range."""
