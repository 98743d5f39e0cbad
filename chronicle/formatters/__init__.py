"""Output formatters."""
from .console import ConsoleFormatter
from .json_out import JSONFormatter

__all__ = ["ConsoleFormatter", "JSONFormatter"]
