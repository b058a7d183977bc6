"""
Exception types for drama-watch.

Fatal classes (configuration, ledger write) abort a run; the others are
recovered where they are raised and only logged.
"""

from typing import Any, Dict, Optional


class DramaWatchError(Exception):
    """Base exception for all drama-watch errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DramaWatchError):
    """Missing or malformed configuration. Fatal."""

    def __init__(self, message: str, config_path: Optional[str] = None, problems: Optional[list] = None):
        details: Dict[str, Any] = {}
        if config_path:
            details["config_path"] = config_path
        if problems:
            details["problems"] = list(problems)
        super().__init__(message, details)
        self.problems = list(problems or [])


class SourceFetchError(DramaWatchError):
    """Network, HTTP or JSON failure for a single source."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        details: Dict[str, Any] = {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class ExtractionError(DramaWatchError):
    """Malformed extraction path."""

    def __init__(self, message: str, path: Optional[str] = None, position: Optional[int] = None):
        details: Dict[str, Any] = {}
        if path is not None:
            details["path"] = path
        if position is not None:
            details["position"] = position
        super().__init__(message, details)
        self.path = path


class LedgerReadError(DramaWatchError):
    """An existing ledger file could not be read."""

    def __init__(self, message: str, ledger_path: Optional[str] = None):
        super().__init__(message, {"ledger_path": ledger_path} if ledger_path else None)
        self.ledger_path = ledger_path


class LedgerWriteError(DramaWatchError):
    """The ledger could not be updated. Fatal."""

    def __init__(self, message: str, ledger_path: Optional[str] = None):
        super().__init__(message, {"ledger_path": ledger_path} if ledger_path else None)
        self.ledger_path = ledger_path


class NotificationError(DramaWatchError):
    """Delivery to one notification destination failed."""

    def __init__(self, message: str, destination: Optional[str] = None):
        super().__init__(message, {"destination": destination} if destination else None)
        self.destination = destination


__all__ = [
    "DramaWatchError",
    "ConfigurationError",
    "SourceFetchError",
    "ExtractionError",
    "LedgerReadError",
    "LedgerWriteError",
    "NotificationError",
]
