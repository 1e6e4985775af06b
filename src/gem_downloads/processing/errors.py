"""Custom exceptions for download log processing failures."""


class LogProcessingError(Exception):
    """Base exception for download log processing errors."""


class LogFileNotFoundError(LogProcessingError):
    """Raised when a ticket's log file is absent at its described location."""


class LogFetchError(LogProcessingError):
    """Raised when a log file exists but its bytes cannot be fetched from the backend."""


class ParseError(LogProcessingError):
    """Raised when a log body is structurally unreadable, e.g. a corrupt gzip envelope."""


class CatalogLookupError(LogProcessingError):
    """Raised when the version catalog cannot be queried."""


class SinkWriteError(LogProcessingError):
    """Raised when applying counts to Totals, the search signal, or a rollup fails."""


class TicketNotFoundError(LogProcessingError):
    """Raised when no log ticket matches the requested identity."""


class TicketAlreadyProcessedError(LogProcessingError):
    """Raised when a ticket was marked processed by another run before this one could commit."""
