"""Download log processing: parse, fan out to sinks, and track tickets."""

from .parser import count_download_events, parse_download_counts
from .schemas import ApplyResult, JobOutcome, LogLocation, LogTicket, VersionRef

__all__ = [
    "ApplyResult",
    "JobOutcome",
    "LogLocation",
    "LogTicket",
    "VersionRef",
    "count_download_events",
    "parse_download_counts",
]
