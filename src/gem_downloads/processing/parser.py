"""Parsing helpers for Fastly download logs."""

from __future__ import annotations

import gzip
import re
import zlib
from urllib.parse import urlsplit
from collections import defaultdict
from datetime import UTC, datetime

from .errors import ParseError
from .schemas import RawCount

GZIP_MAGIC = b"\x1f\x8b"

# <134>2015-11-30T21:00:00Z cache-dfw1828 rubygems-downloads[1234]: 203.0.113.7 "-" "GET /gems/x-1.0.gem HTTP/1.1" 200 ...
LOG_LINE_PATTERN = re.compile(
    r"^<\d+>(?P<timestamp>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})Z "
    r"\S+ \S+ \S+ \"[^\"]*\" "
    r"\"[A-Z]+ (?P<path>\S+)(?: [^\"]*)?\" "
    r"(?P<status>\d{3})\b"
)
GEM_PATH_PATTERN = re.compile(r"^/gems/(?P<full_name>[^/]+)\.gem$")

# A 304 is a revalidated download the client already started, so it counts as one.
DOWNLOAD_STATUS_CODES = frozenset({200, 304})


def decode_log_body(body: bytes) -> bytes:
    """Return the plain log text, gunzipping bodies that carry the gzip magic number."""
    if not body.startswith(GZIP_MAGIC):
        return body
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as exc:
        raise ParseError(f"Unreadable gzip log body: {exc}") from exc


def parse_download_counts(body: bytes) -> RawCount:
    """Count successful gem downloads per version full name and exact event timestamp."""
    counts: dict[str, dict[datetime, int]] = defaultdict(lambda: defaultdict(int))
    for raw_line in decode_log_body(body).splitlines():
        parsed = _parse_download_line(raw_line)
        if parsed is None:
            continue
        full_name, occurred_at = parsed
        counts[full_name][occurred_at] += 1
    return {full_name: dict(by_timestamp) for full_name, by_timestamp in counts.items()}


def count_download_events(counts: RawCount) -> int:
    """Sum every download event in a parse result, matched or not."""
    return sum(sum(by_timestamp.values()) for by_timestamp in counts.values())


def _parse_download_line(raw_line: bytes) -> tuple[str, datetime] | None:
    # Stray bytes usually sit in the user agent, after every field read here.
    line = raw_line.decode("utf-8", errors="replace")
    match = LOG_LINE_PATTERN.match(line)
    if match is None:
        return None
    if int(match.group("status")) not in DOWNLOAD_STATUS_CODES:
        return None
    try:
        path = urlsplit(match.group("path")).path
    except ValueError:
        return None
    path_match = GEM_PATH_PATTERN.match(path)
    if path_match is None:
        return None
    try:
        occurred_at = datetime.strptime(match.group("timestamp"), "%Y-%m-%dT%H:%M:%S").replace(tzinfo=UTC)
    except ValueError:
        return None
    return path_match.group("full_name"), occurred_at
