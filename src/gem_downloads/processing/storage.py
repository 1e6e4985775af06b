"""Blob readers that fetch raw log bytes for a ticket's location."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import LogFetchError, LogFileNotFoundError
from .schemas import LOCAL_BACKEND, S3_BACKEND, LogLocation

LOGGER = logging.getLogger(__name__)

_S3_MISSING_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})


class LocalBlobStore:
    """Read log files from the local filesystem as `<directory>/<key>`."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir

    def read(self, location: LogLocation) -> bytes:
        """Return all bytes of the file, failing with LogFileNotFoundError when absent."""
        path = Path(location.directory).expanduser() / location.key
        if self._base_dir is not None and not path.is_absolute():
            path = self._base_dir / path
        if not path.is_file():
            raise LogFileNotFoundError(f"Log file not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise LogFetchError(f"Failed to read log file {path}: {exc}") from exc


class S3BlobStore:
    """Read log objects from S3, with the ticket directory as the bucket."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    def read(self, location: LogLocation) -> bytes:
        """Return the object body, failing with LogFileNotFoundError for missing keys."""
        client = self._get_client()
        try:
            response = client.get_object(Bucket=location.directory, Key=location.key)
            return response["Body"].read()
        except ClientError as exc:
            error_code = str(exc.response.get("Error", {}).get("Code", ""))
            if error_code in _S3_MISSING_CODES:
                raise LogFileNotFoundError(
                    f"Log object not found: s3://{location.directory}/{location.key}"
                ) from exc
            raise LogFetchError(
                f"Failed to fetch s3://{location.directory}/{location.key}: {error_code or exc}"
            ) from exc
        except BotoCoreError as exc:
            raise LogFetchError(f"Failed to fetch s3://{location.directory}/{location.key}: {exc}") from exc

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("s3")
        return self._client


class BlobReader:
    """Dispatch reads to the store registered for each location's backend."""

    def __init__(
        self,
        local_store: LocalBlobStore | None = None,
        s3_store: S3BlobStore | None = None,
    ) -> None:
        self._stores: dict[str, LocalBlobStore | S3BlobStore] = {
            LOCAL_BACKEND: local_store or LocalBlobStore(),
            S3_BACKEND: s3_store or S3BlobStore(),
        }

    def read(self, location: LogLocation) -> bytes:
        """Fetch the raw bytes of one log file."""
        store = self._stores.get(location.backend)
        if store is None:
            raise LogFetchError(f"Unsupported log backend: {location.backend!r}")
        body = store.read(location)
        LOGGER.info("Fetched %d bytes from %s:%s/%s", len(body), location.backend, location.directory, location.key)
        return body
