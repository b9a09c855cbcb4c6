"""
Object store access used by the embargo pipeline.

The pipeline only needs four operations on named blobs in named containers (buckets): a paginated listing by key
prefix, and whole-object get, put, and delete. Any failure of these operations is raised as a `BlobStoreError` and is
never retried here; retry policy belongs to the store client or an outer scheduler.
"""

import contextlib
import threading
from collections.abc import Iterator
from typing import Protocol, runtime_checkable

import boto3
import botocore.config
import botocore.exceptions

from ._config import DEFAULT_REQUEST_TIMEOUT_IN_SECONDS
from ._exceptions import BlobStoreError


@runtime_checkable
class BlobStore(Protocol):
    def list_keys(self, container: str, prefix: str, page_token: str | None = None) -> tuple[list[str], str | None]:
        """Return one page of keys under the prefix, and the token of the next page (None on the last page)."""

    def get(self, container: str, key: str) -> bytes: ...

    def put(self, container: str, key: str, content: bytes) -> None: ...

    def delete(self, container: str, key: str) -> None: ...


def iterate_keys(blob_store: BlobStore, container: str, prefix: str) -> Iterator[str]:
    """Iterate over every key under the prefix, following the pagination of the store."""
    page_token = None
    while True:
        keys, page_token = blob_store.list_keys(container=container, prefix=prefix, page_token=page_token)
        yield from keys

        if page_token is None:
            break


class InMemoryBlobStore:
    def __init__(self, *, page_size: int = 1000):
        """
        A blob store held entirely in memory.

        Used for testing and dry runs. Listings are sorted by key and paginated by `page_size`, where the page token
        is the last key of the previous page.
        """
        if page_size < 1:
            raise ValueError(f"`page_size` must be at least 1, not {page_size}!")

        self.page_size = page_size
        self._containers: dict[str, dict[str, bytes]] = dict()
        self._lock = threading.Lock()

    def create_container(self, container: str) -> None:
        with self._lock:
            self._containers.setdefault(container, dict())

    def list_keys(self, container: str, prefix: str, page_token: str | None = None) -> tuple[list[str], str | None]:
        with self._lock:
            blobs = self._get_container(container=container)
            matching_keys = sorted(key for key in blobs if key.startswith(prefix))

        if page_token is not None:
            matching_keys = [key for key in matching_keys if key > page_token]

        page = matching_keys[: self.page_size]
        next_page_token = page[-1] if len(matching_keys) > self.page_size else None

        return page, next_page_token

    def get(self, container: str, key: str) -> bytes:
        with self._lock:
            blobs = self._get_container(container=container)
            if key not in blobs:
                raise BlobStoreError(f"Object '{key}' does not exist in container '{container}'!")

            return blobs[key]

    def put(self, container: str, key: str, content: bytes) -> None:
        with self._lock:
            self._containers.setdefault(container, dict())[key] = bytes(content)

    def delete(self, container: str, key: str) -> None:
        with self._lock:
            blobs = self._get_container(container=container)
            if key not in blobs:
                raise BlobStoreError(f"Object '{key}' does not exist in container '{container}'!")

            del blobs[key]

    def _get_container(self, *, container: str) -> dict[str, bytes]:
        if container not in self._containers:
            raise BlobStoreError(f"Container '{container}' does not exist!")

        return self._containers[container]


class S3BlobStore:
    def __init__(
        self,
        *,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        timeout_in_seconds: float = DEFAULT_REQUEST_TIMEOUT_IN_SECONDS,
        client=None,
    ):
        """
        A blob store backed by an S3 compatible service.

        Parameters
        ----------
        endpoint_url : str, optional
            The endpoint of the service. Defaults to AWS itself.
            Google Cloud Storage is reachable through its interoperability endpoint 'https://storage.googleapis.com'.
        region_name : str, optional
            The region of the buckets.
        timeout_in_seconds : float
            The connect and read timeout applied to every request.
        client : botocore client, optional
            A preconfigured S3 client, used instead of constructing one.
        """
        if client is None:
            config = botocore.config.Config(
                connect_timeout=timeout_in_seconds,
                read_timeout=timeout_in_seconds,
            )
            client = boto3.client("s3", endpoint_url=endpoint_url, region_name=region_name, config=config)

        self.client = client

    def list_keys(self, container: str, prefix: str, page_token: str | None = None) -> tuple[list[str], str | None]:
        request = dict(Bucket=container, Prefix=prefix)
        if page_token is not None:
            request["ContinuationToken"] = page_token

        try:
            response = self.client.list_objects_v2(**request)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exception:
            raise BlobStoreError(f"Listing '{prefix}' in bucket '{container}' failed: {exception}") from exception

        keys = [content["Key"] for content in response.get("Contents", [])]
        next_page_token = response.get("NextContinuationToken") if response.get("IsTruncated", False) else None

        return keys, next_page_token

    def get(self, container: str, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=container, Key=key)
            with contextlib.closing(response["Body"]) as body:
                return body.read()
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exception:
            raise BlobStoreError(f"Reading '{key}' from bucket '{container}' failed: {exception}") from exception

    def put(self, container: str, key: str, content: bytes) -> None:
        try:
            self.client.put_object(Bucket=container, Key=key, Body=content)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exception:
            raise BlobStoreError(f"Writing '{key}' to bucket '{container}' failed: {exception}") from exception

    def delete(self, container: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=container, Key=key)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exception:
            raise BlobStoreError(f"Deleting '{key}' from bucket '{container}' failed: {exception}") from exception
