"""
S3 implementation of StorageBackend

All records live in one bucket under the namespaced keys. boto3 calls are
blocking, so they run in the default executor.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Optional, Set

import boto3
import botocore.exceptions

from .backend import AccessMode, StorageBackend
from .errors import AlreadyExists, RepositoryError, TransportFailure


logger = logging.getLogger(__name__)

# Error codes meaning the object is not there
MISSING_CODES = ("404", "NoSuchKey", "NotFound")

# Error codes raised when a conditional request loses
PRECONDITION_CODES = ("412", "PreconditionFailed", "ConditionalRequestConflict")


def _error_code(error: botocore.exceptions.ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3Backend(StorageBackend):
    """
    Stores records as objects in an S3 bucket.

    Read-only writes use If-None-Match so an existing object is never
    replaced. Deletes are conditional on the ETag observed just before,
    which lets exactly one of several racing deleters report success.
    """

    def __init__(
        self,
        bucket: str,
        region_name: Optional[str] = None,
        client: Optional[Any] = None
    ):
        """
        Initialize backend.

        Args:
            bucket: Bucket holding every record
            region_name: AWS region (ignored when a client is supplied)
            client: Preconfigured boto3 S3 client
        """
        self.bucket = bucket
        self._client = client or boto3.client("s3", region_name=region_name)

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/"

    async def key_exists(self, key: str) -> bool:
        return await self._run("key_exists", key, self._head, key) is not None

    async def read(self, key: str) -> Optional[bytes]:
        return await self._run("read", key, self._get, key)

    async def write(self, key: str, data: bytes, mode: AccessMode) -> None:
        await self._run("write", key, self._put, key, data, mode)
        logger.debug(f"Put {len(data)} bytes to s3://{self.bucket}/{key}")

    async def delete(self, key: str) -> bool:
        return await self._run("delete", key, self._delete, key)

    async def list_keys(self, prefix: str) -> Set[str]:
        return await self._run("list_keys", prefix, self._list, prefix)

    async def _run(self, operation: str, key: str, func: Callable, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(func, *args))
        except RepositoryError:
            raise
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise TransportFailure(
                f"S3 error during {operation} of {key}: {e}",
                operation=operation,
                identifier=key
            ) from e

    def _head(self, key: str) -> Optional[dict]:
        try:
            return self._client.head_object(Bucket=self.bucket, Key=key)
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in MISSING_CODES:
                return None
            raise

    def _get(self, key: str) -> Optional[bytes]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in MISSING_CODES:
                return None
            raise
        return response["Body"].read()

    def _put(self, key: str, data: bytes, mode: AccessMode) -> None:
        params = {"Bucket": self.bucket, "Key": key, "Body": data}
        if mode is AccessMode.READ_ONLY:
            params["IfNoneMatch"] = "*"
        try:
            self._client.put_object(**params)
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in PRECONDITION_CODES:
                raise AlreadyExists(
                    f"Record already exists: {key}",
                    operation="write",
                    identifier=key
                ) from e
            raise

    def _delete(self, key: str) -> bool:
        head = self._head(key)
        if head is None:
            return False
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key, IfMatch=head["ETag"])
        except botocore.exceptions.ClientError as e:
            code = _error_code(e)
            if code in MISSING_CODES or code in PRECONDITION_CODES:
                return False
            raise
        return True

    def _list(self, prefix: str) -> Set[str]:
        keys = set()
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                keys.add(item["Key"])
        return keys
