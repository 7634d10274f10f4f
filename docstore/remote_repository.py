"""
Remote repository client

Implements the repository contract against a repository web service over
HTTP. Every request carries a freshly generated credential artifact in a
dedicated header; producing and checking those credentials is the job of
external collaborators.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple
from urllib.parse import quote

import aiohttp

from .errors import (
    AlreadyCommitted,
    AlreadyExists,
    MalformedRequest,
    MalformedResponse,
    RepositoryError,
    TransportFailure,
)
from .keys import check_citation_name, check_segment
from .repository import Repository


logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_HEADER = "Nebula-Credentials"

CredentialProvider = Callable[[], Awaitable[str]]


def _segment(value: str) -> str:
    return quote(value, safe="")


class RemoteRepository(Repository):
    """
    Repository proxy for a remote repository service.

    Identifiers are validated locally with the same rules as every other
    repository, so a bad tag or queue name never reaches the service.

    Mapping:
    - exists  -> HEAD   (404 means False)
    - fetch   -> GET    (404 means None)
    - create  -> POST   (409 means AlreadyExists)
    - save    -> PUT    (409 means AlreadyCommitted)
    - delete  -> DELETE (404 is fine)
    - enqueue -> POST /queues/<queue>
    - dequeue -> DELETE /queues/<queue> (204 means empty)
    """

    def __init__(
        self,
        url: str,
        credentials: CredentialProvider,
        session: Optional[aiohttp.ClientSession] = None,
        credentials_header: str = DEFAULT_CREDENTIALS_HEADER,
        timeout: Optional[float] = None
    ):
        """
        Initialize remote repository.

        Args:
            url: Base URL of the repository service
            credentials: Async callable returning a credential artifact per request
            session: Shared aiohttp session (one is created lazily if None)
            credentials_header: Header carrying the credentials
            timeout: Optional total timeout per request in seconds
        """
        self.url = url.rstrip("/")
        self.credentials_header = credentials_header
        self._credentials = credentials
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def location(self) -> str:
        return self.url

    # Citations

    async def citation_exists(self, name: str) -> bool:
        return await self._check_exists("citation_exists", self._citation_path("citation_exists", name))

    async def fetch_citation(self, name: str) -> Optional[str]:
        return await self._retrieve("fetch_citation", self._citation_path("fetch_citation", name))

    async def create_citation(self, name: str, citation: str) -> None:
        path = self._citation_path("create_citation", name)
        await self._submit("create_citation", "POST", path, citation, AlreadyExists)

    # Drafts

    async def draft_exists(self, tag: str, version: str) -> bool:
        return await self._check_exists("draft_exists", self._path("draft_exists", "draft", tag, version))

    async def fetch_draft(self, tag: str, version: str) -> Optional[str]:
        return await self._retrieve("fetch_draft", self._path("fetch_draft", "draft", tag, version))

    async def save_draft(self, tag: str, version: str, draft: str) -> None:
        path = self._path("save_draft", "draft", tag, version)
        await self._submit("save_draft", "PUT", path, draft, AlreadyCommitted)

    async def delete_draft(self, tag: str, version: str) -> None:
        path = self._path("delete_draft", "draft", tag, version)
        status, _ = await self._send("delete_draft", "DELETE", path)
        if status != 404:
            self._check("delete_draft", path, status)

    # Documents

    async def document_exists(self, tag: str, version: str) -> bool:
        return await self._check_exists("document_exists", self._path("document_exists", "document", tag, version))

    async def fetch_document(self, tag: str, version: str) -> Optional[str]:
        return await self._retrieve("fetch_document", self._path("fetch_document", "document", tag, version))

    async def create_document(self, tag: str, version: str, document: str) -> None:
        path = self._path("create_document", "document", tag, version)
        await self._submit("create_document", "POST", path, document, AlreadyExists)

    # Types

    async def type_exists(self, tag: str, version: str) -> bool:
        return await self._check_exists("type_exists", self._path("type_exists", "type", tag, version))

    async def fetch_type(self, tag: str, version: str) -> Optional[str]:
        return await self._retrieve("fetch_type", self._path("fetch_type", "type", tag, version))

    async def create_type(self, tag: str, version: str, type_: str) -> None:
        path = self._path("create_type", "type", tag, version)
        await self._submit("create_type", "POST", path, type_, AlreadyExists)

    # Queues

    async def enqueue_message(self, queue: str, message: str) -> None:
        path = self._queue_path("enqueue_message", queue)
        await self._submit("enqueue_message", "POST", path, message, None)

    async def dequeue_message(self, queue: str) -> Optional[str]:
        path = self._queue_path("dequeue_message", queue)
        status, body = await self._send("dequeue_message", "DELETE", path)
        if status == 204:
            return None
        self._check("dequeue_message", path, status)
        return self._decode("dequeue_message", path, body)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @staticmethod
    def _citation_path(operation: str, name: str) -> str:
        try:
            check_citation_name(name)
        except MalformedRequest as e:
            raise e.with_context(operation, "citation", name) from e
        return f"/citations/{_segment(name)}"

    @staticmethod
    def _path(operation: str, resource: str, tag: str, version: str) -> str:
        try:
            check_segment(tag, resource, "tag")
            check_segment(version, resource, "version")
        except MalformedRequest as e:
            raise e.with_context(operation, resource, f"{tag}/{version}") from e
        return f"/{resource}s/{_segment(tag)}/{_segment(version)}"

    @staticmethod
    def _queue_path(operation: str, queue: str) -> str:
        try:
            check_segment(queue, "queue", "queue name")
        except MalformedRequest as e:
            raise e.with_context(operation, "queue", queue) from e
        return f"/queues/{_segment(queue)}"

    async def _check_exists(self, operation: str, path: str) -> bool:
        status, _ = await self._send(operation, "HEAD", path)
        if status == 404:
            return False
        self._check(operation, path, status)
        return True

    async def _retrieve(self, operation: str, path: str) -> Optional[str]:
        status, body = await self._send(operation, "GET", path)
        if status == 404:
            return None
        self._check(operation, path, status)
        return self._decode(operation, path, body)

    async def _submit(self, operation: str, method: str, path: str, value: str, conflict) -> None:
        status, _ = await self._send(operation, method, path, value)
        if status == 409 and conflict is not None:
            raise conflict(
                f"{operation} rejected by {self.url}: resource conflict",
                operation=operation,
                identifier=path
            )
        self._check(operation, path, status)

    def _check(self, operation: str, path: str, status: int) -> None:
        if status < 300:
            return
        if status == 400:
            raise MalformedRequest(
                f"{operation} rejected as malformed by {self.url}{path}",
                operation=operation,
                identifier=path
            )
        raise TransportFailure(
            f"{operation} got unexpected status {status} from {self.url}{path}",
            operation=operation,
            identifier=path
        )

    @staticmethod
    def _decode(operation: str, path: str, body: bytes) -> str:
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedResponse(
                f"{operation} returned a body that is not UTF-8",
                operation=operation,
                identifier=path
            ) from e

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        value: Optional[str] = None
    ) -> Tuple[int, bytes]:
        try:
            credentials = await self._credentials()
        except RepositoryError:
            raise
        except Exception as e:
            raise TransportFailure(
                f"Could not generate credentials for {operation}: {e}",
                operation=operation,
                identifier=path
            ) from e

        headers = {self.credentials_header: quote(credentials, safe="")}
        data = None
        if value is not None:
            data = value.encode("utf-8")
            headers["Content-Type"] = "text/plain; charset=utf-8"

        session = await self._get_session()
        try:
            async with session.request(method, self.url + path, headers=headers, data=data) as response:
                body = await response.read()
                logger.debug(f"{method} {path} -> {response.status}")
                return response.status, body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"{method} {self.url}{path} failed: {e}")
            raise TransportFailure(
                f"{operation} could not reach {self.url}: {e}",
                operation=operation,
                identifier=path
            ) from e
