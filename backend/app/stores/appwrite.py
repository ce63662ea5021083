"""Appwrite REST backend for documents, users and messaging."""

import logging
import uuid
from typing import Optional

import httpx

from ..config import get_settings
from .base import (
    BackendError,
    ConflictError,
    DocumentStore,
    MessageSender,
    NotFoundError,
    OutgoingMessage,
    UserDirectory,
    UserInfo,
)

logger = logging.getLogger(__name__)


class AppwriteClient:
    """Shared HTTP client for the Appwrite server API."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        project_id: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.endpoint = (endpoint or settings.appwrite_endpoint).rstrip("/")
        self.project_id = project_id or settings.appwrite_project_id
        self.api_key = api_key or settings.appwrite_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                headers={
                    "X-Appwrite-Project": self.project_id,
                    "X-Appwrite-Key": self.api_key,
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request and decode the JSON response.

        Raises:
            NotFoundError: On HTTP 404
            BackendError: On any other HTTP error or connection failure
        """
        try:
            client = await self._get_client()
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(path) from e
            raise BackendError(
                f"Appwrite error: {e.response.status_code} on {method} {path}"
            ) from e
        except httpx.RequestError as e:
            raise BackendError(f"Connection error: {e}") from e
        except ValueError as e:
            raise BackendError(f"Invalid JSON from Appwrite: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _document_path(database_id: str, collection_id: str, document_id: str) -> str:
    return (
        f"/databases/{database_id}/collections/{collection_id}/documents/{document_id}"
    )


class AppwriteDocumentStore(DocumentStore):
    """Documents via the Appwrite databases API.

    Appwrite has no compare-and-swap on document fields, so conditional
    updates re-read the document and compare before patching. This narrows
    the race window but does not close it.
    """

    def __init__(self, client: AppwriteClient):
        self.client = client

    async def get(self, database_id: str, collection_id: str, document_id: str) -> dict:
        return await self.client.request(
            "GET", _document_path(database_id, collection_id, document_id)
        )

    async def update(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict,
        expected_hash: Optional[str] = None,
    ) -> dict:
        path = _document_path(database_id, collection_id, document_id)

        if expected_hash is not None:
            current = await self.client.request("GET", path)
            stored = current.get("lastNotifiedHash") or ""
            if stored != expected_hash:
                raise ConflictError(
                    f"{collection_id}/{document_id} notified concurrently"
                )

        return await self.client.request("PATCH", path, json={"data": fields})


class AppwriteUserDirectory(UserDirectory):
    """Users via the Appwrite users API."""

    def __init__(self, client: AppwriteClient):
        self.client = client

    async def get(self, user_id: str) -> UserInfo:
        data = await self.client.request("GET", f"/users/{user_id}")
        return UserInfo(
            user_id=data.get("$id", user_id),
            email=data.get("email") or None,
            name=data.get("name") or None,
        )


class AppwriteMessageSender(MessageSender):
    """Email via the Appwrite messaging API."""

    def __init__(self, client: AppwriteClient):
        self.client = client

    async def send(self, message: OutgoingMessage) -> str:
        message_id = uuid.uuid4().hex
        await self.client.request(
            "POST",
            "/messaging/messages/email",
            json={
                "messageId": message_id,
                "subject": message.subject,
                "content": message.body,
                "users": [message.recipient_user_id],
                "html": message.is_html,
            },
        )
        logger.debug(f"Queued Appwrite message {message_id}")
        return message_id
