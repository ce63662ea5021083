"""Backends for the document store, user directory and message sender."""

from typing import Literal, Optional

from ..config import Settings, get_settings
from .base import (
    BackendError,
    Backends,
    ConflictError,
    DocumentStore,
    MessageSender,
    NotFoundError,
    OutgoingMessage,
    UserDirectory,
    UserInfo,
)
from .appwrite import (
    AppwriteClient,
    AppwriteDocumentStore,
    AppwriteMessageSender,
    AppwriteUserDirectory,
)
from .sql import SqlDocumentStore, SqlMessageSender, SqlUserDirectory

__all__ = [
    "BackendError",
    "Backends",
    "ConflictError",
    "DocumentStore",
    "MessageSender",
    "NotFoundError",
    "OutgoingMessage",
    "UserDirectory",
    "UserInfo",
    "get_backends",
]


def get_backends(
    backend: Optional[Literal["appwrite", "sql"]] = None,
    settings: Optional[Settings] = None,
) -> Backends:
    """Build the collaborators for a backend.

    Args:
        backend: "appwrite" or "sql"; defaults to settings.store_backend
        settings: Settings to read; defaults to cached settings

    Returns:
        Backends bundle

    Raises:
        ValueError: If backend is unknown
    """
    settings = settings or get_settings()
    backend = backend or settings.store_backend

    if backend == "appwrite":
        client = AppwriteClient(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
            timeout=settings.http_timeout_seconds,
        )
        return Backends(
            store=AppwriteDocumentStore(client),
            directory=AppwriteUserDirectory(client),
            sender=AppwriteMessageSender(client),
        )
    elif backend == "sql":
        from ..models import init_db

        init_db()
        return Backends(
            store=SqlDocumentStore(),
            directory=SqlUserDirectory(),
            sender=SqlMessageSender(),
        )
    raise ValueError(f"Unknown backend: {backend}")
