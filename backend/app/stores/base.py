"""Base classes for external collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class BackendError(Exception):
    """Transport or infrastructure failure talking to a backend."""


class NotFoundError(Exception):
    """The requested document or user does not exist."""


class ConflictError(Exception):
    """A conditional update lost against a concurrent writer."""


@dataclass
class UserInfo:
    """Directory entry for a user.

    Attributes:
        user_id: User id in the directory
        email: Primary address (None if the user has none)
        name: Display name
    """

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class OutgoingMessage:
    """An email addressed to a user by id."""

    recipient_user_id: str
    subject: str
    body: str
    is_html: bool = True


class DocumentStore(ABC):
    """Abstract document store."""

    @abstractmethod
    async def get(self, database_id: str, collection_id: str, document_id: str) -> dict:
        """Fetch a document.

        Raises:
            NotFoundError: If the document does not exist
            BackendError: On transport failure
        """
        pass

    @abstractmethod
    async def update(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict,
        expected_hash: Optional[str] = None,
    ) -> dict:
        """Apply a partial update to a document.

        Args:
            database_id: Database id
            collection_id: Collection id
            document_id: Document id
            fields: Fields to write
            expected_hash: When given, the update only applies if the stored
                lastNotifiedHash still equals this value ("" for absent)

        Returns:
            The updated document

        Raises:
            ConflictError: If expected_hash no longer matches
            NotFoundError: If the document does not exist
            BackendError: On transport failure
        """
        pass


class UserDirectory(ABC):
    """Abstract user directory."""

    @abstractmethod
    async def get(self, user_id: str) -> UserInfo:
        """Resolve a user id.

        Raises:
            NotFoundError: If the user does not exist
            BackendError: On transport failure
        """
        pass


class MessageSender(ABC):
    """Abstract outbound email sender."""

    @abstractmethod
    async def send(self, message: OutgoingMessage) -> str:
        """Send an email.

        Returns:
            Message id assigned by the sender

        Raises:
            BackendError: On transport failure
        """
        pass


@dataclass
class Backends:
    """The collaborators one dispatcher talks to."""

    store: DocumentStore
    directory: UserDirectory
    sender: MessageSender
