"""SQL backend for documents, users and messaging.

Used for self-hosted deployments and local development. Unlike Appwrite,
conditional updates here are atomic: the write only lands if the document
version read alongside the hash is still current.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..models import Document, NotificationLog, SessionLocal, UserAccount
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

# System fields are derived from columns and never stored in data
SYSTEM_FIELDS = {"$id", "$collectionId", "$databaseId", "$createdAt", "$updatedAt"}


class SqlDocumentStore(DocumentStore):
    """Documents stored as JSON rows."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    def _load(self, db, database_id: str, collection_id: str, document_id: str) -> Document:
        document = db.get(Document, (database_id, collection_id, document_id))
        if document is None:
            raise NotFoundError(f"{database_id}/{collection_id}/{document_id}")
        return document

    async def get(self, database_id: str, collection_id: str, document_id: str) -> dict:
        db = self.session_factory()
        try:
            return self._load(db, database_id, collection_id, document_id).to_record()
        except SQLAlchemyError as e:
            raise BackendError(f"Database error: {e}") from e
        finally:
            db.close()

    async def update(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict,
        expected_hash: Optional[str] = None,
    ) -> dict:
        db = self.session_factory()
        try:
            document = self._load(db, database_id, collection_id, document_id)
            data = dict(document.data or {})
            read_version = document.version

            if expected_hash is not None:
                stored = data.get("lastNotifiedHash") or ""
                if stored != expected_hash:
                    raise ConflictError(
                        f"{collection_id}/{document_id} notified concurrently"
                    )

            data.update({k: v for k, v in fields.items() if k not in SYSTEM_FIELDS})
            result = db.execute(
                update(Document)
                .where(
                    Document.database_id == database_id,
                    Document.collection_id == collection_id,
                    Document.id == document_id,
                    Document.version == read_version,
                )
                .values(
                    data=data,
                    version=read_version + 1,
                    updated_at=datetime.utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                raise ConflictError(f"{collection_id}/{document_id} changed during update")

            db.commit()
            return self._load(db, database_id, collection_id, document_id).to_record()

        except SQLAlchemyError as e:
            db.rollback()
            raise BackendError(f"Database error: {e}") from e
        finally:
            db.close()

    async def put(
        self, database_id: str, collection_id: str, document_id: str, data: dict
    ) -> dict:
        """Insert or replace a document (used to seed local deployments)."""
        db = self.session_factory()
        try:
            document = db.get(Document, (database_id, collection_id, document_id))
            clean = {k: v for k, v in data.items() if k not in SYSTEM_FIELDS}
            if document is None:
                document = Document(
                    database_id=database_id,
                    collection_id=collection_id,
                    id=document_id,
                    data=clean,
                )
                db.add(document)
            else:
                document.data = clean
                document.version = document.version + 1
            db.commit()
            db.refresh(document)
            return document.to_record()
        except SQLAlchemyError as e:
            db.rollback()
            raise BackendError(f"Database error: {e}") from e
        finally:
            db.close()


class SqlUserDirectory(UserDirectory):
    """Users stored in the users table."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    async def get(self, user_id: str) -> UserInfo:
        db = self.session_factory()
        try:
            user = db.get(UserAccount, user_id)
            if user is None:
                raise NotFoundError(user_id)
            return UserInfo(user_id=user.id, email=user.email or None, name=user.name)
        except SQLAlchemyError as e:
            raise BackendError(f"Database error: {e}") from e
        finally:
            db.close()


class SqlMessageSender(MessageSender):
    """Records outgoing email in the notification log instead of sending it."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    async def send(self, message: OutgoingMessage) -> str:
        message_id = uuid.uuid4().hex
        db = self.session_factory()
        try:
            db.add(
                NotificationLog(
                    id=message_id,
                    recipient_user_id=message.recipient_user_id,
                    subject=message.subject,
                    body=message.body,
                    is_html=message.is_html,
                )
            )
            db.commit()
            logger.info(f"Logged message {message_id} for {message.recipient_user_id}")
            return message_id
        except SQLAlchemyError as e:
            db.rollback()
            raise BackendError(f"Database error: {e}") from e
        finally:
            db.close()
