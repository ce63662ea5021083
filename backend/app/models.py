"""SQLAlchemy models for the SQL backend."""

from datetime import datetime
from sqlalchemy import (
    create_engine,
    Column,
    String,
    Boolean,
    Integer,
    DateTime,
    JSON,
    Text,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.env == "development")
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class Document(Base):
    """A stored record, addressed by database, collection and id."""

    __tablename__ = "documents"

    database_id = Column(String, primary_key=True)
    collection_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False, default=dict)

    # Bumped on every write; conditional updates compare against it
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_record(self) -> dict:
        """Render as a record with Appwrite-style system fields."""
        record = dict(self.data or {})
        record.update(
            {
                "$id": self.id,
                "$collectionId": self.collection_id,
                "$databaseId": self.database_id,
                "$createdAt": self.created_at.isoformat() if self.created_at else None,
                "$updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            }
        )
        return record


class UserAccount(Base):
    """A user directory entry."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True)
    name = Column(String, nullable=True)


class NotificationLog(Base):
    """Log of emails handed to the SQL message sender."""

    __tablename__ = "notification_log"

    id = Column(String, primary_key=True)
    recipient_user_id = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    is_html = Column(Boolean, default=True)
    sent_at = Column(DateTime, default=datetime.utcnow)


def init_db():
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
