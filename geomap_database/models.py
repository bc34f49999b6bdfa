from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for a map user. Owns one note per annotated country.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    hashed_password = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    notes = relationship("Note", back_populates="owner", cascade="all, delete-orphan")

# PUBLIC_INTERFACE
class Note(Base):
    """
    SQLAlchemy model for the note a user keeps on one country.

    ``images`` holds the ordered image list (with their comment threads) as a
    single JSON document, so every write replaces the whole record.
    """
    __tablename__ = "country_notes"
    __table_args__ = (UniqueConstraint("user_id", "country_id", name="uq_country_notes_user_country"),)

    id = Column(Integer, primary_key=True, index=True)
    country_id = Column(String(64), nullable=False, index=True)
    text = Column(Text, nullable=False, default="")
    images = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    owner = relationship("User", back_populates="notes")
