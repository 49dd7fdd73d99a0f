"""SQLAlchemy database models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ProfileModel(Base):
    __tablename__ = "profiles"

    # Same id as the externally issued user id.
    id = Column(Uuid, primary_key=True)
    nickname = Column(String(20), nullable=False, unique=True, index=True)
    avatar_url = Column(String(512), nullable=True)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class FriendshipModel(Base):
    """One row per unordered user pair, enforced through ``pair_key``."""

    __tablename__ = "friendships"
    __table_args__ = (
        Index("ix_friendships_requester_status", "requester_id", "status"),
        Index("ix_friendships_addressee_status", "addressee_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id = Column(Uuid, nullable=False)
    addressee_id = Column(Uuid, nullable=False)
    pair_key = Column(String(73), nullable=False, unique=True)  # "<low uuid>:<high uuid>"
    status = Column(String(20), nullable=False, default="pending")  # pending|accepted|rejected|blocked
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class BookModel(Base):
    __tablename__ = "books"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    author = Column(String(255), nullable=False, index=True)
    cover_image_url = Column(String(1024), nullable=True)
    total_pages = Column(Integer, nullable=True)
    owner_id = Column(Uuid, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    reading_logs = relationship("ReadingLogModel", back_populates="book")


class ReadingLogModel(Base):
    __tablename__ = "reading_logs"
    __table_args__ = (
        Index("ix_reading_logs_owner_visibility", "owner_id", "visibility"),
        Index("ix_reading_logs_updated", "updated_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    book_id = Column(Uuid, ForeignKey("books.id"), nullable=False, index=True)
    owner_id = Column(Uuid, nullable=False)
    status = Column(String(20), nullable=False, default="want_to_read")  # want_to_read|reading|finished|abandoned
    current_page = Column(Integer, nullable=True)
    rating = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    visibility = Column(String(20), nullable=False, default="public")  # public|friends|private
    review = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    book = relationship("BookModel", back_populates="reading_logs")
    quotes = relationship("QuoteModel", back_populates="reading_log", passive_deletes=True)
    reviews = relationship("ReviewModel", back_populates="reading_log", passive_deletes=True)


class QuoteModel(Base):
    __tablename__ = "quotes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reading_log_id = Column(
        Uuid, ForeignKey("reading_logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id = Column(Uuid, nullable=False)
    text = Column(Text, nullable=False)
    page_number = Column(Integer, nullable=False)
    noted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    reading_log = relationship("ReadingLogModel", back_populates="quotes")


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reading_log_id = Column(
        Uuid, ForeignKey("reading_logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id = Column(Uuid, nullable=False)
    content = Column(Text, nullable=False)
    page_number = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    reading_log = relationship("ReadingLogModel", back_populates="reviews")
