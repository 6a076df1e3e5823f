"""
Database Models - Media Tracking Schema

Entities:
- User: identity anchor owning reviews, progress history and a summary
- Metadata: a catalogued item of any media domain, discriminated by ``lot``
- Review: a user's opinion on one metadata item
- Seen: a progress record (started / finished / percentage) of one item
- Summary: per-user rollup counters, fully rewritten on every recompute
- UserToMetadata: denormalized "has interacted with" index

Every belongs-to edge is a foreign key with ON DELETE CASCADE and
ON UPDATE CASCADE so the database, not the application, keeps dependants in
step with their parents.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, NewType, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


UserId = NewType("UserId", int)
MetadataId = NewType("MetadataId", int)
ReviewId = NewType("ReviewId", int)
SeenId = NewType("SeenId", int)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp stored as naive UTC.

    SQLite drops offsets on the way back, so values are normalised to UTC on
    write and tagged as UTC on read on every backend.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class MetadataLot(str, Enum):
    """Media domain of a metadata item"""
    BOOK = "book"
    MOVIE = "movie"
    SHOW = "show"
    VIDEO_GAME = "video_game"
    AUDIO_BOOK = "audio_book"
    PODCAST = "podcast"


class ReviewVisibility(str, Enum):
    """Who may read a review"""
    PUBLIC = "public"
    PRIVATE = "private"
    FOLLOWERS_ONLY = "followers_only"


def _cascade(column: str) -> ForeignKey:
    return ForeignKey(column, ondelete="CASCADE", onupdate="CASCADE")


# =============================================================================
# ENTITIES
# =============================================================================

class User(Base):
    """
    User Table

    Owns reviews, progress history, association rows and at most one summary.
    """
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)

    created_on: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_on: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    reviews: Mapped[List["Review"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    seen_history: Mapped[List["Seen"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    summary: Mapped[Optional["Summary"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class Metadata(Base):
    """
    Metadata Table

    A catalogued item. ``specifics`` holds the payload owned by the item's
    media domain (page count, runtime, episode runtime...).
    """
    __tablename__ = "metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lot: Mapped[MetadataLot] = mapped_column(
        SQLEnum(MetadataLot, name="metadata_lot"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    publish_year: Mapped[Optional[int]] = mapped_column(Integer)
    specifics: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    created_on: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    last_updated_on: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    reviews: Mapped[List["Review"]] = relationship(
        back_populates="item", cascade="all, delete-orphan", passive_deletes=True
    )
    seen_history: Mapped[List["Seen"]] = relationship(
        back_populates="item", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_metadata_lot", "lot"),
    )


class Review(Base):
    """
    Review Table

    Several reviews of the same item by the same user are allowed (one per
    rewatch, reread...).
    """
    __tablename__ = "review"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    posted_on: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    rating: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2))
    text: Mapped[Optional[str]] = mapped_column(Text)
    visibility: Mapped[ReviewVisibility] = mapped_column(
        SQLEnum(ReviewVisibility, name="review_visibility"),
        default=ReviewVisibility.PRIVATE,
        nullable=False,
    )
    spoiler: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, _cascade("user.id"), nullable=False)
    metadata_id: Mapped[int] = mapped_column(Integer, _cascade("metadata.id"), nullable=False)
    extra_information: Mapped[Optional[dict]] = mapped_column(JSON)
    identifier: Mapped[Optional[str]] = mapped_column(String(200))

    user: Mapped["User"] = relationship(back_populates="reviews")
    item: Mapped["Metadata"] = relationship(back_populates="reviews")

    __table_args__ = (
        Index("ix_review_user", "user_id"),
        Index("ix_review_metadata", "metadata_id"),
    )


class Seen(Base):
    """
    Seen Table

    Progress history. A row with ``progress == 100`` counts as a finished
    consumption of the item.
    """
    __tablename__ = "seen"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_on: Mapped[Optional[date]] = mapped_column(Date)
    finished_on: Mapped[Optional[date]] = mapped_column(Date)
    last_updated_on: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, _cascade("user.id"), nullable=False)
    metadata_id: Mapped[int] = mapped_column(Integer, _cascade("metadata.id"), nullable=False)
    extra_information: Mapped[Optional[dict]] = mapped_column(JSON)

    user: Mapped["User"] = relationship(back_populates="seen_history")
    item: Mapped["Metadata"] = relationship(back_populates="seen_history")

    __table_args__ = (
        Index("ix_seen_user_metadata", "user_id", "metadata_id"),
    )


class UserToMetadata(Base):
    """
    User-Metadata Association

    Fast-path index of items a user has interacted with. Derived data:
    rebuilt from reviews and progress history if lost.
    """
    __tablename__ = "user_to_metadata"

    user_id: Mapped[int] = mapped_column(Integer, _cascade("user.id"), primary_key=True)
    metadata_id: Mapped[int] = mapped_column(Integer, _cascade("metadata.id"), primary_key=True)
    created_on: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)


# =============================================================================
# AGGREGATES
# =============================================================================

SUMMARY_COUNTERS = (
    "books_pages",
    "books_read",
    "movies_runtime",
    "movies_watched",
    "shows_runtime",
    "shows_watched",
    "shows_episodes_watched",
    "shows_seasons_watched",
    "video_games_played",
    "audio_books_runtime",
    "audio_books_played",
    "podcasts_runtime",
    "podcasts_played",
)


class Summary(Base):
    """
    Summary Aggregate Table

    One row per user. Written only by the summary engine, which replaces
    every counter on each run.
    """
    __tablename__ = "summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, _cascade("user.id"), nullable=False)
    created_on: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    books_pages: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    books_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    movies_runtime: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    movies_watched: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shows_runtime: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shows_watched: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shows_episodes_watched: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shows_seasons_watched: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    video_games_played: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    audio_books_runtime: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    audio_books_played: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    podcasts_runtime: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    podcasts_played: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    user: Mapped["User"] = relationship(back_populates="summary")

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_summary_user"),
    )
