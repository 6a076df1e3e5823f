"""
GraphQL Types

Strawberry types shared by every operation set.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, NewType, Optional

import strawberry
from strawberry.scalars import JSON

from mediatrack.database.models import (
    SUMMARY_COUNTERS,
    Metadata,
    MetadataLot,
    Review,
    ReviewVisibility,
    Seen,
    Summary,
    User,
)


def _parse_identifier(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Identifier must be an integer, got {value!r}")
    number = int(value)
    if number < 0:
        raise ValueError("Identifier must not be negative")
    return number


Identifier = NewType("Identifier", int)

SCALAR_MAP = {
    Identifier: strawberry.scalar(
        name="Identifier",
        serialize=int,
        parse_value=_parse_identifier,
        description="Opaque entity id; an integer on the wire",
    ),
}

strawberry.enum(MetadataLot, description="Media domain of an item")
strawberry.enum(ReviewVisibility, description="Who may read a review")


# =============================================================================
# TYPES
# =============================================================================

@strawberry.type
class MediaItem:
    id: Identifier
    lot: MetadataLot
    title: str
    description: Optional[str]
    publish_year: Optional[int]
    specifics: JSON

    @classmethod
    def from_row(cls, row: Metadata) -> "MediaItem":
        return cls(
            id=row.id,
            lot=row.lot,
            title=row.title,
            description=row.description,
            publish_year=row.publish_year,
            specifics=dict(row.specifics or {}),
        )

    @classmethod
    def from_cached(cls, data: dict) -> "MediaItem":
        return cls(
            id=data["id"],
            lot=MetadataLot(data["lot"]),
            title=data["title"],
            description=data.get("description"),
            publish_year=data.get("publish_year"),
            specifics=data.get("specifics") or {},
        )


@strawberry.type
class ReviewItem:
    id: Identifier
    posted_on: datetime
    rating: Optional[Decimal]
    text: Optional[str]
    visibility: ReviewVisibility
    spoiler: bool
    user_id: Identifier
    metadata_id: Identifier
    extra_information: Optional[JSON]
    identifier: Optional[str]

    @classmethod
    def from_row(cls, row: Review) -> "ReviewItem":
        return cls(
            id=row.id,
            posted_on=row.posted_on,
            rating=row.rating,
            text=row.text,
            visibility=row.visibility,
            spoiler=row.spoiler,
            user_id=row.user_id,
            metadata_id=row.metadata_id,
            extra_information=row.extra_information,
            identifier=row.identifier,
        )


@strawberry.type
class SeenItem:
    id: Identifier
    progress: int
    started_on: Optional[date]
    finished_on: Optional[date]
    user_id: Identifier
    metadata_id: Identifier
    extra_information: Optional[JSON]

    @classmethod
    def from_row(cls, row: Seen) -> "SeenItem":
        return cls(
            id=row.id,
            progress=row.progress,
            started_on=row.started_on,
            finished_on=row.finished_on,
            user_id=row.user_id,
            metadata_id=row.metadata_id,
            extra_information=row.extra_information,
        )


@strawberry.type
class UserSummary:
    user_id: Identifier
    calculated_on: datetime
    books_pages: int
    books_read: int
    movies_runtime: int
    movies_watched: int
    shows_runtime: int
    shows_watched: int
    shows_episodes_watched: int
    shows_seasons_watched: int
    video_games_played: int
    audio_books_runtime: int
    audio_books_played: int
    podcasts_runtime: int
    podcasts_played: int

    @classmethod
    def from_row(cls, row: Summary) -> "UserSummary":
        counters = {name: getattr(row, name) for name in SUMMARY_COUNTERS}
        return cls(user_id=row.user_id, calculated_on=row.created_on, **counters)


@strawberry.type
class UserItem:
    id: Identifier
    username: str
    created_on: datetime

    @classmethod
    def from_row(cls, row: User) -> "UserItem":
        return cls(id=row.id, username=row.username, created_on=row.created_on)


@strawberry.type
class MetadataCoreFeatureEnabled:
    name: MetadataLot
    enabled: bool


@strawberry.type
class GeneralCoreFeatureEnabled:
    name: str
    enabled: bool


@strawberry.type
class CoreFeatureEnabled:
    metadata: List[MetadataCoreFeatureEnabled]
    general: List[GeneralCoreFeatureEnabled]


@strawberry.type
class CoreDetails:
    version: str
    author_name: str
    repository_link: str
    username_change_allowed: bool


# =============================================================================
# INPUTS
# =============================================================================

@strawberry.input
class PaginationInput:
    limit: int = 20
    offset: int = 0
