"""
Media operations

Reviews, progress history and summaries. These work across every media lot;
lot specific catalog operations live in ``mediatrack.domains``.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

import strawberry
import structlog
from strawberry.scalars import JSON
from strawberry.types import Info

from mediatrack.database.inputs import ReviewInput, ReviewUpdate, SeenInput
from mediatrack.database.models import ReviewVisibility
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import (
    Identifier,
    MediaItem,
    ReviewItem,
    SeenItem,
    UserSummary,
)

logger = structlog.get_logger(__name__)


def _provided(input) -> dict:
    """Fields of a strawberry input the client actually sent."""
    return {
        key: value
        for key, value in vars(input).items()
        if value is not strawberry.UNSET
    }


@strawberry.input
class PostReviewInput:
    user_id: Identifier
    metadata_id: Identifier
    rating: Optional[Decimal] = None
    text: Optional[str] = None
    visibility: Optional[ReviewVisibility] = None
    spoiler: Optional[bool] = None
    extra_information: Optional[JSON] = None
    identifier: Optional[str] = None


@strawberry.input
class UpdateReviewInput:
    rating: Optional[Decimal] = strawberry.UNSET
    text: Optional[str] = strawberry.UNSET
    visibility: Optional[ReviewVisibility] = strawberry.UNSET
    spoiler: Optional[bool] = strawberry.UNSET
    extra_information: Optional[JSON] = strawberry.UNSET


@strawberry.input
class ProgressUpdateInput:
    user_id: Identifier
    metadata_id: Identifier
    progress: int = 100
    started_on: Optional[date] = None
    finished_on: Optional[date] = None
    extra_information: Optional[JSON] = None


operations = OperationSet("media")


# =============================================================================
# QUERIES
# =============================================================================

@operations.query
async def metadata_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get an item of any media lot"""
    item = await info.context.store.get_metadata(metadata_id)
    return MediaItem.from_row(item) if item else None


@operations.query
async def review(info: Info, review_id: Identifier) -> Optional[ReviewItem]:
    row = await info.context.store.get_review(review_id)
    return ReviewItem.from_row(row) if row else None


@operations.query
async def reviews(
    info: Info,
    user_id: Optional[Identifier] = None,
    metadata_id: Optional[Identifier] = None,
) -> List[ReviewItem]:
    """Reviews, oldest first, optionally filtered by author and item"""
    rows = await info.context.store.list_reviews(user_id=user_id, metadata_id=metadata_id)
    return [ReviewItem.from_row(row) for row in rows]


@operations.query
async def seen_history(
    info: Info,
    user_id: Identifier,
    metadata_id: Optional[Identifier] = None,
) -> List[SeenItem]:
    """Progress records of a user"""
    rows = await info.context.store.list_seen(user_id, metadata_id)
    return [SeenItem.from_row(row) for row in rows]


@operations.query
async def seen_item(info: Info, seen_id: Identifier) -> Optional[SeenItem]:
    row = await info.context.store.get_seen(seen_id)
    return SeenItem.from_row(row) if row else None


@operations.query
async def user_summary(info: Info, user_id: Identifier) -> Optional[UserSummary]:
    """Last calculated summary of a user; null until first recomputed"""
    row = await info.context.store.get_summary(user_id)
    return UserSummary.from_row(row) if row else None


@operations.query
async def has_interacted(info: Info, user_id: Identifier, metadata_id: Identifier) -> bool:
    """Whether the user has ever reviewed or tracked the item"""
    return await info.context.store.has_association(user_id, metadata_id)


# =============================================================================
# MUTATIONS
# =============================================================================

@operations.mutation
async def post_review(info: Info, input: PostReviewInput) -> ReviewItem:
    """Post a review for an item"""
    data = {k: v for k, v in _provided(input).items() if v is not None}
    row = await info.context.store.create_review(ReviewInput.build(**data))
    return ReviewItem.from_row(row)


@operations.mutation
async def update_review(info: Info, review_id: Identifier, input: UpdateReviewInput) -> ReviewItem:
    """Change the fields sent in ``input``; omitted fields keep their value"""
    changes = ReviewUpdate.build(**_provided(input))
    row = await info.context.store.update_review(review_id, changes)
    return ReviewItem.from_row(row)


@operations.mutation
async def delete_review(info: Info, review_id: Identifier) -> bool:
    return await info.context.store.delete_review(review_id)


@operations.mutation
async def progress_update(info: Info, input: ProgressUpdateInput) -> SeenItem:
    """Record progress on an item; 100 marks it finished"""
    data = {k: v for k, v in _provided(input).items() if v is not None}
    row = await info.context.store.create_seen(SeenInput.build(**data))
    return SeenItem.from_row(row)


@operations.mutation
async def delete_seen_item(info: Info, seen_id: Identifier) -> bool:
    return await info.context.store.delete_seen(seen_id)


@operations.mutation
async def delete_metadata(info: Info, metadata_id: Identifier) -> bool:
    """Delete an item with its reviews and progress"""
    ctx = info.context
    item = await ctx.store.get_metadata(metadata_id)
    if item is None:
        return False
    deleted = await ctx.store.delete_metadata(metadata_id)
    await ctx.services.for_lot(item.lot).forget(metadata_id)
    return deleted


@operations.mutation
async def recompute_summary(info: Info, user_id: Identifier) -> UserSummary:
    """Recalculate a user's summary from their current history"""
    row = await info.context.summaries.recompute(user_id)
    logger.info("Summary recomputed on request", user_id=user_id)
    return UserSummary.from_row(row)
