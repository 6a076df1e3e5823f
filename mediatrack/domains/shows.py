"""
Shows domain

Progress on a show is tracked per episode through the ``show`` progress
payload (season and episode numbers).
"""

from typing import List, Optional

import strawberry
from pydantic import Field
from strawberry.types import Info

from mediatrack.database.models import MetadataLot
from mediatrack.domains.base import MediaDomainService, Specifics
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, MediaItem, PaginationInput


class ShowSpecifics(Specifics):
    # minutes per episode
    episode_runtime: Optional[int] = Field(default=None, ge=0)
    total_seasons: Optional[int] = Field(default=None, ge=0)
    total_episodes: Optional[int] = Field(default=None, ge=0)


class ShowsService(MediaDomainService):
    lot = MetadataLot.SHOW
    feature = "SHOWS"
    specifics_model = ShowSpecifics


@strawberry.input
class CommitShowInput:
    title: str
    description: Optional[str] = None
    publish_year: Optional[int] = None
    episode_runtime: Optional[int] = None
    total_seasons: Optional[int] = None
    total_episodes: Optional[int] = None


operations = OperationSet("shows")


@operations.query
async def show_items(info: Info, pagination: Optional[PaginationInput] = None) -> List[MediaItem]:
    """List catalogued shows"""
    page = pagination or PaginationInput()
    rows = await info.context.services.shows.list_items(page.limit, page.offset)
    return [MediaItem.from_row(row) for row in rows]


@operations.query
async def show_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get a show by id"""
    data = await info.context.services.shows.details(metadata_id)
    return MediaItem.from_cached(data) if data else None


@operations.mutation
async def commit_show(info: Info, input: CommitShowInput) -> MediaItem:
    """Add a show to the catalog"""
    item = await info.context.services.shows.commit(
        input.title,
        description=input.description,
        publish_year=input.publish_year,
        episode_runtime=input.episode_runtime,
        total_seasons=input.total_seasons,
        total_episodes=input.total_episodes,
    )
    return MediaItem.from_row(item)
