"""
Podcasts domain

Listening progress is tracked per episode through the ``podcast`` progress
payload.
"""

from typing import List, Optional

import strawberry
from pydantic import Field
from strawberry.types import Info

from mediatrack.database.models import MetadataLot
from mediatrack.domains.base import MediaDomainService, Specifics
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, MediaItem, PaginationInput


class PodcastSpecifics(Specifics):
    # minutes per episode
    episode_runtime: Optional[int] = Field(default=None, ge=0)
    total_episodes: Optional[int] = Field(default=None, ge=0)


class PodcastsService(MediaDomainService):
    lot = MetadataLot.PODCAST
    feature = "PODCASTS"
    specifics_model = PodcastSpecifics


@strawberry.input
class CommitPodcastInput:
    title: str
    description: Optional[str] = None
    publish_year: Optional[int] = None
    episode_runtime: Optional[int] = None
    total_episodes: Optional[int] = None


operations = OperationSet("podcasts")


@operations.query
async def podcast_items(info: Info, pagination: Optional[PaginationInput] = None) -> List[MediaItem]:
    """List catalogued podcasts"""
    page = pagination or PaginationInput()
    rows = await info.context.services.podcasts.list_items(page.limit, page.offset)
    return [MediaItem.from_row(row) for row in rows]


@operations.query
async def podcast_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get a podcast by id"""
    data = await info.context.services.podcasts.details(metadata_id)
    return MediaItem.from_cached(data) if data else None


@operations.mutation
async def commit_podcast(info: Info, input: CommitPodcastInput) -> MediaItem:
    """Add a podcast to the catalog"""
    item = await info.context.services.podcasts.commit(
        input.title,
        description=input.description,
        publish_year=input.publish_year,
        episode_runtime=input.episode_runtime,
        total_episodes=input.total_episodes,
    )
    return MediaItem.from_row(item)
