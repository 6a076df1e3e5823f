"""
Video games domain
"""

from typing import List, Optional

import strawberry
from strawberry.types import Info

from mediatrack.database.models import MetadataLot
from mediatrack.domains.base import MediaDomainService, Specifics
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, MediaItem, PaginationInput


class VideoGameSpecifics(Specifics):
    genres: Optional[List[str]] = None
    platforms: Optional[List[str]] = None


class VideoGamesService(MediaDomainService):
    lot = MetadataLot.VIDEO_GAME
    feature = "VIDEO_GAMES"
    specifics_model = VideoGameSpecifics


@strawberry.input
class CommitVideoGameInput:
    title: str
    description: Optional[str] = None
    publish_year: Optional[int] = None
    genres: Optional[List[str]] = None
    platforms: Optional[List[str]] = None


operations = OperationSet("video_games")


@operations.query
async def video_game_items(info: Info, pagination: Optional[PaginationInput] = None) -> List[MediaItem]:
    """List catalogued video games"""
    page = pagination or PaginationInput()
    rows = await info.context.services.video_games.list_items(page.limit, page.offset)
    return [MediaItem.from_row(row) for row in rows]


@operations.query
async def video_game_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get a video game by id"""
    data = await info.context.services.video_games.details(metadata_id)
    return MediaItem.from_cached(data) if data else None


@operations.mutation
async def commit_video_game(info: Info, input: CommitVideoGameInput) -> MediaItem:
    """Add a video game to the catalog"""
    item = await info.context.services.video_games.commit(
        input.title,
        description=input.description,
        publish_year=input.publish_year,
        genres=input.genres,
        platforms=input.platforms,
    )
    return MediaItem.from_row(item)
