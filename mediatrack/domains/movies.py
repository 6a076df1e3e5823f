"""
Movies domain
"""

from typing import List, Optional

import strawberry
from pydantic import Field
from strawberry.types import Info

from mediatrack.database.models import MetadataLot
from mediatrack.domains.base import MediaDomainService, Specifics
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, MediaItem, PaginationInput


class MovieSpecifics(Specifics):
    # minutes
    runtime: Optional[int] = Field(default=None, ge=0)


class MoviesService(MediaDomainService):
    lot = MetadataLot.MOVIE
    feature = "MOVIES"
    specifics_model = MovieSpecifics


@strawberry.input
class CommitMovieInput:
    title: str
    description: Optional[str] = None
    publish_year: Optional[int] = None
    runtime: Optional[int] = None


operations = OperationSet("movies")


@operations.query
async def movie_items(info: Info, pagination: Optional[PaginationInput] = None) -> List[MediaItem]:
    """List catalogued movies"""
    page = pagination or PaginationInput()
    rows = await info.context.services.movies.list_items(page.limit, page.offset)
    return [MediaItem.from_row(row) for row in rows]


@operations.query
async def movie_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get a movie by id"""
    data = await info.context.services.movies.details(metadata_id)
    return MediaItem.from_cached(data) if data else None


@operations.mutation
async def commit_movie(info: Info, input: CommitMovieInput) -> MediaItem:
    """Add a movie to the catalog"""
    item = await info.context.services.movies.commit(
        input.title,
        description=input.description,
        publish_year=input.publish_year,
        runtime=input.runtime,
    )
    return MediaItem.from_row(item)
