"""
Audio books domain
"""

from typing import List, Optional

import strawberry
from pydantic import Field
from strawberry.types import Info

from mediatrack.database.models import MetadataLot
from mediatrack.domains.base import MediaDomainService, Specifics
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, MediaItem, PaginationInput


class AudioBookSpecifics(Specifics):
    # minutes
    runtime: Optional[int] = Field(default=None, ge=0)
    narrators: Optional[List[str]] = None


class AudioBooksService(MediaDomainService):
    lot = MetadataLot.AUDIO_BOOK
    feature = "AUDIO_BOOKS"
    specifics_model = AudioBookSpecifics


@strawberry.input
class CommitAudioBookInput:
    title: str
    description: Optional[str] = None
    publish_year: Optional[int] = None
    runtime: Optional[int] = None
    narrators: Optional[List[str]] = None


operations = OperationSet("audio_books")


@operations.query
async def audio_book_items(info: Info, pagination: Optional[PaginationInput] = None) -> List[MediaItem]:
    """List catalogued audio books"""
    page = pagination or PaginationInput()
    rows = await info.context.services.audio_books.list_items(page.limit, page.offset)
    return [MediaItem.from_row(row) for row in rows]


@operations.query
async def audio_book_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get an audio book by id"""
    data = await info.context.services.audio_books.details(metadata_id)
    return MediaItem.from_cached(data) if data else None


@operations.mutation
async def commit_audio_book(info: Info, input: CommitAudioBookInput) -> MediaItem:
    """Add an audio book to the catalog"""
    item = await info.context.services.audio_books.commit(
        input.title,
        description=input.description,
        publish_year=input.publish_year,
        runtime=input.runtime,
        narrators=input.narrators,
    )
    return MediaItem.from_row(item)
