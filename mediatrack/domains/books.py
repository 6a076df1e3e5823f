"""
Books domain
"""

from typing import List, Optional

import strawberry
from pydantic import Field
from strawberry.types import Info

from mediatrack.database.models import MetadataLot
from mediatrack.domains.base import MediaDomainService, Specifics
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, MediaItem, PaginationInput


class BookSpecifics(Specifics):
    pages: Optional[int] = Field(default=None, ge=0)
    authors: Optional[List[str]] = None


class BooksService(MediaDomainService):
    lot = MetadataLot.BOOK
    feature = "BOOKS"
    specifics_model = BookSpecifics


@strawberry.input
class CommitBookInput:
    title: str
    description: Optional[str] = None
    publish_year: Optional[int] = None
    pages: Optional[int] = None
    authors: Optional[List[str]] = None


operations = OperationSet("books")


@operations.query
async def book_items(info: Info, pagination: Optional[PaginationInput] = None) -> List[MediaItem]:
    """List catalogued books"""
    page = pagination or PaginationInput()
    rows = await info.context.services.books.list_items(page.limit, page.offset)
    return [MediaItem.from_row(row) for row in rows]


@operations.query
async def book_details(info: Info, metadata_id: Identifier) -> Optional[MediaItem]:
    """Get a book by id"""
    data = await info.context.services.books.details(metadata_id)
    return MediaItem.from_cached(data) if data else None


@operations.mutation
async def commit_book(info: Info, input: CommitBookInput) -> MediaItem:
    """Add a book to the catalog"""
    item = await info.context.services.books.commit(
        input.title,
        description=input.description,
        publish_year=input.publish_year,
        pages=input.pages,
        authors=input.authors,
    )
    return MediaItem.from_row(item)
