"""
Request Context

Everything a resolver needs is built once in the application lifespan and
handed to every request through ``AppContext``.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from fastapi import Request
from redis.asyncio import Redis
from strawberry.fastapi import BaseContext

from mediatrack.analytics.summary import SummaryEngine
from mediatrack.config.settings import Settings
from mediatrack.database.models import MetadataLot
from mediatrack.database.store import EntityStore
from mediatrack.domains import (
    AudioBooksService,
    BooksService,
    MediaDomainService,
    MoviesService,
    PodcastsService,
    ShowsService,
    VideoGamesService,
)
from mediatrack.errors import ValidationFailed


@dataclass
class AppServices:
    books: BooksService
    movies: MoviesService
    shows: ShowsService
    video_games: VideoGamesService
    audio_books: AudioBooksService
    podcasts: PodcastsService
    feature_checks: List[Tuple[MetadataLot, Callable[[], bool]]] = field(default_factory=list)

    def __post_init__(self):
        if not self.feature_checks:
            self.feature_checks = [(svc.lot, svc.is_enabled) for svc in self.all()]

    def all(self) -> List[MediaDomainService]:
        return [self.books, self.movies, self.shows, self.video_games, self.audio_books, self.podcasts]

    def for_lot(self, lot: MetadataLot) -> MediaDomainService:
        for service in self.all():
            if service.lot == lot:
                return service
        raise ValidationFailed(f"No media domain for lot {lot!r}")


def build_services(store: EntityStore, settings: Settings, cache: Optional[Redis] = None) -> AppServices:
    return AppServices(
        books=BooksService(store, settings.books, cache),
        movies=MoviesService(store, settings.movies, cache),
        shows=ShowsService(store, settings.shows, cache),
        video_games=VideoGamesService(store, settings.video_games, cache),
        audio_books=AudioBooksService(store, settings.audio_books, cache),
        podcasts=PodcastsService(store, settings.podcasts, cache),
    )


class AppContext(BaseContext):
    def __init__(
        self,
        store: EntityStore,
        summaries: SummaryEngine,
        settings: Settings,
        services: AppServices,
        cache: Optional[Redis] = None,
    ):
        super().__init__()
        self.store = store
        self.summaries = summaries
        self.settings = settings
        self.services = services
        self.cache = cache


async def get_context(request: Request) -> AppContext:
    """strawberry ``context_getter``: shares the lifespan-built state."""
    state = request.app.state
    return AppContext(
        store=state.store,
        summaries=state.summaries,
        settings=state.settings,
        services=state.services,
        cache=state.cache,
    )
