"""
Media Domains

One module per media lot. Each exports ``operations`` (its GraphQL operation
set) and a service class owning the lot's payload.
"""
from .audio_books import AudioBooksService
from .audio_books import operations as audio_books_operations
from .base import MediaDomainService, Specifics
from .books import BooksService
from .books import operations as books_operations
from .movies import MoviesService
from .movies import operations as movies_operations
from .podcasts import PodcastsService
from .podcasts import operations as podcasts_operations
from .shows import ShowsService
from .shows import operations as shows_operations
from .video_games import VideoGamesService
from .video_games import operations as video_games_operations

DOMAIN_OPERATIONS = [
    books_operations,
    movies_operations,
    shows_operations,
    video_games_operations,
    audio_books_operations,
    podcasts_operations,
]

__all__ = [
    "MediaDomainService",
    "Specifics",
    "BooksService",
    "MoviesService",
    "ShowsService",
    "VideoGamesService",
    "AudioBooksService",
    "PodcastsService",
    "DOMAIN_OPERATIONS",
]
