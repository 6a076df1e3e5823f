"""
Summary Aggregation Engine

Computes the per-user rollup counters from reviews and finished progress
records across every media domain, and writes them as one full replacement
of the user's summary row.

Policy:
- counters are recomputed from scratch on every run, never incremented
- at most one recompute per user is in flight (``KeyedLock`` in process,
  an advisory transaction lock on PostgreSQL across processes)
- the read and the replace share one transaction, so a failure leaves the
  previous summary untouched
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import structlog
from sqlalchemy import select, text

from mediatrack.analytics.locks import KeyedLock
from mediatrack.database.models import (
    SUMMARY_COUNTERS,
    Metadata,
    MetadataLot,
    Review,
    Seen,
    Summary,
    User,
    UserId,
    utcnow,
)
from mediatrack.database.progress import (
    PodcastExtraInformation,
    ShowExtraInformation,
    load_extra_information,
)
from mediatrack.database.store import EntityStore
from mediatrack.errors import ReferenceNotFound, TrackerError

logger = structlog.get_logger(__name__)

FINISHED_PROGRESS = 100


@dataclass(frozen=True)
class Interaction:
    """One review or finished progress record joined with its item"""
    metadata_id: int
    lot: MetadataLot
    specifics: Dict[str, Any]
    extra_information: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class SummaryCounters:
    """Rollup counters; absence of activity is zero"""
    books_pages: int = 0
    books_read: int = 0
    movies_runtime: int = 0
    movies_watched: int = 0
    shows_runtime: int = 0
    shows_watched: int = 0
    shows_episodes_watched: int = 0
    shows_seasons_watched: int = 0
    video_games_played: int = 0
    audio_books_runtime: int = 0
    audio_books_played: int = 0
    podcasts_runtime: int = 0
    podcasts_played: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _payload_int(specifics: Dict[str, Any], key: str) -> int:
    """Non-negative integer from a domain payload, 0 when absent or malformed."""
    value = (specifics or {}).get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(value, 0)


def compute_counters(interactions: Iterable[Interaction]) -> SummaryCounters:
    """
    Derive the summary counters from a user's interactions.

    Items are counted once per metadata id however many reviews or progress
    records mention them; show and podcast episodes are counted once per
    (item, season, episode).
    """
    items: Dict[MetadataLot, Dict[int, Dict[str, Any]]] = {lot: {} for lot in MetadataLot}
    show_episodes: Set[Tuple[int, int, int]] = set()
    podcast_episodes: Set[Tuple[int, int]] = set()

    for interaction in interactions:
        items[interaction.lot][interaction.metadata_id] = interaction.specifics or {}
        extra = load_extra_information(interaction.extra_information)
        if interaction.lot == MetadataLot.SHOW and isinstance(extra, ShowExtraInformation):
            show_episodes.add((interaction.metadata_id, extra.season, extra.episode))
        elif interaction.lot == MetadataLot.PODCAST and isinstance(extra, PodcastExtraInformation):
            podcast_episodes.add((interaction.metadata_id, extra.episode))

    def total(lot: MetadataLot, key: str) -> int:
        return sum(_payload_int(s, key) for s in items[lot].values())

    shows = items[MetadataLot.SHOW]
    podcasts = items[MetadataLot.PODCAST]

    return SummaryCounters(
        books_pages=total(MetadataLot.BOOK, "pages"),
        books_read=len(items[MetadataLot.BOOK]),
        movies_runtime=total(MetadataLot.MOVIE, "runtime"),
        movies_watched=len(items[MetadataLot.MOVIE]),
        shows_runtime=sum(
            _payload_int(shows[show_id], "episode_runtime") for show_id, _, _ in show_episodes
        ),
        shows_watched=len(shows),
        shows_episodes_watched=len(show_episodes),
        shows_seasons_watched=len({(show_id, season) for show_id, season, _ in show_episodes}),
        video_games_played=len(items[MetadataLot.VIDEO_GAME]),
        audio_books_runtime=total(MetadataLot.AUDIO_BOOK, "runtime"),
        audio_books_played=len(items[MetadataLot.AUDIO_BOOK]),
        podcasts_runtime=sum(
            _payload_int(podcasts[podcast_id], "episode_runtime") for podcast_id, _ in podcast_episodes
        ),
        podcasts_played=len(podcasts),
    )


class SummaryEngine:
    """
    Stateless between calls apart from the per-user locks.

    Example:
        engine = SummaryEngine(store)
        summary = await engine.recompute(user_id)
    """

    def __init__(self, store: EntityStore, locks: Optional[KeyedLock] = None):
        self.store = store
        self.locks = locks or KeyedLock()

    async def _load_interactions(self, db, user_id: UserId) -> List[Interaction]:
        reviewed = await db.execute(
            select(Metadata.id, Metadata.lot, Metadata.specifics, Review.extra_information)
            .join(Review, Review.metadata_id == Metadata.id)
            .where(Review.user_id == user_id)
            .order_by(Review.id)
        )
        finished = await db.execute(
            select(Metadata.id, Metadata.lot, Metadata.specifics, Seen.extra_information)
            .join(Seen, Seen.metadata_id == Metadata.id)
            .where(Seen.user_id == user_id, Seen.progress == FINISHED_PROGRESS)
            .order_by(Seen.id)
        )
        return [
            Interaction(metadata_id=row[0], lot=row[1], specifics=row[2] or {}, extra_information=row[3])
            for result in (reviewed, finished)
            for row in result.all()
        ]

    async def recompute(self, user_id: UserId) -> Summary:
        """
        Rebuild the summary of ``user_id`` from the stored data.

        Raises:
            ReferenceNotFound: the user does not exist
            Internal: the store failed; the previous summary is kept
        """
        async with self.locks.hold(user_id):
            async with self.store.transaction() as db:
                if db.get_bind().dialect.name == "postgresql":
                    await db.execute(
                        text("SELECT pg_advisory_xact_lock(:key)"), {"key": int(user_id)}
                    )
                user = await db.get(User, user_id)
                if user is None:
                    raise ReferenceNotFound("User", user_id)

                interactions = await self._load_interactions(db, user_id)
                counters = compute_counters(interactions).as_dict()

                summary = await db.scalar(
                    select(Summary).where(Summary.user_id == user_id).with_for_update()
                )
                if summary is None:
                    summary = Summary(user_id=user_id)
                    db.add(summary)
                for name in SUMMARY_COUNTERS:
                    setattr(summary, name, counters[name])
                summary.created_on = utcnow()
                await db.flush()

        logger.info("Summary recomputed", user_id=user_id, interactions=len(interactions))
        return summary

    async def recompute_all(self, concurrency: int = 4) -> int:
        """
        Recompute every user's summary, ``concurrency`` users at a time.

        Failures are logged per user; returns the number of successful runs.
        """
        semaphore = asyncio.Semaphore(max(concurrency, 1))
        user_ids = await self.store.list_user_ids()

        async def run(user_id: UserId) -> bool:
            async with semaphore:
                try:
                    await self.recompute(user_id)
                    return True
                except TrackerError as e:
                    logger.warning("Summary recompute failed", user_id=user_id, kind=e.kind, error=e.message)
                    return False

        results = await asyncio.gather(*(run(user_id) for user_id in user_ids))
        succeeded = sum(results)
        logger.info("Summaries recomputed", users=len(user_ids), succeeded=succeeded)
        return succeeded
