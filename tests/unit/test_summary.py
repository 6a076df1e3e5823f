"""
Unit Tests - Summary Aggregation
"""
import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from mediatrack.analytics import Interaction, SummaryCounters, SummaryRefresher, compute_counters
from mediatrack.database.inputs import ReviewInput, SeenInput
from mediatrack.database.models import SUMMARY_COUNTERS, MetadataLot
from mediatrack.errors import Conflict, Internal, ReferenceNotFound


def show_episode(metadata_id, season, episode, runtime=30):
    return Interaction(
        metadata_id=metadata_id,
        lot=MetadataLot.SHOW,
        specifics={"episode_runtime": runtime},
        extra_information={"kind": "show", "season": season, "episode": episode},
    )


async def retry_on_conflict(operation, attempts=50):
    """SQLite reports competing writers as Conflict; retry those"""
    for _ in range(attempts):
        try:
            return await operation()
        except Conflict:
            await asyncio.sleep(0.01)
    raise AssertionError(f"still conflicting after {attempts} attempts")


class TestComputeCounters:
    """Tests for the pure counter derivation"""

    def test_no_interactions(self):
        assert compute_counters([]) == SummaryCounters()

    def test_books_counted_once_per_item(self):
        """Test repeated reviews of one book count it once"""
        counters = compute_counters([
            Interaction(1, MetadataLot.BOOK, {"pages": 300}),
            Interaction(1, MetadataLot.BOOK, {"pages": 300}),
            Interaction(2, MetadataLot.BOOK, {"pages": 120}),
        ])

        assert counters.books_read == 2
        assert counters.books_pages == 420

    def test_malformed_payload_counts_zero(self):
        counters = compute_counters([
            Interaction(1, MetadataLot.MOVIE, {"runtime": "90"}),
            Interaction(2, MetadataLot.MOVIE, {"runtime": True}),
            Interaction(3, MetadataLot.MOVIE, {"runtime": -5}),
            Interaction(4, MetadataLot.MOVIE, {}),
            Interaction(5, MetadataLot.MOVIE, {"runtime": 100}),
        ])

        assert counters.movies_watched == 5
        assert counters.movies_runtime == 100

    def test_show_episodes_and_seasons(self):
        counters = compute_counters([
            show_episode(7, 1, 1),
            show_episode(7, 1, 1),
            show_episode(7, 1, 2),
            show_episode(7, 2, 1),
            Interaction(8, MetadataLot.SHOW, {"episode_runtime": 45}),
        ])

        assert counters.shows_watched == 2
        assert counters.shows_episodes_watched == 3
        assert counters.shows_seasons_watched == 2
        assert counters.shows_runtime == 90

    def test_podcasts(self):
        counters = compute_counters([
            Interaction(3, MetadataLot.PODCAST, {"episode_runtime": 40}, {"kind": "podcast", "episode": 1}),
            Interaction(3, MetadataLot.PODCAST, {"episode_runtime": 40}, {"kind": "podcast", "episode": 2}),
            Interaction(3, MetadataLot.PODCAST, {"episode_runtime": 40}, {"kind": "podcast", "episode": 2}),
        ])

        assert counters.podcasts_played == 1
        assert counters.podcasts_runtime == 80

    def test_other_lots(self):
        counters = compute_counters([
            Interaction(1, MetadataLot.VIDEO_GAME, {}),
            Interaction(2, MetadataLot.AUDIO_BOOK, {"runtime": 600}),
        ])

        assert counters.video_games_played == 1
        assert counters.audio_books_played == 1
        assert counters.audio_books_runtime == 600

    def test_counter_names_match_table(self):
        assert set(SummaryCounters().as_dict()) == set(SUMMARY_COUNTERS)


class TestSummaryEngine:
    """Tests for recompute against the store"""

    async def test_counts_reviews_and_finished_progress(self, store, summaries, user, book):
        movie = await store.create_metadata(MetadataLot.MOVIE, "Heat", specifics={"runtime": 170})
        unfinished = await store.create_metadata(MetadataLot.MOVIE, "Alien", specifics={"runtime": 117})
        await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=book.id))
        await store.create_seen(SeenInput.build(user_id=user.id, metadata_id=movie.id))
        await store.create_seen(SeenInput.build(user_id=user.id, metadata_id=unfinished.id, progress=50))

        summary = await summaries.recompute(user.id)

        assert summary.books_read == 1
        assert summary.books_pages == 662
        assert summary.movies_watched == 1
        assert summary.movies_runtime == 170

    async def test_idempotent(self, store, summaries, user, book):
        """Test recomputing twice yields identical counters and one row"""
        await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=book.id))

        first = await summaries.recompute(user.id)
        second = await summaries.recompute(user.id)

        assert first.id == second.id
        assert {n: getattr(first, n) for n in SUMMARY_COUNTERS} == {n: getattr(second, n) for n in SUMMARY_COUNTERS}
        assert await store.count_summaries(user.id) == 1

    async def test_replaces_previous_counters(self, store, summaries, user, book):
        review = await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=book.id))
        assert (await summaries.recompute(user.id)).books_read == 1

        await store.delete_review(review.id)

        assert (await summaries.recompute(user.id)).books_read == 0
        assert (await store.get_summary(user.id)).books_read == 0

    async def test_concurrent_recomputes_one_row(self, store, summaries, user, book):
        """Test parallel recomputes for one user serialize to one consistent row"""
        await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=book.id))

        results = await asyncio.gather(*(summaries.recompute(user.id) for _ in range(10)))

        assert await store.count_summaries(user.id) == 1
        assert {r.books_read for r in results} == {1}
        assert len(summaries.locks) == 0

    async def test_concurrent_recomputes_with_writes(self, store, summaries, user):
        """Test recomputes racing review writes keep one row built from one snapshot"""
        # pages are powers of two, so books_pages names the exact set of books counted
        books = [
            await store.create_metadata(MetadataLot.BOOK, f"Book {i}", specifics={"pages": 2 ** i})
            for i in range(6)
        ]
        removed = [
            await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=b.id))
            for b in books[:3]
        ]

        writes = [
            *(
                retry_on_conflict(
                    lambda b=b: store.create_review(ReviewInput.build(user_id=user.id, metadata_id=b.id))
                )
                for b in books[3:]
            ),
            *(retry_on_conflict(lambda r=r: store.delete_review(r.id)) for r in removed),
        ]
        recomputes = [retry_on_conflict(lambda: summaries.recompute(user.id)) for _ in range(8)]

        results = await asyncio.gather(*writes, *recomputes)

        for summary in results[len(writes):]:
            assert 0 <= summary.books_read <= 6
            assert bin(summary.books_pages).count("1") == summary.books_read
        assert await store.count_summaries(user.id) == 1

        final = await summaries.recompute(user.id)
        stored = await store.get_summary(user.id)
        assert (final.books_read, final.books_pages) == (3, 8 + 16 + 32)
        assert (stored.id, stored.books_read, stored.books_pages) == (final.id, 3, 56)
        assert len(summaries.locks) == 0

    async def test_failed_recompute_keeps_previous_summary(self, store, summaries, user, book, monkeypatch):
        """Test a storage failure mid recompute leaves the stored row untouched"""
        await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=book.id))
        previous = await summaries.recompute(user.id)
        other = await store.create_metadata(MetadataLot.BOOK, "The Wise Man's Fear", specifics={"pages": 994})
        await store.create_review(ReviewInput.build(user_id=user.id, metadata_id=other.id))

        async def failing_load(db, user_id):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(summaries, "_load_interactions", failing_load)

        with pytest.raises(Internal):
            await summaries.recompute(user.id)

        stored = await store.get_summary(user.id)
        assert stored.id == previous.id
        assert (stored.books_read, stored.books_pages) == (1, 662)
        assert await store.count_summaries(user.id) == 1
        assert len(summaries.locks) == 0

    async def test_unknown_user(self, store, summaries):
        with pytest.raises(ReferenceNotFound):
            await summaries.recompute(404)

        assert await store.count_summaries(404) == 0

    async def test_recompute_all(self, store, summaries, book):
        users = [await store.create_user(f"u{i}", "x") for i in range(3)]
        await store.create_review(ReviewInput.build(user_id=users[0].id, metadata_id=book.id))

        assert await summaries.recompute_all(concurrency=1) == 3
        assert (await store.get_summary(users[0].id)).books_read == 1
        assert (await store.get_summary(users[2].id)).books_read == 0


class TestSummaryRefresher:
    """Tests for the periodic job"""

    async def test_runs_and_stops(self, store, summaries, user):
        refresher = SummaryRefresher(summaries, interval_seconds=0.01, concurrency=1)

        refresher.start()
        assert refresher.running
        for _ in range(200):
            if await store.get_summary(user.id) is not None:
                break
            await asyncio.sleep(0.01)
        await refresher.stop()

        assert not refresher.running
        assert await store.count_summaries(user.id) == 1

    async def test_stop_without_start(self, summaries):
        refresher = SummaryRefresher(summaries, interval_seconds=10)

        await refresher.stop()

        assert not refresher.running
