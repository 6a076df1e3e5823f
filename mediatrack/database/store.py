"""
Entity Store

Typed create/read/update/delete operations over users, metadata, reviews,
progress history, summaries and the user-metadata association.

Every operation runs in its own session. Storage failures are translated into
the error taxonomy of ``mediatrack.errors``; cascades across the entity graph
are left to the database's foreign keys.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncGenerator, List, Optional, Set

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediatrack.database.associations import (
    PostInsertHook,
    associate_user_with_metadata,
    run_post_commit,
)
from mediatrack.database.connection import session_scope
from mediatrack.database.inputs import ReviewInput, ReviewUpdate, SeenInput
from mediatrack.database.models import (
    Metadata,
    MetadataId,
    MetadataLot,
    Review,
    ReviewId,
    Seen,
    SeenId,
    Summary,
    User,
    UserId,
    UserToMetadata,
    utcnow,
)
from mediatrack.database.progress import validate_for_lot
from mediatrack.errors import (
    Conflict,
    Internal,
    NotFound,
    ReferenceNotFound,
    TrackerError,
    ValidationFailed,
)

logger = structlog.get_logger(__name__)

FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
CONFLICT_STATES = {"40001", "40P01"}

METADATA_FIELDS = {"title", "description", "publish_year", "specifics"}


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def translate_storage_error(exc: SQLAlchemyError) -> TrackerError:
    """Map a SQLAlchemy failure onto the error taxonomy."""
    code = _sqlstate(exc)
    message = str(getattr(exc, "orig", exc))
    if isinstance(exc, IntegrityError):
        if code == FOREIGN_KEY_VIOLATION or "FOREIGN KEY" in message.upper():
            return ReferenceNotFound("Referenced row", None)
        if code == UNIQUE_VIOLATION or "UNIQUE" in message.upper():
            return Conflict("A row with the same key was written concurrently")
    if isinstance(exc, OperationalError):
        if code in CONFLICT_STATES or "database is locked" in message:
            return Conflict("Concurrent write conflict, retry the operation")
    return Internal(f"Storage failure: {type(exc).__name__}")


def _clean_text(value: str, field: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationFailed(f"{field} must not be blank", field=field)
    if len(cleaned) > max_length:
        raise ValidationFailed(f"{field} must be at most {max_length} characters", field=field)
    return cleaned


class EntityStore:
    """
    Persistence gateway used by every resolver.

    Example:
        store = EntityStore(create_session_factory(engine))
        user = await store.create_user("ignisda", "hash")
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.post_insert_hooks: List[PostInsertHook] = [self.associate]
        self._pending: Set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Sessions and hooks
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """One session, committed on success, with storage errors translated."""
        try:
            async with session_scope(self.session_factory) as db:
                yield db
        except TrackerError:
            raise
        except SQLAlchemyError as e:
            error = translate_storage_error(e)
            log = logger.warning if isinstance(error, (Conflict, ReferenceNotFound)) else logger.error
            log("Storage operation failed", error=str(e), error_type=type(e).__name__, kind=error.kind)
            raise error from e

    async def associate(self, user_id: UserId, metadata_id: MetadataId) -> None:
        await associate_user_with_metadata(self.session_factory, user_id, metadata_id)

    async def _after_insert(self, user_id: UserId, metadata_id: MetadataId) -> None:
        """
        Run post-insert hooks after the insert has committed.

        Hooks run as their own tasks: a cancelled caller stops waiting but
        the hooks still finish.
        """
        tasks = []
        for hook in self.post_insert_hooks:
            task = asyncio.create_task(run_post_commit(hook, user_id, metadata_id))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        if tasks:
            await asyncio.shield(asyncio.gather(*tasks))

    async def drain(self) -> None:
        """Wait for post-insert hooks still running."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    async def _require(db: AsyncSession, model, entity_id: int, entity: str):
        row = await db.get(model, entity_id)
        if row is None:
            raise ReferenceNotFound(entity, entity_id)
        return row

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def create_user(self, username: str, password: str) -> User:
        name = _clean_text(username, "username", 100)
        async with self.transaction() as db:
            taken = await db.scalar(select(User.id).where(User.username == name))
            if taken is not None:
                raise Conflict(f"Username {name!r} is already taken", username=name)
            user = User(username=name, password=password)
            db.add(user)
            await db.flush()
        logger.info("User created", user_id=user.id)
        return user

    async def get_user(self, user_id: UserId) -> Optional[User]:
        async with self.transaction() as db:
            return await db.get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self.transaction() as db:
            return await db.scalar(select(User).where(User.username == username.strip()))

    async def list_users(self) -> List[User]:
        async with self.transaction() as db:
            return list((await db.scalars(select(User).order_by(User.id))).all())

    async def list_user_ids(self) -> List[UserId]:
        async with self.transaction() as db:
            result = await db.scalars(select(User.id).order_by(User.id))
            return [UserId(i) for i in result.all()]

    async def update_user(self, user_id: UserId, *, username: str) -> User:
        name = _clean_text(username, "username", 100)
        async with self.transaction() as db:
            user = await db.get(User, user_id)
            if user is None:
                raise NotFound("User", user_id)
            taken = await db.scalar(
                select(User.id).where(User.username == name, User.id != user_id)
            )
            if taken is not None:
                raise Conflict(f"Username {name!r} is already taken", username=name)
            user.username = name
            await db.flush()
        logger.info("User updated", user_id=user_id)
        return user

    async def delete_user(self, user_id: UserId) -> bool:
        """Delete a user; reviews, progress, associations and summary cascade."""
        async with self.transaction() as db:
            result = await db.execute(delete(User).where(User.id == user_id))
        deleted = result.rowcount > 0
        logger.info("User deleted", user_id=user_id, deleted=deleted)
        return deleted

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    async def create_metadata(
        self,
        lot: MetadataLot,
        title: str,
        *,
        description: Optional[str] = None,
        publish_year: Optional[int] = None,
        specifics: Optional[dict] = None,
    ) -> Metadata:
        item = Metadata(
            lot=MetadataLot(lot),
            title=_clean_text(title, "title", 500),
            description=description,
            publish_year=publish_year,
            specifics=dict(specifics or {}),
        )
        async with self.transaction() as db:
            db.add(item)
            await db.flush()
        logger.info("Metadata created", metadata_id=item.id, lot=item.lot.value)
        return item

    async def get_metadata(self, metadata_id: MetadataId) -> Optional[Metadata]:
        async with self.transaction() as db:
            return await db.get(Metadata, metadata_id)

    async def list_metadata(
        self,
        lot: Optional[MetadataLot] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Metadata]:
        query = select(Metadata)
        if lot is not None:
            query = query.where(Metadata.lot == MetadataLot(lot))
        query = query.order_by(Metadata.id).offset(offset).limit(limit)
        async with self.transaction() as db:
            return list((await db.scalars(query)).all())

    async def update_metadata(self, metadata_id: MetadataId, **fields) -> Metadata:
        unknown = set(fields) - METADATA_FIELDS
        if unknown:
            raise ValidationFailed(f"Unknown metadata fields: {', '.join(sorted(unknown))}")
        if "title" in fields:
            fields["title"] = _clean_text(fields["title"], "title", 500)
        async with self.transaction() as db:
            item = await db.get(Metadata, metadata_id)
            if item is None:
                raise NotFound("Metadata", metadata_id)
            for key, value in fields.items():
                setattr(item, key, value)
            await db.flush()
        return item

    async def delete_metadata(self, metadata_id: MetadataId) -> bool:
        """Delete an item; its reviews, progress and associations cascade."""
        async with self.transaction() as db:
            result = await db.execute(delete(Metadata).where(Metadata.id == metadata_id))
        deleted = result.rowcount > 0
        logger.info("Metadata deleted", metadata_id=metadata_id, deleted=deleted)
        return deleted

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    async def create_review(self, data: ReviewInput) -> Review:
        """
        Persist a review, then run the post-insert hooks.

        Raises:
            ReferenceNotFound: user or metadata missing; nothing is written
            ValidationFailed: progress payload does not fit the item
        """
        async with self.transaction() as db:
            await self._require(db, User, data.user_id, "User")
            item = await self._require(db, Metadata, data.metadata_id, "Metadata")
            review = Review(
                posted_on=data.posted_on or utcnow(),
                rating=data.rating,
                text=data.text,
                visibility=data.visibility,
                spoiler=data.spoiler,
                user_id=data.user_id,
                metadata_id=data.metadata_id,
                extra_information=validate_for_lot(data.extra_information, item.lot),
                identifier=data.identifier,
            )
            db.add(review)
            await db.flush()

        logger.info("Review posted", review_id=review.id, user_id=review.user_id, metadata_id=review.metadata_id)
        await self._after_insert(UserId(review.user_id), MetadataId(review.metadata_id))
        return review

    async def get_review(self, review_id: ReviewId) -> Optional[Review]:
        async with self.transaction() as db:
            return await db.get(Review, review_id)

    async def list_reviews(
        self,
        user_id: Optional[UserId] = None,
        metadata_id: Optional[MetadataId] = None,
    ) -> List[Review]:
        query = select(Review)
        if user_id is not None:
            query = query.where(Review.user_id == user_id)
        if metadata_id is not None:
            query = query.where(Review.metadata_id == metadata_id)
        query = query.order_by(Review.posted_on, Review.id)
        async with self.transaction() as db:
            return list((await db.scalars(query)).all())

    async def update_review(self, review_id: ReviewId, data: ReviewUpdate) -> Review:
        changes = data.changes()
        async with self.transaction() as db:
            review = await db.get(Review, review_id)
            if review is None:
                raise NotFound("Review", review_id)
            if "extra_information" in changes:
                item = await db.get(Metadata, review.metadata_id)
                changes["extra_information"] = validate_for_lot(changes["extra_information"], item.lot)
            for key, value in changes.items():
                setattr(review, key, value)
            await db.flush()
        logger.info("Review updated", review_id=review_id, fields=sorted(changes))
        return review

    async def delete_review(self, review_id: ReviewId) -> bool:
        async with self.transaction() as db:
            result = await db.execute(delete(Review).where(Review.id == review_id))
        return result.rowcount > 0

    # -------------------------------------------------------------------------
    # Progress history
    # -------------------------------------------------------------------------

    async def create_seen(self, data: SeenInput) -> Seen:
        """Record progress on an item; finished records default to today."""
        if data.started_on and data.finished_on and data.finished_on < data.started_on:
            raise ValidationFailed("finished_on must not be before started_on")
        finished_on = data.finished_on
        if finished_on is None and data.progress == 100:
            finished_on = date.today()

        async with self.transaction() as db:
            await self._require(db, User, data.user_id, "User")
            item = await self._require(db, Metadata, data.metadata_id, "Metadata")
            seen = Seen(
                progress=data.progress,
                started_on=data.started_on,
                finished_on=finished_on,
                user_id=data.user_id,
                metadata_id=data.metadata_id,
                extra_information=validate_for_lot(data.extra_information, item.lot),
            )
            db.add(seen)
            await db.flush()

        logger.info("Progress recorded", seen_id=seen.id, user_id=seen.user_id, progress=seen.progress)
        await self._after_insert(UserId(seen.user_id), MetadataId(seen.metadata_id))
        return seen

    async def get_seen(self, seen_id: SeenId) -> Optional[Seen]:
        async with self.transaction() as db:
            return await db.get(Seen, seen_id)

    async def list_seen(self, user_id: UserId, metadata_id: Optional[MetadataId] = None) -> List[Seen]:
        query = select(Seen).where(Seen.user_id == user_id)
        if metadata_id is not None:
            query = query.where(Seen.metadata_id == metadata_id)
        query = query.order_by(Seen.last_updated_on, Seen.id)
        async with self.transaction() as db:
            return list((await db.scalars(query)).all())

    async def delete_seen(self, seen_id: SeenId) -> bool:
        async with self.transaction() as db:
            result = await db.execute(delete(Seen).where(Seen.id == seen_id))
        return result.rowcount > 0

    # -------------------------------------------------------------------------
    # Summaries and associations (read side)
    # -------------------------------------------------------------------------

    async def get_summary(self, user_id: UserId) -> Optional[Summary]:
        async with self.transaction() as db:
            return await db.scalar(select(Summary).where(Summary.user_id == user_id))

    async def count_summaries(self, user_id: UserId) -> int:
        async with self.transaction() as db:
            return await db.scalar(
                select(func.count(Summary.id)).where(Summary.user_id == user_id)
            )

    async def has_association(self, user_id: UserId, metadata_id: MetadataId) -> bool:
        return await self.count_associations(user_id, metadata_id) > 0

    async def count_associations(self, user_id: UserId, metadata_id: MetadataId) -> int:
        async with self.transaction() as db:
            return await db.scalar(
                select(func.count()).select_from(UserToMetadata).where(
                    UserToMetadata.user_id == user_id,
                    UserToMetadata.metadata_id == metadata_id,
                )
            )

    async def list_associated_metadata(self, user_id: UserId) -> List[MetadataId]:
        async with self.transaction() as db:
            result = await db.scalars(
                select(UserToMetadata.metadata_id)
                .where(UserToMetadata.user_id == user_id)
                .order_by(UserToMetadata.metadata_id)
            )
            return [MetadataId(i) for i in result.all()]
