"""
User-Metadata Association

Post-commit side effect of review and progress inserts. The association table
is a derived index, so its writes are best-effort: a failure is logged and
discarded by ``run_post_commit`` and never reaches the primary write.
"""

from typing import Awaitable, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediatrack.database.connection import session_scope
from mediatrack.database.models import MetadataId, UserId, UserToMetadata, utcnow

logger = structlog.get_logger(__name__)

PostInsertHook = Callable[[UserId, MetadataId], Awaitable[None]]

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def associate_user_with_metadata(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: UserId,
    metadata_id: MetadataId,
) -> None:
    """
    Record that ``user_id`` interacted with ``metadata_id``.

    A single INSERT ... ON CONFLICT DO NOTHING, so the write is atomic and
    repeated calls for the same pair leave exactly one row.
    """
    values = {"user_id": user_id, "metadata_id": metadata_id, "created_on": utcnow()}
    async with session_scope(session_factory) as db:
        dialect = db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is not None:
            stmt = insert(UserToMetadata).values(**values).on_conflict_do_nothing(
                index_elements=["user_id", "metadata_id"]
            )
            await db.execute(stmt)
            return

        existing = await db.scalar(
            select(UserToMetadata.user_id).where(
                UserToMetadata.user_id == user_id,
                UserToMetadata.metadata_id == metadata_id,
            )
        )
        if existing is None:
            db.add(UserToMetadata(**values))


async def run_post_commit(hook: PostInsertHook, user_id: UserId, metadata_id: MetadataId) -> None:
    """Run a post-commit hook, logging and discarding any failure."""
    try:
        await hook(user_id, metadata_id)
    except Exception as e:
        logger.warning(
            "Post-commit hook failed",
            hook=getattr(hook, "__name__", repr(hook)),
            user_id=user_id,
            metadata_id=metadata_id,
            error=str(e),
            error_type=type(e).__name__,
        )
