"""
Media Domain Service Base

A domain service owns the payload of its lot (``Metadata.specifics``): it
validates what gets committed, lists the domain's items and serves cached
item details from the secondary store.
"""

from typing import List, Optional, Type

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError
from redis.asyncio import Redis

from mediatrack.config.settings import MediaDomainSettings
from mediatrack.database.models import Metadata, MetadataId, MetadataLot
from mediatrack.database.store import EntityStore
from mediatrack.errors import NotEnabled, ValidationFailed
from mediatrack.serving.cache import CacheManager

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


class Specifics(BaseModel):
    """Base of every domain payload"""

    model_config = ConfigDict(extra="forbid")


class MediaDomainService:
    """
    Shared behaviour of the per-domain services.

    Subclasses set ``lot``, ``feature`` and ``specifics_model``.
    """

    lot: MetadataLot
    feature: str
    specifics_model: Type[Specifics] = Specifics

    def __init__(
        self,
        store: EntityStore,
        settings: MediaDomainSettings,
        cache_client: Optional[Redis] = None,
    ):
        self.store = store
        self.settings = settings
        self.cache = CacheManager(
            f"metadata:{self.lot.value}",
            cache_client,
            default_ttl=settings.cache_ttl_seconds,
        )

    def is_enabled(self) -> bool:
        return self.settings.is_enabled()

    def ensure_enabled(self) -> None:
        if not self.is_enabled():
            raise NotEnabled(self.feature)

    def validate_specifics(self, data: dict) -> dict:
        try:
            specifics = self.specifics_model.model_validate(data)
        except ValidationError as e:
            raise ValidationFailed(
                f"Invalid {self.lot.value} details",
                errors=e.errors(include_url=False),
            ) from e
        return specifics.model_dump(exclude_none=True)

    async def commit(
        self,
        title: str,
        *,
        description: Optional[str] = None,
        publish_year: Optional[int] = None,
        **specifics,
    ) -> Metadata:
        """Create an item of this domain after validating its payload."""
        self.ensure_enabled()
        payload = self.validate_specifics(specifics)
        item = await self.store.create_metadata(
            self.lot,
            title,
            description=description,
            publish_year=publish_year,
            specifics=payload,
        )
        logger.info("Media item committed", lot=self.lot.value, metadata_id=item.id)
        return item

    async def list_items(self, limit: int = 20, offset: int = 0) -> List[Metadata]:
        self.ensure_enabled()
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        return await self.store.list_metadata(self.lot, limit=limit, offset=max(offset, 0))

    async def details(self, metadata_id: MetadataId) -> Optional[dict]:
        """Item details as a JSON-ready dict, served from cache when possible."""
        self.ensure_enabled()

        async def load() -> Optional[dict]:
            item = await self.store.get_metadata(metadata_id)
            if item is None or item.lot != self.lot:
                return None
            return {
                "id": item.id,
                "lot": item.lot.value,
                "title": item.title,
                "description": item.description,
                "publish_year": item.publish_year,
                "specifics": item.specifics or {},
            }

        return await self.cache.get_or_set(str(metadata_id), load)

    async def forget(self, metadata_id: MetadataId) -> None:
        """Drop cached details after the item changed or disappeared."""
        await self.cache.delete(str(metadata_id))
