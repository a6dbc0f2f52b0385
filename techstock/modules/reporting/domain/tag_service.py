from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.inventory.domain.resource_store import ResourceStore
from techstock.modules.reporting.domain.tag_index import (
    Suggestion,
    TagIndex,
    build_tag_index,
    suggest_tags,
)
from techstock.shared.core.config import get_settings
from techstock.shared.core.ops_metrics import TAG_INDEX_BUILD_DURATION

logger = structlog.get_logger()


class TagDiscoveryService:
    """Feeds the tag index from a bounded scan of resource tag blobs."""

    def __init__(self, db: AsyncSession):
        self.resources = ResourceStore(db)

    async def _blobs(self) -> list:
        limit = get_settings().FULL_SCAN_LIMIT
        blobs = await self.resources.list_tag_blobs(limit)
        if len(blobs) >= limit:
            logger.warning("tag_scan_truncated", limit=limit)
        return blobs

    async def index(self) -> TagIndex:
        with TAG_INDEX_BUILD_DURATION.labels(operation="index").time():
            return build_tag_index(await self._blobs())

    async def suggestions(self, query: Optional[str]) -> List[Suggestion]:
        with TAG_INDEX_BUILD_DURATION.labels(operation="suggestions").time():
            return suggest_tags(await self._blobs(), query)
