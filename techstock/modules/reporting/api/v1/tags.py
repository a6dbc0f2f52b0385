from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.reporting.domain.tag_service import TagDiscoveryService
from techstock.schemas.common import ApiResponse
from techstock.schemas.tags import TagSuggestion, TagsResponse, TagUsage
from techstock.shared.db.session import get_db

router = APIRouter(tags=["Tags"])


@router.get("", response_model=ApiResponse[TagsResponse])
async def get_available_tags(db: AsyncSession = Depends(get_db)) -> ApiResponse[TagsResponse]:
    """All tag keys with their distinct values, plus the 20 most used pairs."""
    index = await TagDiscoveryService(db).index()
    return ApiResponse[TagsResponse](
        data=TagsResponse(
            tags=index.tag_values_by_key,
            popular_tags=[
                TagUsage(key=t.key, value=t.value, count=t.count) for t in index.popular_tags
            ],
        )
    )


@router.get("/suggestions", response_model=ApiResponse[List[TagSuggestion]])
async def get_tag_suggestions(
    q: Optional[str] = Query(None, description="Substring of a tag key or value"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[TagSuggestion]]:
    suggestions = await TagDiscoveryService(db).suggestions(q)
    return ApiResponse[List[TagSuggestion]](
        data=[TagSuggestion(key=s.key, value=s.value, display=s.display) for s in suggestions]
    )
