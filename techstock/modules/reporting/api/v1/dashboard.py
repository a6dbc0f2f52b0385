"""
Dashboard API Endpoints for TechStock.
Catalog rollups by type, location and environment, optionally scoped.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.inventory.domain.query import ScopeFilter
from techstock.modules.reporting.domain.aggregator import DashboardAggregator
from techstock.schemas.common import ApiResponse
from techstock.schemas.dashboard import DashboardSummary
from techstock.shared.core.exceptions import InvalidInputError
from techstock.shared.db.session import get_db

router = APIRouter(tags=["Dashboard"])


def _optional_id(raw: Optional[str], name: str) -> Optional[int]:
    # Dashboard filter forms submit "" for "all".
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise InvalidInputError(f"{name} must be an integer", details={"field": name}) from exc


@router.get("/summary", response_model=ApiResponse[DashboardSummary])
async def get_dashboard_summary(
    subscription_id: Optional[str] = Query(None),
    resource_group_id: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    environment: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[DashboardSummary]:
    """
    Counts and percentages per dimension plus catalog totals.

    Health and cost blocks are synthetic estimates.
    """
    scope = ScopeFilter(
        subscription_id=_optional_id(subscription_id, "subscription_id"),
        resource_group_id=_optional_id(resource_group_id, "resource_group_id"),
        location=location,
        environment=environment,
    )
    summary = await DashboardAggregator(db).summarize(scope)
    return ApiResponse[DashboardSummary](data=summary)
