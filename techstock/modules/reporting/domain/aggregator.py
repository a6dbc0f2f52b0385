import time
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.inventory.domain.catalog_store import (
    ResourceGroupStore,
    SubscriptionStore,
)
from techstock.modules.inventory.domain.query import ScopeFilter
from techstock.modules.inventory.domain.resource_store import ResourceStore
from techstock.schemas.dashboard import (
    CostSummary,
    DashboardSummary,
    HealthSummary,
    SummaryEntry,
)
from techstock.shared.core.ops_metrics import DASHBOARD_SUMMARY_DURATION

logger = structlog.get_logger()

# Synthetic figures: there is no monitoring or billing feed behind these.
HEALTHY_RATIO = 0.85
WARNING_RATIO = 0.10
CRITICAL_RATIO = 0.05
COST_PER_RESOURCE = 12.50
TOP_COST_DRIVER = "Virtual Machines"
NO_COST_DRIVER = "N/A"


def percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return count / total * 100.0


def to_entries(rows: List[Tuple[str, int]], total: int) -> List[SummaryEntry]:
    return [
        SummaryEntry(label=label, count=count, percentage=percentage(count, total))
        for label, count in rows
    ]


def mock_health(total: int) -> HealthSummary:
    return HealthSummary(
        healthy=int(total * HEALTHY_RATIO),
        warning=int(total * WARNING_RATIO),
        critical=int(total * CRITICAL_RATIO),
    )


def mock_cost(total: int) -> CostSummary:
    return CostSummary(
        estimated_monthly_cost=total * COST_PER_RESOURCE,
        top_cost_driver=TOP_COST_DRIVER if total > 0 else NO_COST_DRIVER,
    )


class DashboardAggregator:
    """
    Builds the dashboard rollup: grouped counts per dimension with
    percentages, catalog totals and the synthetic health/cost blocks.

    The reads are independent queries, not one snapshot; a concurrent write
    can make the dimensions disagree by a few rows.
    """

    def __init__(self, db: AsyncSession):
        self.resources = ResourceStore(db)
        self.subscriptions = SubscriptionStore(db)
        self.groups = ResourceGroupStore(db)

    async def summarize(self, scope: Optional[ScopeFilter] = None) -> DashboardSummary:
        if scope is not None and scope.is_empty:
            scope = None
        scoped = scope is not None
        start = time.perf_counter()

        with DASHBOARD_SUMMARY_DURATION.labels(scoped=str(scoped).lower()).time():
            type_counts = await self.resources.count_by("resource_type", scope)
            location_counts = await self.resources.count_by("location", scope)
            environment_counts = await self.resources.count_by("environment", scope)
            total_subscriptions, total_groups = await self._catalog_totals(scope)

        total = sum(count for _, count in type_counts)

        logger.info(
            "dashboard_summary_computed",
            scoped=scoped,
            total_resources=total,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )

        return DashboardSummary(
            total_resources=total,
            total_subscriptions=total_subscriptions,
            total_resource_groups=total_groups,
            total_locations=len(location_counts),
            resource_types=to_entries(type_counts, total),
            locations=to_entries(location_counts, total),
            environments=to_entries(environment_counts, total),
            health_summary=mock_health(total),
            cost_summary=mock_cost(total),
        )

    async def _catalog_totals(self, scope: Optional[ScopeFilter]) -> Tuple[int, int]:
        if scope is None:
            return await self.subscriptions.count(), await self.groups.count()

        if scope.subscription_id is not None:
            subscriptions = 1
        else:
            subscriptions = await self.subscriptions.count()

        if scope.resource_group_id is not None:
            groups = 1
        elif scope.subscription_id is not None:
            groups = await self.groups.count_in_subscription(scope.subscription_id)
        else:
            groups = await self.groups.count()
        return subscriptions, groups
