import pytest
from unittest.mock import AsyncMock, patch

from techstock.modules.inventory.domain.query import ScopeFilter
from techstock.modules.reporting.domain.aggregator import (
    DashboardAggregator,
    mock_cost,
    mock_health,
    percentage,
)


async def _seed(factory):
    sub_a = await factory.subscription(name="sub-a")
    sub_b = await factory.subscription(name="sub-b")
    rg_a1 = await factory.resource_group(sub_a, name="rg-a1")
    rg_a2 = await factory.resource_group(sub_a, name="rg-a2")
    rg_b1 = await factory.resource_group(sub_b, name="rg-b1")
    await factory.resource(rg_a1, resource_type="Virtual machine", location="westeurope", environment="PRD")
    await factory.resource(rg_a1, resource_type="Virtual machine", location="westeurope", environment="UAT")
    await factory.resource(rg_a2, resource_type="Disk", location="northeurope")
    await factory.resource(rg_b1, resource_type="Disk", location="eastus", environment="PRD")
    return sub_a, sub_b, rg_a1, rg_a2, rg_b1


def test_percentage_of_empty_total_is_zero():
    assert percentage(5, 0) == 0.0
    assert percentage(1, 4) == 25.0


def test_mock_figures():
    health = mock_health(10)
    assert (health.healthy, health.warning, health.critical) == (8, 1, 0)
    assert mock_cost(4).estimated_monthly_cost == 50.0
    assert mock_cost(4).top_cost_driver == "Virtual Machines"
    assert mock_cost(0).top_cost_driver == "N/A"


@pytest.mark.asyncio
async def test_unscoped_summary(db_session, factory):
    await _seed(factory)

    summary = await DashboardAggregator(db_session).summarize()

    assert summary.total_resources == 4
    assert summary.total_subscriptions == 2
    assert summary.total_resource_groups == 3
    assert summary.total_locations == 3
    assert [(e.label, e.count) for e in summary.resource_types] == [
        ("Disk", 2),
        ("Virtual machine", 2),
    ]
    assert summary.locations[0].label == "westeurope"
    assert summary.locations[0].percentage == pytest.approx(50.0)
    envs = {e.label: e.count for e in summary.environments}
    assert envs == {"PRD": 2, "UAT": 1, "Unknown": 1}
    for entries in (summary.resource_types, summary.locations, summary.environments):
        assert sum(e.percentage for e in entries) == pytest.approx(100.0)


@pytest.mark.asyncio
async def test_empty_catalog_summary(db_session):
    summary = await DashboardAggregator(db_session).summarize()

    assert summary.total_resources == 0
    assert summary.resource_types == []
    assert summary.health_summary.healthy == 0
    assert summary.cost_summary.top_cost_driver == "N/A"


@pytest.mark.asyncio
async def test_subscription_scope_counts_its_groups(db_session, factory):
    sub_a, *_ = await _seed(factory)

    summary = await DashboardAggregator(db_session).summarize(
        ScopeFilter(subscription_id=sub_a.id)
    )

    assert summary.total_resources == 3
    assert summary.total_subscriptions == 1
    assert summary.total_resource_groups == 2
    assert {e.label for e in summary.locations} == {"westeurope", "northeurope"}


@pytest.mark.asyncio
async def test_resource_group_scope_counts_one_group(db_session, factory):
    _, _, rg_a1, _, _ = await _seed(factory)

    summary = await DashboardAggregator(db_session).summarize(
        ScopeFilter(resource_group_id=rg_a1.id)
    )

    assert summary.total_resources == 2
    assert summary.total_resource_groups == 1
    assert summary.total_subscriptions == 2


@pytest.mark.asyncio
async def test_environment_scope_applies_to_every_dimension(db_session, factory):
    await _seed(factory)

    summary = await DashboardAggregator(db_session).summarize(ScopeFilter(environment="PRD"))

    assert summary.total_resources == 2
    assert {e.label for e in summary.locations} == {"westeurope", "eastus"}
    assert [(e.label, e.percentage) for e in summary.environments] == [("PRD", 100.0)]
    assert summary.total_subscriptions == 2
    assert summary.total_resource_groups == 3


@pytest.mark.asyncio
async def test_blank_scope_is_treated_as_unscoped(db_session):
    aggregator = DashboardAggregator(db_session)
    with patch.object(
        aggregator.resources, "count_by", new=AsyncMock(return_value=[])
    ) as count_by:
        await aggregator.summarize(ScopeFilter(location="  "))

    for call in count_by.await_args_list:
        assert call.args[1] is None
