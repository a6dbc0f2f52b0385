import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def seeded(factory, db_session):
    sub_a = await factory.subscription(name="sub-a")
    sub_b = await factory.subscription(name="sub-b")
    rg_a1 = await factory.resource_group(sub_a)
    rg_a2 = await factory.resource_group(sub_a)
    rg_b1 = await factory.resource_group(sub_b)
    await factory.resource(rg_a1, environment="PRD", tags={"Env": "prod", "Provisioner": "terraform"})
    await factory.resource(rg_a1, environment="PRD", tags={"Env": "prod"})
    await factory.resource(rg_a2, location="northeurope", tags={"Env": "prod"})
    await factory.resource(rg_b1, location="eastus", tags={"Env": "dev"})
    await db_session.commit()
    return {"sub_a": sub_a, "rg_a1": rg_a1}


@pytest.mark.asyncio
async def test_dashboard_summary_unscoped(ac, seeded):
    response = await ac.get("/api/v1/dashboard/summary")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_resources"] == 4
    assert data["total_subscriptions"] == 2
    assert data["total_resource_groups"] == 3
    assert data["total_locations"] == 3
    assert data["cost_summary"] == {
        "estimated_monthly_cost": 50.0,
        "top_cost_driver": "Virtual Machines",
    }
    assert data["health_summary"] == {"healthy": 3, "warning": 0, "critical": 0}


@pytest.mark.asyncio
async def test_dashboard_summary_scoped_by_subscription(ac, seeded):
    response = await ac.get(
        "/api/v1/dashboard/summary",
        params={"subscription_id": seeded["sub_a"].id, "resource_group_id": ""},
    )
    data = response.json()["data"]
    assert data["total_resources"] == 3
    assert data["total_subscriptions"] == 1
    assert data["total_resource_groups"] == 2


@pytest.mark.asyncio
async def test_dashboard_summary_scoped_by_group(ac, seeded):
    response = await ac.get(
        "/api/v1/dashboard/summary", params={"resource_group_id": seeded["rg_a1"].id}
    )
    data = response.json()["data"]
    assert data["total_resources"] == 2
    assert data["total_resource_groups"] == 1
    assert [(e["label"], e["percentage"]) for e in data["environments"]] == [("PRD", 100.0)]


@pytest.mark.asyncio
async def test_dashboard_summary_rejects_non_numeric_scope(ac):
    response = await ac.get("/api/v1/dashboard/summary", params={"subscription_id": "abc"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_tags_index(ac, seeded):
    response = await ac.get("/api/v1/tags")
    data = response.json()["data"]
    assert data["tags"]["Env"] == ["dev", "prod"]
    assert data["popular_tags"][0] == {"key": "Env", "value": "prod", "count": 3}


@pytest.mark.asyncio
async def test_tag_suggestions(ac, seeded):
    response = await ac.get("/api/v1/tags/suggestions", params={"q": "pro"})
    displays = [s["display"] for s in response.json()["data"]]
    assert displays == ["Env:prod", "Provisioner:terraform"]


@pytest.mark.asyncio
async def test_metrics_endpoint_is_mounted(ac):
    response = await ac.get("/metrics/")
    assert response.status_code == 200
    assert "techstock_api_errors_total" in response.text
