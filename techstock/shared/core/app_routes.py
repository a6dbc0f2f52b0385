from typing import Annotated, Any

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import Gauge
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.shared.db.session import get_db

SYSTEM_HEALTH = Gauge(
    "techstock_system_health",
    "System health status (1=healthy, 0=unhealthy)",
)

API_PREFIXES = {
    "/api/v1/resources",
    "/api/v1/subscriptions",
    "/api/v1/resource-groups",
    "/api/v1/applications",
    "/api/v1/dashboard",
    "/api/v1/tags",
}


def _validate_router_registry(routes: list[tuple[Any, str]]) -> None:
    seen_prefixes: set[str] = set()
    for router, prefix in routes:
        if not getattr(router, "routes", None):
            raise RuntimeError("Router registry includes an empty router definition")
        if prefix in seen_prefixes:
            raise RuntimeError(f"Duplicate router prefix registered: {prefix}")
        seen_prefixes.add(prefix)

    missing_prefixes = sorted(API_PREFIXES - seen_prefixes)
    if missing_prefixes:
        raise RuntimeError(
            "Router registry is missing required API prefixes: "
            + ", ".join(missing_prefixes)
        )


def register_lifecycle_routes(
    app: FastAPI,
    *,
    app_name: str,
    version: str,
) -> None:
    """Register lifecycle, health and catalog stats endpoints."""

    @app.get("/", tags=["Lifecycle"])
    async def root() -> dict[str, str]:
        """Root endpoint for basic reachability."""
        return {"status": "ok", "app": app_name, "version": version}

    @app.get("/health/live", tags=["Lifecycle"])
    async def liveness_check() -> dict[str, str]:
        """Fast liveness check without dependencies."""
        return {"status": "healthy"}

    @app.get("/health", tags=["Lifecycle"])
    async def health_check(db: Annotated[AsyncSession, Depends(get_db)]) -> Any:
        """Database-backed health check for load balancers."""
        from techstock.shared.core.health import HealthService

        health = await HealthService(db).check_all()
        SYSTEM_HEALTH.set(1.0 if health["status"] == "healthy" else 0.0)

        if health["database"]["status"] == "down":
            return JSONResponse(status_code=503, content=health)
        return health

    @app.get("/stats", tags=["Lifecycle"])
    async def catalog_stats(db: Annotated[AsyncSession, Depends(get_db)]) -> Any:
        """Row totals per catalog table."""
        from techstock.modules.inventory.domain.service import collect_catalog_stats
        from techstock.schemas.common import ApiResponse
        from techstock.schemas.inventory import CatalogStats

        return ApiResponse[CatalogStats](data=await collect_catalog_stats(db))


def register_api_routers(app: FastAPI) -> None:
    """Register API route modules in one place to keep app entrypoint focused."""
    from techstock.modules.inventory.api.v1.applications import router as applications_router
    from techstock.modules.inventory.api.v1.resource_groups import (
        router as resource_groups_router,
    )
    from techstock.modules.inventory.api.v1.resources import router as resources_router
    from techstock.modules.inventory.api.v1.subscriptions import router as subscriptions_router
    from techstock.modules.reporting.api.v1.dashboard import router as dashboard_router
    from techstock.modules.reporting.api.v1.tags import router as tags_router

    routes: list[tuple[Any, str]] = [
        (resources_router, "/api/v1/resources"),
        (subscriptions_router, "/api/v1/subscriptions"),
        (resource_groups_router, "/api/v1/resource-groups"),
        (applications_router, "/api/v1/applications"),
        (dashboard_router, "/api/v1/dashboard"),
        (tags_router, "/api/v1/tags"),
    ]
    _validate_router_registry(routes)
    for router, prefix in routes:
        app.include_router(router, prefix=prefix)
