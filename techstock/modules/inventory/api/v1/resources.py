"""
Resource API Endpoints for TechStock.
Filtered/paginated catalog listing, CRUD and application links.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.models.inventory import DEFAULT_RELATION_TYPE
from techstock.modules.inventory.domain.query import (
    PaginationParams,
    ResourceFilters,
    SortDirection,
    SortParams,
)
from techstock.modules.inventory.domain.service import ResourceService
from techstock.schemas.common import ApiResponse, PaginatedResponse
from techstock.schemas.inventory import (
    ApplicationLinkRead,
    ApplicationRead,
    ResourceCreate,
    ResourceRead,
    ResourceStatistics,
    ResourceUpdate,
)
from techstock.shared.db.session import get_db

router = APIRouter(tags=["Resources"])


class ResourceApplicationRead(ApplicationRead):
    relation_type: str


@router.get("", response_model=PaginatedResponse[ResourceRead])
async def list_resources(
    page: Optional[int] = Query(None, description="1-based page number"),
    size: Optional[int] = Query(None, description="Page size, clamped to [1, 100000]"),
    resource_type: Optional[str] = Query(None, description="Substring, case-insensitive"),
    location: Optional[str] = None,
    environment: Optional[str] = None,
    vendor: Optional[str] = None,
    subscription_id: Optional[int] = None,
    resource_group_id: Optional[int] = None,
    search: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated key:value pairs"),
    sort_field: Optional[str] = None,
    sort_direction: Optional[str] = Query(None, description="asc (default) or desc"),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[ResourceRead]:
    """
    Search the catalog.

    Filters AND-combine; `tags` pairs OR-combine among themselves. With
    `search`, rows are ranked by name relevance before the requested sort.
    """
    rows, pagination = await ResourceService(db).search(
        ResourceFilters(
            resource_type=resource_type,
            location=location,
            environment=environment,
            vendor=vendor,
            subscription_id=subscription_id,
            resource_group_id=resource_group_id,
            search=search,
            tags=tags,
        ),
        SortParams(field=sort_field, direction=SortDirection.parse(sort_direction)),
        PaginationParams(page=page, size=size),
    )
    return PaginatedResponse[ResourceRead](
        data=[ResourceRead.model_validate(r) for r in rows],
        pagination=pagination,
    )


@router.post(
    "", response_model=ApiResponse[ResourceRead], status_code=status.HTTP_201_CREATED
)
async def create_resource(
    payload: ResourceCreate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ResourceRead]:
    resource = await ResourceService(db).create(payload)
    return ApiResponse[ResourceRead](
        data=ResourceRead.model_validate(resource), message="Resource created"
    )


@router.get("/stats", response_model=ApiResponse[ResourceStatistics])
async def resource_statistics(
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ResourceStatistics]:
    """Global counts by type, location and environment."""
    return ApiResponse[ResourceStatistics](data=await ResourceService(db).statistics())


@router.get("/types", response_model=ApiResponse[List[str]])
async def resource_types(db: AsyncSession = Depends(get_db)) -> ApiResponse[List[str]]:
    return ApiResponse[List[str]](data=await ResourceService(db).types())


@router.get("/{resource_id}", response_model=ApiResponse[ResourceRead])
async def get_resource(
    resource_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ResourceRead]:
    resource = await ResourceService(db).get(resource_id)
    return ApiResponse[ResourceRead](data=ResourceRead.model_validate(resource))


@router.put("/{resource_id}", response_model=ApiResponse[ResourceRead])
async def update_resource(
    resource_id: int, payload: ResourceUpdate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ResourceRead]:
    resource = await ResourceService(db).update(resource_id, payload)
    return ApiResponse[ResourceRead](
        data=ResourceRead.model_validate(resource), message="Resource updated"
    )


@router.delete("/{resource_id}", response_model=ApiResponse[Dict[str, int]])
async def delete_resource(
    resource_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[Dict[str, int]]:
    await ResourceService(db).delete(resource_id)
    return ApiResponse[Dict[str, int]](data={"id": resource_id}, message="Resource deleted")


# ============================================================
# Application links
# ============================================================


@router.get(
    "/{resource_id}/applications",
    response_model=ApiResponse[List[ResourceApplicationRead]],
)
async def list_resource_applications(
    resource_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[List[ResourceApplicationRead]]:
    links = await ResourceService(db).list_applications(resource_id)
    return ApiResponse[List[ResourceApplicationRead]](
        data=[
            ResourceApplicationRead(
                **ApplicationRead.model_validate(app).model_dump(),
                relation_type=relation_type,
            )
            for app, relation_type in links
        ]
    )


@router.post(
    "/{resource_id}/applications/{application_id}",
    response_model=ApiResponse[ApplicationLinkRead],
    status_code=status.HTTP_201_CREATED,
)
async def link_resource_application(
    resource_id: int,
    application_id: int,
    relation_type: str = Query(DEFAULT_RELATION_TYPE),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ApplicationLinkRead]:
    link = await ResourceService(db).link_application(
        resource_id, application_id, relation_type
    )
    return ApiResponse[ApplicationLinkRead](
        data=ApplicationLinkRead(
            resource_id=link.resource_id,
            application_id=link.application_id,
            relation_type=link.relation_type,
        ),
        message="Application linked",
    )


@router.delete(
    "/{resource_id}/applications/{application_id}",
    response_model=ApiResponse[Dict[str, int]],
)
async def unlink_resource_application(
    resource_id: int,
    application_id: int,
    relation_type: str = Query(DEFAULT_RELATION_TYPE),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[Dict[str, int]]:
    await ResourceService(db).unlink_application(resource_id, application_id, relation_type)
    return ApiResponse[Dict[str, int]](data={"id": resource_id}, message="Application unlinked")
