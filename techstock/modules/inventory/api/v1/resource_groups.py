from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.inventory.domain.service import ResourceGroupService
from techstock.schemas.common import ApiResponse
from techstock.schemas.inventory import (
    ResourceGroupCreate,
    ResourceGroupRead,
    ResourceGroupUpdate,
    ResourceRead,
)
from techstock.shared.db.session import get_db

router = APIRouter(tags=["Resource Groups"])


@router.get("", response_model=ApiResponse[List[ResourceGroupRead]])
async def list_resource_groups(
    subscription_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[ResourceGroupRead]]:
    rows = await ResourceGroupService(db).list(subscription_id)
    return ApiResponse[List[ResourceGroupRead]](
        data=[ResourceGroupRead.model_validate(g) for g in rows]
    )


@router.post(
    "", response_model=ApiResponse[ResourceGroupRead], status_code=status.HTTP_201_CREATED
)
async def create_resource_group(
    payload: ResourceGroupCreate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ResourceGroupRead]:
    """Names are unique within a subscription, not globally."""
    group = await ResourceGroupService(db).create(payload)
    return ApiResponse[ResourceGroupRead](
        data=ResourceGroupRead.model_validate(group), message="Resource group created"
    )


@router.get("/{resource_group_id}", response_model=ApiResponse[ResourceGroupRead])
async def get_resource_group(
    resource_group_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ResourceGroupRead]:
    group = await ResourceGroupService(db).get(resource_group_id)
    return ApiResponse[ResourceGroupRead](data=ResourceGroupRead.model_validate(group))


@router.put("/{resource_group_id}", response_model=ApiResponse[ResourceGroupRead])
async def update_resource_group(
    resource_group_id: int,
    payload: ResourceGroupUpdate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ResourceGroupRead]:
    group = await ResourceGroupService(db).update(resource_group_id, payload)
    return ApiResponse[ResourceGroupRead](
        data=ResourceGroupRead.model_validate(group), message="Resource group updated"
    )


@router.delete("/{resource_group_id}", response_model=ApiResponse[Dict[str, int]])
async def delete_resource_group(
    resource_group_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[Dict[str, int]]:
    await ResourceGroupService(db).delete(resource_group_id)
    return ApiResponse[Dict[str, int]](
        data={"id": resource_group_id}, message="Resource group deleted"
    )


@router.get("/{resource_group_id}/resources", response_model=ApiResponse[List[ResourceRead]])
async def list_resource_group_resources(
    resource_group_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[List[ResourceRead]]:
    rows = await ResourceGroupService(db).list_resources(resource_group_id)
    return ApiResponse[List[ResourceRead]](data=[ResourceRead.model_validate(r) for r in rows])
