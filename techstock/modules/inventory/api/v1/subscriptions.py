from typing import Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.inventory.domain.service import SubscriptionService
from techstock.schemas.common import ApiResponse
from techstock.schemas.inventory import (
    ResourceGroupRead,
    ResourceRead,
    SubscriptionCreate,
    SubscriptionRead,
    SubscriptionUpdate,
)
from techstock.shared.db.session import get_db

router = APIRouter(tags=["Subscriptions"])


@router.get("", response_model=ApiResponse[List[SubscriptionRead]])
async def list_subscriptions(
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[SubscriptionRead]]:
    rows = await SubscriptionService(db).list()
    return ApiResponse[List[SubscriptionRead]](
        data=[SubscriptionRead.model_validate(s) for s in rows]
    )


@router.post(
    "", response_model=ApiResponse[SubscriptionRead], status_code=status.HTTP_201_CREATED
)
async def create_subscription(
    payload: SubscriptionCreate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[SubscriptionRead]:
    subscription = await SubscriptionService(db).create(payload)
    return ApiResponse[SubscriptionRead](
        data=SubscriptionRead.model_validate(subscription), message="Subscription created"
    )


@router.get("/{subscription_id}", response_model=ApiResponse[SubscriptionRead])
async def get_subscription(
    subscription_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[SubscriptionRead]:
    subscription = await SubscriptionService(db).get(subscription_id)
    return ApiResponse[SubscriptionRead](data=SubscriptionRead.model_validate(subscription))


@router.put("/{subscription_id}", response_model=ApiResponse[SubscriptionRead])
async def update_subscription(
    subscription_id: int, payload: SubscriptionUpdate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[SubscriptionRead]:
    subscription = await SubscriptionService(db).update(subscription_id, payload)
    return ApiResponse[SubscriptionRead](
        data=SubscriptionRead.model_validate(subscription), message="Subscription updated"
    )


@router.delete("/{subscription_id}", response_model=ApiResponse[Dict[str, int]])
async def delete_subscription(
    subscription_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[Dict[str, int]]:
    """Only empty subscriptions (no resource groups, no resources) can be deleted."""
    await SubscriptionService(db).delete(subscription_id)
    return ApiResponse[Dict[str, int]](
        data={"id": subscription_id}, message="Subscription deleted"
    )


@router.get("/{subscription_id}/resources", response_model=ApiResponse[List[ResourceRead]])
async def list_subscription_resources(
    subscription_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[List[ResourceRead]]:
    rows = await SubscriptionService(db).list_resources(subscription_id)
    return ApiResponse[List[ResourceRead]](data=[ResourceRead.model_validate(r) for r in rows])


@router.get(
    "/{subscription_id}/resource-groups",
    response_model=ApiResponse[List[ResourceGroupRead]],
)
async def list_subscription_resource_groups(
    subscription_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[List[ResourceGroupRead]]:
    rows = await SubscriptionService(db).list_resource_groups(subscription_id)
    return ApiResponse[List[ResourceGroupRead]](
        data=[ResourceGroupRead.model_validate(g) for g in rows]
    )
