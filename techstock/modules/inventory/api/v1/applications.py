from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.modules.inventory.domain.service import ApplicationService
from techstock.schemas.common import ApiResponse
from techstock.schemas.inventory import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationUpdate,
    ResourceRead,
)
from techstock.shared.db.session import get_db

router = APIRouter(tags=["Applications"])


@router.get("", response_model=ApiResponse[List[ApplicationRead]])
async def list_applications(
    owner_email: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[ApplicationRead]]:
    rows = await ApplicationService(db).list(owner_email)
    return ApiResponse[List[ApplicationRead]](
        data=[ApplicationRead.model_validate(a) for a in rows]
    )


@router.post(
    "", response_model=ApiResponse[ApplicationRead], status_code=status.HTTP_201_CREATED
)
async def create_application(
    payload: ApplicationCreate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ApplicationRead]:
    application = await ApplicationService(db).create(payload)
    return ApiResponse[ApplicationRead](
        data=ApplicationRead.model_validate(application), message="Application created"
    )


@router.get("/by-code/{code}", response_model=ApiResponse[ApplicationRead])
async def get_application_by_code(
    code: str, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ApplicationRead]:
    application = await ApplicationService(db).get_by_code(code)
    return ApiResponse[ApplicationRead](data=ApplicationRead.model_validate(application))


@router.get("/{application_id}", response_model=ApiResponse[ApplicationRead])
async def get_application(
    application_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ApplicationRead]:
    application = await ApplicationService(db).get(application_id)
    return ApiResponse[ApplicationRead](data=ApplicationRead.model_validate(application))


@router.put("/{application_id}", response_model=ApiResponse[ApplicationRead])
async def update_application(
    application_id: int, payload: ApplicationUpdate, db: AsyncSession = Depends(get_db)
) -> ApiResponse[ApplicationRead]:
    application = await ApplicationService(db).update(application_id, payload)
    return ApiResponse[ApplicationRead](
        data=ApplicationRead.model_validate(application), message="Application updated"
    )


@router.delete("/{application_id}", response_model=ApiResponse[Dict[str, int]])
async def delete_application(
    application_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[Dict[str, int]]:
    """Deleting an application drops its resource links, not the resources."""
    await ApplicationService(db).delete(application_id)
    return ApiResponse[Dict[str, int]](
        data={"id": application_id}, message="Application deleted"
    )


@router.get("/{application_id}/resources", response_model=ApiResponse[List[ResourceRead]])
async def list_application_resources(
    application_id: int, db: AsyncSession = Depends(get_db)
) -> ApiResponse[List[ResourceRead]]:
    rows = await ApplicationService(db).list_resources(application_id)
    return ApiResponse[List[ResourceRead]](data=[ResourceRead.model_validate(r) for r in rows])
