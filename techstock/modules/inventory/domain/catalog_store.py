"""
Persistence for the catalog entities that own resources: subscriptions,
resource groups and applications.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.models.inventory import (
    Application,
    ResourceApplicationMap,
    ResourceGroup,
    Subscription,
)
from techstock.shared.db.base import Base
from techstock.shared.db.errors import translate_db_errors

ModelT = TypeVar("ModelT", bound=Base)


class _EntityStore(Generic[ModelT]):
    model: Type[ModelT]
    label: str

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, entity_id: int) -> Optional[ModelT]:
        with translate_db_errors(f"load {self.label}"):
            return await self.db.get(self.model, entity_id)

    async def _first(self, *where: Any) -> Optional[ModelT]:
        stmt = select(self.model).where(*where).limit(1)
        with translate_db_errors(f"load {self.label}"):
            return (await self.db.execute(stmt)).scalars().first()

    async def _all(self, *where: Any) -> List[ModelT]:
        stmt = select(self.model).where(*where).order_by(self.model.id)  # type: ignore[attr-defined]
        with translate_db_errors(f"list {self.label}s"):
            return list((await self.db.execute(stmt)).scalars().all())

    async def count(self, *where: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*where)
        with translate_db_errors(f"count {self.label}s"):
            return int((await self.db.execute(stmt)).scalar_one())

    async def create(self, data: Dict[str, Any]) -> ModelT:
        entity = self.model(**data)
        with translate_db_errors(f"create {self.label}"):
            self.db.add(entity)
            await self.db.flush()
        return entity

    async def update(self, entity: ModelT, changes: Dict[str, Any]) -> ModelT:
        for key, value in changes.items():
            setattr(entity, key, value)
        with translate_db_errors(f"update {self.label}"):
            await self.db.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        with translate_db_errors(f"delete {self.label}"):
            await self.db.delete(entity)
            await self.db.flush()


class SubscriptionStore(_EntityStore[Subscription]):
    model = Subscription
    label = "subscription"

    async def get_by_name(self, name: str) -> Optional[Subscription]:
        return await self._first(Subscription.name == name)

    async def list(self) -> List[Subscription]:
        return await self._all()


class ResourceGroupStore(_EntityStore[ResourceGroup]):
    model = ResourceGroup
    label = "resource group"

    async def get_by_name(self, subscription_id: int, name: str) -> Optional[ResourceGroup]:
        return await self._first(
            ResourceGroup.subscription_id == subscription_id,
            ResourceGroup.name == name,
        )

    async def list(self, subscription_id: Optional[int] = None) -> List[ResourceGroup]:
        if subscription_id is None:
            return await self._all()
        return await self._all(ResourceGroup.subscription_id == subscription_id)

    async def count_in_subscription(self, subscription_id: int) -> int:
        return await self.count(ResourceGroup.subscription_id == subscription_id)


class ApplicationStore(_EntityStore[Application]):
    model = Application
    label = "application"

    async def delete(self, entity: Application) -> None:
        with translate_db_errors("delete application"):
            await self.db.execute(
                delete(ResourceApplicationMap).where(
                    ResourceApplicationMap.application_id == entity.id
                )
            )
        await super().delete(entity)

    async def get_by_code(self, code: str) -> Optional[Application]:
        return await self._first(Application.code == code)

    async def list(self, owner_email: Optional[str] = None) -> List[Application]:
        if owner_email is None:
            return await self._all()
        return await self._all(Application.owner_email == owner_email)
