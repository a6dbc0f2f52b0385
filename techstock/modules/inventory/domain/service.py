"""
Catalog Use Cases

Validation and referential checks run here, before any store call, so a
rejected request never touches the database. Each mutating use case commits
its own unit of work.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.models.inventory import (
    DEFAULT_RELATION_TYPE,
    Application,
    Resource,
    ResourceApplicationMap,
    ResourceGroup,
    Subscription,
)
from techstock.modules.inventory.domain.catalog_store import (
    ApplicationStore,
    ResourceGroupStore,
    SubscriptionStore,
)
from techstock.modules.inventory.domain.query import (
    PaginationParams,
    ResourceFilters,
    ScopeFilter,
    SortParams,
    compile_query,
)
from techstock.modules.inventory.domain.resource_store import ResourceStore
from techstock.schemas.common import Pagination
from techstock.schemas.inventory import (
    ApplicationCreate,
    ApplicationUpdate,
    CatalogStats,
    CountBucket,
    ResourceCreate,
    ResourceGroupCreate,
    ResourceGroupUpdate,
    ResourceStatistics,
    ResourceUpdate,
    SubscriptionCreate,
    SubscriptionUpdate,
)
from techstock.shared.core.exceptions import (
    AlreadyExistsError,
    BusinessRuleViolationError,
    InvalidInputError,
    NotFoundError,
)
from techstock.shared.db.errors import translate_db_errors

logger = structlog.get_logger()


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{field} cannot be empty", details={"field": field})
    return value.strip()


def require_email(value: Optional[str]) -> Optional[str]:
    if value is not None and "@" not in value:
        raise InvalidInputError("Invalid email format", details={"field": "owner_email"})
    return value


class _UseCase:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, action: str) -> None:
        with translate_db_errors(action):
            await self.db.commit()


class SubscriptionService(_UseCase):
    def __init__(self, db: AsyncSession):
        super().__init__(db)
        self.subscriptions = SubscriptionStore(db)
        self.groups = ResourceGroupStore(db)
        self.resources = ResourceStore(db)

    async def get(self, subscription_id: int) -> Subscription:
        subscription = await self.subscriptions.get(subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)
        return subscription

    async def list(self) -> List[Subscription]:
        return await self.subscriptions.list()

    async def create(self, payload: SubscriptionCreate) -> Subscription:
        name = require_text(payload.name, "name")
        if await self.subscriptions.get_by_name(name) is not None:
            raise AlreadyExistsError("Subscription", "name", name)

        subscription = await self.subscriptions.create(
            {"name": name, "tenant_id": payload.tenant_id}
        )
        await self._commit("create subscription")
        logger.info("subscription_created", subscription_id=subscription.id)
        return subscription

    async def update(self, subscription_id: int, payload: SubscriptionUpdate) -> Subscription:
        subscription = await self.get(subscription_id)
        changes = payload.model_dump(exclude_none=True)

        if "name" in changes:
            name = require_text(changes["name"], "name")
            existing = await self.subscriptions.get_by_name(name)
            if existing is not None and existing.id != subscription_id:
                raise AlreadyExistsError("Subscription", "name", name)
            changes["name"] = name

        await self.subscriptions.update(subscription, changes)
        await self._commit("update subscription")
        logger.info("subscription_updated", subscription_id=subscription_id)
        return subscription

    async def delete(self, subscription_id: int) -> None:
        subscription = await self.get(subscription_id)
        if await self.groups.count_in_subscription(subscription_id):
            raise BusinessRuleViolationError(
                "subscription still has resource groups",
                details={"subscription_id": subscription_id},
            )
        if await self.resources.count_all(ScopeFilter(subscription_id=subscription_id)):
            raise BusinessRuleViolationError(
                "subscription still has resources",
                details={"subscription_id": subscription_id},
            )
        await self.subscriptions.delete(subscription)
        await self._commit("delete subscription")
        logger.info("subscription_deleted", subscription_id=subscription_id)

    async def list_resources(self, subscription_id: int) -> List[Resource]:
        await self.get(subscription_id)
        return await self.resources.list_by_subscription(subscription_id)

    async def list_resource_groups(self, subscription_id: int) -> List[ResourceGroup]:
        await self.get(subscription_id)
        return await self.groups.list(subscription_id)


class ResourceGroupService(_UseCase):
    def __init__(self, db: AsyncSession):
        super().__init__(db)
        self.subscriptions = SubscriptionStore(db)
        self.groups = ResourceGroupStore(db)
        self.resources = ResourceStore(db)

    async def get(self, resource_group_id: int) -> ResourceGroup:
        group = await self.groups.get(resource_group_id)
        if group is None:
            raise NotFoundError("ResourceGroup", resource_group_id)
        return group

    async def list(self, subscription_id: Optional[int] = None) -> List[ResourceGroup]:
        return await self.groups.list(subscription_id)

    async def _check_subscription(self, subscription_id: int) -> None:
        if await self.subscriptions.get(subscription_id) is None:
            raise NotFoundError("Subscription", subscription_id)

    async def create(self, payload: ResourceGroupCreate) -> ResourceGroup:
        name = require_text(payload.name, "name")
        await self._check_subscription(payload.subscription_id)
        if await self.groups.get_by_name(payload.subscription_id, name) is not None:
            raise AlreadyExistsError("ResourceGroup", "name", name)

        group = await self.groups.create(
            {"name": name, "subscription_id": payload.subscription_id}
        )
        await self._commit("create resource group")
        logger.info(
            "resource_group_created",
            resource_group_id=group.id,
            subscription_id=group.subscription_id,
        )
        return group

    async def update(self, resource_group_id: int, payload: ResourceGroupUpdate) -> ResourceGroup:
        group = await self.get(resource_group_id)
        changes = payload.model_dump(exclude_none=True)

        if "name" in changes:
            changes["name"] = require_text(changes["name"], "name")
        if "subscription_id" in changes:
            await self._check_subscription(changes["subscription_id"])
            moving = changes["subscription_id"] != group.subscription_id
            if moving and await self.resources.count_all(
                ScopeFilter(resource_group_id=resource_group_id)
            ):
                raise BusinessRuleViolationError(
                    "resource group with resources cannot move to another subscription",
                    details={
                        "resource_group_id": resource_group_id,
                        "subscription_id": changes["subscription_id"],
                    },
                )

        if "name" in changes or "subscription_id" in changes:
            subscription_id = changes.get("subscription_id", group.subscription_id)
            name = changes.get("name", group.name)
            existing = await self.groups.get_by_name(subscription_id, name)
            if existing is not None and existing.id != resource_group_id:
                raise AlreadyExistsError("ResourceGroup", "name", name)

        await self.groups.update(group, changes)
        await self._commit("update resource group")
        logger.info("resource_group_updated", resource_group_id=resource_group_id)
        return group

    async def delete(self, resource_group_id: int) -> None:
        group = await self.get(resource_group_id)
        if await self.resources.count_all(ScopeFilter(resource_group_id=resource_group_id)):
            raise BusinessRuleViolationError(
                "resource group still has resources",
                details={"resource_group_id": resource_group_id},
            )
        await self.groups.delete(group)
        await self._commit("delete resource group")
        logger.info("resource_group_deleted", resource_group_id=resource_group_id)

    async def list_resources(self, resource_group_id: int) -> List[Resource]:
        await self.get(resource_group_id)
        return await self.resources.list_by_resource_group(resource_group_id)


class ApplicationService(_UseCase):
    def __init__(self, db: AsyncSession):
        super().__init__(db)
        self.applications = ApplicationStore(db)
        self.resources = ResourceStore(db)

    async def get(self, application_id: int) -> Application:
        application = await self.applications.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    async def get_by_code(self, code: str) -> Application:
        application = await self.applications.get_by_code(code)
        if application is None:
            raise NotFoundError("Application", code)
        return application

    async def list(self, owner_email: Optional[str] = None) -> List[Application]:
        return await self.applications.list(owner_email)

    async def _check_code(self, code: str, application_id: Optional[int] = None) -> str:
        code = require_text(code, "code")
        existing = await self.applications.get_by_code(code)
        if existing is not None and existing.id != application_id:
            raise AlreadyExistsError("Application", "code", code)
        return code

    async def create(self, payload: ApplicationCreate) -> Application:
        data = payload.model_dump()
        if data["code"] is not None:
            data["code"] = await self._check_code(data["code"])
        require_email(data["owner_email"])

        application = await self.applications.create(data)
        await self._commit("create application")
        logger.info("application_created", application_id=application.id, code=application.code)
        return application

    async def update(self, application_id: int, payload: ApplicationUpdate) -> Application:
        application = await self.get(application_id)
        changes = payload.model_dump(exclude_none=True)

        if "code" in changes:
            changes["code"] = await self._check_code(changes["code"], application_id)
        require_email(changes.get("owner_email"))

        await self.applications.update(application, changes)
        await self._commit("update application")
        logger.info("application_updated", application_id=application_id)
        return application

    async def delete(self, application_id: int) -> None:
        application = await self.get(application_id)
        await self.applications.delete(application)
        await self._commit("delete application")
        logger.info("application_deleted", application_id=application_id)

    async def list_resources(self, application_id: int) -> List[Resource]:
        await self.get(application_id)
        return await self.resources.list_by_application(application_id)


class ResourceService(_UseCase):
    def __init__(self, db: AsyncSession):
        super().__init__(db)
        self.resources = ResourceStore(db)
        self.subscriptions = SubscriptionStore(db)
        self.groups = ResourceGroupStore(db)
        self.applications = ApplicationStore(db)

    async def get(self, resource_id: int) -> Resource:
        resource = await self.resources.get(resource_id)
        if resource is None:
            raise NotFoundError("Resource", resource_id)
        return resource

    async def search(
        self,
        filters: ResourceFilters,
        sort: SortParams,
        pagination: PaginationParams,
    ) -> Tuple[List[Resource], Pagination]:
        descriptor = compile_query(filters, sort, pagination)
        rows, total = await self.resources.query(descriptor)
        return rows, Pagination.build(descriptor.page, descriptor.limit, total)

    async def _check_placement(self, subscription_id: int, resource_group_id: int) -> None:
        if await self.subscriptions.get(subscription_id) is None:
            raise NotFoundError("Subscription", subscription_id)
        group = await self.groups.get(resource_group_id)
        if group is None:
            raise NotFoundError("ResourceGroup", resource_group_id)
        if group.subscription_id != subscription_id:
            raise BusinessRuleViolationError(
                "resource group does not belong to the subscription",
                details={
                    "subscription_id": subscription_id,
                    "resource_group_id": resource_group_id,
                },
            )

    async def _check_azure_id(self, azure_id: str, resource_id: Optional[int] = None) -> None:
        existing = await self.resources.get_by_azure_id(azure_id)
        if existing is not None and existing.id != resource_id:
            raise AlreadyExistsError("Resource", "azure_id", azure_id)

    async def create(self, payload: ResourceCreate) -> Resource:
        data = payload.model_dump()
        for field in ("name", "resource_type", "location"):
            data[field] = require_text(data[field], field)
        await self._check_placement(data["subscription_id"], data["resource_group_id"])
        if data["azure_id"] is not None:
            await self._check_azure_id(data["azure_id"])

        resource = await self.resources.create(data)
        await self._commit("create resource")
        logger.info("resource_created", resource_id=resource.id, resource_type=resource.resource_type)
        return resource

    async def update(self, resource_id: int, payload: ResourceUpdate) -> Resource:
        resource = await self.get(resource_id)
        changes: Dict[str, Any] = payload.model_dump(exclude_none=True)

        for field in ("name", "resource_type", "location"):
            if field in changes:
                changes[field] = require_text(changes[field], field)
        if "subscription_id" in changes or "resource_group_id" in changes:
            await self._check_placement(
                changes.get("subscription_id", resource.subscription_id),
                changes.get("resource_group_id", resource.resource_group_id),
            )
        if changes.get("azure_id") is not None:
            await self._check_azure_id(changes["azure_id"], resource_id)

        await self.resources.update(resource, changes)
        await self._commit("update resource")
        logger.info("resource_updated", resource_id=resource_id, fields=sorted(changes))
        return resource

    async def delete(self, resource_id: int) -> None:
        resource = await self.get(resource_id)
        await self.resources.delete(resource)
        await self._commit("delete resource")
        logger.info("resource_deleted", resource_id=resource_id)

    async def statistics(self) -> ResourceStatistics:
        def buckets(rows: List[Tuple[str, int]]) -> List[CountBucket]:
            return [CountBucket(label=label, count=count) for label, count in rows]

        return ResourceStatistics(
            by_type=buckets(await self.resources.count_by("resource_type")),
            by_location=buckets(await self.resources.count_by("location")),
            by_environment=buckets(await self.resources.count_by("environment")),
        )

    async def types(self) -> List[str]:
        return await self.resources.distinct_types()

    async def list_applications(self, resource_id: int) -> List[Tuple[Application, str]]:
        await self.get(resource_id)
        return list(await self.resources.list_applications(resource_id))

    async def _check_application(self, application_id: int) -> None:
        if await self.applications.get(application_id) is None:
            raise NotFoundError("Application", application_id)

    async def link_application(
        self,
        resource_id: int,
        application_id: int,
        relation_type: str = DEFAULT_RELATION_TYPE,
    ) -> ResourceApplicationMap:
        await self.get(resource_id)
        await self._check_application(application_id)
        relation_type = require_text(relation_type, "relation_type")

        link = await self.resources.link_application(resource_id, application_id, relation_type)
        await self._commit("link application")
        logger.info(
            "resource_application_linked",
            resource_id=resource_id,
            application_id=application_id,
            relation_type=relation_type,
        )
        return link

    async def unlink_application(
        self,
        resource_id: int,
        application_id: int,
        relation_type: str = DEFAULT_RELATION_TYPE,
    ) -> None:
        await self.get(resource_id)
        await self._check_application(application_id)
        if not await self.resources.unlink_application(resource_id, application_id, relation_type):
            raise NotFoundError(
                "ResourceApplicationMap", f"{resource_id}/{application_id}/{relation_type}"
            )
        await self._commit("unlink application")
        logger.info(
            "resource_application_unlinked",
            resource_id=resource_id,
            application_id=application_id,
            relation_type=relation_type,
        )


async def collect_catalog_stats(db: AsyncSession) -> CatalogStats:
    return CatalogStats(
        total_resources=await ResourceStore(db).count_all(),
        total_subscriptions=await SubscriptionStore(db).count(),
        total_resource_groups=await ResourceGroupStore(db).count(),
        total_applications=await ApplicationStore(db).count(),
    )
