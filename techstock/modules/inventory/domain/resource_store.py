"""
Resource Store

Executes compiled resource queries and the grouped counts behind the
dashboard. Every value reaches the database as a bound parameter; LIKE
wildcards in user input are escaped.

Writes only flush. Committing is the caller's job so a use case can group
several writes into one transaction.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, delete, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from techstock.models.inventory import (
    DEFAULT_RELATION_TYPE,
    Application,
    Resource,
    ResourceApplicationMap,
    ResourceTag,
    utcnow,
)
from techstock.modules.inventory.domain.query import (
    AnyOf,
    FieldMatch,
    MatchMode,
    Predicate,
    QueryDescriptor,
    RelevanceRank,
    ScopeFilter,
    SortDirection,
    TagMatch,
)
from techstock.shared.core.exceptions import InvalidInputError
from techstock.shared.core.ops_metrics import RESOURCE_QUERY_DURATION
from techstock.shared.db.errors import translate_db_errors

UNKNOWN_ENVIRONMENT = "Unknown"

FILTER_COLUMNS: Dict[str, Any] = {
    "name": Resource.name,
    "resource_type": Resource.resource_type,
    "azure_id": Resource.azure_id,
    "location": Resource.location,
    "vendor": Resource.vendor,
    "environment": Resource.environment,
    "subscription_id": Resource.subscription_id,
    "resource_group_id": Resource.resource_group_id,
}

SORTABLE_COLUMNS: Dict[str, Any] = {
    "id": Resource.id,
    "name": Resource.name,
    "resource_type": Resource.resource_type,
    "type": Resource.resource_type,
    "kind": Resource.kind,
    "location": Resource.location,
    "environment": Resource.environment,
    "vendor": Resource.vendor,
    "provisioner": Resource.provisioner,
    "created_at": Resource.created_at,
    "updated_at": Resource.updated_at,
}

DIMENSIONS = ("resource_type", "location", "environment")


def _field_clause(match: FieldMatch) -> ColumnElement[bool]:
    column = FILTER_COLUMNS.get(match.field)
    if column is None:
        raise InvalidInputError(f"unknown filter field '{match.field}'")
    if match.mode == MatchMode.ICONTAINS:
        return column.icontains(str(match.value), autoescape=True)
    return column == match.value


def _tag_clause(match: TagMatch) -> ColumnElement[bool]:
    conditions = [ResourceTag.resource_id == Resource.id, ResourceTag.key == match.key]
    if match.value:
        conditions.append(ResourceTag.value.icontains(match.value, autoescape=True))
    return select(ResourceTag.resource_id).where(*conditions).exists()


def to_clause(predicate: Predicate) -> ColumnElement[bool]:
    """Render one compiled predicate as a SQLAlchemy boolean expression."""
    if isinstance(predicate, FieldMatch):
        return _field_clause(predicate)
    if isinstance(predicate, TagMatch):
        return _tag_clause(predicate)
    if isinstance(predicate, AnyOf):
        return or_(*(to_clause(p) for p in predicate.predicates))
    raise InvalidInputError(f"unsupported predicate {type(predicate).__name__}")


def relevance_expression(rank: RelevanceRank) -> ColumnElement[int]:
    term = rank.term
    return case(
        (func.lower(Resource.name) == func.lower(literal(term)), 1),
        (Resource.name.istartswith(term, autoescape=True), 2),
        (Resource.name.icontains(term, autoescape=True), 3),
        else_=4,
    )


def scope_clauses(scope: Optional[ScopeFilter]) -> List[ColumnElement[bool]]:
    if scope is None:
        return []
    clauses: List[ColumnElement[bool]] = []
    if scope.subscription_id is not None:
        clauses.append(Resource.subscription_id == scope.subscription_id)
    if scope.resource_group_id is not None:
        clauses.append(Resource.resource_group_id == scope.resource_group_id)
    if scope.location is not None:
        clauses.append(Resource.location == scope.location)
    if scope.environment is not None:
        clauses.append(Resource.environment == scope.environment)
    return clauses


def _dimension_expression(dimension: str) -> ColumnElement[Any]:
    if dimension == "environment":
        return func.coalesce(Resource.environment, UNKNOWN_ENVIRONMENT)
    if dimension in ("resource_type", "location"):
        return FILTER_COLUMNS[dimension]
    raise InvalidInputError(f"unknown dimension '{dimension}'")


class ResourceStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    async def query(self, descriptor: QueryDescriptor) -> Tuple[List[Resource], int]:
        """Return one page of matching resources and the unpaginated match count."""
        where = [to_clause(p) for p in descriptor.predicates]

        order_by: List[Any] = []
        if descriptor.relevance is not None:
            order_by.append(relevance_expression(descriptor.relevance))
        for key in descriptor.order:
            column = SORTABLE_COLUMNS.get(key.field)
            if column is None:
                raise InvalidInputError(
                    f"cannot sort by '{key.field}'",
                    details={"allowed": sorted(SORTABLE_COLUMNS)},
                )
            order_by.append(column.desc() if key.direction == SortDirection.DESC else column.asc())

        page_stmt = (
            select(Resource)
            .where(*where)
            .order_by(*order_by)
            .offset(descriptor.offset)
            .limit(descriptor.limit)
        )
        count_stmt = select(func.count()).select_from(Resource).where(*where)

        with RESOURCE_QUERY_DURATION.time(), translate_db_errors("query resources"):
            rows = list((await self.db.execute(page_stmt)).scalars().all())
            total = int((await self.db.execute(count_stmt)).scalar_one())
        return rows, total

    async def get(self, resource_id: int) -> Optional[Resource]:
        with translate_db_errors("load resource"):
            return await self.db.get(Resource, resource_id)

    async def get_by_azure_id(self, azure_id: str) -> Optional[Resource]:
        stmt = select(Resource).where(Resource.azure_id == azure_id).limit(1)
        with translate_db_errors("load resource"):
            return (await self.db.execute(stmt)).scalars().first()

    async def _list(self, *where: ColumnElement[bool]) -> List[Resource]:
        stmt = select(Resource).where(*where).order_by(Resource.name, Resource.id)
        with translate_db_errors("list resources"):
            return list((await self.db.execute(stmt)).scalars().all())

    async def list_by_subscription(self, subscription_id: int) -> List[Resource]:
        return await self._list(Resource.subscription_id == subscription_id)

    async def list_by_resource_group(self, resource_group_id: int) -> List[Resource]:
        return await self._list(Resource.resource_group_id == resource_group_id)

    async def list_by_application(self, application_id: int) -> List[Resource]:
        linked = select(ResourceApplicationMap.resource_id).where(
            ResourceApplicationMap.application_id == application_id
        )
        return await self._list(Resource.id.in_(linked))

    async def count_all(self, scope: Optional[ScopeFilter] = None) -> int:
        stmt = select(func.count()).select_from(Resource).where(*scope_clauses(scope))
        with translate_db_errors("count resources"):
            return int((await self.db.execute(stmt)).scalar_one())

    async def count_by(
        self, dimension: str, scope: Optional[ScopeFilter] = None
    ) -> List[Tuple[str, int]]:
        """
        Grouped counts for one dimension, largest bucket first.

        A NULL environment is reported as "Unknown".
        """
        bucket = _dimension_expression(dimension).label("bucket")
        total = func.count().label("total")
        stmt = (
            select(bucket, total)
            .where(*scope_clauses(scope))
            .group_by(bucket)
            .order_by(total.desc(), bucket.asc())
        )
        with translate_db_errors(f"count resources by {dimension}"):
            result = await self.db.execute(stmt)
            return [(str(label), int(count)) for label, count in result.all()]

    async def distinct_types(self) -> List[str]:
        stmt = select(Resource.resource_type).distinct().order_by(Resource.resource_type)
        with translate_db_errors("list resource types"):
            return list((await self.db.execute(stmt)).scalars().all())

    async def list_tag_blobs(self, limit: int) -> List[Any]:
        """Bounded scan of raw tag blobs for the tag index."""
        stmt = select(Resource.tags_json).order_by(Resource.id).limit(limit)
        with translate_db_errors("scan resource tags"):
            return list((await self.db.execute(stmt)).scalars().all())

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    async def create(self, data: Dict[str, Any]) -> Resource:
        values = dict(data)
        tags: Dict[str, str] = values.pop("tags", None) or {}
        values.setdefault("tags_json", dict(tags))
        resource = Resource(**values)
        with translate_db_errors("create resource"):
            self.db.add(resource)
            await self.db.flush()
            self._add_tag_rows(resource.id, tags)
            await self.db.flush()
        return resource

    async def update(self, resource: Resource, changes: Dict[str, Any]) -> Resource:
        values = dict(changes)
        tags: Optional[Dict[str, str]] = values.pop("tags", None)
        for key, value in values.items():
            setattr(resource, key, value)
        resource.updated_at = utcnow()
        with translate_db_errors("update resource"):
            if tags is not None:
                resource.tags_json = dict(tags)
                await self.db.execute(
                    delete(ResourceTag).where(ResourceTag.resource_id == resource.id)
                )
                self._add_tag_rows(resource.id, tags)
            await self.db.flush()
        return resource

    async def delete(self, resource: Resource) -> None:
        with translate_db_errors("delete resource"):
            await self.db.execute(
                delete(ResourceTag).where(ResourceTag.resource_id == resource.id)
            )
            await self.db.execute(
                delete(ResourceApplicationMap).where(
                    ResourceApplicationMap.resource_id == resource.id
                )
            )
            await self.db.delete(resource)
            await self.db.flush()

    def _add_tag_rows(self, resource_id: int, tags: Dict[str, str]) -> None:
        for key, value in tags.items():
            self.db.add(ResourceTag(resource_id=resource_id, key=key, value=value))

    # ------------------------------------------------------------
    # Application links
    # ------------------------------------------------------------

    async def get_link(
        self, resource_id: int, application_id: int, relation_type: str
    ) -> Optional[ResourceApplicationMap]:
        with translate_db_errors("load application link"):
            return await self.db.get(
                ResourceApplicationMap, (resource_id, application_id, relation_type)
            )

    async def link_application(
        self,
        resource_id: int,
        application_id: int,
        relation_type: str = DEFAULT_RELATION_TYPE,
    ) -> ResourceApplicationMap:
        link = await self.get_link(resource_id, application_id, relation_type)
        if link is not None:
            return link
        link = ResourceApplicationMap(
            resource_id=resource_id,
            application_id=application_id,
            relation_type=relation_type,
        )
        with translate_db_errors("link application"):
            self.db.add(link)
            await self.db.flush()
        return link

    async def unlink_application(
        self, resource_id: int, application_id: int, relation_type: str
    ) -> bool:
        link = await self.get_link(resource_id, application_id, relation_type)
        if link is None:
            return False
        with translate_db_errors("unlink application"):
            await self.db.delete(link)
            await self.db.flush()
        return True

    async def list_applications(
        self, resource_id: int
    ) -> Sequence[Tuple[Application, str]]:
        stmt = (
            select(Application, ResourceApplicationMap.relation_type)
            .join(
                ResourceApplicationMap,
                ResourceApplicationMap.application_id == Application.id,
            )
            .where(ResourceApplicationMap.resource_id == resource_id)
            .order_by(Application.id, ResourceApplicationMap.relation_type)
        )
        with translate_db_errors("list resource applications"):
            result = await self.db.execute(stmt)
            return [(row[0], row[1]) for row in result.all()]
