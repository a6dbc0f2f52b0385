"""
Resource Query Compiler

Turns caller-supplied filter, sort and pagination parameters into a
storage-agnostic QueryDescriptor: a conjunction of predicates, an ordering
and an offset/limit window. The compiler never raises; sort fields it does
not recognise are passed through for the store to accept or reject.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100_000
# OFFSET is a signed 64-bit integer on PostgreSQL and SQLite
MAX_OFFSET = 2**63 - 1
DEFAULT_SORT_FIELD = "created_at"

# Columns OR-combined by a free-text search.
SEARCH_FIELDS: Tuple[str, ...] = (
    "name",
    "resource_type",
    "azure_id",
    "location",
    "vendor",
    "environment",
)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SortDirection":
        if raw and raw.strip().lower() == "desc":
            return cls.DESC
        return cls.ASC


class MatchMode(str, Enum):
    EXACT = "exact"
    ICONTAINS = "icontains"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class ResourceFilters:
    resource_type: Optional[str] = None
    location: Optional[str] = None
    environment: Optional[str] = None
    vendor: Optional[str] = None
    subscription_id: Optional[int] = None
    resource_group_id: Optional[int] = None
    search: Optional[str] = None
    tags: Optional[str] = None


@dataclass
class SortParams:
    field: Optional[str] = None
    direction: SortDirection = SortDirection.ASC


@dataclass
class PaginationParams:
    page: Optional[int] = None
    size: Optional[int] = None

    @property
    def normalized_page(self) -> int:
        page = max(self.page if self.page is not None else DEFAULT_PAGE, 1)
        return min(page, MAX_OFFSET // self.normalized_size + 1)

    @property
    def normalized_size(self) -> int:
        size = self.size if self.size is not None else DEFAULT_PAGE_SIZE
        return min(max(size, 1), MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.normalized_page - 1) * self.normalized_size


@dataclass
class ScopeFilter:
    """Optional restriction applied to every dashboard dimension."""

    subscription_id: Optional[int] = None
    resource_group_id: Optional[int] = None
    location: Optional[str] = None
    environment: Optional[str] = None

    def __post_init__(self) -> None:
        self.location = _clean(self.location)
        self.environment = _clean(self.environment)

    @property
    def is_empty(self) -> bool:
        return (
            self.subscription_id is None
            and self.resource_group_id is None
            and self.location is None
            and self.environment is None
        )


# ============================================================
# Predicates
# ============================================================


@dataclass(frozen=True)
class FieldMatch:
    field: str
    value: Union[str, int]
    mode: MatchMode = MatchMode.EXACT


@dataclass(frozen=True)
class TagMatch:
    """Resource has tag `key` whose value contains `value` (any value when empty)."""

    key: str
    value: str


@dataclass(frozen=True)
class AnyOf:
    predicates: Tuple[Union[FieldMatch, TagMatch], ...]


Predicate = Union[FieldMatch, TagMatch, AnyOf]


@dataclass(frozen=True)
class RelevanceRank:
    """Buckets rows by how well `name` matches `term` (1 best, 4 worst)."""

    term: str


@dataclass(frozen=True)
class OrderKey:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass
class QueryDescriptor:
    predicates: List[Predicate] = field(default_factory=list)
    relevance: Optional[RelevanceRank] = None
    order: List[OrderKey] = field(default_factory=list)
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE
    page: int = DEFAULT_PAGE


def parse_tag_tokens(raw: Optional[str]) -> List[TagMatch]:
    """
    Parse "k1:v1, k2:v2" into tag matches.

    Tokens without exactly one ':' or with an empty key are dropped.
    """
    raw = _clean(raw)
    if raw is None:
        return []

    matches: List[TagMatch] = []
    for token in raw.split(","):
        parts = token.split(":")
        if len(parts) != 2:
            continue
        key, value = parts[0].strip(), parts[1].strip()
        if not key:
            continue
        matches.append(TagMatch(key=key, value=value))
    return matches


def compile_query(
    filters: Optional[ResourceFilters] = None,
    sort: Optional[SortParams] = None,
    pagination: Optional[PaginationParams] = None,
) -> QueryDescriptor:
    filters = filters or ResourceFilters()
    sort = sort or SortParams()
    pagination = pagination or PaginationParams()

    predicates: List[Predicate] = []

    resource_type = _clean(filters.resource_type)
    if resource_type is not None:
        predicates.append(FieldMatch("resource_type", resource_type, MatchMode.ICONTAINS))

    for name in ("location", "environment", "vendor"):
        value = _clean(getattr(filters, name))
        if value is not None:
            predicates.append(FieldMatch(name, value))

    if filters.subscription_id is not None:
        predicates.append(FieldMatch("subscription_id", filters.subscription_id))
    if filters.resource_group_id is not None:
        predicates.append(FieldMatch("resource_group_id", filters.resource_group_id))

    search = _clean(filters.search)
    if search is not None:
        predicates.append(
            AnyOf(tuple(FieldMatch(f, search, MatchMode.ICONTAINS) for f in SEARCH_FIELDS))
        )

    tag_matches = parse_tag_tokens(filters.tags)
    if tag_matches:
        predicates.append(AnyOf(tuple(tag_matches)))

    sort_field = _clean(sort.field) or DEFAULT_SORT_FIELD
    order = [OrderKey(sort_field, sort.direction)]
    if sort_field != "id":
        order.append(OrderKey("id", SortDirection.ASC))

    return QueryDescriptor(
        predicates=predicates,
        relevance=RelevanceRank(search) if search is not None else None,
        order=order,
        offset=pagination.offset,
        limit=pagination.normalized_size,
        page=pagination.normalized_page,
    )
