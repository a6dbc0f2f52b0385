import pytest

from techstock.modules.inventory.domain.query import (
    MAX_OFFSET,
    MAX_PAGE_SIZE,
    AnyOf,
    FieldMatch,
    MatchMode,
    OrderKey,
    PaginationParams,
    RelevanceRank,
    ResourceFilters,
    ScopeFilter,
    SortDirection,
    SortParams,
    TagMatch,
    compile_query,
    parse_tag_tokens,
)


@pytest.mark.parametrize(
    "page,size,expected_page,expected_size,expected_offset",
    [
        (None, None, 1, 20, 0),
        (0, 0, 1, 1, 0),
        (-3, -10, 1, 1, 0),
        (3, 10, 3, 10, 20),
        (2, 10**9, 2, MAX_PAGE_SIZE, MAX_PAGE_SIZE),
    ],
)
def test_pagination_is_normalized(page, size, expected_page, expected_size, expected_offset):
    descriptor = compile_query(pagination=PaginationParams(page=page, size=size))
    assert descriptor.page == expected_page
    assert descriptor.limit == expected_size
    assert descriptor.offset == expected_offset


@pytest.mark.parametrize("size", [1, 20, MAX_PAGE_SIZE])
def test_huge_page_keeps_offset_in_bigint_range(size):
    descriptor = compile_query(pagination=PaginationParams(page=10**30, size=size))
    assert 0 <= descriptor.offset <= MAX_OFFSET
    assert descriptor.offset == (descriptor.page - 1) * size


def test_empty_filters_compile_to_no_predicates():
    descriptor = compile_query(ResourceFilters())
    assert descriptor.predicates == []
    assert descriptor.relevance is None
    assert descriptor.order == [
        OrderKey("created_at", SortDirection.ASC),
        OrderKey("id", SortDirection.ASC),
    ]


def test_blank_strings_are_treated_as_absent():
    descriptor = compile_query(
        ResourceFilters(resource_type="  ", location="", environment=" ", search="", tags=" ")
    )
    assert descriptor.predicates == []
    assert descriptor.relevance is None


def test_field_filters_use_expected_match_modes():
    descriptor = compile_query(
        ResourceFilters(
            resource_type="virtual",
            location="westeurope",
            environment="PRD",
            vendor="Microsoft",
            subscription_id=4,
            resource_group_id=9,
        )
    )
    assert descriptor.predicates == [
        FieldMatch("resource_type", "virtual", MatchMode.ICONTAINS),
        FieldMatch("location", "westeurope"),
        FieldMatch("environment", "PRD"),
        FieldMatch("vendor", "Microsoft"),
        FieldMatch("subscription_id", 4),
        FieldMatch("resource_group_id", 9),
    ]


def test_search_spans_columns_and_adds_relevance():
    descriptor = compile_query(ResourceFilters(search=" vm1 "))
    assert len(descriptor.predicates) == 1
    search = descriptor.predicates[0]
    assert isinstance(search, AnyOf)
    assert {p.field for p in search.predicates} == {
        "name",
        "resource_type",
        "azure_id",
        "location",
        "vendor",
        "environment",
    }
    assert all(p.mode == MatchMode.ICONTAINS and p.value == "vm1" for p in search.predicates)
    assert descriptor.relevance == RelevanceRank("vm1")


def test_tag_tokens_are_or_combined():
    descriptor = compile_query(ResourceFilters(tags="Env:prod, Owner : team-a"))
    assert descriptor.predicates == [
        AnyOf((TagMatch("Env", "prod"), TagMatch("Owner", "team-a")))
    ]


def test_malformed_tag_tokens_are_dropped():
    assert parse_tag_tokens("novalue,a:b:c,:orphan, Env:prod") == [TagMatch("Env", "prod")]
    assert parse_tag_tokens("novalue") == []
    assert compile_query(ResourceFilters(tags="garbage")).predicates == []


def test_empty_tag_value_keeps_key_only_match():
    assert parse_tag_tokens("Env:") == [TagMatch("Env", "")]


def test_explicit_sort_is_kept_and_id_tie_break_appended():
    descriptor = compile_query(sort=SortParams(field="name", direction=SortDirection.DESC))
    assert descriptor.order == [
        OrderKey("name", SortDirection.DESC),
        OrderKey("id", SortDirection.ASC),
    ]


def test_sort_by_id_has_no_duplicate_tie_break():
    descriptor = compile_query(sort=SortParams(field="id"))
    assert descriptor.order == [OrderKey("id", SortDirection.ASC)]


def test_unknown_sort_field_passes_through():
    descriptor = compile_query(sort=SortParams(field="no_such_column"))
    assert descriptor.order[0].field == "no_such_column"


@pytest.mark.parametrize(
    "raw,expected",
    [(None, SortDirection.ASC), ("DESC", SortDirection.DESC), ("asc", SortDirection.ASC), ("x", SortDirection.ASC)],
)
def test_sort_direction_parse(raw, expected):
    assert SortDirection.parse(raw) is expected


def test_scope_filter_cleans_blank_strings():
    scope = ScopeFilter(location=" ", environment="")
    assert scope.location is None
    assert scope.environment is None
    assert scope.is_empty
    assert not ScopeFilter(subscription_id=1).is_empty
