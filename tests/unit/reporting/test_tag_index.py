from techstock.modules.reporting.domain.tag_index import (
    TagCount,
    build_tag_index,
    parse_blob,
    suggest_tags,
)


def test_popular_tags_ranked_by_count():
    blobs = [
        {"Env": "prod"},
        {"Env": "prod"},
        {"Env": "prod", "Owner": "team-a"},
        {"Env": "dev"},
    ]
    index = build_tag_index(blobs)

    assert index.popular_tags[0] == TagCount(key="Env", value="prod", count=3)
    counts = {(t.key, t.value): t.count for t in index.popular_tags}
    assert counts[("Env", "dev")] == 1
    assert index.popular_tags.index(TagCount("Env", "prod", 3)) < index.popular_tags.index(
        TagCount("Env", "dev", 1)
    )
    assert index.tag_values_by_key == {"Env": ["dev", "prod"], "Owner": ["team-a"]}


def test_popular_tags_capped_at_twenty():
    blobs = [{f"k{i}": "v"} for i in range(30)]
    assert len(build_tag_index(blobs).popular_tags) == 20


def test_unparseable_blobs_are_skipped():
    blobs = ["{broken", 42, ["a"], '{"Env": "prod"}', None, {"Env": "prod"}]
    index = build_tag_index(blobs)
    assert index.popular_tags == [TagCount("Env", "prod", 2)]


def test_parse_blob_rejects_non_string_values():
    assert parse_blob({"a": 1, "c": "x"}) is None
    assert parse_blob({"b": None, "c": "x"}) is None
    assert parse_blob('{"c": "x", "n": true}') is None
    assert parse_blob({"c": "x"}) == {"c": "x"}
    assert parse_blob("not json") is None


def test_mixed_type_blob_is_skipped_whole():
    blobs = [{"Env": "prod", "Cost": 12}, {"Env": "prod"}]
    index = build_tag_index(blobs)
    assert index.popular_tags == [TagCount("Env", "prod", 1)]
    assert suggest_tags(blobs, "cost") == []


def test_empty_input_gives_empty_index():
    index = build_tag_index([])
    assert index.tag_values_by_key == {}
    assert index.popular_tags == []


def test_suggestions_match_key_or_value_once():
    blobs = [
        {"Env": "prod", "Provisioner": "terraform"},
        {"Env": "prod"},
        {"Owner": "team-a"},
    ]
    suggestions = suggest_tags(blobs, "pro")
    assert [s.display for s in suggestions] == ["Env:prod", "Provisioner:terraform"]
    assert suggestions[0].key == "Env"
    assert suggestions[0].value == "prod"


def test_exact_matches_come_first():
    blobs = [{"Alpha": "env-x", "Env": "z"}, {"Tier": "env"}]
    suggestions = suggest_tags(blobs, "ENV")
    assert [s.display for s in suggestions] == ["Env:z", "Tier:env", "Alpha:env-x"]


def test_empty_query_matches_everything_up_to_ten():
    blobs = [{f"k{i:02d}": "v"} for i in range(15)]
    suggestions = suggest_tags(blobs, "")
    assert len(suggestions) == 10
    assert suggestions[0].display == "k00:v"
    assert len(suggest_tags(blobs, None)) == 10
