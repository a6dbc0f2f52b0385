"""
Tag Index

In-memory key -> values index, popularity ranking and substring
suggestions, rebuilt from raw resource tag blobs on every call. There is no
cache; the input is a bounded scan (FULL_SCAN_LIMIT rows), so catalogs
beyond that size see a truncated index.
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import structlog

logger = structlog.get_logger()

POPULAR_TAGS_LIMIT = 20
SUGGESTIONS_LIMIT = 10


@dataclass(frozen=True)
class TagCount:
    key: str
    value: str
    count: int


@dataclass(frozen=True)
class Suggestion:
    key: str
    value: str
    display: str


@dataclass
class TagIndex:
    tag_values_by_key: Dict[str, List[str]] = field(default_factory=dict)
    popular_tags: List[TagCount] = field(default_factory=list)


def parse_blob(blob: Any) -> Optional[Dict[str, str]]:
    """
    Normalize one tag blob to a string map, or None when it is unusable.

    Accepts a decoded mapping or its JSON text. A blob is usable only when
    every value is a string; one null or number discards the whole blob.
    """
    if blob is None:
        return {}
    if isinstance(blob, (str, bytes)):
        try:
            blob = json.loads(blob)
        except (TypeError, ValueError):
            return None
    if not isinstance(blob, dict):
        return None
    if not all(isinstance(v, str) for v in blob.values()):
        return None
    return {str(k): v for k, v in blob.items()}


def iter_tag_pairs(blobs: Iterable[Any]) -> Iterable[Tuple[str, str]]:
    skipped = 0
    for blob in blobs:
        tags = parse_blob(blob)
        if tags is None:
            skipped += 1
            continue
        yield from tags.items()
    if skipped:
        logger.debug("tag_blob_unparseable", skipped=skipped)


def build_tag_index(blobs: Iterable[Any], limit: int = POPULAR_TAGS_LIMIT) -> TagIndex:
    values_by_key: Dict[str, Set[str]] = {}
    usage: Counter = Counter()

    for key, value in iter_tag_pairs(blobs):
        values_by_key.setdefault(key, set()).add(value)
        usage[(key, value)] += 1

    ranked = sorted(usage.items(), key=lambda item: (-item[1], item[0][0], item[0][1]))
    return TagIndex(
        tag_values_by_key={key: sorted(values) for key, values in values_by_key.items()},
        popular_tags=[
            TagCount(key=key, value=value, count=count)
            for (key, value), count in ranked[:limit]
        ],
    )


def suggest_tags(
    blobs: Iterable[Any], query: Optional[str], limit: int = SUGGESTIONS_LIMIT
) -> List[Suggestion]:
    """
    Distinct key:value pairs whose key or value contains `query`.

    Case-insensitive. Pairs where the key or value equals the query come
    first, then everything else by display text. An empty query matches all.
    """
    term = (query or "").lower()
    seen: Set[str] = set()
    suggestions: List[Suggestion] = []

    for key, value in iter_tag_pairs(blobs):
        display = f"{key}:{value}"
        if display in seen:
            continue
        if term in key.lower() or term in value.lower():
            seen.add(display)
            suggestions.append(Suggestion(key=key, value=value, display=display))

    def rank(s: Suggestion) -> Tuple[int, str]:
        exact = s.key.lower() == term or s.value.lower() == term
        return (0 if exact else 1, s.display)

    suggestions.sort(key=rank)
    return suggestions[:limit]
