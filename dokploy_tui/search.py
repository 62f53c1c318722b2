"""Fuzzy search over the resource list. Pure functions, no state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .models import Resource


def fuzzy_match(text: str, query: str) -> bool:
    """True if every character of *query* appears in *text* in order."""
    text_lower = text.lower()
    pos = 0
    for char in query.lower():
        found = text_lower.find(char, pos)
        if found == -1:
            return False
        pos = found + 1
    return True


def match_score(text: str, query: str) -> int:
    """Score *text* against *query*; higher is better, 0 means no match."""
    if not text or not query:
        return 0
    text_lower = text.lower()
    query_lower = query.lower()
    if text_lower == query_lower:
        return 100
    if text_lower.startswith(query_lower):
        return 80
    if query_lower in text_lower:
        return 60
    if fuzzy_match(text_lower, query_lower):
        return 40
    return 0


def score_resource(resource: Resource, query: str) -> int:
    fields = [resource.name, resource.status, resource.kind.value]
    if resource.engine is not None:
        fields.append(resource.engine.value)
    return max(match_score(f, query) for f in fields)


def filter_resources(resources: Sequence[Resource], query: str) -> list[Resource]:
    if not query:
        return list(resources)
    scored = [(score_resource(r, query), r) for r in resources]
    # sorted() is stable, so equal scores keep their original order
    return [r for score, r in sorted(scored, key=lambda pair: -pair[0]) if score > 0]

