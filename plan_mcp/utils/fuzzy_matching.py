"""Case-insensitive name matching for addressing items inside collections.

Three deterministic modes, no scoring: ``exact`` equality, ``starts_with``
prefix, and substring containment (the default). Both sides are lowercased
and stripped before comparing. The first qualifying item wins.
"""

from collections.abc import Sequence
from typing import Any


def fuzzy_match(target: str, search_term: str, exact: bool = False, starts_with: bool = False) -> bool:
    """Return True if ``target`` matches ``search_term``.

    Example:
        >>> fuzzy_match("  Colazione ", "cola")
        True
        >>> fuzzy_match("Designs", "design", exact=True)
        False
    """
    normalized_target = target.lower().strip()
    normalized_search = search_term.lower().strip()

    if exact:
        return normalized_target == normalized_search
    if starts_with:
        return normalized_target.startswith(normalized_search)
    return normalized_search in normalized_target


def _field_value(item: Any, field: str) -> Any:
    if isinstance(item, dict):
        return item.get(field)
    return getattr(item, field, None)


def _matches(item: Any, field: str, search_term: str, exact: bool, starts_with: bool) -> bool:
    value = _field_value(item, field)
    # Non-string fields never match
    if not isinstance(value, str):
        return False
    return fuzzy_match(value, search_term, exact=exact, starts_with=starts_with)


def fuzzy_find_index(
    items: Sequence[Any],
    field: str,
    search_term: str,
    exact: bool = False,
    starts_with: bool = False,
) -> int:
    """Index of the first item whose ``field`` matches, or -1.

    Items may be dicts or objects with the field as an attribute.
    """
    for index, item in enumerate(items):
        if _matches(item, field, search_term, exact, starts_with):
            return index
    return -1


def fuzzy_find(
    items: Sequence[Any],
    field: str,
    search_term: str,
    exact: bool = False,
    starts_with: bool = False,
) -> Any | None:
    index = fuzzy_find_index(items, field, search_term, exact=exact, starts_with=starts_with)
    return items[index] if index >= 0 else None


def fuzzy_find_all(
    items: Sequence[Any],
    field: str,
    search_term: str,
    exact: bool = False,
    starts_with: bool = False,
) -> list[Any]:
    return [item for item in items if _matches(item, field, search_term, exact, starts_with)]


def resolve_index(
    items: Sequence[Any],
    index: int | None = None,
    name: str | None = None,
    field: str = "name",
    exact: bool = False,
    starts_with: bool = False,
) -> int:
    """Resolve an address given by index and/or name; the index takes precedence.

    Returns -1 when nothing resolves (index out of range, or no name match).
    """
    if index is not None:
        return index if 0 <= index < len(items) else -1
    if name is not None:
        return fuzzy_find_index(items, field, name, exact=exact, starts_with=starts_with)
    return -1
