"""
Utility functions for sqlgraph.

Includes:
- Case conversion (snake_case, camelCase, PascalCase)
- Named casing rules selectable from configuration
- Enum variant naming
"""

from __future__ import annotations

import re
from typing import Any, Callable


# =============================================================================
# Case conversion utilities
# =============================================================================

# Word boundaries: non-alphanumeric runs, lower->Upper, and ACRONYMWord
_SEPARATOR_PATTERN = re.compile(r'[^0-9A-Za-z]+')
_ACRONYM_PATTERN = re.compile(r'([A-Z]+)([A-Z][a-z])')
_LOWER_UPPER_PATTERN = re.compile(r'([a-z0-9])([A-Z])')


def split_words(name: str) -> list[str]:
    """
    Split an identifier into words.

    Examples:
        film_actor -> ["film", "actor"]
        FilmActor -> ["Film", "Actor"]
        HTTPResponse -> ["HTTP", "Response"]
        NC-17 -> ["NC", "17"]
    """
    result = _ACRONYM_PATTERN.sub(r'\1 \2', name)
    result = _LOWER_UPPER_PATTERN.sub(r'\1 \2', result)
    return [word for word in _SEPARATOR_PATTERN.split(result) if word]


def to_snake_case(name: str) -> str:
    """
    Convert an identifier to snake_case.

    Examples:
        ownedProperties -> owned_properties
        HTTPResponse -> http_response
        film-actor -> film_actor
    """
    return "_".join(word.lower() for word in split_words(name))


def to_camel_case(name: str) -> str:
    """
    Convert an identifier to camelCase.

    Examples:
        film_actor -> filmActor
        store_id -> storeId
        FilmActor -> filmActor
    """
    pascal = to_pascal_case(name)
    return pascal[0].lower() + pascal[1:] if pascal else pascal


def to_pascal_case(name: str) -> str:
    """
    Convert an identifier to PascalCase.

    Examples:
        film_actor -> FilmActor
        NC-17 -> Nc17
    """
    return "".join(word[0].upper() + word[1:].lower() for word in split_words(name))


def to_upper_case(name: str) -> str:
    """Convert an identifier to PascalCase and upper-case it (PG-13 -> PG13)."""
    return to_pascal_case(name).upper()


CASE_FUNCTIONS: dict[str, Callable[[str], str]] = {
    "snake": to_snake_case,
    "camel": to_camel_case,
    "pascal": to_pascal_case,
    "upper": to_upper_case,
}


def get_case_function(convention: str) -> Callable[[str], str]:
    """
    Resolve a casing rule by name.

    Args:
        convention: One of "snake", "camel", "pascal", "upper"

    Returns:
        The casing function
    """
    try:
        return CASE_FUNCTIONS[convention]
    except KeyError:
        raise ValueError(
            f"Unknown casing rule '{convention}', expected one of {sorted(CASE_FUNCTIONS)}"
        ) from None


# =============================================================================
# Value helpers
# =============================================================================


def freeze(value: Any) -> Any:
    """
    Turn nested dicts and lists into hashable tuples.

    Dict keys keep their insertion order, so two inputs that differ
    only in key order produce different fingerprints.
    """
    if isinstance(value, dict):
        return tuple((k, freeze(v)) for k, v in value.items())
    elif isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    else:
        return value
