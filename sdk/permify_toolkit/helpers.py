"""Declaration shortcuts."""

from __future__ import annotations

from collections.abc import Iterable

from .schema import RelationDef, relation


def relations_of(target: str, names: Iterable[str]) -> dict[str, RelationDef]:
    """Declare several relations that all point at the same entity type.

    Example:
        >>> entity(relations={**relations_of("user", ["owner", "editor", "viewer"])})
    """
    return {name: relation(target) for name in names}
