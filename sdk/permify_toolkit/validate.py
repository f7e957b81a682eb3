"""
Referential validation for schema ASTs.

This module proves, without contacting the server, that:
- Every relation target names an entity of the schema
- Every identifier inside a permission expression resolves, either locally
  (a relation or permission of the same entity) or through a dotted
  reference ``relation.member`` into each target entity of that relation

Invariants:
    - Entities, relations and permissions are checked in declaration order
    - The first failure is raised; errors are never aggregated
    - Validation is pure and idempotent
"""

from __future__ import annotations

import re
from typing import Iterator

from .errors import ReferenceError
from .schema import EntityNode, PermissionNode, SchemaAST

OPERATORS = frozenset({"and", "or", "not"})

_SPLIT = re.compile(r"[\s()]+")


def expression_identifiers(expression: str) -> Iterator[str]:
    """Yield the identifiers of a permission expression, in order.

    Operators and parentheses are dropped.

    Example:
        >>> list(expression_identifiers("owner or (parent.view and not banned)"))
        ['owner', 'parent.view', 'banned']
    """
    for token in _SPLIT.split(expression):
        if token and token not in OPERATORS:
            yield token


def validate_schema(ast: SchemaAST) -> None:
    """Validate every reference in the schema.

    Args:
        ast: Schema to validate

    Raises:
        ReferenceError: On the first relation target or permission
            identifier that does not resolve
    """
    for entity in ast.entities.values():
        _validate_relations(ast, entity)
        for perm in entity.permissions.values():
            _validate_permission(ast, entity, perm)


def _validate_relations(ast: SchemaAST, entity: EntityNode) -> None:
    for rel in entity.relations.values():
        for target in rel.targets:
            if target not in ast.entities:
                raise ReferenceError(
                    f'Entity "{target}" referenced in relation '
                    f'"{entity.name}.{rel.name}" does not exist',
                    entity=entity.name,
                    member=rel.name,
                    identifier=target,
                )


def _validate_permission(ast: SchemaAST, entity: EntityNode, perm: PermissionNode) -> None:
    where = f'Permission "{entity.name}.{perm.name}"'

    for identifier in expression_identifiers(perm.expression):
        parts = identifier.split(".")

        if len(parts) == 1:
            if not entity.has_member(identifier):
                raise ReferenceError(
                    f'{where} references undefined relation or permission "{identifier}"',
                    entity=entity.name,
                    member=perm.name,
                    identifier=identifier,
                )
            continue

        if len(parts) > 2:
            raise ReferenceError(
                f'{where} references malformed identifier "{identifier}"',
                entity=entity.name,
                member=perm.name,
                identifier=identifier,
            )

        rel_name, target_member = parts
        rel = entity.relations.get(rel_name)
        if rel is None:
            raise ReferenceError(
                f'{where} references undefined relation "{rel_name}"',
                entity=entity.name,
                member=perm.name,
                identifier=rel_name,
            )

        for target in rel.targets:
            target_entity = ast.entities.get(target)
            # Missing targets are reported by _validate_relations first
            if target_entity is None or not target_entity.has_member(target_member):
                raise ReferenceError(
                    f'{where} references undefined permission or relation '
                    f'"{target_member}" on entity "{target}"',
                    entity=entity.name,
                    member=perm.name,
                    identifier=target_member,
                )
