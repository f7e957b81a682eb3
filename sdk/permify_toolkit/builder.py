"""
Schema builder for the Permify toolkit.

This module turns user declarations into a validated SchemaHandle:
- Normalizes entity/relation/permission/attribute declarations into AST nodes
- Runs the validator before returning (fail fast)
- Precomputes the "entity:permission" key table

Example:
    >>> from permify_toolkit import define_schema, entity, relation, permission
    >>>
    >>> schema = define_schema({
    ...     "user": entity(),
    ...     "organization": entity(
    ...         relations={"member": relation("user")},
    ...         permissions={"view": permission("member")},
    ...     ),
    ... })
    >>> schema.permissions["organization"]["view"]
    'organization:view'
    >>> print(schema.compile())

Invariants:
    - A handle is only returned for a schema that passed validation
    - The AST and the permission table are read-only
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from difflib import get_close_matches
from types import MappingProxyType
from typing import Any

from .compiler import compile_schema
from .errors import StructuralError
from .schema import (
    AttributeDef,
    AttributeNode,
    AttributeType,
    EntityDef,
    EntityNode,
    PermissionDef,
    PermissionNode,
    RelationDef,
    RelationNode,
    SchemaAST,
)
from .validate import validate_schema

ENTITY_SECTIONS = ("relations", "permissions", "attributes")


class SchemaHandle:
    """Validated schema, ready to compile and deploy.

    Attributes:
        ast: The schema AST (read-only)
        permissions: Entity name to permission name to "entity:permission"
    """

    __slots__ = ("_ast", "_permissions")

    def __init__(self, ast: SchemaAST) -> None:
        self._ast = ast
        self._permissions = _build_permission_table(ast)

    @property
    def ast(self) -> SchemaAST:
        return self._ast

    @property
    def permissions(self) -> Mapping[str, Mapping[str, str]]:
        return self._permissions

    def validate(self) -> None:
        """Re-run reference validation on the AST."""
        validate_schema(self._ast)

    def compile(self) -> str:
        """Compile the AST to Permify schema text."""
        return compile_schema(self._ast)

    def permission_key(self, entity: str, permission: str) -> str:
        """Get the "entity:permission" key.

        Raises:
            KeyError: If the entity or the permission is not declared
        """
        perms = self._permissions.get(entity)
        if perms is None:
            raise KeyError(f'Unknown entity "{entity}"')
        if permission not in perms:
            raise KeyError(f'Unknown permission "{permission}" on entity "{entity}"')
        return perms[permission]

    def __repr__(self) -> str:
        return f"SchemaHandle(entities={list(self._ast.entities)})"


def define_schema(entities: Mapping[str, Any]) -> SchemaHandle:
    """Build and validate a schema.

    Args:
        entities: Entity name to declaration (EntityDef or mapping)

    Returns:
        SchemaHandle

    Raises:
        StructuralError: If a declaration is malformed
        ReferenceError: If a reference does not resolve
    """
    if not isinstance(entities, Mapping):
        raise StructuralError("Schema entities must be a mapping of entity name to definition")

    ast = build_ast(entities)
    validate_schema(ast)
    return SchemaHandle(ast)


def build_ast(entities: Mapping[str, Any]) -> SchemaAST:
    """Normalize declarations into an AST without validating references."""
    nodes: dict[str, EntityNode] = {}
    for name, decl in entities.items():
        nodes[name] = _build_entity(name, decl)
    return SchemaAST(entities=MappingProxyType(nodes))


def _build_entity(name: str, decl: Any) -> EntityNode:
    if isinstance(decl, EntityDef):
        sections = {
            "relations": decl.relations,
            "permissions": decl.permissions,
            "attributes": decl.attributes,
        }
    elif isinstance(decl, Mapping):
        unknown = [k for k in decl if k not in ENTITY_SECTIONS]
        if unknown:
            key = unknown[0]
            msg = f'Unknown key "{key}" in definition for entity "{name}"'
            suggestions = get_close_matches(str(key), ENTITY_SECTIONS, n=1)
            if suggestions:
                msg += f". Did you mean: {suggestions}?"
            raise StructuralError(msg, entity=name)
        sections = {k: decl.get(k) or {} for k in ENTITY_SECTIONS}
    else:
        raise StructuralError(f'Entity definition for "{name}" must be an object', entity=name)

    for section, value in sections.items():
        if not isinstance(value, Mapping):
            raise StructuralError(
                f'Section "{section}" of entity "{name}" must be an object',
                entity=name,
            )

    relations = {
        rel: RelationNode(name=rel, targets=_relation_targets(name, rel, value))
        for rel, value in sections["relations"].items()
    }
    permissions = {
        perm: PermissionNode(name=perm, expression=_permission_expression(name, perm, value))
        for perm, value in sections["permissions"].items()
    }
    attributes = {
        attr: AttributeNode(name=attr, type=_attribute_type(name, attr, value))
        for attr, value in sections["attributes"].items()
    }

    return EntityNode(
        name=name,
        relations=MappingProxyType(relations),
        permissions=MappingProxyType(permissions),
        attributes=MappingProxyType(attributes),
    )


def _relation_targets(entity: str, rel: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, RelationDef):
        targets: Any = value.targets
    elif isinstance(value, str):
        targets = (value,)
    elif isinstance(value, Mapping):
        targets = value.get("targets", ())
        if isinstance(targets, str):
            targets = (targets,)
    elif isinstance(value, Sequence):
        targets = value
    else:
        raise StructuralError(
            f'Relation "{entity}.{rel}" must declare one or more target entity types',
            entity=entity,
        )

    targets = tuple(targets)
    if not targets or not all(isinstance(t, str) and t for t in targets):
        raise StructuralError(
            f'Relation "{entity}.{rel}" must declare one or more target entity types',
            entity=entity,
        )
    return targets


def _permission_expression(entity: str, perm: str, value: Any) -> str:
    expression = value.expression if isinstance(value, PermissionDef) else value
    if not isinstance(expression, str) or not expression.strip():
        raise StructuralError(
            f'Permission "{entity}.{perm}" must be a non-empty expression string',
            entity=entity,
        )
    return expression


def _attribute_type(entity: str, attr: str, value: Any) -> str:
    type_name = value.type if isinstance(value, AttributeDef) else value
    if isinstance(type_name, AttributeType):
        return type_name.value
    try:
        return AttributeType.from_str(type_name).value
    except ValueError:
        valid = ", ".join(t.value for t in AttributeType)
        raise StructuralError(
            f'Attribute "{entity}.{attr}" has invalid type "{type_name}". Valid: {valid}',
            entity=entity,
        ) from None


def _build_permission_table(ast: SchemaAST) -> Mapping[str, Mapping[str, str]]:
    return MappingProxyType(
        {
            name: MappingProxyType({p: f"{name}:{p}" for p in node.permissions})
            for name, node in ast.entities.items()
        }
    )
