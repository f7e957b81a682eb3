"""
Schema types for the Permify toolkit.

This module provides two layers of types:
- Declarations (EntityDef, RelationDef, PermissionDef, AttributeDef) that
  users write, usually through the entity()/relation()/permission()/attribute()
  helpers
- AST nodes (SchemaAST, EntityNode, RelationNode, PermissionNode,
  AttributeNode) produced by the builder and consumed by the validator and
  the compiler

Invariants:
    - AST nodes are frozen and never mutated after the builder returns
    - Entity, relation, permission and attribute order follows declaration order
    - Every node's name equals its key in the parent mapping

Example:
    >>> document = entity(
    ...     relations={"owner": relation("user"), "parent": relation("folder")},
    ...     permissions={"view": permission("owner or parent.view")},
    ...     attributes={"public": attribute("boolean")},
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


def _empty() -> Mapping[str, Any]:
    return MappingProxyType({})


class AttributeType(Enum):
    """Primitive attribute types understood by Permify."""

    BOOLEAN = "boolean"
    STRING = "string"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOLEAN_ARRAY = "boolean[]"
    STRING_ARRAY = "string[]"
    INTEGER_ARRAY = "integer[]"
    DOUBLE_ARRAY = "double[]"

    @classmethod
    def from_str(cls, value: str) -> AttributeType:
        """Convert string to AttributeType."""
        for kind in cls:
            if kind.value == value:
                return kind
        raise ValueError(f"Invalid attribute type: {value}")


# =============================================================================
# Declarations
# =============================================================================


@dataclass(frozen=True)
class RelationDef:
    """Relation declaration: one or more target entity types."""

    targets: tuple[str, ...]


@dataclass(frozen=True)
class PermissionDef:
    """Permission declaration: a single boolean expression."""

    expression: str


@dataclass(frozen=True)
class AttributeDef:
    """Attribute declaration: a primitive type name."""

    type: str


@dataclass(frozen=True)
class EntityDef:
    """Entity declaration.

    Attributes:
        relations: Relation name to declaration
        permissions: Permission name to declaration
        attributes: Attribute name to declaration
    """

    relations: Mapping[str, Any] = dataclass_field(default_factory=dict)
    permissions: Mapping[str, Any] = dataclass_field(default_factory=dict)
    attributes: Mapping[str, Any] = dataclass_field(default_factory=dict)


def relation(*targets: str) -> RelationDef:
    """Declare a relation to one or more entity types.

    Example:
        >>> owner = relation("user")
        >>> member = relation("user", "team")
    """
    return RelationDef(targets=tuple(targets))


def permission(expression: str) -> PermissionDef:
    """Declare a permission from an expression such as ``"owner or parent.view"``."""
    return PermissionDef(expression=expression)


def attribute(type: str | AttributeType) -> AttributeDef:
    """Declare an attribute of a primitive type."""
    if isinstance(type, AttributeType):
        type = type.value
    return AttributeDef(type=type)


def entity(
    relations: Mapping[str, Any] | None = None,
    permissions: Mapping[str, Any] | None = None,
    attributes: Mapping[str, Any] | None = None,
) -> EntityDef:
    """Declare an entity. All sections are optional."""
    return EntityDef(
        relations=dict(relations or {}),
        permissions=dict(permissions or {}),
        attributes=dict(attributes or {}),
    )


# =============================================================================
# AST
# =============================================================================


@dataclass(frozen=True)
class RelationNode:
    """Relation in the AST. Targets are resolved by the validator."""

    name: str
    targets: tuple[str, ...]


@dataclass(frozen=True)
class AttributeNode:
    """Attribute in the AST."""

    name: str
    type: str


@dataclass(frozen=True)
class PermissionNode:
    """Permission in the AST. The expression is kept verbatim."""

    name: str
    expression: str


@dataclass(frozen=True)
class EntityNode:
    """Entity in the AST.

    Attributes:
        name: Entity name (equals its key in SchemaAST.entities)
        relations: Relation name to RelationNode
        permissions: Permission name to PermissionNode
        attributes: Attribute name to AttributeNode
    """

    name: str
    relations: Mapping[str, RelationNode] = dataclass_field(default_factory=_empty)
    permissions: Mapping[str, PermissionNode] = dataclass_field(default_factory=_empty)
    attributes: Mapping[str, AttributeNode] = dataclass_field(default_factory=_empty)

    def has_member(self, name: str) -> bool:
        """Whether ``name`` is a relation or a permission of this entity."""
        return name in self.relations or name in self.permissions

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "relations": {r.name: list(r.targets) for r in self.relations.values()},
            "permissions": {p.name: p.expression for p in self.permissions.values()},
            "attributes": {a.name: a.type for a in self.attributes.values()},
        }

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass(frozen=True)
class SchemaAST:
    """Whole authorization model: entity name to EntityNode, in declaration order."""

    entities: Mapping[str, EntityNode] = dataclass_field(default_factory=_empty)

    def get_entity(self, name: str) -> EntityNode | None:
        """Get entity by name."""
        return self.entities.get(name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"entities": [e.to_dict() for e in self.entities.values()]}

    def __hash__(self) -> int:
        return hash(tuple(self.entities))
