"""
Unit tests for schema declarations and the builder.

Tests cover:
- Declaration helpers
- AST construction and ordering
- Structural errors for malformed declarations
- The precomputed permission key table
- AST node defaults
"""

import re

import pytest

from permify_toolkit import (
    AttributeType,
    EntityNode,
    SchemaAST,
    SchemaHandle,
    attribute,
    compile_schema,
    define_schema,
    entity,
    permission,
    relation,
    relations_of,
)
from permify_toolkit.errors import ReferenceError, StructuralError


class TestDeclarations:
    """Tests for declaration helpers."""

    def test_relation_keeps_target_order(self):
        """relation() keeps targets in the given order."""
        rel = relation("user", "team")
        assert rel.targets == ("user", "team")

    def test_attribute_accepts_enum(self):
        """attribute() accepts AttributeType members."""
        assert attribute(AttributeType.BOOLEAN).type == "boolean"

    def test_attribute_type_from_str(self):
        """AttributeType.from_str rejects unknown types."""
        assert AttributeType.from_str("string[]") is AttributeType.STRING_ARRAY
        with pytest.raises(ValueError, match="Invalid attribute type"):
            AttributeType.from_str("varchar")

    def test_relations_of(self):
        """relations_of() builds one relation per name."""
        rels = relations_of("role", ["viewers", "creators", "downloaders"])
        assert list(rels) == ["viewers", "creators", "downloaders"]
        assert all(r.targets == ("role",) for r in rels.values())


class TestDefineSchema:
    """Tests for define_schema()."""

    def test_builds_ast_in_declaration_order(self):
        """Entities and members keep declaration order."""
        schema = define_schema(
            {
                "user": entity(),
                "document": entity(
                    relations={"owner": relation("user"), "editor": relation("user")},
                    permissions={"edit": permission("owner or editor"), "view": permission("edit")},
                    attributes={"public": attribute("boolean")},
                ),
            }
        )

        assert isinstance(schema, SchemaHandle)
        assert list(schema.ast.entities) == ["user", "document"]
        document = schema.ast.entities["document"]
        assert document.name == "document"
        assert list(document.relations) == ["owner", "editor"]
        assert list(document.permissions) == ["edit", "view"]
        assert document.attributes["public"].type == "boolean"

    def test_accepts_plain_mappings(self):
        """Plain dict declarations are normalized like entity()."""
        schema = define_schema(
            {
                "user": {},
                "team": {"relations": {"member": "user"}},
                "document": {
                    "relations": {"owner": ["user", "team"], "parent": {"targets": ["team"]}},
                    "permissions": {"view": "owner or parent.member"},
                    "attributes": {"rank": "integer"},
                },
            }
        )

        document = schema.ast.entities["document"]
        assert document.relations["owner"].targets == ("user", "team")
        assert document.relations["parent"].targets == ("team",)
        assert document.permissions["view"].expression == "owner or parent.member"
        assert schema.ast.entities["team"].relations["member"].targets == ("user",)

    def test_non_object_entity_raises(self):
        """A non-mapping entity declaration is a structural error."""
        with pytest.raises(StructuralError, match='Entity definition for "user" must be an object') as exc:
            define_schema({"user": "invalid-definition"})
        assert exc.value.entity == "user"

    def test_singular_permission_key_raises(self):
        """Only the plural "permissions" section name is accepted."""
        with pytest.raises(StructuralError, match=re.escape("Did you mean: ['permissions']?")):
            define_schema({"user": {"permission": {"view": "self"}}})

    def test_relation_without_targets_raises(self):
        """A relation needs at least one target."""
        with pytest.raises(StructuralError, match="must declare one or more target"):
            define_schema({"user": entity(relations={"manager": relation()})})

    def test_empty_permission_expression_raises(self):
        """A permission needs a non-empty expression."""
        with pytest.raises(StructuralError, match="non-empty expression"):
            define_schema({"user": entity(permissions={"view": permission("  ")})})

    def test_invalid_attribute_type_raises(self):
        """Attribute types must be Permify primitives."""
        with pytest.raises(StructuralError, match='invalid type "varchar"'):
            define_schema({"user": entity(attributes={"name": attribute("varchar")})})

    def test_validation_failure_exposes_no_handle(self):
        """Building fails atomically on a dangling reference."""
        handle = None
        with pytest.raises(ReferenceError):
            handle = define_schema({"document": entity(relations={"owner": relation("nonexistent")})})
        assert handle is None

    def test_ast_is_read_only(self):
        """The AST mappings cannot be mutated."""
        schema = define_schema({"user": entity()})
        with pytest.raises(TypeError):
            schema.ast.entities["team"] = schema.ast.entities["user"]


class TestPermissionKeys:
    """Tests for the permission key table."""

    @pytest.fixture
    def schema(self):
        return define_schema(
            {
                "document": entity(
                    relations={"owner": relation("user")},
                    permissions={
                        "view": permission("owner"),
                        "edit": permission("owner"),
                        "delete": permission("owner"),
                    },
                ),
                "user": entity(),
            }
        )

    def test_keys_are_entity_colon_permission(self, schema):
        """Keys are "entity:permission" strings."""
        assert schema.permissions["document"]["view"] == "document:view"
        assert schema.permissions["document"]["edit"] == "document:edit"
        assert schema.permissions["document"]["delete"] == "document:delete"
        assert dict(schema.permissions["user"]) == {}

    def test_table_is_precomputed(self, schema):
        """The same table object is returned on every access."""
        assert schema.permissions is schema.permissions

    def test_permission_key_lookup(self, schema):
        """permission_key() raises KeyError for unknown names."""
        assert schema.permission_key("document", "view") == "document:view"
        with pytest.raises(KeyError, match="Unknown entity"):
            schema.permission_key("folder", "view")
        with pytest.raises(KeyError, match="Unknown permission"):
            schema.permission_key("document", "share")


class TestAstDefaults:
    """Tests for AST node defaults."""

    def test_entity_node_defaults_are_empty_and_read_only(self):
        """Omitted member mappings default to empty read-only mappings."""
        node = EntityNode(name="user")

        assert dict(node.relations) == {}
        assert dict(node.permissions) == {}
        assert dict(node.attributes) == {}
        with pytest.raises(TypeError):
            node.relations["manager"] = None

    def test_defaults_are_not_shared(self):
        """Each node gets its own default mapping."""
        assert EntityNode(name="a").relations is not EntityNode(name="b").relations

    def test_schema_ast_default(self):
        """An AST without entities compiles to nothing."""
        ast = SchemaAST()
        assert dict(ast.entities) == {}
        assert ast.get_entity("user") is None
        assert compile_schema(ast) == ""
