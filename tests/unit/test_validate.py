"""
Unit tests for schema reference validation.

Tests cover:
- Relation target resolution
- Local permission identifiers
- Dotted references into related entities
- Error ordering and idempotence
"""

import re

import pytest

from permify_toolkit import build_ast, define_schema, entity, permission, relation, validate_schema
from permify_toolkit.errors import ReferenceError
from permify_toolkit.validate import expression_identifiers


def _folder_document(folder_members):
    return {
        "document": entity(
            relations={"parent": relation("folder")},
            permissions={"view": permission("parent.view")},
        ),
        "folder": entity(**folder_members),
        "user": entity(),
    }


class TestExpressionIdentifiers:
    """Tests for expression tokenizing."""

    def test_drops_operators_and_parentheses(self):
        """Operators and parentheses are not identifiers."""
        ids = list(expression_identifiers("(owner or editor) and not parent.banned"))
        assert ids == ["owner", "editor", "parent.banned"]

    def test_handles_parentheses_without_spaces(self):
        """Parentheses split identifiers even without whitespace."""
        assert list(expression_identifiers("owner or(editor)")) == ["owner", "editor"]


class TestRelationTargets:
    """Tests for relation target checks."""

    def test_missing_target_raises(self):
        """A relation to an unknown entity fails with its full path."""
        expected = 'Entity "nonexistent" referenced in relation "document.owner" does not exist'
        with pytest.raises(ReferenceError, match=re.escape(expected)) as exc:
            define_schema({"document": entity(relations={"owner": relation("nonexistent")})})

        assert exc.value.entity == "document"
        assert exc.value.member == "owner"
        assert exc.value.identifier == "nonexistent"

    def test_every_target_is_checked(self):
        """The second target of a union relation is also checked."""
        with pytest.raises(ReferenceError, match='Entity "team"'):
            define_schema(
                {
                    "user": entity(),
                    "document": entity(relations={"viewer": relation("user", "team")}),
                }
            )


class TestLocalIdentifiers:
    """Tests for identifiers without a dot."""

    def test_undefined_identifier_raises(self):
        """An unknown local identifier fails."""
        expected = 'Permission "organization.view" references undefined relation or permission "nonexistent"'
        with pytest.raises(ReferenceError, match=re.escape(expected)):
            define_schema(
                {
                    "organization": entity(
                        relations={"member": relation("user")},
                        permissions={"view": permission("nonexistent")},
                    ),
                    "user": entity(),
                }
            )

    def test_permission_may_reference_permission(self):
        """Permissions may build on other permissions, in any order."""
        schema = define_schema(
            {
                "document": entity(
                    relations={"owner": relation("user"), "editor": relation("user")},
                    permissions={
                        "view": permission("edit or owner"),
                        "edit": permission("owner or editor"),
                    },
                ),
                "user": entity(),
            }
        )
        assert "view" in schema.ast.entities["document"].permissions

    def test_attributes_are_not_identifiers(self):
        """Only relations and permissions resolve locally."""
        with pytest.raises(ReferenceError, match='undefined relation or permission "public"'):
            define_schema(
                {
                    "document": {
                        "attributes": {"public": "boolean"},
                        "permissions": {"view": "public"},
                    }
                }
            )


class TestDottedIdentifiers:
    """Tests for relation.member references."""

    def test_resolves_permission_on_target(self):
        """parent.view validates when folder declares a view permission."""
        define_schema(
            _folder_document(
                {
                    "relations": {"member": relation("user")},
                    "permissions": {"view": permission("member")},
                }
            )
        )

    def test_resolves_relation_on_target(self):
        """parent.view validates when folder declares a view relation."""
        define_schema(_folder_document({"relations": {"view": relation("user")}}))

    def test_missing_member_on_target_raises(self):
        """parent.view fails when folder has no view member."""
        expected = (
            'Permission "document.view" references undefined permission or relation '
            '"view" on entity "folder"'
        )
        with pytest.raises(ReferenceError, match=re.escape(expected)):
            define_schema(_folder_document({"relations": {"member": relation("user")}}))

    def test_unknown_relation_raises(self):
        """The left side must be a relation of the entity."""
        expected = 'Permission "document.view" references undefined relation "owner"'
        with pytest.raises(ReferenceError, match=re.escape(expected)):
            define_schema(
                {
                    "document": entity(permissions={"view": permission("owner.view")}),
                }
            )

    def test_permission_on_left_side_raises(self):
        """A permission cannot be traversed like a relation."""
        with pytest.raises(ReferenceError, match='undefined relation "edit"'):
            define_schema(
                {
                    "document": entity(
                        relations={"owner": relation("user")},
                        permissions={"edit": permission("owner"), "view": permission("edit.view")},
                    ),
                    "user": entity(),
                }
            )

    def test_every_target_must_declare_member(self):
        """With a union relation, every target entity needs the member."""
        with pytest.raises(ReferenceError, match='"view" on entity "team"'):
            define_schema(
                {
                    "user": entity(relations={"view": relation("user")}),
                    "team": entity(relations={"member": relation("user")}),
                    "document": entity(
                        relations={"parent": relation("user", "team")},
                        permissions={"view": permission("parent.view")},
                    ),
                }
            )

    def test_multiple_dots_raise(self):
        """Only one level of traversal is allowed."""
        with pytest.raises(ReferenceError, match='malformed identifier "parent.parent.view"'):
            define_schema(
                {
                    "folder": entity(relations={"parent": relation("folder")}),
                    "document": entity(
                        relations={"parent": relation("folder")},
                        permissions={"view": permission("parent.parent.view")},
                    ),
                }
            )


class TestValidationBehaviour:
    """Tests for ordering and purity."""

    def test_first_failure_is_reported(self):
        """Errors are raised in declaration order, not aggregated."""
        ast = build_ast(
            {
                "document": entity(
                    relations={"owner": relation("ghost"), "editor": relation("phantom")},
                    permissions={"view": permission("missing")},
                ),
            }
        )
        with pytest.raises(ReferenceError) as exc:
            validate_schema(ast)
        assert exc.value.identifier == "ghost"

    def test_relations_checked_before_permissions(self):
        """Within an entity, relation targets are checked first."""
        ast = build_ast(
            {
                "document": entity(
                    relations={"parent": relation("folder")},
                    permissions={"view": permission("parent.view")},
                ),
            }
        )
        with pytest.raises(ReferenceError, match='Entity "folder"'):
            validate_schema(ast)

    def test_validation_is_idempotent(self):
        """Validating twice yields the same outcome."""
        ast = build_ast({"document": entity(permissions={"view": permission("nobody")})})
        messages = []
        for _ in range(2):
            with pytest.raises(ReferenceError) as exc:
                validate_schema(ast)
            messages.append(str(exc.value))
        assert messages[0] == messages[1]

        schema = define_schema({"user": entity()})
        schema.validate()
        schema.validate()
