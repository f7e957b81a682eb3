"""
Compile a schema AST to the Permify schema language.

Output for each entity, in declaration order:

    entity document {
        attribute public boolean
        relation owner @user
        relation parent @folder
        permission view = owner or parent.view
    }

Blocks are separated by a blank line and the result carries no trailing
whitespace. The compiler does not validate; call validate_schema() first.
"""

from __future__ import annotations

from .schema import EntityNode, SchemaAST

INDENT = "    "


def compile_schema(ast: SchemaAST) -> str:
    """Render the AST as Permify schema text."""
    blocks = ["\n".join(_compile_entity(e)) for e in ast.entities.values()]
    return "\n\n".join(blocks).rstrip()


def _compile_entity(entity: EntityNode) -> list[str]:
    lines = [f"entity {entity.name} {{"]

    for attr in entity.attributes.values():
        lines.append(f"{INDENT}attribute {attr.name} {attr.type}")

    for rel in entity.relations.values():
        lines.append(f"{INDENT}relation {rel.name} @{' or '.join(rel.targets)}")

    for perm in entity.permissions.values():
        lines.append(f"{INDENT}permission {perm.name} = {perm.expression}")

    lines.append("}")
    return lines
