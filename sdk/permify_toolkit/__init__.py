"""
Permify toolkit - declare, validate, compile and deploy Permify schemas.

This package provides:
- Schema declarations (entity, relation, permission, attribute)
- define_schema() to build a validated SchemaHandle
- A compiler from the schema AST to the Permify schema language
- Transactional writes of schemas and relationship data to a tenant,
  with rollback of a tenant created by a failed write

Example:
    >>> from permify_toolkit import define_schema, entity, relation, permission, write_schema
    >>>
    >>> schema = define_schema({
    ...     "user": entity(),
    ...     "document": entity(
    ...         relations={"owner": relation("user")},
    ...         permissions={"edit": permission("owner")},
    ...     ),
    ... })
    >>>
    >>> result = await write_schema(
    ...     schema,
    ...     tenant_id="acme",
    ...     endpoint="localhost:3476",
    ...     create_tenant_if_not_exists=True,
    ... )

Invariants:
    - A SchemaHandle only exists for a schema whose references all resolve
    - Compilation is deterministic
    - A tenant created by a failed write is deleted again

Version: 0.1.0
"""

__version__ = "0.1.0"

from .builder import SchemaHandle, build_ast, define_schema
from .client import ClientOptions, PermifyClient, Tenant, TenantPage
from .compiler import compile_schema
from .config import (
    LoggingConfig,
    RelationshipsConfig,
    SeedingMode,
    ToolkitConfig,
    define_config,
    schema_file,
    validate_config,
)
from .errors import (
    CompensationError,
    ConfigError,
    ConnectionError,
    ParameterError,
    PermifyApiError,
    PermifyToolkitError,
    ReferenceError,
    RollbackFailedError,
    StructuralError,
    TenantNotFoundError,
    TenantRolledBackError,
)
from .helpers import relations_of
from .logging_setup import setup_logging
from .permissions import CheckResult, check_permission
from .relationships import (
    EntityFilter,
    EntityRef,
    Relationship,
    RelationshipDeleteResult,
    RelationshipFilter,
    RelationshipWriteResult,
    SubjectFilter,
    SubjectRef,
    delete_relationships,
    seed_relationships,
    write_relationships,
)
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
    attribute,
    entity,
    permission,
    relation,
)
from .schema_writer import SchemaWriteResult, write_schema
from .tenancy import TenantStatus, ensure_tenant, tenant_exists
from .validate import validate_schema
from .writer import WriteOutcome, WriteState, execute_write

__all__ = [
    # Version
    "__version__",
    # Declarations
    "entity",
    "relation",
    "permission",
    "attribute",
    "relations_of",
    "EntityDef",
    "RelationDef",
    "PermissionDef",
    "AttributeDef",
    "AttributeType",
    # AST
    "SchemaAST",
    "EntityNode",
    "RelationNode",
    "PermissionNode",
    "AttributeNode",
    # Builder, validator, compiler
    "define_schema",
    "build_ast",
    "SchemaHandle",
    "validate_schema",
    "compile_schema",
    # Client
    "ClientOptions",
    "PermifyClient",
    "Tenant",
    "TenantPage",
    # Deployment
    "TenantStatus",
    "ensure_tenant",
    "tenant_exists",
    "WriteOutcome",
    "WriteState",
    "execute_write",
    "SchemaWriteResult",
    "write_schema",
    "EntityRef",
    "SubjectRef",
    "Relationship",
    "EntityFilter",
    "SubjectFilter",
    "RelationshipFilter",
    "RelationshipWriteResult",
    "RelationshipDeleteResult",
    "write_relationships",
    "delete_relationships",
    "seed_relationships",
    # Permission checks
    "CheckResult",
    "check_permission",
    # Config
    "ToolkitConfig",
    "RelationshipsConfig",
    "LoggingConfig",
    "SeedingMode",
    "define_config",
    "schema_file",
    "validate_config",
    # Logging
    "setup_logging",
    # Errors
    "PermifyToolkitError",
    "StructuralError",
    "ReferenceError",
    "ParameterError",
    "TenantNotFoundError",
    "ConnectionError",
    "PermifyApiError",
    "CompensationError",
    "TenantRolledBackError",
    "RollbackFailedError",
    "ConfigError",
]
