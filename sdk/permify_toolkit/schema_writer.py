"""
Deploy a schema to a Permify tenant.

Example:
    >>> result = await write_schema(
    ...     schema,
    ...     tenant_id="acme",
    ...     endpoint="localhost:3476",
    ...     create_tenant_if_not_exists=True,
    ... )
    >>> result.schema_version
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .builder import SchemaHandle
from .client import ClientOptions
from .errors import ParameterError
from .tenancy import TenantStatus
from .writer import check_write_params, execute_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaWriteResult:
    """Result of write_schema().

    Attributes:
        compiled_schema: Schema text sent to the server
        schema_version: Version assigned by the server
        tenant_status: Whether the tenant was created by this call
    """

    compiled_schema: str
    schema_version: str
    tenant_status: TenantStatus


async def write_schema(
    schema: SchemaHandle | str,
    *,
    tenant_id: str,
    client: Any = None,
    endpoint: str | None = None,
    client_options: ClientOptions | None = None,
    create_tenant_if_not_exists: bool = False,
) -> SchemaWriteResult:
    """Compile (if needed) and write a schema to a tenant.

    Args:
        schema: Validated SchemaHandle, or already-compiled schema text
        tenant_id: Target tenant
        client: Established server client
        endpoint: Server host:port when no client is given
        client_options: Connection settings when no client is given
        create_tenant_if_not_exists: Create the tenant when missing

    Returns:
        SchemaWriteResult

    Raises:
        ParameterError: Missing schema, tenant id or client information
    """
    check_write_params(tenant_id, client, endpoint, client_options)
    if schema is None:
        raise ParameterError("Schema is required", parameter="schema")

    compiled = schema.compile() if isinstance(schema, SchemaHandle) else schema
    if not isinstance(compiled, str) or not compiled.strip():
        raise ParameterError("Schema is required", parameter="schema")

    async def _write(c: Any, tenant: str) -> str:
        return await c.write_schema(tenant, compiled)

    outcome = await execute_write(
        _write,
        tenant_id=tenant_id,
        client=client,
        endpoint=endpoint,
        client_options=client_options,
        create_tenant_if_not_exists=create_tenant_if_not_exists,
    )

    logger.info(f"Wrote schema to tenant {tenant_id} (version {outcome.result or 'unknown'})")
    return SchemaWriteResult(
        compiled_schema=compiled,
        schema_version=outcome.result or "",
        tenant_status=outcome.tenant_status,
    )
