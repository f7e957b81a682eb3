"""
Transactional write workflow.

Every write to a tenant (schema, relationship tuples, relationship deletes)
goes through execute_write():

    START -> TENANT_RESOLVED -> WRITE_ATTEMPTED -> SUCCESS
                                               \\-> ROLLING_BACK -> ROLLED_BACK
                                                               \\-> ROLLBACK_FAILED

1. Resolve the tenant (create it, tolerating "already exists", or verify it)
2. Run the write operation passed in by the caller
3. If the write fails or is cancelled and step 1 created the tenant, delete it
   again and raise an error describing both the failure and the rollback outcome

Invariants:
    - Parameters are checked before any network call
    - A pre-existing tenant is never deleted
    - The original write failure is never discarded
    - Nothing is retried
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from .client import ClientOptions, PermifyClient
from .errors import (
    CompensationError,
    ParameterError,
    RollbackFailedError,
    TenantRolledBackError,
)
from .tenancy import TenantStatus, ensure_tenant

logger = logging.getLogger(__name__)

T = TypeVar("T")

WriteOperation = Callable[[Any, str], Awaitable[T]]


class WriteState(Enum):
    """States of a single execute_write() call."""

    START = "start"
    TENANT_RESOLVED = "tenant_resolved"
    WRITE_ATTEMPTED = "write_attempted"
    SUCCESS = "success"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"


@dataclass(frozen=True)
class WriteOutcome(Generic[T]):
    """Result of the write operation plus tenant metadata."""

    result: T
    tenant_status: TenantStatus


def check_write_params(
    tenant_id: str | None,
    client: Any = None,
    endpoint: str | None = None,
    client_options: ClientOptions | None = None,
) -> None:
    """Validate the common write parameters.

    Raises:
        ParameterError: If the tenant id is empty or no client can be obtained
    """
    if client is None and not endpoint and not (client_options and client_options.endpoint):
        raise ParameterError("Either endpoint or client must be provided", parameter="client")
    if not tenant_id:
        raise ParameterError("Tenant ID is required", parameter="tenant_id")


async def execute_write(
    operation: WriteOperation[T],
    *,
    tenant_id: str,
    client: Any = None,
    endpoint: str | None = None,
    client_options: ClientOptions | None = None,
    create_tenant_if_not_exists: bool = False,
) -> WriteOutcome[T]:
    """Resolve the tenant, run ``operation`` and compensate on failure.

    Args:
        operation: Async callable ``(client, tenant_id) -> result``
        tenant_id: Target tenant
        client: Established server client; built from endpoint/options if None
        endpoint: Server host:port, used when no client is given
        client_options: Full connection settings, used when no client is given
        create_tenant_if_not_exists: Create the tenant when missing

    Returns:
        WriteOutcome with the operation result and tenant status

    Raises:
        ParameterError: Missing tenant id or client information
        TenantNotFoundError: Tenant absent and creation not requested
        TenantRolledBackError: Write failed, created tenant was deleted
        RollbackFailedError: Write failed and deleting the created tenant failed
        asyncio.CancelledError: Write cancelled; a created tenant is deleted
            first and the compensation error is attached as the cause
    """
    check_write_params(tenant_id, client, endpoint, client_options)

    if client is not None:
        return await _run(operation, client, tenant_id, create_tenant_if_not_exists)

    options = client_options or ClientOptions(endpoint=endpoint)
    if endpoint and options.endpoint != endpoint:
        options = replace(options, endpoint=endpoint)
    async with PermifyClient(options) as owned:
        return await _run(operation, owned, tenant_id, create_tenant_if_not_exists)


async def _run(
    operation: WriteOperation[T],
    client: Any,
    tenant_id: str,
    create: bool,
) -> WriteOutcome[T]:
    _transition(tenant_id, WriteState.START)
    status = await ensure_tenant(client, tenant_id, create)
    _transition(tenant_id, WriteState.TENANT_RESOLVED)

    try:
        _transition(tenant_id, WriteState.WRITE_ATTEMPTED)
        result = await operation(client, tenant_id)
    except asyncio.CancelledError as e:
        if not status.created:
            raise
        # Cancellation keeps propagating; the compensation outcome is its cause
        compensation = await _rollback_tenant(client, tenant_id, e)
        raise e from compensation
    except Exception as e:
        if not status.created:
            raise
        raise await _rollback_tenant(client, tenant_id, e) from e

    _transition(tenant_id, WriteState.SUCCESS)
    return WriteOutcome(result=result, tenant_status=status)


async def _rollback_tenant(
    client: Any,
    tenant_id: str,
    original: BaseException,
) -> CompensationError:
    """Delete a tenant created by this call; return the error to raise."""
    _transition(tenant_id, WriteState.ROLLING_BACK)
    logger.info(f"Write to new tenant {tenant_id} failed, deleting tenant: {original}")

    try:
        await client.delete_tenant(tenant_id)
    except Exception as rollback_error:
        _transition(tenant_id, WriteState.ROLLBACK_FAILED)
        logger.warning(
            f"Rollback of tenant {tenant_id} failed, tenant may be inconsistent: {rollback_error}"
        )
        return RollbackFailedError(tenant_id, original, rollback_error)

    _transition(tenant_id, WriteState.ROLLED_BACK)
    return TenantRolledBackError(tenant_id, original)


def _transition(tenant_id: str, state: WriteState) -> None:
    logger.debug(f"Tenant {tenant_id} write: {state.value}")
