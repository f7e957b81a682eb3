"""
Tenant resolution for write operations.

This module provides:
- tenant_exists(): Page through tenants looking for an id
- ensure_tenant(): Create or verify a tenant, reporting whether it was created
- is_already_exists(): Classify "already exists" failures from any transport

Invariants:
    - "already exists" on creation is a tolerated outcome, never an error
    - Pagination stops on a match or an empty continuation token
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import grpc

from .client import DEFAULT_PAGE_SIZE
from .errors import PermifyApiError, TenantNotFoundError

logger = logging.getLogger(__name__)

ALREADY_EXISTS_CODE = grpc.StatusCode.ALREADY_EXISTS.value[0]
HTTP_CONFLICT = 409
ALREADY_EXISTS_MARKERS = ("already exists", "ERROR_CODE_UNIQUE_CONSTRAINT")


@dataclass(frozen=True)
class TenantStatus:
    """Outcome of tenant resolution.

    Attributes:
        created: The tenant was created by this call
        already_existed: The tenant existed before this call
    """

    created: bool
    already_existed: bool

    def to_dict(self) -> dict[str, bool]:
        return {"created": self.created, "already_existed": self.already_existed}


def is_already_exists(error: BaseException) -> bool:
    """Whether a tenant-creation failure means the tenant already exists.

    Recognizes PermifyApiError (gRPC code or HTTP 409), grpc.RpcError with
    StatusCode.ALREADY_EXISTS, and the server's message markers.
    """
    if isinstance(error, PermifyApiError):
        if error.grpc_code == ALREADY_EXISTS_CODE or error.status_code == HTTP_CONFLICT:
            return True
    elif isinstance(error, grpc.RpcError):
        code = getattr(error, "code", None)
        if callable(code) and code() == grpc.StatusCode.ALREADY_EXISTS:
            return True

    message = str(error)
    return any(marker in message for marker in ALREADY_EXISTS_MARKERS)


async def tenant_exists(
    client: Any,
    tenant_id: str,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> bool:
    """Page through the tenant list until ``tenant_id`` is seen or pages run out."""
    token = ""
    pages = 0
    while True:
        page = await client.list_tenants(page_size=page_size, continuous_token=token)
        pages += 1
        if any(t.id == tenant_id for t in page.tenants):
            logger.debug(f"Found tenant {tenant_id} on page {pages}")
            return True
        token = page.continuous_token
        if not token:
            logger.debug(f"Tenant {tenant_id} not found after {pages} page(s)")
            return False


async def ensure_tenant(client: Any, tenant_id: str, create: bool) -> TenantStatus:
    """Make sure the tenant exists before a write.

    Args:
        client: Server client
        tenant_id: Tenant identifier
        create: Create the tenant if it does not exist

    Returns:
        TenantStatus describing what happened

    Raises:
        TenantNotFoundError: If ``create`` is False and the tenant is absent
        Exception: Any tenant-creation failure other than "already exists"
    """
    if create:
        try:
            await client.create_tenant(tenant_id, tenant_id)
        except Exception as e:
            if not is_already_exists(e):
                raise
            logger.debug(f"Tenant {tenant_id} already exists")
            return TenantStatus(created=False, already_existed=True)

        logger.info(f"Created tenant {tenant_id}")
        return TenantStatus(created=True, already_existed=False)

    if not await tenant_exists(client, tenant_id):
        raise TenantNotFoundError(tenant_id)
    return TenantStatus(created=False, already_existed=True)
