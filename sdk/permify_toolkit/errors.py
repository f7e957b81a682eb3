"""
Error types for the Permify toolkit.

This module defines all exception types raised by the toolkit:
- PermifyToolkitError: Base exception
- StructuralError: Malformed schema declarations
- ReferenceError: Dangling relation targets or permission identifiers
- ParameterError: Missing tenant, payload or client before any network call
- TenantNotFoundError: Tenant is absent and auto-creation was not requested
- ConnectionError: Server unreachable
- PermifyApiError: Failure reported by the Permify server
- TenantRolledBackError / RollbackFailedError: Compensation outcomes
- ConfigError: Invalid toolkit configuration

Invariants:
    - All errors inherit from PermifyToolkitError
    - Compensation errors always keep the original failure
    - Error messages are actionable
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PermifyToolkitError(Exception):
    """Base exception for all toolkit errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "PERMIFY_TOOLKIT_ERROR"
        self.details = details or {}


class StructuralError(PermifyToolkitError):
    """Schema declaration is malformed.

    Raised when:
    - An entity declaration is not a mapping
    - A relation declares no targets
    - An attribute uses an unsupported type
    """

    def __init__(self, message: str, entity: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="STRUCTURAL_ERROR",
            details={"entity": entity},
        )
        self.entity = entity


class ReferenceError(PermifyToolkitError):
    """A relation target or permission identifier does not resolve.

    Attributes:
        entity: Entity owning the offending relation or permission
        member: Name of the offending relation or permission
        identifier: The unresolved name
    """

    def __init__(
        self,
        message: str,
        entity: str,
        member: str,
        identifier: str,
    ) -> None:
        super().__init__(
            message,
            code="REFERENCE_ERROR",
            details={"entity": entity, "member": member, "identifier": identifier},
        )
        self.entity = entity
        self.member = member
        self.identifier = identifier


class ParameterError(PermifyToolkitError):
    """Required parameter missing before any network activity."""

    def __init__(self, message: str, parameter: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="PARAMETER_ERROR",
            details={"parameter": parameter},
        )
        self.parameter = parameter


class TenantNotFoundError(PermifyToolkitError):
    """Tenant does not exist and was not allowed to be created."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(
            f'Tenant "{tenant_id}" not found. '
            "Enable create_tenant_if_not_exists to create it automatically.",
            code="TENANT_NOT_FOUND",
            details={"tenant_id": tenant_id},
        )
        self.tenant_id = tenant_id


class ConnectionError(PermifyToolkitError):
    """Failed to reach the Permify server.

    Raised when:
    - Server is unreachable
    - Connection times out
    - TLS handshake fails
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"address": address},
        )
        self.address = address


class PermifyApiError(PermifyToolkitError):
    """The Permify server rejected a request.

    Attributes:
        status_code: HTTP status code, if the request reached the server
        grpc_code: Canonical gRPC status code reported in the error body
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        grpc_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="API_ERROR",
            details={"status_code": status_code, "grpc_code": grpc_code},
        )
        self.status_code = status_code
        self.grpc_code = grpc_code


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class CompensationError(PermifyToolkitError):
    """A write failed after the tenant was created in the same call.

    Attributes:
        tenant_id: Tenant that was created and then compensated
        original_error: The failure that triggered compensation
    """

    def __init__(
        self,
        message: str,
        code: str,
        tenant_id: str,
        original_error: BaseException,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"tenant_id": tenant_id, "original_error": _describe(original_error), **(details or {})},
        )
        self.tenant_id = tenant_id
        self.original_error = original_error


class TenantRolledBackError(CompensationError):
    """Write failed; the freshly created tenant was deleted."""

    def __init__(self, tenant_id: str, original_error: BaseException) -> None:
        super().__init__(
            f"Operation failed: {_describe(original_error)}. "
            f"Tenant {tenant_id} was rolled back (deleted).",
            code="TENANT_ROLLED_BACK",
            tenant_id=tenant_id,
            original_error=original_error,
        )


class RollbackFailedError(CompensationError):
    """Write failed and deleting the freshly created tenant failed too."""

    def __init__(
        self,
        tenant_id: str,
        original_error: BaseException,
        rollback_error: BaseException,
    ) -> None:
        super().__init__(
            f"Operation failed: {_describe(original_error)}. Rollback failed: {_describe(rollback_error)}. "
            f"Tenant {tenant_id} may be in an inconsistent state.",
            code="ROLLBACK_FAILED",
            tenant_id=tenant_id,
            original_error=original_error,
            details={"rollback_error": _describe(rollback_error)},
        )
        self.rollback_error = rollback_error


class ConfigError(PermifyToolkitError):
    """Toolkit configuration is invalid."""

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CONFIG_ERROR",
            details={"setting": setting},
        )
        self.setting = setting
