"""
Permission checks against a Permify tenant.

The server evaluates the permission graph; this module only shapes the
request and maps the response to a boolean.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

from .errors import ParameterError
from .relationships import EntityRef, SubjectRef

logger = logging.getLogger(__name__)

DEFAULT_CHECK_DEPTH = 20


class CheckResult(Enum):
    """Permify check result (``CheckResult`` in the Permify API)."""

    UNSPECIFIED = 0
    ALLOWED = 1
    DENIED = 2

    @classmethod
    def parse(cls, value: Any) -> CheckResult:
        """Parse an enum name (``"CHECK_RESULT_ALLOWED"``) or number.

        Raises:
            ValueError: If the value is not a known result
        """
        if isinstance(value, CheckResult):
            return value
        if isinstance(value, str):
            name = value.removeprefix("CHECK_RESULT_")
            if name in cls.__members__:
                return cls[name]
            if value.isdigit():
                return cls(int(value))
            raise ValueError(f"Invalid check result: {value}")
        return cls(value)


async def check_permission(
    client: Any,
    *,
    tenant_id: str,
    entity: EntityRef | Mapping[str, Any],
    permission: str,
    subject: SubjectRef | Mapping[str, Any],
    metadata: Mapping[str, Any] | None = None,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """Ask the server whether ``subject`` has ``permission`` on ``entity``.

    ``metadata.depth`` defaults to 20; pass ``snap_token`` or
    ``schema_version`` in ``metadata`` to pin the evaluation.

    Example:
        >>> allowed = await check_permission(
        ...     client,
        ...     tenant_id="acme",
        ...     entity=EntityRef("document", "finance-report"),
        ...     permission="view",
        ...     subject=SubjectRef("user", "alice"),
        ... )
    """
    if not tenant_id:
        raise ParameterError("Tenant ID is required", parameter="tenant_id")
    if not permission:
        raise ParameterError("Permission is required", parameter="permission")

    request: dict[str, Any] = {
        "metadata": {"depth": DEFAULT_CHECK_DEPTH, **(metadata or {})},
        "entity": entity.to_dict() if isinstance(entity, EntityRef) else dict(entity),
        "permission": permission,
        "subject": subject.to_dict() if isinstance(subject, SubjectRef) else dict(subject),
    }
    if context:
        request["context"] = dict(context)

    response = await client.check_permission(tenant_id, request)
    result = CheckResult.parse(response.get("can", CheckResult.UNSPECIFIED))
    logger.debug(
        f"Check {request['entity']} {permission} for {request['subject']} "
        f"in tenant {tenant_id}: {result.name}"
    )
    return result is CheckResult.ALLOWED
