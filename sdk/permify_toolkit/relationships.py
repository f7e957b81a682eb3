"""
Relationship data writes for Permify tenants.

This module provides:
- Relationship tuple types (EntityRef, SubjectRef, Relationship)
- RelationshipFilter for deletes
- write_relationships(), delete_relationships(), seed_relationships()

All writes go through the transactional workflow in writer.py, so a tenant
created by the call is removed again if the write fails.

Example:
    >>> await write_relationships(
    ...     [
    ...         Relationship(
    ...             entity=EntityRef("document", "doc-1"),
    ...             relation="owner",
    ...             subject=SubjectRef("user", "alice"),
    ...         ),
    ...     ],
    ...     tenant_id="acme",
    ...     client=client,
    ... )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .client import ClientOptions
from .config import SeedingMode
from .errors import ParameterError
from .tenancy import TenantStatus
from .writer import check_write_params, execute_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityRef:
    """An entity instance, e.g. ``document:doc-1``."""

    type: str
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id}


@dataclass(frozen=True)
class SubjectRef:
    """A subject, optionally a subject set such as ``organization:1#member``."""

    type: str
    id: str
    relation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "id": self.id}
        if self.relation:
            result["relation"] = self.relation
        return result


@dataclass(frozen=True)
class Relationship:
    """A relationship tuple: entity, relation, subject."""

    entity: EntityRef
    relation: str
    subject: SubjectRef

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Relationship:
        """Build from ``{"entity": {...}, "relation": ..., "subject": {...}}``.

        Raises:
            ParameterError: If a required key is missing
        """
        try:
            entity = data["entity"]
            subject = data["subject"]
            return cls(
                entity=EntityRef(type=entity["type"], id=entity["id"]),
                relation=data["relation"],
                subject=SubjectRef(
                    type=subject["type"],
                    id=subject["id"],
                    relation=subject.get("relation"),
                ),
            )
        except (KeyError, TypeError) as e:
            raise ParameterError(f"Invalid relationship tuple {data!r}: missing {e}", parameter="tuples") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity.to_dict(),
            "relation": self.relation,
            "subject": self.subject.to_dict(),
        }

    def __str__(self) -> str:
        subject = f"{self.subject.type}:{self.subject.id}"
        if self.subject.relation:
            subject += f"#{self.subject.relation}"
        return f"{self.entity.type}:{self.entity.id}#{self.relation}@{subject}"


@dataclass(frozen=True)
class EntityFilter:
    """Match entities of a type, optionally restricted to ids."""

    type: str
    ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SubjectFilter:
    """Match subjects of a type, optionally restricted to ids and a relation."""

    type: str
    ids: tuple[str, ...] = ()
    relation: str | None = None


@dataclass(frozen=True)
class RelationshipFilter:
    """Filter for deleting relationship tuples.

    An empty filter matches every tuple in the tenant.
    """

    entity: EntityFilter | None = None
    relation: str | None = None
    subject: SubjectFilter | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RelationshipFilter:
        """Build from ``{"entity": {...}, "relation": ..., "subject": {...}}``.

        Raises:
            ParameterError: If the filter or one of its parts is malformed
        """
        try:
            entity = data.get("entity")
            subject = data.get("subject")
            return cls(
                entity=EntityFilter(type=entity["type"], ids=tuple(entity.get("ids") or ())) if entity else None,
                relation=data.get("relation") or None,
                subject=(
                    SubjectFilter(
                        type=subject["type"],
                        ids=tuple(subject.get("ids") or ()),
                        relation=subject.get("relation"),
                    )
                    if subject
                    else None
                ),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ParameterError(f"Invalid relationship filter {data!r}: {e!r}", parameter="filter") from e

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.entity:
            result["entity"] = {"type": self.entity.type, "ids": list(self.entity.ids)}
        if self.relation:
            result["relation"] = self.relation
        if self.subject:
            subject: dict[str, Any] = {"type": self.subject.type, "ids": list(self.subject.ids)}
            if self.subject.relation:
                subject["relation"] = self.subject.relation
            result["subject"] = subject
        return result


@dataclass(frozen=True)
class RelationshipWriteResult:
    """Result of write_relationships() and seed_relationships()."""

    success: bool
    count: int
    snap_token: str = ""
    tenant_status: TenantStatus | None = None
    replaced: bool = False


@dataclass(frozen=True)
class RelationshipDeleteResult:
    """Result of delete_relationships()."""

    success: bool
    snap_token: str = ""
    tenant_status: TenantStatus | None = None


def _coerce_tuples(tuples: Iterable[Relationship | Mapping[str, Any]]) -> list[Relationship]:
    return [t if isinstance(t, Relationship) else Relationship.from_dict(t) for t in tuples]


async def write_relationships(
    tuples: Iterable[Relationship | Mapping[str, Any]],
    *,
    tenant_id: str,
    client: Any = None,
    endpoint: str | None = None,
    client_options: ClientOptions | None = None,
    create_tenant_if_not_exists: bool = False,
    schema_version: str = "",
) -> RelationshipWriteResult:
    """Write relationship tuples to a tenant.

    Args:
        tuples: Relationships (dataclasses or dicts)
        tenant_id: Target tenant
        client: Established server client
        endpoint: Server host:port when no client is given
        client_options: Connection settings when no client is given
        create_tenant_if_not_exists: Create the tenant when missing
        schema_version: Schema version to write against ("" for latest)

    Raises:
        ParameterError: No tuples, missing tenant id or client information
    """
    check_write_params(tenant_id, client, endpoint, client_options)
    if tuples is None:
        raise ParameterError("Relationship tuples are required", parameter="tuples")
    relationships = _coerce_tuples(tuples)
    if not relationships:
        raise ParameterError("Relationship tuples are required", parameter="tuples")

    payload = [r.to_dict() for r in relationships]

    async def _write(c: Any, tenant: str) -> str:
        return await c.write_relationships(tenant, payload, schema_version=schema_version)

    outcome = await execute_write(
        _write,
        tenant_id=tenant_id,
        client=client,
        endpoint=endpoint,
        client_options=client_options,
        create_tenant_if_not_exists=create_tenant_if_not_exists,
    )

    logger.info(f"Wrote {len(payload)} relationship(s) to tenant {tenant_id}")
    return RelationshipWriteResult(
        success=True,
        count=len(payload),
        snap_token=outcome.result or "",
        tenant_status=outcome.tenant_status,
    )


async def delete_relationships(
    filter: RelationshipFilter | Mapping[str, Any],
    *,
    tenant_id: str,
    client: Any = None,
    endpoint: str | None = None,
    client_options: ClientOptions | None = None,
    create_tenant_if_not_exists: bool = False,
) -> RelationshipDeleteResult:
    """Delete relationship tuples matching ``filter``.

    An empty filter deletes every tuple in the tenant.

    Raises:
        ParameterError: No filter, missing tenant id or client information
    """
    check_write_params(tenant_id, client, endpoint, client_options)
    if filter is None:
        raise ParameterError("Relationship filter is required", parameter="filter")
    if not isinstance(filter, RelationshipFilter):
        filter = RelationshipFilter.from_dict(filter)

    payload = filter.to_dict()

    async def _delete(c: Any, tenant: str) -> str:
        return await c.delete_relationships(tenant, payload)

    outcome = await execute_write(
        _delete,
        tenant_id=tenant_id,
        client=client,
        endpoint=endpoint,
        client_options=client_options,
        create_tenant_if_not_exists=create_tenant_if_not_exists,
    )

    logger.info(f"Deleted relationships from tenant {tenant_id} (filter={payload or 'all'})")
    return RelationshipDeleteResult(
        success=True,
        snap_token=outcome.result or "",
        tenant_status=outcome.tenant_status,
    )


async def seed_relationships(
    tuples: Iterable[Relationship | Mapping[str, Any]],
    *,
    tenant_id: str,
    mode: SeedingMode | str = SeedingMode.APPEND,
    client: Any = None,
    endpoint: str | None = None,
    client_options: ClientOptions | None = None,
    create_tenant_if_not_exists: bool = False,
) -> RelationshipWriteResult:
    """Seed a tenant with relationship tuples.

    APPEND adds the tuples to existing data. REPLACE deletes every existing
    tuple of the (already existing) tenant first. An empty tuple list is a
    no-op.

    Raises:
        ParameterError: Invalid mode, missing tenant id or client information
    """
    check_write_params(tenant_id, client, endpoint, client_options)
    try:
        mode = SeedingMode(mode)
    except ValueError:
        valid = ", ".join(m.value for m in SeedingMode)
        raise ParameterError(f"Invalid seeding mode: {mode}. Must be one of: {valid}", parameter="mode") from None

    relationships = _coerce_tuples(tuples or ())
    if not relationships:
        logger.info(f"No relationships to seed for tenant {tenant_id}")
        return RelationshipWriteResult(success=True, count=0)

    if mode is SeedingMode.REPLACE:
        logger.info(f"Replacing all relationships for tenant {tenant_id}")
        await delete_relationships(
            RelationshipFilter(),
            tenant_id=tenant_id,
            client=client,
            endpoint=endpoint,
            client_options=client_options,
        )

    result = await write_relationships(
        relationships,
        tenant_id=tenant_id,
        client=client,
        endpoint=endpoint,
        client_options=client_options,
        create_tenant_if_not_exists=create_tenant_if_not_exists,
    )
    return RelationshipWriteResult(
        success=result.success,
        count=result.count,
        snap_token=result.snap_token,
        tenant_status=result.tenant_status,
        replaced=mode is SeedingMode.REPLACE,
    )
