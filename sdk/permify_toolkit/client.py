"""
Permify server client for the toolkit.

This module provides:
- ClientOptions: Connection settings, buildable by hand or from environment
- PermifyClient: Async HTTP client for the Permify v1 API
- Tenant / TenantPage: Tenant listing results

Only the calls the toolkit needs are exposed: tenant list/create/delete,
schema write, relationship write/delete and permission check. Any object
with the same async methods can stand in for PermifyClient.

Example:
    >>> async with PermifyClient(ClientOptions(endpoint="localhost:3476")) as client:
    ...     page = await client.list_tenants()

Invariants:
    - Non-2xx responses raise PermifyApiError carrying the server's gRPC code
    - Network failures raise ConnectionError
    - Auth tokens are never logged
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote

import httpx
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConnectionError, ParameterError, PermifyApiError

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "PERMIFY_"
DEFAULT_PAGE_SIZE = 20


class _ClientEnvSettings(BaseSettings):
    """Environment-backed client settings (prefix is set per load)."""

    endpoint: str | None = Field(default=None, description="Permify host:port")
    insecure: bool | None = Field(default=None, description="Use plaintext HTTP")
    tls_cert: str | None = Field(default=None, description="Client certificate PEM file")
    tls_key: str | None = Field(default=None, description="Client key PEM file")
    tls_ca: str | None = Field(default=None, description="CA bundle PEM file")
    auth_token: str | None = Field(default=None, description="Bearer token")
    timeout_ms: int | None = Field(default=None, description="Request timeout in ms")

    model_config = SettingsConfigDict(
        env_prefix=DEFAULT_ENV_PREFIX,
        env_file=".env",
        extra="ignore",
    )


@dataclass(frozen=True)
class ClientOptions:
    """Permify connection settings.

    Attributes:
        endpoint: Server address as host:port
        insecure: Plaintext HTTP; defaults to True for localhost endpoints
        tls_cert: Path to client certificate PEM (mutual TLS)
        tls_key: Path to client private key PEM (mutual TLS)
        tls_ca: Path to CA bundle PEM
        metadata: Extra headers sent with every request
        auth_token: Bearer token
        timeout_ms: Request timeout in milliseconds
    """

    endpoint: str | None = None
    insecure: bool | None = None
    tls_cert: str | None = None
    tls_key: str | None = None
    tls_ca: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    auth_token: str | None = None
    timeout_ms: int | None = None

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> ClientOptions:
        """Load options from environment variables.

        ``prefix`` replaces the default ``PERMIFY_`` namespace, so
        ``from_env("MY_APP_")`` reads ``MY_APP_ENDPOINT``, ``MY_APP_INSECURE``,
        ``MY_APP_TLS_CERT``, ``MY_APP_TLS_KEY``, ``MY_APP_TLS_CA``,
        ``MY_APP_AUTH_TOKEN`` and ``MY_APP_TIMEOUT_MS``.
        """
        env = _ClientEnvSettings(_env_prefix=prefix)
        return cls(
            endpoint=env.endpoint,
            insecure=env.insecure,
            tls_cert=env.tls_cert,
            tls_key=env.tls_key,
            tls_ca=env.tls_ca,
            auth_token=env.auth_token,
            timeout_ms=env.timeout_ms,
        )

    @property
    def use_insecure(self) -> bool:
        """Effective plaintext flag."""
        if self.insecure is None:
            return bool(self.endpoint and self.endpoint.startswith("localhost"))
        return self.insecure

    @property
    def base_url(self) -> str:
        """HTTP base URL derived from endpoint and insecure flag."""
        scheme = "http" if self.use_insecure else "https"
        return f"{scheme}://{self.endpoint}"


@dataclass
class Tenant:
    """A tenant as listed by the server."""

    id: str
    name: str = ""
    created_at: str | None = None


@dataclass
class TenantPage:
    """One page of tenants plus the token for the next page ("" when done)."""

    tenants: list[Tenant]
    continuous_token: str = ""


def _segment(value: str) -> str:
    """Percent-encode a single URL path segment."""
    return quote(value, safe="")


class PermifyClient:
    """Async client for the Permify HTTP API.

    Example:
        >>> async with PermifyClient(ClientOptions(endpoint="localhost:3476")) as client:
        ...     await client.create_tenant("acme")
        ...     await client.write_schema("acme", "entity user {}")
    """

    def __init__(
        self,
        options: ClientOptions,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            options: Connection settings
            transport: Optional httpx transport (used by tests)

        Raises:
            ParameterError: If the endpoint is missing or has no port
        """
        if not options.endpoint:
            raise ParameterError("Permify client requires an endpoint", parameter="endpoint")
        if ":" not in options.endpoint:
            raise ParameterError("Permify endpoint must include host:port", parameter="endpoint")

        self._options = options
        self._http = httpx.AsyncClient(
            base_url=options.base_url,
            headers=self._build_headers(options),
            timeout=options.timeout_ms / 1000 if options.timeout_ms else None,
            verify=self._build_verify(options),
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self._options.endpoint or ""

    @staticmethod
    def _build_headers(options: ClientOptions) -> dict[str, str]:
        headers = dict(options.metadata)
        if options.auth_token:
            headers["Authorization"] = f"Bearer {options.auth_token}"
        return headers

    @staticmethod
    def _build_verify(options: ClientOptions) -> ssl.SSLContext | bool:
        if options.use_insecure:
            return False
        context = ssl.create_default_context(cafile=options.tls_ca)
        if options.tls_cert:
            context.load_cert_chain(options.tls_cert, options.tls_key)
        return context

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> PermifyClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.request(method, path, json=body)
        except httpx.TransportError as e:
            raise ConnectionError(
                f"Failed to reach Permify at {self.endpoint}: {e}",
                address=self.endpoint,
            ) from e

        if response.is_success:
            if not response.content:
                return {}
            return response.json()

        message = response.text
        grpc_code = None
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            message = data.get("message") or message
            grpc_code = data.get("code")

        logger.debug(f"Permify {method} {path} failed with HTTP {response.status_code}")
        raise PermifyApiError(
            message or f"HTTP {response.status_code}",
            status_code=response.status_code,
            grpc_code=grpc_code,
        )

    # -------------------------------------------------------------------------
    # Tenancy
    # -------------------------------------------------------------------------

    async def list_tenants(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        continuous_token: str = "",
    ) -> TenantPage:
        """List one page of tenants."""
        data = await self._request(
            "POST",
            "/v1/tenants/list",
            {"page_size": page_size, "continuous_token": continuous_token},
        )
        tenants = [
            Tenant(id=t["id"], name=t.get("name", ""), created_at=t.get("created_at"))
            for t in data.get("tenants", [])
        ]
        return TenantPage(tenants=tenants, continuous_token=data.get("continuous_token") or "")

    async def create_tenant(self, tenant_id: str, name: str | None = None) -> None:
        """Create a tenant."""
        await self._request("POST", "/v1/tenants/create", {"id": tenant_id, "name": name or tenant_id})

    async def delete_tenant(self, tenant_id: str) -> None:
        """Delete a tenant and all its data."""
        await self._request("DELETE", f"/v1/tenants/{_segment(tenant_id)}")

    # -------------------------------------------------------------------------
    # Schema and data
    # -------------------------------------------------------------------------

    async def write_schema(self, tenant_id: str, schema: str) -> str:
        """Write schema text. Returns the new schema version."""
        data = await self._request(
            "POST",
            f"/v1/tenants/{_segment(tenant_id)}/schemas/write",
            {"schema": schema},
        )
        return data.get("schema_version", "")

    async def write_relationships(
        self,
        tenant_id: str,
        tuples: list[dict[str, Any]],
        schema_version: str = "",
    ) -> str:
        """Write relationship tuples. Returns the snap token."""
        data = await self._request(
            "POST",
            f"/v1/tenants/{_segment(tenant_id)}/data/write",
            {
                "metadata": {"schema_version": schema_version},
                "tuples": tuples,
                "attributes": [],
            },
        )
        return data.get("snap_token", "")

    async def delete_relationships(self, tenant_id: str, filter: dict[str, Any]) -> str:
        """Delete relationship tuples matching a filter. Returns the snap token."""
        data = await self._request(
            "POST",
            f"/v1/tenants/{_segment(tenant_id)}/data/delete",
            {"tuple_filter": filter, "attribute_filter": {}},
        )
        return data.get("snap_token", "")

    async def check_permission(self, tenant_id: str, request: dict[str, Any]) -> dict[str, Any]:
        """Run a permission check. Returns the raw response body."""
        return await self._request(
            "POST",
            f"/v1/tenants/{_segment(tenant_id)}/permissions/check",
            request,
        )
