"""
Integration test fixtures.

FakePermifyServer is an in-memory stand-in for the Permify HTTP API. It is
mounted behind httpx.MockTransport so the real PermifyClient is exercised,
request encoding and error mapping included.
"""

import json
import re
from dataclasses import dataclass, field
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

from permify_toolkit import ClientOptions, PermifyClient

TENANT_PATH = re.compile(r"^/v1/tenants/(?P<tenant>[^/]+)(?P<rest>/.*)?$")


@dataclass
class FakePermifyServer:
    """In-memory Permify tenants, schemas and relationship tuples."""

    tenants: dict = field(default_factory=dict)
    schemas: dict = field(default_factory=dict)
    tuples: dict = field(default_factory=dict)
    requests: list = field(default_factory=list)
    fail_create: bool = False
    fail_delete: bool = False
    fail_schema: bool = False
    fail_data_write: bool = False
    version: int = 0

    def add_tenant(self, tenant_id: str) -> None:
        self.tenants[tenant_id] = tenant_id
        self.tuples.setdefault(tenant_id, [])

    def calls(self, method: str, suffix: str = "") -> list:
        return [(m, p, b) for m, p, b in self.requests if m == method and p.endswith(suffix)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        self.requests.append((request.method, path, body))

        if path == "/v1/tenants/list":
            return self._list(body)
        if path == "/v1/tenants/create":
            return self._create(body)

        match = TENANT_PATH.match(path)
        if not match:
            return _error(404, 5, f"no route {path}")
        tenant, rest = unquote(match.group("tenant")), match.group("rest") or ""

        if request.method == "DELETE" and not rest:
            return self._delete(tenant)
        if tenant not in self.tenants:
            return _error(404, 5, "ERROR_CODE_TENANT_NOT_FOUND")
        if rest == "/schemas/write":
            return self._write_schema(tenant, body)
        if rest == "/data/write":
            return self._write_data(tenant, body)
        if rest == "/data/delete":
            return self._delete_data(tenant, body)
        if rest == "/permissions/check":
            return self._check(tenant, body)
        return _error(404, 5, f"no route {path}")

    def _list(self, body):
        ids = sorted(self.tenants)
        start = int(body.get("continuous_token") or 0)
        end = start + body["page_size"]
        page = [{"id": t, "name": self.tenants[t], "created_at": "2024-01-01T00:00:00Z"} for t in ids[start:end]]
        token = str(end) if end < len(ids) else ""
        return httpx.Response(200, json={"tenants": page, "continuous_token": token})

    def _create(self, body):
        tenant_id = body["id"]
        if self.fail_create:
            return _error(500, 13, "ERROR_CODE_INTERNAL")
        if tenant_id in self.tenants:
            return _error(409, 6, "ERROR_CODE_UNIQUE_CONSTRAINT: tenant already exists")
        self.tenants[tenant_id] = body["name"]
        self.tuples[tenant_id] = []
        return httpx.Response(200, json={"tenant": {"id": tenant_id, "name": body["name"]}})

    def _delete(self, tenant):
        if self.fail_delete:
            return _error(503, 14, "ERROR_CODE_UNAVAILABLE")
        if tenant not in self.tenants:
            return _error(404, 5, "ERROR_CODE_TENANT_NOT_FOUND")
        del self.tenants[tenant]
        self.schemas.pop(tenant, None)
        self.tuples.pop(tenant, None)
        return httpx.Response(200, json={"tenant_id": tenant})

    def _write_schema(self, tenant, body):
        if self.fail_schema:
            return _error(400, 3, "ERROR_CODE_SCHEMA_PARSE")
        self.version += 1
        version = f"v{self.version}"
        self.schemas[tenant] = (version, body["schema"])
        return httpx.Response(200, json={"schema_version": version})

    def _write_data(self, tenant, body):
        if self.fail_data_write:
            return _error(400, 3, "ERROR_CODE_ENTITY_TYPE_REQUIRED")
        self.tuples[tenant].extend(body["tuples"])
        self.version += 1
        return httpx.Response(200, json={"snap_token": f"snap-{self.version}"})

    def _delete_data(self, tenant, body):
        f = body["tuple_filter"]
        if not f:
            self.tuples[tenant] = []
        else:
            self.tuples[tenant] = [t for t in self.tuples[tenant] if not _matches(t, f)]
        self.version += 1
        return httpx.Response(200, json={"snap_token": f"snap-{self.version}"})

    def _check(self, tenant, body):
        allowed = any(
            t["entity"] == body["entity"]
            and t["relation"] == body["permission"]
            and t["subject"] == body["subject"]
            for t in self.tuples[tenant]
        )
        return httpx.Response(200, json={"can": "CHECK_RESULT_ALLOWED" if allowed else "CHECK_RESULT_DENIED"})


def _error(status: int, code: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"code": code, "message": message, "details": []})


def _matches(t: dict, f: dict) -> bool:
    entity = f.get("entity")
    if entity and (t["entity"]["type"] != entity["type"] or (entity["ids"] and t["entity"]["id"] not in entity["ids"])):
        return False
    if f.get("relation") and t["relation"] != f["relation"]:
        return False
    subject = f.get("subject")
    if subject and (t["subject"]["type"] != subject["type"] or (subject["ids"] and t["subject"]["id"] not in subject["ids"])):
        return False
    return True


@pytest.fixture
def server():
    """Empty fake Permify server."""
    return FakePermifyServer()


@pytest_asyncio.fixture
async def client(server):
    """PermifyClient wired to the fake server, closed after the test."""
    client = PermifyClient(
        ClientOptions(endpoint="localhost:3476", auth_token="secret"),
        transport=httpx.MockTransport(server.handle),
    )
    yield client
    await client.close()
