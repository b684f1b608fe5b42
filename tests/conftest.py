"""Shared fixtures: a scripted in-memory appliance."""
import json
from typing import Any, Optional

import pytest

from ipam_reconciler.appliance.base import ApplianceClient, ApplianceConfig, TransportResponse
from ipam_reconciler.reconcile import ReconciliationEngine


class FakeApplianceClient(ApplianceClient):
    """Appliance double that replays scripted responses and records requests.

    Responses are queued per (verb, endpoint). The last queued response of
    a route is replayed for every further request.
    """

    def __init__(self):
        super().__init__(
            "fake-sds",
            ApplianceConfig(type="solidserver", name="Fake SDS", host="sds.test", username="admin"),
        )
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.calls: list[tuple[str, str, dict[str, str]]] = []
        self.closed = False

    def add(self, verb: str, endpoint: str, status: int = 200, body: Any = None) -> None:
        self.routes.setdefault((verb, endpoint), []).append((status, body))

    def fail(self, verb: str, endpoint: str, error: Exception) -> None:
        self.routes.setdefault((verb, endpoint), []).append(error)

    async def request(
        self, verb: str, endpoint: str, parameters: Optional[dict[str, str]] = None
    ) -> TransportResponse:
        verb = self.check_verb(verb)
        self.calls.append((verb, endpoint, dict(parameters or {})))

        queue = self.routes.get((verb, endpoint))
        if not queue:
            raise AssertionError(f"Unexpected request: {verb.upper()} {endpoint}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item

        status, body = item
        if body is None:
            raw = b""
        elif isinstance(body, bytes):
            raw = body
        elif isinstance(body, str):
            raw = body.encode()
        else:
            raw = json.dumps(body).encode()
        return TransportResponse(status_code=status, body=raw)

    def calls_to(self, endpoint: str) -> list[tuple[str, str, dict[str, str]]]:
        return [call for call in self.calls if call[1] == endpoint]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def client():
    """Scripted appliance with no routes."""
    return FakeApplianceClient()


@pytest.fixture
def engine(client):
    """Engine bound to the scripted appliance."""
    return ReconciliationEngine(client)


@pytest.fixture
def dns_config():
    """A valid DNS A record configuration."""
    return {
        "server": "ns1.example.com",
        "name": "www.example.com",
        "type": "a",
        "value": "10.0.0.1",
        "ttl": "3600",
    }


@pytest.fixture
def alias6_config():
    """A valid IPv6 alias configuration."""
    return {
        "space": "corp",
        "address": "2001:db8::1",
        "name": "app.example.com",
    }
