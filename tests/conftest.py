"""
Shared test fixtures: a Tenderly environment and an httpx mock router.
"""

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from oracle_gas_tools.config import Settings, TenderlyEnvironment
from oracle_gas_tools.simulation import TenderlyClient


API_PREFIX = "/api/v1/account/alice/project/oval"
RPC_URL = "https://rpc.tenderly.test/f1"


class MockRouter:
    """Answers requests by (method, path) and records what was sent"""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Tuple[int, Any]]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        """Queue a reply; the last reply of a route is repeated"""
        self.routes.setdefault((method, path), []).append((status, body))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"error": "no route"})
        status, body = replies.pop(0) if len(replies) > 1 else replies[0]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def sent(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def env() -> TenderlyEnvironment:
    return TenderlyEnvironment(user="alice", project="oval", api_key="secret-key")


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def router() -> MockRouter:
    return MockRouter()


@pytest.fixture
def client(env, settings, router) -> TenderlyClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(router))
    return TenderlyClient(env, settings, http_client=http_client)


def fork_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "id": "f1",
        "block_number": 100,
        "transaction_index": 5,
        "accounts": {"0xaaa": "0xkey"},
        "rpc_url": RPC_URL,
    }
    payload.update(overrides)
    return payload
