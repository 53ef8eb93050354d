# tests/agent/conftest.py
"""
Pytest fixtures for panelsync tests
Fake panel served through httpx.MockTransport, no network needed
"""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

# Add paths for imports
PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "agent"))

from panelsync.config import ApiConfig  # noqa: E402
from panelsync.client import PanelClient  # noqa: E402
from panelsync.transport import PanelTransport  # noqa: E402


API_HOST = "http://panel.test"
API_KEY = "super-secret-node-key"


def envelope(data: Any = None, status: str = "success", **extra) -> Dict[str, Any]:
    body = {"status": status, "data": data}
    body.update(extra)
    return body


class FakePanel:
    """Records requests and answers them from a path -> response table"""

    def __init__(self):
        self.routes: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []

    def on(self, path: str, response: Any) -> None:
        """response: JSON body, an httpx.Response, or a callable(request)"""
        self.routes[path] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, content=json.dumps(route).encode("utf-8"))

    def bodies(self, path: Optional[str] = None) -> List[Any]:
        return [
            json.loads(r.content.decode("utf-8"))
            for r in self.requests
            if path is None or r.url.path == path
        ]


@pytest.fixture
def panel():
    return FakePanel()


@pytest.fixture
def make_config():
    """Build an ApiConfig independent of the environment"""
    def _make(**overrides) -> ApiConfig:
        values = dict(
            api_host=API_HOST,
            node_id=42,
            key=API_KEY,
            node_type="V2ray",
            timeout=5,
            retry_count=3,
            verify_tls=True,
            enable_vless=False,
            enable_xtls=False,
            speed_limit=0,
            device_limit=0,
            rule_list_path="",
        )
        values.update(overrides)
        return ApiConfig(**values)
    return _make


@pytest.fixture
def make_client(panel, make_config):
    """PanelClient wired to the fake panel, retries without sleeping"""
    clients: List[PanelClient] = []

    def _make(**overrides) -> PanelClient:
        cfg = make_config(**overrides)
        transport = PanelTransport(
            cfg.api_host,
            cfg.key,
            timeout=cfg.effective_timeout,
            retry_count=cfg.effective_retry_count,
            http_client=httpx.Client(transport=httpx.MockTransport(panel.handler)),
            sleep=lambda _s: None,
        )
        client = PanelClient(cfg, transport=transport)
        clients.append(client)
        return client

    yield _make

    for c in clients:
        c.transport._client.close()


@pytest.fixture
def rule_file(tmp_path):
    """Write a local rule list and return its path"""
    def _write(content: str) -> str:
        path = tmp_path / "rulelist"
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def flaky() -> Callable[[int, Any], Callable[[httpx.Request], httpx.Response]]:
    """Route that raises ConnectError n times before answering"""
    def _flaky(failures: int, body: Any):
        state = {"calls": 0}

        def route(request: httpx.Request) -> httpx.Response:
            state["calls"] += 1
            if state["calls"] <= failures:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=body)

        route.state = state
        return route
    return _flaky
