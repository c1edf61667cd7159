import json
import os
import socket
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import anyio
import httpx  # type: ignore[import]
import pytest
from dotenv import load_dotenv  # type: ignore[import]

from mcp.client.session_group import ClientSessionGroup, StreamableHttpParameters  # type: ignore[import]


ROOT = Path(__file__).resolve().parent.parent
ROOT_STR = str(ROOT)

if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)


load_dotenv()


SAMPLE_PHOTO = {
    "id": "abc123",
    "description": "A cat on a windowsill",
    "alt_description": "orange cat",
    "urls": {
        "raw": "https://images.unsplash.com/photo-abc123",
        "small": "https://images.unsplash.com/photo-abc123?w=400",
    },
    "width": 4000,
    "height": 3000,
    "likes": 12,
}


def unsplash_payload(total: int = 1, total_pages: int = 1, results: Optional[list] = None) -> dict:
    return {
        "total": total,
        "total_pages": total_pages,
        "results": [SAMPLE_PHOTO] if results is None else results,
    }


@dataclass
class FakeUnsplash:
    """Records upstream requests and answers through an ``httpx.MockTransport``."""

    handler: Callable[[httpx.Request], httpx.Response]
    requests: list

    def transport(self) -> httpx.MockTransport:
        def _handle(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.handler(request)

        return httpx.MockTransport(_handle)

    def client(self, **kwargs: Any):
        from unsplash_photo_server_core import UnsplashClient

        return UnsplashClient(
            access_key="test-key",
            http_client=httpx.AsyncClient(transport=self.transport()),
            **kwargs,
        )


@pytest.fixture
def fake_unsplash():
    """Factory building a fake upstream; defaults to a one-photo success."""

    def _make(handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> FakeUnsplash:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(200, json=unsplash_payload())

        return FakeUnsplash(handler=handler, requests=[])

    return _make


@dataclass
class IntegrationHarness:
    mode: str
    module: Any
    search_client: Any | None
    call_search: Callable[..., dict[str, Any]]


def _resolve_integration_modes() -> list[str]:
    raw = os.getenv("INTEGRATION_TARGETS")
    if raw:
        modes = [entry.strip() for entry in raw.split(",") if entry.strip()]
        return modes or ["manual"]
    return ["manual"]


def _envelope_payload(result: Any) -> dict[str, Any]:
    if result.isError:
        raise AssertionError(f"MCP search_photos tool returned error: {result.content}")
    for entry in result.content or []:
        parsed = json.loads(entry.text)
        if isinstance(parsed, dict):
            return parsed
    raise AssertionError("MCP search_photos response missing JSON content")


def _call_search_via_http(url: str, arguments: dict[str, Any]) -> dict[str, Any]:
    async def _run(payload: dict[str, Any]) -> dict[str, Any]:
        async with ClientSessionGroup() as group:
            await group.connect_to_server(StreamableHttpParameters(url=url))
            result = await group.call_tool("search_photos", payload)
            return _envelope_payload(result)

    return anyio.run(_run, arguments)


def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_for_health(url: str, timeout: float = 30.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            response = httpx.get(url, timeout=2.0)
            if response.status_code == httpx.codes.OK:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(0.5)
    return False


@pytest.fixture(scope="session")
def http_integration_server():
    if os.getenv("ENABLE_INTEGRATION_TESTS", "false").lower() != "true":
        pytest.skip("Integration tests disabled.")

    port = _find_free_port()
    process = subprocess.Popen(
        [sys.executable, str(ROOT / "unsplash_photo_server.py"), "server", "--host", "127.0.0.1", "--port", str(port)],
        cwd=ROOT,
        env=os.environ.copy(),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        text=True,
    )

    if not _wait_for_health(f"http://127.0.0.1:{port}/health"):
        process.terminate()
        _, stderr = process.communicate(timeout=10)
        pytest.fail(f"HTTP MCP server did not become ready in time.\nLogs:\n{stderr}")

    try:
        yield {"mcp_url": f"http://127.0.0.1:{port}/mcp"}
    finally:
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()


@pytest.fixture(scope="module")
def unsplash_module():
    load_dotenv()
    if os.getenv("ENABLE_INTEGRATION_TESTS", "false").lower() != "true":
        pytest.skip("Integration tests disabled. Set ENABLE_INTEGRATION_TESTS=true to enable.")

    if not os.getenv("UNSPLASH_ACCESS_KEY"):
        pytest.skip("Missing Unsplash configuration: UNSPLASH_ACCESS_KEY")

    import importlib

    module = importlib.import_module("unsplash_photo_server")
    if module.search_client is None:
        pytest.skip("Unsplash client failed to initialize; check configuration.")
    return module


@pytest.fixture(scope="module", params=_resolve_integration_modes())
def integration_harness(request, unsplash_module):
    mode = request.param
    module = unsplash_module

    if mode == "manual":

        def _call_search(**kwargs: Any) -> dict[str, Any]:
            return _envelope_payload(anyio.run(lambda: module.search_photos(**kwargs)))

        return IntegrationHarness(
            mode=mode,
            module=module,
            search_client=module.search_client,
            call_search=_call_search,
        )

    if mode == "http":
        mcp_url = os.getenv("INTEGRATION_MCP_URL")
        if not mcp_url:
            http_server = request.getfixturevalue("http_integration_server")
            mcp_url = http_server["mcp_url"]

        def _call_search(**kwargs: Any) -> dict[str, Any]:
            arguments = {key: value for key, value in kwargs.items() if value is not None}
            return _call_search_via_http(mcp_url, arguments)

        return IntegrationHarness(
            mode=mode,
            module=module,
            search_client=None,
            call_search=_call_search,
        )

    pytest.skip(f"Unknown integration mode: {mode}")
