#!/usr/bin/env python3
"""Debug helper for running the MCP HTTP server and inspecting a search_photos call."""

from __future__ import annotations

import argparse
import json
import os
import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Dict

import anyio
import httpx
from dotenv import load_dotenv  # type: ignore[import]
from mcp.client.session_group import ClientSessionGroup, StreamableHttpParameters  # type: ignore[import]


REPO_ROOT = Path(__file__).resolve().parents[1]


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def start_server(port: int, *, verbose: bool) -> subprocess.Popen:
    cmd = [
        sys.executable,
        str(REPO_ROOT / "unsplash_photo_server.py"),
        "server",
        "--host",
        "127.0.0.1",
        "--port",
        str(port),
    ]
    print(f"[run] Starting server: {' '.join(cmd)}")
    return subprocess.Popen(
        cmd,
        cwd=REPO_ROOT,
        env=os.environ.copy(),
        stdout=None if verbose else subprocess.DEVNULL,
        stderr=None if verbose else subprocess.PIPE,
        text=True,
    )


def wait_for_health(url: str, *, timeout: float, process: subprocess.Popen) -> None:
    print(f"[wait] Waiting for health endpoint {url} ...")
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if process.poll() is not None:
            break
        try:
            response = httpx.get(url, timeout=2.0)
            if response.status_code == httpx.codes.OK:
                print(f"[wait] Server is ready: {response.json()}")
                return
        except httpx.HTTPError:
            time.sleep(0.5)

    sys.stderr.write("ERROR: server did not become ready in time.\n")
    if process.stderr is not None and process.poll() is not None:
        sys.stderr.write(process.stderr.read())
    raise SystemExit(1)


async def call_search(url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    async with ClientSessionGroup() as group:
        await group.connect_to_server(StreamableHttpParameters(url=url))
        result = await group.call_tool("search_photos", payload)
        print("[call] Result details:")
        print(f"  isError: {result.isError}")
        print(f"  content: {result.content}")
        if result.isError:
            raise RuntimeError(f"MCP returned error content: {result.content}")

        for entry in result.content or []:
            try:
                parsed = json.loads(entry.text)
            except Exception as exc:
                raise RuntimeError(f"Failed to parse text response as JSON: {exc}") from exc
            if isinstance(parsed, dict):
                return parsed

        raise RuntimeError("Search payload missing from response.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--query", default="mountains", help="Search keyword to send to the tool.")
    parser.add_argument("--per-page", type=int, default=1, help="Value for the `per_page` parameter.")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for server startup.")
    parser.add_argument("--port", type=int, help="Port to bind. Defaults to an ephemeral port.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Stream server output directly instead of capturing it.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    load_dotenv(REPO_ROOT / ".env")

    if not os.getenv("UNSPLASH_ACCESS_KEY"):
        sys.stderr.write("ERROR: UNSPLASH_ACCESS_KEY is not set.\n")
        return 1

    port = args.port or find_free_port()
    print(f"[info] Repo root: {REPO_ROOT}")
    print(f"[info] Port: {port}")

    process = start_server(port, verbose=args.verbose)
    try:
        wait_for_health(f"http://127.0.0.1:{port}/health", timeout=args.timeout, process=process)
        payload = {"query": args.query, "per_page": args.per_page}
        result = anyio.run(call_search, f"http://127.0.0.1:{port}/mcp", payload)
        print("[call] Search payload received:")
        print(json.dumps(result, indent=2))
    finally:
        print("[cleanup] Stopping server...")
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
