"""Streamable HTTP front door: routes ``/mcp`` exchanges to per-session engines."""

from __future__ import annotations

import contextlib
import sys
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence

import anyio
from anyio.abc import TaskGroup
from mcp.server.lowlevel import Server  # type: ignore[import]
from mcp.server.streamable_http import (  # type: ignore[import]
    MCP_SESSION_ID_HEADER,
    StreamableHTTPServerTransport,
)
from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import SessionNotFound, render_error
from .sessions import (
    CLOSE_DISCONNECTED,
    CLOSE_FAILED,
    CLOSE_IDLE,
    CLOSE_TERMINATED,
    SessionClosed,
    SessionRegistry,
)


ServerFactory = Callable[[], Server]

INTERNAL_ERROR_BODY = {
    "jsonrpc": "2.0",
    "error": {"code": -32603, "message": "Internal server error"},
    "id": None,
}


class _ResponseTracker:
    """Wraps ``send`` to observe the status line of the response."""

    def __init__(self, send: Send, on_start: Optional[Callable[[int], Awaitable[None]]] = None) -> None:
        self._send = send
        self._on_start = on_start
        self.status: Optional[int] = None

    @property
    def started(self) -> bool:
        return self.status is not None

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            if self._on_start is not None:
                await self._on_start(self.status)
        await self._send(message)


def _without_session_header(scope: Scope) -> Scope:
    header_name = MCP_SESSION_ID_HEADER.lower().encode("latin-1")
    headers = [(name, value) for name, value in scope["headers"] if name.lower() != header_name]
    return {**scope, "headers": headers}


class TransportRouter:
    """ASGI endpoint multiplexing MCP sessions over ``/mcp``.

    ``run()`` must be entered before requests are served; it owns the task
    group hosting every session's protocol engine.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        server_factory: ServerFactory,
        *,
        json_response: bool = False,
        idle_timeout: float = 0.0,
        reap_interval: Optional[float] = None,
    ) -> None:
        self.registry = registry
        self._server_factory = server_factory
        self.json_response = json_response
        self.idle_timeout = idle_timeout
        self.reap_interval = reap_interval or max(min(idle_timeout / 2, 60.0), 1.0)
        self._task_group: Optional[TaskGroup] = None

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator["TransportRouter"]:
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            if self.idle_timeout > 0:
                tg.start_soon(self._reap_idle_sessions)
            try:
                yield self
            finally:
                await self.registry.close_all()
                tg.cancel_scope.cancel()
                self._task_group = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        method = scope["method"]
        session_id = Headers(scope=scope).get(MCP_SESSION_ID_HEADER)

        if method == "POST":
            await self._handle_post(scope, receive, send, session_id)
        elif method in ("GET", "DELETE"):
            await self._handle_session_request(scope, receive, send, session_id)
        else:
            response = PlainTextResponse("Method Not Allowed", status_code=405, headers={"Allow": "GET, POST, DELETE"})
            await response(scope, receive, send)

    async def _handle_post(self, scope: Scope, receive: Receive, send: Send, session_id: Optional[str]) -> None:
        tracker = _ResponseTracker(send)
        try:
            session = None
            if session_id:
                try:
                    session = await self.registry.lookup(session_id)
                except SessionNotFound:
                    print(f"Unknown session {session_id}; starting a new one", file=sys.stderr)

            if session is None:
                await self._start_session(scope, receive, tracker)
                return

            with session.in_use():
                await session.transport.handle_request(scope, receive, tracker)
        except Exception as exc:
            print(f"Error handling MCP request: {exc!r}", file=sys.stderr)
            if not tracker.started:
                response = JSONResponse(INTERNAL_ERROR_BODY, status_code=500)
                await response(scope, receive, send)

    async def _start_session(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._task_group is None:
            raise RuntimeError("Transport router is not running")

        session_id = await self.registry.create()
        activated = False

        async def _on_start(status: int) -> None:
            nonlocal activated
            if status < 400:
                await self.registry.activate(session_id)
                activated = True
                print(f"Session {session_id} created", file=sys.stderr)

        try:
            transport = StreamableHTTPServerTransport(
                mcp_session_id=session_id,
                is_json_response_enabled=self.json_response,
            )
            await self.registry.attach(session_id, transport)
            server = self._server_factory()
            await self._task_group.start(self._run_session, session_id, transport, server)

            tracker = _ResponseTracker(send, on_start=_on_start)
            await transport.handle_request(_without_session_header(scope), receive, tracker)
        finally:
            if not activated:
                await self.registry.dispatch(SessionClosed(session_id, CLOSE_FAILED))

    async def _run_session(
        self,
        session_id: str,
        transport: StreamableHTTPServerTransport,
        server: Server,
        *,
        task_status: Any = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        reason = CLOSE_DISCONNECTED
        try:
            with anyio.CancelScope() as scope:
                await self.registry.attach(session_id, transport, scope)
                async with transport.connect() as (read_stream, write_stream):
                    task_status.started()
                    try:
                        await server.run(
                            read_stream,
                            write_stream,
                            server.create_initialization_options(),
                            stateless=False,
                        )
                    except Exception as exc:
                        print(f"Session {session_id} crashed: {exc!r}", file=sys.stderr)
                        reason = CLOSE_FAILED
        finally:
            with anyio.CancelScope(shield=True):
                await self.registry.dispatch(SessionClosed(session_id, reason))

    async def _handle_session_request(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        session_id: Optional[str],
    ) -> None:
        try:
            session = await self.registry.lookup(session_id)
        except SessionNotFound as exc:
            response = PlainTextResponse(render_error(exc), status_code=400)
            await response(scope, receive, send)
            return

        with session.in_use():
            await session.transport.handle_request(scope, receive, send)
        if scope["method"] == "DELETE":
            await self.registry.dispatch(SessionClosed(session.session_id, CLOSE_TERMINATED))

    async def _reap_idle_sessions(self) -> None:
        while True:
            await anyio.sleep(self.reap_interval)
            for session_id in await self.registry.idle_sessions(self.idle_timeout):
                await self.registry.dispatch(SessionClosed(session_id, CLOSE_IDLE))


class AccessLogMiddleware:
    """Pure ASGI request/response logger; never buffers bodies so SSE keeps streaming."""

    def __init__(self, app: ASGIApp, log_headers: bool = False) -> None:
        self.app = app
        self.log_headers = log_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.monotonic()
        client = scope.get("client")
        client_host = client[0] if client else "-"
        method = scope["method"]
        path = scope["path"]

        request_info = ["[REQUEST]", datetime.now(timezone.utc).isoformat(), client_host, method, path]
        if self.log_headers:
            request_info.append(f"Headers: {dict(Headers(scope=scope))}")
        print(" | ".join(request_info), file=sys.stderr)

        status_holder = {"status": 0}

        async def _send(message: Message) -> None:
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, _send)
        finally:
            duration_ms = int((time.monotonic() - start) * 1000)
            print(
                " | ".join(
                    [
                        "[RESPONSE]",
                        datetime.now(timezone.utc).isoformat(),
                        client_host,
                        method,
                        path,
                        f"Status: {status_holder['status']}",
                        f"Duration: {duration_ms}ms",
                    ]
                ),
                file=sys.stderr,
            )


def build_http_app(
    router: TransportRouter,
    *,
    service: str,
    version: str,
    log_requests: bool = True,
    log_headers: bool = False,
    shutdown_hooks: Sequence[Callable[[], Awaitable[None]]] = (),
) -> Starlette:
    """Create the Starlette application exposing ``/health`` and ``/mcp``."""

    async def health(_request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "service": service,
                "version": version,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        try:
            async with router.run():
                yield
        finally:
            for hook in shutdown_hooks:
                await hook()

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/mcp", endpoint=router, methods=["GET", "POST", "DELETE"]),
        ],
        lifespan=lifespan,
    )
    if log_requests:
        app.add_middleware(AccessLogMiddleware, log_headers=log_headers)
    return app


__all__ = [
    "AccessLogMiddleware",
    "INTERNAL_ERROR_BODY",
    "ServerFactory",
    "TransportRouter",
    "build_http_app",
]
