"""
NotFoundMiddleware - ASGI host adapter for the not-found interceptor.

Sits around the FastAPI/Starlette app and hands failed requests to the
NotFoundHandler.

Key behaviors:
- 404 responses are held back until the handler has decided
- Uncaught exceptions are described as tagged failures (innermost
  `__cause__` first) and offered to the handler before re-raising
- Redirect decisions answer with a 301
- Fallback decisions serve the fallback page in-process as a GET, with
  the outgoing status forced to 404
- When the handler takes no action the original response (or
  exception) goes through untouched
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.components.notfound import (
    Action,
    Failure,
    FailureKind,
    NotFoundHandler,
    PageNotFoundError,
    RequestContext,
)

logger = logging.getLogger(__name__)


# --- Failure description ---


def innermost_cause(error: BaseException) -> BaseException:
    """Follow explicit `raise ... from` links down to the root cause."""
    seen = {id(error)}
    current = error
    while current.__cause__ is not None and id(current.__cause__) not in seen:
        current = current.__cause__
        seen.add(id(current))
    return current


def describe_exception(error: object) -> Failure:
    """Map a captured exception to the closed failure variant set."""
    if not isinstance(error, BaseException):
        return Failure(FailureKind.OTHER)

    cause = innermost_cause(error)
    if isinstance(cause, PageNotFoundError):
        return Failure(FailureKind.ROUTE_NOT_FOUND)
    if isinstance(cause, FileNotFoundError):
        return Failure(FailureKind.FILE_NOT_FOUND)
    if isinstance(cause, StarletteHTTPException):
        return Failure(FailureKind.HTTP_STATUS, status_code=cause.status_code)
    return Failure(FailureKind.OTHER)


def build_request_context(
    scope: Scope,
    status_code: int,
    error: BaseException | None = None,
) -> RequestContext:
    request = Request(scope)
    query_string: bytes = scope.get("query_string", b"")
    return RequestContext(
        url=str(request.url),
        path=request.url.path,
        query_string=query_string.decode("latin-1"),
        status_code=status_code,
        referrer=request.headers.get("referer"),
        captured_error=error,
        client_host=request.client.host if request.client else None,
    )


# --- Host response recorder ---


class RecordedHostResponse:
    """HostResponsePort that records the engine's request for the middleware to carry out."""

    def __init__(self) -> None:
        self.redirect_url: str | None = None
        self.transfer_url: str | None = None
        self.status_code: int | None = None

    def redirect_permanent(self, url: str) -> None:
        self.redirect_url = url

    def transfer(self, url: str) -> None:
        self.transfer_url = url

    def set_status(self, status_code: int) -> None:
        self.status_code = status_code


# --- Middleware ---


class NotFoundMiddleware:
    """
    Pure ASGI middleware.

    `get_handler` is called per request so the handler can be swapped
    (tests, reconfiguration) without rebuilding the middleware stack.
    Requests under `skip_prefixes` (JSON APIs) are never intercepted.
    """

    def __init__(
        self,
        app: ASGIApp,
        get_handler: Callable[[], NotFoundHandler],
        skip_prefixes: tuple[str, ...] = (),
    ) -> None:
        self.app = app
        self._get_handler = get_handler
        self._skip_prefixes = skip_prefixes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"].startswith(self._skip_prefixes):
            await self.app(scope, receive, send)
            return

        # Routing mutates the scope; keep the request as it arrived
        original_scope = dict(scope)
        held_start: Message | None = None
        held_body: list[Message] = []
        response_started = False

        async def capture_send(message: Message) -> None:
            nonlocal held_start, response_started
            if message["type"] == "http.response.start":
                if message["status"] == 404:
                    held_start = message
                    return
                response_started = True
                await send(message)
                return
            if held_start is not None:
                held_body.append(message)
                return
            await send(message)

        try:
            await self.app(scope, receive, capture_send)
        except Exception as exc:
            if response_started or held_start is not None:
                raise
            ctx = build_request_context(original_scope, 500, exc)
            if not await self._intercept(ctx, original_scope, receive, send):
                raise
            return

        if held_start is not None:
            ctx = build_request_context(original_scope, 404)
            if not await self._intercept(ctx, original_scope, receive, send):
                await send(held_start)
                for message in held_body:
                    await send(message)

    async def _intercept(
        self,
        ctx: RequestContext,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> bool:
        host = RecordedHostResponse()
        try:
            decision = self._get_handler().handle(ctx, host)
        except Exception:
            logger.exception("Not-found handler failed for %s, leaving response as is", ctx.url)
            return False

        logger.debug("Not-found decision for %s: %s", ctx.path_and_query, decision.outcome.value)

        if decision.action is Action.REDIRECT and host.redirect_url is not None:
            response = RedirectResponse(host.redirect_url, status_code=301)
            await response(scope, receive, send)
            return True

        if decision.action is Action.SHOW_FALLBACK and host.transfer_url is not None:
            await self._transfer(scope, receive, send, host.transfer_url, host.status_code or 404)
            return True

        return False

    async def _transfer(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        url: str,
        status_code: int,
    ) -> None:
        """Serve url in place of the current request."""
        path, _, query = url.partition("?")
        transfer_scope: dict[str, Any] = {
            key: value
            for key, value in scope.items()
            if key not in ("endpoint", "path_params", "route", "router")
        }
        transfer_scope.update(
            {
                "method": "GET",
                "path": path,
                "raw_path": path.encode("utf-8"),
                "query_string": query.encode("latin-1"),
            }
        )

        body_sent = False

        async def transfer_receive() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": b"", "more_body": False}
            return await receive()

        async def send_with_status(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = {**message, "status": status_code}
            await send(message)

        await self.app(transfer_scope, transfer_receive, send_with_status)
