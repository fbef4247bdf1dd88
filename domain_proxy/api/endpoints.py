"""
FastAPI Endpoints for the Redirect Proxy

This module is the platform adapter: it translates Starlette requests into
InboundRequest, hands them to the RedirectProxy core, and translates the
ProxyResponse back. Endpoints only handle:
- Request shape translation
- Client disconnect detection
- The proxy's own health/debug endpoints

All forwarding logic lives in domain_proxy.services.redirect_service.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from domain_proxy.api.schemas import DebugResponse, HealthResponse
from domain_proxy.core.messages import InboundRequest, ProxyResponse
from domain_proxy.core.setting import Settings
from domain_proxy.core.validators import sanitize_hostname
from domain_proxy.services.redirect_service import RedirectProxy

logger = logging.getLogger(__name__)

PROXY_NAME = "domain-proxy"

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# Not a registered status; nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499

REDACTED_HEADERS = {"authorization", "cookie", "proxy-authorization"}


def get_proxy(request: Request) -> RedirectProxy:
    """Dependency returning the proxy instance created by the app factory."""
    return request.app.state.proxy


def _raw_path(request: Request) -> str:
    raw_path = request.scope.get("raw_path")
    if raw_path:
        # Some servers include the query string in raw_path
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.url.path


async def to_inbound(request: Request, hostname: str) -> InboundRequest:
    """Translate a Starlette request into the platform-independent shape."""
    return InboundRequest(
        method=request.method,
        hostname=hostname,
        path=_raw_path(request),
        query_string=request.scope.get("query_string", b"").decode("latin-1"),
        headers=[(name, value) for name, value in request.headers.items()],
        body=await request.body(),
        client_ip=request.client.host if request.client else None,
    )


def to_response(proxy_response: ProxyResponse) -> Response:
    """Translate a ProxyResponse into a Starlette response, keeping repeated headers."""
    response = Response(content=proxy_response.body, status_code=proxy_response.status_code)
    if proxy_response.header("content-length") is not None:
        # Relayed as-is for HEAD; replaces the length Starlette computed for the empty body
        del response.headers["content-length"]
    for name, value in proxy_response.headers:
        response.headers.append(name, value)
    return response


async def _wait_for_disconnect(request: Request) -> None:
    # The body has already been read, so the next message is the disconnect
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def _handle_until_disconnect(
    proxy: RedirectProxy, inbound: InboundRequest, request: Request
) -> Optional[ProxyResponse]:
    """
    Run the proxy, cancelling the backend call if the client goes away.

    Returns:
        The proxy response, or None when the client disconnected first
    """
    handler = asyncio.ensure_future(proxy.handle(inbound))
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        await asyncio.wait({handler, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if not handler.done() and watcher.exception() is not None:
            # receive() failed without a disconnect; keep serving the request
            logger.debug(f"Disconnect watcher failed: {watcher.exception()!r}")
            return await handler
    except asyncio.CancelledError:
        handler.cancel()
        raise
    finally:
        watcher.cancel()

    if handler.done():
        return handler.result()

    handler.cancel()
    try:
        await handler
    except asyncio.CancelledError:
        pass
    return None


async def proxy_request(request: Request, proxy: RedirectProxy = Depends(get_proxy)) -> Response:
    """
    Catch-all endpoint: every method, every path, every hostname.
    """
    hostname = sanitize_hostname(request.headers.get("host"))
    if hostname is None:
        logger.warning(f"Rejected request with invalid Host header: {request.headers.get('host')!r}")
        inbound = InboundRequest(method=request.method, hostname="unknown", path=_raw_path(request))
        return to_response(proxy.error_response(inbound, 400))

    inbound = await to_inbound(request, hostname)
    proxy_response = await _handle_until_disconnect(proxy, inbound, request)

    if proxy_response is None:
        logger.info(f"Client disconnected, cancelled {inbound.method} {hostname}{inbound.path}")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    return to_response(proxy_response)


async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for monitoring.

    Answered locally; the backend is not contacted.
    """
    return HealthResponse(
        status="healthy",
        proxy=PROXY_NAME,
        timestamp=datetime.now(timezone.utc).isoformat(),
        hostname=sanitize_hostname(request.headers.get("host")) or "unknown",
    )


async def debug_echo(request: Request, proxy: RedirectProxy = Depends(get_proxy)) -> DebugResponse:
    """Echo what the proxy sees for this request. Credentials are redacted."""
    hostname = sanitize_hostname(request.headers.get("host")) or "unknown"
    headers = {
        name: ("<redacted>" if name.lower() in REDACTED_HEADERS else value)
        for name, value in request.headers.items()
    }
    return DebugResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        hostname=hostname,
        path=_raw_path(request),
        query_string=request.scope.get("query_string", b"").decode("latin-1"),
        method=request.method,
        headers=headers,
        backend_origin=proxy.settings.BACKEND_ORIGIN,
        exempt=proxy.is_exempt(hostname),
        proxy=PROXY_NAME,
    )


def create_router(settings: Settings) -> APIRouter:
    """
    Build the router for the configured paths.

    Local endpoints are registered before the catch-all route so they match first.
    """
    router = APIRouter()

    router.add_api_route(
        settings.HEALTH_PATH,
        health_check,
        methods=["GET"],
        response_model=HealthResponse,
        tags=["Health"],
    )

    if settings.DEBUG_ENDPOINT_ENABLED:
        router.add_api_route(
            settings.DEBUG_PATH,
            debug_echo,
            methods=["GET"],
            response_model=DebugResponse,
            tags=["Debug"],
        )

    router.add_api_route(
        "/{full_path:path}",
        proxy_request,
        methods=PROXY_METHODS,
        include_in_schema=False,
    )

    return router
