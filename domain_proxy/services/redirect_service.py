"""
Redirect Proxy Service

The platform-independent core of the proxy. One entry point:

    await RedirectProxy(settings, client).handle(inbound) -> ProxyResponse

Flow per request:
1. Exempt host: forward unchanged to the same origin and relay the answer
2. OPTIONS: answer the CORS preflight locally
3. Anything else: forward to the backend with identity headers, classify the
   answer, and re-emit a redirect, the content, or a branded error page

Design Decisions:
- Stateless: each call is a pure function of (request, settings)
- Single attempt, no retries: redirect lookups are not known to be idempotent
- Every failure is converted to a response here; nothing propagates to the
  platform adapter
"""

import asyncio
import logging
from typing import Optional, Set

import httpx

from domain_proxy.core.messages import (
    Headers,
    InboundRequest,
    OutcomeKind,
    ProxyResponse,
    UpstreamOutcome,
)
from domain_proxy.core.setting import Settings
from domain_proxy.services.classifier import classify
from domain_proxy.services.error_page import render_error_page
from domain_proxy.services.forwarding import (
    REPLACED_RESPONSE_HEADERS,
    build_forward_headers,
    build_passthrough_headers,
    build_target_url,
    forward_body,
    strip_hop_by_hop,
)

logger = logging.getLogger(__name__)

CORS_HEADERS: Headers = [
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS"),
    ("Access-Control-Allow-Headers", "*"),
]

_CORS_NAMES = {name.lower() for name, _ in CORS_HEADERS}

REDIRECT_CACHE_CONTROL = "no-cache"
ERROR_CACHE_CONTROL = "no-store"


def _replaced_response_headers(method: str) -> Set[str]:
    # A HEAD answer has no body to measure, so the backend's Content-Length stands
    if method.upper() == "HEAD":
        return REPLACED_RESPONSE_HEADERS - {"content-length"}
    return REPLACED_RESPONSE_HEADERS


def create_http_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Build the shared outbound client.

    Redirects are never followed: a 3xx from the backend is the answer the
    visitor needs.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout_seconds),
        follow_redirects=False,
        transport=transport,
    )


class RedirectProxy:
    """
    Host-aware reverse-redirect proxy for custom domains.

    Holds only immutable settings and the shared HTTP client; concurrent
    calls to handle() do not share any other state.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client
        self.exempt_hosts = settings.exempt_hosts

    def is_exempt(self, hostname: str) -> bool:
        return hostname.lower() in self.exempt_hosts

    async def handle(self, inbound: InboundRequest) -> ProxyResponse:
        """
        Answer one inbound request.

        Never raises: internal failures fail closed as a 500 error page.
        """
        try:
            if self.is_exempt(inbound.hostname):
                return await self._pass_through(inbound)

            if inbound.method.upper() == "OPTIONS":
                return ProxyResponse(status_code=200, headers=list(CORS_HEADERS))

            return await self._forward(inbound)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error(
                f"Proxy failure for {inbound.hostname}{inbound.path}",
                exc_info=True
            )
            return self.error_response(inbound, 500)

    async def _send(self, method: str, url: str, headers: Headers, body: Optional[bytes]) -> UpstreamOutcome:
        """Issue exactly one backend call under the overall deadline and classify it."""
        timeout = self.settings.request_timeout_seconds
        try:
            response = await asyncio.wait_for(
                self.client.request(method, url, headers=headers, content=body),
                timeout=timeout,
            )
        except (httpx.RequestError, asyncio.TimeoutError, OSError) as e:
            return classify(error=e, target_url=url, timeout_seconds=timeout)
        return classify(response=response, target_url=url, timeout_seconds=timeout)

    async def _forward(self, inbound: InboundRequest) -> ProxyResponse:
        target_url = build_target_url(self.settings.BACKEND_ORIGIN, inbound.path, inbound.query_string)
        headers = build_forward_headers(
            inbound,
            backend_host=self.settings.backend_host,
            user_agent=self.settings.PROXY_USER_AGENT,
        )

        logger.info(f"Proxying {inbound.method} {inbound.hostname}{inbound.path} -> {target_url}")

        outcome = await self._send(inbound.method, target_url, headers, forward_body(inbound))
        return self.render(inbound, outcome)

    async def _pass_through(self, inbound: InboundRequest) -> ProxyResponse:
        origin = self.settings.EXEMPT_ORIGIN or f"https://{inbound.hostname}"
        target_url = build_target_url(origin, inbound.path, inbound.query_string)

        logger.debug(f"Exempt host {inbound.hostname}, passing through to {target_url}")

        outcome = await self._send(
            inbound.method, target_url, build_passthrough_headers(inbound), forward_body(inbound)
        )
        if outcome.response is None:
            self._log_failure(inbound, outcome)
            return self.error_response(inbound, outcome.status_code)

        response = outcome.response
        return ProxyResponse(
            status_code=response.status_code,
            headers=strip_hop_by_hop(
                list(response.headers.multi_items()), also=_replaced_response_headers(inbound.method)
            ),
            body=response.content,
        )

    def render(self, inbound: InboundRequest, outcome: UpstreamOutcome) -> ProxyResponse:
        """Turn a classified backend outcome into the client response."""
        if not outcome.is_success:
            self._log_failure(inbound, outcome)
            return self.error_response(inbound, outcome.status_code)

        if outcome.kind == OutcomeKind.REDIRECT:
            return self._redirect_response(outcome.response)
        return self._content_response(inbound, outcome.response)

    def _redirect_response(self, response: httpx.Response) -> ProxyResponse:
        # Location is relayed verbatim, relative or absolute
        location = response.headers["location"]
        logger.info(f"Redirect: {response.status_code} -> {location}")
        return ProxyResponse(
            status_code=response.status_code,
            headers=[
                ("Location", location),
                ("Cache-Control", response.headers.get("cache-control", REDIRECT_CACHE_CONTROL)),
            ],
        )

    def _content_response(self, inbound: InboundRequest, response: httpx.Response) -> ProxyResponse:
        headers = [
            (name, value)
            for name, value in strip_hop_by_hop(
                list(response.headers.multi_items()), also=_replaced_response_headers(inbound.method)
            )
            if name.lower() not in _CORS_NAMES
        ]
        if "cache-control" not in response.headers:
            headers.append(("Cache-Control", self.settings.SUCCESS_CACHE_CONTROL))
        headers.extend(CORS_HEADERS)

        return ProxyResponse(
            status_code=response.status_code,
            headers=headers,
            body=response.content,
        )

    def error_response(self, inbound: InboundRequest, status_code: int) -> ProxyResponse:
        """Branded HTML error page; the backend body is never included."""
        html = render_error_page(
            hostname=inbound.hostname,
            path=inbound.path,
            status_code=status_code,
            brand_name=self.settings.BRAND_NAME,
            brand_home_url=self.settings.BRAND_HOME_URL,
        )
        headers = [
            ("Content-Type", "text/html; charset=utf-8"),
            ("Cache-Control", ERROR_CACHE_CONTROL),
        ]
        headers.extend(CORS_HEADERS)
        return ProxyResponse(status_code=status_code, headers=headers, body=html.encode("utf-8"))

    def _log_failure(self, inbound: InboundRequest, outcome: UpstreamOutcome) -> None:
        logger.warning(
            f"Backend {outcome.kind.value} for {inbound.hostname}{inbound.path}: "
            f"{outcome.error} (client status {outcome.status_code})"
        )
