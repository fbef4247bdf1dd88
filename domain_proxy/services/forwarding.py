"""
Outbound Request Construction

Pure functions deriving the backend request from an inbound request:
- the target URL (backend origin + raw path + raw query)
- the forwarded headers (hop-by-hop removed, identity headers added)

Nothing here performs I/O, so the whole derivation is tested directly.
"""

from typing import Iterable, List, Optional, Set

from domain_proxy.core.messages import Headers, InboundRequest

# Hop-by-hop headers that must not be forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Recomputed by the outbound client, or replaced by the proxy below
REPLACED_REQUEST_HEADERS = {
    "host",
    "content-length",
    "accept-encoding",
    "x-forwarded-host",
    "x-original-host",
    "x-forwarded-proto",
    "x-real-ip",
}

# Recomputed when the proxy re-emits a body
REPLACED_RESPONSE_HEADERS = {
    "content-length",
    "content-encoding",
}

BODYLESS_METHODS = {"GET", "HEAD"}


def build_target_url(origin: str, path: str, query_string: str = "") -> str:
    """
    Build the backend URL for a request path.

    The inbound host never appears in the result; path and query are kept
    exactly as received.

    Example:
        build_target_url("https://backend.internal", "/AbC123", "utm=x")
        -> "https://backend.internal/AbC123?utm=x"
    """
    if not path.startswith("/"):
        path = "/" + path
    url = f"{origin}{path}"
    if query_string:
        url = f"{url}?{query_string}"
    return url


def _connection_tokens(headers: Headers) -> Set[str]:
    """Header names listed in Connection, which are hop-by-hop for this message."""
    tokens = set()
    for name, value in headers:
        if name.lower() == "connection":
            tokens.update(token.strip().lower() for token in value.split(",") if token.strip())
    return tokens


def strip_hop_by_hop(headers: Headers, also: Iterable[str] = ()) -> Headers:
    """Drop hop-by-hop headers plus any name in `also` (lower-case names)."""
    dropped = HOP_BY_HOP_HEADERS | _connection_tokens(headers) | set(also)
    return [(name, value) for name, value in headers if name.lower() not in dropped]


def _forwarded_for(inbound: InboundRequest) -> Optional[str]:
    existing = inbound.header("x-forwarded-for")
    if not inbound.client_ip:
        return existing
    if existing:
        return f"{existing}, {inbound.client_ip}"
    return inbound.client_ip


def build_forward_headers(inbound: InboundRequest, backend_host: str, user_agent: str) -> Headers:
    """
    Headers for the backend request of a custom-domain request.

    Host is set to the backend's own authority; the inbound hostname travels
    in X-Forwarded-Host and X-Original-Host, which is what the backend uses
    to pick the customer domain.
    """
    headers: List = strip_hop_by_hop(
        inbound.headers, also=REPLACED_REQUEST_HEADERS | {"x-forwarded-for"}
    )

    headers.append(("Host", backend_host))
    headers.append(("X-Forwarded-Host", inbound.hostname))
    headers.append(("X-Original-Host", inbound.hostname))
    headers.append(("X-Forwarded-Proto", "https"))

    forwarded_for = _forwarded_for(inbound)
    if forwarded_for:
        headers.append(("X-Forwarded-For", forwarded_for))
    # The client-supplied chain is unverified; only the peer address is trusted
    if inbound.client_ip:
        headers.append(("X-Real-IP", inbound.client_ip))

    if inbound.header("user-agent") is None:
        headers.append(("User-Agent", user_agent))

    return headers


def build_passthrough_headers(inbound: InboundRequest) -> Headers:
    """Headers for an exempt host: everything end-to-end, unchanged."""
    return strip_hop_by_hop(inbound.headers, also={"content-length", "accept-encoding"})


def forward_body(inbound: InboundRequest) -> Optional[bytes]:
    """Request body to send upstream; GET and HEAD never carry one."""
    if inbound.method.upper() in BODYLESS_METHODS:
        return None
    return inbound.body
