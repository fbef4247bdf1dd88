"""
Input Validators and Sanitizers

The inbound Host header is fully client controlled. It is only ever used as
a forwarding hint, but it is still echoed into backend headers, logs and the
error page, so it is normalized and checked here first.
"""

import re
from typing import Optional

# RFC 1123 labels, plus a trailing dot; IPv6 literals are handled separately
_HOSTNAME_RE = re.compile(r'^[a-z0-9_]([a-z0-9_-]{0,61}[a-z0-9_])?(\.[a-z0-9_]([a-z0-9_-]{0,61}[a-z0-9_])?)*\.?$')
_IPV6_RE = re.compile(r'^\[[0-9a-f:.]+\]$')

MAX_HOSTNAME_LENGTH = 253


def sanitize_hostname(host: Optional[str]) -> Optional[str]:
    """
    Normalize a Host header value to a bare hostname.

    Lower-cases, removes the port and a trailing dot.

    Args:
        host: Raw Host header value, e.g. "Go.Example.com:443"

    Returns:
        Normalized hostname ("go.example.com"), or None when the value is
        empty or not a syntactically valid hostname
    """
    if not host or not isinstance(host, str):
        return None

    host = host.strip().lower()

    if host.startswith("["):
        end = host.find("]")
        if end == -1:
            return None
        literal = host[:end + 1]
        return literal if _IPV6_RE.match(literal) else None

    host = host.split(":", 1)[0]

    if not host or len(host) > MAX_HOSTNAME_LENGTH:
        return None

    if not _HOSTNAME_RE.match(host):
        return None

    return host.rstrip(".")
