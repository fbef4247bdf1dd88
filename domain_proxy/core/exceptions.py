"""
Custom Exceptions

This module defines the error taxonomy of the proxy.

Upstream errors never reach the client as exceptions: the classifier maps
each of them to an outcome and the proxy renders a branded error page.
The classes still exist so that every failure has a name in logs and tests.
"""


class ProxyError(Exception):
    """Base exception for the redirect proxy."""

    status_code = 500


class ConfigurationError(ProxyError):
    """Raised when proxy configuration is missing or invalid."""


class UpstreamTimeout(ProxyError):
    """Raised when the backend does not answer within the timeout window."""

    def __init__(self, target_url: str, timeout_seconds: float):
        self.target_url = target_url
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Backend did not respond within {timeout_seconds}s: {target_url}")


class UpstreamUnreachable(ProxyError):
    """Raised when the backend cannot be reached (DNS, connection refused, protocol error)."""

    def __init__(self, target_url: str, reason: str):
        self.target_url = target_url
        self.reason = reason
        super().__init__(f"Backend unreachable ({reason}): {target_url}")


class UpstreamNotFound(ProxyError):
    """Backend explicitly answered 404."""

    status_code = 404


class UpstreamOtherError(ProxyError):
    """Backend answered with a status that is neither 2xx nor a usable redirect."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Backend answered {status_code}")


class InvalidRedirect(UpstreamOtherError):
    """Backend answered 3xx without a Location header."""

    def __init__(self, backend_status: int):
        self.backend_status = backend_status
        super().__init__(502)
        self.args = (f"Backend answered {backend_status} without a Location header",)
