"""
Upstream Response Classification

One function decides what a backend call means for the client, whether the
backend answered or the call failed. Every platform adapter consumes the
resulting UpstreamOutcome the same way.

| Backend                              | Outcome          | Client status |
|--------------------------------------|------------------|---------------|
| 3xx with Location                    | REDIRECT         | backend status |
| 304 Not Modified                     | CONTENT          | 304           |
| other 3xx without Location           | UPSTREAM_ERROR   | 502           |
| 2xx                                  | CONTENT          | backend status |
| 404                                  | UPSTREAM_ERROR   | 404           |
| any other status                     | UPSTREAM_ERROR   | backend status |
| timeout                              | TIMEOUT          | 500           |
| DNS / connect / protocol failure     | UNREACHABLE      | 500           |
"""

import asyncio
from typing import Optional

import httpx

from domain_proxy.core.exceptions import (
    InvalidRedirect,
    UpstreamNotFound,
    UpstreamOtherError,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from domain_proxy.core.messages import OutcomeKind, UpstreamOutcome

NETWORK_FAILURE_STATUS = 500


def classify(
    response: Optional[httpx.Response] = None,
    error: Optional[BaseException] = None,
    target_url: str = "",
    timeout_seconds: float = 0.0,
) -> UpstreamOutcome:
    """
    Classify a backend call by its response or by the exception it raised.

    Args:
        response: The backend response, when the call completed
        error: The exception raised by the call, when it did not
        target_url: Backend URL, used in error details
        timeout_seconds: Configured timeout, used in error details

    Raises:
        ValueError: if neither response nor error is given
    """
    if error is not None:
        return _classify_error(error, target_url, timeout_seconds)
    if response is None:
        raise ValueError("classify() needs a response or an error")

    status = response.status_code

    # Revalidation answer to a conditional request, relayed like content
    if status == 304:
        return UpstreamOutcome(OutcomeKind.CONTENT, status, response=response)

    if 300 <= status < 400:
        if response.headers.get("location"):
            return UpstreamOutcome(OutcomeKind.REDIRECT, status, response=response)
        invalid = InvalidRedirect(status)
        return UpstreamOutcome(
            OutcomeKind.UPSTREAM_ERROR, invalid.status_code, response=response, error=invalid
        )

    if 200 <= status < 300:
        return UpstreamOutcome(OutcomeKind.CONTENT, status, response=response)

    if status == 404:
        return UpstreamOutcome(
            OutcomeKind.UPSTREAM_ERROR, 404, response=response, error=UpstreamNotFound(target_url)
        )

    return UpstreamOutcome(
        OutcomeKind.UPSTREAM_ERROR, status, response=response, error=UpstreamOtherError(status)
    )


def _classify_error(error: BaseException, target_url: str, timeout_seconds: float) -> UpstreamOutcome:
    # httpx.TimeoutException must be checked before the broader RequestError
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return UpstreamOutcome(
            OutcomeKind.TIMEOUT,
            NETWORK_FAILURE_STATUS,
            error=UpstreamTimeout(target_url, timeout_seconds),
        )

    if isinstance(error, (httpx.RequestError, OSError)):
        reason = type(error).__name__
        return UpstreamOutcome(
            OutcomeKind.UNREACHABLE,
            NETWORK_FAILURE_STATUS,
            error=UpstreamUnreachable(target_url, reason),
        )

    raise error
