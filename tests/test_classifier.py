"""
Tests for backend response classification.
"""

import asyncio

import httpx
import pytest

from domain_proxy.core.exceptions import (
    InvalidRedirect,
    UpstreamNotFound,
    UpstreamOtherError,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from domain_proxy.core.messages import OutcomeKind
from domain_proxy.services.classifier import classify

URL = "https://backend.internal/abc"


def _request():
    return httpx.Request("GET", URL)


class TestResponseClassification:
    """Classification of answers the backend actually sent."""

    @pytest.mark.parametrize("status", [301, 302, 303, 307, 308])
    def test_redirect(self, status):
        outcome = classify(httpx.Response(status, headers={"Location": "https://t.example/"}))

        assert outcome.kind == OutcomeKind.REDIRECT
        assert outcome.status_code == status
        assert outcome.is_success
        assert outcome.error is None

    def test_redirect_without_location(self):
        outcome = classify(httpx.Response(302))

        assert outcome.kind == OutcomeKind.UPSTREAM_ERROR
        assert outcome.status_code == 502
        assert isinstance(outcome.error, InvalidRedirect)
        assert outcome.error.backend_status == 302

    def test_not_modified_is_content(self):
        outcome = classify(httpx.Response(304, headers={"ETag": '"v1"'}))

        assert outcome.kind == OutcomeKind.CONTENT
        assert outcome.status_code == 304
        assert outcome.is_success
        assert outcome.error is None

    @pytest.mark.parametrize("status", [200, 201, 204])
    def test_content(self, status):
        outcome = classify(httpx.Response(status))

        assert outcome.kind == OutcomeKind.CONTENT
        assert outcome.status_code == status

    def test_not_found(self):
        outcome = classify(httpx.Response(404), target_url=URL)

        assert outcome.kind == OutcomeKind.UPSTREAM_ERROR
        assert outcome.status_code == 404
        assert isinstance(outcome.error, UpstreamNotFound)
        assert not outcome.is_success

    @pytest.mark.parametrize("status", [400, 401, 410, 429, 500, 502, 503])
    def test_other_errors_keep_status(self, status):
        outcome = classify(httpx.Response(status))

        assert outcome.kind == OutcomeKind.UPSTREAM_ERROR
        assert outcome.status_code == status
        assert isinstance(outcome.error, UpstreamOtherError)
        assert outcome.error.status_code == status


class TestErrorClassification:
    """Classification of calls that never produced an answer."""

    def test_httpx_timeout(self):
        outcome = classify(error=httpx.ReadTimeout("slow", request=_request()), target_url=URL, timeout_seconds=10.0)

        assert outcome.kind == OutcomeKind.TIMEOUT
        assert outcome.status_code == 500
        assert isinstance(outcome.error, UpstreamTimeout)
        assert outcome.error.timeout_seconds == 10.0
        assert outcome.response is None

    def test_overall_deadline(self):
        outcome = classify(error=asyncio.TimeoutError(), target_url=URL, timeout_seconds=10.0)

        assert outcome.kind == OutcomeKind.TIMEOUT
        assert outcome.status_code == 500

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("refused", request=_request()),
        httpx.RemoteProtocolError("garbage", request=_request()),
        ConnectionResetError(),
    ])
    def test_unreachable(self, error):
        outcome = classify(error=error, target_url=URL)

        assert outcome.kind == OutcomeKind.UNREACHABLE
        assert outcome.status_code == 500
        assert isinstance(outcome.error, UpstreamUnreachable)
        assert outcome.error.target_url == URL

    def test_unknown_error_propagates(self):
        with pytest.raises(RuntimeError):
            classify(error=RuntimeError("bug"))

    def test_requires_response_or_error(self):
        with pytest.raises(ValueError):
            classify()
