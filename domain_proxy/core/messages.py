"""
Platform-independent request and response shapes.

The proxy core only ever sees these types. Platform adapters (the FastAPI
router in domain_proxy.api.endpoints) translate their native request and
response objects to and from them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field

from domain_proxy.core.exceptions import ProxyError

Headers = List[Tuple[str, str]]


class InboundRequest(BaseModel):
    """A request as it arrived at the proxy."""
    model_config = ConfigDict(frozen=True)

    method: str
    hostname: str = Field(..., description="Inbound hostname, lower-cased, no port")
    path: str = Field(..., description="Raw (still percent-encoded) request path")
    query_string: str = ""
    headers: Headers = Field(default_factory=list)
    body: bytes = b""
    client_ip: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        """First value of a header, case-insensitive."""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None


class ProxyResponse(BaseModel):
    """A response ready to be re-emitted to the client."""
    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: Headers = Field(default_factory=list)
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None


class OutcomeKind(str, Enum):
    REDIRECT = "redirect"
    CONTENT = "content"
    UPSTREAM_ERROR = "upstream_error"
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class UpstreamOutcome:
    """
    Tagged result of one backend call.

    status_code is the status the client will receive. response is set when
    the backend answered at all; error is set for every non-success kind.
    """
    kind: OutcomeKind
    status_code: int
    response: Optional[httpx.Response] = None
    error: Optional[ProxyError] = None

    @property
    def is_success(self) -> bool:
        return self.kind in (OutcomeKind.REDIRECT, OutcomeKind.CONTENT)
