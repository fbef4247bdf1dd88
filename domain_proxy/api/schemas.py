"""
API Response Schemas

Pydantic models for the proxy's own endpoints. Proxied traffic has no
schema: it is relayed as raw bytes.
"""

from typing import Dict

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""
    status: str = Field(..., description="Always 'healthy' when the process answers")
    proxy: str = Field(..., description="Proxy identifier")
    timestamp: str = Field(..., description="Current time, ISO-8601 UTC")
    hostname: str = Field(..., description="Hostname the check arrived on")


class DebugResponse(BaseModel):
    """Response model for the request echo endpoint."""
    timestamp: str
    hostname: str
    path: str
    query_string: str
    method: str
    headers: Dict[str, str]
    backend_origin: str
    exempt: bool
    proxy: str
