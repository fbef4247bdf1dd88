"""
FastAPI Application Factory

This module builds the proxy application and configures:
- Settings (loaded once, injected everywhere)
- The shared outbound HTTP client and the RedirectProxy core
- Middleware (logging)
- Routes (health, optional debug, catch-all proxy)

Run with:
    uvicorn domain_proxy.main:create_app --factory

Design Decisions:
- Factory instead of a module-level app: settings are required and tests
  inject their own settings and a mock transport
- No interactive docs: /docs, /redoc and /openapi.json are valid short
  codes on a customer domain and must reach the backend
- No CORSMiddleware: CORS headers depend on the response class and exempt
  hosts must not be touched, so the proxy core sets them
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from domain_proxy.api.endpoints import create_router
from domain_proxy.core.setting import Settings, get_settings
from domain_proxy.middleware.logging import add_logging_middleware, configure_logging
from domain_proxy.services.redirect_service import RedirectProxy, create_http_client

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        settings: Proxy settings; loaded from the environment when omitted
        transport: Outbound transport override (tests use httpx.MockTransport)
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    client = create_http_client(settings, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Redirect proxy ready: backend={settings.BACKEND_ORIGIN} "
            f"exempt={sorted(settings.exempt_hosts)} "
            f"timeout={settings.REQUEST_TIMEOUT_MS}ms env={settings.ENV_SETTING.value}"
        )
        yield
        # Close pooled backend connections
        await client.aclose()

    app = FastAPI(
        title="Custom Domain Redirect Proxy",
        description="Forwards custom-domain short links to the shortener backend",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.proxy = RedirectProxy(settings, client)

    add_logging_middleware(app)

    app.include_router(create_router(settings))

    return app
