"""FastAPI entrypoint exposing profile and client discovery."""

import logging
from collections.abc import AsyncIterator
from time import monotonic
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status

from indieauth_discovery.client import Client
from indieauth_discovery.config import get_settings
from indieauth_discovery.errors import DiscoveryError, InvalidURLError
from indieauth_discovery.fetcher import Fetcher
from indieauth_discovery.profile import Profile

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
app = FastAPI(title=settings.app_name, version=settings.app_version)
request_logger = logging.getLogger("indieauth_discovery.request")

MAX_IDENTIFIER_LENGTH = 2048


async def get_fetcher() -> AsyncIterator[Fetcher]:
    async with Fetcher(settings=settings) as fetcher:
        yield fetcher


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next: Any) -> Response:
    started = monotonic()
    path = request.url.path
    method = request.method.upper()
    try:
        response = await call_next(request)
    except Exception:
        latency_ms = int((monotonic() - started) * 1000)
        request_logger.exception(
            "request method=%s path=%s status=%s latency_ms=%s",
            method,
            path,
            500,
            latency_ms,
        )
        raise

    latency_ms = int((monotonic() - started) * 1000)
    request_logger.info(
        "request method=%s path=%s status=%s latency_ms=%s",
        method,
        path,
        response.status_code,
        latency_ms,
    )
    return response


def _discovery_http_error(exc: InvalidURLError | DiscoveryError) -> HTTPException:
    if isinstance(exc, InvalidURLError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=status_code, detail=exc.to_dict())


@app.get("/api/v1", tags=["meta"])
async def api_root() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "ok",
    }


@app.get("/api/v1/profile", tags=["discovery"])
async def discover_profile(
    url: str = Query(min_length=1, max_length=MAX_IDENTIFIER_LENGTH),
    fetcher: Fetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    try:
        profile = await Profile.discover(url, fetcher=fetcher)
    except (InvalidURLError, DiscoveryError) as exc:
        raise _discovery_http_error(exc) from exc
    return profile.to_dict()


@app.get("/api/v1/client", tags=["discovery"])
async def discover_client(
    url: str = Query(min_length=1, max_length=MAX_IDENTIFIER_LENGTH),
    fetcher: Fetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    try:
        client = await Client.discover(url, fetcher=fetcher)
    except (InvalidURLError, DiscoveryError) as exc:
        raise _discovery_http_error(exc) from exc
    return client.to_dict()
