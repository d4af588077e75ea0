"""HTTP fetching for canonicalization probes and discovery requests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import httpx

from indieauth_discovery.config import Settings, get_settings
from indieauth_discovery.url_safety import assert_url_safe_for_outbound


@dataclass(frozen=True, slots=True)
class RedirectStep:
    """One hop of a redirect chain: where it led and the status that sent it there."""

    target_url: str
    status_code: int


@dataclass(frozen=True, slots=True)
class ProbeResponse:
    """Result of a HEAD request."""

    url: str
    status_code: int
    headers: httpx.Headers
    redirect_chain: tuple[RedirectStep, ...] = ()


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Result of the single GET that discovery parses."""

    url: str
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    text: str = ""

    @property
    def link_header(self) -> str | None:
        values = self.headers.get_list("link")
        if not values:
            return None
        return ", ".join(values)

    @property
    def is_html(self) -> bool:
        return self.headers.get("content-type", "").strip().lower().startswith("text/html")


def _redirect_chain(response: httpx.Response) -> tuple[RedirectStep, ...]:
    hops = [*response.history, response]
    return tuple(
        RedirectStep(target_url=str(following.url), status_code=previous.status_code)
        for previous, following in zip(hops, hops[1:])
    )


class Fetcher:
    """
    Thin wrapper around `httpx.AsyncClient` for one discovery operation.

    Every outgoing request, redirect hops included, is checked against
    `assert_url_safe_for_outbound` unless private targets are allowed.
    Network errors are not translated here; callers decide which are soft.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(self._settings.outbound_http_timeout_seconds),
            max_redirects=self._settings.max_redirects,
            headers={"User-Agent": self._settings.user_agent},
            event_hooks={"request": [self._check_outbound_target]},
        )

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _check_outbound_target(self, request: httpx.Request) -> None:
        if self._settings.allow_private_network_targets:
            return
        await asyncio.to_thread(assert_url_safe_for_outbound, str(request.url))

    async def head(self, url: str, *, follow_redirects: bool = False) -> ProbeResponse:
        response = await self._client.head(url, follow_redirects=follow_redirects)
        return ProbeResponse(
            url=str(response.url),
            status_code=response.status_code,
            headers=response.headers,
            redirect_chain=_redirect_chain(response),
        )

    async def get(self, url: str) -> FetchResponse:
        response = await self._client.get(url, follow_redirects=True)
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            headers=response.headers,
            text=response.text,
        )


@asynccontextmanager
async def open_fetcher(
    fetcher: Fetcher | None = None,
    *,
    settings: Settings | None = None,
) -> AsyncIterator[Fetcher]:
    """Yield the injected fetcher, or one scoped to the enclosing block."""

    if fetcher is not None:
        yield fetcher
        return
    async with Fetcher(settings=settings) as scoped:
        yield scoped
