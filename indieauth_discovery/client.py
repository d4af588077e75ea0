"""
Client information discovery.

See https://indieauth.spec.indieweb.org/#client-information-discovery.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import mf2py
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from indieauth_discovery.canonicalization import CanonicalURL, canonicalize
from indieauth_discovery.config import Settings
from indieauth_discovery.discovery import REDIRECT_URI, discover, fetch_document
from indieauth_discovery.fetcher import FetchResponse, Fetcher, open_fetcher

logger = logging.getLogger("indieauth_discovery.client")

CLIENT_RELATIONS = (REDIRECT_URI,)
APPLICATION_TYPES = frozenset({"h-app", "h-x-app"})


class ClientApplication(BaseModel):
    """Subset of an h-app card describing the client."""

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    name: str | None = None
    url: str | None = None
    logo: str | None = None
    photo: str | None = None

    @field_validator("name", "url", "logo", "photo", mode="before")
    @classmethod
    def _first_value(cls, value: Any) -> Any:
        # Microformats properties are lists; images may carry {"value", "alt"}.
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            value = value.get("value")
        return value


def _walk_items(items: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for item in items:
        yield item
        yield from _walk_items(item.get("children", []))


def find_application(canonical: CanonicalURL, response: FetchResponse) -> ClientApplication | None:
    """Return the first h-app card of an HTML response, if any."""

    if not response.is_html:
        return None
    parsed = mf2py.parse(doc=response.text, url=str(canonical), html_parser="html.parser")
    for item in _walk_items(parsed.get("items", [])):
        if APPLICATION_TYPES.isdisjoint(item.get("type", [])):
            continue
        try:
            return ClientApplication.model_validate(item.get("properties", {}))
        except ValidationError as exc:
            logger.info("client_application_invalid url=%s error=%s", canonical, exc)
    return None


@dataclass(frozen=True, slots=True)
class Client:
    """Redirect URIs and application card published by a client identifier."""

    url: CanonicalURL
    redirect_uris: tuple[str, ...] = ()
    application: ClientApplication | None = None

    @classmethod
    async def discover(
        cls,
        url: str,
        *,
        fetcher: Fetcher | None = None,
        settings: Settings | None = None,
    ) -> Client:
        """
        Canonicalize `url`, fetch it once and discover its client metadata.

        Raises:
            InvalidURLError: when `url` cannot be canonicalized.
            DiscoveryError: when the canonical URL cannot be retrieved.
        """

        async with open_fetcher(fetcher, settings=settings) as active:
            canonical = await canonicalize(url, active)
            response = await fetch_document(canonical, active)

        result = discover(canonical, response, CLIENT_RELATIONS)
        application = find_application(canonical, response)
        logger.info(
            "client_discovered url=%s redirect_uris=%s application=%s",
            canonical,
            len(result.all(REDIRECT_URI)),
            application is not None,
        )
        return cls(
            url=canonical,
            redirect_uris=result.all(REDIRECT_URI),
            application=application,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": str(self.url),
            "redirect_uris": list(self.redirect_uris),
            "application": self.application.model_dump() if self.application else None,
        }
