"""
User profile discovery.

See https://indieauth.spec.indieweb.org/#discovery-by-clients.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from indieauth_discovery.canonicalization import CanonicalURL, canonicalize
from indieauth_discovery.config import Settings
from indieauth_discovery.discovery import (
    AUTHORIZATION_ENDPOINT,
    MICROPUB,
    TOKEN_ENDPOINT,
    discover,
    fetch_document,
)
from indieauth_discovery.fetcher import Fetcher, open_fetcher

logger = logging.getLogger("indieauth_discovery.profile")

PROFILE_RELATIONS = (AUTHORIZATION_ENDPOINT, TOKEN_ENDPOINT, MICROPUB)


@dataclass(frozen=True, slots=True)
class Profile:
    """Endpoints advertised by a user's profile URL."""

    url: CanonicalURL
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    micropub_endpoint: str | None = None

    @classmethod
    async def discover(
        cls,
        url: str,
        *,
        fetcher: Fetcher | None = None,
        settings: Settings | None = None,
    ) -> Profile:
        """
        Canonicalize `url`, fetch it once and discover its endpoints.

        Raises:
            InvalidURLError: when `url` cannot be canonicalized.
            DiscoveryError: when the canonical URL cannot be retrieved.
        """

        async with open_fetcher(fetcher, settings=settings) as active:
            canonical = await canonicalize(url, active)
            response = await fetch_document(canonical, active)

        result = discover(canonical, response, PROFILE_RELATIONS)
        logger.info("profile_discovered url=%s", canonical)
        return cls(
            url=canonical,
            authorization_endpoint=result.first(AUTHORIZATION_ENDPOINT),
            token_endpoint=result.first(TOKEN_ENDPOINT),
            micropub_endpoint=result.first(MICROPUB),
        )

    def to_dict(self) -> dict[str, str | None]:
        return {
            "url": str(self.url),
            "authorization_endpoint": self.authorization_endpoint,
            "token_endpoint": self.token_endpoint,
            "micropub_endpoint": self.micropub_endpoint,
        }
