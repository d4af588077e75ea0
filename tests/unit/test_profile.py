from __future__ import annotations

import httpx
import pytest

from indieauth_discovery.errors import DiscoveryError, InvalidURLError
from indieauth_discovery.profile import Profile
from tests.http_stubs import StubRouter, html, redirect, refuse, respond

PROFILE_URL = "https://example.org/me/"

PROFILE_BODY = """
<!doctype html>
<html>
  <head>
    <title>Example Profile</title>
    <link rel="authorization_endpoint" href="https://example.org/auth">
    <link rel="token_endpoint" href="https://example.org/token">
    <link rel="micropub" href="https://example.org/micropub">
  </head>
  <body><a class="h-card" href="/me/">Example</a></body>
</html>
"""


async def _discover(router: StubRouter, url: str = PROFILE_URL) -> Profile:
    async with router.fetcher() as fetcher:
        return await Profile.discover(url, fetcher=fetcher)


async def test_discovers_endpoints_from_link_headers() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): html(
                "",
                links=[
                    '<https://example.org/auth>; rel="authorization_endpoint"',
                    '<https://example.org/token>; rel="token_endpoint"',
                ],
            ),
        }
    )
    profile = await _discover(router)

    assert str(profile.url) == PROFILE_URL
    assert profile.authorization_endpoint == "https://example.org/auth"
    assert profile.token_endpoint == "https://example.org/token"
    assert profile.micropub_endpoint is None


async def test_discovers_endpoints_from_page_links() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): html(PROFILE_BODY),
        }
    )
    profile = await _discover(router)

    assert profile.authorization_endpoint == "https://example.org/auth"
    assert profile.token_endpoint == "https://example.org/token"
    assert profile.micropub_endpoint == "https://example.org/micropub"


async def test_header_links_take_precedence_over_page_links() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): html(
                PROFILE_BODY,
                links=[
                    '<https://example.org/auth-from-header>; rel="authorization_endpoint"',
                    '<https://example.org/token-from-header>; rel="token_endpoint"',
                    '<https://example.org/micropub-from-header>; rel="micropub"',
                ],
            ),
        }
    )
    profile = await _discover(router)

    assert profile.authorization_endpoint == "https://example.org/auth-from-header"
    assert profile.token_endpoint == "https://example.org/token-from-header"
    assert profile.micropub_endpoint == "https://example.org/micropub-from-header"


async def test_relative_header_links_resolve_against_canonical_url() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): html("", links=['</auth>; rel="authorization_endpoint"']),
        }
    )
    profile = await _discover(router)
    assert profile.authorization_endpoint == "https://example.org/auth"


async def test_fetches_the_canonical_url_once() -> None:
    router = StubRouter(
        {
            ("HEAD", "https://example.org/"): redirect(301, "https://example.org/me/"),
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): html(PROFILE_BODY),
        }
    )
    profile = await _discover(router, "example.org")

    assert str(profile.url) == PROFILE_URL
    assert profile.url.original_url == "example.org"
    assert [key for key in router.requests if key[0] == "GET"] == [("GET", PROFILE_URL)]


async def test_non_html_response_without_links_finds_nothing() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): respond(200, headers={"Content-Type": "application/json"}, text="{}"),
        }
    )
    profile = await _discover(router)
    assert profile.authorization_endpoint is None
    assert profile.token_endpoint is None
    assert profile.micropub_endpoint is None


async def test_canonicalization_failure_skips_the_fetch() -> None:
    router = StubRouter(default=refuse())
    with pytest.raises(InvalidURLError):
        await _discover(router, "example.org")
    assert all(method == "HEAD" for method, _url in router.requests)


async def test_failed_fetch_raises_discovery_error() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): refuse(httpx.ConnectError),
        }
    )
    with pytest.raises(DiscoveryError) as exc_info:
        await _discover(router)
    assert exc_info.value.error == "discovery_failed"
    assert router.requests.count(("GET", PROFILE_URL)) == 1


async def test_profile_is_read_only() -> None:
    router = StubRouter(
        {
            ("HEAD", PROFILE_URL): respond(204),
            ("GET", PROFILE_URL): html(PROFILE_BODY),
        }
    )
    profile = await _discover(router)
    with pytest.raises(AttributeError):
        profile.token_endpoint = "https://attacker.example/token"  # type: ignore[misc]
    assert profile.to_dict()["micropub_endpoint"] == "https://example.org/micropub"
