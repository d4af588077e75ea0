"""Endpoint discovery over the response for a canonical URL."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import httpx
from bs4 import BeautifulSoup

from indieauth_discovery.canonicalization import CanonicalURL
from indieauth_discovery.errors import DiscoveryError
from indieauth_discovery.fetcher import FetchResponse, Fetcher
from indieauth_discovery.link_extraction import (
    EMPTY_RELATIONS,
    RelationMap,
    parse_html_document,
    parse_link_header,
    query_link_elements,
)
from indieauth_discovery.url_safety import URLSafetyError

logger = logging.getLogger("indieauth_discovery.discovery")

AUTHORIZATION_ENDPOINT = "authorization_endpoint"
TOKEN_ENDPOINT = "token_endpoint"
MICROPUB = "micropub"
REDIRECT_URI = "redirect_uri"

# Relations whose every value is kept; all others resolve to one URL.
MULTI_VALUED_RELATIONS = frozenset({REDIRECT_URI})


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Resolved relations: one URL per single-valued relation, all URLs otherwise."""

    endpoints: Mapping[str, str | None] = field(default_factory=lambda: MappingProxyType({}))
    links: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    def first(self, relation: str) -> str | None:
        return self.endpoints.get(relation.lower())

    def all(self, relation: str) -> tuple[str, ...]:
        return self.links.get(relation.lower(), ())


def _dedupe_preserving_order(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return tuple(result)


def build_header_relations(canonical: CanonicalURL, response: FetchResponse) -> RelationMap:
    """Relations from the `Link` header, resolved against the canonical URL."""

    header = response.link_header
    if not header:
        return EMPTY_RELATIONS
    return parse_link_header(header, str(canonical))


def build_document_relations(
    document: BeautifulSoup | None,
    relations: Iterable[str],
) -> RelationMap:
    """Relations from `<link>` elements; hrefs are kept exactly as written."""

    if document is None:
        return EMPTY_RELATIONS
    return MappingProxyType(
        {relation: tuple(query_link_elements(document, relation)) for relation in relations}
    )


def merge_relations(
    header_relations: RelationMap,
    document_relations: RelationMap,
    relations: Iterable[str],
) -> DiscoveryResult:
    """
    Merge header- and document-derived relations.

    Single-valued relations prefer the first header value and fall back to
    the first document value. Multi-valued relations keep header values then
    document values, without duplicates, in first-seen order.
    """

    endpoints: dict[str, str | None] = {}
    links: dict[str, tuple[str, ...]] = {}
    for relation in relations:
        from_headers = header_relations.get(relation, ())
        from_document = document_relations.get(relation, ())
        if relation in MULTI_VALUED_RELATIONS:
            links[relation] = _dedupe_preserving_order([*from_headers, *from_document])
            continue
        if from_headers:
            endpoints[relation] = from_headers[0]
        elif from_document:
            endpoints[relation] = from_document[0]
        else:
            endpoints[relation] = None
    return DiscoveryResult(endpoints=MappingProxyType(endpoints), links=MappingProxyType(links))


def html_document(response: FetchResponse) -> BeautifulSoup | None:
    """Parse the response body when it is HTML."""

    if not response.is_html:
        return None
    return parse_html_document(response.text)


def discover(
    canonical: CanonicalURL,
    response: FetchResponse,
    relations: Iterable[str],
    *,
    document: BeautifulSoup | None = None,
) -> DiscoveryResult:
    """
    Resolve `relations` from one response for `canonical`.

    `document` may be passed when the caller already parsed the body.
    """

    wanted = [relation.lower() for relation in relations]
    if document is None:
        document = html_document(response)
    header_relations = build_header_relations(canonical, response)
    document_relations = build_document_relations(document, wanted)
    result = merge_relations(header_relations, document_relations, wanted)
    logger.debug(
        "discovered url=%s endpoints=%s links=%s",
        canonical,
        dict(result.endpoints),
        dict(result.links),
    )
    return result


async def fetch_document(canonical: CanonicalURL, fetcher: Fetcher) -> FetchResponse:
    """
    GET the canonical URL once, following redirects.

    Raises:
        DiscoveryError: when the request fails; it is never retried.
    """

    try:
        response = await fetcher.get(str(canonical))
    except (httpx.HTTPError, httpx.InvalidURL, URLSafetyError) as exc:
        logger.warning("discovery_fetch_failed url=%s error=%s", canonical, exc)
        raise DiscoveryError(
            "discovery_failed",
            "Unable to retrieve the canonical URL",
            str(canonical),
        ) from exc

    if response.status_code >= 400:
        logger.warning("discovery_fetch_status url=%s status=%s", canonical, response.status_code)
    return response
