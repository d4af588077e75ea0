"""
Canonicalization and verification of IndieAuth profile and client URLs.

See https://indieauth.spec.indieweb.org/#url-canonicalization.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit, urlunsplit

import httpx

from indieauth_discovery.errors import InvalidURLError
from indieauth_discovery.fetcher import Fetcher, RedirectStep
from indieauth_discovery.url_safety import URLSafetyError

logger = logging.getLogger("indieauth_discovery.canonicalization")

HTTP_SCHEMES = frozenset({"http", "https"})
REDIRECT_STATUS_CODES = frozenset({300, 301, 302, 303, 304, 307, 308})
PERMANENT_REDIRECT_STATUS_CODES = frozenset({301, 308})
INVALID_URL_REASON = "URL must begin with http:// or https://"

# Connection-level failures mean "try the next scheme"; anything else is fatal.
_SOFT_PROBE_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)
_HARD_PROBE_ERRORS = (httpx.HTTPError, httpx.InvalidURL, URLSafetyError)

_URL_CHARACTERS_RE = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+$")
_BAD_PERCENT_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True, slots=True)
class CanonicalURL:
    """A verified identifier URL alongside the string it was derived from."""

    original_url: str
    canonical_url: str

    def __str__(self) -> str:
        return self.canonical_url

    def to_parts(self) -> SplitResult:
        return urlsplit(self.canonical_url)


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of one reachability check."""

    url: str
    status_code: int | None = None
    cause: str | None = None

    @property
    def reachable(self) -> bool:
        return self.status_code is not None and self.status_code < 400


def _invalid_url(url: str) -> InvalidURLError:
    return InvalidURLError("invalid_url", INVALID_URL_REASON, url)


def _check_url_syntax(raw: str) -> None:
    if not raw or not _URL_CHARACTERS_RE.match(raw):
        raise _invalid_url(raw)
    if _BAD_PERCENT_ESCAPE_RE.search(raw) or raw.count("#") > 1:
        raise _invalid_url(raw)


def _split_candidate(candidate: str, original: str) -> SplitResult:
    try:
        parts = urlsplit(candidate)
        # Accessing the port validates it.
        parts.port
    except ValueError as exc:
        raise _invalid_url(original) from exc
    if parts.scheme.lower() not in HTTP_SCHEMES or not parts.hostname:
        raise _invalid_url(original)
    return parts


def _normalize(parts: SplitResult) -> str:
    userinfo, at, hostport = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{at}{hostport.lower()}"
    return urlunsplit((parts.scheme.lower(), netloc, parts.path, parts.query, parts.fragment))


def _with_path(url: str) -> str:
    parts = urlsplit(url)
    if parts.path:
        return url
    return urlunsplit((parts.scheme, parts.netloc, "/", parts.query, parts.fragment))


def scheme_candidates(raw: str) -> list[str]:
    """
    Return the ordered URLs to probe for `raw`, validating them without I/O.

    An http(s) URL is its own only candidate. Anything else, including a
    non-HTTP scheme such as `ftp://`, is treated as schemeless and tried as
    `https://` and then `http://`.
    """

    _check_url_syntax(raw)
    try:
        scheme = urlsplit(raw).scheme.lower()
    except ValueError as exc:
        raise _invalid_url(raw) from exc

    if scheme in HTTP_SCHEMES:
        candidates = [raw]
    else:
        candidates = [f"https://{raw}", f"http://{raw}"]
    return [_normalize(_split_candidate(candidate, raw)) for candidate in candidates]


async def probe(url: str, fetcher: Fetcher) -> ProbeResult:
    """HEAD `url` without following redirects; connection failures are not errors."""

    try:
        response = await fetcher.head(url)
    except _SOFT_PROBE_ERRORS as exc:
        logger.info("probe_unreachable url=%s cause=%s", url, type(exc).__name__)
        return ProbeResult(url=url, cause=type(exc).__name__)
    except _HARD_PROBE_ERRORS as exc:
        logger.warning("probe_failed url=%s error=%s", url, exc)
        raise _invalid_url(url) from exc

    if response.status_code >= 400:
        logger.info("probe_unreachable url=%s status=%s", url, response.status_code)
        return ProbeResult(url=url, status_code=response.status_code, cause="http_status")
    return ProbeResult(url=url, status_code=response.status_code)


def resolve_permanent_redirects(url: str, chain: Iterable[RedirectStep]) -> str:
    """Follow leading 301/308 hops; the first temporary hop ends the walk."""

    for step in chain:
        if step.status_code not in PERMANENT_REDIRECT_STATUS_CODES:
            break
        url = step.target_url
    return url


async def _redirect_chain(url: str, fetcher: Fetcher) -> tuple[RedirectStep, ...]:
    try:
        response = await fetcher.head(url, follow_redirects=True)
    except _HARD_PROBE_ERRORS as exc:
        logger.warning("redirect_probe_failed url=%s error=%s", url, exc)
        raise _invalid_url(url) from exc
    return response.redirect_chain


async def canonicalize(raw: str, fetcher: Fetcher) -> CanonicalURL:
    """
    Canonicalize and verify an identifier URL.

    Raises:
        InvalidURLError: when `raw` is not URL-like or no candidate is reachable.
    """

    original = str(raw).strip()
    candidates = scheme_candidates(original)

    chosen: ProbeResult | None = None
    for candidate in candidates:
        result = await probe(candidate, fetcher)
        if result.reachable:
            chosen = result
            break
    if chosen is None:
        logger.info("canonicalize_failed url=%s candidates=%s", original, len(candidates))
        raise _invalid_url(original)

    canonical = _with_path(chosen.url)
    if chosen.status_code in REDIRECT_STATUS_CODES:
        chain = await _redirect_chain(canonical, fetcher)
        canonical = resolve_permanent_redirects(canonical, chain)
        canonical = _with_path(_normalize(urlsplit(canonical)))

    logger.debug("canonicalized url=%s canonical=%s", original, canonical)
    return CanonicalURL(original_url=original, canonical_url=canonical)
