"""Relation extraction from HTTP `Link` headers and HTML `<link>` elements."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from urllib.parse import urljoin

from bs4 import BeautifulSoup

RelationMap = Mapping[str, tuple[str, ...]]

EMPTY_RELATIONS: RelationMap = MappingProxyType({})

_LINK_VALUE_RE = re.compile(r"^\s*<([^>]*)>(.*)$", re.DOTALL)


def _split_outside_quotes(text: str, separator: str) -> list[str]:
    """Split on `separator` except inside double quotes or angle brackets."""

    parts: list[str] = []
    current: list[str] = []
    in_quotes = False
    in_brackets = False
    escaped = False
    for char in text:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if in_quotes and char == "\\":
            current.append(char)
            escaped = True
            continue
        if char == '"' and not in_brackets:
            in_quotes = not in_quotes
        elif char == "<" and not in_quotes:
            in_brackets = True
        elif char == ">" and not in_quotes:
            in_brackets = False
        elif char == separator and not in_quotes and not in_brackets:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def _link_params(raw_params: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for raw_param in _split_outside_quotes(raw_params, ";"):
        name, _, value = raw_param.partition("=")
        name = name.strip().lower()
        # Only the first occurrence of a parameter counts (RFC 8288 section 3).
        if name and name not in params:
            params[name] = _unquote(value)
    return params


def parse_link_header(header_value: str, base_url: str) -> RelationMap:
    """
    Parse a `Link` header into relation type -> target URLs.

    Targets are resolved against `base_url`. A link with several relation
    types (`rel="a b"`) is recorded under each of them. Values that are not
    of the form `<uri>; params` are ignored.
    """

    relations: dict[str, list[str]] = {}
    for link_value in _split_outside_quotes(header_value, ","):
        match = _LINK_VALUE_RE.match(link_value)
        if match is None:
            continue
        target, raw_params = match.groups()
        rel = _link_params(raw_params).get("rel")
        if not rel:
            continue
        target_url = urljoin(base_url, target.strip())
        for relation in rel.lower().split():
            relations.setdefault(relation, []).append(target_url)
    return MappingProxyType({relation: tuple(targets) for relation, targets in relations.items()})


def parse_html_document(text: str) -> BeautifulSoup:
    return BeautifulSoup(text, "html.parser")


def _rel_tokens(value: object) -> list[str]:
    # BeautifulSoup splits `rel` into a list; fall back for a plain string.
    tokens = value.split() if isinstance(value, str) else list(value or [])
    return [token.lower() for token in tokens]


def query_link_elements(document: BeautifulSoup, relation: str) -> Iterator[str]:
    """Yield `href` values of `<link>` elements carrying `relation`, in document order."""

    wanted = relation.lower()
    for element in document.find_all("link"):
        href = element.get("href")
        if href is None:
            continue
        if wanted in _rel_tokens(element.get("rel")):
            yield href
