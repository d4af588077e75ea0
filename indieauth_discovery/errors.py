"""Error types raised by IndieAuth discovery."""

from __future__ import annotations


class IndieAuthDiscoveryError(Exception):
    """Base class carrying an OAuth-style error code, reason and URI."""

    def __init__(
        self,
        error: str,
        error_reason: str | None = None,
        error_uri: str | None = None,
    ) -> None:
        self.error = error
        self.error_reason = error_reason
        self.error_uri = error_uri
        super().__init__(self.message)

    @property
    def message(self) -> str:
        parts = (self.error, self.error_reason, self.error_uri)
        return " | ".join(part for part in parts if part is not None)

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.error}
        if self.error_reason is not None:
            body["error_description"] = self.error_reason
        if self.error_uri is not None:
            body["error_uri"] = self.error_uri
        return body


class InvalidURLError(IndieAuthDiscoveryError):
    """Raised when an identifier cannot be canonicalized to a reachable URL."""


class DiscoveryError(IndieAuthDiscoveryError):
    """Raised when retrieving the canonical URL for discovery fails."""
