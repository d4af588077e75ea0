import ipaddress
import socket

from indieauth_discovery.url_safety import URLSafetyError, assert_url_safe_for_outbound


def _expect_unsafe(url: str, **kwargs: bool) -> URLSafetyError:
    try:
        assert_url_safe_for_outbound(url, **kwargs)
    except URLSafetyError as exc:
        return exc
    raise AssertionError(f"Expected URLSafetyError for {url}")


def test_outbound_rejects_localhost_and_private_literals() -> None:
    for url in ("http://localhost/", "http://127.0.0.1/", "http://10.1.2.3/", "http://[::1]/", "http://169.254.169.254/"):
        assert "not allowed" in str(_expect_unsafe(url))


def test_outbound_rejects_hostnames_resolving_to_private_addresses(monkeypatch) -> None:
    monkeypatch.setattr(
        "indieauth_discovery.url_safety._resolve_ips",
        lambda _hostname: [ipaddress.ip_address("93.184.216.34"), ipaddress.ip_address("192.168.1.10")],
    )
    _expect_unsafe("https://rebind.example.test/")


def test_outbound_allows_public_and_unresolvable_hosts(monkeypatch) -> None:
    assert_url_safe_for_outbound("https://example.org/")

    def _raise(_hostname: str) -> list[object]:
        raise socket.gaierror("boom")

    monkeypatch.setattr("indieauth_discovery.url_safety._resolve_ips", _raise)
    assert_url_safe_for_outbound("https://unresolved.example.test/")


def test_outbound_private_targets_allowed_when_explicit() -> None:
    assert_url_safe_for_outbound("http://127.0.0.1:8080/", allow_private=True)


def test_outbound_requires_hostname() -> None:
    assert "hostname" in str(_expect_unsafe("https:///path"))
