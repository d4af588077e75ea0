from __future__ import annotations

import ipaddress

import pytest


@pytest.fixture(autouse=True)
def public_dns(monkeypatch) -> None:
    monkeypatch.setattr(
        "indieauth_discovery.url_safety._resolve_ips",
        lambda _hostname: [ipaddress.ip_address("93.184.216.34")],
    )
