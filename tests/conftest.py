"""Common fixtures for OPNsense Switches tests."""

from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.opnsense_switches.const import (
    DEFAULT_GATEWAYS,
    DEFAULT_SETTINGS,
    DOMAIN,
)

MOCK_HOST = "192.168.1.1"
MOCK_UNIQUE_ID = "192-168-1-1"
MOCK_RULE_UUID = "0d0c4a52-1111-4e0b-9f4e-2a5d7b3c9e01"
MOCK_RULE2_UUID = "7f3e9b10-2222-4c1a-8d2f-6b4e1a0c5d02"

MOCK_ENTRY_DATA: dict[str, Any] = {
    "name": "Firewall",
    "host": MOCK_HOST,
    "api_key": "key",
    "api_secret": "secret",
    "verify_ssl": False,
}

MOCK_RULES: list[dict[str, Any]] = [
    {"rule_uuid": MOCK_RULE_UUID, "name": "Kids WiFi", "invert": False},
    {"rule_uuid": MOCK_RULE2_UUID, "name": "Block IoT", "invert": True},
]


def rule_payload(enabled: str) -> dict[str, Any]:
    """Return a getRule payload with the given enabled flag."""
    return {"rule": {"enabled": enabled, "description": "test rule"}}


def gateway_payload(*rows: dict[str, Any]) -> dict[str, Any]:
    """Return a gateway status payload."""
    return {"items": list(rows), "status": "ok"}


def make_entry(
    *,
    rules: list[dict[str, Any]] | None = None,
    settings: dict[str, Any] | None = None,
    gateways: dict[str, Any] | None = None,
    entry_id: str = "test_entry_id",
) -> MockConfigEntry:
    """Build a config entry with the given options sections."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="Firewall",
        data=MOCK_ENTRY_DATA,
        options={
            "rules": MOCK_RULES if rules is None else rules,
            "settings": {**DEFAULT_SETTINGS, "poll_interval": 0, **(settings or {})},
            "gateways": {**DEFAULT_GATEWAYS, **(gateways or {})},
        },
        entry_id=entry_id,
        unique_id=MOCK_UNIQUE_ID,
    )


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a config entry with two rules and gateways disabled."""
    return make_entry()


@pytest.fixture
def mock_config_entry_gateways() -> MockConfigEntry:
    """Return a config entry with gateway sensors enabled."""
    return make_entry(rules=[], gateways={"enabled": True})


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(
    enable_custom_integrations: None,
) -> None:
    """Enable custom integrations for all tests."""


@pytest.fixture(autouse=True)
def expected_lingering_timers() -> bool:
    """Allow lingering timers for coordinator updates."""
    return True


@pytest.fixture
def mock_client() -> Generator[MagicMock]:
    """
    Patch the API client used by the integration.

    Both rules read as enabled and the gateway listing is empty unless a
    test overrides the return values.
    """
    client = MagicMock()
    client.async_get_rule = AsyncMock(return_value=rule_payload("1"))
    client.async_search_rules = AsyncMock(return_value={"rows": []})
    client.async_toggle_rule = AsyncMock(return_value=None)
    client.async_apply = AsyncMock(return_value=None)
    client.async_get_gateway_status = AsyncMock(return_value=gateway_payload())
    client.async_search_gateways = AsyncMock(return_value={"rows": []})

    with (
        patch(
            "custom_components.opnsense_switches.OPNsenseApiClient",
            return_value=client,
        ),
        patch(
            "custom_components.opnsense_switches.config_flow.OPNsenseApiClient",
            return_value=client,
        ),
    ):
        yield client


@pytest.fixture
def mock_setup_entry() -> Generator[None]:
    """Mock setting up a config entry."""
    with patch(
        "custom_components.opnsense_switches.async_setup_entry",
        return_value=True,
    ):
        yield
