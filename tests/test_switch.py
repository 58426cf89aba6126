"""Tests for OPNsense Switches switch platform."""

from unittest.mock import MagicMock

import pytest
from homeassistant.components.switch import DOMAIN as SWITCH_DOMAIN
from homeassistant.const import (
    ATTR_ENTITY_ID,
    SERVICE_TURN_OFF,
    SERVICE_TURN_ON,
    STATE_OFF,
    STATE_ON,
    STATE_UNAVAILABLE,
)
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import entity_registry as er
from homeassistant.setup import async_setup_component
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.opnsense_switches.core.errors import ClientError

from .conftest import (
    MOCK_RULE2_UUID,
    MOCK_RULE_UUID,
    MOCK_UNIQUE_ID,
    make_entry,
    rule_payload,
)

KIDS_WIFI = "switch.firewall_kids_wifi"
BLOCK_IOT = "switch.firewall_block_iot"


async def _setup(hass: HomeAssistant, entry: MockConfigEntry) -> None:
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()


async def test_switches_created(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,  # noqa: ARG001
) -> None:
    """Each configured rule becomes a switch reflecting its state."""
    await _setup(hass, mock_config_entry)

    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_ON
    assert state.attributes["rule_uuid"] == MOCK_RULE_UUID
    assert state.attributes["invert"] is False

    # Enabled rule with invert shows as off
    state = hass.states.get(BLOCK_IOT)
    assert state is not None
    assert state.state == STATE_OFF
    assert state.attributes["invert"] is True


async def test_unique_id_uses_host_and_rule(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,  # noqa: ARG001
) -> None:
    """Unique IDs combine the host and the rule UUID."""
    await _setup(hass, mock_config_entry)

    entity_reg = er.async_get(hass)
    entity = entity_reg.async_get(KIDS_WIFI)
    assert entity is not None
    assert entity.unique_id == f"{MOCK_UNIQUE_ID}_{MOCK_RULE_UUID}"


async def test_turn_off_toggles_rule(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,
) -> None:
    """Turning a switch off toggles the enabled rule."""
    await _setup(hass, mock_config_entry)

    await hass.services.async_call(
        SWITCH_DOMAIN,
        SERVICE_TURN_OFF,
        {ATTR_ENTITY_ID: KIDS_WIFI},
        blocking=True,
    )

    mock_client.async_toggle_rule.assert_awaited_once_with(MOCK_RULE_UUID)
    mock_client.async_apply.assert_not_awaited()
    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_OFF


async def test_turn_on_already_enabled_is_noop(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,
) -> None:
    """No toggle is sent when the rule already has the requested state."""
    await _setup(hass, mock_config_entry)

    await hass.services.async_call(
        SWITCH_DOMAIN,
        SERVICE_TURN_ON,
        {ATTR_ENTITY_ID: KIDS_WIFI},
        blocking=True,
    )

    mock_client.async_toggle_rule.assert_not_awaited()
    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_ON


async def test_turn_on_inverted_disables_rule(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,
) -> None:
    """Turning an inverted switch on toggles the enabled rule off."""
    await _setup(hass, mock_config_entry)

    await hass.services.async_call(
        SWITCH_DOMAIN,
        SERVICE_TURN_ON,
        {ATTR_ENTITY_ID: BLOCK_IOT},
        blocking=True,
    )

    mock_client.async_toggle_rule.assert_awaited_once_with(MOCK_RULE2_UUID)
    state = hass.states.get(BLOCK_IOT)
    assert state is not None
    assert state.state == STATE_ON


async def test_apply_after_toggle(
    hass: HomeAssistant,
    mock_client: MagicMock,
) -> None:
    """Filter changes are applied when configured."""
    await _setup(hass, make_entry(settings={"apply_after_toggle": True}))

    await hass.services.async_call(
        SWITCH_DOMAIN,
        SERVICE_TURN_OFF,
        {ATTR_ENTITY_ID: KIDS_WIFI},
        blocking=True,
    )

    mock_client.async_apply.assert_awaited_once()


async def test_failed_toggle_rolls_back(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,
) -> None:
    """A rejected toggle surfaces an error and restores the switch."""
    await _setup(hass, mock_config_entry)
    mock_client.async_toggle_rule.side_effect = ClientError(403, "Forbidden")

    with pytest.raises(HomeAssistantError) as exc_info:
        await hass.services.async_call(
            SWITCH_DOMAIN,
            SERVICE_TURN_OFF,
            {ATTR_ENTITY_ID: KIDS_WIFI},
            blocking=True,
        )

    assert exc_info.value.translation_key == "communication_failure"
    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_ON


async def test_unreadable_rule_is_unavailable(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,
) -> None:
    """A rule that was never read successfully is unavailable."""
    mock_client.async_get_rule.side_effect = ClientError(404, "Not Found")
    mock_client.async_search_rules.return_value = {"rows": []}
    await _setup(hass, mock_config_entry)

    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_UNAVAILABLE


async def test_poll_failure_keeps_state(
    hass: HomeAssistant,
    mock_client: MagicMock,
) -> None:
    """A failed poll does not change the displayed state."""
    entry = make_entry(settings={"status_ttl": 0})
    await _setup(hass, entry)

    mock_client.async_get_rule.side_effect = ClientError(500, "boom")
    mock_client.async_search_rules.side_effect = ClientError(500, "boom")
    await entry.runtime_data.rule_coordinator.async_refresh()
    await hass.async_block_till_done()

    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_ON


async def test_poll_picks_up_remote_change(
    hass: HomeAssistant,
    mock_client: MagicMock,
) -> None:
    """A rule changed on the firewall is reflected after the next poll."""
    entry = make_entry(settings={"status_ttl": 0})
    await _setup(hass, entry)

    mock_client.async_get_rule.return_value = rule_payload("0")
    await entry.runtime_data.rule_coordinator.async_refresh()
    await hass.async_block_till_done()

    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_OFF


async def test_update_entity_reads_on_demand(
    hass: HomeAssistant,
    mock_client: MagicMock,
) -> None:
    """homeassistant.update_entity reads the rule immediately."""
    assert await async_setup_component(hass, "homeassistant", {})
    entry = make_entry(settings={"status_ttl": 0})
    await _setup(hass, entry)

    mock_client.async_get_rule.return_value = rule_payload("0")
    await hass.services.async_call(
        "homeassistant",
        "update_entity",
        {ATTR_ENTITY_ID: KIDS_WIFI},
        blocking=True,
    )

    state = hass.states.get(KIDS_WIFI)
    assert state is not None
    assert state.state == STATE_OFF


async def test_update_entity_failure_raises(
    hass: HomeAssistant,
    mock_client: MagicMock,
) -> None:
    """A failed on-demand read surfaces a communication failure."""
    entry = make_entry(settings={"status_ttl": 0})
    await _setup(hass, entry)

    mock_client.async_get_rule.side_effect = ClientError(404, "Not Found")
    mock_client.async_search_rules.side_effect = ClientError(401, "Unauthorized")
    with pytest.raises(HomeAssistantError):
        await entry.runtime_data.rule_coordinator.async_read_rule(MOCK_RULE_UUID)
