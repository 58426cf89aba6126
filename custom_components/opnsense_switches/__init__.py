"""
Custom integration to control OPNsense firewall rules from Home Assistant.

Each configured filter rule becomes a switch; gateways reported by the
appliance can optionally be mirrored as binary sensors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.const import CONF_API_KEY, CONF_HOST, CONF_VERIFY_SSL, Platform
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers import entity_registry as er
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import OPNsenseApiClient, create_ssl_context
from .const import (
    CONF_API_SECRET,
    CONF_CA_PATH,
    DOMAIN,
    LOGGER,
    OPT_GATEWAYS,
    OPT_SETTINGS,
    EngineSettings,
    GatewaySettings,
)
from .coordinator import OPNsenseGatewayCoordinator, OPNsenseRuleCoordinator
from .data import OPNsenseData
from .device import gateway_name_from_unique_id, rule_unique_id

if TYPE_CHECKING:
    import ssl

    from homeassistant.core import HomeAssistant

    from .data import OPNsenseConfigEntry

PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.SWITCH,
]


async def async_setup_entry(
    hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
) -> bool:
    """Set up OPNsense Switches from a config entry."""
    LOGGER.debug("Setting up OPNsense Switches entry: %s", entry.entry_id)

    settings = EngineSettings.from_options(entry.options.get(OPT_SETTINGS, {}))
    gateway_settings = GatewaySettings.from_options(
        entry.options.get(OPT_GATEWAYS, {})
    )
    verify_ssl = entry.data.get(CONF_VERIFY_SSL, False)
    client = OPNsenseApiClient(
        session=async_get_clientsession(hass, verify_ssl=verify_ssl),
        host=entry.data[CONF_HOST],
        api_key=entry.data[CONF_API_KEY],
        api_secret=entry.data[CONF_API_SECRET],
        request_timeout=settings.request_timeout,
        ssl_context=await _async_load_ca(hass, entry) if verify_ssl else None,
    )

    rule_coordinator = OPNsenseRuleCoordinator(hass, entry, client)
    _async_remove_stale_entities(
        hass, entry, rule_coordinator, keep_gateways=gateway_settings.enabled
    )
    await rule_coordinator.async_config_entry_first_refresh()

    gateway_coordinator = None
    if gateway_settings.enabled:
        gateway_coordinator = OPNsenseGatewayCoordinator(
            hass, entry, client, gateway_settings
        )
        gateway_coordinator.async_restore_from_registry()
        await gateway_coordinator.async_config_entry_first_refresh()

    entry.runtime_data = OPNsenseData(
        client=client,
        rule_coordinator=rule_coordinator,
        gateway_coordinator=gateway_coordinator,
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    return True


async def _async_load_ca(
    hass: HomeAssistant, entry: OPNsenseConfigEntry
) -> ssl.SSLContext | None:
    """Load the configured CA bundle, falling back to the system trust store."""
    ca_path = entry.data.get(CONF_CA_PATH)
    if not ca_path:
        return None
    try:
        return await hass.async_add_executor_job(create_ssl_context, ca_path)
    except OSError as err:
        LOGGER.warning("Failed to read CA bundle at %s: %s", ca_path, err)
        return None


def _async_remove_stale_entities(
    hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
    rule_coordinator: OPNsenseRuleCoordinator,
    *,
    keep_gateways: bool,
) -> None:
    """Remove entities of rules no longer configured, and of disabled gateways."""
    entity_reg = er.async_get(hass)
    wanted = {
        rule_unique_id(entry, rule_uuid) for rule_uuid in rule_coordinator.rules
    }

    stale: list[str] = []
    for entity_entry in er.async_entries_for_config_entry(entity_reg, entry.entry_id):
        if entity_entry.domain == Platform.SWITCH:
            if entity_entry.unique_id not in wanted:
                stale.append(entity_entry.entity_id)
        elif (
            entity_entry.domain == Platform.BINARY_SENSOR
            and not keep_gateways
            and gateway_name_from_unique_id(entry, entity_entry.unique_id)
        ):
            stale.append(entity_entry.entity_id)

    for entity_id in stale:
        LOGGER.debug("Removing stale entity %s", entity_id)
        entity_reg.async_remove(entity_id)


async def async_unload_entry(
    hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
) -> bool:
    """Handle removal of an entry."""
    LOGGER.debug("Unloading OPNsense Switches entry: %s", entry.entry_id)

    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        data = entry.runtime_data
        await data.rule_coordinator.async_shutdown()
        if data.gateway_coordinator is not None:
            await data.gateway_coordinator.async_shutdown()
    return unloaded


async def async_reload_entry(
    hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
) -> None:
    """Reload config entry."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_remove_config_entry_device(
    _hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
    device_entry: dr.DeviceEntry,
) -> bool:
    """Allow removing gateway devices, but never the firewall device."""
    if (DOMAIN, entry.entry_id) in device_entry.identifiers:
        msg = "Cannot delete the firewall. To remove it, delete the integration."
        raise HomeAssistantError(msg)
    return True


__all__ = [
    "DOMAIN",
    "async_setup_entry",
    "async_unload_entry",
]
