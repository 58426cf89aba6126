"""Device and identity helpers for OPNsense Switches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.device_registry import DeviceInfo

from .const import DEFAULT_NAME, DOMAIN, MANUFACTURER, VERSION
from .core.reconciler import gateway_key

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from .core.reconciler import GatewayEntity


def entry_prefix(entry: ConfigEntry) -> str:
    """Return the stable identity prefix of a config entry (the host)."""
    return entry.unique_id or entry.entry_id


def rule_unique_id(entry: ConfigEntry, rule_uuid: str) -> str:
    """Return the unique ID of a rule switch (host + rule UUID)."""
    return f"{entry_prefix(entry)}_{rule_uuid}"


def gateway_unique_id(entry: ConfigEntry, name: str) -> str:
    """Return the unique ID of a gateway sensor."""
    return f"{entry_prefix(entry)}_{gateway_key(name)}"


def gateway_name_from_unique_id(entry: ConfigEntry, unique_id: str) -> str | None:
    """Return the gateway name encoded in a unique ID, if it is one."""
    prefix = gateway_unique_id(entry, "")
    if not unique_id.startswith(prefix) or unique_id == prefix:
        return None
    return unique_id[len(prefix) :]


def get_firewall_device_info(entry: ConfigEntry) -> DeviceInfo:
    """Get device info for the firewall appliance."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=entry.data.get("name", DEFAULT_NAME),
        manufacturer=MANUFACTURER,
        model="Firewall",
        sw_version=VERSION,
    )


def gateway_device_identifier(entry: ConfigEntry, name: str) -> tuple[str, str]:
    """Return the device registry identifier of a gateway."""
    return (DOMAIN, f"{entry.entry_id}_{gateway_key(name)}")


def gateway_model(gateway: GatewayEntity) -> str:
    """Return the device model, naming the monitor target when known."""
    if gateway.monitor_target:
        return f"Gateway Sensor (MON: {gateway.monitor_target})"
    return "Gateway Sensor"


def gateway_serial_number(gateway: GatewayEntity) -> str:
    """Return the device serial: address, then monitor target, then name."""
    return gateway.ip_address or gateway.monitor_target or gateway.name


def get_gateway_device_info(entry: ConfigEntry, gateway: GatewayEntity) -> DeviceInfo:
    """Get device info for a gateway linked to the firewall device."""
    return DeviceInfo(
        identifiers={gateway_device_identifier(entry, gateway.name)},
        name=gateway.name,
        manufacturer=MANUFACTURER,
        model=gateway_model(gateway),
        serial_number=gateway_serial_number(gateway),
        via_device=(DOMAIN, entry.entry_id),
    )
