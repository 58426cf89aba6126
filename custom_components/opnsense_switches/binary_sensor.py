"""Binary sensor platform for OPNsense Switches."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.core import callback

from .const import LOGGER, SensorKind
from .entity import OPNsenseGatewayEntity

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

    from .coordinator import OPNsenseGatewayCoordinator
    from .core.reconciler import GatewayEntity
    from .data import OPNsenseConfigEntry

DEVICE_CLASSES: dict[SensorKind, BinarySensorDeviceClass] = {
    SensorKind.CONTACT: BinarySensorDeviceClass.OPENING,
    SensorKind.OCCUPANCY: BinarySensorDeviceClass.OCCUPANCY,
}


async def async_setup_entry(
    _hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up the binary sensor platform."""
    coordinator = entry.runtime_data.gateway_coordinator
    if coordinator is None:
        return

    known: set[str] = set()

    @callback
    def _async_add_new_gateways() -> None:
        tracked = coordinator.data or {}
        # Forget removed gateways so they are recreated if they come back
        known.intersection_update(tracked)
        new = [gateway for name, gateway in tracked.items() if name not in known]
        if not new:
            return
        known.update(gateway.name for gateway in new)
        LOGGER.debug("Adding gateway sensors: %s", [g.name for g in new])
        async_add_entities(
            OPNsenseGatewaySensor(coordinator, gateway) for gateway in new
        )

    _async_add_new_gateways()
    entry.async_on_unload(coordinator.async_add_listener(_async_add_new_gateways))


class OPNsenseGatewaySensor(OPNsenseGatewayEntity, BinarySensorEntity):
    """
    Binary sensor reporting whether a gateway is reachable.

    The sensor takes the gateway's device name. How reachability maps to the
    on/off state depends on the configured sensor kind.
    """

    _attr_name = None

    def __init__(
        self, coordinator: OPNsenseGatewayCoordinator, gateway: GatewayEntity
    ) -> None:
        """Initialize the binary sensor entity."""
        super().__init__(coordinator, gateway)
        self._attr_device_class = DEVICE_CLASSES[coordinator.sensor_kind]

    @property
    def available(self) -> bool:
        """Return True while the gateway is tracked."""
        return super().available and self.gateway is not None

    @property
    def is_on(self) -> bool | None:
        """Return the encoded reachability."""
        gateway = self.gateway
        if gateway is None:
            return None
        return self.coordinator.sensor_kind.is_on(gateway.online)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return gateway metadata and fault flags."""
        gateway = self.gateway
        if gateway is None:
            return {}
        return {
            "address": gateway.ip_address,
            "monitor": gateway.monitor_target,
            "delay": gateway.delay,
            "loss": gateway.loss,
            "status_fault": gateway.faulted or not gateway.online,
            "faulted": gateway.faulted,
        }
