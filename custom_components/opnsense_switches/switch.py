"""Switch platform for OPNsense Switches."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchDeviceClass, SwitchEntity
from homeassistant.core import callback

from .entity import OPNsenseRuleEntity

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

    from .coordinator import OPNsenseRuleCoordinator
    from .core.rule_state import RuleConfig
    from .data import OPNsenseConfigEntry


async def async_setup_entry(
    _hass: HomeAssistant,
    entry: OPNsenseConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up the switch platform."""
    coordinator = entry.runtime_data.rule_coordinator
    async_add_entities(
        OPNsenseRuleSwitch(coordinator, rule) for rule in coordinator.rules.values()
    )


class OPNsenseRuleSwitch(OPNsenseRuleEntity, SwitchEntity):
    """
    Switch entity that enables or disables a firewall rule.

    The entity doubles as the presenter for the rule state service: a write
    shows the requested state immediately and the service restores the
    previous state if the appliance rejects the change.
    """

    _attr_device_class = SwitchDeviceClass.SWITCH

    def __init__(self, coordinator: OPNsenseRuleCoordinator, rule: RuleConfig) -> None:
        """Initialize the switch entity."""
        super().__init__(coordinator, rule)
        self._attr_is_on = (coordinator.data or {}).get(rule.rule_uuid)

    @property
    def available(self) -> bool:
        """Return True once the rule state has been read at least once."""
        return super().available and self._attr_is_on is not None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the rule identity."""
        return {
            "rule_uuid": self._rule.rule_uuid,
            "invert": self._rule.invert,
        }

    @callback
    def _handle_coordinator_update(self) -> None:
        """Take over the state from the latest coordinator data."""
        if self._rule.rule_uuid in (self.coordinator.data or {}):
            self._attr_is_on = self.coordinator.data[self._rule.rule_uuid]
        super()._handle_coordinator_update()

    def present(self, key: str, value: bool | None) -> None:  # noqa: ARG002
        """Show value as the switch state right away."""
        self._attr_is_on = value
        self.async_write_ha_state()

    def last_observed(self, key: str) -> bool | None:  # noqa: ARG002
        """Return the state currently shown."""
        return self._attr_is_on

    async def async_turn_on(self, **_kwargs: Any) -> None:
        """Drive the rule to the on state."""
        await self.coordinator.async_set_rule(self._rule.rule_uuid, True, self)  # noqa: FBT003

    async def async_turn_off(self, **_kwargs: Any) -> None:
        """Drive the rule to the off state."""
        await self.coordinator.async_set_rule(self._rule.rule_uuid, False, self)  # noqa: FBT003

    async def async_update(self) -> None:
        """Read the rule on demand (homeassistant.update_entity)."""
        await self.coordinator.async_read_rule(self._rule.rule_uuid)
