"""Base entity classes for OPNsense Switches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import OPNsenseGatewayCoordinator, OPNsenseRuleCoordinator
from .device import (
    gateway_unique_id,
    get_firewall_device_info,
    get_gateway_device_info,
    rule_unique_id,
)

if TYPE_CHECKING:
    from .core.reconciler import GatewayEntity
    from .core.rule_state import RuleConfig


class OPNsenseRuleEntity(CoordinatorEntity[OPNsenseRuleCoordinator]):
    """Base class for entities backed by a firewall rule."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: OPNsenseRuleCoordinator, rule: RuleConfig) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._rule = rule
        self._attr_name = rule.name
        self._attr_unique_id = rule_unique_id(coordinator.config_entry, rule.rule_uuid)
        self._attr_device_info = get_firewall_device_info(coordinator.config_entry)

    @property
    def rule(self) -> RuleConfig:
        """Return the rule configuration."""
        return self._rule


class OPNsenseGatewayEntity(CoordinatorEntity[OPNsenseGatewayCoordinator]):
    """Base class for entities backed by a gateway."""

    _attr_has_entity_name = True

    def __init__(
        self, coordinator: OPNsenseGatewayCoordinator, gateway: GatewayEntity
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._gateway_name = gateway.name
        self._attr_unique_id = gateway_unique_id(coordinator.config_entry, gateway.name)
        self._attr_device_info = get_gateway_device_info(
            coordinator.config_entry, gateway
        )

    @property
    def gateway_name(self) -> str:
        """Return the gateway name."""
        return self._gateway_name

    @property
    def gateway(self) -> GatewayEntity | None:
        """Return the tracked gateway state, if still tracked."""
        return (self.coordinator.data or {}).get(self._gateway_name)
