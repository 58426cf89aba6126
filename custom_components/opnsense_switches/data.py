"""Custom types for opnsense_switches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from .api import OPNsenseApiClient
    from .coordinator import OPNsenseGatewayCoordinator, OPNsenseRuleCoordinator


type OPNsenseConfigEntry = ConfigEntry[OPNsenseData]


@dataclass
class OPNsenseData:
    """Engine instance owned by one OPNsense config entry."""

    client: OPNsenseApiClient
    rule_coordinator: OPNsenseRuleCoordinator
    gateway_coordinator: OPNsenseGatewayCoordinator | None = None
