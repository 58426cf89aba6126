"""Constants for OPNsense Switches."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from logging import Logger, getLogger
from pathlib import Path
from typing import Any, TypedDict

LOGGER: Logger = getLogger(__package__)

DOMAIN = "opnsense_switches"
MANUFACTURER = "OPNsense"

# Load version from manifest.json once at module load
MANIFEST_PATH = Path(__file__).parent / "manifest.json"
VERSION = json.loads(MANIFEST_PATH.read_text())["version"]

# Config entry data keys (connection)
CONF_API_SECRET = "api_secret"
CONF_CA_PATH = "ca_path"

# Config entry option sections
OPT_RULES = "rules"
OPT_SETTINGS = "settings"
OPT_GATEWAYS = "gateways"

# Rule keys inside OPT_RULES
RULE_UUID = "rule_uuid"
RULE_NAME = "name"
RULE_INVERT = "invert"

DEFAULT_NAME = "OPNsense"
DEFAULT_RULE_NAME = "OPNsense Rule"


class StatusMethod(StrEnum):
    """How the current state of a rule is looked up."""

    GET_RULE = "getRule"
    SEARCH_RULE = "searchRule"


class SensorKind(StrEnum):
    """
    Presentation of gateway reachability.

    Both kinds share one reconciliation algorithm and only differ in how an
    online gateway is encoded:
    - OCCUPANCY: online gateway -> occupancy detected (on)
    - CONTACT: online gateway -> contact detected, i.e. closed (off)
    """

    CONTACT = "contact"
    OCCUPANCY = "occupancy"

    def is_on(self, online: bool) -> bool:  # noqa: FBT001
        """Encode gateway reachability as a binary sensor state."""
        if self is SensorKind.CONTACT:
            return not online
        return online


class SettingsDefaults(TypedDict):
    """Type for DEFAULT_SETTINGS dictionary."""

    status_method: str
    apply_after_toggle: bool
    request_timeout: int
    status_ttl: float
    poll_interval: int


class GatewayDefaults(TypedDict):
    """Type for DEFAULT_GATEWAYS dictionary."""

    enabled: bool
    poll_interval: int
    sensor_kind: str
    include: list[str]


# Engine-wide defaults (seconds unless otherwise noted)
DEFAULT_SETTINGS: SettingsDefaults = {
    "status_method": StatusMethod.GET_RULE,
    "apply_after_toggle": False,
    "request_timeout": 15,
    "status_ttl": 3.0,
    "poll_interval": 30,  # 0 disables periodic polling
}

DEFAULT_GATEWAYS: GatewayDefaults = {
    "enabled": False,
    "poll_interval": 30,
    "sensor_kind": SensorKind.OCCUPANCY,
    "include": [],
}

# Gateway polling never runs faster than this
GATEWAY_MIN_POLL_INTERVAL = 5

# UI validation constraints
UI_REQUEST_TIMEOUT = {"min": 1, "max": 120, "step": 1}
UI_STATUS_TTL = {"min": 0, "max": 60, "step": 0.5}
UI_POLL_INTERVAL = {"min": 0, "max": 3600, "step": 5}
UI_GATEWAY_POLL_INTERVAL = {"min": GATEWAY_MIN_POLL_INTERVAL, "max": 3600, "step": 5}


@dataclass
class EngineSettings:
    """Engine-wide rule settings parsed from config entry options."""

    status_method: StatusMethod = StatusMethod(DEFAULT_SETTINGS["status_method"])
    apply_after_toggle: bool = DEFAULT_SETTINGS["apply_after_toggle"]
    request_timeout: int = DEFAULT_SETTINGS["request_timeout"]
    status_ttl: float = DEFAULT_SETTINGS["status_ttl"]
    poll_interval: int = DEFAULT_SETTINGS["poll_interval"]

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> EngineSettings:
        """Build settings from the options section, falling back to defaults."""
        try:
            status_method = StatusMethod(
                options.get("status_method", DEFAULT_SETTINGS["status_method"])
            )
        except ValueError:
            status_method = StatusMethod.GET_RULE
        return cls(
            status_method=status_method,
            apply_after_toggle=bool(
                options.get(
                    "apply_after_toggle", DEFAULT_SETTINGS["apply_after_toggle"]
                )
            ),
            request_timeout=int(
                options.get("request_timeout", DEFAULT_SETTINGS["request_timeout"])
            ),
            status_ttl=float(options.get("status_ttl", DEFAULT_SETTINGS["status_ttl"])),
            poll_interval=max(
                0, int(options.get("poll_interval", DEFAULT_SETTINGS["poll_interval"]))
            ),
        )


@dataclass
class GatewaySettings:
    """Gateway reconciliation settings parsed from config entry options."""

    enabled: bool = DEFAULT_GATEWAYS["enabled"]
    poll_interval: int = DEFAULT_GATEWAYS["poll_interval"]
    sensor_kind: SensorKind = SensorKind.OCCUPANCY
    include: list[str] = field(default_factory=list)

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> GatewaySettings:
        """Build settings from the options section, clamping the poll interval."""
        kind = options.get("sensor_kind", DEFAULT_GATEWAYS["sensor_kind"])
        return cls(
            enabled=bool(options.get("enabled", DEFAULT_GATEWAYS["enabled"])),
            poll_interval=max(
                GATEWAY_MIN_POLL_INTERVAL,
                int(options.get("poll_interval", DEFAULT_GATEWAYS["poll_interval"])),
            ),
            # Anything other than an explicit "contact" falls back to occupancy
            sensor_kind=(
                SensorKind.CONTACT
                if kind == SensorKind.CONTACT
                else SensorKind.OCCUPANCY
            ),
            include=[str(name) for name in options.get("include") or [] if name],
        )
