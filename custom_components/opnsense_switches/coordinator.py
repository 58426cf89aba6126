"""DataUpdateCoordinators for OPNsense Switches."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

from homeassistant.const import Platform
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers import entity_registry as er
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import (
    DEFAULT_RULE_NAME,
    DOMAIN,
    LOGGER,
    MANUFACTURER,
    OPT_RULES,
    OPT_SETTINGS,
    RULE_INVERT,
    RULE_NAME,
    RULE_UUID,
    EngineSettings,
    GatewaySettings,
    SensorKind,
)
from .core.cache import StatusCache
from .core.errors import OPNsenseError
from .core.reconciler import GatewayEntity, GatewayReconciler, ReconcileResult
from .core.rule_state import RuleConfig, RuleStateService
from .device import (
    gateway_device_identifier,
    gateway_model,
    gateway_name_from_unique_id,
    gateway_serial_number,
    gateway_unique_id,
)

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .api import OPNsenseApiClient
    from .core.rule_state import StatePresenter
    from .data import OPNsenseConfigEntry


def build_rules(
    entry: OPNsenseConfigEntry, settings: EngineSettings
) -> dict[str, RuleConfig]:
    """Build rule configs from config entry options, skipping incomplete ones."""
    rules: dict[str, RuleConfig] = {}
    for rule_data in entry.options.get(OPT_RULES, []):
        rule_uuid = rule_data.get(RULE_UUID)
        name = rule_data.get(RULE_NAME) or DEFAULT_RULE_NAME
        if not rule_uuid:
            LOGGER.warning('Skipping switch "%s": missing rule UUID', name)
            continue
        rules[rule_uuid] = RuleConfig(
            rule_uuid=rule_uuid,
            name=name,
            invert=bool(rule_data.get(RULE_INVERT, False)),
            status_method=settings.status_method,
            apply_after_toggle=settings.apply_after_toggle,
        )
    return rules


class OPNsenseRuleCoordinator(DataUpdateCoordinator[dict[str, bool]]):
    """
    Poll the enabled state of configured firewall rules.

    Data maps rule UUID to the switch state (invert already applied). A rule
    whose poll fails keeps its previous value; rules that were never read
    successfully are absent from the data.
    """

    config_entry: OPNsenseConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        entry: OPNsenseConfigEntry,
        client: OPNsenseApiClient,
    ) -> None:
        """Initialize the coordinator."""
        self.settings = EngineSettings.from_options(entry.options.get(OPT_SETTINGS, {}))
        self._rules = build_rules(entry, self.settings)
        self._service = RuleStateService(client, StatusCache(self.settings.status_ttl))

        super().__init__(
            hass,
            LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}_rules",
            update_interval=(
                timedelta(seconds=self.settings.poll_interval)
                if self.settings.poll_interval > 0
                else None
            ),
        )

    @property
    def rules(self) -> dict[str, RuleConfig]:
        """Return the configured rules by UUID."""
        return self._rules

    @property
    def service(self) -> RuleStateService:
        """Return the rule state service."""
        return self._service

    async def _async_update_data(self) -> dict[str, bool]:
        """Read every configured rule, keeping old values for failed reads."""
        data = dict(self.data or {})
        rules = list(self._rules.values())
        results = await asyncio.gather(
            *(self._service.async_read(rule) for rule in rules),
            return_exceptions=True,
        )
        for rule, result in zip(rules, results, strict=True):
            if isinstance(result, OPNsenseError):
                # Not surfaced to the user; the last value stays to avoid flapping
                LOGGER.debug("Polling %s failed: %s", rule.name, result)
                continue
            if isinstance(result, BaseException):
                raise result
            data[rule.rule_uuid] = result
        return data

    def _get_rule(self, rule_uuid: str) -> RuleConfig:
        rule = self._rules.get(rule_uuid)
        if rule is None:
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key="unknown_rule",
                translation_placeholders={"rule_uuid": rule_uuid},
            )
        return rule

    async def async_read_rule(self, rule_uuid: str) -> bool:
        """Read one rule on demand, served from the status cache when fresh."""
        rule = self._get_rule(rule_uuid)
        try:
            is_on = await self._service.async_read(rule)
        except OPNsenseError as err:
            LOGGER.error("Reading %s failed: %s", rule.name, err)
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key="communication_failure",
                translation_placeholders={"name": rule.name},
            ) from err

        if (self.data or {}).get(rule_uuid) != is_on:
            self.async_set_updated_data({**(self.data or {}), rule_uuid: is_on})
        return is_on

    async def async_set_rule(
        self,
        rule_uuid: str,
        is_on: bool,  # noqa: FBT001
        presenter: StatePresenter,
    ) -> None:
        """Drive a rule to the requested switch state."""
        rule = self._get_rule(rule_uuid)
        try:
            await self._service.async_set(rule, is_on, presenter)
        except OPNsenseError as err:
            LOGGER.error("Setting %s to %s failed: %s", rule.name, is_on, err)
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key="communication_failure",
                translation_placeholders={"name": rule.name},
            ) from err

        self.async_set_updated_data({**(self.data or {}), rule_uuid: is_on})


class OPNsenseGatewayCoordinator(DataUpdateCoordinator[dict[str, GatewayEntity]]):
    """
    Reconcile OPNsense gateways into binary sensors.

    Data maps gateway name to its tracked state. A failed cycle never raises;
    the tracked gateways are kept and marked faulted.
    """

    config_entry: OPNsenseConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        entry: OPNsenseConfigEntry,
        client: OPNsenseApiClient,
        settings: GatewaySettings,
    ) -> None:
        """Initialize the coordinator."""
        self.settings = settings
        self._reconciler = GatewayReconciler(client, include=settings.include)
        self.last_result: ReconcileResult | None = None

        super().__init__(
            hass,
            LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}_gateways",
            update_interval=timedelta(seconds=settings.poll_interval),
        )

    @property
    def sensor_kind(self) -> SensorKind:
        """Return how gateway reachability is presented."""
        return self.settings.sensor_kind

    def async_restore_from_registry(self) -> None:
        """Track gateways whose sensors were registered by a previous run."""
        entity_reg = er.async_get(self.hass)
        names = [
            name
            for entity_entry in er.async_entries_for_config_entry(
                entity_reg, self.config_entry.entry_id
            )
            if entity_entry.domain == Platform.BINARY_SENSOR
            and (
                name := gateway_name_from_unique_id(
                    self.config_entry, entity_entry.unique_id
                )
            )
        ]
        if names:
            LOGGER.debug("Restoring gateway sensors: %s", names)
            self._reconciler.restore(names)

    async def _async_update_data(self) -> dict[str, GatewayEntity]:
        """Run one reconciliation cycle."""
        result = await self._reconciler.async_reconcile()
        self.last_result = result

        if not result.success:
            LOGGER.warning("Gateway refresh failed: %s", result.error)
            return self._reconciler.tracked

        for name in result.added:
            LOGGER.info("Added gateway sensor for %s", name)
        for name in result.removed:
            self._async_remove_gateway(name)
            LOGGER.info("Removed gateway sensor for %s", name)

        tracked = self._reconciler.tracked
        for gateway in tracked.values():
            self._async_update_gateway_device(gateway)
            if gateway.delay is not None or gateway.loss is not None:
                LOGGER.debug(
                    "%s online=%s delay=%s loss=%s",
                    gateway.name,
                    gateway.online,
                    gateway.delay or "n/a",
                    gateway.loss or "n/a",
                )
        return tracked

    def _async_remove_gateway(self, name: str) -> None:
        """Remove the sensor and device of a gateway that disappeared."""
        entity_reg = er.async_get(self.hass)
        entity_id = entity_reg.async_get_entity_id(
            Platform.BINARY_SENSOR,
            DOMAIN,
            gateway_unique_id(self.config_entry, name),
        )
        if entity_id is not None:
            entity_reg.async_remove(entity_id)

        device_reg = dr.async_get(self.hass)
        device = device_reg.async_get_device(
            identifiers={gateway_device_identifier(self.config_entry, name)}
        )
        if device is not None:
            device_reg.async_update_device(
                device.id, remove_config_entry_id=self.config_entry.entry_id
            )

    def _async_update_gateway_device(self, gateway: GatewayEntity) -> None:
        """Keep the model and serial of a gateway device in line with its metadata."""
        device_reg = dr.async_get(self.hass)
        device = device_reg.async_get_device(
            identifiers={gateway_device_identifier(self.config_entry, gateway.name)}
        )
        if device is None:
            return
        model = gateway_model(gateway)
        serial_number = gateway_serial_number(gateway)
        if (
            device.manufacturer != MANUFACTURER
            or device.model != model
            or device.serial_number != serial_number
        ):
            device_reg.async_update_device(
                device.id,
                manufacturer=MANUFACTURER,
                model=model,
                serial_number=serial_number,
            )
