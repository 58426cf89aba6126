"""Config flow for OPNsense Switches."""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.const import CONF_API_KEY, CONF_HOST, CONF_NAME, CONF_VERIFY_SSL
from homeassistant.core import callback
from homeassistant.helpers import selector
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from slugify import slugify

from .api import OPNsenseApiClient, create_ssl_context
from .const import (
    CONF_API_SECRET,
    CONF_CA_PATH,
    DEFAULT_GATEWAYS,
    DEFAULT_NAME,
    DEFAULT_SETTINGS,
    DOMAIN,
    LOGGER,
    OPT_GATEWAYS,
    OPT_RULES,
    OPT_SETTINGS,
    RULE_INVERT,
    RULE_NAME,
    RULE_UUID,
    UI_GATEWAY_POLL_INTERVAL,
    UI_POLL_INTERVAL,
    UI_REQUEST_TIMEOUT,
    UI_STATUS_TTL,
    SensorKind,
    StatusMethod,
)
from .core.errors import ClientError, OPNsenseError

AUTH_FAILURE_STATUSES = (401, 403)


async def _async_validate_connection(
    client: OPNsenseApiClient,
) -> str | None:
    """Return an error key if the appliance rejects a rule search."""
    try:
        await client.async_search_rules("")
    except ClientError as err:
        if err.status in AUTH_FAILURE_STATUSES:
            return "invalid_auth"
        LOGGER.debug("Connection check failed: %s", err)
        return "cannot_connect"
    except OPNsenseError as err:
        LOGGER.debug("Connection check failed: %s", err)
        return "cannot_connect"
    except Exception:  # noqa: BLE001
        LOGGER.exception("Unexpected error while validating connection")
        return "unknown"
    return None


class OPNsenseSwitchesFlowHandler(config_entries.ConfigFlow, domain=DOMAIN):
    """Config flow for OPNsense Switches."""

    VERSION = 1

    async def async_step_user(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Handle a flow initialized by the user."""
        errors: dict[str, str] = {}

        if user_input is not None:
            host = user_input[CONF_HOST].strip().rstrip("/")
            host = host.removeprefix("https://").removeprefix("http://")

            await self.async_set_unique_id(slugify(host))
            self._abort_if_unique_id_configured()

            verify_ssl = user_input.get(CONF_VERIFY_SSL, False)
            ca_path = (user_input.get(CONF_CA_PATH) or "").strip()
            ssl_context = None
            if verify_ssl and ca_path:
                try:
                    ssl_context = await self.hass.async_add_executor_job(
                        create_ssl_context, ca_path
                    )
                except OSError as err:
                    LOGGER.debug("Loading CA bundle %s failed: %s", ca_path, err)
                    errors[CONF_CA_PATH] = "invalid_ca"

            if not errors:
                client = OPNsenseApiClient(
                    session=async_get_clientsession(self.hass, verify_ssl=verify_ssl),
                    host=host,
                    api_key=user_input[CONF_API_KEY],
                    api_secret=user_input[CONF_API_SECRET],
                    request_timeout=DEFAULT_SETTINGS["request_timeout"],
                    ssl_context=ssl_context,
                )
                if error := await _async_validate_connection(client):
                    errors["base"] = error

            if not errors:
                LOGGER.debug("Creating OPNsense Switches entry for %s", host)
                name = user_input.get(CONF_NAME) or DEFAULT_NAME
                return self.async_create_entry(
                    title=name,
                    data={
                        CONF_NAME: name,
                        CONF_HOST: host,
                        CONF_API_KEY: user_input[CONF_API_KEY],
                        CONF_API_SECRET: user_input[CONF_API_SECRET],
                        CONF_VERIFY_SSL: verify_ssl,
                        CONF_CA_PATH: ca_path,
                    },
                    options={
                        OPT_RULES: [],
                        OPT_SETTINGS: dict(DEFAULT_SETTINGS),
                        OPT_GATEWAYS: dict(DEFAULT_GATEWAYS),
                    },
                )

        defaults = user_input or {}
        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_NAME, default=defaults.get(CONF_NAME, DEFAULT_NAME)
                    ): selector.TextSelector(),
                    vol.Required(
                        CONF_HOST, default=defaults.get(CONF_HOST, "")
                    ): selector.TextSelector(),
                    vol.Required(CONF_API_KEY): selector.TextSelector(),
                    vol.Required(CONF_API_SECRET): selector.TextSelector(
                        selector.TextSelectorConfig(
                            type=selector.TextSelectorType.PASSWORD
                        )
                    ),
                    vol.Optional(
                        CONF_VERIFY_SSL, default=defaults.get(CONF_VERIFY_SSL, False)
                    ): selector.BooleanSelector(),
                    vol.Optional(
                        CONF_CA_PATH, default=defaults.get(CONF_CA_PATH, "")
                    ): selector.TextSelector(),
                }
            ),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,  # noqa: ARG004
    ) -> OPNsenseSwitchesOptionsFlowHandler:
        """Get the options flow for this handler."""
        return OPNsenseSwitchesOptionsFlowHandler()


class OPNsenseSwitchesOptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options flow for OPNsense Switches."""

    def __init__(self) -> None:
        """Initialize options flow."""
        self._rule_to_edit: str | None = None

    async def async_step_init(
        self,
        _user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Manage options."""
        return self.async_show_menu(
            step_id="init",
            menu_options=["add_rule", "manage_rules", "settings", "gateways"],
        )

    async def async_step_add_rule(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Add a switch for a firewall rule."""
        errors: dict[str, str] = {}

        if user_input is not None:
            rule_uuid = user_input[RULE_UUID].strip()
            rules = list(self.config_entry.options.get(OPT_RULES, []))
            if any(r[RULE_UUID] == rule_uuid for r in rules):
                errors[RULE_UUID] = "rule_exists"
            else:
                rules.append(
                    {
                        RULE_UUID: rule_uuid,
                        RULE_NAME: user_input[RULE_NAME],
                        RULE_INVERT: user_input.get(RULE_INVERT, False),
                    }
                )
                return self.async_create_entry(
                    title="",
                    data={
                        **self.config_entry.options,
                        OPT_RULES: rules,
                    },
                )

        return self.async_show_form(
            step_id="add_rule",
            data_schema=vol.Schema(
                {
                    vol.Required(RULE_UUID): selector.TextSelector(),
                    vol.Required(RULE_NAME): selector.TextSelector(),
                    vol.Optional(RULE_INVERT, default=False): selector.BooleanSelector(),
                }
            ),
            errors=errors,
        )

    async def async_step_manage_rules(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Manage existing rule switches."""
        rules = self.config_entry.options.get(OPT_RULES, [])

        if not rules:
            return self.async_abort(reason="no_rules")

        if user_input is not None:
            selected_rule = user_input.get("rule")
            action = user_input.get("action")

            if action == "delete":
                rules = [r for r in rules if r[RULE_UUID] != selected_rule]
                return self.async_create_entry(
                    title="",
                    data={
                        **self.config_entry.options,
                        OPT_RULES: rules,
                    },
                )
            if action == "edit":
                self._rule_to_edit = selected_rule
                return await self.async_step_edit_rule()

        rule_options = [
            selector.SelectOptionDict(value=r[RULE_UUID], label=r[RULE_NAME])
            for r in rules
        ]

        return self.async_show_form(
            step_id="manage_rules",
            data_schema=vol.Schema(
                {
                    vol.Required("rule"): selector.SelectSelector(
                        selector.SelectSelectorConfig(options=rule_options)
                    ),
                    vol.Required("action"): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=[
                                selector.SelectOptionDict(value="edit", label="Edit"),
                                selector.SelectOptionDict(
                                    value="delete", label="Delete"
                                ),
                            ]
                        )
                    ),
                }
            ),
        )

    async def async_step_edit_rule(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Edit the name or inversion of a rule switch."""
        rules = [dict(r) for r in self.config_entry.options.get(OPT_RULES, [])]
        rule = next((r for r in rules if r[RULE_UUID] == self._rule_to_edit), None)

        if rule is None:
            return self.async_abort(reason="rule_not_found")

        if user_input is not None:
            rule[RULE_NAME] = user_input[RULE_NAME]
            rule[RULE_INVERT] = user_input.get(RULE_INVERT, False)
            return self.async_create_entry(
                title="",
                data={
                    **self.config_entry.options,
                    OPT_RULES: rules,
                },
            )

        return self.async_show_form(
            step_id="edit_rule",
            data_schema=vol.Schema(
                {
                    vol.Required(RULE_NAME, default=rule[RULE_NAME]): (
                        selector.TextSelector()
                    ),
                    vol.Optional(
                        RULE_INVERT, default=rule.get(RULE_INVERT, False)
                    ): selector.BooleanSelector(),
                }
            ),
            description_placeholders={"rule_uuid": rule[RULE_UUID]},
        )

    async def async_step_settings(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Configure how rule state is read and written."""
        settings = self.config_entry.options.get(OPT_SETTINGS, DEFAULT_SETTINGS)

        if user_input is not None:
            new_settings = {
                "status_method": user_input["status_method"],
                "apply_after_toggle": user_input["apply_after_toggle"],
                "request_timeout": int(user_input["request_timeout"]),
                "status_ttl": float(user_input["status_ttl"]),
                "poll_interval": int(user_input["poll_interval"]),
            }
            return self.async_create_entry(
                title="",
                data={
                    **self.config_entry.options,
                    OPT_SETTINGS: new_settings,
                },
            )

        return self.async_show_form(
            step_id="settings",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        "status_method",
                        default=settings.get(
                            "status_method", DEFAULT_SETTINGS["status_method"]
                        ),
                    ): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=[
                                selector.SelectOptionDict(
                                    value=StatusMethod.GET_RULE, label="getRule"
                                ),
                                selector.SelectOptionDict(
                                    value=StatusMethod.SEARCH_RULE, label="searchRule"
                                ),
                            ]
                        )
                    ),
                    vol.Required(
                        "apply_after_toggle",
                        default=settings.get(
                            "apply_after_toggle", DEFAULT_SETTINGS["apply_after_toggle"]
                        ),
                    ): selector.BooleanSelector(),
                    vol.Required(
                        "request_timeout",
                        default=settings.get(
                            "request_timeout", DEFAULT_SETTINGS["request_timeout"]
                        ),
                    ): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            **UI_REQUEST_TIMEOUT, unit_of_measurement="s"
                        )
                    ),
                    vol.Required(
                        "status_ttl",
                        default=settings.get(
                            "status_ttl", DEFAULT_SETTINGS["status_ttl"]
                        ),
                    ): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            **UI_STATUS_TTL,
                            unit_of_measurement="s",
                            mode=selector.NumberSelectorMode.BOX,
                        )
                    ),
                    vol.Required(
                        "poll_interval",
                        default=settings.get(
                            "poll_interval", DEFAULT_SETTINGS["poll_interval"]
                        ),
                    ): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            **UI_POLL_INTERVAL, unit_of_measurement="s"
                        )
                    ),
                }
            ),
        )

    async def async_step_gateways(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> config_entries.ConfigFlowResult:
        """Configure gateway sensors."""
        gateways = self.config_entry.options.get(OPT_GATEWAYS, DEFAULT_GATEWAYS)

        if user_input is not None:
            new_gateways = {
                "enabled": user_input["enabled"],
                "poll_interval": int(user_input["poll_interval"]),
                "sensor_kind": user_input["sensor_kind"],
                "include": [
                    name.strip()
                    for name in user_input.get("include", [])
                    if name.strip()
                ],
            }
            return self.async_create_entry(
                title="",
                data={
                    **self.config_entry.options,
                    OPT_GATEWAYS: new_gateways,
                },
            )

        return self.async_show_form(
            step_id="gateways",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        "enabled",
                        default=gateways.get("enabled", DEFAULT_GATEWAYS["enabled"]),
                    ): selector.BooleanSelector(),
                    vol.Required(
                        "poll_interval",
                        default=gateways.get(
                            "poll_interval", DEFAULT_GATEWAYS["poll_interval"]
                        ),
                    ): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            **UI_GATEWAY_POLL_INTERVAL, unit_of_measurement="s"
                        )
                    ),
                    vol.Required(
                        "sensor_kind",
                        default=gateways.get(
                            "sensor_kind", DEFAULT_GATEWAYS["sensor_kind"]
                        ),
                    ): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=[
                                selector.SelectOptionDict(
                                    value=SensorKind.OCCUPANCY, label="Occupancy"
                                ),
                                selector.SelectOptionDict(
                                    value=SensorKind.CONTACT, label="Contact"
                                ),
                            ]
                        )
                    ),
                    vol.Optional(
                        "include", default=gateways.get("include", [])
                    ): selector.TextSelector(
                        selector.TextSelectorConfig(multiple=True)
                    ),
                }
            ),
        )
