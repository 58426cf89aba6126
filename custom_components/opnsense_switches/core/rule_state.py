"""
Read and write the enabled state of OPNsense firewall rules.

The service answers "is this rule enabled?" through a short TTL cache and a
request coalescer, and performs read-compare-toggle writes with an optimistic
presentation update that is rolled back when the remote call fails.

All values stored in the cache are the raw enabled flags reported by the
appliance; the per-rule invert option is applied only when a value crosses
the read/write boundary.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from custom_components.opnsense_switches.const import LOGGER, StatusMethod

from .coalescer import RequestCoalescer
from .errors import OPNsenseError, RuleNotFoundError, RuleParseError
from .retry import RetryExecutor

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .cache import StatusCache

_ENABLED_TOKENS = ("1", 1)  # True compares equal to 1
_DISABLED_TOKENS = ("0", 0)  # False compares equal to 0


class RuleApi(Protocol):
    """Remote rule operations the service depends on."""

    async def async_get_rule(self, rule_uuid: str) -> dict[str, Any]:
        """Return the getRule payload."""

    async def async_search_rules(self, search_phrase: str) -> dict[str, Any]:
        """Return the searchRule payload."""

    async def async_toggle_rule(self, rule_uuid: str) -> Any:
        """Flip the enabled flag of a rule."""

    async def async_apply(self) -> Any:
        """Apply pending filter changes."""


class StatePresenter(Protocol):
    """Presentation capability used for optimistic updates and rollback."""

    def present(self, key: str, value: bool | None) -> None:
        """Show value for key to the user (None shows an unknown state)."""

    def last_observed(self, key: str) -> bool | None:
        """Return the value currently shown for key."""


@dataclass(frozen=True)
class RuleConfig:
    """A configured rule switch."""

    rule_uuid: str
    name: str
    invert: bool = False
    status_method: StatusMethod = StatusMethod.GET_RULE
    apply_after_toggle: bool = False

    def to_raw(self, requested: bool) -> bool:  # noqa: FBT001
        """Translate a requested switch state into the rule's enabled flag."""
        return not requested if self.invert else requested

    def from_raw(self, raw_enabled: bool) -> bool:  # noqa: FBT001
        """Translate the rule's enabled flag into the switch state."""
        return not raw_enabled if self.invert else raw_enabled


def _is_enabled_token(value: Any) -> bool:
    return isinstance(value, str | int | float) and value in _ENABLED_TOKENS


def parse_rule_enabled(payload: Mapping[str, Any]) -> bool:
    """
    Parse the enabled flag of a getRule payload.

    A missing field means disabled. Values other than "1"/1/true or
    "0"/0/false raise RuleParseError.
    """
    rule = payload.get("rule")
    if not isinstance(rule, dict) or "enabled" not in rule:
        return False
    value = rule["enabled"]
    if _is_enabled_token(value):
        return True
    if isinstance(value, str | int | float) and value in _DISABLED_TOKENS:
        return False
    raise RuleParseError(value)


def parse_search_enabled(payload: Mapping[str, Any], rule_uuid: str) -> bool:
    """
    Find a rule in a searchRule payload and return its enabled flag.

    Only "1"/1/true count as enabled; every other value, including a missing
    field, reads as disabled.
    """
    rows = payload.get("rows") or []
    match = next(
        (row for row in rows if isinstance(row, dict) and row.get("uuid") == rule_uuid),
        None,
    )
    if match is None:
        raise RuleNotFoundError(rule_uuid)
    return _is_enabled_token(match.get("enabled"))


class RuleStateService:
    """Cache-backed, coalesced and retried access to rule enabled flags."""

    def __init__(
        self,
        api: RuleApi,
        cache: StatusCache,
        *,
        coalescer: RequestCoalescer | None = None,
        retry: RetryExecutor | None = None,
    ) -> None:
        """Initialize the service."""
        self._api = api
        self._cache = cache
        self._coalescer = coalescer or RequestCoalescer()
        self._retry = retry or RetryExecutor()
        self._write_locks: dict[str, asyncio.Lock] = {}

    @property
    def cache(self) -> StatusCache:
        """Return the status cache."""
        return self._cache

    async def async_read(self, rule: RuleConfig) -> bool:
        """Return the switch state, served from cache while it is fresh."""
        cached = self._cache.get_fresh(rule.rule_uuid)
        if cached is not None:
            return rule.from_raw(cached)
        return await self.async_refresh(rule)

    async def async_refresh(self, rule: RuleConfig) -> bool:
        """Fetch the switch state from the appliance and cache it."""
        raw_enabled = await self.async_fetch_enabled(
            rule.rule_uuid, rule.status_method
        )
        self._cache.put(rule.rule_uuid, raw_enabled)
        return rule.from_raw(raw_enabled)

    async def async_fetch_enabled(
        self, rule_uuid: str, status_method: StatusMethod
    ) -> bool:
        """Return the raw enabled flag, joining any read already in flight."""
        return await self._coalescer.run(
            rule_uuid, lambda: self._fetch_enabled(rule_uuid, status_method)
        )

    async def _fetch_enabled(self, rule_uuid: str, status_method: StatusMethod) -> bool:
        if status_method == StatusMethod.GET_RULE:
            try:
                payload = await self._retry.run(
                    lambda: self._api.async_get_rule(rule_uuid)
                )
                return parse_rule_enabled(payload)
            except OPNsenseError as err:
                LOGGER.warning(
                    "getRule failed for %s; falling back to searchRule: %s",
                    rule_uuid,
                    err,
                )

        payload = await self._retry.run(lambda: self._api.async_search_rules(rule_uuid))
        return parse_search_enabled(payload, rule_uuid)

    async def async_set(
        self,
        rule: RuleConfig,
        requested: bool,  # noqa: FBT001
        presenter: StatePresenter,
    ) -> bool:
        """
        Drive the rule to the requested switch state.

        Returns False when the rule already had the target state (no remote
        mutation) and True after a successful toggle. When the toggle or the
        apply call fails or is cancelled, the presenter is restored to the
        value it showed before the optimistic update and the original error
        is re-raised.
        """
        lock = self._write_locks.setdefault(rule.rule_uuid, asyncio.Lock())
        async with lock:
            target_raw = rule.to_raw(requested)
            # Never decide a write on cached data
            current_raw = await self.async_fetch_enabled(
                rule.rule_uuid, rule.status_method
            )
            if current_raw == target_raw:
                self._cache.put(rule.rule_uuid, current_raw)
                LOGGER.debug("%s: no change needed", rule.name)
                return False

            previous = presenter.last_observed(rule.rule_uuid)
            presenter.present(rule.rule_uuid, requested)
            try:
                await self._retry.run(lambda: self._api.async_toggle_rule(rule.rule_uuid))
                if rule.apply_after_toggle:
                    await self._retry.run(self._api.async_apply)
            except BaseException:
                # Cancellation included: nothing backs the optimistic value
                presenter.present(rule.rule_uuid, previous)
                raise

            self._cache.put(rule.rule_uuid, target_raw)
            LOGGER.info("%s: rule enabled=%s", rule.name, target_raw)
            return True
