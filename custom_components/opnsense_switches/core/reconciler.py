"""
Reconcile the OPNsense gateway listing against the tracked sensor set.

Each cycle fetches the gateway listing, upserts one tracked entity per gateway
name and prunes names that disappeared. A cycle whose fetch fails entirely
never prunes anything; tracked entities are marked faulted instead so a
transient outage does not make sensors vanish.

The reconciler performs no logging. It reports what happened through a
ReconcileResult for the integration layer to handle.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Protocol

from .errors import OPNsenseError, ReconciliationFetchError
from .normalizer import extract_metadata, extract_name, is_online
from .retry import RetryExecutor

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

PRIMARY_ROW_KEYS = ("items", "rows", "data", "gateways")
FALLBACK_ROW_KEYS = ("rows", "data")


class GatewayApi(Protocol):
    """Remote gateway listing operations the reconciler depends on."""

    async def async_get_gateway_status(self) -> Any:
        """Return the live gateway status payload."""

    async def async_search_gateways(self) -> Any:
        """Return the configured gateway listing payload."""


@dataclass
class GatewayEntity:
    """A tracked gateway and its last known state."""

    name: str
    online: bool = True
    ip_address: str | None = None
    monitor_target: str | None = None
    delay: str | None = None
    loss: str | None = None
    faulted: bool = False


@dataclass
class ReconcileResult:
    """Lifecycle events produced by one reconciliation cycle."""

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    faulted: list[str] = field(default_factory=list)
    error: OPNsenseError | None = None

    @property
    def success(self) -> bool:
        """Return True if the gateway listing was fetched."""
        return self.error is None


def rows_from_payload(payload: Any, keys: Iterable[str]) -> list[Any]:
    """Return the gateway rows of a listing payload."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in keys:
        rows = payload.get(key)
        if rows:
            return rows if isinstance(rows, list) else []
    return []


def gateway_key(name: str) -> str:
    """Return the identity key for a gateway name."""
    return f"gateway_{name}"


class GatewayReconciler:
    """Diff the remote gateway listing against the tracked gateway set."""

    def __init__(
        self,
        api: GatewayApi,
        *,
        include: Iterable[str] | None = None,
        retry: RetryExecutor | None = None,
    ) -> None:
        """Initialize the reconciler."""
        self._api = api
        self._include = frozenset(include) if include else None
        self._retry = retry or RetryExecutor()
        self._tracked: dict[str, GatewayEntity] = {}

    @property
    def tracked(self) -> Mapping[str, GatewayEntity]:
        """Return a snapshot of the tracked gateways by name."""
        return {name: replace(entity) for name, entity in self._tracked.items()}

    def restore(self, names: Iterable[str]) -> None:
        """Seed the tracked set with gateways known from a previous run."""
        for name in names:
            self._tracked.setdefault(name, GatewayEntity(name=name))

    async def async_fetch_rows(self) -> list[Any]:
        """
        Fetch gateway rows from the status endpoint or the settings fallback.

        The fallback is used when the status endpoint fails or lists nothing.
        Raises ReconciliationFetchError when both endpoints fail, or when the
        status endpoint failed and the fallback lists nothing, since an empty
        listing cannot be trusted to mean every gateway is gone.
        """
        primary_error: OPNsenseError | None = None
        try:
            payload = await self._retry.run(self._api.async_get_gateway_status)
            rows = rows_from_payload(payload, PRIMARY_ROW_KEYS)
        except OPNsenseError as err:
            primary_error = err
            rows = []
        if rows:
            return rows

        try:
            payload = await self._retry.run(self._api.async_search_gateways)
        except OPNsenseError as err:
            msg = f"Unexpected gateway response: {err}"
            raise ReconciliationFetchError(msg) from err
        rows = rows_from_payload(payload, FALLBACK_ROW_KEYS)
        if not rows and primary_error is not None:
            msg = f"Gateway status unavailable: {primary_error}"
            raise ReconciliationFetchError(msg) from primary_error
        return rows

    async def async_reconcile(self) -> ReconcileResult:
        """Run one reconciliation cycle."""
        result = ReconcileResult()
        try:
            rows = await self.async_fetch_rows()
        except ReconciliationFetchError as err:
            for name, entity in self._tracked.items():
                entity.faulted = True
                result.faulted.append(name)
            result.error = err
            return result

        seen: set[str] = set()
        for row in rows:
            if not isinstance(row, dict):
                continue
            name = extract_name(row)
            if not name:
                continue
            if self._include is not None and name not in self._include:
                continue
            self._upsert(name, row, seen=seen, result=result)

        for name in list(self._tracked):
            if name not in seen:
                del self._tracked[name]
                result.removed.append(name)
        return result

    def _upsert(
        self,
        name: str,
        row: dict[str, Any],
        *,
        seen: set[str],
        result: ReconcileResult,
    ) -> None:
        metadata = extract_metadata(row)
        entity = self._tracked.get(name)
        if entity is None:
            entity = GatewayEntity(name=name)
            self._tracked[name] = entity
            result.added.append(name)
        elif name not in seen:
            result.updated.append(name)

        seen.add(name)
        entity.online = is_online(row)
        entity.ip_address = metadata.ip_address
        entity.monitor_target = metadata.monitor_target
        entity.delay = metadata.delay
        entity.loss = metadata.loss
        entity.faulted = False
