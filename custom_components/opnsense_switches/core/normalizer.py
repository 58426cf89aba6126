"""
Normalize OPNsense gateway records.

Gateway listings come in several shapes depending on the endpoint and the
firmware version. Reachability is decided by an ordered list of rules; the
first rule that recognizes a record wins, and a record nothing recognizes is
treated as online.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

type StatusRule = tuple[str, Callable[[Mapping[str, Any]], bool | None]]

NAME_FIELDS = ("name", "gateway", "devname", "tag", "description")

# Placeholder OPNsense uses for "no value"
EMPTY_MARKER = "~"

_ONLINE_STATUSES = frozenset({"none", "up"})
_OFFLINE_STATUSES = frozenset({"down", "alarm", "unreachable"})


def _field_text(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    return str(value).strip().lower()


def _from_translated_status(record: Mapping[str, Any]) -> bool | None:
    status = _field_text(record, "status_translated")
    if status == "online":
        return True
    if status == "offline":
        return False
    return None


def _from_raw_status(record: Mapping[str, Any]) -> bool | None:
    status = _field_text(record, "status")
    if status in _ONLINE_STATUSES:
        return True
    if status in _OFFLINE_STATUSES:
        return False
    return None


def _from_packet_loss(record: Mapping[str, Any]) -> bool | None:
    loss = record.get("loss")
    if loss is None:
        return None
    text = str(loss).replace("%", "").replace(EMPTY_MARKER, "").strip()
    try:
        return float(text) == 0
    except ValueError:
        return None


STATUS_RULES: tuple[StatusRule, ...] = (
    ("status_translated", _from_translated_status),
    ("status", _from_raw_status),
    ("loss", _from_packet_loss),
)


def is_online(record: Mapping[str, Any]) -> bool:
    """Return whether a gateway record describes a reachable gateway."""
    for _name, resolver in STATUS_RULES:
        online = resolver(record)
        if online is not None:
            return online
    # Absence of a negative signal counts as healthy
    return True


def extract_name(record: Mapping[str, Any]) -> str | None:
    """Return the first non-empty identifying field of a gateway record."""
    for key in NAME_FIELDS:
        value = record.get(key)
        if value:
            return str(value)
    return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    if not text or text == EMPTY_MARKER:
        return None
    return text


@dataclass(frozen=True)
class GatewayMetadata:
    """Descriptive fields of a gateway record."""

    ip_address: str | None = None
    monitor_target: str | None = None
    delay: str | None = None
    loss: str | None = None


def extract_metadata(record: Mapping[str, Any]) -> GatewayMetadata:
    """Return address, monitor target and latency metrics of a gateway record."""
    delay = record.get("delay")
    if delay is None:
        delay = record.get("rtt")
    return GatewayMetadata(
        ip_address=_optional_text(record.get("address")),
        monitor_target=_optional_text(record.get("monitor")),
        delay=_optional_text(delay),
        loss=_optional_text(record.get("loss")),
    )
