"""Error taxonomy for the OPNsense state engine."""

from __future__ import annotations


class OPNsenseError(Exception):
    """Base class for all errors raised while talking to OPNsense."""


class TransportError(OPNsenseError):
    """No response was received (connection failure, reset or timeout)."""


class _HttpStatusError(OPNsenseError):
    """An HTTP response was received with a failing status code."""

    def __init__(self, status: int, reason: str | None = None) -> None:
        """Initialize the error with the response status."""
        self.status = status
        self.reason = reason or ""
        super().__init__(f"HTTP {status} {self.reason}".rstrip())


class ServerError(_HttpStatusError):
    """The appliance answered with a 5xx status."""


class ClientError(_HttpStatusError):
    """The request was rejected (4xx) or the answer could not be used."""


class RuleNotFoundError(ClientError):
    """The rule UUID is missing from the search results."""

    def __init__(self, rule_uuid: str) -> None:
        """Initialize the error for the missing rule."""
        super().__init__(404, "Rule UUID not found in search results")
        self.rule_uuid = rule_uuid


class RuleParseError(ClientError):
    """The rule's enabled field holds an unrecognized value."""

    def __init__(self, value: object) -> None:
        """Initialize the error with the offending value."""
        super().__init__(422, f"Could not parse rule.enabled: {value!r}")
        self.value = value


class ReconciliationFetchError(OPNsenseError):
    """Every gateway listing endpoint failed during one reconciliation cycle."""
