"""State synchronization and reconciliation engine for OPNsense Switches."""

from .cache import StatusCache
from .coalescer import RequestCoalescer
from .errors import (
    ClientError,
    OPNsenseError,
    ReconciliationFetchError,
    RuleNotFoundError,
    RuleParseError,
    ServerError,
    TransportError,
)
from .normalizer import extract_metadata, extract_name, is_online
from .reconciler import (
    GatewayEntity,
    GatewayReconciler,
    ReconcileResult,
    gateway_key,
)
from .retry import RetryExecutor, is_retriable
from .rule_state import (
    RuleConfig,
    RuleStateService,
    StatePresenter,
    parse_rule_enabled,
    parse_search_enabled,
)

__all__ = [
    "ClientError",
    "GatewayEntity",
    "GatewayReconciler",
    "OPNsenseError",
    "ReconcileResult",
    "ReconciliationFetchError",
    "RequestCoalescer",
    "RetryExecutor",
    "RuleConfig",
    "RuleNotFoundError",
    "RuleParseError",
    "RuleStateService",
    "ServerError",
    "StatePresenter",
    "StatusCache",
    "TransportError",
    "extract_metadata",
    "extract_name",
    "gateway_key",
    "is_online",
    "is_retriable",
    "parse_rule_enabled",
    "parse_search_enabled",
]
