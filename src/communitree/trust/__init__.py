"""Trust points ledger and service."""

from communitree.trust.ledger import (
    TRUST_POINT_VALUES,
    TrustAction,
    TrustLedger,
    apply_action,
    clamp_score,
    delta,
    meets_threshold,
    resolve_action,
    should_warn,
    trust_level,
)
from communitree.trust.service import AwardResult, TrustService

__all__ = [
    "TRUST_POINT_VALUES",
    "AwardResult",
    "TrustAction",
    "TrustLedger",
    "TrustService",
    "apply_action",
    "clamp_score",
    "delta",
    "meets_threshold",
    "resolve_action",
    "should_warn",
    "trust_level",
]
