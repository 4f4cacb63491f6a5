"""CommuniTree state engine — cache, durable aggregates, reconciliation, trust points."""

__version__ = "0.1.0"

from communitree.cache import CacheKeys, CacheTTL, ExpiringCache
from communitree.config import Config
from communitree.consistency import ConsistencyValidator
from communitree.engine import Engine
from communitree.reconcile import InitResult, StartupReconciler
from communitree.storage import AggregateRepository, DurableStore
from communitree.trust import TrustAction, TrustLedger, TrustService

__all__ = [
    "__version__",
    "AggregateRepository",
    "CacheKeys",
    "CacheTTL",
    "Config",
    "ConsistencyValidator",
    "DurableStore",
    "Engine",
    "ExpiringCache",
    "InitResult",
    "StartupReconciler",
    "TrustAction",
    "TrustLedger",
    "TrustService",
]
