"""Engine — explicitly constructed handle wiring cache, storage, trust and startup."""

from __future__ import annotations

from typing import Callable

from communitree.cache.expiring import CacheTTL, ExpiringCache
from communitree.config import Config
from communitree.consistency.validator import ConsistencyValidator, ValidationReport
from communitree.reconcile.startup import InitResult, StartupReconciler
from communitree.remote import CachedRemote, RemoteSource
from communitree.seed import FreshDataSource, SeedGenerator
from communitree.storage.aggregates import AggregateRepository
from communitree.storage.durable import DurableStore
from communitree.storage.media import KeyValueMedium, MemoryMedium, SQLiteMedium
from communitree.trust.ledger import TrustAction, TrustLedger
from communitree.trust.service import AwardResult, TrustService
from communitree.types import AppState


def create_medium(config: Config) -> KeyValueMedium:
    if config.storage.backend == "memory":
        return MemoryMedium()
    config.ensure_dirs()
    return SQLiteMedium(config.db_path)


class Engine:
    """Owns one instance of every component. Nothing here is a module global."""

    def __init__(
        self,
        config: Config | None = None,
        medium: KeyValueMedium | None = None,
        fresh_source: FreshDataSource | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config or Config()

        self.medium = medium if medium is not None else create_medium(self.config)
        self.store = DurableStore(self.medium, prefix=self.config.storage.namespace_prefix)
        self.repository = AggregateRepository(self.store, self.config.storage)

        self.cache = ExpiringCache(self.config.cache, clock=clock)
        self.ttl = CacheTTL(self.config.cache)

        self.validator = ConsistencyValidator(self.config.trust)
        self.ledger = TrustLedger(self.config.trust)
        self.trust = TrustService(self.ledger, self.repository, self.cache)

        self.fresh_source = fresh_source or SeedGenerator(self.config.seed)
        self.reconciler = StartupReconciler(self.repository, self.fresh_source, self.validator)

    def initialize(self, persist: bool = False) -> InitResult:
        result = self.reconciler.initialize()
        if result.state.user is not None:
            self.ledger = TrustLedger(
                self.config.trust, self.repository.load_trust_history(result.state.user.id)
            )
            self.trust.ledger = self.ledger
        if persist:
            self.persist(result.state)
        return result

    def sync(self, state: AppState) -> AppState:
        return self.reconciler.sync(state)

    def validate(self, state: AppState, repair: bool = False) -> ValidationReport:
        report = self.validator.validate(state)
        if repair and not report.is_valid:
            self.validator.apply_fixes(report.issues, state)
        return report

    def award(self, state: AppState, action: TrustAction | str,
              related_entity_id: str | None = None) -> AwardResult:
        return self.trust.award(state, action, related_entity_id)

    def persist(self, state: AppState) -> bool:
        return self.repository.persist_app_state(state)

    def remote(self, source: RemoteSource) -> CachedRemote:
        return CachedRemote(source, self.cache, self.ttl)

    def reset(self) -> int:
        self.cache.clear()
        return self.repository.clear_all()

    def close(self) -> None:
        close = getattr(self.medium, "close", None)
        if callable(close):
            close()
