"""CommuniTree engine configuration."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field


def _default_data_dir() -> Path:
    return Path(os.environ.get("COMMUNITREE_DATA_DIR", Path.home() / ".communitree"))


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


class CacheConfig(BaseModel):
    # TTLs in seconds
    default_ttl: float = 5 * 60.0
    short_ttl: float = 60.0
    medium_ttl: float = 5 * 60.0
    long_ttl: float = 15 * 60.0
    very_long_ttl: float = 60 * 60.0
    max_entries: int = 0  # 0 = unbounded, lazy expiry only


class StorageConfig(BaseModel):
    namespace_prefix: str = "communitree_"
    max_stored_threads: int = Field(
        default_factory=lambda: _env_int("COMMUNITREE_MAX_STORED_THREADS", 50)
    )
    chat_retention_days: int = 30
    backend: str = Field(
        default_factory=lambda: os.environ.get("COMMUNITREE_STORAGE_BACKEND", "sqlite")
    )  # sqlite | memory


class TrustConfig(BaseModel):
    min_points: int = 0
    max_points: int = 100
    rsvp_threshold: int = 20
    warning_threshold: int = 20


class SeedConfig(BaseModel):
    random_seed: int = Field(default_factory=lambda: _env_int("COMMUNITREE_SEED", 2024))


class LoggingConfig(BaseModel):
    level: str = Field(default_factory=lambda: os.environ.get("COMMUNITREE_LOG_LEVEL", "WARNING"))
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Config(BaseModel):
    data_dir: Path = Field(default_factory=_default_data_dir)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    trust: TrustConfig = Field(default_factory=TrustConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def db_path(self) -> Path:
        return self.data_dir / "db" / "communitree.db"

    def ensure_dirs(self) -> None:
        for d in [self.data_dir, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)
