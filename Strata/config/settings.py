"""Centralized configuration for Strata.

Supports environment variables (optionally from a ``.env`` file), JSON
config files, and programmatic overrides.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger("STRATA.Config")


DEFAULT_SKIP_EXTENSIONS = [
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".pyc", ".pyo", ".tar", ".tgz", ".gz",
]


@dataclass
class ApiConfig:
    """Transport configuration."""
    host: str = "http://localhost:8000"
    base: str = "/api/v1"
    token: Optional[str] = None
    timeout_s: Optional[float] = None
    max_retries: int = 1
    user_cache_enabled: bool = True

    @property
    def url(self) -> str:
        return self.host.rstrip("/") + self.base


@dataclass
class IngestConfig:
    """Dataset content-ingestion configuration."""
    break_pattern: str = "\n"
    token_pattern: str = r"[^a-zA-Z0-9_]+"
    skip_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_SKIP_EXTENSIONS))
    max_archive_depth: int = 1  # 1 = only archives uploaded directly are expanded
    reuse_cached_content: bool = True


@dataclass
class CacheConfig:
    """On-disk content cache configuration."""
    enabled: bool = False
    directory: str = ".strata_cache"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    format: str = "standard"  # standard | json
    file_path: Optional[str] = None
    file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class StrataConfig:
    """Master configuration."""
    api: ApiConfig = field(default_factory=ApiConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: str) -> None:
        """Save config to JSON file."""
        try:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Config saved to {path}")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    @classmethod
    def load(cls, path: str) -> StrataConfig:
        """Load config from JSON file, falling back to defaults."""
        if not os.path.exists(path):
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls()
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config: {e}, using defaults")
            return cls()

        config = cls()
        for key, value in data.items():
            if hasattr(config, key) and isinstance(value, dict):
                setattr(config, key, cls._update_dataclass(getattr(config, key), value))

        logger.info(f"Config loaded from {path}")
        return config

    @staticmethod
    def _update_dataclass(obj: Any, data: Dict[str, Any]) -> Any:
        """Recursively update dataclass from dict."""
        for key, value in data.items():
            if hasattr(obj, key):
                current = getattr(obj, key)
                if hasattr(current, "__dataclass_fields__") and isinstance(value, dict):
                    setattr(obj, key, StrataConfig._update_dataclass(current, value))
                else:
                    setattr(obj, key, value)
        return obj

    @classmethod
    def from_env(cls, base: Optional[StrataConfig] = None) -> StrataConfig:
        """Apply ``STRATA_*`` environment variables on top of ``base``."""
        config = base or cls()

        def safe_int(key: str) -> Optional[int]:
            val = os.getenv(key)
            if val is not None:
                try:
                    return int(val)
                except ValueError:
                    logger.warning(f"Invalid int for {key}={val}, ignoring")
            return None

        def safe_float(key: str) -> Optional[float]:
            val = os.getenv(key)
            if val is not None:
                try:
                    return float(val)
                except ValueError:
                    logger.warning(f"Invalid float for {key}={val}, ignoring")
            return None

        def safe_bool(key: str, default: bool) -> bool:
            val = os.getenv(key)
            if val is not None:
                return val.lower() in ("1", "true", "yes", "on")
            return default

        def safe_str(key: str) -> Optional[str]:
            return os.getenv(key)

        # Transport
        if (host := safe_str("STRATA_API_HOST")) is not None:
            config.api.host = host
        if (base_path := safe_str("STRATA_API_BASE")) is not None:
            config.api.base = base_path
        if (token := safe_str("STRATA_API_TOKEN")) is not None:
            config.api.token = token
        if (timeout := safe_float("STRATA_API_TIMEOUT")) is not None:
            config.api.timeout_s = timeout
        if (retries := safe_int("STRATA_API_MAX_RETRIES")) is not None:
            config.api.max_retries = retries

        # Ingestion
        if (breaker := safe_str("STRATA_INGEST_BREAK")) is not None:
            config.ingest.break_pattern = breaker.encode().decode("unicode_escape")
        if (depth := safe_int("STRATA_INGEST_ARCHIVE_DEPTH")) is not None:
            config.ingest.max_archive_depth = depth
        config.ingest.reuse_cached_content = safe_bool(
            "STRATA_INGEST_REUSE_CONTENT", config.ingest.reuse_cached_content
        )

        # Cache
        config.cache.enabled = safe_bool("STRATA_CACHE_ENABLED", config.cache.enabled)
        if (directory := safe_str("STRATA_CACHE_DIR")) is not None:
            config.cache.directory = directory

        # Logging
        if (level := safe_str("STRATA_LOG_LEVEL")) is not None:
            config.logging.level = level
        if (fmt := safe_str("STRATA_LOG_FORMAT")) is not None:
            config.logging.format = fmt
        if (filepath := safe_str("STRATA_LOG_FILE")) is not None:
            config.logging.file_path = filepath

        return config


def get_config(config_path: Optional[str] = None, use_env: bool = True) -> StrataConfig:
    """Get Strata configuration.

    Priority: env vars > config file > defaults
    """
    config = StrataConfig()

    if config_path and os.path.exists(config_path):
        config = StrataConfig.load(config_path)

    if use_env:
        load_dotenv()
        config = StrataConfig.from_env(config)

    return config


__all__ = [
    "StrataConfig",
    "ApiConfig",
    "IngestConfig",
    "CacheConfig",
    "LoggingConfig",
    "DEFAULT_SKIP_EXTENSIONS",
    "get_config",
]
