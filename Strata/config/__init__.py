from .settings import (
    StrataConfig,
    ApiConfig,
    IngestConfig,
    CacheConfig,
    LoggingConfig,
    get_config,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "StrataConfig",
    "ApiConfig",
    "IngestConfig",
    "CacheConfig",
    "LoggingConfig",
    "get_config",
    "setup_logging",
    "get_logger",
]
