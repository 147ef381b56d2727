"""Core layer providing the infrastructure for feedbrotr services.

Sits in the middle of the diamond DAG: depends only on ``feedbrotr.models``
and is depended upon by ``feedbrotr.services``.

Attributes:
    Pool: Async PostgreSQL connection pool with retry/backoff.
        See [Pool][feedbrotr.core.pool.Pool].
    Brotr: Persistence gateway wrapping the ingestion stored procedures.
        Services use [Brotr][feedbrotr.core.brotr.Brotr], never
        [Pool][feedbrotr.core.pool.Pool] directly.
    BaseService: Abstract generic base class with lifecycle management,
        factory methods and Prometheus metrics integration.
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus HTTP endpoint for metrics exposition.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.

Examples:
    ```python
    from feedbrotr.core import Brotr

    brotr = Brotr.from_yaml("config/brotr.yaml")
    async with brotr:
        await brotr.insert_message(envelope)
    ```
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .brotr import Brotr, BrotrConfig, BrotrTimeoutsConfig
from .exceptions import (
    ConfigurationError,
    ConnectionPoolError,
    DatabaseError,
    DecodeError,
    FeedBrotrError,
    MediaConflictError,
    MediaError,
    MediaFetchError,
    MediaFormatError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .metrics import (
    CYCLE_DURATION_SECONDS,
    MEDIA_ARCHIVE_TOTAL,
    MEDIA_IN_FLIGHT,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .pool import (
    DatabaseConfig,
    Pool,
    PoolConfig,
    PoolLimitsConfig,
    PoolRetryConfig,
)
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "MEDIA_ARCHIVE_TOTAL",
    "MEDIA_IN_FLIGHT",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "Brotr",
    "BrotrConfig",
    "BrotrTimeoutsConfig",
    "ConfigT",
    "ConfigurationError",
    "ConnectionPoolError",
    "DatabaseConfig",
    "DatabaseError",
    "DecodeError",
    "FeedBrotrError",
    "Logger",
    "MediaConflictError",
    "MediaError",
    "MediaFetchError",
    "MediaFormatError",
    "MetricsConfig",
    "MetricsServer",
    "Pool",
    "PoolConfig",
    "PoolLimitsConfig",
    "PoolRetryConfig",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "setup_logging",
    "start_metrics_server",
]
