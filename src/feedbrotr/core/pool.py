"""
Async PostgreSQL connection pool built on asyncpg.

Manages a pool of database connections with configurable size limits,
retry with backoff when the database is unreachable, and retry of single
statements on transient connection errors (``InterfaceError``,
``ConnectionDoesNotExistError``). Query-level errors such as constraint
violations are never retried; they propagate as ``asyncpg.PostgresError``.

Examples:
    ```python
    pool = Pool.from_dict({"database": {"host": "db"}})

    async with pool:
        is_new = await pool.fetchval("SELECT post_insert($1, ...)", 42)
    ```

See Also:
    [Brotr][feedbrotr.core.brotr.Brotr]: Persistence gateway that wraps
        this pool and exposes the ingestion insert operations.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable  # noqa: TC003
from contextlib import AbstractAsyncContextManager
from typing import Any, TypeVar, cast

import asyncpg
from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator, model_validator

from .exceptions import ConnectionPoolError
from .logger import Logger
from .yaml import load_yaml


_T = TypeVar("_T")

_TRANSIENT_ERRORS = (asyncpg.InterfaceError, asyncpg.ConnectionDoesNotExistError)


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class DatabaseConfig(BaseModel):
    """PostgreSQL connection parameters.

    The password is read from the environment variable named by
    ``password_env`` and never from configuration files.
    """

    host: str = Field(default="localhost", min_length=1, description="Database hostname")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(default="feedbrotr", min_length=1, description="Database name")
    user: str = Field(default="admin", min_length=1, description="Database user")
    password_env: str = Field(
        default="DB_ADMIN_PASSWORD",  # pragma: allowlist secret
        min_length=1,
        description="Environment variable name for database password",
    )
    password: SecretStr = Field(description="Database password (loaded from password_env)")

    @model_validator(mode="before")
    @classmethod
    def resolve_password(cls, data: Any) -> Any:
        """Resolve the database password from the environment variable."""
        if isinstance(data, dict) and "password" not in data:
            env_var = data.get("password_env", "DB_ADMIN_PASSWORD")  # pragma: allowlist secret
            value = os.getenv(env_var)
            if not value:
                raise ValueError(f"{env_var} environment variable not set")
            data = {**data, "password": SecretStr(value)}
        return data


class PoolLimitsConfig(BaseModel):
    """Connection pool size limits."""

    min_size: int = Field(default=1, ge=1, le=100, description="Minimum connections")
    max_size: int = Field(default=5, ge=1, le=200, description="Maximum connections")
    max_inactive_connection_lifetime: float = Field(
        default=300.0, ge=0.0, description="Idle timeout (seconds)"
    )

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v: int, info: ValidationInfo) -> int:
        """Ensure max_size >= min_size."""
        min_size = info.data.get("min_size", 1)
        if v < min_size:
            raise ValueError(f"max_size ({v}) must be >= min_size ({min_size})")
        return v


class PoolRetryConfig(BaseModel):
    """Backoff strategy for connection-level failures.

    Exponential backoff waits ``initial_delay * 2^attempt``, linear backoff
    ``initial_delay * (attempt + 1)``; both are capped at ``max_delay``.
    """

    max_attempts: int = Field(default=3, ge=1, le=10, description="Max retry attempts")
    initial_delay: float = Field(default=1.0, ge=0.1, description="Initial retry delay")
    max_delay: float = Field(default=10.0, ge=0.1, description="Maximum retry delay")
    exponential_backoff: bool = Field(default=True, description="Use exponential backoff")

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float, info: ValidationInfo) -> float:
        """Ensure max_delay >= initial_delay."""
        initial_delay = info.data.get("initial_delay", 1.0)
        if v < initial_delay:
            raise ValueError(f"max_delay ({v}) must be >= initial_delay ({initial_delay})")
        return v

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retrying after the zero-based *attempt*."""
        if self.exponential_backoff:
            value = self.initial_delay * (2**attempt)
        else:
            value = self.initial_delay * (attempt + 1)
        return float(min(value, self.max_delay))


class PoolConfig(BaseModel):
    """Aggregate configuration for the connection pool."""

    database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig.model_validate({}))
    limits: PoolLimitsConfig = Field(default_factory=PoolLimitsConfig)
    acquisition_timeout: float = Field(
        default=10.0, ge=0.1, description="Connection acquisition timeout (seconds)"
    )
    retry: PoolRetryConfig = Field(default_factory=PoolRetryConfig)
    application_name: str = Field(default="feedbrotr", description="Application name")
    statement_timeout: int = Field(
        default=60_000, ge=0, description="Max statement time in milliseconds (0=unlimited)"
    )


# ---------------------------------------------------------------------------
# Pool Class
# ---------------------------------------------------------------------------


class Pool:
    """Async PostgreSQL connection pool manager.

    Wraps ``asyncpg.Pool`` with connect-time retry and per-statement retry
    on transient connection errors. Services use
    [Brotr][feedbrotr.core.brotr.Brotr] rather than the pool directly.
    """

    def __init__(self, config: PoolConfig | None = None, *, logger: Logger | None = None) -> None:
        self._config = config or PoolConfig()
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None
        self._connection_lock = asyncio.Lock()
        self._logger = logger or Logger("pool")

    @classmethod
    def from_yaml(cls, config_path: str) -> Pool:
        """Create a Pool from a YAML configuration file (not yet connected)."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Pool:
        """Create a Pool from a configuration dictionary (not yet connected)."""
        return cls(config=PoolConfig(**config_dict))

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the asyncpg pool, retrying with backoff on failure.

        Raises:
            ConnectionPoolError: If all retry attempts are exhausted.
        """
        async with self._connection_lock:
            if self._pool is not None:
                return

            db = self._config.database
            retry = self._config.retry
            self._logger.info(
                "connection_starting", host=db.host, port=db.port, database=db.database
            )

            for attempt in range(retry.max_attempts):
                try:
                    self._pool = await asyncpg.create_pool(
                        host=db.host,
                        port=db.port,
                        database=db.database,
                        user=db.user,
                        password=db.password.get_secret_value(),
                        min_size=self._config.limits.min_size,
                        max_size=self._config.limits.max_size,
                        max_inactive_connection_lifetime=self._config.limits.max_inactive_connection_lifetime,
                        timeout=self._config.acquisition_timeout,
                        server_settings={
                            "application_name": self._config.application_name,
                            "timezone": "UTC",
                            "statement_timeout": str(self._config.statement_timeout),
                        },
                    )
                except (asyncpg.PostgresError, OSError) as e:
                    if attempt + 1 >= retry.max_attempts:
                        self._logger.error("connection_failed", attempts=attempt + 1, error=str(e))
                        raise ConnectionPoolError(
                            f"Failed to connect after {attempt + 1} attempts: {e}"
                        ) from e
                    delay = retry.delay(attempt)
                    self._logger.warning(
                        "connection_retry", attempt=attempt + 1, delay=delay, error=str(e)
                    )
                    await asyncio.sleep(delay)
                else:
                    self._logger.info("connection_established")
                    return

    async def close(self) -> None:
        """Close the pool and release all connections. Idempotent."""
        async with self._connection_lock:
            if self._pool is None:
                return
            try:
                await self._pool.close()
                self._logger.info("connection_closed")
            finally:
                self._pool = None

    def acquire(self) -> AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection, returned to the pool when the context exits.

        Raises:
            RuntimeError: If the pool has not been connected yet.
        """
        if self._pool is None:
            raise RuntimeError("Pool not connected. Call connect() first.")
        return cast(
            "AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]",
            self._pool.acquire(),
        )

    # -------------------------------------------------------------------------
    # Statements (retried on transient connection errors)
    # -------------------------------------------------------------------------

    async def _with_retry(
        self,
        operation: str,
        call: Callable[[asyncpg.Connection[asyncpg.Record]], Awaitable[_T]],
    ) -> _T:
        """Run *call* on a fresh connection, retrying transient connection errors.

        Each attempt acquires a new connection so a socket broken mid-query
        is not reused.

        Raises:
            ConnectionPoolError: If every attempt failed with a transient error.
            asyncpg.PostgresError: On query-level errors (not retried).
        """
        retry = self._config.retry
        for attempt in range(retry.max_attempts):
            try:
                async with self.acquire() as conn:
                    return await call(conn)
            except _TRANSIENT_ERRORS as e:
                if attempt + 1 >= retry.max_attempts:
                    self._logger.error(
                        "query_failed", operation=operation, attempts=attempt + 1, error=str(e)
                    )
                    raise ConnectionPoolError(
                        f"{operation} failed after {attempt + 1} attempts: {e}"
                    ) from e
                delay = retry.delay(attempt)
                self._logger.warning(
                    "query_retry",
                    operation=operation,
                    attempt=attempt + 1,
                    delay_s=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)
        raise RuntimeError("retry loop exited without result")

    async def fetchval(self, query: str, *args: Any, timeout: float | None = None) -> Any:  # noqa: ASYNC109
        """Execute a query and return the first column of the first row."""
        return await self._with_retry(
            "fetchval", lambda conn: conn.fetchval(query, *args, timeout=timeout)
        )

    async def execute(self, query: str, *args: Any, timeout: float | None = None) -> str:  # noqa: ASYNC109
        """Execute a statement and return the command status tag."""
        return await self._with_retry(
            "execute", lambda conn: conn.execute(query, *args, timeout=timeout)
        )

    # -------------------------------------------------------------------------
    # Properties / Context Manager
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def config(self) -> PoolConfig:
        return self._config

    async def __aenter__(self) -> Pool:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._config.database
        return f"Pool(host={db.host}, database={db.database}, connected={self.is_connected})"
