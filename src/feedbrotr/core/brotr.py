"""
Persistence gateway built on stored procedures.

[Brotr][feedbrotr.core.brotr.Brotr] is the only component that talks to
PostgreSQL. Each ingestion operation maps onto one stored procedure shipped
in ``deployments/feedbrotr/postgres/init/``:

| Method            | Procedure            | Returns                    |
|-------------------|----------------------|----------------------------|
| ``insert_message``| ``message_insert``   | ``None``                   |
| ``insert_post``   | ``post_insert``      | ``True`` when the post is new |
| ``insert_account``| ``account_insert``   | ``None``                   |
| ``insert_follow`` | ``follow_insert``    | ``None``                   |
| ``mark_deleted``  | ``post_mark_deleted``| ``None``                   |

All procedures are idempotent: inserting an existing identifier is a no-op
reported as "not new", never an error. ``post_insert`` is the single source
of truth for deduplication of the post tree.

Uses composition with [Pool][feedbrotr.core.pool.Pool] for connection
management and implements an async context manager for the pool lifecycle.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from .logger import Logger
from .pool import Pool, PoolConfig
from .yaml import load_yaml


if TYPE_CHECKING:
    from feedbrotr.models import Account, Envelope, Post


_MIN_TIMEOUT_SECONDS = 0.1


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class BrotrTimeoutsConfig(BaseModel):
    """Timeout settings for gateway calls (in seconds, None = no limit)."""

    query: float | None = Field(default=30.0, description="Procedure call timeout")

    @field_validator("query", mode="after")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        """Validate timeout: None (infinite) or >= 0.1 seconds."""
        if v is not None and v < _MIN_TIMEOUT_SECONDS:
            raise ValueError(
                f"Timeout must be None (infinite) or >= {_MIN_TIMEOUT_SECONDS} seconds"
            )
        return v


class BrotrConfig(BaseModel):
    """Aggregate configuration for the persistence gateway."""

    timeouts: BrotrTimeoutsConfig = Field(default_factory=BrotrTimeoutsConfig)


# ---------------------------------------------------------------------------
# Brotr Class
# ---------------------------------------------------------------------------


class Brotr:
    """Persistence gateway wrapping the ingestion stored procedures.

    Insert methods accept validated model instances and convert them with
    their ``to_db_params()``. Errors surface as ``asyncpg.PostgresError``
    (query-level) or
    [ConnectionPoolError][feedbrotr.core.exceptions.ConnectionPoolError]
    (connection-level, after the pool's own retries).

    Example:
        brotr = Brotr.from_yaml("config/brotr.yaml")

        async with brotr:
            await brotr.insert_message(envelope)
            if await brotr.insert_post(post, envelope.sequence_id):
                await brotr.insert_account(post.user, envelope.sequence_id)
    """

    _VALID_PROCEDURE_NAME: ClassVar[re.Pattern[str]] = re.compile(r"^[a-z_][a-z0-9_]*$")

    def __init__(
        self,
        pool: Pool | None = None,
        config: BrotrConfig | None = None,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._pool = pool or Pool()
        self._config = config or BrotrConfig()
        self._logger = logger or Logger("brotr")

    @property
    def config(self) -> BrotrConfig:
        return self._config

    @property
    def pool_config(self) -> PoolConfig:
        return self._pool.config

    @classmethod
    def from_yaml(cls, config_path: str) -> Brotr:
        """Create a Brotr instance from a YAML configuration file (not yet connected)."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Brotr:
        """Create a Brotr instance from a configuration dictionary.

        The ``pool`` key builds the [Pool][feedbrotr.core.pool.Pool]; the
        remaining keys are [BrotrConfig][feedbrotr.core.brotr.BrotrConfig]
        fields.
        """
        pool = Pool.from_dict(config_dict["pool"]) if "pool" in config_dict else None
        rest = {k: v for k, v in config_dict.items() if k != "pool"}
        config = BrotrConfig(**rest) if rest else None
        return cls(pool=pool, config=config)

    async def _call_procedure(
        self,
        procedure_name: str,
        *args: Any,
        fetch_result: bool = False,
    ) -> Any:
        """Call ``SELECT procedure_name($1, $2, ...)`` with parameterized arguments.

        Raises:
            ValueError: If *procedure_name* is not a plain SQL identifier.
        """
        if not self._VALID_PROCEDURE_NAME.match(procedure_name):
            raise ValueError(f"Invalid procedure name '{procedure_name}'")

        params = ", ".join(f"${i + 1}" for i in range(len(args)))
        query = f"SELECT {procedure_name}({params})"
        timeout = self._config.timeouts.query

        if fetch_result:
            return await self._pool.fetchval(query, *args, timeout=timeout)
        await self._pool.execute(query, *args, timeout=timeout)
        return None

    # -------------------------------------------------------------------------
    # Insert Operations
    # -------------------------------------------------------------------------

    async def insert_message(self, envelope: Envelope) -> None:
        """Record the raw envelope under its sequence identifier."""
        await self._call_procedure("message_insert", *envelope.to_db_params())

    async def insert_post(self, post: Post, sequence_id: int) -> bool:
        """Record a post first seen in envelope *sequence_id*.

        Returns:
            ``True`` if the post was not recorded before, ``False`` if it is
            a duplicate (already recorded under this or a prior envelope).
        """
        is_new = await self._call_procedure(
            "post_insert", *post.to_db_params(), sequence_id, fetch_result=True
        )
        self._logger.debug("post_inserted", post=post.id, new=bool(is_new))
        return bool(is_new)

    async def insert_account(self, account: Account, sequence_id: int) -> None:
        """Record an account, refreshing its profile fields if already known."""
        await self._call_procedure("account_insert", *account.to_db_params(), sequence_id)

    async def insert_follow(self, source_id: int, target_id: int, sequence_id: int) -> None:
        """Record the follow edge ``source_id -> target_id``."""
        await self._call_procedure("follow_insert", source_id, target_id, sequence_id)

    async def mark_deleted(self, post_id: int, sequence_id: int) -> None:
        """Mark a post as deleted by envelope *sequence_id*.

        A deletion may arrive for a post never recorded; the procedure keeps
        a tombstone so the post is flagged if it shows up later.
        """
        await self._call_procedure("post_mark_deleted", post_id, sequence_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect the underlying pool. Idempotent."""
        await self._pool.connect()
        self._logger.debug("session_started")

    async def close(self) -> None:
        """Close the underlying pool. Idempotent."""
        self._logger.debug("session_ending")
        await self._pool.close()

    async def __aenter__(self) -> Brotr:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._pool.config.database
        return f"Brotr(host={db.host}, database={db.database}, connected={self._pool.is_connected})"
