"""SQLAlchemy implementation of the network store.

Targets PostgreSQL through asyncpg in production and SQLite through
aiosqlite in tests. The ``chain_id`` unique constraint is the enforcement
point that stays correct under concurrent writers.
"""

import json
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    select,
    text,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from netreg.observability.logging import get_logger, redact_url

from .errors import ConflictError, StoreError
from .models import Network, NetworkCreate, NetworkUpdate

POSTGRES_UNIQUE_VIOLATION = "23505"

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class NetworkRow(Base):
    __tablename__ = "networks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rpc_url: Mapped[str] = mapped_column(String(500), nullable=False)
    # JSON-encoded list of URLs
    other_rpc_urls: Mapped[str | None] = mapped_column(Text, nullable=True, default="[]")
    test_net: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    block_explorer_url: Mapped[str] = mapped_column(String(500), nullable=False)
    fee_multiplier: Mapped[float] = mapped_column(
        Numeric(10, 4, asdecimal=False), nullable=False, default=1.0
    )
    gas_limit_multiplier: Mapped[float] = mapped_column(
        Numeric(10, 4, asdecimal=False), nullable=False, default=1.0
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_signer_address: Mapped[str] = mapped_column(String(42), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("chain_id", name="uq_networks_chain_id"),
        Index("idx_networks_active", "active"),
    )

    def __repr__(self) -> str:
        return (
            f"<NetworkRow(id={self.id}, chain_id={self.chain_id}, "
            f"name={self.name}, active={self.active})>"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def decode_rpc_urls(raw: str | None) -> list[str]:
    """Decode the stored URL list; malformed data decodes to an empty list."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    return [url for url in parsed if isinstance(url, str)]


def _to_columns(values: dict[str, Any]) -> dict[str, Any]:
    columns = dict(values)
    if "other_rpc_urls" in columns:
        columns["other_rpc_urls"] = json.dumps(list(columns["other_rpc_urls"]))
    return columns


def _to_domain(row: NetworkRow) -> Network:
    return Network(
        id=row.id,
        chain_id=row.chain_id,
        name=row.name,
        rpc_url=row.rpc_url,
        other_rpc_urls=decode_rpc_urls(row.other_rpc_urls),
        test_net=row.test_net,
        block_explorer_url=row.block_explorer_url,
        fee_multiplier=float(row.fee_multiplier),
        gas_limit_multiplier=float(row.gas_limit_multiplier),
        active=row.active,
        default_signer_address=row.default_signer_address,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def is_unique_violation(exc: IntegrityError) -> bool:
    """Whether ``exc`` reports a unique constraint violation."""
    for candidate in (exc.orig, getattr(exc.orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == POSTGRES_UNIQUE_VIOLATION:
            return True
    return "UNIQUE constraint failed" in str(exc.orig)


class Database:
    """Process-wide database handle.

    Created once at startup, connected with :meth:`connect` and released with
    :meth:`close`. Stores receive it by injection.

    Parameters
    ----------
    url : str
        SQLAlchemy async URL, e.g. ``postgresql+asyncpg://user@host/netreg``.
    pool_size : int
        Connection pool size (ignored for SQLite).
    pool_timeout : float
        Seconds to wait for a pooled connection (ignored for SQLite).
    echo : bool
        Log every SQL statement.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        pool_timeout: float = 30.0,
        echo: bool = False,
    ):
        self._url = url
        self._pool_size = pool_size
        self._pool_timeout = pool_timeout
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine and verify connectivity."""
        if self._engine is not None:
            return

        logger.info("Connecting to database", url=redact_url(self._url))
        kwargs: dict[str, Any] = {"echo": self._echo, "pool_pre_ping": True}
        if not self._url.startswith("sqlite"):
            kwargs["pool_size"] = self._pool_size
            kwargs["pool_timeout"] = self._pool_timeout

        engine = create_async_engine(self._url, **kwargs)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            await engine.dispose()
            logger.error("Failed to connect to database", error=str(e))
            raise StoreError(f"Database connection failed: {e}") from e

        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        logger.info("Database connection established")

    async def close(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine is not None:
            logger.info("Closing database connection")
            await self._engine.dispose()
            self._engine = None
            self._sessions = None
            logger.info("Database connection closed")

    async def create_schema(self) -> None:
        """Create the registry tables if they do not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    async def ping(self) -> bool:
        """Round-trip a trivial query; False on any database failure."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database ping failed", error=str(e))
            return False

    def session(self) -> AsyncSession:
        if self._sessions is None:
            raise RuntimeError("Database is not connected")
        return self._sessions()


class SqlNetworkStore:
    """Network store backed by the ``networks`` table.

    Parameters
    ----------
    database : Database
        A connected database handle.
    """

    def __init__(self, database: Database):
        self._db = database

    @contextmanager
    def _storage_errors(self, log: Any, action: str, **fields: Any) -> Iterator[None]:
        """Translate non-conflict SQLAlchemy failures into StoreError."""
        try:
            yield
        except ConflictError:
            raise
        except SQLAlchemyError as e:
            log.error(f"Error {action}", error=str(e), **fields)
            raise StoreError(f"Error {action}: {e}") from e

    async def find_by_id(self, network_id: str, *, logger: Any) -> Network | None:
        logger.info("Finding network by id", network_id=network_id)

        with self._storage_errors(logger, "finding network by id", network_id=network_id):
            async with self._db.session() as session:
                row = await session.get(NetworkRow, network_id)

        if row is None:
            logger.info("Network not found", network_id=network_id)
            return None

        logger.info("Network found", network_id=network_id)
        return _to_domain(row)

    async def find_by_chain_id(self, chain_id: int, *, logger: Any) -> Network | None:
        logger.info("Finding network by chain id", chain_id=chain_id)

        with self._storage_errors(logger, "finding network by chain id", chain_id=chain_id):
            async with self._db.session() as session:
                result = await session.execute(
                    select(NetworkRow).where(NetworkRow.chain_id == chain_id)
                )
                row = result.scalar_one_or_none()

        if row is None:
            logger.info("Network not found by chain id", chain_id=chain_id)
            return None

        logger.info("Network found by chain id", chain_id=chain_id)
        return _to_domain(row)

    async def find_all_active(self, *, logger: Any) -> list[Network]:
        logger.info("Finding all active networks")

        with self._storage_errors(logger, "finding active networks"):
            async with self._db.session() as session:
                result = await session.execute(
                    select(NetworkRow)
                    .where(NetworkRow.active.is_(True))
                    .order_by(NetworkRow.name.asc(), NetworkRow.chain_id.asc())
                )
                rows = result.scalars().all()

        logger.info("Found active networks", count=len(rows))
        return [_to_domain(row) for row in rows]

    async def create(self, data: NetworkCreate, *, logger: Any) -> Network:
        logger.info("Creating network", chain_id=data.chain_id, name=data.name)

        network_id = str(uuid.uuid4())
        now = _utcnow()
        row = NetworkRow(
            id=network_id,
            **_to_columns(data.model_dump()),
            created_at=now,
            updated_at=now,
        )

        with self._storage_errors(logger, "creating network", chain_id=data.chain_id):
            try:
                async with self._db.session() as session, session.begin():
                    session.add(row)
            except IntegrityError as e:
                if is_unique_violation(e):
                    logger.warning(
                        "Unique constraint violation during network creation",
                        chain_id=data.chain_id,
                    )
                    raise ConflictError.chain_id_taken(data.chain_id) from e
                raise

        created = await self.find_by_id(network_id, logger=logger)
        if created is None:
            raise StoreError("Failed to retrieve created network")

        logger.info("Network created", network_id=network_id, chain_id=data.chain_id)
        return created

    async def update(
        self, network_id: str, data: NetworkUpdate, *, logger: Any
    ) -> Network | None:
        changes = data.changes()
        logger.info("Updating network", network_id=network_id, fields=sorted(changes))

        with self._storage_errors(logger, "updating network", network_id=network_id):
            try:
                async with self._db.session() as session, session.begin():
                    row = await session.get(NetworkRow, network_id, with_for_update=True)
                    if row is None:
                        logger.info("Network not found for update", network_id=network_id)
                        return None
                    for column, value in _to_columns(changes).items():
                        setattr(row, column, value)
                    row.updated_at = _utcnow()
            except IntegrityError as e:
                if is_unique_violation(e) and "chain_id" in changes:
                    logger.warning(
                        "Unique constraint violation during network update",
                        network_id=network_id,
                        chain_id=changes["chain_id"],
                    )
                    raise ConflictError.chain_id_taken(changes["chain_id"]) from e
                raise

        updated = await self.find_by_id(network_id, logger=logger)
        logger.info("Network updated", network_id=network_id)
        return updated

    async def soft_delete(self, network_id: str, *, logger: Any) -> bool:
        logger.info("Soft deleting network", network_id=network_id)

        with self._storage_errors(logger, "soft deleting network", network_id=network_id):
            async with self._db.session() as session, session.begin():
                result = await session.execute(
                    update(NetworkRow)
                    .where(NetworkRow.id == network_id)
                    .values(active=False, updated_at=_utcnow())
                )

        if result.rowcount == 0:
            logger.info("Network not found for soft delete", network_id=network_id)
            return False

        logger.info("Network soft deleted", network_id=network_id)
        return True

    async def exists_by_chain_id(
        self, chain_id: int, exclude_id: str | None = None, *, logger: Any
    ) -> bool:
        logger.info("Checking chain id usage", chain_id=chain_id, exclude_id=exclude_id)

        query = select(NetworkRow.id).where(NetworkRow.chain_id == chain_id)
        if exclude_id:
            query = query.where(NetworkRow.id != exclude_id)

        with self._storage_errors(logger, "checking chain id usage", chain_id=chain_id):
            async with self._db.session() as session:
                result = await session.execute(query.limit(1))
                exists = result.first() is not None

        logger.info("Chain id usage checked", chain_id=chain_id, exists=exists)
        return exists
