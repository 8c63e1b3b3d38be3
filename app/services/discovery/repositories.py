"""Persistence backends for discovered startup records."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock
from typing import Any, Protocol

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from app.clients.errors import PersistenceError
from app.config import settings
from app.models.startup import AggregatedRecord
from app.models.startup_record import StartupRecord
from app.observability.metrics import metrics
from app.services.discovery.dedup import normalize_name
from pipelines.normalize import query_terms

logger = logging.getLogger(__name__)


class StartupRepository(Protocol):
    """Persistence contract for ranked discovery results."""

    def persist(self, record: AggregatedRecord, origin_source: str, origin_url: str) -> None:
        ...

    def get(self, name: str) -> AggregatedRecord | None:
        ...

    def list(self, *, limit: int | None = None) -> list[AggregatedRecord]:
        ...

    def search(self, query: str, *, limit: int = 20) -> list[AggregatedRecord]:
        ...


class InMemoryStartupRepository(StartupRepository):
    """Thread-safe repository used for API/local development."""

    def __init__(self) -> None:
        self._rows: dict[str, StartupRecord] = {}
        self._lock = Lock()

    def persist(self, record: AggregatedRecord, origin_source: str, origin_url: str) -> None:
        key = normalize_name(record.name)
        row = StartupRecord.from_aggregated(
            record,
            normalized_name=key,
            origin_source=origin_source,
            origin_url=origin_url,
        )
        with self._lock:
            existing = self._rows.get(key)
            if existing:
                existing.apply(row)
            else:
                self._rows[key] = row
        metrics.increment("discovery.persistence.persisted", tags={"repository": "memory"})
        logger.info(
            "discovery.persistence.persisted",
            extra={"startup": record.name, "origin_source": origin_source, "backend": "memory"},
        )

    def get(self, name: str) -> AggregatedRecord | None:
        with self._lock:
            row = self._rows.get(normalize_name(name))
        return row.to_aggregated() if row else None

    def list(self, *, limit: int | None = None) -> list[AggregatedRecord]:
        with self._lock:
            rows = list(self._rows.values())
        ordered = sorted(rows, key=lambda row: row.updated_at, reverse=True)
        if limit is not None:
            ordered = ordered[: max(0, limit)]
        return [row.to_aggregated() for row in ordered]

    def search(self, query: str, *, limit: int = 20) -> list[AggregatedRecord]:
        """Substring match on name, description and tags, newest announcements first."""
        terms = query_terms(query)
        with self._lock:
            rows = [row for row in self._rows.values() if _row_matches(row, terms)]
        rows.sort(key=lambda row: (row.date_announced or "", row.updated_at), reverse=True)
        return [row.to_aggregated() for row in rows[: max(0, limit)]]


class SQLModelStartupRepository(StartupRepository):
    """SQLModel-backed repository for Postgres or SQLite."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_min_size: int | None = None,
        pool_max_size: int | None = None,
        auto_create_schema: bool = False,
    ) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for SQLModelStartupRepository.")

        parsed_url = make_url(database_url)
        sync_url, connect_args, drivername = _coerce_sync_database_url(parsed_url)
        pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
        pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
        is_sqlite = drivername.startswith("sqlite")
        engine_kwargs: dict[str, Any] = {
            "echo": settings.debug,
            "connect_args": connect_args,
            "pool_pre_ping": not is_sqlite,
        }
        if not is_sqlite:
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)

        self._engine: Engine = create_engine(sync_url, **engine_kwargs)
        if auto_create_schema:
            SQLModel.metadata.create_all(self._engine, tables=[StartupRecord.__table__])
        self._metrics_tags = {"repository": "sqlite" if is_sqlite else "postgres"}

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self._engine.dispose()

    def persist(self, record: AggregatedRecord, origin_source: str, origin_url: str) -> None:
        row = StartupRecord.from_aggregated(
            record,
            normalized_name=normalize_name(record.name),
            origin_source=origin_source,
            origin_url=origin_url,
        )
        try:
            with self._session() as session:
                statement = select(StartupRecord).where(
                    StartupRecord.normalized_name == row.normalized_name
                )
                existing = session.exec(statement).first()
                if existing:
                    existing.apply(row)
                    session.add(existing)
                else:
                    session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            logger.exception(
                "discovery.persistence.error",
                extra={"startup": record.name, "backend": self._metrics_tags["repository"]},
            )
            raise PersistenceError("Failed to persist startup record.") from exc
        metrics.increment("discovery.persistence.persisted", tags=self._metrics_tags)
        logger.info(
            "discovery.persistence.persisted",
            extra={
                "startup": record.name,
                "origin_source": origin_source,
                "backend": self._metrics_tags["repository"],
            },
        )

    def get(self, name: str) -> AggregatedRecord | None:
        try:
            with self._session() as session:
                statement = select(StartupRecord).where(
                    StartupRecord.normalized_name == normalize_name(name)
                )
                row = session.exec(statement).first()
                return row.to_aggregated() if row else None
        except SQLAlchemyError as exc:  # pragma: no cover - defensive guard
            logger.exception("discovery.persistence.error", extra={"startup": name})
            raise PersistenceError("Failed to load startup record.") from exc

    def list(self, *, limit: int | None = None) -> list[AggregatedRecord]:
        try:
            with self._session() as session:
                statement = select(StartupRecord).order_by(StartupRecord.updated_at.desc())
                if limit is not None and limit >= 0:
                    statement = statement.limit(limit)
                return [row.to_aggregated() for row in session.exec(statement).all()]
        except SQLAlchemyError as exc:  # pragma: no cover - defensive guard
            logger.exception("discovery.persistence.error", extra={"limit": limit})
            raise PersistenceError("Failed to list startup records.") from exc

    def search(self, query: str, *, limit: int = 20) -> list[AggregatedRecord]:
        statement = select(StartupRecord)
        terms = query_terms(query)
        if terms:
            searchable = (
                sa.func.lower(StartupRecord.name, type_=sa.String),
                sa.func.lower(StartupRecord.description, type_=sa.String),
                sa.func.lower(sa.cast(StartupRecord.tags, sa.String), type_=sa.String),
            )
            statement = statement.where(
                sa.or_(
                    *(
                        column.contains(term, autoescape=True)
                        for term in terms
                        for column in searchable
                    )
                )
            )
        statement = statement.order_by(
            StartupRecord.date_announced.desc(), StartupRecord.updated_at.desc()
        ).limit(max(0, limit))
        try:
            with self._session() as session:
                return [row.to_aggregated() for row in session.exec(statement).all()]
        except SQLAlchemyError as exc:
            logger.exception("discovery.persistence.error", extra={"query": query})
            raise PersistenceError("Failed to search startup records.") from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session


def _row_matches(row: StartupRecord, terms: list[str]) -> bool:
    if not terms:
        return True
    haystack = " ".join([row.name, row.description, *row.tags]).lower()
    return any(term in haystack for term in terms)


def _coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+aiosqlite"):
        drivername = "sqlite"
    sync_url = url.set(drivername=drivername)
    query = dict(sync_url.query) if sync_url.query else {}
    removed_ssl = query.pop("ssl", None) is not None
    sync_url = sync_url.set(query=query)

    if drivername.startswith("postgresql") and removed_ssl and "sslmode" not in query:
        connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def build_startup_repository(database_url: str | None = None) -> StartupRepository:
    """Instantiate a StartupRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("discovery.repository.initialized", extra={"backend": "memory"})
        return InMemoryStartupRepository()
    try:
        repository = SQLModelStartupRepository(
            resolved_url,
            pool_min_size=settings.db_pool_min_size,
            pool_max_size=settings.db_pool_max_size,
            auto_create_schema=settings.db_auto_create_schema,
        )
    except Exception:
        logger.exception("discovery.repository.init_failed", extra={"backend": "database"})
        raise
    logger.info("discovery.repository.initialized", extra={"backend": "database"})
    return repository
