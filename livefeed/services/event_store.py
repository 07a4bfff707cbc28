"""
Read-only access to the backend tables behind each activity source.

Two adapters implement the same contract: filter by the source's timestamp
column strictly after a watermark, newest first, capped, with foreign keys
resolved into nested dicts under their join alias.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from livefeed import models  # noqa: F401  (registers tables on Base.metadata)
from livefeed.config import settings
from livefeed.database import Base, engine as default_engine, ping as ping_database
from livefeed.services.catalog import Filter, Join, SourceDescriptor

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class EventStoreError(Exception):
    pass


class EventStore(Protocol):
    async def fetch(
        self, source: SourceDescriptor, since: datetime | None = None, limit: int | None = None
    ) -> list[Row]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlEventStore:
    """Event store over any SQLAlchemy async engine holding the livefeed tables."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def fetch(
        self, source: SourceDescriptor, since: datetime | None = None, limit: int | None = None
    ) -> list[Row]:
        table = Base.metadata.tables[source.table]
        ts = table.c[source.timestamp_column]
        stmt = select(table)
        for flt in source.filters:
            stmt = stmt.where(self._clause(table, flt))
        if since is not None:
            stmt = stmt.where(ts > _utc(since))
        stmt = stmt.order_by(ts.desc()).limit(limit or source.limit)

        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = [dict(r._mapping) for r in result.all()]
                await self._resolve(conn, rows, source.joins)
        except SQLAlchemyError as exc:
            raise EventStoreError(f"Fetch failed for {source.source_id}: {exc}") from exc
        return rows

    @staticmethod
    def _clause(table, flt: Filter):
        column = table.c[flt.column]
        if flt.op == "eq":
            return column == flt.value
        if flt.op == "in":
            return column.in_(flt.value)
        if flt.op == "not_null":
            return column.isnot(None)
        raise ValueError(f"Unsupported filter op: {flt.op}")

    async def _resolve(self, conn: AsyncConnection, rows: list[Row], joins: tuple[Join, ...]) -> None:
        for join in joins:
            ids = {row[join.column] for row in rows if row.get(join.column) is not None}
            targets: dict[Any, Row] = {}
            if ids:
                table = Base.metadata.tables[join.table]
                columns = [table.c.id] + [table.c[f] for f in join.fields if f != "id"]
                result = await conn.execute(select(*columns).where(table.c.id.in_(list(ids))))
                targets = {r.id: dict(r._mapping) for r in result.all()}
                await self._resolve(conn, list(targets.values()), join.joins)
            for row in rows:
                row[join.alias] = targets.get(row.get(join.column))

    async def ping(self) -> bool:
        return await ping_database(self._engine)

    async def close(self) -> None:
        # The engine is shared with the rest of the app; its owner disposes it.
        pass


def _embed(join: Join) -> str:
    columns = list(join.fields) + [_embed(nested) for nested in join.joins]
    return f"{join.alias}:{join.column}({','.join(columns)})"


def _filter_value(flt: Filter) -> str:
    if flt.op == "eq":
        value = flt.value
        if isinstance(value, bool):
            value = "true" if value else "false"
        return f"eq.{value}"
    if flt.op == "in":
        return f"in.({','.join(str(v) for v in flt.value)})"
    if flt.op == "not_null":
        return "not.is.null"
    raise ValueError(f"Unsupported filter op: {flt.op}")


def build_query(
    source: SourceDescriptor, since: datetime | None = None, limit: int | None = None
) -> list[tuple[str, str]]:
    """PostgREST query parameters for one source read."""
    select_clause = ",".join(["*"] + [_embed(join) for join in source.joins])
    params = [("select", select_clause)]
    params += [(flt.column, _filter_value(flt)) for flt in source.filters]
    if since is not None:
        params.append((source.timestamp_column, f"gt.{_utc(since).isoformat()}"))
    params.append(("order", f"{source.timestamp_column}.desc"))
    params.append(("limit", str(limit or source.limit)))
    return params


class RestEventStore:
    """Event store over a PostgREST-compatible HTTP API (e.g. a Supabase project)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
        )

    async def fetch(
        self, source: SourceDescriptor, since: datetime | None = None, limit: int | None = None
    ) -> list[Row]:
        try:
            response = await self._client.get(
                f"/{source.table}", params=build_query(source, since, limit)
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise EventStoreError(f"Fetch failed for {source.source_id}: {exc}") from exc
        if not isinstance(data, list):
            raise EventStoreError(
                f"Fetch failed for {source.source_id}: expected a list, got {type(data).__name__}"
            )
        return data

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/")
        except httpx.HTTPError as exc:
            logger.warning("Event store ping failed: %s", exc)
            return False
        return response.status_code < 500

    async def close(self) -> None:
        await self._client.aclose()


def create_event_store(engine: AsyncEngine | None = None) -> EventStore:
    if settings.EVENT_STORE == "rest":
        logger.info("Using REST event store at %s", settings.REST_BASE_URL)
        return RestEventStore(
            settings.REST_BASE_URL,
            api_key=settings.REST_API_KEY,
            timeout=settings.REST_TIMEOUT_SECONDS,
        )
    if settings.EVENT_STORE != "sql":
        raise ValueError(f"Unknown event store: {settings.EVENT_STORE}")
    return SqlEventStore(engine or default_engine)
