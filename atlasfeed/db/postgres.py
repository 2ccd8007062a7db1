"""Postgres-backed store."""

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import psycopg
from psycopg import errors as pg_errors
from psycopg_pool import AsyncConnectionPool

from ..errors import PersistenceConflict, PersistenceError
from ..models import IngestRun, Item, Source
from .connection import open_async_pool
from .store import ItemQuery, Store

_SOURCE_UPDATABLE = {
    "section",
    "name",
    "type",
    "country",
    "trust_score",
    "enabled",
    "last_fetched_at",
    "last_ok_at",
    "consecutive_fails",
}

_ITEM_COLUMNS = "i.id, i.url, i.source_id, i.section, i.title, i.summary, i.country, i.topics, i.score, i.published_at, i.created_at, i.updated_at"


def _item_where(query: ItemQuery) -> Tuple[str, List[Any]]:
    """Build the WHERE clause for an item scope over ``items i JOIN sources s``."""
    clauses = [f"i.{query.field} >= %s"]
    params: List[Any] = [query.since]

    if query.section is not None:
        clauses.append("i.section = %s")
        params.append(query.section)
    if query.source_id is not None:
        clauses.append("i.source_id = %s")
        params.append(query.source_id)
    if query.source_type is not None:
        clauses.append("s.type = %s")
        params.append(query.source_type)
    if query.exclude_source_type is not None:
        clauses.append("s.type <> %s")
        params.append(query.exclude_source_type)

    return " AND ".join(clauses), params


class PostgresStore(Store):
    """Store implementation over an async psycopg pool."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self.pool = pool

    @classmethod
    async def connect(cls, db_config: Dict[str, Any], max_size: int = 10) -> "PostgresStore":
        """Open a pool sized for the run's worker concurrency."""
        pool = await open_async_pool(db_config, max_size=max_size)
        return cls(pool)

    async def close(self) -> None:
        await self.pool.close()

    async def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> List[Dict[str, Any]]:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, tuple(params))
                    return await cur.fetchall()
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e

    async def _fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = await self._fetchall(sql, params)
        return rows[0] if rows else None

    async def _execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, tuple(params))
                    rowcount = cur.rowcount
                await conn.commit()
                return rowcount
        except pg_errors.UniqueViolation as e:
            raise PersistenceConflict(str(e)) from e
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e

    # Sources

    async def upsert_source(self, source: Source) -> Source:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO sources (url, section, name, type, country, trust_score, enabled)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (url) DO UPDATE SET
                            section = EXCLUDED.section,
                            name = EXCLUDED.name,
                            type = EXCLUDED.type,
                            country = EXCLUDED.country,
                            trust_score = EXCLUDED.trust_score,
                            enabled = EXCLUDED.enabled
                        RETURNING *
                        """,
                        (
                            source.url,
                            source.section,
                            source.name,
                            source.type,
                            source.country,
                            source.trust_score,
                            source.enabled,
                        ),
                    )
                    row = await cur.fetchone()
                await conn.commit()
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e
        return Source(**row)

    async def list_sources(
        self,
        source_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> List[Source]:
        clauses = ["TRUE"]
        params: List[Any] = []
        if source_type is not None:
            clauses.append("lower(type) = lower(%s)")
            params.append(source_type)
        if enabled is not None:
            clauses.append("enabled = %s")
            params.append(enabled)

        rows = await self._fetchall(
            f"""
            SELECT * FROM sources
            WHERE {" AND ".join(clauses)}
            ORDER BY last_fetched_at ASC NULLS FIRST, trust_score DESC, created_at ASC, id ASC
            """,
            params,
        )
        return [Source(**row) for row in rows]

    async def count_sources(
        self,
        source_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> int:
        clauses = ["TRUE"]
        params: List[Any] = []
        if source_type is not None:
            clauses.append("lower(type) = lower(%s)")
            params.append(source_type)
        if enabled is not None:
            clauses.append("enabled = %s")
            params.append(enabled)

        row = await self._fetchone(
            f"SELECT count(*) AS n FROM sources WHERE {' AND '.join(clauses)}",
            params,
        )
        return int(row["n"]) if row else 0

    async def update_source(self, source_id: int, **fields: Any) -> None:
        unknown = set(fields) - _SOURCE_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update source columns: {sorted(unknown)}")
        if not fields:
            return

        assignments = ", ".join(f"{column} = %s" for column in fields)
        await self._execute(
            f"UPDATE sources SET {assignments} WHERE id = %s",
            [*fields.values(), source_id],
        )

    async def record_fetch_failure(self, source_id: int) -> int:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        UPDATE sources
                        SET consecutive_fails = consecutive_fails + 1
                        WHERE id = %s
                        RETURNING consecutive_fails
                        """,
                        (source_id,),
                    )
                    row = await cur.fetchone()
                await conn.commit()
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e
        if row is None:
            raise PersistenceError(f"Unknown source id {source_id}")
        return int(row["consecutive_fails"])

    async def reenable_sources(
        self,
        source_type: Optional[str] = None,
        exclude_source_type: Optional[str] = None,
        min_fails: Optional[int] = None,
    ) -> int:
        clauses = ["enabled = FALSE"]
        params: List[Any] = []
        assignments = "enabled = TRUE"
        if source_type is not None:
            clauses.append("lower(type) = lower(%s)")
            params.append(source_type)
        if exclude_source_type is not None:
            clauses.append("lower(type) <> lower(%s)")
            params.append(exclude_source_type)
        if min_fails is not None:
            clauses.append("consecutive_fails >= %s")
            params.append(min_fails)
            assignments += ", consecutive_fails = 0"

        return await self._execute(
            f"UPDATE sources SET {assignments} WHERE {' AND '.join(clauses)}",
            params,
        )

    # Items

    async def upsert_item(self, item: Item) -> Item:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO items (
                            url, source_id, section, title, summary, country,
                            topics, score, published_at, created_at
                        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, CURRENT_TIMESTAMP))
                        ON CONFLICT (url) DO UPDATE SET
                            source_id = EXCLUDED.source_id,
                            section = EXCLUDED.section,
                            title = EXCLUDED.title,
                            summary = EXCLUDED.summary,
                            country = EXCLUDED.country,
                            topics = EXCLUDED.topics,
                            score = EXCLUDED.score,
                            published_at = EXCLUDED.published_at,
                            created_at = EXCLUDED.created_at
                        RETURNING *
                        """,
                        (
                            item.url,
                            item.source_id,
                            item.section,
                            item.title,
                            item.summary,
                            item.country,
                            list(item.topics),
                            item.score,
                            item.published_at,
                            item.created_at,
                        ),
                    )
                    row = await cur.fetchone()
                await conn.commit()
        except pg_errors.UniqueViolation as e:
            raise PersistenceConflict(str(e)) from e
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e
        return Item(**row)

    async def existing_urls(self, urls: Iterable[str]) -> Set[str]:
        wanted = list(dict.fromkeys(urls))
        if not wanted:
            return set()
        rows = await self._fetchall("SELECT url FROM items WHERE url = ANY(%s)", [wanted])
        return {row["url"] for row in rows}

    async def count_items(self, query: ItemQuery) -> int:
        where, params = _item_where(query)
        row = await self._fetchone(
            f"SELECT count(*) AS n FROM items i JOIN sources s ON s.id = i.source_id WHERE {where}",
            params,
        )
        return int(row["n"]) if row else 0

    async def list_items(self, query: ItemQuery, limit: Optional[int] = None) -> List[Item]:
        where, params = _item_where(query)
        sql = f"""
            SELECT {_ITEM_COLUMNS}
            FROM items i JOIN sources s ON s.id = i.source_id
            WHERE {where}
            ORDER BY i.score DESC, i.created_at DESC
        """
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)
        rows = await self._fetchall(sql, params)
        return [Item(**row) for row in rows]

    async def delete_items(self, query: ItemQuery, keep_ids: Iterable[int]) -> int:
        where, params = _item_where(query)
        params.append(list(keep_ids))
        return await self._execute(
            f"""
            DELETE FROM items i USING sources s
            WHERE s.id = i.source_id AND {where} AND NOT (i.id = ANY(%s))
            """,
            params,
        )

    async def delete_items_before(
        self,
        cutoff: datetime,
        section: Optional[str] = None,
        source_type: Optional[str] = None,
    ) -> int:
        clauses = ["s.id = i.source_id", "i.created_at < %s"]
        params: List[Any] = [cutoff]
        if section is not None:
            clauses.append("i.section = %s")
            params.append(section)
        if source_type is not None:
            clauses.append("s.type = %s")
            params.append(source_type)

        return await self._execute(
            f"DELETE FROM items i USING sources s WHERE {' AND '.join(clauses)}",
            params,
        )

    # Runs

    async def create_run(self, kind: str, started_at: datetime) -> IngestRun:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO ingest_runs (kind, started_at, ok)
                        VALUES (%s, %s, FALSE)
                        RETURNING *
                        """,
                        (kind, started_at),
                    )
                    row = await cur.fetchone()
                await conn.commit()
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e
        return IngestRun(**row)

    async def finish_run(
        self,
        run_id: int,
        ok: bool,
        added: int,
        skipped: int,
        message: str,
        stats: Optional[Dict[str, Any]] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        stats_json_str = json.dumps(stats, default=str) if stats else None
        await self._execute(
            """
            UPDATE ingest_runs
            SET
                finished_at = COALESCE(%s, CURRENT_TIMESTAMP),
                ok = %s,
                added = %s,
                skipped = %s,
                message = %s,
                stats_json = %s
            WHERE id = %s
            """,
            (finished_at, ok, added, skipped, message, stats_json_str, run_id),
        )

    # Administration

    async def reset(self, include_sources: bool = False) -> Dict[str, int]:
        try:
            async with self.pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute("DELETE FROM items")
                        items = cur.rowcount
                        await cur.execute("DELETE FROM ingest_runs")
                        runs = cur.rowcount
                        sources = 0
                        if include_sources:
                            await cur.execute("DELETE FROM sources")
                            sources = cur.rowcount
                        else:
                            await cur.execute(
                                """
                                UPDATE sources
                                SET last_fetched_at = NULL, last_ok_at = NULL, consecutive_fails = 0
                                """
                            )
        except psycopg.Error as e:
            raise PersistenceError(str(e)) from e
        return {"items": items, "runs": runs, "sources": sources}
