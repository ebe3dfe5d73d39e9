"""Link store backed by SQLAlchemy's async engine (SQLite, PostgreSQL, ...)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from linksweep.domain.entities.link import (
    DueLink,
    LinkRecord,
    LinkStatistics,
    LinkStatus,
    LinkStatusUpdate,
)
from linksweep.domain.exceptions import LinkNotFoundError, LinkStoreError
from linksweep.infrastructure.persistence.models import Base, LinkRow

log = structlog.get_logger(__name__)


def _to_record(row: LinkRow) -> LinkRecord:
    return LinkRecord(
        id=row.id,
        url=row.url,
        title=row.title,
        status=LinkStatus(row.status),
        status_code=row.status_code,
        error_message=row.error_message,
        last_checked_at=row.last_checked_at,
        last_verified_at=row.last_verified_at,
        consecutive_failures=row.consecutive_failures,
        created_at=row.created_at,
    )


class SqlLinkStore:
    """Implements ``LinkStorePort`` on top of a relational ``links`` table.

    Every write runs in its own transaction and is committed immediately,
    so a crash mid-sweep only loses the links still in flight.

    Args:
        engine: SQLAlchemy async engine (owned; disposed by :meth:`aclose`).
        recheck_after: Age of ``last_checked_at`` after which a link is due.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        recheck_after: timedelta = timedelta(hours=24),
    ) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        self._recheck_after = recheck_after

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        echo: bool = False,
        recheck_after: timedelta = timedelta(hours=24),
    ) -> SqlLinkStore:
        engine = create_async_engine(url, echo=echo)
        log.info("link_store_engine_created", backend=engine.dialect.name)
        return cls(engine, recheck_after=recheck_after)

    @asynccontextmanager
    async def _session(self, operation: str, **context: Any) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as e:
            log.error("link_store_error", operation=operation, error=str(e), **context)
            raise LinkStoreError(f"{operation} failed: {e}") from e

    def _due_clause(self, now: datetime) -> Any:
        cutoff = now - self._recheck_after
        return or_(LinkRow.last_checked_at.is_(None), LinkRow.last_checked_at < cutoff)

    # --- Schema / lifecycle ---

    async def create_schema(self) -> None:
        """Create the ``links`` table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise LinkStoreError(f"create_schema failed: {e}") from e
        log.info("link_store_schema_ready")

    async def aclose(self) -> None:
        await self._engine.dispose()
        log.info("link_store_closed")

    # --- LinkStorePort ---

    async def fetch_due_links(self, limit: int) -> list[DueLink]:
        now = datetime.now(timezone.utc)
        stmt = (
            select(LinkRow.id, LinkRow.url, LinkRow.last_checked_at)
            .where(self._due_clause(now))
            .order_by(
                LinkRow.last_checked_at.asc().nulls_first(),
                LinkRow.created_at.asc(),
            )
            .limit(limit)
        )
        async with self._session("fetch_due_links", limit=limit) as session:
            rows = (await session.execute(stmt)).all()

        return [
            DueLink(id=row.id, url=row.url, last_checked_at=row.last_checked_at)
            for row in rows
        ]

    async def read_failure_count(self, link_id: str) -> int:
        stmt = select(LinkRow.consecutive_failures).where(LinkRow.id == link_id)
        async with self._session("read_failure_count", link_id=link_id) as session:
            count = (await session.execute(stmt)).scalar_one_or_none()

        if count is None:
            raise LinkNotFoundError(link_id)
        return count

    async def write_link_status(self, link_id: str, update_: LinkStatusUpdate) -> None:
        values: dict[str, Any] = {
            "status": update_.status.value,
            "status_code": update_.status_code,
            "error_message": update_.error_message,
            "last_checked_at": update_.last_checked_at,
            "consecutive_failures": update_.consecutive_failures,
        }
        if update_.last_verified_at is not None:
            values["last_verified_at"] = update_.last_verified_at

        stmt = update(LinkRow).where(LinkRow.id == link_id).values(**values)
        async with self._session("write_link_status", link_id=link_id) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise LinkNotFoundError(link_id)
            await session.commit()

        log.debug(
            "link_status_written",
            link_id=link_id,
            status=update_.status.value,
            consecutive_failures=update_.consecutive_failures,
        )

    async def delete_link(self, link_id: str) -> None:
        stmt = delete(LinkRow).where(LinkRow.id == link_id)
        async with self._session("delete_link", link_id=link_id) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise LinkNotFoundError(link_id)
            await session.commit()

        log.info("link_deleted", link_id=link_id)

    async def statistics(self) -> LinkStatistics:
        now = datetime.now(timezone.utc)
        by_status = select(LinkRow.status, func.count()).group_by(LinkRow.status)
        due = select(func.count()).select_from(LinkRow).where(self._due_clause(now))

        async with self._session("statistics") as session:
            counts = {status: n for status, n in (await session.execute(by_status)).all()}
            needing_check = (await session.execute(due)).scalar_one()

        return LinkStatistics(
            total=sum(counts.values()),
            live=counts.get(LinkStatus.LIVE.value, 0),
            dead=counts.get(LinkStatus.DEAD.value, 0),
            unknown=counts.get(LinkStatus.UNKNOWN.value, 0),
            needing_check=needing_check,
        )

    # --- Host-side helpers ---

    async def add_link(self, url: str, title: str = "") -> LinkRecord:
        """Insert a new, never-checked link and return it."""
        row = LinkRow(url=url, title=title)
        try:
            async with self._session("add_link", url=url) as session:
                session.add(row)
                await session.commit()
        except LinkStoreError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise LinkStoreError(f"Link already stored: {url}") from e.__cause__
            raise
        log.debug("link_added", link_id=row.id, url=url)
        return _to_record(row)

    async def get_link(self, link_id: str) -> LinkRecord | None:
        async with self._session("get_link", link_id=link_id) as session:
            row = await session.get(LinkRow, link_id)
        return _to_record(row) if row is not None else None
