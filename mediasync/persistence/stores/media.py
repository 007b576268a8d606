"""
Media cache store (persistence only).

This module persists adapter-built MediaRecordPayloads into `media_items` and
serves the read paths the sync service needs:
- identity lookups by AniList id (single and batch) and by MAL id per media type
- kind-partitioned listings and counts
- case-insensitive title substring search

Design constraints:
- Upsert by AniList id only. One INSERT ... ON CONFLICT DO UPDATE statement, so
  two writers racing on the same cold id converge on one row.
- An update replaces every mutable column. `media_type`, `created_at` and
  `deleted_at` are never overwritten. `kind` is rewritten only inside the
  manga/novel group; an ANIME row stays ANIME.
- Soft-deleted rows are skipped by listings and searches. Identity lookups
  still see them.

Non-responsibilities:
- No HTTP calls.
- No wire mapping. That lives in client/extract.py.
- No transaction control. Callers wrap calls in `session.begin()`.

Monitoring:
- MEDIA_DB_UPSERT_START
- MEDIA_DB_UPSERT_SUCCESS
- MEDIA_DB_UPSERT_FAILED
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from mediasync.persistence.models import MediaRecordPayload
from mediasync.persistence.tables import MediaItem, MediaKind

logger = logging.getLogger(__name__)

# Columns an upsert never rewrites on conflict.
_IMMUTABLE_COLUMNS = frozenset({"id", "external_id", "media_type", "created_at", "deleted_at"})

_TITLE_COLUMNS = (MediaItem.title_romaji, MediaItem.title_english, MediaItem.title_native)


def _utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MediaStore:
    """
    Repository for cached AniList media rows.

    Intended use:
        with db.get_session() as session:
            with session.begin():
                record = MediaStore(session).upsert_by_external_id(payload)
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # -------------------------------------------------------------------------
    # Identity lookups
    # -------------------------------------------------------------------------

    def find_by_external_id(self, external_id: int) -> MediaItem | None:
        stmt = select(MediaItem).where(MediaItem.external_id == external_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def find_by_mal_id(self, mal_id: int, media_type: str) -> MediaItem | None:
        stmt = select(MediaItem).where(
            MediaItem.id_mal == mal_id,
            MediaItem.media_type == media_type,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def find_many_by_external_ids(self, external_ids: Iterable[int]) -> list[MediaItem]:
        """
        Batch lookup. Ids with no row are omitted; rows come back in the order
        the ids were given.
        """
        ids = list(dict.fromkeys(external_ids))
        if not ids:
            return []

        stmt = select(MediaItem).where(MediaItem.external_id.in_(ids))
        by_id = {row.external_id: row for row in self._session.scalars(stmt)}
        return [by_id[i] for i in ids if i in by_id]

    # -------------------------------------------------------------------------
    # Upsert
    # -------------------------------------------------------------------------

    def upsert_by_external_id(self, payload: MediaRecordPayload) -> MediaItem:
        """
        Create the row for `payload.external_id`, or fully replace it.

        Sets `last_synced_at` and `updated_at` to now on every call.

        Returns:
            The persisted MediaItem, refreshed from the database.
        """
        insert = self._insert_fn()
        dialect = self._session.get_bind().dialect.name

        now = _utcnow_naive()
        row: dict[str, Any] = payload.model_dump()
        row.update(last_synced_at=now, updated_at=now, created_at=now)

        stmt = insert(MediaItem).values(row)
        excluded = stmt.excluded
        set_clause = {
            c.name: getattr(excluded, c.name)
            for c in MediaItem.__table__.c
            if c.name not in _IMMUTABLE_COLUMNS
        }
        current_kind = MediaItem.__table__.c.kind
        set_clause["kind"] = case(
            (current_kind == MediaKind.ANIME, current_kind),
            else_=excluded.kind,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[MediaItem.external_id],
            set_=set_clause,
        ).returning(MediaItem)

        logger.debug(
            "MEDIA_DB_UPSERT_START external_id=%s kind=%s dialect=%s",
            payload.external_id,
            payload.kind.value,
            dialect,
        )

        start = time.perf_counter()
        try:
            record = self._session.scalars(
                stmt,
                execution_options={"populate_existing": True},
            ).one()

            latency_ms = (time.perf_counter() - start) * 1000.0
            logger.info(
                "MEDIA_DB_UPSERT_SUCCESS external_id=%s kind=%s latency_ms=%.2f dialect=%s",
                record.external_id,
                record.kind.value,
                latency_ms,
                dialect,
            )
            return record

        except Exception:
            latency_ms = (time.perf_counter() - start) * 1000.0
            logger.exception(
                "MEDIA_DB_UPSERT_FAILED external_id=%s kind=%s latency_ms=%.2f dialect=%s",
                payload.external_id,
                payload.kind.value,
                latency_ms,
                dialect,
            )
            raise

    def _insert_fn(self):
        """
        Return a dialect-specific insert() that supports on_conflict_do_update().
        """
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as ins

            return ins
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as ins

            return ins
        raise NotImplementedError(
            f"Upsert is only implemented for PostgreSQL and SQLite. dialect={dialect}"
        )

    # -------------------------------------------------------------------------
    # Listings and search
    # -------------------------------------------------------------------------

    def find_by_kind(self, kinds: Sequence[MediaKind], offset: int, limit: int) -> list[MediaItem]:
        stmt = (
            select(MediaItem)
            .where(*self._kind_filter(kinds))
            .order_by(*self._default_order())
            .offset(offset)
            .limit(limit)
        )
        return list(self._session.scalars(stmt))

    def count_by_kind(self, kinds: Sequence[MediaKind]) -> int:
        stmt = select(func.count(MediaItem.id)).where(*self._kind_filter(kinds))
        return self._session.execute(stmt).scalar_one()

    def find_by_title_substring(
        self,
        text: str,
        kinds: Sequence[MediaKind] | None,
        offset: int,
        limit: int,
    ) -> list[MediaItem]:
        stmt = (
            select(MediaItem)
            .where(*self._kind_filter(kinds), self._title_match(text))
            .order_by(*self._default_order())
            .offset(offset)
            .limit(limit)
        )
        return list(self._session.scalars(stmt))

    def count_by_title_substring(self, text: str, kinds: Sequence[MediaKind] | None = None) -> int:
        stmt = select(func.count(MediaItem.id)).where(
            *self._kind_filter(kinds),
            self._title_match(text),
        )
        return self._session.execute(stmt).scalar_one()

    @staticmethod
    def _kind_filter(kinds: Sequence[MediaKind] | None) -> list[Any]:
        clauses: list[Any] = [MediaItem.deleted_at.is_(None)]
        if kinds:
            clauses.append(MediaItem.kind.in_(list(kinds)))
        return clauses

    @staticmethod
    def _title_match(text: str):
        # autoescape keeps user-typed % and _ literal.
        return or_(*(col.icontains(text, autoescape=True) for col in _TITLE_COLUMNS))

    @staticmethod
    def _default_order() -> tuple[Any, ...]:
        # Best-rated first, unscored rows last, id as the tie-break.
        return (
            MediaItem.average_score.is_(None),
            MediaItem.average_score.desc(),
            MediaItem.id,
        )
