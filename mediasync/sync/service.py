"""
Read-through sync service for AniList media.

Purpose
- Serve anime, manga and novel metadata to the presentation layer.
- Refresh single records from AniList and cache them in `media_items`.
- Batch many small lookups into one upstream round trip.

Hard invariants
- Never keep a DB transaction open during HTTP.
- `last_synced_at` moves only on a successful refresh. A failed refresh writes
  nothing.
- Upstream never sees more than 50 ids per batch.
- Non-empty `search` text always goes upstream; only `search_cached` reads the
  local title index.

Errors
- NotFoundError: upstream 404 or `Media: null`, or a record of another kind.
- UpstreamError: passed through unchanged. No retries, no stale fallback.
- ValidationError: non-positive id, malformed upstream payload or corrupt row.
  Inside a batch or page, a malformed entry is logged and skipped.

Monitoring
- MEDIA_SYNC_CACHE_HIT
- MEDIA_SYNC_REFRESH_START / MEDIA_SYNC_REFRESH_SUCCESS / MEDIA_SYNC_REFRESH_FAILED
- MEDIA_SYNC_NOT_FOUND / MEDIA_SYNC_KIND_MISMATCH
- MEDIA_SYNC_BATCH_TRUNCATED / MEDIA_SYNC_BATCH_INVALID_IDS / MEDIA_SYNC_BATCH_SUCCESS
- MEDIA_SYNC_INVALID_ID / MEDIA_SYNC_ENTRY_SKIPPED
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Iterable

from mediasync.client import queries
from mediasync.client.client import AnilistClient
from mediasync.client.extract import (
    from_external,
    map_connection,
    map_page_info,
    map_statistics,
    to_response,
    to_response_list,
)
from mediasync.config.anilist_settings import AnilistHttpSettings
from mediasync.config.postgres_settings import MediaDbSettings
from mediasync.config.sync_settings import SyncSettings
from mediasync.errors import NotFoundError, UpstreamError, ValidationError
from mediasync.persistence.engine import DatabaseManager
from mediasync.persistence.models import (
    MediaConnection,
    MediaOverview,
    MediaPage,
    MediaRecordPayload,
    MediaResponse,
    MediaStatistics,
    PageInfo,
)
from mediasync.persistence.stores.media import MediaStore
from mediasync.persistence.tables import MediaItem, MediaKind
from mediasync.sync.kinds import (
    MAX_BATCH_IDS,
    KindDescriptor,
    Paging,
    SearchCriteria,
    SyncOptions,
    descriptor_for,
)

logger = logging.getLogger(__name__)


def _utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_valid_id(external_id: Any) -> bool:
    return isinstance(external_id, int) and not isinstance(external_id, bool) and external_id > 0


def _validate_id(desc: KindDescriptor, external_id: Any) -> None:
    if not _is_valid_id(external_id):
        logger.error("MEDIA_SYNC_INVALID_ID kind=%s external_id=%r", desc.kind.value, external_id)
        raise ValidationError(
            f"Invalid {desc.kind.value.lower()} id: must be a positive integer",
            {"external_id": external_id},
        )


def _kind_mismatch(desc: KindDescriptor, actual: MediaKind, external_id: int) -> NotFoundError:
    logger.info(
        "MEDIA_SYNC_KIND_MISMATCH requested=%s stored=%s external_id=%s",
        desc.kind.value,
        actual.value,
        external_id,
    )
    return NotFoundError(f"{desc.kind.value.title()} {external_id} not found")


def _ensure_kind(desc: KindDescriptor, media: dict[str, Any], external_id: int) -> None:
    # Manga and novels share the upstream MANGA type; only `format` tells them apart.
    actual = desc.kind_of(media.get("format"))
    if not desc.accepts(actual):
        raise _kind_mismatch(desc, actual, external_id)


def _payloads(desc: KindDescriptor, media_list: Iterable[dict[str, Any]]) -> list[MediaRecordPayload]:
    """
    Map upstream list entries to payloads. A malformed entry is logged and
    skipped so the rest of the page still comes back.
    """
    payloads = []
    for media in media_list:
        try:
            payloads.append(from_external(media, desc.media_type))
        except ValidationError as e:
            logger.warning(
                "MEDIA_SYNC_ENTRY_SKIPPED kind=%s external_id=%s errors=%s",
                desc.kind.value,
                media.get("id"),
                e.errors,
            )
    return payloads


def _local_page_info(total: int, paging: Paging) -> PageInfo:
    last_page = max(1, math.ceil(total / paging.per_page))
    return PageInfo(
        total=total,
        current_page=paging.page,
        last_page=last_page,
        has_next_page=paging.page < last_page,
        per_page=paging.per_page,
    )


class MediaSyncService:
    """
    One engine for all three kinds; behaviour per kind comes from its
    KindDescriptor.
    """

    def __init__(
        self,
        *,
        db_manager: DatabaseManager,
        client: AnilistClient,
        options: SyncOptions | None = None,
    ) -> None:
        """
        Args:
            db_manager: Provides SQLAlchemy Session context manager.
            client: Thin GraphQL client for AniList.
            options: Cache policy. Defaults to refresh-on-every-read.
        """
        self._db = db_manager
        self._client = client
        self._options = options or SyncOptions()

    @classmethod
    def from_settings(
        cls,
        *,
        db_settings: MediaDbSettings | None = None,
        http_settings: AnilistHttpSettings | None = None,
        sync_settings: SyncSettings | None = None,
    ) -> "MediaSyncService":
        return cls(
            db_manager=DatabaseManager.from_settings(db_settings or MediaDbSettings()),
            client=AnilistClient.from_settings(http_settings or AnilistHttpSettings()),
            options=SyncOptions.from_settings(sync_settings or SyncSettings()),
        )

    # -------------------------------------------------------------------------
    # Single record
    # -------------------------------------------------------------------------

    def get_by_id(self, kind: MediaKind, external_id: int) -> MediaResponse:
        """
        Return one record, refreshing it from AniList unless a fresh copy is
        cached.

        Raises:
            NotFoundError: AniList does not know the id, or the record belongs
                to another kind. Nothing is written for the first case.
            UpstreamError: Any other upstream failure.
            ValidationError: `external_id` is not a positive integer.
        """
        desc = descriptor_for(kind)
        _validate_id(desc, external_id)

        cached = self._cached_if_fresh(desc, external_id)
        if cached is not None:
            return cached

        logger.debug(
            "MEDIA_SYNC_REFRESH_START kind=%s external_id=%s",
            desc.kind.value,
            external_id,
        )
        start = time.perf_counter()

        try:
            media = self._fetch_media(
                desc,
                external_id,
                queries.MEDIA_INFO_QS,
                label=f"{desc.kind.value}Info",
            )
            payload = from_external(media, desc.media_type)
        except NotFoundError:
            raise
        except Exception:
            latency_ms = (time.perf_counter() - start) * 1000.0
            logger.exception(
                "MEDIA_SYNC_REFRESH_FAILED kind=%s external_id=%s latency_ms=%.2f",
                desc.kind.value,
                external_id,
                latency_ms,
            )
            raise

        with self._db.get_session() as session:
            with session.begin():
                record = MediaStore(session).upsert_by_external_id(payload)
                # The row's kind, not the payload's: an ANIME row keeps its kind.
                stored_kind = record.kind
                response = to_response(record)

        latency_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "MEDIA_SYNC_REFRESH_SUCCESS kind=%s external_id=%s stored_kind=%s latency_ms=%.2f",
            desc.kind.value,
            external_id,
            stored_kind.value,
            latency_ms,
        )

        if not desc.accepts(stored_kind):
            raise _kind_mismatch(desc, stored_kind, external_id)

        return response

    def _cached_if_fresh(self, desc: KindDescriptor, external_id: int) -> MediaResponse | None:
        stale_after = self._options.stale_after
        if stale_after is None:
            return None

        with self._db.get_session() as session:
            record = MediaStore(session).find_by_external_id(external_id)
            if not self._is_fresh(record, stale_after):
                return None
            if not desc.accepts(record.kind):
                raise _kind_mismatch(desc, record.kind, external_id)
            response = to_response(record)

        logger.debug("MEDIA_SYNC_CACHE_HIT kind=%s external_id=%s", desc.kind.value, external_id)
        return response

    @staticmethod
    def _is_fresh(record: MediaItem | None, stale_after) -> bool:
        if record is None or record.deleted_at is not None or record.last_synced_at is None:
            return False
        return _utcnow_naive() - record.last_synced_at < stale_after

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def get_many(self, kind: MediaKind, external_ids: Iterable[int]) -> list[MediaResponse]:
        """
        Batch lookup in one upstream call.

        Returns only the ids AniList resolved, in request order. Missing ids
        are dropped, never raised. Batch results are not cached.
        """
        desc = descriptor_for(kind)
        ids = self._batch_ids(desc, external_ids)
        if not ids:
            return []

        by_id = {
            media["id"]: media
            for media in self._fetch_batch(desc, ids, queries.MEDIA_BATCH_QS, label=f"{desc.kind.value}Batch")
        }

        payloads = _payloads(desc, (by_id[i] for i in ids if i in by_id))
        results = to_response_list(p for p in payloads if desc.accepts(p.kind))

        logger.info(
            "MEDIA_SYNC_BATCH_SUCCESS kind=%s requested=%d resolved=%d",
            desc.kind.value,
            len(ids),
            len(results),
        )
        return results

    def get_covers(self, kind: MediaKind, external_ids: Iterable[int]) -> dict[int, str | None]:
        """
        Cover URLs for many ids in one upstream call, keyed by AniList id in
        request order. Missing ids are dropped.
        """
        desc = descriptor_for(kind)
        ids = self._batch_ids(desc, external_ids)
        if not ids:
            return {}

        covers = {
            media["id"]: (media.get("coverImage") or {}).get("large")
            for media in self._fetch_batch(desc, ids, queries.MEDIA_COVERS_BATCH_QS, label=f"{desc.kind.value}Covers")
        }
        return {i: covers[i] for i in ids if i in covers}

    def _batch_ids(self, desc: KindDescriptor, external_ids: Iterable[int]) -> list[int]:
        ids = list(dict.fromkeys(external_ids))
        invalid = [i for i in ids if not _is_valid_id(i)]
        if invalid:
            logger.warning(
                "MEDIA_SYNC_BATCH_INVALID_IDS kind=%s dropped=%s",
                desc.kind.value,
                invalid,
            )
            ids = [i for i in ids if _is_valid_id(i)]
        if len(ids) > MAX_BATCH_IDS:
            logger.warning(
                "MEDIA_SYNC_BATCH_TRUNCATED kind=%s requested=%d limit=%d",
                desc.kind.value,
                len(ids),
                MAX_BATCH_IDS,
            )
            ids = ids[:MAX_BATCH_IDS]
        return ids

    def _fetch_batch(
        self,
        desc: KindDescriptor,
        ids: list[int],
        document: str,
        *,
        label: str,
    ) -> list[dict[str, Any]]:
        variables = desc.base_variables()
        variables.update(ids=ids, perPage=len(ids))
        data = self._client.execute(document, variables, label=label)
        media = (data.get("Page") or {}).get("media") or []
        return [m for m in media if m and m.get("id") is not None]

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(self, kind: MediaKind, text: str | None, paging: Paging | None = None) -> MediaPage:
        """
        Keyword search against AniList.

        Empty text lists cached records of the kind instead, with no upstream
        call.
        """
        desc = descriptor_for(kind)
        paging = paging or Paging()
        text = (text or "").strip()

        if not text:
            with self._db.get_session() as session:
                store = MediaStore(session)
                records = store.find_by_kind([desc.kind], paging.offset, paging.per_page)
                total = store.count_by_kind([desc.kind])
                items = to_response_list(records)
            return MediaPage(page_info=_local_page_info(total, paging), items=items)

        variables = desc.base_variables()
        variables.update(search=text, page=paging.page, perPage=paging.per_page)
        data = self._client.execute(queries.MEDIA_SEARCH_QS, variables, label=f"{desc.kind.value}Search")
        return self._upstream_page(desc, data)

    def search_by_criteria(
        self,
        kind: MediaKind,
        criteria: SearchCriteria | None = None,
        paging: Paging | None = None,
    ) -> MediaPage:
        desc = descriptor_for(kind)
        paging = paging or Paging()

        variables = desc.criteria_variables(criteria or SearchCriteria())
        variables.update(page=paging.page, perPage=paging.per_page)
        data = self._client.execute(queries.MEDIA_CRITERIA_QS, variables, label=f"{desc.kind.value}Criteria")
        return self._upstream_page(desc, data)

    def search_cached(self, kind: MediaKind, text: str | None, paging: Paging | None = None) -> MediaPage:
        """
        Local-only title search over cached records. Never calls AniList.
        """
        desc = descriptor_for(kind)
        paging = paging or Paging()
        text = (text or "").strip()

        with self._db.get_session() as session:
            store = MediaStore(session)
            records = store.find_by_title_substring(text, [desc.kind], paging.offset, paging.per_page)
            total = store.count_by_title_substring(text, [desc.kind])
            items = to_response_list(records)
        return MediaPage(page_info=_local_page_info(total, paging), items=items)

    @staticmethod
    def _upstream_page(desc: KindDescriptor, data: dict[str, Any]) -> MediaPage:
        page = data.get("Page") or {}
        payloads = _payloads(
            desc,
            (media for media in page.get("media") or [] if media and media.get("id") is not None),
        )
        items = to_response_list(p for p in payloads if desc.accepts(p.kind))
        return MediaPage(page_info=map_page_info(page.get("pageInfo")), items=items)

    # -------------------------------------------------------------------------
    # Detail views (upstream only)
    # -------------------------------------------------------------------------

    def get_overview(self, kind: MediaKind, external_id: int) -> MediaOverview:
        """
        Relations, first-page characters and staff, statistics and
        recommendations in a single upstream call.
        """
        desc = descriptor_for(kind)
        _validate_id(desc, external_id)
        media = self._fetch_media(desc, external_id, queries.MEDIA_OVERVIEW_QS, label=f"{desc.kind.value}Overview")
        _ensure_kind(desc, media, external_id)
        relations = (media.get("relations") or {}).get("edges") or []
        return MediaOverview(
            id_anilist=media["id"],
            relations=[e for e in relations if e],
            characters=map_connection(media.get("characters")),
            staff=map_connection(media.get("staff")),
            statistics=map_statistics(media),
            recommendations=map_connection(media.get("recommendations")),
        )

    def get_characters(self, kind: MediaKind, external_id: int, paging: Paging | None = None) -> MediaConnection:
        return self._fetch_connection(kind, external_id, paging, "characters", queries.MEDIA_CHARACTERS_QS)

    def get_staff(self, kind: MediaKind, external_id: int, paging: Paging | None = None) -> MediaConnection:
        return self._fetch_connection(kind, external_id, paging, "staff", queries.MEDIA_STAFF_QS)

    def get_statistics(self, kind: MediaKind, external_id: int) -> MediaStatistics:
        desc = descriptor_for(kind)
        _validate_id(desc, external_id)
        media = self._fetch_media(desc, external_id, queries.MEDIA_STATISTICS_QS, label=f"{desc.kind.value}Statistics")
        _ensure_kind(desc, media, external_id)
        return map_statistics(media)

    def _fetch_connection(
        self,
        kind: MediaKind,
        external_id: int,
        paging: Paging | None,
        field: str,
        document: str,
    ) -> MediaConnection:
        desc = descriptor_for(kind)
        _validate_id(desc, external_id)
        paging = paging or Paging()
        media = self._fetch_media(
            desc,
            external_id,
            document,
            label=f"{desc.kind.value}{field.title()}",
            page=paging.page,
            perPage=paging.per_page,
        )
        _ensure_kind(desc, media, external_id)
        return map_connection(media.get(field))

    # -------------------------------------------------------------------------
    # Upstream helpers
    # -------------------------------------------------------------------------

    def _fetch_media(
        self,
        desc: KindDescriptor,
        external_id: int,
        document: str,
        *,
        label: str,
        **extra_variables: Any,
    ) -> dict[str, Any]:
        """
        Execute a single-`Media` document. 404 and `Media: null` become
        NotFoundError.
        """
        variables = {"id": external_id, "type": desc.media_type, **extra_variables}
        try:
            data = self._client.execute(document, variables, label=label)
        except UpstreamError as e:
            if e.is_not_found:
                logger.info("MEDIA_SYNC_NOT_FOUND kind=%s external_id=%s", desc.kind.value, external_id)
                raise NotFoundError(f"{desc.kind.value.title()} {external_id} not found") from e
            raise

        media = data.get("Media")
        if not media:
            logger.info("MEDIA_SYNC_NOT_FOUND kind=%s external_id=%s", desc.kind.value, external_id)
            raise NotFoundError(f"{desc.kind.value.title()} {external_id} not found")
        return media
