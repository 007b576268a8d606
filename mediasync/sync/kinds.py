"""
Per-kind parameters for the one sync engine, plus the small option values the
service accepts.

Anime, manga and novels differ only in:
- the upstream media type they are fetched as (ANIME or MANGA),
- the upstream format filter narrowing MANGA into manga vs. novel,
- which search criteria the upstream accepts for them,
- which classified kind a fetched record must carry to count as a hit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from mediasync.client.formats import UPSTREAM_FORMATS, FormatGroup, kind_for_format
from mediasync.config.sync_settings import SyncSettings
from mediasync.persistence.tables import MediaKind

MAX_BATCH_IDS = 50
MAX_PER_PAGE = 50
DEFAULT_PER_PAGE = 20
DEFAULT_SORT = ("POPULARITY_DESC",)


@dataclass(frozen=True)
class Paging:
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    @classmethod
    def of(cls, page: int | None = None, per_page: int | None = None) -> "Paging":
        """
        Clamp caller input: page is 1-based, per_page is capped at 50.
        """
        page = max(1, page or 1)
        per_page = per_page if per_page and per_page > 0 else DEFAULT_PER_PAGE
        return cls(page=page, per_page=min(per_page, MAX_PER_PAGE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass(frozen=True)
class SearchCriteria:
    """
    Kind-agnostic filters. Fields a kind does not support are dropped when the
    upstream variables are built.
    """

    genres: tuple[str, ...] = ()
    status: str | None = None
    format: str | None = None
    season: str | None = None
    season_year: int | None = None
    country_of_origin: str | None = None
    sort: tuple[str, ...] = DEFAULT_SORT


@dataclass(frozen=True)
class SyncOptions:
    # None: every get_by_id refreshes from upstream.
    stale_after: timedelta | None = None

    @classmethod
    def from_settings(cls, settings: SyncSettings) -> "SyncOptions":
        return cls(stale_after=settings.stale_after)


@dataclass(frozen=True)
class KindDescriptor:
    kind: MediaKind
    media_type: str
    upstream_formats: tuple[str, ...] | None = None

    @property
    def is_anime(self) -> bool:
        return self.kind is MediaKind.ANIME

    def accepts(self, kind: MediaKind) -> bool:
        """
        True when a record classified as `kind` belongs to this descriptor.
        """
        return kind is self.kind

    def kind_of(self, media_format: str | None) -> MediaKind:
        """
        Classify an upstream object fetched as this descriptor's media type.
        """
        if self.is_anime:
            return MediaKind.ANIME
        return kind_for_format(media_format)

    def base_variables(self) -> dict[str, Any]:
        variables: dict[str, Any] = {"type": self.media_type}
        if self.upstream_formats:
            variables["format_in"] = list(self.upstream_formats)
        return variables

    def criteria_variables(self, criteria: SearchCriteria) -> dict[str, Any]:
        """
        Map SearchCriteria onto the upstream variable shape for this kind.

        Unsupported or empty criteria are omitted, never rejected.
        """
        variables = self.base_variables()
        variables["genres"] = list(criteria.genres) or None
        variables["status"] = criteria.status
        variables["sort"] = list(criteria.sort or DEFAULT_SORT)

        if self.is_anime:
            if criteria.format:
                variables["format_in"] = [criteria.format]
            variables["season"] = criteria.season
            variables["seasonYear"] = criteria.season_year
        else:
            # A requested format narrows the filter only if upstream accepts it for this kind.
            if criteria.format in (self.upstream_formats or ()):
                variables["format_in"] = [criteria.format]
            variables["countryOfOrigin"] = criteria.country_of_origin

        return {k: v for k, v in variables.items() if v is not None}


ANIME = KindDescriptor(kind=MediaKind.ANIME, media_type="ANIME")
MANGA = KindDescriptor(
    kind=MediaKind.MANGA,
    media_type="MANGA",
    upstream_formats=UPSTREAM_FORMATS[FormatGroup.MANGA_LIKE],
)
NOVEL = KindDescriptor(
    kind=MediaKind.NOVEL,
    media_type="MANGA",
    upstream_formats=UPSTREAM_FORMATS[FormatGroup.NOVEL_LIKE],
)

_DESCRIPTORS = {d.kind: d for d in (ANIME, MANGA, NOVEL)}


def descriptor_for(kind: MediaKind | str) -> KindDescriptor:
    return _DESCRIPTORS[MediaKind(kind)]
