"""
Pydantic schemas on both sides of the media cache.

- ExternalMedia: the AniList `Media` object as it arrives on the wire.
- MediaRecordPayload: the storage-shaped create/replace payload.
- MediaResponse and friends: the DTOs handed to the presentation layer.

Design notes:
- Wire models ignore unknown fields so new AniList fields never break ingestion.
- Scores are typed `Any` on the wire; normalization decides what is usable.
- Response models use camelCase aliases; serialize with model_dump(by_alias=True).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from mediasync.persistence.tables import MediaKind, MediaStatus


# -----------------------------------------------------------------------------
# Upstream wire shape
# -----------------------------------------------------------------------------


class ExternalTitle(BaseModel):
    model_config = ConfigDict(extra="ignore")

    romaji: str | None = None
    english: str | None = None
    native: str | None = None


class ExternalCoverImage(BaseModel):
    model_config = ConfigDict(extra="ignore",
                              populate_by_name=True)

    extra_large: str | None = Field(default=None, alias="extraLarge")
    large: str | None = None
    medium: str | None = None


class ExternalMedia(BaseModel):
    """
    AniList `Media` object. Every field is optional because lightweight
    queries (batch, search) select only a subset.
    """

    model_config = ConfigDict(extra="ignore",
                              populate_by_name=True)

    id: int | None = None
    id_mal: int | None = Field(default=None, alias="idMal")

    title: ExternalTitle | None = None
    type: str | None = None
    format: str | None = None
    status: str | None = None
    description: str | None = None

    cover_image: ExternalCoverImage | None = Field(default=None, alias="coverImage")
    banner_image: str | None = Field(default=None, alias="bannerImage")

    is_adult: bool | None = Field(default=None, alias="isAdult")
    # Raw 0-100 values; may be missing, null, or garbage.
    average_score: Any = Field(default=None, alias="averageScore")
    mean_score: Any = Field(default=None, alias="meanScore")

    synonyms: list[str] | None = None
    genres: list[str] | None = None
    tags: list[dict[str, Any]] | None = None
    popularity: int | None = None
    favourites: int | None = None
    source: str | None = None

    # Anime
    episodes: int | None = None
    duration: int | None = None
    season: str | None = None
    season_year: int | None = Field(default=None, alias="seasonYear")
    studios: dict[str, Any] | None = None
    trailer: dict[str, Any] | None = None
    next_airing_episode: dict[str, Any] | None = Field(default=None, alias="nextAiringEpisode")

    # Manga / novel
    chapters: int | None = None
    volumes: int | None = None
    country_of_origin: str | None = Field(default=None, alias="countryOfOrigin")
    staff: dict[str, Any] | None = None


# -----------------------------------------------------------------------------
# Storage payload
# -----------------------------------------------------------------------------


class MediaRecordPayload(BaseModel):
    """
    Upsert key: external_id

    Every persisted column except surrogate id, timestamps and the soft-delete
    marker. Absent values are explicit None so an update replaces, never merges.
    """

    model_config = ConfigDict(extra="forbid")

    external_id: int
    id_mal: int | None = None
    id_mangadex: str | None = None
    media_type: Literal["ANIME", "MANGA"]
    kind: MediaKind

    title_romaji: str
    title_english: str | None = None
    title_native: str | None = None

    status: MediaStatus
    format: str | None = None
    cover_image: str | None = None
    banner_image: str | None = None
    is_adult: bool = False
    average_score: float | None = Field(default=None, ge=0, le=10)
    mean_score: float | None = Field(default=None, ge=0, le=10)
    description: str | None = None

    synonyms: list[str] | None = None
    genres: list[str] | None = None
    tags: list[dict[str, Any]] | None = None
    popularity: int | None = None
    favorites: int | None = None

    episode_count: int | None = None
    duration_min: int | None = None
    season: str | None = None
    season_year: int | None = None
    studio: str | None = None
    source: str | None = None
    trailer_url: str | None = None
    next_airing_episode: dict[str, Any] | None = None

    chapters: int | None = None
    volumes: int | None = None
    authors: list[dict[str, str]] | None = None
    country_of_origin: str | None = None


# -----------------------------------------------------------------------------
# Presentation DTOs
# -----------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MediaTitle(_CamelModel):
    romaji: str
    english: str | None = None
    native: str | None = None


class MediaResponse(_CamelModel):
    id_anilist: int = Field(alias="idAnilist")
    mal_id: int | None = Field(default=None, alias="malId")
    title: MediaTitle
    type: MediaKind
    format: str | None = None
    # Only set for manga/novel rows.
    media_category: Literal["manga", "novel"] | None = Field(default=None, alias="mediaCategory")
    status: MediaStatus

    cover_image: str | None = Field(default=None, alias="coverImage")
    banner_image: str | None = Field(default=None, alias="bannerImage")
    is_adult: bool = Field(default=False, alias="isAdult")
    score: float | None = None
    mean_score: float | None = Field(default=None, alias="meanScore")
    description: str | None = None
    synonyms: list[str] | None = None
    genres: list[str] | None = None
    tags: list[dict[str, Any]] | None = None
    popularity: int | None = None
    favorites: int | None = None

    episodes: int | None = None
    duration: int | None = None
    season: str | None = None
    season_year: int | None = Field(default=None, alias="seasonYear")
    studio: str | None = None
    source: str | None = None
    trailer_url: str | None = Field(default=None, alias="trailerUrl")
    next_airing_episode: dict[str, Any] | None = Field(default=None, alias="nextAiringEpisode")

    chapters: int | None = None
    volumes: int | None = None
    author: list[dict[str, str]] | None = None
    country_of_origin: str | None = Field(default=None, alias="countryOfOrigin")

    last_synced_at: datetime | None = Field(default=None, alias="lastSyncedAt")


class PageInfo(_CamelModel):
    total: int = 0
    current_page: int = Field(default=1, alias="currentPage")
    last_page: int = Field(default=1, alias="lastPage")
    has_next_page: bool = Field(default=False, alias="hasNextPage")
    per_page: int | None = Field(default=None, alias="perPage")


class MediaPage(_CamelModel):
    page_info: PageInfo = Field(alias="pageInfo")
    items: list[MediaResponse] = Field(default_factory=list)


class MediaConnection(_CamelModel):
    """
    One page of a media sub-connection (characters, staff, recommendations).

    Edges are passed through as AniList shaped them.
    """

    page_info: PageInfo | None = Field(default=None, alias="pageInfo")
    edges: list[dict[str, Any]] = Field(default_factory=list)


class MediaStatistics(_CamelModel):
    id_anilist: int = Field(alias="idAnilist")
    score: float | None = None
    mean_score: float | None = Field(default=None, alias="meanScore")
    rankings: list[dict[str, Any]] = Field(default_factory=list)
    score_distribution: list[dict[str, Any]] = Field(default_factory=list, alias="scoreDistribution")
    status_distribution: list[dict[str, Any]] = Field(default_factory=list, alias="statusDistribution")


class MediaOverview(_CamelModel):
    id_anilist: int = Field(alias="idAnilist")
    relations: list[dict[str, Any]] = Field(default_factory=list)
    characters: MediaConnection = Field(default_factory=MediaConnection)
    staff: MediaConnection = Field(default_factory=MediaConnection)
    statistics: MediaStatistics
    recommendations: MediaConnection = Field(default_factory=MediaConnection)
