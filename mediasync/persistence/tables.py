"""
SQLAlchemy ORM models for the AniList media cache.

This module provides SQLAlchemy 2.0 typed declarative models that mirror the
corresponding Pydantic payloads in `models.py`.

Storage notes:
- Anime, manga and novels share one table (`media_items`), told apart by the
  closed `kind` enum column. `format` is informational only.
- `synonyms`, `genres`, `tags`, `authors` and `next_airing_episode` are JSON.
- `external_id` (the AniList id) is the upsert key and is unique.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base class for all ORM models in this module.

    Subclassing `DeclarativeBase` enables SQLAlchemy 2.0 typed mappings via
    `Mapped[...]` and `mapped_column(...)`.
    """


class MediaKind(str, Enum):
    """
    Logical media kind. ANIME never changes; MANGA vs. NOVEL follows the
    upstream format and is re-derived on every refresh.
    """

    ANIME = "ANIME"
    MANGA = "MANGA"
    NOVEL = "NOVEL"


class MediaStatus(str, Enum):
    """
    Release lifecycle status as stored locally.

    Upstream values outside this set are folded into NOT_YET_RELEASED.
    """

    RELEASING = "RELEASING"
    FINISHED = "FINISHED"
    NOT_YET_RELEASED = "NOT_YET_RELEASED"
    CANCELLED = "CANCELLED"


class MediaItem(Base):
    """
    One cached AniList media entry.

    Identity:
    - `id`: internal surrogate key, opaque to callers.
    - `external_id`: AniList id. Unique, immutable, the cache key.
    - `id_mal`: MyAnimeList id, unique per upstream media type. MAL numbers
      anime and manga separately, so the same value can appear once for each.
    - `id_mangadex`: secondary id, unique when present.

    Sync bookkeeping:
    - `last_synced_at` advances only on a successful refresh.
    - `deleted_at` belongs to the host application; this layer never writes it.
    """

    __tablename__ = "media_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    external_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    id_mal: Mapped[int | None] = mapped_column(Integer, nullable=True)
    id_mangadex: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)

    # Upstream type the row was fetched as (ANIME or MANGA). Never changes.
    media_type: Mapped[str] = mapped_column(String(8), nullable=False)
    kind: Mapped[MediaKind] = mapped_column(
        SAEnum(MediaKind, name="media_kind"),
        nullable=False,
    )

    title_romaji: Mapped[str] = mapped_column(String(500), nullable=False)
    title_english: Mapped[str | None] = mapped_column(String(500), nullable=True)
    title_native: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[MediaStatus] = mapped_column(
        SAEnum(MediaStatus, name="media_status"),
        nullable=False,
    )
    format: Mapped[str | None] = mapped_column(String(32), nullable=True)

    cover_image: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    banner_image: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    is_adult: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    average_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    mean_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    synonyms: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    popularity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    favorites: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Anime
    episode_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    season: Mapped[str | None] = mapped_column(String(16), nullable=True)
    season_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    studio: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    trailer_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    next_airing_episode: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Manga / novel
    chapters: Mapped[int | None] = mapped_column(Integer, nullable=True)
    volumes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    authors: Mapped[list[dict[str, str]] | None] = mapped_column(JSON, nullable=True)
    country_of_origin: Mapped[str | None] = mapped_column(String(8), nullable=True)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("id_mal", "media_type", name="uq_media_items_id_mal_media_type"),
        Index("ix_media_items_kind", "kind"),
        Index("ix_media_items_title_romaji", "title_romaji"),
        Index("ix_media_items_last_synced_at", "last_synced_at"),
    )
