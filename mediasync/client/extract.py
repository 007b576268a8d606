# Deterministic mapping between the AniList wire shape and the cache's storage
# and response shapes, per kind group (anime; manga + novel).
# No persistence. No HTTP. Pure mapping.

import logging
import math
import re
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from mediasync.client.formats import kind_for_format
from mediasync.errors import ValidationError
from mediasync.persistence.models import (
    ExternalMedia,
    MediaConnection,
    MediaRecordPayload,
    MediaResponse,
    MediaStatistics,
    MediaTitle,
    PageInfo,
)
from mediasync.persistence.tables import MediaItem, MediaKind, MediaStatus

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown Title"

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"</?[^>]+(>|$)")
# Order matters: &amp; is decoded before &lt;/&gt;.
_ENTITIES = (("&quot;", '"'), ("&amp;", "&"), ("&lt;", "<"), ("&gt;", ">"))

_TRAILER_URLS = {
    "youtube": "https://www.youtube.com/watch?v={id}",
    "dailymotion": "https://www.dailymotion.com/video/{id}",
}

# Staff roles that count as authorship for manga and novels.
_AUTHOR_ROLE_PREFIXES = ("story", "art", "original creator", "original story")


# -----------------------------------------------------------------------------
# Field normalizers
# -----------------------------------------------------------------------------


def normalize_score(score: Any) -> float | None:
    """
    Map an AniList 0-100 score onto the 0-10 scale.

    Anything missing, non-numeric, NaN or outside [0, 100] becomes None, never 0.
    Rounds half up to a whole point before scaling (84.5 -> 8.5).
    """
    if score is None or isinstance(score, bool):
        return None
    try:
        value = float(score)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or value < 0 or value > 100:
        return None
    return math.floor(value + 0.5) / 10


def clean_description(description: str | None) -> str | None:
    """
    Turn AniList's HTML description into plain text.
    """
    if not description:
        return None

    text = _BR_RE.sub("\n", description)
    text = _TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text.strip()


def map_status(status: str | None) -> MediaStatus:
    # Unknown upstream values (HIATUS, new enumerants) fall back to NOT_YET_RELEASED.
    try:
        return MediaStatus(status)
    except ValueError:
        return MediaStatus.NOT_YET_RELEASED


def extract_cover_image(dto: ExternalMedia) -> str | None:
    if dto.cover_image is None:
        return None
    return dto.cover_image.large or None


def extract_studio(studios: Mapping[str, Any] | None) -> str | None:
    nodes = (studios or {}).get("nodes") or []
    if nodes and isinstance(nodes[0], dict):
        return nodes[0].get("name") or None
    return None


def build_trailer_url(trailer: Mapping[str, Any] | None) -> str | None:
    if not trailer or not trailer.get("id"):
        return None
    template = _TRAILER_URLS.get((trailer.get("site") or "").lower())
    return template.format(id=trailer["id"]) if template else None


def extract_authors(staff: Mapping[str, Any] | None) -> list[dict[str, str]] | None:
    """
    Keep Story / Art / Original Creator credits from the staff connection.
    """
    authors = []
    for edge in (staff or {}).get("edges") or []:
        role = (edge.get("role") or "").strip()
        name = (((edge.get("node") or {}).get("name") or {}).get("full") or "").strip()
        if name and role.lower().startswith(_AUTHOR_ROLE_PREFIXES):
            authors.append({"name": name, "role": role})
    return authors or None


def media_category(kind: MediaKind) -> str | None:
    if kind is MediaKind.ANIME:
        return None
    return "novel" if kind is MediaKind.NOVEL else "manga"


# -----------------------------------------------------------------------------
# Upstream -> storage
# -----------------------------------------------------------------------------


def parse_external(raw: Mapping[str, Any] | ExternalMedia) -> ExternalMedia:
    if isinstance(raw, ExternalMedia):
        return raw
    try:
        return ExternalMedia.model_validate(raw)
    except PydanticValidationError as e:
        logger.error("MEDIA_ADAPTER_INVALID_PAYLOAD errors=%s", e.errors())
        raise ValidationError("Invalid AniList media payload", {"errors": e.errors()}) from e


def _anime_fields(dto: ExternalMedia) -> dict[str, Any]:
    return {
        "kind": MediaKind.ANIME,
        "episode_count": dto.episodes,
        "duration_min": dto.duration,
        "season": dto.season,
        "season_year": dto.season_year,
        "studio": extract_studio(dto.studios),
        "trailer_url": build_trailer_url(dto.trailer),
        "next_airing_episode": dto.next_airing_episode,
    }


def _reading_fields(dto: ExternalMedia) -> dict[str, Any]:
    return {
        "kind": kind_for_format(dto.format),
        "chapters": dto.chapters,
        "volumes": dto.volumes,
        "authors": extract_authors(dto.staff),
        "country_of_origin": dto.country_of_origin,
    }


def from_external(raw: Mapping[str, Any] | ExternalMedia, media_type: str) -> MediaRecordPayload:
    """
    Build the storage payload for one AniList `Media` object.

    Args:
        raw: The `Media` dict (or an already parsed ExternalMedia).
        media_type: Upstream media type the object was fetched as ("ANIME" or
            "MANGA"). Picks the kind-group extension fields.

    Raises:
        ValidationError: `id` is missing or the payload is malformed.
    """
    dto = parse_external(raw)
    if not dto.id:
        logger.error("MEDIA_ADAPTER_MISSING_ID media_type=%s", media_type)
        raise ValidationError("Invalid AniList data: missing required id field")

    title = dto.title
    extension = _anime_fields(dto) if media_type == "ANIME" else _reading_fields(dto)

    return MediaRecordPayload(
        external_id=dto.id,
        id_mal=dto.id_mal or None,
        media_type=media_type,
        title_romaji=(title.romaji if title else None) or UNKNOWN_TITLE,
        title_english=(title.english if title else None) or None,
        title_native=(title.native if title else None) or None,
        status=map_status(dto.status),
        format=dto.format or None,
        cover_image=extract_cover_image(dto),
        banner_image=dto.banner_image or None,
        is_adult=bool(dto.is_adult),
        average_score=normalize_score(dto.average_score),
        mean_score=normalize_score(dto.mean_score),
        description=clean_description(dto.description),
        synonyms=dto.synonyms or None,
        genres=dto.genres or None,
        tags=dto.tags or None,
        popularity=dto.popularity,
        favorites=dto.favourites,
        source=dto.source or None,
        **extension,
    )


# -----------------------------------------------------------------------------
# Storage -> response
# -----------------------------------------------------------------------------


def to_response(record: MediaItem | MediaRecordPayload | None) -> MediaResponse | None:
    """
    Shape a stored record (or an unsaved payload) as the client-facing DTO.

    Raises:
        ValidationError: the record has no external id, which means the row is
            corrupt.
    """
    if record is None:
        return None
    if not record.external_id:
        logger.error("MEDIA_ADAPTER_CORRUPT_RECORD id=%s", getattr(record, "id", None))
        raise ValidationError("Invalid media record: missing external id")

    kind = MediaKind(record.kind)
    is_anime = kind is MediaKind.ANIME

    return MediaResponse(
        id_anilist=record.external_id,
        mal_id=record.id_mal,
        title=MediaTitle(
            romaji=record.title_romaji,
            english=record.title_english,
            native=record.title_native,
        ),
        type=kind,
        format=record.format,
        media_category=media_category(kind),
        status=record.status,
        cover_image=record.cover_image,
        banner_image=record.banner_image,
        is_adult=bool(record.is_adult),
        score=record.average_score,
        mean_score=record.mean_score,
        description=record.description,
        synonyms=record.synonyms,
        genres=record.genres,
        tags=record.tags,
        popularity=record.popularity,
        favorites=record.favorites,
        source=record.source,
        episodes=record.episode_count if is_anime else None,
        duration=record.duration_min if is_anime else None,
        season=record.season if is_anime else None,
        season_year=record.season_year if is_anime else None,
        studio=record.studio if is_anime else None,
        trailer_url=record.trailer_url if is_anime else None,
        next_airing_episode=record.next_airing_episode if is_anime else None,
        chapters=None if is_anime else record.chapters,
        volumes=None if is_anime else record.volumes,
        author=None if is_anime else record.authors,
        country_of_origin=None if is_anime else record.country_of_origin,
        last_synced_at=getattr(record, "last_synced_at", None),
    )


def to_response_list(records: Iterable[MediaItem | MediaRecordPayload | None]) -> list[MediaResponse]:
    return [r for r in (to_response(record) for record in records) if r is not None]


# -----------------------------------------------------------------------------
# Page / connection helpers
# -----------------------------------------------------------------------------


def map_page_info(raw: Mapping[str, Any] | None) -> PageInfo:
    return PageInfo.model_validate(raw or {})


def map_connection(raw: Mapping[str, Any] | None) -> MediaConnection:
    raw = raw or {}
    page_info = raw.get("pageInfo")
    return MediaConnection(
        page_info=map_page_info(page_info) if page_info else None,
        edges=[e for e in raw.get("edges") or [] if e],
    )


def map_statistics(media: Mapping[str, Any]) -> MediaStatistics:
    stats = media.get("stats") or {}
    return MediaStatistics(
        id_anilist=media["id"],
        score=normalize_score(media.get("averageScore")),
        mean_score=normalize_score(media.get("meanScore")),
        rankings=[r for r in media.get("rankings") or [] if r],
        score_distribution=stats.get("scoreDistribution") or [],
        status_distribution=stats.get("statusDistribution") or [],
    )
