"""
Format classifier for the manga/novel kinds that share storage.

Closed, table-driven membership: only NOVEL and LIGHT_NOVEL are novel-like.
Everything else, including None and enumerants AniList adds later, is
manga-like.
"""

from __future__ import annotations

from enum import Enum

from mediasync.persistence.tables import MediaKind


class FormatGroup(str, Enum):
    MANGA_LIKE = "MANGA_LIKE"
    NOVEL_LIKE = "NOVEL_LIKE"


_NOVEL_LIKE_FORMATS = frozenset({"NOVEL", "LIGHT_NOVEL"})

_KIND_BY_GROUP = {
    FormatGroup.MANGA_LIKE: MediaKind.MANGA,
    FormatGroup.NOVEL_LIKE: MediaKind.NOVEL,
}

# format_in filters sent upstream. AniList's MediaFormat enum rejects values it
# does not know (LIGHT_NOVEL, MANHWA), so these are narrower than the table above.
UPSTREAM_FORMATS: dict[FormatGroup, tuple[str, ...]] = {
    FormatGroup.MANGA_LIKE: ("MANGA", "ONE_SHOT"),
    FormatGroup.NOVEL_LIKE: ("NOVEL",),
}


def classify(media_format: str | None) -> FormatGroup:
    if media_format in _NOVEL_LIKE_FORMATS:
        return FormatGroup.NOVEL_LIKE
    return FormatGroup.MANGA_LIKE


def kind_for_format(media_format: str | None) -> MediaKind:
    return _KIND_BY_GROUP[classify(media_format)]
