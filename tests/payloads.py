# Upstream `Media` objects shaped like real AniList responses.


def anime_media(media_id=21, **overrides):
    media = {
        "id": media_id,
        "idMal": 21,
        "title": {"romaji": "One Piece", "english": "ONE PIECE", "native": "ワンピース"},
        "type": "ANIME",
        "format": "TV",
        "status": "RELEASING",
        "description": "Gold Roger was known as the <i>Pirate King</i>.<br>",
        "coverImage": {"extraLarge": "https://img/xl.jpg", "large": "https://img/l.jpg", "medium": "https://img/m.jpg"},
        "bannerImage": "https://img/banner.jpg",
        "isAdult": False,
        "averageScore": 87,
        "meanScore": 88,
        "synonyms": ["OP"],
        "genres": ["Action", "Adventure"],
        "tags": [{"id": 1, "name": "Pirates", "rank": 95, "isMediaSpoiler": False}],
        "popularity": 500000,
        "favourites": 80000,
        "source": "MANGA",
        "episodes": None,
        "duration": 24,
        "season": "FALL",
        "seasonYear": 1999,
        "studios": {"nodes": [{"id": 18, "name": "Toei Animation"}]},
        "trailer": {"id": "abc123", "site": "youtube"},
        "nextAiringEpisode": {"airingAt": 1700000000, "timeUntilAiring": 3600, "episode": 1100},
    }
    media.update(overrides)
    return media


def reading_media(media_id=30013, media_format="MANGA", **overrides):
    media = {
        "id": media_id,
        "idMal": 13,
        "title": {"romaji": "ONE PIECE", "english": "One Piece", "native": "ONE PIECE"},
        "type": "MANGA",
        "format": media_format,
        "status": "RELEASING",
        "coverImage": {"large": f"https://img/{media_id}.jpg"},
        "averageScore": 92,
        "popularity": 300000,
        "genres": ["Action"],
        "chapters": None,
        "volumes": 107,
        "countryOfOrigin": "JP",
        "staff": {
            "edges": [
                {"role": "Story & Art", "node": {"id": 1, "name": {"full": "Eiichiro Oda"}}},
                {"role": "Assistant", "node": {"id": 2, "name": {"full": "Someone Else"}}},
            ]
        },
    }
    media.update(overrides)
    return media
