from datetime import datetime

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from mediasync.client.extract import from_external
from mediasync.persistence.stores.media import MediaStore
from mediasync.persistence.tables import MediaItem, MediaKind

from payloads import anime_media, reading_media


def _upsert(db, payload):
    with db.get_session() as session:
        with session.begin():
            return MediaStore(session).upsert_by_external_id(payload)


def _row_count(db):
    with db.get_session() as session:
        return session.execute(select(func.count(MediaItem.id))).scalar_one()


# --- 1. UPSERT (Replace, not merge) ---
def test_upsert_creates_row_with_sync_timestamp(db):
    record = _upsert(db, from_external(anime_media(), "ANIME"))

    assert record.id is not None
    assert record.kind is MediaKind.ANIME
    assert isinstance(record.last_synced_at, datetime)
    assert record.created_at == record.updated_at == record.last_synced_at


def test_upsert_twice_replaces_every_field(db):
    first = from_external(anime_media(studios={"nodes": [{"name": "Old Studio"}]}, averageScore=50), "ANIME")
    second = from_external(
        anime_media(
            title={"romaji": "Renamed"},
            studios=None,
            averageScore=90,
            genres=None,
        ),
        "ANIME",
    )

    created = _upsert(db, first)
    updated = _upsert(db, second)

    assert _row_count(db) == 1
    assert updated.id == created.id
    assert updated.title_romaji == "Renamed"
    assert updated.title_english is None
    assert updated.studio is None
    assert updated.genres is None
    assert updated.average_score == 9.0
    assert updated.created_at == created.created_at
    assert updated.last_synced_at >= created.last_synced_at


def test_upsert_reclassifies_reading_kind_but_keeps_deleted_at(db):
    _upsert(db, from_external(reading_media(media_format="MANGA"), "MANGA"))
    with db.get_session() as session:
        with session.begin():
            session.execute(update(MediaItem).values(deleted_at=datetime(2024, 1, 1)))

    # Same id now reported as a novel.
    record = _upsert(db, from_external(reading_media(media_format="NOVEL"), "MANGA"))

    assert _row_count(db) == 1
    assert record.kind is MediaKind.NOVEL
    assert record.format == "NOVEL"
    assert record.deleted_at == datetime(2024, 1, 1)


def test_upsert_never_turns_an_anime_row_into_another_kind(db):
    _upsert(db, from_external(anime_media(), "ANIME"))

    # A reading-group payload for the same AniList id must not rewrite the kind.
    record = _upsert(db, from_external(reading_media(media_id=21, idMal=None, media_format="NOVEL"), "MANGA"))

    assert record.kind is MediaKind.ANIME
    assert record.media_type == "ANIME"


def test_interleaved_cold_miss_converges_on_one_row(db):
    # Logic: Two writers both see a miss, then both create. The loser's insert
    # must turn into an update instead of a uniqueness failure.
    payload_a = from_external(anime_media(title={"romaji": "Writer A"}), "ANIME")
    payload_b = from_external(anime_media(title={"romaji": "Writer B"}), "ANIME")

    with db.get_session() as session_a, db.get_session() as session_b:
        assert MediaStore(session_a).find_by_external_id(21) is None
        assert MediaStore(session_b).find_by_external_id(21) is None
        session_a.rollback()
        session_b.rollback()

        with session_a.begin():
            MediaStore(session_a).upsert_by_external_id(payload_a)
        with session_b.begin():
            winner = MediaStore(session_b).upsert_by_external_id(payload_b)

    assert _row_count(db) == 1
    assert winner.title_romaji == "Writer B"


# --- 2. LOOKUPS ---
def test_find_by_ids(db):
    _upsert(db, from_external(anime_media(media_id=1, idMal=101), "ANIME"))
    _upsert(db, from_external(anime_media(media_id=2, idMal=102), "ANIME"))

    with db.get_session() as session:
        store = MediaStore(session)
        assert store.find_by_external_id(1).id_mal == 101
        assert store.find_by_external_id(3) is None
        assert store.find_by_mal_id(102, "ANIME").external_id == 2
        assert store.find_by_mal_id(999, "ANIME") is None
        assert store.find_by_mal_id(102, "MANGA") is None


def test_same_mal_id_is_allowed_once_per_media_type(db):
    # MAL numbers anime and manga independently, so idMal 1 exists on both sides.
    _upsert(db, from_external(anime_media(media_id=1, idMal=1), "ANIME"))
    _upsert(db, from_external(reading_media(media_id=30001, idMal=1), "MANGA"))

    assert _row_count(db) == 2
    with db.get_session() as session:
        store = MediaStore(session)
        assert store.find_by_mal_id(1, "ANIME").external_id == 1
        assert store.find_by_mal_id(1, "MANGA").external_id == 30001


def test_same_mal_id_twice_within_a_media_type_is_rejected(db):
    _upsert(db, from_external(anime_media(media_id=1, idMal=5), "ANIME"))

    with pytest.raises(IntegrityError):
        _upsert(db, from_external(anime_media(media_id=2, idMal=5), "ANIME"))


def test_find_many_omits_missing_and_keeps_request_order(db):
    for media_id in (1, 2, 3):
        _upsert(db, from_external(anime_media(media_id=media_id, idMal=None), "ANIME"))

    with db.get_session() as session:
        records = MediaStore(session).find_many_by_external_ids([3, 42, 1, 3])

    assert [r.external_id for r in records] == [3, 1]


# --- 3. KIND PARTITION ---
def test_find_by_kind_partitions_shared_rows(db):
    _upsert(db, from_external(anime_media(media_id=1, idMal=None), "ANIME"))
    _upsert(db, from_external(reading_media(media_id=2, idMal=None, media_format="MANGA"), "MANGA"))
    _upsert(db, from_external(reading_media(media_id=3, idMal=None, media_format="ONE_SHOT"), "MANGA"))
    _upsert(db, from_external(reading_media(media_id=4, idMal=None, media_format="LIGHT_NOVEL"), "MANGA"))

    with db.get_session() as session:
        store = MediaStore(session)
        manga = store.find_by_kind([MediaKind.MANGA], 0, 20)
        novels = store.find_by_kind([MediaKind.NOVEL], 0, 20)

        assert sorted(r.external_id for r in manga) == [2, 3]
        assert [r.external_id for r in novels] == [4]
        assert store.count_by_kind([MediaKind.MANGA, MediaKind.NOVEL]) == 3
        assert store.count_by_kind([MediaKind.ANIME]) == 1


def test_find_by_kind_pages_best_rated_first(db):
    for media_id, score in ((1, 60), (2, 90), (3, None), (4, 75)):
        _upsert(db, from_external(anime_media(media_id=media_id, idMal=None, averageScore=score), "ANIME"))

    with db.get_session() as session:
        store = MediaStore(session)
        first = store.find_by_kind([MediaKind.ANIME], 0, 2)
        second = store.find_by_kind([MediaKind.ANIME], 2, 2)

    assert [r.external_id for r in first] == [2, 4]
    assert [r.external_id for r in second] == [1, 3]


# --- 4. TITLE SEARCH ---
def test_title_substring_is_case_insensitive_across_titles(db):
    _upsert(db, from_external(anime_media(media_id=1, idMal=None, title={"romaji": "Shingeki no Kyojin", "english": "Attack on Titan"}), "ANIME"))
    _upsert(db, from_external(anime_media(media_id=2, idMal=None, title={"romaji": "Titan Cross", "english": None}), "ANIME"))
    _upsert(db, from_external(anime_media(media_id=3, idMal=None, title={"romaji": "Other"}), "ANIME"))

    with db.get_session() as session:
        store = MediaStore(session)
        assert store.count_by_title_substring("tItAn") == 2
        found = store.find_by_title_substring("KYOJIN", [MediaKind.ANIME], 0, 20)
        assert [r.external_id for r in found] == [1]
        assert store.count_by_title_substring("titan", [MediaKind.MANGA]) == 0


def test_title_substring_escapes_wildcards(db):
    _upsert(db, from_external(anime_media(media_id=1, idMal=None, title={"romaji": "100% Pascal-sensei"}), "ANIME"))
    _upsert(db, from_external(anime_media(media_id=2, idMal=None, title={"romaji": "1000 Nights"}), "ANIME"))

    with db.get_session() as session:
        assert MediaStore(session).count_by_title_substring("100%") == 1


def test_soft_deleted_rows_are_hidden_from_listings(db):
    _upsert(db, from_external(anime_media(media_id=1, idMal=None), "ANIME"))
    _upsert(db, from_external(anime_media(media_id=2, idMal=None), "ANIME"))
    with db.get_session() as session:
        with session.begin():
            session.execute(
                update(MediaItem).where(MediaItem.external_id == 2).values(deleted_at=datetime(2024, 1, 1))
            )

    with db.get_session() as session:
        store = MediaStore(session)
        assert [r.external_id for r in store.find_by_kind([MediaKind.ANIME], 0, 20)] == [1]
        assert store.count_by_kind([MediaKind.ANIME]) == 1
        assert store.count_by_title_substring("one piece") == 1
        # Identity lookups still see the row.
        assert store.find_by_external_id(2) is not None


def test_upsert_rejects_unsupported_dialect(db, monkeypatch):
    with db.get_session() as session:
        store = MediaStore(session)
        monkeypatch.setattr(session.get_bind().dialect, "name", "mysql")
        try:
            with pytest.raises(NotImplementedError):
                store.upsert_by_external_id(from_external(anime_media(), "ANIME"))
        finally:
            monkeypatch.undo()
