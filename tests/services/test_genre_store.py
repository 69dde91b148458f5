"""Tests for GenreStore and genre sync."""

from __future__ import annotations

import pytest

from catalogvault.services.fetch_scheduler import FetchScheduler
from catalogvault.services.genre_store import GenreStore, sync_genres
from catalogvault.services.tmdb import TMDBClient, TMDBGenre
from catalogvault.shared.constants import Cache
from catalogvault.shared.errors import ErrorCode, InfrastructureError

GENRES = [TMDBGenre(id=28, name="Action"), TMDBGenre(id=35, name="Comedy")]


class TestGenreStore:
    def test_store_and_lookup(self, cache_db) -> None:
        # Given
        store = GenreStore(cache_db)

        # When
        inserted = store.store_genres(GENRES, "movies", "en-US")

        # Then
        assert inserted == 2
        assert store.get_genre_id("Comedy", "movie", "en-US") == 35
        assert store.get_genre_name(28, "movies", "en-US") == "Action"
        assert store.has_language("en-US") is True
        assert store.has_language("fr-FR") is False

    def test_lookup_is_scoped_by_media_type_and_language(self, cache_db) -> None:
        store = GenreStore(cache_db)
        store.store_genres(GENRES, "movie", "en-US")

        assert store.get_genre_id("Action", "tv", "en-US") is None
        assert store.get_genre_id("Action", "movie", "de-DE") is None

    def test_existing_rows_are_kept(self, cache_db) -> None:
        store = GenreStore(cache_db)
        store.store_genres(GENRES, "movie", "en-US")

        inserted = store.store_genres(
            [TMDBGenre(id=28, name="Renamed"), TMDBGenre(id=18, name="Drama")],
            "movie",
            "en-US",
        )

        assert inserted == 1
        assert store.get_genre_name(28, "movie", "en-US") == "Action"

    def test_import_is_all_or_nothing(self, cache_db, mocker) -> None:
        """A failing row rolls back every row of the import."""
        # Given a NOT NULL violation on the second genre
        store = GenreStore(cache_db)
        bad = mocker.Mock(id=99, spec=["id", "name"])
        bad.name = None

        # When
        with pytest.raises(InfrastructureError) as exc_info:
            store.store_genres([GENRES[0], bad], "movie", "en-US")

        # Then
        assert exc_info.value.code == ErrorCode.CACHE_WRITE_FAILED
        count = cache_db.conn.execute(f"SELECT COUNT(*) FROM {Cache.TABLE_GENRES}").fetchone()[0]
        assert count == 0


class TestSyncGenres:
    @pytest.mark.asyncio
    async def test_sync_stores_movie_and_tv(self, cache_db, upstream_factory) -> None:
        # Given
        upstream = upstream_factory()
        scheduler = FetchScheduler("tmdb", upstream, max_concurrent=2)
        client = TMDBClient(scheduler, cache_db, api_key="key")
        store = GenreStore(cache_db)

        # When
        counts = await sync_genres(client, store, "en-US")
        await scheduler.aclose()

        # Then
        assert counts == {"movie": 3, "tv": 3}
        assert store.get_genre_id("Drama", "tv", "en-US") == 18
        assert [task.url.rsplit("/", 2)[-2] for task in upstream.calls] == ["movie", "tv"]
