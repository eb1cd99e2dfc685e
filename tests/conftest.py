"""
Shared fixtures for the test suite.

Centralizes the fake catalog and song factory so individual test files
don't need to repeat catalog stubbing boilerplate.
"""

import threading
from datetime import date

import pytest
from fastapi.testclient import TestClient

from api.deps import get_catalog_client, get_generation_config
from api.main import app
from core.config import GenerationConfig
from core.songs import SongRecord

# ---------------------------------------------------------------------------
# Song factory
# ---------------------------------------------------------------------------


def make_song(song_id: str, **overrides: object) -> SongRecord:
    """Build a ``SongRecord`` with neutral defaults.

    Defaults are chosen so that two default songs with different ids share
    no artist, title or genre; only year and duration match.
    """
    defaults: dict[str, object] = {
        "name": f"Title {song_id}",
        "artist_name": f"Artist {song_id}",
        "genre_names": (),
        "release_date": date(2000, 1, 1),
        "duration_millis": 200_000,
    }
    defaults.update(overrides)
    return SongRecord(id=song_id, **defaults)  # type: ignore[arg-type]


def distant_song(song_id: str) -> SongRecord:
    """A song that scores 0 against ``make_song`` defaults in guess_artist mode."""
    return make_song(
        song_id,
        genre_names=("Polka",),
        release_date=date(1950, 1, 1),
        duration_millis=900_000,
    )


# ---------------------------------------------------------------------------
# Fake catalog
# ---------------------------------------------------------------------------


class FakeCatalog:
    """In-memory ``CatalogClient`` — no network.

    Args:
        search_results: term -> songs, or an exception instance to raise.
        charts: chart songs, or an exception instance to raise.
        songs: id -> song for ``get_songs``.
        default_search: songs returned for terms not in *search_results*.
    """

    def __init__(
        self,
        search_results: dict[str, object] | None = None,
        charts: object = (),
        songs: dict[str, SongRecord] | None = None,
        default_search: list[SongRecord] | None = None,
    ) -> None:
        self.search_results = search_results or {}
        self.charts = charts
        self.songs = songs or {}
        self.default_search = default_search or []
        self.search_calls: list[tuple[str, int]] = []
        self.chart_calls: list[int] = []
        self._lock = threading.Lock()

    def search(self, term: str, limit: int) -> list[SongRecord]:
        with self._lock:
            self.search_calls.append((term, limit))
        result = self.search_results.get(term, self.default_search)
        if isinstance(result, Exception):
            raise result
        return list(result)[:limit]  # type: ignore[call-overload]

    def top_charts(self, limit: int) -> list[SongRecord]:
        self.chart_calls.append(limit)
        if isinstance(self.charts, Exception):
            raise self.charts
        return list(self.charts)[:limit]  # type: ignore[call-overload]

    def get_songs(self, ids: list[str]) -> list[SongRecord]:
        return [self.songs[i] for i in ids if i in self.songs]


@pytest.fixture()
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


# ---------------------------------------------------------------------------
# FastAPI test client fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def api_client(fake_catalog: FakeCatalog):
    """FastAPI ``TestClient`` with the catalog and config overridden.

    The fake catalog is reachable as ``client.catalog`` so tests can seed it.
    """
    app.dependency_overrides[get_catalog_client] = lambda: fake_catalog
    app.dependency_overrides[get_generation_config] = lambda: GenerationConfig()

    with TestClient(app) as c:
        c.catalog = fake_catalog  # type: ignore[attr-defined]
        yield c

    app.dependency_overrides.clear()
