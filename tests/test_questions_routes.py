"""Tests for api/routes/questions.py and the app-level endpoints.

Uses the ``api_client`` fixture from conftest: the catalog dependency is a
``FakeCatalog`` reachable as ``api_client.catalog``.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

from conftest import distant_song, make_song
from catalog.apple_music import CatalogError
from core.search_terms import STRATEGY_KINDS, STRATEGY_REGISTRY
from infrastructure import metrics
from infrastructure.circuit_breaker import CircuitOpenError


def _seed_selected(catalog, *ids: str) -> None:
    for song_id in ids:
        catalog.songs[song_id] = make_song(
            song_id, genre_names=("Pop",), release_date=date(1994, 1, 1)
        )


def _distant_pool(n: int, prefix: str = "p"):
    return [distant_song(f"{prefix}{i}") for i in range(n)]


# ---------------------------------------------------------------------------
# POST /questions/generate
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_happy_path(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1", "s2")
        api_client.catalog.default_search = _distant_pool(30)

        resp = api_client.post(
            "/questions/generate",
            json={"selectedSongIds": ["s1", "s2"], "difficulty": "easy"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["totalQuestions"] == 2
        first = body["questions"][0]
        assert first["questionNumber"] == 1
        assert first["correctSong"]["id"] == "s1"
        assert first["correctSong"]["genre"] == "Pop"
        assert first["correctSong"]["year"] == 1994
        assert len(first["detractors"]) == 3
        assert {o["id"] for o in first["options"]} == {
            "s1",
            *(d["id"] for d in first["detractors"]),
        }
        assert first["difficulty"] == "easy"
        assert first["mode"] == "guess_artist"
        assert first["degraded"] is False

    def test_meta_and_request_id(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1")
        api_client.catalog.default_search = _distant_pool(30)

        resp = api_client.post("/questions/generate", json={"selectedSongIds": ["s1"]})

        meta = resp.json()["meta"]
        assert meta["poolSize"] == 30
        assert meta["usedChartFallback"] is False
        assert meta["failedTerms"] == []
        assert resp.headers["X-Request-Id"] == meta["requestId"]

    def test_search_term_derived_from_selected_song(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1")
        api_client.catalog.default_search = _distant_pool(30)

        api_client.post("/questions/generate", json={"selectedSongIds": ["s1"]})

        assert api_client.catalog.search_calls == [("Pop 1990s", 50)]

    def test_selected_songs_never_detractors_of_themselves(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1", "s2", "s3")
        api_client.catalog.default_search = _distant_pool(30)

        body = api_client.post(
            "/questions/generate",
            json={"selectedSongIds": ["s1", "s2", "s3"], "difficulty": "hard"},
        ).json()

        for question in body["questions"]:
            assert question["correctSong"]["id"] not in {d["id"] for d in question["detractors"]}

    def test_degraded_when_pool_small(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1")
        api_client.catalog.default_search = _distant_pool(1)

        body = api_client.post(
            "/questions/generate",
            json={"selectedSongIds": ["s1"], "numberOfDetractors": 3},
        ).json()

        assert body["questions"][0]["degraded"] is True
        assert len(body["questions"][0]["detractors"]) == 1
        assert body["meta"]["usedChartFallback"] is True
        assert body["meta"]["degradedQuestions"] == 1

    def test_failed_search_reported(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1")
        api_client.catalog.search_results = {"Pop 1990s": RuntimeError("timeout")}
        api_client.catalog.charts = _distant_pool(40, prefix="chart")

        body = api_client.post("/questions/generate", json={"selectedSongIds": ["s1"]}).json()

        assert body["meta"]["failedTerms"] == ["Pop 1990s"]
        assert body["meta"]["poolSize"] == 40

    def test_snake_case_input_accepted(self, api_client) -> None:
        _seed_selected(api_client.catalog, "s1")
        api_client.catalog.default_search = _distant_pool(30)

        resp = api_client.post(
            "/questions/generate",
            json={"selected_song_ids": ["s1"], "number_of_detractors": 2, "mode": "guess_song"},
        )

        assert resp.status_code == 200
        question = resp.json()["questions"][0]
        assert len(question["detractors"]) == 2
        assert question["mode"] == "guess_song"

    def test_unknown_ids_400(self, api_client) -> None:
        resp = api_client.post("/questions/generate", json={"selectedSongIds": ["missing"]})
        assert resp.status_code == 400
        assert "selectedSongIds" in resp.json()["detail"]

    def test_invalid_difficulty_422(self, api_client) -> None:
        resp = api_client.post(
            "/questions/generate", json={"selectedSongIds": ["s1"], "difficulty": "extreme"}
        )
        assert resp.status_code == 422

    def test_empty_selection_422(self, api_client) -> None:
        resp = api_client.post("/questions/generate", json={"selectedSongIds": []})
        assert resp.status_code == 422

    def test_zero_detractors_422(self, api_client) -> None:
        resp = api_client.post(
            "/questions/generate", json={"selectedSongIds": ["s1"], "numberOfDetractors": 0}
        )
        assert resp.status_code == 422

    def test_catalog_error_503(self, api_client) -> None:
        api_client.catalog.get_songs = MagicMock(
            side_effect=CatalogError("get_songs", 503, "unavailable")
        )
        resp = api_client.post("/questions/generate", json={"selectedSongIds": ["s1"]})
        assert resp.status_code == 503
        assert "request_id=" in resp.json()["detail"]

    def test_open_circuit_503(self, api_client) -> None:
        api_client.catalog.get_songs = MagicMock(side_effect=CircuitOpenError("apple_music", 20))
        resp = api_client.post("/questions/generate", json={"selectedSongIds": ["s1"]})
        assert resp.status_code == 503


# ---------------------------------------------------------------------------
# POST /questions/generate-advanced
# ---------------------------------------------------------------------------


class TestGenerateAdvanced:
    def test_named_strategy(self, api_client) -> None:
        api_client.catalog.default_search = _distant_pool(40)

        resp = api_client.post(
            "/questions/generate-advanced",
            json={"strategy": "named", "strategyName": "afrobeats", "count": 2},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["totalQuestions"] == 2
        assert body["category"] == "Afrobeats"
        assert body["generationStrategy"] == "named"
        assert body["strategies"][0]["name"] == "afrobeats"
        # strategy_limit caps the single term at 25 songs; 2 become questions
        assert body["meta"]["poolSize"] == 23
        for question in body["questions"]:
            assert len(question["detractors"]) == 3

    def test_correct_songs_excluded_from_pool(self, api_client) -> None:
        api_client.catalog.default_search = _distant_pool(20)

        body = api_client.post(
            "/questions/generate-advanced",
            json={"strategy": "named", "strategyName": "remixes", "count": 5},
        ).json()

        correct_ids = {q["correctSong"]["id"] for q in body["questions"]}
        for question in body["questions"]:
            assert not correct_ids & {d["id"] for d in question["detractors"]}

    def test_not_enough_songs_400(self, api_client) -> None:
        api_client.catalog.default_search = _distant_pool(12)

        resp = api_client.post(
            "/questions/generate-advanced",
            json={"strategy": "named", "strategyName": "remixes", "count": 5},
        )

        assert resp.status_code == 400
        assert "Not enough songs" in resp.json()["detail"]

    def test_charts_strategy(self, api_client) -> None:
        api_client.catalog.charts = _distant_pool(30, prefix="chart")

        body = api_client.post(
            "/questions/generate-advanced", json={"strategy": "charts", "count": 3}
        ).json()

        assert body["category"] == "Top Charts"
        assert body["totalQuestions"] == 3

    def test_charts_outage_503(self, api_client) -> None:
        api_client.catalog.charts = CatalogError("top_charts", 500, "boom")
        resp = api_client.post(
            "/questions/generate-advanced", json={"strategy": "charts", "count": 3}
        )
        assert resp.status_code == 503

    def test_thematic_uses_matched_ids(self, api_client) -> None:
        songs = _distant_pool(15, prefix="t")
        api_client.catalog.songs = {s.id: s for s in songs}

        body = api_client.post(
            "/questions/generate-advanced",
            json={
                "strategy": "thematic",
                "matchedSongIds": [s.id for s in songs],
                "theme": "Songs About Space",
                "count": 3,
            },
        ).json()

        assert body["category"] == "Songs About Space"
        assert body["totalQuestions"] == 3
        assert api_client.catalog.search_calls == []

    def test_time_span_strategy(self, api_client) -> None:
        api_client.catalog.default_search = _distant_pool(30)

        body = api_client.post(
            "/questions/generate-advanced",
            json={"strategy": "time_span", "timeSpan": {"startYear": 1985, "endYear": 1986}},
        ).json()

        assert body["category"] == "1985-1986 Hits"

    def test_unknown_strategy_name_400(self, api_client) -> None:
        resp = api_client.post(
            "/questions/generate-advanced",
            json={"strategy": "named", "strategyName": "polka-metal"},
        )
        assert resp.status_code == 400

    def test_missing_strategy_param_422(self, api_client) -> None:
        resp = api_client.post("/questions/generate-advanced", json={"strategy": "popularity"})
        assert resp.status_code == 422

    def test_reversed_time_span_422(self, api_client) -> None:
        resp = api_client.post(
            "/questions/generate-advanced",
            json={"strategy": "time_span", "timeSpan": {"startYear": 2001, "endYear": 1999}},
        )
        assert resp.status_code == 422

    def test_unknown_strategy_422(self, api_client) -> None:
        resp = api_client.post("/questions/generate-advanced", json={"strategy": "astrology"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# GET /questions/strategies and app endpoints
# ---------------------------------------------------------------------------


class TestCatalogueAndHealth:
    def test_strategies_grouped_by_kind(self, api_client) -> None:
        body = api_client.get("/questions/strategies").json()
        assert body["total"] == len(STRATEGY_REGISTRY)
        assert set(body["strategies"]) == set(STRATEGY_KINDS)
        assert sum(len(v) for v in body["strategies"].values()) == len(STRATEGY_REGISTRY)
        assert "mixed" in body["endpoints"]

    def test_health(self, api_client) -> None:
        assert api_client.get("/health").json() == {"status": "ok"}

    def test_catalog_health(self, api_client) -> None:
        body = api_client.get("/health/catalog").json()
        assert body["name"] == "apple_music"
        assert body["state"] in {"closed", "open", "half_open"}

    def test_metrics_exposes_generation_counter(self, api_client) -> None:
        api_client.post("/questions/generate", json={"selectedSongIds": ["missing"]})
        resp = api_client.get("/metrics")
        assert resp.status_code == 200
        assert "trivia_generation_requests_total" in resp.text

    def test_generate_observes_latency(self, api_client) -> None:
        sample = "trivia_generation_latency_seconds_count"
        labels = {"endpoint": "generate"}
        before = metrics._REGISTRY.get_sample_value(sample, labels) or 0.0
        _seed_selected(api_client.catalog, "s1")
        api_client.catalog.default_search = _distant_pool(30)

        api_client.post("/questions/generate", json={"selectedSongIds": ["s1"]})

        assert metrics._REGISTRY.get_sample_value(sample, labels) == before + 1
