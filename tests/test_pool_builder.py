"""Tests for catalog/pool_builder.py — settle_all, CandidatePool, CandidatePoolBuilder."""

import threading
from datetime import date

import pytest

from conftest import FakeCatalog, make_song
from catalog.pool_builder import CandidatePool, CandidatePoolBuilder, settle_all
from core.config import PoolConfig

# ---------------------------------------------------------------------------
# settle_all
# ---------------------------------------------------------------------------


class TestSettleAll:
    def test_empty(self) -> None:
        settled = settle_all([])
        assert settled.results == []
        assert settled.errors == []

    def test_failures_isolated(self) -> None:
        def boom() -> int:
            raise RuntimeError("down")

        settled = settle_all([("a", lambda: 1), ("b", boom), ("c", lambda: 3)])
        assert settled.results == [("a", 1), ("c", 3)]
        assert settled.failed_labels == ["b"]
        assert isinstance(settled.errors[0][1], RuntimeError)

    def test_results_in_input_order(self) -> None:
        release_first = threading.Event()

        def slow() -> str:
            release_first.wait(timeout=2)
            return "slow"

        def fast() -> str:
            release_first.set()
            return "fast"

        settled = settle_all([("slow", slow), ("fast", fast)], max_workers=2)
        assert [label for label, _ in settled.results] == ["slow", "fast"]

    def test_runs_concurrently(self) -> None:
        barrier = threading.Barrier(3, timeout=2)

        def wait() -> bool:
            barrier.wait()
            return True

        settled = settle_all([(str(i), wait) for i in range(3)], max_workers=3)
        assert len(settled.results) == 3


# ---------------------------------------------------------------------------
# CandidatePool
# ---------------------------------------------------------------------------


class TestCandidatePool:
    def test_first_seen_wins(self) -> None:
        pool = CandidatePool()
        first = make_song("1", name="first")
        assert pool.add([first, make_song("2")]) == 2
        assert pool.add([make_song("1", name="second")]) == 0
        assert pool.get("1") is first
        assert [s.id for s in pool] == ["1", "2"]

    def test_excluded_ids_never_admitted(self) -> None:
        pool = CandidatePool(exclude_ids=["x"])
        pool.add([make_song("x"), make_song("y")])
        assert "x" not in pool
        assert len(pool) == 1

    def test_exclude_purges_existing(self) -> None:
        pool = CandidatePool()
        pool.add([make_song("1"), make_song("2")])
        pool.exclude(["1"])
        pool.add([make_song("1")])
        assert [s.id for s in pool.songs()] == ["2"]


# ---------------------------------------------------------------------------
# CandidatePoolBuilder
# ---------------------------------------------------------------------------


def _many(prefix: str, n: int):
    return [make_song(f"{prefix}{i}") for i in range(n)]


class TestCandidatePoolBuilder:
    def setup_method(self) -> None:
        self.pop = make_song("sel-pop", genre_names=("Pop",), release_date=date(1994, 1, 1))
        self.rap = make_song("sel-rap", genre_names=("Hip-Hop/Rap",), release_date=date(2005, 1, 1))

    def test_searches_one_term_per_song_with_limit(self) -> None:
        catalog = FakeCatalog(default_search=_many("c", 40))
        CandidatePoolBuilder(catalog).build([self.pop, self.rap])
        assert sorted(catalog.search_calls) == [("Hip Hop Rap 2000s", 50), ("Pop 1990s", 50)]

    def test_shared_terms_searched_once(self) -> None:
        twin = make_song("sel-pop-2", genre_names=("Pop",), release_date=date(1997, 1, 1))
        catalog = FakeCatalog(default_search=_many("c", 40))
        CandidatePoolBuilder(catalog).build([self.pop, twin])
        assert catalog.search_calls == [("Pop 1990s", 50)]

    def test_merges_first_seen_in_term_order(self) -> None:
        first = make_song("dup", name="from pop")
        catalog = FakeCatalog(
            search_results={
                "Pop 1990s": [first, *_many("p", 20)],
                "Hip Hop Rap 2000s": [make_song("dup", name="from rap"), *_many("r", 20)],
            }
        )
        pool = CandidatePoolBuilder(catalog).build([self.pop, self.rap])
        assert pool.get("dup") is first
        assert len(pool) == 41

    def test_selected_songs_excluded(self) -> None:
        catalog = FakeCatalog(default_search=[self.pop, self.rap, *_many("c", 40)])
        pool = CandidatePoolBuilder(catalog).build([self.pop, self.rap])
        assert "sel-pop" not in pool
        assert "sel-rap" not in pool

    def test_no_fallback_when_pool_large_enough(self) -> None:
        catalog = FakeCatalog(default_search=_many("c", 30))
        pool = CandidatePoolBuilder(catalog).build([self.pop])
        assert catalog.chart_calls == []
        assert pool.used_chart_fallback is False
        assert len(pool) == 30

    def test_fallback_tops_up_small_pool(self) -> None:
        catalog = FakeCatalog(default_search=_many("c", 5), charts=_many("chart", 150))
        pool = CandidatePoolBuilder(catalog).build([self.pop])
        assert catalog.chart_calls == [100]
        assert pool.used_chart_fallback is True
        assert len(pool) == 105

    def test_fallback_respects_exclusion_and_dedup(self) -> None:
        catalog = FakeCatalog(
            default_search=_many("c", 5),
            charts=[self.pop, make_song("c0", name="chart copy"), make_song("new")],
        )
        pool = CandidatePoolBuilder(catalog).build([self.pop])
        assert "sel-pop" not in pool
        assert pool.get("c0").name == "Title c0"
        assert len(pool) == 6

    def test_failed_term_skipped(self) -> None:
        catalog = FakeCatalog(
            search_results={
                "Pop 1990s": RuntimeError("timeout"),
                "Hip Hop Rap 2000s": _many("r", 35),
            }
        )
        pool = CandidatePoolBuilder(catalog).build([self.pop, self.rap])
        assert pool.failed_terms == ["Pop 1990s"]
        assert len(pool) == 35
        assert pool.used_chart_fallback is False

    def test_all_searches_fail_then_charts(self) -> None:
        catalog = FakeCatalog(
            search_results={"Pop 1990s": RuntimeError("down")},
            charts=_many("chart", 40),
        )
        pool = CandidatePoolBuilder(catalog).build([self.pop])
        assert pool.failed_terms == ["Pop 1990s"]
        assert len(pool) == 40

    def test_chart_failure_returns_small_pool(self) -> None:
        catalog = FakeCatalog(default_search=_many("c", 3), charts=RuntimeError("charts down"))
        pool = CandidatePoolBuilder(catalog).build([self.pop])
        assert len(pool) == 3
        assert pool.used_chart_fallback is True

    def test_everything_fails_returns_empty_pool(self) -> None:
        catalog = FakeCatalog(
            search_results={"Pop 1990s": RuntimeError("down")},
            charts=RuntimeError("down"),
        )
        pool = CandidatePoolBuilder(catalog).build([self.pop])
        assert len(pool) == 0

    def test_custom_config(self) -> None:
        config = PoolConfig(min_pool_size=10, search_limit=5, chart_limit=7)
        catalog = FakeCatalog(default_search=_many("c", 20), charts=_many("chart", 20))
        pool = CandidatePoolBuilder(catalog, config).build([self.pop])
        assert catalog.search_calls == [("Pop 1990s", 5)]
        assert catalog.chart_calls == [7]
        assert len(pool) == 12

    def test_fallback_term_for_bare_song(self) -> None:
        bare = make_song("bare", genre_names=(), release_date=None)
        catalog = FakeCatalog(default_search=_many("c", 30))
        CandidatePoolBuilder(catalog).build([bare])
        assert catalog.search_calls == [("music", 50)]


@pytest.mark.parametrize("field_name", ["search_limit", "chart_limit", "max_workers"])
def test_pool_config_rejects_non_positive(field_name: str) -> None:
    with pytest.raises(ValueError):
        PoolConfig(**{field_name: 0})
