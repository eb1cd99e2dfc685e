"""
Candidate pool assembly for a batch of correct songs.

For each correct song a genre + decade search term is derived and searched;
results are merged first-seen-wins into one pool shared by the whole batch,
the correct songs themselves are excluded, and an undersized pool is topped
up from the charts.

Searches run concurrently and are failure-isolated: ``settle_all`` collects
successes and failures side by side, a failed term is logged and skipped,
and nothing here ever raises because the pool came out small. Whether a
small pool is acceptable is the detractor selector's (and ultimately the
caller's) decision.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from core.config import DEFAULT_CONFIG, PoolConfig
from core.search_terms import derive_search_term
from core.songs import SongRecord
from core.types import CatalogClient
from infrastructure.metrics import record_catalog_failure, record_pool_fallback

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Settle-all combinator
# ---------------------------------------------------------------------------


@dataclass
class Settled(Generic[T]):
    """Outcome of a batch of independent fallible calls.

    Attributes:
        results: ``(label, value)`` for each call that succeeded, in input order.
        errors: ``(label, exception)`` for each call that raised, in input order.
    """

    results: list[tuple[str, T]] = field(default_factory=list)
    errors: list[tuple[str, Exception]] = field(default_factory=list)

    @property
    def failed_labels(self) -> list[str]:
        return [label for label, _ in self.errors]


def settle_all(calls: Sequence[tuple[str, Callable[[], T]]], max_workers: int = 8) -> Settled[T]:
    """
    Run labelled zero-argument callables concurrently and wait for all of them.

    One call raising never cancels the others. Both lists in the result
    follow the input order, not completion order, so merging downstream
    stays deterministic.

    Args:
        calls: ``(label, callable)`` pairs.
        max_workers: Thread pool size cap.

    Returns:
        ``Settled`` with successes and failures.
    """
    if not calls:
        return Settled()

    outcomes: dict[int, tuple[bool, object]] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as executor:
        future_to_index = {executor.submit(fn): i for i, (_, fn) in enumerate(calls)}
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                outcomes[index] = (True, future.result())
            except Exception as exc:  # noqa: BLE001
                outcomes[index] = (False, exc)

    settled: Settled[T] = Settled()
    for index, (label, _) in enumerate(calls):
        ok, value = outcomes[index]
        if ok:
            settled.results.append((label, value))  # type: ignore[arg-type]
        else:
            settled.errors.append((label, value))  # type: ignore[arg-type]
    return settled


# ---------------------------------------------------------------------------
# Candidate pool
# ---------------------------------------------------------------------------


class CandidatePool:
    """
    Insertion-ordered ``id -> SongRecord`` mapping with an exclusion set.

    First record seen for an id wins; excluded ids are never admitted, even
    if added later.

    Attributes:
        failed_terms: Search terms whose expansion failed during the build.
        used_chart_fallback: Whether the chart top-up ran.
    """

    def __init__(self, exclude_ids: Iterable[str] = ()) -> None:
        self._songs: dict[str, SongRecord] = {}
        self._excluded: set[str] = set(exclude_ids)
        self.failed_terms: list[str] = []
        self.used_chart_fallback = False

    def add(self, songs: Iterable[SongRecord]) -> int:
        """Merge *songs*; returns how many new ids were admitted."""
        added = 0
        for song in songs:
            if song.id in self._excluded or song.id in self._songs:
                continue
            self._songs[song.id] = song
            added += 1
        return added

    def exclude(self, ids: Iterable[str]) -> None:
        """Exclude *ids* from now on and purge any already present."""
        for song_id in ids:
            self._excluded.add(song_id)
            self._songs.pop(song_id, None)

    def songs(self) -> list[SongRecord]:
        return list(self._songs.values())

    def get(self, song_id: str) -> SongRecord | None:
        return self._songs.get(song_id)

    def __len__(self) -> int:
        return len(self._songs)

    def __contains__(self, song_id: object) -> bool:
        return song_id in self._songs

    def __iter__(self) -> Iterator[SongRecord]:
        return iter(self._songs.values())


class CandidatePoolBuilder:
    """
    Builds the shared candidate pool for a batch of correct songs.

    Args:
        catalog: Any ``CatalogClient``.
        config: Pool knobs (search/chart caps, fallback threshold, workers).

    Usage::

        builder = CandidatePoolBuilder(AppleMusicClient())
        pool = builder.build(selected_songs)
        questions = generate_question_set(selected_songs, pool.songs(), options)
    """

    def __init__(self, catalog: CatalogClient, config: PoolConfig = DEFAULT_CONFIG.pool) -> None:
        self._catalog = catalog
        self._config = config

    def build(self, selected: Sequence[SongRecord]) -> CandidatePool:
        """
        Gather candidates around *selected*, excluding *selected* itself.

        Returns:
            The pool, possibly smaller than ``min_pool_size`` when both the
            searches and the chart fallback came up short.
        """
        pool = CandidatePool(exclude_ids=(s.id for s in selected))

        # One search per distinct term; several correct songs often share one
        terms = list(dict.fromkeys(derive_search_term(song) for song in selected))
        limit = self._config.search_limit
        settled = settle_all(
            [(term, lambda t=term: self._catalog.search(t, limit)) for term in terms],
            max_workers=self._config.max_workers,
        )

        for term, exc in settled.errors:
            logger.warning("Candidate search for %r failed, skipping: %s", term, exc)
            record_catalog_failure("search")
        pool.failed_terms = settled.failed_labels

        for _, songs in settled.results:
            pool.add(songs)

        logger.info(
            "Candidate pool: %d songs from %d/%d search terms",
            len(pool),
            len(settled.results),
            len(terms),
        )

        if len(pool) < self._config.min_pool_size:
            self._top_up_from_charts(pool)

        return pool

    def _top_up_from_charts(self, pool: CandidatePool) -> None:
        logger.info(
            "Candidate pool below %d, fetching top %d chart songs",
            self._config.min_pool_size,
            self._config.chart_limit,
        )
        pool.used_chart_fallback = True
        record_pool_fallback()
        try:
            charts = self._catalog.top_charts(self._config.chart_limit)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Chart fallback failed, keeping %d candidates: %s", len(pool), exc)
            record_catalog_failure("top_charts")
            return
        added = pool.add(charts)
        logger.info("Chart fallback added %d songs (pool now %d)", added, len(pool))
