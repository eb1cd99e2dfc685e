"""
Strategy orchestration: deciding where the songs for a question set come from.

Strategies:
    direct       Expansion around caller-selected correct songs (pool builder).
    charts       Current top chart.
    thematic     Songs already matched from an external theme suggestion
                 service, used as their own pool.
    time_span    Multi-term search over a year range.
    popularity   Multi-term search for a popularity tier.
    named        One registry strategy by name.
    random       One random registry strategy.
    mixed        Several distinct random registry strategies, merged.

Every strategy returns a ``StrategyResult``. Catalog failures inside
multi-term strategies are isolated per term; a strategy that finds nothing
returns an empty song list and leaves the "not enough songs" call to the
caller.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from catalog.pool_builder import CandidatePool, CandidatePoolBuilder, settle_all
from core.config import DEFAULT_CONFIG, GenerationConfig
from core.search_terms import (
    STRATEGY_REGISTRY,
    SearchStrategy,
    get_strategy,
    popularity_terms,
    time_span_terms,
)
from core.songs import SongRecord, dedupe_songs
from core.types import CatalogClient, InvalidArgumentError
from infrastructure.metrics import record_catalog_failure

logger = logging.getLogger(__name__)

STRATEGY_NAMES: tuple[str, ...] = (
    "direct",
    "charts",
    "thematic",
    "time_span",
    "popularity",
    "named",
    "random",
    "mixed",
)


@dataclass(frozen=True)
class StrategyResult:
    """
    Songs gathered by one strategy run.

    Attributes:
        songs: De-duplicated songs, usable both as correct songs and as pool.
        category: Display title for the question set.
        description: One-line description.
        strategies: Registry strategies that contributed (random/mixed/named).
        failed_terms: Search terms that failed and were skipped.
        pool: The candidate pool when the direct strategy ran, else ``None``.
    """

    songs: list[SongRecord]
    category: str
    description: str
    strategies: list[SearchStrategy] = field(default_factory=list)
    failed_terms: list[str] = field(default_factory=list)
    pool: CandidatePool | None = None


class StrategyOrchestrator:
    """
    Runs candidate-gathering strategies against a catalog.

    Args:
        catalog: Any ``CatalogClient``.
        config: Generation config; only the pool section is used here.
        rng: Source of randomness for random/mixed picks and shuffles.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        config: GenerationConfig = DEFAULT_CONFIG,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config
        self._rng = rng or random.Random()
        self._pool_builder = CandidatePoolBuilder(catalog, config.pool)

    # -- building blocks ---------------------------------------------------

    def multi_term_search(
        self, terms: Sequence[str], limit: int | None = None
    ) -> tuple[list[SongRecord], list[str]]:
        """
        Search every term concurrently and merge the results.

        Returns:
            ``(songs, failed_terms)``; songs are first-seen-wins in term order.
        """
        cap = limit or self._config.pool.strategy_limit
        settled = settle_all(
            [(term, lambda t=term: self._catalog.search(t, cap)) for term in terms],
            max_workers=self._config.pool.max_workers,
        )
        for term, exc in settled.errors:
            logger.warning("Strategy search for %r failed, skipping: %s", term, exc)
            record_catalog_failure("search")

        merged = dedupe_songs(song for _, songs in settled.results for song in songs)
        return merged, settled.failed_labels

    def _run_registry(self, strategy: SearchStrategy) -> tuple[list[SongRecord], list[str]]:
        return self.multi_term_search(strategy.terms, strategy.limit)

    # -- strategies --------------------------------------------------------

    def direct(self, selected: Sequence[SongRecord]) -> StrategyResult:
        """Expand around caller-selected songs; ``songs`` is the candidate pool."""
        if not selected:
            raise InvalidArgumentError("selected", "at least one correct song is required")
        pool = self._pool_builder.build(selected)
        return StrategyResult(
            songs=pool.songs(),
            category="Selected Songs",
            description="Detractors drawn from the genres and eras of the selected songs",
            failed_terms=list(pool.failed_terms),
            pool=pool,
        )

    def charts(self) -> StrategyResult:
        """Current top chart. A chart failure propagates: there is no fallback."""
        songs = dedupe_songs(self._catalog.top_charts(self._config.pool.chart_limit))
        return StrategyResult(
            songs=songs, category="Top Charts", description="Current top chart hits"
        )

    def thematic(self, matched_songs: Sequence[SongRecord], theme: str = "") -> StrategyResult:
        """Use externally matched songs (e.g. from a theme suggestion service) as the pool."""
        songs = dedupe_songs(matched_songs)
        label = theme.strip() or "Themed Songs"
        return StrategyResult(
            songs=songs,
            category=label,
            description=f"Songs matched for theme: {label}",
        )

    def time_span(self, start_year: int, end_year: int) -> StrategyResult:
        terms = time_span_terms(start_year, end_year)
        songs, failed = self.multi_term_search(terms)
        return StrategyResult(
            songs=songs,
            category=f"{start_year}-{end_year} Hits",
            description=f"Songs from {start_year} to {end_year}",
            failed_terms=failed,
        )

    def popularity(self, tier: str) -> StrategyResult:
        songs, failed = self.multi_term_search(popularity_terms(tier))
        return StrategyResult(
            songs=songs,
            category=f"{tier.capitalize()} Tracks",
            description=f"{tier} music selections",
            failed_terms=failed,
        )

    def named(self, name: str) -> StrategyResult:
        strategy = get_strategy(name)
        songs, failed = self._run_registry(strategy)
        return StrategyResult(
            songs=songs,
            category=strategy.category,
            description=strategy.description,
            strategies=[strategy],
            failed_terms=failed,
        )

    def random_strategy(self) -> StrategyResult:
        strategy = self._rng.choice(STRATEGY_REGISTRY)
        logger.info("Random strategy picked: %s", strategy.name)
        songs, failed = self._run_registry(strategy)
        return StrategyResult(
            songs=songs,
            category=strategy.category,
            description=strategy.description,
            strategies=[strategy],
            failed_terms=failed,
        )

    def mixed(self, count: int = 3) -> StrategyResult:
        """
        Combine *count* distinct random registry strategies.

        Strategies run concurrently; songs are merged first-seen-wins in
        strategy order, then shuffled.
        """
        if count <= 0:
            raise InvalidArgumentError("count", f"must be positive, got {count}")
        picked = self._rng.sample(STRATEGY_REGISTRY, min(count, len(STRATEGY_REGISTRY)))

        settled = settle_all(
            [(s.name, lambda s=s: self._run_registry(s)) for s in picked],
            max_workers=self._config.pool.max_workers,
        )
        for name, exc in settled.errors:
            logger.warning("Strategy %s failed, skipping: %s", name, exc)

        failed: list[str] = []
        collected: list[SongRecord] = []
        for _, (songs, strategy_failed) in settled.results:
            collected.extend(songs)
            failed.extend(strategy_failed)

        merged = dedupe_songs(collected)
        self._rng.shuffle(merged)
        return StrategyResult(
            songs=merged,
            category="Mixed Categories",
            description="Songs from multiple categories",
            strategies=picked,
            failed_terms=failed + settled.failed_labels,
        )

    # -- dispatch ----------------------------------------------------------

    def run(self, strategy: str, **params: Any) -> StrategyResult:
        """
        Dispatch to a strategy by name.

        Args:
            strategy: One of ``STRATEGY_NAMES``.
            **params: Strategy arguments: ``selected`` (direct),
                ``matched_songs``/``theme`` (thematic), ``start_year`` and
                ``end_year`` (time_span), ``tier`` (popularity), ``name``
                (named), ``count`` (mixed).

        Raises:
            InvalidArgumentError: Unknown strategy or missing argument.
        """

        def require(key: str) -> Any:
            if params.get(key) is None:
                raise InvalidArgumentError(strategy, f"missing required parameter {key!r}")
            return params[key]

        if strategy == "direct":
            return self.direct(require("selected"))
        if strategy == "charts":
            return self.charts()
        if strategy == "thematic":
            return self.thematic(require("matched_songs"), params.get("theme") or "")
        if strategy == "time_span":
            return self.time_span(require("start_year"), require("end_year"))
        if strategy == "popularity":
            return self.popularity(require("tier"))
        if strategy == "named":
            return self.named(require("name"))
        if strategy == "random":
            return self.random_strategy()
        if strategy == "mixed":
            return self.mixed(params.get("count") or 3)

        raise InvalidArgumentError(
            "strategy", f"unknown strategy {strategy!r}, expected one of {list(STRATEGY_NAMES)}"
        )
