"""
Configuration dataclasses for scoring, banding and pool assembly.

These immutable config objects hold every weight and threshold the engine
uses, so re-tuning never touches control flow. Values match the original
production tuning; ``api.deps.get_generation_config()`` overrides the policy
knobs from the environment per deployment.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ScoringWeights:
    """
    Point weights for the additive similarity model.

    Attributes:
        same_artist: Guess-the-artist mode, exact artist match.
        exact_title: Guess-the-song mode, titles equal after lower-casing.
        title_substring: Guess-the-song mode, one title contains the other.
        shared_token: Guess-the-song mode, points per shared title token.
        shared_token_cap: Upper bound on the shared-token points.
        min_token_length: Tokens must be strictly longer than this to count.
        same_genre: Both primary genres present and equal.
        era_bands: ``(max_year_diff, points)`` pairs, tightest first. Only the
            first matching band applies.
        duration_window_seconds: Maximum duration gap that still scores.
        duration_points: Points for a duration within the window.
        max_score: Final clamp.
    """

    same_artist: int = 40
    exact_title: int = 50
    title_substring: int = 30
    shared_token: int = 10
    shared_token_cap: int = 20
    min_token_length: int = 3
    same_genre: int = 30
    era_bands: tuple[tuple[int, int], ...] = ((2, 20), (5, 10), (10, 5))
    duration_window_seconds: float = 30.0
    duration_points: int = 10
    max_score: int = 100

    def __post_init__(self) -> None:
        """Validate weights."""
        if self.max_score <= 0:
            raise ValueError(f"max_score must be positive, got {self.max_score}")
        if self.min_token_length < 0:
            raise ValueError(
                f"min_token_length must be non-negative, got {self.min_token_length}"
            )
        limits = [limit for limit, _ in self.era_bands]
        if limits != sorted(limits):
            raise ValueError(f"era_bands must be ordered tightest first, got {self.era_bands}")


@dataclass(frozen=True)
class BandThresholds:
    """
    Similarity cut-offs for the difficulty bands.

    ``easy`` is ``similarity < medium_min``, ``medium`` is
    ``medium_min <= similarity < hard_min`` and ``hard`` is
    ``similarity >= hard_min``. Neither outer band is bounded.
    """

    medium_min: int = 30
    hard_min: int = 70

    def __post_init__(self) -> None:
        """Validate band ordering."""
        if not 0 < self.medium_min < self.hard_min <= 100:
            raise ValueError(
                "band thresholds must satisfy 0 < medium_min < hard_min <= 100, "
                f"got medium_min={self.medium_min}, hard_min={self.hard_min}"
            )


@dataclass(frozen=True)
class PoolConfig:
    """
    Candidate pool assembly knobs.

    Attributes:
        min_pool_size: Below this many candidates the chart fallback runs.
            A "probably enough" policy value, not a derived one.
        search_limit: Result cap per genre/decade search term.
        chart_limit: Result cap for the chart fallback pull.
        max_workers: Concurrent catalog searches per batch.
        strategy_limit: Result cap per term for the search strategies.
    """

    min_pool_size: int = 30
    search_limit: int = 50
    chart_limit: int = 100
    max_workers: int = 8
    strategy_limit: int = 25

    def __post_init__(self) -> None:
        """Validate pool limits."""
        for name in ("search_limit", "chart_limit", "max_workers", "strategy_limit"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.min_pool_size < 0:
            raise ValueError(f"min_pool_size must be non-negative, got {self.min_pool_size}")


@dataclass(frozen=True)
class GenerationConfig:
    """Everything the engine needs, bundled for dependency injection."""

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    thresholds: BandThresholds = field(default_factory=BandThresholds)
    pool: PoolConfig = field(default_factory=PoolConfig)
    default_detractors: int = 3


DEFAULT_WEIGHTS = ScoringWeights()
"""Production scoring weights (40/30/20/10 model)."""

DEFAULT_THRESHOLDS = BandThresholds()
"""easy < 30 <= medium < 70 <= hard."""

DEFAULT_CONFIG = GenerationConfig()
"""Default configuration used when callers pass nothing."""
