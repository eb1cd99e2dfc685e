"""
Detractor selection for a single correct song.

Selection runs in three steps:

1. Score the pool against the correct song and sort highest-first (stable).
2. Take the first ``count`` candidates inside the requested difficulty band.
3. Backfill from the full sorted list when the band is short, ignoring the
   band entirely.

Backfill trades strict difficulty adherence for completeness: a quiz with a
slightly-too-easy wrong answer beats a quiz that fails to generate. The only
way to get fewer than ``count`` detractors is a pool that is itself smaller.

The final list is shuffled so its order carries no band information.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from core.config import DEFAULT_THRESHOLDS, DEFAULT_WEIGHTS, BandThresholds, ScoringWeights
from core.similarity import score_candidates
from core.songs import SongRecord
from core.types import (
    Difficulty,
    GameMode,
    InvalidArgumentError,
    ScoredCandidate,
    parse_difficulty,
    parse_game_mode,
)


def band_for(score: int, thresholds: BandThresholds = DEFAULT_THRESHOLDS) -> Difficulty:
    """Map a similarity score onto its difficulty band."""
    if score >= thresholds.hard_min:
        return Difficulty.HARD
    if score >= thresholds.medium_min:
        return Difficulty.MEDIUM
    return Difficulty.EASY


def in_band(
    score: int,
    difficulty: Difficulty | str,
    thresholds: BandThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """True when *score* falls inside the band for *difficulty*."""
    return band_for(score, thresholds) is parse_difficulty(difficulty)


def _validate(
    difficulty: Difficulty | str, count: int, mode: GameMode | str | None
) -> tuple[Difficulty, GameMode]:
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidArgumentError("count", f"must be a positive integer, got {count!r}")
    return parse_difficulty(difficulty), parse_game_mode(mode)


def rank_detractors(
    correct: SongRecord,
    pool: Sequence[SongRecord],
    difficulty: Difficulty | str,
    count: int,
    *,
    mode: GameMode | str = GameMode.GUESS_ARTIST,
    thresholds: BandThresholds = DEFAULT_THRESHOLDS,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredCandidate]:
    """
    Pick detractors in deterministic (pre-shuffle) order.

    In-band picks come first in descending similarity, followed by any
    backfill, also in descending similarity.

    Args:
        correct: Song the question is about. Never returned.
        pool: Candidate songs. May contain *correct* or repeated ids.
        difficulty: Requested band.
        count: Number of detractors wanted.
        mode: Game mode, forwarded to the scorer.
        thresholds: Band cut-offs.
        weights: Scorer weights.

    Returns:
        Up to *count* distinct scored candidates.

    Raises:
        InvalidArgumentError: On a non-positive *count* or an unknown difficulty
            or mode string. Plain strings such as ``"hard"`` are accepted.
    """
    difficulty, mode = _validate(difficulty, count, mode)

    ranked = score_candidates(correct, pool, mode, weights)

    picked = [c for c in ranked if in_band(c.similarity, difficulty, thresholds)][:count]

    if len(picked) < count:
        used = {c.song.id for c in picked}
        for candidate in ranked:
            if len(picked) >= count:
                break
            if candidate.song.id not in used:
                picked.append(candidate)
                used.add(candidate.song.id)

    return picked


def select_detractors(
    correct: SongRecord,
    pool: Sequence[SongRecord],
    difficulty: Difficulty | str,
    count: int,
    *,
    mode: GameMode | str = GameMode.GUESS_ARTIST,
    thresholds: BandThresholds = DEFAULT_THRESHOLDS,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    rng: random.Random | None = None,
) -> list[SongRecord]:
    """
    Select *count* wrong answers for *correct*, shuffled.

    Same arguments as ``rank_detractors`` plus *rng*, the source of the
    final shuffle (module-level ``random`` when ``None``). Pass a seeded
    ``random.Random`` for reproducible order.

    Returns:
        Exactly *count* distinct songs, or every usable pool song when the
        pool is smaller. A short result is degraded but not an error.
    """
    picked = [
        c.song
        for c in rank_detractors(
            correct,
            pool,
            difficulty,
            count,
            mode=mode,
            thresholds=thresholds,
            weights=weights,
        )
    ]
    (rng or random).shuffle(picked)
    return picked
