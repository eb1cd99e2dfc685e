"""
Similarity scoring between a correct song and a detractor candidate.

Additive point model on a 0-100 scale:

    identity  (mode dependent)  artist match, or title match
    genre                       same primary genre
    era                         release years close together
    duration                    track lengths within 30 seconds

Points compound before the single clamp at the end, so a candidate that
matches on everything still lands on exactly ``max_score``.

Pure functions — no I/O, inputs are never mutated.
"""

from collections.abc import Iterable

from core.config import DEFAULT_WEIGHTS, ScoringWeights
from core.songs import SongRecord, primary_genre, release_year
from core.types import GameMode, ScoredCandidate


def title_tokens(title: str, min_length: int) -> set[str]:
    """Lower-cased whitespace tokens strictly longer than *min_length*."""
    return {tok for tok in title.lower().split() if len(tok) > min_length}


def _identity_points(
    correct: SongRecord,
    candidate: SongRecord,
    mode: GameMode,
    weights: ScoringWeights,
) -> int:
    if mode is GameMode.GUESS_ARTIST:
        # Exact, case-sensitive as stored by the catalog
        return weights.same_artist if candidate.artist_name == correct.artist_name else 0

    title_a = correct.name.lower()
    title_b = candidate.name.lower()
    if title_a == title_b:
        return weights.exact_title
    if title_a in title_b or title_b in title_a:
        return weights.title_substring

    shared = title_tokens(title_a, weights.min_token_length) & title_tokens(
        title_b, weights.min_token_length
    )
    return min(weights.shared_token * len(shared), weights.shared_token_cap)


def _genre_points(correct: SongRecord, candidate: SongRecord, weights: ScoringWeights) -> int:
    genre_a = primary_genre(correct)
    genre_b = primary_genre(candidate)
    if genre_a and genre_b and genre_a == genre_b:
        return weights.same_genre
    return 0


def _era_points(correct: SongRecord, candidate: SongRecord, weights: ScoringWeights) -> int:
    year_a = release_year(correct)
    year_b = release_year(candidate)
    if year_a is None or year_b is None:
        return 0

    year_diff = abs(year_a - year_b)
    for max_diff, points in weights.era_bands:
        if year_diff <= max_diff:
            return points
    return 0


def _duration_points(correct: SongRecord, candidate: SongRecord, weights: ScoringWeights) -> int:
    diff_seconds = abs(correct.duration_millis - candidate.duration_millis) / 1000
    return weights.duration_points if diff_seconds <= weights.duration_window_seconds else 0


def similarity(
    correct: SongRecord,
    candidate: SongRecord,
    mode: GameMode = GameMode.GUESS_ARTIST,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """
    Score how plausible *candidate* is as a wrong answer for *correct*.

    Args:
        correct: The song the question is about.
        candidate: A potential detractor.
        mode: Game mode; picks the identity signal (artist vs. title).
        weights: Point weights, see ``ScoringWeights``.

    Returns:
        Integer in ``[0, weights.max_score]``.

    Example:
        >>> a = SongRecord(id="A", name="x", artist_name="X", genre_names=("Pop",),
        ...                release_date=date(2020, 1, 1), duration_millis=200_000)
        >>> b = SongRecord(id="B", name="y", artist_name="X", genre_names=("Pop",),
        ...                release_date=date(2020, 6, 1), duration_millis=205_000)
        >>> similarity(a, b)
        100
    """
    total = (
        _identity_points(correct, candidate, mode, weights)
        + _genre_points(correct, candidate, weights)
        + _era_points(correct, candidate, weights)
        + _duration_points(correct, candidate, weights)
    )
    return max(0, min(total, weights.max_score))


def score_candidates(
    correct: SongRecord,
    pool: Iterable[SongRecord],
    mode: GameMode = GameMode.GUESS_ARTIST,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredCandidate]:
    """
    Score every pool song against *correct*, highest similarity first.

    Songs sharing ``correct.id`` are dropped, as are repeated pool ids
    (first occurrence kept). The sort is stable, so equal scores keep
    their pool order.
    """
    seen: set[str] = {correct.id}
    scored: list[ScoredCandidate] = []
    for song in pool:
        if song.id in seen:
            continue
        seen.add(song.id)
        score = similarity(correct, song, mode, weights)
        scored.append(ScoredCandidate(song=song, similarity=score))

    scored.sort(key=lambda c: c.similarity, reverse=True)
    return scored
