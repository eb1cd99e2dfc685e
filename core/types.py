"""
Shared type definitions for the question engine.

Establishes the contracts between the pure core/ layer and the impure
layers (catalog/, api/):

- ``Difficulty`` / ``GameMode``: the two request knobs.
- ``ScoredCandidate``: a pool song paired with its similarity to one
  correct song. Ephemeral, recomputed per correct song.
- ``GeneratedQuestion``: the engine's output, one per correct song.
- ``CatalogClient``: the collaborator protocol the pool builder consumes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypedDict, runtime_checkable

from core.songs import SongRecord


class Difficulty(str, Enum):
    """Requested difficulty; selects a similarity band."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GameMode(str, Enum):
    """What the player is asked to identify.

    Decides which identity signal the similarity scorer uses.
    """

    GUESS_ARTIST = "guess_artist"
    GUESS_SONG = "guess_song"


class InvalidArgumentError(ValueError):
    """Raised for caller-responsibility errors before any scoring work starts.

    Args:
        argument: Name of the offending argument.
        message: Human-readable description.
    """

    def __init__(self, argument: str, message: str) -> None:
        self.argument = argument
        super().__init__(f"{argument}: {message}")


def parse_difficulty(value: "Difficulty | str") -> Difficulty:
    """Coerce a string into ``Difficulty``.

    Raises:
        InvalidArgumentError: If *value* is not a supported difficulty.
    """
    try:
        return Difficulty(value)
    except ValueError:
        valid = [d.value for d in Difficulty]
        raise InvalidArgumentError(
            "difficulty", f"unsupported value {value!r}, expected one of {valid}"
        ) from None


def parse_game_mode(value: "GameMode | str | None") -> GameMode:
    """Coerce a string into ``GameMode``; ``None`` means guess-the-artist.

    Raises:
        InvalidArgumentError: If *value* is not a supported mode.
    """
    if value is None:
        return GameMode.GUESS_ARTIST
    try:
        return GameMode(value)
    except ValueError:
        valid = [m.value for m in GameMode]
        raise InvalidArgumentError(
            "mode", f"unsupported value {value!r}, expected one of {valid}"
        ) from None


@dataclass(frozen=True)
class ScoredCandidate:
    """A pool song with its similarity (0-100) to a fixed correct song."""

    song: SongRecord
    similarity: int


class GeneratedQuestionDict(TypedDict):
    """Wire form of a generated question."""

    correctSongId: str
    detractorIds: list[str]
    difficulty: str


@dataclass(frozen=True)
class GeneratedQuestion:
    """
    One generated question.

    Attributes:
        correct_song_id: Id of the song the question is built around.
        detractor_ids: Distinct ids of the wrong answers, never containing
            ``correct_song_id``. Shorter than requested only when the pool
            ran dry.
        difficulty: The requested difficulty, echoed back.
    """

    correct_song_id: str
    detractor_ids: tuple[str, ...]
    difficulty: Difficulty

    def is_degraded(self, expected_count: int) -> bool:
        """True when fewer detractors than requested could be found."""
        return len(self.detractor_ids) < expected_count

    def to_dict(self) -> GeneratedQuestionDict:
        return GeneratedQuestionDict(
            correctSongId=self.correct_song_id,
            detractorIds=list(self.detractor_ids),
            difficulty=self.difficulty.value,
        )


@runtime_checkable
class CatalogClient(Protocol):
    """
    Minimal catalog interface consumed by the candidate pool builder.

    Both calls may fail with network or service errors; the pool builder
    treats a failure as affecting that single call only.
    """

    def search(self, term: str, limit: int) -> list[SongRecord]: ...

    def top_charts(self, limit: int) -> list[SongRecord]: ...
