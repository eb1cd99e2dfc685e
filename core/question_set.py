"""
Question set assembly.

Maps each correct song to its detractors. Questions are independent: the
pool is shared and the same detractor may appear in several questions.
Correct songs keep their input order.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass

from core.config import DEFAULT_CONFIG, GenerationConfig
from core.selection import select_detractors
from core.songs import SongRecord
from core.types import (
    Difficulty,
    GameMode,
    GeneratedQuestion,
    InvalidArgumentError,
    parse_difficulty,
    parse_game_mode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionSetOptions:
    """
    Per-request generation options.

    Attributes:
        difficulty: Requested difficulty band.
        number_of_detractors: Wrong answers per question (commonly 3).
        mode: Game mode; guess-the-artist unless stated.

    Plain strings are accepted for *difficulty* and *mode* and stored as
    the enums; an unsupported value raises ``InvalidArgumentError``.
    """

    difficulty: Difficulty | str
    number_of_detractors: int = 3
    mode: GameMode | str = GameMode.GUESS_ARTIST

    def __post_init__(self) -> None:
        # Request layers hand over plain strings; store the enums.
        object.__setattr__(self, "difficulty", parse_difficulty(self.difficulty))
        object.__setattr__(self, "mode", parse_game_mode(self.mode))

    @classmethod
    def parse(
        cls,
        difficulty: Difficulty | str,
        number_of_detractors: int = 3,
        mode: GameMode | str | None = None,
    ) -> QuestionSetOptions:
        """Build options from raw request values.

        Raises:
            InvalidArgumentError: On unsupported difficulty or mode strings.
        """
        return cls(
            difficulty=difficulty,
            number_of_detractors=number_of_detractors,
            mode=mode if mode is not None else GameMode.GUESS_ARTIST,
        )


def validate_request(selected: Sequence[SongRecord], options: QuestionSetOptions) -> None:
    """
    Reject caller errors before any scoring work begins.

    Raises:
        InvalidArgumentError: If *selected* is empty or the detractor count is
            not a positive integer.
    """
    if not selected:
        raise InvalidArgumentError("selected", "at least one correct song is required")
    n = options.number_of_detractors
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvalidArgumentError(
            "number_of_detractors", f"must be a positive integer, got {n!r}"
        )


def generate_question_set(
    selected: Sequence[SongRecord],
    pool: Sequence[SongRecord],
    options: QuestionSetOptions,
    *,
    config: GenerationConfig = DEFAULT_CONFIG,
    rng: random.Random | None = None,
) -> list[GeneratedQuestion]:
    """
    Generate one question per selected song.

    Args:
        selected: Correct songs, in the order questions should appear.
        pool: Shared candidate pool. Should already exclude *selected*; the
            selector filters each question's own correct song regardless.
        options: Difficulty, detractor count and mode.
        config: Scoring weights and band thresholds.
        rng: Shuffle source shared by every question.

    Returns:
        Questions in *selected* order. A question may carry fewer detractors
        than requested when the pool is exhausted; that is a normal result.

    Raises:
        InvalidArgumentError: See ``validate_request``.
    """
    validate_request(selected, options)

    questions: list[GeneratedQuestion] = []
    for correct in selected:
        detractors = select_detractors(
            correct,
            pool,
            options.difficulty,
            options.number_of_detractors,
            mode=options.mode,
            thresholds=config.thresholds,
            weights=config.weights,
            rng=rng,
        )
        question = GeneratedQuestion(
            correct_song_id=correct.id,
            detractor_ids=tuple(d.id for d in detractors),
            difficulty=options.difficulty,
        )
        if question.is_degraded(options.number_of_detractors):
            logger.debug(
                "question for %s has %d/%d detractors (pool exhausted)",
                correct.id,
                len(detractors),
                options.number_of_detractors,
            )
        questions.append(question)

    return questions
