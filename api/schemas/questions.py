"""
Pydantic schemas for the ``/questions`` endpoints.

Field names are snake_case in Python and camelCase on the wire
(``selectedSongIds``, ``numberOfDetractors``...). Both spellings are
accepted on input.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from core.types import Difficulty, GameMode


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class GenerateRequest(_CamelModel):
    """Request body for ``POST /questions/generate``."""

    selected_song_ids: list[str] = Field(
        ..., min_length=1, max_length=50, description="Catalog ids of the correct songs."
    )
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM, description="easy, medium or hard.")
    number_of_detractors: int = Field(
        default=3, ge=1, le=10, description="Wrong answers per question (1–10)."
    )
    mode: GameMode = Field(
        default=GameMode.GUESS_ARTIST, description="guess_artist or guess_song."
    )


class TimeSpan(_CamelModel):
    """Inclusive year range for the time-span strategy."""

    start_year: int = Field(..., ge=1900, le=2100)
    end_year: int = Field(..., ge=1900, le=2100)

    @model_validator(mode="after")
    def check_order(self) -> TimeSpan:
        """Validate that the span is not reversed."""
        if self.start_year > self.end_year:
            raise ValueError("startYear must not exceed endYear")
        return self


AdvancedStrategy = Literal[
    "random", "mixed", "charts", "named", "time_span", "popularity", "thematic"
]


class AdvancedGenerateRequest(_CamelModel):
    """Request body for ``POST /questions/generate-advanced``."""

    strategy: AdvancedStrategy = Field(default="random", description="Song source strategy.")
    count: int = Field(default=10, ge=1, le=50, description="Number of questions.")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)
    number_of_detractors: int = Field(default=3, ge=1, le=10)
    mode: GameMode = Field(default=GameMode.GUESS_ARTIST)
    strategy_name: str | None = Field(default=None, description="Registry strategy (named).")
    time_span: TimeSpan | None = Field(default=None, description="Year range (time_span).")
    popularity: Literal["viral", "underground", "mainstream"] | None = Field(
        default=None, description="Popularity tier (popularity)."
    )
    mixed_count: int = Field(default=3, ge=1, le=10, description="Strategies to mix (mixed).")
    matched_song_ids: list[str] | None = Field(
        default=None, description="Externally matched catalog ids (thematic)."
    )
    theme: str | None = Field(default=None, max_length=200, description="Theme label (thematic).")

    @model_validator(mode="after")
    def check_strategy_params(self) -> AdvancedGenerateRequest:
        """Validate that the chosen strategy has its parameters."""
        required = {
            "named": ("strategy_name", "strategyName"),
            "time_span": ("time_span", "timeSpan"),
            "popularity": ("popularity", "popularity"),
            "thematic": ("matched_song_ids", "matchedSongIds"),
        }
        if self.strategy in required:
            attr, wire = required[self.strategy]
            if not getattr(self, attr):
                raise ValueError(f"{wire} is required for strategy {self.strategy!r}")
        return self


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SongOut(_CamelModel):
    """Display record for one song."""

    id: str
    name: str
    artist: str
    album: str = ""
    artwork: str | None = None
    preview_url: str | None = None
    year: int | None = None
    genre: str | None = None


class QuestionOut(_CamelModel):
    """One generated question with display records."""

    question_number: int = Field(..., description="1-based position in the set.")
    correct_song: SongOut
    detractors: list[SongOut]
    options: list[SongOut] = Field(..., description="Correct song and detractors, shuffled.")
    difficulty: Difficulty
    mode: GameMode
    degraded: bool = Field(
        ..., description="True when fewer detractors than requested could be found."
    )


class GenerationMeta(_CamelModel):
    """Pool diagnostics and timing."""

    pool_size: int
    used_chart_fallback: bool = False
    failed_terms: list[str] = Field(default_factory=list)
    degraded_questions: int = 0
    request_id: str
    total_ms: float


class GenerateResponse(_CamelModel):
    """Response body for ``POST /questions/generate``."""

    questions: list[QuestionOut]
    total_questions: int
    meta: GenerationMeta


class StrategyOut(_CamelModel):
    name: str
    kind: str
    category: str
    description: str


class AdvancedGenerateResponse(_CamelModel):
    """Response body for ``POST /questions/generate-advanced``."""

    questions: list[QuestionOut]
    total_questions: int
    category: str
    description: str
    strategies: list[StrategyOut] = Field(default_factory=list)
    generation_strategy: str
    difficulty: Difficulty
    meta: GenerationMeta


class StrategiesResponse(_CamelModel):
    """Response body for ``GET /questions/strategies``."""

    strategies: dict[str, list[StrategyOut]]
    total: int
    endpoints: dict[str, str]
