"""
Question generation routes.

``POST /questions/generate``          — questions around caller-selected songs.
``POST /questions/generate-advanced`` — questions from a search strategy.
``GET  /questions/strategies``        — the strategy catalogue.

Resilience:
    - Failed expansion searches are skipped and reported in ``meta.failedTerms``.
    - Questions with fewer detractors than requested are returned with
      ``degraded=true`` rather than failing the request.
    - Catalog outages (open circuit, HTTP failure resolving ids) map to 503.
"""

import logging
import random
import time
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response

from api.deps import get_catalog_client, get_generation_config
from api.schemas.questions import (
    AdvancedGenerateRequest,
    AdvancedGenerateResponse,
    GenerateRequest,
    GenerateResponse,
    GenerationMeta,
    QuestionOut,
    SongOut,
    StrategiesResponse,
    StrategyOut,
)
from catalog.apple_music import AppleMusicClient, CatalogError
from catalog.pool_builder import CandidatePoolBuilder
from catalog.strategies import StrategyOrchestrator
from core.config import GenerationConfig
from core.question_set import QuestionSetOptions, generate_question_set
from core.search_terms import STRATEGY_KINDS, STRATEGY_REGISTRY, SearchStrategy
from core.songs import SongRecord, primary_genre, release_year
from core.types import GeneratedQuestion, InvalidArgumentError
from infrastructure.circuit_breaker import CircuitOpenError
from infrastructure.metrics import record_degraded_questions, record_generation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questions", tags=["questions"])

Catalog = Annotated[AppleMusicClient, Depends(get_catalog_client)]
Config = Annotated[GenerationConfig, Depends(get_generation_config)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _song_out(song: SongRecord) -> SongOut:
    return SongOut(
        id=song.id,
        name=song.name,
        artist=song.artist_name,
        album=song.album_name,
        artwork=song.artwork_url,
        preview_url=song.preview_url,
        year=release_year(song),
        genre=primary_genre(song),
    )


def _strategy_out(strategy: SearchStrategy) -> StrategyOut:
    return StrategyOut(
        name=strategy.name,
        kind=strategy.kind,
        category=strategy.category,
        description=strategy.description,
    )


def _format_questions(
    questions: list[GeneratedQuestion],
    songs_by_id: dict[str, SongRecord],
    options: QuestionSetOptions,
    rng: random.Random,
) -> list[QuestionOut]:
    formatted: list[QuestionOut] = []
    for index, question in enumerate(questions, start=1):
        correct = _song_out(songs_by_id[question.correct_song_id])
        detractors = [_song_out(songs_by_id[d]) for d in question.detractor_ids]
        choices = [correct, *detractors]
        rng.shuffle(choices)
        formatted.append(
            QuestionOut(
                question_number=index,
                correct_song=correct,
                detractors=detractors,
                options=choices,
                difficulty=question.difficulty,
                mode=options.mode,
                degraded=question.is_degraded(options.number_of_detractors),
            )
        )
    return formatted


def _fail(
    endpoint: str,
    status: str,
    status_code: int,
    detail: str,
    request_id: str,
    t_start: float,
) -> HTTPException:
    record_generation(
        endpoint=endpoint, status=status, latency_seconds=time.perf_counter() - t_start
    )
    return HTTPException(status_code=status_code, detail=f"{detail} request_id={request_id}")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/generate", response_model=GenerateResponse)
def generate(
    body: GenerateRequest,
    response: Response,
    catalog: Catalog,
    config: Config,
) -> GenerateResponse:
    """
    Generate one question per selected song.

    Resolves the ids against the catalog, builds a candidate pool from the
    genres and eras of the selected songs (topped up from the charts when
    small), then picks detractors at the requested difficulty.
    """
    request_id = str(uuid.uuid4())
    t_start = time.perf_counter()
    rng = random.Random()
    options = QuestionSetOptions(
        difficulty=body.difficulty,
        number_of_detractors=body.number_of_detractors,
        mode=body.mode,
    )

    try:
        selected = catalog.get_songs(body.selected_song_ids)
    except (CircuitOpenError, CatalogError) as exc:
        logger.error("Resolving selected songs failed [request_id=%s]: %s", request_id, exc)
        raise _fail(
            "generate", "unavailable", 503, "Music catalog unavailable.", request_id, t_start
        ) from exc

    try:
        if not selected:
            raise InvalidArgumentError("selectedSongIds", "none of the ids exist in the catalog")
        pool = CandidatePoolBuilder(catalog, config.pool).build(selected)
        questions = generate_question_set(selected, pool.songs(), options, config=config, rng=rng)
    except InvalidArgumentError as exc:
        raise _fail("generate", "invalid", 400, str(exc), request_id, t_start) from exc

    songs_by_id = {s.id: s for s in pool}
    songs_by_id.update((s.id, s) for s in selected)
    degraded = sum(q.is_degraded(options.number_of_detractors) for q in questions)
    record_degraded_questions(degraded)

    total_ms = (time.perf_counter() - t_start) * 1000
    record_generation(endpoint="generate", status="success", latency_seconds=total_ms / 1000)
    logger.info(
        "Generated %d questions from pool of %d [request_id=%s, degraded=%d]",
        len(questions),
        len(pool),
        request_id,
        degraded,
    )

    response.headers["X-Request-Id"] = request_id
    formatted = _format_questions(questions, songs_by_id, options, rng)
    return GenerateResponse(
        questions=formatted,
        total_questions=len(formatted),
        meta=GenerationMeta(
            pool_size=len(pool),
            used_chart_fallback=pool.used_chart_fallback,
            failed_terms=pool.failed_terms,
            degraded_questions=degraded,
            request_id=request_id,
            total_ms=round(total_ms, 2),
        ),
    )


@router.post("/generate-advanced", response_model=AdvancedGenerateResponse)
def generate_advanced(
    body: AdvancedGenerateRequest,
    response: Response,
    catalog: Catalog,
    config: Config,
) -> AdvancedGenerateResponse:
    """
    Generate a question set from a search strategy.

    The strategy supplies a song list; ``count`` of them become correct
    songs and the rest form the detractor pool. Rejected with 400 when the
    strategy found fewer than ``count + 3 * numberOfDetractors`` songs.
    """
    request_id = str(uuid.uuid4())
    t_start = time.perf_counter()
    rng = random.Random()
    orchestrator = StrategyOrchestrator(catalog, config, rng)
    options = QuestionSetOptions(
        difficulty=body.difficulty,
        number_of_detractors=body.number_of_detractors,
        mode=body.mode,
    )

    params: dict[str, object] = {
        "name": body.strategy_name,
        "tier": body.popularity,
        "count": body.mixed_count,
        "theme": body.theme,
    }
    if body.time_span is not None:
        params["start_year"] = body.time_span.start_year
        params["end_year"] = body.time_span.end_year

    try:
        if body.strategy == "thematic":
            params["matched_songs"] = catalog.get_songs(body.matched_song_ids or [])
        result = orchestrator.run(body.strategy, **params)
    except InvalidArgumentError as exc:
        raise _fail("generate_advanced", "invalid", 400, str(exc), request_id, t_start) from exc
    except (CircuitOpenError, CatalogError) as exc:
        logger.error("Strategy %s failed [request_id=%s]: %s", body.strategy, request_id, exc)
        raise _fail(
            "generate_advanced",
            "unavailable",
            503,
            "Music catalog unavailable.",
            request_id,
            t_start,
        ) from exc

    songs = list(result.songs)
    needed = body.count + body.number_of_detractors * 3
    if len(songs) < needed:
        logger.info(
            "Strategy %s found %d songs, need %d [request_id=%s]",
            body.strategy,
            len(songs),
            needed,
            request_id,
        )
        raise _fail(
            "generate_advanced",
            "invalid",
            400,
            "Not enough songs found for the selected strategy.",
            request_id,
            t_start,
        )

    rng.shuffle(songs)
    selected = songs[: body.count]
    selected_ids = {s.id for s in selected}
    pool = [s for s in songs if s.id not in selected_ids]

    questions = generate_question_set(selected, pool, options, config=config, rng=rng)
    degraded = sum(q.is_degraded(options.number_of_detractors) for q in questions)
    record_degraded_questions(degraded)

    total_ms = (time.perf_counter() - t_start) * 1000
    record_generation(
        endpoint="generate_advanced", status="success", latency_seconds=total_ms / 1000
    )

    response.headers["X-Request-Id"] = request_id
    formatted = _format_questions(questions, {s.id: s for s in songs}, options, rng)
    return AdvancedGenerateResponse(
        questions=formatted,
        total_questions=len(formatted),
        category=result.category,
        description=result.description,
        strategies=[_strategy_out(s) for s in result.strategies],
        generation_strategy=body.strategy,
        difficulty=body.difficulty,
        meta=GenerationMeta(
            pool_size=len(pool),
            failed_terms=result.failed_terms,
            degraded_questions=degraded,
            request_id=request_id,
            total_ms=round(total_ms, 2),
        ),
    )


@router.get("/strategies", response_model=StrategiesResponse)
def list_strategies() -> StrategiesResponse:
    """List the strategy catalogue grouped by kind."""
    grouped: dict[str, list[StrategyOut]] = {kind: [] for kind in STRATEGY_KINDS}
    for strategy in STRATEGY_REGISTRY:
        grouped[strategy.kind].append(_strategy_out(strategy))

    return StrategiesResponse(
        strategies=grouped,
        total=len(STRATEGY_REGISTRY),
        endpoints={
            "random": "Uses a random strategy",
            "mixed": "Combines multiple strategies",
            "charts": "Current top chart hits",
            "named": "Use a specific strategy by name (strategyName)",
            "time_span": "Songs from a specific year range (timeSpan)",
            "popularity": "Songs by popularity: viral, underground, mainstream",
            "thematic": "Externally matched songs used as their own pool (matchedSongIds)",
        },
    )
