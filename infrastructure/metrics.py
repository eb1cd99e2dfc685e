"""Prometheus metrics for the question engine.

Metrics:
    trivia_generation_requests_total       Counter by endpoint and status
    trivia_generation_latency_seconds      Histogram of request latency by endpoint
    trivia_catalog_failures_total          Failed catalog calls by operation
    trivia_pool_fallback_total             Times the chart fallback ran
    trivia_degraded_questions_total        Questions with fewer detractors than asked
    trivia_circuit_breaker_trips_total     Times a breaker tripped to OPEN
    trivia_circuit_breaker_rejected_total  Calls rejected while a breaker was OPEN

All metrics live in a private ``CollectorRegistry`` so tests and multiple
app instances never collide with the global default registry.

Usage::

    from infrastructure.metrics import record_generation

    t_start = time.perf_counter()
    questions = generate_question_set(...)
    record_generation(
        endpoint="generate", status="success", latency_seconds=time.perf_counter() - t_start
    )
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_REGISTRY = CollectorRegistry()

generation_requests_total = Counter(
    "trivia_generation_requests_total",
    "Question generation requests by endpoint and status",
    ["endpoint", "status"],
    registry=_REGISTRY,
)

generation_latency_seconds = Histogram(
    "trivia_generation_latency_seconds",
    "End-to-end question generation latency in seconds",
    ["endpoint"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    registry=_REGISTRY,
)

catalog_failures_total = Counter(
    "trivia_catalog_failures_total",
    "Catalog calls that failed and were skipped",
    ["operation"],
    registry=_REGISTRY,
)

pool_fallback_total = Counter(
    "trivia_pool_fallback_total",
    "Candidate pools topped up from the charts",
    registry=_REGISTRY,
)

degraded_questions_total = Counter(
    "trivia_degraded_questions_total",
    "Questions generated with fewer detractors than requested",
    registry=_REGISTRY,
)

circuit_breaker_trips_total = Counter(
    "trivia_circuit_breaker_trips_total",
    "Number of times a circuit breaker tripped to OPEN state",
    ["breaker_name"],
    registry=_REGISTRY,
)

circuit_breaker_rejected_total = Counter(
    "trivia_circuit_breaker_rejected_total",
    "Calls rejected because circuit was OPEN",
    ["breaker_name"],
    registry=_REGISTRY,
)


def record_generation(*, endpoint: str, status: str, latency_seconds: float) -> None:
    """Record a finished generation request.

    Args:
        endpoint: ``"generate"`` or ``"generate_advanced"``.
        status: ``"success"``, ``"invalid"``, ``"unavailable"`` or ``"error"``.
        latency_seconds: Wall-clock time in seconds.
    """
    generation_requests_total.labels(endpoint=endpoint, status=status).inc()
    generation_latency_seconds.labels(endpoint=endpoint).observe(latency_seconds)


def record_catalog_failure(operation: str) -> None:
    """Increment the failed catalog call counter (``search``, ``top_charts``...)."""
    catalog_failures_total.labels(operation=operation).inc()


def record_pool_fallback() -> None:
    pool_fallback_total.inc()


def record_degraded_questions(count: int) -> None:
    if count > 0:
        degraded_questions_total.inc(count)


def record_circuit_trip(breaker_name: str) -> None:
    circuit_breaker_trips_total.labels(breaker_name=breaker_name).inc()


def record_circuit_rejected(breaker_name: str) -> None:
    circuit_breaker_rejected_total.labels(breaker_name=breaker_name).inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Prometheus text exposition of the registry as ``(body, content_type)``."""
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST
