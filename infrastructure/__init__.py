"""Infrastructure layer — resilience patterns around the music catalog.

Modules:
    retry            Exponential backoff retry decorator.
    circuit_breaker  Circuit breaker for catalog API calls.
    metrics          Prometheus metrics registry.
"""
