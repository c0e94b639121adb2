"""Resilience patterns for the scrape and notify pipeline."""

from .circuit_breaker import CircuitBreaker, CircuitState
from .fallback import FallbackChain, FallbackOutcome
from .health import TargetHealth
from .retry import is_transient, retry_transient

__all__ = [
    "retry_transient",
    "is_transient",
    "CircuitBreaker",
    "CircuitState",
    "FallbackChain",
    "FallbackOutcome",
    "TargetHealth",
]
