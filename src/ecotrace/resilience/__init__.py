"""Cache and circuit breaker guarding external provider calls."""

from ecotrace.resilience.breaker import BreakerState, CircuitBreaker, CircuitState
from ecotrace.resilience.cache import CacheStats, TTLCache

__all__ = ["BreakerState", "CircuitBreaker", "CircuitState", "CacheStats", "TTLCache"]
