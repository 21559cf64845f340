"""
Monitoring Module
Exports for structured logging and circuit breakers
"""

from app.services.monitoring.logging import setup_logging, ServiceJsonFormatter
from app.services.monitoring.circuit_breakers import (
    get_breaker,
    get_stats_source_breaker,
    reset_breakers,
    CircuitBreakerError,
    CircuitBreakerLogListener,
)

__all__ = [
    "setup_logging",
    "ServiceJsonFormatter",
    "get_breaker",
    "get_stats_source_breaker",
    "reset_breakers",
    "CircuitBreakerError",
    "CircuitBreakerLogListener",
]
