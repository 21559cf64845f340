"""
Circuit Breaker Implementation for External Service Dependencies

Protects against cascading failures by opening circuits after consecutive failures
and automatically attempting recovery after a timeout period.

Services protected:
- Statistics source (catalog/statistics queries against the monitored database)
"""

import logging
from typing import Dict, Optional

import pybreaker

from app.config import settings

logger = logging.getLogger(__name__)

SERVICE_NAMES = {
    "statistics_source": "statistics_source",
}


class CircuitBreakerLogListener(pybreaker.CircuitBreakerListener):
    """
    Logging listener for circuit breaker state changes.

    An opening circuit is logged at ERROR: the monitored database is then
    skipped until the reset timeout elapses.
    """

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state: pybreaker.CircuitBreakerState, new_state: pybreaker.CircuitBreakerState):
        """
        Handle circuit breaker state changes.

        Args:
            cb: The circuit breaker instance
            old_state: Previous state
            new_state: New state
        """
        old_name = old_state.name if old_state else None
        extra = {
            "circuit_breaker": cb.name,
            "old_state": old_name,
            "new_state": new_state.name,
            "fail_count": cb.fail_counter
        }

        if new_state.name == pybreaker.STATE_OPEN:
            logger.error(
                f"Circuit breaker opened: {cb.name} isolated for {cb.reset_timeout} seconds "
                f"after {cb.fail_counter} consecutive failures",
                extra=extra
            )
        else:
            logger.warning(
                f"Circuit breaker state change: {cb.name} transitioned from {old_name} to {new_state.name}",
                extra=extra
            )


def _create_breaker(name: str, listener: CircuitBreakerLogListener) -> pybreaker.CircuitBreaker:
    """
    Create a circuit breaker with configured thresholds.

    Args:
        name: Service name for the circuit breaker
        listener: State change listener

    Returns:
        Configured CircuitBreaker instance
    """
    return pybreaker.CircuitBreaker(
        name=name,
        fail_max=settings.circuit_breaker_fail_max,
        reset_timeout=settings.circuit_breaker_reset_timeout,
        listeners=[listener]
    )


# Module-level instances (lazy initialization)
_listener: Optional[CircuitBreakerLogListener] = None
_breakers: Dict[str, pybreaker.CircuitBreaker] = {}


def get_breaker(service_name: str) -> pybreaker.CircuitBreaker:
    """
    Get circuit breaker for a specific service.

    Lazy initializes breakers on first access to avoid import-time side effects.

    Args:
        service_name: Service name ("statistics_source")

    Returns:
        Circuit breaker instance for the service

    Raises:
        ValueError: If service_name is not recognized
    """
    global _listener

    if service_name not in SERVICE_NAMES:
        raise ValueError(
            f"Unknown service name: {service_name}. Must be one of: {', '.join(SERVICE_NAMES)}"
        )

    if _listener is None:
        _listener = CircuitBreakerLogListener()

    if service_name not in _breakers:
        _breakers[service_name] = _create_breaker(SERVICE_NAMES[service_name], _listener)
        logger.info(f"Initialized {service_name} circuit breaker")
    return _breakers[service_name]


def get_stats_source_breaker() -> pybreaker.CircuitBreaker:
    """
    Get circuit breaker for the statistics source.

    Returns:
        Circuit breaker instance for the statistics source
    """
    return get_breaker("statistics_source")


def reset_breakers() -> None:
    """Drop all breaker instances (next access recreates them closed)."""
    _breakers.clear()


# Re-export exception for caller handling
from pybreaker import CircuitBreakerError

__all__ = [
    "CircuitBreakerLogListener",
    "get_breaker",
    "get_stats_source_breaker",
    "reset_breakers",
    "CircuitBreakerError",
]
