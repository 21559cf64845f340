"""
Errors raised by the metrics capture and rollup services.
"""

from typing import Optional


class MetricsError(Exception):
    """Base class for metrics capture/rollup errors."""


class StatisticsUnavailableError(MetricsError):
    """Raised when raw statistics cannot be read (query failure or open circuit)."""

    def __init__(self, operation: str, resource_name: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.resource_name = resource_name

        if message is None:
            target = f" for {resource_name}" if resource_name else ""
            message = f"Statistics source unavailable during {operation}{target}"
        super().__init__(message)


class UnknownIntervalError(MetricsError, ValueError):
    """Raised for an interval name that is not configured."""

    def __init__(self, interval_name: str, allowed):
        self.interval_name = interval_name
        super().__init__(
            f"Unknown interval '{interval_name}'. Must be one of: {', '.join(sorted(allowed))}"
        )
