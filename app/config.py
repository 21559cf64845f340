"""
Application Configuration
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database (metrics store)
    database_url: Optional[str] = None

    # Monitored database (statistics source). Falls back to database_url,
    # the usual case when the VMDB monitors itself.
    monitored_database_url: Optional[str] = None

    # Environment
    environment: str = "development"

    # Capture / Rollup
    capture_interval_name: str = "hourly"  # Finest granularity written by capture
    rollup_intervals: List[str] = ["daily"]  # Coarser intervals built by the scheduler
    capture_minute: int = 0  # Hourly capture runs at HH:00
    rollup_minute: int = 5  # Hourly rollup refresh runs at HH:05
    scheduler_timezone: str = "UTC"

    # Circuit Breaker Configuration
    # 5 consecutive failures, 60 seconds auto-recovery
    circuit_breaker_fail_max: int = 5
    circuit_breaker_reset_timeout: int = 60

    @property
    def stats_database_url(self) -> Optional[str]:
        return self.monitored_database_url or self.database_url

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
