"""Environment driven configuration for the AMC simulation service."""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSE_VALUES = {"0", "false", "False", "no", "off", ""}


@dataclass(slots=True)
class DatabaseSettings:
    """Connection details for the relational store."""

    driver: str
    host: str
    port: int
    user: str
    password: str
    name: str
    url_override: str | None = None

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL."""

        if self.url_override:
            return self.url_override
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        if self.url_override:
            return self.url_override.split("@")[-1]
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


@dataclass(frozen=True, slots=True)
class SimulationSettings:
    """Cadence and limits of the simulation orchestrator.

    Intervals are expressed in seconds.
    """

    customer_creation_interval: float = 5.0
    folio_creation_interval: float = 3600.0
    transaction_simulation_interval: float = 30.0
    settlement_processing_interval: float = 60.0
    sip_execution_interval: float = 300.0
    nav_update_interval: float = 3600.0
    settlement_processing_delay: float = 300.0
    settlement_batch_size: int = 20
    settlement_max_attempts: int = 3
    settlement_retry_backoff: float = 60.0
    max_folios_per_customer: int = 100
    auto_start: bool = False
    worker_threads: int = 4
    skip_overlapping_ticks: bool = True
    amc_code: str = "SIMAMC"


@dataclass(frozen=True, slots=True)
class MaintenanceSettings:
    """Calendar jobs that keep the store tidy."""

    enabled: bool = True
    timezone: str = "Asia/Kolkata"
    nav_retention_years: int = 5
    stale_transaction_hours: int = 24
    drift_epsilon: float = 0.001


@dataclass(slots=True)
class AppSettings:
    environment: str = "development"
    log_level: str = "INFO"
    log_dir: str | None = "logs"
    create_schema: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@dataclass(slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    maintenance: MaintenanceSettings = field(default_factory=MaintenanceSettings)
    app: AppSettings = field(default_factory=AppSettings)
    sqlalchemy_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        def _get_env(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _get_flag(name: str, default: str) -> bool:
            return _get_env(name, default) not in _FALSE_VALUES

        db = DatabaseSettings(
            driver=_get_env("DB_DRIVER", "mysql+pymysql"),
            host=_get_env("DB_HOST", "127.0.0.1"),
            port=int(_get_env("DB_PORT", "3306")),
            user=_get_env("DB_USER", "amc_user"),
            password=_get_env("DB_PASSWORD", "amc_password"),
            name=_get_env("DB_NAME", "amc_simulation"),
            url_override=os.getenv("DATABASE_URL") or None,
        )
        simulation = SimulationSettings(
            customer_creation_interval=float(_get_env("CUSTOMER_CREATION_INTERVAL_SECONDS", "5")),
            folio_creation_interval=float(_get_env("FOLIO_CREATION_INTERVAL_SECONDS", "3600")),
            transaction_simulation_interval=float(
                _get_env("TRANSACTION_SIMULATION_INTERVAL_SECONDS", "30")
            ),
            settlement_processing_interval=float(
                _get_env("SETTLEMENT_PROCESSING_INTERVAL_SECONDS", "60")
            ),
            sip_execution_interval=float(_get_env("SIP_EXECUTION_INTERVAL_SECONDS", "300")),
            nav_update_interval=float(_get_env("NAV_UPDATE_INTERVAL_SECONDS", "3600")),
            settlement_processing_delay=float(_get_env("SETTLEMENT_PROCESSING_DELAY_SECONDS", "300")),
            settlement_batch_size=int(_get_env("SETTLEMENT_BATCH_SIZE", "20")),
            settlement_max_attempts=int(_get_env("SETTLEMENT_MAX_ATTEMPTS", "3")),
            settlement_retry_backoff=float(_get_env("SETTLEMENT_RETRY_BACKOFF_SECONDS", "60")),
            max_folios_per_customer=int(_get_env("MAX_FOLIOS_PER_CUSTOMER", "100")),
            auto_start=_get_flag("SIMULATION_AUTO_START", "0"),
            worker_threads=int(_get_env("SIMULATION_WORKER_THREADS", "4")),
            skip_overlapping_ticks=_get_flag("SIMULATION_SKIP_OVERLAPPING_TICKS", "1"),
            amc_code=_get_env("AMC_CODE", "SIMAMC"),
        )
        maintenance = MaintenanceSettings(
            enabled=_get_flag("MAINTENANCE_ENABLED", "1"),
            timezone=_get_env("MAINTENANCE_TIMEZONE", "Asia/Kolkata"),
            nav_retention_years=int(_get_env("NAV_HISTORY_RETENTION_YEARS", "5")),
            stale_transaction_hours=int(_get_env("STALE_TRANSACTION_HOURS", "24")),
            drift_epsilon=float(_get_env("HOLDINGS_DRIFT_EPSILON", "0.001")),
        )
        app = AppSettings(
            environment=_get_env("APP_ENV", "development"),
            log_level=_get_env("LOG_LEVEL", "INFO"),
            log_dir=_get_env("LOG_DIR", "logs") or None,
            create_schema=_get_flag("CREATE_SCHEMA", "1"),
        )
        return cls(
            database=db,
            simulation=simulation,
            maintenance=maintenance,
            app=app,
            sqlalchemy_echo=_get_flag("SQLALCHEMY_ECHO", "0"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .log import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "sqlalchemy_echo": settings.sqlalchemy_echo,
            "database": settings.database.masked_url,
            "simulation": {
                "auto_start": settings.simulation.auto_start,
                "worker_threads": settings.simulation.worker_threads,
                "max_folios_per_customer": settings.simulation.max_folios_per_customer,
            },
            "maintenance": {
                "enabled": settings.maintenance.enabled,
                "timezone": settings.maintenance.timezone,
            },
            "environment": settings.app.environment,
        },
    )
    return settings
