"""
fleetalert Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
Schedules are plain strings parsed at registration (see scheduling.schedules).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "fleetalert"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///./fleetalert.db",
        alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=5, alias="DB_MAX_OVERFLOW")
    db_pool_recycle: int = Field(default=3600, alias="DB_POOL_RECYCLE")

    # ── Scheduler ────────────────────────────────────────────────────────
    scheduler_timezone: str = Field(default="UTC", alias="SCHEDULER_TIMEZONE")
    schedule_full_sweep: str = Field(default="0 6 * * *", alias="SCHEDULE_FULL_SWEEP")
    schedule_maintenance_due: str = Field(default="0 7 * * *", alias="SCHEDULE_MAINTENANCE_DUE")
    schedule_insurance_expiring: str = Field(default="30 7 * * *", alias="SCHEDULE_INSURANCE_EXPIRING")
    schedule_rental_expiring: str = Field(default="0 8 * * *", alias="SCHEDULE_RENTAL_EXPIRING")
    schedule_rental_overdue: str = Field(default="0 9 * * *", alias="SCHEDULE_RENTAL_OVERDUE")
    schedule_payment_pending: str = Field(default="0 */6 * * *", alias="SCHEDULE_PAYMENT_PENDING")
    schedule_inventory_low: str = Field(default="0 */12 * * *", alias="SCHEDULE_INVENTORY_LOW")
    schedule_quote_expiring: str = Field(default="30 8 * * *", alias="SCHEDULE_QUOTE_EXPIRING")
    schedule_lead_stale: str = Field(default="0 10 * * *", alias="SCHEDULE_LEAD_STALE")
    schedule_cleanup: str = Field(default="0 3 * * *", alias="SCHEDULE_CLEANUP")

    # ── Check thresholds ─────────────────────────────────────────────────
    # Maintenance
    maintenance_lookahead_days: int = Field(default=30, ge=0, alias="MAINTENANCE_LOOKAHEAD_DAYS")
    maintenance_urgent_days: int = Field(default=7, ge=0, alias="MAINTENANCE_URGENT_DAYS")

    # Insurance
    insurance_lookahead_days: int = Field(default=30, ge=0, alias="INSURANCE_LOOKAHEAD_DAYS")
    insurance_high_days: int = Field(default=14, ge=0, alias="INSURANCE_HIGH_DAYS")
    insurance_critical_days: int = Field(default=7, ge=0, alias="INSURANCE_CRITICAL_DAYS")

    # Rentals
    rental_expiring_lookahead_days: int = Field(default=7, ge=1, alias="RENTAL_EXPIRING_LOOKAHEAD_DAYS")
    rental_overdue_high_days: int = Field(default=3, ge=1, alias="RENTAL_OVERDUE_HIGH_DAYS")
    rental_overdue_critical_days: int = Field(default=7, ge=1, alias="RENTAL_OVERDUE_CRITICAL_DAYS")

    # Payments
    payment_pending_after_days: int = Field(default=3, ge=0, alias="PAYMENT_PENDING_AFTER_DAYS")
    payment_pending_high_days: int = Field(default=7, ge=1, alias="PAYMENT_PENDING_HIGH_DAYS")
    payment_pending_critical_days: int = Field(default=14, ge=1, alias="PAYMENT_PENDING_CRITICAL_DAYS")

    # Inventory
    inventory_low_threshold: int = Field(
        default=2, ge=1, alias="INVENTORY_LOW_THRESHOLD",
        description="Minimum available vehicles per vehicle type",
    )

    # Quotes
    quote_expiring_lookahead_days: int = Field(default=3, ge=1, alias="QUOTE_EXPIRING_LOOKAHEAD_DAYS")

    # Leads
    lead_stale_after_days: int = Field(
        default=7, ge=1, alias="LEAD_STALE_AFTER_DAYS",
        description="Days without follow-up before an open lead is stale",
    )

    # ── Retention ────────────────────────────────────────────────────────
    alert_retention_days: int = Field(default=30, ge=1, alias="ALERT_RETENTION_DAYS")

    # ── Operational ──────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url


settings = Settings()
