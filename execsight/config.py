"""
ExecSight Configuration.

Pydantic Settings v2, loaded from .env and environment variables.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "ExecSight"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="EXECSIGHT_ENVIRONMENT")

    # ── Statistics ───────────────────────────────────────────────────────
    anomaly_z_threshold: float = Field(default=2.5, alias="EXECSIGHT_ANOMALY_Z_THRESHOLD")
    anomaly_method: str = Field(default="robust", alias="EXECSIGHT_ANOMALY_METHOD")
    monte_carlo_iterations: int = Field(default=1000, alias="EXECSIGHT_MONTE_CARLO_ITERATIONS")
    monte_carlo_seed: Optional[int] = Field(default=None, alias="EXECSIGHT_MONTE_CARLO_SEED")
    confidence_level: float = Field(default=0.95, alias="EXECSIGHT_CONFIDENCE_LEVEL")
    interval_floor_ratio: float = Field(
        default=0.10, alias="EXECSIGHT_INTERVAL_FLOOR_RATIO",
        description="Minimum interval width as a fraction of the central value",
    )
    correlation_significant: float = Field(default=0.7, alias="EXECSIGHT_CORRELATION_SIGNIFICANT")
    max_lag_periods: int = Field(default=4, alias="EXECSIGHT_MAX_LAG_PERIODS")

    # ── Recommendation ranking ───────────────────────────────────────────
    priority_high_threshold: float = Field(default=0.75, alias="EXECSIGHT_PRIORITY_HIGH")
    priority_medium_threshold: float = Field(default=0.4, alias="EXECSIGHT_PRIORITY_MEDIUM")
    weight_completeness: float = Field(default=0.4, alias="EXECSIGHT_WEIGHT_COMPLETENESS")
    weight_sample_size: float = Field(default=0.3, alias="EXECSIGHT_WEIGHT_SAMPLE_SIZE")
    weight_history: float = Field(default=0.3, alias="EXECSIGHT_WEIGHT_HISTORY")
    baseline_accuracy: float = Field(default=0.75, alias="EXECSIGHT_BASELINE_ACCURACY")
    min_confidence: float = Field(default=0.0, alias="EXECSIGHT_MIN_CONFIDENCE")

    # ── Aggregation ──────────────────────────────────────────────────────
    retry_max_retries: int = Field(
        default=3, alias="EXECSIGHT_RETRY_MAX_RETRIES",
        description="Retries after the first attempt (total attempts = 1 + retries)",
    )
    retry_delay_seconds: float = Field(default=0.1, alias="EXECSIGHT_RETRY_DELAY_SECONDS")
    fetch_timeout_seconds: Optional[float] = Field(default=None, alias="EXECSIGHT_FETCH_TIMEOUT_SECONDS")

    # ── Live updates ─────────────────────────────────────────────────────
    version_multiplier: int = Field(default=1_000_000, alias="EXECSIGHT_VERSION_MULTIPLIER")
    live_queue_size: int = Field(default=0, ge=0, alias="EXECSIGHT_LIVE_QUEUE_SIZE")

    # ── Analyzer thresholds ──────────────────────────────────────────────
    stockout_probability_threshold: float = Field(default=0.3, alias="EXECSIGHT_STOCKOUT_THRESHOLD")
    overstock_months_threshold: float = Field(default=3.0, alias="EXECSIGHT_OVERSTOCK_MONTHS")
    slow_moving_turnover_threshold: float = Field(default=2.0, alias="EXECSIGHT_SLOW_MOVING_TURNOVER")
    roi_minimum: float = Field(default=1.5, alias="EXECSIGHT_ROI_MINIMUM")
    roi_top_performer: float = Field(default=3.0, alias="EXECSIGHT_ROI_TOP_PERFORMER")
    bottleneck_utilization: float = Field(default=0.9, alias="EXECSIGHT_BOTTLENECK_UTILIZATION")
    efficiency_floor: float = Field(default=0.7, alias="EXECSIGHT_EFFICIENCY_FLOOR")
    churn_risk_threshold: float = Field(default=0.5, alias="EXECSIGHT_CHURN_RISK_THRESHOLD")

    # ── Operational ──────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")


settings = Settings()
