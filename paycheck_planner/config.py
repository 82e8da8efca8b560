"""Configuration management using Pydantic Settings"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "paycheck-planner"
    log_level: str = "INFO"

    # Paycheck timeline
    default_paycheck_amount: Decimal = Decimal("3000.00")  # Synthetic paycheck when no income exists
    forecast_periods: int = 12
    past_periods: int = 3
    lookback_months: int = 2

    # Allocation
    deficit_lookahead_periods: int = 2
    urgent_goal_months: int = 6

    # Health analysis
    health_sample_periods: int = 6


settings = Settings()
