"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./gestor_finance.db"

    # Service
    service_name: str = "gestor-finance"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Notifications (logged only when no webhook is configured)
    notification_webhook_url: str | None = None
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = 3
    webhook_backoff_base: float = 0.5  # Exponential backoff base in seconds

    # Installment plans
    plan_tolerance_cents: int = 0

    # Forecasting
    forecast_months_ahead: int = 6
    installment_cash_flow_months: int = 12
    volatility_threshold: float = 0.25
    smoothing_alpha: float = 0.3

    # Backup
    backup_format_version: str = "3.0.0"


settings = Settings()
