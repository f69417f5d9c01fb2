from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase settings
    SUPABASE_URL: str
    SUPABASE_JWKS_URL: str | None = None
    SUPABASE_DB_URL: str

    # Wall-clock zone used for want-to-do expiry boundaries
    APP_TIMEZONE: str = "Asia/Tokyo"

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    # =================================================================
    # NEARBY SEARCH
    # =================================================================
    NEARBY_DEFAULT_RADIUS_M: float = 5000.0
    NEARBY_MIN_RADIUS_M: float = 100.0
    NEARBY_MAX_RADIUS_M: float = 50000.0
    NEARBY_DEFAULT_LIMIT: int = 50
    NEARBY_MAX_LIMIT: int = 100
    NEARBY_BOUNDS_DEFAULT_LIMIT: int = 100
    NEARBY_BOUNDS_MAX_LIMIT: int = 200
    NEARBY_OVERFETCH_FACTOR: int = 2

    # =================================================================
    # EXPIRY SWEEP
    # =================================================================
    EXPIRY_SWEEP_ENABLED: bool = True
    EXPIRY_SWEEP_INTERVAL_SECONDS: float = 60.0
    EXPIRY_SWEEP_ERROR_BACKOFF_SECONDS: float = 60.0

    # =================================================================
    # NOTIFICATIONS
    # =================================================================
    PUSH_NOTIFICATIONS_ENABLED: bool = True
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    PUSH_TIMEOUT_SECONDS: float = 10.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # derive sensible defaults if not provided
    def jwks_url(self) -> str:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": min(self.DB_POOL_MIN_SIZE, 2),
                    "max_size": min(self.DB_POOL_MAX_SIZE, 6),
                    "timeout": 15.0,
                }
            )

        return config

    def get_expiry_sweep_config(self) -> dict:
        """Expiry sweep scheduler configuration."""
        return {
            "enabled": self.EXPIRY_SWEEP_ENABLED,
            "interval_seconds": self.EXPIRY_SWEEP_INTERVAL_SECONDS,
            "error_backoff_seconds": self.EXPIRY_SWEEP_ERROR_BACKOFF_SECONDS,
        }


settings = Settings()
