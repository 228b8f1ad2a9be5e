from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./lumenpulse.db"

    # Session tokens (JWT)
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60
    refresh_token_ttl_days: int = 7

    # Stellar wallet auth
    stellar_server_secret: str | None = None
    stellar_network: str = "testnet"
    web_auth_domain: str = "lumenpulse.io"
    challenge_data_name: str = "LumenPulse auth"
    challenge_ttl_seconds: int = 300  # 5 minutes
    challenge_sweep_interval_seconds: int = 60

    # Password reset
    reset_token_ttl_minutes: int = 60
    frontend_url: str = "http://localhost:3000"
    email_webhook_url: str | None = None

    # Background jobs
    scheduler_enabled: bool = True
    cleanup_interval_hours: int = 1

    # Rate Limiting
    rate_limit_challenges: str = "10/minute"
    rate_limit_verify: str = "10/minute"
    rate_limit_login: str = "10/minute"
    rate_limit_register: str = "5/minute"
    rate_limit_password_reset: str = "5/minute"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # CORS
    cors_origins: list[str] | str = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("stellar_network")
    @classmethod
    def validate_stellar_network(cls, v: str) -> str:
        v = v.lower()
        if v not in ("testnet", "public"):
            raise ValueError("stellar_network must be 'testnet' or 'public'")
        return v


settings = Settings()
