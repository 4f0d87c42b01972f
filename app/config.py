"""
ExecBoard - Application configuration.

Centralized configuration using Pydantic Settings for environment variable management.

Environment Variables:
    All settings can be overridden via environment variables with EXECBOARD_ prefix.

    AI Settings:
        EXECBOARD_OPENAI_API_KEY=...       - Enables the /api/ai routes (503 when unset)
        EXECBOARD_OPENAI_MODEL=...         - Chat model (default gpt-4o-mini)

    Auth Settings:
        EXECBOARD_SECRET_KEY=...           - JWT signing key (required in production)
        EXECBOARD_ADMIN_EMAIL=...          - Promote this account to ADMIN at startup

    Payments:
        EXECBOARD_STRIPE_SECRET_KEY=...    - Enables payment and subscription routes
        EXECBOARD_STRIPE_WEBHOOK_SECRET=.. - Required by /api/payments/webhook

    Infrastructure:
        EXECBOARD_DATABASE_URL=...         - SQLAlchemy URL (SQLite or PostgreSQL)
        EXECBOARD_REDIS_URL=...            - Counter store for rate limits and list cache
"""
from pydantic_settings import BaseSettings
from typing import Optional


class AISettings(BaseSettings):
    """
    LLM provider configuration.

    Any OpenAI-compatible chat completions endpoint works; point
    EXECBOARD_OPENAI_BASE_URL at a proxy or alternative provider if needed.
    """
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0.4
    ai_max_tokens: int = 1200
    ai_timeout_seconds: float = 30.0
    ai_retries: int = 2
    ai_retry_min_delay: float = 0.5
    ai_retry_max_delay: float = 5.0

    class Config:
        env_prefix = "EXECBOARD_"
        env_file = ".env"
        extra = "ignore"


class AuthSettings(BaseSettings):
    """
    Authentication configuration settings.

    For production deployment:
        1. Generate a secret key: openssl rand -hex 32
        2. Set EXECBOARD_SECRET_KEY to the generated key
        3. Optionally set EXECBOARD_ADMIN_EMAIL to bootstrap the first admin
    """
    secret_key: str = "development-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7
    password_reset_max_age_seconds: int = 3600
    admin_email: Optional[str] = None

    class Config:
        env_prefix = "EXECBOARD_"
        env_file = ".env"
        extra = "ignore"


class StripeSettings(BaseSettings):
    """Stripe keys. Payment routes answer 503 until a secret key is configured."""
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_currency: str = "usd"

    class Config:
        env_prefix = "EXECBOARD_"
        env_file = ".env"
        extra = "ignore"


class EmailSettings(BaseSettings):
    """
    Outbound email. Resend is used when an API key is present, otherwise SMTP.
    With neither configured, emails are skipped with a warning.
    """
    resend_api_key: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    from_email: str = "no-reply@execboard.local"
    from_name: str = "ExecBoard"
    app_base_url: str = "http://localhost:8000"

    class Config:
        env_prefix = "EXECBOARD_"
        env_file = ".env"
        extra = "ignore"


class Settings(BaseSettings):
    """Combined application settings."""
    ai: AISettings = AISettings()
    auth: AuthSettings = AuthSettings()
    stripe: StripeSettings = StripeSettings()
    email: EmailSettings = EmailSettings()

    # CORS allowed origins (comma-separated, e.g. "http://localhost:3000,https://myapp.com")
    allowed_origins: str = "*"

    # Database
    database_url: str = "sqlite:///./data/execboard.db"
    auto_create_tables: bool = True

    # Database connection pool (PostgreSQL only)
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Database retry settings
    db_retry_max_attempts: int = 3
    db_retry_base_delay: float = 0.1

    # Key-value store (rate-limit counters, short-lived cache)
    redis_url: Optional[str] = None

    # Fixed-window rate limiting defaults
    rate_limit_default_limit: int = 120
    rate_limit_default_window: int = 60

    job_list_cache_seconds: int = 30

    # Resume uploads
    upload_dir: str = "./data/resumes"

    class Config:
        env_prefix = "EXECBOARD_"
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
