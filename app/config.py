from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Studio Galleries"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    app_url: str = "http://localhost:8000"
    # Root domain for tenant subdomains, e.g. "mystudio.galleries.local"
    app_domain: str = "localhost"
    log_json: bool = True

    # Database settings
    database_url: str

    # Security settings
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    password_reset_expire_hours: int = 1

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Redis for rate-limit windows. Unset = per-process memory.
    redis_url: str | None = None
    # proxies allowed to set X-Forwarded-For (uvicorn --forwarded-allow-ips)
    forwarded_allow_ips: str = "127.0.0.1"

    # Object storage (S3-compatible)
    storage_endpoint_url: str | None = None
    storage_access_key: str | None = None
    storage_secret_key: str | None = None
    storage_bucket: str = "galleries"
    storage_region: str = "auto"
    storage_public_url: str = "http://localhost:9000/galleries"
    media_max_file_size: int = 50 * 1024 * 1024

    # Email
    smtp_host: str | None = None  # unset = emails are logged and skipped
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "no-reply@localhost"

    # Payments (Stripe). Unset secret key = checkout unavailable.
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str = ""
    default_currency: str = "EUR"
    # Stripe price lookup_key (or price id) -> tier, e.g. STRIPE_PRICE_TIERS='{"pro_monthly": "pro"}'
    stripe_price_tiers: dict[str, str] = {
        "pro_monthly": "pro",
        "pro_yearly": "pro",
        "studio_monthly": "studio",
        "studio_yearly": "studio",
    }

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
