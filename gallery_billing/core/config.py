from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    ENV: str = "prod"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 1800

    CORS_ALLOWED_ORIGINS: str = "https://hivemind-ar.vercel.app,http://localhost:5173,http://localhost:3000"
    # Falls back to CORS_ALLOWED_ORIGINS when empty
    CHECKOUT_REDIRECT_ORIGINS: str = ""
    SECURITY_HEADERS_ENABLED: bool = True

    # Hosted backend (database + auth)
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    SUPABASE_JWT_SECRET: str | None = None
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    SUPABASE_HTTP_TIMEOUT_SECONDS: int = 10

    # Payment provider
    AIRWALLEX_API_KEY: str | None = None
    AIRWALLEX_CLIENT_ID: str | None = None
    AIRWALLEX_ENV: str = "demo"  # demo|prod
    AIRWALLEX_WEBHOOK_SECRET: str | None = None
    AIRWALLEX_HTTP_TIMEOUT_SECONDS: int = 20
    WEBHOOK_MAX_AGE_SECONDS: int = 300

    CHECKOUT_SUCCESS_PATH: str = "/pages/subscriber/dashboard.html?payment=success"
    CHECKOUT_CANCEL_PATH: str = "/pages/subscriber/upgrade.html?payment=cancelled"


def split_csv(raw: str | None) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def cors_allowed_origins() -> list[str]:
    return split_csv(settings.CORS_ALLOWED_ORIGINS)


def checkout_redirect_origins() -> list[str]:
    return split_csv(settings.CHECKOUT_REDIRECT_ORIGINS) or cors_allowed_origins()


settings = Settings()
