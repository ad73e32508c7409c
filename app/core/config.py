from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Gemini credentials
    gemini_api_keys: str = ""  # comma-separated, tried in order
    gemini_api_key: str = ""  # single-key fallback, used when gemini_api_keys is empty

    @property
    def credential_source(self) -> str:
        return self.gemini_api_keys or self.gemini_api_key

    # Gemini endpoint
    gemini_api_base: str = "https://generativelanguage.googleapis.com"
    gemini_api_version: str = "v1"
    gemini_model: str = "gemini-1.5-flash-latest"
    gemini_timeout_seconds: float = 60.0  # per HTTP call

    # Dispatch policy
    max_retries_per_credential: int = 2  # retries on 503 before failing over
    base_retry_delay: float = 1.5  # seconds, doubled per retry
    max_retry_delay: float = 30.0
    dispatch_deadline_seconds: float = 120.0  # overall budget per request, 0 disables

    # Prompting
    default_system_prompt: str = "You are an assistant that analyzes tender documents and answers in Russian."

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    max_body_bytes: int = 15 * 1024 * 1024

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.max_retries_per_credential < 0:
        errors.append("MAX_RETRIES_PER_CREDENTIAL must not be negative")

    if settings.base_retry_delay <= 0 or settings.max_retry_delay < settings.base_retry_delay:
        errors.append("BASE_RETRY_DELAY must be positive and not exceed MAX_RETRY_DELAY")

    if settings.dispatch_deadline_seconds < 0:
        errors.append("DISPATCH_DEADLINE_SECONDS must not be negative")

    if settings.app_env == "production":
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
