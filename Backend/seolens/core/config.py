from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "SEOLens API"
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "60/minute"
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ⚠ SECURITY WARNING: These defaults are for local development ONLY.
    # In production, you MUST override CORS_ORIGINS via environment variable to restrict access.
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://localhost:5000"

    # ─── Bulk Upload Limits ──────────────────────────────────────────────
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_URLS_PER_JOB: int = 1000

    # ─── Bulk Processing ─────────────────────────────────────────────────
    BULK_BATCH_SIZE: int = 10
    URL_ANALYSIS_TIMEOUT_SECONDS: float = 30.0
    SECONDS_PER_URL_ESTIMATE: int = 2
    STATUS_POLL_INTERVAL_SECONDS: float = 2.0

    # ─── Page Fetching ───────────────────────────────────────────────────
    FETCH_TIMEOUT_SECONDS: float = 15.0
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )

    # ─── Storage ─────────────────────────────────────────────────────────
    UPLOAD_DIR: str = "uploads"
    RESULTS_DIR: str = "results"

    class Config:
        env_file = ".env"

settings = Settings()
