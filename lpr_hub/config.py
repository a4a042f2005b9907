# lpr_hub/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./events.db"
    SQLITE_BUSY_TIMEOUT_MS: int = 5000

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 3000
    CORS_ORIGINS: list[str] = ["*"]

    # ── Uploads ───────────────────────────────────────────────────────────
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024     # 10MB per image
    ALLOWED_IMAGE_TYPES: list[str] = ["image/jpeg"]

    # ── Dashboard ─────────────────────────────────────────────────────────
    DASHBOARD_PUSH_INTERVAL_SECONDS: float = 5.0
    DASHBOARD_DEBOUNCE_SECONDS: float = 0.2      # coalesce notification bursts
    DASHBOARD_SEND_TIMEOUT_SECONDS: float = 10.0

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
