"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_KEY_PREFIX = "your_gemini_api_key"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "LearnPath"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENV: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./learnpath.db"
    DATABASE_ECHO: bool = False

    # Local fallback store (None keeps it in memory)
    LOCAL_STORE_PATH: Path | None = Path("./local_store.json")

    # Gemini
    GEMINI_API_KEYS: str = ""  # comma separated
    GEMINI_API_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.0-flash-exp:generateContent"
    )
    GEMINI_TIMEOUT: float = 30.0
    GEMINI_TEMPERATURE: float = 0.2
    GEMINI_TOP_K: int = 20
    GEMINI_TOP_P: float = 0.8
    GEMINI_MAX_OUTPUT_TOKENS: int = 4096

    # Key pool
    KEY_MAX_REQUESTS_PER_WINDOW: int = 20
    KEY_TIME_WINDOW: float = 60.0
    KEY_MIN_INTERVAL: float = 1.0
    KEY_MAX_CONSECUTIVE_ERRORS: int = 3
    KEY_COOLDOWN: float = 300.0

    # Batching
    BATCH_PAUSE: float = 0.5

    # Roadmap generation retries (user triggered)
    ROADMAP_MAX_ATTEMPTS: int = 3

    @property
    def gemini_api_keys(self) -> list[str]:
        """Configured keys with blanks and template placeholders removed."""
        keys = [k.strip() for k in self.GEMINI_API_KEYS.split(",")]
        return [k for k in keys if k and not k.startswith(PLACEHOLDER_KEY_PREFIX)]

    @property
    def generation_config(self) -> dict:
        return {
            "temperature": self.GEMINI_TEMPERATURE,
            "topK": self.GEMINI_TOP_K,
            "topP": self.GEMINI_TOP_P,
            "maxOutputTokens": self.GEMINI_MAX_OUTPUT_TOKENS,
        }

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
