import logging
import sys
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas.game_engine import DIFFICULTY_PRESETS

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEBUG: bool = False

    # WebSocket config
    WS_HEARTBEAT_INTERVAL: int = 30
    WS_CONNECTION_TIMEOUT: int = 120

    # Game config
    MAX_PLAYERS: int = 10
    DEFAULT_DIFFICULTY: str = "medium"
    TURN_TIME_LIMIT_SECONDS: float = 30.0

    # Room lifecycle
    ROOM_EXPIRY_SECONDS: float = 3600.0
    ROOM_EXPIRY_RESET_ON_ACTIVITY: bool = False

    @field_validator("MAX_PLAYERS")
    @classmethod
    def validate_max_players(cls, v: int) -> int:
        if not 2 <= v <= 10:
            raise ValueError("MAX_PLAYERS must be between 2 and 10")
        return v

    @field_validator("DEFAULT_DIFFICULTY")
    @classmethod
    def validate_difficulty(cls, v: str) -> str:
        if v not in DIFFICULTY_PRESETS:
            raise ValueError(
                f"DEFAULT_DIFFICULTY must be one of {sorted(DIFFICULTY_PRESETS)}"
            )
        return v

    @field_validator("TURN_TIME_LIMIT_SECONDS", "ROOM_EXPIRY_SECONDS")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timer durations must be positive")
        return v


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug(
        "Game settings: max_players=%d, difficulty=%s, turn_limit=%.1fs, room_expiry=%.1fs",
        settings.MAX_PLAYERS,
        settings.DEFAULT_DIFFICULTY,
        settings.TURN_TIME_LIMIT_SECONDS,
        settings.ROOM_EXPIRY_SECONDS,
    )
    return settings
