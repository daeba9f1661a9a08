"""
Server configuration loaded from environment variables.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Server configuration."""

    # Server settings
    HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("SERVER_PORT", "8765"))
    PING_INTERVAL: int = int(os.getenv("SERVER_PING_INTERVAL", "30"))

    # Database
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/monopoly.db"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Join retry (the room may not be visible to the reader yet)
    JOIN_MAX_ATTEMPTS: int = int(os.getenv("JOIN_MAX_ATTEMPTS", "7"))
    JOIN_BASE_DELAY_MS: int = int(os.getenv("JOIN_BASE_DELAY_MS", "150"))
    JOIN_MAX_DELAY_MS: int = int(os.getenv("JOIN_MAX_DELAY_MS", "3000"))

    # Game settings
    AUCTION_DURATION_SECONDS: float = float(os.getenv("AUCTION_DURATION_SECONDS", "30"))
    RESOLVED_RETENTION_SECONDS: float = float(os.getenv("RESOLVED_RETENTION_SECONDS", "60"))
    CHAT_HISTORY_LIMIT: int = int(os.getenv("CHAT_HISTORY_LIMIT", "100"))

    @classmethod
    def ensure_directories(cls) -> None:
        """Create necessary directories if they don't exist."""
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)


config = Config()
settings = config
