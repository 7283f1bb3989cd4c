"""Configuration settings for the accounts service."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./accounts.db")

    # Password reset
    RESET_TOKEN_TTL_HOURS: int = int(os.getenv("RESET_TOKEN_TTL_HOURS", "24"))

    # Random tokens and verification codes
    TOKEN_BYTES: int = int(os.getenv("TOKEN_BYTES", "32"))

    # Password hashing
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.RESET_TOKEN_TTL_HOURS <= 0:
            errors.append("RESET_TOKEN_TTL_HOURS must be positive - reset links would expire immediately")
        if self.TOKEN_BYTES < 16:
            errors.append("TOKEN_BYTES below 16 - reset tokens and verification codes are guessable")
        if self.APP_ENV == "production" and self.BCRYPT_ROUNDS < 10:
            errors.append("BCRYPT_ROUNDS below 10 in production - password hashes are cheap to brute force")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
