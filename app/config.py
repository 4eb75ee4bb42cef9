"""
Application settings loaded from the environment
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration, read once per process"""

    def __init__(self):
        self.app_name = os.getenv("APP_NAME", "Medical Records API")
        self.api_prefix = os.getenv("API_PREFIX", "/api")
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./medical_records.db")

        # Security
        self.secret_key = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
        self.algorithm = "HS256"
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))
        self.password_reset_expire_minutes = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60"))
        self.bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))

        # Reset tokens are returned in the response body until email delivery exists
        self.expose_reset_token = _env_bool("EXPOSE_RESET_TOKEN", True)

        self.rate_limit_enabled = _env_bool("RATE_LIMIT_ENABLED", True)
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
