"""
Runtime configuration, read once from the environment (and a ``.env`` file).

Missing or malformed values raise a pydantic ``ValidationError`` (a
``ValueError``) at import time so the server refuses to boot instead of
failing per request.
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


# PUBLIC_INTERFACE
class Settings(BaseSettings):
    """
    Typed view of the environment the backend needs. Field names map to the
    upper-case environment variables (``jwt_secret`` reads ``JWT_SECRET``).
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_secret: str
    """Key used to sign session tokens."""

    database_url: str
    """SQLAlchemy URL of the notes database."""

    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    environment: str = "development"

    allowed_origins: str = ""
    """Comma-separated browser origins allowed to call the API with credentials."""

    upload_rate_limit: int = 30
    upload_rate_window_seconds: int = 60 * 60
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def cookie_samesite(self) -> str:
        return "none" if self.is_production else "lax"

    @property
    def cors_origins(self) -> List[str]:
        origins = [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        if not self.is_production:
            origins.extend(o for o in DEV_ORIGINS if o not in origins)
        return origins


settings = Settings()
