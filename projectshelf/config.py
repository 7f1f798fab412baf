import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "fallback_jwt_secret_for_dev"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Environment-backed settings. Read once at startup via get_settings()."""

    env: str = "development"
    database_url: str = "sqlite:///./projectshelf.db"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_expires_days: int = 30
    client_url: str = "http://localhost:5173"  # Vite's default port
    server_url: str = "http://localhost:8080"

    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None

    cloudinary_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    media_folder: str = "projectshelf"

    # False -> the owner previewing their own project does not bump views
    count_owner_views: bool = True

    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            env=os.getenv("ENV", "development"),
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            jwt_secret=os.getenv("JWT_SECRET") or DEV_JWT_SECRET,
            jwt_expires_days=int(os.getenv("JWT_EXPIRES_DAYS", "30")),
            client_url=os.getenv("CLIENT_URL") or cls.client_url,
            server_url=os.getenv("SERVER_URL") or cls.server_url,
            google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
            cloudinary_name=os.getenv("CLOUDINARY_NAME") or None,
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY") or None,
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET") or None,
            media_folder=os.getenv("MEDIA_FOLDER", "projectshelf"),
            count_owner_views=_env_bool("COUNT_OWNER_VIEWS", True),
            port=int(os.getenv("PORT", "8080")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def google_oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def media_host_configured(self) -> bool:
        return bool(
            self.cloudinary_name and self.cloudinary_api_key and self.cloudinary_api_secret
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings.from_env()
    if settings.jwt_secret == DEV_JWT_SECRET:
        logger.warning("JWT_SECRET is not set, using the development fallback secret")
    return settings
