import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from projectshelf.config import Settings
from projectshelf.database import build_engine, build_session_factory
from projectshelf.services.media import CloudinaryMediaHost, MediaHost
from projectshelf.services.oauth import FederationProvider, GoogleOAuthProvider

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request handler may touch, built once at startup."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    media_host: Optional[MediaHost] = None
    oauth: Optional[FederationProvider] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        engine = build_engine(settings.database_url)

        media_host = None
        if settings.media_host_configured:
            media_host = CloudinaryMediaHost(
                cloud_name=settings.cloudinary_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                folder=settings.media_folder,
            )
        else:
            logger.warning(
                "Media uploads are disabled: missing CLOUDINARY_NAME, CLOUDINARY_API_KEY "
                "or CLOUDINARY_API_SECRET environment variables"
            )

        oauth = None
        if settings.google_oauth_configured:
            oauth = GoogleOAuthProvider(
                client_id=settings.google_client_id,
                client_secret=settings.google_client_secret,
                server_url=settings.server_url,
            )
        else:
            logger.warning(
                "Google OAuth is disabled: missing GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET "
                "environment variables"
            )

        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            media_host=media_host,
            oauth=oauth,
        )
