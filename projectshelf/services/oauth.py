from dataclasses import dataclass
from typing import Protocol
import logging

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from google_auth_oauthlib.flow import Flow

from projectshelf.errors import UpstreamError
from projectshelf.services.auth import FederatedProfile

logger = logging.getLogger(__name__)

GOOGLE_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]
CALLBACK_PATH = "/api/auth/google/callback"


class FederationProvider(Protocol):
    def authorization_url(self) -> str:
        ...

    def fetch_profile(self, code: str) -> FederatedProfile:
        ...


@dataclass
class GoogleOAuthProvider:
    """Authorization-code flow against Google, verified through its ID token."""

    client_id: str
    client_secret: str
    server_url: str

    @property
    def redirect_uri(self) -> str:
        return self.server_url.rstrip("/") + CALLBACK_PATH

    def _flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self.redirect_uri],
            }
        }
        # No PKCE: the callback runs on a fresh Flow that never saw the verifier
        return Flow.from_client_config(
            client_config,
            scopes=GOOGLE_SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        url, _state = self._flow().authorization_url(prompt="select_account")
        return url

    def fetch_profile(self, code: str) -> FederatedProfile:
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
            idinfo = id_token.verify_oauth2_token(
                flow.credentials.id_token, google_requests.Request(), self.client_id
            )
        except ValueError as e:
            # Expired code, audience mismatch, bad signature...
            logger.warning("Google token verification failed: %s", e)
            raise UpstreamError("Google authentication failed")
        except Exception as e:
            logger.error("Google token exchange failed: %s", e)
            raise UpstreamError("Google authentication failed")

        return FederatedProfile(
            provider_id=idinfo["sub"],
            display_name=idinfo.get("name") or idinfo.get("email", "").split("@")[0],
            email=idinfo.get("email"),
            picture=idinfo.get("picture"),
        )
