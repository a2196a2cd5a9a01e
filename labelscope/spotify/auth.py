"""
Spotify authorization session for labelscope.

SpotifySession holds the user access token used by SpotifyClient and
wraps the authorization-code flow of spotipy's SpotifyOAuth:

    1. authorize_url(state)  -> URL the user opens in a browser
    2. Spotify redirects to redirect_uri with ?code=...
    3. exchange_code(code)   -> access token stored in the session

The browser/redirect half is out of scope: the CLI prints the URL and the
user pastes the code back. Tokens live in memory only (spotipy's
MemoryCacheHandler); nothing is written to disk.

When the Web API answers 401/403 the client calls
request_reauthorization(): the token is dropped and a fresh authorize URL
is handed to the on_reauthorize callback (by default it is logged).
"""

import time
from typing import Any, Callable

import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from labelscope.core.config import SpotifyConfig
from labelscope.core.exceptions import AuthorizationExpired, ConfigError
from labelscope.core.logger import get_logger


logger = get_logger(__name__)

SPOTIFY_SCOPES = (
    "playlist-modify-public playlist-modify-private "
    "user-read-private user-read-email"
)


def _log_reauthorization(url: str) -> None:
    logger.warning(f"Spotify authorization expired. Re-authorize at: {url}")


class SpotifySession:
    """
    In-memory Spotify user session.

    Attributes:
        config: Spotify credentials and redirect URI.
        access_token: Current bearer token, or None.
        expires_at: Clock time after which the token is treated as expired,
                    or None when unknown.
        on_reauthorize: Called with an authorize URL on re-authorization.

    Example:
        session = SpotifySession(config.spotify)
        print(session.authorize_url(state="xyz"))
        session.exchange_code(code_from_redirect)
        assert session.is_authorized
    """

    def __init__(
        self,
        config: SpotifyConfig,
        access_token: str | None = None,
        on_reauthorize: Callable[[str], Any] | None = None,
        clock: Callable[[], float] = time.time
    ) -> None:
        self.config = config
        self.access_token = access_token
        self.refresh_token: str | None = None
        self.expires_at: float | None = None
        self.on_reauthorize = on_reauthorize or _log_reauthorization
        self._clock = clock
        self._oauth: SpotifyOAuth | None = None

    @property
    def is_authorized(self) -> bool:
        if not self.access_token:
            return False
        return self.expires_at is None or self._clock() < self.expires_at

    def set_token(self, access_token: str, expires_in: float | None = None) -> None:
        """Store a token obtained elsewhere (e.g. passed on the command line)."""
        self.access_token = access_token
        self.expires_at = self._clock() + expires_in if expires_in else None

    def invalidate(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None

    def _get_oauth(self) -> SpotifyOAuth:
        if not self.config.is_configured:
            raise ConfigError(
                "Spotify credentials are not configured",
                details={"hint": "Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET or the spotify section of config.yaml"}
            )
        if self._oauth is None:
            self._oauth = SpotifyOAuth(
                client_id=self.config.client_id,
                client_secret=self.config.client_secret,
                redirect_uri=self.config.redirect_uri,
                scope=SPOTIFY_SCOPES,
                cache_handler=MemoryCacheHandler(),
                open_browser=False,
            )
        return self._oauth

    def authorize_url(self, state: str | None = None) -> str:
        """
        Build the Spotify authorize URL for the configured application.

        Raises:
            ConfigError: If client ID/secret are missing.
        """
        return self._get_oauth().get_authorize_url(state=state)

    def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for an access token.

        Returns:
            The access token, also stored in the session.

        Raises:
            ConfigError: If client ID/secret are missing.
            AuthorizationExpired: If Spotify rejects the code.
        """
        oauth = self._get_oauth()
        try:
            oauth.get_access_token(code, as_dict=False, check_cache=False)
        except (SpotifyOauthError, spotipy.SpotifyException) as e:
            raise AuthorizationExpired(
                f"Spotify rejected the authorization code: {e}",
                details={"original_error": str(e)}
            ) from e

        token_info = oauth.cache_handler.get_cached_token() or {}
        self.access_token = token_info.get("access_token")
        self.refresh_token = token_info.get("refresh_token")
        self.expires_at = token_info.get("expires_at")
        if not self.access_token:
            raise AuthorizationExpired("Spotify returned no access token")

        logger.info("Spotify authorization complete")
        return self.access_token

    def request_reauthorization(self, state: str | None = None) -> str | None:
        """
        Drop the current token and hand a fresh authorize URL to on_reauthorize.

        Returns:
            The authorize URL, or None when credentials are not configured
            (the failure is logged, not raised).
        """
        self.invalidate()
        try:
            url = self.authorize_url(state)
        except ConfigError as e:
            logger.error(f"Cannot request Spotify re-authorization: {e}")
            return None
        self.on_reauthorize(url)
        return url
