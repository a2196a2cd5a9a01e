"""
Spotify Web API client for the playlist exporter.

Requests run through a PriorityRequestQueue: catalog lookups at "medium",
playlist writes at "high", so a write issued after a long series of
lookups goes out next. Each queued job runs its own retry loop
(retry_on_rate_limit), which keeps the queue blocked while a 429 backoff
elapses.

Error Handling:
    - 429: retried with capped exponential backoff, then RateLimitExceeded.
    - 401/403: the session is invalidated, re-authorization is requested
      and AuthorizationExpired is raised. No retry.
    - Other statuses map through raise_for_status().

Usage:
    async with SpotifyClient(session) as client:
        albums = await client.search_albums('artist:"Autechre" album:"Amber"')
        tracks = await client.get_album_tracks(albums[0].id)
"""

import asyncio
from typing import Any

import aiohttp

from labelscope.core.backoff import RateLimitState, retry_on_rate_limit
from labelscope.core.exceptions import AuthorizationExpired, NetworkError, raise_for_status
from labelscope.core.logger import get_logger
from labelscope.core.pagination import Page, collect_all
from labelscope.core.request_queue import PriorityRequestQueue
from labelscope.spotify.auth import SpotifySession
from labelscope.spotify.models import SpotifyAlbum, SpotifyPlaylist, SpotifyTrack, SpotifyUser


logger = get_logger(__name__)

SPOTIFY_API_URL = "https://api.spotify.com/v1"
REQUEST_TIMEOUT_SECONDS = 30

# Spotify page/batch limits
ALBUM_TRACKS_PAGE_SIZE = 50
PLAYLIST_BATCH_SIZE = 100

# Minimum spacing between Spotify requests (seconds)
DEFAULT_REQUEST_INTERVAL = 0.1


class SpotifyClient:
    """
    Asynchronous Spotify Web API client.

    Attributes:
        session: Authorization session providing the bearer token.
        queue: Priority queue serializing every request.
        rate_limit_state: Last 429 observed, shared by all requests.
    """

    def __init__(
        self,
        session: SpotifySession,
        queue: PriorityRequestQueue | None = None,
        rate_limit_state: RateLimitState | None = None,
        base_url: str = SPOTIFY_API_URL
    ) -> None:
        self.session = session
        self.queue = queue if queue is not None else PriorityRequestQueue(
            interval=DEFAULT_REQUEST_INTERVAL, name="spotify"
        )
        self.rate_limit_state = rate_limit_state if rate_limit_state is not None else RateLimitState()
        self.base_url = base_url.rstrip("/")
        self._http: aiohttp.ClientSession | None = None
        self._user: SpotifyUser | None = None

    async def __aenter__(self) -> "SpotifyClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        self.queue.clear()
        if self._http is not None:
            await self._http.close()
            self._http = None

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
            )
        return self._http

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None
    ) -> Any:
        """
        Perform one HTTP request (no retry).

        Raises:
            AuthorizationExpired: No token, or the API answered 401/403.
            RateLimitExceeded: The API answered 429.
            NetworkError: Connection failure or timeout.
        """
        if not self.session.is_authorized:
            raise AuthorizationExpired("Spotify session is not authorized")

        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {self.session.access_token}"}
        try:
            async with self._get_http().request(method, url, params=params, json=json, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise_for_status(response.status, url, response.headers, body, "Spotify")
                if response.status == 204:
                    return {}
                return await response.json(content_type=None)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f"Could not reach Spotify: {e or type(e).__name__}",
                details={"url": url, "original_error": repr(e)}
            ) from e

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        priority: str = "medium"
    ) -> Any:
        description = f"{method} {path}"

        async def job() -> Any:
            return await retry_on_rate_limit(
                lambda: self._send(method, path, params, json),
                state=self.rate_limit_state,
                description=description,
            )

        try:
            return await self.queue.enqueue(job, priority=priority)
        except AuthorizationExpired:
            self._user = None
            self.session.request_reauthorization()
            raise

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def search_albums(self, query: str, limit: int = 10) -> list[SpotifyAlbum]:
        data = await self._request("GET", "search", params={"q": query, "type": "album", "limit": limit})
        items = (data.get("albums") or {}).get("items") or []
        return [SpotifyAlbum.from_spotify_api(item) for item in items if item and item.get("id")]

    async def search_tracks(self, query: str, limit: int = 20) -> list[SpotifyTrack]:
        data = await self._request("GET", "search", params={"q": query, "type": "track", "limit": limit})
        items = (data.get("tracks") or {}).get("items") or []
        return [SpotifyTrack.from_spotify_api(item) for item in items if item and item.get("id")]

    async def get_album_tracks(self, album_id: str) -> list[SpotifyTrack]:
        """Full track list of an album, fetched 50 tracks per request."""

        async def fetch_page(offset: int, limit: int) -> Page:
            data = await self._request(
                "GET", f"albums/{album_id}/tracks", params={"offset": offset, "limit": limit}
            )
            return Page(items=data.get("items") or [], total=int(data.get("total") or 0))

        items = await collect_all(fetch_page, page_size=ALBUM_TRACKS_PAGE_SIZE)
        return [SpotifyTrack.from_spotify_api(item) for item in items if item and item.get("id")]

    # =========================================================================
    # USER & PLAYLISTS
    # =========================================================================

    async def get_current_user(self) -> SpotifyUser:
        if self._user is None:
            data = await self._request("GET", "me")
            self._user = SpotifyUser.from_spotify_api(data)
        return self._user

    async def create_playlist(self, name: str, description: str = "", public: bool = True) -> SpotifyPlaylist:
        user = await self.get_current_user()
        data = await self._request(
            "POST",
            f"users/{user.id}/playlists",
            json={"name": name, "description": description, "public": public},
            priority="high",
        )
        playlist = SpotifyPlaylist.from_spotify_api(data)
        logger.info(f"Created playlist '{playlist.name}' ({playlist.id})")
        return playlist

    async def add_tracks(self, playlist_id: str, uris: list[str]) -> int:
        """
        Append tracks to a playlist in batches of 100.

        Each batch is a separate high-priority request. Returns the number
        of URIs written.
        """
        added = 0
        for start in range(0, len(uris), PLAYLIST_BATCH_SIZE):
            batch = uris[start:start + PLAYLIST_BATCH_SIZE]
            await self._request(
                "POST", f"playlists/{playlist_id}/tracks", json={"uris": batch}, priority="high"
            )
            added += len(batch)
            logger.debug(f"Added {added}/{len(uris)} track(s) to playlist {playlist_id}")
        return added
