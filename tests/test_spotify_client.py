# tests/test_spotify_client.py
"""Tests for the Spotify client and authorization session"""

from unittest.mock import AsyncMock, call

import pytest
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOauthError

from labelscope.core.config import SpotifyConfig
from labelscope.core.exceptions import AuthorizationExpired, ConfigError, RateLimitExceeded
from labelscope.core.request_queue import PriorityRequestQueue
from labelscope.spotify.auth import SpotifySession
from labelscope.spotify.client import SpotifyClient


CONFIGURED = SpotifyConfig(client_id="abc", client_secret="def", redirect_uri="http://127.0.0.1:8888/callback")

ALBUM_ITEM = {"id": "a1", "name": "Amber", "artists": [{"name": "Autechre"}], "uri": "spotify:album:a1"}


def make_client(session=None):
    session = session or SpotifySession(CONFIGURED, access_token="token")
    return SpotifyClient(session, queue=PriorityRequestQueue(interval=0.0, name="spotify-test"))


class TestSpotifyClient:
    """Test request handling with the transport mocked out"""

    @pytest.mark.asyncio
    async def test_rate_limit_retried_inside_job(self):
        """A single 429 is absorbed and the request succeeds"""
        client = make_client()
        client._send = AsyncMock(side_effect=[
            RateLimitExceeded("429", retry_after=0.001),
            {"albums": {"items": [ALBUM_ITEM]}},
        ])

        albums = await client.search_albums('artist:"Autechre" album:"Amber"')

        assert [a.id for a in albums] == ["a1"]
        assert albums[0].artist_names == ("Autechre",)
        assert client._send.await_count == 2
        assert not client.rate_limit_state.is_limited

    @pytest.mark.asyncio
    async def test_rate_limit_gives_up_after_three_attempts(self):
        """Three 429s raise RateLimitExceeded"""
        client = make_client()
        client._send = AsyncMock(side_effect=RateLimitExceeded("429", retry_after=0.001))

        with pytest.raises(RateLimitExceeded) as exc_info:
            await client.search_tracks("Amber")

        assert client._send.await_count == 3
        assert exc_info.value.details["attempts"] == 3

    @pytest.mark.asyncio
    async def test_authorization_expired_requests_reauthorization(self):
        """401/403 drop the token and hand out an authorize URL"""
        urls = []
        session = SpotifySession(CONFIGURED, access_token="token", on_reauthorize=urls.append)
        client = make_client(session)
        client._send = AsyncMock(side_effect=AuthorizationExpired("expired"))

        with pytest.raises(AuthorizationExpired):
            await client.get_current_user()

        assert client._send.await_count == 1
        assert session.access_token is None
        assert len(urls) == 1
        assert urls[0].startswith("https://accounts.spotify.com/authorize")

    @pytest.mark.asyncio
    async def test_unauthorized_session_never_sends(self):
        """Without a token the request fails before any HTTP traffic"""
        client = make_client(SpotifySession(SpotifyConfig()))

        with pytest.raises(AuthorizationExpired):
            await client.search_albums("Amber")
        assert client._http is None

    @pytest.mark.asyncio
    async def test_album_tracks_paginated(self):
        """120 tracks take three requests of 50"""
        client = make_client()

        async def send(method, path, params=None, json=None):
            offset, limit = params["offset"], params["limit"]
            items = [{"id": f"t{i}", "name": f"T{i}"} for i in range(offset, min(offset + limit, 120))]
            return {"items": items, "total": 120}

        client._send = AsyncMock(side_effect=send)

        tracks = await client.get_album_tracks("a1")

        assert len(tracks) == 120
        assert tracks[0].uri == "spotify:track:t0"
        assert [c.args[2]["offset"] for c in client._send.await_args_list] == [0, 50, 100]

    @pytest.mark.asyncio
    async def test_create_playlist_and_add_tracks_in_batches(self):
        """Playlist writes go to the current user; 250 URIs take three batches"""
        client = make_client()
        client._send = AsyncMock(side_effect=[
            {"id": "user1", "display_name": "Tester"},
            {"id": "pl1", "name": "Warp - Label Playlist", "external_urls": {"spotify": "https://open.spotify.com/playlist/pl1"}},
            {"snapshot_id": "s1"},
            {"snapshot_id": "s2"},
            {"snapshot_id": "s3"},
        ])

        playlist = await client.create_playlist("Warp - Label Playlist", "Curated playlist from Warp releases")
        uris = [f"spotify:track:{i}" for i in range(250)]
        added = await client.add_tracks(playlist.id, uris)

        assert playlist.url == "https://open.spotify.com/playlist/pl1"
        assert added == 250
        calls = client._send.await_args_list
        assert calls[0] == call("GET", "me", None, None)
        assert calls[1] == call(
            "POST",
            "users/user1/playlists",
            None,
            {"name": "Warp - Label Playlist", "description": "Curated playlist from Warp releases", "public": True},
        )
        batches = [c.args[3]["uris"] for c in calls[2:]]
        assert [len(b) for b in batches] == [100, 100, 50]
        assert [u for b in batches for u in b] == uris


class FakeOAuth:
    """Minimal SpotifyOAuth double for the code exchange"""

    def __init__(self, error=None):
        self.cache_handler = MemoryCacheHandler()
        self.error = error

    def get_access_token(self, code, as_dict=True, check_cache=True):
        if self.error:
            raise self.error
        self.cache_handler.save_token_to_cache({
            "access_token": f"access-{code}",
            "refresh_token": "refresh",
            "expires_at": 5000,
        })
        return f"access-{code}"


class TestSpotifySession:
    """Test the authorization session"""

    def test_authorize_url(self):
        """The URL carries the client ID, scopes and state"""
        url = SpotifySession(CONFIGURED).authorize_url(state="xyz")
        assert url.startswith("https://accounts.spotify.com/authorize")
        assert "client_id=abc" in url
        assert "state=xyz" in url
        assert "playlist-modify-public" in url

    def test_authorize_url_needs_credentials(self):
        """Unconfigured credentials are a ConfigError"""
        with pytest.raises(ConfigError):
            SpotifySession(SpotifyConfig()).authorize_url()

    def test_reauthorization_without_credentials(self):
        """Nothing to hand out, but the token is still dropped"""
        session = SpotifySession(SpotifyConfig(), access_token="token")
        assert session.request_reauthorization() is None
        assert not session.is_authorized

    def test_token_expiry(self, fake_clock):
        """set_token() with a lifetime expires on the session clock"""
        session = SpotifySession(CONFIGURED, clock=fake_clock)
        session.set_token("token", expires_in=3600)
        assert session.is_authorized
        fake_clock.advance(3600)
        assert not session.is_authorized

    def test_exchange_code(self, fake_clock, monkeypatch):
        """The cached token is copied into the session"""
        session = SpotifySession(CONFIGURED, clock=fake_clock)
        monkeypatch.setattr(session, "_get_oauth", lambda: FakeOAuth())

        assert session.exchange_code("c0de") == "access-c0de"
        assert session.refresh_token == "refresh"
        assert session.is_authorized

    def test_exchange_code_rejected(self, monkeypatch):
        """A rejected code is an AuthorizationExpired"""
        session = SpotifySession(CONFIGURED)
        monkeypatch.setattr(session, "_get_oauth", lambda: FakeOAuth(SpotifyOauthError("invalid_grant")))

        with pytest.raises(AuthorizationExpired):
            session.exchange_code("bad")
        assert session.access_token is None
