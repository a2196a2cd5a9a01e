"""
Spotify module for labelscope.

    auth: Session and authorization-code helper (spotipy SpotifyOAuth)
    client: Web API client on a priority queue with 429 backoff
    matcher: Artist-name matching strategies
    exporter: Label playlist export
"""

from labelscope.spotify.auth import SPOTIFY_SCOPES, SpotifySession
from labelscope.spotify.client import SpotifyClient
from labelscope.spotify.exporter import (
    ExportRelease,
    PlaylistExporter,
    PlaylistSummary,
    TrackSelection,
    releases_from_roster,
)
from labelscope.spotify.matcher import match_artist_name, normalize_name, select_candidate
from labelscope.spotify.models import SpotifyAlbum, SpotifyPlaylist, SpotifyTrack, SpotifyUser

__all__ = [
    "SPOTIFY_SCOPES",
    "SpotifySession",
    "SpotifyClient",
    "ExportRelease",
    "PlaylistExporter",
    "PlaylistSummary",
    "TrackSelection",
    "releases_from_roster",
    "match_artist_name",
    "normalize_name",
    "select_candidate",
    "SpotifyAlbum",
    "SpotifyTrack",
    "SpotifyUser",
    "SpotifyPlaylist",
]
