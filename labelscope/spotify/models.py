"""
Data models for Spotify entities used by the playlist exporter.

All models are frozen dataclasses built from Web API responses with
``from_spotify_api()``. Only the fields the exporter needs are kept.

Usage:
    album = SpotifyAlbum.from_spotify_api(item)
    print(album.name, album.artist_names)
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SpotifyAlbum:
    """
    Immutable representation of a Spotify album (search result).

    Attributes:
        id: Spotify album ID (22-character base62 string).
        name: Album name as shown on Spotify.
        artist_names: Names of the album artists, in credit order.
        uri: Spotify URI ("spotify:album:...").
        release_date: "2001", "2001-05" or "2001-05-14", or "".
        total_tracks: Track count reported by Spotify.
    """
    id: str
    name: str
    artist_names: tuple[str, ...] = ()
    uri: str = ""
    release_date: str = ""
    total_tracks: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "SpotifyAlbum":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            artist_names=tuple(a.get("name", "") for a in data.get("artists") or []),
            uri=data.get("uri") or f"spotify:album:{data['id']}",
            release_date=data.get("release_date") or "",
            total_tracks=int(data.get("total_tracks") or 0),
        )


@dataclass(frozen=True)
class SpotifyTrack:
    """
    Immutable representation of a Spotify track.

    Album track listings return simplified track objects, so no album or
    popularity fields are kept.
    """
    id: str
    name: str
    uri: str
    artist_names: tuple[str, ...] = ()
    track_number: int = 1
    duration_ms: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "SpotifyTrack":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            uri=data.get("uri") or f"spotify:track:{data['id']}",
            artist_names=tuple(a.get("name", "") for a in data.get("artists") or []),
            track_number=int(data.get("track_number") or 1),
            duration_ms=int(data.get("duration_ms") or 0),
        )


@dataclass(frozen=True)
class SpotifyUser:
    id: str
    display_name: str = ""

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "SpotifyUser":
        return cls(id=data["id"], display_name=data.get("display_name") or data["id"])


@dataclass(frozen=True)
class SpotifyPlaylist:
    """
    A playlist created by the exporter.

    Attributes:
        id: Spotify playlist ID.
        name: Playlist name.
        url: Public web URL (open.spotify.com).
        uri: Spotify URI.
    """
    id: str
    name: str
    url: str = ""
    uri: str = ""

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "SpotifyPlaylist":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            url=(data.get("external_urls") or {}).get("spotify", ""),
            uri=data.get("uri") or "",
        )
