"""Test MusicBrainz and Spotify data models"""

import pytest

from labelscope.musicbrainz.models import Label, Release, ReleaseGroup
from labelscope.spotify.models import SpotifyAlbum, SpotifyPlaylist, SpotifyTrack


class TestMusicBrainzModels:
    """Test MusicBrainz JSON parsing"""

    def test_label_defaults(self):
        """Missing fields become Unknown"""
        label = Label.from_api({"id": "warp", "name": "Warp", "life-span": {"begin": "1989"}})
        assert label.type == "Unknown"
        assert label.country == "Unknown"
        assert label.life_span.begin == "1989"
        assert label.life_span.end is None

    def test_label_without_id(self):
        """Records without an ID are malformed"""
        with pytest.raises(ValueError):
            Label.from_api({"name": "nameless"})

    def test_release(self, make_release):
        """Artist credits, label citations and the rendered credit"""
        data = make_release(
            "r1",
            "Confield",
            "2001-04-30",
            artists=[("ae", "Autechre", " & "), ("x", "Guest")],
            labels=[("warp", "Warp", "WARPCD128"), (None, "[no label]")],
        )
        release = Release.from_api(data)

        assert release.artist_names == "Autechre & Guest"
        assert [c.artist.id for c in release.artist_credit] == ["ae", "x"]
        assert release.label_info[0].catalog_number == "WARPCD128"
        assert release.label_info[1].label is None

    def test_release_group_tags_fallback(self):
        """Tags stand in for genres; nameless tags are skipped"""
        group = ReleaseGroup.from_api({
            "id": "g1",
            "title": "Amber",
            "primary-type": "Album",
            "tags": [{"name": "idm", "count": 4}, {"count": 2}],
        })
        assert [(t.name, t.count) for t in group.genres] == [("idm", 4)]


class TestSpotifyModels:
    """Test Spotify Web API parsing"""

    def test_album(self):
        """Artist names in credit order, URI derived when absent"""
        album = SpotifyAlbum.from_spotify_api({
            "id": "a1",
            "name": "Amber",
            "artists": [{"name": "Autechre"}, {"name": "Guest"}],
            "release_date": "1994-11-07",
            "total_tracks": 11,
        })
        assert album.artist_names == ("Autechre", "Guest")
        assert album.uri == "spotify:album:a1"
        assert album.total_tracks == 11

    def test_track(self):
        """Simplified track objects"""
        track = SpotifyTrack.from_spotify_api({"id": "t1", "name": "Foil", "uri": "spotify:track:t1", "track_number": 1})
        assert track.uri == "spotify:track:t1"
        assert track.duration_ms == 0

    def test_playlist_url(self):
        """The public URL comes from external_urls"""
        playlist = SpotifyPlaylist.from_spotify_api({
            "id": "pl1",
            "name": "Warp - Label Playlist",
            "external_urls": {"spotify": "https://open.spotify.com/playlist/pl1"},
        })
        assert playlist.url == "https://open.spotify.com/playlist/pl1"
        assert playlist.uri == ""
