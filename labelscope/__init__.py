"""
labelscope: record-label exploration on top of MusicBrainz.

Architecture:
    core/         Shared plumbing
        - Configuration (config.yaml + environment)
        - Logging (console + log files + unmatched releases report)
        - Rate-limited request queues, response cache, pagination
        - 429 backoff and the error taxonomy

    musicbrainz/  MusicBrainz data
        - Queued, cached web service client
        - Roster and label aggregation, derived statistics
        - Label family trees and the relationship filter

    spotify/      Playlist export
        - Authorization-code session (spotipy)
        - Web API client on a priority queue
        - Artist-name matcher and playlist exporter

Data Flow:
    CLI -> FamilyTreeBuilder / aggregator -> MusicBrainzClient
        -> collect_all() -> RateLimitedQueue -> MusicBrainz
    CLI -> PlaylistExporter -> SpotifyClient -> PriorityRequestQueue -> Spotify

Usage:
    labelscope tree <label-id>
    labelscope export <label-id> --token <token>
"""

__version__ = "0.1.0"
