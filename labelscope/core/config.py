"""
Configuration management for labelscope.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - MusicBrainz client identity and request pacing
    - Spotify API credentials (only needed for playlist export)
    - Cache lifetime
    - Family-tree defaults (depth, relationship filter)
    - Playlist export defaults
    - Output directory for log files

Configuration File Location:
    The config.yaml file is looked up in the current working directory.
    Unlike an explicit --config path, a missing default file is not an
    error: every section has defaults, and Spotify credentials can come
    from the environment (or a .env file).

Example config.yaml:
    musicbrainz:
      user_agent: "labelscope/0.1.0 ( you@example.com )"
      request_interval: 1.0
      page_size: 100
      max_records: 500

    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      redirect_uri: "http://localhost:8888/callback"

    cache:
      ttl_seconds: 300

    tree:
      max_depth: 3
      relationship_types: [parent, subsidiary, imprint]

    export:
      track_count: 5
      max_artists: 10
      max_releases_per_artist: 5
      public: true

    output:
      directory: "~/.labelscope"

Environment Overrides:
    SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, SPOTIFY_REDIRECT_URI,
    MUSICBRAINZ_USER_AGENT
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from labelscope.core.exceptions import ConfigError


# Default configuration file name (always in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_USER_AGENT = "labelscope/0.1.0 ( https://github.com/labelscope/labelscope )"
DEFAULT_MUSICBRAINZ_URL = "https://musicbrainz.org/ws/2"
DEFAULT_REDIRECT_URI = "http://localhost:8888/callback"
DEFAULT_OUTPUT_DIRECTORY = "~/.labelscope"

RELATIONSHIP_TYPES = (
    "parent",
    "subsidiary",
    "imprint",
    "reissue-series",
    "holding",
    "renamed-to",
    "other",
)
DEFAULT_RELATIONSHIP_FILTER = ("parent", "subsidiary", "imprint")


@dataclass(frozen=True)
class MusicBrainzConfig:
    """
    MusicBrainz web service settings.

    Attributes:
        user_agent: Identifying User-Agent, required by the MusicBrainz terms.
        base_url: Web service root.
        request_interval: Minimum seconds between two requests (>= 1.0).
        page_size: Records per browse request (1-100).
        max_records: Cap for paginated collection.
    """
    user_agent: str = DEFAULT_USER_AGENT
    base_url: str = DEFAULT_MUSICBRAINZ_URL
    request_interval: float = 1.0
    page_size: int = 100
    max_records: int = 500


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API credentials configuration.

    These credentials are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        redirect_uri: Redirect URI registered for the application.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: float = 300.0


@dataclass(frozen=True)
class TreeConfig:
    """
    Family tree defaults.

    Attributes:
        max_depth: Recursion bound for tree construction.
        relationship_types: Relationship types kept by the tree filter.
    """
    max_depth: int = 3
    relationship_types: tuple[str, ...] = DEFAULT_RELATIONSHIP_FILTER


@dataclass(frozen=True)
class ExportConfig:
    """
    Playlist export defaults.

    Attributes:
        track_count: Tracks taken from each matched album (None = all).
        max_artists: Roster artists considered for an export.
        max_releases_per_artist: Album/EP releases taken per artist.
        public: Whether created playlists are public.
    """
    track_count: int | None = 5
    max_artists: int = 10
    max_releases_per_artist: int = 5
    public: bool = True


@dataclass(frozen=True)
class OutputConfig:
    directory: Path = Path(DEFAULT_OUTPUT_DIRECTORY).expanduser()


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    This is the main configuration object that aggregates all configuration
    sections. It is created by load_config() and should be treated as
    immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Depth: {config.tree.max_depth}")
        print(f"Logs in: {config.output.directory / 'logs'}")
    """
    musicbrainz: MusicBrainzConfig = MusicBrainzConfig()
    spotify: SpotifyConfig = SpotifyConfig()
    cache: CacheConfig = CacheConfig()
    tree: TreeConfig = TreeConfig()
    export: ExportConfig = ExportConfig()
    output: OutputConfig = OutputConfig()


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory
                     and falls back to defaults when it does not exist.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, has invalid YAML
                     syntax, or contains invalid values. The error message
                     indicates the specific problem.

    Behavior:
        1. Load .env into the process environment (python-dotenv)
        2. Locate config file (explicit path or CWD/config.yaml)
        3. Read and parse YAML content
        4. Parse each section, applying defaults
        5. Apply environment overrides for credentials and user agent
        6. Create and return frozen Config object
    """
    load_dotenv()

    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    return Config(
        musicbrainz=_parse_musicbrainz_config(raw_config.get("musicbrainz")),
        spotify=_parse_spotify_config(raw_config.get("spotify")),
        cache=_parse_cache_config(raw_config.get("cache")),
        tree=_parse_tree_config(raw_config.get("tree")),
        export=_parse_export_config(raw_config.get("export")),
        output=_parse_output_config(raw_config.get("output")),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )
    return raw_config


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Check that every present section is a dictionary.

    Raises:
        ConfigError: naming the offending section.
    """
    for section in ("musicbrainz", "spotify", "cache", "tree", "export", "output"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _positive_number(section: dict, key: str, default: float, field: str, integer: bool = False):
    value = section.get(key, default)
    valid_type = int if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, valid_type) or value <= 0:
        kind = "integer" if integer else "number"
        raise ConfigError(
            f"'{field}' must be a positive {kind}",
            details={"field": field, "value": value}
        )
    return value


def _parse_musicbrainz_config(section: dict[str, Any] | None) -> MusicBrainzConfig:
    """
    Parse the 'musicbrainz' section.

    The request interval is clamped to at least one second, the limit the
    MusicBrainz service asks every client to respect.
    """
    section = section or {}

    user_agent = os.getenv("MUSICBRAINZ_USER_AGENT") or section.get("user_agent", DEFAULT_USER_AGENT)
    if not isinstance(user_agent, str) or not user_agent.strip():
        raise ConfigError(
            "'musicbrainz.user_agent' must be a non-empty string",
            details={"field": "musicbrainz.user_agent"}
        )

    base_url = section.get("base_url", DEFAULT_MUSICBRAINZ_URL)
    if not isinstance(base_url, str) or not base_url.startswith("http"):
        raise ConfigError(
            "'musicbrainz.base_url' must be an http(s) URL",
            details={"field": "musicbrainz.base_url", "value": base_url}
        )

    interval = _positive_number(section, "request_interval", 1.0, "musicbrainz.request_interval")
    page_size = _positive_number(section, "page_size", 100, "musicbrainz.page_size", integer=True)
    max_records = _positive_number(section, "max_records", 500, "musicbrainz.max_records", integer=True)

    return MusicBrainzConfig(
        user_agent=user_agent.strip(),
        base_url=base_url.rstrip("/"),
        request_interval=max(float(interval), 1.0),
        page_size=min(page_size, 100),
        max_records=max_records,
    )


def _parse_spotify_config(section: dict[str, Any] | None) -> SpotifyConfig:
    """
    Parse the 'spotify' section with environment overrides.

    Empty credentials are allowed here; commands that talk to Spotify
    check SpotifyConfig.is_configured before starting.
    """
    section = section or {}
    values = {}
    for key, env_var, default in (
        ("client_id", "SPOTIFY_CLIENT_ID", ""),
        ("client_secret", "SPOTIFY_CLIENT_SECRET", ""),
        ("redirect_uri", "SPOTIFY_REDIRECT_URI", DEFAULT_REDIRECT_URI),
    ):
        value = os.getenv(env_var) or section.get(key) or default
        if not isinstance(value, str):
            raise ConfigError(
                f"'spotify.{key}' must be a string",
                details={"field": f"spotify.{key}"}
            )
        values[key] = value.strip()

    return SpotifyConfig(**values)


def _parse_cache_config(section: dict[str, Any] | None) -> CacheConfig:
    section = section or {}
    ttl = _positive_number(section, "ttl_seconds", 300.0, "cache.ttl_seconds")
    return CacheConfig(ttl_seconds=float(ttl))


def _parse_tree_config(section: dict[str, Any] | None) -> TreeConfig:
    """
    Parse the 'tree' section.

    Raises:
        ConfigError: If max_depth is not a positive integer or a relationship
                     type is unknown.
    """
    section = section or {}
    max_depth = _positive_number(section, "max_depth", 3, "tree.max_depth", integer=True)

    types = section.get("relationship_types", list(DEFAULT_RELATIONSHIP_FILTER))
    if not isinstance(types, list) or not all(isinstance(t, str) for t in types):
        raise ConfigError(
            "'tree.relationship_types' must be a list of strings",
            details={"field": "tree.relationship_types"}
        )
    unknown = [t for t in types if t not in RELATIONSHIP_TYPES]
    if unknown:
        raise ConfigError(
            f"Unknown relationship types: {', '.join(unknown)}",
            details={"field": "tree.relationship_types", "allowed": list(RELATIONSHIP_TYPES)}
        )

    return TreeConfig(max_depth=max_depth, relationship_types=tuple(types))


def _parse_export_config(section: dict[str, Any] | None) -> ExportConfig:
    """
    Parse the 'export' section.

    track_count accepts a positive integer, or null / "all" to keep every
    track of a matched album.
    """
    section = section or {}

    track_count = section.get("track_count", 5)
    if track_count is None or track_count == "all":
        track_count = None
    elif isinstance(track_count, bool) or not isinstance(track_count, int) or track_count < 1:
        raise ConfigError(
            "'export.track_count' must be a positive integer, null or 'all'",
            details={"field": "export.track_count", "value": track_count}
        )

    max_artists = _positive_number(section, "max_artists", 10, "export.max_artists", integer=True)
    max_releases = _positive_number(
        section, "max_releases_per_artist", 5, "export.max_releases_per_artist", integer=True
    )

    public = section.get("public", True)
    if not isinstance(public, bool):
        raise ConfigError(
            "'export.public' must be true or false",
            details={"field": "export.public", "value": public}
        )

    return ExportConfig(
        track_count=track_count,
        max_artists=max_artists,
        max_releases_per_artist=max_releases,
        public=public,
    )


def _parse_output_config(section: dict[str, Any] | None) -> OutputConfig:
    """
    Parse the 'output' section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (setup_logging does).
    """
    section = section or {}
    directory = section.get("directory", DEFAULT_OUTPUT_DIRECTORY)

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.directory' must be a non-empty string",
            details={"field": "output.directory"}
        )

    return OutputConfig(directory=Path(directory.strip()).expanduser().resolve())
