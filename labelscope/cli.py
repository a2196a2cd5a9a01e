"""
Command-line interface for labelscope.

This module implements the CLI using Click; rich-click is used for the
help output colors. Every command prints plain text.

Commands:
    labelscope search-labels <query>              Search labels by name
    labelscope search-artists <query>             Search artists by name
    labelscope tree <label-id>                    Label family tree with rosters
    labelscope roster <label-id>                  Artist roster of one label
    labelscope artist-labels <artist-id>          Labels an artist released on
    labelscope auth-url                           Spotify authorize URL
    labelscope exchange-code <code>               Trade an authorization code for a token
    labelscope export <label-id> --token <token>  Spotify playlist from a label roster

Global Options:
    --config <path>     Explicit config.yaml (default: ./config.yaml if present)
    --verbose           Show debug messages on the console

Exit Codes:
    1  configuration or unexpected error
    3  Spotify authorization missing or expired
    4  any other labelscope error (network, rate limit, HTTP)
    130  interrupted
"""

import asyncio
import secrets
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import rich_click as click

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100

from labelscope import __version__
from labelscope.core import (
    AuthorizationExpired,
    Config,
    ConfigError,
    LabelscopeError,
    ResponseCache,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from labelscope.core.config import RELATIONSHIP_TYPES
from labelscope.musicbrainz import (
    FamilyTreeBuilder,
    LabelTreeNode,
    MusicBrainzClient,
    filter_family_tree,
    filter_roster,
    format_period,
    sort_roster,
    summarize_roster,
)
from labelscope.spotify import PlaylistExporter, SpotifyClient, SpotifySession, releases_from_roster

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug messages.")
@click.version_option(__version__, prog_name="labelscope")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    labelscope: explore record labels through MusicBrainz.

    \b
    EXAMPLES:
        labelscope search-labels "Warp"
        labelscope tree 46f0f4cd-8aab-4b33-b698-f459faf64190 --depth 2
        labelscope roster 46f0f4cd-8aab-4b33-b698-f459faf64190 --filter current
        labelscope export 46f0f4cd-8aab-4b33-b698-f459faf64190 --token <token>
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _run(ctx: click.Context, command: Callable[[Config], Awaitable[Any]]) -> None:
    """
    Load configuration, set up logging and run an async command.

    Maps labelscope errors to exit codes; see the module docstring.
    """
    try:
        config = load_config(ctx.obj["config_path"])
        setup_logging(config.output.directory, verbose=ctx.obj["verbose"])
        asyncio.run(command(config))

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except AuthorizationExpired as e:
        click.echo(f"Spotify authorization error: {e.message}", err=True)
        click.echo("Run 'labelscope auth-url' and 'labelscope exchange-code' to get a new token", err=True)
        sys.exit(3)

    except LabelscopeError as e:
        click.echo(f"Error: {e.message}", err=True)
        if e.retry_after is not None:
            click.echo(f"Retry in {e.retry_after:.0f} seconds", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _musicbrainz_client(config: Config) -> MusicBrainzClient:
    return MusicBrainzClient(config.musicbrainz, cache=ResponseCache(ttl=config.cache.ttl_seconds))


# =============================================================================
# MUSICBRAINZ COMMANDS
# =============================================================================

@cli.command("search-labels")
@click.argument("query")
@click.option("--limit", type=click.IntRange(1, 100), default=20, show_default=True)
@click.pass_context
def search_labels(ctx: click.Context, query: str, limit: int) -> None:
    """Search MusicBrainz labels by name."""

    async def command(config: Config) -> None:
        async with _musicbrainz_client(config) as client:
            labels = await client.search_labels(query, limit=limit)
        if not labels:
            click.echo("No labels found.")
        for label in labels:
            extra = f" ({label.disambiguation})" if label.disambiguation else ""
            click.echo(f"{label.id}  {label.name}{extra}  [{label.type}, {label.country}]")

    _run(ctx, command)


@cli.command("search-artists")
@click.argument("query")
@click.option("--limit", type=click.IntRange(1, 100), default=10, show_default=True)
@click.pass_context
def search_artists(ctx: click.Context, query: str, limit: int) -> None:
    """Search MusicBrainz artists by name."""

    async def command(config: Config) -> None:
        async with _musicbrainz_client(config) as client:
            artists = await client.search_artists(query, limit=limit)
        if not artists:
            click.echo("No artists found.")
        for artist in artists:
            extra = f" ({artist.disambiguation})" if artist.disambiguation else ""
            click.echo(f"{artist.id}  {artist.name}{extra}  [{artist.type}, {artist.country}]")

    _run(ctx, command)


def _print_tree(node: LabelTreeNode, indent: str = "") -> None:
    relation = f" <{node.relationship.type}>" if node.relationship else ""
    roster = f" - {len(node.artist_roster)} artist(s)" if node.artist_roster is not None else ""
    click.echo(f"{indent}{node.label.name}{relation}{roster}")
    for child in node.children:
        _print_tree(child, indent + "    ")


@cli.command("tree")
@click.argument("label_id")
@click.option("--depth", type=click.IntRange(0, 10), default=None, help="Maximum depth (default from config).")
@click.option(
    "--type", "types",
    type=click.Choice(RELATIONSHIP_TYPES),
    multiple=True,
    help="Relationship types to keep (repeatable, default from config)."
)
@click.option("--all-types", is_flag=True, help="Keep every relationship type.")
@click.option("--no-rosters", is_flag=True, help="Skip the roster pass.")
@click.pass_context
def tree(
    ctx: click.Context,
    label_id: str,
    depth: Optional[int],
    types: tuple[str, ...],
    all_types: bool,
    no_rosters: bool
) -> None:
    """Build the family tree of a label."""

    async def command(config: Config) -> None:
        async with _musicbrainz_client(config) as client:
            builder = FamilyTreeBuilder(client, max_depth=config.tree.max_depth)
            family = await builder.build_family_tree(
                label_id,
                max_depth=depth,
                with_rosters=not no_rosters,
                show_progress=not no_rosters,
            )
        if not all_types:
            family = filter_family_tree(family, types or config.tree.relationship_types)

        _print_tree(family.tree)
        click.echo("")
        click.echo(f"Labels: {family.total_labels}  Artists: {family.total_artists}  Depth: {family.max_depth}")

    _run(ctx, command)


@cli.command("roster")
@click.argument("label_id")
@click.option(
    "--filter", "relationship",
    type=click.Choice(["all", "current", "former"]),
    default="all",
    show_default=True
)
@click.option(
    "--sort", "sort_by",
    type=click.Choice(["releases", "name", "period"]),
    default="releases",
    show_default=True
)
@click.option("--desc", is_flag=True, help="Sort descending.")
@click.option("--life-spans", is_flag=True, help="Look up every artist so ended artists count as former.")
@click.pass_context
def roster(
    ctx: click.Context,
    label_id: str,
    relationship: str,
    sort_by: str,
    desc: bool,
    life_spans: bool
) -> None:
    """Show the artist roster of a label."""

    async def command(config: Config) -> None:
        async with _musicbrainz_client(config) as client:
            label = await client.get_label(label_id)
            entries = await client.get_label_roster(label_id, with_life_spans=life_spans)

        summary = summarize_roster(entries)
        entries = sort_roster(filter_roster(entries, relationship), by=sort_by, descending=desc)

        click.echo(f"{label.name}: {summary.total_artists} artist(s), "
                   f"{summary.current_artists} current, {summary.former_artists} former, "
                   f"{summary.total_releases} release(s)")
        for entry in entries:
            click.echo(f"  {entry.artist.name:<40} {entry.release_count:>4}  "
                       f"{format_period(entry.period):<16} {entry.relationship_type}")

    _run(ctx, command)


@cli.command("artist-labels")
@click.argument("artist_id")
@click.pass_context
def artist_labels(ctx: click.Context, artist_id: str) -> None:
    """List the labels an artist released on, most releases first."""

    async def command(config: Config) -> None:
        async with _musicbrainz_client(config) as client:
            labels = await client.get_artist_labels(artist_id)
        if not labels:
            click.echo("No labels found.")
        for item in labels:
            click.echo(f"{item.release_count:>4}  {item.label.name}  ({item.label.id})")

    _run(ctx, command)


# =============================================================================
# SPOTIFY COMMANDS
# =============================================================================

@cli.command("auth-url")
@click.option("--state", default=None, help="OAuth state value (random by default).")
@click.pass_context
def auth_url(ctx: click.Context, state: Optional[str]) -> None:
    """Print the Spotify authorization URL."""

    async def command(config: Config) -> None:
        session = SpotifySession(config.spotify)
        click.echo(session.authorize_url(state or secrets.token_urlsafe(16)))

    _run(ctx, command)


@cli.command("exchange-code")
@click.argument("code")
@click.pass_context
def exchange_code(ctx: click.Context, code: str) -> None:
    """Exchange an authorization code for an access token."""

    async def command(config: Config) -> None:
        session = SpotifySession(config.spotify)
        click.echo(session.exchange_code(code))

    _run(ctx, command)


@cli.command("export")
@click.argument("label_id")
@click.option("--token", envvar="SPOTIFY_ACCESS_TOKEN", required=True, help="Spotify access token.")
@click.option("--tracks", "track_count", default=None, help="Tracks per album, or 'all' (default from config).")
@click.option("--private", is_flag=True, help="Create a private playlist.")
@click.pass_context
def export(ctx: click.Context, label_id: str, token: str, track_count: Optional[str], private: bool) -> None:
    """Create a Spotify playlist from a label's roster."""

    async def command(config: Config) -> None:
        count = config.export.track_count
        if track_count is not None:
            if track_count.lower() == "all":
                count = None
            elif track_count.isdigit() and int(track_count) > 0:
                count = int(track_count)
            else:
                raise ConfigError(
                    "--tracks must be a positive integer or 'all'",
                    details={"value": track_count}
                )

        async with _musicbrainz_client(config) as client:
            label = await client.get_label(label_id)
            entries = await client.get_label_roster(label_id)

        releases = releases_from_roster(
            entries,
            max_artists=config.export.max_artists,
            max_releases_per_artist=config.export.max_releases_per_artist,
        )
        session = SpotifySession(config.spotify, access_token=token)
        async with SpotifyClient(session) as spotify:
            summary = await PlaylistExporter(spotify).export(
                label.name,
                releases,
                track_count=count,
                public=config.export.public and not private,
                show_progress=True,
            )

        click.echo(f"Playlist: {summary.name}")
        click.echo(f"URL: {summary.url}")
        click.echo(f"Tracks added: {summary.tracks_added}")
        click.echo(f"Duplicates skipped: {summary.duplicates_skipped}")
        click.echo(f"Unmatched releases: {len(summary.unmatched)}")

    _run(ctx, command)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
