"""
MusicBrainz module for labelscope.

    client: Queued, cached web service client
    models: Label, Artist, Release... and derived views
    aggregator: Rosters, label citations, genre/decade/collaboration stats
    family_tree: Family-tree builder and relationship filter
"""

from labelscope.musicbrainz.aggregator import (
    aggregate_labels,
    aggregate_roster,
    classify_roster_artist,
    collaboration_stats,
    decade_stats,
    filter_roster,
    format_period,
    genre_stats,
    sort_roster,
    summarize_roster,
)
from labelscope.musicbrainz.client import MusicBrainzClient, map_relationship
from labelscope.musicbrainz.family_tree import FamilyTreeBuilder, filter_family_tree, filter_tree
from labelscope.musicbrainz.models import (
    AggregatedLabel,
    Artist,
    Label,
    LabelFamilyTree,
    LabelTreeNode,
    RelatedLabel,
    Relationship,
    Release,
    ReleaseGroup,
    RosterEntry,
)

__all__ = [
    # Client
    "MusicBrainzClient",
    "map_relationship",
    # Models
    "Label",
    "Artist",
    "Release",
    "ReleaseGroup",
    "Relationship",
    "RelatedLabel",
    "RosterEntry",
    "AggregatedLabel",
    "LabelTreeNode",
    "LabelFamilyTree",
    # Aggregation
    "aggregate_labels",
    "aggregate_roster",
    "classify_roster_artist",
    "summarize_roster",
    "filter_roster",
    "sort_roster",
    "format_period",
    "genre_stats",
    "decade_stats",
    "collaboration_stats",
    # Trees
    "FamilyTreeBuilder",
    "filter_tree",
    "filter_family_tree",
]
