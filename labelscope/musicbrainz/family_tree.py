"""
Label family trees: recursive relationship traversal plus a roster pass.

A tree is built in two passes:
    1. build_tree() walks label-label relationships depth first, down to
       max_depth. Each node costs one label lookup and one relationship
       lookup, both cached by the client.
    2. attach_rosters() visits every node in pre-order and attaches the
       artist roster of its label (one paginated collection per distinct
       label ID).

Failure Handling:
    - Root label lookup fails: the error propagates, there is no tree.
    - A child label lookup fails: that subtree is dropped and logged.
    - A relationship lookup fails: the node simply has no children.
    - A roster lookup fails: the node keeps artist_roster=None.
    - RequestCancelled always propagates (the queue was cleared).

Relationships leading back to a label already on the current root-to-node
path are skipped, so cyclic MusicBrainz data cannot recurse forever. The
same label may still appear in two sibling subtrees.
"""

from dataclasses import replace
from typing import Iterable

from labelscope.core.exceptions import LabelscopeError, RequestCancelled
from labelscope.core.logger import get_logger
from labelscope.core.progress import RosterProgressBar
from labelscope.musicbrainz.client import MusicBrainzClient
from labelscope.musicbrainz.models import LabelFamilyTree, LabelTreeNode, Relationship, RosterEntry


logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 3


class FamilyTreeBuilder:
    """
    Builds LabelFamilyTree objects from MusicBrainz.

    Attributes:
        client: MusicBrainz client (queue and cache included).
        max_depth: Default depth limit for build_tree()/build_family_tree().

    Example:
        builder = FamilyTreeBuilder(client, max_depth=2)
        tree = await builder.build_family_tree(label_id)
        print(tree.total_labels, tree.total_artists)
    """

    def __init__(self, client: MusicBrainzClient, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.client = client
        self.max_depth = max_depth

    async def build_tree(
        self,
        label_id: str,
        depth: int = 0,
        max_depth: int | None = None
    ) -> LabelTreeNode:
        """
        Build the relationship tree rooted at label_id.

        Args:
            label_id: MusicBrainz ID of the root label.
            depth: Depth assigned to the root node.
            max_depth: Nodes at this depth are leaves (defaults to self.max_depth).

        Raises:
            LabelscopeError: If the root label itself cannot be fetched.
        """
        if max_depth is None:
            max_depth = self.max_depth
        return await self._build_node(label_id, depth, max_depth, None, frozenset())

    async def _build_node(
        self,
        label_id: str,
        depth: int,
        max_depth: int,
        relationship: Relationship | None,
        path: frozenset
    ) -> LabelTreeNode:
        label = await self.client.get_label(label_id)
        node = LabelTreeNode(label=label, relationship=relationship, depth=depth)

        if depth >= max_depth:
            return node

        try:
            related = await self.client.get_label_relationships(label_id)
        except RequestCancelled:
            raise
        except LabelscopeError as e:
            logger.warning(f"No relationships for {label.name} ({label_id}): {e}")
            return node

        path = path | {label_id}
        for item in related:
            child_id = item.label.id
            if child_id in path:
                logger.debug(f"Skipping cyclic relationship {label.name} -> {item.label.name}")
                continue
            try:
                child = await self._build_node(child_id, depth + 1, max_depth, item.relationship, path)
            except RequestCancelled:
                raise
            except LabelscopeError as e:
                logger.warning(f"Dropping subtree {item.label.name} ({child_id}): {e}")
                continue
            node.children.append(child)

        return node

    async def attach_rosters(self, tree: LabelTreeNode, show_progress: bool = False) -> None:
        """
        Attach an artist roster to every node of tree, in place.

        Each distinct label ID is fetched once; every node gets its own copy
        of the roster list. Failures leave artist_roster as None.
        """
        nodes = list(tree.walk())
        rosters: dict[str, list[RosterEntry] | None] = {}
        progress = RosterProgressBar(total=len({n.label.id for n in nodes})) if show_progress else None

        if progress:
            progress.start()
        try:
            for node in nodes:
                label_id = node.label.id
                if label_id in rosters:
                    continue
                try:
                    rosters[label_id] = await self.client.get_label_roster(label_id)
                except RequestCancelled:
                    raise
                except LabelscopeError as e:
                    logger.warning(f"Roster unavailable for {node.label.name} ({label_id}): {e}")
                    rosters[label_id] = None
                if progress:
                    progress.update(success=rosters[label_id] is not None)
        finally:
            if progress:
                progress.stop()

        for node in nodes:
            roster = rosters.get(node.label.id)
            node.artist_roster = list(roster) if roster is not None else None

    async def build_family_tree(
        self,
        label_id: str,
        max_depth: int | None = None,
        with_rosters: bool = True,
        show_progress: bool = False
    ) -> LabelFamilyTree:
        """
        Build a full family tree with rosters and tree-wide totals.

        Returns:
            LabelFamilyTree whose totals are computed once, after the roster
            pass.
        """
        tree = await self.build_tree(label_id, max_depth=max_depth)
        logger.info(f"Built tree for {tree.label.name}: {sum(1 for _ in tree.walk())} label(s)")
        if with_rosters:
            await self.attach_rosters(tree, show_progress=show_progress)
        return LabelFamilyTree.from_tree(tree)


# =============================================================================
# FILTERING
# =============================================================================

def filter_tree(node: LabelTreeNode, relationship_types: Iterable[str]) -> LabelTreeNode:
    """
    Copy of node keeping only relationships of the given types.

    Children are filtered first. A child survives if any of its descendants
    survived or its own relationship type is in relationship_types (nodes
    without a relationship always qualify). The node passed in is always
    returned, possibly as a childless copy. The input tree is not modified.
    """
    wanted = set(relationship_types)
    children = []
    for child in node.children:
        filtered = filter_tree(child, wanted)
        own_type_kept = child.relationship is None or child.relationship.type in wanted
        if filtered.children or own_type_kept:
            children.append(filtered)
    return replace(
        node,
        children=children,
        artist_roster=list(node.artist_roster) if node.artist_roster is not None else None,
    )


def filter_family_tree(tree: LabelFamilyTree, relationship_types: Iterable[str]) -> LabelFamilyTree:
    """Filter a family tree and recompute its totals."""
    return LabelFamilyTree.from_tree(filter_tree(tree.tree, relationship_types))


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "FamilyTreeBuilder",
    "filter_tree",
    "filter_family_tree",
]
