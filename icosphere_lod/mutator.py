"""
Structural mutator: applies committed decisions as one batched edit.

Children of a split patch (T, BL, BR) with edge midpoints mL, mR, mB:

            T
           / \\
         mL---mR            top          (T,  mL, mR)
         / \\  / \\          bottom-left  (mL, BL, mB)
       BL---mB---BR         bottom-right (mR, mB, BR)
                            center       (mB, mR, mL)

Each corner child keeps two sides on the parent's sides of the same name; every
side of the center child is internal.
"""

import logging
from typing import List, NamedTuple, Optional

from .errors import InvariantViolation
from .node_store import Handle, Node, NodeStore, Side
from .reconcile import ReconcileResult
from .utils import patch_midpoints

logger = logging.getLogger(__name__)

CHILD_TOP, CHILD_BOTTOM_LEFT, CHILD_BOTTOM_RIGHT, CHILD_CENTER = range(4)

# (child, side) pairs sharing an edge inside the parent
INTERNAL_LINKS = (
    (CHILD_TOP, Side.BOTTOM, CHILD_CENTER, Side.BOTTOM),
    (CHILD_BOTTOM_LEFT, Side.RIGHT, CHILD_CENTER, Side.RIGHT),
    (CHILD_BOTTOM_RIGHT, Side.LEFT, CHILD_CENTER, Side.LEFT),
)

EXTERNAL_SIDES = {
    CHILD_TOP: (Side.LEFT, Side.RIGHT),
    CHILD_BOTTOM_LEFT: (Side.LEFT, Side.BOTTOM),
    CHILD_BOTTOM_RIGHT: (Side.RIGHT, Side.BOTTOM),
    CHILD_CENTER: (),
}


class MutationReport(NamedTuple):
    created: List[Handle]
    freed: List[Handle]
    skipped: List[Handle]


def child_corners(corners):
    """Corner triples of the four quadrisection children, in child-role order."""
    top, bottom_left, bottom_right = corners
    left_mid, right_mid, bottom_mid = patch_midpoints(corners)
    return [
        (top, left_mid, right_mid),
        (left_mid, bottom_left, bottom_mid),
        (right_mid, bottom_mid, bottom_right),
        (bottom_mid, right_mid, left_mid),
    ]


def apply_decisions(store: NodeStore, result: ReconcileResult) -> MutationReport:
    """
    Apply every committed unsubdivide and subdivide inside a single edit window.

    Subdivisions are split first against the pre-tick neighbour graph, then their
    children's outer links are derived from the post-split child sets, coarsest
    level first, so the outcome does not depend on processing order.
    """
    created: List[Handle] = []
    freed: List[Handle] = []
    skipped: List[Handle] = []

    with store.edit():
        for handle in result.unsubdivide:
            try:
                freed.extend(unsubdivide(store, handle))
            except InvariantViolation as error:
                logger.warning("Skipped unsubdivide of {}: {}".format(tuple(handle), error))
                skipped.append(handle)

        split: List[Handle] = []
        for handle in sorted(result.subdivide, key=lambda h: store.get(h).level if h in store else -1):
            try:
                created.extend(subdivide(store, handle))
                split.append(handle)
            except InvariantViolation as error:
                logger.warning("Skipped subdivide of {}: {}".format(tuple(handle), error))
                skipped.append(handle)

        for handle in split:
            link_outer_neighbors(store, handle)

    if created or freed:
        logger.debug("Structural edit: {} nodes created, {} freed, {} skipped".format(
            len(created), len(freed), len(skipped)))
    return MutationReport(created, freed, skipped)


def subdivide(store: NodeStore, handle: Handle) -> List[Handle]:
    """Allocate the four children of a leaf and wire their internal links."""
    if handle not in store:
        raise InvariantViolation("node {} no longer exists".format(tuple(handle)))
    node = store.get(handle)
    if not node.is_leaf:
        raise InvariantViolation("node is already subdivided")

    children = [store.allocate(corners, node.level + 1, parent=handle) for corners in child_corners(node.corners)]
    for a, side_a, b, side_b in INTERNAL_LINKS:
        store.set_neighbor(children[a], side_a, children[b])
        store.set_neighbor(children[b], side_b, children[a])
    return children


def link_outer_neighbors(store: NodeStore, handle: Handle):
    parent = store.get(handle)
    for role, child in enumerate(parent.children):
        for side in EXTERNAL_SIDES[role]:
            try:
                outer = _outer_neighbor(store, parent, child, side)
            except InvariantViolation as error:
                logger.warning("Falling back to the coarse neighbour of {}: {}".format(tuple(child), error))
                outer = parent.neighbors[side]
            store.set_neighbor(child, side, outer)


def _outer_neighbor(store: NodeStore, parent: Node, child: Handle, side: Side) -> Optional[Handle]:
    across = parent.neighbors[side]
    if across is None:
        return None
    across_node = store.get(across)
    if across_node.level != parent.level or across_node.is_leaf:
        return across

    edge = store.get(child).edge(side)
    for candidate in across_node.children:
        candidate_side = store.get(candidate).side_sharing(edge)
        if candidate_side is not None:
            store.set_neighbor(candidate, candidate_side, child)
            return candidate
    raise InvariantViolation("no child of {} shares the {} edge".format(tuple(across), side.name.lower()))


def unsubdivide(store: NodeStore, handle: Handle) -> List[Handle]:
    """Free the four leaf children of ``handle``; slots that pointed at them now point at ``handle``."""
    if handle not in store:
        raise InvariantViolation("node {} no longer exists".format(tuple(handle)))
    node = store.get(handle)
    if node.is_leaf:
        raise InvariantViolation("node has no children")
    children = list(node.children)
    for child in children:
        child_node = store.get(child)
        if not child_node.is_leaf:
            raise InvariantViolation("child {} is not a leaf".format(tuple(child)))
        if child_node.committed_subdivide:
            raise InvariantViolation("child {} is committed to subdivide".format(tuple(child)))

    redirects = []
    for child in children:
        child_level = store.get(child).level
        for referrer, side in store.referrers(child):
            if referrer in children:
                continue
            if store.get(referrer).level > child_level:
                raise InvariantViolation("collapsing would leave {} two levels finer".format(tuple(referrer)))
            redirects.append((referrer, side))

    for referrer, side in redirects:
        store.set_neighbor(referrer, side, handle)
    for child in children:
        store.free(child)
    return children
