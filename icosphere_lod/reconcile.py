"""
Reconciliation of subdivision desires into committed decisions.

Per node, in precedence order:

1. conflicting distance desires cancel each other out for this tick;
2. a leaf that wants to subdivide commits to it;
3. neighbour forcing: a leaf whose adjacent leaf will end the tick more than one
   level finer than itself must subdivide as well. This is propagated to a fixed
   point with a worklist, each leaf deciding its own flag from its neighbours'
   committed levels;
4. a collapsible node that wants to unsubdivide commits to it when none of its
   children is subdividing and the collapse leaves no adjacent leaf more than one
   level finer.

Unsubdivides are decided last so that they are checked against the final set of
subdivisions and never need to be revoked.
"""

import logging
from typing import Iterable, List, NamedTuple

from .errors import InvariantViolation
from .node_store import Handle, Node, NodeStore

logger = logging.getLogger(__name__)


class ReconcileResult(NamedTuple):
    subdivide: List[Handle]
    unsubdivide: List[Handle]
    forced: List[Handle]
    passes: int
    touched: List[Handle]


def committed_level(node: Node) -> int:
    """Level the patch renders at once this tick's committed subdivide is applied."""
    return node.level + 1 if node.committed_subdivide else node.level


def _commit_subdivide(node: Node) -> bool:
    # write-once; a repeated commit from another edge is a no-op
    if node.committed_subdivide:
        return False
    node.committed_subdivide = True
    return True


def needs_forced_subdivide(store: NodeStore, node: Node) -> bool:
    if not node.is_leaf:
        return False
    return any(committed_level(store.get(h)) > node.level + 1 for h in store.adjacent_leaves(node.handle))


def collapse_keeps_crack_free(store: NodeStore, node: Node) -> bool:
    for child in node.children:
        for leaf in store.adjacent_leaves(child):
            leaf_node = store.get(leaf)
            if leaf_node.parent == node.handle:
                continue
            if committed_level(leaf_node) > node.level + 1:
                return False
    return True


def reconcile(store: NodeStore, handles: Iterable[Handle]) -> ReconcileResult:
    """
    Turn the distance desires of ``handles`` into committed decisions.

    Args:
        store (NodeStore): The graph; only node flags are written.
        handles (Iterable[Handle]): Nodes evaluated this tick.

    Returns:
        ReconcileResult: Committed subdivisions (ascending level), committed
        unsubdivisions, the subset of subdivisions forced by neighbours, the number
        of propagation passes and every handle whose flags were touched.
    """
    handles = [h for h in handles if h in store]
    touched = list(handles)
    touched_set = set(touched)

    # Local decisions
    for handle in handles:
        node = store.get(handle)
        if node.distance_wants_subdivide and node.distance_wants_unsubdivide:
            node.distance_wants_subdivide = False
            node.distance_wants_unsubdivide = False
            logger.debug("Cleared conflicting distance desires of {}".format(tuple(handle)))
            continue
        if node.is_leaf and node.distance_wants_subdivide:
            _commit_subdivide(node)

    # Neighbour-forced propagation
    frontier = [h for h in handles if store.get(h).is_leaf and store.get(h).committed_subdivide]
    forced: List[Handle] = []
    bound = store.max_level() + 2
    passes = 0
    while frontier:
        passes += 1
        if passes > bound:
            error = InvariantViolation("Forced subdivision did not settle within {} passes".format(bound))
            logger.warning("{}; {} nodes left unchecked".format(error, len(frontier)))
            break

        candidates: List[Handle] = []
        seen = set()
        for handle in frontier:
            for leaf in store.adjacent_leaves(handle):
                if leaf not in seen:
                    seen.add(leaf)
                    candidates.append(leaf)

        frontier = []
        for handle in candidates:
            node = store.get(handle)
            if node.committed_subdivide or not needs_forced_subdivide(store, node):
                continue
            node.neighbor_forces_subdivide = True
            _commit_subdivide(node)
            forced.append(handle)
            frontier.append(handle)
            if handle not in touched_set:
                touched_set.add(handle)
                touched.append(handle)
            logger.debug("Neighbour forces {} (level {}) to subdivide".format(tuple(handle), node.level))

    # Unsubdivide decisions against the settled subdivisions
    unsubdivide: List[Handle] = []
    for handle in handles:
        node = store.get(handle)
        if node.is_leaf or not node.distance_wants_unsubdivide or node.neighbor_forces_subdivide:
            continue
        children = [store.get(child) for child in node.children]
        if not all(child.is_leaf for child in children):
            continue
        if any(child.committed_subdivide or child.neighbor_forces_subdivide for child in children):
            continue
        if not collapse_keeps_crack_free(store, node):
            logger.debug("Kept {} subdivided: collapsing would open a crack".format(tuple(handle)))
            continue
        if not node.committed_unsubdivide:
            node.committed_unsubdivide = True
            unsubdivide.append(handle)

    subdivide = [h for h in touched if store.get(h).is_leaf and store.get(h).committed_subdivide]
    subdivide.sort(key=lambda h: store.get(h).level)

    logger.debug("Reconciled in {} passes: {} subdivide ({} forced), {} unsubdivide".format(
        passes, len(subdivide), len(forced), len(unsubdivide)))
    return ReconcileResult(subdivide, unsubdivide, forced, passes, touched)


def reset_flags(store: NodeStore, handles: Iterable[Handle]) -> int:
    """Clear the transient flags of every still-live handle; returns how many were reset."""
    count = 0
    for handle in handles:
        if handle in store:
            store.get(handle).clear_flags()
            count += 1
    return count
