import json
import logging
import numpy as np
from collections import Counter

from .errors import InvariantViolation
from .node_store import NodeStore, Side
from .utils import cartesian_to_spherical

logger = logging.getLogger(__name__)


def graph_statistics(store: NodeStore) -> dict:
    """Summary counts of the node graph."""
    nodes = list(store.nodes())
    leaves = [node for node in nodes if node.is_leaf]
    nodes_per_level = Counter(node.level for node in nodes)
    leaves_per_level = Counter(node.level for node in leaves)
    return {
        "total_nodes": len(nodes),
        "total_leaves": len(leaves),
        "roots": len(store.roots),
        "max_level": store.max_level(),
        "nodes_per_level": {int(k): v for k, v in sorted(nodes_per_level.items())},
        "leaves_per_level": {int(k): v for k, v in sorted(leaves_per_level.items())},
        "debug_tagged": sum(1 for node in nodes if node.show_debug),
        "revision": store.revision,
    }


def save_graph_debug(graph_name: str, store: NodeStore, path: str = "graph_debug.json") -> dict:
    """Save comprehensive graph debug information."""
    leaves = [store.get(h) for h in store.leaves()]
    corners = np.array([node.corners for node in leaves]).reshape(-1, 3) if leaves else np.zeros((0, 3))
    angles = cartesian_to_spherical(corners) if len(corners) else np.zeros((0, 2))
    level_gaps = [
        abs(node.level - store.get(other).level)
        for node in leaves for other in store.adjacent_leaves(node.handle)
    ]

    debug_data = {
        "graph_name": graph_name,
        "graph_overview": graph_statistics(store),
        "leaf_corner_analysis": {
            "azimuth": [float(np.min(angles[:, 0])), float(np.max(angles[:, 0]))] if len(angles) else None,
            "polar": [float(np.min(angles[:, 1])), float(np.max(angles[:, 1]))] if len(angles) else None,
            "radius_error": float(np.max(np.abs(np.linalg.norm(corners, axis=1) - 1.0))) if len(corners) else None,
        },
        "adjacency_analysis": {
            "adjacent_leaf_pairs": len(level_gaps) // 2,
            "max_level_gap": max(level_gaps, default=0),
            "open_neighbor_slots": sum(1 for node in store.nodes() for n in node.neighbors if n is None),
        },
    }

    with open(path, "w") as f:
        json.dump(debug_data, f, indent=2)

    logger.info("Comprehensive graph debug info saved to {}".format(path))
    return debug_data


def validate_graph(store: NodeStore, tolerance: float = 1e-9) -> bool:
    """
    Validate the graph invariants that must hold between ticks.

    Args:
        store: The node graph.
        tolerance: Allowed deviation of corners from the unit sphere.

    Returns:
        bool: True if the graph is valid

    Raises:
        InvariantViolation: On the first invariant that does not hold.
    """
    logger.debug("Validating graph structure...")
    _validate_structure(store)

    logger.debug("Validating neighbour links...")
    _validate_neighbors(store)

    logger.debug("Validating crack-free leaves...")
    _validate_crack_free(store)

    logger.debug("Validating corners...")
    _validate_corners(store, tolerance)

    logger.debug("All graph validations passed.")
    return True


def _validate_structure(store: NodeStore):
    """Every node has 0 or 4 live children one level below it, and parents that know them."""
    if store.initialized and not store.roots:
        raise InvariantViolation("Initialized graph has no roots")
    for node in store.nodes():
        if len(node.children) not in (0, 4):
            raise InvariantViolation("Node {} has {} children".format(tuple(node.handle), len(node.children)))
        for child in node.children:
            child_node = store.get(child)
            if child_node.parent != node.handle or child_node.level != node.level + 1:
                raise InvariantViolation("Child {} is not linked back to {}".format(tuple(child), tuple(node.handle)))
        if node.parent is None:
            if node.level != 0 or node.handle not in store.roots:
                raise InvariantViolation("Parentless node {} is not a root".format(tuple(node.handle)))


def _validate_neighbors(store: NodeStore):
    """Closed surface: every slot is filled, never finer, and same-level links are mutual."""
    for node in store.nodes():
        for side in Side:
            other = node.neighbors[side]
            if other is None:
                raise InvariantViolation("Node {} has no {} neighbour".format(tuple(node.handle), side.name.lower()))
            other_node = store.get(other)
            if other_node.level > node.level:
                raise InvariantViolation("Node {} points at finer node {}".format(tuple(node.handle), tuple(other)))
            if other_node.level == node.level:
                back = other_node.side_sharing(node.edge(side))
                if back is None or other_node.neighbors[back] != node.handle:
                    raise InvariantViolation("Link {} -> {} is not mutual".format(tuple(node.handle), tuple(other)))
            elif not other_node.is_leaf:
                raise InvariantViolation("Node {} points at coarser internal node {}".format(
                    tuple(node.handle), tuple(other)))


def _validate_crack_free(store: NodeStore):
    for handle in store.leaves():
        level = store.get(handle).level
        for other in store.adjacent_leaves(handle):
            if abs(store.get(other).level - level) > 1:
                raise InvariantViolation("Crack between leaves {} (level {}) and {} (level {})".format(
                    tuple(handle), level, tuple(other), store.get(other).level))


def _validate_corners(store: NodeStore, tolerance: float):
    for node in store.nodes():
        corners = np.asarray(node.corners)
        if np.max(np.abs(np.linalg.norm(corners, axis=1) - 1.0)) > tolerance:
            raise InvariantViolation("Node {} has corners off the unit sphere".format(tuple(node.handle)))
