import logging
import numpy as np
from typing import List, Sequence

from .node_store import Handle, NodeStore
from .SphereStructure import SphereStructure
from .utils import patch_centroid

logger = logging.getLogger(__name__)


def evaluation_candidates(store: NodeStore) -> List[Handle]:
    """Leaves plus the internal nodes whose four children are all leaves."""
    candidates = []
    for node in store.nodes():
        if node.is_leaf or all(store.get(child).is_leaf for child in node.children):
            candidates.append(node.handle)
    return candidates


def node_world_centroids(store: NodeStore, handles: Sequence[Handle]) -> np.ndarray:
    """World-space surface points of the patch centroids, shaped (N, 3)."""
    if not handles:
        return np.zeros((0, 3))
    nodes = [store.get(h) for h in handles]
    directions = patch_centroid(np.array([node.corners for node in nodes]))

    centroids = np.empty_like(directions)
    # All nodes of a sphere share one transform; group by it to stay vectorised
    groups = {}
    for i, node in enumerate(nodes):
        groups.setdefault(id(node.root_world_offset), (node.root_world_offset, []))[1].append(i)
    for transform, indices in groups.values():
        indices = np.asarray(indices)
        if transform is None:
            centroids[indices] = directions[indices]
        else:
            centroids[indices] = transform.to_world(directions[indices])
    return centroids


def evaluate_distances(store: NodeStore, viewpoint: Sequence[float], structure: SphereStructure) -> List[Handle]:
    """
    Raise or clear the distance desires of every evaluation candidate.

    Both desire flags are recomputed from scratch. A node wants to subdivide when
    the viewpoint is closer than the subdivide threshold of its level (and it is
    not at ``max_level`` yet), and wants to unsubdivide when the viewpoint is
    farther than the unsubdivide threshold.

    Returns:
        List[Handle]: The evaluated handles.
    """
    handles = evaluation_candidates(store)
    if not handles:
        return handles

    viewpoint = np.asarray(viewpoint, dtype=float)
    centroids = node_world_centroids(store, handles)
    distances = np.linalg.norm(centroids - viewpoint, axis=1)
    levels = np.array([store.get(h).level for h in handles])
    subdivide_at, unsubdivide_at = structure.thresholds(levels)

    wants_subdivide = (distances < subdivide_at) & (levels < structure.max_level)
    wants_unsubdivide = distances > unsubdivide_at

    for handle, subdivide, unsubdivide in zip(handles, wants_subdivide, wants_unsubdivide):
        node = store.get(handle)
        node.distance_wants_subdivide = bool(subdivide)
        node.distance_wants_unsubdivide = bool(unsubdivide)

    logger.debug("Evaluated {} nodes: {} want to subdivide, {} want to unsubdivide".format(
        len(handles), int(wants_subdivide.sum()), int(wants_unsubdivide.sum())))
    return handles
