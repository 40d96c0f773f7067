"""
Read-only views of the node graph for the render and debug-draw collaborators.
"""

import json
import logging
import os
import numpy as np
from typing import Any, Dict, List, Optional, Sequence

from .distance import node_world_centroids
from .node_store import Handle, NodeStore, SIDE_CORNERS, Side
from .utils import gzip_file, midpoint, order

logger = logging.getLogger(__name__)


def _handle(handle: Optional[Handle]):
    return list(handle) if handle is not None else None


def graph_to_dict(store: NodeStore) -> Dict[str, Any]:
    """Node table with hierarchy, neighbour links, corners and levels."""
    nodes = []
    for node in store.nodes():
        nodes.append({
            "handle": _handle(node.handle),
            "level": node.level,
            "corners": [c.tolist() for c in node.corners],
            "parent": _handle(node.parent),
            "children": [_handle(c) for c in node.children],
            "neighbors": {side.name.lower(): _handle(node.neighbors[side]) for side in Side},
            "show_debug": node.show_debug,
        })
    return {
        "roots": [_handle(r) for r in store.roots],
        "revision": store.revision,
        "nodes": nodes,
    }


def leaves_to_mesh_dict(store: NodeStore) -> Dict[str, Any]:
    """
    Convert the current leaves into per-level triangle meshes in world space.

    Returns:
        dict: For every leaf level L the keys ``order_L_vertices``, ``order_L_faces``
        and ``order_L_face_centroid``, plus ``levels`` listing the levels present.
    """
    by_level: Dict[int, List[Handle]] = {}
    for handle in store.leaves():
        by_level.setdefault(store.get(handle).level, []).append(handle)

    mesh_dict: Dict[str, Any] = {"levels": sorted(by_level)}
    for level in sorted(by_level):
        handles = by_level[level]
        vertex_index: Dict[tuple, int] = {}
        directions = []
        transforms = []
        faces = []
        for handle in handles:
            node = store.get(handle)
            face = []
            for corner in node.corners:
                key = tuple(corner.tolist())
                if key not in vertex_index:
                    vertex_index[key] = len(directions)
                    directions.append(corner)
                    transforms.append(node.root_world_offset)
                face.append(vertex_index[key])
            faces.append(face)

        directions = np.array(directions)
        vertices = np.array([
            t.to_world(d) if t is not None else d for t, d in zip(transforms, directions)
        ])
        mesh_dict[order(level, "vertices")] = vertices.tolist()
        mesh_dict[order(level, "faces")] = faces
        mesh_dict[order(level, "face_centroid")] = node_world_centroids(store, handles).tolist()
    return mesh_dict


def debug_segments(store: NodeStore, handles: Optional[Sequence[Handle]] = None) -> np.ndarray:
    """
    World-space edge segments of the debug-tagged leaves, shaped (K, 2, 3).

    An edge whose neighbour across is subdivided is drawn as two halves meeting at
    the edge midpoint, matching the finer patches on the other side.
    """
    if handles is None:
        handles = [h for h in store.leaves() if store.get(h).show_debug]

    segments = []
    for handle in handles:
        node = store.get(handle)
        points = []
        for side in Side:
            i, j = SIDE_CORNERS[side]
            a, b = node.corners[i], node.corners[j]
            across = node.neighbors[side]
            if across is not None and store.get(across).level == node.level and not store.get(across).is_leaf:
                middle = midpoint(a, b)
                points.extend((a, middle, middle, b))
            else:
                points.extend((a, b))

        points = np.array(points)
        if node.root_world_offset is not None:
            points = node.root_world_offset.to_world(points)
        segments.append(points.reshape(-1, 2, 3))

    if not segments:
        return np.zeros((0, 2, 3))
    return np.concatenate(segments)


def save_graph(output_config: Dict[str, Any], data: Dict[str, Any], filename: str) -> str:
    """Write ``data`` as JSON into the configured output directory, gzipped if requested."""
    directory = output_config.get("directory", "./output/")
    os.makedirs(directory, exist_ok=True, mode=0o755)
    location = os.path.join(directory, f"{filename}.json")
    with open(location, 'w') as f:
        json.dump(data, f)
    logger.info("Saved {} to {}".format(filename, location))

    if output_config.get("gzip", False):
        location = gzip_file(location)
        logger.info("Saved {} to {}".format(filename, location))
    return location
