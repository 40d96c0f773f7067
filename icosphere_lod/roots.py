"""
Root generation: seeds the node graph with the icosahedron.

The twelve vertices come from the golden-ratio construction; every one of the
twenty faces becomes a level-0 root whose corners are the face's vertices in
table order (top, bottom-left, bottom-right). Roots sharing an edge are linked
to each other before the first tick runs.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .errors import InvariantViolation
from .node_store import Handle, NodeStore, Side
from .transform import SphereTransform
from .utils import get_icosahedron_geometry

logger = logging.getLogger(__name__)


def generate_roots(store: NodeStore,
                   transform: Optional[SphereTransform] = None,
                   show_debug: bool = False) -> List[Handle]:
    """
    Build and link the icosahedron roots once.

    Args:
        store (NodeStore): The graph to seed.
        transform (SphereTransform): World placement shared by every node of the sphere.
        show_debug (bool): Initial value of the debug-draw tag of the roots.

    Returns:
        List[Handle]: Root handles in face-table order. On an already initialized
        graph the existing roots are returned and nothing is allocated.
    """
    if store.initialized:
        error = InvariantViolation("Roots were already generated; refusing to allocate them twice")
        logger.warning("{} ({} roots kept)".format(error, len(store.roots)))
        return list(store.roots)

    if transform is None:
        transform = SphereTransform()
    vertices, faces = get_icosahedron_geometry()

    with store.edit():
        roots = [
            store.allocate([vertices[i] for i in face], level=0,
                           root_world_offset=transform, show_debug=show_debug)
            for face in faces
        ]

        # Pair the two roots found on every edge
        edges: Dict[frozenset, List[Tuple[Handle, Side]]] = {}
        for handle in roots:
            node = store.get(handle)
            for side in Side:
                edges.setdefault(node.edge(side), []).append((handle, side))

        for edge, owners in edges.items():
            if len(owners) != 2:
                raise InvariantViolation("Icosahedron edge shared by {} faces".format(len(owners)))
            (a, side_a), (b, side_b) = owners
            store.set_neighbor(a, side_a, b)
            store.set_neighbor(b, side_b, a)

        store.mark_initialized(roots)

    logger.info("Generated {} icosahedron roots with {} shared edges".format(len(roots), len(edges)))
    return roots
