"""
Icosphere-LOD: view-dependent adaptive subdivision of an icosahedral sphere.

The sphere is a graph of triangular patches seeded from the icosahedron. Every
tick the patches near the viewpoint split into four, distant ones collapse back,
and neighbour forcing keeps adjacent leaves within one level of each other so
the surface never cracks.

Core Classes
------------
IcosphereLod
    The node graph plus the per-tick subdivision passes
NodeStore
    Arena of patch nodes addressed by generation-checked handles
SphereStructure
    Sphere placement and level-of-detail settings

Modules
-------
utils
    Spherical coordinate conversions, edge midpoints and icosahedron geometry
distance, reconcile, mutator
    The evaluation, reconciliation and structural edit passes of a tick
export
    Views of the graph for render and debug-draw consumers
validate_graph
    Invariant checks and debug summaries
"""

from .errors import GraphError, InvariantViolation, StaleHandle, TopologyLocked
from .node_store import Handle, Node, NodeStore, Side
from .SphereStructure import SphereStructure
from .transform import SphereTransform
from .utils import (
    cartesian_to_spherical, spherical_to_cartesian, midpoint,
    patch_midpoints, patch_centroid, get_icosahedron_geometry, load_yaml
)
from .roots import generate_roots
from .distance import evaluate_distances
from .reconcile import reconcile, reset_flags, ReconcileResult
from .mutator import apply_decisions, MutationReport
from .process import IcosphereLod, TickReport, execute_lod_simulation
from .validate_graph import validate_graph, graph_statistics

__all__ = [
    'GraphError', 'InvariantViolation', 'StaleHandle', 'TopologyLocked',
    'Handle', 'Node', 'NodeStore', 'Side',
    'SphereStructure', 'SphereTransform',
    'cartesian_to_spherical', 'spherical_to_cartesian', 'midpoint',
    'patch_midpoints', 'patch_centroid', 'get_icosahedron_geometry', 'load_yaml',
    'generate_roots', 'evaluate_distances',
    'reconcile', 'reset_flags', 'ReconcileResult',
    'apply_decisions', 'MutationReport',
    'IcosphereLod', 'TickReport', 'execute_lod_simulation',
    'validate_graph', 'graph_statistics',
]
