
import pytest

from icosphere_lod import IcosphereLod, NodeStore, SphereStructure, generate_roots


@pytest.fixture
def structure():
    # Only the patch the viewpoint sits on wants to split; nothing collapses
    # unless the viewpoint is moved far away.
    return SphereStructure(subdivide_distance=0.05, unsubdivide_distance=1.5, max_level=4)


@pytest.fixture
def sphere(structure):
    lod = IcosphereLod(structure)
    lod.initialize()
    return lod


@pytest.fixture
def store():
    s = NodeStore()
    generate_roots(s)
    return s


@pytest.fixture
def root0(sphere):
    return sphere.store.roots[0]


@pytest.fixture
def split_root0(sphere, root0):
    """The sphere after one tick with the viewpoint on the first root's centroid."""
    sphere.tick(sphere.store.get(root0).centroid())
    return sphere


@pytest.fixture
def topology():
    """Handle-independent description of the graph: corners of each node and of its neighbours."""
    def describe(store):
        def key(handle):
            node = store.get(handle)
            return frozenset(tuple(c.tolist()) for c in node.corners)

        return {
            key(node.handle): (node.level, tuple(key(n) if n is not None else None for n in node.neighbors))
            for node in store.nodes()
        }
    return describe
