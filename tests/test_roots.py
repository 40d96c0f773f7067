import numpy as np

from icosphere_lod import NodeStore, Side, SphereTransform, generate_roots, validate_graph
from icosphere_lod.export import graph_to_dict
from icosphere_lod.utils import get_icosahedron_geometry


def test_roots_tile_the_icosahedron(store):
    assert store.initialized
    assert len(store.roots) == 20
    assert len(store) == 20
    vertices, faces = get_icosahedron_geometry()
    for handle, face in zip(store.roots, faces):
        node = store.get(handle)
        assert node.level == 0
        assert node.is_leaf and node.is_root
        np.testing.assert_array_equal(np.asarray(node.corners), vertices[face])


def test_roots_are_linked_across_shared_edges(store):
    for handle in store.roots:
        node = store.get(handle)
        assert None not in node.neighbors
        assert len(set(node.neighbors)) == 3
        for side in Side:
            other = store.get(node.neighbors[side])
            back = other.side_sharing(node.edge(side))
            assert back is not None
            assert other.neighbors[back] == handle


def test_roots_pass_validation(store):
    assert validate_graph(store)


def test_generate_roots_is_idempotent(caplog):
    store = NodeStore()
    first = generate_roots(store)
    snapshot = graph_to_dict(store)

    with caplog.at_level("WARNING"):
        second = generate_roots(store)

    assert second == first
    assert graph_to_dict(store) == snapshot
    assert "already generated" in caplog.text


def test_roots_share_one_transform():
    store = NodeStore()
    transform = SphereTransform(center=(1.0, 2.0, 3.0), radius=4.0)
    generate_roots(store, transform, show_debug=True)
    for handle in store.roots:
        assert store.get(handle).root_world_offset is transform
        assert store.get(handle).show_debug
