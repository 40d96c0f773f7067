import numpy as np
import pytest

from icosphere_lod import InvariantViolation, NodeStore, Side, StaleHandle, TopologyLocked
from icosphere_lod.mutator import child_corners
from icosphere_lod.utils import get_icosahedron_geometry


@pytest.fixture
def face_corners():
    vertices, faces = get_icosahedron_geometry()
    return [vertices[i] for i in faces[0]]


def test_allocate_requires_edit_window(face_corners):
    store = NodeStore()
    with pytest.raises(TopologyLocked):
        store.allocate(face_corners, 0)


def test_allocate_and_get(face_corners):
    store = NodeStore()
    with store.edit():
        handle = store.allocate(face_corners, 0)
    node = store.get(handle)
    assert node.level == 0
    assert node.is_leaf and node.is_root
    np.testing.assert_array_equal(node.top, face_corners[0])
    assert store.get_children(handle) == ()
    assert store.get_neighbor(handle, Side.LEFT) is None
    assert len(store) == 1


def test_corners_are_read_only(face_corners):
    store = NodeStore()
    with store.edit():
        handle = store.allocate(face_corners, 0)
    with pytest.raises(ValueError):
        store.get(handle).corners[0][0] = 2.0
    face_corners[0][0] = 5.0
    assert store.get(handle).corners[0][0] != 5.0


def test_free_invalidates_handle_immediately(face_corners):
    store = NodeStore()
    with store.edit():
        handle = store.allocate(face_corners, 0)
        store.free(handle)
        with pytest.raises(StaleHandle):
            store.get(handle)
    assert handle not in store
    with pytest.raises(KeyError):
        store.get(handle)


def test_slot_reuse_is_deferred_to_edit_boundary(face_corners):
    store = NodeStore()
    with store.edit():
        first = store.allocate(face_corners, 0)
        store.free(first)
        second = store.allocate(face_corners, 0)
    assert second.index != first.index

    with store.edit():
        third = store.allocate(face_corners, 0)
    assert third.index == first.index
    assert third.generation == first.generation + 1
    assert third in store
    with pytest.raises(StaleHandle):
        store.get(first)


def test_unknown_handles_are_stale(face_corners):
    store = NodeStore()
    with pytest.raises(StaleHandle):
        store.get((3, 0))
    with pytest.raises(StaleHandle):
        store.get(None)


def test_partial_child_set_is_rejected(face_corners):
    store = NodeStore()
    with pytest.raises(InvariantViolation):
        with store.edit():
            parent = store.allocate(face_corners, 0)
            store.allocate(child_corners(face_corners)[0], 1, parent=parent)


def test_child_level_must_follow_parent(face_corners):
    store = NodeStore()
    with store.edit():
        parent = store.allocate(face_corners, 0)
        with pytest.raises(InvariantViolation):
            store.allocate(child_corners(face_corners)[0], 2, parent=parent)


def test_children_inherit_transform_and_debug_tag(face_corners):
    store = NodeStore()
    sentinel = object()
    with store.edit():
        parent = store.allocate(face_corners, 0, root_world_offset=sentinel, show_debug=True)
        children = [store.allocate(c, 1, parent=parent) for c in child_corners(face_corners)]
    assert store.get_children(parent) == tuple(children)
    for child in children:
        assert store.get(child).root_world_offset is sentinel
        assert store.get(child).show_debug
        assert store.get(child).parent == parent


def test_free_nulls_neighbour_slots_pointing_at_it(face_corners):
    store = NodeStore()
    with store.edit():
        a = store.allocate(face_corners, 0)
        b = store.allocate(face_corners, 0)
        store.set_neighbor(a, Side.LEFT, b)
        store.set_neighbor(b, Side.RIGHT, a)
    assert store.referrers(b) == [(a, Side.LEFT)]

    with store.edit():
        store.free(b)
    assert store.get_neighbor(a, Side.LEFT) is None
    assert store.referrers(a) == []


def test_set_neighbor_rejects_stale_target(face_corners):
    store = NodeStore()
    with store.edit():
        a = store.allocate(face_corners, 0)
        b = store.allocate(face_corners, 0)
        store.free(b)
        with pytest.raises(StaleHandle):
            store.set_neighbor(a, Side.BOTTOM, b)


def test_cannot_free_node_with_children(face_corners):
    store = NodeStore()
    with store.edit():
        parent = store.allocate(face_corners, 0)
        for corners in child_corners(face_corners):
            store.allocate(corners, 1, parent=parent)
    with store.edit():
        with pytest.raises(InvariantViolation):
            store.free(parent)


def test_free_detaches_from_parent(face_corners):
    store = NodeStore()
    with store.edit():
        parent = store.allocate(face_corners, 0)
        children = [store.allocate(c, 1, parent=parent) for c in child_corners(face_corners)]
    with store.edit():
        for child in children:
            store.free(child)
    assert store.get(parent).is_leaf
    assert len(store) == 1


def test_edit_revision_counts_windows(face_corners):
    store = NodeStore()
    before = store.revision
    with store.edit():
        with store.edit():
            store.allocate(face_corners, 0)
    assert store.revision == before + 1


def test_adjacent_leaves_of_roots(store):
    for root in store.roots:
        adjacent = store.adjacent_leaves(root)
        assert len(adjacent) == 3
        assert set(adjacent) == set(store.get(root).neighbors)
