from icosphere_lod import Side, reconcile, reset_flags
from icosphere_lod.reconcile import committed_level, needs_forced_subdivide


def test_conflicting_desires_are_cleared(store):
    handle = store.roots[0]
    node = store.get(handle)
    node.distance_wants_subdivide = True
    node.distance_wants_unsubdivide = True

    result = reconcile(store, [handle])

    assert not node.distance_wants_subdivide
    assert not node.distance_wants_unsubdivide
    assert not node.committed_subdivide
    assert result.subdivide == []


def test_leaf_desire_commits(store):
    handle = store.roots[0]
    store.get(handle).distance_wants_subdivide = True

    result = reconcile(store, [handle])

    assert result.subdivide == [handle]
    assert result.forced == []
    assert store.get(handle).committed_subdivide
    assert committed_level(store.get(handle)) == 1
    # A one-level step next to level-0 roots does not force anybody
    for other in store.get(handle).neighbors:
        assert not store.get(other).committed_subdivide


def test_commit_is_write_once(store):
    handle = store.roots[0]
    node = store.get(handle)
    node.committed_subdivide = True
    node.distance_wants_subdivide = True
    result = reconcile(store, [handle])
    assert result.subdivide == [handle]
    assert node.committed_subdivide


def test_neighbor_forcing_follows_the_split_edges(split_root0, root0):
    store = split_root0.store
    root = store.get(root0)
    top = root.children[0]
    store.get(top).distance_wants_subdivide = True

    result = reconcile(store, [top])

    left, right, bottom = (root.neighbors[side] for side in Side)
    assert sorted(result.forced) == sorted([left, right])
    assert store.get(left).neighbor_forces_subdivide
    assert store.get(right).neighbor_forces_subdivide
    assert not store.get(bottom).committed_subdivide
    assert result.subdivide[-1] == top
    assert {left, right} <= set(result.touched)
    assert result.passes >= 1


def test_forced_check_uses_committed_levels(split_root0, root0):
    store = split_root0.store
    root = store.get(root0)
    left = root.neighbors[Side.LEFT]
    assert not needs_forced_subdivide(store, store.get(left))
    store.get(root.children[0]).committed_subdivide = True
    assert needs_forced_subdivide(store, store.get(left))
    # Internal nodes are never forced themselves
    assert not needs_forced_subdivide(store, root)


def test_unsubdivide_commits_when_crack_free(split_root0, root0):
    store = split_root0.store
    store.get(root0).distance_wants_unsubdivide = True

    result = reconcile(store, [root0])

    assert result.unsubdivide == [root0]
    assert store.get(root0).committed_unsubdivide


def test_unsubdivide_blocked_by_subdividing_child(split_root0, root0):
    store = split_root0.store
    root = store.get(root0)
    root.distance_wants_unsubdivide = True
    store.get(root.children[3]).distance_wants_subdivide = True

    result = reconcile(store, [root0, root.children[3]])

    assert result.unsubdivide == []
    assert result.subdivide == [root.children[3]]


def test_collapse_next_to_one_level_split_is_allowed(split_root0, root0):
    store = split_root0.store
    root = store.get(root0)
    left = root.neighbors[Side.LEFT]
    store.get(left).distance_wants_subdivide = True
    root.distance_wants_unsubdivide = True

    result = reconcile(store, [root0, left])

    # The left root ends the tick at level 1, one finer than the collapsed root0
    assert result.unsubdivide == [root0]
    assert result.subdivide == [left]


def test_unsubdivide_blocked_when_neighbour_would_be_two_finer(split_root0, root0):
    store = split_root0.store
    root = store.get(root0)
    left = root.neighbors[Side.LEFT]
    split_root0.tick(store.get(left).centroid())
    assert not store.get(left).is_leaf
    assert all(store.get(child).is_leaf for child in root.children)

    facing = [c for c in store.get(left).children if set(store.adjacent_leaves(c)) & set(root.children)]
    assert facing
    store.get(facing[0]).committed_subdivide = True
    root.distance_wants_unsubdivide = True

    result = reconcile(store, [root0])

    assert result.unsubdivide == []
    assert not root.committed_unsubdivide

def test_reset_flags_clears_everything(split_root0, root0):
    store = split_root0.store
    root = store.get(root0)
    root.distance_wants_unsubdivide = True
    root.committed_unsubdivide = True
    child = store.get(root.children[1])
    child.neighbor_forces_subdivide = True

    count = reset_flags(store, [root0, root.children[1]])

    assert count == 2
    assert not any(root.flags().values())
    assert not any(child.flags().values())


def test_reset_flags_skips_stale_handles(split_root0, root0):
    store = split_root0.store
    children = store.get_children(root0)
    split_root0.tick(-10.0 * store.get(root0).centroid())
    assert store.get(root0).is_leaf
    assert reset_flags(store, list(children) + [root0]) == 1
