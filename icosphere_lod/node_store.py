"""
Node graph store of the adaptive icosphere.

Nodes live in an arena and are addressed by ``Handle(index, generation)``. A
freed slot keeps its index but bumps its generation, so an old handle is
detected as stale instead of aliasing whichever node later reuses the slot.

Structural changes (allocate, free, set_neighbor) are only accepted inside the
``NodeStore.edit()`` window. Every other pass reads the graph and writes only the
transient flags of the node it is looking at.
"""

import logging
import threading
from contextlib import contextmanager
from enum import IntEnum
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

import numpy as np

from .errors import InvariantViolation, StaleHandle, TopologyLocked
from .transform import SphereTransform
from .utils import patch_centroid

logger = logging.getLogger(__name__)

FLAG_NAMES = (
    "distance_wants_subdivide",
    "distance_wants_unsubdivide",
    "neighbor_forces_subdivide",
    "committed_subdivide",
    "committed_unsubdivide",
)


class Side(IntEnum):
    LEFT = 0    # top -> bottom-left
    RIGHT = 1   # top -> bottom-right
    BOTTOM = 2  # bottom-left -> bottom-right


SIDE_CORNERS = {
    Side.LEFT: (0, 1),
    Side.RIGHT: (0, 2),
    Side.BOTTOM: (1, 2),
}


class Handle(NamedTuple):
    index: int
    generation: int


def _freeze(corner) -> np.ndarray:
    array = np.array(corner, dtype=float)
    array.setflags(write=False)
    return array


class Node:
    """A triangular patch of the sphere. Corners are read-only for the node's lifetime."""

    def __init__(self,
                 handle: Handle,
                 corners: Sequence[np.ndarray],
                 level: int,
                 parent: Optional[Handle] = None,
                 root_world_offset: Optional[SphereTransform] = None,
                 show_debug: bool = False):
        if len(corners) != 3:
            raise InvariantViolation("A patch needs exactly three corners, got {}".format(len(corners)))
        self.handle = handle
        self.level = level
        self.corners = tuple(_freeze(c) for c in corners)
        self.parent = parent
        self.children: List[Handle] = []
        self.neighbors: List[Optional[Handle]] = [None, None, None]
        self.root_world_offset = root_world_offset
        self.show_debug = show_debug
        self.clear_flags()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def top(self) -> np.ndarray:
        return self.corners[0]

    @property
    def bottom_left(self) -> np.ndarray:
        return self.corners[1]

    @property
    def bottom_right(self) -> np.ndarray:
        return self.corners[2]

    def clear_flags(self):
        for name in FLAG_NAMES:
            setattr(self, name, False)

    def flags(self) -> Dict[str, bool]:
        return {name: getattr(self, name) for name in FLAG_NAMES}

    def edge(self, side: Side) -> frozenset:
        """Key of the edge on ``side``; two patches share an edge iff their keys are equal."""
        i, j = SIDE_CORNERS[Side(side)]
        return frozenset((tuple(self.corners[i].tolist()), tuple(self.corners[j].tolist())))

    def side_sharing(self, edge: frozenset) -> Optional[Side]:
        for side in Side:
            if self.edge(side) == edge:
                return side
        return None

    def side_of(self, other: Handle) -> Optional[Side]:
        for side in Side:
            if self.neighbors[side] == other:
                return side
        return None

    def centroid(self) -> np.ndarray:
        """Unit-sphere direction of the patch centroid."""
        return patch_centroid(self.corners)

    def __repr__(self) -> str:
        return ("Node(handle={}, level={}, parent={}, children={}, neighbors={})"
                .format(tuple(self.handle), self.level,
                        tuple(self.parent) if self.parent else None,
                        len(self.children), [tuple(n) if n else None for n in self.neighbors]))


class NodeStore:
    """Arena of nodes plus the parent/child and neighbour relations between them."""

    def __init__(self):
        self._nodes: List[Optional[Node]] = []
        self._generations: List[int] = []
        self._free_slots: List[int] = []
        self._pending_free: List[int] = []
        self._referrers: Dict[Handle, Set[Tuple[Handle, Side]]] = {}
        self._touched_parents: Set[Handle] = set()
        self._edit_lock = threading.RLock()
        self._edit_depth = 0
        self._editor: Optional[int] = None
        self.roots: List[Handle] = []
        self.initialized = False
        self.revision = 0

    # EDIT WINDOW
    @contextmanager
    def edit(self):
        """Open the structural edit window.

        Slots freed inside the window are recycled only once the outermost window
        closes, and every parent touched by the edit must then have 0 or 4 children.
        """
        with self._edit_lock:
            self._edit_depth += 1
            self._editor = threading.get_ident()
            completed = False
            try:
                yield self
                completed = True
            finally:
                self._edit_depth -= 1
                if self._edit_depth == 0:
                    self._editor = None
                    self._end_edit(check=completed)

    @property
    def editing(self) -> bool:
        return self._edit_depth > 0 and self._editor == threading.get_ident()

    def _require_edit(self, operation: str):
        if not self.editing:
            raise TopologyLocked("{} is only allowed inside NodeStore.edit()".format(operation))

    def _end_edit(self, check: bool):
        self._free_slots.extend(self._pending_free)
        self._pending_free = []
        touched, self._touched_parents = self._touched_parents, set()
        self.revision += 1
        if not check:
            return
        partial = [h for h in touched if self.contains(h) and len(self._nodes[h.index].children) not in (0, 4)]
        if partial:
            raise InvariantViolation("Edit left nodes with a partial child set: {}".format(
                [tuple(h) for h in partial]))

    # STRUCTURAL MUTATION
    def allocate(self,
                 corners: Sequence[np.ndarray],
                 level: int,
                 parent: Optional[Handle] = None,
                 root_world_offset: Optional[SphereTransform] = None,
                 show_debug: Optional[bool] = None) -> Handle:
        self._require_edit("allocate")
        parent_node = None
        if parent is not None:
            parent_node = self.get(parent)
            if level != parent_node.level + 1:
                raise InvariantViolation("Child level {} does not follow parent level {}".format(
                    level, parent_node.level))
            if len(parent_node.children) >= 4:
                raise InvariantViolation("Node {} already has four children".format(tuple(parent)))
            if root_world_offset is None:
                root_world_offset = parent_node.root_world_offset
            if show_debug is None:
                show_debug = parent_node.show_debug

        if self._free_slots:
            index = self._free_slots.pop()
        else:
            index = len(self._nodes)
            self._nodes.append(None)
            self._generations.append(0)

        handle = Handle(index, self._generations[index])
        self._nodes[index] = Node(handle, corners, level, parent,
                                  root_world_offset=root_world_offset,
                                  show_debug=bool(show_debug))
        if parent_node is not None:
            parent_node.children.append(handle)
            self._touched_parents.add(parent)
        return handle

    def free(self, handle: Handle):
        self._require_edit("free")
        node = self.get(handle)
        if node.children:
            raise InvariantViolation("Cannot free node {} while it has children".format(tuple(handle)))

        if node.parent is not None and self.contains(node.parent):
            self._nodes[node.parent.index].children.remove(handle)
            self._touched_parents.add(node.parent)
        if handle in self.roots:
            self.roots.remove(handle)

        # Null every live slot still pointing at this node
        for referrer, side in self._referrers.pop(handle, set()):
            if self.contains(referrer) and self._nodes[referrer.index].neighbors[side] == handle:
                self._nodes[referrer.index].neighbors[side] = None
        for side, other in enumerate(node.neighbors):
            if other is not None and other in self._referrers:
                self._referrers[other].discard((handle, Side(side)))

        self._nodes[handle.index] = None
        self._generations[handle.index] += 1
        self._pending_free.append(handle.index)

    def set_neighbor(self, handle: Handle, side: Side, other: Optional[Handle]):
        self._require_edit("set_neighbor")
        node = self.get(handle)
        side = Side(side)
        if other is not None:
            self.get(other)
        previous = node.neighbors[side]
        if previous is not None and previous in self._referrers:
            self._referrers[previous].discard((handle, side))
        node.neighbors[side] = other
        if other is not None:
            self._referrers.setdefault(other, set()).add((handle, side))

    def mark_initialized(self, roots: Sequence[Handle]):
        self._require_edit("mark_initialized")
        self.roots = list(roots)
        self.initialized = True

    # QUERIES
    def get(self, handle: Handle) -> Node:
        try:
            index, generation = handle
        except (TypeError, ValueError):
            raise StaleHandle(handle) from None
        if not 0 <= index < len(self._nodes):
            raise StaleHandle(handle)
        node = self._nodes[index]
        if node is None or self._generations[index] != generation:
            raise StaleHandle(handle)
        return node

    def contains(self, handle: Optional[Handle]) -> bool:
        if handle is None:
            return False
        try:
            self.get(handle)
        except StaleHandle:
            return False
        return True

    __contains__ = contains

    def get_children(self, handle: Handle) -> Tuple[Handle, ...]:
        return tuple(self.get(handle).children)

    def get_neighbor(self, handle: Handle, side: Side) -> Optional[Handle]:
        return self.get(handle).neighbors[Side(side)]

    def referrers(self, handle: Handle) -> List[Tuple[Handle, Side]]:
        """Live (node, side) slots pointing at ``handle``."""
        self.get(handle)
        return sorted(
            (ref, side) for ref, side in self._referrers.get(handle, ())
            if self.contains(ref) and self._nodes[ref.index].neighbors[side] == handle
        )

    def nodes(self) -> Iterator[Node]:
        for node in self._nodes:
            if node is not None:
                yield node

    def handles(self) -> List[Handle]:
        return [node.handle for node in self.nodes()]

    def leaves(self) -> List[Handle]:
        return [node.handle for node in self.nodes() if node.is_leaf]

    def max_level(self) -> int:
        return max((node.level for node in self.nodes()), default=0)

    def __len__(self) -> int:
        return sum(1 for _ in self.nodes())

    def adjacent_leaves(self, handle: Handle) -> List[Handle]:
        """Leaves sharing (part of) an edge with ``handle``."""
        node = self.get(handle)
        found: List[Handle] = []
        for other in node.neighbors:
            if other is None:
                continue
            for leaf in self._leaves_facing(other, handle):
                if leaf not in found:
                    found.append(leaf)
        return found

    def _leaves_facing(self, handle: Handle, target: Handle) -> List[Handle]:
        node = self.get(handle)
        if node.is_leaf:
            return [handle]
        leaves = []
        for child in node.children:
            if target in self._nodes[child.index].neighbors:
                leaves.extend(self._leaves_facing(child, target))
        return leaves
