"""
Tick orchestration and simulation of a configured viewpoint path.

A tick runs: distance evaluation -> reconciliation -> structural edit -> flag
reset. A tick that fails part-way clears the flags it set and is not counted.
"""

import logging
import numpy as np
from tqdm import tqdm
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .distance import evaluate_distances
from .mutator import apply_decisions
from .node_store import Handle, NodeStore
from .reconcile import reconcile, reset_flags
from .roots import generate_roots
from .SphereStructure import SphereStructure
from .validate_graph import validate_graph

logger = logging.getLogger(__name__)


class TickReport(NamedTuple):
    tick: int
    evaluated: int
    subdivided: int
    unsubdivided: int
    forced: int
    skipped: int
    passes: int
    nodes: int
    leaves: int
    max_level: int

    def to_dict(self) -> Dict[str, int]:
        return self._asdict()


class IcosphereLod:
    """An adaptive icosphere: the node graph plus the per-tick subdivision passes."""

    def __init__(self, structure: Optional[SphereStructure] = None, store: Optional[NodeStore] = None):
        self.structure = structure if structure is not None else SphereStructure()
        self.store = store if store is not None else NodeStore()
        self.transform = self.structure.transform()
        self.ticks = 0

    def initialize(self) -> List[Handle]:
        return generate_roots(self.store, self.transform, show_debug=self.structure.show_debug)

    def tick(self, viewpoint: Sequence[float]) -> TickReport:
        if not self.store.initialized:
            self.initialize()

        touched: List[Handle] = []
        try:
            touched = evaluate_distances(self.store, viewpoint, self.structure)
            result = reconcile(self.store, touched)
            touched = result.touched
            mutation = apply_decisions(self.store, result)
        finally:
            reset_flags(self.store, touched)

        report = TickReport(
            tick=self.ticks,
            evaluated=len(result.touched),
            subdivided=len(result.subdivide) - sum(1 for h in mutation.skipped if h in result.subdivide),
            unsubdivided=len(result.unsubdivide) - sum(1 for h in mutation.skipped if h in result.unsubdivide),
            forced=len(result.forced),
            skipped=len(mutation.skipped),
            passes=result.passes,
            nodes=len(self.store),
            leaves=len(self.store.leaves()),
            max_level=self.store.max_level(),
        )
        self.ticks += 1
        logger.info("Tick {}: {} subdivided ({} forced), {} unsubdivided, {} leaves, max level {}".format(
            report.tick, report.subdivided, report.forced, report.unsubdivided, report.leaves, report.max_level))
        return report


def load_viewpoints(config: Dict[str, Any]) -> np.ndarray:
    """The configured viewpoint path, each point repeated ``ticks_per_viewpoint`` times."""
    viewpoints = config.get("viewpoints")
    if not viewpoints:
        raise ValueError("The config does not define any 'viewpoints'.")
    viewpoints = np.asarray(viewpoints, dtype=float)
    if viewpoints.ndim != 2 or viewpoints.shape[1] != 3:
        raise ValueError(f"Viewpoints must be a list of [x, y, z] points, got shape {viewpoints.shape}.")
    repeat = int(config.get("ticks_per_viewpoint", 1))
    if repeat < 1:
        raise ValueError(f"ticks_per_viewpoint must be at least 1, got {repeat}.")
    return np.repeat(viewpoints, repeat, axis=0)


def execute_lod_simulation(config: Dict[str, Any], validate: bool = False, progress: bool = False) -> Tuple[IcosphereLod, List[TickReport]]:
    """
    Run the configured viewpoint path through a fresh icosphere.

    Args:
        config (dict): Configuration with ``sphere``, ``lod`` and ``viewpoints`` sections.
        validate (bool): Validate the graph invariants after every tick.
        progress (bool): Show a progress bar.

    Returns:
        Tuple[IcosphereLod, List[TickReport]]: The final sphere and one report per tick.
    """
    structure = SphereStructure.from_dict(config)
    logger.info("Simulating {}".format(structure))
    viewpoints = load_viewpoints(config)

    sphere = IcosphereLod(structure)
    sphere.initialize()

    if progress:
        viewpoints = tqdm(viewpoints, desc="ticks")

    reports = []
    for viewpoint in viewpoints:
        reports.append(sphere.tick(viewpoint))
        if validate:
            validate_graph(sphere.store)
    return sphere, reports
