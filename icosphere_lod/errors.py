"""
Error taxonomy of the subdivision graph.

StaleHandle is a caller error and is raised immediately. InvariantViolation is
raised by the store and the validator; inside a tick the passes catch it, log it
and skip the offending node so one inconsistent patch cannot stall the sphere.
"""


class GraphError(Exception):
    """Base class for node graph errors."""


class StaleHandle(GraphError, KeyError):
    """A handle refers to a node that was freed or never allocated."""

    def __init__(self, handle):
        super().__init__(handle)
        self.handle = handle

    def __str__(self) -> str:
        return "Stale node handle {}".format(self.handle)


class InvariantViolation(GraphError, ValueError):
    """The graph (or a requested edit) breaks a structural invariant."""


class TopologyLocked(GraphError, RuntimeError):
    """Structural mutation was attempted outside the store's edit window."""
