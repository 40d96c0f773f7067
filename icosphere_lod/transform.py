import numpy as np
from typing import Sequence

from .utils import to_sphere


def quaternion_to_matrix(quaternion: Sequence[float]) -> np.ndarray:
    """Rotation matrix of a (w, x, y, z) quaternion. The quaternion is normalized first."""
    q = np.asarray(quaternion, dtype=float)
    w, x, y, z = q / np.linalg.norm(q)
    return np.array([
        [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - w * z),       2.0 * (x * z + w * y)],
        [2.0 * (x * y + w * z),       1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - w * x)],
        [2.0 * (x * z - w * y),       2.0 * (y * z + w * x),       1.0 - 2.0 * (x * x + y * y)],
    ])


class SphereTransform:
    """Placement of a whole sphere in world space, shared by all of its nodes."""

    def __init__(self,
                 center: Sequence[float] = (0.0, 0.0, 0.0),
                 orientation: Sequence[float] = (1.0, 0.0, 0.0, 0.0),
                 radius: float = 1.0):
        self.center = np.asarray(center, dtype=float)
        self.orientation = np.asarray(orientation, dtype=float)
        self.radius = float(radius)
        self._rotation = quaternion_to_matrix(self.orientation)

    def to_world(self, directions: np.ndarray) -> np.ndarray:
        """Map unit-sphere directions, (3,) or (N, 3), to world-space surface points."""
        directions = np.asarray(directions, dtype=float)
        rotated = directions @ self._rotation.T
        return to_sphere(rotated, radius=self.radius, center=self.center)

    def __str__(self) -> str:
        return ("SphereTransform(center={}, orientation={}, radius={})"
                .format(self.center.tolist(), self.orientation.tolist(), self.radius))
