from typing import Dict, Any, Sequence

from .transform import SphereTransform

DEFAULT_RADIUS = 1.0
DEFAULT_CENTER = (0.0, 0.0, 0.0)
DEFAULT_ORIENTATION = (1.0, 0.0, 0.0, 0.0)
DEFAULT_SUBDIVIDE_DISTANCE = 0.5
DEFAULT_UNSUBDIVIDE_DISTANCE = 0.8
DEFAULT_THRESHOLD_FALLOFF = 1.0
DEFAULT_MAX_LEVEL = 6

class SphereStructure:
    """Type definition for the sphere placement and level-of-detail settings."""

    def __init__(self,
                 radius: float = DEFAULT_RADIUS,
                 center: Sequence[float] = DEFAULT_CENTER,
                 orientation: Sequence[float] = DEFAULT_ORIENTATION,
                 subdivide_distance: float = DEFAULT_SUBDIVIDE_DISTANCE,
                 unsubdivide_distance: float = DEFAULT_UNSUBDIVIDE_DISTANCE,
                 threshold_falloff: float = DEFAULT_THRESHOLD_FALLOFF,
                 max_level: int = DEFAULT_MAX_LEVEL,
                 show_debug: bool = False):
        self.radius = float(radius)
        self.center = tuple(float(c) for c in center)
        self.orientation = tuple(float(q) for q in orientation)
        self.subdivide_distance = float(subdivide_distance)
        self.unsubdivide_distance = float(unsubdivide_distance)
        self.threshold_falloff = float(threshold_falloff)
        self.max_level = int(max_level)
        self.show_debug = bool(show_debug)
        self.validate()

    def validate(self):
        if self.radius <= 0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}.")
        if len(self.center) != 3:
            raise ValueError(f"Sphere center must have three components, got {self.center}.")
        if len(self.orientation) != 4 or not any(self.orientation):
            raise ValueError(f"Orientation must be a non-zero (w, x, y, z) quaternion, got {self.orientation}.")
        if self.subdivide_distance <= 0:
            raise ValueError(f"subdivide_distance must be positive, got {self.subdivide_distance}.")
        if self.subdivide_distance >= self.unsubdivide_distance:
            raise ValueError(
                f"subdivide_distance ({self.subdivide_distance}) must be smaller than "
                f"unsubdivide_distance ({self.unsubdivide_distance}) to keep a hysteresis band.")
        if self.threshold_falloff <= 0:
            raise ValueError(f"threshold_falloff must be positive, got {self.threshold_falloff}.")
        if self.max_level < 0:
            raise ValueError(f"max_level must not be negative, got {self.max_level}.")

    def thresholds(self, level):
        """(subdivide, unsubdivide) distances at a subdivision level; ``level`` may be an array."""
        scale = self.threshold_falloff ** level
        return self.subdivide_distance * scale, self.unsubdivide_distance * scale

    def transform(self) -> SphereTransform:
        return SphereTransform(center=self.center, orientation=self.orientation, radius=self.radius)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the nested dictionary layout of the YAML config."""
        return {
            "sphere": {
                "radius": self.radius,
                "center": list(self.center),
                "orientation": list(self.orientation),
            },
            "lod": {
                "subdivide_distance": self.subdivide_distance,
                "unsubdivide_distance": self.unsubdivide_distance,
                "threshold_falloff": self.threshold_falloff,
                "max_level": self.max_level,
                "show_debug": self.show_debug,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SphereStructure':
        """Create from the ``sphere`` and ``lod`` sections of a config dictionary."""
        sphere = data.get("sphere") or {}
        lod = data.get("lod") or {}
        return cls(
            radius=sphere.get("radius", DEFAULT_RADIUS),
            center=sphere.get("center", DEFAULT_CENTER),
            orientation=sphere.get("orientation", DEFAULT_ORIENTATION),
            subdivide_distance=lod.get("subdivide_distance", DEFAULT_SUBDIVIDE_DISTANCE),
            unsubdivide_distance=lod.get("unsubdivide_distance", DEFAULT_UNSUBDIVIDE_DISTANCE),
            threshold_falloff=lod.get("threshold_falloff", DEFAULT_THRESHOLD_FALLOFF),
            max_level=lod.get("max_level", DEFAULT_MAX_LEVEL),
            show_debug=lod.get("show_debug", False),
        )

    def copy(self) -> 'SphereStructure':
        """Create a copy of this SphereStructure."""
        return SphereStructure.from_dict(self.to_dict())

    def __str__(self) -> str:
        """String representation of SphereStructure."""
        return (f"SphereStructure(radius={self.radius}, "
                f"center={self.center}, "
                f"orientation={self.orientation}, "
                f"subdivide_distance={self.subdivide_distance}, "
                f"unsubdivide_distance={self.unsubdivide_distance}, "
                f"threshold_falloff={self.threshold_falloff}, "
                f"max_level={self.max_level}, "
                f"show_debug={self.show_debug})")
