import math
import numpy as np
from numpy.linalg import norm
from typing import Tuple

GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0

# GENERAL UTILS
def order(order, thing):
    return f"order_{order}_{thing}"

def load_yaml(filename: str):
    import yaml
    # Load the config from the specified path
    with open(filename, "r") as f:
        config = yaml.safe_load(f)
    return config

def gzip_file(filename: str) -> str:
    """ Compress a file using gzip and return the compressed file name.

    Args:
        filename (str): The name of the file to compress.

    Returns:
        str: The name of the compressed file.
    """
    import gzip
    import shutil

    compressed_filename = filename + '.gz'
    with open(filename, 'rb') as f_in:
        with gzip.open(compressed_filename, 'wb') as f_out:
            shutil.copyfileobj(f_in, f_out)
    return compressed_filename

# CONVERSION UTILS
def cartesian_to_spherical(vertices: np.ndarray) -> np.ndarray:
    """
    Convert unit-sphere Cartesian coordinates to spherical coordinates.

    Args:
        vertices (np.ndarray): A (3,) vector or an (N, 3) array of unit vectors.

    Returns:
        np.ndarray: (azimuth, polar) in radians, shaped (2,) or (N, 2). The azimuth
        is measured in the x-y plane from +X, the polar angle from +Z.
    """
    vertices = np.asarray(vertices, dtype=float)
    x = vertices[..., 0]
    y = vertices[..., 1]
    z = vertices[..., 2]
    # atan2 on both angles keeps full precision near the poles
    azimuth = np.arctan2(y, x)
    polar = np.arctan2(np.hypot(x, y), z)
    return np.stack((azimuth, polar), axis=-1)

def spherical_to_cartesian(angles: np.ndarray) -> np.ndarray:
    """
    Convert (azimuth, polar) angles back to unit-sphere Cartesian coordinates.

    Args:
        angles (np.ndarray): A (2,) pair or an (N, 2) array of angles in radians.

    Returns:
        np.ndarray: Unit vectors shaped (3,) or (N, 3).
    """
    angles = np.asarray(angles, dtype=float)
    azimuth = angles[..., 0]
    polar = angles[..., 1]

    sin_polar = np.sin(polar)
    x = sin_polar * np.cos(azimuth)
    y = sin_polar * np.sin(azimuth)
    z = np.cos(polar)

    return np.stack((x, y, z), axis=-1)

def to_sphere(vertices, radius=1, center=(0, 0, 0)) -> np.ndarray:
    """Convert vertices to spherical coordinates."""
    length = norm(vertices, axis=-1, keepdims=True)
    return vertices / length * radius + np.asarray(center, dtype=float)

# PATCH UTILS
def midpoint(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Normalized average of two unit vectors (the spherical edge midpoint)."""
    # a + b is exact under operand swap, so both sides of a shared edge
    # compute bit-identical midpoints
    v = np.add(a, b, dtype=float)
    return v / norm(v)

def patch_midpoints(corners) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Edge midpoints of a (top, bottom-left, bottom-right) patch as (left, right, bottom)."""
    top, bottom_left, bottom_right = corners
    return (
        midpoint(top, bottom_left),
        midpoint(top, bottom_right),
        midpoint(bottom_left, bottom_right),
    )

def patch_centroid(corners) -> np.ndarray:
    """Centroid of a patch projected back onto the unit sphere."""
    centroid = np.mean(np.asarray(corners, dtype=float), axis=-2)
    return centroid / norm(centroid, axis=-1, keepdims=True)

def get_icosahedron_geometry() -> Tuple[np.ndarray, np.ndarray]:
    """Get the initial icosahedron vertices (on the unit sphere) and faces."""
    r = GOLDEN_RATIO
    vertices = np.array([
        [-1.0,   r, 0.0], [ 1.0,   r, 0.0], [-1.0,  -r, 0.0], [ 1.0,  -r, 0.0],
        [0.0, -1.0,   r], [0.0,  1.0,   r], [0.0, -1.0,  -r], [0.0,  1.0,  -r],
        [  r, 0.0, -1.0], [  r, 0.0,  1.0], [ -r, 0.0, -1.0], [ -r, 0.0,  1.0],
    ], dtype=float)

    faces = np.array([
        [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
        [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
        [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
        [5, 4, 9], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1],
    ])

    return to_sphere(vertices), faces
