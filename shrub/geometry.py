"""
Geometry helpers: point-to-segment distance and planar rotation.
"""

import math
from typing import Optional, Tuple

import numpy as np

from .vector import Vector2D, Vector3D

# point-segment pairs evaluated per batch in distances_to_segments
MAX_BATCH_PAIRS = 1 << 18


def rotate_point(point: Vector2D, radians: float) -> Vector2D:
    """Rotate a 2D point around the origin."""
    cos_theta, sin_theta = math.cos(radians), math.sin(radians)
    return Vector2D(
        cos_theta * point.x - sin_theta * point.y,
        sin_theta * point.x + cos_theta * point.y,
    )


def distance_to_segment(point: Vector3D, start: Vector3D, end: Vector3D) -> float:
    """Shortest distance from point to the segment [start, end]."""
    ab = end - start
    length_squared = ab.magnitude_squared
    if length_squared < 1e-12:
        return point.distance_to(start)

    t = (point - start).dot(ab) / length_squared
    t = max(0.0, min(1.0, t))
    closest = start + ab * t
    return point.distance_to(closest)


def batch_size(segment_count: int) -> int:
    """Points per batch so that one batch holds at most MAX_BATCH_PAIRS pairs."""
    return max(1, MAX_BATCH_PAIRS // max(1, segment_count))


def distances_to_segments(
    points: np.ndarray,
    starts: np.ndarray,
    ends: np.ndarray,
    chunk_size: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    For each point, find the closest of the segments [starts[i], ends[i]].

    Args:
        points: (N, 3) query positions
        starts: (M, 3) segment start positions
        ends: (M, 3) segment end positions
        chunk_size: number of points processed per batch; by default as
            many as keep a batch under MAX_BATCH_PAIRS point-segment pairs

    Returns:
        (distances, segment_indices), both of length N. Ties resolve to the
        lowest segment index. With no segments every distance is inf and
        every index is -1.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    n = len(points)

    if len(starts) == 0:
        return np.full(n, np.inf), np.full(n, -1, dtype=int)

    starts = np.asarray(starts, dtype=np.float64)
    ab = np.asarray(ends, dtype=np.float64) - starts
    length_squared = np.einsum('ij,ij->i', ab, ab)
    degenerate = length_squared < 1e-12
    safe_length_squared = np.where(degenerate, 1.0, length_squared)

    if chunk_size is None:
        chunk_size = batch_size(len(starts))

    distances = np.empty(n)
    indices = np.empty(n, dtype=int)

    for lo in range(0, n, chunk_size):
        chunk = points[lo:lo + chunk_size]
        ac = chunk[:, None, :] - starts[None, :, :]
        t = np.einsum('pmk,mk->pm', ac, ab) / safe_length_squared
        t = np.clip(t, 0.0, 1.0)
        t[:, degenerate] = 0.0
        offset = ac - t[:, :, None] * ab[None, :, :]
        dist = np.sqrt(np.einsum('pmk,pmk->pm', offset, offset))

        # argmin returns the first minimum, i.e. the lowest segment index
        best = np.argmin(dist, axis=1)
        indices[lo:lo + chunk_size] = best
        distances[lo:lo + chunk_size] = dist[np.arange(len(chunk)), best]

    return distances, indices
