"""
Spatial partitioning for the attractor -> branch neighbourhood search.
Uses scipy's cKDTree so each attractor only inspects nearby branches.
"""

import numpy as np
from scipy.spatial import cKDTree
from typing import List
from .branch import Branch


class BranchSpatialIndex:
    """KD-Tree over every branch position; tree indices equal branch indices."""

    def __init__(self):
        self._tree: cKDTree = None
        self._positions: np.ndarray = np.empty((0, 3))

    def rebuild(self, branches: List[Branch]):
        if not branches:
            self._tree = None
            self._positions = np.empty((0, 3))
            return

        self._positions = np.array([b.position.to_tuple() for b in branches], dtype=np.float64)
        self._tree = cKDTree(self._positions)

    def query_radius(self, positions: np.ndarray, radius: float) -> List[List[int]]:
        """
        Branch indices within `radius` of each query position, in ascending
        index order.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        if self._tree is None or len(positions) == 0:
            return [[] for _ in range(len(positions))]
        # small slack so points sitting exactly on the radius are not lost to
        # rounding; callers filter with exact distances
        return list(self._tree.query_ball_point(positions, radius * (1.0 + 1e-9), return_sorted=True))

    @property
    def positions(self) -> np.ndarray:
        return self._positions
