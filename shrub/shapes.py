"""
Attractor placement shapes.

A shape fills its volume with attractors on a jittered lattice. The lattice
spacing is derived from the growth settings so that neighbouring attractors
sit about half way between the kill and attraction radii.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

import numpy as np

from .attractor import Attractor
from .config import AlgorithmSettings, AttractorGeneratorSettings, ConfigurationError
from .vector import Vector3D


def ideal_spacing(
    algorithm_settings: AlgorithmSettings,
    generator_settings: AttractorGeneratorSettings
) -> float:
    spacing = 0.5 * (algorithm_settings.leaf_attraction_dist - algorithm_settings.kill_distance)
    return spacing / generator_settings.density


class Shape(ABC):
    """A volume to spawn attractors inside."""

    @abstractmethod
    def generate(
        self,
        origin: Vector3D,
        attractors: List[Attractor],
        algorithm_settings: AlgorithmSettings,
        generator_settings: AttractorGeneratorSettings,
        rng: np.random.Generator
    ) -> int:
        """Append attractors to `attractors`, returning how many were added."""


class BoxShape(Shape):
    """Axis aligned box centered on the origin; x, y, z are the total edge lengths."""

    def __init__(self, x: float, y: float, z: float):
        if min(x, y, z) <= 0:
            raise ConfigurationError(f"Box dimensions must be positive, got ({x}, {y}, {z})")
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def lattice_counts(self, spacing: float) -> Tuple[int, int, int]:
        return int(self.x / spacing), int(self.y / spacing), int(self.z / spacing)

    def generate(
        self,
        origin: Vector3D,
        attractors: List[Attractor],
        algorithm_settings: AlgorithmSettings,
        generator_settings: AttractorGeneratorSettings,
        rng: np.random.Generator
    ) -> int:
        spacing = ideal_spacing(algorithm_settings, generator_settings)
        if spacing <= 0:
            raise ConfigurationError(
                f"Attractor spacing is {spacing:.3f}; kill_distance must be smaller "
                f"than leaf_attraction_dist and density must be positive"
            )

        nx, ny, nz = self.lattice_counts(spacing)
        if nx <= 0 or ny <= 0 or nz <= 0:
            raise ConfigurationError(
                f"Box ({self.x}, {self.y}, {self.z}) is smaller than the attractor "
                f"spacing {spacing:.3f}; no attractors would be spawned"
            )

        # x-major cell order, matching nested x/y/z loops
        cells = np.indices((nx, ny, nz)).reshape(3, -1).T.astype(np.float64)
        scatter = spacing * 0.5
        jitter = rng.uniform(-scatter, scatter, size=cells.shape)

        base = (
            origin.to_array()
            + np.full(3, spacing * 0.5)
            - np.array([self.x, self.y, self.z]) * 0.5
        )
        positions = base + cells * spacing + jitter

        attractors.extend(Attractor(Vector3D.from_array(p)) for p in positions)
        return len(positions)

    def __repr__(self) -> str:
        return f"BoxShape({self.x}, {self.y}, {self.z})"
