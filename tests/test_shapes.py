"""
Tests for attractor placement in a box.
"""

import numpy as np
import pytest

from shrub import (
    AlgorithmSettings,
    AttractorGeneratorSettings,
    BoxShape,
    ConfigurationError,
    Shrubbery,
    Vector3D,
)
from shrub.shapes import ideal_spacing


def _positions(attractors):
    return np.array([a.position.to_tuple() for a in attractors])


class TestBoxShape:

    def test_spacing(self, settings):
        """(5 - 1) / 2 with density 1 gives a spacing of 2."""
        assert ideal_spacing(settings, AttractorGeneratorSettings()) == pytest.approx(2.0)
        assert ideal_spacing(settings, AttractorGeneratorSettings(density=2.0)) == pytest.approx(1.0)

    def test_lattice_count(self, settings, rng):
        attractors = []
        added = BoxShape(10, 6, 4).generate(
            Vector3D(0, 0, 0), attractors, settings, AttractorGeneratorSettings(), rng
        )
        assert added == 5 * 3 * 2
        assert len(attractors) == added
        assert not any(a.reached for a in attractors)

    def test_density_increases_count(self, settings, rng):
        attractors = []
        BoxShape(10, 6, 4).generate(
            Vector3D(0, 0, 0), attractors, settings, AttractorGeneratorSettings(density=2.0), rng
        )
        assert len(attractors) == 10 * 6 * 4

    def test_attractors_stay_inside_box(self, settings, rng):
        origin = Vector3D(1, 10, -2)
        attractors = []
        BoxShape(10, 6, 4).generate(origin, attractors, settings, AttractorGeneratorSettings(), rng)

        positions = _positions(attractors)
        center = origin.to_array()
        half = np.array([5, 3, 2])
        assert np.all(positions >= center - half - 1e-9)
        assert np.all(positions <= center + half + 1e-9)

    def test_lattice_is_centered(self, settings, rng):
        attractors = []
        BoxShape(10, 6, 4).generate(Vector3D(0, 0, 0), attractors, settings, AttractorGeneratorSettings(), rng)
        mean = _positions(attractors).mean(axis=0)
        assert np.all(np.abs(mean) < 1.0)

    def test_same_seed_same_field(self, settings):
        first, second = [], []
        BoxShape(8, 8, 8).generate(Vector3D(), first, settings, AttractorGeneratorSettings(),
                                   np.random.default_rng(7))
        BoxShape(8, 8, 8).generate(Vector3D(), second, settings, AttractorGeneratorSettings(),
                                   np.random.default_rng(7))
        np.testing.assert_array_equal(_positions(first), _positions(second))

    def test_non_positive_spacing_rejected(self, rng):
        """kill_distance >= leaf_attraction_dist must not silently give an empty field."""
        bad = AlgorithmSettings(kill_distance=5.0, branch_len=1.0, leaf_attraction_dist=5.0)
        with pytest.raises(ConfigurationError):
            BoxShape(10, 10, 10).generate(Vector3D(), [], bad, AttractorGeneratorSettings(), rng)

    def test_box_smaller_than_spacing_rejected(self, settings, rng):
        with pytest.raises(ConfigurationError):
            BoxShape(1, 10, 10).generate(Vector3D(), [], settings, AttractorGeneratorSettings(), rng)

    def test_non_positive_dimensions_rejected(self):
        with pytest.raises(ConfigurationError):
            BoxShape(0, 1, 1)


class TestSpawnAttractors:

    def test_spawn_uses_engine_rng(self, settings):
        a = Shrubbery(Vector3D(), Vector3D(0, 1, 0), settings, seed=3)
        b = Shrubbery(Vector3D(), Vector3D(0, 1, 0), settings, seed=3)
        a.spawn_attractors_from_shape(Vector3D(0, 10, 0), BoxShape(6, 6, 6))
        b.spawn_attractors_from_shape(Vector3D(0, 10, 0), BoxShape(6, 6, 6))
        np.testing.assert_array_equal(_positions(a.attractors), _positions(b.attractors))

    def test_invalid_density_rejected(self, settings):
        shrubbery = Shrubbery(Vector3D(), Vector3D(0, 1, 0), settings,
                              AttractorGeneratorSettings(density=0.0))
        with pytest.raises(ConfigurationError):
            shrubbery.spawn_attractors_from_shape(Vector3D(0, 10, 0), BoxShape(6, 6, 6))
        assert shrubbery.attractors == []
