"""
Shared fixtures for shrub tests.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from shrub import AlgorithmSettings, Shrubbery, Vector3D


@pytest.fixture
def settings():
    return AlgorithmSettings(
        kill_distance=1.0,
        branch_len=1.0,
        leaf_attraction_dist=5.0,
        min_trunk_height=3.0,
    )


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def forked_shrubbery(settings):
    """
    Hand built skeleton:

        0 root   (0, 0, 0)
        1 trunk  (0, 4, 0)  parent 0, generation 0
        2 side   (3, 4, 0)  parent 1, generation 1
        3 top    (0, 6, 0)  parent 1, generation 1
    """
    shrubbery = Shrubbery(Vector3D(0, 0, 0), Vector3D(0, 1, 0), settings)
    root = shrubbery.branches[0]

    root.child_count += 1
    shrubbery._append(root.next(0, 4.0, new_generation=False))

    trunk = shrubbery.branches[1]
    trunk.child_count += 2
    trunk.direction = Vector3D(1, 0, 0)
    shrubbery._append(trunk.next(1, 3.0, new_generation=True))
    trunk.direction = Vector3D(0, 1, 0)
    shrubbery._append(trunk.next(1, 2.0, new_generation=True))
    trunk.reset()

    return shrubbery
