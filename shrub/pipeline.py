"""
End-to-end shrub generation from a ShrubConfig.

attractors -> trunk -> growth steps -> post processing -> voxels -> leaf thinning
"""

from typing import List, Tuple

import numpy as np

from .config import ShrubConfig
from .profiling import timings
from .shapes import BoxShape
from .shrubbery import Shrubbery
from .vector import Vector3D
from .voxel import Voxel, voxelize, drop_leaves, count_voxels


def build_shrubbery(config: ShrubConfig, rng: np.random.Generator = None) -> Shrubbery:
    """Create the engine, spawn its attractors and build the trunk."""
    if rng is None:
        rng = np.random.default_rng(config.random_seed)

    shrubbery = Shrubbery(
        Vector3D.from_tuple(config.root_pos),
        Vector3D.from_tuple(config.initial_dir),
        config.algorithm_settings(),
        config.generator_settings(),
        rng=rng,
    )
    shrubbery.spawn_attractors_from_shape(
        Vector3D.from_tuple(config.shape_origin),
        BoxShape(*config.box_size),
    )
    shrubbery.build_trunk()
    return shrubbery


def grow_shrub(
    config: ShrubConfig,
    show_progress: bool = False,
    report_timings: bool = False
) -> Tuple[Shrubbery, List[Voxel]]:
    """
    Grow, deform and voxelize one shrub.

    Returns the skeleton and its voxels. The same `random_seed` gives the
    same result. With `report_timings`, the growth and voxelization phases
    are timed and printed as a table at the end.
    """
    if report_timings:
        timings.clear()
        timings.enabled = True
    try:
        shrubbery, voxels = _grow(config, show_progress)
    finally:
        if report_timings:
            timings.enabled = False
    if report_timings:
        timings.print_summary()
    return shrubbery, voxels


def _grow(config: ShrubConfig, show_progress: bool) -> Tuple[Shrubbery, List[Voxel]]:
    rng = np.random.default_rng(config.random_seed)
    voxelize_settings = config.voxelize_settings()

    shrubbery = build_shrubbery(config, rng=rng)
    shrubbery.grow_until(max_iterations=config.grow_iterations)

    if config.gravity:
        shrubbery.post_process_gravity(config.gravity)
    if config.spin:
        shrubbery.post_process_spin(config.spin)

    voxels = voxelize(shrubbery, voxelize_settings, show_progress=show_progress)
    dropped = drop_leaves(voxels, config.leaf_drop_fraction, rng=rng)

    counts = count_voxels(voxels)
    print(f"Voxelized shrub: {len(voxels)} voxels")
    for kind, count in counts.items():
        if count:
            print(f"  {kind.name.lower()}: {count}")
    if dropped:
        print(f"  dropped leaves: {dropped}")

    return shrubbery, voxels
