"""
Voxelization of a grown shrub.

Every integer cell around the skeleton is classified as branch wood,
greenery, or air. Air is never emitted; absence from the output means air.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple, Union

import numpy as np
from scipy.spatial import cKDTree
from tqdm import tqdm

from .config import ConfigurationError
from .geometry import distances_to_segments
from .leaves import LeafClassifier
from .profiling import timings
from .shrubbery import Shrubbery


class VoxelKind(Enum):
    AIR = 0
    BRANCH = 1
    GREENERY = 2


class Voxel(NamedTuple):
    position: Tuple[int, int, int]
    kind: VoxelKind


# ==================== BRANCH SIZE ====================
@dataclass(frozen=True)
class UniformBranchSize:
    distance: float


@dataclass(frozen=True)
class GenerationBranchSize:
    # distances[i] is the thickness of generation i; later generations use the last entry
    distances: Tuple[float, ...]


BranchSizeSetting = Union[UniformBranchSize, GenerationBranchSize]


@dataclass(frozen=True)
class BranchRootSizeIncreaser:
    """Thickens the trunk near the ground, fading out linearly at `height`."""
    height: float
    additional_size: float

    def __post_init__(self):
        if not self.height > 0:
            raise ConfigurationError(f"Root increaser height must be positive, got {self.height}")

    def bonus(self, y):
        return self.additional_size * (1.0 - np.minimum(np.asarray(y, dtype=np.float64) / self.height, 1.0))


# ==================== LEAVES ====================
@dataclass(frozen=True)
class BranchIsLeaf:
    """Branch cells of leaf-bearing branches become greenery."""
    classifier: LeafClassifier


@dataclass(frozen=True)
class SphereLeaves:
    """A sphere of greenery around the tip of every leaf-bearing branch."""
    radius: float
    classifier: LeafClassifier = LeafClassifier.LAST_BRANCH

    def __post_init__(self):
        if not self.radius > 0:
            raise ConfigurationError(f"Leaf sphere radius must be positive, got {self.radius}")


LeafSetting = Optional[Union[BranchIsLeaf, SphereLeaves]]


@dataclass
class VoxelizeSettings:
    branch_size_setting: BranchSizeSetting = UniformBranchSize(1.0)
    branch_root_size_increaser: Optional[BranchRootSizeIncreaser] = None
    leaf_setting: LeafSetting = None


def branch_thresholds(setting: BranchSizeSetting, generations: np.ndarray) -> np.ndarray:
    """Branch thickness for each generation in `generations`."""
    generations = np.asarray(generations, dtype=int)

    if isinstance(setting, UniformBranchSize):
        return np.full(generations.shape, float(setting.distance))

    if isinstance(setting, GenerationBranchSize):
        if not setting.distances:
            # no size for any generation: never a branch cell
            return np.full(generations.shape, -np.inf)
        distances = np.asarray(setting.distances, dtype=np.float64)
        return distances[np.minimum(generations, len(distances) - 1)]

    raise TypeError(f"Unknown branch size setting: {setting!r}")


def _grid_ranges(shrubbery: Shrubbery, settings: VoxelizeSettings) -> Tuple[range, range, range]:
    """
    The sampled grid is centred on the world y axis, not on the skeleton:
    x and z cover [-half, half) and y covers [0, height), where half and
    height come from the bounding box.
    """
    half = shrubbery.get_plane_half_size()
    height = shrubbery.get_bounding_size()[1]

    padding = 0
    if isinstance(settings.leaf_setting, SphereLeaves):
        padding = math.ceil(settings.leaf_setting.radius)

    horizontal = range(-half - padding, half + padding)
    vertical = range(0, height + padding)

    outside = sum(
        1 for b in shrubbery.branches
        if not (horizontal.start <= b.position.x <= horizontal.stop - 1
                and horizontal.start <= b.position.z <= horizontal.stop - 1)
    )
    if outside:
        print(f"Warning: {outside} of {len(shrubbery.branches)} branches lie outside the voxel grid "
              f"x, z in [{horizontal.start}, {horizontal.stop}); grow the shrub around the origin")
    return horizontal, vertical, horizontal


def voxelize(
    shrubbery: Shrubbery,
    settings: VoxelizeSettings,
    show_progress: bool = False
) -> List[Voxel]:
    """
    Sample the integer grid around the skeleton.

    Cells are visited x-major, then y, then z, and each is emitted at most
    once. A cell inside a foliage sphere is greenery; otherwise it is a
    branch cell when its distance to the closest segment is below that
    branch's thickness (plus the root bonus near the ground).
    """
    xs, ys, zs = _grid_ranges(shrubbery, settings)
    leaf_setting = settings.leaf_setting
    increaser = settings.branch_root_size_increaser

    starts, ends, owners = shrubbery.segment_arrays()
    generations = np.array([b.generation for b in shrubbery.branches], dtype=int)

    leaf_flags = None
    if isinstance(leaf_setting, BranchIsLeaf):
        leaf_flags = np.array([b.is_leaf(leaf_setting.classifier) for b in shrubbery.branches])

    foliage_tree = None
    if isinstance(leaf_setting, SphereLeaves):
        leaf_positions = [b.position.to_tuple() for b in shrubbery.leaf_branches(leaf_setting.classifier)]
        if leaf_positions:
            foliage_tree = cKDTree(np.array(leaf_positions, dtype=np.float64))

    grid_y, grid_z = np.meshgrid(np.array(ys), np.array(zs), indexing='ij')
    grid_y = grid_y.ravel()
    grid_z = grid_z.ravel()

    voxels: List[Voxel] = []
    for x in tqdm(xs, desc="Voxelizing", disable=not show_progress):
        points = np.column_stack([np.full(len(grid_y), x), grid_y, grid_z]).astype(np.float64)
        kinds = np.full(len(points), VoxelKind.AIR.value, dtype=int)

        if foliage_tree is not None:
            with timings.section('voxelize.foliage'):
                nearest_leaf, _ = foliage_tree.query(points)
            kinds[nearest_leaf <= leaf_setting.radius] = VoxelKind.GREENERY.value

        rest = np.flatnonzero(kinds == VoxelKind.AIR.value)
        if len(rest) and len(owners):
            with timings.section('voxelize.segments'):
                dist, segment_indices = distances_to_segments(points[rest], starts, ends)
            closest = owners[segment_indices]

            threshold = branch_thresholds(settings.branch_size_setting, generations[closest])
            if increaser is not None:
                threshold = threshold + increaser.bonus(points[rest, 1])

            hit = dist < threshold
            hit_kinds = np.full(len(rest), VoxelKind.BRANCH.value, dtype=int)
            if leaf_flags is not None:
                hit_kinds[leaf_flags[closest]] = VoxelKind.GREENERY.value
            kinds[rest[hit]] = hit_kinds[hit]

        for i in np.flatnonzero(kinds != VoxelKind.AIR.value):
            voxels.append(Voxel((int(x), int(grid_y[i]), int(grid_z[i])), VoxelKind(int(kinds[i]))))

    return voxels


def count_voxels(voxels: List[Voxel]) -> dict:
    counts = {kind: 0 for kind in VoxelKind}
    for voxel in voxels:
        counts[voxel.kind] += 1
    return counts


def drop_leaves(
    voxels: List[Voxel],
    fraction: float,
    rng: Optional[np.random.Generator] = None
) -> int:
    """
    Remove a random `fraction` of the greenery voxels in place.
    Returns the number of voxels removed.
    """
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"fraction must be within [0, 1], got {fraction}")
    if rng is None:
        rng = np.random.default_rng()

    leaf_indices = [i for i, voxel in enumerate(voxels) if voxel.kind is VoxelKind.GREENERY]
    amount = int(len(leaf_indices) * fraction)
    if amount == 0:
        return 0

    chosen = rng.choice(len(leaf_indices), size=amount, replace=False)
    # delete from the back so the remaining indices stay valid
    for index in sorted((leaf_indices[c] for c in chosen), reverse=True):
        del voxels[index]

    return amount
