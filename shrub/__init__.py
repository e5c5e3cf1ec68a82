"""
Shrub generation with a 3D Space Colonization Algorithm, and voxelization
of the resulting skeleton.

Based on: "Modeling Trees with a Space Colonization Algorithm"
by Runions, Lane, and Prusinkiewicz (2007).
"""

from .vector import Vector2D, Vector3D
from .attractor import Attractor
from .branch import Branch
from .leaves import LeafClassifier
from .config import (
    AlgorithmSettings,
    AttractorGeneratorSettings,
    ConfigurationError,
    ShrubConfig,
    load_config,
    save_config
)
from .shapes import Shape, BoxShape
from .shrubbery import Shrubbery
from .voxel import (
    VoxelKind,
    Voxel,
    UniformBranchSize,
    GenerationBranchSize,
    BranchRootSizeIncreaser,
    BranchIsLeaf,
    SphereLeaves,
    VoxelizeSettings,
    voxelize,
    drop_leaves
)
from .pipeline import build_shrubbery, grow_shrub

__all__ = [
    'Vector2D',
    'Vector3D',
    'Attractor',
    'Branch',
    'LeafClassifier',
    'AlgorithmSettings',
    'AttractorGeneratorSettings',
    'ConfigurationError',
    'ShrubConfig',
    'load_config',
    'save_config',
    'Shape',
    'BoxShape',
    'Shrubbery',
    'VoxelKind',
    'Voxel',
    'UniformBranchSize',
    'GenerationBranchSize',
    'BranchRootSizeIncreaser',
    'BranchIsLeaf',
    'SphereLeaves',
    'VoxelizeSettings',
    'voxelize',
    'drop_leaves',
    'build_shrubbery',
    'grow_shrub'
]
