"""
Configuration for shrub growth, attractor generation and voxelization.

AlgorithmSettings and AttractorGeneratorSettings are the value objects the
growth engine reads. ShrubConfig is a flat, JSON-friendly view over every knob
of the pipeline and builds those objects on demand.
"""

from dataclasses import dataclass, field, asdict, fields
from typing import List, Tuple, Optional, Literal
from pathlib import Path
import json


class ConfigurationError(ValueError):
    """Raised when settings would produce a degenerate attractor field or skeleton."""


@dataclass
class AlgorithmSettings:
    kill_distance: float = 0.3          # Attractors closer than this to a branch are consumed
    branch_len: float = 0.3             # Length of every new branch segment
    leaf_attraction_dist: float = 5.0   # Attractors further than this have no pull
    min_trunk_height: float = 1.0

    def validate(self):
        for name in ('kill_distance', 'branch_len', 'leaf_attraction_dist', 'min_trunk_height'):
            value = getattr(self, name)
            if not value > 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if self.kill_distance >= self.leaf_attraction_dist:
            raise ConfigurationError(
                f"kill_distance ({self.kill_distance}) must be smaller than "
                f"leaf_attraction_dist ({self.leaf_attraction_dist})"
            )


@dataclass
class AttractorGeneratorSettings:
    # 1.0 fills the whole shape; higher values spawn more attractors and
    # potentially more branching, at a performance cost
    density: float = 1.0
    min_leaves: Optional[int] = 30
    max_leaves: Optional[int] = 500

    def validate(self):
        if not self.density > 0:
            raise ConfigurationError(f"density must be positive, got {self.density}")
        if self.min_leaves is not None and self.min_leaves < 0:
            raise ConfigurationError(f"min_leaves must not be negative, got {self.min_leaves}")
        if (self.min_leaves is not None and self.max_leaves is not None
                and self.min_leaves > self.max_leaves):
            raise ConfigurationError(
                f"min_leaves ({self.min_leaves}) is larger than max_leaves ({self.max_leaves})"
            )


LeafMode = Literal['none', 'branch', 'sphere']


@dataclass
class ShrubConfig:
    """
    Flat configuration for growing and voxelizing one shrub.
    """

    # ==================== SKELETON ====================
    root_pos: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    initial_dir: Tuple[float, float, float] = (0.0, 1.0, 0.0)

    kill_distance: float = 2.0
    branch_len: float = 2.0
    leaf_attraction_dist: float = 6.0
    min_trunk_height: float = 3.0

    # ==================== ATTRACTORS ====================
    shape_origin: Tuple[float, float, float] = (0.0, 13.0, 0.0)
    box_size: Tuple[float, float, float] = (15.0, 10.0, 15.0)
    density: float = 1.0
    min_leaves: Optional[int] = 30
    max_leaves: Optional[int] = 500

    # ==================== GROWTH ====================
    grow_iterations: int = 20
    gravity: float = 0.0
    spin: float = 0.0

    # ==================== VOXELS ====================
    # One entry = uniform thickness, several = thickness per generation
    branch_sizes: List[float] = field(default_factory=lambda: [1.5, 1.0, 1.0, 1.0])
    root_increaser_height: Optional[float] = 2.0
    root_increaser_size: float = 2.0

    leaf_mode: LeafMode = 'none'
    leaf_classifier: str = 'last_branch'
    leaf_radius: float = 2.7
    leaf_drop_fraction: float = 0.1

    # ==================== MISC ====================
    random_seed: Optional[int] = None

    def algorithm_settings(self) -> AlgorithmSettings:
        return AlgorithmSettings(
            kill_distance=self.kill_distance,
            branch_len=self.branch_len,
            leaf_attraction_dist=self.leaf_attraction_dist,
            min_trunk_height=self.min_trunk_height,
        )

    def generator_settings(self) -> AttractorGeneratorSettings:
        return AttractorGeneratorSettings(
            density=self.density,
            min_leaves=self.min_leaves,
            max_leaves=self.max_leaves,
        )

    def voxelize_settings(self):
        from .leaves import LeafClassifier
        from .voxel import (
            VoxelizeSettings, UniformBranchSize, GenerationBranchSize,
            BranchRootSizeIncreaser, BranchIsLeaf, SphereLeaves
        )

        if not self.branch_sizes:
            raise ConfigurationError("branch_sizes must hold at least one distance")
        if len(self.branch_sizes) == 1:
            size_setting = UniformBranchSize(self.branch_sizes[0])
        else:
            size_setting = GenerationBranchSize(tuple(self.branch_sizes))

        increaser = None
        if self.root_increaser_height is not None:
            increaser = BranchRootSizeIncreaser(
                height=self.root_increaser_height,
                additional_size=self.root_increaser_size,
            )

        try:
            classifier = LeafClassifier(self.leaf_classifier)
        except ValueError:
            raise ConfigurationError(f"Unknown leaf_classifier: {self.leaf_classifier!r}") from None

        if self.leaf_mode == 'none':
            leaf_setting = None
        elif self.leaf_mode == 'branch':
            leaf_setting = BranchIsLeaf(classifier)
        elif self.leaf_mode == 'sphere':
            leaf_setting = SphereLeaves(self.leaf_radius, classifier)
        else:
            raise ConfigurationError(f"Unknown leaf_mode: {self.leaf_mode!r}")

        return VoxelizeSettings(
            branch_size_setting=size_setting,
            branch_root_size_increaser=increaser,
            leaf_setting=leaf_setting,
        )


def load_config(path: str = 'config/shrub.json') -> ShrubConfig:
    """Load config from JSON file, with defaults for missing fields."""
    config_path = Path(path)
    if not config_path.exists():
        return ShrubConfig()

    with open(config_path, 'r') as f:
        data = json.load(f)

    known = {f.name for f in fields(ShrubConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown config fields in {config_path}: {', '.join(unknown)}")

    for key in ('root_pos', 'initial_dir', 'shape_origin', 'box_size'):
        if key in data:
            data[key] = tuple(data[key])

    return ShrubConfig(**data)


def save_config(config: ShrubConfig, path: str = 'config/shrub.json'):
    """Save config to JSON file."""
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(asdict(config), f, indent=2)

    print(f"Saved config to {config_path}")
