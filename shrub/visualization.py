"""
Static debug figures for shrub skeletons and voxels.
"""

import numpy as np
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d.art3d import Line3DCollection
from typing import List, Optional, Tuple
from pathlib import Path

from .leaves import LeafClassifier
from .shrubbery import Shrubbery
from .voxel import Voxel, VoxelKind


VOXEL_COLORS = {
    VoxelKind.BRANCH: (0.4, 0.2, 0.0),
    VoxelKind.GREENERY: (0.0, 0.8, 0.0),
}


def _save(fig, save_path: Optional[str], what: str):
    if save_path:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=150, bbox_inches='tight',
                    facecolor='white', edgecolor='none')
        print(f"Saved {what} to {save_path}")


def _swap_up_axis(points: np.ndarray) -> np.ndarray:
    # the shrub grows along y; matplotlib draws z as up
    return points[..., [0, 2, 1]]


def visualize_shrubbery(
    shrubbery: Shrubbery,
    show_attractors: bool = True,
    leaf_classifier: Optional[LeafClassifier] = None,
    branch_color: str = 'saddlebrown',
    leaf_color: str = 'green',
    branch_width: float = 2.0,
    attractor_color: str = 'gold',
    attractor_size: float = 4.0,
    figsize: Tuple[int, int] = (10, 10),
    save_path: Optional[str] = None,
    show: bool = False
):
    """Draw the skeleton as 3D line segments, optionally with the live attractors."""
    fig = plt.figure(figsize=figsize)
    ax = fig.add_subplot(projection='3d')

    segments = []
    colors = []
    for branch in shrubbery.branches:
        if branch.is_root:
            continue
        parent = shrubbery.branches[branch.parent_index]
        segments.append([parent.position.to_tuple(), branch.position.to_tuple()])
        is_leaf = leaf_classifier is not None and branch.is_leaf(leaf_classifier)
        colors.append(leaf_color if is_leaf else branch_color)

    if segments:
        lc = Line3DCollection(_swap_up_axis(np.array(segments)), colors=colors, linewidths=branch_width)
        ax.add_collection3d(lc)

    if show_attractors and shrubbery.attractors:
        positions = _swap_up_axis(np.array([a.position.to_tuple() for a in shrubbery.attractors]))
        ax.scatter(positions[:, 0], positions[:, 1], positions[:, 2],
                   c=attractor_color, s=attractor_size, alpha=0.6)

    lo, hi = shrubbery.get_bounds()
    half = max(shrubbery.get_plane_half_size(), 1)
    ax.set_xlim(-half, half)
    ax.set_ylim(-half, half)
    ax.set_zlim(min(lo[1], 0), max(hi[1], 1))
    ax.set_title(f"{len(shrubbery.branches)} branches, {len(shrubbery.attractors)} attractors")

    _save(fig, save_path, "skeleton")
    if show:
        plt.show()
    return fig, ax


def visualize_voxels(
    voxels: List[Voxel],
    marker_size: float = 20.0,
    figsize: Tuple[int, int] = (10, 10),
    save_path: Optional[str] = None,
    show: bool = False
):
    """Scatter one marker per voxel, colored by kind."""
    fig = plt.figure(figsize=figsize)
    ax = fig.add_subplot(projection='3d')

    for kind, color in VOXEL_COLORS.items():
        positions = np.array([v.position for v in voxels if v.kind is kind], dtype=float)
        if len(positions) == 0:
            continue
        positions = _swap_up_axis(positions)
        ax.scatter(positions[:, 0], positions[:, 1], positions[:, 2],
                   c=[color], s=marker_size, marker='s', label=kind.name.lower())

    if voxels:
        ax.legend()
    ax.set_title(f"{len(voxels)} voxels")

    _save(fig, save_path, "voxels")
    if show:
        plt.show()
    return fig, ax


def plot_growth_statistics(shrubbery: Shrubbery, save_path: Optional[str] = None, show: bool = False):
    """Plot branch count per generation and per tree depth."""
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    generations = [b.generation for b in shrubbery.branches]
    max_generation = max(generations) if generations else 0
    generation_counts = [generations.count(g) for g in range(max_generation + 1)]
    axes[0].bar(range(max_generation + 1), generation_counts, color='saddlebrown', edgecolor='black')
    axes[0].set_xlabel('Generation')
    axes[0].set_ylabel('Branch Count')
    axes[0].set_title('Branches per Generation')

    # parents always precede their children, so one forward pass is enough
    depths = []
    for branch in shrubbery.branches:
        depths.append(0 if branch.is_root else depths[branch.parent_index] + 1)

    max_depth = max(depths) if depths else 0
    depth_counts = [depths.count(d) for d in range(max_depth + 1)]
    axes[1].bar(range(max_depth + 1), depth_counts, color='forestgreen', edgecolor='black')
    axes[1].set_xlabel('Tree Depth')
    axes[1].set_ylabel('Branch Count')
    axes[1].set_title('Branches per Depth Level')

    plt.tight_layout()

    _save(fig, save_path, "statistics")
    if show:
        plt.show()
    return fig, axes
