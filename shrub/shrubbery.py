"""
Shrubbery class - grows a 3D branch skeleton with the Space Colonization Algorithm.

Attractors pull the closest branch within `leaf_attraction_dist` towards
them. Every pulled branch spawns exactly one child per step, in the
normalized sum of its pulls. Attractors that end up within `kill_distance`
of any branch are consumed.

Branches are stored in one append-only list; a branch refers to its parent
by index, so a parent's index is always lower than its children's.
"""

import math
from typing import List, Optional, Tuple

import numpy as np

from .attractor import Attractor
from .branch import Branch
from .config import AlgorithmSettings, AttractorGeneratorSettings, ConfigurationError
from .geometry import distances_to_segments, rotate_point
from .leaves import LeafClassifier
from .profiling import timings
from .shapes import Shape
from .spatial import BranchSpatialIndex
from .vector import Vector2D, Vector3D

MAX_TRUNK_ITERATIONS = 1000


class Shrubbery:
    def __init__(
        self,
        root_pos: Vector3D,
        initial_dir: Vector3D,
        settings: Optional[AlgorithmSettings] = None,
        generator_settings: Optional[AttractorGeneratorSettings] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None
    ):
        self.settings = settings or AlgorithmSettings()
        self.settings.validate()
        self.generator_settings = generator_settings or AttractorGeneratorSettings()
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        direction = initial_dir.normalize()
        if direction.magnitude == 0:
            raise ConfigurationError("initial_dir must not be the zero vector")

        self.branches: List[Branch] = [Branch(root_pos.copy(), direction)]
        self.attractors: List[Attractor] = []
        self.spatial_index = BranchSpatialIndex()
        self.iteration = 0
        self._trunk_built = False

        # the box always holds the origin, which the voxel grid is centered on
        self.min_bounds = Vector3D(0, 0, 0)
        self.max_bounds = Vector3D(0, 0, 0)
        self._update_bounds(self.branches[0].position)

    # ==================== BOUNDS ====================
    def _update_bounds(self, position: Vector3D):
        self.min_bounds = Vector3D(
            min(self.min_bounds.x, position.x),
            min(self.min_bounds.y, position.y),
            min(self.min_bounds.z, position.z),
        )
        self.max_bounds = Vector3D(
            max(self.max_bounds.x, position.x),
            max(self.max_bounds.y, position.y),
            max(self.max_bounds.z, position.z),
        )

    def _recompute_bounds(self):
        self.min_bounds = Vector3D(0, 0, 0)
        self.max_bounds = Vector3D(0, 0, 0)
        for branch in self.branches:
            self._update_bounds(branch.position)

    def _append(self, branch: Branch):
        self._update_bounds(branch.position)
        self.branches.append(branch)

    def get_bounds(self) -> Tuple[Tuple[int, int, int], Tuple[int, int, int]]:
        """Integer (ceil'ed) min and max corners of the bounding box."""
        lo, hi = self.min_bounds, self.max_bounds
        return (
            (math.ceil(lo.x), math.ceil(lo.y), math.ceil(lo.z)),
            (math.ceil(hi.x), math.ceil(hi.y), math.ceil(hi.z)),
        )

    def get_bounding_size(self) -> Tuple[int, int, int]:
        lo, hi = self.get_bounds()
        return (hi[0] - lo[0], hi[1] - lo[1], hi[2] - lo[2])

    def get_plane_half_size(self) -> int:
        """Half the edge of the square covering the box on the xz plane."""
        size = self.get_bounding_size()
        return math.ceil(max(size[0], size[2]) * 0.5)

    # ==================== ATTRACTORS ====================
    def spawn_attractors_from_shape(self, origin: Vector3D, shape: Shape) -> int:
        """Fill `shape`, centered on `origin`, with attractors. Returns how many were added."""
        self.generator_settings.validate()
        added = shape.generate(
            origin,
            self.attractors,
            self.settings,
            self.generator_settings,
            self.rng,
        )
        print(f"Spawned {added} attractors in {shape}")
        return added

    # ==================== GROWTH ====================
    def build_trunk(self) -> int:
        """
        Grow the trunk straight up from the root. Call once, before grow().

        The first trunk branch is as long as it needs to be for its tip to
        come within reach of an attractor. More branches of `branch_len` are
        then stacked until the trunk is `min_trunk_height` tall.
        Returns the number of branches appended.
        """
        if self._trunk_built or self.iteration > 0:
            raise RuntimeError("build_trunk() must be called once, before grow()")
        self._trunk_built = True

        branch_len = self.settings.branch_len
        root = self.branches[0]
        tip = root.position.copy()
        consumed_height = 0.0

        attractor_positions = np.array(
            [a.position.to_tuple() for a in self.attractors], dtype=np.float64
        ).reshape(-1, 3)

        attracted = False
        for _ in range(MAX_TRUNK_ITERATIONS):
            consumed_height += branch_len
            tip = tip + root.direction * branch_len
            if len(attractor_positions):
                dist = np.linalg.norm(attractor_positions - tip.to_array(), axis=1)
                if np.any(dist < self.settings.leaf_attraction_dist):
                    attracted = True
                    break

        if not attracted:
            print(f"Warning: trunk reached no attractor within {MAX_TRUNK_ITERATIONS} "
                  f"steps, stopping at height {consumed_height:.2f}")

        before = len(self.branches)

        root.child_count += 1
        self._append(root.next(0, consumed_height, new_generation=False))

        while consumed_height < self.settings.min_trunk_height:
            consumed_height += branch_len
            last_index = len(self.branches) - 1
            last = self.branches[last_index]
            last.child_count += 1
            self._append(last.next(last_index, branch_len, new_generation=False))

        return len(self.branches) - before

    def _pull_branches(self):
        """Let every live attractor pull its closest branch, or mark it reached."""
        kill_distance = self.settings.kill_distance
        attraction_dist = self.settings.leaf_attraction_dist

        with timings.section('grow.index'):
            self.spatial_index.rebuild(self.branches)
        branch_positions = self.spatial_index.positions

        attractor_positions = np.array(
            [a.position.to_tuple() for a in self.attractors], dtype=np.float64
        ).reshape(-1, 3)
        neighbours = self.spatial_index.query_radius(attractor_positions, attraction_dist)

        for attractor, position, candidates in zip(self.attractors, attractor_positions, neighbours):
            if not candidates:
                continue

            candidates = np.asarray(candidates, dtype=int)
            dist = np.linalg.norm(branch_positions[candidates] - position, axis=1)

            if np.any(dist < kill_distance):
                attractor.mark_reached()
                continue

            dist = np.where(dist <= attraction_dist, dist, np.inf)
            nearest = int(np.argmin(dist))
            if not np.isfinite(dist[nearest]):
                continue

            branch = self.branches[candidates[nearest]]
            pull = (attractor.position - branch.position).normalize()
            branch.direction = branch.direction + pull
            branch.count += 1

    def _spawn_branches(self) -> List[Branch]:
        """Spawn one child for every pulled branch, then reset it."""
        new_branches = []
        branch_len = self.settings.branch_len

        for index, branch in enumerate(self.branches):
            if branch.count == 0:
                continue

            direction = branch.direction.normalize()
            if direction.magnitude == 0:
                # pulls cancelled out; nothing to grow towards this step
                branch.reset()
                continue

            branch.direction = direction
            new_branches.append(branch.next(index, branch_len, new_generation=True))
            branch.child_count += 1
            branch.reset()

        return new_branches

    def grow(self) -> int:
        """
        Perform one space colonization step.
        Returns the number of branches spawned.
        """
        if self.attractors:
            with timings.section('grow.pull'):
                self._pull_branches()
            self.attractors = [a for a in self.attractors if not a.reached]

        # children are appended only after every pull was resolved, so
        # they take part from the next step on
        with timings.section('grow.spawn'):
            new_branches = self._spawn_branches()
            for branch in new_branches:
                self._append(branch)

        self.iteration += 1
        return len(new_branches)

    def grow_until(self, max_iterations: int = 100, stagnation_limit: Optional[int] = None) -> int:
        """
        Repeat grow() until no branch is spawned, every attractor is consumed,
        `max_iterations` is reached, or no attractor was consumed for
        `stagnation_limit` consecutive steps.
        Returns the number of steps performed.
        """
        print(f"Starting growth with {len(self.attractors)} attractors...")

        steps = 0
        stagnation_counter = 0
        while steps < max_iterations and self.attractors:
            attractor_count_before = len(self.attractors)
            spawned = self.grow()
            steps += 1

            if len(self.attractors) == attractor_count_before:
                stagnation_counter += 1
            else:
                stagnation_counter = 0

            if steps % 50 == 0:
                print(f"  Iteration {self.iteration}: {len(self.branches)} branches, "
                      f"{len(self.attractors)} attractors remaining")

            if spawned == 0:
                break
            if stagnation_limit is not None and stagnation_counter >= stagnation_limit:
                print(f"Growth stopped due to stagnation (no attractors reached for {stagnation_limit} iterations)")
                break

        print(f"Growth complete after {steps} iterations")
        print(f"  Final branches: {len(self.branches)}")
        print(f"  Remaining attractors: {len(self.attractors)}")

        return steps

    # ==================== POST PROCESSING ====================
    def _plane_weight(self, position: Vector3D, plane_half_size: int) -> float:
        return position.xz.distance_to(Vector2D(0, 0)) / plane_half_size

    def post_process_gravity(self, amount: float):
        """Lower every branch, more so the further it is from the y axis."""
        plane_half_size = self.get_plane_half_size()
        if plane_half_size <= 0:
            return

        for branch in self.branches:
            weight = self._plane_weight(branch.position, plane_half_size)
            branch.position = Vector3D(
                branch.position.x,
                branch.position.y - weight * amount,
                branch.position.z,
            )
        self._recompute_bounds()

    def post_process_spin(self, radians: float):
        """Twist branches around the y axis, in bands along the height."""
        plane_half_size = self.get_plane_half_size()
        if plane_half_size <= 0:
            return

        for branch in self.branches:
            weight = self._plane_weight(branch.position, plane_half_size)
            height_weight = math.cos(branch.position.y * 0.3) * 0.5 + 0.5

            xz = rotate_point(branch.position.xz, radians * weight * height_weight)
            branch.position = Vector3D(xz.x, branch.position.y, xz.y)
        self._recompute_bounds()

    # ==================== QUERIES ====================
    def segment_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(starts, ends, owner branch indices) for every branch that has a parent."""
        owners = [i for i, b in enumerate(self.branches) if not b.is_root]
        starts = np.array(
            [self.branches[self.branches[i].parent_index].position.to_tuple() for i in owners],
            dtype=np.float64
        ).reshape(-1, 3)
        ends = np.array(
            [self.branches[i].position.to_tuple() for i in owners], dtype=np.float64
        ).reshape(-1, 3)
        return starts, ends, np.array(owners, dtype=int)

    def distances_to_branch(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Batch form of distance_to_branch. Returns (distances, branch indices);
        index is -1 and distance inf where the skeleton has no segments.
        """
        starts, ends, owners = self.segment_arrays()
        distances, segment_indices = distances_to_segments(points, starts, ends)
        if len(owners) == 0:
            return distances, segment_indices
        return distances, owners[segment_indices]

    def distance_to_branch(self, point: Vector3D) -> Tuple[float, Optional[int]]:
        """
        Distance from `point` to the closest parent->branch segment and the
        index of the branch owning it. Returns (inf, None) without segments.
        """
        distances, indices = self.distances_to_branch(point.to_array())
        index = int(indices[0])
        return float(distances[0]), (index if index >= 0 else None)

    def leaf_branches(self, classifier: LeafClassifier) -> List[Branch]:
        return [b for b in self.branches if b.is_leaf(classifier)]

    @property
    def branch_tips(self) -> List[Branch]:
        return [b for b in self.branches if b.child_count == 0]

    def get_branch_segments(self) -> List[tuple]:
        """Return all branch segments as ((x1,y1,z1), (x2,y2,z2)) tuples for drawing."""
        return [
            (self.branches[b.parent_index].position.to_tuple(), b.position.to_tuple())
            for b in self.branches
            if not b.is_root
        ]
