"""
Tests for trunk building, space colonization growth and skeleton queries.
"""

import math

import numpy as np
import pytest

from shrub import (
    AlgorithmSettings,
    Attractor,
    Branch,
    BoxShape,
    ConfigurationError,
    LeafClassifier,
    Shrubbery,
    Vector3D,
)
from shrub.shrubbery import MAX_TRUNK_ITERATIONS


def _shrubbery(settings, *attractor_positions):
    shrubbery = Shrubbery(Vector3D(0, 0, 0), Vector3D(0, 1, 0), settings)
    shrubbery.attractors = [Attractor(Vector3D(*p)) for p in attractor_positions]
    return shrubbery


def _grown_shrubbery(seed=42, steps=8):
    settings = AlgorithmSettings(kill_distance=1.0, branch_len=1.0,
                                 leaf_attraction_dist=4.0, min_trunk_height=2.0)
    shrubbery = Shrubbery(Vector3D(0, 0, 0), Vector3D(0, 1, 0), settings, seed=seed)
    shrubbery.spawn_attractors_from_shape(Vector3D(0, 8, 0), BoxShape(8, 6, 8))
    shrubbery.build_trunk()
    for _ in range(steps):
        shrubbery.grow()
    return shrubbery


def _assert_bounds_contain_branches(shrubbery):
    lo, hi = shrubbery.min_bounds, shrubbery.max_bounds
    for branch in shrubbery.branches:
        p = branch.position
        assert lo.x <= p.x <= hi.x
        assert lo.y <= p.y <= hi.y
        assert lo.z <= p.z <= hi.z


class TestConstruction:

    def test_root_branch(self, settings):
        shrubbery = Shrubbery(Vector3D(1, 0, 2), Vector3D(0, 2, 0), settings)
        assert len(shrubbery.branches) == 1
        root = shrubbery.branches[0]
        assert root.parent_index is None
        assert root.generation == 0
        assert root.direction == Vector3D(0, 1, 0)
        _assert_bounds_contain_branches(shrubbery)

    def test_invalid_settings_fail_fast(self):
        bad = AlgorithmSettings(kill_distance=6.0, branch_len=1.0, leaf_attraction_dist=5.0)
        with pytest.raises(ConfigurationError):
            Shrubbery(Vector3D(), Vector3D(0, 1, 0), bad)

    def test_zero_direction_rejected(self, settings):
        with pytest.raises(ConfigurationError):
            Shrubbery(Vector3D(), Vector3D(0, 0, 0), settings)


class TestBuildTrunk:

    def test_single_branch_until_attracted(self, settings):
        """An attractor 10 up is in reach once the tip is at 6, above min_trunk_height."""
        shrubbery = _shrubbery(settings, (0, 10, 0))
        appended = shrubbery.build_trunk()

        assert appended == 1
        trunk = shrubbery.branches[1]
        assert trunk.position == Vector3D(0, 6, 0)
        assert trunk.parent_index == 0
        assert trunk.generation == 0
        assert shrubbery.branches[0].child_count == 1

    def test_stacks_branches_up_to_min_height(self, settings):
        """Attracted at height 1, then two more branches reach min_trunk_height 3."""
        shrubbery = _shrubbery(settings, (0, 5.5, 0))
        appended = shrubbery.build_trunk()

        assert appended == 3
        heights = [b.position.y for b in shrubbery.branches[1:]]
        assert heights == pytest.approx([1.0, 2.0, 3.0])
        assert [b.parent_index for b in shrubbery.branches[1:]] == [0, 1, 2]
        assert all(b.generation == 0 for b in shrubbery.branches)
        assert [b.child_count for b in shrubbery.branches] == [1, 1, 1, 0]
        _assert_bounds_contain_branches(shrubbery)

    def test_iteration_cap_is_reported(self, settings, capsys):
        shrubbery = _shrubbery(settings)
        shrubbery.build_trunk()

        assert "Warning" in capsys.readouterr().out
        assert shrubbery.branches[1].position.y == pytest.approx(MAX_TRUNK_ITERATIONS * settings.branch_len)

    def test_only_once(self, settings):
        shrubbery = _shrubbery(settings, (0, 5.5, 0))
        shrubbery.build_trunk()
        with pytest.raises(RuntimeError):
            shrubbery.build_trunk()


class TestGrow:

    def test_too_close_attractor_is_consumed_without_growth(self, settings):
        shrubbery = _shrubbery(settings, (0.5, 0, 0))
        spawned = shrubbery.grow()

        assert spawned == 0
        assert shrubbery.attractors == []
        assert len(shrubbery.branches) == 1

    def test_pull_spawns_child(self, settings):
        shrubbery = _shrubbery(settings, (0, 3, 0))
        spawned = shrubbery.grow()

        assert spawned == 1
        root, child = shrubbery.branches
        assert child.position == Vector3D(0, 1, 0)
        assert child.parent_index == 0
        assert child.generation == 1
        assert root.child_count == 1
        assert root.count == 0
        assert root.direction == root.original_direction
        assert len(shrubbery.attractors) == 1

    def test_pulls_are_summed_then_normalized(self, settings):
        shrubbery = _shrubbery(settings, (3, 0, 0), (0, 0, 3))
        shrubbery.grow()

        child = shrubbery.branches[1]
        expected = 1.0 / math.sqrt(3.0)
        assert child.position == Vector3D(expected, expected, expected)
        assert child.original_direction.magnitude == pytest.approx(1.0)

    def test_attractor_out_of_reach_does_nothing(self, settings):
        shrubbery = _shrubbery(settings, (0, 7, 0))
        assert shrubbery.grow() == 0
        assert len(shrubbery.attractors) == 1

    def test_cancelled_pull_spawns_nothing(self, settings):
        """A pull exactly opposite the growth direction sums to zero."""
        shrubbery = _shrubbery(settings, (0, -3, 0))
        assert shrubbery.grow() == 0

        root = shrubbery.branches[0]
        assert root.count == 0
        assert root.direction == Vector3D(0, 1, 0)
        assert len(shrubbery.branches) == 1

    def test_equidistant_branches_lowest_index_wins(self, settings):
        shrubbery = _shrubbery(settings, (1, 3, 0))
        shrubbery._append(Branch(Vector3D(2, 0, 0), Vector3D(0, 1, 0), parent_index=0))
        shrubbery.grow()

        assert shrubbery.branches[0].child_count == 1
        assert shrubbery.branches[1].child_count == 0
        assert shrubbery.branches[2].parent_index == 0

    def test_new_branches_wait_for_next_step(self, settings):
        """A child spawned this step does not consume attractors in the same step."""
        # the child lands within kill distance of the second attractor
        shrubbery = _shrubbery(settings, (0, 3, 0), (0, 1.5, 0.5))
        shrubbery.grow()
        assert len(shrubbery.branches) == 2
        assert len(shrubbery.attractors) == 2

        shrubbery.grow()
        assert len(shrubbery.attractors) == 1

    def test_generation_counts_attraction_events(self, settings):
        shrubbery = _shrubbery(settings, (0, 4.5, 0))
        shrubbery.grow()
        shrubbery.grow()
        assert [b.generation for b in shrubbery.branches] == [0, 1, 2]


class TestGrowthInvariants:

    def test_parents_precede_children(self):
        shrubbery = _grown_shrubbery()
        assert len(shrubbery.branches) > 5
        for index, branch in enumerate(shrubbery.branches):
            if branch.parent_index is None:
                assert index == 0
            else:
                assert branch.parent_index < index

    def test_bounds_contain_every_branch(self):
        _assert_bounds_contain_branches(_grown_shrubbery())

    def test_removed_attractors_were_reached(self):
        shrubbery = _grown_shrubbery(steps=3)
        kill_distance = shrubbery.settings.kill_distance

        for _ in range(3):
            before = list(shrubbery.attractors)
            branch_positions = np.array([b.position.to_tuple() for b in shrubbery.branches])
            shrubbery.grow()

            remaining = {id(a) for a in shrubbery.attractors}
            assert not any(a.reached for a in shrubbery.attractors)
            for attractor in before:
                if id(attractor) in remaining:
                    continue
                dist = np.linalg.norm(branch_positions - attractor.position.to_array(), axis=1)
                assert dist.min() < kill_distance

    def test_same_seed_same_skeleton(self):
        a = _grown_shrubbery(seed=11)
        b = _grown_shrubbery(seed=11)
        assert [x.position.to_tuple() for x in a.branches] == [y.position.to_tuple() for y in b.branches]

    def test_grow_until_stops_when_done(self, settings):
        """Four steps climb to the attractor, the fifth consumes it."""
        shrubbery = _shrubbery(settings, (0, 4.5, 0))
        steps = shrubbery.grow_until(max_iterations=100)

        assert steps == 5
        assert shrubbery.attractors == []
        assert [b.position.y for b in shrubbery.branches] == pytest.approx([0, 1, 2, 3, 4])

    def test_grow_until_stagnation_limit(self):
        shrubbery = _grown_shrubbery(steps=0)
        assert shrubbery.grow_until(max_iterations=200, stagnation_limit=10) <= 200
        assert not any(a.reached for a in shrubbery.attractors)

    def test_grow_until_respects_max_iterations(self):
        shrubbery = _grown_shrubbery(steps=0)
        assert shrubbery.grow_until(max_iterations=2) <= 2


class TestPostProcessing:

    @pytest.fixture
    def bent(self, settings):
        shrubbery = Shrubbery(Vector3D(0, 0, 0), Vector3D(0, 1, 0), settings)
        shrubbery._append(Branch(Vector3D(0, 2, 0), Vector3D(0, 1, 0), parent_index=0))
        shrubbery._append(Branch(Vector3D(4, 2, 0), Vector3D(1, 0, 0), parent_index=1, generation=1))
        return shrubbery

    def test_plane_half_size(self, bent):
        assert bent.get_bounding_size() == (4, 2, 0)
        assert bent.get_plane_half_size() == 2

    def test_gravity_weighted_by_distance_from_axis(self, bent):
        bent.post_process_gravity(1.0)
        assert bent.branches[1].position == Vector3D(0, 2, 0)
        assert bent.branches[2].position == Vector3D(4, 0, 0)
        _assert_bounds_contain_branches(bent)

    def test_gravity_is_cumulative(self, bent):
        bent.post_process_gravity(1.0)
        bent.post_process_gravity(1.0)
        assert bent.branches[2].position.y == pytest.approx(-2.0)
        _assert_bounds_contain_branches(bent)

    def test_spin(self, bent):
        bent.post_process_spin(math.pi / 2)

        height_weight = math.cos(2 * 0.3) * 0.5 + 0.5
        angle = math.pi / 2 * 2.0 * height_weight
        tip = bent.branches[2].position
        assert tip.x == pytest.approx(4 * math.cos(angle))
        assert tip.z == pytest.approx(4 * math.sin(angle))
        assert tip.y == pytest.approx(2.0)
        assert bent.branches[1].position == Vector3D(0, 2, 0)
        _assert_bounds_contain_branches(bent)

    def test_flat_skeleton_is_left_alone(self, settings):
        shrubbery = Shrubbery(Vector3D(0, 0, 0), Vector3D(0, 1, 0), settings)
        shrubbery.post_process_gravity(1.0)
        shrubbery.post_process_spin(1.0)
        assert shrubbery.branches[0].position == Vector3D(0, 0, 0)


class TestQueries:

    def test_distance_without_segments(self, settings):
        shrubbery = Shrubbery(Vector3D(0, 0, 0), Vector3D(0, 1, 0), settings)
        dist, index = shrubbery.distance_to_branch(Vector3D(1, 1, 1))
        assert math.isinf(dist)
        assert index is None

    def test_distance_to_closest_segment(self, forked_shrubbery):
        dist, index = forked_shrubbery.distance_to_branch(Vector3D(2, 5, 0))
        assert dist == pytest.approx(1.0)
        assert index == 2

        dist, index = forked_shrubbery.distance_to_branch(Vector3D(-1, 2, 0))
        assert dist == pytest.approx(1.0)
        assert index == 1

    def test_distance_tie_goes_to_lowest_index(self, forked_shrubbery):
        """The fork point lies on segments 1, 2 and 3."""
        dist, index = forked_shrubbery.distance_to_branch(Vector3D(0, 4, 0))
        assert dist == pytest.approx(0.0)
        assert index == 1

    def test_leaf_branches(self, forked_shrubbery):
        last = forked_shrubbery.leaf_branches(LeafClassifier.LAST_BRANCH)
        non_root = forked_shrubbery.leaf_branches(LeafClassifier.NON_ROOT_BRANCH)
        assert [forked_shrubbery.branches.index(b) for b in last] == [2, 3]
        assert [forked_shrubbery.branches.index(b) for b in non_root] == [2, 3]
        assert forked_shrubbery.branch_tips == last

    def test_branch_segments(self, forked_shrubbery):
        segments = forked_shrubbery.get_branch_segments()
        assert segments[0] == ((0.0, 0.0, 0.0), (0.0, 4.0, 0.0))
        assert len(segments) == 3
