"""
Leaf classification - decides which branches count as leaf-bearing.
"""

from enum import Enum


class LeafClassifier(Enum):
    # branch without children is a leaf
    LAST_BRANCH = 'last_branch'
    # every branch spawned by attraction (generation > 0) is a leaf
    NON_ROOT_BRANCH = 'non_root_branch'


def is_leaf(branch, classifier: LeafClassifier) -> bool:
    if classifier is LeafClassifier.LAST_BRANCH:
        return branch.child_count == 0
    if classifier is LeafClassifier.NON_ROOT_BRANCH:
        return branch.generation != 0
    raise ValueError(f"Unknown leaf classifier: {classifier!r}")
