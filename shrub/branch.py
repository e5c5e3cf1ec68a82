"""
Branch class - one node of the shrub skeleton.

Branches live in a flat list owned by the Shrubbery. A branch refers to its
parent by index into that list, and the segment it draws runs from the
parent's position to its own.
"""

from typing import Optional

from .vector import Vector3D
from .leaves import LeafClassifier, is_leaf


class Branch:
    __slots__ = (
        'position', 'parent_index', 'direction', 'original_direction',
        'count', 'child_count', 'generation'
    )

    def __init__(
        self,
        position: Vector3D,
        direction: Vector3D,
        parent_index: Optional[int] = None,
        generation: int = 0
    ):
        self.position = position
        self.parent_index = parent_index
        self.direction = direction
        self.original_direction = direction.copy()
        self.count = 0  # Number of attractors pulling this branch in the current step
        self.child_count = 0
        self.generation = generation

    @property
    def is_root(self) -> bool:
        return self.parent_index is None

    def next(self, index: int, branch_len: float, new_generation: bool) -> 'Branch':
        """Create a child at position + direction * branch_len. `index` is this branch's index."""
        generation = self.generation + 1 if new_generation else self.generation
        return Branch(
            self.position + self.direction * branch_len,
            self.direction.copy(),
            parent_index=index,
            generation=generation,
        )

    def reset(self):
        self.count = 0
        self.direction = self.original_direction.copy()

    def is_leaf(self, classifier: LeafClassifier) -> bool:
        return is_leaf(self, classifier)

    def __repr__(self) -> str:
        return f"Branch({self.position}, parent={self.parent_index}, gen={self.generation})"
