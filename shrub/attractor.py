"""
Attractor class - points in space that pull nearby branch growth towards them.
"""

from .vector import Vector3D


class Attractor:
    __slots__ = ('position', 'reached')

    def __init__(self, position: Vector3D):
        self.position = position
        self.reached = False

    def mark_reached(self):
        self.reached = True

    def __repr__(self) -> str:
        status = "reached" if self.reached else "live"
        return f"Attractor({self.position}, {status})"
