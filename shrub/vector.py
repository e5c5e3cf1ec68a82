"""
Small 2D/3D vector classes for the shrub growth engine.
"""

import numpy as np


class Vector3D:
    __slots__ = ('x', 'y', 'z')

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def __add__(self, other: 'Vector3D') -> 'Vector3D':
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: 'Vector3D') -> 'Vector3D':
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> 'Vector3D':
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> 'Vector3D':
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> 'Vector3D':
        return Vector3D(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> 'Vector3D':
        return Vector3D(-self.x, -self.y, -self.z)

    def __repr__(self) -> str:
        return f"Vector3D({self.x:.2f}, {self.y:.2f}, {self.z:.2f})"

    def __eq__(self, other: 'Vector3D') -> bool:
        if not isinstance(other, Vector3D):
            return NotImplemented
        return bool(
            np.isclose(self.x, other.x)
            and np.isclose(self.y, other.y)
            and np.isclose(self.z, other.z)
        )

    @property
    def magnitude(self) -> float:
        return float(np.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2))

    @property
    def magnitude_squared(self) -> float:
        return self.x ** 2 + self.y ** 2 + self.z ** 2

    def normalize(self) -> 'Vector3D':
        mag = self.magnitude
        if mag < 1e-10:
            return Vector3D(0, 0, 0)
        return self / mag

    def dot(self, other: 'Vector3D') -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def distance_to(self, other: 'Vector3D') -> float:
        return (self - other).magnitude

    @property
    def xz(self) -> 'Vector2D':
        """Projection onto the horizontal plane."""
        return Vector2D(self.x, self.z)

    def to_tuple(self) -> tuple:
        return (self.x, self.y, self.z)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])

    @classmethod
    def from_tuple(cls, t: tuple) -> 'Vector3D':
        return cls(t[0], t[1], t[2])

    @classmethod
    def from_array(cls, arr: np.ndarray) -> 'Vector3D':
        return cls(arr[0], arr[1], arr[2])

    def copy(self) -> 'Vector3D':
        return Vector3D(self.x, self.y, self.z)


class Vector2D:
    __slots__ = ('x', 'y')

    def __init__(self, x: float = 0.0, y: float = 0.0):
        self.x = float(x)
        self.y = float(y)

    def __add__(self, other: 'Vector2D') -> 'Vector2D':
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: 'Vector2D') -> 'Vector2D':
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> 'Vector2D':
        return Vector2D(self.x * scalar, self.y * scalar)

    def __rmul__(self, scalar: float) -> 'Vector2D':
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> 'Vector2D':
        return Vector2D(self.x / scalar, self.y / scalar)

    def __repr__(self) -> str:
        return f"Vector2D({self.x:.2f}, {self.y:.2f})"

    def __eq__(self, other: 'Vector2D') -> bool:
        if not isinstance(other, Vector2D):
            return NotImplemented
        return bool(np.isclose(self.x, other.x) and np.isclose(self.y, other.y))

    @property
    def magnitude(self) -> float:
        return float(np.sqrt(self.x ** 2 + self.y ** 2))

    def normalize(self) -> 'Vector2D':
        mag = self.magnitude
        if mag < 1e-10:
            return Vector2D(0, 0)
        return self / mag

    def distance_to(self, other: 'Vector2D') -> float:
        return (self - other).magnitude

    def to_tuple(self) -> tuple:
        return (self.x, self.y)
