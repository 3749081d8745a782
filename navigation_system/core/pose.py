"""
Pose and Frame Utilities.

Immutable pose value types and homogeneous transform helpers used to move
points and goals between the global (map) frame and the robot frame.
All functions are pure and safe to share between threads.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation


class Frame(Enum):
    """Coordinate frame a pose is expressed in."""

    GLOBAL = "global"
    ROBOT = "robot"


class Space(IntEnum):
    """Transform spaces, numbered like the NAOqi FRAME_* constants."""

    TORSO = 0
    WORLD = 1
    ROBOT = 2

    @classmethod
    def coerce(cls, value) -> 'Space':
        """Accept a Space, its integer value or its name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown space: {value}") from None
        return cls(int(value))


@dataclass(frozen=True)
class Quaternion:
    """
    Unit quaternion (w, x, y, z).

    Stored scalar-first; scipy's Rotation uses scalar-last (x, y, z, w), so
    conversions go through to_rotation() / from_rotation().
    """

    w: float = 1.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_rotation(cls, rotation: Rotation) -> 'Quaternion':
        x, y, z, w = rotation.as_quat()
        return cls(float(w), float(x), float(y), float(z))

    @classmethod
    def from_yaw(cls, theta: float) -> 'Quaternion':
        """Rotation of theta radians about the z axis."""
        return cls.from_rotation(Rotation.from_euler("z", theta))

    @classmethod
    def from_matrix(cls, rotation: np.ndarray) -> 'Quaternion':
        """Build from a 3x3 rotation matrix."""
        return cls.from_rotation(Rotation.from_matrix(np.asarray(rotation, dtype=np.float64)))

    def to_rotation(self) -> Rotation:
        """
        Equivalent scipy Rotation.

        A zero quaternion maps to the identity.
        """
        xyzw = np.array([self.x, self.y, self.z, self.w], dtype=np.float64)
        if not np.any(xyzw):
            return Rotation.identity()
        return Rotation.from_quat(xyzw)

    def normalized(self) -> 'Quaternion':
        if not any((self.w, self.x, self.y, self.z)):
            return Quaternion()
        norm = float(np.linalg.norm([self.w, self.x, self.y, self.z]))
        return Quaternion(self.w / norm, self.x / norm, self.y / norm, self.z / norm)

    @property
    def yaw(self) -> float:
        """Heading about the z axis in radians."""
        return float(self.to_rotation().as_euler("zyx")[0])

    def to_matrix(self) -> np.ndarray:
        """3x3 rotation matrix."""
        return self.to_rotation().as_matrix()


@dataclass(frozen=True)
class Pose:
    """
    Position plus orientation.

    Planar goals only use x, y and the yaw of the orientation; spatial targets
    use the full quaternion.

    Attributes:
        x: X position in meters
        y: Y position in meters
        z: Z position in meters
        orientation: Orientation as a unit quaternion
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    orientation: Quaternion = field(default_factory=Quaternion)

    @classmethod
    def planar(cls, x: float, y: float, theta: float) -> 'Pose':
        """
        Create a pose on the ground plane.

        Args:
            x: X position in meters
            y: Y position in meters
            theta: Heading in radians

        Example:
            >>> goal = Pose.planar(1.0, 0.5, math.pi / 2)
            >>> round(goal.theta, 4)
            1.5708
        """
        return cls(x=x, y=y, z=0.0, orientation=Quaternion.from_yaw(theta))

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> 'Pose':
        """Build a pose from a 4x4 homogeneous transform."""
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix, got shape {m.shape}")
        return cls(
            x=float(m[0, 3]),
            y=float(m[1, 3]),
            z=float(m[2, 3]),
            orientation=Quaternion.from_matrix(m[:3, :3]),
        )

    @property
    def theta(self) -> float:
        return self.orientation.yaw

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def to_matrix(self) -> np.ndarray:
        """4x4 homogeneous transform from this pose's frame to its parent."""
        matrix = np.eye(4, dtype=np.float64)
        matrix[:3, :3] = self.orientation.to_matrix()
        matrix[:3, 3] = self.position
        return matrix

    def is_close(self, other: 'Pose', tolerance: float = 1e-6) -> bool:
        """
        Compare positions and orientations within a tolerance.

        Quaternions q and -q describe the same rotation, so the orientation
        check uses the absolute dot product.
        """
        if not np.allclose(self.position, other.position, atol=tolerance):
            return False
        a = self.orientation.normalized()
        b = other.orientation.normalized()
        dot = abs(a.w * b.w + a.x * b.x + a.y * b.y + a.z * b.z)
        return dot >= 1.0 - tolerance

    def global_to_robot(self, target: 'Pose') -> 'Pose':
        """
        Express a global-frame pose relative to this (global) robot pose.

        Args:
            target: Pose in the global frame

        Returns:
            The same pose in the robot frame
        """
        relative = np.linalg.inv(self.to_matrix()) @ target.to_matrix()
        return Pose.from_matrix(relative)

    def robot_to_global(self, local: 'Pose') -> 'Pose':
        """Inverse of global_to_robot."""
        return Pose.from_matrix(self.to_matrix() @ local.to_matrix())


@dataclass(frozen=True)
class PoseStamped:
    """
    One element of a path.

    Attributes:
        pose: The waypoint pose
        seq: Sequence index inside the path
        stamp: Creation time (seconds since epoch)
        frame: Frame the pose is expressed in
    """

    pose: Pose
    seq: int = 0
    stamp: float = field(default_factory=time.time)
    frame: Frame = Frame.GLOBAL


def point_to_robot_frame(robot_pose: Pose, point: Sequence[float]) -> Tuple[float, float, float]:
    """
    Convert a global-frame point into the robot frame.

    Args:
        robot_pose: Current robot pose in the global frame
        point: (x, y, z) in the global frame

    Returns:
        (x, y, z) in the robot frame
    """
    homogeneous = np.array([point[0], point[1], point[2], 1.0], dtype=np.float64)
    local = np.linalg.inv(robot_pose.to_matrix()) @ homogeneous
    return float(local[0]), float(local[1]), float(local[2])


def as_transform(values) -> np.ndarray:
    """
    Normalize a transform answer into a (4, 4) float array.

    Accepts a flat sequence of 16 (NAOqi row-major) or 12 values (last row
    implied), or a nested 4x4 / 3x4 sequence.

    Raises:
        ValueError: If the values cannot form a homogeneous transform
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 16:
        return arr.reshape(4, 4)
    if arr.size == 12:
        matrix = np.eye(4, dtype=np.float64)
        matrix[:3, :] = arr.reshape(3, 4)
        return matrix
    raise ValueError(f"Cannot build a 4x4 transform from {arr.size} values")
