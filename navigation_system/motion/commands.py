"""
Motion Commands.

One dataclass per kind of motion request. Each variant declares whether it
blocks the caller and which execution slots it occupies.
"""

from dataclasses import dataclass
from typing import ClassVar, Tuple

from core.execution_tracker import ExecutionSlot, ALL_SLOTS
from core.pose import Pose, PoseStamped
from motion.topology import Posture


@dataclass(frozen=True)
class MotionCommand:
    """Base class for all motion requests."""

    kind: ClassVar[str] = "motion"
    blocking: ClassVar[bool] = True
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = ()


@dataclass(frozen=True)
class MoveVelocity(MotionCommand):
    """
    Velocity command for the base.

    Attributes:
        x: Velocity along the robot X axis (m/s)
        y: Velocity along the robot Y axis (m/s), always 0 for the 2-parameter form
        theta: Angular velocity about Z (rad/s)
        holonomic: True for the 3-parameter form, False for the 2-parameter form
    """

    x: float
    y: float
    theta: float
    holonomic: bool = True

    kind: ClassVar[str] = "move_vel"
    blocking: ClassVar[bool] = False
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = (ExecutionSlot.LOCOMOTION,)


@dataclass(frozen=True)
class MoveTo(MotionCommand):
    """Walk to a goal given in the current robot frame."""

    goal: Pose

    kind: ClassVar[str] = "move_to"
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = (ExecutionSlot.LOCOMOTION,)


@dataclass(frozen=True)
class MoveStop(MotionCommand):
    """Stop the base. Valid in any state."""

    kind: ClassVar[str] = "move_stop"
    blocking: ClassVar[bool] = False
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = (ExecutionSlot.LOCOMOTION,)


@dataclass(frozen=True)
class MoveJoint(MotionCommand):
    """
    Joint-space command.

    Attributes:
        names: Joint and/or chain names as requested by the caller
        angles: Target angles, one per joint after chain expansion
        speed: Maximum speed fraction in [0, 1]

    The arbiter replaces names with the expanded, availability-checked
    joint list before dispatch; slots depend on the chains touched.
    """

    names: Tuple[str, ...]
    angles: Tuple[float, ...]
    speed: float

    kind: ClassVar[str] = "move_joint"


@dataclass(frozen=True)
class TakePosture(MotionCommand):
    """Go to a predefined whole-body posture."""

    posture: Posture
    speed: float

    kind: ClassVar[str] = "take_posture"
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = ALL_SLOTS


@dataclass(frozen=True)
class Rest(MotionCommand):
    """Go to a safe posture, then remove motor stiffness."""

    posture: Posture
    speed: float

    kind: ClassVar[str] = "rest"
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = ALL_SLOTS


@dataclass(frozen=True)
class LookAt(MotionCommand):
    """Point the main camera at a robot-frame point."""

    x: float
    y: float
    z: float
    speed: float

    kind: ClassVar[str] = "look_at"
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = (ExecutionSlot.HEAD,)


@dataclass(frozen=True)
class PointArm(MotionCommand):
    """Point the fingers of one arm at a robot-frame point."""

    chain: str
    x: float
    y: float
    z: float
    speed: float

    kind: ClassVar[str] = "point_arm"
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = (ExecutionSlot.ARMS,)


@dataclass(frozen=True)
class FollowPath(MotionCommand):
    """Ordered waypoints for the PathFollower."""

    waypoints: Tuple[PoseStamped, ...]

    kind: ClassVar[str] = "follow_path"
    slots: ClassVar[Tuple[ExecutionSlot, ...]] = (ExecutionSlot.LOCOMOTION,)
