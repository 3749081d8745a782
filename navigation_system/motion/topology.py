"""
Joint Topology.

Static description of the NAO kinematic chains: which joints exist on each
body variant, the joint limits, the coupled hip motor and the predefined
postures. Nothing here holds state.
"""

import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Sequence, Tuple

from core.errors import UnsupportedJoint, UnknownPosture, UnsafePosture


logger = logging.getLogger(__name__)


CHAINS: Dict[str, Tuple[str, ...]] = {
    "Head": ("HeadYaw", "HeadPitch"),
    "LArm": ("LShoulderPitch", "LShoulderRoll", "LElbowYaw", "LElbowRoll", "LWristYaw", "LHand"),
    "LLeg": ("LHipYawPitch", "LHipRoll", "LHipPitch", "LKneePitch", "LAnklePitch", "LAnkleRoll"),
    "RLeg": ("RHipYawPitch", "RHipRoll", "RHipPitch", "RKneePitch", "RAnklePitch", "RAnkleRoll"),
    "RArm": ("RShoulderPitch", "RShoulderRoll", "RElbowYaw", "RElbowRoll", "RWristYaw", "RHand"),
}

# Joints physically absent per body variant
UNAVAILABLE_JOINTS: Dict[str, FrozenSet[str]] = {
    "H25": frozenset(),
    "H21": frozenset({"LWristYaw", "LHand", "RWristYaw", "RHand"}),
}

# (min, max) in radians; hands are an opening fraction 0..1
JOINT_LIMITS: Dict[str, Tuple[float, float]] = {
    "HeadYaw": (-2.0857, 2.0857),
    "HeadPitch": (-0.6720, 0.5149),
    "LShoulderPitch": (-2.0857, 2.0857),
    "LShoulderRoll": (-0.3142, 1.3265),
    "LElbowYaw": (-2.0857, 2.0857),
    "LElbowRoll": (-1.5446, -0.0349),
    "LWristYaw": (-1.8238, 1.8238),
    "LHand": (0.0, 1.0),
    "RShoulderPitch": (-2.0857, 2.0857),
    "RShoulderRoll": (-1.3265, 0.3142),
    "RElbowYaw": (-2.0857, 2.0857),
    "RElbowRoll": (0.0349, 1.5446),
    "RWristYaw": (-1.8238, 1.8238),
    "RHand": (0.0, 1.0),
    "LHipYawPitch": (-1.1453, 0.7408),
    "LHipRoll": (-0.3795, 0.7905),
    "LHipPitch": (-1.5359, 0.4841),
    "LKneePitch": (-0.0923, 2.1125),
    "LAnklePitch": (-1.1895, 0.9227),
    "LAnkleRoll": (-0.3979, 0.7690),
    "RHipYawPitch": (-1.1453, 0.7408),
    "RHipRoll": (-0.7905, 0.3795),
    "RHipPitch": (-1.5359, 0.4841),
    "RKneePitch": (-0.1031, 2.1202),
    "RAnklePitch": (-1.1864, 0.9321),
    "RAnkleRoll": (-0.7690, 0.3979),
}

# Both hip yaw-pitch joints are driven by one motor; the first one wins
COUPLED_GROUPS: Tuple[Tuple[str, ...], ...] = (
    ("LHipYawPitch", "RHipYawPitch"),
)


class Posture(Enum):
    """Predefined whole-body postures."""

    STAND_INIT = "StandInit"
    STAND = "Stand"
    STAND_ZERO = "StandZero"
    LYING_BACK = "LyingBack"
    LYING_BELLY = "LyingBelly"
    CROUCH = "Crouch"
    SIT = "Sit"
    SIT_RELAX = "SitRelax"

    @property
    def safe_for_rest(self) -> bool:
        return self in REST_POSTURES

    @classmethod
    def from_name(cls, name: str) -> 'Posture':
        """
        Look up a posture by its NAOqi name.

        Raises:
            UnknownPosture: If the name is not a predefined posture
        """
        for posture in cls:
            if posture.value == name:
                return posture
        raise UnknownPosture(f"'{name}' is not a predefined posture")


REST_POSTURES = frozenset({
    Posture.CROUCH,
    Posture.SIT,
    Posture.SIT_RELAX,
    Posture.LYING_BELLY,
    Posture.LYING_BACK,
})


def rest_posture(name: str) -> Posture:
    """
    Validate a rest target.

    Unknown names and postures outside the safe-for-rest set both fail the
    same way: the robot must never go limp in an unstable configuration.

    Raises:
        UnsafePosture: If the posture is not safe to rest in
    """
    try:
        posture = Posture.from_name(name)
    except UnknownPosture:
        raise UnsafePosture(f"'{name}' is not a safe rest posture") from None
    if not posture.safe_for_rest:
        raise UnsafePosture(f"'{name}' is not a safe rest posture")
    return posture


class JointTopology:
    """
    Joint availability and chain layout for one body variant.

    Attributes:
        body_type: Hardware variant ("H25" or "H21")
        unavailable: Joints that do not exist on this variant
    """

    def __init__(self, body_type: str = "H25"):
        """
        Initialize topology for a body variant.

        Args:
            body_type: Hardware variant name

        Raises:
            ValueError: If the variant is unknown
        """
        if body_type not in UNAVAILABLE_JOINTS:
            raise ValueError(f"Unknown body type: {body_type}")
        self.body_type = body_type
        self.unavailable = UNAVAILABLE_JOINTS[body_type]

    def is_chain(self, name: str) -> bool:
        return name in CHAINS

    def is_available(self, joint: str) -> bool:
        return joint in JOINT_LIMITS and joint not in self.unavailable

    def chain_joints(self, chain: str) -> List[str]:
        """Joints of a chain that exist on this variant, in chain order."""
        if chain not in CHAINS:
            raise UnsupportedJoint(f"Unknown chain: {chain}")
        return [joint for joint in CHAINS[chain] if joint not in self.unavailable]

    def chain_of(self, joint: str) -> str:
        """Name of the chain a joint belongs to."""
        for chain, joints in CHAINS.items():
            if joint in joints:
                return chain
        raise UnsupportedJoint(f"Unknown joint: {joint}")

    def validate_name(self, name: str):
        """
        Check that a joint or chain name can be commanded on this variant.

        Raises:
            UnsupportedJoint: If the name is unknown or absent on this body
        """
        if self.is_chain(name):
            return
        if name not in JOINT_LIMITS:
            raise UnsupportedJoint(f"Unknown joint or chain: {name}")
        if name in self.unavailable:
            raise UnsupportedJoint(f"{name} does not exist on body type {self.body_type}")

    def expand(self, names: Sequence[str]) -> List[str]:
        """
        Expand chain names into their joints.

        All names are validated before anything is expanded, so an invalid
        name anywhere rejects the whole request.

        Args:
            names: Joint and/or chain names

        Returns:
            Flat list of joint names

        Example:
            >>> JointTopology("H21").expand(["Head", "LElbowRoll"])
            ['HeadYaw', 'HeadPitch', 'LElbowRoll']
        """
        for name in names:
            self.validate_name(name)
        joints = []
        for name in names:
            if self.is_chain(name):
                joints.extend(self.chain_joints(name))
            else:
                joints.append(name)
        return joints

    def clamp(self, joint: str, angle: float) -> float:
        """Clamp an angle to the joint's mechanical range."""
        low, high = JOINT_LIMITS[joint]
        clamped = max(low, min(high, angle))
        if clamped != angle:
            logger.warning(f"[TOPOLOGY] {joint} target {angle:.4f} clamped to {clamped:.4f}")
        return clamped


def resolve_coupled(targets: Dict[str, float]) -> Dict[str, float]:
    """
    Apply coupled-motor precedence to a joint -> angle mapping.

    When every member of a coupled group is targeted, the secondary joints
    take the primary's angle. A lone secondary keeps its own value since it
    drives the shared motor by itself.

    Example:
        >>> resolve_coupled({"LHipYawPitch": -0.2, "RHipYawPitch": 0.4})
        {'LHipYawPitch': -0.2, 'RHipYawPitch': -0.2}
    """
    resolved = dict(targets)
    for group in COUPLED_GROUPS:
        primary = group[0]
        if primary not in resolved:
            continue
        for secondary in group[1:]:
            if secondary in resolved and resolved[secondary] != resolved[primary]:
                logger.info(
                    f"[TOPOLOGY] {secondary} overridden by {primary} "
                    f"({resolved[secondary]:.4f} -> {resolved[primary]:.4f})"
                )
                resolved[secondary] = resolved[primary]
    return resolved


def arm_for_point(local_y: float) -> str:
    """Arm chain on the side of a robot-frame point."""
    return "LArm" if local_y >= 0.0 else "RArm"
