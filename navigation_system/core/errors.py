"""
Motion Error Taxonomy.

Every failure inside the arbitration layer is a MotionError subclass. The
public Navigation surface collapses all of them to False; the kind string
is what ends up in the logs.
"""

from typing import Optional


class MotionError(Exception):
    """Base class for all motion layer failures."""

    kind = "MotionError"

    def __init__(self, message: str = "", waypoint_index: Optional[int] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        # Set by PathFollower when the failure happened on a waypoint
        self.waypoint_index = waypoint_index

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class UnsupportedJoint(MotionError):
    """A named joint or chain does not exist on the active body variant."""

    kind = "UnsupportedJoint"


class InvalidTarget(MotionError):
    """Joint names and angles do not line up, or a target value or speed is not finite."""

    kind = "InvalidTarget"


class UnknownPosture(MotionError):
    """Posture name is not one of the predefined postures."""

    kind = "UnknownPosture"


class UnsafePosture(MotionError):
    """Posture is not safe to rest in."""

    kind = "UnsafePosture"


class UnsupportedMotionMode(MotionError):
    """Velocity form does not match the base (holonomic vs differential drive)."""

    kind = "UnsupportedMotionMode"


class Busy(MotionError):
    """A blocking command is already outstanding on the requested slot."""

    kind = "Busy"


class InvalidPath(MotionError):
    """Path following request is empty or malformed."""

    kind = "InvalidPath"


class LocalizationUnavailable(MotionError):
    """Localization is not initialized or has no pose estimate."""

    kind = "LocalizationUnavailable"


class CommunicationError(MotionError):
    """A collaborator (actuation, localization, kinematics) is unreachable."""

    kind = "CommunicationError"


class ActuationFailure(MotionError):
    """Hardware rejected the motion or could not complete it."""

    kind = "ActuationFailure"


# Errors detected locally before any actuator contact
VALIDATION_ERRORS = (UnsupportedJoint, InvalidTarget, UnknownPosture, UnsafePosture, InvalidPath)
