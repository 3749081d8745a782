"""
NAOqi Hardware Implementation.

Wraps NAOqi service proxies (ALMotion, ALRobotPosture, ALTracker, ALMemory)
to implement our collaborator interfaces. Proxies are injected, so any
object exposing the same methods (a qi session service, a test double)
can be used.
"""

import math
import logging
from typing import Optional

from core.errors import CommunicationError
from core.execution_tracker import ExecutionSlot
from core.pose import Pose, Space
from hardware.interfaces import (
    ActuationOutcome, IActuation, IKinematics, ILocalization, IObstacleSignal
)


# NAOqi resource names released when a slot is stopped
SLOT_RESOURCES = {
    ExecutionSlot.ARMS: ["LArm", "RArm"],
    ExecutionSlot.HEAD: ["Head"],
}

SONAR_KEYS = (
    "Device/SubDeviceList/US/Left/Sensor/Value",
    "Device/SubDeviceList/US/Right/Sensor/Value",
)


def _remote(description: str, call, *args):
    """Invoke a proxy method, turning transport failures into CommunicationError."""
    try:
        return call(*args)
    except Exception as e:
        raise CommunicationError(f"{description} failed: {e}") from e


class NaoqiActuation(IActuation):
    """
    NAO motion driver.

    Blocking NAOqi calls (moveTo, angleInterpolationWithSpeed, goToPosture)
    return when the motion ends, which gives the terminal outcome directly.

    Attributes:
        motion: ALMotion proxy
        posture: ALRobotPosture proxy
        tracker: Optional ALTracker proxy for look_at and point_arm
        holonomic: Capability reported to the arbiter
    """

    def __init__(self, motion_proxy, posture_proxy, tracker_proxy=None, holonomic: bool = True):
        """
        Initialize NAOqi driver.

        Args:
            motion_proxy: ALMotion service
            posture_proxy: ALRobotPosture service
            tracker_proxy: ALTracker service, needed for pointing and gazing
            holonomic: NAO walks omnidirectionally, so True by default

        Example:
            >>> session = qi.Session()
            >>> session.connect("tcp://nao.local:9559")
            >>> actuation = NaoqiActuation(session.service("ALMotion"),
            ...                            session.service("ALRobotPosture"),
            ...                            session.service("ALTracker"))
        """
        self.motion = motion_proxy
        self.posture = posture_proxy
        self.tracker = tracker_proxy
        self.holonomic = holonomic
        self.logger = logging.getLogger(__name__)
        self.logger.info("[HARDWARE] NAOqi actuation initialized")

    def execute_motion(self, command) -> ActuationOutcome:
        """
        Forward one validated command to ALMotion / ALRobotPosture / ALTracker.

        Args:
            command: MotionCommand variant

        Returns:
            ActuationOutcome: Success, or failure with the reason

        Raises:
            CommunicationError: If a proxy call fails
        """
        kind = command.kind
        self.logger.info(f"[HARDWARE] {kind}: {command}")

        if kind == "move_vel":
            _remote("move", self.motion.move, command.x, command.y, command.theta)
            return ActuationOutcome(success=True)

        if kind == "move_to":
            goal = command.goal
            done = _remote("moveTo", self.motion.moveTo, goal.x, goal.y, goal.theta)
            return self._outcome(done, "walk did not reach the goal")

        if kind == "move_joint":
            _remote(
                "angleInterpolationWithSpeed", self.motion.angleInterpolationWithSpeed,
                list(command.names), list(command.angles), command.speed
            )
            return ActuationOutcome(success=True)

        if kind == "take_posture":
            done = _remote("goToPosture", self.posture.goToPosture, command.posture.value, command.speed)
            return self._outcome(done, f"posture {command.posture.value} not reached")

        if kind == "rest":
            done = _remote("goToPosture", self.posture.goToPosture, command.posture.value, command.speed)
            if done is False:
                return ActuationOutcome(False, f"posture {command.posture.value} not reached")
            _remote("setStiffnesses", self.motion.setStiffnesses, "Body", 0.0)
            return ActuationOutcome(success=True)

        if kind in ("look_at", "point_arm"):
            if self.tracker is None:
                return ActuationOutcome(False, "no ALTracker proxy configured")
            target = [command.x, command.y, command.z]
            if kind == "look_at":
                _remote("lookAt", self.tracker.lookAt, target, int(Space.ROBOT), command.speed, False)
            else:
                _remote("pointAt", self.tracker.pointAt, command.chain, target, int(Space.ROBOT), command.speed)
            return ActuationOutcome(success=True)

        return ActuationOutcome(False, f"unsupported command kind: {kind}")

    def holonomic_capable(self) -> bool:
        return self.holonomic

    def stop(self, slot) -> None:
        """
        Stop all motion in a slot immediately.

        Example:
            >>> actuation.stop(ExecutionSlot.LOCOMOTION)
        """
        self.logger.info(f"[HARDWARE] Stop {slot.value}")
        if slot is ExecutionSlot.LOCOMOTION:
            _remote("stopMove", self.motion.stopMove)
        else:
            _remote("killTasksUsingResources", self.motion.killTasksUsingResources, SLOT_RESOURCES[slot])

    @staticmethod
    def _outcome(done, failure_message: str) -> ActuationOutcome:
        # Older NAOqi versions return None from blocking calls
        if done is False:
            return ActuationOutcome(False, failure_message)
        return ActuationOutcome(success=True)


class NaoqiKinematics(IKinematics):
    """
    Forward kinematics from ALMotion.getTransform.
    """

    def __init__(self, motion_proxy, use_sensor_values: bool = True):
        """
        Args:
            motion_proxy: ALMotion service
            use_sensor_values: Use measured (True) or commanded (False) angles
        """
        self.motion = motion_proxy
        self.use_sensor_values = use_sensor_values

    def transform(self, chain: str, space: Space):
        return _remote(
            "getTransform", self.motion.getTransform, chain, int(space), self.use_sensor_values
        )


class NaoqiOdometryLocalization(ILocalization):
    """
    Global pose from walk odometry plus a correction offset.

    global = offset * odometry. set_global_pose() recomputes the offset so
    that the current odometry maps onto the given pose.

    Attributes:
        motion: ALMotion proxy
        offset: Global pose of the odometry origin, None until the first correction
    """

    def __init__(self, motion_proxy, initial_pose: Optional[Pose] = None):
        """
        Args:
            motion_proxy: ALMotion service
            initial_pose: Global pose of the odometry origin, if known
        """
        self.motion = motion_proxy
        self.offset = initial_pose
        self.logger = logging.getLogger(__name__)

    def _odometry(self) -> Pose:
        x, y, theta = _remote("getRobotPosition", self.motion.getRobotPosition, True)
        return Pose.planar(x, y, theta)

    def current_global_pose(self) -> Optional[Pose]:
        if self.offset is None:
            return None
        return self.offset.robot_to_global(self._odometry())

    def set_global_pose(self, pose: Pose) -> bool:
        odometry = self._odometry()
        # offset = pose * inverse(odometry)
        self.offset = pose.robot_to_global(odometry.global_to_robot(Pose()))
        self.logger.info(f"[HARDWARE] Odometry origin moved to ({self.offset.x:.3f}, {self.offset.y:.3f})")
        return True


class SonarObstacleSignal(IObstacleSignal):
    """
    Obstacle detection from the two chest sonars.

    A reading of 0 means "no echo" and is ignored.
    """

    def __init__(self, memory_proxy, threshold_m: float = 0.3):
        """
        Args:
            memory_proxy: ALMemory service
            threshold_m: Distance under which an echo counts as an obstacle
        """
        self.memory = memory_proxy
        self.threshold_m = threshold_m

    def obstacle_present(self) -> bool:
        for key in SONAR_KEYS:
            distance = float(self.memory.getData(key))
            if math.isfinite(distance) and 0.0 < distance < self.threshold_m:
                return True
        return False
