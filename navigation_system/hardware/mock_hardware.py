"""
Mock Hardware Implementations.

In-memory implementations of the collaborator interfaces for testing
without a robot. Every call is recorded for test assertions.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from core.errors import CommunicationError
from core.pose import Pose, Space
from hardware.interfaces import (
    ActuationOutcome, IActuation, IKinematics, ILocalization, IObstacleSignal
)


class MockActuation(IActuation):
    """
    Mock motion driver.

    Completes every motion instantly unless motions are held, in which case
    execute_motion() blocks until release_motions() is called.
    Goal poses are applied to an attached MockLocalization.
    """

    def __init__(self, holonomic: bool = True, localization: Optional['MockLocalization'] = None):
        """
        Initialize mock driver.

        Args:
            holonomic: Capability flag reported by holonomic_capable()
            localization: Optional mock localization moved by goal poses
        """
        self.logger = logging.getLogger(__name__)
        self.holonomic = holonomic
        self.localization = localization
        self.command_history: List[Tuple[str, object]] = []
        self.stop_history: List[object] = []
        self.unreachable = False
        self._failures: List[str] = []
        self._lock = threading.Lock()
        self._release = threading.Event()
        self._release.set()
        self.motion_started = threading.Event()

    def _log_command(self, command):
        with self._lock:
            self.command_history.append((command.kind, command))
        self.logger.info(f"[MOCK] {command.kind}: {command}")

    def execute_motion(self, command) -> ActuationOutcome:
        """Record the command and complete it (or fail it if programmed)."""
        if self.unreachable:
            raise CommunicationError("mock actuation unreachable")

        self._log_command(command)
        self.motion_started.set()

        if command.blocking:
            self._release.wait()

        with self._lock:
            failure = self._failures.pop(0) if self._failures else None
        if failure is not None:
            return ActuationOutcome(success=False, message=failure)

        if command.kind == "move_to" and self.localization is not None:
            self.localization.apply_relative(command.goal)
        return ActuationOutcome(success=True)

    def holonomic_capable(self) -> bool:
        if self.unreachable:
            raise CommunicationError("mock actuation unreachable")
        return self.holonomic

    def stop(self, slot) -> None:
        if self.unreachable:
            raise CommunicationError("mock actuation unreachable")
        self.stop_history.append(slot)
        self.logger.info(f"[MOCK] stop: {slot}")

    # Test helper methods
    def hold_motions(self):
        """Make blocking motions wait until release_motions()."""
        self.motion_started.clear()
        self._release.clear()

    def release_motions(self):
        self._release.set()

    def fail_next(self, message: str = "mock failure"):
        """Make the next executed motion report failure."""
        with self._lock:
            self._failures.append(message)

    def kinds(self) -> List[str]:
        """Kinds of all executed commands, in order."""
        with self._lock:
            return [kind for kind, _ in self.command_history]

    def commands_of(self, kind: str) -> list:
        with self._lock:
            return [command for k, command in self.command_history if k == kind]

    def clear_command_history(self):
        with self._lock:
            self.command_history = []
        self.stop_history = []


class MockLocalization(ILocalization):
    """
    Mock localization storing one global pose.

    set_global_pose() is an identity store so a round trip returns exactly
    the pose that was pushed.
    """

    def __init__(self, pose: Optional[Pose] = None):
        """
        Initialize mock localization.

        Args:
            pose: Initial global pose, None for "not initialized"
        """
        self.logger = logging.getLogger(__name__)
        self.pose = pose
        self.accept_corrections = True
        self.corrections: List[Pose] = []

    def current_global_pose(self) -> Optional[Pose]:
        return self.pose

    def set_global_pose(self, pose: Pose) -> bool:
        self.corrections.append(pose)
        if not self.accept_corrections:
            self.logger.info("[MOCK] Pose correction rejected")
            return False
        self.pose = pose
        return True

    # Test helper methods
    def apply_relative(self, goal: Pose):
        """Move the stored pose by a robot-frame goal."""
        if self.pose is not None:
            self.pose = self.pose.robot_to_global(goal)

    def set_unavailable(self):
        self.pose = None


class MockObstacleSignal(IObstacleSignal):
    """
    Mock obstacle detector.

    Returns scripted readings in order, then the steady value.
    """

    def __init__(self, obstacle: bool = False):
        self.obstacle = obstacle
        self.scripted: List[bool] = []
        self.poll_count = 0
        self.fail_reads = False

    def obstacle_present(self) -> bool:
        self.poll_count += 1
        if self.fail_reads:
            raise RuntimeError("mock obstacle sensor read failed")
        if self.scripted:
            return self.scripted.pop(0)
        return self.obstacle

    # Test helper methods
    def set_obstacle(self, present: bool):
        self.obstacle = present

    def script(self, readings: Sequence[bool]):
        """Queue readings returned by the next polls."""
        self.scripted = list(readings)


class MockKinematics(IKinematics):
    """
    Mock kinematics returning programmed transforms (identity by default).
    """

    def __init__(self):
        self.transforms: Dict[Tuple[str, Space], object] = {}
        self.call_history: List[Tuple[str, Space]] = []
        self.unreachable = False

    def transform(self, chain: str, space: Space):
        if self.unreachable:
            raise CommunicationError("mock kinematics unreachable")
        self.call_history.append((chain, space))
        return self.transforms.get((chain, space), np.eye(4))

    # Test helper methods
    def set_transform(self, chain: str, space: Space, matrix):
        self.transforms[(chain, space)] = matrix
