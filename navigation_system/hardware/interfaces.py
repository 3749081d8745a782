"""
Hardware Interface Definitions.

Abstract base classes for the collaborators the motion layer consumes:
actuation, localization, obstacle sensing and kinematics. Concrete robot
adapters and mock implementations for testing both implement these.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from core.pose import Pose, Space


@dataclass(frozen=True)
class ActuationOutcome:
    """
    Terminal outcome of a dispatched motion.

    Attributes:
        success: True if the motion completed (or started, for background motions)
        message: Optional detail from the driver
    """

    success: bool
    message: str = ""


class IActuation(ABC):
    """
    Abstract interface for the motor / locomotion driver.

    execute_motion() must not return for blocking commands until the motion
    reaches a terminal outcome. For background commands (velocities) it
    returns as soon as the motion is started.
    """

    @abstractmethod
    def execute_motion(self, command) -> ActuationOutcome:
        """
        Execute one validated motion command.

        Args:
            command: A MotionCommand variant (already validated and resolved)

        Returns:
            ActuationOutcome: Terminal outcome of the motion

        Raises:
            CommunicationError: If the driver cannot be reached
        """
        pass

    @abstractmethod
    def holonomic_capable(self) -> bool:
        """
        Report whether the base accepts independent x/y/theta velocities.

        Returns:
            bool: True for holonomic bases, False for differential drive
        """
        pass

    @abstractmethod
    def stop(self, slot) -> None:
        """
        Stop all motion in a slot immediately.

        Args:
            slot: ExecutionSlot to stop

        Raises:
            CommunicationError: If the driver cannot be reached
        """
        pass


class ILocalization(ABC):
    """
    Abstract interface for global localization.
    """

    @abstractmethod
    def current_global_pose(self) -> Optional[Pose]:
        """
        Current robot pose in the global frame.

        Returns:
            Pose, or None if localization has no estimate yet
        """
        pass

    @abstractmethod
    def set_global_pose(self, pose: Pose) -> bool:
        """
        Push an externally estimated pose as ground truth.

        Args:
            pose: Robot pose in the global frame

        Returns:
            bool: True if the correction was accepted
        """
        pass


class IObstacleSignal(ABC):
    """
    Abstract interface for obstacle detection.

    Polled, non-blocking and best-effort.
    """

    @abstractmethod
    def obstacle_present(self) -> bool:
        """
        Check if an obstacle blocks the way.

        Returns:
            bool: True if an obstacle is detected
        """
        pass


class IKinematics(ABC):
    """
    Abstract interface for forward kinematics.
    """

    @abstractmethod
    def transform(self, chain: str, space: Space) -> np.ndarray:
        """
        Homogeneous transform of a chain or joint in a space.

        Computed from live joint angles; never cached.

        Args:
            chain: Chain or joint name
            space: Space the transform is expressed in

        Returns:
            np.ndarray: 4x4 homogeneous transform (or 16 row-major values)

        Raises:
            CommunicationError: If the kinematics service cannot be reached
        """
        pass
