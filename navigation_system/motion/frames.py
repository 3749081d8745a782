"""
Frame Service.

Global pose bookkeeping and live chain transforms on top of the
localization and kinematics collaborators.
"""

import logging
from typing import Optional

import numpy as np

from core.errors import CommunicationError, InvalidTarget, LocalizationUnavailable
from core.pose import Frame, Pose, PoseStamped, Space, as_transform, point_to_robot_frame
from hardware.interfaces import IKinematics, ILocalization
from motion.topology import JointTopology


logger = logging.getLogger(__name__)


class FrameService:
    """
    Pose and transform queries.

    Nothing is cached: every call goes to the collaborators, so two calls in
    a row may differ if the robot moved in between.

    Attributes:
        topology: Joint topology used to validate chain names
        localization: Optional global localization
        kinematics: Optional forward kinematics
        tolerance: Accepted difference when reading back a pose correction
    """

    def __init__(
        self,
        topology: JointTopology,
        localization: Optional[ILocalization] = None,
        kinematics: Optional[IKinematics] = None,
        tolerance: float = 1e-3
    ):
        self.topology = topology
        self.localization = localization
        self.kinematics = kinematics
        self.tolerance = tolerance
        self._seq = 0

    def global_pose(self) -> Pose:
        """
        Current robot pose in the global frame.

        Raises:
            LocalizationUnavailable: If localization is missing or has no estimate
        """
        if self.localization is None:
            raise LocalizationUnavailable("no localization configured")
        pose = self.localization.current_global_pose()
        if pose is None:
            raise LocalizationUnavailable("localization has no pose estimate")
        return pose

    def get_global_pose(self) -> PoseStamped:
        """
        Current robot pose as a stamped global-frame pose.

        Returns:
            PoseStamped: Pose with an increasing sequence number
        """
        pose = self.global_pose()
        self._seq += 1
        return PoseStamped(pose=pose, seq=self._seq, frame=Frame.GLOBAL)

    def set_global_pose(self, pose: Pose) -> bool:
        """
        Push an externally estimated global pose as ground truth.

        Args:
            pose: Robot pose in the global frame (e.g. from marker localization)

        Returns:
            bool: True if localization accepted the correction

        Raises:
            LocalizationUnavailable: If no localization is configured
        """
        if self.localization is None:
            raise LocalizationUnavailable("no localization configured")
        accepted = bool(self.localization.set_global_pose(pose))
        if not accepted:
            logger.warning("[FRAMES] Localization rejected the pose correction")
            return False

        logger.info(f"[FRAMES] Global pose set to ({pose.x:.3f}, {pose.y:.3f}, {pose.theta:.3f})")
        current = self.localization.current_global_pose()
        if current is None or not current.is_close(pose, self.tolerance):
            logger.warning("[FRAMES] Localization does not report the corrected pose yet")
        return True

    def to_robot_frame(self, x: float, y: float, z: float):
        """Convert a global-frame point into the current robot frame."""
        return point_to_robot_frame(self.global_pose(), (x, y, z))

    def get_transform(self, chain: str, space) -> np.ndarray:
        """
        Homogeneous transform of a chain or joint in a space.

        Args:
            chain: Chain or joint name
            space: Space enum member, its integer value or its name

        Returns:
            np.ndarray: (4, 4) float transform

        Raises:
            UnsupportedJoint: If the chain or joint is not available
            InvalidTarget: If the space is unknown
            CommunicationError: If kinematics is missing or answers garbage
        """
        self.topology.validate_name(chain)
        try:
            space = Space.coerce(space)
        except ValueError as e:
            raise InvalidTarget(str(e)) from None

        if self.kinematics is None:
            raise CommunicationError("no kinematics configured")

        raw = self.kinematics.transform(chain, space)
        try:
            return as_transform(raw)
        except (TypeError, ValueError) as e:
            raise CommunicationError(f"malformed transform for {chain}: {e}") from None
