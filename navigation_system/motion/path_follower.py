"""
Path Follower.

Drives the base through an ordered list of waypoints by issuing one
blocking goal per waypoint through the CommandArbiter, polling the obstacle
signal before every dispatch.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from core.errors import InvalidPath, LocalizationUnavailable, MotionError
from core.execution_tracker import ExecutionSlot
from core.pose import Frame, Pose, PoseStamped
from hardware.interfaces import ILocalization
from motion.arbiter import CommandArbiter
from motion.commands import FollowPath, MoveTo
from motion.safety_manager import SafetyManager


logger = logging.getLogger(__name__)


class PathStatus(Enum):
    """How a path run ended."""

    COMPLETED = "completed"  # every waypoint reached
    ABORTED = "aborted"  # stopped early by an obstacle or move_stop


@dataclass(frozen=True)
class PathResult:
    """
    Result of a path run that did not fail outright.

    Attributes:
        status: Completed or Aborted
        waypoints: The path that was followed
        last_reached: Index of the last waypoint reached, None if none was
    """

    status: PathStatus
    waypoints: Tuple[PoseStamped, ...]
    last_reached: Optional[int] = None

    @property
    def completed(self) -> bool:
        return self.status is PathStatus.COMPLETED

    @property
    def aborted(self) -> bool:
        return self.status is PathStatus.ABORTED

    @property
    def reached_count(self) -> int:
        return 0 if self.last_reached is None else self.last_reached + 1

    @property
    def last_reached_waypoint(self) -> Optional[PoseStamped]:
        if self.last_reached is None:
            return None
        return self.waypoints[self.last_reached]


class PathFollower:
    """
    Follows a path of stamped poses with obstacle-triggered early stop.

    The cruise velocity is whatever the actuation driver uses for goal
    poses; no per-waypoint velocity is set here.

    Attributes:
        arbiter: Command arbiter used for every dispatch
        safety: Safety manager polled for obstacles
        localization: Optional localization for global-frame waypoints
    """

    def __init__(
        self,
        arbiter: CommandArbiter,
        safety: SafetyManager,
        localization: Optional[ILocalization] = None
    ):
        """
        Initialize path follower.

        Args:
            arbiter: Command arbiter of the session
            safety: Safety manager with the obstacle signal
            localization: Localization for converting global waypoints

        Example:
            >>> follower = PathFollower(arbiter, safety, localization)
            >>> result = follower.follow([PoseStamped(Pose.planar(1.0, 0.0, 0.0))])
        """
        self.arbiter = arbiter
        self.safety = safety
        self.localization = localization

    def follow(self, path: Union[FollowPath, Sequence[PoseStamped]]) -> PathResult:
        """
        Follow a path to its end, to the first obstacle or to a locomotion stop.

        A stop issued while the path runs (move_stop) cancels the waypoint in
        flight and every waypoint after it.

        Args:
            path: FollowPath command or sequence of PoseStamped, in traversal order

        Returns:
            PathResult: Completed, or Aborted with the last reached index

        Raises:
            InvalidPath: If the path is empty or holds something other than PoseStamped
            LocalizationUnavailable: If a global waypoint cannot be converted
            MotionError: Failure of a waypoint, with waypoint_index set
        """
        waypoints = tuple(path.waypoints if isinstance(path, FollowPath) else path)
        self._validate(waypoints)
        logger.info(f"[PATH] Following {len(waypoints)} waypoints")

        generation = self.arbiter.tracker.stop_count(ExecutionSlot.LOCOMOTION)
        last_reached: Optional[int] = None
        for index, waypoint in enumerate(waypoints):
            if self._stopped_since(generation):
                return self._cancelled(waypoints, index, last_reached)

            if not self.safety.is_path_clear():
                self.arbiter.stop()
                logger.warning(
                    f"[PATH] Obstacle before waypoint {index}, aborted "
                    f"(last reached: {last_reached})"
                )
                return PathResult(PathStatus.ABORTED, waypoints, last_reached)

            try:
                goal = self._robot_frame_goal(waypoint)
                self.arbiter.submit(MoveTo(goal))
            except MotionError as e:
                # An interrupted goal reports failure; the stop is the cause
                if self._stopped_since(generation):
                    return self._cancelled(waypoints, index, last_reached)
                e.waypoint_index = index
                logger.error(f"[PATH] Waypoint {index} failed: {e}")
                raise

            if self._stopped_since(generation):
                return self._cancelled(waypoints, index, last_reached)

            last_reached = index
            logger.debug(f"[PATH] Reached waypoint {index} (seq {waypoint.seq})")

        logger.info("[PATH] Path completed")
        return PathResult(PathStatus.COMPLETED, waypoints, last_reached)

    def _stopped_since(self, generation: int) -> bool:
        return self.arbiter.tracker.stop_count(ExecutionSlot.LOCOMOTION) != generation

    def _cancelled(self, waypoints, index: int, last_reached: Optional[int]) -> PathResult:
        logger.warning(f"[PATH] Stopped at waypoint {index}, aborted (last reached: {last_reached})")
        return PathResult(PathStatus.ABORTED, waypoints, last_reached)

    def _validate(self, waypoints: Tuple[PoseStamped, ...]):
        if not waypoints:
            raise InvalidPath("path is empty")
        for index, waypoint in enumerate(waypoints):
            if not isinstance(waypoint, PoseStamped):
                raise InvalidPath(f"waypoint {index} is not a PoseStamped")
            if waypoint.frame is Frame.GLOBAL and self.localization is None:
                raise LocalizationUnavailable(
                    f"waypoint {index} is global but no localization is configured"
                )

    def _robot_frame_goal(self, waypoint: PoseStamped) -> Pose:
        """Goal relative to the robot for one waypoint."""
        if waypoint.frame is Frame.ROBOT:
            return waypoint.pose

        current = self.localization.current_global_pose()
        if current is None:
            raise LocalizationUnavailable("no global pose estimate")
        return current.global_to_robot(waypoint.pose)
