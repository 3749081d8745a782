"""
Navigation Facade.

Boolean call surface over the motion arbitration layer. Every operation
returns True/False (or a value / None for queries); the error kind behind a
failure is only visible in the logs.
"""

__version__ = "1.0.0"

import logging
import numbers
from typing import Dict, Optional, Sequence, Union

import numpy as np

from config.settings import NavigationConfig
from core.errors import VALIDATION_ERRORS, InvalidTarget, MotionError
from core.pose import Frame, Pose, PoseStamped
from core.session import NavigationSession
from hardware.interfaces import IActuation, IKinematics, ILocalization, IObstacleSignal
from hardware.naoqi_impl import (
    NaoqiActuation, NaoqiKinematics, NaoqiOdometryLocalization, SonarObstacleSignal
)
from motion.arbiter import CommandArbiter
from motion.commands import LookAt, MoveJoint, MoveTo, MoveVelocity, PointArm, Rest, TakePosture
from motion.frames import FrameService
from motion.path_follower import PathFollower, PathResult
from motion.safety_manager import SafetyManager
from motion.topology import JointTopology, Posture, arm_for_point, rest_posture


logger = logging.getLogger(__name__)


class Navigation:
    """
    Navigation and motion control for one robot.

    Owns the session (execution state) and wires the arbiter, path follower
    and frame service to the injected collaborators.

    Attributes:
        config: Navigation configuration
        session: Session holding the execution tracker
        topology: Joint topology for the configured body type
        safety: Safety envelope and obstacle polling
        arbiter: Command arbiter
        path_follower: Path follower
        frames: Pose and transform queries
        last_path_result: Result of the most recent move_along_path run

    Example:
        >>> localization = MockLocalization(Pose())
        >>> with Navigation(MockActuation(localization=localization), localization) as nav:
        ...     nav.move_to(0.5, 0.0, 0.0)
        True
    """

    def __init__(
        self,
        actuation: IActuation,
        localization: Optional[ILocalization] = None,
        obstacle_signal: Optional[IObstacleSignal] = None,
        kinematics: Optional[IKinematics] = None,
        config: Optional[NavigationConfig] = None,
        name: str = "nao"
    ):
        """
        Initialize navigation.

        Args:
            actuation: Motor / locomotion driver
            localization: Global localization (needed for global-frame targets)
            obstacle_signal: Obstacle detector polled during path following
            kinematics: Forward kinematics for get_transform
            config: Navigation configuration (defaults to NavigationConfig())
            name: Session name used in logs
        """
        self.config = config or NavigationConfig()
        self.session = NavigationSession(actuation, name=name)
        self.topology = JointTopology(self.config.robot.body_type)
        self.safety = SafetyManager(self.config.safety, self.topology, obstacle_signal)
        self.arbiter = CommandArbiter(self.session, self.topology, self.safety, self.config.motion)
        self.path_follower = PathFollower(self.arbiter, self.safety, localization)
        self.frames = FrameService(
            self.topology, localization, kinematics, self.config.localization.pose_tolerance
        )
        self.last_path_result: Optional[PathResult] = None

        logger.info(f"[NAV] Navigation ready (body type {self.topology.body_type})")

    @classmethod
    def from_naoqi(cls, qi_session, config: Optional[NavigationConfig] = None) -> 'Navigation':
        """
        Build navigation on top of a connected NAOqi session.

        Args:
            qi_session: Connected qi.Session (anything with service(name))
            config: Navigation configuration (defaults to NavigationConfig.from_env())

        Example:
            >>> session = qi.Session()
            >>> session.connect("tcp://nao.local:9559")
            >>> nav = Navigation.from_naoqi(session)
        """
        config = config or NavigationConfig.from_env()
        motion = qi_session.service("ALMotion")
        actuation = NaoqiActuation(
            motion,
            qi_session.service("ALRobotPosture"),
            qi_session.service("ALTracker"),
            holonomic=config.robot.holonomic,
        )
        obstacles = SonarObstacleSignal(qi_session.service("ALMemory"), config.safety.obstacle_distance_m)
        return cls(
            actuation,
            localization=NaoqiOdometryLocalization(motion),
            obstacle_signal=obstacles,
            kinematics=NaoqiKinematics(motion),
            config=config,
        )

    def configure_logging(self):
        """Apply the configured log level to the root logger."""
        logging.basicConfig(
            level=getattr(logging, self.config.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    # --- Locomotion ---

    def move_to(self, x: float, y: float, theta: float) -> bool:
        """
        Walk to a goal relative to the current robot pose. Blocking.

        Args:
            x: Distance along X in meters
            y: Distance along Y in meters
            theta: Rotation about Z in radians

        Returns:
            bool: True if the goal was reached
        """
        return self._run("move_to", lambda: self.arbiter.submit(MoveTo(Pose.planar(x, y, theta))))

    def move_vel(self, *velocities: float) -> bool:
        """
        Start moving with the given velocities. Returns immediately.

        Call with (x, y, theta) on a holonomic base or (x, theta) on a
        differential-drive base.

        Returns:
            bool: True if the motion was started

        Raises:
            TypeError: If not called with 2 or 3 velocities

        Example:
            >>> nav.move_vel(0.1, 0.0, 0.2)
            True
            >>> nav.move_stop()
            True
        """
        if len(velocities) == 3:
            x, y, theta = velocities
            command = MoveVelocity(x, y, theta, holonomic=True)
        elif len(velocities) == 2:
            x, theta = velocities
            command = MoveVelocity(x, 0.0, theta, holonomic=False)
        else:
            raise TypeError(f"move_vel() takes 2 or 3 velocities ({len(velocities)} given)")
        return self._run("move_vel", lambda: self.arbiter.submit(command))

    def move_stop(self) -> bool:
        """Stop the base. Safe to call at any time."""
        return self._run("move_stop", self.arbiter.stop)

    def move_along_path(self, poses: Sequence[Union[PoseStamped, Pose]]) -> bool:
        """
        Follow a path until its end, an obstacle or a move_stop().

        Bare Pose elements are treated as global-frame waypoints.

        Args:
            poses: Waypoints in traversal order

        Returns:
            bool: True only if every waypoint was reached
        """
        def follow():
            waypoints = [
                pose if isinstance(pose, PoseStamped) else PoseStamped(pose, seq=index, frame=Frame.GLOBAL)
                for index, pose in enumerate(poses)
            ]
            self.last_path_result = None
            result = self.path_follower.follow(waypoints)
            self.last_path_result = result
            return result.completed

        return self._run("move_along_path", follow)

    # --- Joints and postures ---

    def move_joint(
        self,
        joints: Union[str, Sequence[str]],
        angles: Union[float, Sequence[float]],
        speed: Optional[float] = None
    ) -> bool:
        """
        Move joints or chains to target angles. Blocking.

        Args:
            joints: Joint and/or chain names (a single name is accepted)
            angles: One angle per joint after chain expansion, in radians
            speed: Speed fraction in [0, 1] (default from MotionConfig)

        Returns:
            bool: True if the motion completed

        Example:
            >>> nav.move_joint(["HeadYaw", "HeadPitch"], [0.5, -0.1], 0.2)
            True
        """
        def move():
            names = [joints] if isinstance(joints, str) else joints
            targets = [angles] if isinstance(angles, numbers.Real) else angles
            if names is None:
                raise InvalidTarget("joint names are required")
            try:
                targets = tuple(float(angle) for angle in targets)
            except (TypeError, ValueError):
                raise InvalidTarget(f"angles must be numbers, got {angles!r}") from None
            command = MoveJoint(
                names=tuple(names),
                angles=targets,
                speed=self.config.motion.default_joint_speed if speed is None else speed,
            )
            return self.arbiter.submit(command)

        return self._run("move_joint", move)

    def take_predefined_posture(self, posture: str, speed: float) -> bool:
        """
        Go to a predefined posture. Blocking.

        Args:
            posture: One of StandInit, Stand, StandZero, LyingBack,
                LyingBelly, Crouch, Sit, SitRelax
            speed: Speed fraction in [0, 1]
        """
        return self._run(
            "take_predefined_posture",
            lambda: self.arbiter.submit(TakePosture(Posture.from_name(posture), speed)),
        )

    def rest(self, posture: str) -> bool:
        """
        Go to a safe posture and remove motor stiffness. Blocking.

        Args:
            posture: One of Crouch, Sit, SitRelax, LyingBelly, LyingBack
        """
        speed = self.config.motion.posture_speed_for_rest
        return self._run("rest", lambda: self.arbiter.submit(Rest(rest_posture(posture), speed)))

    # --- Gaze and pointing ---

    def point_arm(self, x: float, y: float, z: float) -> bool:
        """
        Point at a global-frame point with the arm on its side. Blocking.

        Returns:
            bool: True if the arm reached the pointing pose
        """
        def point():
            local = self.frames.to_robot_frame(x, y, z)
            chain = arm_for_point(local[1])
            return self.arbiter.submit(PointArm(chain, *local, speed=self.config.motion.point_arm_speed))

        return self._run("point_arm", point)

    def look_at_point(self, x: float, y: float, z: float) -> bool:
        """Turn the head so the camera looks at a global-frame point. Blocking."""
        def look():
            local = self.frames.to_robot_frame(x, y, z)
            return self.arbiter.submit(LookAt(*local, speed=self.config.motion.look_at_speed))

        return self._run("look_at_point", look)

    # --- Pose and frames ---

    def get_global_pose(self) -> Optional[PoseStamped]:
        """
        Current robot pose in the global frame.

        Returns:
            PoseStamped, or None if localization is unavailable
        """
        return self._query("get_global_pose", self.frames.get_global_pose)

    def set_global_pose(self, pose: Union[Pose, PoseStamped]) -> bool:
        """
        Correct localization with an externally estimated global pose.

        Returns:
            bool: True if localization accepted the correction
        """
        if isinstance(pose, PoseStamped):
            pose = pose.pose
        return self._run("set_global_pose", lambda: self.frames.set_global_pose(pose))

    def get_transform(self, chain: str, space) -> Optional[np.ndarray]:
        """
        Homogeneous transform of a chain or joint.

        Args:
            chain: Chain or joint name
            space: Space, its integer value (0 torso, 1 world, 2 robot) or name

        Returns:
            (4, 4) numpy array, or None on failure
        """
        return self._query("get_transform", lambda: self.frames.get_transform(chain, space))

    # --- Session ---

    def status(self) -> Dict[str, str]:
        """Slot modes, e.g. {'locomotion': 'idle', 'arms': 'blocking', 'head': 'idle'}."""
        return self.session.tracker.snapshot()

    def close(self):
        self.session.close()

    def __enter__(self) -> 'Navigation':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # --- Error boundary ---

    def _run(self, operation: str, call) -> bool:
        """Run an operation and collapse its errors to False."""
        result = self._query(operation, call)
        if isinstance(result, bool):
            return result
        return result is not None

    def _query(self, operation: str, call):
        """Run an operation and collapse its errors to None."""
        try:
            return call()
        except VALIDATION_ERRORS as e:
            logger.warning(f"[NAV] {operation} rejected: {e}")
        except MotionError as e:
            if e.waypoint_index is not None:
                logger.error(f"[NAV] {operation} failed at waypoint {e.waypoint_index}: {e}")
            else:
                logger.error(f"[NAV] {operation} failed: {e}")
        except Exception as e:
            logger.exception(f"[NAV] {operation} failed unexpectedly: {e}")
        return None
