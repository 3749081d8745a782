"""
Safety Manager.

Applies the safety envelope (joint ranges, velocity caps) to commands before
they reach the actuators, and polls the obstacle signal on behalf of the
path follower.
"""

import math
import logging
from typing import Optional, Sequence, Tuple

from hardware.interfaces import IObstacleSignal
from config.settings import SafetyConfig
from motion.commands import MoveVelocity
from motion.topology import JointTopology


logger = logging.getLogger(__name__)


class SafetyManager:
    """
    Manages robot safety limits and obstacle polling.

    Attributes:
        config: Safety configuration
        topology: Joint topology used for joint ranges
        obstacle_signal: Optional obstacle detector
    """

    def __init__(
        self,
        config: SafetyConfig,
        topology: JointTopology,
        obstacle_signal: Optional[IObstacleSignal] = None
    ):
        """
        Initialize safety manager.

        Args:
            config: Safety configuration with limits
            topology: Joint topology of the active body
            obstacle_signal: Optional obstacle detector for path checks

        Example:
            >>> from config.settings import SafetyConfig
            >>> safety = SafetyManager(SafetyConfig(), JointTopology("H25"))
        """
        self.config = config
        self.topology = topology
        self.obstacle_signal = obstacle_signal

    def is_path_clear(self) -> bool:
        """
        Check if the way ahead is free of obstacles.

        The signal is best-effort: a failed read is logged and treated as
        clear, or as blocked when fail_safe_on_sensor_error is set. No signal
        at all means clear.

        Returns:
            True if no obstacle is reported, False if blocked
        """
        if self.obstacle_signal is None:
            return True

        try:
            blocked = bool(self.obstacle_signal.obstacle_present())
        except Exception as e:
            fail_safe = self.config.fail_safe_on_sensor_error
            logger.error(
                f"[SAFETY] Failed to read obstacle signal: {e} "
                f"(treating as {'blocked' if fail_safe else 'clear'})"
            )
            return not fail_safe

        if blocked:
            logger.warning("[SAFETY] OBSTACLE DETECTED")
        return not blocked

    def limit_velocity(self, command: MoveVelocity) -> MoveVelocity:
        """
        Clamp a velocity command to the configured envelope.

        Args:
            command: Requested velocity

        Returns:
            The same command, or a clamped copy
        """
        max_lin = self.config.max_linear_velocity
        max_ang = self.config.max_angular_velocity

        x = max(-max_lin, min(max_lin, command.x))
        y = max(-max_lin, min(max_lin, command.y))
        theta = max(-max_ang, min(max_ang, command.theta))

        if (x, y, theta) == (command.x, command.y, command.theta):
            return command

        logger.warning(
            f"[SAFETY] Velocity ({command.x:.3f}, {command.y:.3f}, {command.theta:.3f}) "
            f"clamped to ({x:.3f}, {y:.3f}, {theta:.3f})"
        )
        return MoveVelocity(x=x, y=y, theta=theta, holonomic=command.holonomic)

    def limit_joints(self, joints: Sequence[str], angles: Sequence[float]) -> Tuple[float, ...]:
        """Clamp each angle to its joint range when clamping is enabled."""
        if not self.config.clamp_joint_angles:
            return tuple(angles)
        return tuple(self.topology.clamp(joint, angle) for joint, angle in zip(joints, angles))

    @staticmethod
    def is_finite(*values: float) -> bool:
        return all(math.isfinite(v) for v in values)
