"""
Navigation System Configuration Settings.

Centralizes the constants used by the motion arbitration layer: the active
hardware variant, default speed fractions, the safety envelope and the
localization tolerance.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Set


logger = logging.getLogger(__name__)


@dataclass
class RobotConfig:
    """Hardware variant of the robot body."""

    body_type: str = "H25"
    supported_body_types: Set[str] = field(default_factory=lambda: {"H25", "H21"})

    # Only used by collaborators that cannot ask the hardware themselves
    holonomic: bool = True


@dataclass
class MotionConfig:
    """Default speed fractions (0.0 - 1.0) for blocking motions."""

    default_joint_speed: float = 0.3
    posture_speed_for_rest: float = 0.5
    point_arm_speed: float = 0.3
    look_at_speed: float = 0.2


@dataclass
class SafetyConfig:
    """Safety envelope applied before anything reaches the actuators."""

    # Velocity envelope
    max_linear_velocity: float = 0.35  # m/s
    max_angular_velocity: float = 1.0  # rad/s

    # Joint envelope
    clamp_joint_angles: bool = True

    # Sonar obstacle threshold
    obstacle_distance_m: float = 0.3

    # Treat a failed obstacle read as blocked instead of clear
    fail_safe_on_sensor_error: bool = False


@dataclass
class LocalizationConfig:
    """Localization bookkeeping settings."""

    pose_tolerance: float = 1e-3


@dataclass
class NavigationConfig:
    """
    Main navigation configuration container.

    Aggregates all sub-configurations into a single object that can be
    easily passed around and tested.
    """

    robot: RobotConfig = field(default_factory=RobotConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    safety: SafetyConfig = field(default_factory=SafetyConfig)
    localization: LocalizationConfig = field(default_factory=LocalizationConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'NavigationConfig':
        """
        Load configuration from environment variables.

        Environment variables can override default values:
        - NAV_BODY_TYPE: hardware variant ("H25" or "H21")
        - NAV_HOLONOMIC: "1"/"true" or "0"/"false"
        - NAV_DEFAULT_JOINT_SPEED: default speed fraction for move_joint
        - NAV_MAX_LINEAR_VELOCITY: linear velocity cap in m/s
        - NAV_FAIL_SAFE_ON_SENSOR_ERROR: "1"/"true" to stop paths on sensor read errors
        - NAV_LOG_LEVEL: logging level name

        Returns:
            NavigationConfig: Configuration object with environment overrides applied

        Example:
            >>> os.environ['NAV_BODY_TYPE'] = 'H21'
            >>> config = NavigationConfig.from_env()
            >>> assert config.robot.body_type == 'H21'
        """
        config = cls()

        # Robot overrides
        if 'NAV_BODY_TYPE' in os.environ:
            body_type = os.environ['NAV_BODY_TYPE'].strip().upper()
            if body_type in config.robot.supported_body_types:
                config.robot.body_type = body_type
            else:
                logger.warning(f"[CONFIG] Ignoring unknown body type: {body_type}")

        if 'NAV_HOLONOMIC' in os.environ:
            config.robot.holonomic = os.environ['NAV_HOLONOMIC'].strip().lower() in ("1", "true", "yes")

        # Motion overrides
        if 'NAV_DEFAULT_JOINT_SPEED' in os.environ:
            try:
                speed = float(os.environ['NAV_DEFAULT_JOINT_SPEED'])
                config.motion.default_joint_speed = max(0.0, min(1.0, speed))
            except ValueError:
                logger.warning("[CONFIG] NAV_DEFAULT_JOINT_SPEED is not a number, keeping default")

        # Safety overrides
        if 'NAV_MAX_LINEAR_VELOCITY' in os.environ:
            try:
                config.safety.max_linear_velocity = abs(float(os.environ['NAV_MAX_LINEAR_VELOCITY']))
            except ValueError:
                logger.warning("[CONFIG] NAV_MAX_LINEAR_VELOCITY is not a number, keeping default")

        if 'NAV_FAIL_SAFE_ON_SENSOR_ERROR' in os.environ:
            config.safety.fail_safe_on_sensor_error = (
                os.environ['NAV_FAIL_SAFE_ON_SENSOR_ERROR'].strip().lower() in ("1", "true", "yes")
            )

        if 'NAV_LOG_LEVEL' in os.environ:
            config.log_level = os.environ['NAV_LOG_LEVEL'].strip().upper()

        return config


# Default configuration instance
default_config = NavigationConfig()
