"""
Motion System.

Handles all robot movement: joint topology, command validation and
arbitration, safety limits, path following and frame queries.
"""

from motion.topology import JointTopology, Posture
from motion import commands
from motion.safety_manager import SafetyManager
from motion.arbiter import CommandArbiter
from motion.path_follower import PathFollower, PathResult, PathStatus
from motion.frames import FrameService

__all__ = [
    "JointTopology",
    "Posture",
    "commands",
    "SafetyManager",
    "CommandArbiter",
    "PathFollower",
    "PathResult",
    "PathStatus",
    "FrameService",
]
