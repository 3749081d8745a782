"""
Command Arbiter.

Validates motion commands against the joint topology and the current
execution state, resolves coupled joints, applies the safety envelope and
forwards the result to the actuation driver.
"""

import math
import logging
from typing import Dict, Optional, Tuple

from config.settings import MotionConfig
from core.errors import (
    ActuationFailure,
    InvalidTarget,
    UnsafePosture,
    UnsupportedJoint,
    UnsupportedMotionMode,
)
from core.execution_tracker import ExecutionSlot
from core.session import NavigationSession
from hardware.interfaces import ActuationOutcome
from motion.commands import (
    FollowPath,
    LookAt,
    MotionCommand,
    MoveJoint,
    MoveStop,
    MoveTo,
    MoveVelocity,
    PointArm,
    Rest,
    TakePosture,
)
from motion.safety_manager import SafetyManager
from motion.topology import JointTopology, resolve_coupled


logger = logging.getLogger(__name__)


CHAIN_SLOTS: Dict[str, ExecutionSlot] = {
    "Head": ExecutionSlot.HEAD,
    "LArm": ExecutionSlot.ARMS,
    "RArm": ExecutionSlot.ARMS,
    "LLeg": ExecutionSlot.LOCOMOTION,
    "RLeg": ExecutionSlot.LOCOMOTION,
}

NO_MOTION = ActuationOutcome(success=True, message="speed is 0, nothing to do")


def clamp_speed(speed: float) -> float:
    """
    Clamp a speed fraction to [0, 1].

    Raises:
        InvalidTarget: If the speed is not a finite number
    """
    if not math.isfinite(speed):
        raise InvalidTarget(f"speed must be finite, got {speed}")
    return max(0.0, min(1.0, float(speed)))


class CommandArbiter:
    """
    Single entry point for every motion command of a session.

    Validation errors are raised before any actuator contact. Blocking
    commands occupy their slots until the driver reports a terminal
    outcome; background commands (velocities) keep the slot until
    superseded or stopped.

    Attributes:
        session: Session owning the execution state and the actuation driver
        topology: Joint topology of the active body
        safety: Safety envelope
        config: Motion defaults
    """

    def __init__(
        self,
        session: NavigationSession,
        topology: JointTopology,
        safety: SafetyManager,
        config: Optional[MotionConfig] = None
    ):
        """
        Initialize command arbiter.

        Args:
            session: Active navigation session
            topology: Joint topology for the active body variant
            safety: Safety manager applying the envelope
            config: Motion defaults

        Example:
            >>> arbiter = CommandArbiter(session, JointTopology("H25"), safety)
            >>> arbiter.submit(MoveTo(Pose.planar(0.5, 0.0, 0.0)))
        """
        self.session = session
        self.topology = topology
        self.safety = safety
        self.config = config or MotionConfig()

    @property
    def tracker(self):
        return self.session.tracker

    @property
    def actuation(self):
        return self.session.actuation

    def submit(self, command: MotionCommand) -> ActuationOutcome:
        """
        Validate and dispatch one command.

        Args:
            command: Any MotionCommand variant except FollowPath

        Returns:
            ActuationOutcome: Outcome reported by the driver

        Raises:
            MotionError: Any kind from the error taxonomy
        """
        self.session.ensure_open()

        if isinstance(command, MoveStop):
            return self.stop()
        if isinstance(command, MoveVelocity):
            return self._submit_velocity(command)
        if isinstance(command, MoveJoint):
            return self._submit_joints(command)
        if isinstance(command, (TakePosture, Rest)):
            return self._submit_posture(command)
        if isinstance(command, MoveTo):
            goal = command.goal
            self._require_finite(goal.x, goal.y, goal.z, goal.theta)
            return self._dispatch_blocking(command, command.slots)
        if isinstance(command, (LookAt, PointArm)):
            return self._submit_pointing(command)
        if isinstance(command, FollowPath):
            raise TypeError("FollowPath is executed by PathFollower, not submitted directly")

        raise TypeError(f"Unsupported command type: {type(command).__name__}")

    def stop(self) -> ActuationOutcome:
        """
        Stop locomotion.

        Valid in any state and idempotent. Only a communication failure
        with the driver makes it fail; the slot state is then left as is.
        """
        self.session.ensure_open()
        self.actuation.stop(ExecutionSlot.LOCOMOTION)
        self.tracker.stop(ExecutionSlot.LOCOMOTION)
        logger.info("[ARBITER] Locomotion stopped")
        return ActuationOutcome(success=True, message="stopped")

    # --- Per-kind handling ---

    def _submit_velocity(self, command: MoveVelocity) -> ActuationOutcome:
        self._require_finite(command.x, command.y, command.theta)

        holonomic = bool(self.actuation.holonomic_capable())
        if command.holonomic != holonomic:
            form = "x, y, theta" if command.holonomic else "x, theta"
            base = "holonomic" if holonomic else "non-holonomic"
            raise UnsupportedMotionMode(f"({form}) velocity form is not valid on a {base} base")

        command = self.safety.limit_velocity(command)
        previous = self.tracker.state(ExecutionSlot.LOCOMOTION)
        ticket = self.tracker.begin(command.slots, command.kind, blocking=False)
        logger.info(f"[ARBITER] move_vel ({command.x:.3f}, {command.y:.3f}, {command.theta:.3f})")
        try:
            outcome = self.actuation.execute_motion(command)
        except Exception:
            self.tracker.restore(ticket, ExecutionSlot.LOCOMOTION, previous)
            raise

        # A rejected replacement leaves the previous velocity running
        if not outcome.success:
            self.tracker.restore(ticket, ExecutionSlot.LOCOMOTION, previous)
            raise ActuationFailure(outcome.message or "velocity command rejected")
        return outcome

    def _submit_joints(self, command: MoveJoint) -> ActuationOutcome:
        if not command.names:
            raise InvalidTarget("no joint names given")

        joints = self.topology.expand(command.names)
        if len(joints) != len(command.angles):
            raise InvalidTarget(
                f"{len(joints)} joints ({', '.join(joints)}) but {len(command.angles)} angles"
            )
        self._require_finite(*command.angles)
        speed = clamp_speed(command.speed)
        if speed == 0.0:
            logger.info("[ARBITER] move_joint with speed 0, skipping")
            return NO_MOTION

        targets = resolve_coupled(dict(zip(joints, (float(a) for a in command.angles))))
        names = tuple(targets.keys())
        angles = self.safety.limit_joints(names, tuple(targets.values()))
        resolved = MoveJoint(names=names, angles=angles, speed=speed)

        return self._dispatch_blocking(resolved, self._joint_slots(names))

    def _submit_posture(self, command) -> ActuationOutcome:
        if isinstance(command, Rest) and not command.posture.safe_for_rest:
            raise UnsafePosture(f"'{command.posture.value}' is not a safe rest posture")

        speed = clamp_speed(command.speed)
        if speed == 0.0:
            logger.info(f"[ARBITER] {command.kind} with speed 0, skipping")
            return NO_MOTION

        resolved = type(command)(posture=command.posture, speed=speed)
        return self._dispatch_blocking(resolved, resolved.slots)

    def _submit_pointing(self, command) -> ActuationOutcome:
        self._require_finite(command.x, command.y, command.z)
        if isinstance(command, PointArm) and command.chain not in ("LArm", "RArm"):
            raise UnsupportedJoint(f"Cannot point with chain {command.chain}")

        speed = clamp_speed(command.speed)
        if speed == 0.0:
            logger.info(f"[ARBITER] {command.kind} with speed 0, skipping")
            return NO_MOTION

        if isinstance(command, PointArm):
            resolved = PointArm(command.chain, command.x, command.y, command.z, speed)
        else:
            resolved = LookAt(command.x, command.y, command.z, speed)
        return self._dispatch_blocking(resolved, resolved.slots)

    # --- Dispatch ---

    def _dispatch_blocking(self, command: MotionCommand, slots: Tuple[ExecutionSlot, ...]) -> ActuationOutcome:
        """Occupy slots, run the command to its terminal outcome, release."""
        ticket = self.tracker.begin(slots, command.kind, blocking=True)
        logger.info(f"[ARBITER] {command.kind} -> {[slot.value for slot in slots]}")
        try:
            outcome = self.actuation.execute_motion(command)
        finally:
            self.tracker.finish(ticket)

        if not outcome.success:
            logger.warning(f"[ARBITER] {command.kind} failed: {outcome.message}")
            raise ActuationFailure(outcome.message or f"{command.kind} did not complete")
        return outcome

    def _joint_slots(self, joints) -> Tuple[ExecutionSlot, ...]:
        slots = []
        for joint in joints:
            slot = CHAIN_SLOTS[self.topology.chain_of(joint)]
            if slot not in slots:
                slots.append(slot)
        return tuple(slots)

    @staticmethod
    def _require_finite(*values: float):
        if not SafetyManager.is_finite(*values):
            raise InvalidTarget(f"non-finite target value in {values}")
