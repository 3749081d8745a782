"""
Navigation Session.

Explicit per-robot session state: the execution tracker and the actuation
driver it guards. Created when a robot session starts and closed when it
ends; nothing about slot state lives at module level.
"""

import logging
import threading

from core.errors import CommunicationError, MotionError
from core.execution_tracker import ExecutionSlot, ExecutionTracker


logger = logging.getLogger(__name__)


class NavigationSession:
    """
    Lifecycle owner of the execution state for one robot.

    Attributes:
        actuation: IActuation driver of the robot
        tracker: Execution slot state machine
        name: Session name used in log messages

    Example:
        >>> with NavigationSession(MockActuation()) as session:
        ...     session.tracker.is_idle()
        True
    """

    def __init__(self, actuation, name: str = "robot"):
        """
        Start a session.

        Args:
            actuation: IActuation implementation for this robot
            name: Session name for logs
        """
        self.actuation = actuation
        self.name = name
        self.tracker = ExecutionTracker()
        self._closed = threading.Event()
        logger.info(f"[SESSION] '{name}' started")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def ensure_open(self):
        """
        Raises:
            CommunicationError: If the session was closed
        """
        if self._closed.is_set():
            raise CommunicationError(f"session '{self.name}' closed")

    def close(self):
        """
        Tear the session down.

        Stops the base if it is still moving (best effort) and returns every
        slot to Idle. Closing twice is a no-op.
        """
        if self._closed.is_set():
            return
        self._closed.set()

        if not self.tracker.is_idle(ExecutionSlot.LOCOMOTION):
            try:
                self.actuation.stop(ExecutionSlot.LOCOMOTION)
            except MotionError as e:
                logger.warning(f"[SESSION] Stop on close failed: {e}")

        self.tracker.reset()
        logger.info(f"[SESSION] '{self.name}' closed")

    def __enter__(self) -> 'NavigationSession':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
