"""
Execution Tracker.

Per-slot state machine recording which motion domains (locomotion, arms,
head) are idle, running a blocking command or running a background motion.
Provides thread-safe acquisition with Busy rejection.
"""

import time
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from core.errors import Busy


logger = logging.getLogger(__name__)


class ExecutionSlot(Enum):
    """Independent concurrency domains for motion."""

    LOCOMOTION = "locomotion"
    ARMS = "arms"
    HEAD = "head"


ALL_SLOTS: Tuple[ExecutionSlot, ...] = (ExecutionSlot.LOCOMOTION, ExecutionSlot.ARMS, ExecutionSlot.HEAD)


class SlotMode(Enum):
    """State of one slot."""

    IDLE = "idle"
    BLOCKING = "blocking"
    BACKGROUND = "background"


@dataclass
class SlotState:
    """
    Current occupant of one execution slot.

    Attributes:
        mode: Idle, Blocking or Background
        command_kind: Kind of the active command ("" when idle)
        ticket: Dispatch ticket of the active command (0 when idle)
        since: Time of the last transition
    """

    mode: SlotMode = SlotMode.IDLE
    command_kind: str = ""
    ticket: int = 0
    since: float = field(default_factory=time.time)

    @property
    def is_idle(self) -> bool:
        return self.mode is SlotMode.IDLE

    def occupy(self, mode: SlotMode, command_kind: str, ticket: int):
        self.mode = mode
        self.command_kind = command_kind
        self.ticket = ticket
        self.since = time.time()

    def clear(self):
        self.mode = SlotMode.IDLE
        self.command_kind = ""
        self.ticket = 0
        self.since = time.time()


class ExecutionTracker:
    """
    Finite-state machine per execution slot.

    Transitions:
        IDLE -> BLOCKING            blocking dispatch
        BACKGROUND -> BLOCKING      blocking dispatch supersedes background motion
        IDLE/BACKGROUND -> BACKGROUND  non-blocking dispatch (replaces)
        any -> IDLE                 stop, or terminal outcome of the owning ticket

    A dispatch touching a slot that is BLOCKING fails with Busy. Multi-slot
    dispatches are all-or-nothing.

    Example:
        >>> tracker = ExecutionTracker()
        >>> ticket = tracker.begin([ExecutionSlot.HEAD], "look_at", blocking=True)
        >>> tracker.mode(ExecutionSlot.HEAD)
        <SlotMode.BLOCKING: 'blocking'>
        >>> tracker.finish(ticket)
        >>> tracker.mode(ExecutionSlot.HEAD)
        <SlotMode.IDLE: 'idle'>
    """

    def __init__(self):
        """Initialize every slot to Idle."""
        self._slots: Dict[ExecutionSlot, SlotState] = {slot: SlotState() for slot in ALL_SLOTS}
        self._lock = threading.Lock()
        self._next_ticket = 1
        self._stop_counts: Dict[ExecutionSlot, int] = {slot: 0 for slot in ALL_SLOTS}

    def begin(self, slots: Iterable[ExecutionSlot], command_kind: str, blocking: bool) -> int:
        """
        Atomically occupy the given slots for a new command.

        Args:
            slots: Slots touched by the command
            command_kind: Command kind for diagnostics
            blocking: True for blocking commands, False for background ones

        Returns:
            int: Dispatch ticket to hand back to finish()

        Raises:
            Busy: If any of the slots holds an outstanding blocking command
        """
        slots = tuple(slots)
        with self._lock:
            for slot in slots:
                state = self._slots[slot]
                if state.mode is SlotMode.BLOCKING:
                    raise Busy(
                        f"{slot.value} slot is busy with blocking '{state.command_kind}'"
                    )

            ticket = self._next_ticket
            self._next_ticket += 1
            mode = SlotMode.BLOCKING if blocking else SlotMode.BACKGROUND
            for slot in slots:
                previous = self._slots[slot]
                if previous.mode is SlotMode.BACKGROUND:
                    logger.debug(f"[TRACKER] {slot.value}: '{previous.command_kind}' superseded")
                previous.occupy(mode, command_kind, ticket)

        logger.debug(f"[TRACKER] ticket {ticket} '{command_kind}' -> {[s.value for s in slots]} ({mode.value})")
        return ticket

    def finish(self, ticket: int):
        """
        Release the slots still held by a ticket.

        Slots that were stopped or superseded since the ticket was issued
        are left alone.
        """
        with self._lock:
            for slot, state in self._slots.items():
                if state.ticket == ticket and state.mode is not SlotMode.IDLE:
                    state.clear()
                    logger.debug(f"[TRACKER] {slot.value} -> idle (ticket {ticket})")

    def restore(self, ticket: int, slot: ExecutionSlot, previous: SlotState):
        """
        Give a slot back to the command a failed dispatch had superseded.

        Only applies while the slot is still held by the failed ticket; an
        Idle previous state simply releases the slot.

        Args:
            ticket: Ticket of the failed dispatch
            slot: Slot to restore
            previous: State of the slot before the dispatch (from state())
        """
        with self._lock:
            state = self._slots[slot]
            if state.ticket != ticket or state.is_idle:
                return
            if previous.is_idle:
                state.clear()
            else:
                state.occupy(previous.mode, previous.command_kind, previous.ticket)
        logger.debug(f"[TRACKER] {slot.value} restored to {previous.mode.value} (ticket {ticket} failed)")

    def stop(self, slot: ExecutionSlot):
        """Force a slot back to Idle regardless of its current state."""
        with self._lock:
            self._slots[slot].clear()
            self._stop_counts[slot] += 1
        logger.debug(f"[TRACKER] {slot.value} stopped")

    def reset(self):
        """Return every slot to Idle (session teardown)."""
        with self._lock:
            for slot, state in self._slots.items():
                state.clear()
                self._stop_counts[slot] += 1

    def stop_count(self, slot: ExecutionSlot) -> int:
        """
        Number of times a slot was stopped or reset.

        Long-running sequences compare it against the value they started
        with to notice a stop issued in between.
        """
        with self._lock:
            return self._stop_counts[slot]

    def mode(self, slot: ExecutionSlot) -> SlotMode:
        with self._lock:
            return self._slots[slot].mode

    def state(self, slot: ExecutionSlot) -> SlotState:
        """Copy of a slot's state."""
        with self._lock:
            current = self._slots[slot]
            return SlotState(current.mode, current.command_kind, current.ticket, current.since)

    def is_idle(self, slot: Optional[ExecutionSlot] = None) -> bool:
        """
        Check whether a slot (or every slot when None) is idle.

        Returns:
            bool: True if idle
        """
        with self._lock:
            if slot is not None:
                return self._slots[slot].is_idle
            return all(state.is_idle for state in self._slots.values())

    def snapshot(self) -> Dict[str, str]:
        """
        Get a summary of slot modes for debugging.

        Returns:
            Dict mapping slot name to mode name
        """
        with self._lock:
            return {slot.value: state.mode.value for slot, state in self._slots.items()}
