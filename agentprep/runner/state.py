"""
StateMachine - Tracks the setup pipeline's progress.

VALIDATING → CAPTURING → MUTATING → VERIFYING → SUCCEEDED
                 ↓           ↓           ↓
                 └──────→ ROLLING_BACK → FAILED

VALIDATING and CAPTURING may also go straight to FAILED: nothing has
been mutated yet, so there is nothing to roll back.
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime


class SetupState(str, Enum):
    """Setup pipeline states."""
    VALIDATING = "VALIDATING"
    CAPTURING = "CAPTURING"
    MUTATING = "MUTATING"
    VERIFYING = "VERIFYING"
    SUCCEEDED = "SUCCEEDED"
    ROLLING_BACK = "ROLLING_BACK"
    FAILED = "FAILED"


# Valid state transitions
TRANSITIONS: Dict[SetupState, List[SetupState]] = {
    SetupState.VALIDATING: [SetupState.CAPTURING, SetupState.FAILED],
    SetupState.CAPTURING: [SetupState.MUTATING, SetupState.ROLLING_BACK, SetupState.FAILED],
    SetupState.MUTATING: [SetupState.VERIFYING, SetupState.ROLLING_BACK],
    SetupState.VERIFYING: [SetupState.SUCCEEDED, SetupState.ROLLING_BACK],
    SetupState.ROLLING_BACK: [SetupState.FAILED],
    SetupState.SUCCEEDED: [],
    SetupState.FAILED: [],
}


@dataclass
class StateEvent:
    """Record of a state transition."""
    from_state: SetupState
    to_state: SetupState
    timestamp: datetime
    duration_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)


class StateMachine:
    """
    Manages state transitions for the setup pipeline.

    Ensures valid transitions and tracks history.
    """

    def __init__(self, initial_state: SetupState = SetupState.VALIDATING):
        self._state = initial_state
        self._history: List[StateEvent] = []
        self._state_entered_at = datetime.now()
        self._callbacks: Dict[SetupState, List[Callable]] = {}

    @property
    def state(self) -> SetupState:
        """Get current state."""
        return self._state

    @property
    def history(self) -> List[StateEvent]:
        """Get state transition history."""
        return self._history.copy()

    def can_transition(self, to_state: SetupState) -> bool:
        """Check if transition to target state is valid."""
        return to_state in TRANSITIONS.get(self._state, [])

    def transition(self, to_state: SetupState, metadata: Optional[Dict[str, Any]] = None):
        """
        Transition to a new state.

        Args:
            to_state: Target state
            metadata: Optional data about the transition

        Raises:
            ValueError: If transition is not valid
        """
        if not self.can_transition(to_state):
            raise ValueError(
                f"Invalid transition: {self._state.name} → {to_state.name}. "
                f"Valid transitions: {[s.name for s in TRANSITIONS.get(self._state, [])]}"
            )

        now = datetime.now()
        duration_ms = int((now - self._state_entered_at).total_seconds() * 1000)

        event = StateEvent(
            from_state=self._state,
            to_state=to_state,
            timestamp=now,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )
        self._history.append(event)

        self._state = to_state
        self._state_entered_at = now

        for callback in self._callbacks.get(to_state, []):
            try:
                callback(event)
            except Exception:
                pass

    def on_enter(self, state: SetupState, callback: Callable[[StateEvent], None]):
        """Register callback for state entry."""
        self._callbacks.setdefault(state, []).append(callback)

    def is_terminal(self) -> bool:
        """Check if in terminal state (SUCCEEDED or FAILED)."""
        return self._state in (SetupState.SUCCEEDED, SetupState.FAILED)

    def format_history(self) -> str:
        """Format history as human-readable string."""
        return '\n'.join(
            f"{event.from_state.name} → {event.to_state.name} ({event.duration_ms}ms)"
            for event in self._history
        )
