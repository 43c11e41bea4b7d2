# PATH: execution/state_machine.py
"""
Two-leg execution state machine.

EXECUTION STATE CONTRACT:
=========================

States (LegState):
  START              → opportunity received
  CAP_CHECK          → daily window rolled, cap evaluated
  ABORT_CAP          → daily cap reached (terminal)
  DRY_RUN_LOG        → decision logged, nothing submitted (terminal)
  BUY_QUOTE          → fresh quote requested from the buy venue
  BUY_EXECUTE        → buy swap submitted
  ABORT_BUY_FAILED   → buy quote or swap failed, no capital at risk (terminal)
  SELL_QUOTE         → fresh quote requested from the sell venue
  SELL_EXECUTE       → sell swap submitted
  ABORT_SELL_FAILED  → sell failed after a successful buy: UNHEDGED (terminal)
  DONE               → both legs succeeded (terminal)

Transitions:
  START        → CAP_CHECK
  CAP_CHECK    → ABORT_CAP | DRY_RUN_LOG | BUY_QUOTE
  BUY_QUOTE    → BUY_EXECUTE | ABORT_BUY_FAILED
  BUY_EXECUTE  → SELL_QUOTE | ABORT_BUY_FAILED
  SELL_QUOTE   → SELL_EXECUTE | ABORT_SELL_FAILED
  SELL_EXECUTE → DONE | ABORT_SELL_FAILED

The commit point is BUY_EXECUTE → SELL_QUOTE.
=========================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.constants import ErrorCode
from core.exceptions import ArbError
from core.time import now_iso


class LegState(str, Enum):
    """Execution states for one opportunity."""
    START = "START"
    CAP_CHECK = "CAP_CHECK"
    ABORT_CAP = "ABORT_CAP"
    DRY_RUN_LOG = "DRY_RUN_LOG"
    BUY_QUOTE = "BUY_QUOTE"
    BUY_EXECUTE = "BUY_EXECUTE"
    ABORT_BUY_FAILED = "ABORT_BUY_FAILED"
    SELL_QUOTE = "SELL_QUOTE"
    SELL_EXECUTE = "SELL_EXECUTE"
    ABORT_SELL_FAILED = "ABORT_SELL_FAILED"
    DONE = "DONE"


# Valid state transitions
VALID_TRANSITIONS: Dict[LegState, List[LegState]] = {
    LegState.START: [LegState.CAP_CHECK],
    LegState.CAP_CHECK: [LegState.ABORT_CAP, LegState.DRY_RUN_LOG, LegState.BUY_QUOTE],
    LegState.BUY_QUOTE: [LegState.BUY_EXECUTE, LegState.ABORT_BUY_FAILED],
    LegState.BUY_EXECUTE: [LegState.SELL_QUOTE, LegState.ABORT_BUY_FAILED],
    LegState.SELL_QUOTE: [LegState.SELL_EXECUTE, LegState.ABORT_SELL_FAILED],
    LegState.SELL_EXECUTE: [LegState.DONE, LegState.ABORT_SELL_FAILED],
    LegState.ABORT_CAP: [],  # Terminal state
    LegState.DRY_RUN_LOG: [],  # Terminal state
    LegState.ABORT_BUY_FAILED: [],  # Terminal state
    LegState.ABORT_SELL_FAILED: [],  # Terminal state
    LegState.DONE: [],  # Terminal state
}

# States reached only after the buy leg committed capital
POST_COMMIT_STATES = frozenset({
    LegState.SELL_QUOTE,
    LegState.SELL_EXECUTE,
    LegState.ABORT_SELL_FAILED,
    LegState.DONE,
})


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: LegState
    to_state: LegState
    timestamp: str = ""
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp,
            "reason": self.reason,
            "metadata": self.metadata,
        }


class InvalidTransitionError(ArbError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INVALID_TRANSITION, details)


@dataclass
class LegStateMachine:
    """
    State machine for one two-leg execution.

    Tracks current state and transition history.
    """
    trade_id: str
    state: LegState = LegState.START
    history: List[StateTransition] = field(default_factory=list)
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = now_iso()

    def can_transition_to(self, new_state: LegState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in VALID_TRANSITIONS.get(self.state, [])

    def transition_to(
        self,
        new_state: LegState,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises InvalidTransitionError if transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {[s.value for s in VALID_TRANSITIONS.get(self.state, [])]}",
                details={"from": self.state.value, "to": new_state.value},
            )

        transition = StateTransition(
            from_state=self.state,
            to_state=new_state,
            reason=reason,
            metadata=metadata or {},
        )

        self.history.append(transition)
        self.state = new_state

        return transition

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return len(VALID_TRANSITIONS.get(self.state, [])) == 0

    @property
    def is_success(self) -> bool:
        return self.state == LegState.DONE

    @property
    def is_committed(self) -> bool:
        """True once the buy leg has succeeded."""
        return self.state in POST_COMMIT_STATES

    @property
    def is_unhedged(self) -> bool:
        return self.state == LegState.ABORT_SELL_FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trade_id": self.trade_id,
            "state": self.state.value,
            "is_terminal": self.is_terminal,
            "is_success": self.is_success,
            "is_committed": self.is_committed,
            "created_at": self.created_at,
            "history": [t.to_dict() for t in self.history],
        }
