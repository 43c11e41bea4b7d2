# PATH: execution/__init__.py
"""
Execution layer for XARB.

- state_machine: two-leg state machine with validated transitions
- dex_dex_executor: daily cap, dry-run gate and leg sequencing
"""

from execution.state_machine import (
    LegState,
    LegStateMachine,
    StateTransition,
    InvalidTransitionError,
    VALID_TRANSITIONS,
)
from execution.dex_dex_executor import (
    DailyTradeWindow,
    ExecutionResult,
    ExecutorConfig,
    DexDexExecutor,
)

__all__ = [
    # State machine
    "LegState",
    "LegStateMachine",
    "StateTransition",
    "InvalidTransitionError",
    "VALID_TRANSITIONS",
    # Executor
    "DailyTradeWindow",
    "ExecutionResult",
    "ExecutorConfig",
    "DexDexExecutor",
]
