"""Transaction lifecycle tracking.

State Machine Diagram:

    ┌──────┐  begin   ┌─────────────┐  prepare  ┌──────────┐
    │ IDLE │ ───────► │ INITIALIZED │ ────────► │ PREPARED │
    └──────┘          └──────┬──────┘           └────┬─────┘
                             │ fail                  │ fail
                             ▼                       ▼
                        ┌────────┐               ┌────────┐
                        │ FAILED │               │ FAILED │
                        └────┬───┘               └────┬───┘
                             └────────┬───────────────┘
                                      ▼ release (from any open state)
                                ┌──────────┐
                                │ RELEASED │
                                └──────────┘

The engine allows a single open transaction; ``Transaction`` wraps the
engine calls so that leaving the ``with`` block always releases it.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Set, Tuple

from ..common.errors import EngineError
from ..common.logger import get_logger
from ..engine.base import QueryEngine

logger = get_logger("transaction")


class TransactionState(str, Enum):
    """States of an engine transaction."""

    IDLE = "idle"
    INITIALIZED = "initialized"
    PREPARED = "prepared"
    FAILED = "failed"
    RELEASED = "released"


class TransactionEvent(str, Enum):
    """Actions that trigger state transitions."""

    BEGIN = "begin"  # IDLE → INITIALIZED
    PREPARE = "prepare"  # INITIALIZED → PREPARED
    FAIL = "fail"  # INITIALIZED/PREPARED → FAILED
    RELEASE = "release"  # INITIALIZED/PREPARED/FAILED → RELEASED


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""

    from_state: TransactionState
    to_state: TransactionState
    event: TransactionEvent


TRANSITION_RULES = [
    TransitionRule(TransactionState.IDLE, TransactionState.INITIALIZED, TransactionEvent.BEGIN),
    TransitionRule(TransactionState.INITIALIZED, TransactionState.PREPARED, TransactionEvent.PREPARE),
    TransitionRule(TransactionState.INITIALIZED, TransactionState.FAILED, TransactionEvent.FAIL),
    TransitionRule(TransactionState.PREPARED, TransactionState.FAILED, TransactionEvent.FAIL),
    TransitionRule(TransactionState.INITIALIZED, TransactionState.RELEASED, TransactionEvent.RELEASE),
    TransitionRule(TransactionState.PREPARED, TransactionState.RELEASED, TransactionEvent.RELEASE),
    TransitionRule(TransactionState.FAILED, TransactionState.RELEASED, TransactionEvent.RELEASE),
]

TRANSITION_TARGETS: Dict[Tuple[TransactionState, TransactionEvent], TransactionState] = {
    (rule.from_state, rule.event): rule.to_state for rule in TRANSITION_RULES
}

# States in which the engine holds the transaction lock
OPEN_STATES: Set[TransactionState] = {
    TransactionState.INITIALIZED,
    TransactionState.PREPARED,
    TransactionState.FAILED,
}


def get_target_state(
    from_state: TransactionState, event: TransactionEvent
) -> Optional[TransactionState]:
    """Get the target state for a transition, None if it is not allowed."""
    return TRANSITION_TARGETS.get((from_state, event))


class TransitionError(EngineError):
    """Raised when a transaction state transition is invalid."""

    def __init__(self, from_state: TransactionState, event: TransactionEvent):
        super().__init__(f"Cannot {event.value} transaction in state {from_state.value}")
        self.from_state = from_state
        self.event = event


class Transaction:
    """One engine transaction, from ``begin`` to ``release``.

    Usage::

        with Transaction(engine) as trans:
            trans.sysupgrade()
            trans.prepare()
            packages = trans.additions()
    """

    def __init__(self, engine: QueryEngine):
        self.engine = engine
        self._state = TransactionState.IDLE

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state in OPEN_STATES

    def _advance(self, event: TransactionEvent) -> None:
        target = get_target_state(self._state, event)
        if target is None:
            raise TransitionError(self._state, event)
        logger.debug(f"transaction {self._state.value} -> {target.value}")
        self._state = target

    def begin(self) -> None:
        if get_target_state(self._state, TransactionEvent.BEGIN) is None:
            raise TransitionError(self._state, TransactionEvent.BEGIN)
        self.engine.begin_transaction()
        self._advance(TransactionEvent.BEGIN)

    def sysupgrade(self) -> None:
        """Request a full system upgrade.

        Raises:
            EngineError: If the engine refuses; the transaction is then FAILED
        """
        if self._state is not TransactionState.INITIALIZED:
            raise EngineError(f"Transaction is {self._state.value}, not initialized")
        try:
            self.engine.sysupgrade()
        except EngineError:
            self._advance(TransactionEvent.FAIL)
            raise

    def prepare(self) -> None:
        """Validate the plan.

        Raises:
            PrepareError: If the plan cannot be satisfied; the transaction
                is then FAILED
        """
        if get_target_state(self._state, TransactionEvent.PREPARE) is None:
            raise TransitionError(self._state, TransactionEvent.PREPARE)
        try:
            self.engine.prepare_transaction()
        except EngineError:
            self._advance(TransactionEvent.FAIL)
            raise
        self._advance(TransactionEvent.PREPARE)

    def additions(self):
        self._require_prepared()
        return self.engine.transaction_additions()

    def removals(self):
        self._require_prepared()
        return self.engine.transaction_removals()

    def _require_prepared(self) -> None:
        if self._state is not TransactionState.PREPARED:
            raise EngineError(f"Transaction is {self._state.value}, not prepared")

    def release(self) -> None:
        """Release the transaction; a no-op unless it is open."""
        if not self.is_open:
            return
        try:
            self.engine.release_transaction()
        finally:
            self._advance(TransactionEvent.RELEASE)

    def __enter__(self) -> "Transaction":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
