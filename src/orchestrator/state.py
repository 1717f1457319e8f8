"""
src/orchestrator/state.py

Conversation state for one chat session:
- an append-only transcript of Turns (replayed verbatim to the model),
- an append-only activity log,
- the ephemeral "active capability" indicator and the current TurnState,
- the capability registry (and so the hospital data) this session works on.

The orchestration loop is the only writer. Readers get snapshots.
"""


import threading
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from config import AgentType
from orchestrator.errors import TurnInProgressError
from orchestrator.models import ActivityEvent, Turn, TurnState
from orchestrator.registry import CapabilityRegistry


class Conversation:

    def __init__(self, history: Optional[Sequence[Turn]] = None) -> None:

        self.id = uuid.uuid4().hex[:12]
        self._turns: List[Turn] = list(history or [])
        self._activity: List[ActivityEvent] = []
        self._turn_lock = threading.Lock()
        self._cancel = threading.Event()
        self.state: TurnState = TurnState.AWAITING_USER_INPUT
        self.active_capability: Optional[AgentType] = None
        # Bound by the orchestrator when it builds registries per conversation
        self.registry: Optional[CapabilityRegistry] = None

    # --- Transcript ------------------------------------------------------------
    def append(self, turn: Turn) -> None:

        self._turns.append(turn)

    def commit(self, turns: Sequence[Turn]) -> None:
        """Append a finished turn's buffered model/tool turns in one step."""

        self._turns.extend(turns)

    def snapshot(self) -> Tuple[Turn, ...]:

        return tuple(self._turns)

    def __len__(self) -> int:

        return len(self._turns)

    # --- Activity log ----------------------------------------------------------
    def record(self, event: ActivityEvent) -> None:

        self._activity.append(event)

    def activity(self) -> Tuple[ActivityEvent, ...]:

        return tuple(self._activity)

    # --- Turn control ----------------------------------------------------------
    @property
    def busy(self) -> bool:

        return self._turn_lock.locked()

    @contextmanager
    def turn(self) -> Iterator["Conversation"]:
        """
        Hold the conversation for one user turn. A second caller is rejected
        with TurnInProgressError instead of being interleaved.
        """

        if not self._turn_lock.acquire(blocking=False):
            raise TurnInProgressError("A request is already being processed for this conversation.")

        self._cancel.clear()
        try:
            yield self
        finally:
            self.active_capability = None
            self.state = TurnState.AWAITING_USER_INPUT
            self._turn_lock.release()

    def request_cancel(self) -> None:

        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:

        return self._cancel.is_set()
