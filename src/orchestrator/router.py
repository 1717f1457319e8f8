"""
src/orchestrator/router.py

Router: runs the function-calling loop for one user turn, executes capability
calls, feeds the results back, and returns a tidy SessionAnswer.

Per turn:
    AWAITING_USER_INPUT -> MODEL_REQUESTED -> EXECUTING_CALLS -> MODEL_REQUESTED -> ... -> DONE

Every call in a round gets exactly one result before the batch goes back to
the model. Configuration, transport and cancellation failures abort the turn
without committing anything but the user's message.
"""


import json
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from config import DEFAULT_AGENT, EXECUTOR_TIMEOUT_S, MAX_TOOL_ROUNDS, MAX_WORKERS, AgentType
from orchestrator import prompts
from orchestrator.errors import ConfigurationError, ModelTransportError, TurnCancelledError
from orchestrator.events import ActivityBus
from orchestrator.grounding import merge_urls
from orchestrator.models import (
    ActivityEvent,
    ActivityStatus,
    AuditEntry,
    CapabilityCall,
    CapabilityDeclaration,
    CapabilityResult,
    ModelResponse,
    Role,
    SessionAnswer,
    Turn,
    TurnState,
)
from orchestrator.observability import bind_turn, unbind_turn
from orchestrator.registry import CapabilityRegistry
from orchestrator.state import Conversation


logger = structlog.get_logger(__name__)

FUNCTION_NOT_FOUND = {"error": "Function not found"}


# -------- Helpers --------------------------------------------------------------
def action_label(arguments: Dict[str, Any]) -> str:
    """Short label for the activity log: the call's action/queryType, else 'processing'."""

    label = arguments.get("action") or arguments.get("queryType")

    return str(label) if label else "processing"

def to_payload(raw: Any) -> Dict[str, Any]:
    """Executors hand back JSON text; anything that is not a JSON object gets wrapped."""

    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return {"result": raw if isinstance(raw, str) else repr(raw)}

    return value if isinstance(value, dict) else {"result": value}


# -------- Orchestrate ----------------------------------------------------------
class Orchestrator:
    """
    Drives the model <-> capability exchange for a conversation.

    Built once by the application entry point and passed to whoever needs it.
    The model is anything with check_ready() and
    complete(instruction, turns, capabilities) -> ModelResponse.

    With `registry_factory`, each conversation gets its own registry (and so
    its own executor data) on its first turn; `registry` is then only the
    catalogue used for listing. Without it every conversation uses `registry`.
    """

    def __init__(
            self,
            registry: Optional[CapabilityRegistry],
            model: Any,
            *,
            registry_factory: Optional[Callable[[], CapabilityRegistry]] = None,
            bus: Optional[ActivityBus] = None,
            instruction: str = prompts.SYSTEM_INSTRUCTION,
            max_tool_rounds: int = MAX_TOOL_ROUNDS,
            max_workers: int = MAX_WORKERS,
            executor_timeout: float = EXECUTOR_TIMEOUT_S,
    ) -> None:

        if registry is None and registry_factory is None:
            raise ValueError("Orchestrator needs a registry or a registry_factory.")

        self.registry = registry if registry is not None else registry_factory()
        self.registry_factory = registry_factory
        self.model = model
        self.bus = bus or ActivityBus()
        self.instruction = instruction
        self.max_tool_rounds = max_tool_rounds
        self.executor_timeout = executor_timeout
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="capability")

    def close(self) -> None:

        self._pool.shutdown(wait=True)

    def cancel(self, conversation: Conversation) -> None:
        """Ask the running turn to stop before its next model request."""

        conversation.request_cancel()

    def registry_for(self, conversation: Conversation) -> CapabilityRegistry:
        """The registry bound to `conversation`, created on first use when a factory is set."""

        if self.registry_factory is None:
            return self.registry
        if conversation.registry is None:
            conversation.registry = self.registry_factory()
            logger.info("session_registry_created", conversation_id=conversation.id)

        return conversation.registry

    def send_message(self, conversation: Conversation, user_text: str) -> SessionAnswer:
        """
        Entry point: run one user turn to completion.

        Raises:
            TurnInProgressError if the conversation already has a turn running.
            ConfigurationError if the API key is missing (before any model request).
            ModelTransportError if the model provider fails.
            TurnCancelledError if cancel() was requested.
        In all failure cases the user's Turn stays in the transcript and nothing else is added.
        """

        with conversation.turn():
            conversation.append(Turn(role=Role.USER, text=user_text.strip()))
            conversation.active_capability = DEFAULT_AGENT
            bind_turn(conversation.id, len(conversation))
            logger.info("turn_started", chars=len(user_text))

            try:
                answer, pending = self._run_turn(conversation, self.registry_for(conversation))
            except ConfigurationError as e:
                logger.warning("turn_aborted", reason="configuration", error=str(e))
                raise
            except ModelTransportError as e:
                logger.error("turn_aborted", reason="transport", error=str(e))
                raise
            except TurnCancelledError:
                logger.info("turn_aborted", reason="cancelled")
                raise
            finally:
                unbind_turn()

            conversation.commit(pending)
            self._transition(conversation, TurnState.DONE)
            logger.info(
                "turn_done",
                rounds=answer.rounds,
                resolved=answer.resolved_capability.value,
                citations=len(answer.citation_urls),
            )

            return answer

    # --- Loop ------------------------------------------------------------------
    def _run_turn(self, conversation: Conversation, registry: CapabilityRegistry) -> Tuple[SessionAnswer, List[Turn]]:

        self.model.check_ready()

        capabilities = registry.list()
        pending: List[Turn] = []
        audit: List[AuditEntry] = []
        citations: List[str] = []
        last_identity: Optional[AgentType] = None
        rounds = 0

        self._transition(conversation, TurnState.MODEL_REQUESTED)

        while True:
            history = conversation.snapshot() + tuple(pending)

            if rounds >= self.max_tool_rounds:
                # Safety stop: ask once more without tools and take whatever comes back
                response = self._request(
                    conversation, f"{self.instruction}\n\n{prompts.SUMMARISE_INSTRUCTION}", history, None
                )
                rounds += 1
                audit.append(AuditEntry(step="max_rounds_reached", ok=True, detail=f"Stopped after {self.max_tool_rounds} tool rounds; summarised."))
                logger.warning("max_rounds_reached", rounds=self.max_tool_rounds)
                break

            response = self._request(conversation, self.instruction, history, capabilities)
            rounds += 1

            # A reply with no calls is the final answer
            if not response.calls:
                audit.append(AuditEntry(step=f"model_round_{rounds}", ok=True, detail="No tool call: returning text."))
                break

            audit.append(AuditEntry(step=f"model_round_{rounds}", ok=True, detail=f"{len(response.calls)} tool call(s) requested."))
            pending.append(Turn(role=Role.MODEL, text=response.text, calls=response.calls))

            self._transition(conversation, TurnState.EXECUTING_CALLS)
            results, executed = self._execute_round(conversation, registry, response.calls, audit)
            pending.append(Turn(role=Role.TOOL, results=results))

            for result in results:
                found = result.payload.get("citations")
                if isinstance(found, list):
                    citations = merge_urls(citations, found)
            if executed:
                last_identity = executed[-1]

            self._transition(conversation, TurnState.MODEL_REQUESTED)

        citations = merge_urls(citations, response.citation_urls)
        final_text = (response.text or "").strip() or prompts.EMPTY_ANSWER
        pending.append(Turn(role=Role.MODEL, text=final_text))

        answer = SessionAnswer(
            text=final_text,
            resolved_capability=self._resolve_capability(last_identity, citations),
            citation_urls=citations,
            rounds=rounds,
            audit=audit,
        )

        return answer, pending

    def _request(
            self,
            conversation: Conversation,
            instruction: str,
            history: Sequence[Turn],
            capabilities: Optional[List[CapabilityDeclaration]],
    ) -> ModelResponse:

        if conversation.cancel_requested:
            raise TurnCancelledError("Turn cancelled before the next model request.")

        return self.model.complete(instruction, history, capabilities)

    @staticmethod
    def _resolve_capability(last_identity: Optional[AgentType], citations: List[str]) -> AgentType:
        """Credit the last executed call; with no calls, search if grounded, else the coordinator."""

        if last_identity is not None:
            return last_identity
        if citations:
            return AgentType.SEARCH

        return DEFAULT_AGENT

    def _transition(self, conversation: Conversation, to_state: TurnState) -> None:

        logger.debug("workflow_transition", from_state=conversation.state.value, to_state=to_state.value)
        conversation.state = to_state

    def _emit(self, conversation: Conversation, event: ActivityEvent) -> None:

        event = event.model_copy(update={"conversation_id": conversation.id})
        conversation.record(event)
        self.bus.publish(event)

    # --- Tool execution bridge -------------------------------------------------
    def _execute_round(
            self,
            conversation: Conversation,
            registry: CapabilityRegistry,
            calls: Sequence[CapabilityCall],
            audit: List[AuditEntry],
    ) -> Tuple[List[CapabilityResult], List[AgentType]]:
        """
        Fan the round's calls out to the pool, then wait for every one of them.

        Returns the results in request order and the identities of the calls
        that were actually executed (unknown names are not).
        """

        submitted: List[Tuple[CapabilityCall, Optional[CapabilityDeclaration], Optional[Future], float]] = []

        for call in calls:
            declaration = registry.lookup(call.name)
            label = action_label(call.arguments)
            audit.append(AuditEntry(step="tool_call", ok=declaration is not None, detail=f"Calling {call.name}", call=call))

            if declaration is None:
                logger.warning("capability_not_found", capability=call.name, call_id=call.call_id)
                self._emit(conversation, ActivityEvent(
                    capability=DEFAULT_AGENT, action=f"{call.name}: {label}",
                    status=ActivityStatus.ERROR, call_id=call.call_id,
                ))
                submitted.append((call, None, None, 0.0))
                continue

            conversation.active_capability = declaration.identity
            self._emit(conversation, ActivityEvent(capability=declaration.identity, action=label, call_id=call.call_id))
            deadline = time.monotonic() + self.executor_timeout
            submitted.append((call, declaration, self._pool.submit(self._invoke, registry, call), deadline))

        results: List[CapabilityResult] = []
        executed: List[AgentType] = []

        for call, declaration, future, deadline in submitted:
            if future is None:
                result = CapabilityResult(call_id=call.call_id, name=call.name, payload=dict(FUNCTION_NOT_FOUND))
            else:
                try:
                    result = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except FutureTimeoutError:
                    logger.error("capability_timeout", capability=call.name, call_id=call.call_id, timeout_s=self.executor_timeout)
                    result = CapabilityResult(
                        call_id=call.call_id, name=call.name,
                        payload={"status": "error", "message": f"{call.name} timed out after {self.executor_timeout:g}s."},
                    )
            results.append(result)

        # Completion events after the barrier, in request order
        for (call, declaration, _, _), result in zip(submitted, results):
            audit.append(AuditEntry(
                step="tool_result", ok=result.ok,
                detail=("ok" if result.ok else str(result.payload.get("message") or result.payload.get("error") or "error")),
                call=call, result=result,
            ))
            if declaration is None:
                continue
            executed.append(declaration.identity)
            self._emit(conversation, ActivityEvent(
                capability=declaration.identity, action=action_label(call.arguments),
                status=ActivityStatus.SUCCESS if result.ok else ActivityStatus.ERROR, call_id=call.call_id,
            ))

        return results, executed

    def _invoke(self, registry: CapabilityRegistry, call: CapabilityCall) -> CapabilityResult:
        """Run one executor. Never raises: a crash becomes an error payload."""

        started = time.perf_counter()
        try:
            raw = registry.executor_for(call.name).execute(call.arguments)
            payload = to_payload(raw)
        except Exception as e:
            logger.exception("capability_crashed", capability=call.name, call_id=call.call_id)
            payload = {"status": "error", "message": str(e) or e.__class__.__name__}

        result = CapabilityResult(call_id=call.call_id, name=call.name, payload=payload)
        logger.info(
            "capability_executed",
            capability=call.name,
            call_id=call.call_id,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            ok=result.ok,
        )

        return result
