"""
Unit tests for the Gradio-facing helpers (rendering and the turn runner).
"""

from datetime import datetime

from app import build_orchestrator, error_message, format_answer, render_agents, render_logs, run_turn
from config import AgentType
from conftest import ScriptedModel, call, calls, reply
from orchestrator import prompts
from orchestrator.errors import ConfigurationError, ModelTransportError, TurnCancelledError, TurnInProgressError
from orchestrator.models import ActivityEvent, ActivityStatus, SessionAnswer
from orchestrator.state import Conversation


def test_render_agents_highlights_active_card():
    out = render_agents(AgentType.BIS)

    assert out.count("PROCESSING") == 1
    assert out.index("PROCESSING") > out.index("Billing &amp; Insurance")
    assert "(analyzing)" not in out

def test_render_agents_coordinator_is_analyzing():
    out = render_agents(AgentType.HSC)

    assert "(analyzing)" in out
    assert "PROCESSING" not in out

def test_render_logs_newest_first():
    events = [
        ActivityEvent(capability=AgentType.AS, action="schedule", timestamp=datetime(2024, 1, 1, 9, 0, 0)),
        ActivityEvent(capability=AgentType.AS, action="schedule", status=ActivityStatus.SUCCESS,
                      timestamp=datetime(2024, 1, 1, 9, 0, 1)),
    ]

    out = render_logs(events)

    assert out.index("09:00:01") < out.index("09:00:00")
    assert "(success)" in out

def test_render_logs_empty():
    assert "System ready" in render_logs([])

def test_format_answer_lists_sources():
    answer = SessionAnswer(text="Flu is up.", resolved_capability=AgentType.SEARCH, citation_urls=["https://a.example"])

    out = format_answer(answer)

    assert out.startswith("Flu is up.")
    assert "_Handled by: External Search_" in out
    assert "- [https://a.example](https://a.example)" in out

def test_format_answer_without_sources():
    out = format_answer(SessionAnswer(text="Done."))

    assert "Sources" not in out

def test_error_message():
    config_error = ConfigurationError("API key is missing. Set OPENAI_API_KEY in the environment and restart the app.")

    assert error_message(config_error) == str(config_error)
    assert error_message(TurnCancelledError("x")) == prompts.CANCELLED_MESSAGE
    assert error_message(TurnInProgressError("x")) == prompts.BUSY_MESSAGE
    assert error_message(ModelTransportError("reset")) == prompts.APOLOGY_MESSAGE


class TestRunTurn:

    def test_final_update_carries_answer_and_activity(self, make_orchestrator, conversation):
        model = ScriptedModel([
            calls(call("billingAndInsuranceSupport", "b1", queryType="check_bill", details="John Doe")),
            reply("Your outstanding balance is $150.00."),
        ])
        orchestrator = make_orchestrator(model)

        updates = list(run_turn(orchestrator, conversation, "What do I owe? I'm John Doe"))

        final = updates[-1]
        assert final["active"] is None
        assert final["answer"].resolved_capability == AgentType.BIS
        assert [(e.capability, e.status) for e in final["events"]] == [
            (AgentType.BIS, ActivityStatus.PENDING),
            (AgentType.BIS, ActivityStatus.SUCCESS),
        ]

    def test_configuration_error_is_reported_not_raised(self, make_orchestrator, conversation):
        orchestrator = make_orchestrator(ScriptedModel([], ready=False))

        updates = list(run_turn(orchestrator, conversation, "hello"))

        assert isinstance(updates[-1]["error"], ConfigurationError)
        assert "answer" not in updates[-1]
        assert len(conversation) == 1

    def test_unsubscribes_when_done(self, make_orchestrator, conversation):
        orchestrator = make_orchestrator(ScriptedModel([reply("Hi.")]))

        list(run_turn(orchestrator, conversation, "hi"))

        assert orchestrator.bus._subscribers == []

    def test_unexpected_failure_still_produces_a_reply(self, make_orchestrator, conversation):
        class Exploding(ScriptedModel):
            def complete(self, instruction, turns, capabilities=None):
                raise RuntimeError("adapter bug")

        orchestrator = make_orchestrator(Exploding([]))

        updates = list(run_turn(orchestrator, conversation, "hello"))

        assert isinstance(updates[-1]["error"], RuntimeError)
        assert error_message(updates[-1]["error"]) == prompts.APOLOGY_MESSAGE
        assert not conversation.busy
        assert len(conversation) == 1


def test_build_orchestrator_gives_each_conversation_its_own_data(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    orchestrator = build_orchestrator()

    try:
        first = orchestrator.registry_for(Conversation())
        second = orchestrator.registry_for(Conversation())
    finally:
        orchestrator.close()

    assert first is not second
    assert first is not orchestrator.registry
    assert [d.name for d in first.list()] == [d.name for d in orchestrator.registry.list()]
