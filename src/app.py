"""
src/app.py

Gradio front-end for the Hospital System Coordinator.

Left: department cards (the active one is highlighted) and the system log.
Right: the chat. Each send runs one orchestrator turn on a worker thread and
streams sidebar updates as activity events arrive.
"""


import html
import queue
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import gradio as gr
import structlog

from config import EXPORT_DIR, AgentType
from context.loader import load_hospital
from orchestrator import prompts
from orchestrator.errors import ConfigurationError, ModelTransportError, TurnCancelledError, TurnInProgressError
from orchestrator.llm_openai import OpenAIChatModel
from orchestrator.models import ActivityEvent, SessionAnswer
from orchestrator.observability import setup_logging
from orchestrator.router import Orchestrator
from orchestrator.state import Conversation
from tools.catalog import build_registry
from tools.exports import export_csv, export_json


logger = structlog.get_logger(__name__)

APP_TITLE = "Hospital System Coordinator"
APP_DESC = (
    "Ask about patients, appointments, medical records or billing. "
    "General health questions are answered with web search and cited sources."
)
PLACEHOLDER = "Ask the coordinator (e.g., 'Schedule an appointment with Dr. Chen for next Monday')..."

# (identity, card label, description)
AGENT_CARDS: List[Tuple[AgentType, str, str]] = [
    (AgentType.PIH, "Patient Info", "Registration, Updates, Demographics"),
    (AgentType.AS, "Scheduler", "Bookings, Cancellations, Availability"),
    (AgentType.MRA, "Medical Records", "History, Results, Report Generation"),
    (AgentType.BIS, "Billing & Insurance", "Invoices, Coverage, Payments"),
    (AgentType.SEARCH, "External Knowledge", "Web Search Grounding"),
]


# --- Rendering -----------------------------------------------------------------
def render_agents(active: Optional[AgentType]) -> str:
    """HTML for the department cards; `active` gets the highlighted style."""

    cards = []

    for identity, label, description in AGENT_CARDS:
        is_active = identity == active
        style = (
            "background:#eff6ff;border:1px solid #60a5fa;" if is_active
            else "background:#fff;border:1px solid #e2e8f0;opacity:.8;"
        )
        badge = "<div style='color:#16a34a;font-size:10px;font-weight:600'>PROCESSING</div>" if is_active else ""
        cards.append(
            f"<div style='{style}border-radius:8px;padding:8px;margin-bottom:8px'>"
            f"<b>{html.escape(label)}</b><br><small>{html.escape(description)}</small>{badge}</div>"
        )

    header = f"<p><small>{html.escape(AgentType.HSC.value)}"
    if active == AgentType.HSC:
        header += " (analyzing)"

    return header + "</small></p>" + "".join(cards)

def render_logs(events: Iterable[ActivityEvent]) -> str:
    """HTML for the system log, newest first."""

    rows = [
        f"<div style='font-size:12px;margin-bottom:4px'>"
        f"<code>[{e.timestamp.strftime('%H:%M:%S')}]</code> "
        f"<b>{html.escape(e.capability.value)}:</b> {html.escape(e.action)} "
        f"<i>({e.status.value})</i></div>"
        for e in reversed(list(events))
    ]

    return "".join(rows) or "<i>System ready. Waiting for requests...</i>"

def format_answer(answer: SessionAnswer) -> str:
    """Chat bubble text: the answer, who handled it, and any sources."""

    text = f"{answer.text}\n\n_Handled by: {answer.resolved_capability.value}_"

    if answer.citation_urls:
        sources = "\n".join(f"- [{url}]({url})" for url in answer.citation_urls)
        text += f"\n\n**Sources**\n{sources}"

    return text

def error_message(error: Exception) -> str:

    if isinstance(error, ConfigurationError):
        return str(error)
    if isinstance(error, TurnCancelledError):
        return prompts.CANCELLED_MESSAGE
    if isinstance(error, TurnInProgressError):
        return prompts.BUSY_MESSAGE

    return prompts.APOLOGY_MESSAGE


# --- Handlers ------------------------------------------------------------------
def run_turn(orchestrator: Orchestrator, conversation: Conversation, text: str) -> Iterable[Dict[str, Any]]:
    """
    Run one turn on a worker thread.

    Yields {"active", "events"} while it runs, then one final
    {"active", "events", "answer" | "error"}.
    """

    inbox: "queue.Queue[ActivityEvent]" = queue.Queue()
    outcome: Dict[str, Any] = {}

    def _collect(event: ActivityEvent) -> None:
        if event.conversation_id == conversation.id:
            inbox.put(event)

    def _work() -> None:
        try:
            outcome["answer"] = orchestrator.send_message(conversation, text)
        except (ConfigurationError, ModelTransportError, TurnCancelledError, TurnInProgressError) as e:
            outcome["error"] = e
        except Exception as e:
            logger.exception("turn_crashed", conversation_id=conversation.id)
            outcome["error"] = e

    unsubscribe = orchestrator.bus.subscribe(_collect)
    worker = threading.Thread(target=_work, name=f"turn-{conversation.id}", daemon=True)

    try:
        worker.start()
        while worker.is_alive():
            try:
                inbox.get(timeout=0.25)
            except queue.Empty:
                continue
            yield {"active": conversation.active_capability, "events": conversation.activity()}
        worker.join()
    finally:
        unsubscribe()

    yield {"active": None, "events": conversation.activity(), **outcome}


def app(orchestrator: Orchestrator):

    def on_send(text: str, chat: List[Dict[str, str]], conversation: Optional[Conversation]):

        conversation = conversation or Conversation()
        text = (text or "").strip()

        if not text:
            yield chat, conversation, render_agents(None), render_logs(conversation.activity()), ""
            return
        if conversation.busy:
            chat = chat + [{"role": "assistant", "content": prompts.BUSY_MESSAGE}]
            yield chat, conversation, render_agents(conversation.active_capability), render_logs(conversation.activity()), text
            return

        chat = chat + [{"role": "user", "content": text}]
        yield chat, conversation, render_agents(AgentType.HSC), render_logs(conversation.activity()), ""

        for update in run_turn(orchestrator, conversation, text):
            if "answer" in update:
                chat = chat + [{"role": "assistant", "content": format_answer(update["answer"])}]
            elif "error" in update:
                chat = chat + [{"role": "assistant", "content": error_message(update["error"])}]
            yield chat, conversation, render_agents(update["active"]), render_logs(update["events"]), ""

    def on_cancel(conversation: Optional[Conversation]) -> None:

        if conversation is not None:
            orchestrator.cancel(conversation)

    def on_export_transcript(conversation: Optional[Conversation]) -> Optional[str]:

        if conversation is None or not len(conversation):
            gr.Warning("Nothing to export yet.")
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        turns = [t.model_dump(mode="json") for t in conversation.snapshot()]

        return export_json(turns, EXPORT_DIR / f"transcript-{conversation.id}-{stamp}.json")

    def on_export_activity(conversation: Optional[Conversation]) -> Optional[str]:

        if conversation is None or not conversation.activity():
            gr.Warning("No activity to export yet.")
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        rows = [e.model_dump(mode="json") for e in conversation.activity()]

        return export_csv(rows, EXPORT_DIR / f"activity-{conversation.id}-{stamp}.csv")

    with gr.Blocks(title=APP_TITLE) as demo:
        gr.Markdown(f"# {APP_TITLE}")
        gr.Markdown(APP_DESC)
        conv_state = gr.State(None)

        with gr.Row():
            with gr.Column(scale=1):
                gr.Markdown("### System Agents")
                agents_html = gr.HTML(render_agents(None))
                gr.Markdown("### System Logs")
                logs_html = gr.HTML(render_logs([]))
                with gr.Row():
                    export_transcript_btn = gr.Button("Export transcript (JSON)")
                    export_activity_btn = gr.Button("Export activity (CSV)")
                export_file = gr.File(label="Download", interactive=False)

            with gr.Column(scale=3):
                chatbot = gr.Chatbot(
                    value=[{"role": "assistant", "content": prompts.WELCOME_MESSAGE}],
                    type="messages",
                    height=520,
                )
                msg = gr.Textbox(placeholder=PLACEHOLDER, show_label=False, lines=2)
                with gr.Row():
                    send = gr.Button("Send", variant="primary")
                    cancel = gr.Button("Cancel")

        outputs = [chatbot, conv_state, agents_html, logs_html, msg]
        send.click(on_send, inputs=[msg, chatbot, conv_state], outputs=outputs)
        msg.submit(on_send, inputs=[msg, chatbot, conv_state], outputs=outputs)
        cancel.click(on_cancel, inputs=[conv_state], outputs=None)
        export_transcript_btn.click(on_export_transcript, inputs=[conv_state], outputs=[export_file])
        export_activity_btn.click(on_export_activity, inputs=[conv_state], outputs=[export_file])

    return demo


def build_orchestrator() -> Orchestrator:
    """
    Wire the process-wide services: model client and loop. Each browser
    session gets its own copy of the seed data through the registry factory.
    """

    model = OpenAIChatModel()

    return Orchestrator(None, model, registry_factory=lambda: build_registry(load_hospital(), model))

def main() -> None:

    setup_logging()
    orchestrator = build_orchestrator()
    logger.info("app_starting", capabilities=[d.name for d in orchestrator.registry.list()])

    try:
        app(orchestrator).queue().launch()
    finally:
        orchestrator.close()


if __name__ == "__main__":

    main()

# EOF
