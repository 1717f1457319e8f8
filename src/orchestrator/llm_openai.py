"""
src/orchestrator/llm_openai.py

OpenAI client wrapper for function calling.
- OpenAIChatModel.complete(): one request with capability specs, normalized to a ModelResponse
- OpenAIChatModel.search(): one request to a web-search model (used by the external search capability)
- to_openai_messages(): replay the transcript as Chat Completions messages
- extract_tool_calls(): normalize tool calls from a response choice
"""


import json
from typing import Any, Callable, Dict, List, Optional, Sequence

import openai
import structlog
from openai import OpenAI

from config import DEFAULT_MODEL, MODEL_TEMPERATURE, SEARCH_MODEL, get_api_key
from orchestrator.errors import ModelTransportError
from orchestrator.grounding import extract_citation_urls
from orchestrator.models import CapabilityCall, CapabilityDeclaration, ModelResponse, Role, Turn
from orchestrator.registry import tool_spec


logger = structlog.get_logger(__name__)


def to_openai_messages(instruction: str, turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """
    Replay the transcript as Chat Completions messages.

    user  -> {"role": "user"}
    model -> {"role": "assistant"} (+ "tool_calls" when the turn requested calls)
    tool  -> one {"role": "tool"} message per result, keyed by tool_call_id
    """

    messages: List[Dict[str, Any]] = [{"role": "system", "content": instruction}]

    for turn in turns:
        if turn.role == Role.USER:
            messages.append({"role": "user", "content": turn.text or ""})
        elif turn.role == Role.MODEL:
            msg: Dict[str, Any] = {"role": "assistant", "content": turn.text}
            if turn.calls:
                msg["tool_calls"] = [
                    {
                        "id": call.call_id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments, ensure_ascii=False),
                        },
                    }
                    for call in turn.calls
                ]
            elif msg["content"] is None:
                msg["content"] = ""
            messages.append(msg)
        else:
            for result in turn.results:
                messages.append({
                    "role": "tool",
                    "tool_call_id": result.call_id,
                    "content": json.dumps(result.payload, ensure_ascii=False),
                })

    return messages

def extract_tool_calls(choice) -> List[CapabilityCall]:
    """
    Normalize tool calls from the OpenAI response choice.
    Arguments that are not valid JSON objects become {}.
    """

    out = []
    tcs = getattr(choice.message, "tool_calls", None)

    if not tcs:
        return out

    for tc in tcs:
        if tc.type == "function" and tc.function:
            try:
                args = json.loads(tc.function.arguments or "{}")
            except (TypeError, ValueError):
                args = {}
            if not isinstance(args, dict):
                args = {}
            out.append(CapabilityCall(name=tc.function.name, arguments=args, call_id=tc.id))

    return out


class OpenAIChatModel:
    """
    Model exchange over the Chat Completions API.

    The SDK client is built lazily from the API key so a missing key surfaces
    as a ConfigurationError from check_ready(), before any request is made.
    """

    def __init__(
            self,
            *,
            model: str = DEFAULT_MODEL,
            search_model: str = SEARCH_MODEL,
            temperature: float = MODEL_TEMPERATURE,
            client_factory: Callable[..., Any] = OpenAI,
    ) -> None:

        self.model = model
        self.search_model = search_model
        self.temperature = temperature
        self._client_factory = client_factory
        self._client: Any = None

    def check_ready(self) -> None:
        """Raise ConfigurationError if the provider cannot be used (no API key)."""

        get_api_key()

    def _get_client(self) -> Any:

        if self._client is None:
            self._client = self._client_factory(api_key=get_api_key())

        return self._client

    def complete(
            self,
            instruction: str,
            turns: Sequence[Turn],
            capabilities: Optional[Sequence[CapabilityDeclaration]] = None,
    ) -> ModelResponse:
        """
        Low-level call to OpenAI Chat Completions with optional tool specs.
        Passing no capabilities forces a plain text answer.
        """

        tools = [tool_spec(c) for c in capabilities or []]
        messages = to_openai_messages(instruction, turns)

        try:
            resp = self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                tools=tools or openai.NOT_GIVEN,
                tool_choice="auto" if tools else openai.NOT_GIVEN,
                temperature=self.temperature,
            )
        except openai.OpenAIError as e:
            logger.error("model_request_failed", model=self.model, error=str(e))
            raise ModelTransportError(str(e)) from e

        choice = resp.choices[0]

        return ModelResponse(
            text=choice.message.content,
            calls=extract_tool_calls(choice),
            citation_urls=extract_citation_urls(resp),
            raw=resp,
        )

    def search(self, query: str) -> Any:
        """Ask the web-search model `query`. Returns the raw response (with url_citation annotations)."""

        try:
            return self._get_client().chat.completions.create(
                model=self.search_model,
                web_search_options={},
                messages=[{"role": "user", "content": query}],
            )
        except openai.OpenAIError as e:
            logger.error("search_request_failed", model=self.search_model, error=str(e))
            raise ModelTransportError(str(e)) from e
