"""
src/orchestrator/models.py

Pydantic models for capability declarations, calls/results, transcript turns,
activity events and the final session answer.
"""


from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from config import AgentType


class ParameterSpec(BaseModel):
    """One parameter of a capability: JSON type, required flag, nested object fields."""

    model_config = ConfigDict(frozen=True)

    type: str = "string"
    description: Optional[str] = None
    required: bool = False
    properties: Dict[str, "ParameterSpec"] = Field(default_factory=dict)

    def to_json_schema(self) -> Dict[str, Any]:

        schema: Dict[str, Any] = {"type": self.type}

        if self.description:
            schema["description"] = self.description
        if self.type == "object":
            schema["properties"] = {k: v.to_json_schema() for k, v in self.properties.items()}
            required = [k for k, v in self.properties.items() if v.required]
            if required:
                schema["required"] = required

        return schema


ParameterSpec.model_rebuild()


class CapabilityDeclaration(BaseModel):

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: Dict[str, ParameterSpec] = Field(default_factory=dict)
    identity: AgentType = AgentType.HSC


class CapabilityCall(BaseModel):
    """A model-emitted request to run a capability. Arguments are unvalidated."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    call_id: str


class CapabilityResult(BaseModel):

    model_config = ConfigDict(frozen=True)

    call_id: str
    name: str
    payload: Dict[str, Any]

    @property
    def ok(self) -> bool:

        return self.payload.get("status") != "error" and "error" not in self.payload


class Role(str, Enum):

    USER = "user"
    MODEL = "model"
    TOOL = "tool"


class Turn(BaseModel):
    """
    A unit of conversation history. Model turns may carry the calls they
    requested; tool turns carry the full batch of results for one round.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    text: Optional[str] = None
    calls: List[CapabilityCall] = Field(default_factory=list)
    results: List[CapabilityResult] = Field(default_factory=list)


class ActivityStatus(str, Enum):

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class ActivityEvent(BaseModel):

    model_config = ConfigDict(frozen=True)

    capability: AgentType
    action: str
    status: ActivityStatus = ActivityStatus.PENDING
    call_id: Optional[str] = None
    conversation_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class TurnState(str, Enum):

    AWAITING_USER_INPUT = "awaiting_user_input"
    MODEL_REQUESTED = "model_requested"
    EXECUTING_CALLS = "executing_calls"
    DONE = "done"


class ModelResponse(BaseModel):
    """Provider-neutral view of one model reply."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    text: Optional[str] = None
    calls: List[CapabilityCall] = Field(default_factory=list)
    citation_urls: List[str] = Field(default_factory=list)
    raw: Any = None


class AuditEntry(BaseModel):

    step: str
    ok: bool
    detail: str
    call: Optional[CapabilityCall] = None
    result: Optional[CapabilityResult] = None


class SessionAnswer(BaseModel):

    text: str
    resolved_capability: AgentType = AgentType.HSC
    citation_urls: List[str] = Field(default_factory=list)
    rounds: int = 0
    audit: List[AuditEntry] = Field(default_factory=list)
