"""
src/orchestrator/registry.py

Capability registry: one table holding each declaration next to the executor
that fulfils it, so what the model is told it can call and what we can
actually run never drift apart.
"""


from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import structlog

from orchestrator.errors import CapabilityNotFoundError, DuplicateCapabilityError
from orchestrator.models import CapabilityDeclaration


logger = structlog.get_logger(__name__)


class CapabilityExecutor(ABC):
    """
    Fulfils a capability call.

    Contract: execute() returns a JSON string and never raises. Problems
    (unknown action, missing arguments, backend failure) are reported as
    {"status": "error", "message": ...}.
    """

    @abstractmethod
    def execute(self, args: Optional[Dict[str, Any]]) -> str:
        ...


# -------- Tool spec builder ----------------------------------------------------


def tool_spec(declaration: CapabilityDeclaration) -> Dict[str, Any]:
    """Build an OpenAI function spec."""

    properties = {k: v.to_json_schema() for k, v in declaration.parameters.items()}
    required = [k for k, v in declaration.parameters.items() if v.required]

    return {
        "type": "function",
        "function": {
            "name": declaration.name,
            "description": declaration.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
                "additionalProperties": False,
            },
        },
    }


# -------- Registry -------------------------------------------------------------


class CapabilityRegistry:

    def __init__(self) -> None:

        # dicts keep insertion order, which is the order sent to the model
        self._entries: Dict[str, Tuple[CapabilityDeclaration, CapabilityExecutor]] = {}

    def register(self, declaration: CapabilityDeclaration, executor: CapabilityExecutor) -> None:

        if declaration.name in self._entries:
            raise DuplicateCapabilityError(f"Capability '{declaration.name}' is already registered.")

        self._entries[declaration.name] = (declaration, executor)
        logger.debug("capability_registered", capability=declaration.name, identity=declaration.identity.value)

    def lookup(self, name: str) -> Optional[CapabilityDeclaration]:
        """Return the declaration for `name`, or None if nothing is registered under it."""

        entry = self._entries.get(name)

        return entry[0] if entry else None

    def executor_for(self, name: str) -> CapabilityExecutor:

        try:
            return self._entries[name][1]
        except KeyError:
            raise CapabilityNotFoundError(name) from None

    def list(self) -> List[CapabilityDeclaration]:

        return [declaration for declaration, _ in self._entries.values()]

    def to_tool_specs(self) -> List[Dict[str, Any]]:
        """JSON schemas describing the capabilities, in registration order."""

        return [tool_spec(d) for d in self.list()]

    def __contains__(self, name: object) -> bool:

        return name in self._entries

    def __len__(self) -> int:

        return len(self._entries)
