"""
src/orchestrator/errors.py

Exception types raised across the orchestration boundary.

Only ConfigurationError, ModelTransportError, TurnCancelledError and
TurnInProgressError ever escape Orchestrator.send_message(); everything else
that can go wrong during a turn is turned into a result payload the model sees.
"""


class OrchestratorError(Exception):
    """Base class for coordinator errors."""


class ConfigurationError(OrchestratorError):
    """A required setting (e.g. the API key) is missing. Message is user-facing."""


class ModelTransportError(OrchestratorError):
    """The model provider could not be reached or returned an error."""


class TurnCancelledError(OrchestratorError):
    """The turn was cancelled before the next model request was sent."""


class TurnInProgressError(OrchestratorError):
    """A turn is already running for this conversation."""


class DuplicateCapabilityError(OrchestratorError):
    """A capability with the same name is already registered."""


class CapabilityNotFoundError(OrchestratorError, KeyError):
    """No capability is registered under the requested name."""
