# models.py
# Data contracts for safety-layered agents.
# No business logic lives here — pure schema and validation.

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DecisionKind(str, Enum):
    ACTION = "action"
    REQUEST_MODEL = "request_model"


class Decision(BaseModel):
    """
    The sole result of `decide()` at every layer.

    Either a committed action, or a request for an updated model. The
    latter is not an error: it means the agent is not confident enough to
    act safely on what it currently believes.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: DecisionKind
    action: Any = Field(default=None, description="Committed action; None when requesting a model.")

    @model_validator(mode="after")
    def _request_carries_no_action(self) -> "Decision":
        if self.kind is DecisionKind.REQUEST_MODEL and self.action is not None:
            raise ValueError("A model request cannot carry an action.")
        return self

    @classmethod
    def commit(cls, action: Any) -> "Decision":
        return cls(kind=DecisionKind.ACTION, action=action)

    @classmethod
    def request_model(cls) -> "Decision":
        return cls(kind=DecisionKind.REQUEST_MODEL)

    @property
    def is_action(self) -> bool:
        return self.kind is DecisionKind.ACTION

    @property
    def requests_model(self) -> bool:
        return self.kind is DecisionKind.REQUEST_MODEL

    def __str__(self) -> str:
        if self.is_action:
            return f"Action({self.action!r})"
        return "RequestModel"


REQUEST_MODEL = Decision.request_model()


class StepRecord(BaseModel):
    """Immutable log entry produced after each episode step."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., description="0-based step index within the episode.")
    layers: int = Field(..., ge=0, description="Safety layers the deciding agent had.")
    decision: Decision
    model: str = Field(..., description="repr() of the model before the decision was applied.")
    acted: bool = Field(default=False)
    model_updated: bool = Field(default=False)
