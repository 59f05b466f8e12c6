# counter.py
# Reference scenario: reach a target number by unit increments.
#
# The goal itself is uncertain. Mutation lowers the believed target by one,
# so a safety layer only commits to +1 while the same step would still be
# taken if the target were one lower.

from pydantic import BaseModel, Field

from safety_layers.agent import AgentZ


class Counter(BaseModel):
    target: int = Field(..., ge=0)
    current: int = Field(default=0, ge=0)


def decide(model: Counter) -> int:
    if model.current < model.target:
        return 1
    if model.current > model.target:
        return -1
    return 0


def act(model: Counter, action: int) -> None:
    model.current += action


def mutate(model: Counter) -> int:
    if model.target > 0:
        model.target -= 1
        return -1
    return 0


def undo(model: Counter, delta: int) -> None:
    model.target -= delta


def counter_agent(target: int = 4, current: int = 0) -> AgentZ:
    return AgentZ(Counter(target=target, current=current), decide, act, mutate, undo)
