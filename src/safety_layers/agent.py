# agent.py
# Agents wrapped in safety layers.
#
# An AgentZ only acts, assuming its model is perfect. An AgentS wraps a core
# agent one level shallower and is at least as safe as that core: it commits
# to an action only when the decision survives a hypothetical mutation of
# the model, and requests an updated model otherwise.
#
# Layer counts follow the Peano numerals: Zero wraps the base agent, and
# each Succ adds one layer, so 3 = Succ(Succ(Succ(Zero))).
#
# A single model is shared by every layer. It lives in the innermost AgentZ;
# all mutation, undo and action reach that one instance. Each layer keeps
# one outstanding Probe while it checks its core.
#
# Time complexity is linear in the number of layers, because each AgentS
# takes its reference decision from the base agent rather than its core:
#
#   1 = 0 0'
#   2 = 0 1' = 0 0' 0''
#   3 = 0 2' = 0 0' 1' = 0 0' 0'' 0'''

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from safety_layers.models import REQUEST_MODEL, Decision

logger = logging.getLogger(__name__)

MUTATION_LIMIT = 4


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ProbeError(Exception):
    """Base class for mutate/undo discipline violations."""


class ProbeOrderError(ProbeError):
    """Raised when undo() receives a probe that is not the innermost outstanding one."""


class ProbeInFlightError(ProbeError):
    """Raised when the model is acted on or replaced while a probe is outstanding."""


class LayerCountError(ValueError):
    """Raised when a negative number of safety layers is requested."""


# ---------------------------------------------------------------------------
# Capability contract
# ---------------------------------------------------------------------------


class Probe:
    """
    A tentative mutation of the model, returned by `mutate()`.

    Holds the delta needed to reverse the mutation. A probe can be undone
    exactly once, and only while it is the most recent outstanding probe.
    """

    __slots__ = ("delta", "_open")

    def __init__(self, delta: Any) -> None:
        self.delta = delta
        self._open = True

    @property
    def open(self) -> bool:
        return self._open

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"Probe(delta={self.delta!r}, {state})"


class Agent(ABC):
    """Implemented by every agent, with or without safety layers."""

    @abstractmethod
    def update_model(self, model: Any) -> None:
        """Replace the internal model."""

    @abstractmethod
    def decide(self) -> Decision:
        """Decide what to do next. The model is left as it was found."""

    @abstractmethod
    def act(self, action: Any) -> None:
        """Perform an action on the internal model."""

    @abstractmethod
    def mutate(self) -> Probe:
        """Tentatively mutate the model."""

    @abstractmethod
    def undo(self, probe: Probe) -> None:
        """Reverse the mutation recorded by `probe`."""

    @contextmanager
    def probe(self) -> Iterator[Probe]:
        """Mutate the model for the duration of the block, then undo it."""
        token = self.mutate()
        try:
            yield token
        finally:
            self.undo(token)


# ---------------------------------------------------------------------------
# Base agent
# ---------------------------------------------------------------------------


class AgentZ(Agent):
    """
    An agent that only acts, assuming its model is perfect.

    Safe only in environments with perfect information. The four operations
    work on the model in place and must not capture mutable state of their
    own, otherwise undo cannot restore what decide sees:

        decider(model) -> action
        actor(model, action) -> None
        mutater(model) -> delta
        undoer(model, delta) -> None
    """

    def __init__(
        self,
        model: Any,
        decider: Callable[[Any], Any],
        actor: Callable[[Any, Any], None],
        mutater: Callable[[Any], Any],
        undoer: Callable[[Any, Any], None],
    ) -> None:
        self.model = model
        self.decider = decider
        self.actor = actor
        self.mutater = mutater
        self.undoer = undoer
        self._probes: list[Probe] = []

    def __repr__(self) -> str:
        return f"AgentZ(model={self.model!r})"

    @property
    def pending_probes(self) -> int:
        return len(self._probes)

    def clone(self) -> "AgentZ":
        """A new base agent with a deep copy of the model and the same operations."""
        return AgentZ(copy.deepcopy(self.model), self.decider, self.actor, self.mutater, self.undoer)

    def add(self, n: int, mutation_limit: int = MUTATION_LIMIT) -> "AgentN":
        """Wrap this agent in `n` safety layers."""
        if n < 0:
            raise LayerCountError(f"Cannot add {n} safety layers.")
        if n == 0:
            return Zero(self)
        return Succ(AgentS(self.add(n - 1, mutation_limit), mutation_limit))

    def _ensure_settled(self, operation: str) -> None:
        if self._probes:
            raise ProbeInFlightError(
                f"Cannot {operation} while {len(self._probes)} probe(s) are outstanding."
            )

    def update_model(self, model: Any) -> None:
        self._ensure_settled("update the model")
        self.model = model

    def decide(self) -> Decision:
        return Decision.commit(self.decider(self.model))

    def act(self, action: Any) -> None:
        self._ensure_settled("act")
        self.actor(self.model, action)

    def mutate(self) -> Probe:
        probe = Probe(self.mutater(self.model))
        self._probes.append(probe)
        return probe

    def undo(self, probe: Probe) -> None:
        if not self._probes or self._probes[-1] is not probe:
            raise ProbeOrderError(f"{probe!r} is not the innermost outstanding probe.")
        self._probes.pop()
        probe._open = False
        self.undoer(self.model, probe.delta)


# ---------------------------------------------------------------------------
# Layered agents
# ---------------------------------------------------------------------------


class AgentN(Agent):
    """An agent with some natural number of safety layers: Zero or Succ."""

    @abstractmethod
    def z(self) -> AgentZ:
        """The innermost base agent, which owns the shared model."""

    @property
    @abstractmethod
    def layers(self) -> int:
        """Number of safety layers."""

    @abstractmethod
    def dec(self) -> "AgentN":
        """Remove the outermost safety layer. Zero stays Zero."""

    def inc(self, mutation_limit: int | None = None) -> "AgentN":
        """Add one outermost safety layer."""
        if mutation_limit is None:
            mutation_limit = self._outer_mutation_limit()
        return Succ(AgentS(self, mutation_limit))

    def _outer_mutation_limit(self) -> int:
        return MUTATION_LIMIT


class Zero(AgentN):
    """No safety layers: decisions come straight from the base agent."""

    def __init__(self, agent: AgentZ) -> None:
        self.agent = agent

    def __repr__(self) -> str:
        return f"Zero({self.agent!r})"

    def z(self) -> AgentZ:
        return self.agent

    @property
    def layers(self) -> int:
        return 0

    def dec(self) -> AgentN:
        return self

    def update_model(self, model: Any) -> None:
        self.agent.update_model(model)

    def decide(self) -> Decision:
        return self.agent.decide()

    def act(self, action: Any) -> None:
        self.agent.act(action)

    def mutate(self) -> Probe:
        return self.agent.mutate()

    def undo(self, probe: Probe) -> None:
        self.agent.undo(probe)


class Succ(AgentN):
    """One more safety layer around a shallower agent."""

    def __init__(self, agent: "AgentS") -> None:
        self.agent = agent

    def __repr__(self) -> str:
        return f"Succ({self.agent.core!r})"

    def z(self) -> AgentZ:
        return self.agent.core.z()

    @property
    def layers(self) -> int:
        return self.agent.core.layers + 1

    def dec(self) -> AgentN:
        return self.agent.core

    def _outer_mutation_limit(self) -> int:
        return self.agent.mutation_limit

    def update_model(self, model: Any) -> None:
        self.agent.update_model(model)

    def decide(self) -> Decision:
        return self.agent.decide()

    def act(self, action: Any) -> None:
        self.agent.act(action)

    def mutate(self) -> Probe:
        return self.agent.mutate()

    def undo(self, probe: Probe) -> None:
        self.agent.undo(probe)


class AgentS(Agent):
    """
    A successor agent: a safety layer around a core sub-agent.

    Provably safer than its core in non-deterministic environments, on
    average, assuming the overhead does not itself reduce safety. Safer
    does not mean effective: the layer may keep requesting model updates.
    """

    def __init__(self, core: AgentN, mutation_limit: int = MUTATION_LIMIT) -> None:
        if mutation_limit < 0:
            raise ValueError(f"mutation_limit must be >= 0, got {mutation_limit}.")
        self.core = core
        self.mutation_limit = mutation_limit

    def update_model(self, model: Any) -> None:
        self.core.z().update_model(model)

    def decide(self) -> Decision:
        layers = self.core.layers + 1

        # The reference decision comes from the core zero, keeping the cost
        # linear in the number of layers.
        reference = self.core.z().decide()

        # If the core zero cannot decide, requesting a model is just as safe.
        if reference.requests_model:
            logger.debug("layer %d: core requested a model", layers)
            return REQUEST_MODEL

        for attempt in range(1, self.mutation_limit + 1):
            with self.core.probe():
                mutated = self.core.decide()

            # An inconclusive probe says nothing either way; try another.
            if mutated.requests_model:
                continue

            # Agreement under a changed model is safer than trusting the
            # core zero alone. Disagreement means the decision depends on
            # what the model gets wrong.
            if mutated.action == reference.action:
                logger.debug("layer %d: confirmed %s on probe %d", layers, reference, attempt)
                return reference
            logger.debug(
                "layer %d: escalated, probe %d gave %s instead of %s",
                layers,
                attempt,
                mutated,
                reference,
            )
            return REQUEST_MODEL

        # Falling back to the reference action here would let higher layers
        # regress below this one.
        logger.debug("layer %d: exhausted %d probe(s)", layers, self.mutation_limit)
        return REQUEST_MODEL

    def act(self, action: Any) -> None:
        self.core.z().act(action)

    def mutate(self) -> Probe:
        return self.core.mutate()

    def undo(self, probe: Probe) -> None:
        self.core.z().undo(probe)
