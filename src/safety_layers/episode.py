# episode.py
# Decide/act driver for an agent with any number of safety layers.
#
# The Episode owns the loop only. Deciding is the agent's job, and where a
# fresh model comes from is the caller's job (supply_model).

import logging
from typing import Any, Callable

from safety_layers.agent import AgentN
from safety_layers.models import Decision, StepRecord

logger = logging.getLogger(__name__)


class Episode:
    """
    Drives an agent until it halts, a stop condition holds, or the step
    budget runs out.

    Example:
        episode = Episode(counter_agent().add(1), until=lambda d: d.action == 0)
        records = episode.run()
    """

    def __init__(
        self,
        agent: AgentN,
        *,
        max_steps: int = 32,
        until: Callable[[Decision], bool] | None = None,
        supply_model: Callable[[], Any] | None = None,
        max_model_updates: int = 0,
    ) -> None:
        if max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {max_steps}.")
        self.agent = agent
        self.max_steps = max_steps
        self.until = until
        self.supply_model = supply_model
        self.max_model_updates = max_model_updates
        self.records: list[StepRecord] = []
        self.halted = False
        self._model_updates = 0

    @property
    def model_updates(self) -> int:
        return self._model_updates

    def step(self) -> StepRecord:
        """Run one decision and apply its outcome."""
        if self.halted:
            raise RuntimeError("Episode has halted; no further steps can run.")

        snapshot = repr(self.agent.z().model)
        decision = self.agent.decide()
        acted = False
        updated = False

        if decision.is_action:
            self.agent.act(decision.action)
            acted = True
        elif self.supply_model is not None and self._model_updates < self.max_model_updates:
            self.agent.update_model(self.supply_model())
            self._model_updates += 1
            updated = True
            logger.info("model update %d supplied after request", self._model_updates)
        else:
            self.halted = True
            logger.info("halted on model request at step %d", len(self.records))

        record = StepRecord(
            index=len(self.records),
            layers=self.agent.layers,
            decision=decision,
            model=snapshot,
            acted=acted,
            model_updated=updated,
        )
        self.records.append(record)
        return record

    def run(self) -> list[StepRecord]:
        while not self.halted and len(self.records) < self.max_steps:
            record = self.step()
            if self.until is not None and self.until(record.decision):
                break
        return self.records
