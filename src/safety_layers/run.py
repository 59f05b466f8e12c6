# run.py
# Entry point. Config and wiring only — no logic lives here.
#
# Replays the counter scenario with 0 up to SAFETY_LAYERS_LAYERS safety
# layers. Set SAFETY_LAYERS_MUTATION_LIMIT / SAFETY_LAYERS_MAX_STEPS in the
# environment or a .env file to tune it.

import logging

from rich.logging import RichHandler

from safety_layers import display
from safety_layers.config import SafetyConfig
from safety_layers.counter import counter_agent
from safety_layers.episode import Episode

TARGET = 4


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=display.console, show_path=False)],
    )
    config = SafetyConfig.from_env()
    display.banner(config.mutation_limit, config.max_steps)

    base = counter_agent(target=TARGET)

    for layers in range(config.layers + 1):
        agent = base.clone().add(layers, config.mutation_limit)
        display.scenario_start(f"Reach {TARGET} by increments", layers)
        display.layer_tree(agent)

        episode = Episode(
            agent,
            max_steps=config.max_steps,
            until=lambda decision: decision.is_action and decision.action == 0,
        )
        for record in episode.run():
            display.step(record)

        if episode.halted:
            display.model_requested(layers)
        display.episode_summary(episode.records)

    display.halt("All scenarios finished.")


if __name__ == "__main__":
    main()
