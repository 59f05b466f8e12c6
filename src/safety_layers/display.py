# display.py
# All terminal output for the safety-layer demo.
#
# This module owns presentation entirely. agent.py and episode.py never
# format strings for the terminal — run.py calls named functions here.
#
# Colour language:
#   cyan    — structure / routing events
#   yellow  — probing and model requests
#   green   — committed actions
#   red     — halts

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from safety_layers.agent import AgentN
from safety_layers.models import Decision, StepRecord

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 60) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _decision_markup(decision: Decision) -> str:
    if decision.is_action:
        return f"[bold green]{decision}[/bold green]"
    return f"[bold yellow]{decision}[/bold yellow]"


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------


def banner(mutation_limit: int, max_steps: int) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Safety Layers[/bold cyan]\n"
            "[dim]Commit only to decisions that survive a mutated model[/dim]\n\n"
            f"[dim]Mutation limit :[/dim] [white]{mutation_limit}[/white]\n"
            f"[dim]Max steps      :[/dim] [white]{max_steps}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def scenario_start(title: str, layers: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]{title} — {layers} layer(s)[/cyan]", style="cyan"))


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


def build_layer_tree(agent: AgentN) -> Tree:
    """Render the Peano structure of `agent`, outermost layer first."""
    root = Tree(f"[bold cyan]AgentN[/bold cyan] [dim]({agent.layers} layer(s))[/dim]")
    node = root
    current = agent
    while current.layers > 0:
        node = node.add(
            f"[cyan]Succ[/cyan] [dim]mutation_limit={current.agent.mutation_limit}[/dim]"
        )
        current = current.dec()
    node.add(f"[bold white]Zero[/bold white] [dim]{_mono(repr(current.z().model))}[/dim]")
    return root


def layer_tree(agent: AgentN) -> None:
    console.print()
    console.print(build_layer_tree(agent))


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def step(record: StepRecord) -> None:
    outcome = ""
    if record.acted:
        outcome = "  [dim]→ acted[/dim]"
    elif record.model_updated:
        outcome = "  [dim]→ model updated[/dim]"
    console.print(
        f"  [bold cyan]STEP {record.index}[/bold cyan]  [dim]{_mono(record.model)}[/dim]"
        f"  {_decision_markup(record.decision)}{outcome}"
    )


def model_requested(layers: int) -> None:
    console.print()
    console.print(
        Panel(
            "[bold yellow]Decision is not stable under a mutated model.[/bold yellow]\n"
            f"[dim]{layers} safety layer(s) asked for an updated model instead of acting.[/dim]",
            title=_label("REQUEST MODEL", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def episode_summary(records: list[StepRecord]) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Step", justify="center", width=6)
    table.add_column("Layers", justify="center", width=8)
    table.add_column("Decision", width=16)
    table.add_column("Model", style="dim white")

    for record in records:
        table.add_row(
            str(record.index),
            str(record.layers),
            _decision_markup(record.decision),
            _mono(record.model),
        )

    console.print(
        Panel(
            table,
            title="[dim]EPISODE SUMMARY[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{reason}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
