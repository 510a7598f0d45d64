"""CLI output formatters for Rich panels and JSON.

Provides human-readable Rich output (default) and machine-parseable JSON
output (--json flag). All formatting goes through these functions so the
CLI commands stay clean.
"""

import dataclasses
import json
from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.stores import (
    ClientState,
    ConnectionState,
    ConnectionStatus,
    CreditInfo,
    Message,
    Plan,
    Role,
    StepState,
)

console = Console()

# Status color map (matches desktop status indicator colors)
STATUS_COLORS = {
    ConnectionStatus.CONNECTED: "green",
    ConnectionStatus.CONNECTING: "yellow",
    ConnectionStatus.DISCONNECTED: "red",
}

STEP_MARKERS = {
    StepState.PENDING: ("○", "dim"),
    StepState.ACTIVE: ("◐", "blue"),
    StepState.DONE: ("●", "green"),
    StepState.ERROR: ("✕", "red"),
}


def _render(renderable) -> str:
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def _jsonable(value):
    """dataclasses.asdict plus enum values, for --json output."""
    return json.loads(json.dumps(value, default=lambda o: getattr(o, "value", str(o))))


def format_connection(state: ConnectionState, as_json: bool = False) -> str:
    """Format the connection state as a Rich panel or JSON.

    Args:
        state: Connection snapshot to display.
        as_json: If True, return JSON string instead of a panel.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(_jsonable(dataclasses.asdict(state)), indent=2)

    color = STATUS_COLORS.get(state.status, "white")
    lines = [
        f"[bold]Status:[/bold] [{color}]{state.status.value}[/{color}]",
        f"[bold]Daemon:[/bold] {state.daemon_version or '—'}",
        f"[bold]Orchestrator:[/bold] "
        f"{'connected' if state.orchestrator_connected else 'offline'}",
        f"[bold]Active tasks:[/bold] {state.active_tasks}",
    ]
    if state.current_task_id:
        lines.append(f"[bold]Task:[/bold] {state.current_task_id}")
    if state.error_message:
        lines.append(f"[yellow]{state.error_message}[/yellow]")
    return _render(Panel("\n".join(lines), title="Day 1 Doctor", expand=False))


def format_plan(plan: Plan, as_json: bool = False) -> str:
    """Format a plan as a step table or JSON.

    Args:
        plan: Plan to display.
        as_json: If True, return JSON string instead of a table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(_jsonable(dataclasses.asdict(plan)), indent=2)

    if plan.approved is None:
        title = "Proposed plan"
    else:
        title = "Plan (approved)" if plan.approved else "Plan (rejected)"

    table = Table(title=title, show_header=False, box=None)
    table.add_column("", no_wrap=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Step")
    for step in sorted(plan.steps, key=lambda s: s.index):
        marker, color = STEP_MARKERS[step.state]
        table.add_row(f"[{color}]{marker}[/{color}]", str(step.index + 1), step.label)
    return _render(table)


def format_message(message: Message) -> str:
    """Format one conversation message as a single line."""
    ts = datetime.fromtimestamp(message.timestamp / 1000).strftime("%H:%M:%S")
    if message.role is Role.USER:
        return f"[dim]{ts}[/dim] [bold cyan]you[/bold cyan]  {message.content}"
    return f"[dim]{ts}[/dim] [bold magenta]bob[/bold magenta]  {message.content}"


def format_credits(credits: CreditInfo) -> str:
    """Format credits as 'current/max' with a ten-cell bar."""
    filled = round(credits.fraction * 10)
    bar = "█" * filled + "░" * (10 - filled)
    return f"Credits {bar} {credits.current:g}/{credits.max:g}"


class LiveView:
    """Echoes store changes to the console as they happen.

    Prints new conversation messages, a plan table whenever a new plan
    arrives, step transitions, connection status changes and credit
    updates. attach() subscribes to the stores; detach() releases them.
    """

    def __init__(self, state: ClientState, out: Console | None = None):
        self._state = state
        self._out = out or console
        self._printed = 0
        self._plan_ids: tuple[str, ...] = ()
        self._step_states: dict[str, StepState] = {}
        self._status: ConnectionStatus | None = None
        self._phrase: str | None = None
        self._error: str | None = None
        self._unsubscribers: list = []

    def attach(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self._state.connection.subscribe(self._on_connection),
            self._state.conversation.subscribe(self._on_conversation),
            self._state.agent.subscribe(self._on_agent),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_connection(self, store) -> None:
        snap = store.snapshot()
        if snap.status is not self._status:
            self._status = snap.status
            color = STATUS_COLORS.get(snap.status, "white")
            self._out.print(f"[{color}]● {snap.status.value}[/{color}]")
        if snap.error_message and snap.error_message != self._error:
            self._out.print(f"[yellow]{snap.error_message}[/yellow]")
        self._error = snap.error_message
        if snap.status_phrase and snap.status_phrase != self._phrase:
            self._out.print(f"[dim italic]{snap.status_phrase}[/dim italic]")
        self._phrase = snap.status_phrase

    def _on_conversation(self, store) -> None:
        messages = store.messages
        if len(messages) < self._printed:
            self._printed = 0
        for message in messages[self._printed:]:
            self._out.print(format_message(message))
        self._printed = len(messages)

        plan = store.current_plan
        if plan is None:
            self._plan_ids = ()
            self._step_states = {}
            return
        plan_ids = tuple(step.id for step in plan.steps)
        if plan_ids != self._plan_ids:
            self._plan_ids = plan_ids
            self._step_states = {step.id: step.state for step in plan.steps}
            self._out.print(format_plan(plan))
            return
        for step in plan.steps:
            if self._step_states.get(step.id) is not step.state:
                self._step_states[step.id] = step.state
                marker, color = STEP_MARKERS[step.state]
                self._out.print(f"  [{color}]{marker}[/{color}] {step.label}")

    def _on_agent(self, store) -> None:
        self._out.print(f"[dim]{format_credits(store.credits)}[/dim]")
