"""Day 1 Doctor CLI — terminal front end for the local daemon.

Drives the same connection manager and stores as the desktop shell.

Usage:
    d1doctor status            Connect and show daemon status
    d1doctor run "fix my env"  Submit a task, approve its plan, follow progress
    d1doctor watch             Follow daemon events until Ctrl-C
    d1doctor config show       Show resolved configuration
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from src.cli.config import ClientConfig, LoggingConfig, load_config
from src.cli.factory import create_manager
from src.cli.output import LiveView, format_connection
from src.daemon.connection import DaemonConnectionManager
from src.errors.domain import ConfigError
from src.protocol.messages import PlanProposed, TaskCompleted, TaskFailed
from src.stores import ClientState, ConnectionStatus

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="d1doctor",
    help="Day 1 Doctor — talk to the local daemon from the terminal",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None
_no_launch: bool = False
_verbose: bool = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(cfg: LoggingConfig, verbose: bool = False) -> None:
    """Configure root logging from the logging config section.

    Args:
        cfg: Level name and optional log file.
        verbose: Force DEBUG regardless of the configured level.
    """
    level = logging.DEBUG if verbose else getattr(logging, cfg.level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # Application loggers follow the configured level even if the root
    # logger was set up elsewhere.
    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    if cfg.file:
        log_path = Path(cfg.file).expanduser().resolve()
        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == str(log_path)
            for h in app_logger.handlers
        )
        if not already:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            app_logger.addHandler(file_handler)


def _load() -> ClientConfig:
    try:
        cfg = load_config(config_path=_config_path)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)
    setup_logging(cfg.logging, verbose=_verbose)
    return cfg


def _manager(cfg: ClientConfig, state: ClientState | None = None) -> DaemonConnectionManager:
    return create_manager(cfg, state=state, auto_start=False if _no_launch else None)


async def _connect(manager: DaemonConnectionManager, timeout: float) -> bool:
    try:
        await asyncio.wait_for(manager.wait_connected(), timeout)
    except asyncio.TimeoutError:
        return False
    return True


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to d1doctor.yaml config file"
    ),
    no_launch: bool = typer.Option(
        False, "--no-launch", help="Never start the daemon, only connect"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Day 1 Doctor CLI."""
    global _config_path, _no_launch, _verbose
    _config_path = config
    _no_launch = no_launch
    _verbose = verbose


# --- Daemon commands ---


@app.command()
def status(
    timeout: float = typer.Option(5.0, "--timeout", "-t", help="Seconds to wait for the daemon"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Connect to the daemon and show its status."""
    cfg = _load()
    manager = _manager(cfg)

    async def _run():
        async with manager:
            await _connect(manager, timeout)
            return manager.state.connection.snapshot()

    snap = asyncio.run(_run())
    console.print(format_connection(snap, as_json=json_output))
    if snap.status is not ConnectionStatus.CONNECTED:
        raise typer.Exit(1)


async def _run_task(
    manager: DaemonConnectionManager,
    text: str,
    auto_approve: bool,
    connect_timeout: float,
) -> bool:
    """Submit one task and follow it to completion.

    Returns:
        True if the daemon reported the task completed.
    """
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future[bool] = loop.create_future()
    proposals: asyncio.Queue[PlanProposed] = asyncio.Queue()
    current: dict[str, str] = {}

    def _on_message(message) -> None:
        task_id = getattr(message, "task_id", None)
        if task_id is not None and task_id != current.get("task_id"):
            return
        if isinstance(message, PlanProposed):
            proposals.put_nowait(message)
        elif isinstance(message, (TaskCompleted, TaskFailed)) and not outcome.done():
            outcome.set_result(isinstance(message, TaskCompleted))

    remove_observer = manager.add_message_observer(_on_message)
    try:
        async with manager:
            if not await _connect(manager, connect_timeout):
                console.print("[red]Could not reach the daemon.[/red]")
                return False

            current["task_id"] = await manager.submit_task(
                text, context={"cwd": os.getcwd(), "env": {}}
            )
            if manager.state.connection.snapshot().current_task_id != current["task_id"]:
                console.print("[red]Task was not sent; the daemon disconnected.[/red]")
                return False
            _log.info("Submitted task %s", current["task_id"])

            while not outcome.done():
                next_plan = asyncio.ensure_future(proposals.get())
                done, _ = await asyncio.wait(
                    {next_plan, outcome}, return_when=asyncio.FIRST_COMPLETED
                )
                if next_plan not in done:
                    next_plan.cancel()
                    break
                proposal = next_plan.result()
                approved = auto_approve or await asyncio.to_thread(
                    typer.confirm, "Approve this plan?", default=True
                )
                if not await manager.approve_plan(
                    proposal.task_id, proposal.plan_id, approved
                ):
                    console.print("[yellow]Decision not sent; the daemon disconnected.[/yellow]")
                if not approved:
                    console.print("[yellow]Plan rejected.[/yellow]")
                    return False
            return outcome.result()
    finally:
        remove_observer()


@app.command()
def run(
    task: str = typer.Argument(help="What the agent should do"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve plans without asking"),
    timeout: float = typer.Option(10.0, "--timeout", "-t", help="Seconds to wait for the daemon"),
):
    """Submit a task and follow it until it completes or fails."""
    cfg = _load()
    state = ClientState.create(credit_max=cfg.credits.max)
    manager = _manager(cfg, state)
    view = LiveView(state, console)
    view.attach()
    try:
        ok = asyncio.run(_run_task(manager, task, yes, timeout))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(130)
    finally:
        view.detach()
    raise typer.Exit(0 if ok else 1)


@app.command()
def watch():
    """Follow daemon events until interrupted. Reconnects automatically."""
    cfg = _load()
    state = ClientState.create(credit_max=cfg.credits.max)
    manager = _manager(cfg, state)
    view = LiveView(state, console)

    async def _run():
        async with manager:
            await asyncio.Event().wait()

    view.attach()
    console.print(f"Watching {manager.url} (Ctrl-C to stop)")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
    finally:
        view.detach()


# --- Config commands ---


@config_app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Display the resolved configuration."""
    cfg = _load()
    if json_output:
        console.print_json(cfg.model_dump_json())
        return

    daemon = cfg.daemon
    console.print("[bold]Daemon:[/bold]")
    console.print(f"  url: {daemon.url}")
    console.print(f"  heartbeat_interval: {daemon.heartbeat_interval:g}s")
    console.print(
        "  reconnect_delays: " + ", ".join(f"{d:g}s" for d in daemon.reconnect_delays)
    )
    console.print(f"  auto_start: {daemon.auto_start}")
    console.print(f"  binary: {daemon.binary or '(not set)'}")

    console.print("\n[bold]Credits:[/bold]")
    console.print(f"  max: {cfg.credits.max:g}")

    console.print("\n[bold]Logging:[/bold]")
    console.print(f"  level: {cfg.logging.level}")
    console.print(f"  file: {cfg.logging.file or '(stderr only)'}")


@config_app.command("validate")
def config_validate(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Validate a config file without connecting."""
    path = config or _config_path
    try:
        cfg = load_config(config_path=path)
    except ConfigError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]Config is valid.[/green]")
    console.print(f"  Daemon: {cfg.daemon.url}")
    console.print(f"  Auto-start: {'enabled' if cfg.daemon.auto_start else 'disabled'}")


if __name__ == "__main__":
    app()
