"""Factory for wiring a connection manager from configuration.

CLI commands never construct the manager, launcher or stores directly;
they ask the factory, so every command gets the same wiring.
"""

from src.cli.config import ClientConfig
from src.daemon.connection import DaemonConnectionManager
from src.daemon.launcher import DaemonLauncher
from src.stores import ClientState


def create_manager(
    config: ClientConfig | None = None,
    state: ClientState | None = None,
    auto_start: bool | None = None,
) -> DaemonConnectionManager:
    """Create a DaemonConnectionManager wired to fresh or given stores.

    Args:
        config: Loaded client config. Defaults apply when None.
        state: Stores to reconcile into. A new ClientState when None.
        auto_start: Override config.daemon.auto_start for launching the
            daemon before the first connect.

    Returns:
        An unstarted manager; call start() or use it as an async context
        manager.
    """
    config = config or ClientConfig()
    state = state or ClientState.create(credit_max=config.credits.max)
    daemon = config.daemon

    launch = daemon.auto_start if auto_start is None else auto_start
    ensure_running = None
    if launch:
        launcher = DaemonLauncher(
            host=daemon.host,
            port=daemon.port,
            binary=daemon.binary,
            config_path=daemon.config_path,
            pid_file=daemon.pid_file,
            start_timeout=daemon.start_timeout,
        )
        ensure_running = launcher.ensure_running

    return DaemonConnectionManager(
        state,
        url=daemon.url,
        ensure_daemon_running=ensure_running,
        heartbeat_interval=daemon.heartbeat_interval,
        reconnect_delays=daemon.reconnect_delays,
        credit_max=config.credits.max,
    )
