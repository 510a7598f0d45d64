"""Daemon launcher — best-effort "ensure the daemon is running".

Checks the daemon port, clears a stale PID file, spawns the d1d binary
detached and polls until the port accepts connections. Every failure is
reported as a False return; the connection manager treats that as a hint
and still tries to connect.
"""

import asyncio
import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_DAEMON_MARKERS = ("d1d", "d1doctor")


def read_pid_file(pid_file: str) -> int | None:
    """Return the PID recorded by the last launch, or None if unreadable."""
    try:
        return int(Path(pid_file).expanduser().read_text().strip())
    except (ValueError, OSError):
        return None


def remove_pid_file(pid_file: str) -> None:
    """Forget a stale launch. Missing files are ignored."""
    Path(pid_file).expanduser().unlink(missing_ok=True)


def is_pid_alive(pid: int) -> bool:
    """True if pid is a live process whose command line names d1d.

    A reused PID belonging to another program counts as dead, so the
    launcher clears the file and spawns a fresh daemon.
    """
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    try:
        result = subprocess.run(
            ["ps", "-p", str(pid), "-o", "command="],
            capture_output=True, text=True, timeout=2,
        )
    except (OSError, subprocess.SubprocessError):
        # No ps: the process exists, trust the PID file.
        return True
    cmdline = result.stdout.strip().lower()
    return any(marker in cmdline for marker in _DAEMON_MARKERS)


async def ping_daemon(host: str, port: int) -> bool:
    """Return True if the daemon port accepts a TCP connection."""
    try:
        _, writer = await asyncio.open_connection(host, port)
    except OSError:
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


class DaemonLauncher:
    """Starts the local daemon on demand.

    Args:
        host: Daemon host.
        port: Daemon port.
        binary: Path to the d1d executable. None disables spawning.
        config_path: Daemon config passed as --config.
        pid_file: Daemon PID file, used to detect a stale or starting daemon.
        start_timeout: Seconds to wait for the port after spawning.
        poll_interval: Seconds between port checks.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 9876,
        binary: str | None = None,
        config_path: str = "~/.d1doctor/config.toml",
        pid_file: str = "~/.d1doctor/daemon.pid",
        start_timeout: float = 5.0,
        poll_interval: float = 0.2,
    ):
        self.host = host
        self.port = port
        self.binary = binary
        self.config_path = config_path
        self.pid_file = pid_file
        self.start_timeout = start_timeout
        self.poll_interval = poll_interval

    async def ensure_running(self) -> bool:
        """Make sure the daemon is listening.

        Returns:
            True if the daemon is reachable, False if it could not be started.
        """
        if await ping_daemon(self.host, self.port):
            logger.info("Daemon already running on port %d", self.port)
            return True

        pid = read_pid_file(self.pid_file)
        if pid is not None:
            if is_pid_alive(pid):
                logger.info("Daemon process %d exists but is not listening yet", pid)
                return await self._wait_for_port()
            logger.warning("Removing stale PID file (PID %d no longer running)", pid)
            remove_pid_file(self.pid_file)

        if not self.binary:
            logger.warning("Daemon not running. Start it with: d1 start")
            return False

        if not self._spawn():
            return False
        return await self._wait_for_port()

    def _spawn(self) -> bool:
        config_path = str(Path(self.config_path).expanduser())
        try:
            subprocess.Popen(
                [self.binary, "--config", config_path],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("Could not launch daemon %s: %s", self.binary, e)
            return False
        logger.info("Launched daemon %s --config %s", self.binary, config_path)
        return True

    async def _wait_for_port(self) -> bool:
        attempts = max(1, int(self.start_timeout / self.poll_interval))
        for _ in range(attempts):
            await asyncio.sleep(self.poll_interval)
            if await ping_daemon(self.host, self.port):
                logger.info("Daemon started successfully")
                return True
        logger.error("Daemon did not start within %.0f seconds", self.start_timeout)
        return False
