"""
Daemon Service - runs Grundy as a systemd user service

Only Linux (systemd --user) is supported. The unit runs
`python -m grundy -settings <dir>` with the interpreter that installed it.
"""

import os
import sys
import logging
import subprocess
from pathlib import Path
from typing import Optional

from grundy import DESCRIPTION, NAME
from grundy.errors import DaemonError

logger = logging.getLogger(__name__)

SERVICE_NAME = f"{NAME}.service"

STATUS_RUNNING = "running"
STATUS_STOPPED = "stopped"
STATUS_NOT_INSTALLED = "not installed"

COMMANDS = ("status", "start", "stop", "install", "uninstall")

UNIT_TEMPLATE = """[Unit]
Description={description}
After=default.target

[Service]
Type=simple
ExecStart={exec_start}
Restart=on-failure
RestartSec=10
KillMode=mixed
KillSignal=SIGTERM

[Install]
WantedBy=default.target
"""


class DaemonService:
    """Install, remove and control the Grundy systemd user unit"""

    def __init__(self, settings_dir: str, unit_dir: Optional[str] = None):
        """
        Args:
            settings_dir: Configuration directory passed to the service
            unit_dir: Directory for the unit file (~/.config/systemd/user by default)
        """
        self.settings_dir = os.path.abspath(settings_dir)
        self.unit_dir = Path(unit_dir) if unit_dir else Path.home() / '.config' / 'systemd' / 'user'

    @property
    def unit_path(self) -> Path:
        return self.unit_dir / SERVICE_NAME

    @staticmethod
    def _check_platform() -> None:
        if not sys.platform.startswith("linux"):
            raise DaemonError(f"daemon management is not supported on {sys.platform}")

    def _systemctl(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        command = ['systemctl', '--user', *args]
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=30)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DaemonError(f"failed to run '{' '.join(command)}' - {e}") from e

        if check and result.returncode != 0:
            raise DaemonError(f"'{' '.join(command)}' failed - {result.stderr.strip() or result.returncode}")
        return result

    def unit_contents(self) -> str:
        exec_start = " ".join(_quote_arg(a) for a in
                              [sys.executable, "-m", NAME, "-settings", self.settings_dir])
        return UNIT_TEMPLATE.format(description=DESCRIPTION, exec_start=exec_start)

    def is_installed(self) -> bool:
        return self.unit_path.is_file()

    def status(self) -> str:
        self._check_platform()
        if not self.is_installed():
            return STATUS_NOT_INSTALLED
        result = self._systemctl('is-active', SERVICE_NAME, check=False)
        return STATUS_RUNNING if result.stdout.strip() == "active" else STATUS_STOPPED

    def start(self) -> None:
        self._check_platform()
        if not self.is_installed():
            raise DaemonError("the daemon is not installed")
        self._systemctl('start', SERVICE_NAME)
        logger.info(f"[Daemon] Started {SERVICE_NAME}")

    def stop(self) -> None:
        self._check_platform()
        if not self.is_installed():
            raise DaemonError("the daemon is not installed")
        self._systemctl('stop', SERVICE_NAME)
        logger.info(f"[Daemon] Stopped {SERVICE_NAME}")

    def install(self, auto_start: bool = True) -> None:
        """(Re)install the unit and start it; enable it when auto_start is set."""
        self._check_platform()
        if self.is_installed():
            self.uninstall()

        try:
            self.unit_dir.mkdir(parents=True, exist_ok=True)
            self.unit_path.write_text(self.unit_contents())
        except OSError as e:
            raise DaemonError(f"failed to write unit file {self.unit_path} - {e}") from e

        self._systemctl('daemon-reload')
        if auto_start:
            self._systemctl('enable', SERVICE_NAME)
        self._systemctl('start', SERVICE_NAME)
        logger.info(f"[Daemon] Installed {self.unit_path}")

    def uninstall(self) -> None:
        self._check_platform()
        if not self.is_installed():
            return

        if self.status() == STATUS_RUNNING:
            self._systemctl('stop', SERVICE_NAME)
        self._systemctl('disable', SERVICE_NAME, check=False)

        try:
            self.unit_path.unlink()
        except OSError as e:
            raise DaemonError(f"failed to remove unit file {self.unit_path} - {e}") from e

        self._systemctl('daemon-reload')
        logger.info(f"[Daemon] Uninstalled {self.unit_path}")

    def execute(self, command: str, auto_start: bool = True) -> str:
        """Run one of COMMANDS and return text to show the user."""
        if command == "status":
            return self.status()
        if command == "start":
            self.start()
        elif command == "stop":
            self.stop()
        elif command == "install":
            self.install(auto_start)
        elif command == "uninstall":
            self.uninstall()
        else:
            raise DaemonError(f"unknown daemon command '{command}' - use one of: {', '.join(COMMANDS)}")
        return ""


def _quote_arg(value: str) -> str:
    # systemd splits ExecStart on whitespace unless quoted
    if any(c.isspace() for c in value):
        return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'
    return value

