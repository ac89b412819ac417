"""
Platform setup run once when a receiver starts.

Everything here is a convenience: a refused permission or a failed firewall
command is logged and the receiver starts anyway.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path

from ..utils.constants import APP_NAME

logger = logging.getLogger(__name__)

NETSH_TIMEOUT = 15.0


class PlatformSetup:
    """Default setup: make sure the save directory is writable, no port work needed."""

    def request_write_permission(self, directory) -> bool:
        directory = Path(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create save directory %s: %s", directory, e)
            return False
        return os.access(directory, os.W_OK)

    def reserve_port(self, port: int) -> None:
        pass


class WindowsPlatformSetup(PlatformSetup):
    """Adds an inbound firewall rule for the port when running as administrator."""
    rule_name = APP_NAME

    def is_administrator(self) -> bool:
        try:
            import ctypes
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False

    def _run(self, args: list[str]) -> bool:
        try:
            completed = subprocess.run(args, capture_output=True, text=True,
                                       timeout=NETSH_TIMEOUT, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Command %s failed: %s", args[:3], e)
            return False
        if completed.returncode != 0:
            logger.debug("Command %s exited with %s: %s", args[:3], completed.returncode, completed.stdout.strip())
        return completed.returncode == 0

    def reserve_port(self, port: int) -> None:
        if not self.is_administrator():
            logger.debug("Not running as administrator, skipping firewall rule for port %s.", port)
            return
        rule = f"name={self.rule_name}-{port}"
        if self._run(["netsh", "advfirewall", "firewall", "show", "rule", rule]):
            return
        if self._run(["netsh", "advfirewall", "firewall", "add", "rule", rule,
                      "dir=in", "action=allow", "protocol=TCP", f"localport={port}"]):
            logger.info("Added firewall rule for TCP port %s.", port)


def default_platform_setup() -> PlatformSetup:
    if sys.platform == "win32":
        return WindowsPlatformSetup()
    return PlatformSetup()
