"""Execution of external commands (apt-get, snap, lxd, lxc).

All host and container mutations go through ``CommandRunner``; mock mode and
the test fakes hook in there.
"""
import os
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from lxdhost.core.logger import get_logger

logger = get_logger(__name__)

NONINTERACTIVE_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


@dataclass
class CommandResult:
    """Exit status and output of one external command."""
    cmd: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def error_output(self) -> str:
        """Best available explanation of a failure."""
        return (self.stderr or self.stdout or f"exit code {self.returncode}").strip()


class CommandRunner:
    """Runs commands on the host.

    In mock mode nothing is executed: every command is logged and reported
    as successful with empty output, and sleeps return immediately.
    """

    def __init__(self, mock: bool = False, timeout: Optional[int] = None):
        self.mock = mock
        self.timeout = timeout

    def run(
        self,
        cmd: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        interactive: bool = False,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Run a command and capture its result.

        Args:
            cmd: Command and arguments
            env: Extra environment variables layered over the current ones
            interactive: Attach the command to the terminal instead of
                capturing output (for installers that prompt)
            timeout: Per-call timeout in seconds

        Returns:
            CommandResult; a missing executable gives return code 127
        """
        cmd = [str(part) for part in cmd]
        printable = shlex.join(cmd)

        if self.mock:
            logger.info(f"MOCK: Would run: {printable}")
            return CommandResult(cmd, 0)

        logger.debug(f"Command: {printable}")
        full_env = {**os.environ, **env} if env else None

        try:
            if interactive:
                completed = subprocess.run(
                    cmd,
                    env=full_env,
                    timeout=timeout or self.timeout,
                    check=False,
                )
                return CommandResult(cmd, completed.returncode)

            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                env=full_env,
                timeout=timeout or self.timeout,
                check=False,
            )
        except FileNotFoundError:
            logger.debug(f"Executable not found: {cmd[0]}")
            return CommandResult(cmd, 127, stderr=f"{cmd[0]}: command not found")
        except subprocess.TimeoutExpired as e:
            return CommandResult(cmd, 124, stderr=f"timed out after {e.timeout}s")

        if completed.returncode != 0:
            logger.debug(f"Exit {completed.returncode}: {completed.stderr.strip()}")
        return CommandResult(cmd, completed.returncode, completed.stdout, completed.stderr)

    def succeeds(self, cmd: Sequence[str]) -> bool:
        """Run a query command and report only whether it exited 0."""
        return self.run(cmd).ok

    def which(self, name: str) -> Optional[str]:
        """Locate an executable on PATH."""
        if self.mock:
            return f"/usr/bin/{name}"
        return shutil.which(name)

    def sleep(self, seconds: float) -> None:
        if self.mock:
            return
        time.sleep(seconds)


class LxcClient:
    """Thin wrapper that builds ``lxc`` command lines for one runner."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def run(self, *args: str) -> CommandResult:
        return self.runner.run(["lxc", *args])

    def exec(
        self,
        container: str,
        command: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        interactive: bool = False,
    ) -> CommandResult:
        """Run a command inside a container via ``lxc exec``."""
        cmd = ["lxc", "exec", container]
        for key, value in (env or {}).items():
            cmd.extend(["--env", f"{key}={value}"])
        cmd.append("--")
        cmd.extend(command)
        return self.runner.run(cmd, interactive=interactive)
