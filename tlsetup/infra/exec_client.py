"""
Process execution infrastructure for tlsetup.

All install-tl, tlmgr and helper invocations go through ExecClient,
which makes them:
- Easy to mock for testing
- Consistent in error handling
- Logged the same way
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Iterable, Mapping

logger = logging.getLogger(__name__)


class ExecError(Exception):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, result: 'ExecResult'):
        super().__init__(
            f"`{result.command}` exited with status {result.exit_code}"
        )
        self.command = result.command
        self.args_list = list(result.args)
        self.exit_code = result.exit_code
        self.stdout = result.stdout
        self.stderr = result.stderr


@dataclass
class ExecResult:
    """Outcome of a finished command."""
    command: str
    args: tuple
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self) -> 'ExecResult':
        """Raise ExecError unless the command succeeded."""
        if self.exit_code != 0:
            raise ExecError(self)
        return self


class ExecClient:
    """
    Runs external commands one at a time, to completion.

    Example:
        client = ExecClient()
        result = client.run("tlmgr", ["version"], check=False)
        if result.ok:
            print(result.stdout)
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize ExecClient.

        Args:
            timeout: Command timeout in seconds (default: no limit)
        """
        self.timeout = timeout

    def run(
        self,
        command: str,
        args: Iterable[str] = (),
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        stdin: Optional[str] = None,
    ) -> ExecResult:
        """
        Run a command.

        Args:
            command: Executable name or path
            args: Command arguments
            cwd: Working directory
            env: Environment (defaults to the current one)
            check: Raise ExecError on non-zero exit
            stdin: Text fed to standard input (closed when None)

        Returns:
            ExecResult with captured output
        """
        args = tuple(str(arg) for arg in args)
        logger.info(f"[command]{command} {' '.join(args)}".rstrip())
        completed = subprocess.run(
            [command, *args],
            cwd=cwd,
            env=dict(env) if env is not None else None,
            input=stdin if stdin is not None else '',
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if completed.stdout:
            logger.debug(completed.stdout.rstrip())
        if completed.stderr:
            logger.debug(completed.stderr.rstrip())

        result = ExecResult(
            command=command,
            args=args,
            exit_code=completed.returncode,
            stdout=completed.stdout or '',
            stderr=completed.stderr or '',
        )
        if check:
            result.check()
        return result
