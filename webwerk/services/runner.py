"""Execution of external tools (wp-cli, mysql, git)."""

import copy
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..errors import ConfigurationError
from ..models import CommandOutcome, CommandResult
from ..utils.log import mask_argv

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs external commands and classifies their results."""

    def __init__(self, wp_cli_argv: Optional[Sequence[str]] = None) -> None:
        """
        Initialize the runner.

        Args:
            wp_cli_argv: WP-CLI executable as an argument vector, e.g. ["ddev", "wp"]
        """
        self.wp_cli_argv: List[str] = list(wp_cli_argv or ["wp"])

    def run(
        self,
        argv: Sequence[str],
        cwd: Optional[Path] = None,
        input_text: Optional[str] = None,
        stdin_path: Optional[Path] = None,
        stdout_path: Optional[Path] = None,
    ) -> CommandResult:
        """
        Run a command to completion.

        Args:
            argv: Executable followed by its arguments, never passed to a shell
            cwd: Working directory
            input_text: Text fed to standard input
            stdin_path: File fed to standard input
            stdout_path: File that receives standard output instead of capturing it

        Returns:
            CommandResult classified as success, failure or fatal
        """
        argv = [str(a) for a in argv]
        shown = " ".join(mask_argv(argv))
        logger.debug("Running: %s (cwd=%s)", shown, cwd or ".")

        try:
            if stdin_path is not None or stdout_path is not None:
                proc = self._run_with_files(argv, cwd, input_text, stdin_path, stdout_path)
            else:
                proc = subprocess.run(
                    argv,
                    cwd=cwd,
                    input=input_text,
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            logger.error("Cannot run %s: %s", argv[0], e)
            return CommandResult(
                argv=argv, returncode=-1, stderr=str(e), outcome=CommandOutcome.FATAL
            )

        outcome = CommandOutcome.SUCCESS if proc.returncode == 0 else CommandOutcome.FAILURE
        result = CommandResult(
            argv=argv,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            outcome=outcome,
        )
        if not result.ok:
            logger.debug("Command failed (exit %s): %s\nSTDERR: %s", proc.returncode, shown, result.stderr.strip())
        return result

    def _run_with_files(
        self,
        argv: List[str],
        cwd: Optional[Path],
        input_text: Optional[str],
        stdin_path: Optional[Path],
        stdout_path: Optional[Path],
    ) -> subprocess.CompletedProcess:
        """Run with standard input or output redirected to files."""
        stdin = open(stdin_path, "r") if stdin_path is not None else None
        stdout = open(stdout_path, "w") if stdout_path is not None else None
        try:
            return subprocess.run(
                argv,
                cwd=cwd,
                input=input_text if stdin is None else None,
                stdin=stdin,
                stdout=stdout if stdout is not None else subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        finally:
            if stdin is not None:
                stdin.close()
            if stdout is not None:
                stdout.close()

    def wp(self, site_path: Path, *args: str, **kwargs) -> CommandResult:
        """Run a WP-CLI command inside a site directory."""
        return self.run(self.wp_cli_argv + list(args), cwd=site_path, **kwargs)

    def with_wp_cli(self, wp_cli_argv: Sequence[str]) -> "CommandRunner":
        """Copy of this runner that calls a different WP-CLI executable."""
        runner = copy.copy(self)
        runner.wp_cli_argv = list(wp_cli_argv)
        return runner

    def available(self, executable: str) -> bool:
        """Check an executable can be found."""
        return shutil.which(executable) is not None

    def require_tools(self, executables: Iterable[str]) -> None:
        """
        Make sure every executable is installed.

        Raises:
            ConfigurationError: If any executable is missing
        """
        missing = [name for name in executables if not self.available(name)]
        if missing:
            raise ConfigurationError(f"Missing required dependencies: {', '.join(missing)}")
