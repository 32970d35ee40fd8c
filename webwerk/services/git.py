"""Git commands for the repository kept in wp-content."""

import logging
from pathlib import Path

from ..models import CommandResult
from .runner import CommandRunner

logger = logging.getLogger(__name__)


class GitService:
    """Runs git against a working tree."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def _git(self, repo_dir: Path, *args: str, **kwargs) -> CommandResult:
        return self.runner.run(["git", *args], cwd=repo_dir, **kwargs)

    def is_repository(self, repo_dir: Path) -> bool:
        return (repo_dir / ".git").exists()

    def pull(self, repo_dir: Path) -> CommandResult:
        return self._git(repo_dir, "pull")

    def add(self, repo_dir: Path, path: str) -> CommandResult:
        return self._git(repo_dir, "add", "-A", path)

    def commit(self, repo_dir: Path, message: str) -> CommandResult:
        """Commit staged changes; multi-line messages are fed on stdin."""
        if "\n" in message:
            return self._git(repo_dir, "commit", "-F", "-", input_text=message)
        return self._git(repo_dir, "commit", "-m", message)

    def push(self, repo_dir: Path) -> CommandResult:
        return self._git(repo_dir, "push")

    def log(self, repo_dir: Path, max_count: int = 10) -> CommandResult:
        return self._git(repo_dir, "log", "--graph", f"--max-count={max_count}")

    def clone(self, url: str, target: Path, depth: int = 1) -> CommandResult:
        """Shallow clone ``url`` into ``target``."""
        logger.info("Cloning repository: %s", url)
        return self.runner.run(["git", "clone", f"--depth={depth}", url, str(target)], cwd=target.parent)
