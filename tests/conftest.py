"""Test configuration."""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

from webwerk.models import CommandOutcome, CommandResult
from webwerk.services import BatchContext, CommandRunner, ConfirmationGate
from webwerk.utils.config import Config


class Call:
    """One recorded command invocation."""

    def __init__(self, argv: List[str], cwd: Optional[Path], kwargs: dict) -> None:
        self.argv = argv
        self.cwd = cwd
        self.kwargs = kwargs

    def __repr__(self) -> str:
        return f"Call({' '.join(self.argv)!r}, cwd={self.cwd})"


class FakeRunner(CommandRunner):
    """Command runner answering from scripted rules instead of running processes."""

    def __init__(self, missing: Sequence[str] = ()) -> None:
        super().__init__(["wp"])
        self.calls: List[Call] = []
        self.rules: list = []
        self.missing = set(missing)

    def on(
        self,
        *pattern: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        fatal: bool = False,
        cwd: Optional[Path] = None,
        once: bool = False,
        effect: Optional[Callable[[List[str], Optional[Path]], None]] = None,
    ) -> "FakeRunner":
        """Answer commands starting with ``pattern``; the first matching rule wins."""
        if fatal:
            outcome = CommandOutcome.FATAL
        elif returncode == 0:
            outcome = CommandOutcome.SUCCESS
        else:
            outcome = CommandOutcome.FAILURE
        result = CommandResult(stdout=stdout, stderr=stderr, returncode=returncode, outcome=outcome)
        self.rules.append({"pattern": list(pattern), "cwd": cwd, "once": once, "effect": effect, "result": result})
        return self

    def run(self, argv, cwd=None, **kwargs) -> CommandResult:
        argv = [str(a) for a in argv]
        self.calls.append(Call(argv, cwd, kwargs))
        for rule in self.rules:
            pattern = rule["pattern"]
            if argv[: len(pattern)] != pattern:
                continue
            if rule["cwd"] is not None and Path(rule["cwd"]) != Path(cwd or "."):
                continue
            if rule["once"]:
                self.rules.remove(rule)
            if rule["effect"] is not None:
                rule["effect"](argv, cwd)
            return rule["result"].model_copy(update={"argv": argv})
        return CommandResult(argv=argv)

    def available(self, executable: str) -> bool:
        return executable not in self.missing

    def ran(self, *pattern: str) -> List[Call]:
        """Recorded calls whose argv starts with ``pattern``."""
        return [c for c in self.calls if c.argv[: len(pattern)] == list(pattern)]


def scripted_input(*answers: str) -> Callable[[str], str]:
    """Input function returning the given answers in order and recording the prompts."""
    queue = list(answers)

    def read(question: str) -> str:
        read.prompts.append(question)
        if not queue:
            raise AssertionError(f"Unexpected prompt: {question}")
        return queue.pop(0)

    read.prompts = []
    return read


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging so each test starts clean."""
    yield
    logger = logging.getLogger("webwerk")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Create test configuration."""
    return Config(
        base_dir=tmp_path,
        db_host="localhost",
        db_user="wordpress",
        db_password="secret",
        wp_locale="de_DE",
        log_dir=tmp_path / "logs",
        auto_confirm=True,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def context(config: Config, runner: FakeRunner) -> BatchContext:
    return BatchContext.build(config, ConfirmationGate(auto_confirm=True), runner=runner)


@pytest.fixture
def make_site(tmp_path: Path) -> Callable[..., Path]:
    """Create a WordPress-looking site directory below the base directory."""

    def make(name: str, wordpress: bool = True) -> Path:
        path = tmp_path / name
        path.mkdir()
        if wordpress:
            (path / "wp-content" / "plugins").mkdir(parents=True)
            (path / "wp-config.php").write_text("<?php\ndefine('DB_NAME', 'db');\n")
        return path

    return make


@pytest.fixture
def answers():
    return scripted_input


@pytest.fixture
def fake_runner():
    """The FakeRunner class, for tests that need a differently configured runner."""
    return FakeRunner
