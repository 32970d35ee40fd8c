"""Result tracking models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .site import Site


class CommandOutcome(str, Enum):
    """Classification of one external command invocation."""

    SUCCESS = "success"
    FAILURE = "failure"
    FATAL = "fatal"


class ResultStatus(str, Enum):
    """Outcome of one batch step for one site."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class CommandResult(BaseModel):
    """Captured result of an external command."""

    argv: List[str] = Field(default_factory=list)
    returncode: int = Field(0, description="Process exit code, -1 if it never started")
    stdout: str = ""
    stderr: str = ""
    outcome: CommandOutcome = CommandOutcome.SUCCESS

    @property
    def ok(self) -> bool:
        return self.outcome == CommandOutcome.SUCCESS

    @property
    def fatal(self) -> bool:
        return self.outcome == CommandOutcome.FATAL

    @property
    def message(self) -> str:
        """Short human readable description of the result."""
        for stream in (self.stderr, self.stdout):
            lines = [line.strip() for line in stream.splitlines() if line.strip()]
            if lines:
                return lines[-1]
        if self.ok:
            return "ok"
        return f"exit code {self.returncode}"

    def lines(self) -> List[str]:
        """Non-empty stdout lines."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


class FallbackOutcome(BaseModel):
    """Result of a primary/fallback database operation."""

    label: str
    outcome: CommandOutcome
    used_fallback: bool = False
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == CommandOutcome.SUCCESS


class OperationResult(BaseModel):
    """Per-site outcome of a batch step."""

    site: Site
    status: ResultStatus = ResultStatus.SUCCESS
    message: str = ""
    steps: List[str] = Field(default_factory=list, description="Per-step notes")
    steps_done: int = Field(0, description="Steps that changed or inspected the site")
    steps_skipped: int = Field(0, description="Steps declined at a confirmation prompt")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def note(self, text: str) -> None:
        """Record a step message."""
        self.steps.append(text)

    def done(self, text: str) -> None:
        """Record a completed step."""
        self.steps_done += 1
        self.note(text)

    def skip(self, text: str) -> None:
        """Record a step declined by the operator."""
        self.steps_skipped += 1
        self.note(text)

    def only_skipped(self) -> bool:
        """True when every step that was attempted got declined."""
        return self.steps_done == 0 and self.steps_skipped > 0

    def duration_seconds(self) -> Optional[float]:
        """Calculate processing duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class BatchSummary(BaseModel):
    """Aggregated outcome of one batch run."""

    results: List[OperationResult] = Field(default_factory=list)

    def succeeded(self) -> int:
        """Number of sites processed successfully."""
        return sum(1 for r in self.results if r.status == ResultStatus.SUCCESS)

    def failed(self) -> int:
        """Number of sites that failed."""
        return sum(1 for r in self.results if r.status == ResultStatus.FAILURE)

    def skipped(self) -> int:
        """Number of sites skipped after a declined confirmation."""
        return sum(1 for r in self.results if r.status == ResultStatus.SKIPPED)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed() else 0
