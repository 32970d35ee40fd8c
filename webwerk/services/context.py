"""State shared by the steps of one batch run."""

from dataclasses import dataclass
from typing import Any, List, Optional

from ..models import OperationKind, OperationResult, Site
from ..utils.config import Config
from .confirm import ConfirmationGate
from .database import DatabaseService, MysqlClient
from .git import GitService
from .runner import CommandRunner
from .wordpress import WordPressService


@dataclass
class BatchContext:
    """Everything a site operation may use, passed in explicitly."""

    config: Config
    runner: CommandRunner
    gate: ConfirmationGate
    database: DatabaseService
    wordpress: WordPressService
    git: GitService

    @classmethod
    def build(cls, config: Config, gate: ConfirmationGate, runner: Optional[CommandRunner] = None) -> "BatchContext":
        """Wire the services for a configuration."""
        runner = runner or CommandRunner(config.wp_cli_argv)
        return cls(
            config=config,
            runner=runner,
            gate=gate,
            database=DatabaseService(runner, mysql_factory_for(config, runner)),
            wordpress=WordPressService(runner),
            git=GitService(runner),
        )


def mysql_factory_for(config: Config, runner: CommandRunner):
    """Factory for the MySQL client used by database fallbacks."""
    return lambda: MysqlClient(runner, config.db_host, config.db_user, config.db_password)


class SiteOperation:
    """Base class for the per-site handler of one operation kind."""

    kind: OperationKind

    def __init__(self, context: BatchContext, options: Any) -> None:
        self.context = context
        self.options = options

    def required_tools(self) -> List[str]:
        """Executables that must exist before any site is touched."""
        return []

    def prepare(self) -> None:
        """
        Check batch-wide preconditions once, before the first site.

        Raises:
            ConfigurationError: If the operation cannot run at all
        """

    def process(self, site: Site, result: OperationResult) -> None:
        """
        Apply the operation to one site.

        Steps are recorded on ``result``. Raise SiteOperationError to abandon
        the remaining steps for this site.
        """
        raise NotImplementedError
