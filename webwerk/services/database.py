"""Database operations: WP-CLI first, raw MySQL client as fallback."""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import SiteOperationError
from ..models import CommandOutcome, CommandResult, FallbackOutcome, Site
from .runner import CommandRunner

logger = logging.getLogger(__name__)

Attempt = Callable[[], CommandResult]

# Database names and table prefixes are interpolated into SQL text
IDENTIFIER = re.compile(r"[A-Za-z0-9_$]+")


def check_identifier(name: str) -> str:
    """
    Make sure a database name or table prefix is safe to put into SQL.

    Raises:
        SiteOperationError: If the name contains anything but letters, digits, _ and $
    """
    if not IDENTIFIER.fullmatch(name):
        raise SiteOperationError(f"Invalid database identifier: {name!r}")
    return name


def quote_table(table: str) -> str:
    """Backtick-quote a table name read back from the server."""
    return "`" + table.replace("`", "``") + "`"


class MysqlClient:
    """Direct database access through the mysql and mysqldump clients."""

    def __init__(
        self,
        runner: CommandRunner,
        host: str,
        user: str,
        password: str,
        charset: str = "utf8mb4",
        collation: str = "utf8mb4_unicode_ci",
    ) -> None:
        self.runner = runner
        self.host = host
        self.user = user
        self.password = password
        self.charset = charset
        self.collation = collation

    def _credentials(self) -> List[str]:
        return [f"--host={self.host}", f"--user={self.user}", f"--password={self.password}"]

    def execute(self, sql: str, database: Optional[str] = None, skip_column_names: bool = False) -> CommandResult:
        """Run a single SQL statement."""
        argv = ["mysql"] + self._credentials()
        if database:
            argv.append(f"--database={database}")
        if skip_column_names:
            argv.append("--skip-column-names")
        argv.append(f"--execute={sql}")
        return self.runner.run(argv)

    def test_connection(self, timeout: int = 5) -> CommandResult:
        """Check the server accepts the configured credentials."""
        argv = ["mysql"] + self._credentials() + [f"--connect-timeout={timeout}", "--execute=SELECT 1;"]
        result = self.runner.run(argv)
        if result.ok:
            logger.debug("Manual MySQL connection successful")
        else:
            logger.error("Manual MySQL connection to %s failed", self.host)
        return result

    def database_exists(self, name: str) -> bool:
        """Check a schema with this name exists."""
        check_identifier(name)
        result = self.execute(
            f"SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME='{name}';",
            skip_column_names=True,
        )
        return result.ok and name in result.lines()

    def create_database(self, name: str, drop_existing: bool = True) -> CommandResult:
        """Create the database, dropping an existing one first when asked."""
        check_identifier(name)
        if drop_existing and self.database_exists(name):
            logger.info("Dropping existing database: %s", name)
            dropped = self.execute(f"DROP DATABASE IF EXISTS `{name}`;")
            if not dropped.ok:
                logger.error("Failed to drop existing database: %s", name)
                return dropped

        logger.info("Creating database: %s (charset: %s, collation: %s)", name, self.charset, self.collation)
        return self.execute(
            f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET {self.charset} COLLATE {self.collation};"
        )

    def reset_database(self, name: str) -> CommandResult:
        """Drop and recreate the database."""
        return self.create_database(name, drop_existing=True)

    def list_tables(self, database: str, pattern: Optional[str] = None) -> Optional[List[str]]:
        """List tables, optionally filtered by a LIKE pattern. None when the query fails."""
        check_identifier(database)
        sql = "SHOW TABLES;" if pattern is None else f"SHOW TABLES LIKE '{pattern}';"
        result = self.execute(sql, database=database, skip_column_names=True)
        if not result.ok:
            return None
        return result.lines()

    def drop_wp_tables(self, database: str, prefix: str) -> CommandResult:
        """Drop every table carrying the WordPress prefix; FAILURE when any drop failed."""
        tables = self.list_tables(database, pattern=f"{check_identifier(prefix)}%")
        if tables is None:
            return CommandResult(
                argv=["mysql"], returncode=1, stderr=f"Failed to get table list from {database}",
                outcome=CommandOutcome.FAILURE,
            )
        failed = []
        for table in tables:
            dropped = self.execute(f"DROP TABLE IF EXISTS {quote_table(table)};", database=database)
            if not dropped.ok:
                logger.warning("Could not drop table: %s", table)
                failed.append(table)
        if failed:
            return CommandResult(
                argv=["mysql"], returncode=1, stderr=f"Could not drop tables: {', '.join(failed)}",
                outcome=CommandOutcome.FAILURE,
            )
        return CommandResult(argv=["mysql"], stdout="\n".join(tables))

    def import_sql(self, sql_file: Path, database: str) -> CommandResult:
        """Load a SQL dump into the database."""
        if not sql_file.is_file():
            return CommandResult(
                argv=["mysql"], returncode=1, stderr=f"SQL file not found: {sql_file}",
                outcome=CommandOutcome.FAILURE,
            )
        argv = ["mysql"] + self._credentials() + [f"--database={database}"]
        return self.runner.run(argv, stdin_path=sql_file)

    def export_database(self, database: str, output_file: Path) -> CommandResult:
        """Dump the database with mysqldump."""
        argv = (
            ["mysqldump"]
            + self._credentials()
            + ["--single-transaction", "--routines", "--triggers", database]
        )
        return self.runner.run(argv, stdout_path=output_file)

    def optimize_database(self, database: str) -> CommandResult:
        """Run OPTIMIZE TABLE on every table."""
        tables = self.list_tables(database)
        if tables is None:
            return CommandResult(
                argv=["mysql"], returncode=1, stderr="Failed to get table list for optimization",
                outcome=CommandOutcome.FAILURE,
            )
        for table in tables:
            result = self.execute(f"OPTIMIZE TABLE {quote_table(table)};", database=database)
            if not result.ok:
                logger.debug("Could not optimize table: %s", table)
        return CommandResult(argv=["mysql"], stdout="\n".join(tables))

    def server_status(self) -> CommandResult:
        """Report the server version."""
        return self.execute("SELECT VERSION();", skip_column_names=True)


class FallbackExecutor:
    """Runs a primary attempt and, only after a plain failure, one fallback attempt."""

    def execute(self, label: str, primary: Attempt, fallback: Optional[Attempt]) -> FallbackOutcome:
        """
        Execute an operation with at most one fallback.

        Args:
            label: Operation name for logs
            primary: Preferred attempt
            fallback: Secondary attempt, only called after a primary failure

        Returns:
            FallbackOutcome; FATAL when no path succeeded
        """
        result = primary()
        if result.ok:
            logger.info("%s succeeded via WP-CLI", label)
            return FallbackOutcome(label=label, outcome=CommandOutcome.SUCCESS, message=result.message)

        if result.fatal:
            logger.error("%s failed fatally: %s", label, result.message)
            return FallbackOutcome(label=label, outcome=CommandOutcome.FATAL, message=result.message)

        if fallback is None:
            logger.error("%s failed and has no fallback: %s", label, result.message)
            return FallbackOutcome(label=label, outcome=CommandOutcome.FATAL, message=result.message)

        logger.warning("%s failed via WP-CLI (%s), trying MySQL fallback", label, result.message)
        second = fallback()
        if second.ok:
            logger.info("%s succeeded via MySQL fallback", label)
            return FallbackOutcome(
                label=label, outcome=CommandOutcome.SUCCESS, used_fallback=True, message=second.message
            )

        logger.error("All %s methods failed: %s", label, second.message)
        return FallbackOutcome(
            label=label, outcome=CommandOutcome.FATAL, used_fallback=True, message=second.message
        )


class DatabaseService:
    """Database operations for a site with WP-CLI primary and MySQL fallback paths."""

    def __init__(
        self,
        runner: CommandRunner,
        mysql_factory: Callable[[], MysqlClient],
        executor: Optional[FallbackExecutor] = None,
    ) -> None:
        """
        Initialize the database service.

        Args:
            runner: Command runner used for WP-CLI
            mysql_factory: Builds the MySQL client, only when a fallback is needed
            executor: Fallback executor
        """
        self.runner = runner
        self.mysql_factory = mysql_factory
        self.executor = executor or FallbackExecutor()

    def reset(self, site: Site, db_name: str) -> FallbackOutcome:
        """Reset the site's database."""
        return self.executor.execute(
            "Database reset",
            lambda: self.runner.wp(site.path, "db", "reset", "--yes"),
            lambda: self.mysql_factory().reset_database(db_name),
        )

    def check(self, site: Site) -> FallbackOutcome:
        """Check the database is reachable."""
        return self.executor.execute(
            "Database check",
            lambda: self.runner.wp(site.path, "db", "check"),
            lambda: self.mysql_factory().test_connection(),
        )

    def export(self, site: Site, db_name: str, output_file: Optional[Path] = None) -> FallbackOutcome:
        """Export the database to a SQL file."""
        if output_file is None:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output_file = site.path / f"{db_name}_{stamp}.sql"
        return self.executor.execute(
            "Database export",
            lambda: self.runner.wp(site.path, "db", "export", str(output_file)),
            lambda: self.mysql_factory().export_database(db_name, output_file),
        )

    def import_sql(self, site: Site, db_name: str, sql_file: Path) -> FallbackOutcome:
        """Import a SQL file into the database."""
        return self.executor.execute(
            "Database import",
            lambda: self.runner.wp(site.path, "db", "import", str(sql_file)),
            lambda: self.mysql_factory().import_sql(sql_file, db_name),
        )

    def optimize(self, site: Site, db_name: str) -> FallbackOutcome:
        """Optimize all tables."""
        return self.executor.execute(
            "Database optimize",
            lambda: self.runner.wp(site.path, "db", "optimize"),
            lambda: self.mysql_factory().optimize_database(db_name),
        )

    def clean(self, site: Site, db_name: str, prefix: str) -> FallbackOutcome:
        """Drop the WordPress tables while keeping the database."""
        return self.executor.execute(
            "Database clean",
            lambda: self.runner.wp(site.path, "db", "clean", "--yes"),
            lambda: self.mysql_factory().drop_wp_tables(db_name, prefix),
        )
