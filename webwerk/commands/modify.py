"""Modify command."""

from pathlib import Path
from typing import Optional, Tuple

import click
from pydantic import ValidationError

from ..models import ModifyAction, OperationKind
from ..services import ModifyOptions
from ..utils.config import Config
from .common import run_batch, site_options


@click.command()
@site_options
@click.argument(
    "actions",
    nargs=-1,
    required=True,
    type=click.Choice([a.value for a in ModifyAction]),
)
@click.option(
    "--plugin",
    "-p",
    help="Plugin slug for install-plugin, remove-plugin and update-plugin ('all' to update all)",
)
@click.option(
    "--from",
    "copy_from",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Plugin directory for copy-plugin",
)
@click.option("--user", "-U", "user", help="Login for new-user")
@click.option("--password", "-P", "password", help="Password for new-user (generated when omitted)")
@click.option("--email", "-E", "email", help="Email for new-user")
@click.option(
    "--sql-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Dump for db-import",
)
@click.option("--export-dir", type=click.Path(file_okay=False, path_type=Path), help="Output directory for db-export")
@click.option("--max-count", default=10, show_default=True, help="Commits shown by git-log")
@click.pass_context
def modify(
    ctx: click.Context,
    sites: Optional[str],
    all_sites: bool,
    actions: Tuple[str, ...],
    plugin: Optional[str],
    copy_from: Optional[Path],
    user: Optional[str],
    password: Optional[str],
    email: Optional[str],
    sql_file: Optional[Path],
    export_dir: Optional[Path],
    max_count: int,
) -> None:
    """
    Apply ACTIONS to existing sites, in the order given.

    \b
    Example:
        webwerk modify -s shop,blog install-plugin debug-off --plugin query-monitor
    """
    config: Config = ctx.obj["config"]
    try:
        options = ModifyOptions(
            actions=[ModifyAction(a) for a in actions],
            plugin=plugin,
            copy_from=copy_from,
            user=user or config.get("WP_MOD_DEFAULT_USER", "test"),
            password=password or config.get("WP_MOD_DEFAULT_PASSWORD"),
            email=email or config.get("WP_MOD_DEFAULT_EMAIL", config.wp_admin_email),
            sql_file=sql_file,
            export_dir=export_dir,
            log_count=max_count,
        )
    except ValidationError as e:
        raise click.UsageError("; ".join(err["msg"] for err in e.errors()))
    run_batch(ctx, OperationKind.MODIFY, "mod", sites, all_sites, options)
