"""Update command."""

from typing import Optional

import click

from ..models import GitMode, OperationKind
from ..services import UpdateOptions
from .common import run_batch, site_options


@click.command()
@site_options
@click.option("--minor", "-m", is_flag=True, help="Only apply minor plugin updates")
@click.option("--no-core", is_flag=True, help="Leave WordPress core alone")
@click.option("--exclude-plugins", "-x", "exclude", help="Comma-separated plugins that are never updated")
@click.option("--git", "-g", "git", is_flag=True, help="Commit each plugin update in wp-content")
@click.option("--sum", "summary_commit", is_flag=True, help="One summary commit instead of one per plugin")
@click.option("--git-push", "--gp", "git_push", is_flag=True, help="Commit and push, also with --yes")
@click.pass_context
def update(
    ctx: click.Context,
    sites: Optional[str],
    all_sites: bool,
    minor: bool,
    no_core: bool,
    exclude: Optional[str],
    git: bool,
    summary_commit: bool,
    git_push: bool,
) -> None:
    """
    Update WordPress core and plugins.

    Each site is checked first; core and plugin updates ask for confirmation
    unless --yes is given.
    """
    if git_push:
        git_mode = GitMode.PUSH
    elif git or summary_commit:
        git_mode = GitMode.COMMIT
    else:
        git_mode = GitMode.OFF

    options = UpdateOptions(
        core=not no_core,
        minor=minor,
        git_mode=git_mode,
        summary_commit=summary_commit,
        exclude=exclude,
    )
    run_batch(ctx, OperationKind.UPDATE, "update", sites, all_sites, options)
