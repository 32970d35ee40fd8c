"""Install command."""

from typing import Optional

import click

from ..models import InstallMode, OperationKind
from ..services import InstallOptions
from .common import run_batch, site_options


@click.command()
@site_options
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in InstallMode], case_sensitive=False),
    default=InstallMode.FULL.value,
    show_default=True,
    help="full: everything; minimal: no repository or licenses; ddev: inside a DDEV project",
)
@click.pass_context
def install(ctx: click.Context, sites: Optional[str], all_sites: bool, mode: str) -> None:
    """Install WordPress into site directories."""
    options = InstallOptions(mode=InstallMode(mode.lower()))
    run_batch(ctx, OperationKind.INSTALL, "install", sites, all_sites, options)
