"""Helpers shared by the batch commands."""

import logging
from typing import Any, Callable, List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import ConfigurationError
from ..models import BatchSummary, OperationKind, ResultStatus, Site
from ..services import BatchContext, BatchDriver, ConfirmationGate, SiteRegistry
from ..utils.config import Config
from ..utils.log import setup_logging

console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    ResultStatus.SUCCESS: "green",
    ResultStatus.FAILURE: "red",
    ResultStatus.SKIPPED: "yellow",
}


def site_options(func: Callable) -> Callable:
    """Add the site selection flags to a command."""
    func = click.option(
        "--sites", "-s", "sites", help="Comma-separated site directories below the base directory"
    )(func)
    func = click.option(
        "--all-sites", "-a", "all_sites", is_flag=True, help="Process every WordPress site in the base directory"
    )(func)
    return func


def start_logging(ctx: click.Context, category: str) -> None:
    config: Config = ctx.obj["config"]
    level = "DEBUG" if ctx.obj.get("verbose") else config.log_level
    logfile = setup_logging(category, config.log_dir, level)
    logger.debug("Logging to %s", logfile)


def make_gate(ctx: click.Context) -> ConfirmationGate:
    config: Config = ctx.obj["config"]
    return ctx.obj.get("gate") or ConfirmationGate(config.auto_confirm)


def resolve_sites(
    config: Config, gate: ConfirmationGate, sites: Optional[str], all_sites: bool
) -> List[Site]:
    """Resolve the working set or stop with a usage error."""
    registry = SiteRegistry(config.base_dir, gate)
    try:
        return registry.resolve(sites=sites, all_sites=all_sites, interactive=not config.auto_confirm)
    except ValueError as e:
        raise click.UsageError(str(e))


def print_results(summary: BatchSummary) -> None:
    """Results table followed by the summary line."""
    if summary.results:
        table = Table(title=f"Results ({len(summary.results)} sites)")
        table.add_column("Site", style="cyan")
        table.add_column("Status")
        table.add_column("Steps", justify="right")
        table.add_column("Message")

        for result in summary.results:
            style = STATUS_STYLES[result.status]
            table.add_row(
                escape(result.site.name),
                f"[{style}]{result.status.value}[/{style}]",
                str(result.steps_done),
                escape(result.message),
            )
        console.print(table)

    color = "red" if summary.failed() else "green"
    console.print(
        f"[{color}]Summary: {summary.succeeded()} succeeded, {summary.failed()} failed, "
        f"{summary.skipped()} skipped[/{color}]"
    )


def run_batch(
    ctx: click.Context,
    kind: OperationKind,
    category: str,
    sites: Optional[str],
    all_sites: bool,
    options: Any,
) -> None:
    """Resolve sites, run the operation and exit with the batch status."""
    config: Config = ctx.obj["config"]
    start_logging(ctx, category)
    gate = make_gate(ctx)

    try:
        context = BatchContext.build(config, gate, runner=ctx.obj.get("runner"))
        targets = resolve_sites(config, gate, sites, all_sites)
        if not targets:
            console.print("[yellow]No sites selected[/yellow]")
            ctx.exit(0)

        where = escape(str(config.base_dir))
        console.print(f"[cyan]{kind.value.capitalize()}: {len(targets)} site(s) in {where}[/cyan]")
        summary = BatchDriver(context).run(kind, targets, options)
    except ConfigurationError as e:
        logger.error("%s", e)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    print_results(summary)
    ctx.exit(summary.exit_code)
