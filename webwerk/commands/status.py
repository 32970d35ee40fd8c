"""Status command."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..services import CommandRunner, ConfirmationGate, SiteRegistry
from ..utils.config import Config
from .common import start_logging

console = Console()

OPTIONAL_TOOLS = ("mysql", "mysqldump", "git", "php", "ddev")


@click.command()
@click.option("--show-settings", is_flag=True, help="Also list every raw setting (secrets masked)")
@click.pass_context
def status(ctx: click.Context, show_settings: bool) -> None:
    """Show configuration, tool availability and discovered sites."""
    config: Config = ctx.obj["config"]
    start_logging(ctx, "status")
    runner: CommandRunner = ctx.obj.get("runner") or CommandRunner(config.wp_cli_argv)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Base directory", escape(str(config.base_dir)))
    table.add_row("WP-CLI", escape(config.wp_cli_path))
    table.add_row("Database", f"{config.db_user}@{config.db_host}")
    table.add_row("Locale", config.wp_locale)
    table.add_row("Auto-confirm", str(config.auto_confirm))
    table.add_row("Log directory", escape(str(config.log_dir)))
    console.print(table)

    if show_settings:
        settings = Table(title="Settings")
        settings.add_column("Key", style="cyan")
        settings.add_column("Value")
        for key, value in config.masked_settings().items():
            settings.add_row(escape(key), escape(value))
        console.print(settings)

    wp_tool = config.wp_cli_argv[0] if config.wp_cli_argv else "wp"
    tools = Table(title="Tools")
    tools.add_column("Tool", style="cyan")
    tools.add_column("Status")
    wp_found = runner.available(wp_tool)
    tools.add_row(f"{wp_tool} (required)", "[green]found[/green]" if wp_found else "[red]missing[/red]")
    for tool in OPTIONAL_TOOLS:
        found = runner.available(tool)
        tools.add_row(tool, "[green]found[/green]" if found else "[yellow]missing[/yellow]")
    console.print(tools)

    registry = SiteRegistry(config.base_dir, ConfirmationGate(auto_confirm=True))
    found_sites = registry.scan()
    if found_sites:
        sites = Table(title=f"WordPress sites ({len(found_sites)} total)")
        sites.add_column("Site", style="cyan")
        sites.add_column("Path")
        for site in found_sites:
            sites.add_row(escape(site.name), escape(str(site.path)))
        console.print(sites)
    else:
        console.print(f"[yellow]No WordPress sites found in {escape(str(config.base_dir))}[/yellow]")

    if not wp_found:
        console.print(f"[red]Error: WP-CLI not found at: {escape(config.wp_cli_path)}[/red]")
        ctx.exit(1)
