"""Main CLI entry point."""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .commands import install, modify, status, update
from .errors import ConfigurationError
from .utils.config import load_config

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--base-dir",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the WordPress sites (WORDPRESS_BASE_DIR)",
)
@click.option("--wp-cli", "-w", "wp_cli", help="WP-CLI executable, e.g. 'ddev wp' (WP_CLI_PATH)")
@click.option("--yes", "-y", "yes", is_flag=True, help="Answer yes to every confirmation prompt")
@click.option("--verbose", "-v", is_flag=True, help="Log external commands")
@click.pass_context
def cli(
    ctx: click.Context, base_dir: Optional[Path], wp_cli: Optional[str], yes: bool, verbose: bool
) -> None:
    """
    webwerk - Install, update and modify WordPress sites in bulk.

    Sites are directories below the base directory. Without --sites or
    --all-sites the base directory itself is the site.
    """
    ctx.ensure_object(dict)
    config = ctx.obj.get("config")
    if config is None:
        try:
            config = load_config()
        except ConfigurationError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            ctx.exit(1)

    overrides = {}
    if base_dir is not None:
        overrides["base_dir"] = base_dir
    if wp_cli:
        overrides["wp_cli_path"] = wp_cli
    if yes:
        overrides["auto_confirm"] = True
    if overrides:
        config = config.model_copy(update=overrides)

    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


cli.add_command(install)
cli.add_command(update)
cli.add_command(modify)
cli.add_command(status)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
