"""
nixup — CLI entrypoint.

Usage:
    nixup --help
    nixup updates count
    nixup updates list --refresh
    python -m nixup.main updates json
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from nixup import __version__
from nixup.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="nixup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: $XDG_CONFIG_HOME/nixup/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """nixup — NixOS package update checker."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("NIXUP_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("NIXUP_LOG_FILE"),
        log_file_level=os.environ.get("NIXUP_LOG_FILE_LEVEL"),
    )


# ── Register sub-command groups from nixup/ui/cli/ ────────────────

from nixup.ui.cli.updates import updates

cli.add_command(updates)


if __name__ == "__main__":
    cli()
