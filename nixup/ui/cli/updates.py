"""
CLI commands for package update checking.

Thin wrappers over ``nixup.core.use_cases``. ``check``/``json``/``list``
take the execution lock and may run nix; ``count``/``tooltip``/``status``
only read caches and are safe to poll from a status bar.
"""

from __future__ import annotations

import functools
import json
import subprocess
import sys
from collections.abc import Callable
from typing import Any

import click

from nixup.adapters.base import PackageSource
from nixup.core.config.loader import ConfigError, load_config
from nixup.core.models.config import NixupConfig
from nixup.core.use_cases.check_updates import UpdateCheckResult


def _get_config(ctx: click.Context) -> NixupConfig:
    """Load (once) and return the nixup configuration."""
    obj = ctx.ensure_object(dict)
    config = obj.get("config")
    if config is None:
        try:
            config = load_config(obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)
        obj["config"] = config
    return config


def _get_source(ctx: click.Context, config: NixupConfig) -> PackageSource:
    """Package source — injectable through ``ctx.obj['source']``."""
    source = ctx.ensure_object(dict).get("source")
    if source is None:
        from nixup.adapters.nix.command import NixCliAdapter

        source = NixCliAdapter(timeout=config.timeout_seconds)
    return source


def _force_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach --rescan/--recheck/--refresh/--fetch."""

    @click.option("--fetch", "force_fetch", is_flag=True, help="Force re-fetch of the nixpkgs package index.")
    @click.option("--refresh", is_flag=True, help="Force both rescan and recheck.")
    @click.option("--recheck", "force_recheck", is_flag=True, help="Force recheck of package versions.")
    @click.option("--rescan", "force_rescan", is_flag=True, help="Force rescan of installed packages.")
    @functools.wraps(func)
    def wrapper(*args: Any, refresh: bool, **kwargs: Any) -> Any:
        if refresh:
            kwargs["force_rescan"] = True
            kwargs["force_recheck"] = True
        return func(*args, **kwargs)

    return wrapper


def _run_check(
    ctx: click.Context,
    force_rescan: bool,
    force_recheck: bool,
    force_fetch: bool,
) -> UpdateCheckResult:
    """Run the update pipeline with a terminal progress bar."""
    from nixup.core.observability.progress import TerminalProgress
    from nixup.core.persistence.lock_file import install_termination_handlers
    from nixup.core.use_cases.check_updates import check_updates

    config = _get_config(ctx)
    source = _get_source(ctx, config)
    progress = TerminalProgress()

    install_termination_handlers()
    try:
        result = check_updates(
            config,
            force_rescan=force_rescan,
            force_recheck=force_recheck,
            force_fetch=force_fetch,
            source=source,
            on_progress=progress,
        )
    finally:
        progress.clear()

    return result


def _quiet_for_status_bar(ctx: click.Context) -> None:
    """Polled commands only log errors unless -v/--debug was given."""
    from nixup.core.observability.logging_config import quiet_console

    obj = ctx.ensure_object(dict)
    if not (obj.get("verbose") or obj.get("debug")):
        quiet_console()


def _rescan_installed(ctx: click.Context, config: NixupConfig) -> list:
    """Rescan the closure under the execution lock; the status file is transient."""
    from nixup.core.observability.progress import StatusChannel
    from nixup.core.persistence.lock_file import ExecutionLock
    from nixup.core.services.installed_scan import InstalledScanner
    from nixup.core.use_cases.check_updates import BUSY_MESSAGE

    lock = ExecutionLock(config.lock_file)
    if not lock.acquire():
        click.secho(f"⚠️  {BUSY_MESSAGE}", fg="yellow", err=True)
        sys.exit(1)

    status = StatusChannel(config.status_file)
    try:
        return InstalledScanner(config, _get_source(ctx, config), status).get_installed(force_rescan=True)
    finally:
        status.clear()
        lock.release()


def _exit_if_busy(result: UpdateCheckResult, as_json: bool = False) -> None:
    if not result.busy:
        return
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    click.secho(f"⚠️  {result.error}", fg="yellow", err=True)
    sys.exit(1)


@click.group()
def updates() -> None:
    """Updates — check, count, list, tooltip, installed."""


# ── Check (takes the lock) ──────────────────────────────────────


@updates.command()
@_force_options
@click.pass_context
def check(ctx: click.Context, force_rescan: bool, force_recheck: bool, force_fetch: bool) -> None:
    """Check for updates and print a summary (uses caches unless forced).

    Scripts and status bars should read `nixup updates json` instead.
    """
    result = _run_check(ctx, force_rescan, force_recheck, force_fetch)
    _exit_if_busy(result)

    report = result.report
    assert report is not None

    source_label = " (cached)" if result.cached else ""
    if report.count == 0:
        click.secho(f"✅ All {report.total} packages up to date{source_label}", fg="green")
    else:
        click.secho(
            f"📦 {report.count} updates available ({report.checked}/{report.total} checked){source_label}",
            fg="yellow",
            bold=True,
        )


@updates.command("json")
@_force_options
@click.pass_context
def json_report(ctx: click.Context, force_rescan: bool, force_recheck: bool, force_fetch: bool) -> None:
    """Output the full update report as JSON (for scripts)."""
    result = _run_check(ctx, force_rescan, force_recheck, force_fetch)
    _exit_if_busy(result, as_json=True)
    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@updates.command("list")
@_force_options
@click.pass_context
def list_updates(ctx: click.Context, force_rescan: bool, force_recheck: bool, force_fetch: bool) -> None:
    """Human-readable list of available updates."""
    result = _run_check(ctx, force_rescan, force_recheck, force_fetch)
    _exit_if_busy(result)

    report = result.report
    assert report is not None

    if report.count == 0:
        click.secho("All packages are up to date!", fg="green")
        return

    click.secho(f"Updates available ({report.count}):", fg="yellow", bold=True)
    width = max(len(u.name) for u in report.updates)
    for u in report.updates:
        click.echo(f"  {u.name:<{width}}  {u.installed} → {u.latest}")


@updates.command()
@click.pass_context
def fetch(ctx: click.Context) -> None:
    """Refresh all package data in the background."""
    from nixup.core.use_cases.status import get_check_status

    config = _get_config(ctx)
    if get_check_status(config).busy:
        click.secho("⚠️  A check is already running", fg="yellow", err=True)
        sys.exit(1)

    argv = [sys.executable, "-m", "nixup.main"]
    if ctx.obj.get("config_path"):
        argv += ["--config", str(ctx.obj["config_path"])]
    argv += ["updates", "check", "--refresh", "--fetch"]

    subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    if not ctx.obj.get("quiet"):
        click.echo("Refreshing package data in the background...")


# ── Observe (never takes the lock) ──────────────────────────────


@updates.command()
@click.option("--busy-text", default=None, help="Print this instead of the count while a check runs.")
@click.pass_context
def count(ctx: click.Context, busy_text: str | None) -> None:
    """Output just the update count ('?' if unknown)."""
    from nixup.core.use_cases.status import get_check_status, get_count

    _quiet_for_status_bar(ctx)
    config = _get_config(ctx)
    if busy_text is not None and get_check_status(config).busy:
        click.echo(busy_text)
        return
    click.echo(get_count(config))


@updates.command()
@click.option("--max-items", default=5, type=int, show_default=True, help="Updates to show before '+N more'.")
@click.pass_context
def tooltip(ctx: click.Context, max_items: int) -> None:
    """Status bar tooltip: progress while busy, updates when idle."""
    from nixup.core.use_cases.status import get_tooltip

    _quiet_for_status_bar(ctx)
    click.echo(get_tooltip(_get_config(ctx), max_items=max_items))


@updates.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show whether a check is running and its current phase."""
    from nixup.core.use_cases.status import get_check_status

    _quiet_for_status_bar(ctx)
    result = get_check_status(_get_config(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    if not result.busy:
        click.echo("idle")
        return

    record = result.record
    click.secho(f"busy (pid {result.holder_pid})", fg="yellow")
    if record is not None:
        line = record.message or record.phase
        if record.total > 0:
            line += f" {record.bar} {record.progress}/{record.total}"
        click.echo(f"   {line}")


@updates.command()
@click.option("--rescan", "force_rescan", is_flag=True, help="Rescan the system closure first.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def installed(ctx: click.Context, force_rescan: bool, as_json: bool) -> None:
    """Show detected installed packages."""
    from nixup.core.use_cases.status import get_installed

    config = _get_config(ctx)
    if force_rescan:
        packages = _rescan_installed(ctx, config)
    else:
        packages = get_installed(config)

    if packages is None:
        click.echo("No installed package cache. Run 'nixup updates check --rescan' first.")
        return

    if as_json:
        click.echo(json.dumps([p.model_dump() for p in packages], indent=2, ensure_ascii=False))
        return

    width = max((len(p.name) for p in packages), default=0)
    for p in packages:
        click.echo(f"{p.name:<{width}}  {p.version}")
