"""
install-node — CLI entrypoint.

Usage:
    install-node --help
    RUNTIME_VERSION=v8.9.4 PKGMGR_VERSION=v1.3.2 install-node install
    install-node config check
    install-node deps

Also runnable as ``python -m install_node.main``.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from install_node import __version__
from install_node.core.errors import InstallError
from install_node.core.observability.logging_config import (
    resolve_level,
    setup_logging_from_env,
)


def _load(ctx: click.Context):
    """Load settings from the process environment (+ optional file)."""
    from install_node.core.config.loader import load_settings

    return load_settings(os.environ, ctx.obj.get("config_path"))


def _fail(error: InstallError) -> None:
    click.secho(f"ERROR: {error.message}", fg="red", err=True)
    sys.exit(error.exit_code)


@click.group()
@click.version_option(version=__version__, prog_name="install-node")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only print errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="YAML file with settings (environment variables win).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """install-node — install Node.js and Yarn into a container image."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    level = resolve_level(os.environ, debug=debug, verbose=verbose, quiet=quiet)
    setup_logging_from_env(os.environ, level)


@cli.command()
@click.option(
    "--interleave-logs",
    is_flag=True,
    default=False,
    help="Log the background Yarn download live instead of as one block.",
)
@click.option("--skip-preflight", is_flag=True, help="Don't check for git/curl/gpg first.")
@click.pass_context
def install(ctx: click.Context, interleave_logs: bool, skip_preflight: bool) -> None:
    """Download, verify and install Node.js and Yarn."""
    from install_node.core.services.node_install import (
        require_dependencies,
        run_install,
    )

    try:
        settings = _load(ctx)
        if interleave_logs and not settings.interleave_logs:
            settings = settings.model_copy(update={"interleave_logs": True})
        if not skip_preflight:
            require_dependencies(settings.build_from_source)
        result = run_install(settings)
    except InstallError as e:
        _fail(e)
        return

    if not ctx.obj.get("quiet"):
        for name, version in result.versions.items():
            click.secho(f"✓ {name} {version}", fg="green")


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate settings and print the resolved values."""
    from install_node.core.errors import ConfigurationError

    try:
        settings = _load(ctx)
    except ConfigurationError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "error": e.message, "missing": e.missing}, indent=2))
            sys.exit(1)
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps({"valid": True, "settings": settings.to_dict()}, indent=2))
        return

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    for key, value in settings.display_items():
        click.echo(f"   {key}: {value}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--make",
    "build_from_source",
    is_flag=True,
    help="Check the source build toolchain as mandatory.",
)
@click.pass_context
def deps(ctx: click.Context, as_json: bool, build_from_source: bool) -> None:
    """Check that required command-line tools are installed."""
    from install_node.core.config.loader import MAKE_VARIANT, resolve_setting
    from install_node.core.services.node_install import check_dependencies

    try:
        variant = resolve_setting("RUNTIME_VARIANT", os.environ, ctx.obj.get("config_path"))
    except InstallError as e:
        _fail(e)
        return
    build_from_source = build_from_source or variant == MAKE_VARIANT

    report = check_dependencies(build_from_source)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        for name, path in report.found.items():
            click.secho(f"   ✓ {name} ", fg="green", nl=False)
            click.echo(path)
        for name in report.missing:
            click.secho(f"   ✗ {name}", fg="red")

    if not report.ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
