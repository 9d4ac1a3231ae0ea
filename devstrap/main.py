"""
devstrap — CLI entrypoint.

Usage:
    devstrap --help
    devstrap run
    devstrap status
    devstrap verify
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devstrap import __version__
from devstrap.core.observability.logging_config import ENV_LOG_LEVEL, setup_logging

EXIT_STEP_FAILED = 1
EXIT_ENVIRONMENT = 2
EXIT_INTERRUPTED = 130


@click.group()
@click.version_option(version=__version__, prog_name="devstrap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: ~/.config/devstrap/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devstrap — idempotent developer-workstation provisioning."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get(ENV_LOG_LEVEL, "WARNING")

    setup_logging(level=level)


def _fail(message: str, as_json: bool) -> None:
    """Report a fatal environment/config error and exit 2."""
    if as_json:
        click.echo(json.dumps({"status": "error", "error": message}, indent=2))
    else:
        click.secho(f"[bootstrap] ERROR: {message}", fg="red", err=True)
    sys.exit(EXIT_ENVIRONMENT)


def _load_config(ctx: click.Context, as_json: bool = False):
    """Load config or exit with the environment error code."""
    from devstrap.core.config.loader import load_config
    from devstrap.core.engine.plan import step_names
    from devstrap.core.errors import ConfigError

    try:
        return load_config(ctx.obj.get("config_path"), known_steps=step_names())
    except ConfigError as e:
        _fail(str(e), as_json)


def _print_verification(report) -> None:
    click.echo("[bootstrap] Verification:")
    for tool in report.verification:
        color = None if tool.found else "yellow"
        click.secho(f"[bootstrap] {tool.name}: {tool.display()}", fg=color)
    click.echo(f"[bootstrap] shell: {report.shell or 'UNKNOWN'}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(ctx: click.Context, as_json: bool) -> None:
    """Provision this machine: zsh → nvm → cli-tools → micro → tmux."""
    from devstrap.core.engine.orchestrator import run_bootstrap
    from devstrap.core.errors import UnsupportedEnvironmentError
    from devstrap.core.observability.console import TaggedConsole

    config = _load_config(ctx, as_json)
    console = TaggedConsole("[bootstrap]", quiet=ctx.obj.get("quiet", False) or as_json)

    try:
        report = run_bootstrap(config, console=console)
    except UnsupportedEnvironmentError as e:
        _fail(str(e), as_json)
    except KeyboardInterrupt:
        click.secho(
            "\n[bootstrap] Interrupted. Re-run to continue; completed steps will be skipped.",
            fg="red",
            err=True,
        )
        sys.exit(EXIT_INTERRUPTED)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(EXIT_STEP_FAILED if report.aborted else 0)

    if report.aborted:
        failed = report.failed_step
        click.secho(
            f"[bootstrap] Aborted at {failed.step.name if failed else '?'}. "
            "Fix the problem and re-run; completed steps will be skipped.",
            fg="red",
            err=True,
        )
        sys.exit(EXIT_STEP_FAILED)

    click.echo()
    click.secho("[bootstrap] Done.", fg="green", bold=True)
    click.echo()
    _print_verification(report)
    click.echo()
    click.echo("[bootstrap] Run: source ~/.zshrc")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show which steps are already configured (read-only)."""
    from devstrap.core.detection.probes import probe_step
    from devstrap.core.engine.plan import ordered_steps

    config = _load_config(ctx, as_json)
    steps = ordered_steps()
    result = {s.name: probe_step(s.name) for s in steps}

    if as_json:
        click.echo(json.dumps(
            {
                "steps": [
                    {
                        "step": s.name,
                        "configured": result[s.name],
                        "disabled": s.name in config.skip,
                    }
                    for s in steps
                ],
            },
            indent=2,
        ))
        return

    click.secho("\n📋 Provisioning steps", fg="cyan", bold=True)
    for s in steps:
        if s.name in config.skip:
            click.secho(f"   ⊘ {s.name:<10} disabled", fg="white")
        elif result[s.name]:
            click.secho(f"   ✓ {s.name:<10} configured", fg="green")
        else:
            click.secho(f"   ✗ {s.name:<10} pending", fg="yellow")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(ctx: click.Context, as_json: bool) -> None:
    """Report installed versions of the expected tools."""
    from devstrap.core.detection.tool_version import verify_tools

    config = _load_config(ctx, as_json)
    tools = verify_tools(config.verify)

    if as_json:
        click.echo(json.dumps({t.name: t.version for t in tools}, indent=2))
        return

    for tool in tools:
        color = None if tool.found else "yellow"
        click.secho(f"[bootstrap] {tool.name}: {tool.display()}", fg=color)
    click.echo(f"[bootstrap] shell: {os.environ.get('SHELL', 'UNKNOWN')}")


@cli.command()
@click.pass_context
def steps(ctx: click.Context) -> None:
    """List the provisioning steps in execution order."""
    from devstrap.core.engine.plan import default_steps_dir, ordered_steps

    config = _load_config(ctx)
    steps_dir = Path(config.steps_dir).expanduser() if config.steps_dir else default_steps_dir()

    click.secho(f"Steps ({steps_dir}):", fg="cyan", bold=True)
    for s in ordered_steps():
        marker = " (disabled)" if s.name in config.skip else ""
        click.echo(f"  {s.order}. {s.name:<10} {s.script:<13} {s.description}{marker}")


if __name__ == "__main__":
    cli()
