"""machine-setup CLI: idempotent macOS bootstrap."""

import logging
import tomllib
from datetime import datetime
from pathlib import Path

import click
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from typer.core import TyperCommand

from . import __version__
from .config import (
    LoggingConfig,
    SetupConfig,
    get_default_config_path,
    load_config,
    write_config_template,
)
from .core import (
    Registry,
    apply_legacy_flags,
    generate_run_id,
    get_transcript_path,
    render,
    render_json,
    resolve,
    run_steps,
    split_tokens,
    write_transcript,
)
from .errors import UnknownSectionError
from .logging import configure_logging
from .models import RunMode, RunSummary
from .output import OutputContext
from .services import (
    MachineState,
    current_platform,
    format_entries,
    parse_brewfile,
    resolve_brewfile,
)
from .steps import ALIASES, GROUPS, build_aliases, build_registry

logger = logging.getLogger(__name__)


class SetupCommand(TyperCommand):
    """Command that reports usage errors with exit code 1."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


def catalog_table(registry: Registry) -> Table:
    """Build the table of selection tokens shown by --help."""
    table = Table(title="Groups and steps", show_header=True, header_style="bold")
    table.add_column("Token")
    table.add_column("Runs")

    for name, members in GROUPS.items():
        table.add_row(name, ", ".join(m.value for m in members if m in registry))
    table.add_row("all", "every step")
    for step in registry:
        table.add_row(step.id.value, step.label)
    for alias, target in ALIASES.items():
        table.add_row(alias, f"same as {target}")
    return table


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"machine-setup {__version__}")
        raise typer.Exit()


def _help_callback(ctx: typer.Context, value: bool) -> None:
    """Print usage plus the token catalog and exit."""
    if not value or ctx.resilient_parsing:
        return
    help_text = ctx.get_help()
    if help_text:
        typer.echo(help_text)
    Console().print(catalog_table(build_registry(SetupConfig())))
    raise typer.Exit()


app = typer.Typer(
    name="machine-setup",
    help="Bootstrap a macOS machine: probe each setup step and apply only what is missing",
    add_completion=False,
)


def _report(
    ctx: OutputContext, summary: RunSummary, state: MachineState, config: SetupConfig
) -> None:
    """Print the summary, the Brewfile entries and the manual steps."""
    if ctx.json_mode:
        ctx.print_json(render_json(summary))
        return

    ctx.heading("Summary")
    ctx.print_plain(render(summary))

    brewfile = resolve_brewfile(state, config.homebrew)
    lines: list[str] = []
    if brewfile is not None:
        try:
            lines = format_entries(parse_brewfile(brewfile.read_text()))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot list Brewfile entries from %s: %s", brewfile, e)
    if lines:
        ctx.heading("Brewfile entries")
        for line in lines:
            ctx.print_plain(line)

    if config.manual_steps:
        ctx.heading("Manual steps")
        for item in config.manual_steps:
            ctx.print_plain(f"- {item}")


@app.command(cls=SetupCommand, context_settings={"help_option_names": []})
def main(
    only: list[str] | None = typer.Option(
        None,
        "--only",
        metavar="TOKENS",
        help="Comma-separated groups/steps to run. Listed steps are re-applied "
        "even when already configured; prerequisites run only if needed.",
    ),
    skip: list[str] | None = typer.Option(
        None,
        "--skip",
        metavar="TOKENS",
        help="Comma-separated groups/steps never to run, even as prerequisites",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "--plan",
        help="Show what would change without changing anything",
    ),
    global_only: bool = typer.Option(False, "--global-only", help="Same as --only=global"),
    user_only: bool = typer.Option(False, "--user-only", help="Same as --only=user"),
    defaults_only: bool = typer.Option(False, "--defaults-only", help="Same as --only=defaults"),
    skip_global: bool = typer.Option(False, "--skip-global", help="Same as --skip=global"),
    skip_user: bool = typer.Option(False, "--skip-user", help="Same as --skip=user"),
    skip_defaults: bool = typer.Option(False, "--skip-defaults", help="Same as --skip=defaults"),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: ~/.machine-setup/config.toml)",
    ),
    log_dir: Path | None = typer.Option(
        None,
        "--log-dir",
        help="Directory for the run transcript (default: logging.dir from config)",
    ),
    write_config: bool = typer.Option(
        False,
        "--write-config",
        help="Write a config template and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log warnings and errors",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the summary as JSON",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    _help: bool = typer.Option(
        False,
        "--help",
        "-h",
        callback=_help_callback,
        is_eager=True,
        expose_value=False,
        help="Show this message and the list of groups and steps, then exit",
    ),
) -> None:
    """Probe every selected setup step and apply the ones that are needed."""
    console = configure_logging(verbosity=verbose, quiet=quiet, no_color=no_color)
    ctx = OutputContext(console=console, json_mode=json_output, dry_run=dry_run)

    config_file = config_path or get_default_config_path()
    if write_config:
        if config_file.exists():
            ctx.error(f"Config already exists: {config_file}")
            raise typer.Exit(1)
        write_config_template(config_file)
        ctx.success(f"Created config template: {config_file}")
        return

    started_at = datetime.now()
    run_id = generate_run_id(started_at)
    # Runs rejected before the config loads use the default log dir
    transcript = get_transcript_path(log_dir or Path(LoggingConfig().dir).expanduser(), run_id)
    legacy_flags = {
        "global_only": global_only,
        "user_only": user_only,
        "defaults_only": defaults_only,
        "skip_global": skip_global,
        "skip_user": skip_user,
        "skip_defaults": skip_defaults,
    }

    try:
        config = _load(ctx, config_file)
        if log_dir is None:
            transcript = get_transcript_path(Path(config.logging.dir).expanduser(), run_id)
        summary = _run(ctx, config, dry_run, only, skip, legacy_flags)
    finally:
        write_transcript(console, transcript, started_at, ctx.json_console)
        ctx.print(f"[dim]Transcript: {transcript}[/dim]")

    if summary.exit_code:
        raise typer.Exit(summary.exit_code)


def _load(ctx: OutputContext, config_file: Path) -> SetupConfig:
    """Load the config, exiting 1 if it is invalid."""
    try:
        return load_config(config_file)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        ctx.error(f"Invalid config {config_file}: {e}")
        raise typer.Exit(1) from None


def _run(
    ctx: OutputContext,
    config: SetupConfig,
    dry_run: bool,
    only: list[str] | None,
    skip: list[str] | None,
    legacy_flags: dict[str, bool],
) -> RunSummary:
    """Resolve the selection, run the steps and print the report.

    Raises:
        typer.Exit: With code 1 on an unknown token or a non-macOS live run
    """
    mode = RunMode.DRY_RUN if dry_run else RunMode.LIVE
    registry = build_registry(config)
    only_tokens, skip_tokens = apply_legacy_flags(
        legacy_flags, split_tokens(only), split_tokens(skip)
    )
    try:
        selection = resolve(only_tokens, skip_tokens, registry, build_aliases(registry))
    except UnknownSectionError as e:
        ctx.error(str(e), {"token": e.token})
        ctx.print("Run with --help to list groups and steps.")
        raise typer.Exit(1) from None

    if mode == RunMode.LIVE and current_platform() != "Darwin":
        ctx.error("This tool is for macOS only; use --dry-run to preview elsewhere")
        raise typer.Exit(1)

    if dry_run:
        logger.info("Dry run: nothing will be changed")
    with MachineState() as state:
        summary = run_steps(registry, selection, state, mode)
        _report(ctx, summary, state, config)
    return summary
