"""CLI entrypoint for auditgraph."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .errors import AuditError

DEFAULT_STORE = "auditgraph.jsonl"
DEFAULT_CONFIG = "auditgraph.toml"


def _auto_detect_config(start: Path) -> Path | None:
    """Find auditgraph.toml by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / DEFAULT_CONFIG
        if candidate.is_file():
            return candidate
    return None


@click.group()
@click.version_option(__version__, prog_name="auditgraph")
@click.option(
    "--store",
    "-s",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STORE,
    show_default=True,
    help="JSONL commit log to read",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML config registering domain classes (defaults to auto-detected ./auditgraph.toml)",
)
@click.option("--verbose", is_flag=True, help="Log engine activity to stderr")
@click.pass_context
def cli(ctx: click.Context, store: Path, config_path: Path | None, verbose: bool) -> None:
    """auditgraph - Object graph audit log.

    Inspect snapshot and change history recorded in a commit log.
    """
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if config_path is None:
        config_path = _auto_detect_config(Path.cwd())

    ctx.obj["store"] = store
    ctx.obj["config"] = config_path


def _auditor(ctx: click.Context):
    from .commands.history_cmd import open_auditor

    try:
        return open_auditor(ctx.obj["store"], ctx.obj["config"])
    except (ValueError, FileNotFoundError) as e:
        raise click.ClickException(f"Invalid config: {e}") from e


def _run(fn, *args, **kwargs) -> int:
    try:
        return fn(*args, **kwargs)
    except AuditError as e:
        raise click.ClickException(str(e)) from e


@cli.command("state-history")
@click.argument("global_id")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Max snapshots to show")
@click.option("--json", "output_json", is_flag=True, help="Output snapshots as JSON")
@click.pass_context
def state_history(ctx: click.Context, global_id: str, limit: int, output_json: bool) -> None:
    """Show snapshots of GLOBAL_ID, newest first.

    Examples:

        auditgraph state-history Person/bob

        auditgraph state-history "Person/bob#address" --json
    """
    from .commands.history_cmd import run_state_history

    exit_code = _run(run_state_history, _auditor(ctx), global_id, limit=limit, output_json=output_json)
    sys.exit(exit_code)


@cli.command("change-history")
@click.argument("global_id")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Max snapshot pairs to compare")
@click.option("--json", "output_json", is_flag=True, help="Output changes as JSON")
@click.pass_context
def change_history(ctx: click.Context, global_id: str, limit: int, output_json: bool) -> None:
    """Show changes of GLOBAL_ID between consecutive snapshots, newest first."""
    from .commands.history_cmd import run_change_history

    exit_code = _run(run_change_history, _auditor(ctx), global_id, limit=limit, output_json=output_json)
    sys.exit(exit_code)


@cli.command()
@click.argument("global_id")
@click.option("--json", "output_json", is_flag=True, help="Output the snapshot as JSON")
@click.pass_context
def latest(ctx: click.Context, global_id: str, output_json: bool) -> None:
    """Show the latest snapshot of GLOBAL_ID."""
    from .commands.history_cmd import run_latest

    exit_code = _run(run_latest, _auditor(ctx), global_id, output_json=output_json)
    sys.exit(exit_code)


@cli.command()
@click.option("--limit", "-n", type=int, default=None, help="Max commits to show")
@click.option("--json", "output_json", is_flag=True, help="Output commit metadata as JSON")
@click.pass_context
def commits(ctx: click.Context, limit: int | None, output_json: bool) -> None:
    """List commits, newest first."""
    from .commands.history_cmd import run_commits

    exit_code = _run(run_commits, _auditor(ctx), limit=limit, output_json=output_json)
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
