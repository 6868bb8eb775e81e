"""History CLI commands over a JSONL commit log."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from ..auditor import Auditor
from ..changelog import SimpleTextChangeLog
from ..config import AuditConfig, load_config
from ..repository.jsonl import JsonlRepository

DATE_FORMAT = "%Y-%m-%d %H:%M"


def open_auditor(store: Path, config_path: Path | None = None) -> Auditor:
    config = load_config(config_path) if config_path is not None else AuditConfig()
    auditor = Auditor(config)
    auditor.use_repository(JsonlRepository(store, auditor.json_converter))
    return auditor


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False))


def _fmt(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (tuple, frozenset, set, list)):
        items = sorted(value, key=str) if isinstance(value, (frozenset, set)) else value
        return "[" + ", ".join(str(v) for v in items) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {v}" for k, v in value.items()) + "}"
    return str(value)


def run_state_history(auditor: Auditor, global_id: str, *, limit: int, output_json: bool = False) -> int:
    err = Console(stderr=True)
    snapshots = auditor.get_state_history(global_id, limit)
    if not snapshots:
        err.print(f"No snapshots recorded for {global_id}", style="bold red")
        return 1

    if output_json:
        _print_json(auditor.json_converter.to_dict(snapshots))
        return 0

    table = Table(title=f"State history: {global_id}")
    table.add_column("version", justify="right", style="cyan")
    table.add_column("type", style="magenta")
    table.add_column("commit", justify="right")
    table.add_column("author")
    table.add_column("date", style="dim")
    table.add_column("changed")

    for s in snapshots:
        meta = s.commit_metadata
        table.add_row(
            str(s.version),
            s.snapshot_type.value,
            str(meta.id) if meta else "",
            meta.author if meta else "",
            meta.commit_date.strftime(DATE_FORMAT) if meta else "",
            ", ".join(s.changed_properties),
        )

    Console().print(table)
    return 0


def run_change_history(auditor: Auditor, global_id: str, *, limit: int, output_json: bool = False) -> int:
    err = Console(stderr=True)
    if not auditor.get_state_history(global_id, 1):
        err.print(f"No snapshots recorded for {global_id}", style="bold red")
        return 1

    changes = auditor.get_change_history(global_id, limit)
    if output_json:
        _print_json(auditor.json_converter.to_dict(changes))
        return 0

    if not changes:
        Console().print(f"{global_id}: no changes", style="dim")
        return 0
    print(auditor.process_change_list(changes, SimpleTextChangeLog()))
    return 0


def run_latest(auditor: Auditor, global_id: str, *, output_json: bool = False) -> int:
    err = Console(stderr=True)
    snapshot = auditor.get_latest_snapshot(global_id)
    if snapshot is None:
        err.print(f"No snapshots recorded for {global_id}", style="bold red")
        return 1

    if output_json:
        _print_json(auditor.json_converter.to_dict(snapshot))
        return 0

    console = Console()
    meta = snapshot.commit_metadata
    console.print(f"{snapshot.global_id} v{snapshot.version} ({snapshot.snapshot_type.value})")
    if meta is not None:
        console.print(f"  commit {meta.id} by {meta.author} at {meta.commit_date.isoformat()}", style="dim")
    if snapshot.is_terminal:
        console.print("  deleted", style="yellow")
        return 0

    table = Table()
    table.add_column("property", style="cyan", no_wrap=True)
    table.add_column("value")
    for name, value in snapshot.state.items():
        table.add_row(name, _fmt(value))
    console.print(table)
    return 0


def run_commits(auditor: Auditor, *, limit: int | None = None, output_json: bool = False) -> int:
    commits = auditor.repository.list_commits(limit)

    if output_json:
        _print_json([auditor.json_converter.metadata_to_dict(c.metadata) for c in commits])
        return 0

    table = Table(title="Commits")
    table.add_column("id", justify="right", style="cyan")
    table.add_column("author")
    table.add_column("date", style="dim")
    table.add_column("snapshots", justify="right")
    table.add_column("changes", justify="right")

    for c in commits:
        table.add_row(
            str(c.id),
            c.author,
            c.commit_date.strftime(DATE_FORMAT),
            str(len(c.snapshots)),
            str(len(c.diff)),
        )

    Console().print(table)
    return 0
