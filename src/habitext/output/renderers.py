"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from habitext.output.console import create_console, get_output, style_for_health

if TYPE_CHECKING:
    from rich.console import Console

    from habitext.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
        if result.op == "health" and result.data:
            _render_health(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="hx.ok")
    op = Text(f"  {result.op}", style="hx.op")
    console.print(label, op, sep="")


def _field(console: Console, key: str, value: Any) -> None:
    if isinstance(value, dict | list):
        value = json.dumps(value, separators=(",", ":"), default=str)
    k = Text(f"  {key}: ", style="hx.key")
    v = Text(str(value), style="hx.name" if key in ("name", "extension") else "")
    console.print(k, v, sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(Text(f"    {k}: {v}"))


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="hx.error")
    op = Text(f"  {result.op}", style="hx.op")
    console.print(label, op, Text(f" - {msg}"), sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Extension renderers ───────────────────────────────────────────────


def _render_extension_table(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    items: list[dict[str, Any]] = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Name", style="hx.name", no_wrap=True)
    table.add_column("Version", style="hx.version")
    table.add_column("Types")
    table.add_column("Hooks")
    if verbose:
        table.add_column("Endpoints")
        table.add_column("Actions")

    for item in items:
        row = [
            str(item.get("name", "")),
            str(item.get("version", "")),
            ", ".join(item.get("supported_types", [])),
            ", ".join(item.get("hooks", [])),
        ]
        if verbose:
            row.append(", ".join(item.get("endpoints", [])))
            row.append(", ".join(item.get("actions", [])))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} extensions")


def _render_extension(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    lines: list[str] = []
    if d.get("description"):
        lines.append(str(d["description"]))
    if d.get("author"):
        lines.append(f"author: {d['author']}")
    for key in ("supported_types", "hooks", "endpoints", "actions"):
        values = d.get(key) or []
        lines.append(f"{key.replace('_', ' ')}: {', '.join(values) if values else '-'}")
    lines.append(f"health check: {'yes' if d.get('has_health_check') else 'no'}")
    if verbose and d.get("config"):
        lines.append(f"config: {json.dumps(d['config'], default=str)}")

    title = f"{d.get('name', '?')} {d.get('version', '')}".strip()
    console.print(Panel(Text("\n".join(lines)), title=title, border_style="dim", expand=False))


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "total", result.data.get("total", 0))
    by_type: dict[str, int] = result.data.get("by_type", {})
    if by_type:
        table = Table(show_header=True, pad_edge=False, expand=False)
        table.add_column("Type")
        table.add_column("Extensions", justify="right")
        for habit_type, count in by_type.items():
            table.add_row(habit_type, str(count))
        console.print(table)


def _render_health(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    overall = str(result.data.get("overall", "unknown"))
    style = style_for_health(overall)
    console.print(Text("overall: ", style="hx.key"), Text(overall, style=style), sep="")

    extensions: dict[str, dict[str, Any]] = result.data.get("extensions", {})
    if not extensions:
        console.print("  no extensions registered")
        return
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Extension", style="hx.name", no_wrap=True)
    table.add_column("Status")
    table.add_column("Error")
    if verbose:
        table.add_column("Checked", style="dim")
    for name, health in extensions.items():
        status = str(health.get("status", ""))
        row: list[str | Text] = [
            name,
            Text(status, style=style_for_health(status)),
            str(health.get("error") or ""),
        ]
        if verbose:
            row.append(str(health.get("checked_at", "")))
        table.add_row(*row)
    console.print(table)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "list_extensions": _render_extension_table,
    "get_extension": _render_extension,
    "extension_stats": _render_stats,
    "health": _render_health,
}
