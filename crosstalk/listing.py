"""Read views over the registry: ``list providers`` and ``list models``."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.registry import Registry
from .utils import Ansi, console

FORMATS = ("table", "json", "headerless_table")


def provider_rows(registry: Registry) -> List[Dict[str, Any]]:
    rows = []
    for record in registry.activations():
        rows.append(
            {
                "provider": record.provider_id,
                "priority": record.priority,
                "activated": record.result.activated,
                "reason": record.result.reason,
            }
        )
    return rows


def model_rows(registry: Registry, provider_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Collect models; raises ProviderError or UnknownProviderError."""
    rows = []
    for model in registry.models(provider_id):
        row: Dict[str, Any] = {"model": model.name}
        if provider_id is None:
            row["provider"] = model.provider_id
        row["context"] = model.context_length
        rows.append(row)
    return rows


def _cell(key: str, value: Any) -> str:
    if key == "activated":
        return "yes" if value else "no"
    if value is None:
        return "unknown" if key == "context" else ""
    # Reasons and model names come from providers and are never markup.
    return escape(str(value))


def render(
    rows: Sequence[Dict[str, Any]],
    columns: Sequence[str],
    fmt: str = "table",
    out: Optional[Console] = None,
) -> None:
    """Print *rows* as a table (docker style) or as JSON."""
    out = out or console
    if fmt == "json":
        out.print_json(data=list(rows))
        return

    table = Table(
        box=None,
        show_header=fmt != "headerless_table",
        header_style=Ansi.FG_GREEN,
        pad_edge=False,
        padding=(0, 3, 0, 0),
    )
    for column in columns:
        table.add_column(column.upper(), no_wrap=True)
    for row in rows:
        table.add_row(*(_cell(column, row.get(column)) for column in columns))
    out.print(table)


def list_providers(registry: Registry, fmt: str = "table", out: Optional[Console] = None) -> None:
    render(provider_rows(registry), ("provider", "priority", "activated", "reason"), fmt, out)


def list_models(
    registry: Registry,
    provider_id: Optional[str] = None,
    fmt: str = "table",
    out: Optional[Console] = None,
) -> None:
    columns = ("model", "context") if provider_id else ("model", "provider", "context")
    render(model_rows(registry, provider_id), columns, fmt, out)
