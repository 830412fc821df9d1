import os
import json
from typing import Any, Dict, List, Sequence
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from config import settings

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

STAT_LABELS = {
    "total_media": "Total Media",
    "available_media": "Available Media",
    "borrowed_media": "Borrowed Media",
    "active_borrowings": "Active Borrowings",
    "extended_borrowings": "Extended Borrowings",
    "overdue_borrowings": "Overdue Borrowings",
}


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, settings.output_mode).lower()


def print_rows(title: str, columns: Sequence[str], rows: List[Any], footer: str = "",
               empty_message: str = "No entries found.") -> None:
    """Print display rows in the current output mode.
    - plain: ' | ' separated cells, one row per line, then the footer
    - json: {"rows": [...], "footer": ...}
    - rich: Rich table with the footer as caption
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps({"rows": [r.as_dict() for r in rows], "footer": footer}, ensure_ascii=False))
        return

    if not rows:
        print(empty_message)
        return

    if mode == "rich":
        table = Table(title=title, caption=footer or None, show_lines=True, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for r in rows:
            table.add_row(*r.cells())
        _console.print(table)
    else:
        print(" | ".join(columns))
        for r in rows:
            print(" | ".join(r.cells()))
        if footer:
            print(footer)


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{STAT_LABELS.get(k, k)}:[/] {v}" for k, v in stats.items())
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, value in stats.items():
            print(f"{STAT_LABELS.get(key, key)}: {value}")
