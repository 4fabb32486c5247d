"""Shared utility functions for viteforge.

Provides async command execution, text I/O, file-system helpers and
Rich-based console reporting.
"""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path

from rich.console import Console
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Child processes
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *cmd* in a child process and wait for it to exit.

    A list is executed directly; a string goes through the shell.  *env* is
    layered over the current environment.  With *capture* off the child
    writes straight to the terminal and the returned output strings are
    empty.

    Returns:
        ``(returncode, stdout, stderr)``.  A missing executable yields
        ``127`` and a timeout ``-1``; neither raises.
    """
    pipe = asyncio.subprocess.PIPE if capture else None
    options = {
        "stdout": pipe,
        "stderr": pipe,
        "cwd": str(cwd) if cwd else None,
        "env": {**os.environ, **env} if env else None,
    }
    label = cmd if isinstance(cmd, str) else shlex.join(cmd)

    try:
        if isinstance(cmd, str):
            process = await asyncio.create_subprocess_shell(cmd, **options)
        else:
            process = await asyncio.create_subprocess_exec(*cmd, **options)
    except FileNotFoundError as exc:
        return 127, "", f"Command not found: {label} ({exc})"

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"Command timed out after {timeout}s: {label}"

    return process.returncode or 0, _decode(out), _decode(err)


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def write_text(path: str | Path, content: str) -> Path:
    """Write *content* as UTF-8, creating missing parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


def is_non_empty_dir(path: str | Path) -> bool:
    directory = Path(path)
    return directory.is_dir() and next(directory.iterdir(), None) is not None


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print *data* as a borderless two-column table."""
    table = Table(title=title, show_header=False, box=None, title_justify="left")
    table.add_column(style="bold")
    table.add_column(overflow="fold")
    for label, value in data.items():
        table.add_row(label, str(value))
    console.print(table)


def print_success(message: str) -> None:
    console.print(message, style="bold green", markup=False)


def print_error(message: str) -> None:
    console.print(message, style="bold red", markup=False)


def print_warning(message: str) -> None:
    """Print *message* in yellow.  Markup is not interpreted."""
    console.print(message, style="yellow", markup=False)


def print_next_steps(steps: list[str]) -> None:
    """Print the commands to run once the project exists."""
    console.print()
    console.print("Next steps:", style="bold")
    for step in steps:
        console.print(f"  {step}", style="cyan", markup=False, highlight=False)
    console.print()
