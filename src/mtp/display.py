# display.py
# All terminal output for the task protocol.
#
# This module owns presentation entirely. The registry, executor and
# requester never format strings; they call named functions here.
#
# Colour language:
#   cyan    — registration / routing events
#   yellow  — verification checkpoints
#   green   — success / confirmed
#   red     — rejections, verification failures
#
# Set MTP_QUIET=1 to silence everything.

import json
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from mtp import config
from mtp.models import DiscoveryDocument

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _console() -> Console:
    # MTP_QUIET is honoured per call, not fixed at import.
    console.quiet = config.quiet()
    return console


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        value = value[:max_len] + "…"
    return escape(value)


def _short_key(key: str) -> str:
    return f"{key[:16]}…{key[-8:]}" if len(key) > 28 else key


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def banner(role: str, identity_id: str, public_key: str) -> None:
    _console().print()
    _console().print(
        Panel.fit(
            f"[bold cyan]Machine Task Protocol: {role}[/bold cyan]\n\n"
            f"[dim]Identity   :[/dim] [white]{escape(identity_id)}[/white]\n"
            f"[dim]Public key :[/dim] [white]{_short_key(public_key)}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def capability_registered(name: str, capability_id: str) -> None:
    _console().print(
        _label("REGISTRY", "cyan"),
        f"[cyan] Registered:[/cyan] [bold white]{escape(name)}[/bold white] [dim]({escape(capability_id)})[/dim]",
    )


def discovery(document: DiscoveryDocument) -> None:
    _console().print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("Name", style="bold white")
    table.add_column("Capability ID", style="dim white")
    table.add_column("Constraints", style="dim white")

    for cap in document.capabilities.capabilities:
        table.add_row(escape(cap.name), escape(cap.id), _mono(json.dumps(cap.constraints, default=str), 40))

    _console().print(
        Panel(
            table,
            title=_label("DISCOVERY", "cyan"),
            subtitle=f"[dim]Executor: {escape(document.identity.id)}[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )


def serving(host: str, port: int) -> None:
    _console().print()
    _console().print(Rule(f"[cyan]Listening on http://{host}:{port}[/cyan]", style="cyan"))


# ---------------------------------------------------------------------------
# Executor pipeline
# ---------------------------------------------------------------------------


def task_received(task_id: str, capability_id: str) -> None:
    _console().print()
    _console().print(
        _label("EXECUTOR", "cyan"),
        f"[cyan] Task[/cyan] [white]{escape(task_id)}[/white] [cyan]→[/cyan] [dim]{escape(capability_id)}[/dim]",
    )


def task_authenticated(requester_id: str) -> None:
    _console().print(f"  [bold green]✓ Signature verified[/bold green]  [dim]{escape(requester_id)}[/dim]")


def task_rejected(task_id: str, kind: str, reason: str) -> None:
    _console().print(
        Panel(
            f"[bold red]{_mono(reason, 200)}[/bold red]\n[dim]task={escape(task_id)} kind={kind}[/dim]",
            title=_label("REJECTED ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def task_completed(task_id: str) -> None:
    _console().print(f"  [bold green]✓ Executed and signed[/bold green]  [dim]{escape(task_id)}[/dim]")


# ---------------------------------------------------------------------------
# Requester
# ---------------------------------------------------------------------------


def task_created(task_id: str, capability_id: str) -> None:
    _console().print(
        _label("REQUESTER", "yellow"),
        f"[yellow] Signed task[/yellow] [white]{escape(task_id)}[/white] [dim]for {escape(capability_id)}[/dim]",
    )


def result_verified(task_id: str) -> None:
    _console().print(
        f"  [bold green]✓ Result signature valid[/bold green]  [dim]{escape(task_id)}[/dim]"
    )


def result_verification_failed(task_id: str, reason: str) -> None:
    _console().print()
    _console().print(
        Panel(
            f"[bold red]{escape(reason)}[/bold red]\n"
            "[white]The result cannot be attributed to the expected executor.[/white]\n"
            "[dim]Discard it. This event should be logged and investigated.[/dim]",
            title=_label("VERIFICATION FAILURE ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def final_result(result: Any) -> None:
    _console().print()
    _console().print(
        Panel(
            f"[white]{escape(json.dumps(result, indent=2, default=str))}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    _console().print()
