"""Human-friendly state display using rich tables.

Requires the optional ``cli`` dependency group:
``pip install sony-audio-control[cli]``
Falls back to ``repr()`` if rich is not installed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .enums import EventSource, SubscriptionState
    from .state import State

NONE = "-"


def _fmt(value: object) -> str:
    """Format a single value for display."""
    if value is None:
        return NONE
    if isinstance(value, bool):
        return "On" if value else "Off"
    return str(value)


def _section(
    table,
    title: str,
    rows: list[tuple[str, object]],
) -> None:
    """Add a titled section to *table*, skipping it if all values are None."""
    if all(v is None for _, v in rows):
        return
    table.add_row(f"[bold cyan]{title}[/bold cyan]", "", end_section=True)
    for label, value in rows:
        table.add_row(f"  {label}", _fmt(value))


def build_table(
    state: State,
    title: str | None = None,
    subscriptions: Mapping[EventSource, SubscriptionState] | None = None,
):
    """Return *state* as a rich table, or None when rich is not installed."""
    try:
        from rich.table import Table
    except ImportError:
        return None

    header = title or "Receiver"
    table = Table(
        title=f"[bold]{header}[/bold]  Zone {state.zone or 'main'}",
        show_header=False,
        padding=(0, 2),
        expand=False,
    )
    table.add_column("Property", style="white", min_width=24)
    table.add_column("Value", style="bright_white")

    _section(table, "General", [
        ("Power", state.get_power()),
        ("Input", state.get_input()),
    ])

    # mute is a flag, show it as such instead of On/Off
    mute = state.get_mute()
    _section(table, "Audio", [
        ("Volume", state.get_volume()),
        ("Mute", None if mute is None else ("Muted" if mute else "Unmuted")),
        ("Sound Field", state.get_sound_field()),
    ])

    if subscriptions:
        _section(table, "Notifications", [
            (str(source), subscription.name.title())
            for source, subscription in subscriptions.items()
        ])

    return table


def print_state(
    state: State,
    title: str | None = None,
    subscriptions: Mapping[EventSource, SubscriptionState] | None = None,
) -> None:
    """Print *state* as a grouped rich table.

    Falls back to ``print(repr(state))`` when rich is not installed.
    """
    table = build_table(state, title, subscriptions)
    if table is None:
        print(repr(state))
        return

    from rich.console import Console

    console = Console()
    console.print()
    console.print(table)
    console.print()
