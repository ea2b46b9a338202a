"""Dashboard widgets: network load and active assignments."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import AppType, PortAssignment

MAX_NAME_DISPLAY = 20

TYPE_LABELS: dict[AppType, str] = {
    AppType.WEB: "Web",
    AppType.API: "API",
    AppType.STREAMLIT: "Streamlit",
}

TYPE_COLORS: dict[AppType, str] = {
    AppType.WEB: "#3b82f6",
    AppType.API: "#10b981",
    AppType.STREAMLIT: "#f59e0b",
}


@dataclass(frozen=True)
class LoadSlice:
    """Number of assignments of one type."""

    name: str
    value: int
    color: str


def network_load(assignments: Iterable[PortAssignment]) -> list[LoadSlice]:
    """Count assignments per application type, in fixed type order."""
    assignments = list(assignments)
    return [
        LoadSlice(
            name=TYPE_LABELS[app_type],
            value=sum(1 for a in assignments if a.type == app_type),
            color=TYPE_COLORS[app_type],
        )
        for app_type in AppType
    ]


def display_name(name: str) -> str:
    if len(name) > MAX_NAME_DISPLAY:
        return name[:MAX_NAME_DISPLAY] + "..."
    return name


def network_load_panel(assignments: list[PortAssignment]) -> Panel:
    slices = network_load(assignments)
    total = sum(s.value for s in slices)

    table = Table.grid(padding=(0, 2))
    table.add_column()
    table.add_column(justify="right")
    table.add_column()
    for s in slices:
        share = s.value / total if total else 0
        bar = "█" * round(share * 20)
        table.add_row(Text(s.name, style=s.color), str(s.value), Text(bar, style=s.color))

    footer = Text(f"\n{total} Active Nodes", style="bold")
    return Panel(Group(table, footer), title="Network Load", border_style="green")


def assignments_table(assignments: Iterable[PortAssignment]) -> Table | Text:
    """Newest assignments first; placeholder text when the registry is empty."""
    ordered = sorted(assignments, key=lambda a: a.timestamp, reverse=True)
    if not ordered:
        return Text("System Standby...", style="dim")

    table = Table(title="Assignments")
    table.add_column("Port", justify="right", style="green", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Type")
    table.add_column("Env", style="dim")
    table.add_column("Since", style="dim")
    table.add_column("Status")

    for a in ordered:
        since = datetime.fromtimestamp(a.timestamp / 1000).strftime("%H:%M")
        status_color = "green" if a.status.value == "active" else "red"
        table.add_row(
            f":{a.port}",
            Text(display_name(a.name)),
            Text(a.type.value, style=TYPE_COLORS[a.type]),
            Text(a.env_path),
            since,
            f"[{status_color}]{a.status.value}[/{status_color}]",
        )
    return table


def render_dashboard(console: Console, assignments: list[PortAssignment]) -> None:
    console.print(network_load_panel(assignments))
    console.print(assignments_table(assignments))
