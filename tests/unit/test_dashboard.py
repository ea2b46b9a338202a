"""Tests for the dashboard widgets."""

import io

from rich.console import Console
from rich.text import Text

from port_pal.constants import seed_assignments
from port_pal.dashboard import (
    LoadSlice,
    assignments_table,
    display_name,
    network_load,
    render_dashboard,
)
from port_pal.models import AppType, PortAssignment


def render(renderable) -> str:
    buffer = io.StringIO()
    Console(file=buffer, width=160).print(renderable)
    return buffer.getvalue()


class TestNetworkLoad:
    def test_counts_seed_registry(self):
        assert network_load(seed_assignments()) == [
            LoadSlice(name="Web", value=1, color="#3b82f6"),
            LoadSlice(name="API", value=2, color="#10b981"),
            LoadSlice(name="Streamlit", value=1, color="#f59e0b"),
        ]

    def test_empty_registry_has_all_types(self):
        assert [(s.name, s.value) for s in network_load([])] == [
            ("Web", 0),
            ("API", 0),
            ("Streamlit", 0),
        ]

    def test_total_matches_registry_size(self):
        assignments = seed_assignments()

        assert sum(s.value for s in network_load(assignments)) == len(assignments)


class TestAssignmentsTable:
    def test_empty_registry_shows_standby(self):
        placeholder = assignments_table([])

        assert isinstance(placeholder, Text)
        assert placeholder.plain == "System Standby..."

    def test_newest_first(self):
        output = render(assignments_table(seed_assignments()))

        # Seed entries get older in declaration order
        positions = [
            output.index(name)
            for name in ("dashboard-main", "auth-service", "payment-gateway", "analytics-viz")
        ]
        assert positions == sorted(positions)

    def test_shows_port_and_env(self):
        output = render(assignments_table(seed_assignments()))

        assert ":8080" in output
        assert "./services/payment/.env" in output

    def test_long_names_are_truncated(self):
        assignment = PortAssignment(
            port=3005, name="a-really-long-project-name", type=AppType.WEB, env_path="./.env"
        )

        output = render(assignments_table([assignment]))

        assert "a-really-long-projec..." in output
        assert "a-really-long-project-name" not in output

    def test_brackets_in_names_are_not_markup(self):
        assignment = PortAssignment(
            port=3005, name="[red]svc[/red]", type=AppType.WEB, env_path="./.env"
        )

        assert "[red]svc[/red]" in render(assignments_table([assignment]))


def test_display_name():
    assert display_name("x" * 20) == "x" * 20
    assert display_name("x" * 21) == "x" * 20 + "..."


def test_render_dashboard_shows_load_and_table():
    buffer = io.StringIO()

    render_dashboard(Console(file=buffer, width=160), seed_assignments())

    output = buffer.getvalue()
    assert "Network Load" in output
    assert "4 Active Nodes" in output
    assert "analytics-viz" in output
