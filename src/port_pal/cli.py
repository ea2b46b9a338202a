import asyncio
import json as json_lib
import sys

from rich.console import Console
from rich.markup import escape
import structlog
import typer

from .client import registry_session
from .config import Settings, get_settings
from .constants import DEFAULT_ENV_PATH
from .dashboard import assignments_table, network_load, network_load_panel, render_dashboard
from .engine import PortPal
from .errors import OracleError, PortPalError
from .logging_config import setup_logging
from .models import AppType, PortAssignment
from .oracle import CommandOracle
from .terminal import BANNER, TerminalLog, print_entry

app = typer.Typer(
    name="port-pal",
    help="Assign local development ports and keep every open session in sync.",
    add_completion=False,
)
console = Console()
logger = structlog.get_logger(__name__)

EXIT_WORDS = {"exit", "quit"}


@app.callback()
def callback():
    """
    Port Pal CLI
    """
    settings = get_settings()
    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=settings.log_level,
        stream=sys.stderr,
    )


def _print_error(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)


def _make_oracle(settings: Settings, terminal: TerminalLog) -> CommandOracle | None:
    try:
        return CommandOracle.from_settings(settings)
    except OracleError as e:
        terminal.add("warning", str(e))
        return None


async def assign_command(
    settings: Settings,
    app_type: AppType,
    name: str,
    env_path: str,
    write_env: bool,
    terminal: TerminalLog,
) -> PortAssignment:
    async with registry_session(settings) as store:
        engine = PortPal(store, terminal, settings)
        return await engine.assign(app_type, name, env_path, write_env=write_env)


@app.command()
def assign(
    app_type: AppType = typer.Option(..., "--type", "-t", help="Application type"),
    name: str = typer.Option(..., "--name", "-n", help="Project name"),
    env: str = typer.Option(DEFAULT_ENV_PATH, "--env", "-e", help="Project-relative env file"),
    write_env: bool = typer.Option(False, "--write-env", help="Write PORT=<port> to the env file"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Assign the first free port of a type to a project."""
    settings = get_settings()
    terminal = TerminalLog(with_greeting=False)
    if not json_output:
        terminal.listen(lambda entry: print_entry(console, entry))

    try:
        assignment = asyncio.run(
            assign_command(settings, app_type, name, env, write_env, terminal)
        )
    except PortPalError as e:
        _print_error(e)
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json_lib.dumps(assignment.to_wire(), indent=2))


async def list_command(settings: Settings) -> list[PortAssignment]:
    async with registry_session(settings) as store:
        return await store.load()


@app.command(name="list")
def list_(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """Show the current registry."""
    assignments = asyncio.run(list_command(get_settings()))

    if json_output:
        typer.echo(json_lib.dumps([a.to_wire() for a in assignments], indent=2))
        return

    console.print(assignments_table(assignments))


@app.command()
def stats(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """Show port usage per application type."""
    assignments = asyncio.run(list_command(get_settings()))

    if json_output:
        slices = network_load(assignments)
        payload = {
            "total": len(assignments),
            "by_type": [{"name": s.name, "value": s.value, "color": s.color} for s in slices],
        }
        typer.echo(json_lib.dumps(payload, indent=2))
        return

    console.print(network_load_panel(assignments))


async def ask_command(
    settings: Settings, text: str, terminal: TerminalLog
) -> PortAssignment | None:
    async with registry_session(settings) as store:
        oracle = _make_oracle(settings, terminal)
        engine = PortPal(store, terminal, settings, oracle=oracle)
        return await engine.handle_command(text)


@app.command()
def ask(text: str = typer.Argument(..., help="Request in plain language")):
    """Send one natural-language request through the oracle."""
    terminal = TerminalLog(with_greeting=False)
    terminal.listen(lambda entry: print_entry(console, entry))

    asyncio.run(ask_command(get_settings(), text, terminal))
    if any(entry.level == "error" for entry in terminal.entries):
        raise typer.Exit(code=1)


async def shell_command(settings: Settings) -> None:
    async with registry_session(settings) as store:
        terminal = TerminalLog()
        console.print(BANNER, style="dim", highlight=False)
        for entry in terminal.entries:
            print_entry(console, entry)
        terminal.listen(lambda entry: print_entry(console, entry))

        engine = PortPal(store, terminal, settings, oracle=_make_oracle(settings, terminal))
        unsubscribe = await engine.watch_remote_changes()

        try:
            while True:
                try:
                    line = await asyncio.to_thread(console.input, "[bold green]port-pal>[/] ")
                except EOFError:
                    break

                line = line.strip()
                if not line:
                    continue
                if line.lower() in EXIT_WORDS:
                    break
                if line.lower() == "list":
                    console.print(assignments_table(await store.load()))
                    continue
                if line.lower() == "stats":
                    console.print(network_load_panel(await store.load()))
                    continue

                try:
                    await engine.handle_command(line)
                except Exception as e:
                    # Keep the session alive on unexpected failures
                    logger.error("shell_command_failed", error=str(e), exc_info=True)
                    terminal.add("error", str(e) or "Unknown system error")
        finally:
            await unsubscribe()


@app.command()
def shell():
    """Interactive terminal: type requests in plain language, 'exit' to leave."""
    try:
        asyncio.run(shell_command(get_settings()))
    except KeyboardInterrupt:
        console.print()


async def watch_command(settings: Settings) -> None:
    async with registry_session(settings) as store:
        render_dashboard(console, await store.load())

        def on_update(assignments: list[PortAssignment]) -> None:
            console.rule("Registry synced")
            render_dashboard(console, assignments)

        unsubscribe = await store.on_change(on_update)
        try:
            await asyncio.Event().wait()
        finally:
            await unsubscribe()


@app.command()
def watch():
    """Show the dashboard and refresh it whenever another session saves."""
    try:
        asyncio.run(watch_command(get_settings()))
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching.[/dim]")


if __name__ == "__main__":
    app()
