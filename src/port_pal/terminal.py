"""Chat-like terminal log."""

from collections.abc import Callable
from datetime import datetime

from rich.console import Console
from rich.text import Text

from .models import LogEntry, LogLevel

BANNER = "# Port Authority System v2.4.0 initialized\n# Waiting for command..."

LEVEL_STYLES: dict[str, str] = {
    "info": "white",
    "system": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}

LEVEL_GLYPHS: dict[str, str] = {
    "info": ">",
    "system": "$",
    "success": "✓",
    "error": "✗",
}


class TerminalLog:
    """Ordered log lines shown to the user, with optional live listeners."""

    def __init__(self, with_greeting: bool = True):
        self.entries: list[LogEntry] = []
        self._listeners: list[Callable[[LogEntry], None]] = []
        if with_greeting:
            self.add("system", "Port Pal System Online.")
            self.add("system", "Connected to local registry (persistence enabled).")

    def add(self, level: LogLevel, message: str) -> LogEntry:
        entry = LogEntry(level=level, message=message)
        self.entries.append(entry)
        for listener in self._listeners:
            listener(entry)
        return entry

    def listen(self, listener: Callable[[LogEntry], None]) -> Callable[[], None]:
        """Call ``listener`` for every new entry; returns a remover."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def messages(self, level: LogLevel | None = None) -> list[str]:
        return [e.message for e in self.entries if level is None or e.level == level]


def render_entry(entry: LogEntry) -> Text:
    """Format one entry as ``[HH:MM:SS] <glyph> message``."""
    clock = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%H:%M:%S")
    text = Text(f"[{clock}] ", style="dim")
    glyph = LEVEL_GLYPHS.get(entry.level)
    if glyph:
        text.append(f"{glyph} ", style=LEVEL_STYLES[entry.level])
    text.append(entry.message, style=LEVEL_STYLES[entry.level])
    return text


def print_entry(console: Console, entry: LogEntry) -> None:
    console.print(render_entry(entry))
