import sys
import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quotewatch.constants import QUOTE_COLUMNS
from quotewatch.formatting import DisplayRow
from quotewatch.state import MonitorState

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

KEY_HINTS = [
    ("g", "Start"), ("s", "Stop"), ("a", "Add"), ("d", "Delete"),
    ("p", "Up"), ("n", "Down"), ("q", "Quit"),
]


class QuoteView:
    """The visible quote table. Nothing else mutates what is on screen."""

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self._now = now
        self.rows: List[DisplayRow] = []
        self.refreshed_at = ""
        self.refreshing = False
        self.cursor = 0
        self.status = ""

    # -- Table operations --------------------------------------------------

    def repaint(self, rows: Sequence[DisplayRow], refreshing: bool, stamp: bool = True):
        """Replace every row and, unless stamp is False, restamp the header."""
        self.rows = list(rows)
        if stamp:
            self.refreshed_at = self._now().strftime(TIMESTAMP_FORMAT)
        self.refreshing = refreshing
        self._clamp_cursor()

    def set_refreshing(self, refreshing: bool):
        self.refreshing = refreshing

    def append_row(self, row: DisplayRow):
        self.rows.append(row)

    def remove_row_by_symbol(self, symbol: str) -> bool:
        """Delete the first row whose symbol matches, ignoring case."""
        target = symbol.lower()
        for i, row in enumerate(self.rows):
            if row.symbol.lower() == target:
                del self.rows[i]
                self._clamp_cursor()
                return True
        return False

    def symbols(self) -> List[str]:
        return [row.symbol for row in self.rows]

    # -- Cursor ------------------------------------------------------------

    def move_cursor(self, delta: int):
        self.cursor += delta
        self._clamp_cursor()

    def selected_symbol(self) -> Optional[str]:
        if not self.rows:
            return None
        return self.rows[self.cursor].symbol

    def _clamp_cursor(self):
        self.cursor = max(0, min(self.cursor, len(self.rows) - 1))

    # -- Rendering ---------------------------------------------------------

    def header_text(self) -> Text:
        header = Text("Stocks refreshed at: [ ")
        header.append(self.refreshed_at or "never", style="green")
        header.append(" ] auto-refreshing is: [ ")
        if self.refreshing:
            header.append("ON", style="green")
        else:
            header.append("OFF", style="red")
        header.append(" ]")
        return header

    def build_table(self) -> Table:
        table = Table(show_lines=True, padding=(0, 1))
        for _, label, justify, min_width in QUOTE_COLUMNS:
            table.add_column(label, justify=justify, min_width=min_width, no_wrap=True)

        for i, row in enumerate(self.rows):
            cells = [Text(cell, style=row.color) for cell in row.cells]
            table.add_row(*cells, style="reverse" if i == self.cursor else None)
        return table

    def render(self) -> Group:
        return Group(self.header_text(), self.build_table())


def _build_status_line(view: QuoteView, state: MonitorState) -> Text:
    if state.prompting:
        line = Text("Add stock symbol: ", style="bold cyan")
        line.append(state.prompt)
        line.append("█", style="blink")
        return line
    return Text(view.status, style="dim")


def _build_keyhint_bar() -> Text:
    bar = Text()
    for key, label in KEY_HINTS:
        bar.append(f"[{key}]", style="bold cyan")
        bar.append(f" {label}  ", style="dim")
    return bar


def build_layout(view: QuoteView, state: MonitorState) -> Layout:
    layout = Layout()
    layout.split_column(
        Layout(name="quotes"),
        Layout(name="footer", size=4),
    )
    layout["quotes"].update(
        Panel(view.render(), title="[bold grey70]QUOTEWATCH[/bold grey70]", border_style="grey70")
    )
    layout["footer"].update(
        Panel(Group(_build_status_line(view, state), _build_keyhint_bar()), border_style="grey70")
    )
    return layout


def key_listener(state: MonitorState):
    """Background thread that forwards raw keypresses to the foreground loop."""
    try:
        import tty
        import termios

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)
            while not state.quit_flag:
                ch = sys.stdin.read(1)
                if not ch:
                    break
                state.keys.put(ch)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    except Exception:
        # Fallback: just wait for quit_flag (Ctrl+C handled in main)
        while not state.quit_flag:
            time.sleep(0.5)
