"""psitop - Main Textual application."""

import logging
import os
import sys
from queue import Empty, Queue

from rich.style import Style
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.logging import TextualHandler
from textual.widgets import DataTable, Footer, Static

from psitop.config import FETCH_PERIOD, GRAPH_WINDOW, RENDER_PERIOD, RuntimeConfig
from psitop.monitor import HistoryBuffer, PressureMonitor
from psitop.pressure import PressureError, PressureReader, read_all_pressures
from psitop.render import FrameSpec, PlotSpec, SelectorSpec, TableSpec, compose_frame
from psitop.view import VIEW_KEYS, ViewState

logger = logging.getLogger(__name__)

MAX_TABLES = 3
_AXIS_WIDTH = 8  # y axis labels plus separator


class InitError(Exception):
    """The terminal could not be set up."""


def draw_plot(spec: PlotSpec, width: int, height: int) -> Text:
    """
    Draw a plot as colored characters inside a width x height area.

    Values are scaled against spec.max_val rather than the data, so the axis
    only moves when the ceiling does.
    """
    rows = max(height, 2)
    cols = max(width - _AXIS_WIDTH, 1)
    grid: list[list[tuple[str, str | None]]] = [[(" ", None)] * cols for _ in range(rows)]

    for line in spec.lines:
        for x, value in enumerate(line.values[-cols:]):
            level = round(min(max(value / spec.max_val, 0.0), 1.0) * (rows - 1))
            grid[rows - 1 - level][x] = ("•", line.color)

    text = Text()
    for y, row in enumerate(grid):
        if y == 0:
            label = f"{spec.max_val:6.2f} ┤"
        elif y == rows - 1:
            label = f"{0.0:6.2f} ┤"
        else:
            label = "       │"
        text.append(label.ljust(_AXIS_WIDTH), style="dim")
        for char, color in row:
            text.append(char, style=color)
        if y < rows - 1:
            text.append("\n")
    return text


class TabSelector(Static):
    """A bordered row of tabs, the active one highlighted."""

    DEFAULT_CSS = """
    TabSelector {
        width: auto;
        height: 3;
        border: round $primary;
        border-title-style: bold;
        padding: 0 1;
        margin-right: 1;
    }
    """

    def draw(self, spec: SelectorSpec) -> None:
        """Draw the selector."""
        self.border_title = spec.title
        text = Text()
        for index, tab in enumerate(spec.tabs):
            if index:
                text.append("  ")
            style = Style(bold=True, reverse=True) if index == spec.active else Style()
            text.append(tab, style=style)
        self.update(text)


class PressureTable(DataTable):
    """Table of avg10/avg60/avg300 for one resource."""

    DEFAULT_CSS = """
    PressureTable {
        border: round $secondary;
        margin: 0 0 1 3;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize PressureTable."""
        super().__init__(*args, show_cursor=False, **kwargs)
        self.cursor_type = "none"

    def draw(self, spec: TableSpec) -> None:
        """Replace the table contents with a rendered spec."""
        self.border_title = spec.title
        self.styles.border_title_color = spec.title_color
        self.styles.height = spec.height
        self.styles.width = spec.width

        self.clear(columns=True)
        self.add_columns(*spec.header)
        self.add_rows([cell.to_text() for cell in row] for row in spec.rows)


class PressureGraph(Static):
    """Line plot of the some/full pressure history."""

    DEFAULT_CSS = """
    PressureGraph {
        border: round $secondary;
        margin: 0 0 1 3;
    }
    """

    def draw(self, spec: PlotSpec) -> None:
        """Draw a rendered plot spec."""
        self.border_title = spec.title
        self.styles.height = spec.height
        self.styles.width = spec.width
        # Inside the border
        self.update(draw_plot(spec, spec.width - 2, spec.height - 2))


class PsitopApp(App[None]):
    """Main psitop application."""

    TITLE = "psitop"
    SUB_TITLE = "Pressure Stall Information"

    CSS = """
    Screen {
        layout: vertical;
    }

    #selectors {
        height: auto;
        margin: 1 0 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        *(Binding(key, f"view('{key}')", show=False) for key in VIEW_KEYS),
    ]

    def __init__(
        self,
        history: HistoryBuffer,
        reader: PressureReader = read_all_pressures,
        config: RuntimeConfig | None = None,
    ) -> None:
        """
        Initialize the PsitopApp.

        Args:
            history: Sample history shared with the background poller.
            reader: Callable producing one pressure sample.
            config: Runtime config; detected from the host when omitted.
        """
        super().__init__()
        self._pressure_history = history
        self._runtime_config = config or RuntimeConfig.detect()
        self._error_queue: Queue[PressureError] = Queue()
        self._monitor = PressureMonitor(history, self._error_queue, reader=reader)
        self.view_state = ViewState()
        self.fatal_error: PressureError | None = None

    def fetch_first_sample(self) -> None:
        """
        Take the first sample synchronously so there is always data to draw.

        Raises:
            PressureError: If the sample could not be taken.
        """
        self._monitor.poll_once()

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        with Horizontal(id="selectors"):
            yield TabSelector(id="resource-selector")
            yield TabSelector(id="mode-selector")
            yield TabSelector(id="metric-selector")
        for index in range(MAX_TABLES):
            yield PressureTable(id=f"table-{index}")
        yield PressureGraph(id="graph")
        yield Footer()

    def on_mount(self) -> None:
        """Start the poller and the render and error timers."""
        self._monitor.start()
        self.set_interval(RENDER_PERIOD, self.refresh_frame)
        self.set_interval(FETCH_PERIOD, self._check_for_errors)
        self.refresh_frame()

    def on_unmount(self) -> None:
        self._monitor.stop()

    def refresh_frame(self) -> None:
        """Redraw the screen from the latest history."""
        history = self._pressure_history.snapshot_tail(GRAPH_WINDOW)
        if not history:
            return
        frame = compose_frame(self.view_state, history, self._runtime_config.cpu_count)
        self._show_frame(frame)

    def _show_frame(self, frame: FrameSpec) -> None:
        selectors = self.query(TabSelector)
        for selector, spec in zip(selectors, frame.selectors):
            selector.draw(spec)

        for index in range(MAX_TABLES):
            table = self.query_one(f"#table-{index}", PressureTable)
            if index < len(frame.tables):
                table.draw(frame.tables[index])
                table.display = True
            else:
                table.display = False

        graph = self.query_one("#graph", PressureGraph)
        if frame.graph is not None:
            graph.draw(frame.graph)
            graph.display = True
        else:
            graph.display = False

    def _check_for_errors(self) -> None:
        """End the app if the poller reported a failed sample."""
        # Polled on the fetch timer, so a failure is noticed within one FETCH_PERIOD.
        try:
            error = self._error_queue.get_nowait()
        except Empty:
            return

        self.fatal_error = error
        self._monitor.stop()
        self.exit(return_code=1)

    def action_view(self, key: str) -> None:
        """Switch resource, some/full mode or graph metric."""
        if self.view_state.apply(key):
            logger.debug("View changed by %r: %s", key, self.view_state)
            self.refresh_frame()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def _configure_logging() -> None:
    level = logging.DEBUG if os.environ.get("PSITOP_DEBUG") else logging.INFO
    logging.basicConfig(level=level, handlers=[TextualHandler()])


def main() -> None:
    """Entry point for psitop application."""
    _configure_logging()

    try:
        if not sys.stdout.isatty():
            raise InitError("stdout is not a terminal")
        app = PsitopApp(HistoryBuffer(), reader=read_all_pressures, config=RuntimeConfig.detect())
        app.fetch_first_sample()
    except (InitError, PressureError) as e:
        print(f"psitop: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    app.run()

    if app.fatal_error is not None:
        print(f"psitop: {app.fatal_error}", file=sys.stderr)
        raise SystemExit(1)
    raise SystemExit(app.return_code or 0)


if __name__ == "__main__":
    main()
