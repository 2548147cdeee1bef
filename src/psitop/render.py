"""Frame rendering for psitop.

Turns the pressure history and the current view into plain draw requests
(tables, plots and tab selectors). Nothing here touches the terminal; the
Textual widgets in psitop.app consume the requests built here.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from rich.style import Style
from rich.text import Text

from psitop.config import (
    GRAPH_HEIGHT,
    GRAPH_WINDOW,
    PANE_WIDTH,
    TABLE_HEIGHT,
    TABLE_HEIGHT_BOTH,
)
from psitop.models import (
    GRAPH_METRIC_TAB_INDEX,
    PRESSURE_MODE_TAB_INDEX,
    RESOURCE_TAB_INDEX,
    ZERO_RESOURCE_PRESSURE,
    AllPressures,
    GraphMetric,
    PressureMode,
    PressureSnapshot,
    Resource,
    ResourcePressure,
)
from psitop.view import ViewState

TABLE_HEADER = ("", "avg10", "avg60", "avg300")

RESOURCE_TITLES: dict[Resource, str] = {
    Resource.CPU: "CPU",
    Resource.MEMORY: "Memory",
    Resource.IO: "IO",
}

RESOURCE_COLORS: dict[Resource, str] = {
    Resource.CPU: "cyan",
    Resource.MEMORY: "blue",
    Resource.IO: "magenta",
}

SOME_COLOR = "green"
FULL_COLOR = "yellow"


# ── Specs ──────────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class Cell:
    """A single styled table cell."""

    text: str
    color: str = "white"
    bold: bool = False

    def to_text(self) -> Text:
        return Text(self.text, style=Style(color=self.color, bold=self.bold))


@dataclass(slots=True, frozen=True)
class TableSpec:
    """A pressure table: fixed header plus one row per pressure type."""

    title: str
    title_color: str
    header: tuple[str, ...]
    rows: list[list[Cell]]
    height: int = TABLE_HEIGHT
    width: int = PANE_WIDTH


@dataclass(slots=True, frozen=True)
class PlotLine:
    label: str
    color: str
    values: list[float]


@dataclass(slots=True, frozen=True)
class PlotSpec:
    """A time plot of one or two pressure lines with a fixed y ceiling."""

    title: str
    lines: list[PlotLine]
    max_val: float
    height: int = GRAPH_HEIGHT
    width: int = PANE_WIDTH


@dataclass(slots=True, frozen=True)
class SelectorSpec:
    """A row of labelled tabs with one active."""

    title: str
    tabs: tuple[str, ...]
    active: int


@dataclass(slots=True, frozen=True)
class FrameSpec:
    """Everything drawn on one screen, top to bottom."""

    selectors: tuple[SelectorSpec, ...]
    tables: list[TableSpec]
    graph: PlotSpec | None = None


# ── Tables ─────────────────────────────────────────────────────────────────


def value_color(value: float, cpu_count: int) -> str:
    """Color a pressure value relative to the logical CPU count."""
    if value == 0.0:
        return "white"
    if value < cpu_count:
        return "green"
    if value < 2 * cpu_count:
        return "yellow"
    return "red"


def format_cell(current: float, previous: float, cpu_count: int) -> Cell:
    """
    Format a pressure value for a table cell.

    Values that changed since the previous sample are bold. The comparison is
    exact, so a repeated average is not highlighted.
    """
    return Cell(
        text=f"{current:.2f}",
        color=value_color(current, cpu_count),
        bold=current != previous,
    )


def _pressure_row(
    label: str,
    current: PressureSnapshot,
    previous: PressureSnapshot,
    cpu_count: int,
) -> list[Cell]:
    return [
        Cell(label, bold=True),
        format_cell(current.avg10, previous.avg10, cpu_count),
        format_cell(current.avg60, previous.avg60, cpu_count),
        format_cell(current.avg300, previous.avg300, cpu_count),
    ]


def render_table(
    resource: Resource,
    series: Sequence[ResourcePressure],
    mode: PressureMode,
    cpu_count: int,
) -> TableSpec:
    """
    Build the table for one resource from its pressure history.

    The previous sample is only used once there are at least three samples;
    before that every non-zero value is shown as changed.
    """
    if not series:
        raise ValueError("cannot render a table without samples")

    current = series[-1]
    # NOTE: with exactly two samples the second-to-last is ignored too.
    previous = series[-2] if len(series) > 2 else ZERO_RESOURCE_PRESSURE

    rows: list[list[Cell]] = []
    if mode.shows_some:
        rows.append(_pressure_row("some", current.some, previous.some, cpu_count))
    if mode.shows_full:
        rows.append(_pressure_row("full", current.full, previous.full, cpu_count))

    return TableSpec(
        title=RESOURCE_TITLES[resource],
        title_color=RESOURCE_COLORS[resource],
        header=TABLE_HEADER,
        rows=rows,
        height=TABLE_HEIGHT_BOTH if mode is PressureMode.BOTH else TABLE_HEIGHT,
    )


# ── Graphs ─────────────────────────────────────────────────────────────────


def graph_max_val(lines: Sequence[Sequence[float]]) -> float:
    """
    Y axis ceiling: the next power of two above the largest value, at least 1.

    Rounding to a power of two keeps the axis steady while the maximum moves.
    """
    peak = max((value for line in lines for value in line), default=0.0)
    if peak <= 0.0:
        return 1.0
    max_val = 2.0 ** math.ceil(math.log2(peak))
    return max(max_val, 1.0)


def render_graph(
    series: Sequence[ResourcePressure],
    mode: PressureMode,
    metric: GraphMetric,
) -> PlotSpec:
    """Plot the trailing window of a resource's history for one metric."""
    window = series[-GRAPH_WINDOW:]

    lines: list[PlotLine] = []
    if mode.shows_some:
        values = [metric.value_of(p.some) for p in window]
        lines.append(PlotLine("some", SOME_COLOR, values))
    if mode.shows_full:
        values = [metric.value_of(p.full) for p in window]
        lines.append(PlotLine("full", FULL_COLOR, values))

    return PlotSpec(
        title="Pressure",
        lines=lines,
        max_val=graph_max_val([line.values for line in lines]),
    )


# ── Frame ──────────────────────────────────────────────────────────────────


def render_selectors(view: ViewState) -> tuple[SelectorSpec, ...]:
    """Build the resource, some/full and graph metric selectors."""
    if view.resource is Resource.CPU:
        mode_tabs: tuple[str, ...] = ("[s]ome",)
    else:
        mode_tabs = ("[s]ome", "[f]ull", "[b]oth")

    return (
        SelectorSpec(
            "Resource",
            ("[a]ll", "[c]pu", "[m]emory", "[i]o"),
            RESOURCE_TAB_INDEX[view.resource],
        ),
        SelectorSpec("Some/full", mode_tabs, PRESSURE_MODE_TAB_INDEX[view.mode]),
        SelectorSpec(
            "Graph metric",
            ("avg[1]0", "avg[6]0", "avg[3]00"),
            GRAPH_METRIC_TAB_INDEX[view.metric],
        ),
    )


def compose_frame(
    view: ViewState,
    history: Sequence[AllPressures],
    cpu_count: int,
) -> FrameSpec:
    """
    Compose the full screen for the current view.

    The overview shows a table per resource and no graphs. A single resource
    gets one table and one graph.
    """
    selectors = render_selectors(view)

    if view.resource is Resource.ALL:
        tables = [
            render_table(Resource.CPU, [s.cpu for s in history], PressureMode.SOME, cpu_count),
            render_table(Resource.MEMORY, [s.memory for s in history], view.mode, cpu_count),
            render_table(Resource.IO, [s.io for s in history], view.mode, cpu_count),
        ]
        return FrameSpec(selectors=selectors, tables=tables)

    series = [s.resource(view.resource) for s in history]
    table = render_table(view.resource, series, view.mode, cpu_count)
    graph = render_graph(series, view.mode, view.metric)
    return FrameSpec(selectors=selectors, tables=[table], graph=graph)
