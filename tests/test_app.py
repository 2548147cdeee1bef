"""Tests for psitop application."""

import asyncio
import sys

import pytest

from psitop.app import PressureGraph, PressureTable, PsitopApp, TabSelector, draw_plot, main
from psitop.config import RuntimeConfig
from psitop.models import AllPressures, GraphMetric, PressureMode, PressureSnapshot, Resource, ResourcePressure
from psitop.monitor import HistoryBuffer
from psitop.pressure import SampleError, read_all_pressures
from psitop.render import PlotLine, PlotSpec


def make_sample(value: float = 1.0) -> AllPressures:
    snapshot = PressureSnapshot(avg10=value, avg60=value, avg300=value, total=1000)
    pressure = ResourcePressure(some=snapshot, full=snapshot)
    return AllPressures(cpu=ResourcePressure(some=snapshot), memory=pressure, io=pressure)


def failing_reader() -> AllPressures:
    raise SampleError("failed to read /proc/pressure/cpu")


def make_app(reader=make_sample) -> PsitopApp:
    history = HistoryBuffer()
    app = PsitopApp(history, reader=reader, config=RuntimeConfig(cpu_count=4))
    history.push(make_sample())
    return app


def displayed_tables(app: PsitopApp) -> list[PressureTable]:
    return [table for table in app.query(PressureTable) if table.display]


def test_draw_plot_dimensions():
    """Test the plot fills the requested area."""
    spec = PlotSpec(
        title="Pressure",
        lines=[PlotLine("some", "green", [0.0, 0.5, 1.0]), PlotLine("full", "yellow", [0.25])],
        max_val=1.0,
    )
    text = draw_plot(spec, width=40, height=10)
    lines = text.plain.split("\n")

    assert len(lines) == 10
    assert all(len(line) == 40 for line in lines)
    assert lines[0].startswith("  1.00")
    assert lines[-1].startswith("  0.00")


def test_draw_plot_scales_to_max_val():
    """Test a value at the ceiling lands on the top row and zero on the bottom."""
    spec = PlotSpec(title="Pressure", lines=[PlotLine("some", "green", [4.0, 0.0])], max_val=4.0)
    lines = draw_plot(spec, width=20, height=5).plain.split("\n")

    assert lines[0][8] == "•"
    assert lines[-1][9] == "•"


@pytest.mark.asyncio
async def test_app_creation():
    """Test PsitopApp can be instantiated."""
    app = make_app()
    assert app.title == "psitop"
    assert app.sub_title == "Pressure Stall Information"
    assert app.view_state.resource is Resource.ALL


@pytest.mark.asyncio
async def test_fetch_first_sample():
    """Test the first sample is taken synchronously."""
    history = HistoryBuffer()
    app = PsitopApp(history, reader=make_sample, config=RuntimeConfig(cpu_count=4))

    app.fetch_first_sample()

    assert len(history) == 1


@pytest.mark.asyncio
async def test_fetch_first_sample_failure():
    """Test a failing first sample propagates."""
    app = PsitopApp(HistoryBuffer(), reader=failing_reader, config=RuntimeConfig(cpu_count=4))

    with pytest.raises(SampleError):
        app.fetch_first_sample()


@pytest.mark.asyncio
async def test_app_compose_overview():
    """Test the overview shows the selectors and three tables."""
    app = make_app()
    async with app.run_test() as pilot:
        assert len(pilot.app.query(TabSelector)) == 3
        tables = displayed_tables(pilot.app)
        assert [str(table.border_title) for table in tables] == ["CPU", "Memory", "IO"]
        assert tables[0].row_count == 1
        assert tables[1].row_count == 2
        assert not pilot.app.query_one("#graph", PressureGraph).display


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit
    assert app.return_code == 0
    assert app.fatal_error is None


@pytest.mark.asyncio
async def test_cpu_focus_binding():
    """Test 'c' focuses CPU and shows one table with a graph."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("c")
        await pilot.pause()

        assert app.view_state.resource is Resource.CPU
        assert app.view_state.mode is PressureMode.SOME
        tables = displayed_tables(pilot.app)
        assert [str(table.border_title) for table in tables] == ["CPU"]
        assert pilot.app.query_one("#graph", PressureGraph).display


@pytest.mark.asyncio
async def test_full_rejected_for_cpu():
    """Test 'f' after 'c' keeps SOME mode."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("c", "f", "b")

        assert app.view_state.mode is PressureMode.SOME


@pytest.mark.asyncio
async def test_metric_and_mode_bindings():
    """Test metric and mode keys update the view."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("m", "f", "6")
        await pilot.pause()

        assert app.view_state.resource is Resource.MEMORY
        assert app.view_state.mode is PressureMode.FULL
        assert app.view_state.metric is GraphMetric.AVG60
        table = displayed_tables(pilot.app)[0]
        assert table.row_count == 1


@pytest.mark.asyncio
async def test_app_receives_updates_from_monitor():
    """Test the background poller keeps filling the history."""
    history = HistoryBuffer()
    app = PsitopApp(history, reader=make_sample, config=RuntimeConfig(cpu_count=4))
    app.fetch_first_sample()
    async with app.run_test() as pilot:
        await pilot.pause(1.5)

        assert app._monitor.is_running
        assert len(history) > 1


@pytest.mark.asyncio
async def test_fatal_sample_error_exits():
    """Test a failed background sample ends the app with return code 1."""
    app = make_app(reader=failing_reader)
    async with app.run_test():
        for _ in range(50):
            if app.fatal_error is not None:
                break
            await asyncio.sleep(0.1)

    assert isinstance(app.fatal_error, SampleError)
    assert app.return_code == 1
    assert not app._monitor.is_running


@pytest.fixture
def terminal(monkeypatch, capsys):
    """Pretend stdout is a terminal."""
    monkeypatch.setattr(type(sys.stdout), "isatty", lambda self: True)


def test_main_requires_terminal(monkeypatch, capsys):
    """Test main exits with 1 when stdout is not a terminal."""
    monkeypatch.setattr(sys.stdout, "isatty", lambda: False)

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 1
    assert capsys.readouterr().err == "psitop: stdout is not a terminal\n"


def test_main_first_sample_failure(monkeypatch, capsys, terminal, tmp_path):
    """Test an unreadable pressure file at startup exits with 1 and a message."""
    (tmp_path / "cpu").write_bytes(b"some avg10=\xff avg60=0.00 avg300=0.00 total=0\n")
    monkeypatch.setattr("psitop.app.read_all_pressures", lambda: read_all_pressures(tmp_path))

    def run(self):
        raise AssertionError("app must not start")

    monkeypatch.setattr(PsitopApp, "run", run)

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert err.startswith("psitop: failed to read ")
    assert "cpu" in err


def test_main_fatal_error_while_running(monkeypatch, capsys, terminal):
    """Test a sampling failure during the run is reported and exits with 1."""
    monkeypatch.setattr("psitop.app.read_all_pressures", make_sample)

    def run(self):
        self.fatal_error = SampleError("failed to read /proc/pressure/io")

    monkeypatch.setattr(PsitopApp, "run", run)

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 1
    assert capsys.readouterr().err == "psitop: failed to read /proc/pressure/io\n"


def test_main_user_quit(monkeypatch, capsys, terminal):
    """Test a normal quit exits with 0 and writes nothing to stderr."""
    monkeypatch.setattr("psitop.app.read_all_pressures", make_sample)
    monkeypatch.setattr(PsitopApp, "run", lambda self: None)

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 0
    assert capsys.readouterr().err == ""
