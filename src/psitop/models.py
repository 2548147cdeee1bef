"""Data models for psitop."""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class PressureSnapshot:
    """Immutable reading of one pressure line (some or full)."""

    avg10: float
    avg60: float
    avg300: float
    total: int  # Microseconds stalled, monotonic


ZERO_PRESSURE = PressureSnapshot(avg10=0.0, avg60=0.0, avg300=0.0, total=0)


@dataclass(slots=True, frozen=True)
class ResourcePressure:
    """Some and full pressure of a single resource."""

    some: PressureSnapshot
    full: PressureSnapshot = ZERO_PRESSURE


ZERO_RESOURCE_PRESSURE = ResourcePressure(some=ZERO_PRESSURE, full=ZERO_PRESSURE)


class Resource(Enum):
    """Resource the dashboard is focused on."""

    ALL = "all"
    CPU = "cpu"
    MEMORY = "memory"
    IO = "io"


RESOURCE_TAB_INDEX: dict[Resource, int] = {
    Resource.ALL: 0,
    Resource.CPU: 1,
    Resource.MEMORY: 2,
    Resource.IO: 3,
}


class PressureMode(Enum):
    """Which pressure lines are shown."""

    SOME = "some"
    FULL = "full"
    BOTH = "both"

    @property
    def shows_some(self) -> bool:
        return self in (PressureMode.SOME, PressureMode.BOTH)

    @property
    def shows_full(self) -> bool:
        return self in (PressureMode.FULL, PressureMode.BOTH)


PRESSURE_MODE_TAB_INDEX: dict[PressureMode, int] = {
    PressureMode.SOME: 0,
    PressureMode.FULL: 1,
    PressureMode.BOTH: 2,
}


class GraphMetric(Enum):
    """Averaging window plotted by the graph, in seconds."""

    AVG10 = 10
    AVG60 = 60
    AVG300 = 300

    def value_of(self, snapshot: PressureSnapshot) -> float:
        """Project a snapshot onto this averaging window."""
        if self is GraphMetric.AVG10:
            return snapshot.avg10
        if self is GraphMetric.AVG60:
            return snapshot.avg60
        return snapshot.avg300


GRAPH_METRIC_TAB_INDEX: dict[GraphMetric, int] = {
    GraphMetric.AVG10: 0,
    GraphMetric.AVG60: 1,
    GraphMetric.AVG300: 2,
}


@dataclass(slots=True, frozen=True)
class AllPressures:
    """Snapshot of CPU, memory and IO pressure taken at one instant."""

    cpu: ResourcePressure
    memory: ResourcePressure
    io: ResourcePressure

    def resource(self, resource: Resource) -> ResourcePressure:
        """Get the pressure of a single resource."""
        if resource is Resource.CPU:
            return self.cpu
        if resource is Resource.MEMORY:
            return self.memory
        if resource is Resource.IO:
            return self.io
        raise ValueError(f"{resource} does not name a single resource")
