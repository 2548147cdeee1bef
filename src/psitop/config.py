"""Fixed settings for psitop.

Sampling and render periods are constants. The only value discovered at
runtime is the logical CPU count, which drives the table color thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import psutil

FETCH_PERIOD = 0.5  # seconds between samples
RENDER_PERIOD = 1.0  # seconds between redraws
MAX_DATA_LENGTH = 100  # samples kept in memory
GRAPH_WINDOW = 70  # samples plotted

PROC_PRESSURE_DIR = Path("/proc/pressure")

# Layout, in terminal cells
PANE_WIDTH = 90
TABLE_HEIGHT = 5
TABLE_HEIGHT_BOTH = 7  # one extra data row plus separator
GRAPH_HEIGHT = 32


@dataclass(slots=True, frozen=True)
class RuntimeConfig:
    """Process-wide values sampled once at startup."""

    cpu_count: int

    @classmethod
    def detect(cls) -> RuntimeConfig:
        """Build the config from the host."""
        return cls(cpu_count=psutil.cpu_count(logical=True) or 1)
