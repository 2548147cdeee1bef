"""Reading and parsing of /proc/pressure records.

Each file holds one line per pressure type::

    some avg10=0.00 avg60=0.00 avg300=0.00 total=0
    full avg10=0.00 avg60=0.00 avg300=0.00 total=0

CPU pressure is special: "full" is always zero, and some kernels omit that
line entirely, so only the first line of the cpu file is read.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from pathlib import Path

from psitop.config import PROC_PRESSURE_DIR
from psitop.models import ZERO_PRESSURE, AllPressures, PressureSnapshot, ResourcePressure

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("avg10", "avg60", "avg300", "total")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# Plain ASCII decimal numbers only; no underscores, no Unicode digits.
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?", re.ASCII)
_INT_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)

# Zero-argument callable producing one complete sample.
PressureReader = Callable[[], AllPressures]


class PressureError(Exception):
    """Base class for pressure reading failures."""


class ParseError(PressureError):
    """A pressure record did not match the expected format."""

    def __init__(
        self,
        reason: str,
        field: str | None = None,
        raw_value: str | None = None,
    ) -> None:
        self.reason = reason
        self.field = field
        self.raw_value = raw_value
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.field is None:
            return self.reason
        if self.raw_value is None:
            return f"{self.reason} (field {self.field!r})"
        return f"{self.reason} (field {self.field!r}, value {self.raw_value!r})"


class SampleError(PressureError):
    """A full sample of all resources could not be taken."""


def _parse_key_values(text: str) -> dict[str, str]:
    """Parse space separated key=value pairs into a dict."""
    fields: dict[str, str] = {}
    for token in text.split(" "):
        key, sep, value = token.partition("=")
        if not sep:
            raise ParseError("field is not in key=value format", field=token)
        fields[key] = value
    return fields


def _parse_float(fields: dict[str, str], key: str) -> float:
    raw = fields[key]
    try:
        value = float(raw)
    except ValueError as e:
        raise ParseError("value is not a float", field=key, raw_value=raw) from e
    if not _FLOAT_RE.fullmatch(raw):
        raise ParseError("value is not a float", field=key, raw_value=raw)
    if not math.isfinite(value):
        raise ParseError("value is not finite", field=key, raw_value=raw)
    return value


def _parse_total(fields: dict[str, str]) -> int:
    raw = fields["total"]
    try:
        total = int(raw)
    except ValueError as e:
        raise ParseError("value is not an integer", field="total", raw_value=raw) from e
    if not _INT_RE.fullmatch(raw):
        raise ParseError("value is not an integer", field="total", raw_value=raw)
    if not _INT64_MIN <= total <= _INT64_MAX:
        raise ParseError("value does not fit in 64 bits", field="total", raw_value=raw)
    return total


def parse_pressure_line(line: str) -> PressureSnapshot:
    """Parse a single "some ..." or "full ..." line."""
    # Drop the leading some/full tag
    _, _, rest = line.partition(" ")

    fields = _parse_key_values(rest)
    for key in REQUIRED_KEYS:
        if key not in fields:
            raise ParseError("missing required field", field=key)

    return PressureSnapshot(
        avg10=_parse_float(fields, "avg10"),
        avg60=_parse_float(fields, "avg60"),
        avg300=_parse_float(fields, "avg300"),
        total=_parse_total(fields),
    )


def parse_resource_record(text: str) -> tuple[PressureSnapshot, PressureSnapshot]:
    """
    Parse a memory or io record into its (some, full) pair.

    Raises:
        ParseError: If there are fewer than two lines or either line is malformed.
    """
    lines = text.splitlines()
    if len(lines) < 2:
        raise ParseError("too few lines")
    return parse_pressure_line(lines[0]), parse_pressure_line(lines[1])


def parse_cpu_record(text: str) -> tuple[PressureSnapshot, PressureSnapshot]:
    """Parse a cpu record. Only the "some" line is read; "full" is all zero."""
    lines = text.splitlines()
    if not lines:
        raise ParseError("too few lines")
    return parse_pressure_line(lines[0]), ZERO_PRESSURE


def _read_resource(
    root: Path,
    name: str,
    parse: Callable[[str], tuple[PressureSnapshot, PressureSnapshot]],
) -> ResourcePressure:
    path = root / name
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SampleError(f"failed to read {path}: {e}") from e
    try:
        some, full = parse(text)
    except ParseError as e:
        raise SampleError(f"failed to parse {name} pressure from {path}: {e}") from e
    return ResourcePressure(some=some, full=full)


def read_all_pressures(root: Path = PROC_PRESSURE_DIR) -> AllPressures:
    """
    Take one sample of cpu, memory and io pressure.

    Either every resource is read or SampleError is raised; a partial
    sample is never returned.
    """
    sample = AllPressures(
        cpu=_read_resource(root, "cpu", parse_cpu_record),
        memory=_read_resource(root, "memory", parse_resource_record),
        io=_read_resource(root, "io", parse_resource_record),
    )
    logger.debug("Sampled pressure from %s", root)
    return sample
