"""Interactive view selection for psitop."""

from dataclasses import dataclass

from psitop.models import GraphMetric, PressureMode, Resource

_FOCUS_KEYS: dict[str, Resource] = {
    "a": Resource.ALL,
    "c": Resource.CPU,
    "m": Resource.MEMORY,
    "i": Resource.IO,
}

_METRIC_KEYS: dict[str, GraphMetric] = {
    "1": GraphMetric.AVG10,
    "6": GraphMetric.AVG60,
    "3": GraphMetric.AVG300,
}

_MODE_KEYS: dict[str, PressureMode] = {
    "s": PressureMode.SOME,
    "f": PressureMode.FULL,
    "b": PressureMode.BOTH,
}

VIEW_KEYS = (*_FOCUS_KEYS, *_METRIC_KEYS, *_MODE_KEYS)


@dataclass(slots=True)
class ViewState:
    """
    The three selectors of the dashboard.

    CPU has no full pressure, so whenever the resource is CPU the mode is SOME.
    Use apply() to change the state; it keeps that rule.
    """

    resource: Resource = Resource.ALL
    mode: PressureMode = PressureMode.BOTH
    metric: GraphMetric = GraphMetric.AVG10

    def apply(self, key: str) -> bool:
        """
        Apply a key press to the view.

        Returns:
            True if the state changed. Unknown and rejected keys return False.
        """
        before = (self.resource, self.mode, self.metric)

        if key in _FOCUS_KEYS:
            resource = _FOCUS_KEYS[key]
            mode = PressureMode.SOME if resource is Resource.CPU else PressureMode.BOTH
            self.resource, self.mode = resource, mode
        elif key in _METRIC_KEYS:
            self.metric = _METRIC_KEYS[key]
        elif key in _MODE_KEYS:
            mode = _MODE_KEYS[key]
            if self.resource is not Resource.CPU or mode is PressureMode.SOME:
                self.mode = mode

        return (self.resource, self.mode, self.metric) != before
