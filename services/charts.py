"""Bar-chart registry rebuilt after every pipeline refresh."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from threading import Lock
from typing import Dict, List, Optional, Protocol

from models.records import PanelId
from services.pipeline import PipelineSnapshot
from services.policies import PipelinePolicy

logger = logging.getLogger(__name__)


def chart_key(date_key: str, panel: PanelId) -> str:
    return f"chart-{date_key}-{panel.display_name}"


@dataclass(frozen=True)
class ChartSpec:
    key: str
    label: str
    dataset_label: str
    value: float
    minimum: float = 0
    maximum: Optional[float] = None


class ChartHandle(Protocol):
    def dispose(self) -> None:
        ...


class ChartSurface(Protocol):
    def create(self, spec: ChartSpec) -> Optional[ChartHandle]:
        """Draw a chart, or return ``None`` when its target is not ready."""
        ...


class ChartRegistry:
    """Maps chart keys to live handles; every render disposes the previous set."""

    def __init__(self, surface: ChartSurface, policy: PipelinePolicy) -> None:
        self.surface = surface
        self.policy = policy
        self._handles: Dict[str, ChartHandle] = {}
        self._stack = ExitStack()
        self._lock = Lock()

    @property
    def keys(self) -> List[str]:
        with self._lock:
            return list(self._handles)

    def render(self, snapshot: PipelineSnapshot) -> None:
        with self._lock:
            self._dispose_all()
            skipped = 0
            for date_key in snapshot.date_keys():
                for aggregate in snapshot.aggregates_for(date_key):
                    spec = ChartSpec(
                        key=chart_key(date_key, aggregate.panel),
                        label=aggregate.panel.display_name,
                        dataset_label=self.policy.chart_label,
                        value=aggregate.summary,
                        maximum=self.policy.chart_ceiling,
                    )
                    handle = self.surface.create(spec)
                    if handle is None:
                        skipped += 1
                        continue
                    self._stack.callback(handle.dispose)
                    self._handles[spec.key] = handle
            logger.debug(
                "Charts rendered",
                extra={"chart_count": len(self._handles), "reason": f"skipped={skipped}"},
            )

    def close(self) -> None:
        with self._lock:
            self._dispose_all()

    def _dispose_all(self) -> None:
        stack, self._stack = self._stack, ExitStack()
        self._handles = {}
        stack.close()


class InMemoryChart:
    def __init__(self, surface: "InMemoryChartSurface", spec: ChartSpec) -> None:
        self._surface = surface
        self.spec = spec
        self.disposed = False

    def dispose(self) -> None:
        self.disposed = True
        self._surface.charts.pop(self.spec.key, None)


class InMemoryChartSurface:
    """Keeps chart specs in memory so the API can serve them to the browser."""

    def __init__(self) -> None:
        self.charts: Dict[str, ChartSpec] = {}

    def create(self, spec: ChartSpec) -> InMemoryChart:
        self.charts[spec.key] = spec
        return InMemoryChart(self, spec)

    def specs(self) -> List[ChartSpec]:
        return list(self.charts.values())
