"""Keeps the pipeline snapshot current from feed pushes and a periodic timer."""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Event, Thread
from typing import Callable, Dict, Optional

from models.records import RawRecord
from services.charts import ChartRegistry, InMemoryChartSurface
from services.decoder import MessageDecoder, build_sender_table
from services.pipeline import PipelineController, PipelineSnapshot
from services.policies import PipelinePolicy, get_policy
from settings import get_settings
from storage.mock_feed import MockRealtimeFeed, build_default_feed

logger = logging.getLogger(__name__)


class DashboardService:
    """Wires the feed, pipeline controller and chart registry together."""

    def __init__(
        self,
        feed: MockRealtimeFeed,
        controller: PipelineController,
        charts: ChartRegistry,
        chart_surface: InMemoryChartSurface,
        refresh_interval: float = 60.0,
    ) -> None:
        self.feed = feed
        self.controller = controller
        self.charts = charts
        self.chart_surface = chart_surface
        self.refresh_interval = refresh_interval
        self._stop = Event()
        self._timer: Optional[Thread] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        controller.add_listener(charts.render)

    @property
    def policy(self) -> PipelinePolicy:
        return self.controller.policy

    @property
    def snapshot(self) -> PipelineSnapshot:
        return self.controller.snapshot

    def start(self) -> None:
        """Subscribe to the feed (which refreshes at once) and start the timer."""
        if self._timer is not None:
            return
        self._stop.clear()
        self._unsubscribe = self.feed.subscribe(self._on_feed_change)
        self._timer = Thread(target=self._run_timer, name="dashboard-refresh", daemon=True)
        self._timer.start()
        logger.info("Dashboard started", extra={"policy": self.policy.name})

    def refresh(self) -> PipelineSnapshot:
        return self.controller.refresh(self.feed.snapshot())

    def shutdown(self) -> None:
        self._stop.set()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._timer is not None:
            self._timer.join(timeout=5)
            self._timer = None
        self.charts.close()

    def _on_feed_change(self, records: Dict[str, RawRecord]) -> None:
        self.controller.refresh(records)

    def _run_timer(self) -> None:
        while not self._stop.wait(self.refresh_interval):
            try:
                self.refresh()
            except Exception:  # noqa: BLE001 - keep the timer alive
                logger.exception("Periodic refresh failed", extra={"policy": self.policy.name})


@lru_cache
def build_default_dashboard(policy_name: Optional[str] = None) -> DashboardService:
    """Factory that wires the dashboard from settings and the default feed."""
    settings = get_settings()
    policy = get_policy(policy_name or settings.policy_name)
    decoder = MessageDecoder(build_sender_table(settings.panel_senders))
    controller = PipelineController(policy=policy, decoder=decoder)
    surface = InMemoryChartSurface()
    charts = ChartRegistry(surface=surface, policy=policy)
    return DashboardService(
        feed=build_default_feed(),
        controller=controller,
        charts=charts,
        chart_surface=surface,
        refresh_interval=settings.refresh_interval,
    )
