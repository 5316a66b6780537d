import threading
import time

from models.records import PanelId, RawRecord
from services.charts import ChartRegistry, InMemoryChartSurface
from services.dashboard import DashboardService
from services.decoder import MessageDecoder, build_sender_table
from services.pipeline import PipelineController
from services.policies import VOLTAGE_POLICY
from settings import DEFAULT_PANEL_SENDERS
from storage.mock_feed import MockRealtimeFeed


def _dashboard(feed: MockRealtimeFeed, interval: float = 60.0) -> DashboardService:
    controller = PipelineController(
        policy=VOLTAGE_POLICY,
        decoder=MessageDecoder(build_sender_table(DEFAULT_PANEL_SENDERS)),
    )
    surface = InMemoryChartSurface()
    return DashboardService(
        feed=feed,
        controller=controller,
        charts=ChartRegistry(surface=surface, policy=VOLTAGE_POLICY),
        chart_surface=surface,
        refresh_interval=interval,
    )


def test_start_refreshes_eagerly_and_on_feed_changes() -> None:
    feed = MockRealtimeFeed(name="test")
    feed.put("a", RawRecord(message='25/08/01,10:00:00"100"', sender="+593996002370"))
    dashboard = _dashboard(feed)

    dashboard.start()
    try:
        assert dashboard.snapshot.date_keys() == ["2025-08-01"]
        assert [spec.key for spec in dashboard.chart_surface.specs()] == [
            "chart-2025-08-01-Panel TUGULA"
        ]

        feed.put("b", RawRecord(message='25/08/02,10:00:00"200"', sender="+593996002370"))

        assert dashboard.snapshot.date_keys() == ["2025-08-01", "2025-08-02"]
        assert dashboard.snapshot.aggregate_for("2025-08-02", PanelId.TUGULA) == 12.4
    finally:
        dashboard.shutdown()

    assert dashboard.chart_surface.specs() == []


def test_shutdown_stops_feed_updates() -> None:
    feed = MockRealtimeFeed(name="test")
    dashboard = _dashboard(feed)
    dashboard.start()
    dashboard.shutdown()

    feed.put("a", RawRecord(message='25/08/01,10:00:00"100"', sender="+593996002370"))

    assert dashboard.snapshot.date_keys() == []


def test_periodic_timer_refreshes_from_feed() -> None:
    feed = MockRealtimeFeed(name="test")
    dashboard = _dashboard(feed, interval=0.05)
    refreshed = threading.Event()
    calls = []

    def listener(snapshot) -> None:
        calls.append(snapshot)
        if len(calls) >= 3:
            refreshed.set()

    dashboard.controller.add_listener(listener)
    dashboard.start()
    try:
        assert refreshed.wait(timeout=5)
    finally:
        dashboard.shutdown()

    count = len(calls)
    time.sleep(0.15)
    assert len(calls) == count
