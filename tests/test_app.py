import io
from typing import Iterator, Optional

import openpyxl
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from services.charts import ChartRegistry, InMemoryChartSurface
from services.dashboard import DashboardService, build_default_dashboard
from services.decoder import MessageDecoder, build_sender_table
from services.pipeline import PipelineController
from services.policies import get_policy
from settings import DEFAULT_PANEL_SENDERS
from storage.mock_feed import MockRealtimeFeed

CALEDONIA = "+593982138667"
TUGULA = "+593996002370"


def _build_dashboard(policy_name: str) -> DashboardService:
    policy = get_policy(policy_name)
    controller = PipelineController(
        policy=policy,
        decoder=MessageDecoder(build_sender_table(DEFAULT_PANEL_SENDERS)),
    )
    surface = InMemoryChartSurface()
    return DashboardService(
        feed=MockRealtimeFeed(name="test"),
        controller=controller,
        charts=ChartRegistry(surface=surface, policy=policy),
        chart_surface=surface,
        refresh_interval=3600,
    )


def _client_for(monkeypatch, policy_name: str) -> Iterator[TestClient]:
    dashboards: dict[str, DashboardService] = {}

    def build_test_dashboard(policy: Optional[str] = None) -> DashboardService:
        dashboard = dashboards.get(policy_name)
        if dashboard is None:
            dashboard = _build_dashboard(policy_name)
            dashboards[policy_name] = dashboard
        return dashboard

    def cache_clear() -> None:
        dashboards.clear()

    build_test_dashboard.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_dashboard", build_test_dashboard)
    monkeypatch.setattr("app.api.build_default_dashboard", build_test_dashboard)

    app = create_app()
    with TestClient(app) as client:
        yield client


@pytest.fixture
def api_client(monkeypatch) -> Iterator[TestClient]:
    yield from _client_for(monkeypatch, "voltage")


@pytest.fixture
def power_client(monkeypatch) -> Iterator[TestClient]:
    yield from _client_for(monkeypatch, "power")


def _push(client: TestClient, message: str, sender: str) -> str:
    response = client.post("/records", json={"message": message, "sender": sender})
    assert response.status_code == 201
    return response.json()["key"]


def test_lifespan_starts_and_shuts_down_dashboard() -> None:
    app = create_app()

    with TestClient(app):
        dashboard_during = build_default_dashboard()
        assert dashboard_during._timer is not None

    assert dashboard_during._timer is None
    dashboard_after = build_default_dashboard()
    try:
        assert dashboard_after is not dashboard_during
    finally:
        build_default_dashboard.cache_clear()


def test_pushed_records_are_aggregated(api_client: TestClient) -> None:
    _push(api_client, '25/08/01,10:00:00"V:500"', CALEDONIA)
    _push(api_client, '25/08/01,11:00:00"V:300"', CALEDONIA)
    _push(api_client, 'sin fecha"V:10"', "+1")

    dates = api_client.get("/dates").json()
    assert dates == {"dates": ["2025-08-01", "Fecha desconocida"]}

    summary = api_client.get("/aggregates").json()
    assert summary["policy"] == "voltage"
    assert summary["value_label"] == "Voltaje (V)"
    assert summary["record_count"] == 3
    first = summary["dates"][0]
    assert first["display_date"] == "01/08/2025"
    assert first["aggregates"] == [
        {"panel": "Panel CALEDONIA", "summary": 24.8, "estimated_watts": 51.25}
    ]
    assert summary["dates"][1]["aggregates"][0]["panel"] == "Panel desconocido"


def test_panel_readings_endpoint(api_client: TestClient) -> None:
    _push(api_client, '25/08/01,11:00:00"V:300"', TUGULA)
    _push(api_client, '25/08/01,10:00:00"sin dato"', TUGULA)

    response = api_client.get("/dates/2025-08-01/panels/TUGULA")

    assert response.status_code == 200
    payload = response.json()
    assert payload["panel"] == "Panel TUGULA"
    assert payload["summary"] == 18.6
    assert [r["value"] for r in payload["readings"]] == [None, 18.6]
    assert payload["readings"][1]["instant"] == "2025-08-01T11:00:00"

    empty = api_client.get("/dates/2025-08-01/panels/CALEDONIA").json()
    assert empty["summary"] == 0
    assert empty["readings"] == []


def test_panel_readings_unknown_date_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/dates/1999-01-01/panels/TUGULA")

    assert response.status_code == 404
    assert "1999-01-01" in response.json()["detail"]


def test_delete_record(api_client: TestClient) -> None:
    key = _push(api_client, '25/08/01,11:00:00"V:300"', TUGULA)

    assert api_client.delete(f"/records/{key}").status_code == 204
    assert api_client.get("/dates").json() == {"dates": []}
    missing = api_client.delete(f"/records/{key}")
    assert missing.status_code == 404
    assert key in missing.json()["detail"]


def test_refresh_endpoint_returns_summary(api_client: TestClient) -> None:
    _push(api_client, '25/08/01,11:00:00"V:300"', TUGULA)

    response = api_client.post("/refresh")

    assert response.status_code == 200
    assert response.json()["record_count"] == 1


def test_charts_endpoint(api_client: TestClient) -> None:
    _push(api_client, '25/08/01,11:00:00"V:300"', TUGULA)

    charts = api_client.get("/charts").json()

    assert charts == [
        {
            "key": "chart-2025-08-01-Panel TUGULA",
            "label": "Panel TUGULA",
            "dataset_label": "Promedio de Voltaje (V)",
            "value": 18.6,
            "minimum": 0,
            "maximum": 250,
        }
    ]


def test_csv_export(api_client: TestClient) -> None:
    _push(api_client, '25/08/01,11:00:00"V:300"', CALEDONIA)
    _push(api_client, '25/08/01,10:00:00"V:100"', TUGULA)

    response = api_client.get("/export/csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="voltajes_' in response.headers["content-disposition"]
    body = response.text
    assert body.startswith("sep=;\n")
    assert body.index("Panel TUGULA") < body.index("Panel CALEDONIA") < body.index("Panel SAN CRISTOBAL")
    assert "11:00:00;18.6" in body


def test_xlsx_export_under_power_policy(power_client: TestClient) -> None:
    _push(power_client, '25/08/01,11:00:00"600"', TUGULA)

    response = power_client.get("/export/xlsx")

    assert response.status_code == 200
    assert 'filename="potencias_' in response.headers["content-disposition"]
    workbook = openpyxl.load_workbook(io.BytesIO(response.content))
    assert workbook.sheetnames == ["TUGULA", "CALEDONIA", "SAN CRISTOBAL"]
    sheet = workbook["TUGULA"]
    assert sheet["B2"].value == "Potencia (%)"
    assert sheet["A3"].value == "11:00"
    assert sheet["B3"].value == 1600

    summary = power_client.get("/aggregates").json()
    assert summary["dates"][0]["aggregates"][0]["estimated_watts"] is None


def test_unknown_export_format_is_rejected(api_client: TestClient) -> None:
    assert api_client.get("/export/pdf").status_code == 422


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"
