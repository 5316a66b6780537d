"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.schemas import (
    ChartOut,
    DatesResponse,
    ExportFormat,
    PanelName,
    PanelReadingsResponse,
    ReadingOut,
    RecordCreated,
    RecordIn,
    SummaryResponse,
)
from models.records import PanelId, RawRecord, Reading
from services.dashboard import DashboardService, build_default_dashboard
from services.export import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    CsvExportWriter,
    ExportFormatter,
    XlsxExportWriter,
    export_filename,
)
from services.pipeline import PipelineSnapshot

router = APIRouter()


def get_dashboard() -> DashboardService:
    return build_default_dashboard()


def _reading_out(reading: Reading) -> ReadingOut:
    return ReadingOut(
        key=reading.key,
        panel=reading.panel.display_name,
        time=reading.raw_time_text,
        instant=reading.instant,
        raw_value=reading.raw_value,
        value=reading.value,
    )


def _summary(dashboard: DashboardService, snapshot: PipelineSnapshot) -> SummaryResponse:
    return SummaryResponse.from_snapshot(dashboard.policy, snapshot)


@router.post(
    "/records",
    status_code=status.HTTP_201_CREATED,
    response_model=RecordCreated,
    summary="Push a raw SMS record into the feed.",
)
async def push_record(
    record: RecordIn,
    dashboard: DashboardService = Depends(get_dashboard),
) -> RecordCreated:
    key = dashboard.feed.push(RawRecord(message=record.message, sender=record.sender))
    return RecordCreated(key=key)


@router.delete(
    "/records/{key}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a raw record from the feed.",
)
async def delete_record(
    key: str,
    dashboard: DashboardService = Depends(get_dashboard),
) -> Response:
    try:
        dashboard.feed.delete(key)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/refresh",
    response_model=SummaryResponse,
    summary="Rebuild readings and aggregates from the current feed snapshot.",
)
async def refresh(
    dashboard: DashboardService = Depends(get_dashboard),
) -> SummaryResponse:
    snapshot = dashboard.refresh()
    return _summary(dashboard, snapshot)


@router.get(
    "/dates",
    response_model=DatesResponse,
    summary="List date keys with readings, ascending.",
)
async def list_dates(
    dashboard: DashboardService = Depends(get_dashboard),
) -> DatesResponse:
    return DatesResponse(dates=dashboard.snapshot.date_keys())


@router.get(
    "/aggregates",
    response_model=SummaryResponse,
    summary="Per-date, per-panel aggregates from the latest refresh.",
)
async def get_aggregates(
    dashboard: DashboardService = Depends(get_dashboard),
) -> SummaryResponse:
    return _summary(dashboard, dashboard.snapshot)


@router.get(
    "/dates/{date_key}/panels/{panel}",
    response_model=PanelReadingsResponse,
    summary="Readings and aggregate for one panel on one date.",
)
async def get_panel_readings(
    date_key: str,
    panel: PanelName,
    dashboard: DashboardService = Depends(get_dashboard),
) -> PanelReadingsResponse:
    snapshot = dashboard.snapshot
    if date_key not in snapshot.grouped:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No readings recorded for date {date_key!r}.",
        )
    panel_id = PanelId[panel.value]
    return PanelReadingsResponse(
        date=date_key,
        panel=panel_id.display_name,
        summary=snapshot.aggregate_for(date_key, panel_id),
        readings=[_reading_out(r) for r in snapshot.readings_for(date_key, panel_id)],
    )


@router.get(
    "/charts",
    response_model=list[ChartOut],
    summary="Bar chart definitions for the latest aggregates.",
)
async def list_charts(
    dashboard: DashboardService = Depends(get_dashboard),
) -> list[ChartOut]:
    return [
        ChartOut(
            key=spec.key,
            label=spec.label,
            dataset_label=spec.dataset_label,
            value=spec.value,
            minimum=spec.minimum,
            maximum=spec.maximum,
        )
        for spec in dashboard.chart_surface.specs()
    ]


@router.get(
    "/export/{export_format}",
    summary="Download readings grouped by panel and date.",
    response_class=Response,
)
async def export_readings(
    export_format: ExportFormat,
    dashboard: DashboardService = Depends(get_dashboard),
) -> Response:
    formatter = ExportFormatter(dashboard.policy)
    if export_format is ExportFormat.csv:
        content: bytes = CsvExportWriter().render(
            formatter.build(dashboard.snapshot, with_seconds=True)
        ).encode("utf-8")
        media_type = CSV_MEDIA_TYPE
    else:
        content = XlsxExportWriter().render(
            formatter.build(dashboard.snapshot, with_seconds=False)
        )
        media_type = XLSX_MEDIA_TYPE
    filename = export_filename(dashboard.policy, export_format.value)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /aggregates for the latest panel summaries."}
