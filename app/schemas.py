"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from services.pipeline import PipelineSnapshot
from services.policies import PipelinePolicy
from services.timestamps import format_display_date
from services.transformer import voltage_to_watts


class PanelName(str, Enum):
    """Panel identifiers accepted in URL paths."""

    CALEDONIA = "CALEDONIA"
    TUGULA = "TUGULA"
    SAN_CRISTOBAL = "SAN_CRISTOBAL"
    UNKNOWN = "UNKNOWN"


class ExportFormat(str, Enum):
    csv = "csv"
    xlsx = "xlsx"


class RecordIn(BaseModel):
    """A raw SMS message as received from a panel's modem."""

    message: str = Field(..., description='Modem header followed by a quoted payload, e.g. 25/08/01,22:48:08-20"V:512".')
    sender: str = Field(..., description="Sender phone number identifying the panel.")


class RecordCreated(BaseModel):
    key: str = Field(..., description="Feed key assigned to the stored record.")


class ReadingOut(BaseModel):
    key: str
    panel: str
    time: str = Field(..., description="Raw modem header text.")
    instant: Optional[datetime] = None
    raw_value: Optional[int] = None
    value: Optional[float] = None


class AggregateOut(BaseModel):
    panel: str
    summary: float
    estimated_watts: Optional[float] = Field(
        default=None, description="Only reported when summaries are voltages."
    )


class DateAggregates(BaseModel):
    date: str
    display_date: str
    aggregates: List[AggregateOut] = Field(default_factory=list)


class DatesResponse(BaseModel):
    dates: List[str] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    """Aggregates for every known date, ascending."""

    policy: str
    value_label: str
    refreshed_at: Optional[datetime] = None
    record_count: int = Field(..., ge=0)
    dates: List[DateAggregates] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, policy: PipelinePolicy, snapshot: PipelineSnapshot) -> "SummaryResponse":
        dates = []
        for date_key in snapshot.date_keys():
            aggregates = [
                AggregateOut(
                    panel=aggregate.panel.display_name,
                    summary=aggregate.summary,
                    estimated_watts=(
                        voltage_to_watts(aggregate.summary) if policy.reports_voltage else None
                    ),
                )
                for aggregate in snapshot.aggregates_for(date_key)
            ]
            dates.append(
                DateAggregates(
                    date=date_key,
                    display_date=format_display_date(date_key),
                    aggregates=aggregates,
                )
            )
        return cls(
            policy=policy.name,
            value_label=policy.value_label,
            refreshed_at=snapshot.refreshed_at,
            record_count=len(snapshot.readings),
            dates=dates,
        )


class PanelReadingsResponse(BaseModel):
    date: str
    panel: str
    summary: float
    readings: List[ReadingOut] = Field(default_factory=list)


class ChartOut(BaseModel):
    key: str
    label: str
    dataset_label: str
    value: float
    minimum: float = 0
    maximum: Optional[float] = None
