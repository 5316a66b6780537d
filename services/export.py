"""Row-oriented export of grouped readings to CSV and XLSX."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Union
from urllib.parse import quote

import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from models.records import PanelId
from services.pipeline import PipelineSnapshot
from services.policies import PipelinePolicy
from services.timestamps import TimestampNormalizer, format_export_date

Cell = Union[str, int, float]
Row = List[Cell]

EXPORT_PANELS = (PanelId.TUGULA, PanelId.CALEDONIA, PanelId.SAN_CRISTOBAL)
TIME_HEADER = "Hora"
CSV_MEDIA_TYPE = "text/csv;charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass
class ExportSection:
    """All rows exported for one panel."""

    panel: PanelId
    rows: List[Row] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.panel.display_name

    @property
    def sheet_name(self) -> str:
        return self.panel.short_name


class ExportFormatter:
    """Lays out a snapshot as per-panel blocks of date, header and reading rows."""

    def __init__(self, policy: PipelinePolicy) -> None:
        self.policy = policy

    def build(self, snapshot: PipelineSnapshot, with_seconds: bool = True) -> List[ExportSection]:
        sections: List[ExportSection] = []
        for panel in EXPORT_PANELS:
            section = ExportSection(panel=panel)
            for date_key in snapshot.date_keys():
                readings = snapshot.readings_for(date_key, panel)
                if not readings:
                    continue
                section.rows.append([format_export_date(date_key), ""])
                section.rows.append([TIME_HEADER, self.policy.value_label])
                for reading in readings:
                    section.rows.append(
                        [
                            TimestampNormalizer.time_of_day(
                                reading.raw_time_text, with_seconds=with_seconds
                            ),
                            reading.value if reading.value is not None else 0,
                        ]
                    )
                section.rows.append([])
            sections.append(section)
        return sections


def export_filename(policy: PipelinePolicy, extension: str, today: Optional[date] = None) -> str:
    day = today or date.today()
    return f"{policy.export_prefix}_{day.isoformat()}.{extension}"


def _format_cell(value: Cell) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class CsvExportWriter:
    """Semicolon-delimited text with the ``sep=;`` hint spreadsheets expect."""

    delimiter = ";"

    def render(self, sections: Sequence[ExportSection]) -> str:
        buffer = io.StringIO()
        buffer.write(f"sep={self.delimiter}\n")
        writer = csv.writer(buffer, delimiter=self.delimiter, lineterminator="\n")
        for section in sections:
            writer.writerow([section.title])
            for row in section.rows:
                writer.writerow([_format_cell(cell) for cell in row])
            writer.writerow([])
        return buffer.getvalue()

    def to_data_uri(self, sections: Sequence[ExportSection]) -> str:
        content = self.render(sections)
        return f"data:{CSV_MEDIA_TYPE},{quote(content, safe=';,/?:@&=+$-_.!~*()#')}"


class XlsxExportWriter:
    """One worksheet per panel, named after the panel."""

    def render(self, sections: Sequence[ExportSection]) -> bytes:
        workbook = openpyxl.Workbook()
        workbook.remove(workbook.active)
        header_font = Font(bold=True)

        for section in sections:
            sheet = workbook.create_sheet(title=section.sheet_name)
            for row_idx, row in enumerate(section.rows, 1):
                is_header = bool(row) and row[0] == TIME_HEADER
                for col_idx, value in enumerate(row, 1):
                    cell = sheet.cell(row=row_idx, column=col_idx, value=value)
                    if is_header:
                        cell.font = header_font
            sheet.column_dimensions[get_column_letter(1)].width = 14
            sheet.column_dimensions[get_column_letter(2)].width = 16

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()
