"""
List exports (CSV and PDF) shared by every screen.

Each screen supplies its own column set and summary; this module picks the
rows for the requested scope and renders the file.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

FORMAT_CSV = "csv"
FORMAT_PDF = "pdf"
SCOPE_ALL = "all"
SCOPE_PAGE = "page"
SCOPE_SELECTED = "selected"

NO_RECORDS = "No records to export"

PICKING_STATE_LABELS = {
    "draft": "Draft",
    "waiting": "Waiting Another Operation",
    "confirmed": "Waiting",
    "assigned": "Ready",
    "done": "Done",
    "cancel": "Cancelled",
}


@dataclass
class ExportColumn:
    header: str
    accessor: Callable[[dict], Any]
    is_status: bool = False
    is_monospace: bool = False
    is_bold: bool = False
    align: str = "left"


@dataclass
class ExportFile:
    filename: str
    media_type: str
    content: bytes


SummaryFn = Callable[[List[dict]], List[Tuple[str, Any]]]


# ---------------------------------------------------------------------------
# Cell formatting
# ---------------------------------------------------------------------------


def format_export_date(value: Any) -> str:
    """`2024-03-05 14:07:00` -> `05/03/24 14:07`."""
    if not value:
        return "-"
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return parsed.strftime("%d/%m/%y %H:%M")


def format_cell_value(value: Any, field_name: str) -> str:
    """Render a raw Odoo field value the way list exports show it."""
    if value is None:
        return "-"
    if field_name in ("state", "status"):
        normalised = str(value).lower().strip()
        return PICKING_STATE_LABELS.get(normalised, str(value))
    if isinstance(value, (list, tuple)):
        if len(value) == 2 and isinstance(value[0], int) and not isinstance(value[0], bool):
            return str(value[1] or "-")
        joined = ", ".join(str(v[1] if isinstance(v, (list, tuple)) else v) for v in value)
        return joined or "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if "date" in field_name or "_at" in field_name:
        return format_export_date(value)
    return str(value)


def generic_cell(value: Any) -> str:
    """Accessor used for discovered (smart field) columns."""
    if value is None or value is False:
        return "-"
    if isinstance(value, (list, tuple)):
        if not value:
            return "-"
        return str(value[1] if len(value) > 1 and value[1] else value[0])
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def field_columns(columns: Sequence[dict], formatter: Callable[[Any, str], str] = format_cell_value) -> List[ExportColumn]:
    """Export columns for `{"id", "label"}` column descriptors, id first."""
    ordered = [c for c in columns if c["id"] == "id"] + [c for c in columns if c["id"] != "id"]
    if not any(c["id"] == "id" for c in ordered):
        ordered.insert(0, {"id": "id", "label": "ID"})

    out = []
    for col in ordered:
        field_id = col["id"]
        if field_id == "id":
            accessor = lambda row: f"#{row.get('id')}"  # noqa: E731
        else:
            accessor = lambda row, f=field_id: formatter(row.get(f), f)  # noqa: E731
        out.append(
            ExportColumn(
                header=col.get("label") or field_id,
                accessor=accessor,
                is_status=field_id in ("state", "status"),
                is_monospace=field_id == "id",
                is_bold=field_id in ("id", "name", "display_name"),
            )
        )
    return out


# ---------------------------------------------------------------------------
# Scope / naming
# ---------------------------------------------------------------------------


def select_scope(
    rows: Sequence[dict],
    scope: str,
    *,
    page: int = 1,
    per_page: int = 9,
    selected_ids: Optional[Iterable[Any]] = None,
) -> List[dict]:
    if scope == SCOPE_SELECTED:
        wanted = {str(i) for i in (selected_ids or [])}
        return [r for r in rows if str(r.get("id")) in wanted]
    if scope == SCOPE_PAGE:
        start = (max(page, 1) - 1) * per_page
        return list(rows[start:start + per_page])
    return list(rows)


def export_filename(title: str, extension: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    slug = re.sub(r"\s+", "_", title.lower())
    return f"{slug}_export_{today.isoformat()}.{extension}"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _cell_text(column: ExportColumn, row: dict) -> str:
    value = column.accessor(row)
    return "" if value is None else str(value)


def render_csv(rows: Sequence[dict], columns: Sequence[ExportColumn]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([c.header for c in columns])
    for row in rows:
        writer.writerow([_cell_text(c, row) for c in columns])
    return buffer.getvalue().encode("utf-8")


def _fit(text: str, width: float, font: str, size: float) -> str:
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "...", font, size) > width:
        text = text[:-1]
    return text + "..."


def render_pdf(
    rows: Sequence[dict],
    columns: Sequence[ExportColumn],
    *,
    title: str,
    subtitle: str = "",
    summary: Sequence[Tuple[str, Any]] = (),
) -> bytes:
    page_width, page_height = landscape(A4)
    margin = 36.0
    row_height = 16.0
    font_size = 8.0
    usable = page_width - 2 * margin
    col_width = usable / max(len(columns), 1)

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(page_width, page_height))
    pdf.setTitle(title)

    def draw_header_row(y: float) -> float:
        pdf.setFillGray(0.93)
        pdf.rect(margin, y - 4, usable, row_height, stroke=0, fill=1)
        pdf.setFillGray(0)
        pdf.setFont("Helvetica-Bold", font_size)
        for idx, column in enumerate(columns):
            pdf.drawString(
                margin + idx * col_width + 2,
                y,
                _fit(column.header, col_width - 4, "Helvetica-Bold", font_size),
            )
        return y - row_height

    y = page_height - margin
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawString(margin, y - 18, title.upper())
    pdf.setFont("Helvetica", 9)
    pdf.drawRightString(page_width - margin, y - 10, subtitle or date.today().strftime("%B %d, %Y"))
    pdf.drawRightString(page_width - margin, y - 22, f"Records: {len(rows)}")
    y -= 44

    if summary:
        box_width = usable / len(summary)
        for idx, (label, value) in enumerate(summary):
            x = margin + idx * box_width
            pdf.setStrokeGray(0.8)
            pdf.rect(x + 2, y - 30, box_width - 4, 34, stroke=1, fill=0)
            pdf.setFont("Helvetica", 7)
            pdf.drawString(x + 8, y - 8, str(label).upper())
            pdf.setFont("Helvetica-Bold", 12)
            pdf.drawString(x + 8, y - 24, str(value))
        y -= 48

    y = draw_header_row(y)
    for row in rows:
        if y < margin:
            pdf.showPage()
            y = draw_header_row(page_height - margin)
        for idx, column in enumerate(columns):
            if column.is_bold:
                font = "Helvetica-Bold"
            elif column.is_monospace:
                font = "Courier"
            elif column.is_status:
                font = "Helvetica-Oblique"
            else:
                font = "Helvetica"
            pdf.setFont(font, font_size)
            text = _fit(_cell_text(column, row), col_width - 4, font, font_size)
            if column.align == "right":
                pdf.drawRightString(margin + (idx + 1) * col_width - 2, y, text)
            else:
                pdf.drawString(margin + idx * col_width + 2, y, text)
        y -= row_height

    pdf.save()
    return buffer.getvalue()


def export_rows(
    rows: Sequence[dict],
    columns: Sequence[ExportColumn],
    *,
    title: str,
    fmt: str = FORMAT_CSV,
    scope: str = SCOPE_ALL,
    page: int = 1,
    per_page: int = 9,
    selected_ids: Optional[Iterable[Any]] = None,
    summary: Optional[SummaryFn] = None,
    date_range: Optional[Tuple[Optional[str], Optional[str]]] = None,
) -> ExportFile:
    data = select_scope(rows, scope, page=page, per_page=per_page, selected_ids=selected_ids)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NO_RECORDS)

    if fmt == FORMAT_PDF:
        subtitle = ""
        if date_range and date_range[0] and date_range[1]:
            subtitle = f"From {date_range[0]} - {date_range[1]}"
        content = render_pdf(
            data,
            columns,
            title=title,
            subtitle=subtitle,
            summary=summary(data) if summary else (),
        )
        filename, media_type = export_filename(title, "pdf"), "application/pdf"
    elif fmt == FORMAT_CSV:
        content = render_csv(data, columns)
        filename, media_type = export_filename(title, "csv"), "text/csv; charset=utf-8"
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported export format: {fmt}")

    logger.info(
        "export rendered",
        extra={"title": title, "format": fmt, "scope": scope, "rows": len(data)},
    )
    return ExportFile(filename=filename, media_type=media_type, content=content)


def to_response(export_file: ExportFile) -> StreamingResponse:
    headers = {"Content-Disposition": f"attachment; filename={export_file.filename}"}
    return StreamingResponse(
        iter([export_file.content]),
        media_type=export_file.media_type,
        headers=headers,
    )
