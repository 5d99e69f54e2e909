"""
报表渲染服务

将 Dashboard 及其 Widget 缓存数据导出为附件：
- PDF: 拼装 HTML 后由 xhtml2pdf 转换
- XLSX: openpyxl 生成，首个工作表为概要，每个有数据的 Widget 一个工作表
"""
import html
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session
from xhtml2pdf import pisa

from dashhub import crud
from dashhub.core.enums import ExportFormat
from dashhub.core.exceptions import DashboardNotFoundError
from dashhub.db.session import SessionLocal, get_db_session
from dashhub.models.dashboard import Dashboard
from dashhub.models.dashboard_widget import DashboardWidget

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

# Excel 工作表名最长 31 个字符，且不能包含以下字符
_SHEET_NAME_MAX = 31
_SHEET_NAME_INVALID = set('[]:*?/\\')


@dataclass(frozen=True)
class ReportArtifact:
    filename: str
    content: bytes
    mime_type: str


def _widget_rows(widget: DashboardWidget) -> List[Dict[str, Any]]:
    cache = widget.data_cache or {}
    rows = cache.get("data") if isinstance(cache, dict) else None
    return [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else []


def _widget_columns(widget: DashboardWidget, rows: List[Dict[str, Any]]) -> List[str]:
    cache = widget.data_cache or {}
    columns = cache.get("columns") if isinstance(cache, dict) else None
    if columns:
        return [str(c) for c in columns]
    seen: List[str] = []
    for row in rows:
        for key in row:
            if key not in seen:
                seen.append(key)
    return seen


def _sheet_title(title: str, index: int) -> str:
    cleaned = "".join("_" if ch in _SHEET_NAME_INVALID else ch for ch in title).strip()
    prefix = f"{index}. "
    return (prefix + (cleaned or "Widget"))[:_SHEET_NAME_MAX]


class DashboardReportRenderer:
    """Dashboard 报表渲染器"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def render_dashboard(self, dashboard_id: int, fmt: ExportFormat = ExportFormat.PDF) -> ReportArtifact:
        """
        渲染 Dashboard 报表（同步，由调用方放到线程池执行）

        Raises:
            DashboardNotFoundError: Dashboard 不存在或已删除
        """
        fmt = ExportFormat(fmt)
        with get_db_session(self._session_factory) as db:
            dashboard = crud.crud_dashboard.get_with_widgets(db, dashboard_id=dashboard_id)
            if dashboard is None:
                raise DashboardNotFoundError(details={"dashboard_id": dashboard_id})

            if fmt == ExportFormat.XLSX:
                content = self.build_xlsx(dashboard)
            else:
                content = self.build_pdf(dashboard)

        logger.info(f"Dashboard {dashboard_id} 已渲染为 {fmt.value}，{len(content)} 字节")
        return ReportArtifact(
            filename=f"report-{dashboard_id}.{fmt.value.lower()}",
            content=content,
            mime_type=MIME_TYPES[fmt],
        )

    # ==========================================================
    # PDF
    # ==========================================================

    def build_html(self, dashboard: Dashboard) -> str:
        generated = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")
        parts = [
            "<html><head><meta charset='utf-8'/><style>",
            "body { font-family: Helvetica, Arial, sans-serif; font-size: 10pt; color: #333; }",
            "h1 { font-size: 18pt; margin-bottom: 4px; }",
            "h2 { font-size: 13pt; margin-top: 18px; }",
            "table { border-collapse: collapse; width: 100%; }",
            "th, td { border: 1px solid #ccc; padding: 4px; text-align: left; }",
            "th { background-color: #f0f0f0; }",
            ".muted { color: #777; }",
            "</style></head><body>",
            f"<h1>Dashboard Report: {html.escape(dashboard.title)}</h1>",
            f"<p class='muted'>Generated: {generated}</p>",
            f"<p>{html.escape(dashboard.description or 'N/A')}</p>",
        ]

        for widget in dashboard.widgets:
            parts.append(f"<h2>{html.escape(widget.title)}</h2>")
            parts.append(
                f"<p class='muted'>Type: {html.escape(widget.widget_type)}"
                f" | Data Source: {html.escape(widget.data_source or 'N/A')}</p>"
            )
            rows = _widget_rows(widget)
            if not rows:
                continue
            columns = _widget_columns(widget, rows)
            parts.append("<table><tr>")
            parts.extend(f"<th>{html.escape(col)}</th>" for col in columns)
            parts.append("</tr>")
            for row in rows:
                parts.append("<tr>")
                parts.extend(f"<td>{html.escape(str(row.get(col, '')))}</td>" for col in columns)
                parts.append("</tr>")
            parts.append("</table>")

        parts.append(f"<p class='muted'>Total Widgets: {len(dashboard.widgets)}</p>")
        parts.append("</body></html>")
        return "".join(parts)

    def build_pdf(self, dashboard: Dashboard) -> bytes:
        buffer = io.BytesIO()
        status = pisa.CreatePDF(self.build_html(dashboard), dest=buffer, encoding="utf-8")
        if status.err:
            raise RuntimeError(f"xhtml2pdf error count: {status.err}")
        return buffer.getvalue()

    # ==========================================================
    # XLSX
    # ==========================================================

    def build_xlsx(self, dashboard: Dashboard) -> bytes:
        workbook = Workbook()
        summary = workbook.active
        summary.title = "Summary"
        bold = Font(bold=True)

        summary.append(["Dashboard", dashboard.title])
        summary.append(["Description", dashboard.description or ""])
        summary.append(["Generated", datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")])
        summary.append([])
        summary.append(["Widget", "Type", "Data Source", "Rows"])
        for cell in summary[summary.max_row]:
            cell.font = bold

        for index, widget in enumerate(dashboard.widgets, start=1):
            rows = _widget_rows(widget)
            summary.append([widget.title, widget.widget_type, widget.data_source or "", len(rows)])
            if not rows:
                continue

            columns = _widget_columns(widget, rows)
            sheet = workbook.create_sheet(_sheet_title(widget.title, index))
            sheet.append(columns)
            for cell in sheet[1]:
                cell.font = bold
            for row in rows:
                sheet.append([self._cell_value(row.get(col)) for col in columns])
            for col_index, col in enumerate(columns, start=1):
                sheet.column_dimensions[get_column_letter(col_index)].width = max(12, min(len(col) + 4, 50))

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None or isinstance(value, (int, float, str, bool, datetime)):
            return value
        return str(value)
