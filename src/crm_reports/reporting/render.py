"""Report rendering with Jinja2 templates.

Renders a ReportView as Markdown and HTML. Built-in templates are used unless
a template directory provides ``report.md`` / ``report.html`` overrides.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    select_autoescape,
)

from crm_reports.catalog.data_sources import format_field_name
from crm_reports.common.logging import get_logger
from crm_reports.reporting.charts import ChartGenerator, ChartResult
from crm_reports.reporting.config import ReportingConfig
from crm_reports.reporting.visualizer import (
    BarChartView,
    ComparisonChartView,
    KpiCardsView,
    PieChartView,
    Placeholder,
    ReportView,
    TableView,
)

logger = get_logger(__name__)


REPORT_MD_TEMPLATE = """# {{ view.title }}
{% if placeholder %}

*{{ placeholder.message }}*
{% else %}

{{ preview_note }}
{% if table %}

| {% for column in table.columns %}{{ column.label | md_cell }} | {% endfor %}

|{% for column in table.columns %}---|{% endfor %}

{% for row in table.rows %}
| {% for cell in row %}{{ cell.text | md_cell }} | {% endfor %}

{% endfor %}
{% elif kpis %}

| KPI | Value |
|-----|-------|
{% for card in kpis.cards %}
| {{ card.label | md_cell }} | {{ card.value | md_cell }} |
{% endfor %}
{% elif chart_data %}

{% if chart %}
{{ chart.get_markdown_img() }}

{% endif %}
| {% for header in chart_headers %}{{ header | md_cell }} | {% endfor %}

|{% for header in chart_headers %}---|{% endfor %}

{% for entry in chart_data %}
| {% for value in entry %}{{ value | md_cell }} | {% endfor %}

{% endfor %}
{% endif %}
{% endif %}

---

*Generated: {{ generated_at }}*
"""

REPORT_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ view.title }}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               max-width: 1200px; margin: 0 auto; padding: 20px; color: #1f2937; }
        h1 { border-bottom: 2px solid #2563eb; padding-bottom: 10px; }
        table { border-collapse: collapse; width: 100%; margin: 20px 0; }
        th, td { border: 1px solid #e5e7eb; padding: 8px 12px; text-align: left; white-space: nowrap; }
        th { background: #f3f4f6; }
        img { max-width: 100%; height: auto; }
        .note { color: #6b7280; font-size: 0.9em; }
        .placeholder { text-align: center; color: #6b7280; padding: 40px 0; }
        .badge { border-radius: 9999px; padding: 2px 8px; font-size: 0.85em; }
        .badge-positive { background: #2563eb; color: #fff; }
        .badge-neutral { background: #e5e7eb; color: #1f2937; }
        .badge-negative { background: #dc2626; color: #fff; }
        .badge-outline { border: 1px solid #d1d5db; }
        .kpis { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; }
        .kpi { border: 1px solid #e5e7eb; border-radius: 8px; padding: 16px; }
        .kpi-label { font-size: 0.9em; color: #6b7280; }
        .kpi-value { font-size: 1.6em; font-weight: bold; }
        footer { margin-top: 40px; color: #9ca3af; font-size: 0.85em; }
    </style>
</head>
<body>
<h1>{{ view.title }}</h1>
{% if placeholder %}
<p class="placeholder">{{ placeholder.message }}</p>
{% else %}
<p class="note">{{ preview_note }}</p>
{% if table %}
<table>
<thead><tr>{% for column in table.columns %}<th>{{ column.label }}</th>{% endfor %}</tr></thead>
<tbody>
{% for row in table.rows %}
<tr>{% for cell in row %}<td>{% if cell.badge %}<span class="badge badge-{{ cell.badge.value }}">{{ cell.text }}</span>{% else %}{{ cell.text }}{% endif %}</td>{% endfor %}</tr>
{% endfor %}
</tbody>
</table>
{% elif kpis %}
<div class="kpis">
{% for card in kpis.cards %}
<div class="kpi" data-icon="{{ card.icon.value }}">
<div class="kpi-label">{{ card.label }}</div>
<div class="kpi-value">{{ card.value }}</div>
</div>
{% endfor %}
</div>
{% elif chart_data %}
{% if chart %}
<div class="chart">{{ chart.get_html_img() | safe }}</div>
{% endif %}
<table>
<thead><tr>{% for header in chart_headers %}<th>{{ header }}</th>{% endfor %}</tr></thead>
<tbody>
{% for entry in chart_data %}
<tr>{% for value in entry %}<td>{{ value }}</td>{% endfor %}</tr>
{% endfor %}
</tbody>
</table>
{% endif %}
{% endif %}
<footer>Generated: {{ generated_at }}</footer>
</body>
</html>
"""


def _md_cell(value: Any) -> str:
    """Escape a value for a Markdown table cell."""
    return re.sub(r"\s+", " ", str(value)).replace("|", "\\|")


def _chart_table(view: ReportView) -> tuple[list[str], list[list[Any]]]:
    """Headers and rows of the data behind a chart view."""
    body = view.body
    if isinstance(body, BarChartView):
        headers = [format_field_name(body.dimension), body.measure_label]
        return headers, [[e["label"], f"{e['value']:,.2f}"] for e in body.data]
    if isinstance(body, PieChartView):
        headers = [format_field_name(body.category), "Count"]
        return headers, [[e["name"], e["value"]] for e in body.data]
    if isinstance(body, ComparisonChartView):
        field_a, field_b = body.fields
        headers = ["Name", *body.labels]
        return headers, [
            [e["name"], f"{e[field_a]:,.2f}", f"{e[field_b]:,.2f}"] for e in body.data
        ]
    return [], []


class ReportRenderer:
    """Renders report views using Jinja2 templates."""

    def __init__(
        self,
        config: ReportingConfig | None = None,
        template_dir: Path | None = None,
    ):
        """Initialize the report renderer.

        Args:
            config: Reporting configuration.
            template_dir: Optional directory with ``report.md`` / ``report.html``
                overrides.
        """
        self.config = config or ReportingConfig()

        builtin = DictLoader(
            {"report.md": REPORT_MD_TEMPLATE, "report.html": REPORT_HTML_TEMPLATE}
        )
        if template_dir and template_dir.exists():
            loader: Any = ChoiceLoader([FileSystemLoader(str(template_dir)), builtin])
        else:
            loader = builtin
        self.env = Environment(
            loader=loader,
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
        )
        self.env.filters["md_cell"] = _md_cell

    def preview_note(self, view: ReportView) -> str:
        return (
            f"Showing {view.row_count} rows "
            f"(limited to first {self.config.preview_limit} for preview)"
        )

    def _context(self, view: ReportView, chart: ChartResult | None) -> dict[str, Any]:
        body = view.body
        headers, chart_data = _chart_table(view)
        return {
            "view": view,
            "placeholder": body if isinstance(body, Placeholder) else None,
            "table": body if isinstance(body, TableView) else None,
            "kpis": body if isinstance(body, KpiCardsView) else None,
            "chart": chart,
            "chart_headers": headers,
            "chart_data": chart_data,
            "preview_note": self.preview_note(view),
            "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }

    def render_markdown(
        self, view: ReportView, chart: ChartResult | None = None
    ) -> str:
        """Render a report view as Markdown."""
        template = self.env.get_template("report.md")
        return template.render(**self._context(view, chart))

    def render_html(self, view: ReportView, chart: ChartResult | None = None) -> str:
        """Render a report view as a standalone HTML page."""
        template = self.env.get_template("report.html")
        return template.render(**self._context(view, chart))

    def write_report(
        self,
        view: ReportView,
        name: str,
        output_dir: Path | None = None,
        charts: ChartGenerator | None = None,
    ) -> tuple[Path | None, Path | None]:
        """Render a report view to files.

        Args:
            view: Report view to render.
            name: Base file name (without extension).
            output_dir: Target directory (``config.reports_dir`` if omitted).
            charts: Chart generator used to draw chart views.

        Returns:
            Tuple of (markdown_path, html_path); a path is None when that
            format is disabled in the configuration.
        """
        output_dir = output_dir or self.config.reports_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        chart = None
        if charts is not None:
            save_dir = (
                None if self.config.embed_charts_base64 else output_dir / "charts"
            )
            chart = charts.for_view(view, save_dir=save_dir)

        md_path = None
        html_path = None

        if self.config.generate_markdown:
            md_path = output_dir / f"{name}.md"
            md_path.write_text(self.render_markdown(view, chart))
            logger.info("report_markdown_generated", path=str(md_path))

        if self.config.generate_html:
            html_path = output_dir / f"{name}.html"
            html_path.write_text(self.render_html(view, chart))
            logger.info("report_html_generated", path=str(html_path))

        return md_path, html_path
