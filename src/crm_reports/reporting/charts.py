"""Chart drawing for report views.

Draws the chart-ready data of a ReportView with matplotlib:
- Bar charts (measure summed per dimension)
- Pie charts (row counts per category)
- Comparison charts (two fields side by side per row)
"""

import base64
import io
from dataclasses import dataclass
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend for server-side rendering

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.ticker import FuncFormatter

from crm_reports.common.logging import get_logger
from crm_reports.reporting.config import ReportingConfig
from crm_reports.reporting.formatting import is_money_field
from crm_reports.reporting.visualizer import (
    BarChartView,
    ComparisonChartView,
    PieChartView,
    ReportView,
)

logger = get_logger(__name__)

PALETTE = ["#2563eb", "#64748b", "#f59e0b", "#8884d8", "#82ca9d", "#ffc658"]


@dataclass
class ChartResult:
    """Result of chart generation."""

    chart_id: str
    title: str
    png_path: Path | None = None
    base64_data: str | None = None

    def get_html_img(self, alt_text: str = "") -> str:
        """Get HTML img tag for the chart."""
        alt = alt_text or self.title
        if self.base64_data:
            src = f"data:image/png;base64,{self.base64_data}"
            return f'<img src="{src}" alt="{alt}" />'
        if self.png_path:
            return f'<img src="{self.png_path}" alt="{alt}" />'
        return f"<p>[Chart: {self.title}]</p>"

    def get_markdown_img(self, alt_text: str = "") -> str:
        """Get Markdown image syntax for the chart."""
        alt = alt_text or self.title
        if self.png_path:
            return f"![{alt}]({self.png_path})"
        if self.base64_data:
            return f"![{alt}](data:image/png;base64,{self.base64_data})"
        return f"*[Chart: {self.title}]*"


class ChartGenerator:
    """Generates matplotlib charts for report views."""

    def __init__(self, config: ReportingConfig | None = None):
        """Initialize chart generator.

        Args:
            config: Reporting configuration.
        """
        self.config = config or ReportingConfig()
        self._setup_style()

    def _setup_style(self) -> None:
        try:
            plt.style.use(self.config.chart_style)
        except OSError:
            plt.style.use("default")
            logger.debug("chart_style_unavailable", style=self.config.chart_style)

        plt.rcParams["figure.figsize"] = (
            self.config.chart_width,
            self.config.chart_height,
        )
        plt.rcParams["figure.dpi"] = self.config.chart_dpi
        plt.rcParams["font.size"] = 10
        plt.rcParams["axes.titlesize"] = 12

    def _fig_to_result(
        self,
        fig: Figure,
        chart_id: str,
        title: str,
        save_path: Path | None = None,
    ) -> ChartResult:
        """Convert a figure to a ChartResult and close it.

        Args:
            fig: Matplotlib figure.
            chart_id: Unique identifier for the chart.
            title: Chart title.
            save_path: Optional path to save PNG file.

        Returns:
            ChartResult with base64 and/or file path.
        """
        buf = io.BytesIO()
        fig.savefig(buf, format="png", bbox_inches="tight", dpi=self.config.chart_dpi)
        base64_data = base64.b64encode(buf.getvalue()).decode("utf-8")
        buf.close()

        png_path = None
        if save_path:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(
                str(save_path),
                format="png",
                bbox_inches="tight",
                dpi=self.config.chart_dpi,
            )
            png_path = save_path

        plt.close(fig)

        return ChartResult(
            chart_id=chart_id,
            title=title,
            png_path=png_path,
            base64_data=base64_data if self.config.embed_charts_base64 else None,
        )

    def _size(self, square: bool = False) -> tuple[float, float]:
        if square:
            return (self.config.chart_height, self.config.chart_height)
        return (self.config.chart_width, self.config.chart_height)

    def _no_data(self, ax: Axes, message: str = "No data available") -> None:
        ax.text(
            0.5,
            0.5,
            message,
            ha="center",
            va="center",
            transform=ax.transAxes,
            fontsize=14,
            color="gray",
        )

    def _money_axis(self, ax: Axes) -> None:
        symbol = self.config.currency_symbol
        ax.yaxis.set_major_formatter(FuncFormatter(lambda x, p: f"{symbol}{x:,.0f}"))

    def bar_chart(
        self,
        view: BarChartView,
        title: str = "Bar Chart",
        chart_id: str = "bar_chart",
        save_path: Path | None = None,
    ) -> ChartResult:
        """Draw a bar chart view.

        Args:
            view: Bar chart data.
            title: Chart title.
            chart_id: Unique chart identifier.
            save_path: Optional path to save PNG.

        Returns:
            ChartResult with the generated chart.
        """
        fig, ax = plt.subplots(figsize=self._size())

        if view.data:
            labels = [entry["label"] for entry in view.data]
            values = [entry["value"] for entry in view.data]
            ax.bar(
                labels,
                values,
                color=PALETTE[0],
                edgecolor="white",
                label=view.measure_label,
            )
            ax.legend(loc="upper right")
            if is_money_field(view.measure):
                self._money_axis(ax)
            plt.setp(ax.get_xticklabels(), rotation=30, ha="right")
        else:
            self._no_data(ax)

        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.set_ylabel(view.measure_label)
        ax.grid(True, alpha=0.3, axis="y")
        fig.tight_layout()

        return self._fig_to_result(fig, chart_id, title, save_path)

    def pie_chart(
        self,
        view: PieChartView,
        title: str = "Pie Chart",
        chart_id: str = "pie_chart",
        save_path: Path | None = None,
    ) -> ChartResult:
        """Draw a pie chart view, labelling each slice with its percentage."""
        fig, ax = plt.subplots(figsize=self._size(square=True))

        total = sum(entry["value"] for entry in view.data)
        if view.data and total > 0:
            names = [entry["name"] for entry in view.data]
            sizes = [entry["value"] for entry in view.data]
            colors = [PALETTE[i % len(PALETTE)] for i in range(len(sizes))]
            ax.pie(
                sizes,
                labels=[f"{n} {s / total * 100:.0f}%" for n, s in zip(names, sizes)],
                colors=colors,
                startangle=90,
            )
            ax.axis("equal")
        else:
            self._no_data(ax)

        ax.set_title(title, fontsize=14, fontweight="bold")
        fig.tight_layout()

        return self._fig_to_result(fig, chart_id, title, save_path)

    def comparison_chart(
        self,
        view: ComparisonChartView,
        title: str = "Comparison",
        chart_id: str = "comparison_chart",
        save_path: Path | None = None,
    ) -> ChartResult:
        """Draw a comparison view as grouped bars, one group per row."""
        fig, ax = plt.subplots(figsize=self._size())

        if view.data:
            field_a, field_b = view.fields
            positions = list(range(len(view.data)))
            width = 0.4
            ax.bar(
                [p - width / 2 for p in positions],
                [entry[field_a] for entry in view.data],
                width=width,
                color=PALETTE[0],
                label=view.labels[0],
            )
            ax.bar(
                [p + width / 2 for p in positions],
                [entry[field_b] for entry in view.data],
                width=width,
                color=PALETTE[1],
                label=view.labels[1],
            )
            ax.set_xticks(positions)
            ax.set_xticklabels(
                [entry["name"] for entry in view.data], rotation=30, ha="right"
            )
            ax.legend(loc="upper right")
        else:
            self._no_data(ax)

        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.grid(True, alpha=0.3, axis="y")
        fig.tight_layout()

        return self._fig_to_result(fig, chart_id, title, save_path)

    def for_view(
        self, view: ReportView, save_dir: Path | None = None
    ) -> ChartResult | None:
        """Draw the chart of a report view, if it has one.

        Args:
            view: Report view from the visualizer.
            save_dir: Directory to save the PNG in (not saved if omitted).

        Returns:
            ChartResult, or None for tables, KPI cards and placeholders.
        """

        def path(chart_id: str) -> Path | None:
            return save_dir / f"{chart_id}.png" if save_dir else None

        body = view.body
        if isinstance(body, BarChartView):
            return self.bar_chart(body, view.title, save_path=path("bar_chart"))
        if isinstance(body, PieChartView):
            return self.pie_chart(body, view.title, save_path=path("pie_chart"))
        if isinstance(body, ComparisonChartView):
            return self.comparison_chart(
                body, view.title, save_path=path("comparison_chart")
            )
        return None
