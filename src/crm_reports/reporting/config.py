"""Configuration for the reporting subsystem."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ReportingConfig:
    """Configuration for report execution, visualization and rendering.

    Attributes:
        preview_limit: Maximum number of rows fetched per report run
        currency_symbol: Prefix used when formatting value/amount cells
        date_format: strftime pattern for localized dates
        pie_max_slices: Maximum number of slices drawn in a pie chart

        reports_dir: Base directory for rendered reports
        generate_html: Whether to write HTML reports
        generate_markdown: Whether to write Markdown reports
        embed_charts_base64: Embed charts as base64 in HTML (vs external files)

        chart_dpi: Resolution for generated charts
        chart_width: Default chart width in inches
        chart_height: Default chart height in inches
        chart_style: Matplotlib style to use
    """

    # Execution
    preview_limit: int = 100

    # Cell formatting
    currency_symbol: str = "$"
    date_format: str = "%m/%d/%Y"

    # Charts
    pie_max_slices: int = 6

    # Output
    reports_dir: Path = field(default_factory=lambda: Path("reports"))
    generate_html: bool = True
    generate_markdown: bool = True
    embed_charts_base64: bool = True

    chart_dpi: int = 100
    chart_width: float = 10.0
    chart_height: float = 6.0
    chart_style: str = "seaborn-v0_8-darkgrid"

    @property
    def charts_dir(self) -> Path:
        """Directory for generated chart images."""
        return self.reports_dir / "charts"

    def ensure_directories(self) -> None:
        """Create report directories if they don't exist."""
        for directory in [self.reports_dir, self.charts_dir]:
            directory.mkdir(parents=True, exist_ok=True)

    def format_currency(self, value: float) -> str:
        """Format a number as currency, e.g. ``$1,234.50`` or ``-$12.00``."""
        if value < 0:
            return f"-{self.currency_symbol}{abs(value):,.2f}"
        return f"{self.currency_symbol}{value:,.2f}"

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "preview_limit": self.preview_limit,
            "currency_symbol": self.currency_symbol,
            "date_format": self.date_format,
            "pie_max_slices": self.pie_max_slices,
            "reports_dir": str(self.reports_dir),
            "generate_html": self.generate_html,
            "generate_markdown": self.generate_markdown,
            "embed_charts_base64": self.embed_charts_base64,
            "chart_dpi": self.chart_dpi,
            "chart_width": self.chart_width,
            "chart_height": self.chart_height,
            "chart_style": self.chart_style,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportingConfig":
        """Create config from dictionary, ignoring unknown keys."""
        config = cls()
        for key in config.to_dict():
            if key not in data:
                continue
            if key == "reports_dir":
                config.reports_dir = Path(data["reports_dir"])
            else:
                setattr(config, key, data[key])
        return config
