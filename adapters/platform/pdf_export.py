"""
PDF health report export using matplotlib's off-screen (Agg) backend.

The report is a single US-Letter page with a title and one line per metric.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")
from matplotlib import pyplot as plt  # noqa: E402

import structlog  # noqa: E402

from healthtasks.domain.errors import ExportError  # noqa: E402
from healthtasks.domain.models import MetricsSnapshot  # noqa: E402

logger = structlog.get_logger(__name__)

LETTER_SIZE_INCHES = (8.5, 11.0)
MISSING = "N/A"


def report_lines(snapshot: MetricsSnapshot) -> list[str]:
    def fmt(value: float | None, template: str) -> str:
        return MISSING if value is None else template.format(value)

    return [
        "Health Report",
        f"Steps: {fmt(snapshot.steps, '{:.0f}')}",
        f"Heart Rate: {fmt(snapshot.heart_rate, '{:.0f} bpm')}",
        f"Sleep: {fmt(snapshot.sleep_hours, '{:.1f} hrs')}",
    ]


class MatplotlibReportExporter:
    """Implements ``ReportExporter``; writes ``<output_dir>/<filename>``."""

    def __init__(self, output_dir: str | Path, filename: str = "HealthReport.pdf") -> None:
        self.output_dir = Path(output_dir)
        self.filename = filename
        self.logger = logger.bind(component="pdf_exporter")

    def export(self, snapshot: MetricsSnapshot) -> Path:
        path = self.output_dir / self.filename
        lines = report_lines(snapshot)

        fig = plt.figure(figsize=LETTER_SIZE_INCHES)
        try:
            fig.text(0.08, 0.92, lines[0], fontsize=18, fontweight="bold", va="top")
            for index, line in enumerate(lines[1:], start=1):
                fig.text(0.08, 0.92 - 0.04 * index, line, fontsize=12, va="top")
            fig.text(
                0.08,
                0.05,
                f"Generated {snapshot.captured_at.strftime('%Y-%m-%d %H:%M UTC')}",
                fontsize=8,
                color="gray",
            )
            self.output_dir.mkdir(parents=True, exist_ok=True)
            fig.savefig(path, format="pdf")
        except OSError as e:
            raise ExportError(f"could not write report to {path}: {e}") from e
        finally:
            plt.close(fig)

        self.logger.info("report_written", path=str(path))
        return path
