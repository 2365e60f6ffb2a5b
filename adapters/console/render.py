"""Rich renderables for the schedule and the health dashboard."""

from rich.panel import Panel
from rich.table import Table

from healthtasks.domain.models import MetricType
from healthtasks.services.dashboard import UNAVAILABLE, HealthDashboard
from healthtasks.services.task_catalog import ScheduleEntry

METRIC_LABELS = {
    MetricType.STEPS: "Steps",
    MetricType.HEART_RATE: "Heart Rate",
    MetricType.SLEEP_HOURS: "Sleep",
}


def schedule_table(entries: list[ScheduleEntry]) -> Table:
    table = Table(title="Schedule")
    table.add_column("Time")
    table.add_column("Task", style="bold")
    table.add_column("Instructions")
    table.add_column("Status")

    for entry in entries:
        when = (
            f"{entry.task.schedule.hour:02d}:{entry.task.schedule.minute:02d}"
            if entry.task.schedule
            else "-"
        )
        if entry.completed:
            status = "[green]✓ Completed[/green]"
        else:
            status = f"[blue]{entry.action_label}[/blue]"
        table.add_row(when, entry.task.title, entry.task.instructions, status)
    return table


def dashboard_panel(dashboard: HealthDashboard) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold")
    table.add_column()

    for metric, shown in dashboard.display_values().items():
        style = "dim italic" if shown == UNAVAILABLE else ""
        table.add_row(METRIC_LABELS[metric], f"[{style}]{shown}[/{style}]" if style else shown)

    return Panel(table, title="Your Key Metrics", border_style="cyan")
