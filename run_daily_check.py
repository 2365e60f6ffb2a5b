"""
End-to-end walkthrough of the daily health check.

This script exercises:
1. Configuration loading and logging setup
2. Loading completion state from the defaults file
3. Listing today's schedule and the reminders due in the next day
4. Running the health-review task through the dashboard
5. Exporting the health report

Run with: python run_daily_check.py
"""

import asyncio
from datetime import datetime, timedelta

from rich.console import Console
from rich.panel import Panel

from adapters.console.render import dashboard_panel, schedule_table
from adapters.healthstore.simulated import SimulatedHealthStore
from adapters.platform.pdf_export import MatplotlibReportExporter
from adapters.platform.reminders import InProcessReminderScheduler
from adapters.storage.json_defaults import JsonFileDefaults
from healthtasks.config import configure_logging, get_config
from healthtasks.services.health_tasks_app import HealthTasksApp
from healthtasks.services.task_catalog import HEALTH_DATA_CHECK_ID
from healthtasks.services.task_completion import TaskCompletedEvent

console = Console()


async def run_daily_check() -> None:
    config = get_config()
    configure_logging(config.logging)

    reminders = InProcessReminderScheduler()
    app = HealthTasksApp(
        health_source=SimulatedHealthStore(),
        defaults=JsonFileDefaults(config.storage.defaults_path),
        reminders=reminders,
        exporter=MatplotlibReportExporter(config.export.output_dir, config.export.filename),
        config=config,
    )

    def announce(event: TaskCompletedEvent) -> None:
        note = "" if event.persisted else " (not saved)"
        console.print(f"[green]Task '{event.task_id}' completed{note}[/green]")

    app.completion.add_listener(announce)

    view_state = app.start()
    if view_state.is_error:
        console.print(f"[yellow]Reminders unavailable: {view_state.error}[/yellow]")

    console.print(schedule_table(app.schedule()))

    now = datetime.now()
    for alert in reminders.deliver_due(now, now + timedelta(days=1)):
        at = alert.next_fire_at(now).strftime("%H:%M")
        console.print(f"[cyan]{at} {alert.title}:[/cyan] {alert.body}")

    prompt = await app.authorize_health_access()
    if not prompt.granted:
        console.print(Panel(prompt.message, title=prompt.title, border_style="red"))
        return

    flow = app.open_task(HEALTH_DATA_CHECK_ID)
    if flow.is_completed:
        console.print(Panel("You have successfully completed this task.", title="Task Completed"))
        return

    flow.begin_review()
    dashboard = app.dashboard(flow)
    async with dashboard.session():
        await dashboard.wait_until_loaded()
        console.print(dashboard_panel(dashboard))

        report = dashboard.share_report()
        if report.is_ok():
            console.print(f"Report written to [bold]{report.unwrap()}[/bold]")
        else:
            console.print(f"[red]Report export failed: {report.unwrap_err()}[/red]")

        result = dashboard.finish_review()

    if result.warning:
        console.print(f"[yellow]{result.warning}[/yellow]")
    console.print(schedule_table(app.schedule()))


if __name__ == "__main__":
    asyncio.run(run_daily_check())
