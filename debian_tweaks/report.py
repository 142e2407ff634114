"""End-of-run summary for the console and the log file."""

import logging
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from debian_tweaks.models import RunReport, StepStatus
from debian_tweaks.ui import NordColors, console, display_panel, print_section

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    StepStatus.SUCCEEDED: NordColors.GREEN,
    StepStatus.SKIPPED: NordColors.FROST_3,
    StepStatus.FAILED: NordColors.RED,
    StepStatus.PLANNED: NordColors.YELLOW,
}


def summary_lines(report: RunReport) -> List[str]:
    """Plain-text summary written to the log file."""
    counts = ", ".join(
        f"{len(report.with_status(status))} {status.value}" for status in StepStatus
        if report.with_status(status)
    )
    lines = [f"Run summary: {len(report.results)} steps ({counts or 'none'}) in {report.elapsed:.1f}s"]
    for result in report.results:
        line = f"  {result.name}: {result.status.value}"
        if result.message:
            line += f" - {result.message}"
        lines.append(line)
    if report.aborted_by:
        lines.append(f"Run aborted by fatal step: {report.aborted_by}")
    if report.failed:
        lines.append("Steps that did not succeed: " + ", ".join(r.name for r in report.failed))
    for follow_up in report.follow_ups:
        lines.append(f"Follow-up: {follow_up}")
    return lines


def log_summary(report: RunReport) -> None:
    for line in summary_lines(report):
        logger.info(line)


def print_status_report(report: RunReport, log_file: Optional[Path] = None) -> None:
    """Display a summary status report of every step of the run."""
    print_section("Setup Summary")

    table = Table(
        title="Debian Tweaks Status Report",
        title_style=f"bold {NordColors.FROST_1}",
        border_style=f"{NordColors.FROST_3}",
        box=box.ROUNDED,
        show_lines=False,
    )
    table.add_column("Step", style=f"bold {NordColors.FROST_2}")
    table.add_column("Status", style="bold")
    table.add_column("Message")
    table.add_column("Elapsed", justify="right")

    for result in report.results:
        style = STATUS_STYLES.get(result.status, NordColors.FROST_2)
        table.add_row(
            result.name,
            Text(result.status.value.upper(), style=style),
            Text(result.message),
            f"{result.elapsed:.1f}s",
        )

    console.print(Panel(table, border_style=f"{NordColors.FROST_1}"))

    if report.aborted_by:
        display_panel(
            f"The run stopped at fatal step '{report.aborted_by}'.",
            NordColors.RED,
            "Aborted",
        )

    failed = report.failed
    if failed:
        message = "\n".join(f"{r.name}: {r.message}" for r in failed)
        display_panel(message, NordColors.YELLOW, "Steps that did not succeed")
    elif not report.aborted_by:
        display_panel("All steps succeeded or were already satisfied.", NordColors.GREEN, "Done")

    if report.follow_ups:
        display_panel(
            "\n".join(f"• {f}" for f in report.follow_ups),
            NordColors.FROST_2,
            "Manual follow-up",
        )

    if log_file:
        console.print(f"[{NordColors.FROST_3}]Log file: {log_file}[/]")

    log_summary(report)
