"""Output helpers for the EMI calculator.

Simple functions that render summaries, EMI phases and amortization
schedules as tab-separated text through ``click.echo``.
"""

from __future__ import annotations

from typing import Iterable, Optional

import click

from .data_models import CalculationResult, PaymentRow, Phase, Summary


def print_summary(summary: Summary, result: Optional[CalculationResult] = None) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    click.echo("Summary")
    click.echo("-" * 72)
    click.echo(f"Total disbursed    : {summary.total_disbursed:.2f}")
    click.echo(f"Total interest     : {summary.total_interest:.2f}")
    if summary.total_extra_paid:
        click.echo(f"Total extra paid   : {summary.total_extra_paid:.2f}")
    click.echo(f"Total amount paid  : {summary.total_amount_paid:.2f}")
    click.echo(f"Closure date       : {summary.closure_date.strftime('%Y-%m')}")
    if result is not None:
        click.echo(f"Months             : {len(result.schedule)}")
        if result.hit_iteration_cap:
            click.echo("Warning            : loan does not pay off; schedule was cut short")
    click.echo("-" * 72)


def print_phases(phases: Iterable[Phase]) -> None:
    """Print one line per EMI phase."""
    headers = ["Phase", "Start", "End", "Principal", "Added", "MonthsLeft", "EMI", "Rate"]
    click.echo("\t".join(headers))
    for phase in phases:
        end = phase.end_date.strftime("%Y-%m-%d") if phase.end_date else "-"
        row = [
            str(phase.index),
            phase.start_date.strftime("%Y-%m-%d"),
            end,
            f"{phase.principal_at_start:.2f}",
            f"{phase.disbursal_added:.2f}",
            f"{phase.remaining_tenure_months:.1f}",
            f"{phase.emi:.2f}",
            f"{phase.rate}",
        ]
        click.echo("\t".join(row))


def print_schedule(schedule: Iterable[PaymentRow]) -> None:
    """Print the amortization schedule as a simple table.

    Months before the first disbursal (zero balance, nothing paid) are
    skipped.
    """
    headers = [
        "Month", "Date", "Disbursed", "Opening", "EMI", "Interest", "Principal", "Extra", "Closing", "Rate",
    ]
    click.echo("\t".join(headers))
    for entry in schedule:
        if entry.opening_principal == 0 and entry.closing_principal == 0 and entry.emi == 0:
            continue
        row = [
            str(entry.month),
            entry.date.strftime("%Y-%m"),
            f"{entry.disbursed:.2f}",
            f"{entry.opening_principal:.2f}",
            f"{entry.emi:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.principal_paid:.2f}",
            f"{entry.extra_paid:.2f}",
            f"{entry.closing_principal:.2f}",
            f"{entry.rate}",
        ]
        click.echo("\t".join(row))


def print_comparison(first: CalculationResult, second: CalculationResult) -> None:
    """Print two results side by side.

    The difference column is second minus first; a negative value means the
    second scenario is cheaper or shorter.
    """
    click.echo("Comparison")
    click.echo("=" * 72)
    click.echo(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    metrics = [
        ("total_interest", first.summary.total_interest, second.summary.total_interest),
        ("total_amount_paid", first.summary.total_amount_paid, second.summary.total_amount_paid),
        ("total_extra_paid", first.summary.total_extra_paid, second.summary.total_extra_paid),
        ("months", len(first.schedule), len(second.schedule)),
    ]
    for key, v1, v2 in metrics:
        diff = v2 - v1
        click.echo(f"{key:20s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    click.echo(
        f"{'closure_date':20s} {first.summary.closure_date.isoformat():>15s} "
        f"{second.summary.closure_date.isoformat():>15s}"
    )
    click.echo("=" * 72)
