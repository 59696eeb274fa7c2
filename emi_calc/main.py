"""Command-line interface for the EMI calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules for a
construction-linked loan, view summaries or compare two saved calculations.
Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from .data_models import (
    EXTRA_PAYMENT_MODES,
    EXTRA_REDUCES_TENURE,
    INTEREST_FLAT,
    INTEREST_MODES,
    Disbursal,
    ExtraPayment,
    LoanInputs,
    LoanParameters,
    RateChange,
)
from .engine import simulate_inputs
from .formatter import print_comparison, print_phases, print_schedule, print_summary
from .serialization import export_to_csv, export_to_json, load_inputs, result_to_dict
from .utils import decimal_from_str, parse_amount, parse_date, parse_dated_value
from .validation import validate_inputs

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def parse_disbursal_strings(values: Tuple[str, ...]) -> Tuple[Disbursal, ...]:
    disbursals = []
    for item in values:
        try:
            dt, raw = parse_dated_value(item)
            disbursals.append(Disbursal(date=dt, amount=parse_amount(raw)))
        except ValueError as exc:
            raise click.BadParameter(f"Disbursal must be in DATE:AMOUNT format; {exc}")
    return tuple(disbursals)


def parse_rate_change_strings(values: Tuple[str, ...]) -> Tuple[RateChange, ...]:
    changes = []
    for item in values:
        try:
            dt, raw = parse_dated_value(item)
            changes.append(RateChange(date=dt, rate=decimal_from_str(raw.rstrip("%"))))
        except ValueError as exc:
            raise click.BadParameter(f"Rate change must be in DATE:RATE format; {exc}")
    return tuple(changes)


def parse_extra_payment_strings(values: Tuple[str, ...]) -> Tuple[ExtraPayment, ...]:
    payments = []
    for item in values:
        try:
            dt, raw = parse_dated_value(item)
            payments.append(ExtraPayment(date=dt, amount=parse_amount(raw)))
        except ValueError as exc:
            raise click.BadParameter(f"Extra payment must be in DATE:AMOUNT format; {exc}")
    return tuple(payments)


def build_inputs_from_options(
    principal: Optional[str],
    tenure: Optional[int],
    rate: Optional[str],
    start_date: Optional[str],
    disbursal: Tuple[str, ...] = (),
    rate_change: Tuple[str, ...] = (),
    extra_payment: Tuple[str, ...] = (),
    target_emi: Optional[str] = None,
    interest_mode: str = INTEREST_FLAT,
    extra_mode: str = EXTRA_REDUCES_TENURE,
) -> LoanInputs:
    """Turn raw CLI option values into validated ``LoanInputs``.

    Without any ``--disbursal`` the whole approved principal is disbursed on
    the start date, which models an ordinary (non-construction) home loan.
    """
    for name, value in (
        ("principal", principal),
        ("tenure", tenure),
        ("rate", rate),
        ("start-date", start_date),
    ):
        if value is None:
            raise click.BadParameter(f"Missing option --{name} (or pass --input)")
    try:
        params = LoanParameters(
            principal_approved=parse_amount(principal),
            tenure_years=tenure,
            initial_rate=decimal_from_str(rate.rstrip("%")),
            start_date=parse_date(start_date),
            target_full_emi=parse_amount(target_emi) if target_emi else decimal_from_str("0"),
            interest_mode=interest_mode,
            extra_payment_mode=extra_mode,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))

    disbursals = parse_disbursal_strings(disbursal)
    if not disbursals:
        disbursals = (Disbursal(date=params.start_date, amount=params.principal_approved),)
    inputs = LoanInputs(
        params=params,
        disbursals=disbursals,
        rate_changes=parse_rate_change_strings(rate_change),
        extra_payments=parse_extra_payment_strings(extra_payment),
    )
    try:
        validate_inputs(inputs)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return inputs


def _load_input_file(path: str) -> LoanInputs:
    try:
        return load_inputs(Path(path))
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def loan_options(func):
    """Attach the loan input options shared by ``schedule`` and ``summary``."""
    options = [
        click.option("--input", "input_file", type=click.Path(exists=True, dir_okay=False),
                     help="Read the calculation from a JSON file instead of options"),
        click.option("--principal", "-p", "principal", help="Approved loan amount (e.g. 5000000, 50l, 0.5cr)"),
        click.option("--tenure", "-t", "tenure", type=int, help="Loan tenure in years"),
        click.option("--rate", "-r", "rate", help="Initial annual interest rate (percent)"),
        click.option("--start-date", "-s", "start_date", help="Start date (YYYY-MM-DD or YYYY-MM)"),
        click.option("--disbursal", "disbursal", multiple=True, help="Disbursal in DATE:AMOUNT format"),
        click.option("--rate-change", "rate_change", multiple=True, help="Rate change in DATE:RATE format"),
        click.option("--extra-payment", "extra_payment", multiple=True, help="Extra payment in DATE:AMOUNT format"),
        click.option("--target-emi", "target_emi", help="Minimum EMI to pay from the first month"),
        click.option("--interest-mode", "interest_mode", type=click.Choice(INTEREST_MODES),
                     default=INTEREST_FLAT, help="Interest accrual policy"),
        click.option("--extra-mode", "extra_mode", type=click.Choice(EXTRA_PAYMENT_MODES),
                     default=EXTRA_REDUCES_TENURE,
                     help="After an extra payment, shorten the tenure or reduce the EMI"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _inputs_from_cli(input_file: Optional[str], **options) -> LoanInputs:
    if input_file:
        return _load_input_file(input_file)
    return build_inputs_from_options(**options)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions (phases, caps)")
def cli(verbose: bool) -> None:
    """EMI calculator for construction-linked home loans."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(input_file: Optional[str], output: Optional[str], **options) -> None:
    """Compute and print the full amortization schedule."""
    inputs = _inputs_from_cli(input_file, **options)
    result = simulate_inputs(inputs)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, inputs, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(result.summary, result)
    click.echo("Phases")
    print_phases(result.phases)
    click.echo("")
    rows = result.schedule
    if len(rows) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        rows = rows[:MAX_PRINTED_ROWS]
    print_schedule(rows)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(input_file: Optional[str], output: Optional[str], **options) -> None:
    """Compute and print only the summary metrics for a loan."""
    inputs = _inputs_from_cli(input_file, **options)
    result = simulate_inputs(inputs)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        data = result_to_dict(result)
        with path.open("w", encoding="utf-8") as f:
            json.dump(
                {
                    "summary": data["summary"],
                    "closed": data["closed"],
                    "hit_iteration_cap": data["hit_iteration_cap"],
                },
                f,
                indent=2,
            )
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result.summary, result)


@cli.command()
@click.argument("scenario1", type=click.Path(exists=True, dir_okay=False))
@click.argument("scenario2", type=click.Path(exists=True, dir_okay=False))
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two calculations saved as JSON input files.

    For example, a plan with and without a prepayment:

        emi-calc compare base.json with_prepayment.json
    """
    first = simulate_inputs(_load_input_file(scenario1))
    second = simulate_inputs(_load_input_file(scenario2))
    logger.debug("Compared %s and %s", scenario1, scenario2)
    print_comparison(first, second)


if __name__ == "__main__":
    cli()
