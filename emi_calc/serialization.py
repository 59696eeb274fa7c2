"""Conversion between engine structures and JSON-friendly dictionaries.

Inputs are serialized losslessly: dates as ISO strings and every Decimal as
its exact string form, so a calculation saved and reloaded reproduces the same
schedule. Results are meant for display and charts and use rounded floats.
"""

from __future__ import annotations

import csv
import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

from .data_models import (
    EXTRA_REDUCES_TENURE,
    INTEREST_FLAT,
    CalculationResult,
    Disbursal,
    ExtraPayment,
    LoanInputs,
    LoanParameters,
    PaymentRow,
    Phase,
    RateChange,
)
from .utils import decimal_from_str, parse_date
from .validation import validate_inputs


class InvalidFieldError(ValueError):
    """A ``ValueError`` tied to one named input field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


def _require(data: Dict[str, Any], key: str) -> Any:
    if key not in data or data[key] is None or data[key] == "":
        raise InvalidFieldError(key, f"Missing required field: {key}")
    return data[key]


def _decimal_field(data: Dict[str, Any], key: str, default=None) -> Decimal:
    if default is not None and data.get(key) in (None, ""):
        return Decimal(default)
    try:
        return decimal_from_str(_require(data, key))
    except InvalidFieldError:
        raise
    except ValueError as exc:
        raise InvalidFieldError(key, f"Invalid value for {key}: {data.get(key)}") from exc


def _date_field(data: Dict[str, Any], key: str):
    try:
        return parse_date(str(_require(data, key)))
    except InvalidFieldError:
        raise
    except ValueError as exc:
        raise InvalidFieldError(key, f"Invalid date for {key}: {data.get(key)}") from exc


def _tenure_field(data: Dict[str, Any]) -> int:
    tenure = _decimal_field(data, "tenure_years")
    if tenure != tenure.to_integral_value():
        raise InvalidFieldError("tenure_years", f"Tenure must be a whole number of years; got {tenure}")
    return int(tenure)


def params_to_dict(params: LoanParameters) -> Dict[str, Any]:
    return {
        "principal_approved": str(params.principal_approved),
        "tenure_years": params.tenure_years,
        "initial_rate": str(params.initial_rate),
        "start_date": params.start_date.isoformat(),
        "target_full_emi": str(params.target_full_emi),
        "interest_mode": params.interest_mode,
        "extra_payment_mode": params.extra_payment_mode,
    }


def params_from_dict(data: Dict[str, Any]) -> LoanParameters:
    return LoanParameters(
        principal_approved=_decimal_field(data, "principal_approved"),
        tenure_years=_tenure_field(data),
        initial_rate=_decimal_field(data, "initial_rate"),
        start_date=_date_field(data, "start_date"),
        target_full_emi=_decimal_field(data, "target_full_emi", default="0"),
        interest_mode=data.get("interest_mode") or INTEREST_FLAT,
        extra_payment_mode=data.get("extra_payment_mode") or EXTRA_REDUCES_TENURE,
    )


def events_to_list(events, value_field: str) -> List[Dict[str, str]]:
    return [
        {"date": event.date.isoformat(), value_field: str(getattr(event, value_field))}
        for event in events
    ]


def inputs_to_dict(inputs: LoanInputs) -> Dict[str, Any]:
    data = params_to_dict(inputs.params)
    data["disbursals"] = events_to_list(inputs.disbursals, "amount")
    data["rate_changes"] = events_to_list(inputs.rate_changes, "rate")
    data["extra_payments"] = events_to_list(inputs.extra_payments, "amount")
    return data


def _events_from_list(items, factory, value_field: str, list_name: str) -> tuple:
    if items is None:
        return ()
    if not isinstance(items, list):
        raise InvalidFieldError(list_name, f"{list_name} must be a list")
    events = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidFieldError(list_name, f"{list_name}[{position}] must be an object")
        try:
            event = factory(
                date=_date_field(item, "date"),
                **{value_field: _decimal_field(item, value_field)},
            )
        except InvalidFieldError as exc:
            raise InvalidFieldError(f"{list_name}.{position}.{exc.field}", str(exc)) from exc
        events.append(event)
    return tuple(events)


def inputs_from_dict(data: Dict[str, Any]) -> LoanInputs:
    """Build and validate ``LoanInputs`` from a JSON-shaped dictionary.

    Numbers may be given as JSON numbers or strings. Raises ``ValueError``
    describing the first invalid field.
    """
    if not isinstance(data, dict):
        raise ValueError("Calculation payload must be an object")
    inputs = LoanInputs(
        params=params_from_dict(data),
        disbursals=_events_from_list(data.get("disbursals"), Disbursal, "amount", "disbursals"),
        rate_changes=_events_from_list(data.get("rate_changes"), RateChange, "rate", "rate_changes"),
        extra_payments=_events_from_list(
            data.get("extra_payments"), ExtraPayment, "amount", "extra_payments"
        ),
    )
    validate_inputs(inputs)
    return inputs


def _money(value: Decimal) -> float:
    return float(round(value, 2))


def row_to_dict(row: PaymentRow) -> Dict[str, Any]:
    return {
        "month": row.month,
        "date": row.date.isoformat(),
        "disbursed": _money(row.disbursed),
        "opening_principal": _money(row.opening_principal),
        "emi": _money(row.emi),
        "theoretical_emi": _money(row.theoretical_emi),
        "interest": _money(row.interest),
        "principal_paid": _money(row.principal_paid),
        "extra_paid": _money(row.extra_paid),
        "closing_principal": _money(row.closing_principal),
        "phase_index": row.phase_index,
        "rate": float(row.rate),
    }


def phase_to_dict(phase: Phase) -> Dict[str, Any]:
    return {
        "index": phase.index,
        "start_date": phase.start_date.isoformat(),
        "end_date": phase.end_date.isoformat() if phase.end_date else None,
        "principal_at_start": _money(phase.principal_at_start),
        "disbursal_added": _money(phase.disbursal_added),
        "remaining_tenure_months": float(round(phase.remaining_tenure_months, 4)),
        "emi": _money(phase.emi),
        "rate": float(phase.rate),
    }


def result_to_dict(result: CalculationResult) -> Dict[str, Any]:
    summary = result.summary
    return {
        "schedule": [row_to_dict(row) for row in result.schedule],
        "phases": [phase_to_dict(phase) for phase in result.phases],
        "summary": {
            "total_interest": _money(summary.total_interest),
            "total_amount_paid": _money(summary.total_amount_paid),
            "total_disbursed": _money(summary.total_disbursed),
            "total_extra_paid": _money(summary.total_extra_paid),
            "closure_date": summary.closure_date.isoformat(),
        },
        "closed": result.closed,
        "hit_iteration_cap": result.hit_iteration_cap,
    }


def load_inputs(path: Path) -> LoanInputs:
    """Read a calculation saved as JSON (the format of ``inputs_to_dict``)."""
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    return inputs_from_dict(data)


def export_to_json(path: Path, inputs: LoanInputs, result: CalculationResult) -> None:
    """Export the inputs together with the computed result to a JSON file."""
    data = {"inputs": inputs_to_dict(inputs)}
    data.update(result_to_dict(result))
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: CalculationResult) -> None:
    """Export the schedule to a CSV file."""
    header = [
        "Month",
        "Date",
        "Disbursed",
        "Opening_Principal",
        "EMI",
        "Theoretical_EMI",
        "Interest",
        "Principal_Paid",
        "Extra_Paid",
        "Closing_Principal",
        "Phase",
        "Rate",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in result.schedule:
            data = row_to_dict(row)
            writer.writerow(
                [
                    data["month"],
                    data["date"],
                    data["disbursed"],
                    data["opening_principal"],
                    data["emi"],
                    data["theoretical_emi"],
                    data["interest"],
                    data["principal_paid"],
                    data["extra_paid"],
                    data["closing_principal"],
                    data["phase_index"],
                    data["rate"],
                ]
            )
