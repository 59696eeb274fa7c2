"""Input checks applied before a calculation reaches the engine.

The engine itself never raises for bad numbers; the CLI and the web API call
these helpers first and turn the ``ValueError`` into a user-facing message.
"""

from __future__ import annotations

from decimal import Decimal

from .data_models import EXTRA_PAYMENT_MODES, INTEREST_MODES, LoanInputs, LoanParameters
from .engine import MAX_MONTHS
from .utils import add_months


def validate_parameters(params: LoanParameters) -> None:
    if params.principal_approved <= 0:
        raise ValueError("Approved principal must be positive")
    if params.tenure_years <= 0:
        raise ValueError("Tenure must be a positive number of years")
    if params.initial_rate < 0:
        raise ValueError("Interest rate cannot be negative")
    if params.target_full_emi < 0:
        raise ValueError("Target EMI cannot be negative")
    if params.interest_mode not in INTEREST_MODES:
        raise ValueError(
            f"Interest mode must be one of {', '.join(INTEREST_MODES)}; got {params.interest_mode}"
        )
    if params.extra_payment_mode not in EXTRA_PAYMENT_MODES:
        raise ValueError(
            f"Extra payment mode must be one of {', '.join(EXTRA_PAYMENT_MODES)}; "
            f"got {params.extra_payment_mode}"
        )
    # Every month window the engine can reach must be a valid calendar date.
    try:
        add_months(params.start_date, max(params.tenure_years * 12, MAX_MONTHS))
    except (ValueError, OverflowError) as exc:
        raise ValueError(
            f"Tenure of {params.tenure_years} years from {params.start_date} "
            "runs past the last supported date"
        ) from exc


def validate_inputs(inputs: LoanInputs) -> None:
    """Validate parameters and every event; at least one disbursal is required."""
    validate_parameters(inputs.params)
    if not inputs.disbursals:
        raise ValueError("At least one disbursal is required")
    for disbursal in inputs.disbursals:
        if disbursal.amount <= 0:
            raise ValueError(f"Disbursal on {disbursal.date} must be positive")
    total = sum((d.amount for d in inputs.disbursals), Decimal("0"))
    if total > inputs.params.principal_approved:
        raise ValueError(
            f"Disbursals total {total} which exceeds the approved principal "
            f"{inputs.params.principal_approved}"
        )
    for change in inputs.rate_changes:
        if change.rate < 0:
            raise ValueError(f"Rate change on {change.date} cannot be negative")
    for payment in inputs.extra_payments:
        if payment.amount <= 0:
            raise ValueError(f"Extra payment on {payment.date} must be positive")
