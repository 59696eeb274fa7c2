"""Data models for the construction-linked EMI calculator.

This module defines dataclasses for the loan parameters, the three kinds of
dated events that drive the simulation (disbursals, rate changes and extra
payments) and the structures produced by the engine: payment rows, phases
and the aggregate summary. Every model is frozen; one engine call builds
them once and nothing mutates them afterwards.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from .utils import add_months

INTEREST_FLAT = "flat"
INTEREST_DAY_WEIGHTED = "day_weighted"
INTEREST_MODES = (INTEREST_FLAT, INTEREST_DAY_WEIGHTED)

EXTRA_REDUCES_TENURE = "tenure"
EXTRA_REDUCES_EMI = "emi"
EXTRA_PAYMENT_MODES = (EXTRA_REDUCES_TENURE, EXTRA_REDUCES_EMI)


@dataclass(frozen=True)
class LoanParameters:
    """Static terms of the loan.

    Attributes
    ----------
    principal_approved: Decimal
        Total sanctioned amount. Informational; outstanding principal only
        grows through disbursals.
    tenure_years: int
        Contractual tenure. The loan end date is ``start_date`` plus
        ``tenure_years * 12`` calendar months.
    initial_rate: Decimal
        Annual rate in percent (``Decimal("8.5")`` means 8.5 %) in effect
        until the first rate change.
    start_date: date
        First day of the first simulated month.
    target_full_emi: Decimal
        Minimum monthly installment the borrower pays from month one, even
        while the loan is only partly disbursed. Zero disables the floor.
    interest_mode: str
        ``"flat"`` charges a month's interest on the opening balance;
        ``"day_weighted"`` splits the month around disbursal and rate
        change dates.
    extra_payment_mode: str
        ``"tenure"`` keeps the EMI after an extra payment so the loan closes
        early; ``"emi"`` re-amortizes the balance to the original end date.
    """

    principal_approved: Decimal
    tenure_years: int
    initial_rate: Decimal
    start_date: date
    target_full_emi: Decimal = Decimal("0")
    interest_mode: str = INTEREST_FLAT
    extra_payment_mode: str = EXTRA_REDUCES_TENURE

    @property
    def loan_end_date(self) -> date:
        return add_months(self.start_date, self.tenure_years * 12)


@dataclass(frozen=True)
class Disbursal:
    """A tranche released by the lender, increasing outstanding principal."""

    date: date
    amount: Decimal


@dataclass(frozen=True)
class RateChange:
    """A new annual rate (percent) effective from ``date``."""

    date: date
    rate: Decimal


@dataclass(frozen=True)
class ExtraPayment:
    """A one-off prepayment applied to principal in the month of ``date``."""

    date: date
    amount: Decimal


@dataclass(frozen=True)
class LoanInputs:
    """Everything needed to reproduce a schedule.

    This is the unit the store persists and the CLI reads from JSON files.
    """

    params: LoanParameters
    disbursals: Tuple[Disbursal, ...] = ()
    rate_changes: Tuple[RateChange, ...] = ()
    extra_payments: Tuple[ExtraPayment, ...] = ()


@dataclass(frozen=True)
class Phase:
    """A span of months during which the computed EMI stays constant.

    ``end_date`` equals the next phase's ``start_date``; for the last phase
    it is the summary's closure date.
    """

    index: int
    start_date: date
    end_date: Optional[date]
    principal_at_start: Decimal
    disbursal_added: Decimal
    remaining_tenure_months: Decimal
    emi: Decimal
    rate: Decimal


@dataclass(frozen=True)
class PaymentRow:
    """One simulated month of the amortization schedule.

    ``emi`` is the amount actually paid that month (interest plus scheduled
    principal), ``theoretical_emi`` the amortizing minimum for the opening
    balance over the remaining tenure. ``extra_paid`` is prepayment on top.
    ``disbursed`` is already included in ``opening_principal``, so a row opens
    at the previous row's closing balance plus that month's disbursals.
    """

    month: int
    date: date
    disbursed: Decimal
    opening_principal: Decimal
    emi: Decimal
    theoretical_emi: Decimal
    interest: Decimal
    principal_paid: Decimal
    extra_paid: Decimal
    closing_principal: Decimal
    phase_index: int
    rate: Decimal


@dataclass(frozen=True)
class Summary:
    total_interest: Decimal
    total_amount_paid: Decimal
    total_disbursed: Decimal
    total_extra_paid: Decimal
    closure_date: date


@dataclass(frozen=True)
class CalculationResult:
    """Output of one engine run.

    ``closed`` is True when the balance reached zero after every disbursal.
    ``hit_iteration_cap`` flags a configuration that never pays off (for
    example an EMI floor below the monthly interest) and was cut off at the
    engine's month limit.
    """

    schedule: Tuple[PaymentRow, ...]
    phases: Tuple[Phase, ...]
    summary: Summary
    closed: bool = False
    hit_iteration_cap: bool = False
