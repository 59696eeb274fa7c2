"""Core calculation engine for the EMI calculator.

This module simulates a construction-linked home loan month by month. The
loan is disbursed in tranches, the annual rate may change mid-tenure and the
borrower may make extra principal payments. Whenever the principal or the
rate changes, the EMI is re-amortized over the tenure that remains until the
fixed loan end date.

Each simulated month runs the same pipeline:

    rate change -> disbursal -> phase check -> termination check ->
    interest -> EMI payment -> extra payment -> clamp -> emit row -> advance

The engine is a pure function of its inputs. Results are returned as a
``CalculationResult`` holding the schedule, the EMI phases and a summary.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal, getcontext
from typing import Iterable, List, Optional, Sequence

from .data_models import (
    EXTRA_REDUCES_EMI,
    INTEREST_DAY_WEIGHTED,
    CalculationResult,
    Disbursal,
    ExtraPayment,
    LoanInputs,
    LoanParameters,
    PaymentRow,
    Phase,
    RateChange,
    Summary,
)
from .utils import add_months, days_between

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Safety bound on simulated months; a loan still open after this many months
# is reported through ``CalculationResult.hit_iteration_cap``.
MAX_MONTHS = 600
# Outstanding principal at or below this is treated as fully repaid.
CLOSURE_EPSILON = Decimal("0.01")
# Average Gregorian month length used to turn remaining days into months.
DAYS_PER_MONTH = Decimal("30.4375")

ZERO = Decimal("0")


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual percentage (e.g. ``8.5``) to a monthly decimal rate."""
    return annual_rate_percent / Decimal(12) / Decimal(100)


def remaining_months(loan_end: date, as_of: date) -> Decimal:
    """Return the fractional number of months left until ``loan_end``.

    Days are converted with a fixed 30.4375-day month rather than counted in
    calendar months, and the result never drops below one month.
    """
    months = Decimal(days_between(as_of, loan_end)) / DAYS_PER_MONTH
    return max(Decimal(1), months)


def calculate_emi(principal: Decimal, annual_rate_percent: Decimal, months: Decimal) -> Decimal:
    """Return the amortizing EMI for ``principal`` over ``months`` payments.

    The formula is:

        emi = P * r * (1 + r)^n / ((1 + r)^n - 1)

    where ``r`` is the monthly rate and ``n`` the (possibly fractional)
    number of months. A zero rate reduces to ``P / n``.
    """
    if principal <= 0:
        return ZERO
    rate = monthly_rate(annual_rate_percent)
    if rate == 0:
        return principal / months
    factor = (1 + rate) ** months
    return principal * (rate * factor) / (factor - 1)


class _EventQueue:
    """Date-ordered events split by a cursor into consumed and pending.

    The input sequence is copied and sorted (stable, so events sharing a date
    keep their input order); the caller's list is never modified.
    """

    def __init__(self, events: Iterable) -> None:
        self._events = sorted(events, key=lambda event: event.date)
        self._cursor = 0

    def take_before(self, window_end: date) -> list:
        """Consume and return every pending event dated before ``window_end``."""
        start = self._cursor
        while self._cursor < len(self._events) and self._events[self._cursor].date < window_end:
            self._cursor += 1
        return self._events[start:self._cursor]

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._events)


class _LoopState:
    """Mutable accumulator for a single ``simulate`` call."""

    def __init__(self, rate: Decimal) -> None:
        self.principal = ZERO
        self.rate = rate
        self.phase_emi = ZERO
        self.theoretical_emi = ZERO
        self.total_interest = ZERO
        self.total_disbursed = ZERO
        self.total_extra = ZERO
        self.recast_pending = False
        self.phases: List[Phase] = []

    def open_phase(
        self,
        month_start: date,
        loan_end: date,
        disbursal_added: Decimal,
        target_emi: Decimal,
    ) -> None:
        months_left = remaining_months(loan_end, month_start)
        emi = calculate_emi(self.principal, self.rate, months_left)
        self.theoretical_emi = emi
        self.phase_emi = max(emi, target_emi)
        self.recast_pending = False
        if self.phases:
            self.phases[-1] = replace(self.phases[-1], end_date=month_start)
        phase = Phase(
            index=len(self.phases),
            start_date=month_start,
            end_date=None,
            principal_at_start=self.principal,
            disbursal_added=disbursal_added,
            remaining_tenure_months=months_left,
            emi=self.phase_emi,
            rate=self.rate,
        )
        self.phases.append(phase)
        logger.debug(
            "Phase %d from %s: principal=%s rate=%s emi=%s",
            phase.index,
            month_start,
            phase.principal_at_start,
            phase.rate,
            phase.emi,
        )


def _day_weighted_interest(
    opening_before_disbursal: Decimal,
    disbursals: Sequence[Disbursal],
    previous_rate: Decimal,
    rate_change: Optional[RateChange],
    month_start: date,
    month_end: date,
) -> Decimal:
    """Accrue a month's interest split around disbursal and rate change dates.

    Events dated before ``month_start`` count from ``month_start``. Each
    segment of the month accrues on the balance released so far at the rate
    in force, weighted by its share of the month's days.
    """

    def effective(day: date) -> date:
        return max(day, month_start)

    cuts = {effective(d.date) for d in disbursals}
    if rate_change is not None:
        cuts.add(effective(rate_change.date))
    cuts.discard(month_start)
    current_rate = rate_change.rate if rate_change is not None else previous_rate
    if not cuts:
        balance = opening_before_disbursal + sum((d.amount for d in disbursals), ZERO)
        return balance * monthly_rate(current_rate)

    boundaries = [month_start] + sorted(cuts) + [month_end]
    window_days = Decimal(days_between(month_start, month_end))
    interest = ZERO
    for seg_start, seg_end in zip(boundaries, boundaries[1:]):
        balance = opening_before_disbursal + sum(
            (d.amount for d in disbursals if effective(d.date) <= seg_start), ZERO
        )
        if rate_change is not None and effective(rate_change.date) <= seg_start:
            rate = rate_change.rate
        else:
            rate = previous_rate
        interest += balance * monthly_rate(rate) * Decimal(days_between(seg_start, seg_end)) / window_days
    return interest


def _empty_result(params: LoanParameters) -> CalculationResult:
    summary = Summary(
        total_interest=ZERO,
        total_amount_paid=ZERO,
        total_disbursed=ZERO,
        total_extra_paid=ZERO,
        closure_date=params.start_date,
    )
    return CalculationResult(schedule=(), phases=(), summary=summary)


def simulate(
    params: LoanParameters,
    disbursals: Iterable[Disbursal],
    rate_changes: Iterable[RateChange] = (),
    extra_payments: Iterable[ExtraPayment] = (),
    *,
    max_months: int = MAX_MONTHS,
) -> CalculationResult:
    """Compute the amortization schedule, EMI phases and summary for a loan.

    Parameters
    ----------
    params: LoanParameters
        Loan terms. Inputs are assumed validated; the engine does not raise
        for out-of-range numbers.
    disbursals, rate_changes, extra_payments: iterables of events
        Any order. Events dated before ``params.start_date`` are applied in
        the first month.
    max_months: int
        Iteration cap. Reaching it without closing the loan sets
        ``hit_iteration_cap`` on the result.

    Returns
    -------
    CalculationResult
        Without any disbursed principal the result is empty and its closure
        date is the start date.
    """
    disbursal_list = list(disbursals)
    if sum((d.amount for d in disbursal_list), ZERO) <= 0:
        logger.info("No principal disbursed; returning an empty schedule")
        return _empty_result(params)

    disbursal_queue = _EventQueue(disbursal_list)
    rate_queue = _EventQueue(rate_changes)
    extra_queue = _EventQueue(extra_payments)

    loan_end = params.loan_end_date
    target_emi = params.target_full_emi
    day_weighted = params.interest_mode == INTEREST_DAY_WEIGHTED
    recast_on_extra = params.extra_payment_mode == EXTRA_REDUCES_EMI

    state = _LoopState(params.initial_rate)
    schedule: List[PaymentRow] = []
    current_date = params.start_date
    closed = False

    for month in range(1, max_months + 1):
        # Anchor every window on the start date so day clamping (Jan 31 ->
        # Feb 28) does not drift into later months.
        month_start = current_date
        month_end = add_months(params.start_date, month)

        previous_rate = state.rate
        rate_events = rate_queue.take_before(month_end)
        latest_change = rate_events[-1] if rate_events else None
        if latest_change is not None:
            state.rate = latest_change.rate

        new_disbursals = disbursal_queue.take_before(month_end)
        disbursed = sum((d.amount for d in new_disbursals), ZERO)
        opening_before_disbursal = state.principal
        state.principal += disbursed
        state.total_disbursed += disbursed

        if month == 1 or rate_events or new_disbursals or state.recast_pending:
            state.open_phase(month_start, loan_end, disbursed, target_emi)

        if (
            state.principal <= CLOSURE_EPSILON
            and disbursal_queue.exhausted
            and state.total_disbursed > 0
        ):
            closed = True
            break

        if day_weighted:
            interest = _day_weighted_interest(
                opening_before_disbursal,
                new_disbursals,
                previous_rate,
                latest_change,
                month_start,
                month_end,
            )
        else:
            interest = state.principal * monthly_rate(state.rate)

        emi_to_pay = max(state.phase_emi, target_emi)
        principal_paid = max(ZERO, emi_to_pay - interest)
        extra_amount = sum((p.amount for p in extra_queue.take_before(month_end)), ZERO)

        total_reduction = principal_paid + extra_amount
        if total_reduction > state.principal:
            total_reduction = state.principal
            # The extra payment keeps its share; scheduled principal covers the rest.
            if extra_amount > state.principal:
                extra_amount = state.principal
                principal_paid = ZERO
            else:
                principal_paid = state.principal - extra_amount
            emi_to_pay = principal_paid + interest

        closing_principal = state.principal - total_reduction
        schedule.append(
            PaymentRow(
                month=month,
                date=month_start,
                disbursed=disbursed,
                opening_principal=state.principal,
                emi=emi_to_pay,
                theoretical_emi=state.theoretical_emi,
                interest=interest,
                principal_paid=principal_paid,
                extra_paid=extra_amount,
                closing_principal=closing_principal,
                phase_index=state.phases[-1].index,
                rate=state.rate,
            )
        )
        state.total_interest += interest
        state.total_extra += extra_amount
        state.principal = closing_principal
        current_date = month_end

        if recast_on_extra and extra_amount > 0 and closing_principal > CLOSURE_EPSILON:
            state.recast_pending = True
        state.theoretical_emi = calculate_emi(
            state.principal, state.rate, remaining_months(loan_end, month_end)
        )

    if not closed:
        # The final permitted month may itself have paid the loan off.
        closed = (
            state.principal <= CLOSURE_EPSILON
            and disbursal_queue.exhausted
            and state.total_disbursed > 0
        )
    hit_cap = not closed
    if hit_cap:
        logger.warning(
            "Loan still open after %d months (outstanding %s); schedule truncated",
            max_months,
            state.principal,
        )

    phases = state.phases
    if phases:
        phases[-1] = replace(phases[-1], end_date=current_date)

    summary = Summary(
        total_interest=state.total_interest,
        total_amount_paid=state.total_disbursed + state.total_interest,
        total_disbursed=state.total_disbursed,
        total_extra_paid=state.total_extra,
        closure_date=current_date,
    )
    return CalculationResult(
        schedule=tuple(schedule),
        phases=tuple(phases),
        summary=summary,
        closed=closed,
        hit_iteration_cap=hit_cap,
    )


def simulate_inputs(inputs: LoanInputs, *, max_months: int = MAX_MONTHS) -> CalculationResult:
    """Run ``simulate`` on a bundled ``LoanInputs``."""
    return simulate(
        inputs.params,
        inputs.disbursals,
        inputs.rate_changes,
        inputs.extra_payments,
        max_months=max_months,
    )
