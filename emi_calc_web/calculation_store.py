"""Persistence layer for named EMI calculations.

A calculation is stored as its inputs only: the loan parameters and the three
event lists. Amounts and rates are kept as text so Decimal values come back
exactly, which means a reloaded calculation re-runs to the same schedule.
Defaults to SQLite but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, Date, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from emi_calc.data_models import LoanInputs
from emi_calc.serialization import InvalidFieldError, events_to_list, inputs_from_dict, params_to_dict

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///emi_calculations.sqlite3"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CalculationModel(Base):
    __tablename__ = "calculations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    principal_approved = Column(String(64), nullable=False)
    tenure_years = Column(Integer, nullable=False)
    initial_rate = Column(String(32), nullable=False)
    start_date = Column(Date, nullable=False)
    target_full_emi = Column(String(64), nullable=False, default="0")
    interest_mode = Column(String(32), nullable=False)
    extra_payment_mode = Column(String(32), nullable=False)
    disbursals_json = Column(Text, nullable=False)
    rate_changes_json = Column(Text, nullable=False, default="[]")
    extra_payments_json = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class CalculationStore:
    """Database-backed store of saved calculations."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def list_calculations(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CalculationModel).order_by(
                    CalculationModel.created_at.asc(), CalculationModel.id.asc()
                )
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def create_calculation(self, name: str, inputs: LoanInputs) -> Dict[str, Any]:
        if not isinstance(name, str) or not name.strip():
            raise InvalidFieldError("name", "Calculation name is required")
        params = params_to_dict(inputs.params)
        row = CalculationModel(
            name=name.strip(),
            principal_approved=params["principal_approved"],
            tenure_years=params["tenure_years"],
            initial_rate=params["initial_rate"],
            start_date=inputs.params.start_date,
            target_full_emi=params["target_full_emi"],
            interest_mode=params["interest_mode"],
            extra_payment_mode=params["extra_payment_mode"],
            disbursals_json=json.dumps(events_to_list(inputs.disbursals, "amount")),
            rate_changes_json=json.dumps(events_to_list(inputs.rate_changes, "rate")),
            extra_payments_json=json.dumps(events_to_list(inputs.extra_payments, "amount")),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            logger.info("Saved calculation %d (%s)", row.id, row.name)
            return self._to_dict(row)

    def get_calculation(self, calculation_id: int) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(CalculationModel, calculation_id)
            return self._to_dict(row) if row else None

    def get_inputs(self, calculation_id: int) -> Optional[LoanInputs]:
        """Rebuild the engine inputs of a saved calculation."""
        record = self.get_calculation(calculation_id)
        if record is None:
            return None
        return inputs_from_dict(record)

    def delete_calculation(self, calculation_id: int) -> bool:
        with self._session_factory() as session:
            row = session.get(CalculationModel, calculation_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted calculation %d", calculation_id)
        return True

    @staticmethod
    def _to_dict(row: CalculationModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "principal_approved": row.principal_approved,
            "tenure_years": row.tenure_years,
            "initial_rate": row.initial_rate,
            "start_date": row.start_date.isoformat(),
            "target_full_emi": row.target_full_emi,
            "interest_mode": row.interest_mode,
            "extra_payment_mode": row.extra_payment_mode,
            "disbursals": json.loads(row.disbursals_json),
            "rate_changes": json.loads(row.rate_changes_json),
            "extra_payments": json.loads(row.extra_payments_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str]) -> CalculationStore:
    return CalculationStore(url or DEFAULT_DATABASE_URL)
