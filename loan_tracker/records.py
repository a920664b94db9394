"""Conversion between stored records and the core data models.

Loan rows arrive from storage with database field names (``interest_rate``,
``term_months``, ``regular_payment`` ...) and from older clients with the
display-cased variants (``interestRate``, ``termMonths`` ...). Both are
folded into :class:`LoanTerms` here, and outputs are turned back into plain
JSON-serialisable dictionaries with floats and ISO dates for chart and export
consumers.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .data_models import (
    AmortizationEntry,
    CategorySpending,
    ExtraPayment,
    LoanProgress,
    LoanTerms,
    MileageUpdate,
    PeriodTotals,
    PortfolioMetrics,
    ProjectionPoint,
    SavingsGoal,
    Transaction,
)
from .errors import InvalidParameters
from .utils import date_key, parse_amount, parse_date

# canonical field -> accepted record keys, in lookup order
LOAN_FIELD_ALIASES: Dict[str, tuple] = {
    "name": ("name",),
    "principal": ("principal",),
    "annual_rate_percent": ("interest_rate", "interestRate", "annual_rate_percent"),
    "term_months": ("term_months", "termMonths"),
    "regular_payment": ("regular_payment", "regularPayment"),
    "payment_frequency": ("payment_frequency", "paymentFrequency"),
    "start_date": ("start_date", "startDate"),
    "kind": ("type", "kind"),
    "residual_value": ("residual_value", "residualValue"),
    "mileage_limit": ("mileage_limit", "mileageLimit"),
    "extra_payments": ("extra_payments", "extraPayments"),
}


def loan_field(record: Mapping[str, Any], field: str, required: bool = True) -> Any:
    """Value of ``field`` in ``record`` under any of its accepted keys.

    Missing or empty values are None; a missing required field raises
    :class:`InvalidParameters`.
    """
    for key in LOAN_FIELD_ALIASES[field]:
        if record.get(key) not in (None, ""):
            return record[key]
    if required:
        raise InvalidParameters(f"Loan record is missing field {LOAN_FIELD_ALIASES[field][0]!r}")
    return None


def _whole_months(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidParameters(f"Term in months must be a whole number; got {value!r}")
    months = float(value) if isinstance(value, str) else value
    if isinstance(months, float):
        if not months.is_integer():
            raise InvalidParameters(f"Term in months must be a whole number; got {value!r}")
        months = int(months)
    return months


def extra_payment_from_record(record: Mapping[str, Any]) -> ExtraPayment:
    try:
        return ExtraPayment(amount=parse_amount(record["amount"]), date=parse_date(record["date"]))
    except KeyError as exc:
        raise InvalidParameters(f"Extra payment record is missing field {exc.args[0]!r}") from exc
    except ValueError as exc:
        raise InvalidParameters(str(exc)) from exc


def loan_from_record(record: Mapping[str, Any]) -> LoanTerms:
    """Build :class:`LoanTerms` from a stored loan record.

    Raises
    ------
    InvalidParameters
        If a required field is missing or a value is out of range.
    """
    try:
        residual = loan_field(record, "residual_value", required=False)
        mileage_limit = loan_field(record, "mileage_limit", required=False)
        extras = loan_field(record, "extra_payments", required=False) or []
        return LoanTerms(
            name=str(loan_field(record, "name")),
            principal=parse_amount(loan_field(record, "principal")),
            annual_rate_percent=float(loan_field(record, "annual_rate_percent")),
            term_months=_whole_months(loan_field(record, "term_months")),
            regular_payment=parse_amount(loan_field(record, "regular_payment")),
            payment_frequency=loan_field(record, "payment_frequency"),
            start_date=parse_date(loan_field(record, "start_date")),
            kind=loan_field(record, "kind", required=False) or "loan",
            residual_value=parse_amount(residual) if residual is not None else None,
            mileage_limit=parse_amount(mileage_limit) if mileage_limit is not None else None,
            extra_payments=tuple(extra_payment_from_record(e) for e in extras),
        )
    except InvalidParameters:
        raise
    except (TypeError, ValueError) as exc:
        raise InvalidParameters(f"Invalid loan record: {exc}") from exc


def loans_from_records(records: Iterable[Mapping[str, Any]]) -> List[LoanTerms]:
    return [loan_from_record(r) for r in records]


def transaction_from_record(record: Mapping[str, Any]) -> Transaction:
    try:
        return Transaction(
            amount=parse_amount(record["amount"]),
            kind=record["type"] if "type" in record else record["kind"],
            date=parse_date(record["date"]),
            category=record.get("category") or "",
            description=record.get("description") or "",
        )
    except KeyError as exc:
        raise InvalidParameters(f"Transaction record is missing field {exc.args[0]!r}") from exc
    except InvalidParameters:
        raise
    except ValueError as exc:
        raise InvalidParameters(str(exc)) from exc


def loan_to_record(loan: LoanTerms) -> Dict[str, Any]:
    return {
        "name": loan.name,
        "type": loan.kind.value,
        "principal": loan.principal,
        "interest_rate": loan.annual_rate_percent,
        "term_months": loan.term_months,
        "regular_payment": loan.regular_payment,
        "payment_frequency": loan.payment_frequency.value,
        "start_date": date_key(loan.start_date),
        "residual_value": loan.residual_value,
        "mileage_limit": loan.mileage_limit,
        "extra_payments": [{"amount": e.amount, "date": date_key(e.date)} for e in loan.extra_payments],
    }


def serialize_schedule(schedule: Iterable[AmortizationEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries for charts."""
    serialized = []
    for entry in schedule:
        serialized.append(
            {
                "date": date_key(entry.date),
                "payment": entry.payment,
                "principal": entry.principal_portion,
                "interest": entry.interest_portion,
                "remaining_balance": entry.remaining_balance,
                "extra_payment": entry.extra_payment,
            }
        )
    return serialized


def serialize_projection(projection: Iterable[ProjectionPoint]) -> List[Dict[str, Any]]:
    return [
        {
            "date": date_key(point.date),
            "total_debt": point.total_debt,
            "net_income": point.net_income,
            "debt_by_loan": dict(point.debt_by_loan_name),
        }
        for point in projection
    ]


def serialize_progress(name: str, progress: LoanProgress) -> Dict[str, Any]:
    return {
        "name": name,
        "elapsed_months": progress.elapsed_months,
        "progress_percent": progress.progress_percent,
        "remaining_balance": progress.remaining_balance,
    }


def serialize_metrics(metrics: PortfolioMetrics) -> Dict[str, Any]:
    def _end(end):
        return {"name": end.name, "end_date": date_key(end.end_date)} if end else None

    return {
        "total_monthly_payment": metrics.total_monthly_payment,
        "debt_to_income_ratio": metrics.debt_to_income_ratio,
        "weighted_average_rate": metrics.weighted_average_rate,
        "total_principal": metrics.total_principal,
        "earliest_end": _end(metrics.earliest_end),
        "latest_end": _end(metrics.latest_end),
    }


def transaction_to_record(transaction: Transaction) -> Dict[str, Any]:
    return {
        "type": transaction.kind.value,
        "amount": transaction.amount,
        "category": transaction.category,
        "description": transaction.description,
        "date": date_key(transaction.date),
    }


def savings_goal_from_record(record: Mapping[str, Any]) -> SavingsGoal:
    """Build a :class:`SavingsGoal`; the current amount defaults to zero."""
    target = record.get("target_amount", record.get("targetAmount"))
    current = record.get("current_amount", record.get("currentAmount"))
    deadline = record.get("deadline")
    if target is None:
        raise InvalidParameters("Savings goal record is missing field 'target_amount'")
    try:
        return SavingsGoal(
            name=str(record["name"]),
            target_amount=parse_amount(target),
            current_amount=parse_amount(current) if current is not None else 0.0,
            deadline=parse_date(deadline) if deadline else None,
        )
    except KeyError as exc:
        raise InvalidParameters(f"Savings goal record is missing field {exc.args[0]!r}") from exc
    except InvalidParameters:
        raise
    except (TypeError, ValueError) as exc:
        raise InvalidParameters(f"Invalid savings goal record: {exc}") from exc


def savings_goal_to_record(goal: SavingsGoal) -> Dict[str, Any]:
    return {
        "name": goal.name,
        "target_amount": goal.target_amount,
        "current_amount": goal.current_amount,
        "deadline": date_key(goal.deadline) if goal.deadline else None,
        "progress_percent": goal.progress_percent,
    }


def mileage_update_from_record(record: Mapping[str, Any], today: Optional[date] = None) -> MileageUpdate:
    """Build a :class:`MileageUpdate`; a reading without a date is taken on ``today``."""
    try:
        return MileageUpdate(
            mileage=parse_amount(record["mileage"]),
            date=parse_date(record.get("date") or today or date.today()),
        )
    except KeyError as exc:
        raise InvalidParameters(f"Mileage record is missing field {exc.args[0]!r}") from exc
    except InvalidParameters:
        raise
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidParameters(f"Invalid mileage record: {exc}") from exc


def serialize_category_spending(spending: Iterable[CategorySpending]) -> List[Dict[str, Any]]:
    return [
        {"category": item.category, "amount": item.amount, "percent_of_total": item.percent_of_total}
        for item in spending
    ]


def serialize_period_totals(totals: Iterable[PeriodTotals]) -> List[Dict[str, Any]]:
    return [
        {
            "period": date_key(item.period),
            "income": item.income,
            "expenses": item.expenses,
            "balance": item.balance,
        }
        for item in totals
    ]
