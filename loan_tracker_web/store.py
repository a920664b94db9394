"""Persistence layer for loans, extra payments, mileage, transactions and savings goals.

This module keeps the user's records in an external database so the web app
can recompute schedules and reports on demand. It defaults to SQLite for
local development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL). Rows are keyed by an anonymous per-session user token and
converted to :class:`~loan_tracker.data_models.LoanTerms` /
:class:`~loan_tracker.data_models.Transaction` on the way out; this is the
only place database field names are mapped onto the core models.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from loan_tracker.data_models import ExtraPayment, LoanTerms, MileageUpdate, SavingsGoal, Transaction
from loan_tracker.errors import RecordNotFound
from loan_tracker.records import loan_from_record, transaction_from_record

Base = declarative_base()


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False, default="loan")
    principal = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=False)
    term_months = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    regular_payment = Column(Float, nullable=False)
    payment_frequency = Column(String(16), nullable=False, default="monthly")
    residual_value = Column(Float, nullable=True)
    mileage_limit = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    extra_payments = relationship(
        "ExtraPaymentModel",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="ExtraPaymentModel.date",
    )
    mileage_updates = relationship(
        "MileageUpdateModel",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="MileageUpdateModel.date",
    )


class ExtraPaymentModel(Base):
    __tablename__ = "extra_payments"

    id = Column(String(64), primary_key=True)
    loan_id = Column(String(64), ForeignKey("loans.id"), index=True, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(Date, nullable=False)

    loan = relationship("LoanModel", back_populates="extra_payments")


class MileageUpdateModel(Base):
    __tablename__ = "mileage_updates"

    id = Column(String(64), primary_key=True)
    loan_id = Column(String(64), ForeignKey("loans.id"), index=True, nullable=False)
    mileage = Column(Float, nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    loan = relationship("LoanModel", back_populates="mileage_updates")


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    type = Column(String(16), nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String(255), nullable=False, default="")
    description = Column(String(255), nullable=False, default="")
    date = Column(Date, nullable=False)


class SavingsGoalModel(Base):
    __tablename__ = "savings_goals"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, nullable=False, default=0.0)
    deadline = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LoanStore:
    """Database-backed record store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    # -- loans ---------------------------------------------------------------

    def add_loan(self, user_token: str, loan: LoanTerms) -> str:
        loan_id = uuid4().hex
        row = LoanModel(
            id=loan_id,
            user_token=user_token,
            name=loan.name,
            type=loan.kind.value,
            principal=loan.principal,
            interest_rate=loan.annual_rate_percent,
            term_months=loan.term_months,
            start_date=loan.start_date,
            regular_payment=loan.regular_payment,
            payment_frequency=loan.payment_frequency.value,
            residual_value=loan.residual_value,
            mileage_limit=loan.mileage_limit,
        )
        row.extra_payments = [
            ExtraPaymentModel(id=uuid4().hex, amount=e.amount, date=e.date) for e in loan.extra_payments
        ]
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        return loan_id

    def list_loans(self, user_token: str) -> List[Dict[str, Any]]:
        """Stored loans of ``user_token`` as ``{"id": ..., "loan": LoanTerms}``."""
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(LoanModel)
                .where(LoanModel.user_token == user_token)
                .order_by(LoanModel.created_at.asc())
            ).scalars().all()
            return [{"id": row.id, "loan": self._to_loan(row)} for row in rows]

    def loans(self, user_token: str) -> List[LoanTerms]:
        return [item["loan"] for item in self.list_loans(user_token)]

    def get_loan(self, user_token: str, loan_id: str) -> LoanTerms:
        with self._session_factory() as session:
            return self._to_loan(self._owned_loan(session, user_token, loan_id))

    def update_loan(self, user_token: str, loan_id: str, loan: LoanTerms) -> None:
        """Replace the terms of a stored loan; its extra payments are kept."""
        with self._session_factory() as session:
            row = self._owned_loan(session, user_token, loan_id)
            row.name = loan.name
            row.type = loan.kind.value
            row.principal = loan.principal
            row.interest_rate = loan.annual_rate_percent
            row.term_months = loan.term_months
            row.start_date = loan.start_date
            row.regular_payment = loan.regular_payment
            row.payment_frequency = loan.payment_frequency.value
            row.residual_value = loan.residual_value
            row.mileage_limit = loan.mileage_limit
            session.commit()

    def delete_loan(self, user_token: str, loan_id: str) -> None:
        with self._session_factory() as session:
            session.delete(self._owned_loan(session, user_token, loan_id))
            session.commit()

    def add_extra_payment(self, user_token: str, loan_id: str, extra: ExtraPayment) -> str:
        extra_id = uuid4().hex
        with self._session_factory() as session:
            row = self._owned_loan(session, user_token, loan_id)
            row.extra_payments.append(ExtraPaymentModel(id=extra_id, amount=extra.amount, date=extra.date))
            session.commit()
        return extra_id

    def add_mileage_update(self, user_token: str, loan_id: str, update: MileageUpdate) -> str:
        update_id = uuid4().hex
        with self._session_factory() as session:
            row = self._owned_loan(session, user_token, loan_id)
            row.mileage_updates.append(MileageUpdateModel(id=update_id, mileage=update.mileage, date=update.date))
            session.commit()
        return update_id

    def mileage_updates(self, user_token: str, loan_id: str) -> List[MileageUpdate]:
        with self._session_factory() as session:
            row = self._owned_loan(session, user_token, loan_id)
            return [MileageUpdate(mileage=u.mileage, date=u.date) for u in row.mileage_updates]

    # -- transactions --------------------------------------------------------

    def add_transaction(self, user_token: str, transaction: Transaction) -> str:
        transaction_id = uuid4().hex
        row = TransactionModel(id=transaction_id, user_token=user_token)
        self._fill_transaction(row, transaction)
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        return transaction_id

    def list_transaction_records(
        self, user_token: str, since: Optional[date] = None, until: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Transactions of ``user_token`` as ``{"id": ..., "transaction": Transaction}``.

        Newest first, optionally limited to [since, until].
        """
        if not user_token:
            return []
        query = select(TransactionModel).where(TransactionModel.user_token == user_token)
        if since is not None:
            query = query.where(TransactionModel.date >= since)
        if until is not None:
            query = query.where(TransactionModel.date <= until)
        with self._session_factory() as session:
            rows = session.execute(query.order_by(TransactionModel.date.desc())).scalars().all()
            return [{"id": row.id, "transaction": self._to_transaction(row)} for row in rows]

    def list_transactions(
        self, user_token: str, since: Optional[date] = None, until: Optional[date] = None
    ) -> List[Transaction]:
        return [item["transaction"] for item in self.list_transaction_records(user_token, since, until)]

    def update_transaction(self, user_token: str, transaction_id: str, transaction: Transaction) -> None:
        with self._session_factory() as session:
            self._fill_transaction(self._owned_transaction(session, user_token, transaction_id), transaction)
            session.commit()

    def delete_transaction(self, user_token: str, transaction_id: str) -> None:
        with self._session_factory() as session:
            session.delete(self._owned_transaction(session, user_token, transaction_id))
            session.commit()

    # -- savings goals -------------------------------------------------------

    def add_savings_goal(self, user_token: str, goal: SavingsGoal) -> str:
        goal_id = uuid4().hex
        row = SavingsGoalModel(
            id=goal_id,
            user_token=user_token,
            name=goal.name,
            target_amount=goal.target_amount,
            current_amount=goal.current_amount,
            deadline=goal.deadline,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        return goal_id

    def list_savings_goals(self, user_token: str) -> List[Dict[str, Any]]:
        """Savings goals of ``user_token``, newest first, as ``{"id": ..., "goal": SavingsGoal}``."""
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(SavingsGoalModel)
                .where(SavingsGoalModel.user_token == user_token)
                .order_by(SavingsGoalModel.created_at.desc())
            ).scalars().all()
            return [{"id": row.id, "goal": self._to_goal(row)} for row in rows]

    def update_savings_goal(self, user_token: str, goal_id: str, current_amount: float) -> SavingsGoal:
        """Record how much has been saved so far and return the updated goal."""
        with self._session_factory() as session:
            row = session.get(SavingsGoalModel, goal_id)
            if row is None or not user_token or row.user_token != user_token:
                raise RecordNotFound(f"Savings goal {goal_id} not found")
            goal = replace(self._to_goal(row), current_amount=current_amount)
            row.current_amount = goal.current_amount
            session.commit()
        return goal

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _owned_loan(session, user_token: str, loan_id: str) -> LoanModel:
        row = session.get(LoanModel, loan_id)
        if row is None or not user_token or row.user_token != user_token:
            raise RecordNotFound(f"Loan {loan_id} not found")
        return row

    @staticmethod
    def _owned_transaction(session, user_token: str, transaction_id: str) -> TransactionModel:
        row = session.get(TransactionModel, transaction_id)
        if row is None or not user_token or row.user_token != user_token:
            raise RecordNotFound(f"Transaction {transaction_id} not found")
        return row

    @staticmethod
    def _fill_transaction(row: TransactionModel, transaction: Transaction) -> None:
        row.type = transaction.kind.value
        row.amount = transaction.amount
        row.category = transaction.category
        row.description = transaction.description
        row.date = transaction.date

    @staticmethod
    def _to_transaction(row: TransactionModel) -> Transaction:
        return transaction_from_record(
            {
                "type": row.type,
                "amount": row.amount,
                "category": row.category,
                "description": row.description,
                "date": row.date,
            }
        )

    @staticmethod
    def _to_goal(row: SavingsGoalModel) -> SavingsGoal:
        return SavingsGoal(
            name=row.name,
            target_amount=row.target_amount,
            current_amount=row.current_amount,
            deadline=row.deadline,
        )

    @staticmethod
    def _to_loan(row: LoanModel) -> LoanTerms:
        return loan_from_record(
            {
                "name": row.name,
                "type": row.type,
                "principal": row.principal,
                "interest_rate": row.interest_rate,
                "term_months": row.term_months,
                "start_date": row.start_date,
                "regular_payment": row.regular_payment,
                "payment_frequency": row.payment_frequency,
                "residual_value": row.residual_value,
                "mileage_limit": row.mileage_limit,
                "extra_payments": [{"amount": e.amount, "date": e.date} for e in row.extra_payments],
            }
        )


def create_store_from_env(url: str | None) -> LoanStore:
    return LoanStore(url or "sqlite:///loan_tracker.sqlite3")
