"""JSON API over the loan tracker core.

Each visitor gets an anonymous user token in the Flask session, and every
stored record is scoped to that token. Reports are recomputed from the stored
records on every request; nothing derived is persisted.
"""

import logging
from datetime import date
from typing import Optional
from uuid import uuid4

from flask import Flask, jsonify, request, session

from loan_tracker.annuity import principal_from_payment
from loan_tracker.config import Settings, load_settings
from loan_tracker.engine import extra_payment_savings, progress_as_of, schedule_for_loan, schedule_totals
from loan_tracker.errors import InvalidParameters, RecordNotFound
from loan_tracker.metrics import (
    cash_flow_summary,
    income_expense_trend,
    latest_mileage,
    mileage_usage,
    monthly_equivalent,
    monthly_net_income,
    monthly_overview,
    portfolio_metrics,
    spending_by_category,
)
from loan_tracker.projection import debt_free_date, project_portfolio, years_to_debt_free
from loan_tracker.records import (
    extra_payment_from_record,
    loan_field,
    loan_from_record,
    loan_to_record,
    mileage_update_from_record,
    savings_goal_from_record,
    savings_goal_to_record,
    serialize_category_spending,
    serialize_metrics,
    serialize_period_totals,
    serialize_progress,
    serialize_projection,
    serialize_schedule,
    transaction_from_record,
    transaction_to_record,
)
from loan_tracker.utils import add_months, date_key, parse_amount, parse_date
from loan_tracker_web.store import LoanStore, create_store_from_env

logger = logging.getLogger(__name__)

# months of transactions averaged when a report needs income and none is given
INCOME_WINDOW_MONTHS = 3


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _date_arg(name: str) -> date:
    value = request.args.get(name, "").strip()
    if not value:
        return date.today()
    try:
        return parse_date(value)
    except ValueError as exc:
        raise InvalidParameters(str(exc)) from exc


def _amount_arg(name: str) -> Optional[float]:
    value = request.args.get(name, "").strip()
    if not value:
        return None
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise InvalidParameters(str(exc)) from exc


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidParameters("Request body must be a JSON object")
    return body


def _with_derived_principal(body: dict) -> dict:
    """Fill in ``principal`` from the payment, rate and term when it is omitted.

    This is the path of the loan entry form, where users know their payment
    but not the amount financed. Fields are read under any accepted key.
    """
    if loan_field(body, "principal", required=False) is not None:
        return body
    try:
        payment = monthly_equivalent(
            parse_amount(loan_field(body, "regular_payment")), loan_field(body, "payment_frequency")
        )
        rate = float(loan_field(body, "annual_rate_percent"))
        term = int(float(loan_field(body, "term_months")))
    except InvalidParameters:
        raise
    except (TypeError, ValueError) as exc:
        raise InvalidParameters(f"Invalid loan record: {exc}") from exc
    derived = dict(body)
    derived["principal"] = principal_from_payment(payment, rate, term)
    return derived


def _report_income(store: LoanStore, user_token: str, today: date) -> float:
    income = _amount_arg("income")
    if income is not None:
        return income
    since = add_months(today, -INCOME_WINDOW_MONTHS)
    transactions = store.list_transactions(user_token, since=since, until=today)
    return monthly_net_income(transactions, INCOME_WINDOW_MONTHS)


def create_app(settings: Optional[Settings] = None, store: Optional[LoanStore] = None) -> Flask:
    settings = settings or load_settings()
    store = store or create_store_from_env(settings.database_url)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["LOAN_TRACKER_SETTINGS"] = settings

    @app.errorhandler(InvalidParameters)
    def invalid_parameters(exc):
        logger.info("Rejected request to %s: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(RecordNotFound)
    def record_not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.get("/api/loans")
    def list_loans():
        user_token = _ensure_user_token()
        return jsonify([{"id": item["id"], **loan_to_record(item["loan"])} for item in store.list_loans(user_token)])

    @app.post("/api/loans")
    def create_loan():
        user_token = _ensure_user_token()
        loan = loan_from_record(_with_derived_principal(_json_body()))
        loan_id = store.add_loan(user_token, loan)
        return jsonify({"id": loan_id, **loan_to_record(loan)}), 201

    @app.put("/api/loans/<loan_id>")
    def update_loan(loan_id: str):
        user_token = _ensure_user_token()
        loan = loan_from_record(_with_derived_principal(_json_body()))
        store.update_loan(user_token, loan_id, loan)
        return jsonify({"id": loan_id, **loan_to_record(store.get_loan(user_token, loan_id))})

    @app.delete("/api/loans/<loan_id>")
    def delete_loan(loan_id: str):
        store.delete_loan(_ensure_user_token(), loan_id)
        return "", 204

    @app.post("/api/loans/<loan_id>/extra-payments")
    def add_extra_payment(loan_id: str):
        user_token = _ensure_user_token()
        extra = extra_payment_from_record(_json_body())
        extra_id = store.add_extra_payment(user_token, loan_id, extra)
        return jsonify({"id": extra_id, "amount": extra.amount, "date": date_key(extra.date)}), 201

    @app.get("/api/loans/<loan_id>/schedule")
    def loan_schedule(loan_id: str):
        loan = store.get_loan(_ensure_user_token(), loan_id)
        entries = schedule_for_loan(loan)
        totals = schedule_totals(entries)
        totals["payoff_date"] = date_key(totals["payoff_date"]) if totals["payoff_date"] else None
        savings = extra_payment_savings(loan)
        return jsonify(
            {
                "summary": totals,
                "savings": {"interest_saved": savings.interest_saved, "months_saved": savings.months_saved},
                "schedule": serialize_schedule(entries),
            }
        )

    @app.get("/api/loans/<loan_id>/progress")
    def loan_progress(loan_id: str):
        loan = store.get_loan(_ensure_user_token(), loan_id)
        return jsonify(serialize_progress(loan.name, progress_as_of(loan, _date_arg("as_of"))))

    @app.post("/api/transactions")
    def create_transaction():
        user_token = _ensure_user_token()
        body = _json_body()
        transaction = transaction_from_record(body)
        transaction_id = store.add_transaction(user_token, transaction)
        return jsonify({"id": transaction_id}), 201

    @app.get("/api/transactions")
    def list_transactions():
        since = _date_arg("since") if request.args.get("since") else None
        until = _date_arg("until") if request.args.get("until") else None
        items = store.list_transaction_records(_ensure_user_token(), since=since, until=until)
        return jsonify([{"id": item["id"], **transaction_to_record(item["transaction"])} for item in items])

    @app.put("/api/transactions/<transaction_id>")
    def update_transaction(transaction_id: str):
        transaction = transaction_from_record(_json_body())
        store.update_transaction(_ensure_user_token(), transaction_id, transaction)
        return jsonify({"id": transaction_id, **transaction_to_record(transaction)})

    @app.delete("/api/transactions/<transaction_id>")
    def delete_transaction(transaction_id: str):
        store.delete_transaction(_ensure_user_token(), transaction_id)
        return "", 204

    @app.get("/api/savings-goals")
    def list_savings_goals():
        goals = store.list_savings_goals(_ensure_user_token())
        return jsonify([{"id": item["id"], **savings_goal_to_record(item["goal"])} for item in goals])

    @app.post("/api/savings-goals")
    def create_savings_goal():
        goal = savings_goal_from_record(_json_body())
        goal_id = store.add_savings_goal(_ensure_user_token(), goal)
        return jsonify({"id": goal_id, **savings_goal_to_record(goal)}), 201

    @app.put("/api/savings-goals/<goal_id>")
    def update_savings_goal(goal_id: str):
        body = _json_body()
        amount = body.get("current_amount", body.get("currentAmount"))
        if amount is None:
            raise InvalidParameters("Request must give 'current_amount'")
        try:
            current = parse_amount(amount)
        except (AttributeError, ValueError) as exc:
            raise InvalidParameters(str(exc)) from exc
        goal = store.update_savings_goal(_ensure_user_token(), goal_id, current)
        return jsonify({"id": goal_id, **savings_goal_to_record(goal)})

    @app.post("/api/loans/<loan_id>/mileage")
    def add_mileage(loan_id: str):
        update = mileage_update_from_record(_json_body())
        update_id = store.add_mileage_update(_ensure_user_token(), loan_id, update)
        return jsonify({"id": update_id, "mileage": update.mileage, "date": date_key(update.date)}), 201

    @app.get("/api/loans/<loan_id>/mileage")
    def loan_mileage(loan_id: str):
        user_token = _ensure_user_token()
        loan = store.get_loan(user_token, loan_id)
        current = latest_mileage(store.mileage_updates(user_token, loan_id))
        usage = mileage_usage(loan, current)
        return jsonify(
            {
                "latest_mileage": current,
                "mileage_limit": loan.mileage_limit,
                "usage_percent": usage.usage_percent if usage else None,
            }
        )

    @app.get("/api/reports/spending-by-category")
    def spending_report():
        since = _date_arg("since") if request.args.get("since") else None
        until = _date_arg("until") if request.args.get("until") else None
        transactions = store.list_transactions(_ensure_user_token(), since=since, until=until)
        return jsonify(serialize_category_spending(spending_by_category(transactions)))

    @app.get("/api/reports/monthly-overview")
    def monthly_overview_report():
        year = request.args.get("year", type=int) or date.today().year
        transactions = store.list_transactions(
            _ensure_user_token(), since=date(year, 1, 1), until=date(year, 12, 31)
        )
        return jsonify({"year": year, "months": serialize_period_totals(monthly_overview(transactions, year))})

    @app.get("/api/reports/trends")
    def trend_report():
        as_of = _date_arg("as_of")
        date_range = request.args.get("range", "month")
        transactions = store.list_transactions(_ensure_user_token(), until=as_of)
        trend = income_expense_trend(transactions, as_of, date_range)
        return jsonify({"range": date_range, "periods": serialize_period_totals(trend)})

    @app.get("/api/reports/projection")
    def projection_report():
        user_token = _ensure_user_token()
        today = _date_arg("today")
        horizon = request.args.get("horizon_years", type=int) or settings.horizon_years
        points = project_portfolio(
            store.loans(user_token),
            _report_income(store, user_token, today),
            horizon,
            today=today,
            income_growth=settings.income_growth,
        )
        free_on = debt_free_date(points)
        return jsonify(
            {
                "debt_free_date": date_key(free_on) if free_on else None,
                "years_to_debt_free": years_to_debt_free(points, today),
                "horizon_years": horizon,
                "projection": serialize_projection(points),
            }
        )

    @app.get("/api/reports/metrics")
    def metrics_report():
        user_token = _ensure_user_token()
        as_of = _date_arg("as_of")
        loans = store.loans(user_token)
        income = _report_income(store, user_token, as_of)
        since = add_months(as_of, -1)
        flow = cash_flow_summary(store.list_transactions(user_token, since=since, until=as_of), loans, as_of)
        payload = serialize_metrics(portfolio_metrics(loans, income))
        payload["monthly_net_income"] = income
        payload["cash_flow"] = {
            "total_income": flow.total_income,
            "total_expenses": flow.total_expenses,
            "total_loan_payments": flow.total_loan_payments,
            "net_income": flow.net_income,
            "savings_rate": flow.savings_rate,
        }
        return jsonify(payload)

    return app


if __name__ == "__main__":
    print("Starting Loan Tracker API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
