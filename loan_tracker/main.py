"""Command‑line interface for the loan tracker.

This module uses the ``click`` library to implement a multi‑command
interface over the numeric core. Users can compute payments and implied
principals, print full amortization schedules, check the progress of stored
loans, project when a loan portfolio will be paid off and view portfolio
metrics. Loan portfolios are read from a JSON file holding a list of loan
records; results can be printed or exported to JSON.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .annuity import payment_from_principal, principal_from_payment, total_interest
from .config import load_settings
from .data_models import ExtraPayment, LoanTerms
from .engine import build_schedule, progress_as_of, schedule_totals
from .errors import LoanTrackerError
from .formatter import print_metrics, print_progress, print_projection, print_schedule, print_schedule_summary
from .metrics import portfolio_metrics
from .projection import debt_free_date, project_portfolio, years_to_debt_free
from .records import (
    loans_from_records,
    serialize_metrics,
    serialize_progress,
    serialize_projection,
    serialize_schedule,
)
from .utils import date_key, parse_amount, parse_date

logger = logging.getLogger(__name__)


def parse_amount_option(value: str) -> float:
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_date_option(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_extra_payment_strings(values: Tuple[str, ...]) -> List[ExtraPayment]:
    extras: List[ExtraPayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Extra payment must be in YYYY-MM-DD:AMOUNT format; got {item}")
        day, amount = parts
        try:
            extras.append(ExtraPayment(amount=parse_amount(amount), date=parse_date(day)))
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return extras


def load_loans(path: str) -> List[LoanTerms]:
    """Read a JSON list of loan records (or ``{"loans": [...]}``) from ``path``."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(f"Cannot read loans from {path}: {exc}")
    if isinstance(data, dict):
        data = data.get("loans", [])
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} must contain a list of loan records")
    return loans_from_records(data)


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    if path.suffix.lower() != ".json":
        raise click.BadParameter("Export must use .json extension")
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    click.echo(f"Exported to {path}")


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (defaults to LOAN_TRACKER_LOG_LEVEL or WARNING)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Track loans: schedules, progress and debt-free projections."""
    try:
        settings = load_settings()
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
def payment(principal: str, rate: float, term: int) -> None:
    """Monthly payment that amortizes a principal."""
    amount = parse_amount_option(principal)
    try:
        monthly = payment_from_principal(amount, rate, term)
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Monthly payment    : {monthly:.2f}")
    click.echo(f"Total interest     : {total_interest(amount, monthly, term):.2f}")


@cli.command()
@click.option("--payment", "-m", "monthly", required=True, help="Monthly payment")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
def principal(monthly: str, rate: float, term: int) -> None:
    """Loan amount implied by a monthly payment."""
    try:
        amount = principal_from_payment(parse_amount_option(monthly), rate, term)
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Principal          : {amount:.2f}")


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
@click.option("--start-date", "-s", "start_date", help="First period date (YYYY-MM-DD), defaults to today")
@click.option("--extra", "extra", multiple=True, help="Extra payment in YYYY-MM-DD:AMOUNT format")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def schedule(
    principal: str,
    rate: float,
    term: int,
    start_date: Optional[str],
    extra: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    extras = parse_extra_payment_strings(extra)
    try:
        entries = build_schedule(
            parse_amount_option(principal), rate, term, extras, parse_date_option(start_date)
        )
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    totals = schedule_totals(entries)
    if output:
        summary = dict(totals)
        summary["payoff_date"] = date_key(totals["payoff_date"]) if totals["payoff_date"] else None
        export_to_json(Path(output), {"summary": summary, "schedule": serialize_schedule(entries)})
        return
    print_schedule_summary(totals)
    print_schedule(entries)


@cli.command()
@click.argument("loans_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Reference date (YYYY-MM-DD), defaults to today")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def progress(loans_file: str, as_of: Optional[str], output: Optional[str]) -> None:
    """Progress and remaining balance of every loan in LOANS_FILE."""
    reference = parse_date_option(as_of)
    try:
        rows = [(loan.name, progress_as_of(loan, reference)) for loan in load_loans(loans_file)]
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    if output:
        export_to_json(Path(output), {"progress": [serialize_progress(name, p) for name, p in rows]})
        return
    print_progress(rows)


@cli.command()
@click.argument("loans_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--income", "income", required=True, help="Current monthly net income")
@click.option("--horizon-years", "horizon_years", type=int, help="Projection horizon in years")
@click.option("--today", "today", help="Reference date (YYYY-MM-DD), defaults to today")
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_obj
def project(
    settings,
    loans_file: str,
    income: str,
    horizon_years: Optional[int],
    today: Optional[str],
    output: Optional[str],
) -> None:
    """Project when the loans in LOANS_FILE will be paid off."""
    reference = parse_date_option(today)
    horizon = horizon_years or settings.horizon_years
    try:
        points = project_portfolio(
            load_loans(loans_file),
            parse_amount_option(income),
            horizon,
            today=reference,
            income_growth=settings.income_growth,
        )
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    free_on = debt_free_date(points)
    years = years_to_debt_free(points, reference)
    if output:
        export_to_json(
            Path(output),
            {
                "debt_free_date": date_key(free_on) if free_on else None,
                "years_to_debt_free": years,
                "projection": serialize_projection(points),
            },
        )
        return
    print_projection(points, free_on, years, horizon)


@cli.command()
@click.argument("loans_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--income", "income", required=True, help="Monthly net income")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def metrics(loans_file: str, income: str, output: Optional[str]) -> None:
    """Debt-to-income ratio, average rate and end dates for LOANS_FILE."""
    try:
        rollup = portfolio_metrics(load_loans(loans_file), parse_amount_option(income))
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))
    if output:
        export_to_json(Path(output), serialize_metrics(rollup))
        return
    print_metrics(rollup)


if __name__ == "__main__":
    cli()
