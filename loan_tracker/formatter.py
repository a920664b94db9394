"""Output helpers for the loan tracker command line.

This module renders schedules, progress figures, projections and portfolio
metrics as plain tab-separated tables and labelled summaries. Values are
printed with two decimals; no currency symbols are added.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .data_models import AmortizationEntry, LoanProgress, PortfolioMetrics, ProjectionPoint


def print_schedule_summary(totals: Dict[str, object]) -> None:
    """Print the totals of a schedule in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Periods            : {totals['periods']}")
    print(f"Total paid         : {totals['total_paid']:.2f}")
    print(f"Total interest     : {totals['total_interest']:.2f}")
    if totals.get("total_extra"):
        print(f"Extra payments     : {totals['total_extra']:.2f}")
    if totals.get("payoff_date"):
        print(f"Payoff date        : {totals['payoff_date']}")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "Date", "Payment", "Principal", "Interest", "Extra", "Balance"]
    print("\t".join(headers))
    for period, entry in enumerate(schedule, start=1):
        row = [
            str(period),
            entry.date.isoformat(),
            f"{entry.payment:.2f}",
            f"{entry.principal_portion:.2f}",
            f"{entry.interest_portion:.2f}",
            f"{entry.extra_payment:.2f}" if entry.extra_payment else "",
            f"{entry.remaining_balance:.2f}",
        ]
        print("\t".join(row))


def print_progress(rows: List[Tuple[str, LoanProgress]]) -> None:
    print("\t".join(["Loan", "Elapsed", "Progress", "Remaining"]))
    for name, progress in rows:
        print(
            "\t".join(
                [
                    name,
                    str(progress.elapsed_months),
                    f"{progress.progress_percent:.1f}%",
                    f"{progress.remaining_balance:.2f}",
                ]
            )
        )


def print_projection(
    projection: List[ProjectionPoint],
    free_on: Optional[date],
    years: Optional[float],
    horizon_years: int,
    every: int = 12,
) -> None:
    """Print the debt-free outlook followed by one row every ``every`` months.

    The final point is always printed so the end of the series is visible.
    """
    print("Debt-free projection")
    print("-" * 72)
    if free_on is None:
        print(f"Debt-free date     : more than {horizon_years} years away")
    else:
        print(f"Debt-free date     : {free_on.isoformat()} ({years} years)")
    print("-" * 72)
    print("\t".join(["Date", "TotalDebt", "NetIncome"]))
    last = len(projection) - 1
    for index, point in enumerate(projection):
        if index % every and index != last:
            continue
        print("\t".join([point.date.isoformat(), f"{point.total_debt:.2f}", f"{point.net_income:.2f}"]))


def print_metrics(metrics: PortfolioMetrics) -> None:
    """Print portfolio rollups side by side with their labels."""
    print("Portfolio")
    print("=" * 72)
    print(f"Total monthly payment : {metrics.total_monthly_payment:.2f}")
    print(f"Total principal       : {metrics.total_principal:.2f}")
    if metrics.debt_to_income_ratio is not None:
        print(f"Debt-to-income        : {metrics.debt_to_income_ratio:.1f}%")
    if metrics.weighted_average_rate is not None:
        print(f"Average rate          : {metrics.weighted_average_rate:.2f}%")
    if metrics.earliest_end is not None:
        print(f"First loan ends       : {metrics.earliest_end.end_date} ({metrics.earliest_end.name})")
    if metrics.latest_end is not None:
        print(f"Last loan ends        : {metrics.latest_end.end_date} ({metrics.latest_end.name})")
