"""Derived views over a snapshot of transactions and sources.

Nothing here mutates its inputs; every view is recomputed from scratch. Status
is not consulted, so pending and rejected transactions count like approved
ones.
"""
from collections.abc import Iterable, Sequence

from .logic import parse_txn_datetime
from .models import UNKNOWN_SOURCE_LABEL, Source, Transaction


def _sum_by_type(transactions: Iterable[Transaction]) -> tuple[float, float]:
    income = 0
    expense = 0
    for txn in transactions:
        if txn.type == "INCOME":
            income += txn.amount
        elif txn.type == "EXPENSE":
            expense += txn.amount
    return income, expense


def totals_by_type(transactions: Iterable[Transaction]) -> dict:
    income, expense = _sum_by_type(transactions)
    return {"income": income, "expense": expense, "balance": income - expense}


def month_label(date_str: str, *, include_year: bool = False) -> str:
    moment = parse_txn_datetime(date_str)
    return moment.strftime("%b %Y" if include_year else "%b")


def monthly_series(
    transactions: Iterable[Transaction], *, include_year: bool = False
) -> list[dict]:
    """Income and expense per month, in order of first appearance.

    Without ``include_year`` the same month of different years shares a
    bucket.
    """
    buckets: dict[str, dict] = {}
    for txn in transactions:
        label = month_label(txn.date, include_year=include_year)
        bucket = buckets.setdefault(label, {"month": label, "income": 0, "expense": 0})
        if txn.type == "INCOME":
            bucket["income"] += txn.amount
        else:
            bucket["expense"] += txn.amount
    return list(buckets.values())


def category_distribution(transactions: Iterable[Transaction]) -> dict[str, float]:
    # income and expense magnitudes share one total per category
    totals: dict[str, float] = {}
    for txn in transactions:
        totals[txn.category] = totals.get(txn.category, 0) + txn.amount
    return totals


def per_source_totals(
    transactions: Sequence[Transaction], sources: Iterable[Source]
) -> list[dict]:
    rows = []
    for source in sources:
        income, expense = _sum_by_type(
            txn for txn in transactions if txn.source_id == source.id
        )
        rows.append(
            {
                "sourceId": source.id,
                "name": source.name,
                "income": income,
                "expense": expense,
                "balance": income - expense,
            }
        )
    return rows


def recent_transactions(
    transactions: Iterable[Transaction], n: int = 5
) -> list[Transaction]:
    # sorted() is stable under reverse=True, so equal dates keep input order
    ordered = sorted(
        transactions, key=lambda txn: parse_txn_datetime(txn.date), reverse=True
    )
    return ordered[:n]


def filter_by_source(
    transactions: Iterable[Transaction], source_id: str | None
) -> list[Transaction]:
    if source_id is None:
        return list(transactions)
    return [txn for txn in transactions if txn.source_id == source_id]


def build_summary(
    transactions: Sequence[Transaction],
    sources: Sequence[Source],
    *,
    source_id: str | None = None,
    include_year: bool = False,
    recent: int = 5,
) -> dict:
    selected = filter_by_source(transactions, source_id)
    names = {source.id: source.name for source in sources}
    return {
        "sourceId": source_id,
        "totals": totals_by_type(selected),
        "monthly": monthly_series(selected, include_year=include_year),
        "categories": [
            {"category": category, "amount": amount}
            for category, amount in category_distribution(selected).items()
        ],
        "sources": per_source_totals(transactions, sources),
        "recent": [
            {**txn.to_dict(), "sourceName": names.get(txn.source_id, UNKNOWN_SOURCE_LABEL)}
            for txn in recent_transactions(transactions, recent)
        ],
    }
