"""
Totals and monthly breakdown over parsed transactions.
"""
from decimal import Decimal
from typing import Dict, Iterable, Tuple

from ..models.schema import FinancialSummary, MonthlySummary, Transaction, TransactionType

OUTGOING = (TransactionType.SEND, TransactionType.PAYBILL)
RECENT_LIMIT = 10


def summarize(transactions: Iterable[Transaction]) -> FinancialSummary:
    """
    Summarize income and expense.

    RECEIVE counts as income, SEND and PAYBILL as expense. UNKNOWN records are
    counted but do not move either total.

    Args:
        transactions: Parsed transactions, any order

    Returns:
        FinancialSummary with months in chronological order and the first
        RECENT_LIMIT transactions as given
    """
    total_income = Decimal('0')
    total_expense = Decimal('0')
    count = 0
    months: Dict[str, Tuple[Decimal, Decimal]] = {}
    recent = []

    for txn in transactions:
        count += 1
        if len(recent) < RECENT_LIMIT:
            recent.append(txn)
        key = txn.date.strftime("%Y-%m")
        income, expense = months.get(key, (Decimal('0'), Decimal('0')))

        if txn.type == TransactionType.RECEIVE:
            total_income += txn.amount
            income += txn.amount
        elif txn.type in OUTGOING:
            total_expense += txn.amount
            expense += txn.amount

        months[key] = (income, expense)

    monthly = [
        MonthlySummary(month=month, income=income, expense=expense, balance=income - expense)
        for month, (income, expense) in sorted(months.items())
    ]

    return FinancialSummary(
        total_income=total_income,
        total_expense=total_expense,
        net_balance=total_income - total_expense,
        transaction_count=count,
        monthly=monthly,
        recent_transactions=recent
    )
