"""
Pydantic models for parsed M-PESA transaction data.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class TransactionType(str, Enum):
    """Direction of a transaction relative to the account holder."""
    SEND = "SEND"
    RECEIVE = "RECEIVE"
    PAYBILL = "PAYBILL"
    UNKNOWN = "UNKNOWN"


class Transaction(BaseModel):
    """Individual transaction record."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    date: datetime
    description: str
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    raw: str
    account: Optional[str] = None  # PAYBILL account reference

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


class MonthlySummary(BaseModel):
    """Totals for a single calendar month."""
    month: str  # "YYYY-MM"
    income: Decimal
    expense: Decimal
    balance: Decimal

    @field_serializer('income', 'expense', 'balance', when_used='json')
    def serialize_money(self, v: Decimal) -> float:
        return float(v)


class FinancialSummary(BaseModel):
    """Aggregate view over a list of transactions."""
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    transaction_count: int
    monthly: List[MonthlySummary]
    recent_transactions: List[Transaction] = []  # first records in input order

    @field_serializer('total_income', 'total_expense', 'net_balance', when_used='json')
    def serialize_money(self, v: Decimal) -> float:
        return float(v)
