"""
M-PESA Statement Text Parser

Recovers structured transactions from M-PESA SMS confirmations and from text
extracted out of M-PESA statement documents, using an ordered pattern table
and a small row-accumulation state machine.
"""

__version__ = "1.0.0"

from .core.runner import parse_text, TextParser
from .core.tabular import rows_to_transactions
from .core.summary import summarize
from .core.templates import load_template, TemplateRegistry
from .models.schema import Transaction, TransactionType, FinancialSummary, MonthlySummary

__all__ = [
    "parse_text",
    "TextParser",
    "rows_to_transactions",
    "summarize",
    "load_template",
    "TemplateRegistry",
    "Transaction",
    "TransactionType",
    "FinancialSummary",
    "MonthlySummary"
]
