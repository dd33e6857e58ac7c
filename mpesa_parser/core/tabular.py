"""
Spreadsheet row conversion.

Statements exported as spreadsheets already carry one row per transaction, so
they skip the text parser entirely. Header names drift between exports
("Receipt No." vs "Receipt No", "Completion Time" vs "Date"), so columns are
resolved with fuzzy matching against the template's alias lists.
"""
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging

from pydantic import ValidationError
from rapidfuzz import fuzz

from .normalize import normalize_money, normalize_text, normalize_timestamp
from .statement import classify_amount
from .templates import DEFAULT_TEMPLATE_ID, SpreadsheetColumns, StatementAnchors, load_template
from ..models.schema import Transaction, TransactionType

logger = logging.getLogger(__name__)


def find_column(headers: Iterable[str], aliases: Iterable[str], fuzzy_threshold: float = 85) -> Optional[str]:
    """
    Find the header that best matches any of the aliases.

    Args:
        headers: Column names present in the sheet
        aliases: Accepted names for the column
        fuzzy_threshold: Minimum fuzz.ratio score (0-100)

    Returns:
        Matching header, or None
    """
    headers = [h for h in headers if isinstance(h, str)]
    best_header = None
    best_score = 0.0

    for alias in aliases:
        target = alias.strip().lower()
        for header in headers:
            candidate = header.strip().lower()
            # Exact match wins outright
            if candidate == target:
                return header

            score = fuzz.ratio(candidate, target)
            if score > best_score and score >= fuzzy_threshold:
                best_score = score
                best_header = header

    return best_header


def resolve_columns(headers: Iterable[str], columns: SpreadsheetColumns) -> Dict[str, Optional[str]]:
    """Map each logical column name to the sheet header that carries it."""
    headers = list(headers)
    resolved = {}
    for name, aliases in columns.aliases:
        resolved[name] = find_column(headers, aliases, columns.fuzzy_threshold)
        if resolved[name]:
            logger.debug(f"Column '{name}' -> '{resolved[name]}'")
    return resolved


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN from pandas-style readers
        return True
    return isinstance(value, str) and not value.strip()


def _signed_amount(row: Mapping[str, Any], resolved: Dict[str, Optional[str]]) -> Optional[Decimal]:
    """Signed amount for a row: positive money in, negative money out."""
    amount_col = resolved.get('amount')
    if amount_col and not _is_blank(row.get(amount_col)):
        return normalize_money(row.get(amount_col))

    paid_in_col = resolved.get('paid_in')
    withdrawn_col = resolved.get('withdrawn')
    paid_in = normalize_money(row.get(paid_in_col)) if paid_in_col and not _is_blank(row.get(paid_in_col)) else None
    withdrawn = normalize_money(row.get(withdrawn_col)) if withdrawn_col and not _is_blank(row.get(withdrawn_col)) else None

    if paid_in is None and withdrawn is None:
        return None
    if paid_in and withdrawn:
        logger.warning(f"Row has both paid in ({paid_in}) and withdrawn ({withdrawn}); using the net amount")
    return abs(paid_in or Decimal('0')) - abs(withdrawn or Decimal('0'))


def row_to_transaction(row: Mapping[str, Any], row_number: int, resolved: Dict[str, Optional[str]],
                       anchors: StatementAnchors) -> Optional[Transaction]:
    """
    Convert one spreadsheet row.

    Args:
        row: Column name -> cell value
        row_number: 1-based row number, used when the sheet has no receipt column
        resolved: Output of resolve_columns()
        anchors: Statement patterns, for PAYBILL keyword detection

    Returns:
        Transaction, or None when the row has no usable date or amount
    """
    date_col = resolved.get('date')
    timestamp = normalize_timestamp(row.get(date_col)) if date_col else None
    amount = _signed_amount(row, resolved)

    if timestamp is None or amount is None:
        logger.debug(f"Skipping spreadsheet row {row_number}: missing date or amount")
        return None

    description_col = resolved.get('description')
    description = str(row.get(description_col) or '').strip() if description_col else ''

    receipt_col = resolved.get('receipt')
    receipt = row.get(receipt_col) if receipt_col else None
    code = str(receipt).strip() if not _is_blank(receipt) else f"ROW-{row_number}"

    if amount == 0:
        tx_type = TransactionType.UNKNOWN
    else:
        tx_type = classify_amount(amount, description, anchors)

    try:
        return Transaction(
            id=code,
            date=timestamp,
            description=description,
            amount=abs(amount),
            type=tx_type,
            raw=normalize_text(" | ".join(f"{k}={v}" for k, v in row.items() if not _is_blank(v)))
        )
    except ValidationError as e:
        logger.debug(f"Rejected spreadsheet row {row_number}: {e}")
        return None


def rows_to_transactions(rows: Iterable[Mapping[str, Any]],
                         template_id: str = DEFAULT_TEMPLATE_ID) -> List[Transaction]:
    """
    Convert spreadsheet rows to transactions.

    Args:
        rows: Rows as mappings of column name to cell value
        template_id: Template whose column aliases to use

    Returns:
        Transactions in row order
    """
    template = load_template(template_id)
    rows = list(rows)
    if not rows:
        return []

    headers = []
    for row in rows:
        for key in row.keys():
            if key not in headers:
                headers.append(key)

    resolved = resolve_columns(headers, template.spreadsheet)
    if not resolved.get('date'):
        logger.warning(f"No date column found among: {headers}")
    if not any(resolved.get(name) for name in ('amount', 'paid_in', 'withdrawn')):
        logger.warning(f"No amount columns found among: {headers}")

    transactions = []
    for row_number, row in enumerate(rows, start=1):
        transaction = row_to_transaction(row, row_number, resolved, template.statement)
        if transaction is not None:
            transactions.append(transaction)

    logger.info(f"Converted {len(transactions)} of {len(rows)} spreadsheet rows.")
    return transactions
