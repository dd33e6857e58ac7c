"""
Multi-line statement row accumulation.

Column-based text extraction wraps one statement row over several physical
lines. Rows are rebuilt with a two-state machine:

    idle          -- no row open; lines that do not start a row are dropped
    accumulating  -- a row is open; lines are space-joined onto the buffer

A row-start line always opens a fresh buffer (an unterminated row is lost).
After every start or append the whole buffer is checked against the row-end
anchor; a complete row is emitted and the machine returns to idle.
"""
from typing import NamedTuple, Optional, Tuple
import logging

from pydantic import ValidationError

from .normalize import normalize_money, normalize_timestamp
from .templates import StatementAnchors
from ..models.schema import Transaction, TransactionType

logger = logging.getLogger(__name__)


class RowState(NamedTuple):
    """State of the row machine. ``buffer`` is None while idle."""
    buffer: Optional[str] = None

    @property
    def accumulating(self) -> bool:
        return self.buffer is not None


IDLE = RowState()


def classify_amount(amount, details: str, anchors: StatementAnchors) -> TransactionType:
    """
    Classify a signed statement amount.

    Negative amounts are outgoing (PAYBILL when the details name a pay bill or
    merchant, SEND otherwise); everything else is incoming.
    """
    if amount < 0:
        if anchors.is_paybill(details):
            return TransactionType.PAYBILL
        return TransactionType.SEND
    return TransactionType.RECEIVE


def extract_row(buffer: str, anchors: StatementAnchors) -> Optional[Transaction]:
    """
    Run the full row pattern against a buffer that looks complete.

    Returns None on structural mismatch, or when the amount or timestamp
    cannot be normalized.
    """
    match = anchors.row.match(buffer)
    if not match:
        return None

    amount = normalize_money(match.group('amount'))
    timestamp = normalize_timestamp(match.group('timestamp'))
    if amount is None or timestamp is None:
        return None

    details = match.group('details').strip()

    try:
        return Transaction(
            id=match.group('code'),
            date=timestamp,
            description=details,
            amount=abs(amount),
            type=classify_amount(amount, details, anchors),
            raw=buffer
        )
    except ValidationError as e:
        logger.debug(f"Rejected statement row: {e}")
        return None


def advance(state: RowState, line: str, anchors: StatementAnchors) -> Tuple[RowState, Optional[Transaction]]:
    """
    Feed one trimmed, non-empty line to the row machine.

    Args:
        state: Current state
        line: Next line that was not a single-line message
        anchors: Statement patterns

    Returns:
        (next state, transaction completed by this line or None)
    """
    if anchors.row_start.match(line):
        if state.accumulating:
            logger.debug(f"Discarding unterminated statement row: {state.buffer}")
        buffer = line
    elif state.accumulating:
        buffer = f"{state.buffer} {line}"
    else:
        logger.debug(f"Skipping unrecognized line: {line}")
        return state, None

    if anchors.row_end.search(buffer):
        transaction = extract_row(buffer, anchors)
        if transaction is not None:
            return IDLE, transaction
        logger.debug(f"Row end found but row did not match, keeping buffer open: {buffer}")

    return RowState(buffer), None
