"""
Single-line confirmation message matching.
"""
from typing import Optional, Sequence, Tuple
import logging

from pydantic import ValidationError

from .normalize import normalize_money, normalize_timestamp
from .templates import MessageShape
from ..models.schema import Transaction

logger = logging.getLogger(__name__)


def match_message(line: str, shapes: Sequence[MessageShape]) -> Optional[Tuple[MessageShape, dict]]:
    """
    Find the first message shape that matches a line.

    Args:
        line: Trimmed input line
        shapes: Message shapes in precedence order

    Returns:
        (shape, captured groups) for the first match, None otherwise
    """
    for shape in shapes:
        match = shape.regex.search(line)
        if match:
            return shape, match.groupdict()
    return None


def build_message_transaction(line: str, shape: MessageShape, groups: dict) -> Optional[Transaction]:
    """
    Build a Transaction from a matched confirmation message.

    Returns None when the captured amount or date cannot be normalized.
    """
    amount = normalize_money(groups['amount'])
    timestamp = normalize_timestamp(groups['date'], groups['time'])

    if amount is None or timestamp is None:
        logger.debug(f"Dropping {shape.name} message with unreadable amount or date: {line}")
        return None

    account = groups.get('account')

    try:
        return Transaction(
            id=groups['code'],
            date=timestamp,
            description=groups['entity'].strip(),
            amount=abs(amount),
            type=shape.type,
            raw=line,
            account=account.strip() if account else None
        )
    except ValidationError as e:
        logger.debug(f"Dropping {shape.name} message: {e}")
        return None
