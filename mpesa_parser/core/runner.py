"""
End-to-end text parsing orchestration.
"""
from typing import List, Optional
import logging

from .messages import build_message_transaction, match_message
from .statement import IDLE, advance
from .templates import DEFAULT_TEMPLATE_ID, Template, load_template
from ..models.schema import Transaction

logger = logging.getLogger(__name__)


class TextParser:
    """Turns a block of M-PESA text into transactions using one template."""

    def __init__(self, template_id: str = DEFAULT_TEMPLATE_ID, template: Optional[Template] = None):
        self.template = template or load_template(template_id)
        self.template_id = self.template.template_id

    def parse(self, text: str) -> List[Transaction]:
        """
        Parse a block of text into transactions.

        Single-line confirmation messages take priority over statement rows;
        a message match also closes any statement row being accumulated.
        Nothing survives between calls: the row state is local to this call.

        Args:
            text: SMS export, OCR output or extracted statement text

        Returns:
            Transactions in the order their lines appeared
        """
        if not text or not text.strip():
            return []

        transactions = []
        state = IDLE

        for line in text.split('\n'):
            line = line.strip()
            if not line:
                continue

            matched = match_message(line, self.template.messages)
            if matched:
                shape, groups = matched
                transaction = build_message_transaction(line, shape, groups)
                if transaction is not None:
                    transactions.append(transaction)
                state = IDLE
                continue

            state, transaction = advance(state, line, self.template.statement)
            if transaction is not None:
                transactions.append(transaction)

        if state.accumulating:
            logger.debug(f"Input ended inside an unterminated statement row: {state.buffer}")

        logger.info(f"Parsed {len(transactions)} transactions from text.")
        return transactions


def parse_text(text: str, template_id: str = DEFAULT_TEMPLATE_ID) -> List[Transaction]:
    """
    Parse M-PESA messages or statement text.

    Args:
        text: Text to parse
        template_id: Template ID to use

    Returns:
        List of Transaction objects (empty if nothing was recognized)
    """
    parser = TextParser(template_id)
    return parser.parse(text)
