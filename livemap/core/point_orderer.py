"""PointOrderer - Orders a record snapshot into a travel path.

Ordering strategy is all-or-nothing per batch:
- Every record has a parsable index key: ascending by index (numeric)
- Any record lacks one: the whole batch ascending by created_at

Both sorts are stable, so ties keep fetch order. The ordered sequence only
feeds the path and arrow renderer; markers use fetch order.
"""

import logging
from collections.abc import Sequence

from livemap.core.value_parsing import parse_index_key
from livemap.model.location_record import LocationRecord

logger = logging.getLogger(__name__)


class OrderStrategy:
    """How a batch was ordered."""

    INDEX = "index"
    TIMESTAMP = "timestamp"


class PointOrderer:
    """Stateless path ordering."""

    @staticmethod
    def strategy_for(records: Sequence[LocationRecord]) -> str:
        """INDEX if every record has a parsable index key, else TIMESTAMP."""
        if all(parse_index_key(record.index_key) is not None for record in records):
            return OrderStrategy.INDEX
        return OrderStrategy.TIMESTAMP

    @staticmethod
    def order(records: Sequence[LocationRecord], index_column: str) -> list[LocationRecord]:
        """Sort records into path order.

        Args:
            records: Valid records in fetch order
            index_column: Configured index column (for logging only; the
                fetcher already copied its value into index_key)

        Returns:
            New list in path order. The input is not modified.
        """
        strategy = PointOrderer.strategy_for(records)
        if strategy == OrderStrategy.INDEX:
            ordered = sorted(records, key=lambda record: parse_index_key(record.index_key))
        else:
            ordered = sorted(records, key=lambda record: record.created_at)
        logger.debug(f"[ORDER] {len(ordered)} points ordered by {strategy} (index column '{index_column}')")
        return ordered
