"""Duration reconciliation.

``compute_duration`` is the single formula every write path uses to derive
a duration. ``ReconciliationService.sweep`` repairs entries whose end was
written without a duration, e.g. after a stop that only partially completed.
"""
import logging
from datetime import datetime, timedelta

from timeledger.errors import EntryValidationError
from timeledger.store.base import TimeEntryStore

logger = logging.getLogger(__name__)


def compute_duration(
    start_time: datetime,
    end_time: datetime,
    allow_negative: bool = False,
) -> int:
    """
    Whole seconds between two timestamps, rounded down.

    Args:
        start_time: Start of the span
        end_time: End of the span
        allow_negative: Accept ``end_time`` before ``start_time`` (manual
            time adjustment)

    Returns:
        Duration in seconds

    Raises:
        EntryValidationError: If end is before start and negatives are not allowed

    Examples:
        >>> compute_duration(datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11, 30))
        5400
        >>> compute_duration(datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 10, 0, 1, 999999))
        1
    """
    if end_time < start_time and not allow_negative:
        raise EntryValidationError("End time must not be before start time")
    return (end_time - start_time) // timedelta(seconds=1)


class ReconciliationService:
    """Fills in durations that a previous write failed to record."""

    def __init__(self, store: TimeEntryStore, batch_size: int = 500):
        self.store = store
        self.batch_size = batch_size

    async def sweep(self) -> int:
        """
        Repair one batch of unreconciled entries.

        Safe to run repeatedly and concurrently with normal traffic: each
        repair only applies while the duration is still missing.

        Returns:
            Number of entries repaired
        """
        entries = await self.store.find_unreconciled(limit=self.batch_size)
        repaired = 0

        for entry in entries:
            if entry.end_time < entry.start_time:
                logger.warning(
                    "Skipping time entry %s: end %s before start %s",
                    entry.id, entry.end_time, entry.start_time,
                )
                continue

            duration = compute_duration(entry.start_time, entry.end_time)
            if await self.store.set_reconciled_duration(entry.id, duration):
                repaired += 1

        if repaired:
            logger.info("Reconciled %d time entries", repaired)
        return repaired
