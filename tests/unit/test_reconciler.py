"""Tests for duration computation and the reconciliation sweep."""
import asyncio
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock


class TestComputeDuration:
    """Tests for compute_duration."""

    def test_whole_seconds(self):
        from timeledger.services.reconciler import compute_duration

        start = datetime(2024, 1, 1, 10, 0)

        assert compute_duration(start, datetime(2024, 1, 1, 11, 30)) == 5400
        assert compute_duration(start, start) == 0

    def test_rounds_down(self):
        from timeledger.services.reconciler import compute_duration

        start = datetime(2024, 1, 1, 10, 0)

        assert compute_duration(start, start + timedelta(seconds=59, microseconds=999999)) == 59

    def test_end_before_start_rejected(self):
        from timeledger.errors import EntryValidationError
        from timeledger.services.reconciler import compute_duration

        with pytest.raises(EntryValidationError):
            compute_duration(datetime(2024, 1, 1, 11), datetime(2024, 1, 1, 10))

    def test_end_before_start_allowed_for_adjustment(self):
        from timeledger.services.reconciler import compute_duration

        assert compute_duration(
            datetime(2024, 1, 1, 11), datetime(2024, 1, 1, 10), allow_negative=True,
        ) == -3600


@pytest.mark.asyncio
class TestReconciliationService:
    """Tests for ReconciliationService.sweep."""

    async def test_sweep_fills_missing_durations(self, entry_store):
        from timeledger.services.reconciler import ReconciliationService

        start = datetime(2024, 1, 8, 9, 0)
        broken = await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start,
            "end_time": start + timedelta(minutes=90),
            "duration": None,
            "is_running": True,
            "created_at": start,
            "updated_at": start,
        })

        repaired = await ReconciliationService(entry_store).sweep()

        assert repaired == 1
        fixed = await entry_store.get("user123", broken.id)
        assert fixed.duration == 5400
        assert fixed.is_running is False

    async def test_sweep_is_idempotent(self, entry_store):
        from timeledger.services.reconciler import ReconciliationService

        start = datetime(2024, 1, 8, 9, 0)
        await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start,
            "end_time": start + timedelta(seconds=30),
            "created_at": start,
            "updated_at": start,
        })
        service = ReconciliationService(entry_store)

        assert await service.sweep() == 1
        assert await service.sweep() == 0

    async def test_sweep_ignores_running_and_complete_entries(self, entry_store):
        from timeledger.services.reconciler import ReconciliationService

        start = datetime(2024, 1, 8, 9, 0)
        await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start,
            "is_running": True,
            "created_at": start,
            "updated_at": start,
        })
        await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start - timedelta(hours=2),
            "end_time": start - timedelta(hours=1),
            "duration": 3600,
            "created_at": start,
            "updated_at": start,
        })

        assert await ReconciliationService(entry_store).sweep() == 0

    async def test_sweep_skips_inverted_entries(self, entry_store):
        from timeledger.services.reconciler import ReconciliationService

        start = datetime(2024, 1, 8, 9, 0)
        inverted = await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start,
            "end_time": start - timedelta(minutes=5),
            "created_at": start,
            "updated_at": start,
        })

        assert await ReconciliationService(entry_store).sweep() == 0
        assert (await entry_store.get("user123", inverted.id)).duration is None

    async def test_inverted_entry_does_not_block_batch(self, entry_store):
        from timeledger.services.reconciler import ReconciliationService

        start = datetime(2024, 1, 8, 9, 0)
        inverted = await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start,
            "end_time": start - timedelta(minutes=5),
            "created_at": start,
            "updated_at": start,
        })
        valid = await entry_store.insert({
            "user_id": "user123",
            "task_id": "task1",
            "start_time": start,
            "end_time": start + timedelta(seconds=300),
            "created_at": start,
            "updated_at": start,
        })

        assert await ReconciliationService(entry_store, batch_size=1).sweep() == 1
        assert (await entry_store.get("user123", valid.id)).duration == 300
        assert (await entry_store.get("user123", inverted.id)).duration is None

    async def test_sweep_respects_batch_size(self):
        from timeledger.services.reconciler import ReconciliationService

        store = MagicMock()
        store.find_unreconciled = AsyncMock(return_value=[])

        await ReconciliationService(store, batch_size=25).sweep()

        store.find_unreconciled.assert_awaited_once_with(limit=25)


@pytest.mark.asyncio
class TestReconciliationScheduler:
    """Tests for ReconciliationScheduler."""

    async def test_run_once_returns_repaired_count(self):
        from timeledger.services.scheduler import ReconciliationScheduler

        reconciler = MagicMock()
        reconciler.sweep = AsyncMock(return_value=3)

        scheduler = ReconciliationScheduler(reconciler, interval_seconds=60)

        assert await scheduler.run_once() == 3

    async def test_run_once_swallows_sweep_failure(self):
        from timeledger.services.scheduler import ReconciliationScheduler

        reconciler = MagicMock()
        reconciler.sweep = AsyncMock(side_effect=RuntimeError("database down"))

        scheduler = ReconciliationScheduler(reconciler, interval_seconds=60)

        assert await scheduler.run_once() == 0

    async def test_start_and_stop(self):
        from timeledger.services.scheduler import ReconciliationScheduler

        reconciler = MagicMock()
        reconciler.sweep = AsyncMock(return_value=0)

        scheduler = ReconciliationScheduler(reconciler, interval_seconds=0.01)
        scheduler.start()
        scheduler.start()
        assert scheduler.running

        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert not scheduler.running
        assert reconciler.sweep.await_count >= 1

    async def test_not_started_implicitly(self):
        from timeledger.services.scheduler import ReconciliationScheduler

        reconciler = MagicMock()
        reconciler.sweep = AsyncMock(return_value=0)

        scheduler = ReconciliationScheduler(reconciler, interval_seconds=0.01)
        await asyncio.sleep(0.03)

        assert not scheduler.running
        reconciler.sweep.assert_not_awaited()
        await scheduler.stop()
