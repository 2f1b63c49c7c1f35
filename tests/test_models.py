"""Tests for Pydantic models."""
import pytest
from datetime import date, datetime, timedelta, timezone
from pydantic import ValidationError


def make_entry(**fields):
    from timeledger.models.time_entry import TimeEntry

    defaults = {
        "_id": "entry1",
        "user_id": "user123",
        "task_id": "task1",
        "start_time": datetime(2024, 1, 8, 9, 0),
        "created_at": datetime(2024, 1, 8, 9, 0),
        "updated_at": datetime(2024, 1, 8, 9, 0),
    }
    defaults.update(fields)
    return TimeEntry(**defaults)


class TestTimeEntryModel:
    """Tests for TimeEntry models."""

    def test_time_entry_defaults(self):
        """Test a new entry is stopped with no end or duration."""
        entry = make_entry()

        assert entry.description == ""
        assert entry.end_time is None
        assert entry.duration is None
        assert entry.is_running is False
        assert entry.task is None

    def test_time_entry_serializes_id(self):
        """Test the Mongo ``_id`` is exposed as ``id``."""
        entry = make_entry()

        dumped = entry.model_dump(by_alias=True)

        assert dumped["id"] == "entry1"
        assert "_id" not in dumped

    def test_time_entry_populate_by_name(self):
        """Test entries can be built with ``id`` as well as ``_id``."""
        from timeledger.models.time_entry import TimeEntry

        entry = TimeEntry(
            id="entry2",
            user_id="user123",
            task_id="task1",
            start_time=datetime(2024, 1, 8, 9, 0),
            created_at=datetime(2024, 1, 8, 9, 0),
            updated_at=datetime(2024, 1, 8, 9, 0),
        )

        assert entry.id == "entry2"

    def test_elapsed_seconds_stopped(self):
        """Test a stopped entry reports its stored duration."""
        entry = make_entry(end_time=datetime(2024, 1, 8, 10, 0), duration=3600)

        assert entry.elapsed_seconds(datetime(2024, 1, 9)) == 3600

    def test_elapsed_seconds_running(self):
        """Test a running entry reports live time."""
        entry = make_entry(is_running=True)

        assert entry.elapsed_seconds(datetime(2024, 1, 8, 9, 2, 5)) == 125

    def test_elapsed_seconds_running_clock_behind(self):
        """Test live time never goes negative."""
        entry = make_entry(is_running=True)

        assert entry.elapsed_seconds(datetime(2024, 1, 8, 8, 0)) == 0

    def test_create_requires_task_id(self):
        """Test an empty task id is rejected."""
        from timeledger.models.time_entry import TimeEntryCreate

        with pytest.raises(ValidationError):
            TimeEntryCreate(task_id="")

    def test_update_touches_timestamps(self):
        """Test detection of timestamp changes in an update."""
        from timeledger.models.time_entry import TimeEntryUpdate

        assert TimeEntryUpdate(end_time=datetime(2024, 1, 8)).touches_timestamps()
        assert not TimeEntryUpdate(description="x", duration=60).touches_timestamps()


class TestPaginationModel:
    """Tests for Pagination."""

    def test_pagination_defaults(self):
        from timeledger.models.time_entry import Pagination

        pagination = Pagination()

        assert pagination.page == 1
        assert pagination.limit == 10
        assert pagination.skip == 0

    def test_pagination_skip(self):
        from timeledger.models.time_entry import Pagination

        assert Pagination(page=3, limit=25).skip == 50

    @pytest.mark.parametrize("fields", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_pagination_bounds(self, fields):
        from timeledger.models.time_entry import Pagination

        with pytest.raises(ValidationError):
            Pagination(**fields)


class TestTaskModels:
    """Tests for task lookup models."""

    def test_task_overdue(self):
        from timeledger.models.task import TaskInfo, TaskStatus

        now = datetime(2024, 1, 8)
        task = TaskInfo(
            _id="task1",
            user_id="user123",
            title="Write report",
            due_date=now - timedelta(days=1),
            created_at=now - timedelta(days=5),
        )

        assert task.is_overdue(now) is True
        assert task.model_copy(update={"status": TaskStatus.COMPLETED}).is_overdue(now) is False
        assert task.model_copy(update={"due_date": None}).is_overdue(now) is False

    def test_task_ref_from_task(self):
        from timeledger.models.task import ProjectInfo, TaskInfo, TaskRef

        project = ProjectInfo(_id="proj1", user_id="user123", name="Website", color="#FF0000")
        task = TaskInfo(
            _id="task1",
            user_id="user123",
            title="Write report",
            project_id="proj1",
            project=project,
            created_at=datetime(2024, 1, 1),
        )

        ref = TaskRef.from_task(task)

        assert ref.id == "task1"
        assert ref.title == "Write report"
        assert ref.project.name == "Website"
        assert ref.project.color == "#FF0000"


class TestAnalyticsWindow:
    """Tests for AnalyticsWindow."""

    def test_resolve_defaults(self):
        from timeledger.models.analytics import AnalyticsWindow

        now = datetime(2024, 3, 31, 12, 0)
        window = AnalyticsWindow.resolve(now)

        assert window.end == now
        assert window.start == now - timedelta(days=30)
        assert window.start_date == date(2024, 3, 1)

    def test_resolve_normalizes_aware_bounds(self):
        from timeledger.models.analytics import AnalyticsWindow

        start = datetime(2024, 3, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        window = AnalyticsWindow.resolve(datetime(2024, 3, 31), start=start)

        assert window.start == datetime(2024, 3, 1, 0, 0)
        assert window.start.tzinfo is None

    def test_resolve_rejects_inverted_window(self):
        from timeledger.errors import EntryValidationError
        from timeledger.models.analytics import AnalyticsWindow

        with pytest.raises(EntryValidationError):
            AnalyticsWindow.resolve(
                datetime(2024, 3, 31),
                start=datetime(2024, 3, 10),
                end=datetime(2024, 3, 1),
            )


class TestErrors:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize("name, status_code", [
        ("TimeTrackingError", 400),
        ("NotFoundError", 404),
        ("EntryValidationError", 400),
        ("ConflictError", 409),
        ("StoreError", 500),
    ])
    def test_status_codes(self, name, status_code):
        from timeledger import errors

        error_class = getattr(errors, name)

        assert error_class.status_code == status_code
        assert issubclass(error_class, ValueError)
