"""Tests for per-column dwell time statistics."""
from datetime import datetime, timedelta, timezone

from taskboard.analytics import DwellStat, compute_dwell_stats, dwell_samples
from taskboard.schema import Column, Task, Transition

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


def _at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def _log(task_id, *steps):
    """Build transitions from (seconds, to_column) steps; the first is the creation."""
    transitions = []
    previous = None
    for i, (seconds, column) in enumerate(steps, start=1):
        transitions.append(Transition(i, task_id, previous, column, _at(seconds)))
        previous = column
    return transitions


class TestDwellSamples:
    """Tests for the single-task sample walk."""

    def test_open_interval_for_unfinished_task(self):
        task = Task(task_id="T", title="T", column=Column.BLOCKED)
        log = _log("T", (0, Column.IDEA), (10, Column.WORKING_ON), (40, Column.BLOCKED))

        samples = dwell_samples(task, log, _at(100))
        assert samples == [
            (Column.IDEA, 10_000.0),
            (Column.WORKING_ON, 30_000.0),
            (Column.BLOCKED, 60_000.0),
        ]

    def test_done_task_has_no_trailing_sample(self):
        task = Task(task_id="U", title="U", column=Column.DONE)
        log = _log("U", (0, Column.IDEA), (5, Column.DONE))

        assert dwell_samples(task, log, _at(1000)) == [(Column.IDEA, 5_000.0)]

    def test_created_done_yields_nothing(self):
        task = Task(task_id="D", title="D", column=Column.DONE)
        assert dwell_samples(task, _log("D", (0, Column.DONE)), _at(50)) == []

    def test_records_are_sorted_by_timestamp(self):
        task = Task(task_id="T", title="T", column=Column.BLOCKED)
        log = _log("T", (0, Column.IDEA), (10, Column.WORKING_ON), (40, Column.BLOCKED))

        samples = dwell_samples(task, list(reversed(log)), _at(100))
        assert [c for c, _ in samples] == [Column.IDEA, Column.WORKING_ON, Column.BLOCKED]

    def test_task_without_records_is_skipped(self):
        task = Task(task_id="X", title="X", column=Column.IDEA)
        assert dwell_samples(task, [], _at(10)) == []

    def test_naive_now_is_read_as_local_time(self):
        task = Task(task_id="T", title="T", column=Column.IDEA)
        log = _log("T", (0, Column.IDEA))
        naive_local = _at(30).astimezone().replace(tzinfo=None)

        assert dwell_samples(task, log, naive_local) == [(Column.IDEA, 30_000.0)]


class TestComputeDwellStats:
    """Tests for aggregation across tasks."""

    def test_scenario_single_blocked_task(self):
        task = Task(task_id="T", title="T", column=Column.BLOCKED)
        log = _log("T", (0, Column.IDEA), (10, Column.WORKING_ON), (40, Column.BLOCKED))

        stats = compute_dwell_stats([task], log, _at(100))
        assert stats[Column.IDEA] == DwellStat(Column.IDEA, 10_000, 1)
        assert stats[Column.WORKING_ON] == DwellStat(Column.WORKING_ON, 30_000, 1)
        assert stats[Column.BLOCKED] == DwellStat(Column.BLOCKED, 60_000, 1)
        for column in (Column.APPROVED_IDEA, Column.READY_FOR_REVIEW, Column.DONE):
            assert stats[column].average_ms is None
            assert not stats[column].has_data

    def test_scenario_straight_to_done(self):
        task = Task(task_id="U", title="U", column=Column.DONE)
        log = _log("U", (0, Column.IDEA), (5, Column.DONE))

        stats = compute_dwell_stats([task], log, _at(3600))
        assert stats[Column.IDEA] == DwellStat(Column.IDEA, 5_000, 1)
        assert stats[Column.DONE].sample_count == 0
        assert stats[Column.DONE].average_ms is None

    def test_average_across_tasks(self):
        a = Task(task_id="a", title="a", column=Column.DONE)
        b = Task(task_id="b", title="b", column=Column.DONE)
        log = _log("a", (0, Column.IDEA), (10, Column.DONE))
        log += _log("b", (0, Column.IDEA), (20, Column.DONE))

        stats = compute_dwell_stats([a, b], log, _at(100))
        assert stats[Column.IDEA] == DwellStat(Column.IDEA, 15_000, 2)

    def test_average_rounds_half_up_to_ms(self):
        a = Task(task_id="a", title="a", column=Column.DONE)
        b = Task(task_id="b", title="b", column=Column.DONE)
        log = _log("a", (0, Column.IDEA), (0.001, Column.DONE))
        log += _log("b", (0, Column.IDEA), (0.002, Column.DONE))

        stats = compute_dwell_stats([a, b], log, _at(1))
        # (1 + 2) / 2 = 1.5 ms
        assert stats[Column.IDEA].average_ms == 2

    def test_revisited_column_counts_each_visit(self):
        task = Task(task_id="T", title="T", column=Column.DONE)
        log = _log(
            "T",
            (0, Column.WORKING_ON), (10, Column.BLOCKED),
            (20, Column.WORKING_ON), (50, Column.DONE),
        )
        stats = compute_dwell_stats([task], log, _at(100))
        assert stats[Column.WORKING_ON] == DwellStat(Column.WORKING_ON, 20_000, 2)
        assert stats[Column.BLOCKED] == DwellStat(Column.BLOCKED, 10_000, 1)

    def test_transitions_for_unknown_tasks_are_ignored(self):
        log = _log("gone", (0, Column.IDEA), (10, Column.BLOCKED))
        stats = compute_dwell_stats([], log, _at(100))
        assert all(s.sample_count == 0 for s in stats.values())

    def test_naive_and_aware_now_agree(self):
        task = Task(task_id="T", title="T", column=Column.BLOCKED)
        log = _log("T", (0, Column.IDEA), (40, Column.BLOCKED))
        aware = _at(100)
        naive = aware.astimezone().replace(tzinfo=None)

        assert compute_dwell_stats([task], log, naive) == compute_dwell_stats([task], log, aware)

    def test_every_column_reported(self):
        stats = compute_dwell_stats([], [], _at(0))
        assert list(stats) == list(Column)

    def test_to_dict(self):
        assert DwellStat(Column.IDEA, None, 0).to_dict() == {
            "column": "idea", "average_ms": None, "samples": 0,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Store integration
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_store_dwell_stats_scenario(store, clock):
    """Dwell stats computed from transitions written by the store"""
    start = clock.now
    store.create("T", "Task T", Column.IDEA)
    clock.advance(seconds=10)
    store.move("T", Column.WORKING_ON)
    clock.advance(seconds=30)
    store.move("T", Column.BLOCKED)

    store.create("U", "Task U", Column.IDEA)
    clock.advance(seconds=5)
    store.move("U", Column.DONE)

    stats = store.dwell_stats(start + timedelta(seconds=100))
    assert stats[Column.IDEA] == DwellStat(Column.IDEA, 7_500, 2)
    assert stats[Column.WORKING_ON] == DwellStat(Column.WORKING_ON, 30_000, 1)
    assert stats[Column.BLOCKED] == DwellStat(Column.BLOCKED, 60_000, 1)
    assert stats[Column.DONE].average_ms is None


def test_store_dwell_stats_does_not_mutate(store, clock):
    store.create("T", "Task T", Column.IDEA)
    before = store.all_history()
    store.dwell_stats(clock.advance(seconds=60))
    assert store.all_history() == before
