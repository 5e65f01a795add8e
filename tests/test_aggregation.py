"""Summary counts, calendar bucketing and donut layout."""
from datetime import date, datetime, timezone

import pytest

from collabboard.schemas.board import Board
from collabboard.schemas.calendar import CalendarTarget
from collabboard.schemas.task import Task, TaskStatus
from collabboard.services import aggregation


def make_task(task_id, status="todo", board_id="b1", created_at=0):
    return Task(
        id=task_id,
        text=f"task {task_id}",
        status=status,
        board_id=board_id,
        creator_id="alice",
        created_at=created_at,
    )


def epoch_ms(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def test_counts_and_percentages():
    counts = aggregation.counts_by_status([
        make_task("1", "done"), make_task("2", "done"), make_task("3", "todo"),
    ])
    assert (counts.todo, counts.progress, counts.done, counts.total) == (1, 0, 2, 3)
    assert counts.percentages.done == 67
    assert counts.percentages.todo == 33
    assert counts.percentages.progress == 0


def test_percentages_round_half_up():
    tasks = [make_task("t", "todo")] + [make_task(str(n), "done") for n in range(7)]
    counts = aggregation.counts_by_status(tasks)
    assert counts.percentages.todo == 13
    assert counts.percentages.done == 88


def test_no_tasks_means_no_percentages():
    counts = aggregation.counts_by_status([])
    assert counts.total == 0
    assert counts.percentages is None


def test_counts_by_board_ignores_foreign_tasks():
    boards = [
        Board(id="b1", name="One", owner_id="alice", members=["alice"]),
        Board(id="b2", name="Two", owner_id="alice", members=["alice"]),
    ]
    tasks = [
        make_task("1", "done", "b1"),
        make_task("2", "progress", "b1"),
        make_task("3", "todo", "elsewhere"),
    ]
    result = aggregation.counts_by_board(boards, tasks)
    assert [(c.board.id, c.total, c.done) for c in result] == [("b1", 2, 1), ("b2", 0, 0)]
    assert result[1].percentages is None


def test_group_by_status_orders_by_creation():
    tasks = [
        make_task("b", "todo", created_at=20),
        make_task("a", "todo", created_at=20),
        make_task("c", "todo", created_at=10),
        make_task("d", "done", created_at=5),
    ]
    columns = aggregation.group_by_status(tasks)
    assert [t.id for t in columns[TaskStatus.TODO]] == ["c", "a", "b"]
    assert [t.id for t in columns[TaskStatus.DONE]] == ["d"]
    assert columns[TaskStatus.PROGRESS] == []


def test_local_midnight_splits_buckets():
    # Tokyo is UTC+9 all year
    before = epoch_ms(2024, 1, 1, 14, 59, 59)
    after = epoch_ms(2024, 1, 1, 15, 0, 1)
    assert aggregation.local_date_key(before, "Asia/Tokyo") == "2024-01-01"
    assert aggregation.local_date_key(after, "Asia/Tokyo") == "2024-01-02"
    # both instants share a UTC date
    assert aggregation.local_date_key(before, "UTC") == aggregation.local_date_key(after, "UTC")


def test_tasks_by_day_uses_local_zone():
    tasks = [
        make_task("1", created_at=epoch_ms(2024, 1, 1, 14, 59, 59)),
        make_task("2", created_at=epoch_ms(2024, 1, 1, 15, 0, 1)),
    ]
    assert aggregation.tasks_by_day(tasks, "Asia/Tokyo") == {"2024-01-01": 1, "2024-01-02": 1}
    on_second = aggregation.tasks_on_date(tasks, date(2024, 1, 2), "Asia/Tokyo")
    assert [t.id for t in on_second] == ["2"]


def test_targets_on_date():
    targets = [
        CalendarTarget(id="1", text="Demo", date="2024-06-15", owner_id="alice"),
        CalendarTarget(id="2", text="Retro", date="2024-06-16", owner_id="alice"),
    ]
    assert [t.id for t in aggregation.targets_on_date(targets, date(2024, 6, 15))] == ["1"]
    assert [t.id for t in aggregation.targets_on_date(targets, "2024-06-16")] == ["2"]
    assert aggregation.targets_by_day(targets) == {"2024-06-15": 1, "2024-06-16": 1}


def test_date_key_formats():
    assert aggregation.date_key(date(2024, 3, 5)) == "2024-03-05"
    assert aggregation.date_key(datetime(2024, 3, 5, 23, 59)) == "2024-03-05"
    assert aggregation.date_key("2024-03-05") == "2024-03-05"
    with pytest.raises(ValueError):
        aggregation.date_key("March 5th")


def test_month_grid_is_sunday_first():
    # 1 June 2024 was a Saturday
    june = aggregation.month_grid(2024, 6)
    assert june[:6] == [None] * 6
    assert june[6] == date(2024, 6, 1)
    assert len(june) == 36

    # 1 September 2024 was a Sunday
    september = aggregation.month_grid(2024, 9)
    assert september[0] == date(2024, 9, 1)
    assert len(september) == 30


def test_donut_segments():
    counts = aggregation.counts_by_status([
        make_task("1", "done"), make_task("2", "progress"),
        make_task("3", "todo"), make_task("4", "todo"),
    ])
    segments = aggregation.donut_segments(counts, 100.0)
    assert [(s.status, s.length, s.offset) for s in segments] == [
        ("done", 25.0, 75.0),
        ("progress", 25.0, 50.0),
        ("todo", 50.0, 0.0),
    ]


def test_donut_skips_empty_statuses():
    counts = aggregation.counts_by_status([make_task("1", "done"), make_task("2", "todo")])
    segments = aggregation.donut_segments(counts, 100.0)
    assert [(s.status, s.length, s.offset) for s in segments] == [
        ("done", 50.0, 50.0),
        ("todo", 50.0, 0.0),
    ]


def test_donut_without_tasks():
    assert aggregation.donut_segments(aggregation.counts_by_status([]), 100.0) == []
