from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo
from planner.scheduling import CapacityBucket, aggregate_capacity, day_index_of, week_stats

MONDAY = datetime(2026, 10, 19, tzinfo=timezone.utc)


def session(day: int, hour: int, minutes: int, actual=None):
    start = MONDAY + timedelta(days=day, hours=hour)
    actual_start, actual_end = actual or (None, None)
    return SimpleNamespace(
        scheduled_start=start,
        scheduled_end=start + timedelta(minutes=minutes),
        actual_start=actual_start,
        actual_end=actual_end,
    )


def test_capacity_buckets_by_day_and_flags_overload():
    sessions = [session(0, 9, 60), session(0, 14, 90), session(2, 18, 30), session(7, 9, 60), session(-1, 9, 60)]
    buckets = aggregate_capacity(sessions, MONDAY, 120)
    assert len(buckets) == 7
    assert buckets[0] == CapacityBucket(day_index=0, used_minutes=150, total_minutes=120)
    assert buckets[0].overcapacity
    assert buckets[0].percent == 100
    assert buckets[2].used_minutes == 30
    assert buckets[2].percent == 25
    assert not buckets[2].overcapacity
    assert sum(b.used_minutes for b in buckets) == 180


def test_capacity_with_per_day_totals():
    buckets = aggregate_capacity([session(5, 10, 45)], MONDAY, [60, 60, 60, 60, 60, 30, 0])
    assert [b.total_minutes for b in buckets] == [60, 60, 60, 60, 60, 30, 0]
    assert buckets[5].overcapacity
    assert buckets[6].percent == 0


def test_capacity_accepts_mappings_with_iso_strings():
    rows = [{'scheduledStart': '2026-10-20T09:00:00Z', 'scheduledEnd': '2026-10-20T09:50:00Z'}]
    assert aggregate_capacity(rows, MONDAY, 120)[1].used_minutes == 50


def test_week_stats_counts_actuals_only_when_complete():
    a_start = MONDAY + timedelta(days=1, hours=9, minutes=5)
    sessions = [
        session(1, 9, 60, actual=(a_start, a_start + timedelta(minutes=50))),
        session(1, 14, 30, actual=(a_start, None)),
        session(3, 8, 45),
        session(9, 8, 45),
    ]
    days = week_stats(sessions, MONDAY)
    assert len(days) == 7
    assert (days[1].planned, days[1].actual, days[1].session_count) == (90, 50, 2)
    assert (days[3].planned, days[3].actual, days[3].session_count) == (45, 0, 1)
    assert sum(d.session_count for d in days) == 3


def test_dst_week_buckets_by_elapsed_time():
    zurich = ZoneInfo('Europe/Zurich')
    monday = datetime(2026, 10, 19, tzinfo=zurich)
    # clocks go back on Sunday 25 October, so the local week is 169 hours long
    late_sunday = datetime(2026, 10, 25, 23, 30, tzinfo=zurich)
    row = SimpleNamespace(scheduled_start=late_sunday, scheduled_end=late_sunday + timedelta(minutes=20),
                          actual_start=None, actual_end=None)
    assert day_index_of(monday, late_sunday) == 7
    assert [b.used_minutes for b in aggregate_capacity([row], monday, 120)] == [0] * 7
    assert sum(d.session_count for d in week_stats([row], monday)) == 0
