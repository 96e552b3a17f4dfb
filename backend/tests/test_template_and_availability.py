from datetime import date, datetime, timezone
from planner.scheduling import HardGap, Slot, TemplateItem, distribute_across_availability, plan_from_template


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_template_items_land_on_their_weekday():
    items = [
        TemplateItem(day_offset=2, hour=18, minute=30, minutes=50, title='Chemistry', notes='ch. 4'),
        TemplateItem(day_offset=0, hour=7, minute=0, minutes=20, title='Vocab'),
    ]
    drafts = plan_from_template(date(2026, 10, 19), items, timezone.utc)
    assert [(d.title, d.scheduled_start, d.scheduled_end) for d in drafts] == [
        ('Chemistry', utc(2026, 10, 21, 18, 30), utc(2026, 10, 21, 19, 20)),
        ('Vocab', utc(2026, 10, 19, 7, 0), utc(2026, 10, 19, 7, 20)),
    ]
    assert drafts[0].notes == 'ch. 4'


AVAILABILITY = {
    '2026-10-20': [Slot(utc(2026, 10, 20, 9), utc(2026, 10, 20, 11))],
    '2026-10-19': [Slot(utc(2026, 10, 19, 14), utc(2026, 10, 19, 15, 30))],
}


def test_distribution_fills_earliest_dates_first():
    result = distribute_across_availability(AVAILABILITY, 45, 180)
    assert [s.start for s in result.sessions] == [
        utc(2026, 10, 19, 14, 0),
        utc(2026, 10, 19, 14, 45),
        utc(2026, 10, 20, 9, 0),
        utc(2026, 10, 20, 9, 45),
    ]
    assert result.minutes_unplaced == 0


def test_hard_gaps_remove_blocked_slots():
    gaps = [HardGap(weekday=1, start='13:00', end='14:30')]
    result = distribute_across_availability(AVAILABILITY, 45, 180, gaps)
    assert len(result.sessions) == 2
    assert all(s.start.date() == date(2026, 10, 20) for s in result.sessions)
    assert result.minutes_unplaced == 90


def test_slots_shorter_than_a_session_are_skipped():
    availability = {'2026-10-19': [Slot(utc(2026, 10, 19, 8), utc(2026, 10, 19, 8, 30))]}
    result = distribute_across_availability(availability, 45, 90)
    assert result.sessions == []
    assert result.minutes_unplaced == 90


def test_unreadable_hard_gap_blocks_nothing():
    availability = {'2026-10-19': [Slot(utc(2026, 10, 19, 7), utc(2026, 10, 19, 8))]}
    result = distribute_across_availability(availability, 30, 60, [HardGap(weekday=1, start='9:00', end='10:00')])
    assert [s.start for s in result.sessions] == [utc(2026, 10, 19, 7, 0), utc(2026, 10, 19, 7, 30)]
    assert result.minutes_unplaced == 0
