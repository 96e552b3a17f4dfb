from datetime import datetime, timedelta, timezone
from planner.scheduling import (
    SuggestionRequest,
    SuggestionWindow,
    TimeOfDay,
    resolve_preferred_start,
    suggest_slots,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _request(**overrides) -> SuggestionRequest:
    params = dict(
        title='Maths revision',
        session_minutes=45,
        total_minutes=180,
        window=SuggestionWindow(
            start='2026-10-19T08:00:00Z',  # Monday
            end='2026-10-23T20:00:00Z',    # Friday
            allowed_weekdays=(1, 2, 3, 4, 5),
        ),
        max_per_day=1,
        gap_minutes=10,
        preferred_start=TimeOfDay(17, 0),
    )
    params.update(overrides)
    return SuggestionRequest(**params)


def test_budget_runs_out_before_friday():
    drafts = suggest_slots(_request())
    assert len(drafts) == 4
    assert [d.scheduled_start for d in drafts] == [utc(2026, 10, day, 17, 0) for day in (19, 20, 21, 22)]
    assert all(d.scheduled_end - d.scheduled_start == timedelta(minutes=45) for d in drafts)
    assert all(d.title == 'Maths revision' for d in drafts)


def test_invalid_minutes_return_nothing():
    assert suggest_slots(_request(session_minutes=0)) == []
    assert suggest_slots(_request(total_minutes=-30)) == []


def test_unreadable_window_returns_nothing():
    window = SuggestionWindow(start='not-a-date', end='2026-10-23T20:00:00Z')
    assert suggest_slots(_request(window=window)) == []


def test_several_sessions_per_day_are_separated_by_gap():
    window = SuggestionWindow(start=utc(2026, 10, 19), end=utc(2026, 10, 20), allowed_weekdays=(1, 2))
    drafts = suggest_slots(_request(
        session_minutes=60, total_minutes=240, window=window,
        max_per_day=2, gap_minutes=15, preferred_start=TimeOfDay(9, 0),
    ))
    assert [(d.scheduled_start, d.scheduled_end) for d in drafts] == [
        (utc(2026, 10, 19, 9, 0), utc(2026, 10, 19, 10, 0)),
        (utc(2026, 10, 19, 10, 15), utc(2026, 10, 19, 11, 15)),
        (utc(2026, 10, 20, 9, 0), utc(2026, 10, 20, 10, 0)),
        (utc(2026, 10, 20, 10, 15), utc(2026, 10, 20, 11, 15)),
    ]


def test_weekend_is_skipped_when_not_allowed():
    window = SuggestionWindow(
        start='2026-10-23T07:00:00Z',  # Friday
        end='2026-10-26T07:00:00Z',    # Monday
        allowed_weekdays=(1, 2, 3, 4, 5),
    )
    drafts = suggest_slots(_request(window=window, total_minutes=450))
    assert [d.scheduled_start.date().isoformat() for d in drafts] == ['2026-10-23', '2026-10-26']


def test_shortfall_is_dropped_silently():
    window = SuggestionWindow(start=utc(2026, 10, 19, 8), end=utc(2026, 10, 20, 8), allowed_weekdays=(1, 2))
    drafts = suggest_slots(_request(session_minutes=60, total_minutes=300, window=window))
    assert len(drafts) == 2
    assert sum(d.duration_minutes for d in drafts) == 120


def test_remainder_shorter_than_a_session_is_not_scheduled():
    drafts = suggest_slots(_request(total_minutes=100))
    assert len(drafts) == 2
    assert sum(d.duration_minutes for d in drafts) == 90


def test_start_time_falls_back_to_window_start():
    window = SuggestionWindow(start='2026-10-19T08:30:00Z', end='2026-10-20T08:00:00Z')
    drafts = suggest_slots(_request(window=window, preferred_start=None, total_minutes=90))
    assert [d.scheduled_start for d in drafts] == [utc(2026, 10, 19, 8, 30), utc(2026, 10, 20, 8, 30)]


def test_preferred_start_precedence():
    assert resolve_preferred_start('18:15', {'hour': 7, 'minute': 0}) == TimeOfDay(18, 15)
    assert resolve_preferred_start('7pm', {'hh': 7, 'mm': 5}) == TimeOfDay(7, 5)
    assert resolve_preferred_start(None, None) is None
    assert resolve_preferred_start('99:99') == TimeOfDay(23, 59)


def test_local_zone_keeps_wall_clock_across_dst_change():
    window = SuggestionWindow(
        start='2026-10-23T00:00:00+02:00',
        end='2026-10-26T23:00:00+01:00',
        allowed_weekdays=(5, 1),
    )
    drafts = suggest_slots(_request(window=window, timezone='Europe/Zurich'))
    # Friday is still summer time (UTC+2), Monday is winter time (UTC+1)
    assert [d.scheduled_start for d in drafts] == [utc(2026, 10, 23, 15, 0), utc(2026, 10, 26, 16, 0)]
    assert all(d.duration_minutes == 45 for d in drafts)


def test_output_is_chronological_and_within_budget():
    window = SuggestionWindow(start=utc(2026, 10, 1), end=utc(2026, 10, 31))
    for session_minutes, total, per_day in ((25, 400, 3), (50, 1000, 2), (90, 95, 1)):
        drafts = suggest_slots(_request(
            session_minutes=session_minutes, total_minutes=total, window=window,
            max_per_day=per_day, gap_minutes=5,
        ))
        starts = [d.scheduled_start for d in drafts]
        assert starts == sorted(starts)
        assert all(d.duration_minutes == session_minutes for d in drafts)
        assert sum(d.duration_minutes for d in drafts) == total - total % session_minutes
