from datetime import date, datetime, time, timedelta

import pytest

from courtside.calendar_utils import Weekday
from courtside.models import Role, Shift, TrainingSession
from courtside.occurrences import (
    MAX_SKIPPED_OCCURRENCES,
    active_sessions,
    find_session,
    global_schedule_next_7_days,
    lookahead_weeks,
    next_occurrence_for_member,
)
from courtside.recurrence import Recurrence


@pytest.fixture
def fixed_now():
    # A Wednesday.
    return datetime(2024, 1, 10, 12, 0)


def _shift(
    shift_id,
    day,
    hour,
    minute=0,
    *,
    coach="coach-1",
    students=("stu-1",),
    recurrence=Recurrence.WEEKLY,
    start_date=None,
):
    return Shift(
        id=shift_id,
        day_of_week=day,
        start_time=time(hour, minute),
        coach_id=coach,
        student_ids=tuple(students),
        recurrence=recurrence,
        start_date=start_date,
    )


def _session(shift_id, when, *, active=False, completed=False, session_id=None):
    return TrainingSession(
        id=session_id or f"{shift_id}-{when:%Y%m%d}",
        shift_id=shift_id,
        date=when,
        is_active=active,
        completed=completed,
    )


# ---- member view -------------------------------------------------------------


def test_next_occurrence_ranks_by_weekday_then_time(fixed_now):
    shifts = [
        _shift("s-thu", Weekday.THURSDAY, 18),
        _shift("s-mon", Weekday.MONDAY, 9),
    ]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, shifts, [], fixed_now)

    assert occ is not None
    assert occ.shift_id == "s-mon"
    assert occ.date == date(2024, 1, 15)
    assert occ.starts_at == datetime(2024, 1, 15, 9, 0)
    assert occ.week_offset == 0
    assert occ.label == "Monday"


def test_next_occurrence_monday_beats_friday_at_same_offset(fixed_now):
    shifts = [
        _shift("fri", Weekday.FRIDAY, 10),
        _shift("mon", Weekday.MONDAY, 10),
    ]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, shifts, [], fixed_now)

    # 0*1440 + 600 against 4*1440 + 600, both in week offset 0.
    assert occ.shift_id == "mon"


def test_next_occurrence_week_offset_outweighs_weekday(fixed_now):
    shifts = [
        _shift("wed-am", Weekday.WEDNESDAY, 10),  # elapsed, so offset 1
        _shift("sun-pm", Weekday.SUNDAY, 20),
    ]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, shifts, [], fixed_now)

    assert occ.shift_id == "sun-pm"
    assert occ.date == date(2024, 1, 14)


def test_next_occurrence_moves_past_elapsed_slot(fixed_now):
    morning = _shift("s-morning", Weekday.WEDNESDAY, 10, students=("stu-1",))
    evening = _shift("s-evening", Weekday.WEDNESDAY, 18, students=("stu-2",))

    occ_morning = next_occurrence_for_member(
        "stu-1", Role.STUDENT, [morning, evening], [], fixed_now
    )
    occ_evening = next_occurrence_for_member(
        "stu-2", Role.STUDENT, [morning, evening], [], fixed_now
    )

    assert occ_morning.date == date(2024, 1, 17)
    assert occ_morning.week_offset == 1
    assert occ_morning.label == "Wednesday"
    assert occ_evening.date == date(2024, 1, 10)
    assert occ_evening.label == "today"


def test_next_occurrence_skips_active_and_completed_sessions(fixed_now):
    shift = _shift("s-thu", Weekday.THURSDAY, 18)
    sessions = [
        _session("s-thu", datetime(2024, 1, 11, 18, 0), completed=True),
        _session("s-thu", datetime(2024, 1, 18, 18, 0), active=True),
    ]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, [shift], sessions, fixed_now)

    assert occ.date == date(2024, 1, 25)
    assert occ.week_offset == 2
    assert occ.session is None


def test_next_occurrence_biweekly_steps_two_weeks(fixed_now):
    shift = _shift("s-bi", Weekday.THURSDAY, 18, recurrence=Recurrence.BIWEEKLY)
    sessions = [_session("s-bi", datetime(2024, 1, 11, 18, 0), completed=True)]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, [shift], sessions, fixed_now)

    assert occ.date == date(2024, 1, 25)
    assert occ.week_offset == 2


def test_next_occurrence_ignores_sessions_that_do_not_occupy_slot(fixed_now):
    shift = _shift("s-thu", Weekday.THURSDAY, 18)
    scheduled = _session("s-thu", datetime(2024, 1, 11, 18, 0))

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, [shift], [scheduled], fixed_now)

    assert occ.date == date(2024, 1, 11)
    assert occ.session == scheduled


def test_next_occurrence_gives_up_after_lookahead(fixed_now):
    shift = _shift("s-thu", Weekday.THURSDAY, 18)
    first = datetime(2024, 1, 11, 18, 0)
    taken = [
        _session("s-thu", first + timedelta(weeks=i), completed=True)
        for i in range(MAX_SKIPPED_OCCURRENCES)
    ]

    assert lookahead_weeks(shift) == MAX_SKIPPED_OCCURRENCES
    assert next_occurrence_for_member("stu-1", Role.STUDENT, [shift], taken, fixed_now) is None

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, [shift], taken[:-1], fixed_now)
    assert occ.date == date(2024, 3, 14)
    assert occ.week_offset == MAX_SKIPPED_OCCURRENCES - 1


def test_next_occurrence_never_returns_taken_slot(fixed_now):
    shifts = [
        _shift("a", Weekday.WEDNESDAY, 18),
        _shift("b", Weekday.THURSDAY, 7),
        _shift("c", Weekday.SATURDAY, 10, recurrence=Recurrence.BIWEEKLY),
    ]
    sessions = [
        _session("a", datetime(2024, 1, 10, 18, 0), active=True),
        _session("b", datetime(2024, 1, 11, 7, 0), completed=True),
        _session("c", datetime(2024, 1, 13, 10, 0), completed=True),
        _session("a", datetime(2024, 1, 17, 18, 0), completed=True),
    ]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, shifts, sessions, fixed_now)

    taken = {(s.shift_id, s.day) for s in sessions if s.occupies_slot}
    assert (occ.shift_id, occ.date) not in taken
    assert occ.shift_id == "b"
    assert occ.date == date(2024, 1, 18)


def test_next_occurrence_roles(fixed_now):
    shifts = [_shift("s-thu", Weekday.THURSDAY, 18, coach="coach-1", students=("stu-1",))]

    coach_occ = next_occurrence_for_member("coach-1", Role.COACH, shifts, [], fixed_now)
    assert coach_occ.shift_id == "s-thu"

    assert next_occurrence_for_member("coach-1", Role.STUDENT, shifts, [], fixed_now) is None
    assert next_occurrence_for_member("stu-1", Role.COACH, shifts, [], fixed_now) is None
    assert next_occurrence_for_member("stu-1", Role.ADMIN, shifts, [], fixed_now) is None
    assert next_occurrence_for_member("stu-9", "STUDENT", shifts, [], fixed_now) is None


def test_next_occurrence_ties_break_on_shift_id(fixed_now):
    shifts = [
        _shift("z-shift", Weekday.FRIDAY, 19),
        _shift("a-shift", Weekday.FRIDAY, 19),
    ]

    occ = next_occurrence_for_member("stu-1", Role.STUDENT, shifts, [], fixed_now)

    assert occ.shift_id == "a-shift"


# ---- admin view --------------------------------------------------------------


def test_global_schedule_window_and_elapsed_slots(fixed_now):
    shifts = [
        _shift("A", Weekday.WEDNESDAY, 10),
        _shift("B", Weekday.WEDNESDAY, 18),
        _shift("C", Weekday.THURSDAY, 18),
        _shift("D", Weekday.TUESDAY, 9),
    ]

    result = global_schedule_next_7_days(shifts, [], fixed_now)

    assert [(o.shift_id, o.date) for o in result] == [
        ("B", date(2024, 1, 10)),
        ("C", date(2024, 1, 11)),
        ("D", date(2024, 1, 16)),
        ("A", date(2024, 1, 17)),
    ]


def test_global_schedule_keeps_active_session_after_start(fixed_now):
    shift = _shift("A", Weekday.WEDNESDAY, 10)
    running = _session("A", datetime(2024, 1, 10, 10, 0), active=True)

    result = global_schedule_next_7_days([shift], [running], fixed_now)

    assert [o.date for o in result] == [date(2024, 1, 10), date(2024, 1, 17)]
    assert result[0].session == running
    assert result[0].is_active
    assert not result[1].is_active


def test_global_schedule_skips_completed(fixed_now):
    shift = _shift("C", Weekday.THURSDAY, 18)
    done = _session("C", datetime(2024, 1, 11, 18, 0), completed=True)

    assert global_schedule_next_7_days([shift], [done], fixed_now) == []


def test_global_schedule_biweekly_parity():
    now = datetime(2024, 1, 8, 10, 0)  # Monday, after the 09:00 slot
    on_week = _shift(
        "bi-on", Weekday.MONDAY, 9, recurrence=Recurrence.BIWEEKLY, start_date=date(2024, 1, 1)
    )
    off_week = _shift(
        "bi-off", Weekday.MONDAY, 9, recurrence=Recurrence.BIWEEKLY, start_date=date(2024, 1, 8)
    )

    result = global_schedule_next_7_days([on_week, off_week], [], now)

    assert [(o.shift_id, o.date) for o in result] == [("bi-on", date(2024, 1, 15))]


def test_global_schedule_biweekly_without_anchor_only_this_week(fixed_now):
    elapsed = _shift("bi-am", Weekday.WEDNESDAY, 10, recurrence=Recurrence.BIWEEKLY)
    upcoming = _shift("bi-pm", Weekday.WEDNESDAY, 18, recurrence=Recurrence.BIWEEKLY)

    result = global_schedule_next_7_days([elapsed, upcoming], [], fixed_now)

    assert [(o.shift_id, o.date) for o in result] == [("bi-pm", date(2024, 1, 10))]


def test_global_schedule_one_off_only_on_its_date(fixed_now):
    inside = _shift(
        "once-in", Weekday.THURSDAY, 18, recurrence=Recurrence.ONE_OFF, start_date=date(2024, 1, 11)
    )
    outside = _shift(
        "once-out", Weekday.THURSDAY, 18, recurrence=Recurrence.ONE_OFF, start_date=date(2024, 2, 1)
    )

    result = global_schedule_next_7_days([inside, outside], [], fixed_now)

    assert [o.shift_id for o in result] == ["once-in"]


def test_global_schedule_never_exceeds_window_or_duplicates(fixed_now):
    shifts = [
        _shift(f"{day.name}-{hour}", day, hour)
        for day in Weekday
        for hour in (7, 13, 21)
    ]

    result = global_schedule_next_7_days(shifts, [], fixed_now)

    keys = [(o.shift_id, o.date) for o in result]
    assert len(keys) == len(set(keys))
    assert all(o.starts_at - fixed_now <= timedelta(days=7) for o in result)
    assert [o.starts_at for o in result] == sorted(o.starts_at for o in result)
    assert len(result) == len(shifts)


# ---- helpers -----------------------------------------------------------------


def test_find_session_prefers_occupying_record():
    day = datetime(2024, 1, 11, 18, 0)
    stale = _session("s", day, session_id="stale")
    live = _session("s", day, active=True, session_id="live")

    assert find_session([stale, live], "s", day.date()).id == "live"
    assert find_session([stale], "s", day.date()).id == "stale"
    assert find_session([stale], "other", day.date()) is None


def test_active_sessions_lists_running_only():
    running = _session("a", datetime(2024, 1, 10, 18, 0), active=True)
    done = _session("b", datetime(2024, 1, 9, 18, 0), completed=True)

    assert active_sessions([done, running]) == [running]
