from datetime import datetime, timedelta, timezone

from mentoring.logic.deadlines import (
    can_respond,
    compute_auto_reject_at,
    deadline_passed,
    get_days_remaining,
    is_expired,
    parse_datetime,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def test_auto_reject_is_three_days_after_match():
    assert compute_auto_reject_at(NOW) == NOW + timedelta(days=3)


def test_days_remaining_rounds_up():
    assert get_days_remaining(NOW + timedelta(days=2, hours=1), NOW) == 3
    assert get_days_remaining(NOW + timedelta(hours=1), NOW) == 1
    assert get_days_remaining(NOW + timedelta(days=3), NOW) == 3


def test_days_remaining_never_negative():
    assert get_days_remaining(NOW - timedelta(days=5), NOW) == 0


def test_days_remaining_accepts_iso_strings():
    assert get_days_remaining("2026-03-03T12:00:00Z", NOW) == 2
    assert get_days_remaining("2026-03-03T14:00:00+02:00", NOW) == 2


def test_days_remaining_unparseable_is_zero():
    assert get_days_remaining("not a date", NOW) == 0
    assert get_days_remaining(None, NOW) == 0


def test_aware_datetimes_are_converted_to_utc():
    aware = datetime(2026, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert parse_datetime(aware) == NOW


def test_expired_requests_cannot_be_answered():
    past = NOW - timedelta(minutes=1)
    assert is_expired(past, NOW)
    assert not can_respond(past, NOW)

    future = NOW + timedelta(days=1)
    assert not is_expired(future, NOW)
    assert can_respond(future, NOW)


def test_deadline_passed_is_strict():
    assert not deadline_passed(NOW, NOW)
    assert deadline_passed(NOW, NOW + timedelta(seconds=1))
    assert not deadline_passed(None, NOW)
