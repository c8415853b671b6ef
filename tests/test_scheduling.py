from datetime import datetime, timezone

from notion_notifier.dates import parse_iso
from notion_notifier.records import NotificationRecord, RepeatPolicy
from notion_notifier.scheduling import RecordUpdate, reschedule

NOW = datetime(2024, 3, 8, 9, 5, tzinfo=timezone.utc)


def make_record(repeat=RepeatPolicy.DAILY, notify_time="2024-03-08T09:00:00Z"):
    return NotificationRecord(id="p1", notify_flag=True, notify_time=notify_time, repeat_policy=repeat)


def test_one_time_record_is_disabled():
    update = reschedule(make_record(repeat=RepeatPolicy.NONE), NOW)

    assert update == RecordUpdate(notify_flag=False, last_sent="2024-03-08T09:05:00Z")
    assert update.to_properties() == {
        "LastSent": {"date": {"start": "2024-03-08T09:05:00Z"}},
        "Notify": {"checkbox": False},
    }


def test_missing_notify_time_is_disabled():
    update = reschedule(make_record(notify_time=None), NOW)
    assert update.notify_flag is False
    assert update.notify_time is None


def test_repeat_unaware_mode_disables_repeating_records():
    update = reschedule(make_record(), NOW, repeat_aware=False)
    assert update.notify_flag is False


def test_repeating_record_moves_to_next_business_day():
    update = reschedule(make_record(), NOW)

    assert update.notify_flag is True
    assert update.notify_time == "2024-03-11T09:00:00Z"
    assert update.to_properties() == {
        "LastSent": {"date": {"start": "2024-03-08T09:05:00Z"}},
        "Notify Time": {"date": {"start": "2024-03-11T09:00:00Z"}},
        "Notify": {"checkbox": True},
    }


def test_stale_repeating_record_catches_up_past_now():
    # Job was down for a week; the next slot must still be in the future
    update = reschedule(make_record(notify_time="2024-02-28T09:00:00Z"), NOW)

    assert update.notify_time == "2024-03-11T09:00:00Z"
    assert parse_iso(update.notify_time) > NOW


def test_repeating_record_always_ends_after_now():
    for day in range(1, 29):
        notify_time = f"2024-02-{day:02d}T07:30:00Z"
        update = reschedule(make_record(notify_time=notify_time), NOW)
        assert parse_iso(update.notify_time) > NOW
        assert update.last_sent == "2024-03-08T09:05:00Z"
