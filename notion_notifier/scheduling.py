from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, Optional

from notion_notifier.dates import DEFAULT_TZ, DEFAULT_WEEKEND, next_business_day, parse_iso, to_iso_utc
from notion_notifier.records import (
    PROP_LAST_SENT,
    PROP_NOTIFY,
    PROP_NOTIFY_TIME,
    NotificationRecord,
    RepeatPolicy,
)


@dataclass(frozen=True)
class RecordUpdate:
    """Fields written back after a send. ``notify_time`` is set only when re-arming."""

    notify_flag: bool
    last_sent: str
    notify_time: Optional[str] = None

    def to_properties(self) -> Dict[str, Any]:
        props: Dict[str, Any] = {PROP_LAST_SENT: {"date": {"start": self.last_sent}}}
        if self.notify_time is not None:
            props[PROP_NOTIFY_TIME] = {"date": {"start": self.notify_time}}
        props[PROP_NOTIFY] = {"checkbox": self.notify_flag}
        return props


def reschedule(
    record: NotificationRecord,
    now: datetime,
    tz: tzinfo = DEFAULT_TZ,
    weekend: Iterable[str] = DEFAULT_WEEKEND,
    repeat_aware: bool = True,
) -> RecordUpdate:
    """
    Decide what to write back after ``record`` has been sent.

    One-time records (and every record when ``repeat_aware`` is off) are
    disabled. Repeating records move to the next business day at the same
    clock time, stepping forward until the new time is after ``now``.
    """
    now_iso = to_iso_utc(now)
    if not repeat_aware or record.repeat_policy is RepeatPolicy.NONE or not record.notify_time:
        return RecordUpdate(notify_flag=False, last_sent=now_iso)

    weekend = tuple(weekend)
    next_iso = next_business_day(record.notify_time, tz, weekend)
    while parse_iso(next_iso) <= now:
        next_iso = next_business_day(next_iso, tz, weekend)
    return RecordUpdate(notify_flag=True, last_sent=now_iso, notify_time=next_iso)
