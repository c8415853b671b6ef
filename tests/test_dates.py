import itertools
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from notion_notifier.dates import (
    WEEKDAY_CODES,
    add_days,
    current_weekday_short,
    next_business_day,
    parse_iso,
    to_iso_utc,
)

LAGOS = ZoneInfo("Africa/Lagos")


def sample_instants():
    start = datetime(2024, 1, 1, 0, 15, tzinfo=timezone.utc)
    # Two weeks in 7h steps so every weekday and hour band gets covered
    return [start + timedelta(hours=7 * i) for i in range(48)]


def test_friday_moves_to_monday():
    assert next_business_day("2024-03-08T09:00:00Z") == "2024-03-11T09:00:00Z"


def test_weekday_moves_to_next_day():
    assert next_business_day("2024-03-05T09:00:00Z") == "2024-03-06T09:00:00Z"


def test_weekend_is_evaluated_in_fixed_timezone():
    # 23:30 UTC is already the next day in Lagos (UTC+1)
    assert current_weekday_short(LAGOS, "2024-03-08T23:30:00Z") == "Sat"
    assert next_business_day("2024-03-07T23:30:00Z", LAGOS) == "2024-03-10T23:30:00Z"


def test_never_lands_on_weekend_for_any_weekend_pair():
    for weekend in itertools.combinations(WEEKDAY_CODES, 2):
        for instant in sample_instants():
            result = next_business_day(instant, LAGOS, weekend)
            assert current_weekday_short(LAGOS, result) not in weekend


def test_preserves_time_of_day():
    for instant in sample_instants():
        result = parse_iso(next_business_day(instant))
        assert result.time() == instant.time()
        assert result > instant


def test_add_seven_days_keeps_weekday():
    for instant in sample_instants():
        assert current_weekday_short(LAGOS, add_days(instant, 7)) == current_weekday_short(LAGOS, instant)


def test_full_week_weekend_falls_back_to_next_day():
    assert next_business_day("2024-03-08T09:00:00Z", LAGOS, WEEKDAY_CODES) == "2024-03-09T09:00:00Z"


def test_parse_iso_accepts_notion_forms():
    assert to_iso_utc(parse_iso("2024-03-08T10:00:00.000+01:00")) == "2024-03-08T09:00:00Z"
    assert to_iso_utc(parse_iso("2024-03-08")) == "2024-03-08T00:00:00Z"
    assert to_iso_utc(parse_iso("2024-03-08T09:00:00")) == "2024-03-08T09:00:00Z"


def test_add_days_normalises_to_utc():
    assert add_days("2024-02-28T23:00:00-02:00", 1) == "2024-03-01T01:00:00Z"
