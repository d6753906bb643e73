from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from dentos.utils.date_utils import (
    ensure_utc,
    is_on_day,
    is_in_month,
    parse_datetime,
    whole_days_since,
)

UTC = timezone.utc
MADRID = ZoneInfo("Europe/Madrid")


@pytest.mark.unit
def test_ensure_utc_reads_naive_values_as_utc():
    assert ensure_utc(datetime(2025, 3, 1, 10, 0)) == datetime(2025, 3, 1, 10, 0, tzinfo=UTC)
    assert ensure_utc(None) is None


@pytest.mark.unit
def test_parse_datetime_accepts_trailing_z():
    assert parse_datetime("2025-03-12T10:00:00Z") == datetime(2025, 3, 12, 10, 0, tzinfo=UTC)


@pytest.mark.unit
def test_parse_datetime_without_offset_uses_given_zone():
    # Madrid is UTC+1 in March before the DST switch
    assert parse_datetime("2025-03-12T10:00:00", MADRID) == datetime(2025, 3, 12, 9, 0, tzinfo=UTC)


@pytest.mark.unit
def test_parse_datetime_rejects_garbage():
    with pytest.raises(ValueError):
        parse_datetime("mañana")


@pytest.mark.unit
def test_is_in_month_uses_local_calendar():
    # 23:30 UTC on Jan 31 is already February in Madrid
    instant = datetime(2025, 1, 31, 23, 30, tzinfo=UTC)
    assert is_in_month(instant, 2025, 2, MADRID)
    assert is_in_month(instant, 2025, 1, UTC)
    assert not is_in_month(None, 2025, 1, UTC)


@pytest.mark.unit
def test_is_on_day_uses_local_calendar():
    assert is_on_day(datetime(2025, 3, 12, 23, 59, tzinfo=UTC), date(2025, 3, 12), UTC)
    assert not is_on_day(datetime(2025, 3, 12, 23, 30, tzinfo=UTC), date(2025, 3, 12), MADRID)
    assert not is_on_day(None, date(2025, 3, 12), UTC)


@pytest.mark.unit
def test_whole_days_since_rounds_up():
    now = datetime(2025, 3, 20, tzinfo=UTC)
    assert whole_days_since(now - timedelta(days=3), now) == 3
    assert whole_days_since(now - timedelta(days=3, minutes=1), now) == 4
