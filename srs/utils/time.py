from datetime import datetime, time, timedelta, timezone as dt_tz


def utc_date(dt):
    """Calendar day of ``dt`` in UTC; the time of day is dropped."""
    return dt.astimezone(dt_tz.utc).date()


def start_of_utc_day(dt):
    return datetime.combine(utc_date(dt), time.min, tzinfo=dt_tz.utc)


def end_of_utc_day(dt):
    return start_of_utc_day(dt) + timedelta(days=1) - timedelta(microseconds=1)
