"""
Epoch nanosecond time values, the internal time representation of
miniseed, and conversion to calendar times and strings.
"""

from collections import namedtuple
from datetime import date, datetime, timedelta, timezone

NSTMODULUS = 1000000000
"""nanoseconds per second"""

NS_PER_DAY = 86400 * NSTMODULUS

EPOCH_ORDINAL = date(1970, 1, 1).toordinal()

# time string formats
ISOMONTHDAY = 0
"""2023-06-17T04:53:54.468648000"""
ISOMONTHDAY_Z = 1
"""2023-06-17T04:53:54.468648000Z"""
ISOMONTHDAY_DOY = 2
"""2023-06-17 04:53:54.468648000 (168)"""
ISOMONTHDAY_DOY_Z = 3
"""2023-06-17 04:53:54.468648000Z (168)"""
SEEDORDINAL = 4
"""2023,168,04:53:54.468648000"""
UNIXEPOCH = 5
"""1686977634.468648000"""
NANOSECONDEPOCH = 6
"""1686977634468648000"""

NSTimeParts = namedtuple("NSTimeParts", "year yday hour minute second nanosecond")


def time2nstime(year, yday, hour, minute, second, nanosecond) -> int:
    """
    Epoch nanoseconds from year, day of year, hour, minute, second and
    nanosecond values.
    """
    days = date(year, 1, 1).toordinal() + yday - 1 - EPOCH_ORDINAL
    seconds = days * 86400 + hour * 3600 + minute * 60 + second
    return seconds * NSTMODULUS + nanosecond


def nstime2time(nstime: int) -> NSTimeParts:
    """
    Split epoch nanoseconds into year, day of year, hour, minute, second
    and nanosecond.
    """
    days, nsOfDay = divmod(nstime, NS_PER_DAY)
    day = date.fromordinal(EPOCH_ORDINAL + days)
    secOfDay, nanosecond = divmod(nsOfDay, NSTMODULUS)
    hour, rem = divmod(secOfDay, 3600)
    minute, second = divmod(rem, 60)
    yday = day.toordinal() - date(day.year, 1, 1).toordinal() + 1
    return NSTimeParts(day.year, yday, hour, minute, second, nanosecond)


def nstime2datetime(nstime: int) -> datetime:
    """
    Timezone aware UTC datetime for epoch nanoseconds.

    datetime only holds microseconds, extra nanoseconds are truncated.
    """
    parts = nstime2time(nstime)
    st = datetime(
        parts.year,
        1,
        1,
        hour=parts.hour,
        minute=parts.minute,
        second=parts.second,
        microsecond=parts.nanosecond // 1000,
        tzinfo=timezone.utc,
    )
    # start Jan 1, so shift by yday minus 1
    return st + timedelta(days=parts.yday - 1)


def nstime2timestr(nstime: int, timeformat=SEEDORDINAL, subseconds=True) -> str:
    """
    Format epoch nanoseconds as a string.

    timeformat is one of the format constants in this module, default
    SEEDORDINAL, year, day of year and time. If subseconds is true the
    nanoseconds are included as 9 digits.
    """
    if timeformat == NANOSECONDEPOCH:
        return f"{nstime}"
    if timeformat == UNIXEPOCH:
        secs, nanos = divmod(nstime, NSTMODULUS)
        return f"{secs}.{nanos:09d}" if subseconds else f"{secs}"

    parts = nstime2time(nstime)
    frac = f".{parts.nanosecond:09d}" if subseconds else ""
    hms = f"{parts.hour:02d}:{parts.minute:02d}:{parts.second:02d}{frac}"
    if timeformat == SEEDORDINAL:
        return f"{parts.year:04d},{parts.yday:03d},{hms}"

    day = date.fromordinal(date(parts.year, 1, 1).toordinal() + parts.yday - 1)
    ymd = f"{day.year:04d}-{day.month:02d}-{day.day:02d}"
    if timeformat == ISOMONTHDAY:
        return f"{ymd}T{hms}"
    if timeformat == ISOMONTHDAY_Z:
        return f"{ymd}T{hms}Z"
    if timeformat == ISOMONTHDAY_DOY:
        return f"{ymd} {hms} ({parts.yday:03d})"
    if timeformat == ISOMONTHDAY_DOY_Z:
        return f"{ymd} {hms}Z ({parts.yday:03d})"
    raise ValueError(f"unknown time format: {timeformat}")


def isoWZ(time) -> str:
    """
    Convert to ISO8601.

    Convert a datetime object to an ISO8601 string, replacing the ending
    timezone with a Z if it is +00:00.
    """
    return time.isoformat().replace("+00:00", "Z")
