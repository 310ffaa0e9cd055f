# Copyright 2018 Brian T. Park
#
# MIT License.

"""
Low level helpers shared by the extractor and the period builder: offset
strings, day-of-month expressions of the ON and UNTIL fields, rule selection
for a given year, conversions between the 'wall', 'standard' and 'utc'
reference frames, gregorian seconds, and abbreviation formatting.
"""

import datetime
from typing import List
from typing import Tuple

from tzperiods.data_types.tz_types import FRAME_STANDARD
from tzperiods.data_types.tz_types import FRAME_UTC
from tzperiods.data_types.tz_types import FRAME_WALL
from tzperiods.data_types.tz_types import MAX_TIME
from tzperiods.data_types.tz_types import MIN_TIME
from tzperiods.data_types.tz_types import TO_YEAR_MAX
from tzperiods.data_types.tz_types import TO_YEAR_ONLY
from tzperiods.data_types.tz_types import TimeValue
from tzperiods.data_types.tz_types import ZoneRule

# ISO-8601 specifies Monday=1, Sunday=7
WEEK_TO_WEEK_INDEX = {
    'Mon': 1,
    'Tue': 2,
    'Wed': 3,
    'Thu': 4,
    'Fri': 5,
    'Sat': 6,
    'Sun': 7,
}

SECONDS_PER_DAY = 86400

# Number of days in year 0 of the proleptic Gregorian calendar, which is a
# leap year. datetime.date.toordinal() counts 0001-01-01 as day 1.
DAYS_IN_YEAR_ZERO = 366


def weekday_to_number(name: str) -> int:
    """Convert 'Mon', 'mon', 'Monday' into 1, ..., 'Sun' into 7. Only the
    first 3 letters are significant.
    """
    index = WEEK_TO_WEEK_INDEX.get(name[:3].capitalize())
    if index is None:
        raise Exception(f'Invalid day of week: {name}')
    return index


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in the given (year, month). The
    month is usually 1-12, but can be 0 to indicate December of the previous
    year, and 13 to indicate Jan of the following year.
    """
    DAYS_IN_MONTH = [31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
    is_leap = (year % 4 == 0) and ((year % 100 != 0) or (year % 400) == 0)
    days = DAYS_IN_MONTH[(month - 1) % 12]
    if month == 2:
        days += is_leap
    return days


def last_weekday_of_month(
    year: int, month: int, weekday: int,
) -> datetime.date:
    """Return the last day of the month which falls on the ISO 'weekday'
    (e.g. 'lastSun').
    """
    last_date = datetime.date(year, month, days_in_month(year, month))
    shift = (last_date.isoweekday() - weekday + 7) % 7
    return last_date - datetime.timedelta(days=shift)


def first_weekday_of_month_at_least(
    year: int, month: int, weekday: int, minimum: int,
) -> datetime.date:
    """Return the first day on or after the 'minimum' day of the month which
    falls on the ISO 'weekday' (e.g. 'Sun>=8'). The result can shift into the
    following month.
    """
    limit_date = datetime.date(year, month, minimum)
    shift = (weekday - limit_date.isoweekday() + 7) % 7
    return limit_date + datetime.timedelta(days=shift)


def last_weekday_of_month_at_most(
    year: int, month: int, weekday: int, maximum: int,
) -> datetime.date:
    """Return the last day on or before the 'maximum' day of the month which
    falls on the ISO 'weekday' (e.g. 'Sun<=25'). The result can shift into the
    previous month.
    """
    limit_date = datetime.date(year, month, maximum)
    shift = (limit_date.isoweekday() - weekday + 7) % 7
    return limit_date - datetime.timedelta(days=shift)


def parse_on_day_string(on_string: str) -> Tuple[int, int]:
    """Parse things like "Sun>=1", "lastSun", "20", "Fri<=2".
    Returns (on_day_of_week, on_day_of_month) where
        (0, dayOfMonth) = exact match on dayOfMonth
        (dayOfWeek, dayOfMonth) = matches dayOfWeek>=dayOfMonth
        (dayOfWeek, -dayOfMonth) = matches dayOfWeek<=dayOfMonth
        (dayOfWeek, 0) = matches lastDayOfWeek

    where
        dayOfWeek is represented by a number (Mon=1, ..., Sun=7),
        dayOfMonth is 0, 1-31 (if >=), or (-1)-(-31) (if <=).

    Raises an Exception on a syntax error.
    """
    if on_string.isdigit():
        day_of_month = int(on_string)
        if day_of_month < 1 or day_of_month > 31:
            raise Exception(f'Invalid day of month: {on_string}')
        return (0, day_of_month)

    if on_string[:4] == 'last':
        return (weekday_to_number(on_string[4:]), 0)

    greater_than_equal_index = on_string.find('>=')
    if greater_than_equal_index >= 0:
        day_of_week = on_string[:greater_than_equal_index]
        day_of_month = on_string[greater_than_equal_index + 2:]
        if not day_of_month.isdigit():
            raise Exception(f'Invalid day expression: {on_string}')
        return (weekday_to_number(day_of_week), int(day_of_month))

    less_than_equal_index = on_string.find('<=')
    if less_than_equal_index >= 0:
        day_of_week = on_string[:less_than_equal_index]
        day_of_month = on_string[less_than_equal_index + 2:]
        if not day_of_month.isdigit():
            raise Exception(f'Invalid day expression: {on_string}')
        return (weekday_to_number(day_of_week), -int(day_of_month))

    raise Exception(f'Invalid day expression: {on_string}')


def tz_day_to_date(year: int, month: int, on_day: str) -> datetime.date:
    """Resolve the ON (or UNTIL day) expression into an actual date. The
    'Sun>=N' and 'Sun<=N' forms may land in the adjacent month.
    """
    on_day_of_week, on_day_of_month = parse_on_day_string(on_day)
    if on_day_of_week == 0:
        return datetime.date(year, month, on_day_of_month)
    if on_day_of_month == 0:
        return last_weekday_of_month(year, month, on_day_of_week)
    if on_day_of_month > 0:
        return first_weekday_of_month_at_least(
            year, month, on_day_of_week, on_day_of_month)
    return last_weekday_of_month_at_most(
        year, month, on_day_of_week, -on_day_of_month)


def string_amount_to_secs(amount: str) -> int:
    """Convert the offset strings of the STDOFF, RULES, SAVE, AT and UNTIL
    fields ('-0:01:15', '1:00', '2:00:00', '0') into seconds. The sign is
    taken from the hours field and applies to the whole value.
    """
    if amount == '0':
        return 0

    elems = amount.split(':')
    if len(elems) > 3 or not amount:
        raise Exception(f'Invalid offset string: {amount}')

    hours = elems[0]
    sign = 1
    if hours.startswith('-'):
        sign = -1
        hours = hours[1:]
    elif hours.startswith('+'):
        hours = hours[1:]

    fields = [hours] + elems[1:]
    for field in fields:
        if not field.isdigit():
            raise Exception(f'Invalid offset string: {amount}')

    hour = int(fields[0])
    minute = int(fields[1]) if len(fields) > 1 else 0
    second = int(fields[2]) if len(fields) > 2 else 0
    if minute > 59 or second > 59:
        raise Exception(f'Invalid offset string: {amount}')
    return sign * hms_to_seconds(hour, minute, second)


def seconds_to_hms(seconds: int) -> Tuple[int, int, int]:
    """Convert seconds to (h,m,s). Works only for positive seconds.
    """
    s = seconds % 60
    minutes = seconds // 60
    m = minutes % 60
    h = minutes // 60
    return (h, m, s)


def hms_to_seconds(h: int, m: int, s: int) -> int:
    """Convert h:m:s to seconds.
    """
    return (h * 60 + m) * 60 + s


# -----------------------------------------------------------------------------
# Rule selection.
# -----------------------------------------------------------------------------

def rule_applies_for_year(rule: ZoneRule, year: int) -> bool:
    """Return True if the [FROM, TO] years of the rule include 'year'."""
    from_year = rule['from_year']
    to_year = rule['to_year']
    if year < from_year:
        return False
    if to_year == TO_YEAR_MAX:
        return True
    if to_year == TO_YEAR_ONLY:
        return year == from_year
    assert isinstance(to_year, int)
    return year <= to_year


def rules_for_year(rules: List[ZoneRule], year: int) -> List[ZoneRule]:
    """Return the rules which apply to 'year', sorted by the month and then by
    the resolved day of month of their transition.
    """
    matches = [rule for rule in rules if rule_applies_for_year(rule, year)]
    return sorted(
        matches,
        key=lambda rule: (
            rule['in_month'],
            tz_day_to_date(year, rule['in_month'], rule['on_day']),
        ),
    )


def time_for_rule(rule: ZoneRule, year: int) -> int:
    """Return the transition time of the rule in 'year' as gregorian seconds,
    expressed in the reference frame given by the rule's AT suffix.
    """
    date = tz_day_to_date(year, rule['in_month'], rule['on_day'])
    return date_to_gregorian_seconds(date) + rule['at_seconds']


# -----------------------------------------------------------------------------
# Reference frames.
# -----------------------------------------------------------------------------

def datetime_to_utc(
    seconds: int, frame: str, utc_offset: int, std_offset: int,
) -> int:
    """Convert gregorian 'seconds' expressed in 'frame' into UTC."""
    if frame == FRAME_UTC:
        return seconds
    if frame == FRAME_STANDARD:
        return seconds - utc_offset
    if frame == FRAME_WALL:
        return seconds - utc_offset - std_offset
    raise Exception(f'Invalid frame: {frame}')


def standard_time_from_utc(utc: TimeValue, utc_offset: int) -> TimeValue:
    if utc == MIN_TIME or utc == MAX_TIME:
        return utc
    assert isinstance(utc, int)
    return utc + utc_offset


def wall_time_from_utc(
    utc: TimeValue, utc_offset: int, std_offset: int,
) -> TimeValue:
    if utc == MIN_TIME or utc == MAX_TIME:
        return utc
    assert isinstance(utc, int)
    return utc + utc_offset + std_offset


# -----------------------------------------------------------------------------
# Gregorian seconds, counted from 0000-01-01 00:00:00.
# -----------------------------------------------------------------------------

def date_to_gregorian_seconds(date: datetime.date) -> int:
    """Return the gregorian seconds of the midnight which starts 'date'."""
    days = date.toordinal() - 1 + DAYS_IN_YEAR_ZERO
    return days * SECONDS_PER_DAY


def datetime_to_gregorian_seconds(dt: datetime.datetime) -> int:
    """Convert the naive datetime into gregorian seconds. Any tzinfo is
    ignored, so the result is in the same frame as 'dt'.
    """
    return (
        date_to_gregorian_seconds(dt.date())
        + hms_to_seconds(dt.hour, dt.minute, dt.second)
    )


def gregorian_seconds_to_datetime(seconds: int) -> datetime.datetime:
    """Convert gregorian seconds into a naive datetime. Valid for years 1 and
    later.
    """
    days, remainder = divmod(seconds, SECONDS_PER_DAY)
    date = datetime.date.fromordinal(days + 1 - DAYS_IN_YEAR_ZERO)
    h, m, s = seconds_to_hms(remainder)
    return datetime.datetime(date.year, date.month, date.day, h, m, s)


# -----------------------------------------------------------------------------
# Abbreviations.
# -----------------------------------------------------------------------------

def period_abbreviation(
    format: str, std_offset: int, letter: str, utc_offset: int,
) -> str:
    """Resolve the FORMAT of a ZONE line into the abbreviation of a period.

    * 'A/B' selects A during standard time (std_offset == 0), B otherwise.
    * '%s' is replaced by the LETTER of the rule, with '-' meaning ''.
    * '%z' is replaced by the total UTC offset in the '+hh[mm[ss]]' form.
    * Anything else is used verbatim.
    """
    if '/' in format:
        standard, daylight = format.split('/', 1)
        return standard if std_offset == 0 else daylight
    if '%s' in format:
        return format.replace('%s', '' if letter == '-' else letter)
    if '%z' in format:
        return format.replace(
            '%z', numeric_abbreviation(utc_offset + std_offset))
    return format


def numeric_abbreviation(offset: int) -> str:
    """Format the total UTC offset as '+hh', '+hhmm' or '+hhmmss', with
    the shortest form which loses no information.
    """
    sign = '-' if offset < 0 else '+'
    h, m, s = seconds_to_hms(abs(offset))
    if s != 0:
        return f'{sign}{h:02}{m:02}{s:02}'
    if m != 0:
        return f'{sign}{h:02}{m:02}'
    return f'{sign}{h:02}'
