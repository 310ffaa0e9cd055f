# Copyright 2018 Brian T. Park
#
# MIT License

from collections import OrderedDict
from typing import Collection
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Set
from typing import Union
from typing import cast
from typing_extensions import TypedDict

"""
Data types created or consumed by the extractor, organizer, period builder and
the zone processor. These allow typing checking to be performed using mypy.
Also contains global constants and error classes used by multiple packages.
"""

# -----------------------------------------------------------------------------
# Constants used by various modules.
# -----------------------------------------------------------------------------

# First year of rule expansion for a Zone which starts at -Infinity.
MIN_YEAR: int = 1900

# Last year to use when expanding the Rules of a Zone which never ends.
MAX_YEAR: int = 2203

# Sentinel time values marking the unbounded ends of the timeline.
MIN_TIME: str = 'min'
MAX_TIME: str = 'max'

# Special values of the TO field of a RULE line.
TO_YEAR_ONLY: str = 'only'
TO_YEAR_MAX: str = 'max'

# Reference frames of AT, UNTIL and lookup time points.
FRAME_WALL: str = 'wall'
FRAME_STANDARD: str = 'standard'
FRAME_UTC: str = 'utc'
FRAMES = (FRAME_WALL, FRAME_STANDARD, FRAME_UTC)

# Values of ZoneLine.rules_type.
RULES_NONE: str = 'none'
RULES_AMOUNT: str = 'amount'
RULES_NAMED: str = 'named'

# Number of seconds from 0000-01-01 00:00:00 (the gregorian seconds epoch) to
# the Unix Epoch (1970-01-01 00:00:00).
SECONDS_TO_UNIX_EPOCH: int = 62167219200

# A time point in gregorian seconds, or one of MIN_TIME or MAX_TIME.
TimeValue = Union[int, str]


# -----------------------------------------------------------------------------
# Errors.
# -----------------------------------------------------------------------------

class TzError(Exception):
    """Base class of the errors raised by this package."""


class TzParseError(TzError):
    """A line of a TZ source file could not be parsed."""

    def __init__(
        self, file_name: str, line_number: int, line: str, reason: str,
    ):
        super().__init__(f'{file_name}:{line_number}: {reason}: {line!r}')
        self.file_name = file_name
        self.line_number = line_number
        self.line = line
        self.reason = reason


class ZoneNotFoundError(TzError):
    """The zone name is neither a canonical zone nor an alias."""


class RulesNotFoundError(TzError):
    """A ZONE line refers to a RULE set which does not exist."""


# -----------------------------------------------------------------------------
# Data types produced by extractor.py.
# -----------------------------------------------------------------------------

class ZoneRule(TypedDict):
    """Represents the input records corresponding to the 'RULE' lines in a
    tz database file. Those entries look like this:

    # Rule  NAME    FROM    TO    TYPE IN   ON      AT      SAVE    LETTER
    Rule    US      2007    max   -    Mar  Sun>=8  2:00    1:00    D
    Rule    US      2007    max   -    Nov  Sun>=1  2:00    0       S
    """
    record_type: str  # 'rule'
    name: str  # name of the rule set
    from_year: int
    to_year: Union[int, str]  # year, TO_YEAR_ONLY or TO_YEAR_MAX
    type: str  # always '-', unused
    in_month: int  # month index (1-12)
    on_day: str  # 'lastSun' or 'Sun>=2', or 'dayOfMonth'
    at_seconds: int  # AT converted into seconds since 00:00:00
    at_frame: str  # FRAME_WALL, FRAME_STANDARD or FRAME_UTC
    save_seconds: int  # DST offset from Standard time ('SAVE' field)
    letter: str  # 'D', 'S', '-', but sometimes longer 'DD', 'CAT', etc.
    raw_line: str  # the original RULE line from the TZ file


class ZoneLink(TypedDict):
    """Represents a 'LINK' line:

    # Link  TARGET              LINK-NAME
    Link    Europe/London       Europe/Jersey
    """
    record_type: str  # 'link'
    zone_name: str  # canonical zone
    link_name: str  # alias
    file_name: str  # TZ file which defined the link
    raw_line: str


class UntilTime(TypedDict):
    """The UNTIL field of a ZONE line, with the day expression resolved."""
    year: int
    month: int  # 1-12
    day: int  # 1-31
    seconds: int  # time of day in seconds, can be 24:00 or more
    frame: str  # FRAME_WALL, FRAME_STANDARD or FRAME_UTC
    gregorian_seconds: int  # year/month/day/seconds in gregorian seconds


class ZoneLine(TypedDict):
    """Represents one line of a 'ZONE' entry in a tz database file. Those
    entries look like this:

    # Zone  NAME                STDOFF      RULES   FORMAT  [UNTIL]
    Zone    America/Chicago -5:50:36    -       LMT     1883 Nov 18 12:09:24
                            -6:00       US      C%sT    1920
                            ...
                            -6:00       US      C%sT
    """
    offset_seconds: int  # STDOFF from UTC in seconds
    # RULES_NONE for '-', RULES_AMOUNT for a fixed 'hh:mm' DST offset,
    # RULES_NAMED for a reference to a set of RULE lines.
    rules_type: str
    rules_delta_seconds: int  # fixed DST offset, 0 unless RULES_AMOUNT
    policy_name: Optional[str]  # name of the RULE set if RULES_NAMED
    format: str  # abbreviation format (e.g. P%sT, E%sT, GMT/BST, %z)
    until: Optional[UntilTime]  # None on the last line of the zone
    raw_line: str


class ZoneInfo(TypedDict):
    """A complete 'ZONE' entry, the head line merged with its continuation
    lines.
    """
    record_type: str  # 'zone'
    name: str
    zone_lines: List[ZoneLine]
    file_name: str  # TZ file which defined the zone


# A parsed directive of a TZ file, in file order.
Directive = Union[ZoneRule, ZoneLink, ZoneInfo]

# Map of ruleName -> ZoneRule[], in file order. Created by organizer.py.
RulesMap = Dict[str, List[ZoneRule]]

# Map of zoneName -> ZoneInfo. Created by organizer.py.
ZonesMap = Dict[str, ZoneInfo]

# Map of linkName -> zoneName. Created by organizer.py.
LinksMap = Dict[str, str]

# Map of fileName -> sorted zone and link names defined in that file.
GroupsMap = Dict[str, List[str]]


class LeapSecond(NamedTuple):
    """A 'Leap' line of the 'leapseconds' file, in UTC:

    # Leap  YEAR    MONTH   DAY     HH:MM:SS        CORR    R/S
    Leap    1972    Jun     30      23:59:60        +       S
    """
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    correction: str  # '+' or '-'
    mode: str  # 'S' (stationary) or 'R' (rolling)


# -----------------------------------------------------------------------------
# Data types produced by period_builder.py.
# -----------------------------------------------------------------------------

class TimePoints(TypedDict):
    """A single instant expressed in the three reference frames."""
    utc: TimeValue
    standard: TimeValue  # utc + utc_offset
    wall: TimeValue  # utc + utc_offset + std_offset


# 'from' is a keyword, so the functional syntax is required.
Period = TypedDict('Period', {
    'std_offset': int,  # DST offset in seconds, 0 during standard time
    'utc_offset': int,  # STDOFF of the zone line in seconds
    'from': TimePoints,  # inclusive
    'until': TimePoints,  # exclusive
    'zone_abbr': str,  # e.g. 'CET', 'CEST', '-03'
})

# Map of zoneName -> Period[].
PeriodsMap = Dict[str, List[Period]]


# -----------------------------------------------------------------------------
# Results of TimeZoneData.lookup().
# -----------------------------------------------------------------------------

class Unambiguous(NamedTuple):
    """Exactly one period contains the time point."""
    period: Period


class Ambiguous(NamedTuple):
    """The wall time occurs twice (e.g. DST fall-back). The periods are in
    UTC order.
    """
    first: Period
    second: Period


class Gap(NamedTuple):
    """The wall time never occurs (e.g. DST spring-forward). The periods are
    the ones just before and just after the gap.
    """
    before: Period
    after: Period


LookupResult = Union[Unambiguous, Ambiguous, Gap]


# -----------------------------------------------------------------------------
# Collected notes about removed or notable entries. Used by organizer.py.
# -----------------------------------------------------------------------------

# Map of {name -> Set[reason]} used to collect de-duped error messages or
# warnings. A set() collection does not serialize well to JSON, so
# _sort_comments() converts these into {name -> List[reason]}.
CommentsMap = Dict[str, Collection[str]]


def add_comment(comments: CommentsMap, name: str, reason: str) -> None:
    """Add the human readable 'reason' to the 'comments' CommentsMap.
    """
    reasons = cast(Optional[Set[str]], comments.get(name))
    if not reasons:
        reasons = set()
        comments[name] = reasons
    reasons.add(reason)


def merge_comments(target: CommentsMap, new: CommentsMap) -> None:
    """Merge 'new' CommentsMap into 'target' CommentsMap.
    """
    for name, new_reasons in new.items():
        old_reasons = cast(Optional[Set[str]], target.get(name))
        if not old_reasons:
            old_reasons = set()
            target[name] = old_reasons
        old_reasons.update(new_reasons)


# -----------------------------------------------------------------------------
# The compiled period database which can be rendered into different forms by
# the generators (e.g. JSON, zone list).
# -----------------------------------------------------------------------------

class PeriodsDatabase(TypedDict):
    """The complete compiled representation of the TZ Database files."""

    # Context data.
    tz_version: str
    tz_files: List[str]
    min_year: int
    max_year: int
    num_zones: int
    num_links: int

    # Data from Organizer.
    zone_list: List[str]
    links_map: LinksMap
    removed_links: CommentsMap
    notable_links: CommentsMap

    # Data from PeriodBuilder.
    periods_map: PeriodsMap

    # Data from the 'leapseconds' file.
    leap_seconds: List[LeapSecond]


def create_periods_database(
    tz_version: str,
    tz_files: List[str],
    min_year: int,
    max_year: int,
    links_map: LinksMap,
    removed_links: CommentsMap,
    notable_links: CommentsMap,
    periods_map: PeriodsMap,
    leap_seconds: List[LeapSecond],
) -> PeriodsDatabase:
    """Return an instance of PeriodsDatabase from the various ingredients."""

    return {
        # Context data.
        'tz_version': tz_version,
        'tz_files': tz_files,
        'min_year': min_year,
        'max_year': max_year,
        'num_zones': len(periods_map),
        'num_links': len(links_map),

        # Data from Organizer.
        'zone_list': sorted(periods_map.keys()),
        'links_map': OrderedDict(sorted(links_map.items())),
        'removed_links': _sort_comments(removed_links),
        'notable_links': _sort_comments(notable_links),

        # Data from PeriodBuilder.
        'periods_map': OrderedDict(sorted(periods_map.items())),

        # Data from the 'leapseconds' file.
        'leap_seconds': leap_seconds,
    }


def _sort_comments(comments: CommentsMap) -> CommentsMap:
    """Sort and convert {name -> Set(str)} to {name -> List(str)} to provide
    deterministic ordering.
    """
    return OrderedDict(
        (k, list(sorted(v)))
        for k, v in sorted(comments.items())
    )
