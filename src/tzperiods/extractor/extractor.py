# Copyright 2018 Brian T. Park
#
# MIT License.

"""
Parses the raw TZ Database files into the ZoneRule, ZoneLink and ZoneInfo
records defined in tz_types.py. Each file is read line by line:

* comments ('#' to the end of the line) and blank lines are dropped,
* 'Rule' and 'Link' lines become a single record each,
* a 'Zone' head line and its indented continuation lines are merged into a
  single ZoneInfo record.

The 'leapseconds' file uses a different set of directives ('Leap' and
'Expires') and is parsed by read_leap_seconds().
"""

import logging
import os
import re
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from tzperiods.data_types.tz_types import Directive
from tzperiods.data_types.tz_types import FRAME_STANDARD
from tzperiods.data_types.tz_types import FRAME_UTC
from tzperiods.data_types.tz_types import FRAME_WALL
from tzperiods.data_types.tz_types import LeapSecond
from tzperiods.data_types.tz_types import RULES_AMOUNT
from tzperiods.data_types.tz_types import RULES_NAMED
from tzperiods.data_types.tz_types import RULES_NONE
from tzperiods.data_types.tz_types import TO_YEAR_MAX
from tzperiods.data_types.tz_types import TO_YEAR_ONLY
from tzperiods.data_types.tz_types import TzParseError
from tzperiods.data_types.tz_types import UntilTime
from tzperiods.data_types.tz_types import ZoneInfo
from tzperiods.data_types.tz_types import ZoneLine
from tzperiods.data_types.tz_types import ZoneLink
from tzperiods.data_types.tz_types import ZoneRule
from tzperiods.transformer.tz_util import date_to_gregorian_seconds
from tzperiods.transformer.tz_util import string_amount_to_secs
from tzperiods.transformer.tz_util import tz_day_to_date

MONTH_TO_MONTH_INDEX = {
    'jan': 1,
    'feb': 2,
    'mar': 3,
    'apr': 4,
    'may': 5,
    'jun': 6,
    'jul': 7,
    'aug': 8,
    'sep': 9,
    'oct': 10,
    'nov': 11,
    'dec': 12,
}

MONTH_NAMES = [
    'january', 'february', 'march', 'april', 'may', 'june', 'july',
    'august', 'september', 'october', 'november', 'december',
]

# Map of the AT and UNTIL suffix to the reference frame.
SUFFIX_TO_FRAME = {
    '': FRAME_WALL,
    'w': FRAME_WALL,
    's': FRAME_STANDARD,
    'u': FRAME_UTC,
    'g': FRAME_UTC,
    'z': FRAME_UTC,
}

# The four shapes of the lines of a 'Zone' entry. The head line starts with
# the 'Zone' keyword, a continuation line starts with whitespace. Only the
# last line of an entry lacks the UNTIL field. Order matters, the first match
# wins.
ZONE_LINE_REGEXES = [
    ('head_with_until', re.compile(
        r'^Zone\s+(?P<name>\S+)\s+(?P<offset>\S+)\s+(?P<rules>\S+)'
        r'\s+(?P<format>\S+)\s+(?P<until>\S.*)$')),
    ('head_no_until', re.compile(
        r'^Zone\s+(?P<name>\S+)\s+(?P<offset>\S+)\s+(?P<rules>\S+)'
        r'\s+(?P<format>\S+)$')),
    ('continuation_with_until', re.compile(
        r'^\s+(?P<offset>\S+)\s+(?P<rules>\S+)'
        r'\s+(?P<format>\S+)\s+(?P<until>\S.*)$')),
    ('continuation_no_until', re.compile(
        r'^\s+(?P<offset>\S+)\s+(?P<rules>\S+)\s+(?P<format>\S+)$')),
]

RULE_REGEX = re.compile(
    r'^Rule\s+(?P<name>\S+)\s+(?P<from>\S+)\s+(?P<to>\S+)\s+(?P<type>\S+)'
    r'\s+(?P<in>\S+)\s+(?P<on>\S+)\s+(?P<at>\S+)\s+(?P<save>\S+)'
    r'\s+(?P<letter>\S+)$')

LINK_REGEX = re.compile(r'^Link\s+(?P<target>\S+)\s+(?P<link>\S+)$')

LEAP_REGEX = re.compile(
    r'^Leap\s+(?P<year>\d+)\s+(?P<month>\S+)\s+(?P<day>\d+)'
    r'\s+(?P<hour>\d+):(?P<minute>\d+):(?P<second>\d+)'
    r'\s+(?P<correction>[+-])\s+(?P<mode>[SR])$')

EXPIRES_REGEX = re.compile(
    r'^Expires\s+(?P<year>\d+)\s+(?P<month>\S+)\s+(?P<day>\d+)'
    r'\s+(?P<hour>\d+):(?P<minute>\d+):(?P<second>\d+)$')

# Year of a Rule FROM field set to 'min'.
MIN_RULE_YEAR = 0


class Extractor:
    """Read the TZ Database files under 'input_dir' and parse them into a flat
    list of directives, in file order. Usage:

        extractor = Extractor(input_dir)
        extractor.parse()
        extractor.print_summary()
        directives = extractor.get_data()
    """

    # List of zone files in the TZ Database to process. The 'backzone' file is
    # excluded because it contains pre-1970 data which is not canonical.
    ZONE_FILES = [
        'africa',
        'antarctica',
        'asia',
        'australasia',
        'backward',
        'etcetera',
        'europe',
        'northamerica',
        'southamerica',
    ]

    def __init__(self, input_dir: str, files: Optional[List[str]] = None):
        self.input_dir = input_dir
        self.files = files if files is not None else Extractor.ZONE_FILES

        self.directives: List[Directive] = []
        self.parsed_files: List[str] = []
        self.missing_files: List[str] = []

    def parse(self) -> None:
        """Read the zone files. Missing files are skipped."""
        for file_name in self.files:
            full_filename = os.path.join(self.input_dir, file_name)
            if not os.path.exists(full_filename):
                logging.warning('Skipping missing file %s', full_filename)
                self.missing_files.append(file_name)
                continue
            logging.info('Processing %s', full_filename)
            with open(full_filename, 'r', encoding='utf-8') as f:
                self.directives.extend(parse_tz_lines(f, file_name))
            self.parsed_files.append(file_name)

    def get_data(self) -> List[Directive]:
        return self.directives

    def print_summary(self) -> None:
        num_rules = 0
        num_zones = 0
        num_zone_lines = 0
        num_links = 0
        for directive in self.directives:
            record_type = directive['record_type']
            if record_type == 'rule':
                num_rules += 1
            elif record_type == 'zone':
                num_zones += 1
                num_zone_lines += len(directive['zone_lines'])  # type: ignore
            elif record_type == 'link':
                num_links += 1

        logging.info(
            f"Summary: Files: parsed={len(self.parsed_files)}"
            f"; missing={len(self.missing_files)}")
        logging.info(f"Summary: Rules: {num_rules}")
        logging.info(
            f"Summary: Zones: {num_zones}; Zone lines: {num_zone_lines}")
        logging.info(f"Summary: Links: {num_links}")


# -----------------------------------------------------------------------------
# Source Reader.
# -----------------------------------------------------------------------------

def read_tz_lines(lines: Iterable[str]) -> Iterator[Tuple[int, str]]:
    """Yield (line_number, line) for each logical line. The comment and the
    trailing whitespace are stripped, blank lines are skipped. Leading
    whitespace is preserved because it marks a Zone continuation line.
    """
    for line_number, line in enumerate(lines, start=1):
        comment_index = line.find('#')
        if comment_index >= 0:
            line = line[:comment_index]
        line = line.rstrip()
        if not line.strip():
            continue
        yield (line_number, line)


# -----------------------------------------------------------------------------
# Directive Parser.
# -----------------------------------------------------------------------------

def parse_tz_lines(
    lines: Iterable[str],
    file_name: str = '<string>',
) -> List[Directive]:
    """Parse the lines of a single TZ file into a list of directives in file
    order. Continuation lines are merged into the preceding Zone entry.
    Raises TzParseError on a line which cannot be parsed.
    """
    directives: List[Directive] = []
    zone: Optional[ZoneInfo] = None
    for line_number, line in read_tz_lines(lines):
        try:
            keyword = line.split(None, 1)[0]
            if line[0].isspace():
                if zone is None:
                    raise Exception('Continuation line without a Zone')
                shape, zone_line = zone_mapped(line)
                if shape not in (
                    'continuation_with_until', 'continuation_no_until'
                ):
                    raise Exception(f'Unexpected zone line shape {shape}')
                zone['zone_lines'].append(zone_line)
                if zone_line['until'] is None:
                    zone = None
            elif zone is not None:
                raise Exception(f"Zone {zone['name']} lacks a last line")
            elif keyword == 'Zone':
                name, shape, zone_line = zone_head_mapped(line)
                zone = {
                    'record_type': 'zone',
                    'name': name,
                    'zone_lines': [zone_line],
                    'file_name': file_name,
                }
                directives.append(zone)
                if shape == 'head_no_until':
                    zone = None
            elif keyword == 'Rule':
                directives.append(process_rule(line))
            elif keyword == 'Link':
                directives.append(process_link(line, file_name))
            else:
                raise Exception(f'Unrecognized directive {keyword}')
        except TzParseError:
            raise
        except Exception as e:
            raise TzParseError(file_name, line_number, line, str(e)) from e

    if zone is not None:
        raise TzParseError(
            file_name, 0, '', f"Zone {zone['name']} lacks a last line")
    return directives


def process_rule(line: str) -> ZoneRule:
    """Parse a 'Rule' line:

    # Rule  NAME    FROM    TO    TYPE  IN   ON      AT      SAVE    LETTER
    Rule    US      2007    max   -     Mar  Sun>=8  2:00    1:00    D
    """
    match = RULE_REGEX.match(line)
    if not match:
        raise Exception('Invalid Rule line')

    at_time, at_suffix = parse_at_time_string(match.group('at'))
    return {
        'record_type': 'rule',
        'name': match.group('name'),
        'from_year': parse_from_year(match.group('from')),
        'to_year': parse_to_year(match.group('to')),
        'type': match.group('type'),
        'in_month': month_to_index(match.group('in')),
        'on_day': match.group('on'),
        'at_seconds': string_amount_to_secs(at_time),
        'at_frame': SUFFIX_TO_FRAME[at_suffix],
        'save_seconds': string_amount_to_secs(match.group('save')),
        'letter': match.group('letter'),
        'raw_line': line,
    }


def process_link(line: str, file_name: str = '<string>') -> ZoneLink:
    """Parse a 'Link' line:

    # Link  TARGET              LINK-NAME
    Link    Europe/London       Europe/Jersey
    """
    match = LINK_REGEX.match(line)
    if not match:
        raise Exception('Invalid Link line')
    return {
        'record_type': 'link',
        'zone_name': match.group('target'),
        'link_name': match.group('link'),
        'file_name': file_name,
        'raw_line': line,
    }


def zone_mapped(line: str) -> Tuple[str, ZoneLine]:
    """Classify a line of a Zone entry into one of the 4 shapes
    ('head_with_until', 'head_no_until', 'continuation_with_until',
    'continuation_no_until') and parse its fields.
    """
    for shape, regex in ZONE_LINE_REGEXES:
        match = regex.match(line)
        if match:
            return (shape, _create_zone_line(match.groupdict(), line))
    raise Exception('No zone line shape matched')


def zone_head_mapped(line: str) -> Tuple[str, str, ZoneLine]:
    """Parse the head line of a Zone entry, returning (name, shape, line)."""
    for shape, regex in ZONE_LINE_REGEXES[:2]:
        match = regex.match(line)
        if match:
            captured = match.groupdict()
            return (
                captured['name'],
                shape,
                _create_zone_line(captured, line),
            )
    raise Exception('No zone head shape matched')


def _create_zone_line(captured: Dict[str, str], line: str) -> ZoneLine:
    rules_type, rules_delta_seconds, policy_name = parse_zone_rules(
        captured['rules'])
    until_string = captured.get('until')
    return {
        'offset_seconds': string_amount_to_secs(captured['offset']),
        'rules_type': rules_type,
        'rules_delta_seconds': rules_delta_seconds,
        'policy_name': policy_name,
        'format': captured['format'],
        'until': parse_until(until_string) if until_string else None,
        'raw_line': line,
    }


def parse_zone_rules(rules: str) -> Tuple[str, int, Optional[str]]:
    """Parse the RULES field of a Zone line into (rules_type,
    rules_delta_seconds, policy_name). A field containing a digit is a fixed
    DST offset, otherwise it names a set of Rules.
    """
    if rules == '-' or rules == '0':
        return (RULES_NONE, 0, None)
    if re.search(r'\d', rules):
        return (RULES_AMOUNT, string_amount_to_secs(rules), None)
    return (RULES_NAMED, 0, rules)


def parse_until(until: str) -> UntilTime:
    """Parse the UNTIL field 'YEAR [MONTH [DAY [TIME]]]'. The DAY can be a day
    expression such as 'lastSun' or 'Sun>=1', the TIME can carry a suffix.
    """
    fields = until.split()
    if len(fields) > 4:
        raise Exception(f'Invalid UNTIL field: {until}')

    year = int(fields[0])
    month = month_to_index(fields[1]) if len(fields) > 1 else 1
    on_day = fields[2] if len(fields) > 2 else '1'
    if len(fields) > 3:
        time_string, suffix = parse_at_time_string(fields[3])
    else:
        time_string, suffix = ('0', '')

    date = tz_day_to_date(year, month, on_day)
    seconds = string_amount_to_secs(time_string)
    return {
        'year': date.year,
        'month': date.month,
        'day': date.day,
        'seconds': seconds,
        'frame': SUFFIX_TO_FRAME[suffix],
        'gregorian_seconds': date_to_gregorian_seconds(date) + seconds,
    }


def parse_at_time_string(at_string: str) -> Tuple[str, str]:
    """Parses the '2:00s' string into '2:00' and 's'. If there is no suffix,
    returns a '' as the suffix. Raises an Exception if the suffix is not
    recognized.
    """
    suffix = at_string[-1:]
    if suffix.isdigit():
        return (at_string, '')
    if suffix in SUFFIX_TO_FRAME:
        return (at_string[:-1], suffix)
    raise Exception(f'Invalid AT suffix: {at_string}')


def month_to_index(month: str) -> int:
    """Convert 'Jan', 'jan', 'January' or '1' into the month index 1-12. Month
    names must be either the 3-letter abbreviation or the full English name.
    """
    if month.isdigit():
        index = int(month)
        if index < 1 or index > 12:
            raise Exception(f'Invalid month: {month}')
        return index

    lower = month.lower()
    if len(lower) != 3 and lower not in MONTH_NAMES:
        raise Exception(f'Invalid month: {month}')
    index_or_none = MONTH_TO_MONTH_INDEX.get(lower[:3])
    if index_or_none is None:
        raise Exception(f'Invalid month: {month}')
    return index_or_none


def parse_from_year(from_year: str) -> int:
    """Parse the FROM field of a Rule. The 'min' keyword means the indefinite
    past.
    """
    if from_year in ('mi', 'min', 'minimum'):
        return MIN_RULE_YEAR
    return int(from_year)


def parse_to_year(to_year: str) -> Union[int, str]:
    """Parse the TO field of a Rule, accepting the abbreviations permitted by
    zic ('o', 'only', 'ma', 'max', 'maximum').
    """
    if to_year in ('o', 'on', 'onl', 'only'):
        return TO_YEAR_ONLY
    if to_year in ('ma', 'max', 'maxi', 'maxim', 'maximu', 'maximum'):
        return TO_YEAR_MAX
    return int(to_year)


# -----------------------------------------------------------------------------
# The 'leapseconds' file.
# -----------------------------------------------------------------------------

def read_leap_seconds(
    lines: Iterable[str],
    file_name: str = 'leapseconds',
) -> Tuple[List[LeapSecond], Optional[Tuple[int, int, int, int, int, int]]]:
    """Parse the 'Leap' and 'Expires' lines of the 'leapseconds' file. Returns
    the list of leap seconds and the (year, month, day, hour, minute, second)
    of the expiration, or None if absent.
    """
    leap_seconds: List[LeapSecond] = []
    expires: Optional[Tuple[int, int, int, int, int, int]] = None
    for line_number, line in read_tz_lines(lines):
        try:
            match = LEAP_REGEX.match(line)
            if match:
                leap_seconds.append(LeapSecond(
                    year=int(match.group('year')),
                    month=month_to_index(match.group('month')),
                    day=int(match.group('day')),
                    hour=int(match.group('hour')),
                    minute=int(match.group('minute')),
                    second=int(match.group('second')),
                    correction=match.group('correction'),
                    mode=match.group('mode'),
                ))
                continue
            match = EXPIRES_REGEX.match(line)
            if match:
                expires = (
                    int(match.group('year')),
                    month_to_index(match.group('month')),
                    int(match.group('day')),
                    int(match.group('hour')),
                    int(match.group('minute')),
                    int(match.group('second')),
                )
                continue
            raise Exception('Unrecognized leapseconds line')
        except Exception as e:
            raise TzParseError(file_name, line_number, line, str(e)) from e
    return leap_seconds, expires
