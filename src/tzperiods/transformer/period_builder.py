# Copyright 2018 Brian T. Park
#
# MIT License.

import logging
from typing import List
from typing import Optional
from typing import Tuple

from tzperiods.data_types.tz_types import MAX_TIME
from tzperiods.data_types.tz_types import MAX_YEAR
from tzperiods.data_types.tz_types import MIN_TIME
from tzperiods.data_types.tz_types import MIN_YEAR
from tzperiods.data_types.tz_types import RULES_AMOUNT
from tzperiods.data_types.tz_types import RULES_NAMED
from tzperiods.data_types.tz_types import Period
from tzperiods.data_types.tz_types import PeriodsMap
from tzperiods.data_types.tz_types import RulesMap
from tzperiods.data_types.tz_types import RulesNotFoundError
from tzperiods.data_types.tz_types import TimePoints
from tzperiods.data_types.tz_types import TimeValue
from tzperiods.data_types.tz_types import ZoneLine
from tzperiods.data_types.tz_types import ZoneNotFoundError
from tzperiods.data_types.tz_types import ZoneRule
from tzperiods.data_types.tz_types import ZonesMap
from tzperiods.transformer.tz_util import datetime_to_utc
from tzperiods.transformer.tz_util import gregorian_seconds_to_datetime
from tzperiods.transformer.tz_util import period_abbreviation
from tzperiods.transformer.tz_util import rules_for_year
from tzperiods.transformer.tz_util import standard_time_from_utc
from tzperiods.transformer.tz_util import time_for_rule
from tzperiods.transformer.tz_util import tz_day_to_date
from tzperiods.transformer.tz_util import wall_time_from_utc


class PeriodBuilder:
    """
    Compiles the ZONE lines of a zone, together with the RULE lines they
    reference, into an ordered list of Periods which covers the whole
    timeline from MIN_TIME to MAX_TIME in the UTC frame.

    Each ZONE line is processed in turn, starting at the UTC time where the
    previous line stopped:

    * RULES '-': a single period with std_offset 0,
    * RULES 'hh:mm': a single period with that fixed std_offset,
    * RULES 'Name': the rules are expanded year by year, from the year where
      the line starts (or min_year for the first line) to the year of its
      UNTIL (or max_year for the last line), and one period is created per
      transition.

    The transition time of a rule is converted into UTC using the offsets in
    effect just before it. The std_offset and LETTER at the start of a named
    line are those of the latest transition at or before the start, or 0 and
    the LETTER of the earliest rule with SAVE == 0 if there is none.
    """
    def __init__(
        self,
        zones_map: ZonesMap,
        rules_map: RulesMap,
        min_year: int = MIN_YEAR,
        max_year: int = MAX_YEAR,
    ):
        """
        Args:
            zones_map: map of zone name to ZoneInfo
            rules_map: map of rule name to ZoneRule[]
            min_year: first year of rule expansion when a zone starts at
                MIN_TIME
            max_year: last year of rule expansion when a zone ends at MAX_TIME
        """
        self.zones_map = zones_map
        self.rules_map = rules_map
        self.min_year = min_year
        self.max_year = max_year

    def calc_periods(self, zone_name: str) -> List[Period]:
        """Return the list of Periods of the canonical zone. Raises
        ZoneNotFoundError if the zone does not exist, and RulesNotFoundError
        if a ZONE line refers to an undefined RULE set.
        """
        zone_info = self.zones_map.get(zone_name)
        if zone_info is None:
            raise ZoneNotFoundError(f"Zone '{zone_name}' not found")

        periods: List[Period] = []
        from_utc: TimeValue = MIN_TIME
        for zone_line in zone_info['zone_lines']:
            if zone_line['rules_type'] == RULES_NAMED:
                from_utc = self._add_named_rule_periods(
                    zone_name, zone_line, from_utc, periods)
            else:
                from_utc = self._add_fixed_period(
                    zone_line, from_utc, periods)

        verify_periods(zone_name, periods)
        return periods

    def calc_periods_map(self) -> PeriodsMap:
        """Return the Periods of every zone in the zones_map."""
        periods_map: PeriodsMap = {}
        for zone_name in sorted(self.zones_map.keys()):
            periods_map[zone_name] = self.calc_periods(zone_name)
        return periods_map

    def print_summary(self, periods_map: PeriodsMap) -> None:
        num_periods = sum(len(periods) for periods in periods_map.values())
        logging.info(
            f"Summary: Zones: {len(periods_map)}; Periods: {num_periods}"
            f"; Years: [{self.min_year}, {self.max_year}]")

    def _add_fixed_period(
        self,
        zone_line: ZoneLine,
        from_utc: TimeValue,
        periods: List[Period],
    ) -> TimeValue:
        """Add the single period of a ZONE line with RULES '-' or a fixed
        amount. Return the UTC time where the line ends.
        """
        utc_offset = zone_line['offset_seconds']
        if zone_line['rules_type'] == RULES_AMOUNT:
            std_offset = zone_line['rules_delta_seconds']
        else:
            std_offset = 0
        abbr = period_abbreviation(
            zone_line['format'], std_offset, '', utc_offset)
        until_utc = _until_utc(zone_line, std_offset)
        return _append_period(
            periods, from_utc, until_utc, utc_offset, std_offset, abbr)

    def _add_named_rule_periods(
        self,
        zone_name: str,
        zone_line: ZoneLine,
        from_utc: TimeValue,
        periods: List[Period],
    ) -> TimeValue:
        """Add the periods of a ZONE line which refers to a set of RULE lines.
        Return the UTC time where the line ends.
        """
        if periods:
            prev_utc_offset = periods[-1]['utc_offset']
            prev_std_offset = periods[-1]['std_offset']
        else:
            prev_utc_offset = zone_line['offset_seconds']
            prev_std_offset = 0

        policy_name = zone_line['policy_name']
        assert policy_name is not None
        rules = self.rules_map.get(policy_name)
        if not rules:
            raise RulesNotFoundError(
                f"Zone '{zone_name}': Rules '{policy_name}' not found")

        utc_offset = zone_line['offset_seconds']
        format = zone_line['format']
        until = zone_line['until']

        std_offset = 0
        letter = _initial_letter(rules)
        start_year, end_year = self._year_range(
            rules, from_utc, utc_offset, until['year'] if until else None)

        starting = from_utc != MIN_TIME
        for year in range(start_year, end_year + 1):
            for rule in rules_for_year(rules, year):
                rule_time = time_for_rule(rule, year)

                # Transitions at or before the start of the line only
                # determine the state in effect at the start. They are
                # converted with the offsets of the previous period.
                if starting:
                    assert isinstance(from_utc, int)
                    start_utc = datetime_to_utc(
                        rule_time, rule['at_frame'], prev_utc_offset,
                        prev_std_offset)
                    if start_utc <= from_utc:
                        std_offset = rule['save_seconds']
                        letter = rule['letter']
                        continue
                    starting = False

                transition_utc = datetime_to_utc(
                    rule_time, rule['at_frame'], utc_offset, std_offset)

                until_utc = _until_utc(zone_line, std_offset)
                if until_utc != MAX_TIME:
                    assert isinstance(until_utc, int)
                    if transition_utc >= until_utc:
                        abbr = period_abbreviation(
                            format, std_offset, letter, utc_offset)
                        return _append_period(
                            periods, from_utc, until_utc, utc_offset,
                            std_offset, abbr)

                abbr = period_abbreviation(
                    format, std_offset, letter, utc_offset)
                from_utc = _append_period(
                    periods, from_utc, transition_utc, utc_offset,
                    std_offset, abbr)
                std_offset = rule['save_seconds']
                letter = rule['letter']

        abbr = period_abbreviation(format, std_offset, letter, utc_offset)
        return _append_period(
            periods, from_utc, _until_utc(zone_line, std_offset), utc_offset,
            std_offset, abbr)

    def _year_range(
        self,
        rules: List[ZoneRule],
        from_utc: TimeValue,
        utc_offset: int,
        until_year: Optional[int],
    ) -> Tuple[int, int]:
        """Return the [start, end] years of rule expansion of a named line. A
        line which starts at a known time is expanded from the first year of
        its rules, so that the state at its start can be determined.
        """
        if from_utc == MIN_TIME:
            start_year = self.min_year
        else:
            assert isinstance(from_utc, int)
            from_year = gregorian_seconds_to_datetime(
                from_utc + utc_offset).year
            first_rule_year = max(min(rule['from_year'] for rule in rules), 1)
            start_year = min(from_year, first_rule_year)
        end_year = until_year if until_year is not None else self.max_year
        return (start_year, end_year)


def verify_periods(zone_name: str, periods: List[Period]) -> None:
    """Verify that the periods are contiguous in UTC and cover the timeline
    from MIN_TIME to MAX_TIME. Raises an Exception otherwise.
    """
    if not periods:
        raise Exception(f"Zone '{zone_name}': no periods")
    if periods[0]['from']['utc'] != MIN_TIME:
        raise Exception(f"Zone '{zone_name}': first period not from 'min'")
    if periods[-1]['until']['utc'] != MAX_TIME:
        raise Exception(f"Zone '{zone_name}': last period not until 'max'")

    for i, period in enumerate(periods):
        from_utc = period['from']['utc']
        until_utc = period['until']['utc']
        if isinstance(from_utc, int) and isinstance(until_utc, int):
            if from_utc >= until_utc:
                raise Exception(
                    f"Zone '{zone_name}': period {i} has "
                    f"from={from_utc} >= until={until_utc}")
        if i + 1 < len(periods):
            next_from_utc = periods[i + 1]['from']['utc']
            if until_utc != next_from_utc:
                raise Exception(
                    f"Zone '{zone_name}': period {i} until={until_utc} "
                    f"!= period {i + 1} from={next_from_utc}")


def _until_utc(zone_line: ZoneLine, std_offset: int) -> TimeValue:
    """Return the UNTIL of the ZONE line in UTC, using the given std_offset
    for an UNTIL expressed in wall time.
    """
    until = zone_line['until']
    if until is None:
        return MAX_TIME
    return datetime_to_utc(
        until['gregorian_seconds'],
        until['frame'],
        zone_line['offset_seconds'],
        std_offset,
    )


def _append_period(
    periods: List[Period],
    from_utc: TimeValue,
    until_utc: TimeValue,
    utc_offset: int,
    std_offset: int,
    abbr: str,
) -> TimeValue:
    """Append the period [from_utc, until_utc) unless it is empty. Return the
    start of the next period.
    """
    if isinstance(from_utc, int) and isinstance(until_utc, int):
        if until_utc <= from_utc:
            return from_utc
    periods.append({
        'std_offset': std_offset,
        'utc_offset': utc_offset,
        'from': _time_points(from_utc, utc_offset, std_offset),
        'until': _time_points(until_utc, utc_offset, std_offset),
        'zone_abbr': abbr,
    })
    return until_utc


def _time_points(
    utc: TimeValue, utc_offset: int, std_offset: int,
) -> TimePoints:
    return {
        'utc': utc,
        'standard': standard_time_from_utc(utc, utc_offset),
        'wall': wall_time_from_utc(utc, utc_offset, std_offset),
    }


def _initial_letter(rules: List[ZoneRule]) -> str:
    """Return the LETTER of the earliest rule with SAVE == 0, which is in
    effect before the first transition of the rules. Returns '' if every rule
    saves daylight time.
    """
    anchor_rule = None
    earliest = None
    for rule in rules:
        if rule['save_seconds'] != 0:
            continue
        year = max(rule['from_year'], 1)
        date = tz_day_to_date(year, rule['in_month'], rule['on_day'])
        rule_date = (date.year, date.month, date.day)
        if earliest is None or rule_date < earliest:
            earliest = rule_date
            anchor_rule = rule
    if anchor_rule is None:
        return ''
    return anchor_rule['letter']
