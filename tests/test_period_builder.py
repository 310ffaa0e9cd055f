# Copyright 2018 Brian T. Park
#
# MIT License

import datetime
import os
import unittest
from typing import List

from tzperiods.data_types.tz_types import Period
from tzperiods.data_types.tz_types import RulesNotFoundError
from tzperiods.data_types.tz_types import ZoneNotFoundError
from tzperiods.extractor.extractor import Extractor
from tzperiods.extractor.extractor import parse_tz_lines
from tzperiods.transformer.organizer import Organizer
from tzperiods.transformer.period_builder import PeriodBuilder
from tzperiods.transformer.period_builder import verify_periods
from tzperiods.transformer.tz_util import datetime_to_gregorian_seconds

TESTDATA_DIR = os.path.join(os.path.dirname(__file__), 'testdata')

KNOX_LINES = [
    'Rule US 1967 2006 - Oct lastSun 2:00 0 S\n',
    'Rule US 1967 1973 - Apr lastSun 2:00 1:00 D\n',
    'Rule US 1987 2006 - Apr Sun>=1 2:00 1:00 D\n',
    'Rule US 2007 max - Mar Sun>=8 2:00 1:00 D\n',
    'Rule US 2007 max - Nov Sun>=1 2:00 0 S\n',
    'Zone Test/Knox -5:00 - EST 2006 Apr 2 2:00\n',
    '\t\t\t-6:00 US C%sT\n',
]


def gregorian_seconds(year: int, month: int, day: int, hour: int) -> int:
    return datetime_to_gregorian_seconds(
        datetime.datetime(year, month, day, hour))


def create_builder_from_lines(lines: List[str]) -> PeriodBuilder:
    organizer = Organizer(parse_tz_lines(lines, 'test'))
    organizer.organize()
    return PeriodBuilder(organizer.zones_map, organizer.rules_map)


class TestPeriodBuilderTestData(unittest.TestCase):
    builder: PeriodBuilder

    @classmethod
    def setUpClass(cls) -> None:
        extractor = Extractor(TESTDATA_DIR)
        extractor.parse()
        organizer = Organizer(extractor.get_data())
        organizer.organize()
        cls.builder = PeriodBuilder(organizer.zones_map, organizer.rules_map)

    def test_copenhagen_early_periods(self) -> None:
        periods = self.builder.calc_periods('Europe/Copenhagen')

        p = periods[0]
        self.assertEqual('LMT', p['zone_abbr'])
        self.assertEqual(0, p['std_offset'])
        self.assertEqual(3020, p['utc_offset'])
        self.assertEqual(
            {'utc': 'min', 'standard': 'min', 'wall': 'min'}, p['from'])
        self.assertEqual(
            {
                'utc': 59642694580,
                'standard': 59642697600,
                'wall': 59642697600,
            },
            p['until'],
        )

        p = periods[1]
        self.assertEqual('CMT', p['zone_abbr'])
        self.assertEqual(0, p['std_offset'])
        self.assertEqual(3020, p['utc_offset'])
        self.assertEqual(59642694580, p['from']['utc'])
        self.assertEqual(59768924980, p['until']['utc'])
        self.assertEqual(59768928000, p['until']['wall'])

        p = periods[2]
        self.assertEqual('CET', p['zone_abbr'])
        self.assertEqual(0, p['std_offset'])
        self.assertEqual(3600, p['utc_offset'])
        self.assertEqual(
            {
                'utc': 59768924980,
                'standard': 59768928580,
                'wall': 59768928580,
            },
            p['from'],
        )
        self.assertEqual(60474722400, p['until']['utc'])

        p = periods[3]
        self.assertEqual('CEST', p['zone_abbr'])
        self.assertEqual(3600, p['std_offset'])
        self.assertEqual(3600, p['utc_offset'])
        self.assertEqual(
            {
                'utc': 60474722400,
                'standard': 60474726000,
                'wall': 60474729600,
            },
            p['from'],
        )
        self.assertEqual(
            {
                'utc': 60486728400,
                'standard': 60486732000,
                'wall': 60486735600,
            },
            p['until'],
        )

        p = periods[4]
        self.assertEqual('CET', p['zone_abbr'])
        self.assertEqual(60486728400, p['from']['utc'])
        self.assertEqual(61232108400, p['until']['utc'])

        p = periods[5]
        self.assertEqual('CEST', p['zone_abbr'])
        self.assertEqual(61232108400, p['from']['utc'])
        self.assertEqual(61232115600, p['from']['wall'])
        self.assertEqual(61309962000, p['until']['utc'])
        self.assertEqual(61309969200, p['until']['wall'])

        p = periods[6]
        self.assertEqual('CET', p['zone_abbr'])
        self.assertEqual(61309962000, p['from']['utc'])
        self.assertEqual(61322662800, p['until']['utc'])

    def test_copenhagen_later_periods(self) -> None:
        periods = self.builder.calc_periods('Europe/Copenhagen')
        by_utc_start = {p['from']['utc']: p for p in periods}

        # Winter time from 1948 to the switch to the EU rules in 1980.
        p = by_utc_start[61491920400]
        self.assertEqual('CET', p['zone_abbr'])
        self.assertEqual(0, p['std_offset'])
        self.assertEqual(
            {
                'utc': 62482748400,
                'standard': 62482752000,
                'wall': 62482752000,
            },
            p['until'],
        )

        # Summer time 1982.
        p = by_utc_start[62553344400]
        self.assertEqual('CEST', p['zone_abbr'])
        self.assertEqual(3600, p['std_offset'])
        self.assertEqual(62553351600, p['from']['wall'])
        self.assertEqual(62569069200, p['until']['utc'])
        self.assertEqual(62569076400, p['until']['wall'])

    def test_copenhagen_ends_in_eu_rules(self) -> None:
        periods = self.builder.calc_periods('Europe/Copenhagen')
        p = periods[-1]
        self.assertEqual('max', p['until']['utc'])
        self.assertEqual('max', p['until']['standard'])
        self.assertEqual('max', p['until']['wall'])
        self.assertEqual(3600, p['utc_offset'])
        self.assertIn(p['zone_abbr'], ('CET', 'CEST'))

    def test_periods_are_contiguous(self) -> None:
        for name in sorted(self.builder.zones_map.keys()):
            periods = self.builder.calc_periods(name)
            verify_periods(name, periods)
            for i in range(len(periods) - 1):
                self.assertEqual(
                    periods[i]['until']['utc'],
                    periods[i + 1]['from']['utc'],
                )

    def test_fixed_zones(self) -> None:
        periods = self.builder.calc_periods('Etc/UTC')
        self.assertEqual(1, len(periods))
        self.assertEqual('UTC', periods[0]['zone_abbr'])
        self.assertEqual(0, periods[0]['utc_offset'])
        self.assertEqual('min', periods[0]['from']['wall'])
        self.assertEqual('max', periods[0]['until']['wall'])

        periods = self.builder.calc_periods('Etc/GMT-10')
        self.assertEqual(1, len(periods))
        self.assertEqual('+10', periods[0]['zone_abbr'])
        self.assertEqual(36000, periods[0]['utc_offset'])

        periods = self.builder.calc_periods('Etc/GMT+3')
        self.assertEqual('-03', periods[0]['zone_abbr'])
        self.assertEqual(-10800, periods[0]['utc_offset'])

    def test_abidjan(self) -> None:
        periods = self.builder.calc_periods('Africa/Abidjan')
        self.assertEqual(2, len(periods))
        self.assertEqual('LMT', periods[0]['zone_abbr'])
        self.assertEqual(-968, periods[0]['utc_offset'])
        self.assertEqual('GMT', periods[1]['zone_abbr'])
        self.assertEqual(0, periods[1]['utc_offset'])
        self.assertEqual(
            periods[0]['until']['utc'], periods[1]['from']['utc'])

    def test_tokyo(self) -> None:
        periods = self.builder.calc_periods('Asia/Tokyo')
        self.assertEqual(
            [
                'LMT', 'JST', 'CJT', 'JST',
                'JDT', 'JST', 'JDT', 'JST',
                'JDT', 'JST', 'JDT', 'JST',
            ],
            [p['zone_abbr'] for p in periods],
        )

        p = periods[-1]
        self.assertEqual(0, p['std_offset'])
        self.assertEqual(32400, p['utc_offset'])
        self.assertEqual(
            {
                'utc': 61589174400,
                'standard': 61589206800,
                'wall': 61589206800,
            },
            p['from'],
        )
        self.assertEqual('max', p['until']['utc'])

    def test_chicago_abbreviations(self) -> None:
        periods = self.builder.calc_periods('America/Chicago')
        abbrs = [p['zone_abbr'] for p in periods]
        self.assertEqual('LMT', abbrs[0])
        self.assertIn('EST', abbrs)
        self.assertIn('CWT', abbrs)
        self.assertIn('CPT', abbrs)
        self.assertEqual('CST', abbrs[-1])

    def test_unknown_zone(self) -> None:
        self.assertRaises(
            ZoneNotFoundError, self.builder.calc_periods, 'Mars/Olympus')

    def test_calc_periods_map(self) -> None:
        periods_map = self.builder.calc_periods_map()
        self.assertEqual(
            [
                'Africa/Abidjan',
                'America/Chicago',
                'Asia/Tokyo',
                'Etc/GMT+3',
                'Etc/GMT-10',
                'Etc/UTC',
                'Europe/Copenhagen',
            ],
            list(periods_map.keys()),
        )


class TestPeriodBuilderSynthetic(unittest.TestCase):
    def test_fixed_amount_line(self) -> None:
        builder = create_builder_from_lines([
            'Zone Test/Fixed 1:00 - TST 1990\n',
            '\t\t\t1:00 1:00 TDT 2000\n',
            '\t\t\t1:00 - TST\n',
        ])
        periods = builder.calc_periods('Test/Fixed')
        self.assertEqual(
            ['TST', 'TDT', 'TST'], [p['zone_abbr'] for p in periods])

        p = periods[1]
        self.assertEqual(3600, p['std_offset'])
        self.assertEqual(3600, p['utc_offset'])
        # 1990-01-01 00:00 in the wall time of the previous line.
        self.assertEqual(
            p['from']['utc'] + 7200, p['from']['wall'])  # type: ignore
        self.assertEqual(
            p['until']['utc'] + 7200, p['until']['wall'])  # type: ignore
        self.assertEqual(
            periods[2]['from']['utc'], p['until']['utc'])

    def test_rules_not_found(self) -> None:
        builder = create_builder_from_lines([
            'Zone Test/Broken 1:00 Nope CE%sT\n',
        ])
        self.assertRaises(
            RulesNotFoundError, builder.calc_periods, 'Test/Broken')

    def test_named_line_starts_in_dst(self) -> None:
        builder = create_builder_from_lines([
            'Rule Test 1990 max - Apr 1 2:00 1:00 D\n',
            'Rule Test 1990 max - Oct 1 2:00 0 S\n',
            'Zone Test/Mid 1:00 - XST 2000 Jun 1\n',
            '\t\t\t1:00 Test X%sT\n',
        ])
        periods = builder.calc_periods('Test/Mid')
        self.assertEqual('XST', periods[0]['zone_abbr'])
        self.assertEqual('XDT', periods[1]['zone_abbr'])
        self.assertEqual(3600, periods[1]['std_offset'])
        self.assertEqual('XST', periods[2]['zone_abbr'])
        self.assertEqual(0, periods[2]['std_offset'])

    def test_line_change_at_rule_transition(self) -> None:
        builder = create_builder_from_lines(KNOX_LINES)
        periods = builder.calc_periods('Test/Knox')
        self.assertEqual(
            ['EST', 'CDT', 'CST'], [p['zone_abbr'] for p in periods[:3]])
        self.assertNoRedundantPeriods(periods)

        # 2006-04-02 02:00 EST becomes 02:00 CDT, without a gap or overlap.
        switch = gregorian_seconds(2006, 4, 2, 7)
        self.assertEqual(switch, periods[0]['until']['utc'])
        self.assertEqual(
            {
                'utc': switch,
                'standard': switch - 21600,
                'wall': switch - 18000,
            },
            periods[1]['from'],
        )
        self.assertEqual(-21600, periods[1]['utc_offset'])
        self.assertEqual(3600, periods[1]['std_offset'])
        self.assertEqual(
            periods[0]['until']['wall'], periods[1]['from']['wall'])

        self.assertEqual(
            gregorian_seconds(2006, 10, 29, 7), periods[1]['until']['utc'])
        self.assertEqual(
            gregorian_seconds(2007, 3, 11, 8), periods[2]['until']['utc'])

    def test_named_lines_change_offset_at_rule_transition(self) -> None:
        builder = create_builder_from_lines([
            'Rule Arg 1999 only - Oct Sun>=1 0:00 1:00 S\n',
            'Rule Arg 2000 only - Mar 3 0:00 0 -\n',
            'Zone Test/Arg -3:00 Arg AR%sT 1999 Oct 3\n',
            '\t\t\t-4:00 Arg AR%sT 2000 Mar 3\n',
            '\t\t\t-3:00 - ART\n',
        ])
        periods = builder.calc_periods('Test/Arg')
        self.assertEqual(
            ['ART', 'ARST', 'ART'], [p['zone_abbr'] for p in periods])
        self.assertEqual(
            [-10800, -14400, -10800], [p['utc_offset'] for p in periods])
        self.assertEqual([0, 3600, 0], [p['std_offset'] for p in periods])
        self.assertEqual(
            gregorian_seconds(1999, 10, 3, 3), periods[1]['from']['utc'])
        self.assertEqual(
            gregorian_seconds(2000, 3, 3, 3), periods[1]['until']['utc'])
        self.assertNoRedundantPeriods(periods)

    def assertNoRedundantPeriods(self, periods: List[Period]) -> None:
        for i in range(len(periods) - 1):
            p, q = periods[i], periods[i + 1]
            self.assertNotEqual(
                (p['utc_offset'] + p['std_offset'], p['zone_abbr']),
                (q['utc_offset'] + q['std_offset'], q['zone_abbr']),
            )

    def test_verify_periods_fails(self) -> None:
        period: Period = {
            'std_offset': 0,
            'utc_offset': 0,
            'from': {'utc': 'min', 'standard': 'min', 'wall': 'min'},
            'until': {'utc': 100, 'standard': 100, 'wall': 100},
            'zone_abbr': 'UTC',
        }
        self.assertRaises(Exception, verify_periods, 'Test/Short', [period])
        self.assertRaises(Exception, verify_periods, 'Test/Empty', [])


if __name__ == '__main__':
    unittest.main()
