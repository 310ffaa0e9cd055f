# Copyright 2018 Brian T. Park
#
# MIT License

import datetime
import unittest

from tzperiods.data_types.tz_types import TzParseError
from tzperiods.extractor.extractor import month_to_index
from tzperiods.extractor.extractor import parse_at_time_string
from tzperiods.extractor.extractor import parse_tz_lines
from tzperiods.extractor.extractor import parse_until
from tzperiods.extractor.extractor import process_link
from tzperiods.extractor.extractor import process_rule
from tzperiods.extractor.extractor import read_leap_seconds
from tzperiods.extractor.extractor import read_tz_lines
from tzperiods.extractor.extractor import zone_mapped
from tzperiods.transformer.tz_util import date_to_gregorian_seconds



class TestParseAtHourString(unittest.TestCase):
    def test_parse_at_time_string(self) -> None:
        self.assertEqual(('2:00', ''), parse_at_time_string('2:00'))
        self.assertEqual(('2:00', 'w'), parse_at_time_string('2:00w'))
        self.assertEqual(('12:00', 's'), parse_at_time_string('12:00s'))
        self.assertEqual(('12:00', 'g'), parse_at_time_string('12:00g'))
        self.assertEqual(('12:00', 'u'), parse_at_time_string('12:00u'))
        self.assertEqual(('12:00', 'z'), parse_at_time_string('12:00z'))

    def test_pase_at_time_string_fails(self) -> None:
        self.assertRaises(Exception, parse_at_time_string, '2:00p')


class TestMonthToIndex(unittest.TestCase):
    def test_month_to_index_success(self) -> None:
        self.assertEqual(1, month_to_index('Jan'))
        self.assertEqual(1, month_to_index('jan'))
        self.assertEqual(1, month_to_index('January'))

        self.assertEqual(2, month_to_index('Feb'))
        self.assertEqual(2, month_to_index('feb'))
        self.assertEqual(2, month_to_index('February'))

        self.assertEqual(3, month_to_index('mar'))
        self.assertEqual(3, month_to_index('Mar'))
        self.assertEqual(3, month_to_index('March'))

        self.assertEqual(4, month_to_index('apr'))
        self.assertEqual(4, month_to_index('Apr'))
        self.assertEqual(4, month_to_index('April'))

        self.assertEqual(5, month_to_index('may'))
        self.assertEqual(5, month_to_index('May'))

        self.assertEqual(6, month_to_index('jun'))
        self.assertEqual(6, month_to_index('Jun'))
        self.assertEqual(6, month_to_index('June'))

        self.assertEqual(7, month_to_index('jul'))
        self.assertEqual(7, month_to_index('Jul'))
        self.assertEqual(7, month_to_index('July'))

        self.assertEqual(8, month_to_index('aug'))
        self.assertEqual(8, month_to_index('Aug'))
        self.assertEqual(8, month_to_index('August'))

        self.assertEqual(9, month_to_index('sep'))
        self.assertEqual(9, month_to_index('Sep'))
        self.assertEqual(9, month_to_index('September'))

        self.assertEqual(10, month_to_index('oct'))
        self.assertEqual(10, month_to_index('Oct'))
        self.assertEqual(10, month_to_index('October'))

        self.assertEqual(11, month_to_index('nov'))
        self.assertEqual(11, month_to_index('Nov'))
        self.assertEqual(11, month_to_index('November'))

        self.assertEqual(12, month_to_index('dec'))
        self.assertEqual(12, month_to_index('Dec'))
        self.assertEqual(12, month_to_index('December'))

        self.assertEqual(12, month_to_index('12'))

    def test_month_to_index_failure(self) -> None:
        self.assertRaises(Exception, month_to_index, '')
        self.assertRaises(Exception, month_to_index, 'none')
        self.assertRaises(Exception, month_to_index, 'ja')
        self.assertRaises(Exception, month_to_index, 'fe')
        self.assertRaises(Exception, month_to_index, '13')


class TestReadTzLines(unittest.TestCase):
    def test_comments_and_blank_lines_are_dropped(self) -> None:
        lines = [
            '# comment\n',
            '\n',
            '   \n',
            'Rule\tUS\t2007\tmax\t-\tMar\tSun>=8\t2:00\t1:00\tD # DST\n',
            '\t\t\t-6:00\tUS\tC%sT\n',
        ]
        self.assertEqual(
            [
                (4, 'Rule\tUS\t2007\tmax\t-\tMar\tSun>=8\t2:00\t1:00\tD'),
                (5, '\t\t\t-6:00\tUS\tC%sT'),
            ],
            list(read_tz_lines(lines)),
        )


class TestProcessRule(unittest.TestCase):
    def test_process_rule(self) -> None:
        line = 'Rule\tUS\t2007\tmax\t-\tMar\tSun>=8\t2:00\t1:00\tD'
        rule = process_rule(line)
        self.assertEqual('rule', rule['record_type'])
        self.assertEqual('US', rule['name'])
        self.assertEqual(2007, rule['from_year'])
        self.assertEqual('max', rule['to_year'])
        self.assertEqual(3, rule['in_month'])
        self.assertEqual('Sun>=8', rule['on_day'])
        self.assertEqual(7200, rule['at_seconds'])
        self.assertEqual('wall', rule['at_frame'])
        self.assertEqual(3600, rule['save_seconds'])
        self.assertEqual('D', rule['letter'])
        self.assertEqual(line, rule['raw_line'])

    def test_process_rule_frames_and_to_year(self) -> None:
        rule = process_rule('Rule EU 1977 1980 - Apr Sun>=1 1:00u 1:00 S')
        self.assertEqual(1980, rule['to_year'])
        self.assertEqual('utc', rule['at_frame'])

        rule = process_rule('Rule C-Eur 1942 only - Nov 2 2:00s 0 -')
        self.assertEqual('only', rule['to_year'])
        self.assertEqual('standard', rule['at_frame'])
        self.assertEqual(0, rule['save_seconds'])
        self.assertEqual('-', rule['letter'])

    def test_process_rule_abbreviated_to_year(self) -> None:
        rule = process_rule('Rule X 1990 o - Apr 1 0:00 1:00 D')
        self.assertEqual('only', rule['to_year'])
        rule = process_rule('Rule X 1990 ma - Apr 1 0:00 1:00 D')
        self.assertEqual('max', rule['to_year'])

    def test_process_rule_negative_save(self) -> None:
        rule = process_rule('Rule Eire 1971 max - Oct lastSun 1:00u -1:00 GMT')
        self.assertEqual(-3600, rule['save_seconds'])
        self.assertEqual('GMT', rule['letter'])


class TestProcessLink(unittest.TestCase):
    def test_process_link(self) -> None:
        link = process_link('Link\tEurope/London\tEurope/Jersey', 'europe')
        self.assertEqual('link', link['record_type'])
        self.assertEqual('Europe/London', link['zone_name'])
        self.assertEqual('Europe/Jersey', link['link_name'])
        self.assertEqual('europe', link['file_name'])


class TestZoneMapped(unittest.TestCase):
    def test_four_shapes(self) -> None:
        shape, _ = zone_mapped('Zone Europe/Copenhagen 0:50:20 - LMT 1890')
        self.assertEqual('head_with_until', shape)

        shape, _ = zone_mapped('Zone Etc/UTC 0 - UTC')
        self.assertEqual('head_no_until', shape)

        shape, _ = zone_mapped('\t\t\t1:00\tC-Eur\tCE%sT\t1945 Apr  2  2:00')
        self.assertEqual('continuation_with_until', shape)

        shape, _ = zone_mapped('\t\t\t1:00\tEU\tCE%sT')
        self.assertEqual('continuation_no_until', shape)

    def test_rules_field(self) -> None:
        _, line = zone_mapped('\t-6:00\tUS\tC%sT')
        self.assertEqual('named', line['rules_type'])
        self.assertEqual('US', line['policy_name'])
        self.assertEqual(0, line['rules_delta_seconds'])
        self.assertIsNone(line['until'])

        _, line = zone_mapped('\t1:00\t1:00\tCEST\t1946')
        self.assertEqual('amount', line['rules_type'])
        self.assertIsNone(line['policy_name'])
        self.assertEqual(3600, line['rules_delta_seconds'])

        _, line = zone_mapped('\t-0:16:08\t-\tLMT\t1912')
        self.assertEqual('none', line['rules_type'])
        self.assertEqual(-968, line['offset_seconds'])

    def test_no_match(self) -> None:
        self.assertRaises(Exception, zone_mapped, '\t1:00')


class TestParseUntil(unittest.TestCase):
    def test_year_only(self) -> None:
        until = parse_until('1890')
        self.assertEqual(1890, until['year'])
        self.assertEqual(1, until['month'])
        self.assertEqual(1, until['day'])
        self.assertEqual(0, until['seconds'])
        self.assertEqual('wall', until['frame'])
        self.assertEqual(59642697600, until['gregorian_seconds'])

    def test_full_until(self) -> None:
        until = parse_until('1883 Nov 18 12:09:24')
        self.assertEqual(1883, until['year'])
        self.assertEqual(11, until['month'])
        self.assertEqual(18, until['day'])
        self.assertEqual(43764, until['seconds'])
        self.assertEqual(
            date_to_gregorian_seconds(datetime.date(1883, 11, 18)) + 43764,
            until['gregorian_seconds'],
        )

    def test_day_expression_and_suffix(self) -> None:
        until = parse_until('2011 Mar lastSun 1:00u')
        self.assertEqual(27, until['day'])
        self.assertEqual(3600, until['seconds'])
        self.assertEqual('utc', until['frame'])

        until = parse_until('1942 Nov  2  2:00s')
        self.assertEqual(2, until['day'])
        self.assertEqual('standard', until['frame'])


class TestParseTzLines(unittest.TestCase):
    def test_zone_continuations_are_merged(self) -> None:
        lines = [
            'Rule\tDenmark\t1916\tonly\t-\tMay\t14\t23:00\t1:00\tS\n',
            'Zone Europe/Copenhagen\t 0:50:20 -\tLMT\t1890\n',
            '\t\t\t 0:50:20 -\tCMT\t1894 Jan  1 # Copenhagen MT\n',
            '\t\t\t 1:00\tDenmark\tCE%sT\n',
            'Link\tEurope/Copenhagen\tEurope/Busingen\n',
        ]
        directives = parse_tz_lines(lines, 'europe')
        self.assertEqual(3, len(directives))
        self.assertEqual('rule', directives[0]['record_type'])
        self.assertEqual('zone', directives[1]['record_type'])
        self.assertEqual('link', directives[2]['record_type'])

        zone = directives[1]
        self.assertEqual('Europe/Copenhagen', zone['name'])  # type: ignore
        self.assertEqual('europe', zone['file_name'])  # type: ignore
        self.assertEqual(3, len(zone['zone_lines']))  # type: ignore

    def test_continuation_without_zone_fails(self) -> None:
        lines = [
            '\t\t\t 1:00\tDenmark\tCE%sT\n',
        ]
        with self.assertRaises(TzParseError) as context:
            parse_tz_lines(lines, 'europe')
        self.assertEqual('europe', context.exception.file_name)
        self.assertEqual(1, context.exception.line_number)

    def test_unknown_directive_fails(self) -> None:
        lines = [
            '# comment\n',
            'Leap\t1972\tJun\t30\t23:59:60\t+\tS\n',
        ]
        with self.assertRaises(TzParseError) as context:
            parse_tz_lines(lines, 'europe')
        self.assertEqual(2, context.exception.line_number)
        self.assertEqual(
            'Leap\t1972\tJun\t30\t23:59:60\t+\tS',
            context.exception.line,
        )

    def test_malformed_rule_fails(self) -> None:
        lines = [
            'Rule\tUS\t2007\tmax\t-\tMar\tSun>=8\n',
        ]
        self.assertRaises(TzParseError, parse_tz_lines, lines)

    def test_unterminated_zone_fails(self) -> None:
        lines = [
            'Zone Europe/Copenhagen\t 0:50:20 -\tLMT\t1890\n',
            'Rule\tDenmark\t1916\tonly\t-\tMay\t14\t23:00\t1:00\tS\n',
        ]
        self.assertRaises(TzParseError, parse_tz_lines, lines)


class TestReadLeapSeconds(unittest.TestCase):
    def test_read_leap_seconds(self) -> None:
        lines = [
            '# Leap\tYEAR\tMONTH\tDAY\tHH:MM:SS\tCORR\tR/S\n',
            'Leap\t1972\tJun\t30\t23:59:60\t+\tS\n',
            'Leap\t1972\tDec\t31\t23:59:60\t+\tS\n',
            'Expires\t2024\tDec\t28\t00:00:00\n',
        ]
        leap_seconds, expires = read_leap_seconds(lines)
        self.assertEqual(2, len(leap_seconds))
        self.assertEqual(1972, leap_seconds[0].year)
        self.assertEqual(6, leap_seconds[0].month)
        self.assertEqual(30, leap_seconds[0].day)
        self.assertEqual(60, leap_seconds[0].second)
        self.assertEqual('+', leap_seconds[0].correction)
        self.assertEqual('S', leap_seconds[0].mode)
        self.assertEqual((2024, 12, 28, 0, 0, 0), expires)


if __name__ == '__main__':
    unittest.main()
