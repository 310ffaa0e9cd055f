#!/usr/bin/env python3
#
# Copyright 2018 Brian T. Park
#
# MIT License.

"""
Read the raw TZ Database files at the location specified by `--input_dir`,
compile each zone into its list of Periods, and perform the actions selected
by `--actions`.

The compiler has a number of stages implemented by various helper classes:

* Extractor
    * Parse the raw TZDB files into ZoneRule, ZoneLink and ZoneInfo records.
* Organizer
    * Group the records by name, flatten links, apply the include list.
* PeriodBuilder
    * Expand the ZONE and RULE lines of each zone into Periods.
* Generator
    * Write the compiled Periods in the format selected by `--actions`.

Informational Flags:

* --tz_version
    * Identify the TZDB version. If empty, the version is read from the
      'version' or 'NEWS' file of the input directory.

Workflow Flags:

* `--actions` flags is a comma-separated list of output format
    * json: Generate the `--json_file` file with the Periods of every zone.
    * zonelist: Generate a raw list of zone names in 'zones.txt' file.
    * lookup: Print the Periods of `--zone` which contain `--time` in the
      `--frame` reference frame.

Extractor Flags:

* `--input_dir`
    * Location of the raw TZDB files.

PeriodBuilder Flags:

* --min_year {year}
    * First year of rule expansion for zones which start at -Infinity.
* --max_year {year}
    * Last year of rule expansion for zones which end at +Infinity.
* `--include_list {file}`
    * Filter the zones to include only those in this include list.

Generator Flags:

* `--output_dir {dir}`
    * The directory where various files should be created.
    * If empty, it means the same as $PWD.
* JsonGenerator
    * --json_file {file}
        * Name of the JSON file (e.g. `periods.json`)

Lookup Flags:

* --zone {name}
    * Canonical zone or alias, e.g. 'America/Chicago'.
* --time {iso8601|unix_seconds}
    * Time point in the `--frame`, e.g. '2006-10-29T01:20:00', or the
      number of seconds since the Unix Epoch, e.g. '1162084800'.
* --frame {wall|standard|utc}
    * Reference frame of `--time`.

Examples:

    $ tzcompiler --input_dir tzdata --actions json,zonelist --output_dir out
    $ tzcompiler --input_dir tzdata --actions lookup \
        --zone America/Chicago --time 2006-10-29T01:20:00
"""

import argparse
import datetime
import logging
import sys
from typing import Set
from typing_extensions import Protocol

from tzperiods.data_types.tz_types import Ambiguous
from tzperiods.data_types.tz_types import FRAMES
from tzperiods.data_types.tz_types import FRAME_WALL
from tzperiods.data_types.tz_types import Gap
from tzperiods.data_types.tz_types import MAX_YEAR
from tzperiods.data_types.tz_types import MIN_YEAR
from tzperiods.data_types.tz_types import Period
from tzperiods.data_types.tz_types import PeriodsDatabase
from tzperiods.data_types.tz_types import SECONDS_TO_UNIX_EPOCH
from tzperiods.data_types.tz_types import Unambiguous
from tzperiods.extractor.extractor import Extractor
from tzperiods.generator.jsongenerator import JsonGenerator
from tzperiods.generator.zonelistgenerator import ZoneListGenerator
from tzperiods.transformer.tz_util import datetime_to_gregorian_seconds
from tzperiods.transformer.tz_util import gregorian_seconds_to_datetime
from tzperiods.zone_processor.time_zone_data import TimeZoneData


class Generator(Protocol):
    """Define an interface for Generator subclasses for mypy type checking."""
    def generate_files(self, name: str) -> None:
        ...


def generate_json(
    output_dir: str,
    json_file: str,
    pdb: PeriodsDatabase,
) -> None:
    """Generate JSON file. Activated for '--actions json'.
    """
    logging.info('==== Creating %s file', json_file)
    generator: Generator = JsonGenerator(pdb=pdb, json_file=json_file)
    generator.generate_files(output_dir)


def generate_zonelist(
    invocation: str,
    output_dir: str,
    pdb: PeriodsDatabase,
) -> None:
    """Generate zones.txt file. Activated for '--actions zonelist'.
    """
    logging.info('==== Creating zones.txt file')
    generator: Generator = ZoneListGenerator(invocation=invocation, pdb=pdb)
    generator.generate_files(output_dir)


def lookup_time(
    tzdata: TimeZoneData,
    zone_name: str,
    time_string: str,
    frame: str,
) -> None:
    """Print the Periods which contain the time point. Activated for
    '--actions lookup'.
    """
    time_point = parse_time_string(time_string)
    result = tzdata.lookup(zone_name, time_point, frame)
    logging.info('==== Lookup %s at %s (%s)', zone_name, time_string, frame)
    if isinstance(result, Unambiguous):
        print('Unambiguous:')
        print(format_period(result.period))
    elif isinstance(result, Ambiguous):
        print('Ambiguous:')
        print(format_period(result.first))
        print(format_period(result.second))
    elif isinstance(result, Gap):
        print('Gap between:')
        print(format_period(result.before))
        print(format_period(result.after))


def parse_time_string(time_string: str) -> int:
    """Convert an ISO 8601 date time, or an integer number of seconds since
    the Unix Epoch, into gregorian seconds.
    """
    if time_string.lstrip('-').isdigit():
        return int(time_string) + SECONDS_TO_UNIX_EPOCH
    dt = datetime.datetime.fromisoformat(time_string)
    return datetime_to_gregorian_seconds(dt)


def format_period(period: Period) -> str:
    """Return a human readable one-line summary of the Period in wall time."""
    def format_time(value: object) -> str:
        if isinstance(value, int):
            return gregorian_seconds_to_datetime(value).isoformat()
        return str(value)

    return (
        f"  {period['zone_abbr']}"
        f" utc_offset={period['utc_offset']}"
        f" std_offset={period['std_offset']}"
        f" from={format_time(period['from']['wall'])}"
        f" until={format_time(period['until']['wall'])}"
    )


def main() -> None:
    """
    Main driver for TZ Database compiler which parses the IANA TZ Database
    files located at the --input_dir and compiles them into Periods.

    Usage:
        tzcompiler.py [flags...]
    """
    # Configure command line flags.
    parser = argparse.ArgumentParser(description='Compile TZ Periods.')

    # Target action (i.e. output) selector.
    parser.add_argument(
        '--actions',
        help='Comma-separated list of actions or targets '
             '(json|zonelist|lookup)',
        required=True,
    )

    # Extractor flags.
    parser.add_argument(
        '--input_dir', help='Location of the input directory', required=True)

    # PeriodBuilder flags.
    parser.add_argument(
        '--min_year',
        help=f'First year of rule expansion (default: {MIN_YEAR})',
        type=int,
        default=MIN_YEAR,
    )
    parser.add_argument(
        '--max_year',
        help=f'Last year of rule expansion (default: {MAX_YEAR})',
        type=int,
        default=MAX_YEAR,
    )
    parser.add_argument(
        '--include_list',
        help='File containing include list of zones and links',
        default='',
    )

    # Data pass-through flags.
    parser.add_argument(
        '--tz_version',
        help='Version string of the TZ files',
        default='',
    )

    # Generator flags.
    parser.add_argument(
        '--output_dir',
        help='Location of the output directory',
        default='',
    )
    parser.add_argument(
        '--json_file',
        help='Name of the JSON output file',
        default='periods.json',
    )

    # Lookup flags.
    parser.add_argument(
        '--zone',
        help='Zone or link name for --actions lookup',
        default='',
    )
    parser.add_argument(
        '--time',
        help='ISO 8601 time point, or Unix seconds, for --actions lookup',
        default='',
    )
    parser.add_argument(
        '--frame',
        help='Reference frame of --time (wall|standard|utc)',
        choices=FRAMES,
        default=FRAME_WALL,
    )

    # Parse the command line arguments
    args = parser.parse_args()

    # Configure logging. This should normally be executed after the
    # parser.parse_args() because partial parsing of the command line flags
    # by the parser should not generate any logging messages.
    logging.basicConfig(level=logging.INFO)

    # How the script was invoked
    invocation = ' '.join(sys.argv)

    # Parse the comma-separated list of actions
    actions = set(args.actions.split(','))
    logging.info(f"Actions: {actions}")
    if 'lookup' in actions and not (args.zone and args.time):
        logging.error("Must provide --zone and --time for --actions lookup")
        sys.exit(1)
    if args.min_year > args.max_year:
        logging.error(
            f"--min_year ({args.min_year}) > --max_year ({args.max_year})")
        sys.exit(1)

    # Read the zones and links include list.
    include_list = read_include_list(args.include_list)

    # Extract, organize and index the TZ files.
    logging.info('======== Extracting TZ Data files')
    tzdata = TimeZoneData(
        input_dir=args.input_dir,
        files=Extractor.ZONE_FILES,
        min_year=args.min_year,
        max_year=args.max_year,
        tz_version=args.tz_version,
        include_list=include_list,
    )

    # Perform one or more actions.
    if 'json' in actions or 'zonelist' in actions:
        logging.info('======== Building Periods of all zones')
        pdb = tzdata.get_database()
        tzdata.period_builder.print_summary(pdb['periods_map'])

        logging.info('======== Performing actions, generating files')
        if 'json' in actions:
            generate_json(
                output_dir=args.output_dir,
                json_file=args.json_file,
                pdb=pdb,
            )
        if 'zonelist' in actions:
            generate_zonelist(
                invocation=invocation,
                output_dir=args.output_dir,
                pdb=pdb,
            )

    if 'lookup' in actions:
        lookup_time(tzdata, args.zone, args.time, args.frame)

    tzdata.print_summary()
    logging.info('======== Finished processing TZ Data files.')


def read_include_list(filename: str) -> Set[str]:
    """Read file containing the list of zones and links to include. Empty
    list means 'include everything'.
    """
    zones: Set[str] = set()
    if not filename:
        return zones

    with open(filename) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if line.startswith('#'):
                continue
            zones.add(line)
    return zones


if __name__ == '__main__':
    main()
