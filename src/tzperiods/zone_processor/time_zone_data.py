# Copyright 2018 Brian T. Park
#
# MIT License

"""
The query side of the compiled TZ Database. TimeZoneData parses the TZ files
eagerly when it is created, then builds the Periods of each canonical zone on
first use and caches them. Concurrent first requests for the same zone are
serialized by a lock per zone, so the Periods of a zone are computed at most
once and are never observed partially built.

Usage:

    tzdata = TimeZoneData('tzfiles/tzdata2014i')
    result = tzdata.lookup('America/Chicago', seconds, frame='wall')
    if isinstance(result, Ambiguous):
        ...
"""

import logging
import os
import re
import threading
from bisect import bisect_right
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Set
from typing import Tuple
from typing import Union

from tzperiods.data_types.tz_types import Ambiguous
from tzperiods.data_types.tz_types import FRAME_UTC
from tzperiods.data_types.tz_types import FRAMES
from tzperiods.data_types.tz_types import FRAME_WALL
from tzperiods.data_types.tz_types import Gap
from tzperiods.data_types.tz_types import GroupsMap
from tzperiods.data_types.tz_types import LeapSecond
from tzperiods.data_types.tz_types import LinksMap
from tzperiods.data_types.tz_types import LookupResult
from tzperiods.data_types.tz_types import MAX_YEAR
from tzperiods.data_types.tz_types import MIN_TIME
from tzperiods.data_types.tz_types import MIN_YEAR
from tzperiods.data_types.tz_types import Period
from tzperiods.data_types.tz_types import PeriodsDatabase
from tzperiods.data_types.tz_types import PeriodsMap
from tzperiods.data_types.tz_types import Unambiguous
from tzperiods.data_types.tz_types import ZoneNotFoundError
from tzperiods.data_types.tz_types import create_periods_database
from tzperiods.extractor.extractor import Extractor
from tzperiods.extractor.extractor import read_leap_seconds
from tzperiods.transformer.organizer import Organizer
from tzperiods.transformer.period_builder import PeriodBuilder

# Name of the file holding the leap seconds.
LEAP_SECONDS_FILE = 'leapseconds'

# Files which identify the release of the TZ Database, in order of preference.
VERSION_FILE = 'version'
RELEASE_FILES = ['NEWS', 'RELEASE_LINE_FROM_NEWS']

# Matches the release line of the NEWS file, e.g. 'Release 2014i - 2014-10-21'.
RELEASE_REGEX = re.compile(
    r'^Release\s+(?P<version>\S+)\s+-\s+(?P<timestamp>.+)')


class ZoneIndex(NamedTuple):
    """The Periods of a zone, with the data needed to narrow down a lookup
    without scanning the whole list.
    """
    periods: List[Period]
    # from['utc'] of each period, with MIN_TIME as -infinity
    utc_starts: List[Union[int, float]]
    # smallest and largest offset from UTC of the 'standard' and 'wall' frames
    min_offset: int
    max_offset: int


class TimeZoneData:
    """The lookup interface of the compiled TZ Database.
    """

    def __init__(
        self,
        input_dir: str,
        files: Optional[List[str]] = None,
        min_year: int = MIN_YEAR,
        max_year: int = MAX_YEAR,
        tz_version: str = '',
        include_list: Optional[Set[str]] = None,
    ):
        """
        Args:
            input_dir: directory of the TZ Database files
            files: names of the zone files, defaults to Extractor.ZONE_FILES
            min_year: first year of rule expansion
            max_year: last year of rule expansion
            tz_version: TZ Database version, overrides the files
            include_list: zones and links to include, empty means 'all'
        """
        self.input_dir = input_dir
        self.files = files if files is not None else Extractor.ZONE_FILES
        self.min_year = min_year
        self.max_year = max_year

        self.extractor = Extractor(input_dir, self.files)
        self.extractor.parse()

        self.organizer = Organizer(self.extractor.get_data(), include_list)
        self.organizer.organize()

        self.period_builder = PeriodBuilder(
            zones_map=self.organizer.zones_map,
            rules_map=self.organizer.rules_map,
            min_year=min_year,
            max_year=max_year,
        )

        self._tz_version = tz_version or self._read_tzdata_version()
        self._leap_seconds, self._leap_seconds_expires = \
            self._read_leap_seconds()

        self._indexes: Dict[str, ZoneIndex] = {}
        self._registry_lock = threading.Lock()
        self._zone_locks: Dict[str, threading.Lock] = {}

    def print_summary(self) -> None:
        self.extractor.print_summary()
        self.organizer.print_summary()
        logging.info(
            f"Summary: Version: {self._tz_version}"
            f"; Leap seconds: {len(self._leap_seconds)}"
            f"; Zones built: {len(self._indexes)}")

    # --------------------------------------------------------------------
    # Zone names.
    # --------------------------------------------------------------------

    def zone_exists(self, name: str) -> bool:
        return self.is_canonical_zone(name) or self.is_zone_alias(name)

    def is_canonical_zone(self, name: str) -> bool:
        return name in self.organizer.zones_map

    def is_zone_alias(self, name: str) -> bool:
        return name in self.organizer.links_map

    def zone_list(self) -> List[str]:
        """Sorted list of the canonical zones and the aliases."""
        return self.organizer.zone_and_link_list()

    def canonical_zone_list(self) -> List[str]:
        return self.organizer.zone_list()

    def zone_alias_list(self) -> List[str]:
        return self.organizer.link_list()

    def links(self) -> LinksMap:
        """Map of alias name to canonical zone name."""
        return dict(self.organizer.links_map)

    def zone_lists_grouped(self) -> GroupsMap:
        """Map of TZ file name to the zones and aliases defined in it."""
        return self.organizer.zone_lists_grouped()

    def canonical_name(self, name: str) -> str:
        """Resolve an alias to its canonical zone. Raises ZoneNotFoundError
        if the name is unknown.
        """
        if name in self.organizer.zones_map:
            return name
        target = self.organizer.links_map.get(name)
        if target is None:
            raise ZoneNotFoundError(f"Zone '{name}' not found")
        return target

    # --------------------------------------------------------------------
    # Periods.
    # --------------------------------------------------------------------

    def periods(self, name: str) -> List[Period]:
        """Return all the Periods of the zone or alias, in UTC order."""
        return self._zone_index(self.canonical_name(name)).periods

    def periods_for_time(
        self,
        name: str,
        time_point: int,
        frame: str = FRAME_WALL,
    ) -> List[Period]:
        """Return the Periods of the zone which contain the 'time_point'
        (gregorian seconds) expressed in the 'frame' ('utc', 'standard' or
        'wall'). A 'utc' lookup always returns exactly one Period. A 'wall'
        lookup returns 0 Periods inside a gap and 2 Periods inside an
        overlap.
        """
        if frame not in FRAMES:
            raise Exception(f'Invalid frame: {frame}')
        index = self._zone_index(self.canonical_name(name))
        start, end = _candidate_range(index, time_point, frame)
        return [
            period for period in index.periods[start:end]
            if _contains(period, time_point, frame)
        ]

    def lookup(
        self,
        name: str,
        time_point: int,
        frame: str = FRAME_WALL,
    ) -> LookupResult:
        """Same as periods_for_time() but classifies the outcome as
        Unambiguous, Ambiguous or Gap.
        """
        matches = self.periods_for_time(name, time_point, frame)
        if len(matches) == 1:
            return Unambiguous(matches[0])
        if len(matches) == 2:
            return Ambiguous(matches[0], matches[1])
        if len(matches) == 0:
            index = self._zone_index(self.canonical_name(name))
            before, after = _gap_periods(index, time_point, frame)
            return Gap(before, after)
        raise Exception(
            f"Zone '{name}': {len(matches)} periods match "
            f"{time_point} ({frame})")

    def build_all(self) -> PeriodsMap:
        """Build the Periods of every canonical zone."""
        periods_map: PeriodsMap = {}
        for name in self.canonical_zone_list():
            periods_map[name] = self._zone_index(name).periods
        return periods_map

    def get_database(self) -> PeriodsDatabase:
        """Collect every Period, link and leap second into a single
        JSON-serializable object.
        """
        return create_periods_database(
            tz_version=self._tz_version,
            tz_files=self.files,
            min_year=self.min_year,
            max_year=self.max_year,
            links_map=self.organizer.links_map,
            removed_links=self.organizer.all_removed_links,
            notable_links=self.organizer.all_notable_links,
            periods_map=self.build_all(),
            leap_seconds=self._leap_seconds,
        )

    def _zone_index(self, name: str) -> ZoneIndex:
        """Return the ZoneIndex of the canonical zone, building it at most
        once.
        """
        index = self._indexes.get(name)
        if index is not None:
            return index

        with self._registry_lock:
            zone_lock = self._zone_locks.get(name)
            if zone_lock is None:
                zone_lock = threading.Lock()
                self._zone_locks[name] = zone_lock

        with zone_lock:
            index = self._indexes.get(name)
            if index is None:
                index = create_zone_index(
                    self.period_builder.calc_periods(name))
                self._indexes[name] = index
        return index

    # --------------------------------------------------------------------
    # Metadata.
    # --------------------------------------------------------------------

    def tzdata_version(self) -> str:
        """Release of the TZ Database, e.g. '2014i'."""
        return self._tz_version

    def leap_seconds(self) -> List[LeapSecond]:
        return list(self._leap_seconds)

    def leap_seconds_expires(
        self
    ) -> Optional[Tuple[int, int, int, int, int, int]]:
        """(year, month, day, hour, minute, second) in UTC after which the
        list of leap seconds is no longer valid, or None if unknown.
        """
        return self._leap_seconds_expires

    def _read_tzdata_version(self) -> str:
        version_file = os.path.join(self.input_dir, VERSION_FILE)
        if os.path.exists(version_file):
            with open(version_file, 'r', encoding='utf-8') as f:
                version = f.readline().strip()
            if version:
                return version

        for file_name in RELEASE_FILES:
            full_filename = os.path.join(self.input_dir, file_name)
            if not os.path.exists(full_filename):
                continue
            with open(full_filename, 'r', encoding='utf-8') as f:
                for line in f:
                    match = RELEASE_REGEX.match(line)
                    if match:
                        return match.group('version')

        logging.warning(
            'Unable to determine TZ Database version in %s', self.input_dir)
        return ''

    def _read_leap_seconds(self) -> Tuple[
        List[LeapSecond], Optional[Tuple[int, int, int, int, int, int]]
    ]:
        full_filename = os.path.join(self.input_dir, LEAP_SECONDS_FILE)
        if not os.path.exists(full_filename):
            logging.info('Skipping missing file %s', full_filename)
            return [], None
        with open(full_filename, 'r', encoding='utf-8') as f:
            return read_leap_seconds(f, LEAP_SECONDS_FILE)


def create_zone_index(periods: List[Period]) -> ZoneIndex:
    utc_starts: List[Union[int, float]] = []
    offsets: List[int] = []
    for period in periods:
        from_utc = period['from']['utc']
        if from_utc == MIN_TIME:
            utc_starts.append(float('-inf'))
        else:
            assert isinstance(from_utc, int)
            utc_starts.append(from_utc)
        offsets.append(period['utc_offset'])
        offsets.append(period['utc_offset'] + period['std_offset'])
    return ZoneIndex(
        periods=periods,
        utc_starts=utc_starts,
        min_offset=min(offsets),
        max_offset=max(offsets),
    )


def _candidate_range(
    index: ZoneIndex, time_point: int, frame: str,
) -> Tuple[int, int]:
    """Return the [start, end) indexes of the periods which can contain the
    time point. A time point in the 'standard' or 'wall' frame corresponds to
    a UTC time within [time_point - max_offset, time_point - min_offset].
    """
    if frame == FRAME_UTC:
        low = high = time_point
    else:
        low = time_point - index.max_offset
        high = time_point - index.min_offset
    start = max(bisect_right(index.utc_starts, low) - 1, 0)
    end = bisect_right(index.utc_starts, high)
    return (start, end)


def _contains(period: Period, time_point: int, frame: str) -> bool:
    """Return True if from[frame] <= time_point < until[frame]. The MIN_TIME
    and MAX_TIME sentinels always satisfy their side.
    """
    start = period['from'][frame]  # type: ignore
    end = period['until'][frame]  # type: ignore
    if isinstance(start, int) and time_point < start:
        return False
    if isinstance(end, int) and time_point >= end:
        return False
    return True


def _gap_periods(
    index: ZoneIndex, time_point: int, frame: str,
) -> Tuple[Period, Period]:
    """Return the periods on either side of a time point which falls into a
    gap of the 'frame'.
    """
    if frame == FRAME_UTC:
        raise Exception(f'No gap is possible in the {frame} frame')
    start, end = _candidate_range(index, time_point, frame)
    for i in range(max(start, 1), end):
        period = index.periods[i]
        start_time = period['from'][frame]  # type: ignore
        if isinstance(start_time, int) and start_time > time_point:
            return (index.periods[i - 1], period)
    raise Exception(f'Unable to find the gap at {time_point} ({frame})')
