# Copyright 2018 Brian T. Park
#
# MIT License.

import logging
from typing import Dict
from typing import List
from typing import Optional
from typing import Set

from tzperiods.data_types.tz_types import CommentsMap
from tzperiods.data_types.tz_types import Directive
from tzperiods.data_types.tz_types import GroupsMap
from tzperiods.data_types.tz_types import LinksMap
from tzperiods.data_types.tz_types import RulesMap
from tzperiods.data_types.tz_types import ZoneInfo
from tzperiods.data_types.tz_types import ZoneLink
from tzperiods.data_types.tz_types import ZoneRule
from tzperiods.data_types.tz_types import ZonesMap
from tzperiods.data_types.tz_types import add_comment
from tzperiods.data_types.tz_types import merge_comments


class Organizer:
    """
    Groups the flat list of directives produced by the Extractor into the
    lookup tables used by the PeriodBuilder and the TimeZoneData:

    * rules_map: ruleName -> ZoneRule[] in file order
    * zones_map: zoneName -> ZoneInfo
    * links_map: linkName -> canonical zoneName

    Links which point to other links are flattened so that every alias
    resolves to a canonical zone in one step. Links to unknown zones are
    removed. Both are recorded in CommentsMaps for the summary.
    """
    def __init__(
        self,
        directives: List[Directive],
        include_list: Optional[Set[str]] = None,
    ):
        """
        Args:
            directives: output of the Extractor
            include_list: include list of zones and links, empty means 'all'
        """
        self.directives = directives
        self.include_list = include_list or set()

        self.rules_map: RulesMap = {}
        self.zones_map: ZonesMap = {}
        self.links_map: LinksMap = {}
        self.groups_map: GroupsMap = {}
        self.duplicate_zones: CommentsMap = {}
        self.all_removed_zones: CommentsMap = {}
        self.all_removed_links: CommentsMap = {}
        self.all_notable_links: CommentsMap = {}

    def organize(self) -> None:
        self.rules_map = rules_by_name(self.directives)
        zones_map = zones_by_name(self.directives)
        raw_links = links_by_name(self.directives)

        self._detect_duplicate_zones(self.directives)
        links_map = self._flatten_links(raw_links, zones_map)
        zones_map = self._filter_include_zones(zones_map, self.include_list)
        links_map = self._filter_include_links(links_map, self.include_list)
        links_map = self._remove_links_to_missing_zones(links_map, zones_map)
        links_map = self._remove_links_shadowing_zones(links_map, zones_map)

        self.zones_map = zones_map
        self.links_map = links_map
        self.groups_map = _group_by_file(
            self.directives, self.zones_map, self.links_map)

    def print_summary(self) -> None:
        logging.info(
            f"Summary: Rules: {len(self.rules_map)} sets"
            f"; {sum(len(rules) for rules in self.rules_map.values())} lines")

        logging.info(
            f"Summary: Zones: organized={len(self.zones_map)}"
            f"; removed={len(self.all_removed_zones)}"
            f"; duplicates={len(self.duplicate_zones)}")

        logging.info(
            f"Summary: Links: organized={len(self.links_map)}"
            f"; removed={len(self.all_removed_links)}"
            f"; noted={len(self.all_notable_links)}")

    def _print_comments_map(
        self,
        label: str,
        comments: CommentsMap,
        max_comments: int = 5,
    ) -> None:
        """Helper routine that prints the 'Removed' or 'Noted' zones or links
        along with the reason why it was removed or noted. Print up to a
        maximum of max_comments entries.
        """
        if len(comments) == 0:
            return

        # Print summary line, e.g.:
        # "Removed 2 links to missing zones"
        logging.info(label, len(comments))

        # Print all lines if len() <= max_comments. Otherwise, print top half
        # of max_comments and bottom half of max_comments.
        sorted_comments = sorted(comments.items())
        num_items = len(sorted_comments)
        if num_items <= max_comments:
            for name, reasons in sorted_comments:
                logging.info(f'- {name} ({sorted(reasons)})')
        else:
            ellipses_printed = False
            limit = (max_comments - 1) // 2
            for index, (name, reasons) in enumerate(sorted_comments):
                if index < limit or index >= num_items - limit:
                    logging.info(f'- {name} ({sorted(reasons)})')
                elif not ellipses_printed:
                    logging.info('- [...]')
                    ellipses_printed = True

    # --------------------------------------------------------------------
    # Sanity checks and include filtering.
    # --------------------------------------------------------------------

    def _detect_duplicate_zones(self, directives: List[Directive]) -> None:
        """Record zones defined more than once. The last definition wins."""
        seen: Dict[str, str] = {}
        for directive in directives:
            if directive['record_type'] != 'zone':
                continue
            zone: ZoneInfo = directive  # type: ignore
            name = zone['name']
            if name in seen:
                add_comment(
                    self.duplicate_zones, name,
                    f"Zone defined in {seen[name]} and {zone['file_name']}"
                )
            seen[name] = zone['file_name']
        self._print_comments_map(
            'Detected %s duplicate zones', self.duplicate_zones,
        )

    def _filter_include_zones(
        self,
        zones_map: ZonesMap,
        include_list: Set[str]
    ) -> ZonesMap:
        """Remove zones missing from include list."""
        if not include_list:
            return zones_map

        results: ZonesMap = {}
        removed_zones: CommentsMap = {}
        for name, info in zones_map.items():
            if name in include_list:
                results[name] = info
            else:
                add_comment(
                    removed_zones, name,
                    "Zone missing from include list"
                )

        self._print_comments_map(
            'Removed %s zones missing from include list', removed_zones,
        )
        merge_comments(self.all_removed_zones, removed_zones)
        return results

    def _filter_include_links(
        self,
        links_map: LinksMap,
        include_list: Set[str]
    ) -> LinksMap:
        """Remove links missing from include list."""
        if not include_list:
            return links_map

        results: LinksMap = {}
        removed_links: CommentsMap = {}
        for link_name, zone_name in links_map.items():
            if link_name in include_list:
                results[link_name] = zone_name
            else:
                add_comment(
                    removed_links, link_name,
                    "Link missing from include list"
                )

        self._print_comments_map(
            'Removed %s links missing from include list', removed_links,
        )
        merge_comments(self.all_removed_links, removed_links)
        return results

    # --------------------------------------------------------------------
    # Links.
    # --------------------------------------------------------------------

    def _flatten_links(
        self,
        links_map: LinksMap,
        zones_map: ZonesMap,
    ) -> LinksMap:
        """Resolve links to links, so that every link points directly to its
        final target. A cycle of links is a fatal data error.
        """
        results: LinksMap = {}
        notable_links: CommentsMap = {}
        for link_name, target_name in links_map.items():
            chain = [link_name]
            while target_name in links_map and target_name not in zones_map:
                if target_name in chain:
                    raise Exception(
                        f"Cycle of links: {' -> '.join(chain + [target_name])}"
                    )
                chain.append(target_name)
                target_name = links_map[target_name]
            if len(chain) > 1:
                add_comment(
                    notable_links, link_name,
                    f"Link to link {' -> '.join(chain + [target_name])}"
                )
            results[link_name] = target_name

        self._print_comments_map(
            'Flattened %s links to links', notable_links,
        )
        merge_comments(self.all_notable_links, notable_links)
        return results

    def _remove_links_to_missing_zones(
        self,
        links_map: LinksMap,
        zones_map: ZonesMap,
    ) -> LinksMap:
        """Remove links whose target zone does not exist."""
        results: LinksMap = {}
        removed_links: CommentsMap = {}
        for link_name, zone_name in links_map.items():
            if zone_name in zones_map:
                results[link_name] = zone_name
            else:
                add_comment(
                    removed_links, link_name,
                    f"Target Zone '{zone_name}' missing"
                )

        self._print_comments_map(
            'Removed %s links to missing zones', removed_links,
        )
        merge_comments(self.all_removed_links, removed_links)
        return results

    def _remove_links_shadowing_zones(
        self,
        links_map: LinksMap,
        zones_map: ZonesMap,
    ) -> LinksMap:
        """Remove links whose name is also a zone. The zone wins."""
        results: LinksMap = {}
        removed_links: CommentsMap = {}
        for link_name, zone_name in links_map.items():
            if link_name in zones_map:
                add_comment(
                    removed_links, link_name,
                    "Link name is also a Zone name"
                )
            else:
                results[link_name] = zone_name

        self._print_comments_map(
            'Removed %s links with the name of a zone', removed_links,
        )
        merge_comments(self.all_removed_links, removed_links)
        return results

    # --------------------------------------------------------------------
    # Name lists.
    # --------------------------------------------------------------------

    def zone_list(self) -> List[str]:
        """Sorted list of canonical zone names."""
        return sorted(self.zones_map.keys())

    def link_list(self) -> List[str]:
        """Sorted list of alias names."""
        return sorted(self.links_map.keys())

    def zone_and_link_list(self) -> List[str]:
        """Sorted union of the canonical zone names and the alias names."""
        return sorted(
            list(self.zones_map.keys()) + list(self.links_map.keys()))

    def zone_lists_grouped(self) -> GroupsMap:
        """Map of TZ file name to the sorted zones and links defined in it."""
        return self.groups_map


def rules_by_name(directives: List[Directive]) -> RulesMap:
    """Group the Rule directives by name, keeping file order."""
    rules_map: RulesMap = {}
    for directive in directives:
        if directive['record_type'] != 'rule':
            continue
        rule: ZoneRule = directive  # type: ignore
        rules = rules_map.get(rule['name'])
        if rules is None:
            rules = []
            rules_map[rule['name']] = rules
        rules.append(rule)
    return rules_map


def zones_by_name(directives: List[Directive]) -> ZonesMap:
    """Map of zone name to its ZoneInfo."""
    zones_map: ZonesMap = {}
    for directive in directives:
        if directive['record_type'] == 'zone':
            zone: ZoneInfo = directive  # type: ignore
            zones_map[zone['name']] = zone
    return zones_map


def links_by_name(directives: List[Directive]) -> LinksMap:
    """Map of alias name to its direct target, without any flattening."""
    links_map: LinksMap = {}
    for directive in directives:
        if directive['record_type'] == 'link':
            link: ZoneLink = directive  # type: ignore
            links_map[link['link_name']] = link['zone_name']
    return links_map


def _group_by_file(
    directives: List[Directive],
    zones_map: ZonesMap,
    links_map: LinksMap,
) -> GroupsMap:
    """Group the surviving zone and link names by the file which defined them.
    """
    groups: Dict[str, Set[str]] = {}
    for directive in directives:
        if directive['record_type'] == 'zone':
            zone: ZoneInfo = directive  # type: ignore
            if zone['name'] in zones_map:
                groups.setdefault(zone['file_name'], set()).add(zone['name'])
        elif directive['record_type'] == 'link':
            link: ZoneLink = directive  # type: ignore
            if link['link_name'] in links_map:
                groups.setdefault(link['file_name'], set()).add(
                    link['link_name'])
    return {name: sorted(names) for name, names in sorted(groups.items())}
