# Copyright 2020 Brian T. Park
#
# MIT License

import os
import logging

from tzperiods.data_types.tz_types import PeriodsDatabase


class ZoneListGenerator:
    """Generate the 'zones.txt' file containing the sorted list of canonical
    zones and links, one per line, preceded by a comment header.
    """
    ZONE_LIST_FILE = 'zones.txt'

    def __init__(
        self,
        invocation: str,
        pdb: PeriodsDatabase,
    ):
        self.invocation = invocation
        self.pdb = pdb

    def generate_files(self, output_dir: str) -> None:
        full_filename = os.path.join(output_dir, self.ZONE_LIST_FILE)
        with open(full_filename, 'w', encoding='utf-8') as output_file:
            output_file.write(self.generate_zone_list())
        logging.info("Created %s", full_filename)

    def generate_zone_list(self) -> str:
        names = sorted(
            list(self.pdb['zone_list']) + list(self.pdb['links_map'].keys()))
        header = (
            f"# This file was generated by the following script:\n"
            f"#\n"
            f"#   $ {self.invocation}\n"
            f"#\n"
            f"# using the TZ Database files\n"
            f"#\n"
            f"#   {', '.join(self.pdb['tz_files'])}\n"
            f"#\n"
            f"# from version {self.pdb['tz_version']}\n"
            f"#\n"
            f"# Zones: {self.pdb['num_zones']}\n"
            f"# Links: {self.pdb['num_links']}\n"
            f"#\n"
        )
        return header + ''.join(f'{name}\n' for name in names)
