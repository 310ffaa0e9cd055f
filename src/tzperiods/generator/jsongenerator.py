# Copyright 2020 Brian T. Park
#
# MIT License

from typing import Any
from typing import Dict
from typing import List
import os
import logging
import json

from tzperiods.data_types.tz_types import PeriodsDatabase


def serialize_sets(obj: Any) -> List[Any]:
    """Serializer for the Set() collections of a CommentsMap, sorted so that
    the output is reproducible.
    """
    if isinstance(obj, set):
        return sorted(obj)
    raise TypeError("Type %s is not serializable" % type(obj))


class JsonGenerator:
    """Generate the JSON representation of the PeriodsDatabase to the given
    'json_file'. Each Period is written with its 'from' and 'until' time
    points in the 'utc', 'standard' and 'wall' frames, the unbounded ends
    as the strings 'min' and 'max'. Leap seconds are written as objects
    instead of the bare arrays that json makes of a NamedTuple.
    """
    def __init__(
        self,
        pdb: PeriodsDatabase,
        json_file: str
    ):
        self.pdb = pdb
        self.json_file = json_file

    def generate_files(self, output_dir: str) -> None:
        """Serialize the PeriodsDatabase to the specified file."""
        full_filename = os.path.join(output_dir, self.json_file)
        with open(full_filename, 'w', encoding='utf-8') as output_file:
            json.dump(
                self.to_json_object(),
                output_file,
                indent=2,
                default=serialize_sets,
            )
            print(file=output_file)  # add terminating newline
        logging.info(
            "Created %s: %s zones, %s links",
            full_filename, self.pdb['num_zones'], self.pdb['num_links'])

    def to_json_object(self) -> Dict[str, Any]:
        json_object: Dict[str, Any] = dict(self.pdb)
        json_object['leap_seconds'] = [
            leap_second._asdict() for leap_second in self.pdb['leap_seconds']
        ]
        return json_object
