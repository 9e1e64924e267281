"""
CSV Export
==========

Writes membership records as a CSV table, one row per record.
The header is always written, so an empty scan yields a header-only file.
"""

import csv
from pathlib import Path
from typing import Iterable

from ..model.schemas import PATH_DELIMITER, MembershipRecord


CSV_COLUMNS = [
    "Root Group",
    "Member",
    "Object Class",
    "Membership Type",
    "Source Group",
    "Nesting Path",
    "Security Flag",
    "Identifier",
]


class CSVExporter:
    """Exports membership records to CSV.

    Usage:
        exporter = CSVExporter(delimiter=",", path_delimiter=" -> ")
        exporter.export(report.records, "output/group_membership.csv")
    """

    def __init__(self, delimiter: str = ",", path_delimiter: str = PATH_DELIMITER):
        self.delimiter = delimiter
        self.path_delimiter = path_delimiter

    def export(self, records: Iterable[MembershipRecord], output_path: str) -> str:
        """Write records in the order given.

        Returns:
            Path to the written CSV file
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f, delimiter=self.delimiter)
            writer.writerow(CSV_COLUMNS)
            for record in records:
                writer.writerow(record.to_row(self.path_delimiter))

        return str(path)
