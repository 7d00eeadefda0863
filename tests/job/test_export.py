# tests/job/test_export.py
import csv

from forkjob.fork import StatsAggregator
from forkjob.job import export_csv


def test_writes_header_and_rows(tmp_path):
    stats = StatsAggregator()
    path = tmp_path / "out" / "rows.csv"
    rows = [{"id": 1, "name": "a"}, {"id": 2, "name": "b", "extra": "ignored"}]

    assert export_csv(path, rows, stats) == 2

    with path.open(newline="", encoding="utf-8") as fh:
        read = list(csv.DictReader(fh))
    assert read == [{"id": "1", "name": "a"}, {"id": "2", "name": "b"}]
    assert stats.logs[-1].message == f'📀 Exported 2 lines to "{path}"'
    assert stats.errors() == []


def test_empty_rows_record_an_error(tmp_path):
    stats = StatsAggregator()
    path = tmp_path / "empty.csv"

    assert export_csv(path, [], stats) == 0
    assert not path.exists()
    (entry,) = stats.errors()
    assert entry.message == f"No data to export in {path}"
