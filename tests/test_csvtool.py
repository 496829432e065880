import csv

import pytest

from subgame_cfr.csvtool import write_csv


def test_demo_table(tmp_path):
    path = tmp_path / "results" / "test" / "output.csv"
    data = [[1.1, 2.2, 3.3], [4.4, 5.5, 6.6], [7.7, 8.8, 9.9]]
    write_csv(path, ["Col1", "Col2", "Col3"], data)
    assert path.read_text().splitlines() == [
        "Col1,Col2,Col3",
        "1.1,4.4,7.7",
        "2.2,5.5,8.8",
        "3.3,6.6,9.9",
    ]


def test_round_trip_through_csv_reader(tmp_path):
    path = tmp_path / "out.csv"
    columns = [[0.25, 3.5], [-1.75, 100.125]]
    write_csv(path, ["a", "b"], columns)
    with path.open(newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["a", "b"]
    assert [[float(x) for x in row] for row in rows[1:]] == [[0.25, -1.75], [3.5, 100.125]]


def test_float_formatting_has_no_exponent(tmp_path):
    path = tmp_path / "f.csv"
    write_csv(path, ["x"], [[1.0, 1e-10]])
    assert path.read_text().splitlines()[1:] == ["1", "0.0000000001"]


def test_creates_missing_directories(tmp_path):
    path = tmp_path / "a" / "b" / "c.csv"
    write_csv(path, ["x"], [[1, 2]])
    assert path.read_text().splitlines() == ["x", "1", "2"]


def test_no_columns_writes_header_only(tmp_path):
    path = tmp_path / "h.csv"
    write_csv(path, ["x", "y"], [])
    assert path.read_text() == "x,y\n"


def test_short_column_raises(tmp_path):
    with pytest.raises(ValueError):
        write_csv(tmp_path / "s.csv", ["x", "y"], [[1, 2, 3], [1]])


def test_rows_follow_first_column_length(tmp_path):
    path = tmp_path / "l.csv"
    write_csv(path, ["x", "y"], [[1], [2, 3]])
    assert path.read_text().splitlines() == ["x,y", "1,2"]