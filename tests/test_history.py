"""
Tests for importing a previous export as historical context.
"""

import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.history import load_history_file, parse_history_csv
from shift_roster.models import HistoryParseError, ShiftCounts, Worker


HEADER = "Date,Is Padding,Day Shift Worker 1,Night Shift Worker 1"


@pytest.fixture
def workers():
    return [
        Worker(id="w1", name="Alice"),
        Worker(id="w2", name="Bob"),
        Worker(id="w3", name="Carol"),
        Worker(id="w4", name="Smith, Jane"),
    ]


def test_counts_streaks_and_last_night(workers):
    text = "\n".join([
        HEADER,
        "2024-01-29,No,Alice,Bob",
        "2024-01-30,No,Alice,Carol",
        "2024-01-31,No,Bob,Alice",
    ])
    history = parse_history_csv(text, workers, source_name="january.csv")

    assert history.source_name == "january.csv"
    assert history.accumulated_stats["w1"] == ShiftCounts(day=2, night=1, total=3)
    assert history.accumulated_stats["w2"] == ShiftCounts(day=1, night=1, total=2)
    assert history.accumulated_stats["w3"] == ShiftCounts(day=0, night=1, total=1)

    assert history.consecutive_days_ending == {"w1": 3, "w2": 1, "w3": 0, "w4": 0}
    assert history.last_day_night_shift_ids == ["w1"]
    assert history.unresolved_cells == 0


def test_every_worker_has_an_entry(workers):
    history = parse_history_csv(HEADER + "\n2024-01-31,No,Alice,", workers)
    assert set(history.accumulated_stats) == {"w1", "w2", "w3", "w4"}
    assert history.accumulated_stats["w4"].total == 0
    assert history.consecutive_days_ending["w4"] == 0
    assert history.last_day_night_shift_ids == []


def test_bom_quotes_and_embedded_commas(workers):
    text = (
        "\ufeff\"Date\",\"Is Padding\",\"Day Shift Worker 1\",\"Night Shift Worker 1\"\r\n"
        "\"2024-01-31\",\"No\",\"Smith, Jane\",\"bob\"\r\n"
    )
    history = parse_history_csv(text, workers)

    assert history.accumulated_stats["w4"].day == 1
    assert history.accumulated_stats["w2"].night == 1
    assert history.last_day_night_shift_ids == ["w2"]


def test_unknown_names_are_skipped_and_counted(workers):
    text = "\n".join([
        HEADER,
        "2024-01-30,No,Zed,Alice",
        "2024-01-31,No,ALICE,Nobody",
    ])
    history = parse_history_csv(text, workers)

    assert history.accumulated_stats["w1"] == ShiftCounts(day=1, night=1, total=2)
    assert history.unresolved_cells == 2
    assert history.last_day_night_shift_ids == []


def test_multiple_columns_and_excel_style_headers(workers):
    text = "\n".join([
        "Date,Day Worker 1,Day Worker 2,Night Worker 1,Night Worker 2",
        "2024-01-31,Alice,Carol,Bob,Smith",
        "",
    ])
    history = parse_history_csv(text, workers)

    assert history.accumulated_stats["w1"].day == 1
    assert history.accumulated_stats["w3"].day == 1
    assert history.accumulated_stats["w2"].night == 1
    assert history.last_day_night_shift_ids == ["w2"]
    # "Smith" alone does not match "Smith, Jane"
    assert history.unresolved_cells == 1


def test_stray_quote_on_last_row_is_tolerated(workers):
    text = "\n".join([
        HEADER,
        "2024-01-30,No,Carol,Bob",
        '2024-01-31,No,"Zed,Alice',
    ])
    history = parse_history_csv(text, workers)

    assert history.accumulated_stats["w3"].day == 1
    assert history.accumulated_stats["w1"].night == 1
    assert history.last_day_night_shift_ids == ["w1"]
    assert history.unresolved_cells == 1


def test_stray_quote_does_not_swallow_following_rows(workers):
    """
    Quoting stays within one line.

    Why this is important:
    - A later quote must not merge the rows in between into one field
    - Streaks and the last night's workers come from the final rows
    """
    text = "\n".join([
        HEADER,
        "2024-01-29,No,Alice,Bob",
        '2024-01-30,No,"Zed,Alice',
        '2024-01-31,No,Carol,"Bob"',
    ])
    history = parse_history_csv(text, workers)

    assert history.accumulated_stats["w3"] == ShiftCounts(day=1, night=0, total=1)
    assert history.accumulated_stats["w1"] == ShiftCounts(day=1, night=1, total=2)
    assert history.accumulated_stats["w2"] == ShiftCounts(day=0, night=2, total=2)
    assert history.consecutive_days_ending == {"w1": 0, "w2": 1, "w3": 1, "w4": 0}
    assert history.last_day_night_shift_ids == ["w2"]


def test_short_rows_are_tolerated(workers):
    text = "\n".join([
        "Date,Is Padding,Day Shift Worker 1,Day Shift Worker 2,Night Shift Worker 1",
        "2024-01-31,No,Alice",
    ])
    history = parse_history_csv(text, workers)
    assert history.accumulated_stats["w1"].day == 1
    assert history.consecutive_days_ending["w1"] == 1


@pytest.mark.parametrize(
    "text",
    ["", HEADER, HEADER + "\n\n   \n", "\ufeff"],
)
def test_missing_data_rows_fail(workers, text):
    with pytest.raises(HistoryParseError):
        parse_history_csv(text, workers)


def test_load_history_file(tmp_path, workers):
    history_file = tmp_path / "schedule_1_2024.csv"
    history_file.write_text(HEADER + "\n2024-01-31,No,Carol,Alice\n", encoding="utf-8")

    history = load_history_file(history_file, workers)
    assert history.source_name == "schedule_1_2024.csv"
    assert history.last_day_night_shift_ids == ["w1"]


def test_load_history_file_missing(tmp_path, workers):
    with pytest.raises(FileNotFoundError):
        load_history_file(tmp_path / "missing.csv", workers)
