"""
Tests for the command-line entry point.
"""

import json
import logging
import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.main import build_parser, handle_exception, main, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level, hook = root.handlers[:], root.level, sys.excepthook
    yield
    sys.excepthook = hook
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def roster_file(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text(json.dumps({
        "employees": [
            {"id": "w1", "name": "Alice"},
            {"id": "w2", "name": "Bob"},
            {"id": "w3", "name": "Carol", "preference": "Night Only"},
        ],
    }), encoding="utf-8")
    return path


def run_cli(*args):
    with pytest.raises(SystemExit) as exc_info:
        main(["--log-dir", "", *args])
    return exc_info.value.code


def test_generate_writes_exports(roster_file, tmp_path, capsys):
    output_dir = tmp_path / "out"
    code = run_cli("generate", "--roster", str(roster_file), "--year", "2024", "--month", "2",
                   "--output-dir", str(output_dir), "--format", "csv", "--format", "excel")
    assert code == 0
    assert (output_dir / "schedule_2_2024.csv").exists()
    assert (output_dir / "schedule_2_2024.xlsx").exists()
    assert "SCHEDULE SUMMARY - Schedule Feb 2024" in capsys.readouterr().out


def test_generate_chains_previous_month(roster_file, tmp_path):
    output_dir = tmp_path / "out"
    assert run_cli("generate", "--roster", str(roster_file), "--year", "2024", "--month", "1",
                   "--output-dir", str(output_dir)) == 0
    assert run_cli("generate", "--roster", str(roster_file), "--year", "2024", "--month", "2",
                   "--history", str(output_dir / "schedule_1_2024.csv"),
                   "--output-dir", str(output_dir), "--seed", "3") == 0
    assert (output_dir / "schedule_2_2024.csv").exists()


@pytest.mark.parametrize("month", ["0", "13"])
def test_invalid_month_fails(roster_file, tmp_path, month):
    code = run_cli("generate", "--roster", str(roster_file), "--year", "2024", "--month", month,
                   "--output-dir", str(tmp_path))
    assert code == 1


def test_missing_roster_fails(tmp_path):
    code = run_cli("generate", "--roster", str(tmp_path / "absent.json"), "--year", "2024", "--month", "2",
                   "--output-dir", str(tmp_path))
    assert code == 1


def test_missing_history_fails(roster_file, tmp_path):
    code = run_cli("generate", "--roster", str(roster_file), "--year", "2024", "--month", "2",
                   "--history", str(tmp_path / "absent.csv"), "--output-dir", str(tmp_path))
    assert code == 1


def test_parser_defaults():
    args = build_parser().parse_args(["generate", "--roster", "r.json", "--year", "2024", "--month", "3"])
    assert args.formats is None
    assert args.seed is None
    assert not args.prioritize_either
    assert args.output_dir == "exports"


def test_setup_logging_writes_log_file(tmp_path):
    logger = setup_logging("DEBUG", str(tmp_path / "logs"))
    logger.info("hello")
    log_files = list((tmp_path / "logs").glob("shift_roster_*.log"))
    assert len(log_files) == 1
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in log_files[0].read_text(encoding="utf-8")


def test_handle_exception_logs(caplog):
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        exc_info = sys.exc_info()
    with caplog.at_level(logging.ERROR):
        handle_exception(*exc_info)
    assert "Uncaught exception" in caplog.text
