"""
Main Entry Point for Shift Roster

Command-line front end: loads a roster file, optionally imports the
previous month's export, generates the schedule and writes the requested
exports, with file and console logging.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from shift_roster.data_manager import DataManager
from shift_roster.history import load_history_file
from shift_roster.models import ScheduleVersion, ShiftRosterError
from shift_roster.reporting import ExportManager
from shift_roster.scheduler_logic import ShiftScheduler, TIE_BREAK_RANDOM, TIE_BREAK_STABLE


def setup_logging(level: str = "INFO", log_dir: Optional[str] = "logs"):
    """Setup application logging"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / f"shift_roster_{datetime.now().strftime('%Y%m%d')}.log"
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shift-roster",
        description="Generate a monthly day/night shift roster."
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-dir", default="logs", help="Directory for log files; empty to disable")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a schedule for one month")
    generate.add_argument("--roster", required=True, help="Roster JSON file (employees, config, manualHistory)")
    generate.add_argument("--year", type=int, required=True)
    generate.add_argument("--month", type=int, required=True, help="Month number, 1-12")
    generate.add_argument("--history", help="CSV export of the previous period")
    generate.add_argument("--output-dir", default="exports")
    generate.add_argument("--format", dest="formats", action="append", choices=["csv", "excel", "pdf", "json"],
                          help="Export format; repeat for several (default: csv)")
    generate.add_argument("--prioritize-either", action="store_true",
                          help="Give 'Either' workers more day shifts")
    generate.add_argument("--seed", type=int,
                          help="Break ranking ties randomly with this seed instead of roster order")
    return parser


class ShiftRosterApp:
    """Main application class"""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.logger = logging.getLogger(__name__)
        self.data_manager = None
        self.scheduler = None
        self.export_manager = None

    def initialize(self):
        """Load roster and build scheduler components"""
        self.data_manager = DataManager(self.args.roster)
        workers = self.data_manager.get_workers()
        if not workers:
            self.logger.warning("Roster has no workers; every slot will be left empty")

        config = self.data_manager.get_config()
        if self.args.prioritize_either:
            config.distribute_day_shifts_to_either = True

        tie_break = TIE_BREAK_STABLE if self.args.seed is None else TIE_BREAK_RANDOM
        self.scheduler = ShiftScheduler(workers, config, tie_break=tie_break, seed=self.args.seed)
        self.export_manager = ExportManager(self.scheduler)
        self.logger.info(f"Initialized with {len(workers)} workers")

    def generate(self) -> ScheduleVersion:
        if not 1 <= self.args.month <= 12:
            raise ValueError(f"Month must be 1-12, got {self.args.month}")

        history = None
        if self.args.history:
            history = load_history_file(self.args.history, self.data_manager.get_workers())
            if history.unresolved_cells:
                self.logger.warning(f"{history.unresolved_cells} names in {history.source_name} "
                                    f"were not found in the roster")

        return self.scheduler.generate_schedule(
            self.args.year,
            self.args.month - 1,
            history=history,
            manual_history=self.data_manager.get_manual_history(),
        )

    def run(self) -> bool:
        """Run generation and exports"""
        try:
            self.initialize()
            version = self.generate()
        except (ShiftRosterError, OSError, ValueError) as e:
            self.logger.error(f"Schedule generation failed: {e}")
            return False

        print(self.export_manager.report_generator.create_summary(version))

        results = self.export_manager.batch_export(version, self.args.output_dir, self.args.formats or ['csv'])
        failed = [fmt for fmt, ok in results.items() if not ok]
        if failed:
            self.logger.error(f"Export failed for: {', '.join(failed)}")
            return False
        return True


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    sys.excepthook = handle_exception
    logger = setup_logging(args.log_level, args.log_dir or None)
    logger.info("Starting Shift Roster")

    app = ShiftRosterApp(args)
    success = app.run()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
