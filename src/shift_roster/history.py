"""
History Ingestion for Shift Roster

Reads a previously exported schedule grid and turns it into the
HistoricalContext the generator uses to respect rules that span the
boundary into a new month.
"""

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from .models import HistoricalContext, HistoryParseError, ShiftCounts, Worker

logger = logging.getLogger(__name__)

BOM = "\ufeff"
DAY_COLUMN_MARKERS = ("day shift worker", "day worker")
NIGHT_COLUMN_MARKERS = ("night shift worker", "night worker")


def _normalize(text: str) -> str:
    return text.replace('"', '').strip().lower()


def _locate_columns(header: Sequence[str]) -> tuple:
    """Return (day_columns, night_columns) indexes from the header row"""
    day_cols, night_cols = [], []
    for idx, raw in enumerate(header):
        label = _normalize(raw)
        if any(marker in label for marker in DAY_COLUMN_MARKERS):
            day_cols.append(idx)
        if any(marker in label for marker in NIGHT_COLUMN_MARKERS):
            night_cols.append(idx)
    return day_cols, night_cols


def _split_row(line: str) -> List[str]:
    """Split one CSV line; quoting never spans lines"""
    # Unbalanced quotes fall back to a plain comma split
    if line.count('"') % 2:
        return line.split(",")
    try:
        frame = pd.read_csv(
            io.StringIO(line),
            header=None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError):
        return line.split(",")
    return list(frame.fillna("").iloc[0])


def parse_history_csv(text: str, workers: List[Worker],
                      source_name: str = "history.csv") -> HistoricalContext:
    """
    Build a HistoricalContext from an exported schedule grid.

    Args:
        text: Raw file content, newline-delimited, first row is the header
        workers: Current worker pool used to resolve names to ids
        source_name: Label recorded on the returned context

    Raises:
        HistoryParseError: If the input has no header plus data row
    """
    if text.startswith(BOM):
        text = text[len(BOM):]

    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        raise HistoryParseError("Invalid CSV format: expected a header row and at least one data row")

    rows = [_split_row(line) for line in lines]
    header = rows[0]
    day_cols, night_cols = _locate_columns(header)
    if not day_cols and not night_cols:
        logger.warning(f"No day or night worker columns found in {source_name}")

    ids_by_name: Dict[str, str] = {}
    for worker in workers:
        ids_by_name.setdefault(worker.name.strip().lower(), worker.id)

    accumulated = {worker.id: ShiftCounts() for worker in workers}
    consecutive = {worker.id: 0 for worker in workers}
    last_night_ids: List[str] = []
    unresolved = 0

    def resolve(cell: str) -> Optional[str]:
        nonlocal unresolved
        name = _normalize(cell)
        if not name:
            return None
        worker_id = ids_by_name.get(name)
        if worker_id is None:
            unresolved += 1
        return worker_id

    for cells in rows[1:]:
        worked_today = set()
        night_today: List[str] = []

        for col in day_cols:
            worker_id = resolve(cells[col] if col < len(cells) else "")
            if worker_id:
                accumulated[worker_id].day += 1
                accumulated[worker_id].total += 1
                worked_today.add(worker_id)

        for col in night_cols:
            worker_id = resolve(cells[col] if col < len(cells) else "")
            if worker_id:
                accumulated[worker_id].night += 1
                accumulated[worker_id].total += 1
                worked_today.add(worker_id)
                night_today.append(worker_id)

        for worker_id in consecutive:
            consecutive[worker_id] = consecutive[worker_id] + 1 if worker_id in worked_today else 0

        last_night_ids = night_today

    if unresolved:
        logger.warning(f"{unresolved} worker cells in {source_name} did not match any worker")
    logger.info(f"Imported history from {source_name}: {len(rows) - 1} rows, "
                f"{len(last_night_ids)} night workers on the last day")

    return HistoricalContext(
        accumulated_stats=accumulated,
        consecutive_days_ending=consecutive,
        last_day_night_shift_ids=last_night_ids,
        source_name=source_name,
        unresolved_cells=unresolved,
    )


def load_history_file(path: Union[str, Path], workers: List[Worker]) -> HistoricalContext:
    """Read a history export from disk; file errors propagate unchanged"""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    return parse_history_csv(text, workers, source_name=path.name)
