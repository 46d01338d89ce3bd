"""
Data Manager for Shift Roster

Loads the roster file (workers, shift configuration and manual history)
from JSON, validates it, and exposes typed accessors for the scheduler.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Any, Union

from .models import (
    DataFileCorruptedError,
    DataFileNotFoundError,
    DataValidationError,
    ManualHistoryInput,
    ShiftConfig,
    Worker,
    manual_history_from_dict,
)

logger = logging.getLogger(__name__)


class DataManager:
    """Read-only access to a roster file"""

    def __init__(self, data_file: Union[str, Path]):
        self.data_file = Path(data_file)
        self.data = self._load_data()
        self._workers = self._parse_workers()

    def _load_data(self) -> Dict[str, Any]:
        """Load roster data and fill in missing sections"""
        if not self.data_file.exists():
            raise DataFileNotFoundError(f"Roster file {self.data_file} does not exist")

        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DataFileCorruptedError(f"Roster file {self.data_file} is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise DataValidationError(f"Roster file {self.data_file} must contain a JSON object")

        logger.info(f"Loaded roster file {self.data_file}")
        return self._validate_data(data)

    def _validate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate roster structure, merging defaults for absent sections"""
        default_data = self._create_default_data()
        for key in default_data:
            if key not in data or data[key] is None:
                data[key] = default_data[key]

        if not isinstance(data["employees"], list):
            raise DataValidationError("'employees' must be a list")
        if not isinstance(data["config"], dict):
            raise DataValidationError("'config' must be an object")
        if not isinstance(data["manualHistory"], dict):
            raise DataValidationError("'manualHistory' must be an object keyed by date")

        for date_key, entry in data["manualHistory"].items():
            try:
                date.fromisoformat(date_key)
            except ValueError:
                raise DataValidationError(f"Invalid manual history date {date_key!r}, expected YYYY-MM-DD")
            if not isinstance(entry, dict):
                raise DataValidationError(f"Manual history entry for {date_key} must be an object")

        return data

    @staticmethod
    def _create_default_data() -> Dict[str, Any]:
        return {
            "employees": [],
            "config": {},
            "manualHistory": {},
        }

    def _parse_workers(self) -> List[Worker]:
        workers = []
        seen_ids = set()
        for emp_data in self.data.get("employees", []):
            if not isinstance(emp_data, dict):
                raise DataValidationError(f"Worker entry must be an object, got {emp_data!r}")
            worker = Worker.from_dict(emp_data)
            if worker.id in seen_ids:
                raise DataValidationError(f"Duplicate worker id {worker.id!r}")
            seen_ids.add(worker.id)
            workers.append(worker)
        return workers

    # Worker access
    def get_workers(self) -> List[Worker]:
        """Get list of workers in roster order"""
        return list(self._workers)

    def get_worker_by_id(self, worker_id: str) -> Optional[Worker]:
        for worker in self._workers:
            if worker.id == worker_id:
                return worker
        return None

    def get_worker_by_name(self, name: str) -> Optional[Worker]:
        """Get worker by name (case-insensitive)"""
        for worker in self._workers:
            if worker.name.lower() == name.strip().lower():
                return worker
        return None

    # Configuration
    def get_config(self) -> ShiftConfig:
        return ShiftConfig.from_dict(self.data.get("config", {}))

    def get_manual_history(self) -> ManualHistoryInput:
        return manual_history_from_dict(self.data.get("manualHistory", {}))
