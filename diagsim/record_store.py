"""File system-based storage for finalized measurement records."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .interfaces import RecordStoreError
from .logging_config import get_logger
from .simulation.models import MeasurementRecord

CSV_HEADER = "created_at,record_id,mode,target_voltage,end_reason,classification,elapsed_time,resistance,current\n"


class RecordJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles Path and datetime objects."""

    def default(self, obj):
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class RecordStore:
    """Keeps measurement records and their platform payloads on disk.

    Layout below ``base_path``::

        records/<record_id>.json       full record
        submissions/<record_id>.json   payload for the reporting platform
        measurements.csv               one summary line per record
    """

    def __init__(self, base_path: Path):
        """
        Initialize the record store.

        Args:
            base_path: Base directory for stored records
        """
        self.base_path = Path(base_path)
        try:
            (self.base_path / "records").mkdir(parents=True, exist_ok=True)
            (self.base_path / "submissions").mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RecordStoreError(f"Cannot create record directory {self.base_path}: {e}") from e
        self.logger = get_logger(__name__)

    def save(self, record: MeasurementRecord, history: Optional[List[MeasurementRecord]] = None) -> Path:
        """
        Persist a record together with its submission payload.

        Args:
            record: Finalized measurement record
            history: Records listed in the payload's measurements; defaults to the record alone

        Returns:
            Path of the written record file

        Raises:
            RecordStoreError: If any file cannot be written
        """
        record_file = self._record_file(record.record_id)
        submission_file = self.base_path / "submissions" / f"{record.record_id}.json"
        csv_file = self.base_path / "measurements.csv"

        try:
            record_file.write_text(record.model_dump_json(indent=2))
            with open(submission_file, "w") as f:
                json.dump(record.to_submission(history), f, indent=2, cls=RecordJSONEncoder)

            if not csv_file.exists():
                with open(csv_file, "w") as f:
                    f.write(CSV_HEADER)
            with open(csv_file, "a") as f:
                resistance = "" if record.resistance is None else record.resistance
                f.write(
                    f"{record.created_at.isoformat()},{record.record_id},{record.mode.value},"
                    f"{record.target_voltage},{record.end_reason},{record.classification.label},"
                    f"{record.elapsed_time},{resistance},{record.current}\n"
                )
        except OSError as e:
            raise RecordStoreError(f"Failed to save record {record.record_id}: {e}") from e

        self.logger.info(f"Saved record {record.record_id} ({record.mode.value}, {record.classification.label})")
        return record_file

    def load(self, record_id: str) -> MeasurementRecord:
        """
        Load a stored record.

        Raises:
            RecordStoreError: If the record is missing or unreadable
        """
        record_file = self._record_file(record_id)
        if not record_file.exists():
            raise RecordStoreError(f"Record {record_id} not found")

        try:
            return MeasurementRecord.model_validate_json(record_file.read_text())
        except (OSError, ValidationError) as e:
            raise RecordStoreError(f"Failed to load record {record_id}: {e}") from e

    def load_submission(self, record_id: str) -> Dict[str, Any]:
        """Load the stored submission payload of a record."""
        submission_file = self.base_path / "submissions" / f"{record_id}.json"
        if not submission_file.exists():
            raise RecordStoreError(f"Submission for record {record_id} not found")

        try:
            with open(submission_file, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RecordStoreError(f"Failed to load submission {record_id}: {e}") from e

    def list_records(self) -> List[MeasurementRecord]:
        """
        Get all stored records.

        Returns:
            Records sorted newest first; unreadable files are skipped
        """
        records = []
        for record_file in (self.base_path / "records").glob("*.json"):
            try:
                records.append(MeasurementRecord.model_validate_json(record_file.read_text()))
            except (OSError, ValidationError) as e:
                self.logger.warning(f"Skipping unreadable record {record_file.name}: {e}")

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def delete(self, record_id: str) -> None:
        """Delete a record and its submission payload."""
        try:
            for path in (self._record_file(record_id), self.base_path / "submissions" / f"{record_id}.json"):
                if path.exists():
                    path.unlink()
        except OSError as e:
            raise RecordStoreError(f"Failed to delete record {record_id}: {e}") from e

    def _record_file(self, record_id: str) -> Path:
        return self.base_path / "records" / f"{record_id}.json"
