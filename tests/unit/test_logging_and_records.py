"""
Unit tests for logging helpers and the measurement record store.
"""

import json
import logging
from datetime import datetime

import pytest

from diagsim.interfaces import RecordStoreError
from diagsim.logging_config import ContextFilter, JSONFormatter, LogCapture, get_logger, log_simulation_event
from diagsim.record_store import RecordStore
from diagsim.simulation.models import (
    Classification,
    DiagnosticIndices,
    MeasurementRecord,
    Scenario,
    TestMode,
)


def _record(**overrides) -> MeasurementRecord:
    values = dict(
        session_id="session-1",
        mode=TestMode.SPOT,
        scenario=Scenario.GOOD,
        target_voltage=5000.0,
        end_reason="completed",
        applied_voltage=5000.0,
        resistance=7200.0,
        current=0.69,
        capacitance=69.0,
        time_constant=496.8,
        elapsed_time=600.0,
        indices=DiagnosticIndices(polarization_index=6.0, absorption_ratio=1.9, absorption_index=1.9),
        classification=Classification(label="Excellent", explanation="Polarization: PI 6.0"),
    )
    values.update(overrides)
    return MeasurementRecord(**values)


class TestLoggingHelpers:

    @pytest.mark.unit
    def test_snapshot_events_log_at_debug(self):
        logger = get_logger("diagsim.test_events")

        with LogCapture("diagsim.test_events") as capture:
            log_simulation_event(logger, "snapshot", checkpoint="r60s")
            log_simulation_event(logger, "start", mode="spot", voltage=5000)

        assert capture.messages("DEBUG") == ["SIMULATION SNAPSHOT: checkpoint=r60s"]
        assert capture.messages("INFO") == ["SIMULATION START: mode=spot voltage=5000"]
        assert capture.records[1].event == "start"

    @pytest.mark.unit
    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord("diagsim.engine", logging.INFO, __file__, 10, "hello", None, None)
        record.event = "start"
        ContextFilter("abc").filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hello"
        assert data["session_id"] == "abc"
        assert data["event"] == "start"
        assert "args" not in data


class TestRecordStore:

    @pytest.mark.unit
    def test_save_and_load(self, record_store: RecordStore):
        record = _record()

        path = record_store.save(record)
        loaded = record_store.load(record.record_id)

        assert path.exists()
        assert loaded == record

    @pytest.mark.unit
    def test_submission_payload_written(self, record_store: RecordStore):
        record = _record()

        record_store.save(record)
        payload = record_store.load_submission(record.record_id)

        assert payload["type"] == "megohmmeter"
        assert payload["testMode"] == "spot"
        assert payload["classification"] == "Excellent"
        assert payload["totalTime"] == 600.0
        assert payload["indices"]["polarization_index"] == 6.0
        assert len(payload["measurements"]) == 1

    @pytest.mark.unit
    def test_summary_csv_appended(self, record_store: RecordStore):
        record_store.save(_record())
        record_store.save(_record(mode=TestMode.PARTIAL_DISCHARGE, resistance=None))

        lines = (record_store.base_path / "measurements.csv").read_text().splitlines()

        assert lines[0].startswith("created_at,record_id")
        assert len(lines) == 3
        assert ",pd," in lines[2]

    @pytest.mark.unit
    def test_list_records_newest_first(self, record_store: RecordStore):
        older = _record(created_at=datetime(2024, 3, 1, 9, 0))
        newer = _record(session_id="session-2", created_at=datetime(2024, 3, 1, 9, 30))
        record_store.save(older)
        record_store.save(newer)

        listed = record_store.list_records()

        assert [r.record_id for r in listed] == [newer.record_id, older.record_id]

    @pytest.mark.unit
    def test_missing_record(self, record_store: RecordStore):
        with pytest.raises(RecordStoreError, match="not found"):
            record_store.load("does-not-exist")

    @pytest.mark.unit
    def test_corrupt_record(self, record_store: RecordStore):
        (record_store.base_path / "records" / "broken.json").write_text("{not json")

        with pytest.raises(RecordStoreError, match="Failed to load"):
            record_store.load("broken")
        assert record_store.list_records() == []

    @pytest.mark.unit
    def test_delete(self, record_store: RecordStore):
        record = _record()
        record_store.save(record)

        record_store.delete(record.record_id)

        with pytest.raises(RecordStoreError):
            record_store.load(record.record_id)

    @pytest.mark.unit
    def test_delete_failure(self, record_store: RecordStore):
        # A directory in place of the record file cannot be unlinked
        (record_store.base_path / "records" / "stuck.json").mkdir()

        with pytest.raises(RecordStoreError, match="Failed to delete record stuck"):
            record_store.delete("stuck")
