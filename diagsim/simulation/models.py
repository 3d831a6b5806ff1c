"""
Data models for simulated diagnostic test runs.

This module defines the value types shared by the mode models, the
diagnostic calculator and the simulation driver: test modes, scenarios,
readings, snapshots, indices, classifications, the per-run session and the
finalized measurement record.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

INSUFFICIENT_DATA = "Insufficient Data"


class TestMode(str, Enum):
    """Test procedures the simulated instruments can run."""

    __test__ = False

    SPOT = "spot"
    DISCHARGE = "discharge"
    STEP = "step"
    PARTIAL_DISCHARGE = "pd"

    @classmethod
    def _missing_(cls, value: object) -> Optional["TestMode"]:
        aliases = {
            "ip": cls.SPOT,
            "polarization": cls.SPOT,
            "dd": cls.DISCHARGE,
            "sv": cls.STEP,
            "step_voltage": cls.STEP,
            "partial_discharge": cls.PARTIAL_DISCHARGE,
        }
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
            return aliases.get(lowered)
        return None

    @property
    def instrument(self) -> str:
        """Instrument family that runs this procedure."""
        if self is TestMode.PARTIAL_DISCHARGE:
            return "partial_discharge"
        return "megohmmeter"


class Scenario(str, Enum):
    """Hidden qualitative ground truth driving one run."""

    GOOD = "good"
    ACCEPTABLE = "acceptable"
    MARGINAL = "marginal"
    POOR = "poor"
    DANGEROUS = "dangerous"


class SessionStatus(str, Enum):
    """Lifecycle of a test session."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class Reading(BaseModel):
    """Instantaneous synthetic instrument reading."""

    model_config = ConfigDict(frozen=True)

    elapsed_time: float = Field(..., description="Elapsed test time in seconds")
    applied_voltage: float = Field(..., description="Voltage at the terminals in volts")
    resistance: Optional[float] = Field(default=None, description="Insulation resistance in MΩ")
    current: float = Field(default=0.0, description="Test current in µA")
    capacitance: float = Field(default=0.0, description="Capacitance in nF")
    time_constant: Optional[float] = Field(default=None, description="R·C time constant in seconds")
    phase: Optional[str] = Field(default=None, description="Procedure phase the reading belongs to")
    step_index: Optional[int] = Field(default=None, description="Zero-based voltage step")
    discharge_magnitude: Optional[float] = Field(default=None, description="Apparent charge in pC")
    pulse_rate: Optional[float] = Field(default=None, description="Discharge pulses per second")
    phase_angle: Optional[float] = Field(default=None, description="Position on the power cycle in degrees")


class Checkpoint(BaseModel):
    """Elapsed-time instant at which a snapshot is taken."""

    model_config = ConfigDict(frozen=True)

    checkpoint_id: str = Field(..., description="Checkpoint identifier")
    time: float = Field(..., description="Elapsed time in seconds")
    use_previous: bool = Field(default=False, description="Capture the reading of the tick before the crossing")


class Snapshot(BaseModel):
    """A reading captured once at a fixed checkpoint."""

    model_config = ConfigDict(frozen=True)

    checkpoint_id: str = Field(..., description="Checkpoint identifier, e.g. r60s")
    checkpoint_time: float = Field(..., description="Nominal checkpoint time in seconds")
    captured_at: float = Field(..., description="Elapsed time of the tick that captured it")
    reading: Reading = Field(..., description="Captured reading")


class DiagnosticIndices(BaseModel):
    """Ratio-based indices; None until their snapshots exist."""

    model_config = ConfigDict(frozen=True)

    absorption_ratio: Optional[float] = Field(default=None, description="R60s / R30s")
    # Same formula as absorption_ratio, shown under its own name and table
    absorption_index: Optional[float] = Field(default=None, description="R60s / R30s")
    dielectric_absorption_ratio: Optional[float] = Field(default=None, description="R180s / R30s")
    polarization_index: Optional[float] = Field(default=None, description="R600s / R60s")
    discharge_index: Optional[float] = Field(default=None, description="mA / (V · F) one minute after de-energization")
    step_resistance_ratio: Optional[float] = Field(default=None, description="R at step 5 / R at step 1")
    pd_inception_voltage: Optional[float] = Field(default=None, description="Voltage where discharges start")
    pd_extinction_voltage: Optional[float] = Field(default=None, description="Voltage where discharges stop")
    pd_hold_magnitude: Optional[float] = Field(default=None, description="Discharge magnitude at end of hold, pC")
    pd_peak_magnitude: Optional[float] = Field(default=None, description="Largest discharge magnitude seen, pC")

    def defined(self) -> Dict[str, float]:
        """Return only the indices that have been computed."""
        return {key: value for key, value in self.model_dump().items() if value is not None}


class Classification(BaseModel):
    """Verdict assigned to a set of indices."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Condition label")
    explanation: str = Field(..., description="Justification built from the inputs")
    field_assessments: Dict[str, str] = Field(default_factory=dict, description="Per-field acceptance verdicts")

    @property
    def is_sufficient(self) -> bool:
        return self.label != INSUFFICIENT_DATA


class TestSession(BaseModel):
    """Ground-truth state of one simulated run.

    Sessions are immutable values; each tick produces a new one.
    """

    __test__ = False
    model_config = ConfigDict(frozen=True)

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Run identifier")
    mode: TestMode = Field(..., description="Selected test procedure")
    target_voltage: float = Field(..., description="Operator-selected test voltage")
    scenario: Scenario = Field(..., description="Hidden outcome for this run")
    elapsed_time: float = Field(default=0.0, description="Elapsed simulated seconds")
    status: SessionStatus = Field(default=SessionStatus.RUNNING, description="Lifecycle state")
    reading: Optional[Reading] = Field(default=None, description="Most recent reading")
    previous_reading: Optional[Reading] = Field(default=None, description="Reading of the tick before")
    readings_seen: int = Field(default=0, description="Number of ticks evaluated")
    snapshots: Dict[str, Snapshot] = Field(default_factory=dict, description="Write-once checkpoint captures")
    indices: DiagnosticIndices = Field(default_factory=DiagnosticIndices, description="Derived indices")
    pd_peak_magnitude: Optional[float] = Field(default=None, description="Running maximum discharge, pC")
    pd_inception_voltage: Optional[float] = Field(default=None, description="First ramp-up voltage with activity")
    pd_extinction_voltage: Optional[float] = Field(default=None, description="Last ramp-down voltage with activity")
    pd_pulse_rate_total: float = Field(default=0.0, description="Sum of pulse rates over all readings")

    @property
    def running(self) -> bool:
        return self.status is SessionStatus.RUNNING


class MeasurementRecord(BaseModel):
    """Finalized, immutable result of a run."""

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Record identifier")
    session_id: str = Field(..., description="Session that produced the record")
    mode: TestMode = Field(..., description="Test procedure")
    scenario: Scenario = Field(..., description="Scenario the run was built on")
    target_voltage: float = Field(..., description="Selected test voltage")
    end_reason: str = Field(..., description="completed or stopped")
    applied_voltage: float = Field(default=0.0, description="Voltage at the final reading")
    resistance: Optional[float] = Field(default=None, description="Final resistance in MΩ")
    current: float = Field(default=0.0, description="Final current in µA")
    capacitance: float = Field(default=0.0, description="Final capacitance in nF")
    time_constant: Optional[float] = Field(default=None, description="Final time constant in seconds")
    elapsed_time: float = Field(..., description="Elapsed time at completion or stop")
    snapshots: Dict[str, Snapshot] = Field(default_factory=dict, description="All captured snapshots")
    indices: DiagnosticIndices = Field(default_factory=DiagnosticIndices, description="Computed indices")
    max_discharge: Optional[float] = Field(default=None, description="Largest discharge magnitude of the run, pC")
    average_pulse_rate: Optional[float] = Field(default=None, description="Mean pulse rate over the run")
    classification: Classification = Field(..., description="Verdict")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")

    def to_submission(self, history: Optional[List["MeasurementRecord"]] = None) -> Dict[str, Any]:
        """Build the payload handed to the reporting platform."""
        history = history if history is not None else [self]
        indices = self.indices.defined()
        payload = {
            "type": self.mode.instrument,
            "testMode": self.mode.value,
            "testVoltage": self.target_voltage,
            "finalResistance": self.resistance,
            "finalCurrent": self.current,
            "timeConstant": self.time_constant,
            "capacitanceCC": self.capacitance,
            "indices": indices,
            "classification": self.classification.label,
            "explanation": self.classification.explanation,
            "totalTime": self.elapsed_time,
            "measurements": [
                {
                    "mode": item.mode.value,
                    "voltage": item.target_voltage,
                    "resistance": item.resistance,
                    "current": item.current,
                    "timeConstant": item.time_constant,
                    "capacitanceCC": item.capacitance,
                    "classification": item.classification.label,
                    "time": item.elapsed_time,
                    **item.indices.defined(),
                }
                for item in history
            ],
        }
        if self.mode is TestMode.PARTIAL_DISCHARGE:
            payload["maxPD"] = self.max_discharge or 0.0
            payload["avgPulseCount"] = self.average_pulse_rate or 0.0
        return payload
