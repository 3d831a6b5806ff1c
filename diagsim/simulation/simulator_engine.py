"""
Simulation driver for the diagnostic instruments.

The state transition of a single tick is the pure function :func:`advance`.
:class:`SimulatorEngine` owns the current session, feeds chart buffers,
assembles measurement records and notifies subscribers.
"""

import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from diagsim.config_models import SimulationSettings
from diagsim.interfaces import BehavioralModel, InvalidParameterError, ModePhysicsModel, SimulationError
from diagsim.logging_config import get_logger, log_simulation_event
from .behavioral_models import NoiseModel
from .classifier import classify
from .diagnostics import capture_snapshots, compute_indices, track_discharge_activity
from .mode_models import default_models
from .models import MeasurementRecord, Reading, Scenario, SessionStatus, Snapshot, TestMode, TestSession
from .scenarios import ScenarioSelector
from .series import SeriesBuffer, format_elapsed


class EventType(str, Enum):
    """Notifications published by the engine."""

    READING = "reading"
    SNAPSHOT = "snapshot"
    CHART = "chart"
    RECORD = "record"
    STATE = "state"


class ChartUpdate(BaseModel):
    """Display-ready contents of one chart after an append."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Chart name")
    values: List[float] = Field(default_factory=list, description="Reduced values")
    labels: List[str] = Field(default_factory=list, description="Reduced labels")


class TickOutcome(BaseModel):
    """Result of advancing a session by one tick."""

    model_config = ConfigDict(frozen=True)

    session: TestSession = Field(..., description="Session after the tick")
    reading: Optional[Reading] = Field(default=None, description="Reading computed this tick")
    snapshots: List[Snapshot] = Field(default_factory=list, description="Snapshots captured this tick")

    @property
    def completed(self) -> bool:
        return self.session.status is SessionStatus.COMPLETED


def advance(
    session: TestSession,
    model: ModePhysicsModel,
    noise: Optional[BehavioralModel] = None
) -> TickOutcome:
    """
    Advance a running session by one tick.

    Args:
        session: Current session
        model: Physics model of the session's mode
        noise: Optional perturbation applied to the computed reading

    Returns:
        The new session together with the reading and snapshots of this
        tick. A session that is not running is returned unchanged.
    """
    if not session.running:
        return TickOutcome(session=session)

    elapsed = model.clamp(session.elapsed_time + model.time_step(session.elapsed_time))
    reading = model.evaluate(elapsed, session.scenario, session.target_voltage, noise)

    captured = capture_snapshots(model, session.snapshots, reading, session.reading)
    snapshots = dict(session.snapshots)
    for snapshot in captured:
        snapshots[snapshot.checkpoint_id] = snapshot

    updated = session.model_copy(update={
        "elapsed_time": elapsed,
        "reading": reading,
        "previous_reading": session.reading,
        "readings_seen": session.readings_seen + 1,
        "snapshots": snapshots,
        **track_discharge_activity(session, reading),
    })

    status = SessionStatus.COMPLETED if elapsed >= model.ceiling else SessionStatus.RUNNING
    updated = updated.model_copy(update={
        "indices": compute_indices(updated, snapshots),
        "status": status,
    })
    return TickOutcome(session=updated, reading=reading, snapshots=captured)


Listener = Callable[[EventType, object], None]


class SimulatorEngine:
    """Drives one simulated diagnostic session at a time."""

    def __init__(
        self,
        settings: Optional[SimulationSettings] = None,
        models: Optional[Dict[TestMode, ModePhysicsModel]] = None,
        selector: Optional[ScenarioSelector] = None
    ):
        self.settings = settings or SimulationSettings()
        self.logger = get_logger(__name__)
        self._models = models or default_models(self.settings.capacitance_nf)
        self._selector = selector or ScenarioSelector(self.settings.seed)
        self._noise: Optional[BehavioralModel] = None
        if self.settings.noise_enabled:
            self._noise = NoiseModel(self.settings.noise_level, seed=self.settings.seed)

        self._lock = threading.RLock()
        self._session: Optional[TestSession] = None
        self._model: Optional[ModePhysicsModel] = None
        self._buffers: Dict[str, SeriesBuffer] = {}
        self._records: List[MeasurementRecord] = []
        self._listeners: Dict[EventType, List[Listener]] = {event: [] for event in EventType}

    @property
    def session(self) -> Optional[TestSession]:
        return self._session

    @property
    def is_running(self) -> bool:
        session = self._session
        return session is not None and session.running

    @property
    def records(self) -> List[MeasurementRecord]:
        return list(self._records)

    @property
    def tick_period(self) -> Optional[float]:
        """Wall-clock tick period of the active mode."""
        return self._model.tick_period if self._model is not None else None

    def model_for(self, mode: Union[TestMode, str]) -> ModePhysicsModel:
        """
        Return the physics model of a test mode.

        Raises:
            InvalidParameterError: If the mode is unknown
        """
        try:
            resolved = TestMode(mode)
        except ValueError as e:
            raise InvalidParameterError(f"Unknown test mode: {mode!r}") from e
        if resolved not in self._models:
            raise InvalidParameterError(f"No model registered for mode {resolved.value!r}")
        return self._models[resolved]

    def start(
        self,
        mode: Union[TestMode, str],
        target_voltage: float,
        scenario: Union[Scenario, str, None] = None
    ) -> TestSession:
        """
        Start a new run.

        Starting while a run is active is a no-op that returns the active
        session.

        Args:
            mode: Test procedure
            target_voltage: Test voltage, one of the allowed voltages
            scenario: Force a scenario instead of drawing one

        Returns:
            The running session

        Raises:
            InvalidParameterError: If mode, voltage or scenario are invalid
        """
        with self._lock:
            if self.is_running:
                self.logger.warning("Start requested while a run is active; ignoring")
                return self._session

            model = self.model_for(mode)
            if target_voltage not in self.settings.allowed_voltages:
                raise InvalidParameterError(
                    f"Test voltage {target_voltage} V is not allowed "
                    f"(valid: {self.settings.allowed_voltages[0]}..{self.settings.allowed_voltages[-1]} V)"
                )
            chosen = self._selector.resolve(model, scenario)

            if self._noise is not None:
                self._noise.reset()
            self._buffers = {}
            self._model = model
            self._session = TestSession(mode=model.mode, target_voltage=float(target_voltage), scenario=chosen)

            log_simulation_event(
                self.logger, "start",
                session=self._session.session_id,
                mode=model.mode.value,
                voltage=target_voltage,
            )
            self.logger.debug(f"Scenario for session {self._session.session_id}: {chosen.value}")
            self._emit(EventType.STATE, self._session.status)
            return self._session

    def stop(self) -> Optional[MeasurementRecord]:
        """
        Stop the active run.

        Returns:
            A record built from the reading at stop time, or None when no
            run is active
        """
        with self._lock:
            if not self.is_running:
                return None

            record = self._finalize("stopped")
            self._session = self._session.model_copy(update={"status": SessionStatus.IDLE})
            log_simulation_event(self.logger, "stop", session=record.session_id, elapsed=record.elapsed_time)
            self._emit(EventType.STATE, self._session.status)
            return record

    def tick(self) -> Optional[TickOutcome]:
        """
        Advance the active run by one tick.

        Returns:
            The tick outcome, or None when no run is active
        """
        with self._lock:
            if not self.is_running:
                return None

            outcome = advance(self._session, self._model, self._noise)
            self._session = outcome.session
            reading = outcome.reading

            self._emit(EventType.READING, reading)
            label = format_elapsed(reading.elapsed_time)
            updated_charts = []
            for name, value in self._model.chart_points(reading).items():
                self._buffer(name).append(value, label)
                updated_charts.append(name)

            for snapshot in outcome.snapshots:
                log_simulation_event(
                    self.logger, "snapshot",
                    session=self._session.session_id,
                    checkpoint=snapshot.checkpoint_id,
                    elapsed=snapshot.captured_at,
                )
                point = self._model.snapshot_chart_point(snapshot)
                if point is not None:
                    name, value, point_label = point
                    self._buffer(name).append(value, point_label)
                    updated_charts.append(name)
                self._emit(EventType.SNAPSHOT, snapshot)

            for name in dict.fromkeys(updated_charts):
                values, labels = self._buffers[name].reduced()
                self._emit(EventType.CHART, ChartUpdate(name=name, values=values, labels=labels))

            if outcome.completed:
                record = self._finalize("completed")
                log_simulation_event(
                    self.logger, "complete",
                    session=record.session_id,
                    classification=record.classification.label,
                )
                self._emit(EventType.STATE, self._session.status)

            return outcome

    def run_to_completion(self, max_ticks: int = 10000) -> Optional[MeasurementRecord]:
        """
        Tick synchronously until the active run completes.

        Returns:
            The completion record, or None if no run was active

        Raises:
            SimulationError: If the run does not complete within max_ticks
        """
        if not self.is_running:
            return None

        for _ in range(max_ticks):
            outcome = self.tick()
            if outcome is None or outcome.completed:
                break
        else:
            raise SimulationError(f"Run did not complete within {max_ticks} ticks")

        return self._records[-1] if self._records else None

    def chart(self, name: str) -> Tuple[List[float], List[str]]:
        """Return the reduced ``(values, labels)`` of a chart, empty if unknown."""
        with self._lock:
            buffer = self._buffers.get(name)
            if buffer is None:
                return [], []
            return buffer.reduced()

    def charts(self) -> Dict[str, Tuple[List[float], List[str]]]:
        with self._lock:
            return {name: buffer.reduced() for name, buffer in self._buffers.items()}

    def subscribe(self, event: EventType, callback: Listener) -> None:
        """Register a callback invoked as ``callback(event, payload)``."""
        with self._lock:
            self._listeners[event].append(callback)

    def unsubscribe(self, event: EventType, callback: Listener) -> None:
        with self._lock:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

    def _buffer(self, name: str) -> SeriesBuffer:
        if name not in self._buffers:
            self._buffers[name] = SeriesBuffer(
                name,
                capacity=self.settings.buffer_capacity,
                display_points=self.settings.display_points,
            )
        return self._buffers[name]

    def _finalize(self, end_reason: str) -> MeasurementRecord:
        session = self._session
        reading = session.reading or Reading(elapsed_time=session.elapsed_time, applied_voltage=0.0)
        record = MeasurementRecord(
            session_id=session.session_id,
            mode=session.mode,
            scenario=session.scenario,
            target_voltage=session.target_voltage,
            end_reason=end_reason,
            applied_voltage=reading.applied_voltage,
            resistance=reading.resistance,
            current=reading.current,
            capacitance=reading.capacitance,
            time_constant=reading.time_constant,
            elapsed_time=session.elapsed_time,
            snapshots=dict(session.snapshots),
            indices=session.indices,
            classification=classify(session.mode, session.indices, session.scenario),
            **self._discharge_summary(session),
        )
        self._records.append(record)
        self._emit(EventType.RECORD, record)
        return record

    @staticmethod
    def _discharge_summary(session: TestSession) -> Dict[str, Optional[float]]:
        if session.mode is not TestMode.PARTIAL_DISCHARGE or not session.readings_seen:
            return {}
        return {
            "max_discharge": session.pd_peak_magnitude,
            "average_pulse_rate": session.pd_pulse_rate_total / session.readings_seen,
        }

    def _emit(self, event: EventType, payload: object) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback(event, payload)
            except Exception:
                self.logger.exception(f"Listener for {event.value} events failed")
