"""
Snapshot capture and diagnostic index calculation.

Snapshots are taken synchronously inside tick handling the first time the
elapsed time reaches a checkpoint. Indices are filled in once their
snapshots exist and are never recomputed afterwards.
"""

from typing import Callable, Dict, List, Optional

from diagsim.interfaces import ModePhysicsModel
from .mode_models import PD_DETECTION_PC
from .models import DiagnosticIndices, Reading, Snapshot, TestMode, TestSession


def capture_snapshots(
    model: ModePhysicsModel,
    taken: Dict[str, Snapshot],
    reading: Reading,
    previous: Optional[Reading]
) -> List[Snapshot]:
    """
    Return snapshots for checkpoints crossed by this reading.

    Args:
        model: Active mode model
        taken: Snapshots already captured in this run
        reading: Reading of the current tick
        previous: Reading of the tick before, if any

    Returns:
        New snapshots only; checkpoints already present in ``taken`` are skipped
    """
    captured = []
    for checkpoint in model.checkpoints():
        if checkpoint.checkpoint_id in taken or reading.elapsed_time < checkpoint.time:
            continue
        source = reading
        if checkpoint.use_previous and previous is not None:
            source = previous
        captured.append(Snapshot(
            checkpoint_id=checkpoint.checkpoint_id,
            checkpoint_time=checkpoint.time,
            captured_at=reading.elapsed_time,
            reading=source,
        ))
    return captured


def resistance_ratio(snapshots: Dict[str, Snapshot], numerator: str, denominator: str) -> Optional[float]:
    """Ratio of two snapshot resistances, None if either is missing."""
    top = snapshots.get(numerator)
    bottom = snapshots.get(denominator)
    if top is None or bottom is None:
        return None
    if top.reading.resistance is None or not bottom.reading.resistance:
        return None
    return top.reading.resistance / bottom.reading.resistance


def discharge_index(current_ua: float, voltage: float, capacitance_nf: float) -> Optional[float]:
    """
    Dielectric discharge index.

    DD = I[mA] / (V[V] · C[F]) with I the current one minute after
    de-energization.

    Returns:
        The index, or None when voltage or capacitance is not positive
    """
    if voltage <= 0 or capacitance_nf <= 0:
        return None
    return (abs(current_ua) / 1000.0) / (voltage * capacitance_nf * 1e-9)


def _spot_indices(session: TestSession, snapshots: Dict[str, Snapshot]) -> Dict[str, Optional[float]]:
    absorption = resistance_ratio(snapshots, "r60s", "r30s")
    return {
        "absorption_ratio": absorption,
        "absorption_index": absorption,
        "dielectric_absorption_ratio": resistance_ratio(snapshots, "r180s", "r30s"),
        "polarization_index": resistance_ratio(snapshots, "r600s", "r60s"),
    }


def _discharge_indices(session: TestSession, snapshots: Dict[str, Snapshot]) -> Dict[str, Optional[float]]:
    snapshot = snapshots.get("discharge_1min")
    if snapshot is None:
        return {}
    reading = snapshot.reading
    return {"discharge_index": discharge_index(reading.current, session.target_voltage, reading.capacitance)}


def _step_indices(session: TestSession, snapshots: Dict[str, Snapshot]) -> Dict[str, Optional[float]]:
    return {"step_resistance_ratio": resistance_ratio(snapshots, "step_5", "step_1")}


def _partial_discharge_indices(session: TestSession, snapshots: Dict[str, Snapshot]) -> Dict[str, Optional[float]]:
    values: Dict[str, Optional[float]] = {"pd_inception_voltage": session.pd_inception_voltage}

    hold = snapshots.get("hold_end")
    if hold is not None:
        values["pd_hold_magnitude"] = hold.reading.discharge_magnitude

    values["pd_extinction_voltage"] = session.pd_extinction_voltage
    if "ramp_down_end" in snapshots:
        values["pd_peak_magnitude"] = session.pd_peak_magnitude or 0.0
    return values


_INDEX_CALCULATORS: Dict[TestMode, Callable[[TestSession, Dict[str, Snapshot]], Dict[str, Optional[float]]]] = {
    TestMode.SPOT: _spot_indices,
    TestMode.DISCHARGE: _discharge_indices,
    TestMode.STEP: _step_indices,
    TestMode.PARTIAL_DISCHARGE: _partial_discharge_indices,
}


def compute_indices(session: TestSession, snapshots: Dict[str, Snapshot]) -> DiagnosticIndices:
    """
    Fill in indices whose prerequisites now exist.

    Indices that are already set on the session are kept as they are.
    """
    current = session.indices
    candidates = _INDEX_CALCULATORS[session.mode](session, snapshots)
    updates = {
        name: value
        for name, value in candidates.items()
        if value is not None and getattr(current, name) is None
    }
    if not updates:
        return current
    return current.model_copy(update=updates)


def track_discharge_activity(session: TestSession, reading: Reading) -> Dict[str, Optional[float]]:
    """
    Update partial discharge bookkeeping for one reading.

    Records the running peak and pulse rate total, the first voltage with
    activity on the rising side and, on the ramp down, the voltage at which
    activity stops.
    """
    magnitude = reading.discharge_magnitude
    if magnitude is None:
        return {}

    updates: Dict[str, Optional[float]] = {
        "pd_pulse_rate_total": session.pd_pulse_rate_total + (reading.pulse_rate or 0.0),
    }
    if session.pd_peak_magnitude is None or magnitude > session.pd_peak_magnitude:
        updates["pd_peak_magnitude"] = magnitude

    active = magnitude >= PD_DETECTION_PC
    if reading.phase != "ramp_down":
        if active and session.pd_inception_voltage is None:
            updates["pd_inception_voltage"] = reading.applied_voltage
    elif session.pd_extinction_voltage is None and not active:
        previous = session.reading
        if previous is not None and (previous.discharge_magnitude or 0.0) >= PD_DETECTION_PC:
            updates["pd_extinction_voltage"] = previous.applied_voltage
    return updates
