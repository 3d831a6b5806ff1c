"""
Closed-form physics models for each test procedure.

Each model maps ``(elapsed_time, scenario, target_voltage)`` to a reading.
The curves are deterministic; an optional behavioral model adds bounded
noise after the deterministic value has been computed.

Units: resistance in MΩ, current in µA, capacitance in nF, voltage in V,
apparent charge in pC.
"""

import math
from typing import Dict, List, Optional, Tuple

from diagsim.interfaces import BehavioralModel, ModePhysicsModel
from .models import Checkpoint, Reading, Scenario, Snapshot, TestMode

RESISTANCE_FLOOR_MOHM = 1e-3
DEFAULT_CAPACITANCE_NF = 69.0
PD_DETECTION_PC = 0.5
POWER_FREQUENCY_HZ = 60.0


def _perturb(value: float, noise: Optional[BehavioralModel]) -> float:
    if noise is None:
        return value
    return noise.apply(value)


def _time_constant(resistance: float, capacitance_nf: float) -> float:
    # MΩ x nF = 1e-3 s
    return resistance * capacitance_nf / 1000.0


class SpotPolarizationModel(ModePhysicsModel):
    """Insulation resistance growing as a power of time (IP test).

    R(t) = R1 · t_min^k with k = log10(target polarization index), so the
    ratio R(10 min) / R(1 min) equals the scenario's target index.
    """

    R_ONE_MINUTE = 1200.0
    MIN_MINUTES = 0.05
    CEILING = 600.0
    TARGET_INDEX = {
        Scenario.GOOD: 6.0,
        Scenario.ACCEPTABLE: 2.5,
        Scenario.MARGINAL: 1.6,
        Scenario.DANGEROUS: 0.8,
    }

    def __init__(self, capacitance_nf: float = DEFAULT_CAPACITANCE_NF):
        self.capacitance_nf = capacitance_nf

    @property
    def mode(self) -> TestMode:
        return TestMode.SPOT

    @property
    def scenarios(self) -> Tuple[Scenario, ...]:
        return tuple(self.TARGET_INDEX)

    @property
    def ceiling(self) -> float:
        return self.CEILING

    @property
    def tick_period(self) -> float:
        return 1.0

    def time_step(self, elapsed_time: float) -> float:
        # Fine steps while the absorption current settles
        return 5.0 if elapsed_time < 60.0 else 30.0

    def checkpoints(self) -> List[Checkpoint]:
        return [
            Checkpoint(checkpoint_id=f"r{seconds}s", time=float(seconds))
            for seconds in (15, 30, 60, 180, 600)
        ]

    def exponent(self, scenario: Scenario) -> float:
        """Return the power-law exponent k for a scenario."""
        return math.log10(self.TARGET_INDEX[scenario])

    def resistance_at(self, elapsed_time: float, scenario: Scenario) -> float:
        """Noise-free resistance in MΩ."""
        minutes = max(self.clamp(elapsed_time) / 60.0, self.MIN_MINUTES)
        return self.R_ONE_MINUTE * minutes ** self.exponent(scenario)

    def evaluate(self, elapsed_time: float, scenario: Scenario, target_voltage: float,
                 noise: Optional[BehavioralModel] = None) -> Reading:
        elapsed = self.clamp(elapsed_time)
        resistance = max(_perturb(self.resistance_at(elapsed, scenario), noise), RESISTANCE_FLOOR_MOHM)
        capacitance = _perturb(self.capacitance_nf, noise)

        return Reading(
            elapsed_time=elapsed,
            applied_voltage=target_voltage,
            resistance=resistance,
            current=target_voltage / resistance,
            capacitance=capacitance,
            time_constant=_time_constant(resistance, capacitance),
            phase="absorption" if elapsed < 60.0 else "polarization",
        )

    def chart_points(self, reading: Reading) -> Dict[str, float]:
        return {"resistance": reading.resistance}


class DielectricDischargeModel(ModePhysicsModel):
    """Charge for 30 minutes, then de-energize and watch the reabsorption current.

    The charge current decays exponentially toward the leakage value V/R.
    After the boundary the current rises quickly to a negative peak and
    decays with a scenario-specific time constant chosen so that the
    one-minute current reproduces the scenario's discharge index.
    """

    CHARGE_DURATION = 1800.0
    DISCHARGE_DURATION = 120.0
    INDEX_DELAY = 60.0
    R_BASE = 900.0
    R_GROWTH = 900.0
    ABSORPTION_TAU = 300.0
    ABSORPTION_SCALE = 1e-4
    RISE_TAU = 3.0
    REVERSAL_RATIO = 0.8
    TARGET_INDEX = {
        Scenario.GOOD: 0.3,
        Scenario.ACCEPTABLE: 1.2,
        Scenario.MARGINAL: 3.0,
        Scenario.POOR: 5.5,
        Scenario.DANGEROUS: 9.0,
    }

    def __init__(self, capacitance_nf: float = DEFAULT_CAPACITANCE_NF):
        self.capacitance_nf = capacitance_nf

    @property
    def mode(self) -> TestMode:
        return TestMode.DISCHARGE

    @property
    def scenarios(self) -> Tuple[Scenario, ...]:
        return tuple(self.TARGET_INDEX)

    @property
    def ceiling(self) -> float:
        return self.CHARGE_DURATION + self.DISCHARGE_DURATION

    @property
    def tick_period(self) -> float:
        return 1.0

    def time_step(self, elapsed_time: float) -> float:
        return 60.0 if elapsed_time < self.CHARGE_DURATION else 5.0

    def checkpoints(self) -> List[Checkpoint]:
        return [
            Checkpoint(checkpoint_id="charge_end", time=self.CHARGE_DURATION),
            Checkpoint(checkpoint_id="discharge_1min", time=self.CHARGE_DURATION + self.INDEX_DELAY),
        ]

    def resistance_at(self, elapsed_time: float) -> float:
        charge_time = min(self.clamp(elapsed_time), self.CHARGE_DURATION)
        return self.R_BASE + self.R_GROWTH * math.log(charge_time / 60.0 + 1.0)

    def peak_charge_current(self, target_voltage: float) -> float:
        """Charge-phase current at energization in µA."""
        absorption = self.ABSORPTION_SCALE * target_voltage * self.capacitance_nf
        return absorption + target_voltage / self.R_BASE

    def decay_constant(self, scenario: Scenario, target_voltage: float) -> float:
        """Reabsorption time constant reproducing the scenario's index."""
        target_ua = self.TARGET_INDEX[scenario] * target_voltage * self.capacitance_nf * 1e-6
        amplitude = (self.REVERSAL_RATIO * self.peak_charge_current(target_voltage)
                     * (1.0 - math.exp(-self.INDEX_DELAY / self.RISE_TAU)))
        return self.INDEX_DELAY / math.log(amplitude / target_ua)

    def current_at(self, elapsed_time: float, scenario: Scenario, target_voltage: float) -> float:
        """Noise-free signed current in µA."""
        elapsed = self.clamp(elapsed_time)
        if elapsed <= self.CHARGE_DURATION:
            absorption = self.ABSORPTION_SCALE * target_voltage * self.capacitance_nf
            leakage = target_voltage / self.resistance_at(elapsed)
            return absorption * math.exp(-elapsed / self.ABSORPTION_TAU) + leakage

        since = elapsed - self.CHARGE_DURATION
        peak = self.REVERSAL_RATIO * self.peak_charge_current(target_voltage)
        tau = self.decay_constant(scenario, target_voltage)
        return -peak * (1.0 - math.exp(-since / self.RISE_TAU)) * math.exp(-since / tau)

    def evaluate(self, elapsed_time: float, scenario: Scenario, target_voltage: float,
                 noise: Optional[BehavioralModel] = None) -> Reading:
        elapsed = self.clamp(elapsed_time)
        charging = elapsed <= self.CHARGE_DURATION
        resistance = max(_perturb(self.resistance_at(elapsed), noise), RESISTANCE_FLOOR_MOHM)
        current = _perturb(self.current_at(elapsed, scenario, target_voltage), noise)
        capacitance = _perturb(self.capacitance_nf, noise)

        return Reading(
            elapsed_time=elapsed,
            applied_voltage=target_voltage if charging else 0.0,
            resistance=resistance,
            current=current,
            capacitance=capacitance,
            time_constant=_time_constant(resistance, capacitance),
            phase="charge" if charging else "discharge",
        )

    def chart_points(self, reading: Reading) -> Dict[str, float]:
        return {"current": reading.current}


class StepVoltageModel(ModePhysicsModel):
    """Five equal voltage steps of one minute each.

    Resistance per step follows the scenario's curve family: rising, flat,
    a decline bounded to 15 %, or a steep collapse of 65 % at full voltage.
    """

    STEP_DURATION = 60.0
    STEP_COUNT = 5
    R_BASE = 1200.0
    SLOPE_PER_STEP = {
        Scenario.GOOD: 0.08,
        Scenario.ACCEPTABLE: 0.0,
        Scenario.MARGINAL: -0.0375,
        Scenario.DANGEROUS: -0.1625,
    }

    def __init__(self, capacitance_nf: float = DEFAULT_CAPACITANCE_NF):
        self.capacitance_nf = capacitance_nf

    @property
    def mode(self) -> TestMode:
        return TestMode.STEP

    @property
    def scenarios(self) -> Tuple[Scenario, ...]:
        return tuple(self.SLOPE_PER_STEP)

    @property
    def ceiling(self) -> float:
        return self.STEP_DURATION * self.STEP_COUNT

    @property
    def tick_period(self) -> float:
        return 1.0

    def time_step(self, elapsed_time: float) -> float:
        return 20.0

    def checkpoints(self) -> List[Checkpoint]:
        # Each boundary keeps the settled reading from the end of the step
        return [
            Checkpoint(checkpoint_id=f"step_{step}", time=self.STEP_DURATION * step, use_previous=True)
            for step in range(1, self.STEP_COUNT + 1)
        ]

    def step_index(self, elapsed_time: float) -> int:
        return min(int(self.clamp(elapsed_time) // self.STEP_DURATION), self.STEP_COUNT - 1)

    def step_voltages(self, target_voltage: float) -> List[float]:
        return [float(round((index + 1) / self.STEP_COUNT * target_voltage))
                for index in range(self.STEP_COUNT)]

    def resistance_at_step(self, step_index: int, scenario: Scenario) -> float:
        return self.R_BASE * (1.0 + self.SLOPE_PER_STEP[scenario] * step_index)

    def evaluate(self, elapsed_time: float, scenario: Scenario, target_voltage: float,
                 noise: Optional[BehavioralModel] = None) -> Reading:
        elapsed = self.clamp(elapsed_time)
        index = self.step_index(elapsed)
        voltage = self.step_voltages(target_voltage)[index]
        resistance = max(_perturb(self.resistance_at_step(index, scenario), noise), RESISTANCE_FLOOR_MOHM)
        capacitance = _perturb(self.capacitance_nf, noise)

        return Reading(
            elapsed_time=elapsed,
            applied_voltage=voltage,
            resistance=resistance,
            current=voltage / resistance,
            capacitance=capacitance,
            time_constant=_time_constant(resistance, capacitance),
            phase=f"step_{index + 1}",
            step_index=index,
        )

    def chart_points(self, reading: Reading) -> Dict[str, float]:
        return {"resistance": reading.resistance}

    def snapshot_chart_point(self, snapshot: Snapshot) -> Optional[Tuple[str, float, str]]:
        reading = snapshot.reading
        return "step_resistance", reading.resistance, f"{reading.applied_voltage:.0f} V"


class PartialDischargeRampModel(ModePhysicsModel):
    """Four-phase voltage profile of the partial discharge analyzer.

    Stabilise at 20 % of the test voltage, ramp up, hold at full voltage,
    ramp back down. Discharges start at the inception voltage, grow with
    voltage and persist on the way down until the extinction voltage.
    """

    STABILIZE_END = 10.0
    RAMP_UP_END = 60.0
    HOLD_END = 120.0
    RAMP_DOWN_END = 170.0
    START_FRACTION = 0.2
    EXTINCTION_RATIO = 0.8
    ONSET_FRACTION = 0.2
    PULSES_PER_SQRT_PC = 8.0
    PHASE_DEGREES_PER_SECOND = 36.0
    PROFILES = {
        Scenario.GOOD: (3.0, 0.6),
        Scenario.ACCEPTABLE: (12.0, 0.5),
        Scenario.MARGINAL: (35.0, 0.4),
        Scenario.DANGEROUS: (120.0, 0.3),
    }

    def __init__(self, capacitance_nf: float = DEFAULT_CAPACITANCE_NF):
        self.capacitance_nf = capacitance_nf

    @property
    def mode(self) -> TestMode:
        return TestMode.PARTIAL_DISCHARGE

    @property
    def scenarios(self) -> Tuple[Scenario, ...]:
        return tuple(self.PROFILES)

    @property
    def ceiling(self) -> float:
        return self.RAMP_DOWN_END

    @property
    def tick_period(self) -> float:
        return 0.4

    def time_step(self, elapsed_time: float) -> float:
        ramping = (self.STABILIZE_END <= elapsed_time < self.RAMP_UP_END
                   or elapsed_time >= self.HOLD_END)
        return 2.0 if ramping else 5.0

    def checkpoints(self) -> List[Checkpoint]:
        return [
            Checkpoint(checkpoint_id="stabilize_end", time=self.STABILIZE_END),
            Checkpoint(checkpoint_id="ramp_up_end", time=self.RAMP_UP_END),
            Checkpoint(checkpoint_id="hold_end", time=self.HOLD_END),
            Checkpoint(checkpoint_id="ramp_down_end", time=self.RAMP_DOWN_END),
        ]

    def phase_at(self, elapsed_time: float) -> str:
        if elapsed_time <= self.STABILIZE_END:
            return "stabilize"
        if elapsed_time <= self.RAMP_UP_END:
            return "ramp_up"
        if elapsed_time <= self.HOLD_END:
            return "hold"
        return "ramp_down"

    def voltage_at(self, elapsed_time: float, target_voltage: float) -> float:
        elapsed = self.clamp(elapsed_time)
        start = self.START_FRACTION * target_voltage
        phase = self.phase_at(elapsed)
        if phase == "stabilize":
            return start
        if phase == "ramp_up":
            progress = (elapsed - self.STABILIZE_END) / (self.RAMP_UP_END - self.STABILIZE_END)
            return start + (target_voltage - start) * progress
        if phase == "hold":
            return target_voltage
        progress = (elapsed - self.HOLD_END) / (self.RAMP_DOWN_END - self.HOLD_END)
        return target_voltage - (target_voltage - start) * progress

    def inception_voltage(self, scenario: Scenario, target_voltage: float) -> float:
        return self.PROFILES[scenario][1] * target_voltage

    def extinction_voltage(self, scenario: Scenario, target_voltage: float) -> float:
        return self.EXTINCTION_RATIO * self.inception_voltage(scenario, target_voltage)

    def magnitude_at(self, elapsed_time: float, scenario: Scenario, target_voltage: float) -> float:
        """Noise-free apparent charge in pC."""
        q_max = self.PROFILES[scenario][0]
        onset = self.ONSET_FRACTION * q_max
        voltage = self.voltage_at(elapsed_time, target_voltage)
        inception = self.inception_voltage(scenario, target_voltage)
        extinction = self.extinction_voltage(scenario, target_voltage)

        if voltage >= inception:
            span = max(target_voltage - inception, 1e-9)
            return onset + (q_max - onset) * (voltage - inception) / span
        if self.phase_at(self.clamp(elapsed_time)) == "ramp_down" and voltage >= extinction:
            return onset * (voltage - extinction) / (inception - extinction)
        return 0.0

    def evaluate(self, elapsed_time: float, scenario: Scenario, target_voltage: float,
                 noise: Optional[BehavioralModel] = None) -> Reading:
        elapsed = self.clamp(elapsed_time)
        voltage = self.voltage_at(elapsed, target_voltage)
        magnitude = _perturb(self.magnitude_at(elapsed, scenario, target_voltage), noise)
        capacitance = _perturb(self.capacitance_nf, noise)
        # Capacitive charging current, nF·V·rad/s -> µA
        current = voltage * 2.0 * math.pi * POWER_FREQUENCY_HZ * capacitance * 1e-3

        return Reading(
            elapsed_time=elapsed,
            applied_voltage=voltage,
            current=current,
            capacitance=capacitance,
            phase=self.phase_at(elapsed),
            discharge_magnitude=magnitude,
            pulse_rate=self.PULSES_PER_SQRT_PC * math.sqrt(magnitude),
            phase_angle=(elapsed * self.PHASE_DEGREES_PER_SECOND) % 360.0,
        )

    def chart_points(self, reading: Reading) -> Dict[str, float]:
        return {
            "discharge_magnitude": reading.discharge_magnitude,
            "voltage_kv": reading.applied_voltage / 1000.0,
        }


def default_models(capacitance_nf: float = DEFAULT_CAPACITANCE_NF) -> Dict[TestMode, ModePhysicsModel]:
    """Build one model per test mode."""
    models: List[ModePhysicsModel] = [
        SpotPolarizationModel(capacitance_nf),
        DielectricDischargeModel(capacitance_nf),
        StepVoltageModel(capacitance_nf),
        PartialDischargeRampModel(capacitance_nf),
    ]
    return {model.mode: model for model in models}
