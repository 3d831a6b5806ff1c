"""Abstract base classes and errors shared by the simulated instruments."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from .simulation.models import Checkpoint, Reading, Scenario, Snapshot, TestMode


class SimulationError(Exception):
    """Base exception for simulator errors."""


class InvalidParameterError(SimulationError):
    """Raised when a run is requested with parameters the instrument rejects."""


class RecordStoreError(SimulationError):
    """Raised when measurement records cannot be written or read."""


class ModePhysicsModel(ABC):
    """Interface every test-procedure model implements.

    A model is a pure function of ``(elapsed_time, scenario, target_voltage)``.
    Noise, when given, is applied after the deterministic computation.
    """

    @property
    @abstractmethod
    def mode(self) -> TestMode:
        """Return the test procedure this model simulates."""

    @property
    @abstractmethod
    def scenarios(self) -> Tuple[Scenario, ...]:
        """Return the scenarios this procedure can be drawn with."""

    @property
    @abstractmethod
    def ceiling(self) -> float:
        """Return the elapsed time in seconds at which the run completes."""

    @property
    @abstractmethod
    def tick_period(self) -> float:
        """Return the wall-clock tick period in seconds."""

    @abstractmethod
    def time_step(self, elapsed_time: float) -> float:
        """
        Return the simulated seconds the next tick advances.

        Args:
            elapsed_time: Elapsed time before the tick
        """

    @abstractmethod
    def checkpoints(self) -> List[Checkpoint]:
        """Return the snapshot checkpoints in time order."""

    @abstractmethod
    def evaluate(
        self,
        elapsed_time: float,
        scenario: Scenario,
        target_voltage: float,
        noise: Optional["BehavioralModel"] = None
    ) -> Reading:
        """
        Compute the reading at an elapsed time.

        Args:
            elapsed_time: Elapsed test time in seconds (clamped by the caller)
            scenario: Hidden outcome of the run
            target_voltage: Operator-selected test voltage
            noise: Optional bounded perturbation applied to the result

        Returns:
            Reading for this instant
        """

    @abstractmethod
    def chart_points(self, reading: Reading) -> Dict[str, float]:
        """Return the per-tick chart values keyed by chart name."""

    def snapshot_chart_point(self, snapshot: Snapshot) -> Optional[Tuple[str, float, str]]:
        """Return a ``(chart, value, label)`` point to plot when a snapshot is taken."""
        return None

    def clamp(self, elapsed_time: float) -> float:
        """Clamp elapsed time to ``[0, ceiling]``."""
        return min(max(elapsed_time, 0.0), self.ceiling)


class BehavioralModel(ABC):
    """Abstract base class for reading perturbation models."""

    @abstractmethod
    def apply(self, base_value: float, context: Optional[Dict] = None) -> float:
        """Apply behavioral modification to base value."""

    @abstractmethod
    def reset(self) -> None:
        """Reset model state."""
