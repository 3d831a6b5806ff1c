"""Wall-clock tick scheduling for an engine run."""

import threading
from typing import Optional, Union

from diagsim.logging_config import get_logger
from .models import MeasurementRecord, Scenario, TestMode, TestSession
from .simulator_engine import SimulatorEngine


class PeriodicTicker:
    """Calls ``engine.tick()`` once per tick period of the active mode.

    Each run gets a new generation number. A timer only re-arms itself
    while its generation is current, so starting a new run silently retires
    timers left over from the previous one.
    """

    def __init__(self, engine: SimulatorEngine):
        self.engine = engine
        self.logger = get_logger(__name__)
        self._lock = threading.RLock()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._timer is not None

    def start(
        self,
        mode: Union[TestMode, str],
        target_voltage: float,
        scenario: Union[Scenario, str, None] = None
    ) -> TestSession:
        """Start a run on the engine and begin ticking.

        While a run is already being ticked this returns the running session
        and leaves the pending tick in place.
        """
        with self._lock:
            if self.engine.is_running and self._timer is not None:
                return self.engine.session
            session = self.engine.start(mode, target_voltage, scenario)
            self._cancel_pending()
            self._generation += 1
            self._arm(self._generation)
        return session

    def stop(self) -> Optional[MeasurementRecord]:
        """Cancel pending ticks and stop the engine run."""
        with self._lock:
            self._generation += 1
            self._cancel_pending()
        return self.engine.stop()

    def _cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self, generation: int) -> None:
        period = self.engine.tick_period or 1.0
        timer = threading.Timer(period, self._fire, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return

            self.engine.tick()

            if self.engine.is_running:
                self._arm(generation)
            else:
                self._timer = None
                self.logger.debug(f"Ticker generation {generation} finished")
