"""
Central pytest configuration and fixtures.

This module provides the fixtures shared across all test modules: the
session configuration, logging, the record store and ready-to-use engines.
"""

import tempfile
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from diagsim.config_loader import load_config
from diagsim.config_models import SimulationSettings, SystemConfig
from diagsim.logging_config import get_logger, setup_logging
from diagsim.record_store import RecordStore
from diagsim.simulation.mode_models import default_models
from diagsim.simulation.simulator_engine import EventType, SimulatorEngine

# Global variables to track test run state
_test_run_id: Optional[str] = None
_session_config: Optional[SystemConfig] = None


class EventRecorder:
    """Collects engine notifications for assertions."""

    def __init__(self, engine: SimulatorEngine):
        self.events: List[Tuple[EventType, Any]] = []
        for event in EventType:
            engine.subscribe(event, self)

    def __call__(self, event: EventType, payload: Any) -> None:
        self.events.append((event, payload))

    def of(self, event: EventType) -> List[Any]:
        return [payload for kind, payload in self.events if kind is event]


# ================================================================================
# Session-scoped fixtures (created once per test session)
# ================================================================================

@pytest.fixture(scope="session")
def config() -> SystemConfig:
    """
    Load and provide system configuration for the entire test session.

    Paths are redirected to a temporary directory for test isolation.
    """
    global _session_config

    if _session_config is None:
        temp_dir = Path(tempfile.mkdtemp(prefix="diagsim_test_"))

        _session_config = load_config(temp_dir / "missing.yml")

        _session_config.paths.log_dir = temp_dir / "logs"
        _session_config.paths.record_dir = temp_dir / "records"

        _session_config.paths.log_dir.mkdir(parents=True, exist_ok=True)
        _session_config.paths.record_dir.mkdir(parents=True, exist_ok=True)

    return _session_config


@pytest.fixture(scope="session", autouse=True)
def test_session(config: SystemConfig) -> Generator[str, None, None]:
    """Set up logging once with a unique run id."""
    global _test_run_id

    _test_run_id = str(uuid.uuid4())

    setup_logging(config, _test_run_id)
    logger = get_logger(__name__)
    logger.info(f"Starting test session {_test_run_id}")

    yield _test_run_id

    logger.info(f"Completing test session {_test_run_id}")


# ================================================================================
# Function-scoped fixtures (created for each test function)
# ================================================================================

@pytest.fixture
def quiet_settings() -> SimulationSettings:
    """Deterministic settings: noise off, fixed seed."""
    return SimulationSettings(noise_enabled=False, seed=7)


@pytest.fixture
def noisy_settings() -> SimulationSettings:
    return SimulationSettings(noise_enabled=True, noise_level=0.004, seed=11)


@pytest.fixture
def engine(quiet_settings: SimulationSettings) -> Generator[SimulatorEngine, None, None]:
    """
    Provide a noise-free engine.

    Any run left active by the test is stopped afterwards.
    """
    sim = SimulatorEngine(quiet_settings)

    yield sim

    if sim.is_running:
        sim.stop()


@pytest.fixture
def noisy_engine(noisy_settings: SimulationSettings) -> Generator[SimulatorEngine, None, None]:
    sim = SimulatorEngine(noisy_settings)

    yield sim

    if sim.is_running:
        sim.stop()


@pytest.fixture
def recorder(engine: SimulatorEngine) -> EventRecorder:
    """Record every event the noise-free engine publishes."""
    return EventRecorder(engine)


@pytest.fixture
def models() -> Dict[Any, Any]:
    """One physics model per test mode at the default capacitance."""
    return default_models()


@pytest.fixture
def record_store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "records")


# ================================================================================
# Pytest hooks
# ================================================================================

def pytest_collection_modifyitems(config: pytest.Config, items) -> None:
    """Add markers based on test path."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

