"""Simulated insulation diagnostic instruments for operator training."""

# Version information
__version__ = "0.1.0"
__author__ = "Diagsim Team"

# Expose commonly used classes
from .config_loader import load_config as load_config
from .record_store import RecordStore as RecordStore
from .simulation.classifier import classify as classify
from .simulation.simulator_engine import EventType as EventType
from .simulation.simulator_engine import SimulatorEngine as SimulatorEngine
from .simulation.ticker import PeriodicTicker as PeriodicTicker

__all__ = [
    "load_config",
    "RecordStore",
    "classify",
    "EventType",
    "SimulatorEngine",
    "PeriodicTicker",
]
