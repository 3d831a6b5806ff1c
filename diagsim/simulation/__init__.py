"""
Simulation core for the diagnostic instruments.

This package provides:
- Data models for readings, snapshots, indices and records
- Closed-form physics models per test mode
- Snapshot capture, index calculation and classification
- The tick-driven simulation engine and chart reduction
"""

from .models import (
    INSUFFICIENT_DATA,
    Classification,
    DiagnosticIndices,
    MeasurementRecord,
    Reading,
    Scenario,
    SessionStatus,
    Snapshot,
    TestMode,
    TestSession,
)
from .series import SeriesBuffer, reduce_labelled, reduce_series

__all__ = [
    "INSUFFICIENT_DATA",
    "Classification",
    "DiagnosticIndices",
    "MeasurementRecord",
    "Reading",
    "Scenario",
    "SessionStatus",
    "Snapshot",
    "TestMode",
    "TestSession",
    "SeriesBuffer",
    "reduce_labelled",
    "reduce_series",
]
