"""Configuration models for the diagnostic instrument simulator."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _default_voltages() -> List[int]:
    return list(range(500, 10001, 500))


class SimulationSettings(BaseModel):
    """Tunable parameters of the synthetic instrument models."""

    noise_enabled: bool = Field(default=True, description="Add bounded measurement noise")
    noise_level: float = Field(default=0.004, description="Maximum relative noise amplitude")
    seed: Optional[int] = Field(default=None, description="Seed for scenario draws and noise")
    capacitance_nf: float = Field(default=69.0, description="Test object capacitance in nF")
    display_points: int = Field(default=50, description="Maximum points per rendered chart")
    buffer_capacity: int = Field(default=500, description="Raw points kept per series buffer")
    allowed_voltages: List[int] = Field(
        default_factory=_default_voltages,
        description="Selectable test voltages in volts"
    )

    @field_validator("noise_level")
    @classmethod
    def noise_level_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 0.05:
            raise ValueError("Noise level must be between 0.0 and 0.05")
        return v

    @field_validator("capacitance_nf")
    @classmethod
    def capacitance_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Capacitance must be positive")
        return v

    @field_validator("display_points", "buffer_capacity")
    @classmethod
    def sizes_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Chart sizes must be at least 1")
        return v

    @field_validator("allowed_voltages")
    @classmethod
    def voltages_must_be_positive(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("At least one test voltage must be allowed")
        if any(voltage <= 0 for voltage in v):
            raise ValueError("Test voltages must be positive")
        return sorted(set(v))


class PathsConfig(BaseModel):
    """Configuration for file system paths."""

    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    record_dir: Path = Field(default=Path("records"), description="Directory for measurement records")

    @field_validator("log_dir", "record_dir", mode="before")
    @classmethod
    def ensure_path_exists(cls, v: str | Path) -> Path:
        """Ensure directories exist."""
        if isinstance(v, str):
            v = Path(v)
        v.mkdir(parents=True, exist_ok=True)
        return v


class LoggingConfig(BaseModel):
    """Configuration for the logging framework."""

    level: str = Field(default="INFO", description="Log level")
    format_console: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(session_id)s - %(message)s",
        description="Console log format"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Level must be one of {valid_levels}")
        return v.upper()


class SystemConfig(BaseModel):
    """Main system configuration."""

    simulation: SimulationSettings = Field(default_factory=SimulationSettings)

    # System paths
    paths: PathsConfig = Field(default_factory=PathsConfig)

    # Logging configuration
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
