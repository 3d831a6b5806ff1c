"""
Threshold tables that turn diagnostic indices into condition labels.

Each table is an ordered list of rules. Rules are evaluated top to bottom
and the first rule whose conditions all hold wins. A rule without
conditions matches anything and closes the table.
"""

from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import INSUFFICIENT_DATA, Classification, DiagnosticIndices, Scenario, TestMode

_OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    "gt": lambda value, threshold: value > threshold,
    "ge": lambda value, threshold: value >= threshold,
    "lt": lambda value, threshold: value < threshold,
    "le": lambda value, threshold: value <= threshold,
}

_SYMBOLS = {"gt": ">", "ge": "≥", "lt": "<", "le": "≤"}


class Condition(BaseModel):
    """Single comparison of an index against a threshold."""

    parameter: str = Field(..., description="Index name")
    operator: str = Field(..., description="Comparison operator (gt, ge, lt, le)")
    threshold: float = Field(..., description="Threshold value")

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, v: str) -> str:
        if v not in _OPERATORS:
            raise ValueError(f"Operator must be one of {sorted(_OPERATORS)}")
        return v

    def holds(self, values: Dict[str, float]) -> bool:
        return _OPERATORS[self.operator](values[self.parameter], self.threshold)

    def describe(self, values: Dict[str, float]) -> str:
        return f"{self.parameter} = {values[self.parameter]:.2f} {_SYMBOLS[self.operator]} {self.threshold:g}"


class ThresholdRule(BaseModel):
    """Label assigned when every condition holds."""

    label: str = Field(..., description="Condition label")
    conditions: List[Condition] = Field(default_factory=list, description="Conditions, all required")

    def matches(self, values: Dict[str, float]) -> bool:
        return all(condition.holds(values) for condition in self.conditions)


def _rule(label: str, *conditions: tuple) -> ThresholdRule:
    return ThresholdRule(
        label=label,
        conditions=[Condition(parameter=p, operator=o, threshold=t) for p, o, t in conditions],
    )


class ThresholdTable(BaseModel):
    """Ordered, first-match-wins rule table."""

    name: str = Field(..., description="Table name")
    parameters: List[str] = Field(..., description="Indices the table needs")
    rules: List[ThresholdRule] = Field(..., description="Rules in evaluation order")

    def evaluate(self, values: Dict[str, Optional[float]]) -> Classification:
        """
        Classify the given values.

        Returns:
            The first matching rule's label, or the insufficient-data
            sentinel when a required value is missing or nothing matches
        """
        missing = [p for p in self.parameters if values.get(p) is None]
        if missing:
            return Classification(
                label=INSUFFICIENT_DATA,
                explanation=f"{self.name}: missing {', '.join(missing)}",
            )

        known = {p: float(values[p]) for p in self.parameters}
        for rule in self.rules:
            if rule.matches(known):
                if rule.conditions:
                    reason = " and ".join(c.describe(known) for c in rule.conditions)
                else:
                    reason = ", ".join(f"{p} = {known[p]:.2f}" for p in self.parameters) + " matched no other tier"
                return Classification(label=rule.label, explanation=f"{self.name}: {reason}")

        return Classification(label=INSUFFICIENT_DATA, explanation=f"{self.name}: no tier matched")


POLARIZATION_TABLE = ThresholdTable(
    name="Polarization",
    parameters=["polarization_index", "absorption_ratio"],
    rules=[
        _rule("Excellent", ("polarization_index", "gt", 4.0), ("absorption_ratio", "gt", 1.6)),
        _rule("Very Good", ("polarization_index", "gt", 3.0), ("absorption_ratio", "gt", 1.4)),
        _rule("Good", ("polarization_index", "gt", 2.0), ("absorption_ratio", "gt", 1.25)),
        _rule("Fair", ("polarization_index", "gt", 1.5), ("absorption_ratio", "gt", 1.1)),
        _rule("Dangerous", ("polarization_index", "lt", 1.5), ("absorption_ratio", "lt", 1.1)),
        _rule("Poor", ("polarization_index", "le", 1.0)),
        _rule("Questionable"),
    ],
)

ABSORPTION_RATIO_TABLE = ThresholdTable(
    name="Absorption ratio",
    parameters=["absorption_ratio"],
    rules=[
        _rule("Dangerous", ("absorption_ratio", "lt", 1.0)),
        _rule("Questionable", ("absorption_ratio", "lt", 1.25)),
        _rule("Good", ("absorption_ratio", "le", 1.6)),
        _rule("Excellent"),
    ],
)

# Same input value as the absorption ratio, judged against its own table
ABSORPTION_INDEX_TABLE = ThresholdTable(
    name="Absorption index",
    parameters=["absorption_index"],
    rules=[
        _rule("Poor", ("absorption_index", "lt", 1.1)),
        _rule("Questionable", ("absorption_index", "lt", 1.25)),
        _rule("Acceptable", ("absorption_index", "le", 1.4)),
        _rule("Good"),
    ],
)

DISCHARGE_TABLE = ThresholdTable(
    name="Dielectric discharge",
    parameters=["discharge_index"],
    rules=[
        _rule("Homogeneous", ("discharge_index", "lt", 0.5)),
        _rule("Good", ("discharge_index", "lt", 2.0)),
        _rule("Questionable", ("discharge_index", "le", 4.0)),
        _rule("Poor", ("discharge_index", "le", 7.0)),
        _rule("Bad"),
    ],
)

PARTIAL_DISCHARGE_TABLE = ThresholdTable(
    name="Partial discharge",
    parameters=["pd_hold_magnitude"],
    rules=[
        _rule("Excellent", ("pd_hold_magnitude", "lt", 5.0)),
        _rule("Acceptable", ("pd_hold_magnitude", "lt", 20.0)),
        _rule("Questionable", ("pd_hold_magnitude", "le", 50.0)),
        _rule("Inadequate"),
    ],
)

STEP_VOLTAGE_LABELS = {
    Scenario.GOOD: "Good",
    Scenario.ACCEPTABLE: "Acceptable",
    Scenario.MARGINAL: "Questionable",
    Scenario.DANGEROUS: "Dangerous",
}


def classify_polarization(indices: DiagnosticIndices) -> Classification:
    """Classify a spot/polarization run, with per-field acceptance verdicts."""
    values = indices.model_dump()
    verdict = POLARIZATION_TABLE.evaluate(values)

    assessments = {}
    for field, table in (("absorption_ratio", ABSORPTION_RATIO_TABLE),
                         ("absorption_index", ABSORPTION_INDEX_TABLE)):
        if values.get(field) is not None:
            assessments[field] = table.evaluate(values).label

    return verdict.model_copy(update={"field_assessments": assessments})


def classify_discharge(indices: DiagnosticIndices) -> Classification:
    return DISCHARGE_TABLE.evaluate(indices.model_dump())


def classify_partial_discharge(indices: DiagnosticIndices) -> Classification:
    return PARTIAL_DISCHARGE_TABLE.evaluate(indices.model_dump())


def classify_step_voltage(indices: DiagnosticIndices, scenario: Optional[Scenario]) -> Classification:
    """
    Label a step-voltage run.

    The scenario already encodes the outcome its resistance curve shows, so
    the label comes from the scenario once the full step sequence exists.
    """
    ratio = indices.step_resistance_ratio
    if ratio is None or scenario not in STEP_VOLTAGE_LABELS:
        return Classification(
            label=INSUFFICIENT_DATA,
            explanation="Step voltage: all five steps are required",
        )

    change = (ratio - 1.0) * 100.0
    return Classification(
        label=STEP_VOLTAGE_LABELS[scenario],
        explanation=f"Step voltage: resistance changed {change:+.1f}% from step 1 to step 5",
    )


def classify(mode: TestMode, indices: DiagnosticIndices, scenario: Optional[Scenario] = None) -> Classification:
    """Classify indices for the given test mode. Never raises on missing data."""
    if mode is TestMode.SPOT:
        return classify_polarization(indices)
    if mode is TestMode.DISCHARGE:
        return classify_discharge(indices)
    if mode is TestMode.STEP:
        return classify_step_voltage(indices, scenario)
    return classify_partial_discharge(indices)
