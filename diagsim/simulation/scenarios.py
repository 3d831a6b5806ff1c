"""Scenario selection for simulated runs."""

import random
from typing import Iterable, Optional, Union

from diagsim.interfaces import InvalidParameterError, ModePhysicsModel
from .models import Scenario


class ScenarioSelector:
    """Draws the hidden outcome of a run uniformly from a mode's scenarios."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def choose(self, model: ModePhysicsModel) -> Scenario:
        """Pick a scenario valid for the model's test mode."""
        return self._random.choice(list(model.scenarios))

    def resolve(self, model: ModePhysicsModel, scenario: Union[Scenario, str, None]) -> Scenario:
        """
        Return the forced scenario if given, otherwise draw one.

        Raises:
            InvalidParameterError: If the scenario is unknown or not valid for the mode
        """
        if scenario is None:
            return self.choose(model)

        try:
            resolved = Scenario(scenario)
        except ValueError as e:
            raise InvalidParameterError(f"Unknown scenario: {scenario!r}") from e

        if resolved not in model.scenarios:
            valid = _names(model.scenarios)
            raise InvalidParameterError(
                f"Scenario {resolved.value!r} is not available for mode {model.mode.value!r} (valid: {valid})"
            )
        return resolved


def _names(scenarios: Iterable[Scenario]) -> str:
    return ", ".join(s.value for s in scenarios)
