"""
Behavioral models for realistic reading perturbation.

Mode models compute deterministic curves; the models here add the small,
bounded measurement noise a trainee sees on a real instrument display.
"""

import random
from typing import Dict, Optional

from diagsim.interfaces import BehavioralModel


class NoiseModel(BehavioralModel):
    """Bounded, zero-mean multiplicative noise.

    The relative perturbation is clipped to ``±max_relative``, which is
    below 1, so the sign of the reading is preserved.
    """

    def __init__(self, max_relative: float = 0.004, frequency_noise: bool = True,
                 seed: Optional[int] = None):
        """
        Initialize noise model.

        Args:
            max_relative: Largest relative deviation from the base value (< 1)
            frequency_noise: Enable slowly varying 1/f-like noise on top of white noise
            seed: Seed for the internal random generator
        """
        if not 0.0 <= max_relative < 1.0:
            raise ValueError("max_relative must be in [0, 1)")
        self.max_relative = max_relative
        self.frequency_noise = frequency_noise
        self._seed = seed
        self._random = random.Random(seed)
        self._pink_noise_state = 0.0

    def apply(self, base_value: float, context: Optional[Dict] = None) -> float:
        """Apply noise to a reading value."""
        if self.max_relative == 0.0 or base_value == 0.0:
            return base_value

        sigma = self.max_relative / 3.0
        white_noise = self._random.gauss(0, sigma)

        if self.frequency_noise:
            self._pink_noise_state = 0.95 * self._pink_noise_state + 0.05 * self._random.gauss(0, sigma)
            pink_noise = self._pink_noise_state * 3.0
        else:
            pink_noise = 0.0

        relative = white_noise + pink_noise
        relative = max(-self.max_relative, min(self.max_relative, relative))
        return base_value * (1.0 + relative)

    def reset(self) -> None:
        """Reset noise model state."""
        self._pink_noise_state = 0.0
        self._random = random.Random(self._seed)

