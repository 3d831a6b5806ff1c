"""
Unit tests for scenario selection and test mode parsing.
"""

from collections import Counter

import pytest

from diagsim.interfaces import InvalidParameterError
from diagsim.simulation.mode_models import DielectricDischargeModel, SpotPolarizationModel
from diagsim.simulation.models import Scenario, TestMode
from diagsim.simulation.scenarios import ScenarioSelector


class TestScenarioSelector:

    @pytest.mark.unit
    def test_draws_only_valid_scenarios(self):
        selector = ScenarioSelector(seed=1)
        model = SpotPolarizationModel()

        drawn = {selector.choose(model) for _ in range(200)}

        assert drawn == set(model.scenarios)

    @pytest.mark.unit
    def test_draw_is_roughly_uniform(self):
        selector = ScenarioSelector(seed=2)
        model = DielectricDischargeModel()

        counts = Counter(selector.choose(model) for _ in range(5000))

        for scenario in model.scenarios:
            assert 800 < counts[scenario] < 1200

    @pytest.mark.unit
    def test_same_seed_same_sequence(self):
        model = SpotPolarizationModel()
        first = ScenarioSelector(seed=3)
        second = ScenarioSelector(seed=3)

        assert [first.choose(model) for _ in range(20)] == [second.choose(model) for _ in range(20)]

    @pytest.mark.unit
    def test_forced_scenario(self):
        selector = ScenarioSelector(seed=4)

        assert selector.resolve(SpotPolarizationModel(), "good") is Scenario.GOOD
        assert selector.resolve(DielectricDischargeModel(), Scenario.POOR) is Scenario.POOR

    @pytest.mark.unit
    def test_scenario_not_valid_for_mode(self):
        selector = ScenarioSelector(seed=5)

        with pytest.raises(InvalidParameterError, match="not available for mode 'spot'"):
            selector.resolve(SpotPolarizationModel(), Scenario.POOR)

    @pytest.mark.unit
    def test_unknown_scenario(self):
        selector = ScenarioSelector(seed=6)

        with pytest.raises(InvalidParameterError, match="Unknown scenario"):
            selector.resolve(SpotPolarizationModel(), "excellent")


class TestTestModeParsing:

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [
        ("spot", TestMode.SPOT),
        ("IP", TestMode.SPOT),
        ("DD", TestMode.DISCHARGE),
        ("Discharge", TestMode.DISCHARGE),
        ("SV", TestMode.STEP),
        ("PD", TestMode.PARTIAL_DISCHARGE),
        ("partial_discharge", TestMode.PARTIAL_DISCHARGE),
    ])
    def test_aliases(self, raw, expected):
        assert TestMode(raw) is expected

    @pytest.mark.unit
    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            TestMode("tan_delta")

    @pytest.mark.unit
    def test_instrument_family(self):
        assert TestMode.STEP.instrument == "megohmmeter"
        assert TestMode.PARTIAL_DISCHARGE.instrument == "partial_discharge"
