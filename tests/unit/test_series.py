"""
Unit tests for chart series reduction and buffering.
"""

import pytest

from diagsim.simulation.series import SeriesBuffer, format_elapsed, reduce_labelled, reduce_series


class TestReduceSeries:
    """Interval-mean reduction of raw chart series."""

    @pytest.mark.unit
    @pytest.mark.parametrize("length,max_points", [(1, 50), (49, 50), (50, 50), (51, 50), (99, 50), (500, 50), (7, 3)])
    def test_output_length_is_min_of_input_and_limit(self, length, max_points):
        values = [float(i) for i in range(length)]

        reduced = reduce_series(values, max_points)

        assert len(reduced) == min(length, max_points)

    @pytest.mark.unit
    def test_empty_input(self):
        assert reduce_series([], 50) == []
        assert reduce_labelled([], [], 50) == ([], [])

    @pytest.mark.unit
    def test_short_input_returned_unchanged(self):
        values = [3.0, 1.0, 2.0]

        assert reduce_series(values, 50) == values
        assert reduce_series(reduce_series(values, 50), 50) == values

    @pytest.mark.unit
    def test_interval_means(self):
        values = [1.0, 3.0, 5.0, 7.0, 9.0, 11.0]

        assert reduce_series(values, 3) == [2.0, 6.0, 10.0]

    @pytest.mark.unit
    def test_order_preserved(self):
        values = [float(i) for i in range(500)]

        reduced = reduce_series(values, 50)

        assert reduced == sorted(reduced)
        assert reduced[0] == pytest.approx(4.5)
        assert reduced[-1] == pytest.approx(494.5)

    @pytest.mark.unit
    def test_single_point_is_overall_mean(self):
        assert reduce_series([2.0, 4.0, 6.0], 1) == [4.0]

    @pytest.mark.unit
    def test_invalid_limit_rejected(self):
        with pytest.raises(ValueError, match="at least 1"):
            reduce_series([1.0, 2.0], 0)

        with pytest.raises(ValueError, match="at least 1"):
            reduce_series([], 0)


class TestReduceLabelled:

    @pytest.mark.unit
    def test_labels_follow_interval_midpoint(self):
        values = [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
        labels = ["a", "b", "c", "d", "e", "f"]

        reduced_values, reduced_labels = reduce_labelled(values, labels, 2)

        assert reduced_values == [1.0, 4.0]
        assert reduced_labels == ["b", "e"]

    @pytest.mark.unit
    def test_length_mismatch_rejected(self):
        with pytest.raises(ValueError, match="differ in length"):
            reduce_labelled([1.0, 2.0], ["a"], 10)


class TestSeriesBuffer:

    @pytest.mark.unit
    def test_keeps_most_recent_points(self):
        buffer = SeriesBuffer("resistance", capacity=3, display_points=10)

        for i in range(5):
            buffer.append(float(i), f"t{i}")

        assert len(buffer) == 3
        assert buffer.values == [2.0, 3.0, 4.0]
        assert buffer.labels == ["t2", "t3", "t4"]

    @pytest.mark.unit
    def test_reduced_output_bounded(self):
        buffer = SeriesBuffer("current", capacity=500, display_points=50)

        for i in range(120):
            buffer.append(float(i), format_elapsed(i))

        values, labels = buffer.reduced()
        assert len(values) == 50
        assert len(labels) == 50

    @pytest.mark.unit
    def test_clear(self):
        buffer = SeriesBuffer("current")
        buffer.append(1.0, "00:01")

        buffer.clear()

        assert len(buffer) == 0
        assert buffer.reduced() == ([], [])

    @pytest.mark.unit
    def test_invalid_sizes_rejected(self):
        with pytest.raises(ValueError):
            SeriesBuffer("x", capacity=0)
        with pytest.raises(ValueError):
            SeriesBuffer("x", display_points=0)


class TestFormatElapsed:

    @pytest.mark.unit
    @pytest.mark.parametrize("seconds,expected", [(0, "00:00"), (5, "00:05"), (65, "01:05"), (1860, "31:00")])
    def test_format(self, seconds, expected):
        assert format_elapsed(seconds) == expected
