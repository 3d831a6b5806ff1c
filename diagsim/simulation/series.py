"""
Bounded time-series buffers and display reduction for charts.

Every chart keeps a bounded buffer of raw points and renders a reduced copy
of it: the raw series is split into at most ``max_points`` contiguous,
near-equal intervals and each interval is replaced by its mean.
"""

from collections import deque
from typing import Deque, List, Sequence, Tuple

import numpy as np


def _interval_bounds(length: int, max_points: int) -> List[Tuple[int, int]]:
    if max_points < 1:
        raise ValueError("max_points must be at least 1")
    if length <= max_points:
        return [(i, i + 1) for i in range(length)]
    edges = np.linspace(0, length, max_points + 1).round().astype(int)
    return [(int(start), int(stop)) for start, stop in zip(edges[:-1], edges[1:])]


def reduce_series(values: Sequence[float], max_points: int = 50) -> List[float]:
    """
    Reduce a series to at most ``max_points`` interval means.

    Args:
        values: Raw series in time order
        max_points: Maximum display resolution K (>= 1)

    Returns:
        ``min(len(values), max_points)`` values in the original order. Input
        that already fits is returned unchanged.

    Raises:
        ValueError: If max_points is smaller than 1
    """
    bounds = _interval_bounds(len(values), max_points)
    if len(values) <= max_points:
        return [float(v) for v in values]

    data = np.asarray(values, dtype=float)
    return [float(data[start:stop].mean()) for start, stop in bounds]


def reduce_labelled(
    values: Sequence[float],
    labels: Sequence[str],
    max_points: int = 50
) -> Tuple[List[float], List[str]]:
    """
    Reduce a ``(values, labels)`` pair for chart rendering.

    Values are averaged per interval; each interval keeps the label of the
    element nearest its midpoint.

    Raises:
        ValueError: If the two sequences differ in length or max_points < 1
    """
    if len(values) != len(labels):
        raise ValueError(f"values and labels differ in length: {len(values)} != {len(labels)}")

    bounds = _interval_bounds(len(values), max_points)
    if len(values) <= max_points:
        return [float(v) for v in values], list(labels)

    data = np.asarray(values, dtype=float)
    reduced_values = [float(data[start:stop].mean()) for start, stop in bounds]
    reduced_labels = [labels[start + (stop - start) // 2] for start, stop in bounds]
    return reduced_values, reduced_labels


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as ``MM:SS``."""
    total = int(round(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


class SeriesBuffer:
    """Bounded, append-only list of chart points."""

    def __init__(self, name: str, capacity: int = 500, display_points: int = 50):
        """
        Initialize the buffer.

        Args:
            name: Chart name
            capacity: Number of most recent raw points kept
            display_points: Maximum points in the reduced output
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if display_points < 1:
            raise ValueError("display_points must be at least 1")
        self.name = name
        self.capacity = capacity
        self.display_points = display_points
        self._values: Deque[float] = deque(maxlen=capacity)
        self._labels: Deque[str] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._values)

    def append(self, value: float, label: str) -> None:
        self._values.append(float(value))
        self._labels.append(label)

    def clear(self) -> None:
        self._values.clear()
        self._labels.clear()

    @property
    def values(self) -> List[float]:
        return list(self._values)

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    def reduced(self) -> Tuple[List[float], List[str]]:
        """Return the display-ready ``(values, labels)`` pair."""
        return reduce_labelled(self.values, self.labels, self.display_points)
