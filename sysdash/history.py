"""Fixed-capacity sample history and the adaptive graph ceiling."""

from __future__ import annotations

SCALE_FLOOR = 0.1
SCALE_RISE = 0.3
SCALE_DECAY = 0.05


class HistorySeries:
    """Fixed-length series of recent samples, oldest first.

    The series is pre-filled with zeros so ``len(series) == capacity`` at
    all times. New samples enter at the tail and push the oldest one out.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._values: list[float] = [0.0] * capacity

    @property
    def capacity(self) -> int:
        return len(self._values)

    @property
    def values(self) -> list[float]:
        """A copy of the samples, oldest first."""
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> float:
        return self._values[index]

    def append(self, value: float) -> None:
        """Shift every sample one slot toward the head and store *value* last."""
        values = self._values
        for i in range(len(values) - 1):
            values[i] = values[i + 1]
        values[-1] = value

    def grow(self, capacity: int) -> bool:
        """Enlarge to *capacity*, keeping existing samples at the tail.

        Smaller or equal capacities are ignored; the series never shrinks.
        Returns True when the series was enlarged.
        """
        old = self._values
        if capacity <= len(old):
            return False
        grown = [0.0] * capacity
        grown[capacity - len(old):] = old
        self._values = grown
        return True

    def peak(self) -> float:
        return max(self._values)


class ScaleTracker:
    """Shared vertical ceiling for a pair of series.

    Rises quickly toward a new peak and decays slowly once the peak has
    fallen below half the ceiling, so the graph reacts to bursts without
    rescaling on every dip.
    """

    def __init__(self, initial: float = SCALE_FLOOR) -> None:
        self.current_max = max(initial, SCALE_FLOOR)

    def update(self, *series: HistorySeries) -> float:
        """Adjust the ceiling from the peaks of *series* and return it."""
        observed = max((s.peak() for s in series), default=0.0)
        if observed > self.current_max:
            self.current_max += (observed - self.current_max) * SCALE_RISE
        elif observed < self.current_max * 0.5 and self.current_max > 1.0:
            self.current_max -= (self.current_max - observed) * SCALE_DECAY

        if self.current_max < SCALE_FLOOR:
            self.current_max = SCALE_FLOOR
        return self.current_max


class SeriesPair:
    """Two directions of one metric (rx/tx, read/write) sharing a scale."""

    def __init__(self, capacity: int) -> None:
        self.first = HistorySeries(capacity)
        self.second = HistorySeries(capacity)
        self.scale = ScaleTracker()

    @property
    def capacity(self) -> int:
        return self.first.capacity

    def push(self, first: float, second: float) -> float:
        """Append one sample per direction and return the updated ceiling."""
        self.first.append(first)
        self.second.append(second)
        return self.scale.update(self.first, self.second)

    def grow(self, capacity: int) -> bool:
        grew = self.first.grow(capacity)
        return self.second.grow(capacity) or grew
