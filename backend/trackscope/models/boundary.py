"""
Running boundaries for telemetry channels.

Every metric of a track keeps a MinMax so values can be normalized for
gauge rendering (0..1 within the observed range).
"""

import math
from dataclasses import dataclass, field, fields


@dataclass
class MinMax:
    """Running min/max/mean accumulator for one numeric channel."""

    min: float
    max: float
    total: float = 0.0
    count: int = 0
    read_only: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def extreme(cls) -> "MinMax":
        """Neutral starting state, the first sample initializes it."""
        return cls(min=math.inf, max=-math.inf)

    @classmethod
    def fixed(cls, lo: float, hi: float) -> "MinMax":
        return cls(min=lo, max=hi)

    def freeze(self) -> "MinMax":
        self.read_only = True
        return self

    def sample(self, value: float) -> None:
        if self.read_only:
            raise ValueError("boundary is read-only")
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value
        self.total += value
        self.count += 1

    @property
    def mean(self) -> float:
        """Mean of the sampled values, NaN when nothing was sampled."""
        if self.count == 0:
            return math.nan
        return self.total / self.count

    def range(self) -> tuple[float, float]:
        return (self.min, self.max)

    def normalize(self, value: float) -> float:
        """Position of value inside the range, 0 for a degenerate range."""
        span = self.max - self.min
        if not math.isfinite(span) or span <= 0:
            return 0.0
        return (value - self.min) / span

    def __str__(self) -> str:
        return f"[{self.min:.2f}, {self.max:.2f}]"


@dataclass(frozen=True)
class InputValue:
    """A value paired with the boundary of its channel."""

    current: float
    boundary: MinMax

    @property
    def normalized(self) -> float:
        return self.boundary.normalize(self.current)


@dataclass
class TrackBoundaries:
    """One MinMax per tracked metric."""

    elevation: MinMax = field(default_factory=MinMax.extreme)
    latitude: MinMax = field(default_factory=MinMax.extreme)
    longitude: MinMax = field(default_factory=MinMax.extreme)
    speed: MinMax = field(default_factory=MinMax.extreme)
    bearing: MinMax = field(default_factory=MinMax.extreme)
    grade: MinMax = field(default_factory=MinMax.extreme)
    cadence: MinMax = field(default_factory=MinMax.extreme)
    temperature: MinMax = field(default_factory=MinMax.extreme)
    heart_rate: MinMax = field(default_factory=MinMax.extreme)
    power: MinMax = field(default_factory=MinMax.extreme)

    def items(self) -> list[tuple[str, MinMax]]:
        return [(f.name, getattr(self, f.name)) for f in fields(self)]

    def freeze(self) -> "TrackBoundaries":
        """Lock every tracker once the analysis pass is done."""
        for _, boundary in self.items():
            boundary.freeze()
        return self
