"""
Network profile data class for tcswitch.

Defines the NetworkProfile dataclass that represents one experimental
network condition: round-trip latency, jitter and packet loss.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


def format_number(value: float) -> str:
    """Render a number the way it is usually written in a catalogue (100, not 100.0)."""
    return f"{value:g}"


@dataclass(frozen=True)
class NetworkProfile:
    """
    Network condition used for one experimental trial.

    Attributes:
        id: Unique identifier for the condition within its catalogue.
        rtt_ms: Round-trip latency in milliseconds.
        jitter_ms: Latency variation in milliseconds (normal distribution).
        loss_pct: Packet loss percentage (0-100).
    """

    id: str
    rtt_ms: float = 0.0
    jitter_ms: float = 0.0
    loss_pct: float = 0.0

    def __post_init__(self):
        for name in ("rtt_ms", "jitter_ms", "loss_pct"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be a finite number")
        if self.rtt_ms < 0:
            raise ValueError(f"rtt_ms must be >= 0, got {self.rtt_ms}")
        if self.jitter_ms < 0:
            raise ValueError(f"jitter_ms must be >= 0, got {self.jitter_ms}")
        if not 0 <= self.loss_pct <= 100:
            raise ValueError(f"loss_pct must be between 0 and 100, got {self.loss_pct}")

    @property
    def one_way_delay_ms(self) -> float:
        """
        One-way delay applied by netem, in milliseconds.

        netem delays packets in one direction only, so the round-trip
        latency is halved. The result is rounded to one decimal place,
        half away from zero (0.15 -> 0.2).
        """
        half = Decimal(str(self.rtt_ms)) / 2
        return float(half.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    @property
    def is_baseline(self) -> bool:
        """True for the all-zero profile, i.e. the unimpaired network."""
        return self.rtt_ms == 0 and self.jitter_ms == 0 and self.loss_pct == 0

    def describe(self) -> str:
        """Human-readable one-line description used in reveals and summaries."""
        return (
            f"{self.id} (RTT: {format_number(self.rtt_ms)}ms, "
            f"Jitter: {format_number(self.jitter_ms)}ms, "
            f"Loss: {format_number(self.loss_pct)}%)"
        )

    @classmethod
    def from_dict(cls, profile_id: str, data: dict) -> "NetworkProfile":
        """
        Create a NetworkProfile from a dictionary.

        Args:
            profile_id: Condition identifier.
            data: Dictionary containing profile parameters.

        Returns:
            NetworkProfile instance with the specified parameters.

        Raises:
            ValueError: If a value is not numeric or out of range.

        Example:
            >>> profile = NetworkProfile.from_dict("C02", {"rtt_ms": 100, "loss_pct": 2})
            >>> profile.one_way_delay_ms
            50.0
        """
        return cls(
            id=str(profile_id),
            rtt_ms=float(data.get("rtt_ms", 0)),
            jitter_ms=float(data.get("jitter_ms", 0)),
            loss_pct=float(data.get("loss_pct", 0)),
        )
