"""Pure domain layer: clock, money validation, posting inputs."""

from estate_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from estate_kernel.domain.money import ZERO, round_money, to_money, to_positive_money
from estate_kernel.domain.values import LineSpec, Side

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ZERO",
    "round_money",
    "to_money",
    "to_positive_money",
    "LineSpec",
    "Side",
]
