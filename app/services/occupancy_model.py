"""
Occupancy Model

Pure functions computing the next occupancy of a car park from its current
value, a time-of-day drift rate and one unit of bounded random noise.
No I/O: the caller owns reading and persisting occupancy.
"""

from typing import Callable, Optional

import numpy as np

from app.models.change_log import ACTION_FILLED, ACTION_EMPTIED, ACTION_NOCHANGE

# (start_hour, end_hour, rate) checked in order, first match wins.
# positive = filling, negative = emptying
DRIFT_BANDS = (
    (9, 13, 3),    # morning admissions, filling quickly
    (13, 16, -2),  # afternoon discharges, emptying
    (19, 20, 4),   # visiting hour
    (20, 23, -3),  # evening emptying
)
OVERNIGHT_START = 23
OVERNIGHT_END = 7
OVERNIGHT_RATE = 0
DEFAULT_RATE = 1  # general daytime trickle in (07-09, 16-19)

NOISE_VALUES = (-1, 0, 1)

NoiseSource = Callable[[], int]


def drift_rate_for_hour(hour: int) -> int:
    """
    Deterministic occupancy drift for an hour of the day.

    Args:
        hour: Hour of day, 0-23

    Returns:
        Signed change in occupied spaces per tick before noise

    Raises:
        ValueError: If hour is outside 0-23
    """
    if not 0 <= hour <= 23:
        raise ValueError(f"Invalid hour of day: {hour}. Must be between 0 and 23")

    for start, end, rate in DRIFT_BANDS:
        if start <= hour < end:
            return rate

    if hour >= OVERNIGHT_START or hour < OVERNIGHT_END:
        return OVERNIGHT_RATE

    return DEFAULT_RATE


def make_noise_source(seed: Optional[int] = None) -> NoiseSource:
    """Return a callable drawing uniformly from NOISE_VALUES (seedable)"""
    rng = np.random.default_rng(seed)

    def draw() -> int:
        return int(rng.choice(NOISE_VALUES))

    return draw


def apply_drift(current_occupied: int, total_capacity: int, drift_rate: int, noise: int) -> int:
    """Apply drift and noise, clamped to [0, total_capacity]"""
    upper = max(total_capacity, 0)
    new_occupied = current_occupied + drift_rate + noise

    # basic bounds: can't exceed total spaces or drop below zero
    if new_occupied < 0:
        return 0
    if new_occupied > upper:
        return upper
    return new_occupied


def next_occupancy(
    current_occupied: int,
    total_capacity: int,
    hour_of_day: int,
    noise_source: NoiseSource,
) -> int:
    """Next occupancy for one car park at the given hour, with one noise draw"""
    drift_rate = drift_rate_for_hour(hour_of_day)
    return apply_drift(current_occupied, total_capacity, drift_rate, noise_source())


def classify_change(previous: int, new: int) -> str:
    """Action tag for a change log entry, by sign of the delta"""
    if new > previous:
        return ACTION_FILLED
    elif new < previous:
        return ACTION_EMPTIED
    else:
        return ACTION_NOCHANGE
