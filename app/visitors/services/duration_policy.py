from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

WARNING_RATIO = 0.8

NORMAL = "normal"
APPROACHING_LIMIT = "approaching_limit"
OVERSTAYED = "overstayed"


@dataclass(frozen=True)
class DurationStatus:
    classification: str
    current_duration_minutes: int
    expected_duration_minutes: int
    overstay_minutes: int = 0
    remaining_minutes: int = 0

    @property
    def is_overstayed(self) -> bool:
        return self.classification == OVERSTAYED

    @property
    def is_approaching_limit(self) -> bool:
        return self.classification == APPROACHING_LIMIT


def elapsed_minutes(start: datetime, end: datetime) -> int:
    return math.floor((end - start).total_seconds() / 60)


def checkout_duration_minutes(check_in_time: datetime, check_out_time: datetime) -> int:
    # Half-up rounding; round() would round 0.5 to even.
    minutes = (check_out_time - check_in_time).total_seconds() / 60
    return max(0, math.floor(minutes + 0.5))


def evaluate_duration(check_in_time: datetime, expected_duration_minutes: int, now: datetime) -> DurationStatus:
    """Classify a visit as normal, approaching its limit or overstayed.

    Overstay takes priority over the warning band. An expected duration of 0
    leaves no warning band, so any positive duration is an overstay.
    """
    current = elapsed_minutes(check_in_time, now)
    expected = expected_duration_minutes
    warning_threshold = expected * WARNING_RATIO

    if current > expected:
        return DurationStatus(
            classification=OVERSTAYED,
            current_duration_minutes=current,
            expected_duration_minutes=expected,
            overstay_minutes=current - expected,
        )

    if warning_threshold <= current < expected:
        return DurationStatus(
            classification=APPROACHING_LIMIT,
            current_duration_minutes=current,
            expected_duration_minutes=expected,
            remaining_minutes=expected - current,
        )

    return DurationStatus(
        classification=NORMAL,
        current_duration_minutes=current,
        expected_duration_minutes=expected,
    )
