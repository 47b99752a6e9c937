"""Convert time values to milliseconds and back."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .math import MixedNumber, Number, exact


def from_seconds(s: Number) -> Number:
    return s * 1000


def from_minutes(m: Number) -> Number:
    return from_seconds(m * 60)


def from_hours(h: Number) -> Number:
    return from_minutes(h * 60)


def from_days(d: Number) -> Number:
    return from_hours(d * 24)


def to_seconds(millis: Number) -> MixedNumber:
    return MixedNumber(exact(millis) / 1000)


def to_minutes(millis: Number) -> MixedNumber:
    return MixedNumber(to_seconds(millis).number / 60)


def to_hours(millis: Number) -> MixedNumber:
    return MixedNumber(to_minutes(millis).number / 60)


def to_days(millis: Number) -> MixedNumber:
    return MixedNumber(to_hours(millis).number / 24)


def to_timedelta(millis: Number) -> timedelta:
    return timedelta(milliseconds=float(exact(millis)))


@dataclass(slots=True, frozen=True)
class DhmsParts:
    days: MixedNumber
    hours: MixedNumber
    minutes: MixedNumber
    seconds: MixedNumber


@dataclass(slots=True, frozen=True)
class Dhms:
    """A duration in milliseconds broken into days, hours, minutes and seconds.

    Each unit carries the remainder of the larger one, so ``str()`` reads like
    ``5d 3h 29m 33s``. Units with a zero whole part are left out.
    """

    millis: Number

    def parts(self) -> DhmsParts:
        days = to_days(self.millis)
        hours = to_hours(days.parts().frac * from_days(1))
        minutes = to_minutes(hours.parts().frac * from_hours(1))
        seconds = to_seconds(minutes.parts().frac * from_minutes(1))

        return DhmsParts(days=days, hours=hours, minutes=minutes, seconds=seconds)

    def __str__(self) -> str:
        parts = self.parts()
        units = [
            (parts.days, "d"),
            (parts.hours, "h"),
            (parts.minutes, "m"),
            (parts.seconds, "s"),
        ]

        return " ".join(
            f"{value.parts().whole}{unit}" for value, unit in units if value.parts().whole > 0
        )
