"""
Turns a batch size plus a coarse availability window into concrete slots.

A slot is a time-of-day interval repeated on every day of the window. When
there are more candidates than slots, each slot hosts `parallelism`
concurrent sessions.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Sequence, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

T = TypeVar("T")

HHMM_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

MIN_DAYS = 1
MAX_DAYS = 365
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 480


class SchedulingConfigError(ValueError):
    """The requested window cannot produce a usable plan."""


@dataclass(frozen=True)
class Slot:
    start: str  # HH:mm
    end: str  # HH:mm


@dataclass(frozen=True)
class SlotPlan:
    slots: tuple[Slot, ...]
    slots_per_day: int
    total_slots: int
    parallelism: int
    number_of_days: int

    def coordinates(self) -> list[tuple[int, Slot]]:
        # days outer, slots inner
        return [(day, slot) for day in range(self.number_of_days) for slot in self.slots]


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for a 24h `HH:mm` string."""
    raw = (value or "").strip()
    if not HHMM_RE.match(raw):
        raise SchedulingConfigError(f"Invalid time '{value}'. Expected HH:mm (24h).")
    hours, minutes = raw.split(":")
    return int(hours) * 60 + int(minutes)


def format_hhmm(total_minutes: int) -> str:
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def plan_slots(
    candidate_count: int,
    number_of_days: int,
    start_time: str,
    end_time: str,
    duration_minutes: int,
) -> SlotPlan:
    if candidate_count < 0:
        raise SchedulingConfigError("Candidate count cannot be negative")
    if not (MIN_DAYS <= number_of_days <= MAX_DAYS):
        raise SchedulingConfigError(f"Number of days must be between {MIN_DAYS} and {MAX_DAYS}")
    if not (MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES):
        raise SchedulingConfigError(
            f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
        )

    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    if end <= start:
        raise SchedulingConfigError("End time must be after start time")

    available = end - start
    slots_per_day = available // duration_minutes
    total_slots = slots_per_day * number_of_days
    if total_slots == 0:
        raise SchedulingConfigError(
            f"No interview slots fit between {start_time} and {end_time} "
            f"with a duration of {duration_minutes} minutes"
        )

    slots: list[Slot] = []
    cursor = start
    while cursor + duration_minutes <= end:
        slots.append(Slot(start=format_hhmm(cursor), end=format_hhmm(cursor + duration_minutes)))
        cursor += duration_minutes

    parallelism = max(1, math.ceil(candidate_count / total_slots))

    return SlotPlan(
        slots=tuple(slots),
        slots_per_day=slots_per_day,
        total_slots=total_slots,
        parallelism=parallelism,
        number_of_days=number_of_days,
    )


def chunk_candidates(items: Sequence[T], size: int) -> list[list[T]]:
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo((name or "UTC").strip() or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        raise SchedulingConfigError(f"Unknown timezone '{name}'")


def combine_slot(day_date: date, slot: Slot, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """
    Wall-clock slot on `day_date` in `tz`, returned as aware UTC (start, end).
    """
    start_minutes = parse_hhmm(slot.start)
    local_start = datetime.combine(day_date, time(0, 0), tzinfo=tz) + timedelta(minutes=start_minutes)
    duration = parse_hhmm(slot.end) - start_minutes
    start_utc = local_start.astimezone(timezone.utc)
    return start_utc, start_utc + timedelta(minutes=duration)


def iter_assignments(plan: SlotPlan, chunks: Sequence[Sequence[T]]) -> Iterator[tuple[int, Slot, Sequence[T]]]:
    """Chunk i is bound to coordinate i mod total_slots."""
    coords = plan.coordinates()
    for i, chunk in enumerate(chunks):
        day_index, slot = coords[i % plan.total_slots]
        yield day_index, slot, chunk
