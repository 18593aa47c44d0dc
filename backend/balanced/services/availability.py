"""
Availability composer: weekly templates x availability windows x date
overrides x existing reservations -> ordered list of bookable slot instances.

Reads the admin configuration from the store on every call; there is no cache.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..config import settings
from ..core import time_slots as ts
from ..models.availability import AvailabilityWindow, DateOverride, OverrideKind, SlotTemplate
from ..models.booking import BookedSlot

logger = logging.getLogger(__name__)

_FILTERING_KINDS = (OverrideKind.BLOCKED, OverrideKind.BLOCKED_SPECIFIC)


@dataclass(frozen=True)
class AvailableSlot:
    slot_key: str
    label: str

    def as_option(self) -> dict:
        return {"value": self.slot_key, "label": self.label}


@dataclass
class _DayBlock:
    whole_day: bool = False
    times: frozenset[str] = frozenset()


def today_in_zone(now: datetime | date | None = None) -> date:
    """Calendar date of `now` in the configured zone (naive datetimes are taken as already local)."""
    if now is None:
        return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
    if isinstance(now, datetime):
        if now.tzinfo is not None:
            now = now.astimezone(ZoneInfo(settings.TIMEZONE))
        return now.date()
    return now


def index_overrides(overrides: Iterable[DateOverride]) -> dict[date, _DayBlock]:
    """Fold active single-date overrides into one block rule per date."""
    out: dict[date, _DayBlock] = {}
    for o in overrides:
        if not o.is_active or o.date is None or o.kind not in _FILTERING_KINDS:
            continue
        block = out.setdefault(o.date, _DayBlock())
        if o.kind == OverrideKind.BLOCKED:
            block.whole_day = True
        else:
            block.times = block.times | frozenset(o.blocked_times or ())
    return out


def _window_dates(windows: Iterable[AvailabilityWindow], today: date) -> list[date]:
    # overlapping windows yield each date once
    days: set[date] = set()
    for w in windows:
        if not w.is_active or w.start_date is None or w.end_date is None:
            continue
        d = max(w.start_date, today)
        while d <= w.end_date:
            days.add(d)
            d += timedelta(days=1)
    return sorted(days)


def compose_slots(
    today: date,
    templates: Iterable[SlotTemplate],
    windows: Iterable[AvailabilityWindow],
    overrides: Iterable[DateOverride],
    booked_keys: set[str],
) -> list[AvailableSlot]:
    by_day: dict[str, list[str]] = {}
    for t in templates:
        if t.is_active and ts.is_time_of_day(t.time_of_day):
            by_day.setdefault(t.day_of_week, []).append(t.time_of_day)

    blocks = index_overrides(overrides)
    out: list[AvailableSlot] = []

    for d in _window_dates(windows, today):
        times = by_day.get(ts.day_of_week(d))
        if not times:
            continue
        block = blocks.get(d)
        if block and block.whole_day:
            continue
        for tod in set(times):
            if block and tod in block.times:
                continue
            key = ts.make_slot_key(d, tod)
            if key in booked_keys:
                continue
            out.append(AvailableSlot(slot_key=key, label=ts.display_label(d, tod)))

    out.sort(key=lambda s: ts.sort_key(s.slot_key))
    return out


def booked_slot_keys(db: Session) -> set[str]:
    return {row[0] for row in db.query(BookedSlot.slot_key).all()}


def compute_available_slots(db: Session, now: datetime | date | None = None) -> list[AvailableSlot]:
    today = today_in_zone(now)

    booked = booked_slot_keys(db)
    windows = db.query(AvailabilityWindow).filter(AvailabilityWindow.is_active == True).all()
    templates = db.query(SlotTemplate).filter(SlotTemplate.is_active == True).all()
    overrides = (
        db.query(DateOverride)
        .filter(
            DateOverride.is_active == True,
            DateOverride.date.isnot(None),
            DateOverride.kind.in_(_FILTERING_KINDS),
        )
        .all()
    )

    slots = compose_slots(today, templates, windows, overrides, booked)
    logger.debug(
        "availability: %d slots from %d templates, %d windows, %d overrides, %d booked",
        len(slots), len(templates), len(windows), len(overrides), len(booked),
    )
    return slots
