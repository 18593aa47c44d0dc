from __future__ import annotations
import datetime as dt
from typing import Optional

from pydantic import Field, model_validator, field_validator

from ..core import time_slots as ts
from ..models.availability import OverrideKind
from .booking import CamelModel


def _check_dow(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in ts.DAYS_OF_WEEK:
        raise ValueError("dayOfWeek must be one of " + ", ".join(ts.DAYS_OF_WEEK))
    return v


def _check_tod(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in ts.BOOKABLE_TIMES_OF_DAY:
        raise ValueError("timeOfDay must be a half-hour label between 6am and 8pm, like '9am' or '930am'")
    return v


# -----------------------------
# Weekly templates
# -----------------------------

class SlotTemplateIn(CamelModel):
    day_of_week: str
    time_of_day: str
    # admin console fields; derived when omitted
    value: Optional[str] = None
    label: Optional[str] = Field(None, max_length=100)
    is_active: bool = True

    check_day = field_validator("day_of_week")(_check_dow)
    check_time = field_validator("time_of_day")(_check_tod)


class SlotTemplateUpdate(CamelModel):
    day_of_week: Optional[str] = None
    time_of_day: Optional[str] = None
    label: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None

    check_day = field_validator("day_of_week")(_check_dow)
    check_time = field_validator("time_of_day")(_check_tod)


class ToggleIn(CamelModel):
    is_active: bool


class SlotTemplateOut(CamelModel):
    id: int
    day_of_week: str
    time_of_day: str
    value: str
    label: str
    is_active: bool


# -----------------------------
# Availability windows
# -----------------------------

class AvailabilityWindowIn(CamelModel):
    start_date: dt.date
    end_date: dt.date
    label: Optional[str] = Field(None, max_length=100)
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class AvailabilityWindowOut(CamelModel):
    id: int
    start_date: dt.date
    end_date: dt.date
    label: Optional[str] = None
    is_active: bool


# -----------------------------
# Date overrides
# -----------------------------

class DateOverrideIn(CamelModel):
    date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    kind: OverrideKind = Field(OverrideKind.BLOCKED, alias="type")
    blocked_times: list[str] = Field(default_factory=list)
    reason: Optional[str] = Field(None, max_length=255)
    is_active: bool = True

    @model_validator(mode="after")
    def check_shape(self):
        has_range = self.start_date is not None or self.end_date is not None
        if (self.date is None) != has_range:
            raise ValueError("give either date or startDate/endDate")
        if has_range:
            if self.start_date is None or self.end_date is None:
                raise ValueError("a range needs both startDate and endDate")
            if self.end_date < self.start_date:
                raise ValueError("endDate must not be before startDate")
        self.blocked_times = [t.strip().lower() for t in self.blocked_times]
        bad = [t for t in self.blocked_times if not ts.is_time_of_day(t)]
        if bad:
            raise ValueError(f"unknown blockedTimes: {', '.join(bad)}")
        if self.kind == OverrideKind.BLOCKED_SPECIFIC and not self.blocked_times:
            raise ValueError("blocked_specific needs at least one blockedTimes entry")
        return self


class DateOverrideOut(CamelModel):
    id: int
    date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    kind: OverrideKind = Field(serialization_alias="type")
    blocked_times: list[str]
    reason: Optional[str] = None
    is_active: bool
