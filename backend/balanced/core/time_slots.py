"""
Half-hour time-of-day vocabulary shared by the availability composer and the
slot allocator.

Two string shapes exist and must not be mixed up:
  - slot key (a bookable instance):  "2025-06-16-9am"
  - template key (a weekly rule):    "mon-9am"
"""
from __future__ import annotations

from datetime import date, time

# Canonical order. Labels do not sort lexically ("10am" < "9am"), so every
# ordering and adjacency question goes through this table.
TIMES_OF_DAY: tuple[str, ...] = (
    "12am", "1230am", "1am", "130am", "2am", "230am",
    "3am", "330am", "4am", "430am", "5am", "530am",
    "6am", "630am", "7am", "730am", "8am", "830am",
    "9am", "930am", "10am", "1030am", "11am", "1130am",
    "12pm", "1230pm", "1pm", "130pm", "2pm", "230pm",
    "3pm", "330pm", "4pm", "430pm", "5pm", "530pm",
    "6pm", "630pm", "7pm", "730pm", "8pm", "830pm",
    "9pm", "930pm", "10pm", "1030pm", "11pm", "1130pm",
)

# Subset offered by the admin console when creating weekly templates.
BOOKABLE_TIMES_OF_DAY: tuple[str, ...] = TIMES_OF_DAY[
    TIMES_OF_DAY.index("6am"): TIMES_OF_DAY.index("8pm") + 1
]

DAYS_OF_WEEK: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

DAY_NAMES = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}

SLOT_MINUTES = 30

_ORDER = {tod: i for i, tod in enumerate(TIMES_OF_DAY)}


def is_time_of_day(value: str) -> bool:
    return value in _ORDER


def time_order(tod: str) -> int:
    try:
        return _ORDER[tod]
    except KeyError:
        raise ValueError(f"unknown time of day: {tod!r}") from None


def next_time_of_day(tod: str) -> str | None:
    """The following half-hour label on the same date, or None after 1130pm."""
    i = time_order(tod) + 1
    return TIMES_OF_DAY[i] if i < len(TIMES_OF_DAY) else None


def to_time(tod: str) -> time:
    minutes = time_order(tod) * SLOT_MINUTES
    return time(minutes // 60, minutes % 60)


def display_time(tod: str) -> str:
    t = to_time(tod)
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d} {suffix}"


def day_of_week(d: date) -> str:
    return DAYS_OF_WEEK[d.weekday()]


def make_slot_key(d: date, tod: str) -> str:
    time_order(tod)
    return f"{d.isoformat()}-{tod}"


def make_template_key(dow: str, tod: str) -> str:
    if dow not in DAYS_OF_WEEK:
        raise ValueError(f"unknown day of week: {dow!r}")
    time_order(tod)
    return f"{dow}-{tod}"


def parse_slot_key(key: str) -> tuple[date, str]:
    """Split "YYYY-MM-DD-<tod>" into (date, tod). Template keys are rejected."""
    parts = (key or "").split("-")
    if len(parts) != 4 or len(parts[0]) != 4:
        raise ValueError(f"not a date-bound slot key: {key!r}")
    try:
        d = date.fromisoformat("-".join(parts[:3]))
    except ValueError:
        raise ValueError(f"invalid date in slot key: {key!r}") from None
    tod = parts[3]
    if not is_time_of_day(tod):
        raise ValueError(f"invalid time of day in slot key: {key!r}")
    return d, tod


def next_slot_key(key: str) -> str | None:
    d, tod = parse_slot_key(key)
    nxt = next_time_of_day(tod)
    return make_slot_key(d, nxt) if nxt else None


def sort_key(key: str) -> tuple[date, int]:
    d, tod = parse_slot_key(key)
    return d, time_order(tod)


def display_label(d: date, tod: str) -> str:
    # "Monday, June 16, 2025 at 9:00 AM"
    return f"{DAY_NAMES[day_of_week(d)]}, {d.strftime('%B')} {d.day}, {d.year} at {display_time(tod)}"


def display_slot_key(key: str) -> str:
    d, tod = parse_slot_key(key)
    return display_label(d, tod)
