from datetime import date, time

import pytest

from balanced.core import time_slots as ts


def test_table_covers_every_half_hour_in_order():
    assert len(ts.TIMES_OF_DAY) == 48
    assert ts.TIMES_OF_DAY[0] == "12am"
    assert ts.TIMES_OF_DAY[-1] == "1130pm"
    assert [ts.to_time(t) for t in ts.TIMES_OF_DAY] == sorted(ts.to_time(t) for t in ts.TIMES_OF_DAY)


def test_order_is_not_lexical():
    assert ts.time_order("9am") < ts.time_order("10am")
    assert ts.time_order("1130am") < ts.time_order("12pm")
    assert ts.time_order("12pm") < ts.time_order("1pm")


def test_bookable_subset_runs_from_6am_to_8pm():
    assert ts.BOOKABLE_TIMES_OF_DAY[0] == "6am"
    assert ts.BOOKABLE_TIMES_OF_DAY[-1] == "8pm"
    assert len(ts.BOOKABLE_TIMES_OF_DAY) == 29


def test_next_time_of_day():
    assert ts.next_time_of_day("9am") == "930am"
    assert ts.next_time_of_day("930am") == "10am"
    assert ts.next_time_of_day("1130am") == "12pm"
    assert ts.next_time_of_day("1130pm") is None


def test_to_time_and_display():
    assert ts.to_time("930am") == time(9, 30)
    assert ts.to_time("12am") == time(0, 0)
    assert ts.display_time("12pm") == "12:00 PM"
    assert ts.display_time("1230am") == "12:30 AM"
    assert ts.display_time("630pm") == "6:30 PM"


def test_slot_key_round_trip_and_next():
    key = ts.make_slot_key(date(2025, 6, 16), "9am")
    assert key == "2025-06-16-9am"
    assert ts.parse_slot_key(key) == (date(2025, 6, 16), "9am")
    assert ts.next_slot_key(key) == "2025-06-16-930am"
    assert ts.next_slot_key("2025-06-16-1130pm") is None


@pytest.mark.parametrize("bad", ["mon-9am", "2025-06-16", "2025-13-01-9am", "2025-06-16-925am", ""])
def test_parse_slot_key_rejects_other_shapes(bad):
    with pytest.raises(ValueError):
        ts.parse_slot_key(bad)


def test_template_key_and_day_of_week():
    assert ts.make_template_key("mon", "9am") == "mon-9am"
    assert ts.day_of_week(date(2025, 6, 16)) == "mon"
    assert ts.day_of_week(date(2025, 6, 15)) == "sun"
    with pytest.raises(ValueError):
        ts.make_template_key("monday", "9am")


def test_display_label():
    assert ts.display_label(date(2025, 6, 16), "9am") == "Monday, June 16, 2025 at 9:00 AM"
    assert ts.display_slot_key("2025-06-01-8pm") == "Sunday, June 1, 2025 at 8:00 PM"


def test_sort_key_orders_by_date_then_canonical_time():
    keys = ["2025-06-02-10am", "2025-06-02-9am", "2025-06-01-8pm"]
    assert sorted(keys, key=ts.sort_key) == ["2025-06-01-8pm", "2025-06-02-9am", "2025-06-02-10am"]
