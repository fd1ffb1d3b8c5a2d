from datetime import date, datetime

from eventdesk.services.analytics import (
    checkin_by_gender,
    date_range,
    gender_comparison,
    group_checkins_by_day,
    sales_trend,
    shift_month,
    tickets_per_category,
)


def test_shift_month_crosses_year_boundary() -> None:
    assert shift_month(2026, 1, -1) == (2025, 12)
    assert shift_month(2025, 11, 3) == (2026, 2)


def test_sales_trend_buckets_by_year_and_month() -> None:
    orders = [
        datetime(2025, 12, 3, 10, 0),
        datetime(2026, 1, 9),
        date(2026, 2, 1),
        date(2026, 2, 20),
        date(2025, 2, 14),  # same month, previous year
        date(2026, 3, 1),  # after the event month
    ]

    labels, counts = sales_trend(date(2026, 2, 14), orders)

    assert labels == ["Dec", "Jan", "Feb"]
    assert counts == [1, 1, 2]


def test_tickets_per_category_sums_quantities() -> None:
    breakdown = tickets_per_category([("VIP", 2), ("Regular", 5), ("VIP", 1), (None, 3), ("Regular", None)])

    assert breakdown.total == 11
    assert breakdown.labels == ["VIP", "Regular", "-"]
    assert breakdown.series == [3, 5, 3]


def test_date_range_is_inclusive() -> None:
    assert date_range(date(2026, 5, 1), date(2026, 5, 3)) == [date(2026, 5, 1), date(2026, 5, 2), date(2026, 5, 3)]
    assert date_range(date(2026, 5, 3), date(2026, 5, 1)) == []


def test_gender_comparison_counts_per_event_day() -> None:
    rows = [
        (date(2026, 5, 1), "Male"),
        (date(2026, 5, 1), "female"),
        (datetime(2026, 5, 2, 18, 30), "FEMALE"),
        (date(2026, 5, 2), "other"),
        (date(2026, 6, 1), "male"),
        (None, "male"),
    ]

    series = gender_comparison(date(2026, 5, 1), date(2026, 5, 2), rows)

    assert series.categories == [date(2026, 5, 1), date(2026, 5, 2)]
    assert series.male == [1, 0]
    assert series.female == [1, 1]


def test_checkin_by_gender_never_goes_negative() -> None:
    assert checkin_by_gender(["male", "Female", "female", None], 10) == [1, 2, 7]
    assert checkin_by_gender(["male", "male"], 1) == [2, 0, 0]


def test_group_checkins_by_day_sorted() -> None:
    stamps = [
        datetime(2026, 5, 2, 9, 0),
        datetime(2026, 5, 1, 20, 0),
        None,
        datetime(2026, 5, 2, 11, 0),
    ]

    assert group_checkins_by_day(stamps) == [(date(2026, 5, 1), 1), (date(2026, 5, 2), 2)]
