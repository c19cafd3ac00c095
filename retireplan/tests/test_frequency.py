from math import isclose

from retireplan.core.frequency import to_monthly


def test_daily_uses_average_month_length():
    assert isclose(to_monthly(100, "daily"), 3044.0)


def test_weekly_and_monthly():
    assert isclose(to_monthly(120, "weekly"), 120 * 52 / 12)
    assert to_monthly(750, "monthly") == 750


def test_yearly_matches_monthly_twelfth():
    assert isclose(to_monthly(24000, "yearly"), to_monthly(24000 / 12, "monthly"))


def test_custom_period():
    assert isclose(to_monthly(100, "custom", 14), 100 * 365.25 / 14 / 12)


def test_custom_without_positive_days_is_zero():
    assert to_monthly(100, "custom") == 0
    assert to_monthly(100, "custom", 0) == 0
    assert to_monthly(100, "custom", -7) == 0


def test_unknown_frequency_is_zero():
    assert to_monthly(100, "fortnightly") == 0


def test_one_time_is_passed_through():
    assert to_monthly(5000, "one-time") == 5000
