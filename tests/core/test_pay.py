import pytest

from src.applytrack.core.pay import extract_amount, format_pay, hourly_rate


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("$20 - $25 per hour", 22.5),
        ("$20/hr", 20.0),
        ("$80k - $100k", 43.27),
        ("$5,000/month", 28.85),
        ("USD 120,000 per year", 57.69),
        ("$60,000 - $80,000 a year", 33.65),
        ("35", 35.0),
        ("1500", 0.72),
        ("$120-150K", 64.9),
        ("$90k to 110k per year", 48.08),
        ("$100,000 a year, 40 hours/week", 48.08),
        ("$400 per day", 50.0),
        ("$1,200 weekly", 30.0),
    ],
)
def test_hourly_rate_from_strings(raw, expected):
    assert hourly_rate(raw) == expected


def test_hourly_rate_without_numbers_is_none():
    assert hourly_rate("Competitive") is None
    assert hourly_rate("") is None
    assert hourly_rate(None) is None


def test_extract_amount_expands_k_and_averages_ranges():
    assert extract_amount("80K") == 80000.0
    assert extract_amount("1.5k") == 1500.0
    assert extract_amount("$10 - $20 - $30") == 15.0
    assert extract_amount("120-150k") == 135000.0
    assert extract_amount("100000 a year, 40 hours") == 100000.0
    assert extract_amount("none") is None


def test_format_pay_flattens_monetary_amount():
    raw = {"@type": "MonetaryAmount", "currency": "USD", "value": {"minValue": 20, "maxValue": 25, "unitText": "HOUR"}}
    assert format_pay(raw) == "USD 20-25 per hour"
    assert hourly_rate(raw) == 22.5


def test_format_pay_single_value_and_lists():
    assert format_pay({"currency": "USD", "value": {"value": 95000, "unitText": "YEAR"}}) == "USD 95000 per year"
    assert format_pay({"currency": "USD", "value": {"minValue": 50, "maxValue": 50, "unitText": "HOUR"}}) == "USD 50 per hour"
    assert format_pay(["$50k", "", "plus bonus"]) == "$50k; plus bonus"
    assert format_pay(1000000) == "1000000"
    assert format_pay(True) == ""


def test_hourly_rate_from_daily_and_weekly_monetary_amounts():
    daily = {"currency": "USD", "value": {"value": 400, "unitText": "DAY"}}
    weekly = {"currency": "USD", "value": {"minValue": 1000, "maxValue": 1400, "unitText": "WEEK"}}
    assert format_pay(daily) == "USD 400 per day"
    assert hourly_rate(daily) == 50.0
    assert hourly_rate(weekly) == 30.0
