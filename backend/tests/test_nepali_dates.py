from datetime import date, datetime

import pytest

from ashram.services import nepali_dates


def test_to_nepali_adds_fixed_year_offset() -> None:
    converted = nepali_dates.to_nepali(date(2024, 8, 15))
    assert converted == (2081, 8, 15)
    assert str(converted) == "2081/08/15"


def test_to_nepali_formatted_uses_month_table() -> None:
    assert nepali_dates.to_nepali_formatted(date(2024, 1, 3)) == "3 बैशाख 2081"
    assert nepali_dates.to_nepali_formatted("2024-08-15T10:00:00Z") == "15 मंसिर 2081"


def test_to_nepali_datetime_appends_clock() -> None:
    assert nepali_dates.to_nepali_datetime(datetime(2024, 12, 1, 15, 5)) == "1 चैत्र 2081, 03:05 PM"


@pytest.mark.parametrize("value", [None, "", "not-a-date", "2024-13-45"])
def test_unparsable_input_renders_not_available(value) -> None:
    assert nepali_dates.to_nepali(value) is None
    assert nepali_dates.to_nepali_formatted(value) == "N/A"
    assert nepali_dates.to_nepali_string(value) == "N/A"
    assert nepali_dates.format_numeric_date(value) == "N/A"
    assert nepali_dates.format_english_date(value) == "N/A"


def test_english_fallback_formatters() -> None:
    moment = datetime(2024, 8, 5, 10, 0)
    assert nepali_dates.format_english_date(moment) == "5 Aug 2024"
    assert nepali_dates.format_english_datetime(moment) == "5 Aug 2024, 10:00 AM"
    assert nepali_dates.format_numeric_date(moment) == "05/08/2024"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2081/08/15", date(2024, 8, 15)),
        ("2081-01-01", date(2024, 1, 1)),
        ("२०८१/०८/१५", date(2024, 8, 15)),
        ("2081/02/29", date(2024, 2, 29)),
    ],
)
def test_to_english_parses_ascii_and_devanagari_digits(text: str, expected: date) -> None:
    assert nepali_dates.to_english(text) == expected


@pytest.mark.parametrize("text", [None, "", "2081/13/01", "2081/02/31", "15 मंसिर 2081"])
def test_invalid_nepali_dates(text) -> None:
    assert nepali_dates.to_english(text) is None
    assert nepali_dates.is_valid_nepali_date(text) is False


def test_round_trip_through_bikram_sambat() -> None:
    original = date(2023, 6, 9)
    assert nepali_dates.to_english(nepali_dates.to_nepali_string(original)) == original


def test_today_helpers_follow_current_year() -> None:
    year = datetime.now().year + nepali_dates.NEPALI_YEAR_OFFSET
    assert nepali_dates.today_nepali().startswith(f"{year}/")
    assert nepali_dates.today_nepali_formatted().endswith(str(year))
