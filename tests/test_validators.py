from datetime import date, datetime

import pytest

from librarydesk.errors import InvalidArgument
from librarydesk.validators import TextValidator, format_date, parse_date, validate_quantity


def test_text_validation():
    assert TextValidator.validate_title("Dune")
    assert not TextValidator.validate_title("  ")
    assert TextValidator.validate_author("Frank Herbert")
    assert not TextValidator.validate_author("12345")
    assert not TextValidator.validate_name(None)
    assert TextValidator.validate_phone(None)
    assert TextValidator.validate_phone("+1 (555) 010-1234")
    assert not TextValidator.validate_phone("ext. 5")


def test_validate_quantity():
    assert validate_quantity(0) == 0
    assert validate_quantity(2 ** 63 - 1) == 2 ** 63 - 1
    for bad in (-1, 1.5, "3", True, 2 ** 63):
        with pytest.raises(InvalidArgument):
            validate_quantity(bad)


def test_parse_date_forms():
    assert parse_date("2024-03-01") == datetime(2024, 3, 1)
    assert parse_date(date(2024, 3, 1)) == datetime(2024, 3, 1)
    assert parse_date("2024-03-01T10:30:00") == datetime(2024, 3, 1, 10, 30)
    # Aware values are converted to UTC
    assert parse_date("2024-03-01T02:00:00+02:00") == datetime(2024, 3, 1)
    assert parse_date("2024-03-01T00:00:00Z") == datetime(2024, 3, 1)


@pytest.mark.parametrize("value", ["", "01/03/2024", "tomorrow", None, 20240301])
def test_parse_date_rejects_garbage(value):
    with pytest.raises(InvalidArgument):
        parse_date(value)


def test_format_date():
    assert format_date(datetime(2024, 3, 1)) == "2024-03-01"
    assert format_date(datetime(2024, 3, 1, 8, 15)) == "2024-03-01T08:15:00"
