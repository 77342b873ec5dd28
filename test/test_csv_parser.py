"""
Unit tests for CSV parser.
"""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from contact_manager.contacts.csv_parser import (
    CSVParser,
    map_header,
    parse_date_of_birth,
    parse_married,
    parse_salary,
)
from contact_manager.shared.exceptions import CsvReadError

HEADER = "Name,DateOfBirth,Married,Phone,Salary\n"


def _csv(*rows: str, header: str = HEADER) -> bytes:
    return (header + "\n".join(rows) + "\n").encode("utf-8")


class TestMapHeader:
    """Tests for header mapping."""

    def test_english_headers(self):
        assert map_header("Name") == "name"
        assert map_header("DateOfBirth") == "date_of_birth"
        assert map_header("Date of birth") == "date_of_birth"
        assert map_header("Married") == "married"
        assert map_header("Phone") == "phone"
        assert map_header("Salary") == "salary"

    def test_russian_headers(self):
        assert map_header("Имя") == "name"
        assert map_header("Дата рождения") == "date_of_birth"
        assert map_header("Женат") == "married"
        assert map_header("Телефон") == "phone"
        assert map_header("Зарплата") == "salary"

    def test_surrounding_whitespace_ignored(self):
        assert map_header("  Phone ") == "phone"

    def test_unknown_and_differently_cased_headers(self):
        assert map_header("Email") is None
        assert map_header("name") is None


class TestParseDateOfBirth:
    """Tests for date parsing."""

    def test_iso_format(self):
        assert parse_date_of_birth("1990-05-17") == date(1990, 5, 17)

    def test_dotted_day_first(self):
        assert parse_date_of_birth("12.04.1995") == date(1995, 4, 12)

    def test_slash_prefers_month_first(self):
        """Ambiguous slash dates are read month first."""
        assert parse_date_of_birth("03/04/1990") == date(1990, 3, 4)

    def test_slash_falls_back_to_day_first(self):
        assert parse_date_of_birth("25/12/1990") == date(1990, 12, 25)

    def test_free_form_fallback(self):
        assert parse_date_of_birth("May 17, 1990") == date(1990, 5, 17)
        assert parse_date_of_birth(" 1990-05-17 ") == date(1990, 5, 17)

    @pytest.mark.parametrize("value", ["12", "1990", "May", "May 1990", "1990-05"])
    def test_partial_dates_rejected(self, value):
        """Missing date parts are never filled in."""
        assert parse_date_of_birth(value) is None

    def test_partial_date_row_dropped(self):
        content = _csv(
            "Ann,May,true,12345678,100",
            "Ben,17 May 1990,true,12345678,100",
        )
        contacts = CSVParser().parse_contacts(content)

        assert [c.name for c in contacts] == ["Ben"]
        assert contacts[0].date_of_birth == date(1990, 5, 17)

    def test_unparseable_values(self):
        assert parse_date_of_birth("not-a-date") is None
        assert parse_date_of_birth("") is None


class TestParseMarried:
    """Tests for marital status parsing."""

    @pytest.mark.parametrize("value", ["true", "True", "TRUE", "1", "yes", "Yes", "да", "Да"])
    def test_truthy(self, value):
        assert parse_married(value) is True

    @pytest.mark.parametrize("value", ["false", "False", "0", "no", "NO", "нет", "Нет"])
    def test_falsy(self, value):
        assert parse_married(value) is False

    @pytest.mark.parametrize("value", ["", "maybe", "2", "y", "n"])
    def test_unrecognised(self, value):
        assert parse_married(value) is None


class TestParseSalary:
    """Tests for salary parsing."""

    def test_plain_number(self):
        assert parse_salary("52000") == Decimal("52000")
        assert parse_salary("52000.75") == Decimal("52000.75")

    def test_decimal_comma(self):
        assert parse_salary("45000,50") == Decimal("45000.50")

    def test_grouped_thousands_rejected(self):
        assert parse_salary("45 000,50") is None
        assert parse_salary("1,000,000") is None

    def test_invalid_values(self):
        assert parse_salary("") is None
        assert parse_salary("abc") is None
        assert parse_salary("-100") is None


class TestCSVParser:
    """Tests for CSVParser."""

    def test_parses_valid_rows(self, sample_csv_content: bytes):
        parser = CSVParser()
        contacts = parser.parse_contacts(sample_csv_content)

        assert [c.name for c in contacts] == ["Alice Smith", "Bob Jones", "Carol White"]

        alice, bob, carol = contacts
        assert alice.date_of_birth == date(1990, 5, 17)
        assert alice.married is True
        assert alice.phone == "+14155551234"
        assert alice.salary == Decimal("52000.00")

        assert bob.date_of_birth == date(1985, 4, 12)
        assert bob.married is False
        assert bob.salary == Decimal("61000.50")

        assert carol.date_of_birth == date(1978, 7, 21)
        assert carol.married is True
        assert carol.phone == "(415) 555-0000"

        assert parser.stats.rows_seen == 3
        assert parser.stats.rows_parsed == 3
        assert parser.stats.rows_converted == 3
        assert parser.stats.rows_skipped == 0

    def test_accepts_file_like_stream(self, sample_csv_content: bytes):
        contacts = CSVParser().parse_contacts(io.BytesIO(sample_csv_content))
        assert len(contacts) == 3

    def test_russian_headers_and_utf8_bom(self):
        content = "\ufeffИмя,Дата рождения,Женат,Телефон,Зарплата\nИван Петров,01.02.1980,да,+7 495 123-45-67,\"90000,00\"\n"
        contacts = CSVParser().parse_contacts(content.encode("utf-8"))

        assert len(contacts) == 1
        assert contacts[0].name == "Иван Петров"
        assert contacts[0].date_of_birth == date(1980, 2, 1)
        assert contacts[0].married is True
        assert contacts[0].salary == Decimal("90000.00")

    def test_column_order_follows_header(self):
        content = _csv(
            "5000,+123456789,no,1999-12-31,Dana",
            header="Salary,Phone,Married,DateOfBirth,Name\n",
        )
        contacts = CSVParser().parse_contacts(content)

        assert len(contacts) == 1
        assert contacts[0].name == "Dana"
        assert contacts[0].salary == Decimal("5000")

    def test_cells_are_trimmed(self):
        content = _csv("  Eve Adams  , 1990-01-01 , true ,  12345678  , 100 ")
        contact = CSVParser().parse_contacts(content)[0]

        assert contact.name == "Eve Adams"
        assert contact.phone == "12345678"
        assert contact.salary == Decimal("100")

    def test_bad_date_drops_only_that_row(self):
        content = _csv(
            "Ann,not-a-date,true,12345678,100",
            "Ben,1990-01-01,false,12345678,200",
        )
        parser = CSVParser()
        contacts = parser.parse_contacts(content)

        assert [c.name for c in contacts] == ["Ben"]
        assert parser.stats.rows_seen == 2
        assert parser.stats.rows_skipped == 1

    def test_grouped_salary_row_dropped(self):
        content = _csv(
            "Ann,1990-01-01,true,12345678,\"45 000,50\"",
            "Ben,1990-01-01,true,12345678,\"45000,50\"",
        )
        contacts = CSVParser().parse_contacts(content)

        assert [c.name for c in contacts] == ["Ben"]
        assert contacts[0].salary == Decimal("45000.50")

    def test_bad_married_row_dropped(self):
        content = _csv("Ann,1990-01-01,maybe,12345678,100")
        assert CSVParser().parse_contacts(content) == []

    def test_short_row_reads_missing_cells_as_empty(self):
        content = _csv(
            "Ann,1990-01-01,true,12345678",
            "Ben,1990-01-01,true,12345678,100",
        )
        parser = CSVParser()
        contacts = parser.parse_contacts(content)

        assert len(contacts) == 1
        assert contacts[0].name == "Ben"
        assert parser.stats.rows_parsed == 2

    def test_missing_column_drops_every_row(self):
        content = _csv(
            "Ann,1990-01-01,true,12345678",
            header="Name,DateOfBirth,Married,Phone\n",
        )
        parser = CSVParser()

        assert parser.parse_contacts(content) == []
        assert parser.stats.rows_seen == 1

    def test_extra_columns_ignored(self):
        content = _csv(
            "Ann,ann@example.com,1990-01-01,true,12345678,100",
            header="Name,Email,DateOfBirth,Married,Phone,Salary\n",
        )
        contacts = CSVParser().parse_contacts(content)

        assert len(contacts) == 1
        assert contacts[0].phone == "12345678"

    def test_blank_lines_skipped(self):
        content = b"\n" + _csv("", "Ann,1990-01-01,true,12345678,100", "   ", "")
        parser = CSVParser()
        contacts = parser.parse_contacts(content)

        assert len(contacts) == 1
        assert parser.stats.rows_seen == 1

    def test_empty_file(self):
        parser = CSVParser()
        assert parser.parse_contacts(b"") == []
        assert parser.stats.rows_seen == 0

    def test_header_only(self):
        parser = CSVParser()
        assert parser.parse_contacts(HEADER.encode()) == []
        assert parser.stats.rows_seen == 0

    def test_semicolon_delimiter(self):
        content = b"Name;DateOfBirth;Married;Phone;Salary\nAnn;1990-01-01;true;12345678;100,5\n"
        contacts = CSVParser(delimiter=";").parse_contacts(content)

        assert len(contacts) == 1
        assert contacts[0].salary == Decimal("100.5")

    def test_stats_reset_between_parses(self, sample_csv_content: bytes):
        parser = CSVParser()
        parser.parse_contacts(sample_csv_content)
        parser.parse_contacts(_csv("Ann,1990-01-01,true,12345678,100"))

        assert parser.stats.rows_seen == 1


class TestCSVReadFailures:
    """Tests for unreadable input."""

    @pytest.fixture
    def small_field_limit(self):
        previous = csv.field_size_limit(40)
        yield
        csv.field_size_limit(previous)

    def test_malformed_row_skipped(self, small_field_limit):
        content = _csv(
            "Ann,1990-01-01,true,12345678,100",
            "Bob," + "x" * 100 + ",true,12345678,100",
            "Cid,1990-01-01,true,12345678,100",
        )
        parser = CSVParser()
        contacts = parser.parse_contacts(content)

        assert [c.name for c in contacts] == ["Ann", "Cid"]
        assert parser.stats.rows_seen == 3
        assert parser.stats.rows_converted == 2

    def test_invalid_encoding_raises(self):
        with pytest.raises(CsvReadError):
            CSVParser().parse_contacts(b"Name\n\xff\xfe\xfa\n")

    def test_stream_read_failure_raises(self):
        class BrokenStream:
            def read(self):
                raise OSError("disk gone")

        with pytest.raises(CsvReadError) as exc_info:
            CSVParser().parse_contacts(BrokenStream())  # type: ignore[arg-type]

        assert "disk gone" in str(exc_info.value)
