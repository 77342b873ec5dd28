"""
CSV parsing for contact uploads.

Rows are converted on a best-effort basis: a row whose date, marital status or
salary cannot be understood is dropped, every other row is kept.
"""

import csv
import io
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import BinaryIO, Iterator

from dateutil import parser as date_parser

from contact_manager.contacts.models import Contact
from contact_manager.contacts.schemas import ContactCsvRecord
from contact_manager.shared.exceptions import CsvReadError
from contact_manager.shared.logging import get_logger

logger = get_logger(__name__)

# Header spellings accepted for each canonical field (exact, case-sensitive)
HEADER_ALIASES: dict[str, str] = {
    "Name": "name",
    "Имя": "name",
    "DateOfBirth": "date_of_birth",
    "Date of birth": "date_of_birth",
    "Дата рождения": "date_of_birth",
    "Married": "married",
    "Женат": "married",
    "Phone": "phone",
    "Телефон": "phone",
    "Salary": "salary",
    "Зарплата": "salary",
}

CANONICAL_FIELDS = ("name", "date_of_birth", "married", "phone", "salary")

# Order matters: "MM/dd" wins over "dd/MM" whenever both day and month are <= 12.
DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%m/%d/%Y", "%d/%m/%Y")
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

TRUE_WORDS = {"yes", "да"}
FALSE_WORDS = {"no", "нет"}

# Plain non-negative decimal with "." as the only separator
SALARY_PATTERN = re.compile(r"^\+?(\d+(\.\d*)?|\.\d+)$")


def map_header(header: str) -> str | None:
    """Map a CSV header to its canonical field name.

    Args:
        header: Raw header cell.

    Returns:
        Canonical field name, or None for columns we do not import.
    """
    return HEADER_ALIASES.get(header.strip())


def parse_date_of_birth(value: str) -> date | None:
    """Parse a date of birth written in one of the supported layouts.

    Args:
        value: Raw cell text.

    Returns:
        Parsed date, or None if nothing understands the value.
    """
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    # dateutil fills missing parts from ``default``; a complete date parses the
    # same under two different defaults.
    try:
        first = date_parser.parse(value, dayfirst=False, default=_FILL_DEFAULTS[0])
        second = date_parser.parse(value, dayfirst=False, default=_FILL_DEFAULTS[1])
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first.date()


def parse_married(value: str) -> bool | None:
    """Parse a marital status flag.

    Args:
        value: Raw cell text.

    Returns:
        True/False, or None when the value is not a recognised boolean.
    """
    cleaned = value.strip()
    lowered = cleaned.lower()

    if lowered == "true":
        return True
    if lowered == "false":
        return False

    if lowered in TRUE_WORDS or cleaned == "1":
        return True
    if lowered in FALSE_WORDS or cleaned == "0":
        return False

    return None


def parse_salary(value: str) -> Decimal | None:
    """Parse a salary, tolerating a decimal comma.

    Args:
        value: Raw cell text.

    Returns:
        Decimal amount, or None if the value is not a plain non-negative number.
    """
    cleaned = value.strip().replace(",", ".")
    if not SALARY_PATTERN.match(cleaned):
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


@dataclass
class CSVParseStats:
    """Diagnostic counters for a single parse."""

    rows_seen: int = 0
    rows_parsed: int = 0
    rows_converted: int = 0

    @property
    def rows_skipped(self) -> int:
        return self.rows_seen - self.rows_converted


class CSVParser:
    """Parser for contact CSV files."""

    def __init__(
        self,
        delimiter: str = ",",
        encoding: str = "utf-8-sig",
    ) -> None:
        """Initialize CSV parser.

        Args:
            delimiter: CSV field delimiter.
            encoding: File encoding.
        """
        self.delimiter = delimiter
        self.encoding = encoding
        self.stats = CSVParseStats()

    def parse_contacts(self, stream: BinaryIO | bytes) -> list[Contact]:
        """Parse an uploaded CSV stream into contacts.

        Args:
            stream: Binary file-like object or raw bytes.

        Returns:
            Contacts for every row that could be fully converted.

        Raises:
            CsvReadError: If the stream cannot be read or decoded at all.
        """
        self.stats = CSVParseStats()

        contacts: list[Contact] = []
        for line_number, record in self.read_records(stream):
            contact = self.convert(line_number, record)
            if contact is not None:
                contacts.append(contact)
                self.stats.rows_converted += 1

        logger.info(
            "CSV parsing completed",
            extra={
                "rows_seen": self.stats.rows_seen,
                "rows_parsed": self.stats.rows_parsed,
                "rows_converted": self.stats.rows_converted,
            },
        )
        return contacts

    def read_records(
        self,
        stream: BinaryIO | bytes,
    ) -> Iterator[tuple[int, ContactCsvRecord]]:
        """Yield raw records for every readable data row.

        Args:
            stream: Binary file-like object or raw bytes.

        Yields:
            Tuples of (line_number, raw record).
        """
        text = self._read_text(stream)
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=self.delimiter)

        columns = self._read_header(reader)
        if columns is None:
            logger.warning("CSV file is empty or has no header row")
            return

        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                self.stats.rows_seen += 1
                logger.warning(
                    "Skipping unreadable CSV row",
                    extra={"line_number": reader.line_num, "error": str(e)},
                )
                continue

            if self._is_blank(row):
                continue

            self.stats.rows_seen += 1
            values = {
                field: row[index].strip() if index is not None and index < len(row) else ""
                for field, index in columns.items()
            }
            record = ContactCsvRecord(**values)
            self.stats.rows_parsed += 1

            logger.debug(
                "CSV row read",
                extra={"line_number": reader.line_num, "contact_name": record.name},
            )
            yield reader.line_num, record

    def convert(self, line_number: int, record: ContactCsvRecord) -> Contact | None:
        """Convert a raw record into a contact.

        Args:
            line_number: Line number in the file, for logging.
            record: Raw record.

        Returns:
            Contact, or None if any required field could not be converted.
        """
        try:
            date_of_birth = parse_date_of_birth(record.date_of_birth)
            if date_of_birth is None:
                return self._skip(line_number, "date_of_birth", record.date_of_birth)

            married = parse_married(record.married)
            if married is None:
                return self._skip(line_number, "married", record.married)

            salary = parse_salary(record.salary)
            if salary is None:
                return self._skip(line_number, "salary", record.salary)

            contact = Contact(
                name=record.name,
                date_of_birth=date_of_birth,
                married=married,
                phone=record.phone,
                salary=salary,
            )
        except Exception as e:
            logger.warning(
                "Row conversion error",
                extra={"line_number": line_number, "error": str(e)},
            )
            return None

        logger.debug(
            "CSV row converted",
            extra={"line_number": line_number, "contact_name": contact.name},
        )
        return contact

    def _read_text(self, stream: BinaryIO | bytes) -> str:
        try:
            raw = stream if isinstance(stream, (bytes, bytearray)) else stream.read()
            if isinstance(raw, str):
                return raw
            return bytes(raw).decode(self.encoding)
        except (OSError, ValueError) as e:
            logger.error("CSV stream could not be read", extra={"error": str(e)})
            raise CsvReadError(f"Error reading CSV file: {e}") from e

    def _read_header(
        self,
        reader: Iterator[list[str]],
    ) -> dict[str, int | None] | None:
        """Return canonical field -> column index, or None if there is no header."""
        try:
            for row in reader:
                if self._is_blank(row):
                    continue
                columns: dict[str, int] = {}
                for index, header in enumerate(row):
                    field = map_header(header)
                    if field is not None and field not in columns:
                        columns[field] = index

                # Canonical fields without a column read as "" and fail conversion.
                return {f: columns.get(f) for f in CANONICAL_FIELDS}
        except csv.Error as e:
            raise CsvReadError(f"Error reading CSV header: {e}") from e
        return None

    @staticmethod
    def _is_blank(row: list[str]) -> bool:
        return not row or (len(row) == 1 and not row[0].strip())

    @staticmethod
    def _skip(line_number: int, field: str, value: str) -> None:
        logger.debug(
            "Skipping CSV row with unconvertible field",
            extra={"line_number": line_number, "field": field, "value": value},
        )
        return None
