"""Date parsing utilities."""

from datetime import date, datetime
import re

from dateutil import parser as date_parser

# Numeric dates as they appear in Spanish statements, optionally followed by a time
_NUMERIC_DATE = re.compile(r"^(\d{1,4})[/\-.](\d{1,2})[/\-.](\d{1,4})(?:[ T].*)?$")

# Two-digit years up to this value belong to the 2000s
TWO_DIGIT_YEAR_PIVOT = 30


class SpanishParserInfo(date_parser.parserinfo):
    """dateutil parser vocabulary with Spanish month and weekday names."""

    JUMP = date_parser.parserinfo.JUMP + ["de", "del"]

    MONTHS = [
        ("ene", "enero", "Jan", "January"),
        ("feb", "febrero", "Feb", "February"),
        ("mar", "marzo", "Mar", "March"),
        ("abr", "abril", "Apr", "April"),
        ("may", "mayo", "May"),
        ("jun", "junio", "Jun", "June"),
        ("jul", "julio", "Jul", "July"),
        ("ago", "agosto", "Aug", "August"),
        ("sep", "sept", "septiembre", "setiembre", "Sep", "Sept", "September"),
        ("oct", "octubre", "Oct", "October"),
        ("nov", "noviembre", "Nov", "November"),
        ("dic", "diciembre", "Dec", "December"),
    ]

    WEEKDAYS = [
        ("lun", "lunes", "Mon", "Monday"),
        ("martes", "Tue", "Tuesday"),
        ("mie", "miercoles", "miércoles", "Wed", "Wednesday"),
        ("jue", "jueves", "Thu", "Thursday"),
        ("vie", "viernes", "Fri", "Friday"),
        ("sab", "sabado", "sábado", "Sat", "Saturday"),
        ("dom", "domingo", "Sun", "Sunday"),
    ]


_PARSER_INFO = SpanishParserInfo(dayfirst=True)


def _numeric_date(match: re.Match) -> date:
    first, second, third = match.groups()
    if len(first) == 4:
        year, month, day = int(first), int(second), int(third)
    elif len(third) == 4:
        day, month, year = int(first), int(second), int(third)
    elif len(third) == 2:
        day, month, year = int(first), int(second), int(third)
        year += 2000 if year <= TWO_DIGIT_YEAR_PIVOT else 1900
    else:
        raise ValueError("unrecognised numeric layout")
    return date(year, month, day)


def parse_date(date_str: str) -> date:
    """Parse a statement date string into a date object.

    Supports:
    - Day-first numeric dates: "15/01/2024", "15-01-2024", "15.01.2024", "15/01/24"
    - ISO dates: "2024-01-15", "2024-01-15 00:00:00"
    - Spanish month names: "15 ene 2024", "3 de marzo de 2024"

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not str(date_str).strip():
        raise ValueError("Empty date string")

    text = str(date_str).strip()

    match = _NUMERIC_DATE.match(text)
    if match:
        try:
            return _numeric_date(match)
        except ValueError as e:
            raise ValueError(f"Could not parse date '{text}': {e}")

    # Without any digit dateutil would silently fill in today's date
    if not re.search(r"\d", text):
        raise ValueError(f"Could not parse date '{text}'")

    try:
        return date_parser.parse(text.lower(), parserinfo=_PARSER_INFO).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{text}': {e}")


def normalize_date(date_str: str) -> str:
    """Parse a statement date and return it as an ISO yyyy-mm-dd string."""
    return parse_date(date_str).isoformat()


def to_date(value) -> date:
    """Coerce a record value (date, datetime or text) to a date.

    Raises:
        ValueError: If the value is not a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(str(value))
