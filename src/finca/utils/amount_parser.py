"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

_DEBIT_MARK = re.compile(r"\bDR\b", re.IGNORECASE)
_CREDIT_MARK = re.compile(r"\bCR\b", re.IGNORECASE)
_CURRENCY = re.compile(r"EUR|[€$£¥]", re.IGNORECASE)
_DIGITS_AND_SEPARATORS = re.compile(r"[\d.,]+")


def _split_single_separator(number: str, separator: str) -> tuple[str, str]:
    """Split a number that only uses one kind of separator.

    A separator followed by groups of exactly three digits is a thousands
    separator ("1.234", "1.234.567") unless the leading group is zero
    ("0,123"); a single separator followed by any other digit count is the
    decimal mark ("34,56", "1234.5").
    """
    groups = number.split(separator)
    head, tail = groups[0], groups[1:]
    if head and not head.startswith("0") and len(head) <= 3 and all(len(g) == 3 for g in tail):
        return "".join(groups), ""
    if len(groups) == 2:
        return head, tail[0]
    raise ValueError(f"Ambiguous separators in amount '{number}'")


def parse_amount(amount_str: str) -> Decimal:
    """Parse a locale-formatted amount string into a Decimal.

    Spanish bank formats come first, but English ones are accepted too:
    - "34,56", "1.234,56", "1 234,56"
    - "1,234.56", "1234.56"
    - "-1.234,00", "1.234,00-", "(1.234,56)", "+12,00"
    - "12,00 €", "EUR 12,00", "12,00 DR" (debit), "12,00 CR" (credit)

    When both separators are present the rightmost one is the decimal mark
    and the other is stripped as a thousands separator.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    original = str(amount_str)
    text = original

    is_negative = False
    if _DEBIT_MARK.search(text):
        is_negative = True
        text = _DEBIT_MARK.sub("", text)
    elif _CREDIT_MARK.search(text):
        text = _CREDIT_MARK.sub("", text)

    # Remove whitespace (including non-breaking and thin spaces) and currency
    text = re.sub(r"\s", "", text)
    text = _CURRENCY.sub("", text)

    if text.startswith("+"):
        text = text[1:]
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]
    if text.startswith("-"):
        is_negative = True
        text = text[1:]
    elif text.endswith("-"):
        is_negative = True
        text = text[:-1]

    if not text or not _DIGITS_AND_SEPARATORS.fullmatch(text):
        raise ValueError(f"Could not parse amount '{original}'")

    last_dot = text.rfind(".")
    last_comma = text.rfind(",")

    if last_dot >= 0 and last_comma >= 0:
        decimal_index = max(last_dot, last_comma)
        integer_part = re.sub(r"[.,]", "", text[:decimal_index])
        decimal_part = text[decimal_index + 1:]
    elif last_comma >= 0:
        integer_part, decimal_part = _split_single_separator(text, ",")
    elif last_dot >= 0:
        integer_part, decimal_part = _split_single_separator(text, ".")
    else:
        integer_part, decimal_part = text, ""

    if not integer_part.isdigit() or (decimal_part and not decimal_part.isdigit()):
        raise ValueError(f"Could not parse amount '{original}'")

    try:
        amount = Decimal(f"{integer_part}.{decimal_part}" if decimal_part else integer_part)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{original}': {e}")

    return -amount if is_negative else amount


def to_decimal(value) -> Decimal:
    """Coerce a record value (Decimal, int, float or text) to Decimal.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        return parse_amount(str(value))
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    return amount
