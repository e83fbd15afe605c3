"""Conversion of statement rows into ParsedMovement records."""

from dataclasses import dataclass, field
from decimal import Decimal
import logging
import re
from typing import Optional

from finca.domain.entities import ParsedMovement
from finca.domain.header_detection import cell_text, is_blank_row
from finca.utils.amount_parser import parse_amount
from finca.utils.date_parser import parse_date
from finca.utils.text import normalize_text

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Sin descripción"

# Summary lines banks interleave with movements
_JUNK_PATTERNS = [
    re.compile(r"\b(total|totales|suma|subtotal)\b"),
    re.compile(r"\bsaldo (inicial|final|anterior|actual)\b"),
    re.compile(r"\b(pagina|page|hoja)\b"),
    re.compile(r"\b(continua|continuacion|resumen|summary)\b"),
]


@dataclass
class MovementParseResult:
    """Outcome of parsing the data region of a statement."""

    movements: list[ParsedMovement] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_rows: int = 0
    fallback_required: bool = False


def is_junk_row(row: list) -> bool:
    """True for total/balance/page lines that are not movements."""
    text = normalize_text(" ".join(cell_text(c) for c in row))
    return any(p.search(text) for p in _JUNK_PATTERNS)


def _cell(row: list, index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return cell_text(row[index])


def _parse_optional_amount(text: str) -> Optional[Decimal]:
    if not text:
        return None
    try:
        return parse_amount(text)
    except ValueError:
        return None


def parse_row(row: list, columns: dict[str, int], row_number: Optional[int] = None) -> ParsedMovement:
    """Parse a single data row.

    Args:
        row: Row cells
        columns: Field name -> column index
        row_number: 1-based row number recorded as original_row

    Returns:
        ParsedMovement

    Raises:
        ValueError: If the date or amount cannot be normalized
    """
    date_col = columns.get("date", columns.get("value_date"))
    date_str = _cell(row, date_col)
    if not date_str:
        raise ValueError("Missing date")
    movement_date = parse_date(date_str)

    if "amount" in columns:
        amount_str = _cell(row, columns["amount"])
        if not amount_str:
            raise ValueError("Missing amount")
        amount = parse_amount(amount_str)
    elif "debit" in columns and "credit" in columns:
        debit_str = _cell(row, columns["debit"])
        credit_str = _cell(row, columns["credit"])
        if not debit_str and not credit_str:
            raise ValueError("Missing both debit and credit values")
        debit = parse_amount(debit_str) if debit_str else Decimal("0")
        credit = parse_amount(credit_str) if credit_str else Decimal("0")
        # Banks print debits either as positive or negative numbers
        amount = credit - abs(debit)
    else:
        raise ValueError("No amount column mapped")

    value_date = None
    value_date_str = _cell(row, columns.get("value_date"))
    if value_date_str and "date" in columns:
        try:
            value_date = parse_date(value_date_str)
        except ValueError:
            value_date = None

    return ParsedMovement(
        date=movement_date,
        amount=amount,
        description=_cell(row, columns.get("description")) or DEFAULT_DESCRIPTION,
        original_row=row_number,
        value_date=value_date or movement_date,
        balance=_parse_optional_amount(_cell(row, columns.get("balance"))),
        reference=_cell(row, columns.get("reference")) or None,
    )


def parse_movements(grid: list[list], start_row: int, columns: dict[str, int]) -> MovementParseResult:
    """Parse every data row from start_row onwards, in file order.

    Blank rows are ignored (they never end the data region). Junk rows whose
    date does not parse are skipped silently; other failing rows are skipped
    with a warning. When more than half of the candidate rows fail, the whole
    parse is rejected and fallback_required is set.
    """
    result = MovementParseResult()
    candidates = 0

    for row_index in range(start_row, len(grid)):
        row = grid[row_index]
        if is_blank_row(row):
            continue

        row_number = row_index + 1
        try:
            movement = parse_row(row, columns, row_number)
        except ValueError as e:
            if is_junk_row(row):
                continue
            candidates += 1
            result.failed_rows += 1
            message = f"Row {row_number}: {e}"
            logger.warning("Skipping statement row: %s", message)
            result.warnings.append(message)
            continue

        candidates += 1
        result.movements.append(movement)

    if candidates and result.failed_rows * 2 > candidates:
        logger.warning(
            "%d of %d rows failed to parse; rejecting column mapping",
            result.failed_rows,
            candidates,
        )
        result.movements = []
        result.fallback_required = True

    return result
