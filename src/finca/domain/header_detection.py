"""Header row detection for bank statement grids.

Statements exported by Spanish banks rarely start with the header row: logos,
account holder details and period summaries come first. Every row in the
first HEADER_SCAN_ROWS rows is scored against a synonym dictionary and the
best confident candidate wins. When no row is confident the caller falls back
to stored bank profiles (finca.domain.bank_profile) and then to a manual
mapping.
"""

from dataclasses import dataclass
import hashlib
import logging
import re
from typing import Optional

from finca.domain.entities import HeaderDetection
from finca.domain.errors import ValidationError
from finca.utils.text import normalize_text

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 20
MIN_HEADER_MATCHES = 3
# Confidence reaches 1.0 at this many recognised columns
FULL_CONFIDENCE_MATCHES = 6
LOGO_CELL_RATIO = 0.4

MOVEMENT_FIELDS = (
    "date",
    "value_date",
    "description",
    "amount",
    "debit",
    "credit",
    "balance",
    "reference",
    "currency",
)

# Order matters: more specific fields first so "fecha valor" is never read as "fecha"
COLUMN_ALIASES: dict[str, list[str]] = {
    "value_date": ["fecha valor", "f valor", "f. valor", "fecha de valor", "value date"],
    "date": [
        "fecha",
        "fecha operacion",
        "fecha operación",
        "f operacion",
        "f. operación",
        "fecha de operacion",
        "fecha mov",
        "fecha movimiento",
        "fecha contable",
        "date",
        "completed date",
    ],
    "amount": [
        "importe",
        "importe (€)",
        "importe eur",
        "cantidad",
        "monto",
        "euros",
        "movimiento",
        "amount",
    ],
    "debit": ["cargo", "cargos", "debito", "débito", "debe", "debit", "paid out"],
    "credit": ["abono", "abonos", "credito", "crédito", "haber", "credit", "paid in"],
    "description": [
        "concepto",
        "descripcion",
        "descripción",
        "detalle",
        "descripcion ampliada",
        "detalle operacion",
        "concepto operacion",
        "observaciones",
        "motivo",
        "description",
    ],
    "balance": ["saldo", "saldo disponible", "saldo tras", "saldo final", "saldo resultante", "balance"],
    "reference": ["referencia", "ref", "numero operacion", "num operacion", "id operacion", "reference"],
    "currency": ["divisa", "moneda", "currency"],
}

_NORMALIZED_ALIASES = {
    field_name: {normalize_text(alias) for alias in aliases}
    for field_name, aliases in COLUMN_ALIASES.items()
}

KNOWN_BANKS = {
    "santander": "Banco Santander",
    "bbva": "BBVA",
    "caixabank": "CaixaBank",
    "la caixa": "CaixaBank",
    "sabadell": "Banco Sabadell",
    "bankinter": "Bankinter",
    "ing": "ING",
    "unicaja": "Unicaja",
    "kutxabank": "Kutxabank",
    "abanca": "Abanca",
    "ibercaja": "Ibercaja",
    "openbank": "Openbank",
    "revolut": "Revolut",
    "cajamar": "Cajamar",
    "evo banco": "EVO Banco",
}

_LOGO_PATTERNS = [
    re.compile(r"^data:image", re.IGNORECASE),
    re.compile(r"\.(png|jpe?g|gif|svg)$", re.IGNORECASE),
    re.compile(r"^[A-Za-z0-9+/]{50,}={0,2}$"),
    re.compile(r"^\[(imagen|logo|image)\]", re.IGNORECASE),
]


@dataclass(frozen=True)
class HeaderCandidate:
    """A scored row that might be the header row."""

    row_index: int
    columns: dict[str, int]
    matches: int
    confidence: float

    @property
    def is_confident(self) -> bool:
        has_date = "date" in self.columns or "value_date" in self.columns
        has_amount = "amount" in self.columns or (
            "debit" in self.columns and "credit" in self.columns
        )
        return self.matches >= MIN_HEADER_MATCHES and has_date and has_amount


def cell_text(cell) -> str:
    """Render a grid cell as stripped text."""
    if cell is None:
        return ""
    return str(cell).strip()


def is_blank_row(row: list) -> bool:
    """True when every cell of the row is empty."""
    return not any(cell_text(c) for c in row)


def is_noise_row(row: list) -> bool:
    """True for rows that cannot be a header: blank, single free-text cells, logos."""
    filled = [cell_text(c) for c in row if cell_text(c)]
    if len(filled) < 2:
        return True

    suspicious = 0
    for text in filled:
        if len(text) > 50 and " " not in text:
            suspicious += 1
        elif any(p.search(text) for p in _LOGO_PATTERNS):
            suspicious += 1
    return suspicious / len(filled) > LOGO_CELL_RATIO


def match_column(text: str) -> Optional[str]:
    """Return the movement field a header cell stands for, if any."""
    normalized = normalize_text(text)
    if not normalized:
        return None
    for field_name, aliases in _NORMALIZED_ALIASES.items():
        if normalized in aliases:
            return field_name
    return None


def score_row(row: list, row_index: int) -> HeaderCandidate:
    """Score one row against the synonym dictionary."""
    columns: dict[str, int] = {}
    for col_index, cell in enumerate(row):
        field_name = match_column(cell_text(cell))
        if field_name is not None and field_name not in columns:
            columns[field_name] = col_index
    matches = len(columns)
    return HeaderCandidate(
        row_index=row_index,
        columns=columns,
        matches=matches,
        confidence=min(matches / FULL_CONFIDENCE_MATCHES, 1.0),
    )


def rank_candidates(grid: list[list], scan_rows: int = HEADER_SCAN_ROWS) -> list[HeaderCandidate]:
    """Score every plausible row in the scan window, best first.

    Ties keep the earliest row first.
    """
    candidates = []
    for row_index, row in enumerate(grid[:scan_rows]):
        if is_noise_row(row):
            continue
        candidate = score_row(row, row_index)
        if candidate.matches:
            candidates.append(candidate)
    return sorted(candidates, key=lambda c: (-c.confidence, c.row_index))


def header_signature(cells: list) -> str:
    """Hash the set of normalized header texts of a row.

    Column order and cosmetic differences (case, accents, punctuation) do not
    change the signature.
    """
    texts = sorted({normalize_text(cell_text(c)) for c in cells} - {""})
    return hashlib.sha256("|".join(texts).encode("utf-8")).hexdigest()[:16]


def guess_bank(rows: list[list], filename: Optional[str] = None) -> Optional[str]:
    """Guess the issuing bank from free-text rows and the file name."""
    haystack = " ".join(normalize_text(cell_text(c)) for row in rows for c in row)
    if filename:
        haystack = f"{normalize_text(filename)} {haystack}"
    padded = f" {haystack} "
    for keyword, bank_name in KNOWN_BANKS.items():
        if f" {keyword} " in padded:
            return bank_name
    return None


def detect_header(
    grid: list[list], filename: Optional[str] = None, scan_rows: int = HEADER_SCAN_ROWS
) -> HeaderDetection:
    """Locate the header row with the synonym scorer.

    Returns a detection with fallback_required=True when no candidate is
    confident; its signature is computed from the best guess row so the
    caller can look up or store a profile.
    """
    candidates = rank_candidates(grid, scan_rows)
    confident = [c for c in candidates if c.is_confident]

    if confident:
        best = confident[0]
        logger.debug(
            "Header detected at row %d with %d columns (confidence %.2f)",
            best.row_index,
            best.matches,
            best.confidence,
        )
        return HeaderDetection(
            header_row=best.row_index,
            data_start_row=best.row_index + 1,
            columns=dict(best.columns),
            confidence=best.confidence,
            fallback_required=False,
            signature=header_signature(grid[best.row_index]),
            source="synonyms",
            bank_name=guess_bank(grid[: best.row_index], filename),
        )

    guess_row = candidates[0].row_index if candidates else first_structured_row(grid, scan_rows)
    logger.info("No confident header row found; manual mapping or stored profile required")
    return HeaderDetection(
        header_row=guess_row,
        data_start_row=guess_row + 1,
        columns={},
        confidence=candidates[0].confidence if candidates else 0.0,
        fallback_required=True,
        signature=header_signature(grid[guess_row]) if grid else None,
        source=None,
        bank_name=guess_bank(grid[:guess_row], filename),
    )


def first_structured_row(grid: list[list], scan_rows: int = HEADER_SCAN_ROWS) -> int:
    """Index of the first row with at least two filled cells, or 0."""
    for row_index, row in enumerate(grid[:scan_rows]):
        if not is_noise_row(row):
            return row_index
    return 0


def resolve_columns(header_cells: list, column_map: dict[str, str]) -> dict[str, int]:
    """Turn a field -> header text mapping into field -> column index.

    Header texts are compared after normalization.

    Raises:
        ValidationError: If a mapped header is not present in the row
    """
    positions = {}
    for col_index, cell in enumerate(header_cells):
        normalized = normalize_text(cell_text(cell))
        if normalized and normalized not in positions:
            positions[normalized] = col_index

    columns = {}
    missing = []
    for field_name, column_name in column_map.items():
        col_index = positions.get(normalize_text(column_name))
        if col_index is None:
            missing.append(column_name)
        else:
            columns[field_name] = col_index
    if missing:
        raise ValidationError(f"Header row is missing mapped columns: {', '.join(missing)}")
    return columns


def find_mapped_header_row(
    grid: list[list], column_map: dict[str, str], scan_rows: int = HEADER_SCAN_ROWS
) -> Optional[int]:
    """First row in the scan window containing every mapped header text."""
    wanted = {normalize_text(name) for name in column_map.values()}
    for row_index, row in enumerate(grid[:scan_rows]):
        present = {normalize_text(cell_text(c)) for c in row}
        if wanted <= present:
            return row_index
    return None


def validate_column_map(column_map: dict[str, str]) -> None:
    """Check that a manual mapping names known fields and can produce movements.

    Raises:
        ValidationError: If a field is unknown or date/amount are not covered
    """
    unknown = set(column_map) - set(MOVEMENT_FIELDS)
    if unknown:
        raise ValidationError(
            f"Invalid field name(s) {', '.join(sorted(unknown))}. "
            f"Must be one of: {', '.join(MOVEMENT_FIELDS)}"
        )
    if "date" not in column_map:
        raise ValidationError("Mapping must include a 'date' column")
    if "amount" not in column_map and not {"debit", "credit"} <= set(column_map):
        raise ValidationError("Mapping must include 'amount' or both 'debit' and 'credit'")
    if "amount" in column_map and ({"debit", "credit"} & set(column_map)):
        raise ValidationError("Cannot map 'amount' together with 'debit'/'credit' columns")
