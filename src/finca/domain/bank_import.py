"""Bank statement import domain service."""

import csv
from dataclasses import replace
import io
from datetime import date, datetime
from decimal import Decimal
import logging
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook

from finca.database.base import Database
from finca.domain.account import AccountService
from finca.domain.bank_profile import BankProfileService
from finca.domain.duplicates import detect_duplicates, get_duplicate_stats
from finca.domain.entities import HeaderDetection
from finca.domain.errors import NotFoundError, ValidationError, account_not_found
from finca.domain.header_detection import cell_text
from finca.domain.movement_parser import parse_movements

logger = logging.getLogger(__name__)

CSV_DELIMITERS = ";,\t|"
CSV_ENCODINGS = ("utf-8-sig", "cp1252")
XLSX_SUFFIXES = {".xlsx", ".xlsm"}


def _render_cell(value: Any) -> str:
    """Render a spreadsheet cell the way Spanish bank exports print it."""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float, Decimal)):
        return f"{value:.2f}".replace(".", ",")
    return str(value).strip()


def read_csv_grid(path: Path) -> list[list[str]]:
    """Read a delimited text file into a grid of cell strings.

    The delimiter is sniffed among ; , tab and |. UTF-8 (with or without
    BOM) is tried first, then cp1252.
    """
    text = None
    for encoding in CSV_ENCODINGS:
        try:
            text = path.read_text(encoding=encoding)
            break
        except UnicodeDecodeError:
            logger.debug("%s is not %s encoded", path.name, encoding)
    if text is None:
        raise ValidationError(f"Cannot decode {path.name} as UTF-8 or cp1252")

    sample = text[:4096]
    try:
        delimiter = csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        # Sniffer gives up on single-column or very irregular files
        delimiter = max(CSV_DELIMITERS, key=sample.count)

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    return [[cell.strip() for cell in row] for row in reader]


def read_xlsx_grid(path: Path) -> list[list[str]]:
    """Read the first non-empty worksheet of a workbook into a grid."""
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        for sheet in workbook.worksheets:
            grid = [[_render_cell(v) for v in row] for row in sheet.iter_rows(values_only=True)]
            if any(any(cell for cell in row) for row in grid):
                return grid
        return []
    finally:
        workbook.close()


def read_grid(file_path: str | Path) -> list[list[str]]:
    """Read a statement file (CSV/TXT or XLSX) into a grid.

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the file cannot be decoded
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Statement file not found: {file_path}")
    if path.suffix.lower() in XLSX_SUFFIXES:
        return read_xlsx_grid(path)
    return read_csv_grid(path)


def _header_texts(grid: list[list[str]], detection: HeaderDetection) -> list[str]:
    if not grid:
        return []
    return [cell_text(c) for c in grid[detection.header_row] if cell_text(c)]


class BankImportService:
    """Service for importing bank statements into an account."""

    def __init__(self, db: Database):
        """Initialize bank import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.profile_service = BankProfileService(db)

    def _detect(
        self,
        grid: list[list[str]],
        filename: str,
        mapping: Optional[dict[str, str]],
        header_row: Optional[int],
        persist: bool,
    ) -> HeaderDetection:
        if mapping:
            return self.profile_service.apply_manual_mapping(
                grid, mapping, header_row=header_row, filename=filename
            )
        if header_row is not None:
            return self.profile_service.match_row(grid, header_row, filename, record_usage=persist)
        return self.profile_service.match(grid, filename, record_usage=persist)

    def _fallback_result(
        self, grid: list[list[str]], detection: HeaderDetection, warnings: list[str]
    ) -> dict:
        return {
            "imported": 0,
            "skipped": 0,
            "skipped_details": [],
            "warnings": warnings,
            "fallback_required": True,
            "profile_id": None,
            "bank_name": detection.bank_name,
            "stats": None,
            "signature": detection.signature,
            "header_row": detection.header_row,
            "columns": _header_texts(grid, detection),
        }

    def _preview_fallback(
        self, grid: list[list[str]], detection: HeaderDetection, warnings: list[str]
    ) -> dict:
        return {
            "detection": detection,
            "movements": [],
            "warnings": warnings,
            "stats": None,
            "fallback_required": True,
            "columns": _header_texts(grid, detection),
        }

    def preview(
        self,
        file_path: str,
        mapping: Optional[dict[str, str]] = None,
        header_row: Optional[int] = None,
    ) -> dict[str, Any]:
        """Detect, parse and flag duplicates without writing anything.

        Returns:
            Dict with detection, movements (annotated with hash and duplicate
            flag), warnings, stats and fallback_required
        """
        path = Path(file_path)
        grid = read_grid(path)
        if not grid:
            raise ValidationError(f"Statement file {path.name} is empty")

        detection = self._detect(grid, path.name, mapping, header_row, persist=False)
        if detection.fallback_required:
            return self._preview_fallback(grid, detection, [])

        parsed = parse_movements(grid, detection.data_start_row, detection.columns)
        if parsed.fallback_required:
            return self._preview_fallback(grid, detection, parsed.warnings)

        movements = detect_duplicates(parsed.movements)
        return {
            "detection": detection,
            "movements": movements,
            "warnings": parsed.warnings,
            "stats": get_duplicate_stats(movements),
            "fallback_required": False,
        }

    def import_file(
        self,
        file_path: str,
        account_id: int,
        mapping: Optional[dict[str, str]] = None,
        header_row: Optional[int] = None,
        keep_duplicates: bool = False,
        inbox_item_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """Import movements from a bank statement.

        Args:
            file_path: Path to CSV/TXT/XLSX statement
            account_id: Target account ID
            mapping: Optional manual mapping (field -> column header); saved
                as a bank profile keyed by the header signature
            header_row: Optional 0-based header row index
            keep_duplicates: Persist in-file duplicates and movements whose
                hash the account already holds
            inbox_item_id: Inbox item the statement came from, if any

        Returns:
            Dict with import statistics:
            - imported: number of movements stored
            - skipped: number of movements skipped as duplicates
            - skipped_details: row, reason, date, amount, description per skip
            - warnings: rows that could not be parsed
            - fallback_required: True when the columns could not be resolved
            - profile_id: bank profile used, if any
            - bank_name: guessed bank
            - stats: DuplicateStats of the parsed movements

        Raises:
            NotFoundError: If account doesn't exist
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file is empty or the mapping is invalid
        """
        if self.account_service.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        path = Path(file_path)
        grid = read_grid(path)
        if not grid:
            raise ValidationError(f"Statement file {path.name} is empty")

        detection = self._detect(grid, path.name, mapping, header_row, persist=True)
        if detection.fallback_required:
            logger.info("Import of %s needs a manual column mapping", path.name)
            return self._fallback_result(grid, detection, [])

        parsed = parse_movements(grid, detection.data_start_row, detection.columns)
        if parsed.fallback_required:
            return self._fallback_result(grid, detection, parsed.warnings)

        if mapping:
            detection = replace(
                detection, profile_id=self.profile_service.save_manual_mapping(detection, mapping)
            )

        movements = detect_duplicates(parsed.movements)
        stats = get_duplicate_stats(movements)

        imported = 0
        skipped_details = []
        for movement in movements:
            reason = None
            if not keep_duplicates:
                if movement.is_duplicate:
                    reason = "duplicate in file"
                elif self.db.movement_hash_exists(account_id, movement.duplicate_hash):
                    reason = "already imported"
            if reason is not None:
                skipped_details.append(
                    {
                        "row": movement.original_row,
                        "reason": reason,
                        "date": movement.date.isoformat(),
                        "amount": f"{movement.amount:.2f}",
                        "description": movement.description,
                    }
                )
                continue

            self.db.create_movement(
                account_id=account_id,
                date=movement.date,
                amount=movement.amount,
                description=movement.description,
                duplicate_hash=movement.duplicate_hash,
                value_date=movement.value_date,
                balance=movement.balance,
                reference=movement.reference,
                source_file=path.name,
                source_row=movement.original_row,
                inbox_item_id=inbox_item_id,
            )
            imported += 1

        logger.info(
            "Imported %d movements from %s into account %d (%d skipped)",
            imported,
            path.name,
            account_id,
            len(skipped_details),
        )
        return {
            "imported": imported,
            "skipped": len(skipped_details),
            "skipped_details": skipped_details,
            "warnings": parsed.warnings,
            "fallback_required": False,
            "profile_id": detection.profile_id,
            "bank_name": detection.bank_name,
            "stats": stats,
        }
