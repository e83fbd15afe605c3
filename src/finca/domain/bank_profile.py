"""Bank profile domain service.

A bank profile remembers how the columns of one spreadsheet layout map to
movement fields. Profiles are keyed by the header signature so a layout that
had to be mapped by hand once is recognised on every later import.
"""

import logging
from typing import Optional

from finca.database.base import Database
from finca.domain.entities import BankProfile as BankProfileEntity, HeaderDetection
from finca.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    duplicate_profile_signature,
    profile_not_found,
)
from finca.domain.header_detection import (
    HEADER_SCAN_ROWS,
    detect_header,
    find_mapped_header_row,
    guess_bank,
    header_signature,
    is_noise_row,
    resolve_columns,
    score_row,
    validate_column_map,
)

logger = logging.getLogger(__name__)


class BankProfileService:
    """Service for managing and matching bank profiles."""

    def __init__(self, db: Database):
        """Initialize bank profile service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_profile(
        self,
        signature: str,
        column_map: dict[str, str],
        name: Optional[str] = None,
        bank_name: Optional[str] = None,
    ) -> int:
        """Create a profile for a header signature.

        Args:
            signature: Header signature (see header_signature)
            column_map: Field name -> column header text
            name: Optional display name
            bank_name: Optional bank identity guess

        Returns:
            Profile ID

        Raises:
            ValidationError: If the mapping is incomplete
            ConflictError: If a profile already exists for the signature
        """
        validate_column_map(column_map)
        if self.db.get_bank_profile_by_signature(signature) is not None:
            raise ConflictError(duplicate_profile_signature(signature))

        if name is None:
            name = f"{bank_name or 'Perfil'} {signature[:6]}"
        profile_id = self.db.create_bank_profile(
            signature=signature, name=name, bank_name=bank_name, mappings=column_map
        )
        logger.info("Saved bank profile %d (%s) for signature %s", profile_id, name, signature)
        return profile_id

    def get_profile(self, profile_id: int) -> Optional[BankProfileEntity]:
        """Get profile by ID."""
        return self.db.get_bank_profile(profile_id)

    def get_profile_by_signature(self, signature: str) -> Optional[BankProfileEntity]:
        """Get profile by header signature."""
        return self.db.get_bank_profile_by_signature(signature)

    def list_profiles(self) -> list[BankProfileEntity]:
        """List profiles, most used first."""
        return self.db.list_bank_profiles()

    def delete_profile(self, profile_id: int) -> None:
        """Delete a profile.

        Raises:
            NotFoundError: If profile doesn't exist
        """
        if self.db.get_bank_profile(profile_id) is None:
            raise NotFoundError(profile_not_found(profile_id))
        self.db.delete_bank_profile(profile_id)

    def match(
        self, grid: list[list], filename: Optional[str] = None, record_usage: bool = True
    ) -> HeaderDetection:
        """Resolve the column layout of a statement grid.

        The synonym scorer runs first. Without a confident header row every
        structured row in the scan window is looked up by signature among the
        stored profiles. When nothing matches the returned detection has
        fallback_required=True.
        """
        detection = detect_header(grid, filename)
        if not detection.fallback_required:
            return detection

        for row_index, row in enumerate(grid[:HEADER_SCAN_ROWS]):
            if is_noise_row(row):
                continue
            signature = header_signature(row)
            profile = self.db.get_bank_profile_by_signature(signature)
            if profile is None:
                continue
            try:
                columns = resolve_columns(row, profile.column_map())
            except ValidationError as e:
                logger.warning("Profile %d matched signature but not columns: %s", profile.id, e)
                continue

            if record_usage:
                self.db.record_profile_usage(profile.id)
            logger.info("Using stored bank profile %d for header row %d", profile.id, row_index)
            return HeaderDetection(
                header_row=row_index,
                data_start_row=row_index + 1,
                columns=columns,
                confidence=1.0,
                fallback_required=False,
                signature=signature,
                source="profile",
                profile_id=profile.id,
                bank_name=profile.bank_name or guess_bank(grid[:row_index], filename),
            )

        return detection

    def apply_manual_mapping(
        self,
        grid: list[list],
        column_map: dict[str, str],
        header_row: Optional[int] = None,
        filename: Optional[str] = None,
    ) -> HeaderDetection:
        """Resolve a user supplied mapping against the grid.

        Nothing is written; call save_manual_mapping once the rows parse.

        Args:
            grid: Statement grid
            column_map: Field name -> column header text
            header_row: 0-based header row; found automatically when None
            filename: Source file name, used for the bank guess

        Returns:
            HeaderDetection with source "manual"

        Raises:
            ValidationError: If the mapping is incomplete or its columns are not found
        """
        validate_column_map(column_map)
        if header_row is None:
            header_row = find_mapped_header_row(grid, column_map)
            if header_row is None:
                raise ValidationError(
                    f"No row in the first {HEADER_SCAN_ROWS} rows contains the mapped columns: "
                    f"{', '.join(column_map.values())}"
                )
        if header_row < 0 or header_row >= len(grid):
            raise ValidationError(f"Header row {header_row} is outside the file")

        header_cells = grid[header_row]
        columns = resolve_columns(header_cells, column_map)
        signature = header_signature(header_cells)
        profile = self.db.get_bank_profile_by_signature(signature)

        return HeaderDetection(
            header_row=header_row,
            data_start_row=header_row + 1,
            columns=columns,
            confidence=1.0,
            fallback_required=False,
            signature=signature,
            source="manual",
            profile_id=profile.id if profile is not None else None,
            bank_name=guess_bank(grid[:header_row], filename),
        )

    def save_manual_mapping(
        self,
        detection: HeaderDetection,
        column_map: dict[str, str],
        name: Optional[str] = None,
    ) -> int:
        """Store a mapping that parsed successfully as the profile of its layout.

        An existing profile for the same signature takes the new mapping.

        Returns:
            Profile ID
        """
        profile = self.db.get_bank_profile_by_signature(detection.signature)
        if profile is None:
            return self.create_profile(
                detection.signature, column_map, name=name, bank_name=detection.bank_name
            )

        if profile.column_map() != column_map:
            validate_column_map(column_map)
            self.db.replace_profile_mappings(profile.id, column_map)
            logger.info("Replaced column mapping of bank profile %d", profile.id)
        self.db.record_profile_usage(profile.id)
        return profile.id

    def match_row(
        self,
        grid: list[list],
        header_row: int,
        filename: Optional[str] = None,
        record_usage: bool = True,
    ) -> HeaderDetection:
        """Resolve the columns of a header row chosen by the user.

        The row is scored against the synonym dictionary first and looked up
        among stored profiles second.
        """
        if header_row < 0 or header_row >= len(grid):
            raise ValidationError(f"Header row {header_row} is outside the file")

        row = grid[header_row]
        signature = header_signature(row)
        bank_name = guess_bank(grid[:header_row], filename)
        candidate = score_row(row, header_row)
        if candidate.is_confident:
            return HeaderDetection(
                header_row=header_row,
                data_start_row=header_row + 1,
                columns=dict(candidate.columns),
                confidence=candidate.confidence,
                fallback_required=False,
                signature=signature,
                source="synonyms",
                bank_name=bank_name,
            )

        profile = self.db.get_bank_profile_by_signature(signature)
        if profile is not None:
            columns = resolve_columns(row, profile.column_map())
            if record_usage:
                self.db.record_profile_usage(profile.id)
            return HeaderDetection(
                header_row=header_row,
                data_start_row=header_row + 1,
                columns=columns,
                confidence=1.0,
                fallback_required=False,
                signature=signature,
                source="profile",
                profile_id=profile.id,
                bank_name=profile.bank_name or bank_name,
            )

        return HeaderDetection(
            header_row=header_row,
            data_start_row=header_row + 1,
            columns={},
            confidence=candidate.confidence,
            fallback_required=True,
            signature=signature,
            bank_name=bank_name,
        )
