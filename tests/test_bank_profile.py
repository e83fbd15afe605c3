"""Tests for bank profile service."""

import pytest

from finca.domain.errors import ConflictError, NotFoundError, ValidationError
from finca.domain.header_detection import header_signature

UNKNOWN_GRID = [
    ["Informe de moviments", "", ""],
    ["Data", "Descripció", "Quantitat"],
    ["03/02/2024", "Lloguer pis", "900,00"],
    ["04/02/2024", "Supermercat", "-35,20"],
]
MAPPING = {"date": "Data", "description": "Descripció", "amount": "Quantitat"}


def test_create_and_get_profile(profile_service):
    signature = header_signature(UNKNOWN_GRID[1])
    profile_id = profile_service.create_profile(signature, MAPPING, bank_name="Caixa Enginyers")

    profile = profile_service.get_profile(profile_id)
    assert profile.signature == signature
    assert profile.name == f"Caixa Enginyers {signature[:6]}"
    assert profile.column_map() == MAPPING
    assert profile.usage_count == 0
    assert profile_service.get_profile_by_signature(signature).id == profile_id


def test_create_profile_duplicate_signature(profile_service):
    profile_service.create_profile("abc123", MAPPING)
    with pytest.raises(ConflictError):
        profile_service.create_profile("abc123", MAPPING)


def test_create_profile_invalid_mapping(profile_service):
    with pytest.raises(ValidationError):
        profile_service.create_profile("abc123", {"description": "Concepto"})


def test_delete_profile(profile_service):
    profile_id = profile_service.create_profile("abc123", MAPPING)
    profile_service.delete_profile(profile_id)
    assert profile_service.get_profile(profile_id) is None
    with pytest.raises(NotFoundError):
        profile_service.delete_profile(profile_id)


def test_manual_mapping_resolves_without_writing(profile_service):
    detection = profile_service.apply_manual_mapping(UNKNOWN_GRID, MAPPING, filename="moviments.csv")

    assert detection.source == "manual"
    assert detection.header_row == 1
    assert detection.data_start_row == 2
    assert detection.columns == {"date": 0, "description": 1, "amount": 2}
    assert detection.profile_id is None
    assert profile_service.list_profiles() == []


def test_save_manual_mapping_creates_profile(profile_service):
    detection = profile_service.apply_manual_mapping(UNKNOWN_GRID, MAPPING)
    profile_id = profile_service.save_manual_mapping(detection, MAPPING)

    profile = profile_service.get_profile_by_signature(detection.signature)
    assert profile.id == profile_id
    assert profile.column_map() == MAPPING
    assert profile_service.apply_manual_mapping(UNKNOWN_GRID, MAPPING).profile_id == profile_id


def test_save_manual_mapping_replaces_stale_mapping(profile_service):
    """A new mapping for a known layout overwrites the stored one."""
    stale = {"date": "Data", "amount": "Descripció"}
    detection = profile_service.apply_manual_mapping(UNKNOWN_GRID, stale)
    profile_id = profile_service.save_manual_mapping(detection, stale)

    detection = profile_service.apply_manual_mapping(UNKNOWN_GRID, MAPPING)
    assert profile_service.save_manual_mapping(detection, MAPPING) == profile_id

    profile = profile_service.get_profile(profile_id)
    assert profile.column_map() == MAPPING
    assert profile.usage_count == 1
    assert len(profile_service.list_profiles()) == 1


def test_manual_mapping_columns_not_found(profile_service):
    with pytest.raises(ValidationError, match="No row in the first 20 rows"):
        profile_service.apply_manual_mapping(UNKNOWN_GRID, {"date": "Fecha", "amount": "Importe"})
    with pytest.raises(ValidationError, match="outside the file"):
        profile_service.apply_manual_mapping(UNKNOWN_GRID, MAPPING, header_row=10)


def test_match_uses_stored_profile_and_records_usage(profile_service):
    """A layout mapped once is recognised by its header signature."""
    profile_id = profile_service.save_manual_mapping(
        profile_service.apply_manual_mapping(UNKNOWN_GRID, MAPPING), MAPPING
    )

    detection = profile_service.match(UNKNOWN_GRID)
    assert detection.fallback_required is False
    assert detection.source == "profile"
    assert detection.profile_id == profile_id
    assert detection.header_row == 1
    assert detection.columns == {"date": 0, "description": 1, "amount": 2}
    assert profile_service.get_profile(profile_id).usage_count == 1


def test_match_without_profile_requires_fallback(profile_service):
    detection = profile_service.match(UNKNOWN_GRID)
    assert detection.fallback_required is True
    assert detection.source is None


def test_match_prefers_synonyms(profile_service):
    grid = [["Fecha", "Concepto", "Importe"], ["01/01/2024", "Compra", "-1,00"]]
    profile_service.create_profile(header_signature(grid[0]), {"date": "Fecha", "amount": "Importe"})

    detection = profile_service.match(grid)
    assert detection.source == "synonyms"
    assert detection.profile_id is None


def test_match_row_with_profile(profile_service):
    profile_service.create_profile(header_signature(UNKNOWN_GRID[1]), MAPPING)

    detection = profile_service.match_row(UNKNOWN_GRID, 1, record_usage=False)
    assert detection.source == "profile"
    assert detection.columns["amount"] == 2

    unknown = profile_service.match_row(UNKNOWN_GRID, 0)
    assert unknown.fallback_required is True
    with pytest.raises(ValidationError):
        profile_service.match_row(UNKNOWN_GRID, 9)
