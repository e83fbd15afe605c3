"""Tests for OCR response normalization."""

import json

import pytest

from finca.domain.errors import ValidationError
from finca.domain.ocr import fields_from_entities, json_file_extractor, load_ocr_response


def test_fields_from_invoice_response(fixtures_dir):
    data = json.loads((fixtures_dir / "ocr_invoice.json").read_text(encoding="utf-8"))
    fields = fields_from_entities(data["entities"])

    assert fields == {
        "provider": "IBERDROLA CLIENTES S.A.U.",
        "invoice_number": "FE24-0001",
        "date": "2024-01-15",
        "base_amount": "40.58",
        "vat_amount": "8.52",
        "amount": "49.10",
    }


def test_most_confident_entity_wins():
    entities = [
        {"type": "total_amount", "mentionText": "10,00", "confidence": 0.4},
        {"type": "total_amount", "mentionText": "12,50", "confidence": 0.9},
        {"type": "amount", "mentionText": "11,00", "confidence": 0.5},
    ]
    assert fields_from_entities(entities) == {"amount": "12.50"}


def test_unparseable_entities_are_dropped():
    entities = [
        {"type": "invoice_date", "mentionText": "sin fecha", "confidence": 0.9},
        {"type": "total_amount", "mentionText": "???", "confidence": 0.9},
        {"type": "unknown_thing", "mentionText": "x", "confidence": 0.9},
        {"type": "supplier_iban", "mentionText": "es12 0049 0001 5025 1234 5678", "confidence": 0.9},
    ]
    assert fields_from_entities(entities) == {"detected_account": "ES1200490001502512345678"}


def date_entity(date_value, mention_text):
    return {
        "type": "invoice_date",
        "mentionText": mention_text,
        "normalizedValue": {"dateValue": date_value},
        "confidence": 0.9,
    }


def test_date_value_parts_as_text():
    entity = date_entity({"year": "2024", "month": "1", "day": "15"}, "15 ene 2024")
    assert fields_from_entities([entity]) == {"date": "2024-01-15"}


def test_bad_date_value_falls_back_to_mention_text():
    entity = date_entity({"year": "2024", "month": "febrero"}, "28/02/2024")
    assert fields_from_entities([entity]) == {"date": "2024-02-28"}


def test_load_response_confidence():
    result = load_ocr_response({"entities": [{"type": "provider", "mentionText": "Mapfre", "confidence": 0.6}]})
    assert result.confidence == pytest.approx(0.6)
    assert result.fields == {"provider": "Mapfre"}
    assert load_ocr_response("{}").confidence == 0.0


def test_load_response_rejects_bad_json():
    with pytest.raises(ValidationError, match="not valid JSON"):
        load_ocr_response("{not json")
    with pytest.raises(ValidationError, match="JSON object"):
        load_ocr_response("[1, 2]")


def test_json_file_extractor(fixtures_dir):
    extract = json_file_extractor(fixtures_dir / "ocr_invoice.json")

    class Item:
        id = 1

    result = extract(Item())
    assert result.confidence == pytest.approx(0.93)
    assert result.fields["amount"] == "49.10"
    assert "IBERDROLA" in result.text
