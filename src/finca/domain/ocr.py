"""OCR results and normalization of OCR entity responses.

The OCR endpoint answers with JSON holding entities, a global confidence and
the raw text. Entities look like::

    {"type": "total_amount", "mentionText": "49,10 EUR",
     "normalizedValue": {"moneyValue": {"units": "49", "nanos": 100000000}},
     "confidence": 0.97}

fields_from_entities turns them into the metadata keys the classifier and
router read. Values are kept JSON serializable: amounts as "49.10", dates as
ISO strings.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from finca.domain.entities import InboxItem
from finca.domain.errors import ValidationError
from finca.utils.amount_parser import to_decimal
from finca.utils.date_parser import normalize_date

logger = logging.getLogger(__name__)

# Entity type -> metadata key
ENTITY_FIELDS = {
    "supplier_name": "provider",
    "supplier": "provider",
    "provider": "provider",
    "total_amount": "amount",
    "amount": "amount",
    "net_amount": "base_amount",
    "subtotal": "base_amount",
    "total_tax_amount": "vat_amount",
    "vat": "vat_amount",
    "tax_amount": "vat_amount",
    "invoice_date": "date",
    "receipt_date": "date",
    "date": "date",
    "invoice_id": "invoice_number",
    "invoice_number": "invoice_number",
    "supplier_iban": "detected_account",
    "account_number": "detected_account",
    "iban": "detected_account",
    "document_type": "tipo",
    "description": "description",
}

AMOUNT_FIELDS = {"amount", "base_amount", "vat_amount"}
DATE_FIELDS = {"date"}


@dataclass(frozen=True)
class OcrResult:
    """What an OCR extractor returns for one document."""

    fields: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    text: str = ""


# An extractor receives the inbox item and returns its OCR result
Extractor = Callable[[InboxItem], OcrResult]


def _money_value(normalized: Any) -> Optional[Decimal]:
    if not isinstance(normalized, dict):
        return None
    money = normalized.get("moneyValue")
    if isinstance(money, dict):
        units = Decimal(str(money.get("units", 0)))
        nanos = Decimal(money.get("nanos", 0)) / Decimal(10**9)
        return units + nanos
    if normalized.get("text"):
        return to_decimal(normalized["text"])
    return None


def _date_value(normalized: Any) -> Optional[str]:
    if not isinstance(normalized, dict):
        return None
    value = normalized.get("dateValue")
    if isinstance(value, dict) and value.get("year"):
        try:
            return date(
                int(value["year"]), int(value.get("month") or 1), int(value.get("day") or 1)
            ).isoformat()
        except (TypeError, ValueError) as e:
            logger.debug("Ignoring dateValue %r: %s", value, e)
    if normalized.get("text"):
        return normalize_date(normalized["text"])
    return None


def _entity_value(key: str, entity: dict[str, Any]) -> Any:
    text = (entity.get("mentionText") or "").strip()
    normalized = entity.get("normalizedValue")
    if key in AMOUNT_FIELDS:
        amount = _money_value(normalized)
        if amount is None:
            amount = to_decimal(text)
        return f"{amount:.2f}"
    if key in DATE_FIELDS:
        return _date_value(normalized) or normalize_date(text)
    if key == "detected_account":
        return text.replace(" ", "").upper()
    return text


def fields_from_entities(entities: list[dict[str, Any]]) -> dict[str, Any]:
    """Normalize OCR entities into metadata fields.

    When several entities map to the same field the most confident one wins.
    Entities whose value cannot be normalized are dropped with a log line.
    """
    fields: dict[str, Any] = {}
    confidences: dict[str, float] = {}
    for entity in entities:
        key = ENTITY_FIELDS.get(str(entity.get("type", "")).lower())
        if key is None:
            continue
        confidence = float(entity.get("confidence") or 0.0)
        if key in confidences and confidences[key] >= confidence:
            continue
        try:
            value = _entity_value(key, entity)
        except ValueError as e:
            logger.info("Dropping OCR entity %s: %s", entity.get("type"), e)
            continue
        if value in (None, ""):
            continue
        fields[key] = value
        confidences[key] = confidence
    return fields


def load_ocr_response(data: dict[str, Any] | str) -> OcrResult:
    """Build an OcrResult from an OCR endpoint response (dict or JSON text).

    Without a global confidence the mean entity confidence is used.

    Raises:
        ValidationError: If the response is not a JSON object
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValidationError(f"OCR response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("OCR response must be a JSON object")

    entities = data.get("entities") or []
    confidence = data.get("confidence")
    if confidence is None:
        scores = [float(e.get("confidence") or 0.0) for e in entities]
        confidence = sum(scores) / len(scores) if scores else 0.0

    return OcrResult(
        fields=fields_from_entities(entities),
        confidence=float(confidence),
        text=data.get("text") or "",
    )


def json_file_extractor(response_path: str | Path) -> Extractor:
    """Extractor that reads a saved OCR response from disk."""

    def extract(item: InboxItem) -> OcrResult:
        logger.debug("Reading OCR response for inbox item %d from %s", item.id, response_path)
        return load_ocr_response(Path(response_path).read_text(encoding="utf-8"))

    return extract
