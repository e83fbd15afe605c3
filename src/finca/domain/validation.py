"""Business-rule validation of treasury records.

Records are plain mappings, as read from JSON or built by the router, so
every field may be missing or still be text. Errors block persistence;
warnings are shown to the user but do not.

Ingreso (income) keys: counterparty, issue_date, expected_collection_date,
amount, origin, origin_id, destination, destination_id.

Gasto (expense) keys: provider, issue_date, expected_payment_date, total,
base, iva, aeat_category, destination, destination_id.

CAPEX keys: property_id, provider, issue_date, total, type,
amortization_years.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional

from finca.domain.entities import ValidationResult
from finca.utils.amount_parser import to_decimal
from finca.utils.date_parser import to_date

# Rounding allowance when checking base + IVA against the total
BASE_IVA_TOLERANCE = Decimal("0.02")

INGRESO_HIGH_AMOUNT = Decimal("100000")
GASTO_HIGH_AMOUNT = Decimal("50000")
CAPEX_HIGH_AMOUNT = Decimal("200000")
CAPEX_LOW_AMOUNT = Decimal("100")

DATE_WINDOW = timedelta(days=365)

# Origins that must reference the record they came from
LINKED_ORIGINS = {
    "contract": "contract",
    "payroll": "payroll",
    "document": "document",
}

CAPEX_ONLY_CATEGORIES = {
    "capex-mejora-ampliacion": "This AEAT category is meant for CAPEX, not regular expenses",
    "amortizacion-muebles": "This AEAT category is meant for furniture CAPEX, not regular expenses",
}

# CAPEX type -> (min years, max years)
AMORTIZATION_YEARS = {
    "mobiliario": (10, 10),
    "mejora": (10, 50),
    "ampliacion": (15, 50),
}


def _text(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    return str(value).strip() if value is not None else ""


def _amount(record: Mapping[str, Any], key: str, errors: list[str]) -> Optional[Decimal]:
    value = record.get(key)
    if value is None or value == "":
        return None
    try:
        return to_decimal(value)
    except ValueError:
        errors.append(f"'{key}' is not a valid amount: {value!r}")
        return None


def _date(record: Mapping[str, Any], key: str, errors: list[str]) -> Optional[date]:
    value = record.get(key)
    if value is None or value == "":
        return None
    try:
        return to_date(value)
    except ValueError:
        errors.append(f"'{key}' is not a valid date: {value!r}")
        return None


def _require_positive(amount: Optional[Decimal], label: str, errors: list[str]) -> None:
    if amount is None or amount <= 0:
        errors.append(f"{label} must be greater than 0")


def _check_destination(record: Mapping[str, Any], errors: list[str]) -> None:
    destination = _text(record, "destination")
    if not destination:
        errors.append("Destination is required")
    elif destination == "property" and not _text(record, "destination_id"):
        errors.append("A property must be given when the destination is 'property'")


def _check_schedule(
    issue_date: Optional[date],
    due_date: Optional[date],
    due_label: str,
    today: date,
    errors: list[str],
    warnings: list[str],
) -> None:
    if issue_date is None or due_date is None:
        return
    if due_date < issue_date:
        errors.append(f"{due_label} cannot be before the issue date")
    if issue_date < today - DATE_WINDOW:
        warnings.append("Issue date is more than a year in the past")
    if due_date > today + DATE_WINDOW:
        warnings.append(f"{due_label} is more than a year in the future")


def validate_ingreso(record: Mapping[str, Any], today: Optional[date] = None) -> ValidationResult:
    """Validate an income record."""
    today = today or date.today()
    errors: list[str] = []
    warnings: list[str] = []

    if not _text(record, "counterparty"):
        errors.append("Counterparty is required")
    issue_date = _date(record, "issue_date", errors)
    if issue_date is None and not record.get("issue_date"):
        errors.append("Issue date is required")
    collection_date = _date(record, "expected_collection_date", errors)
    if collection_date is None and not record.get("expected_collection_date"):
        errors.append("Expected collection date is required")

    amount = _amount(record, "amount", errors)
    _require_positive(amount, "Amount", errors)

    origin = _text(record, "origin")
    if not origin:
        errors.append("Origin is required")
    elif origin in LINKED_ORIGINS and not _text(record, "origin_id"):
        errors.append(f"A {LINKED_ORIGINS[origin]} must be given when the origin is '{origin}'")
    _check_destination(record, errors)

    _check_schedule(
        issue_date, collection_date, "Expected collection date", today, errors, warnings
    )

    if amount is not None and amount > INGRESO_HIGH_AMOUNT:
        warnings.append("Amount is very high (over 100.000 EUR); check it is correct")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_gasto(record: Mapping[str, Any], today: Optional[date] = None) -> ValidationResult:
    """Validate an expense record.

    The total must equal base + IVA within BASE_IVA_TOLERANCE when all three
    are present.
    """
    today = today or date.today()
    errors: list[str] = []
    warnings: list[str] = []

    if not _text(record, "provider"):
        errors.append("Provider is required")
    issue_date = _date(record, "issue_date", errors)
    if issue_date is None and not record.get("issue_date"):
        errors.append("Issue date is required")
    payment_date = _date(record, "expected_payment_date", errors)
    if payment_date is None and not record.get("expected_payment_date"):
        errors.append("Expected payment date is required")

    total = _amount(record, "total", errors)
    _require_positive(total, "Total", errors)

    category = _text(record, "aeat_category")
    if not category:
        errors.append("AEAT category is required")
    _check_destination(record, errors)

    base = _amount(record, "base", errors)
    iva = _amount(record, "iva", errors)
    if base and iva and total:
        calculated = base + iva
        if abs(calculated - total) > BASE_IVA_TOLERANCE:
            errors.append(
                f"Total ({total:.2f}) does not match base+IVA ({calculated:.2f})"
            )

    _check_schedule(issue_date, payment_date, "Expected payment date", today, errors, warnings)

    if total is not None and total > GASTO_HIGH_AMOUNT:
        warnings.append("Amount is very high (over 50.000 EUR); check it is correct")

    if category in CAPEX_ONLY_CATEGORIES:
        warnings.append(CAPEX_ONLY_CATEGORIES[category])

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_capex(record: Mapping[str, Any], today: Optional[date] = None) -> ValidationResult:
    """Validate a CAPEX (capital expenditure) record."""
    today = today or date.today()
    errors: list[str] = []
    warnings: list[str] = []

    if not _text(record, "property_id"):
        errors.append("Property is required")
    if not _text(record, "provider"):
        errors.append("Provider is required")
    issue_date = _date(record, "issue_date", errors)
    if issue_date is None and not record.get("issue_date"):
        errors.append("Issue date is required")

    total = _amount(record, "total", errors)
    _require_positive(total, "Total", errors)

    capex_type = _text(record, "type")
    if not capex_type:
        errors.append("CAPEX type is required")

    years = _amount(record, "amortization_years", errors)
    if years is None or years <= 0:
        errors.append("Amortization years must be greater than 0")
    elif capex_type in AMORTIZATION_YEARS:
        low, high = AMORTIZATION_YEARS[capex_type]
        if not low <= years <= high:
            if low == high:
                warnings.append(f"{capex_type.capitalize()} is usually amortized over {low} years")
            else:
                warnings.append(
                    f"{capex_type.capitalize()} is usually amortized over {low} to {high} years"
                )

    if issue_date is not None:
        if issue_date < today - DATE_WINDOW:
            warnings.append("Issue date is more than a year in the past")
        if issue_date > today + DATE_WINDOW:
            errors.append("Issue date cannot be more than a year in the future")

    if total is not None and total > 0:
        if total < CAPEX_LOW_AMOUNT:
            warnings.append("Amount is very low for CAPEX (under 100 EUR)")
        if total > CAPEX_HIGH_AMOUNT:
            warnings.append("Amount is very high (over 200.000 EUR); check it is correct")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_treasury_batch(
    ingresos: Optional[list[Mapping[str, Any]]] = None,
    gastos: Optional[list[Mapping[str, Any]]] = None,
    capex: Optional[list[Mapping[str, Any]]] = None,
    today: Optional[date] = None,
) -> dict[str, Any]:
    """Validate several records of each kind.

    Returns:
        Dict with ingresos, gastos and capex result lists plus a summary of
        total, valid, invalid and with_warnings counts
    """
    ingreso_results = [validate_ingreso(r, today) for r in ingresos or []]
    gasto_results = [validate_gasto(r, today) for r in gastos or []]
    capex_results = [validate_capex(r, today) for r in capex or []]
    all_results = ingreso_results + gasto_results + capex_results

    return {
        "ingresos": ingreso_results,
        "gastos": gasto_results,
        "capex": capex_results,
        "summary": {
            "total": len(all_results),
            "valid": sum(1 for r in all_results if r.is_valid),
            "invalid": sum(1 for r in all_results if not r.is_valid),
            "with_warnings": sum(1 for r in all_results if r.warnings),
        },
    }


def format_validation_errors(result: ValidationResult) -> str:
    """One-line rendering of errors and warnings."""
    parts = []
    if result.errors:
        parts.append(f"Errors: {', '.join(result.errors)}")
    if result.warnings:
        parts.append(f"Warnings: {', '.join(result.warnings)}")
    return " | ".join(parts)


def validation_status(result: ValidationResult) -> str:
    """Return "error", "warning" or "success"."""
    if not result.is_valid:
        return "error"
    if result.warnings:
        return "warning"
    return "success"
