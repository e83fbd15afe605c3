"""Text normalization shared by header matching and duplicate hashing."""

import re
import unicodedata


def strip_accents(text: str) -> str:
    """Remove combining accents ("Nómina" -> "Nomina")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str | None) -> str:
    """Lowercase, strip accents, turn punctuation into spaces and collapse whitespace.

    "Pago: Supermercado, S.L." and "pago supermercado s l" normalize to the
    same string.
    """
    if not text:
        return ""
    text = strip_accents(str(text)).lower()
    text = re.sub(r"[^\w\s]|_", " ", text)
    return re.sub(r"\s+", " ", text).strip()
