"""Normalización de números telefónicos para correlacionar respuestas."""

import re

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_phone_number(raw: str | None) -> str:
    """Deja sólo los dígitos decimales: ``+1 (555) 123-4567`` -> ``15551234567``."""
    if not raw:
        return ""
    return _NON_DIGITS.sub("", raw)
