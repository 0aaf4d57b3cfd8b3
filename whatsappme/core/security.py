"""Helpers de validación común para webhooks y firmas."""

import hmac
from hashlib import sha256

from whatsappme.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="


def verify_signature(
    secret: str,
    signature: str | None,
    payload: bytes,
    *,
    header_prefix: str = SIGNATURE_PREFIX,
) -> bool:
    """Verifica firmas HMAC-SHA256 de Meta (`x-hub-signature-256`).

    Args:
        secret: App secret compartido con Meta.
        signature: Valor recibido en el header, ej. ``sha256=<hex>``.
        payload: Cuerpo bruto recibido, sin parsear.
        header_prefix: Prefijo que declara el algoritmo.

    Returns:
        ``True`` sólo si el digest declarado coincide con el calculado.
    """
    if not signature:
        logger.warning("security.signature_missing")
        return False
    if not signature.startswith(header_prefix):
        logger.warning("security.signature_bad_prefix")
        return False

    received = signature[len(header_prefix) :]
    expected = _build_signature(secret, payload)
    valid = constant_time_equals(received.encode(), expected.encode())
    if not valid:
        logger.warning(
            "security.signature_mismatch",
            extra={"received_prefix": received[:8], "expected_prefix": expected[:8]},
        )
    return valid


def verify_token(expected: str, received: str | None) -> bool:
    """Compara el token del handshake de suscripción en tiempo constante."""
    if not received:
        logger.warning("security.verify_token_missing")
        return False
    valid = constant_time_equals(expected.encode(), received.encode())
    if not valid:
        logger.warning("security.verify_token_mismatch")
    return valid


def constant_time_equals(left: bytes, right: bytes) -> bool:
    """Compara dos secuencias sin cortocircuito en el primer byte distinto.

    Las longitudes distintas se rechazan de inmediato; en otro caso se
    acumula el XOR de todos los pares de bytes.
    """
    if len(left) != len(right):
        return False
    result = 0
    for a, b in zip(left, right):
        result |= a ^ b
    return result == 0


def _build_signature(secret: str, payload: bytes) -> str:
    digest = hmac.new(secret.encode(), payload, sha256)
    return digest.hexdigest()


def mask_secret(value: str | None) -> str | None:
    """Enmascara secretos para logging seguro."""
    if not value:
        return value
    if len(value) <= 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"
