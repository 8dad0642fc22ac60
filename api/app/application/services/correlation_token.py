"""
Codec del token de correlacion que viaja en el parametro state del QR.

WeCom limita state a 30 caracteres, asi que el numero de cliente (UUID
de 32 hex) se compacta a 22 caracteres base64url sin padding, con el
prefijo fijo `mdy:` delante (26 caracteres en total).
"""
from __future__ import annotations

import base64
import binascii
import re

from app.infrastructure.external.mingdao.worksheets import STATE_PREFIX
from app.infrastructure.external.wecom.wecom_client import STATE_MAX_LENGTH
from app.shared.exceptions.domain import ValidationException


_SEPARATORS = re.compile(r"[-{}\s]")
_HEX_32 = re.compile(r"^[0-9a-fA-F]{32}$")


def is_correlation_state(state: str) -> bool:
    """El callback solo nos concierne si el state trae nuestro prefijo."""
    return bool(state) and state.startswith(STATE_PREFIX)


def encode(raw_id: str) -> str:
    """
    UUID -> token corto con prefijo.

    Si el valor no es un identificador de 32 hex se deja tal cual
    (puede ser ya un ID corto). Falla si el resultado no entra en state.
    """
    compact = _SEPARATORS.sub("", raw_id or "")
    if _HEX_32.match(compact):
        payload = base64.urlsafe_b64encode(bytes.fromhex(compact)).decode("ascii").rstrip("=")
    else:
        payload = raw_id or ""

    token = f"{STATE_PREFIX}{payload}"
    if len(token) > STATE_MAX_LENGTH:
        raise ValidationException(
            f"El state del QR excede {STATE_MAX_LENGTH} caracteres",
            field="user_no",
        )
    return token


def decode(token: str) -> str:
    """
    Token -> UUID canonico con guiones.

    Nunca lanza: si el payload no decodifica a 16 bytes se devuelve tal
    cual (sin prefijo).
    """
    payload = (token or "").strip()
    if payload.startswith(STATE_PREFIX):
        payload = payload[len(STATE_PREFIX):]
    if not payload:
        return ""

    try:
        padded = payload + "=" * (-len(payload) % 4)
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        return payload

    if len(raw) != 16:
        return payload
    hex_str = raw.hex()
    return f"{hex_str[:8]}-{hex_str[8:12]}-{hex_str[12:16]}-{hex_str[16:20]}-{hex_str[20:]}"
