"""
Constructores de valores de campo de Mingdao.

Producen valores semanticos (listas / dicts); cada protocolo decide como
serializarlos (v2 los manda como string JSON, v3 como JSON nativo).
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit


DEFAULT_ATTACHMENT_NAME = "avatar.jpg"


def dropdown_value(option_key: Optional[str]) -> Optional[List[str]]:
    """Valor de un campo desplegable: lista con la key de la opcion."""
    if not option_key:
        return None
    return [option_key]


def option_value(options: Mapping[int, str]):
    """Transform que traduce un codigo del directorio a la opcion del desplegable."""

    def _transform(code: Any) -> Optional[List[str]]:
        try:
            key = options.get(int(code))
        except (TypeError, ValueError):
            return None
        return dropdown_value(key)

    return _transform


def relation_value(row_ids: Optional[List[str]]) -> Optional[List[str]]:
    """Valor de un campo de relacion: lista de row ids."""
    if not row_ids:
        return None
    return list(row_ids)


def attachment_name_from_url(url: str) -> str:
    """Extrae el nombre de archivo de la URL; si no tiene extension usa el default."""
    last_part = urlsplit(url).path.rsplit("/", 1)[-1]
    if last_part and "." in last_part:
        return last_part
    return DEFAULT_ATTACHMENT_NAME


def attachment_value(url: Optional[str]) -> Optional[List[Dict[str, str]]]:
    """Valor de un campo adjunto. v3 exige name y url."""
    if not url:
        return None
    return [{"name": attachment_name_from_url(url), "url": url}]


def text_value(value: Any) -> Optional[str]:
    """Texto plano; vacios se omiten."""
    if value is None:
        return None
    text = str(value)
    return text or None
