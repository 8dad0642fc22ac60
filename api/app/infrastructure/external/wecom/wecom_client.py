"""
Cliente de la API de WeCom (directorio).

Cubre lo que necesita el flujo de vinculacion de clientes:
- access_token (cacheado hasta su expiracion)
- crear "contact way" con QR y parametro state
- leer el detalle de un contact way (URL del QR)
- leer el perfil de un contacto externo
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.core.config import settings


# Limite de WeCom para el parametro state
STATE_MAX_LENGTH = 30

CONTACT_WAY_TYPE_SINGLE = 1
CONTACT_WAY_SCENE_QRCODE = 2


class DirectoryApiError(RuntimeError):
    """Error de integracion con WeCom."""

    def __init__(self, message: str, *, errcode: Optional[int] = None) -> None:
        self.errcode = errcode
        super().__init__(message if errcode is None else f"{message} (errcode: {errcode})")


@dataclass(frozen=True)
class ContactWay:
    config_id: str
    qr_code: str
    state: str = ""


@dataclass(frozen=True)
class ExternalContact:
    """Perfil de un contacto externo (cliente) de WeCom."""

    external_user_id: str
    name: str = ""
    avatar: str = ""
    gender: int = 0
    unionid: str = ""
    external_profile: Dict[str, Any] = field(default_factory=dict)

    @property
    def gender_code(self) -> str:
        """1=masculino, 2=femenino, 0=desconocido."""
        return str(self.gender) if self.gender in (1, 2) else "0"

    @property
    def has_external_profile(self) -> bool:
        profile = self.external_profile or {}
        return bool(profile.get("external_corp_name") or profile.get("external_attr"))


class WeComClient:
    """
    Cliente HTTP de WeCom.

    El token se renueva un minuto antes de expirar.
    """

    def __init__(
        self,
        *,
        corp_id: Optional[str] = None,
        secret: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout_s: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._corp_id = corp_id if corp_id is not None else settings.WECOM_CORP_ID
        self._secret = secret if secret is not None else settings.WECOM_CONTACT_SECRET
        self._api_base = (api_base or settings.WECOM_API_BASE).rstrip("/")
        self._timeout_s = timeout_s or settings.WECOM_TIMEOUT_SECONDS
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout_s)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        if not self._corp_id or not self._secret:
            raise DirectoryApiError("Configuracion de WeCom incompleta (corp_id/secret)")

        data = await self._call("GET", "/gettoken", params={"corpid": self._corp_id, "corpsecret": self._secret}, auth=False)
        self._token = str(data["access_token"])
        self._token_expires_at = time.monotonic() + int(data.get("expires_in", 7200)) - 60
        return self._token

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> Dict[str, Any]:
        query = dict(params or {})
        if auth:
            query["access_token"] = await self._access_token()
        try:
            resp = await self._http.request(method, f"{self._api_base}{path}", params=query, json=json)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise DirectoryApiError(f"Error llamando a WeCom {path}: {e}") from e

        errcode = int(data.get("errcode") or 0)
        if errcode != 0:
            raise DirectoryApiError(f"WeCom {path}: {data.get('errmsg')}", errcode=errcode)
        return data

    async def add_contact_way(self, staff_id: str, state: str, *, skip_verify: bool = True) -> str:
        """Crea un "contactame" permanente de una sola persona. Retorna config_id."""
        if len(state) > STATE_MAX_LENGTH:
            raise DirectoryApiError(f"state excede {STATE_MAX_LENGTH} caracteres: {state!r}")
        body = {
            "type": CONTACT_WAY_TYPE_SINGLE,
            "scene": CONTACT_WAY_SCENE_QRCODE,
            "user": [staff_id],
            "state": state,
            "skip_verify": skip_verify,
        }
        data = await self._call("POST", "/externalcontact/add_contact_way", json=body)
        return str(data["config_id"])

    async def get_contact_way(self, config_id: str) -> ContactWay:
        data = await self._call("POST", "/externalcontact/get_contact_way", json={"config_id": config_id})
        way = data.get("contact_way") or {}
        return ContactWay(
            config_id=str(way.get("config_id") or config_id),
            qr_code=str(way.get("qr_code") or ""),
            state=str(way.get("state") or ""),
        )

    async def get_external_contact(self, external_user_id: str) -> ExternalContact:
        data = await self._call("GET", "/externalcontact/get", params={"external_userid": external_user_id})
        contact = data.get("external_contact") or {}
        logger.debug(f"Perfil WeCom obtenido para {external_user_id}")
        return ExternalContact(
            external_user_id=str(contact.get("external_userid") or external_user_id),
            name=str(contact.get("name") or ""),
            avatar=str(contact.get("avatar") or ""),
            gender=int(contact.get("gender") or 0),
            unionid=str(contact.get("unionid") or ""),
            external_profile=dict(contact.get("external_profile") or {}),
        )

