"""
Vinculacion de clientes de Mingdao con contactos externos de WeCom.

Flujo por QR:
1. Se genera un "contact way" de WeCom cuyo state lleva el row id del
   cliente codificado (`mdy:` + base64url).
2. Cuando el cliente escanea, WeCom envia el callback "cliente agregado";
   si el state trae el prefijo se decodifica el row id y, en background,
   se escribe el perfil del contacto en esa fila.

Flujo manual (sidebar): busqueda y detalle de clientes, bind /
change-binding sobre una fila elegida. Los campos de WeCom nunca se
devuelven al sidebar.

La validacion "ya vinculado" y la escritura no son atomicas contra
Mingdao; dos binds concurrentes pueden ganar ambos.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from loguru import logger

from app.application.services import correlation_token
from app.application.services.background_tasks import BackgroundTaskRunner
from app.domain.entities.directory import AddExternalContactEvent
from app.infrastructure.external.mingdao.client import RecordStoreClient
from app.infrastructure.external.mingdao.errors import RecordStoreError
from app.infrastructure.external.mingdao.filters import contains, eq, or_
from app.infrastructure.external.mingdao.types import FieldSchema, PlatformRow, RowPage
from app.infrastructure.external.mingdao.worksheets import (
    CUSTOMER_FIELDS,
    CUSTOMER_HIDDEN_FIELDS,
    CUSTOMER_NUMBER_FIELD,
    CUSTOMER_PHONE_FIELD,
    CUSTOMER_WORKSHEET_CONFIG,
    WORKSHEET_CONFIGS,
)
from app.infrastructure.external.wecom.wecom_client import DirectoryApiError, ExternalContact, WeComClient
from app.shared.exceptions.domain import (
    ConflictException,
    EntityNotFoundException,
    ExternalServiceException,
    ValidationException,
)


DEFAULT_SEARCH_PAGE_SIZE = 10


def customer_profile_fields(contact: ExternalContact, staff_id: str) -> Dict[str, Any]:
    """Campos del cliente a partir del perfil de WeCom; los vacios se omiten."""
    values = {
        "wecomStaffID": staff_id,
        "wechatName": contact.name,
        "wechatGender": contact.gender_code,
        "wecomExternalUserid": contact.external_user_id,
        "wechatAvatar": contact.avatar,
        "wechatUnionId": contact.unionid,
    }
    if contact.has_external_profile:
        values["wecomExternalProfile"] = json.dumps(contact.external_profile, ensure_ascii=False)
    return {CUSTOMER_FIELDS[key]: value for key, value in values.items() if value}


def visible_customer(row: PlatformRow) -> PlatformRow:
    """Copia de la fila sin los campos de WeCom."""
    fields = {k: v for k, v in row.fields.items() if k not in CUSTOMER_HIDDEN_FIELDS}
    return PlatformRow(row_id=row.row_id, worksheet=row.worksheet, fields=fields)


def cleared_profile_fields() -> Dict[str, Any]:
    return {field_id: "" for field_id in CUSTOMER_FIELDS.values()}


class CustomerBindingUseCases:
    """Casos de uso de QR, callback, consulta y vinculacion manual."""

    def __init__(
        self,
        client: RecordStoreClient,
        wecom: WeComClient,
        runner: BackgroundTaskRunner,
    ) -> None:
        self._client = client
        self._wecom = wecom
        self._runner = runner
        self._worksheet = CUSTOMER_WORKSHEET_CONFIG.worksheet
        self._external_id_field = CUSTOMER_WORKSHEET_CONFIG.external_id_field

    # ------------------------------------------------------------------
    # QR y callback
    # ------------------------------------------------------------------

    async def generate_contact_qrcode(self, staff_id: str, user_no: str) -> Dict[str, str]:
        """
        Crea un QR "contactame" del staff cuyo state identifica al cliente.

        Raises:
            ValidationException: staff_id vacio o state demasiado largo
            ExternalServiceException: WeCom rechazo la llamada
        """
        if not staff_id:
            raise ValidationException("staff_id no puede estar vacio", field="staff_id")

        state = correlation_token.encode(user_no)
        logger.info(f"Creando QR de contacto para staff {staff_id}, cliente {user_no} (state={state})")
        try:
            config_id = await self._wecom.add_contact_way(staff_id, state)
            contact_way = await self._wecom.get_contact_way(config_id)
        except DirectoryApiError as e:
            logger.error(f"No se pudo crear el QR de contacto para staff {staff_id}: {e}")
            raise ExternalServiceException("WeCom", str(e), details={"errcode": e.errcode}) from e

        logger.info(f"QR generado: config_id={config_id}")
        return {"qr_code": contact_way.qr_code, "config_id": config_id, "state": state}

    def handle_add_customer_callback(self, event: AddExternalContactEvent) -> bool:
        """
        Procesa el callback "cliente agregado".

        Returns:
            True si el evento viene de un QR de este flujo (aunque el state
            este vacio), False si no nos concierne.
        """
        if not correlation_token.is_correlation_state(event.state):
            return False

        row_id = correlation_token.decode(event.state)
        if not row_id:
            logger.warning(f"Callback de QR sin numero de cliente (state={event.state!r})")
            return True

        logger.info(
            f"Callback de QR: cliente {row_id}, staff {event.staff_id}, contacto {event.external_user_id}"
        )
        self._runner.spawn(
            self.write_contact_profile(row_id, event.external_user_id, event.staff_id),
            name=f"customer-callback-{row_id}",
        )
        return True

    async def write_contact_profile(self, row_id: str, external_user_id: str, staff_id: str) -> None:
        """Lee el perfil del contacto en WeCom y lo escribe en la fila del cliente."""
        contact = await self._wecom.get_external_contact(external_user_id)
        fields = customer_profile_fields(contact, staff_id)
        await self._client.update_row(self._worksheet, row_id, fields)
        logger.info(f"Cliente {row_id} actualizado con el contacto {external_user_id} ({contact.name})")

    # ------------------------------------------------------------------
    # Vinculacion manual
    # ------------------------------------------------------------------

    async def check_customer_bound(self, row_id: str) -> bool:
        row = await self._get_customer(row_id)
        return bool(row.get(self._external_id_field))

    async def bind_customer(self, row_id: str, external_user_id: str, staff_id: str = "") -> None:
        """
        Vincula el contacto externo a la fila con el perfil completo.

        Raises:
            ConflictException: la fila ya tiene un contacto vinculado
        """
        self._require(row_id=row_id, external_user_id=external_user_id)
        if await self.check_customer_bound(row_id):
            raise ConflictException(row_id, external_user_id)
        await self._bind(row_id, external_user_id, staff_id)

    async def change_binding(
        self,
        old_row_id: str,
        new_row_id: str,
        external_user_id: str,
        staff_id: str = "",
    ) -> None:
        """Mueve la vinculacion: limpia la fila vieja y vincula la nueva."""
        self._require(old_row_id=old_row_id, row_id=new_row_id, external_user_id=external_user_id)
        if new_row_id != old_row_id:
            if await self.check_customer_bound(new_row_id):
                raise ConflictException(new_row_id, external_user_id)
            await self._call_store(self._client.update_row(self._worksheet, old_row_id, cleared_profile_fields()))
            logger.info(f"Vinculacion WeCom limpiada en el cliente {old_row_id}")
        await self._bind(new_row_id, external_user_id, staff_id)

    async def find_customer_by_external_user_id(self, external_user_id: str) -> Optional[PlatformRow]:
        self._require(external_user_id=external_user_id)
        row = await self._call_store(
            self._client.find_first(self._worksheet, eq(self._external_id_field, external_user_id))
        )
        return visible_customer(row) if row is not None else None

    # ------------------------------------------------------------------
    # Consulta desde el sidebar
    # ------------------------------------------------------------------

    async def search_customers(
        self,
        keyword: str,
        page_size: int = DEFAULT_SEARCH_PAGE_SIZE,
        page_index: int = 1,
    ) -> RowPage:
        """
        Busca clientes cuyo telefono o numero de cliente contiene `keyword`.

        page_size <= 0 usa el default; page_index empieza en 1.
        """
        keyword = (keyword or "").strip()
        self._require(keyword=keyword)
        page_size = page_size if page_size > 0 else DEFAULT_SEARCH_PAGE_SIZE
        page_index = max(page_index, 1)

        predicate = or_(contains(CUSTOMER_PHONE_FIELD, keyword), contains(CUSTOMER_NUMBER_FIELD, keyword))
        page = await self._call_store(
            self._client.find_rows(self._worksheet, predicate, page_size=page_size, page_index=page_index)
        )
        logger.debug(f"Busqueda de clientes '{keyword}': {page.total} resultados")
        return RowPage(
            rows=[visible_customer(row) for row in page.rows],
            total=page.total,
            page_index=page.page_index,
            page_size=page.page_size,
        )

    async def get_customer(self, row_id: str) -> PlatformRow:
        """
        Raises:
            EntityNotFoundException: la fila no existe
        """
        self._require(row_id=row_id)
        return visible_customer(await self._get_customer(row_id))

    async def list_customer_fields(self) -> List[FieldSchema]:
        """Campos de la hoja de clientes que el sidebar puede mostrar."""
        schema = await self._call_store(self._client.get_worksheet_schema(self._worksheet))
        return [
            f for f in schema.fields
            if f.field_id not in CUSTOMER_HIDDEN_FIELDS and f.alias not in CUSTOMER_HIDDEN_FIELDS
        ]

    async def verify_worksheet_mappings(self) -> Dict[str, List[str]]:
        """
        Compara los campos configurados contra el esquema de cada hoja.

        Solo registra warnings: un campo faltante no impide arrancar.
        Returns: hoja -> campos configurados que el esquema no tiene
        """
        missing: Dict[str, List[str]] = {}
        for config in WORKSHEET_CONFIGS.values():
            try:
                schema = await self._client.get_worksheet_schema(config.worksheet)
            except RecordStoreError as e:
                logger.warning(f"No se pudo leer el esquema de '{config.worksheet}': {e}")
                continue
            absent = [m.platform_field_id for m in config.mappings if not schema.has_field(m.platform_field_id)]
            if absent:
                logger.warning(f"Hoja '{config.worksheet}' sin los campos configurados: {absent}")
                missing[config.worksheet] = absent
        return missing

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    async def _bind(self, row_id: str, external_user_id: str, staff_id: str) -> None:
        try:
            contact = await self._wecom.get_external_contact(external_user_id)
        except DirectoryApiError as e:
            raise ExternalServiceException("WeCom", str(e), details={"errcode": e.errcode}) from e

        fields = customer_profile_fields(contact, staff_id)
        await self._call_store(self._client.update_row(self._worksheet, row_id, fields))
        logger.info(f"Cliente {row_id} vinculado al contacto {external_user_id}")

    async def _get_customer(self, row_id: str) -> PlatformRow:
        row = await self._call_store(self._client.get_row(self._worksheet, row_id))
        if row is None:
            raise EntityNotFoundException("Cliente", row_id)
        return row

    @staticmethod
    async def _call_store(awaitable):
        try:
            return await awaitable
        except RecordStoreError as e:
            raise ExternalServiceException("Mingdao", str(e)) from e

    @staticmethod
    def _require(**values: str) -> None:
        for name, value in values.items():
            if not value:
                raise ValidationException(f"{name} no puede estar vacio", field=name)
