"""
Upsert de entidades del directorio en las hojas de Mingdao.

No hay restriccion de unicidad en la plataforma: la identidad se
garantiza buscando por el campo de ID externo antes de escribir.

- create / update: update si la fila existe, create si no
- delete de departamento: borrado fisico
- delete de staff: nunca se borra; el estado pasa a "baja" para
  conservar la atribucion historica
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from loguru import logger

from app.application.services.reference_resolver import DepartmentSource, ReferenceResolver
from app.domain.entities.directory import DirectoryEntity, EntityKind, SyncAction
from app.infrastructure.external.mingdao.client import RecordStoreClient
from app.infrastructure.external.mingdao.errors import MappingError
from app.infrastructure.external.mingdao.filters import eq
from app.infrastructure.external.mingdao.types import PlatformRow, WorksheetConfig
from app.infrastructure.external.mingdao.values import dropdown_value
from app.infrastructure.external.mingdao.worksheets import (
    DEPARTMENT_WORKSHEET_CONFIG,
    STAFF_DEPARTMENT_LINK_KEY,
    STAFF_STATUS_DEPARTED,
    STAFF_STATUS_OPTIONS,
    STAFF_WORKSHEET_CONFIG,
)


_CONFIG_BY_KIND = {
    EntityKind.DEPARTMENT: DEPARTMENT_WORKSHEET_CONFIG,
    EntityKind.STAFF: STAFF_WORKSHEET_CONFIG,
}


def build_fields(
    config: WorksheetConfig,
    attributes: Dict[str, Any],
    *,
    skip_keys: tuple = (),
) -> Dict[str, Any]:
    """
    Aplica los FieldMapping a los atributos.

    Atributos sin mapeo se registran y se omiten; valores que el
    transform convierte en None tambien se omiten.
    """
    fields: Dict[str, Any] = {}
    for key, raw in attributes.items():
        if key in skip_keys:
            continue
        mapping = config.mapping_for(key)
        if mapping is None:
            logger.warning(f"Atributo sin mapeo en '{config.worksheet}': {key} (se omite)")
            continue
        value = mapping.transform(raw) if mapping.transform else raw
        if value is None:
            continue
        fields[mapping.platform_field_id] = value
    return fields


def _external_id_field(config: WorksheetConfig, external_id: str) -> Dict[str, Any]:
    """Campo de identidad; siempre sale de entity.external_id, nunca de los atributos."""
    mapping = config.mapping_for(config.external_id_key)
    value = mapping.transform(external_id) if mapping.transform else external_id
    return {mapping.platform_field_id: value}


class UpsertEngine:
    """
    Decide create / update / cambio de estado / borrado para una entidad.

    Con `department_source` se habilita la reparacion de referencias:
    los departamentos ausentes se crean antes de escribir el staff.
    """

    def __init__(
        self,
        client: RecordStoreClient,
        *,
        department_source: Optional[DepartmentSource] = None,
    ) -> None:
        self._client = client
        self._references: Optional[ReferenceResolver] = None
        if department_source is not None:
            self._references = ReferenceResolver(client, department_source, self.upsert)

    async def find_row(self, entity: DirectoryEntity) -> Optional[PlatformRow]:
        config = _CONFIG_BY_KIND[entity.kind]
        return await self._client.find_first(
            config.worksheet,
            eq(config.external_id_field, entity.external_id),
        )

    async def upsert(self, entity: DirectoryEntity, action: SyncAction) -> str:
        """
        Aplica `action` sobre la fila de la entidad.

        Returns:
            row id afectado ("" si un delete no encontro fila)

        Raises:
            MappingError: si no queda ningun campo que escribir
            RecordStoreError: fallos de transporte o del proveedor
        """
        action = SyncAction(action)
        if action is SyncAction.DELETE:
            return await self._delete(entity)
        return await self._write(entity)

    async def _write(self, entity: DirectoryEntity) -> str:
        config = _CONFIG_BY_KIND[entity.kind]
        is_staff = entity.kind is EntityKind.STAFF

        fields = build_fields(
            config,
            entity.attributes,
            skip_keys=(STAFF_DEPARTMENT_LINK_KEY,) if is_staff else (),
        )
        if not fields:
            raise MappingError(f"Sin campos validos para {entity.kind.value} {entity.external_id}")
        fields.update(_external_id_field(config, entity.external_id))

        if is_staff and STAFF_DEPARTMENT_LINK_KEY in entity.attributes:
            fields.update(await self._department_link(entity))

        existing = await self.find_row(entity)
        if existing is not None:
            await self._client.update_row(config.worksheet, existing.row_id, fields)
            logger.info(
                f"{entity.kind.value} {entity.external_id} actualizado en Mingdao (rowId={existing.row_id})"
            )
            return existing.row_id

        row_id = await self._client.create_row(config.worksheet, fields)
        logger.info(f"{entity.kind.value} {entity.external_id} creado en Mingdao (rowId={row_id})")
        return row_id

    async def _department_link(self, entity: DirectoryEntity) -> Dict[str, Any]:
        ext_ids = [str(d) for d in entity.attributes.get(STAFF_DEPARTMENT_LINK_KEY) or []]
        if not ext_ids:
            return {}
        if self._references is None:
            logger.warning(f"Staff {entity.external_id}: sin resolvedor de departamentos, vinculo omitido")
            return {}

        row_ids = await self._references.resolve(entity.tenant_id, ext_ids)
        mapping = STAFF_WORKSHEET_CONFIG.mapping_for(STAFF_DEPARTMENT_LINK_KEY)
        value = mapping.transform(row_ids) if mapping.transform else row_ids
        return {mapping.platform_field_id: value} if value is not None else {}

    async def _delete(self, entity: DirectoryEntity) -> str:
        config = _CONFIG_BY_KIND[entity.kind]
        existing = await self.find_row(entity)
        if existing is None:
            logger.warning(f"{entity.kind.value} {entity.external_id} no existe en Mingdao, nada que borrar")
            return ""

        if entity.kind is EntityKind.DEPARTMENT:
            await self._client.delete_row(config.worksheet, existing.row_id)
            logger.info(f"Departamento {entity.external_id} borrado en Mingdao (rowId={existing.row_id})")
            return existing.row_id

        status_field = config.field_id("staffStatus")
        departed = dropdown_value(STAFF_STATUS_OPTIONS[STAFF_STATUS_DEPARTED])
        await self._client.update_row(config.worksheet, existing.row_id, {status_field: departed})
        logger.info(f"Staff {entity.external_id} marcado como baja en Mingdao (rowId={existing.row_id})")
        return existing.row_id
