"""
Resolucion de referencias staff -> departamento.

Traduce los IDs externos de departamento de un staff a row ids de la
hoja de departamentos. Un departamento ausente se crea en linea (con
los datos actuales del directorio) y se vuelve a buscar; si aun asi no
resuelve, se omite del vinculo con un warning.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Iterable, List, Optional

from loguru import logger

from app.domain.entities.directory import DirectoryEntity, SyncAction
from app.infrastructure.external.mingdao.client import RecordStoreClient
from app.infrastructure.external.mingdao.filters import eq
from app.infrastructure.external.mingdao.worksheets import DEPARTMENT_WORKSHEET_CONFIG


# (tenant_id, ext_id) -> departamento del directorio, o None
DepartmentSource = Callable[[str, str], Awaitable[Optional[DirectoryEntity]]]

# Upsert de departamento; retorna el row id
DepartmentUpsert = Callable[[DirectoryEntity, SyncAction], Awaitable[str]]


class ReferenceResolver:
    def __init__(
        self,
        client: RecordStoreClient,
        department_source: DepartmentSource,
        upsert_department: DepartmentUpsert,
    ) -> None:
        self._client = client
        self._department_source = department_source
        self._upsert_department = upsert_department
        self._config = DEPARTMENT_WORKSHEET_CONFIG

    async def find_department_row_id(self, ext_id: str) -> Optional[str]:
        row = await self._client.find_first(
            self._config.worksheet,
            eq(self._config.external_id_field, str(ext_id)),
        )
        return row.row_id if row else None

    async def resolve(self, tenant_id: str, department_ext_ids: Iterable[str]) -> List[str]:
        """Retorna los row ids resueltos, en el mismo orden y sin duplicados."""
        row_ids: List[str] = []
        for ext_id in department_ext_ids:
            ext_id = str(ext_id)
            try:
                row_id = await self._resolve_one(tenant_id, ext_id)
            except Exception as e:
                logger.warning(f"No se pudo resolver el departamento {ext_id}: {e}")
                continue
            if row_id is None:
                logger.warning(f"Departamento {ext_id} sin fila en Mingdao; se omite del vinculo")
                continue
            if row_id not in row_ids:
                row_ids.append(row_id)
        return row_ids

    async def _resolve_one(self, tenant_id: str, ext_id: str) -> Optional[str]:
        row_id = await self.find_department_row_id(ext_id)
        if row_id:
            return row_id

        logger.warning(f"Departamento {ext_id} no existe en Mingdao, se intenta crear")
        department = await self._department_source(tenant_id, ext_id)
        if department is None:
            logger.warning(f"Departamento {ext_id} no existe en el directorio del tenant {tenant_id}")
            return None

        await self._upsert_department(department, SyncAction.CREATE)
        return await self.find_department_row_id(ext_id)
