"""
Lectura de la replica local del directorio de WeCom.

Traduce filas ORM a `DirectoryEntity` con las claves de proposito que
entiende el mapeo de hojas de Mingdao.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.entities.directory import DirectoryEntity, EntityKind, ensure_utc
from app.infrastructure.database.models import DepartmentModel, StaffModel
from app.infrastructure.database.session import SessionFactory, readonly_session


def department_attributes(model: DepartmentModel) -> Dict[str, Any]:
    return {
        "departmentId": model.ext_id,
        "departmentName": model.name,
    }


def staff_attributes(model: StaffModel) -> Dict[str, Any]:
    return {
        "wecomStaffId": model.ext_id,
        "wecomUsername": model.name,
        "wecomAvatar": model.avatar_url,
        "gender": model.gender,
        "phone": model.mobile,
        "email": model.email,
        "wecomDepId": [str(d) for d in (model.dept_ids or [])],
        "position": model.external_position,
        "staffStatus": model.status,
    }


def _as_entity(kind: EntityKind, model, attributes: Dict[str, Any]) -> DirectoryEntity:
    return DirectoryEntity(
        kind=kind,
        external_id=str(model.ext_id),
        attributes=attributes,
        updated_at=ensure_utc(model.updated_at) if model.updated_at else None,
        tenant_id=model.ext_corp_id,
    )


class DirectoryRepository:
    """Repositorio de solo lectura para departamentos y staff."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_departments(
        self,
        tenant_id: str,
        updated_since: Optional[datetime] = None,
    ) -> List[DirectoryEntity]:
        """
        Departamentos del tenant; con updated_since, solo los modificados
        estrictamente despues de esa marca.
        """
        query = select(DepartmentModel).where(DepartmentModel.ext_corp_id == tenant_id)
        if updated_since is not None:
            query = query.where(DepartmentModel.updated_at > updated_since)
        result = await self.db.execute(query.order_by(DepartmentModel.id))
        return [
            _as_entity(EntityKind.DEPARTMENT, m, department_attributes(m))
            for m in result.scalars().all()
        ]

    async def list_staff(
        self,
        tenant_id: str,
        updated_since: Optional[datetime] = None,
    ) -> List[DirectoryEntity]:
        query = select(StaffModel).where(StaffModel.ext_corp_id == tenant_id)
        if updated_since is not None:
            query = query.where(StaffModel.updated_at > updated_since)
        result = await self.db.execute(query.order_by(StaffModel.id))
        return [
            _as_entity(EntityKind.STAFF, m, staff_attributes(m))
            for m in result.scalars().all()
        ]

    async def get_department(self, tenant_id: str, ext_id: str) -> Optional[DirectoryEntity]:
        result = await self.db.execute(
            select(DepartmentModel).where(
                DepartmentModel.ext_corp_id == tenant_id,
                DepartmentModel.ext_id == str(ext_id),
            )
        )
        model = result.scalars().first()
        if model is None:
            return None
        return _as_entity(EntityKind.DEPARTMENT, model, department_attributes(model))

    async def get_staff(self, tenant_id: str, ext_id: str) -> Optional[DirectoryEntity]:
        result = await self.db.execute(
            select(StaffModel).where(
                StaffModel.ext_corp_id == tenant_id,
                StaffModel.ext_id == ext_id,
            )
        )
        model = result.scalars().first()
        if model is None:
            return None
        return _as_entity(EntityKind.STAFF, model, staff_attributes(model))


class SessionScopedDirectory:
    """
    Misma interfaz que DirectoryRepository, pero abre una sesion corta
    por consulta. La usan las tareas en background, que no tienen una
    sesion de request a mano.
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session_factory = session_factory

    async def list_departments(self, tenant_id: str, updated_since: Optional[datetime] = None) -> List[DirectoryEntity]:
        async with readonly_session(self._session_factory) as db:
            return await DirectoryRepository(db).list_departments(tenant_id, updated_since)

    async def list_staff(self, tenant_id: str, updated_since: Optional[datetime] = None) -> List[DirectoryEntity]:
        async with readonly_session(self._session_factory) as db:
            return await DirectoryRepository(db).list_staff(tenant_id, updated_since)

    async def get_department(self, tenant_id: str, ext_id: str) -> Optional[DirectoryEntity]:
        async with readonly_session(self._session_factory) as db:
            return await DirectoryRepository(db).get_department(tenant_id, ext_id)

    async def get_staff(self, tenant_id: str, ext_id: str) -> Optional[DirectoryEntity]:
        async with readonly_session(self._session_factory) as db:
            return await DirectoryRepository(db).get_staff(tenant_id, ext_id)
