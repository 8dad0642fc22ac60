"""
Modelos de base de datos (ORM).

Replica local del directorio de WeCom. La llenan los callbacks y el
pull de contactos; la sincronizacion con Mingdao solo la lee.
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base


class DepartmentModel(Base):
    """Departamento de WeCom."""

    __tablename__ = "departments"
    __table_args__ = (UniqueConstraint("ext_corp_id", "ext_id", name="uq_departments_corp_ext"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    ext_corp_id = Column(String(64), nullable=False, index=True)
    ext_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False, default="")
    parent_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), index=True)

    def __repr__(self):
        return f"<Department(ext_id={self.ext_id}, name={self.name})>"


class StaffModel(Base):
    """
    Miembro del staff de WeCom.

    status sigue los codigos de WeCom: 1=activo, 2=deshabilitado,
    4=no activado, 5=salio de la empresa.
    """

    __tablename__ = "staff"
    __table_args__ = (UniqueConstraint("ext_corp_id", "ext_id", name="uq_staff_corp_ext"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    ext_corp_id = Column(String(64), nullable=False, index=True)
    ext_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False, default="")
    avatar_url = Column(String(1024), nullable=True)
    gender = Column(Integer, nullable=True)
    mobile = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    external_position = Column(String(255), nullable=True)
    status = Column(Integer, nullable=False, default=1)
    dept_ids = Column(JSON, nullable=False, default=list)  # IDs externos de departamento
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), index=True)

    def __repr__(self):
        return f"<Staff(ext_id={self.ext_id}, name={self.name}, status={self.status})>"
