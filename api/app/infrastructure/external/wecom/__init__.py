"""
Cliente de WeCom (directorio de staff, departamentos y contactos externos).
"""
from app.infrastructure.external.wecom.wecom_client import (
    ContactWay,
    DirectoryApiError,
    ExternalContact,
    WeComClient,
)

__all__ = ["ContactWay", "DirectoryApiError", "ExternalContact", "WeComClient"]
