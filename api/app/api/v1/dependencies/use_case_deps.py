"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends

from app.application.services.background_tasks import background_tasks
from app.application.services.identity_resolver import UpsertEngine
from app.application.use_cases.customer_binding_use_cases import CustomerBindingUseCases
from app.application.use_cases.directory_event_use_cases import DirectoryEventHandlers
from app.application.use_cases.directory_sync_use_cases import DirectorySyncUseCases, IncrementalSyncJob
from app.api.v1.dependencies.repository_deps import (
    get_kv_store,
    get_record_store_client,
    get_sync_cursor_repository,
    get_wecom_client,
)
from app.core.config import settings
from app.infrastructure.external.mingdao.client import RecordStoreClient
from app.infrastructure.external.wecom.wecom_client import WeComClient
from app.infrastructure.repositories.directory_repository import SessionScopedDirectory


def get_directory_sync_use_cases(
    client: RecordStoreClient = Depends(get_record_store_client),
) -> DirectorySyncUseCases:
    """
    Casos de uso de sincronizacion del directorio.

    Usan un directorio con sesiones propias: las pasadas corren en
    background, despues de cerrada la sesion de la request.
    """
    directory = SessionScopedDirectory()
    engine = UpsertEngine(client, department_source=directory.get_department)
    return DirectorySyncUseCases(
        engine,
        directory,
        throttle_seconds=settings.DIRECTORY_SYNC_THROTTLE_SECONDS,
        enabled=settings.directory_sync_enabled,
    )


def get_incremental_sync_job(
    sync: DirectorySyncUseCases = Depends(get_directory_sync_use_cases),
) -> IncrementalSyncJob:
    return IncrementalSyncJob(
        sync,
        get_kv_store(),
        get_sync_cursor_repository(),
        lock_seconds=settings.DIRECTORY_SYNC_LOCK_SECONDS,
    )


def get_directory_event_handlers(
    sync: DirectorySyncUseCases = Depends(get_directory_sync_use_cases),
) -> DirectoryEventHandlers:
    return DirectoryEventHandlers(sync, background_tasks)


def get_customer_binding_use_cases(
    client: RecordStoreClient = Depends(get_record_store_client),
    wecom: WeComClient = Depends(get_wecom_client),
) -> CustomerBindingUseCases:
    """
    Dependencia para obtener los casos de uso de vinculacion de clientes.

    Returns:
        CustomerBindingUseCases: QR, callback y bind / change-binding
    """
    return CustomerBindingUseCases(client, wecom, background_tasks)
