"""
Endpoints de sincronizacion del directorio WeCom -> Mingdao.
"""
from fastapi import APIRouter, Depends, status

from app.application.dto.directory_sync_dto import (
    DirectoryChangeEventDTO,
    PassSummaryDTO,
    SyncStartedDTO,
)
from app.application.services.background_tasks import background_tasks
from app.application.use_cases.directory_event_use_cases import DirectoryEventHandlers
from app.application.use_cases.directory_sync_use_cases import DirectorySyncUseCases, IncrementalSyncJob
from app.api.v1.dependencies.use_case_deps import (
    get_directory_event_handlers,
    get_directory_sync_use_cases,
    get_incremental_sync_job,
)
from app.core.config import settings
from app.domain.entities.directory import EntityKind


router = APIRouter(prefix="/directory-sync", tags=["Directory Sync"])


@router.post("/full", response_model=SyncStartedDTO, status_code=status.HTTP_202_ACCEPTED)
async def start_full_sync(
    sync: DirectorySyncUseCases = Depends(get_directory_sync_use_cases),
):
    """
    Lanza en background la sincronizacion completa del tenant configurado.
    """
    if not sync.is_enabled:
        return SyncStartedDTO(accepted=False, message="Sincronizacion de directorio deshabilitada")

    background_tasks.spawn(sync.full_sync(settings.WECOM_CORP_ID), name="directory-full-sync")
    return SyncStartedDTO(accepted=True, message="Full sync iniciada")


@router.post("/incremental", response_model=PassSummaryDTO)
async def run_incremental_sync(
    job: IncrementalSyncJob = Depends(get_incremental_sync_job),
):
    """
    Ejecuta ahora una pasada del job programado (mismo lock y cursor).
    """
    summary = await job.run(settings.WECOM_CORP_ID)
    return PassSummaryDTO.from_summary(summary)


@router.post("/events", response_model=SyncStartedDTO, status_code=status.HTTP_202_ACCEPTED)
async def receive_directory_event(
    payload: DirectoryChangeEventDTO,
    handlers: DirectoryEventHandlers = Depends(get_directory_event_handlers),
):
    """
    Recibe un cambio de staff/departamento ya descifrado del callback de WeCom.
    """
    event = payload.to_event(settings.WECOM_CORP_ID)
    if event.kind is EntityKind.DEPARTMENT:
        task = handlers.on_department_changed(event)
    else:
        task = handlers.on_staff_changed(event)

    if task is None:
        return SyncStartedDTO(accepted=False, message="Evento ignorado")
    return SyncStartedDTO(accepted=True, message=f"Sync de {event.kind.value} {event.external_id} en curso")
