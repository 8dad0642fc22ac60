"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI
from loguru import logger

from app.api.v1.dependencies.repository_deps import close_clients, get_record_store_client, get_wecom_client
from app.api.v1.dependencies.use_case_deps import get_directory_sync_use_cases, get_incremental_sync_job
from app.application.services.background_tasks import background_tasks
from app.application.use_cases.customer_binding_use_cases import CustomerBindingUseCases
from app.core.config import settings
from app.infrastructure.database.session import init_db, close_db


INCREMENTAL_SYNC_JOB_ID = "directory_incremental_sync"


async def run_incremental_sync_job() -> None:
    """Job del scheduler: una pasada incremental para el tenant configurado."""
    try:
        sync = get_directory_sync_use_cases(get_record_store_client())
    except Exception as e:
        logger.error(f"No se pudo construir la sync incremental: {e}")
        return
    await get_incremental_sync_job(sync).run(settings.WECOM_CORP_ID)


def _build_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_incremental_sync_job,
        trigger=IntervalTrigger(minutes=settings.DIRECTORY_SYNC_INTERVAL_MINUTES),
        id=INCREMENTAL_SYNC_JOB_ID,
        name="Sync incremental WeCom -> Mingdao",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler


async def _check_worksheet_mappings() -> None:
    use_cases = CustomerBindingUseCases(get_record_store_client(), get_wecom_client(), background_tasks)
    missing = await use_cases.verify_worksheet_mappings()
    if not missing:
        logger.info("Mapeo de hojas de Mingdao verificado contra el esquema")


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.
    
    Args:
        app: Instancia de FastAPI
        
    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Configurar logging adicional
            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            # Validar configuracion critica
            _validate_config()

            # Inicializar base de datos (crea tablas si no existen)
            await init_db()
            logger.info("Base de datos inicializada")

            app.state.scheduler = None
            if settings.directory_sync_enabled:
                scheduler = _build_scheduler()
                scheduler.start()
                app.state.scheduler = scheduler
                logger.info(
                    f"Sync incremental programada cada {settings.DIRECTORY_SYNC_INTERVAL_MINUTES} minutos"
                )

                background_tasks.spawn(_check_worksheet_mappings(), name="mingdao-mapping-check")
            else:
                logger.info("Sync de directorio deshabilitada; scheduler no iniciado")

            logger.success("Aplicacion iniciada correctamente")

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise
    
    return startup


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.mingdao_configured:
        warnings.append("MINGDAO_APP_KEY / MINGDAO_SIGN no configuradas - Mingdao no funcionara")
    if not settings.WECOM_CORP_ID or not settings.WECOM_CONTACT_SECRET:
        warnings.append("WECOM_CORP_ID / WECOM_CONTACT_SECRET no configuradas - QR y bind no funcionaran")
    if settings.MINGDAO_ENABLE_STAFF_SYNC and not settings.mingdao_configured:
        warnings.append("MINGDAO_ENABLE_STAFF_SYNC activo sin credenciales - la sync queda deshabilitada")

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.
    
    Args:
        app: Instancia de FastAPI
        
    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("Scheduler detenido")

        cancelled = await background_tasks.cancel_all()
        logger.info(f"Tareas en background canceladas: {cancelled}")

        await close_clients()
        logger.info("Clientes externos cerrados")

        # Cerrar conexiones de base de datos
        await close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")
    
    return shutdown
