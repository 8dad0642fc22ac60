"""
Servicios de aplicacion.

Contiene la logica de negocio reutilizable que no pertenece
a un caso de uso especifico.
"""
from app.application.services.background_tasks import BackgroundTaskRunner, background_tasks
from app.application.services.identity_resolver import UpsertEngine, build_fields
from app.application.services.reference_resolver import ReferenceResolver
from app.application.services.retry_controller import RetryController, backoff_delay

__all__ = [
    # Tareas en background
    "BackgroundTaskRunner",
    "background_tasks",
    # Upsert hacia Mingdao
    "UpsertEngine",
    "build_fields",
    "ReferenceResolver",
    # Reintentos
    "RetryController",
    "backoff_delay",
]
