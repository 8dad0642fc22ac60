"""
Casos de uso de la aplicacion.
"""
from .directory_sync_use_cases import DirectorySyncUseCases, IncrementalSyncJob
from .directory_event_use_cases import DirectoryEventHandlers
from .customer_binding_use_cases import CustomerBindingUseCases

__all__ = ["DirectorySyncUseCases", "IncrementalSyncJob", "DirectoryEventHandlers", "CustomerBindingUseCases"]
