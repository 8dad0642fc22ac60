"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .directory_sync_dto import DirectoryChangeEventDTO, PassSummaryDTO, SyncStartedDTO
from .mingdao_dto import (
    AddExternalContactCallbackDTO,
    BindCustomerRequestDTO,
    CallbackResultDTO,
    ChangeBindingRequestDTO,
    CustomerDTO,
    CustomerFieldDTO,
    CustomerMatchDTO,
    CustomerSearchResultDTO,
    QRCodeResponseDTO,
)

__all__ = [
    "DirectoryChangeEventDTO",
    "PassSummaryDTO",
    "SyncStartedDTO",
    "AddExternalContactCallbackDTO",
    "BindCustomerRequestDTO",
    "CallbackResultDTO",
    "ChangeBindingRequestDTO",
    "CustomerDTO",
    "CustomerFieldDTO",
    "CustomerMatchDTO",
    "CustomerSearchResultDTO",
    "QRCodeResponseDTO",
]
