"""
DTOs de la vinculacion de clientes de Mingdao con WeCom.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QRCodeResponseDTO(BaseModel):
    """QR "contactame" generado para un cliente."""

    qr_code: str = Field(..., description="URL de la imagen del QR")
    config_id: str = Field(..., description="config_id del contact way en WeCom")
    state: str = Field(..., description="state enviado a WeCom")


class BindCustomerRequestDTO(BaseModel):
    external_user_id: str = Field(..., min_length=1, description="external_userid del contacto")
    staff_id: str = Field("", description="userid del staff que atiende al cliente")


class ChangeBindingRequestDTO(BaseModel):
    old_row_id: str = Field(..., min_length=1, description="Cliente vinculado actualmente")
    external_user_id: str = Field(..., min_length=1, description="external_userid del contacto")
    staff_id: str = Field("", description="userid del staff que atiende al cliente")


class AddExternalContactCallbackDTO(BaseModel):
    """Callback "cliente agregado" ya descifrado."""

    staff_id: str = Field(..., description="UserID del staff")
    external_user_id: str = Field(..., description="ExternalUserID del contacto")
    state: str = Field("", description="State del contact way")


class CallbackResultDTO(BaseModel):
    handled: bool = Field(..., description="True si el evento vino de un QR de Mingdao")


class CustomerMatchDTO(BaseModel):
    matched: bool
    row_id: Optional[str] = None
    fields: Dict[str, Any] = Field(default_factory=dict)


class CustomerDTO(BaseModel):
    """Cliente tal como lo ve el sidebar (sin campos de WeCom)."""

    row_id: str
    fields: Dict[str, Any] = Field(default_factory=dict)


class CustomerSearchResultDTO(BaseModel):
    items: List[CustomerDTO]
    total: int
    page_index: int
    page_size: int


class CustomerFieldDTO(BaseModel):
    field_id: str
    name: str
    type: Optional[Any] = None
    alias: str = ""
    options: List[Dict[str, Any]] = Field(default_factory=list)
