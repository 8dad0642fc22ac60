"""
Endpoints de vinculacion de clientes de Mingdao con contactos de WeCom.
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from app.application.dto.mingdao_dto import (
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
from app.application.use_cases.customer_binding_use_cases import CustomerBindingUseCases
from app.api.v1.dependencies.use_case_deps import get_customer_binding_use_cases
from app.core.config import settings
from app.domain.entities.directory import AddExternalContactEvent


router = APIRouter(prefix="/mingdao", tags=["Mingdao"])


@router.get("/qrcode", response_model=QRCodeResponseDTO)
async def get_contact_qrcode(
    staff_id: str = Query(..., description="userid del staff"),
    user_no: str = Query(..., description="row id del cliente en Mingdao"),
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Genera el QR "contactame" cuyo escaneo vincula al cliente indicado.
    """
    result = await use_cases.generate_contact_qrcode(staff_id, user_no)
    return QRCodeResponseDTO(**result)


@router.post("/callbacks/add-external-contact", response_model=CallbackResultDTO)
async def add_external_contact_callback(
    payload: AddExternalContactCallbackDTO,
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Callback "cliente agregado". Si el state es de un QR de Mingdao, el
    perfil se escribe en background.
    """
    event = AddExternalContactEvent(
        staff_id=payload.staff_id,
        external_user_id=payload.external_user_id,
        state=payload.state,
        tenant_id=settings.WECOM_CORP_ID,
    )
    return CallbackResultDTO(handled=use_cases.handle_add_customer_callback(event))


@router.post("/customers/{row_id}/bind")
async def bind_customer(
    row_id: str,
    payload: BindCustomerRequestDTO,
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Vincula el contacto externo al cliente. 409 si ya tiene uno.
    """
    await use_cases.bind_customer(row_id, payload.external_user_id, payload.staff_id)
    return {"success": True, "row_id": row_id}


@router.post("/customers/{row_id}/change-binding")
async def change_binding(
    row_id: str,
    payload: ChangeBindingRequestDTO,
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Mueve la vinculacion desde `old_row_id` al cliente `row_id`.
    """
    await use_cases.change_binding(payload.old_row_id, row_id, payload.external_user_id, payload.staff_id)
    return {"success": True, "row_id": row_id}


@router.get("/customers/match", response_model=CustomerMatchDTO)
async def match_customer(
    external_user_id: str = Query(..., min_length=1),
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Busca el cliente vinculado a un contacto externo.
    """
    row = await use_cases.find_customer_by_external_user_id(external_user_id)
    if row is None:
        return CustomerMatchDTO(matched=False)
    return CustomerMatchDTO(matched=True, row_id=row.row_id, fields=row.fields)


@router.get("/customers/search", response_model=CustomerSearchResultDTO)
async def search_customers(
    keyword: str = Query(..., min_length=1, description="Telefono o numero de cliente"),
    page_size: int = Query(10, description="Resultados por pagina"),
    page_index: int = Query(1, description="Pagina, desde 1"),
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Busca clientes por telefono o numero de cliente (coincidencia parcial).
    """
    page = await use_cases.search_customers(keyword, page_size, page_index)
    return CustomerSearchResultDTO(
        items=[CustomerDTO(row_id=row.row_id, fields=row.fields) for row in page.rows],
        total=page.total,
        page_index=page.page_index,
        page_size=page.page_size,
    )


@router.get("/customers/fields", response_model=List[CustomerFieldDTO])
async def list_customer_fields(
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Campos de la hoja de clientes que el sidebar puede mostrar.
    """
    fields = await use_cases.list_customer_fields()
    return [
        CustomerFieldDTO(field_id=f.field_id, name=f.name, type=f.type, alias=f.alias, options=f.options)
        for f in fields
    ]


@router.get("/customers/{row_id}", response_model=CustomerDTO)
async def get_customer(
    row_id: str,
    use_cases: CustomerBindingUseCases = Depends(get_customer_binding_use_cases),
):
    """
    Detalle de un cliente. 404 si la fila no existe.
    """
    row = await use_cases.get_customer(row_id)
    return CustomerDTO(row_id=row.row_id, fields=row.fields)
