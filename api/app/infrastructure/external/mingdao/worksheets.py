"""
Configuracion estatica de hojas de Mingdao (aliases y mapeos de campos).

Aqui se controla:
- que hoja corresponde a cada tipo de entidad
- que campo de Mingdao recibe cada atributo del directorio
- como se transforma cada valor (desplegables, relaciones, adjuntos)

Este modulo no realiza I/O: solo define configuracion inmutable.
"""

from __future__ import annotations

from types import MappingProxyType

from .types import FieldMapping, WorksheetConfig, WorksheetKind
from .values import attachment_value, option_value, relation_value, text_value


# Prefijo del parametro state de los QR "contact way" emitidos para Mingdao
STATE_PREFIX = "mdy:"

# Aliases de hoja: unicos dentro de la app, estables entre entornos
CUSTOMER_WORKSHEET = "starclientinfo"
STAFF_WORKSHEET = "starstaffinfo"
DEPARTMENT_WORKSHEET = "stardeptinfo"


# Genero del directorio -> key de opcion en Mingdao
GENDER_OPTIONS = MappingProxyType({
    1: "27a67e42-741f-43a1-ac68-fa1a752f7373",  # masculino
    2: "2bbc0fe0-7cce-4764-9e62-806625a36283",  # femenino
})

# Estado del staff en el directorio -> key de opcion en Mingdao
STAFF_STATUS_ACTIVE = 1
STAFF_STATUS_DEPARTED = 2
STAFF_STATUS_OPTIONS = MappingProxyType({
    1: "03084068-0aa5-4c4a-9c6b-37a0d960a877",  # activo
    2: "7115d2e2-7d18-4881-b394-9181c395d691",  # baja (deshabilitado)
    4: "8acd41cf-2233-4f07-9af4-5f45e4d1cb8e",  # prueba (no activado)
    5: "7115d2e2-7d18-4881-b394-9181c395d691",  # baja (salio de la empresa)
})


DEPARTMENT_FIELDS = MappingProxyType({
    "departmentId": "69660ddb84223902b9ec7a72",  # campo titulo
    "departmentName": "69660ddb84223902b9ec7a73",
})

STAFF_FIELDS = MappingProxyType({
    "wecomStaffId": "wecom_staff_id",  # campo titulo
    "wecomUsername": "wecom_username",
    "wecomAvatar": "wecom_avatar",
    "gender": "gender",
    "phone": "phone",
    "email": "email",
    "wecomDepId": "wecom_dep_id",  # relacion con la hoja de departamentos
    "position": "position",
    "staffStatus": "staff_status",
})

# Campos del cliente que escribe el flujo de vinculacion con WeCom
CUSTOMER_FIELDS = MappingProxyType({
    "wecomStaffID": "wecomStaffID",
    "wechatName": "wechatName",
    "wechatGender": "wechatGender",  # 1=masculino, 2=femenino, 0=desconocido
    "wecomExternalUserid": "wecomExternalUserid",
    "wechatAvatar": "wechatAvatar",
    "wechatUnionId": "wechatUnionId",
    "wecomExternalProfile": "wecomExternalProfile",  # JSON
})

# Campos de busqueda del cliente desde el sidebar
CUSTOMER_PHONE_FIELD = "692f976f7001b729cd1c01c1"
CUSTOMER_NUMBER_FIELD = "693660e95326c71216b1b87a"

# Campos de WeCom que el sidebar nunca muestra (por alias o por ID)
CUSTOMER_HIDDEN_FIELDS = frozenset({
    *CUSTOMER_FIELDS.values(),
    "696610f93d7d0e60bca91d26",  # staff de WeCom
    "6966103cc62174e0bab32b9c",  # nombre de WeChat
    "6966103cc62174e0bab32b9d",  # genero de WeChat
    "6966103cc62174e0bab32b9e",  # external_userid
    "6966103cc62174e0bab32b9f",  # avatar
    "6966103cc62174e0bab32ba0",  # unionid
    "6966103cc62174e0bab32ba1",  # perfil externo JSON
    "696613717a7a413b01fc2036",  # QR embebido
})


DEPARTMENT_WORKSHEET_CONFIG = WorksheetConfig(
    kind=WorksheetKind.DEPARTMENT,
    worksheet=DEPARTMENT_WORKSHEET,
    external_id_key="departmentId",
    mappings=[
        FieldMapping("departmentId", DEPARTMENT_FIELDS["departmentId"], transform=text_value),
        FieldMapping("departmentName", DEPARTMENT_FIELDS["departmentName"], transform=text_value),
    ],
)

STAFF_WORKSHEET_CONFIG = WorksheetConfig(
    kind=WorksheetKind.STAFF,
    worksheet=STAFF_WORKSHEET,
    external_id_key="wecomStaffId",
    mappings=[
        FieldMapping("wecomStaffId", STAFF_FIELDS["wecomStaffId"], transform=text_value),
        FieldMapping("wecomUsername", STAFF_FIELDS["wecomUsername"], transform=text_value),
        FieldMapping("wecomAvatar", STAFF_FIELDS["wecomAvatar"], transform=attachment_value),
        FieldMapping("gender", STAFF_FIELDS["gender"], transform=option_value(GENDER_OPTIONS)),
        FieldMapping("phone", STAFF_FIELDS["phone"], transform=text_value),
        FieldMapping("email", STAFF_FIELDS["email"], transform=text_value),
        FieldMapping("wecomDepId", STAFF_FIELDS["wecomDepId"], transform=relation_value),
        FieldMapping("position", STAFF_FIELDS["position"], transform=text_value),
        FieldMapping("staffStatus", STAFF_FIELDS["staffStatus"], transform=option_value(STAFF_STATUS_OPTIONS)),
    ],
)

CUSTOMER_WORKSHEET_CONFIG = WorksheetConfig(
    kind=WorksheetKind.CUSTOMER,
    worksheet=CUSTOMER_WORKSHEET,
    external_id_key="wecomExternalUserid",
    mappings=[FieldMapping(key, field_id) for key, field_id in CUSTOMER_FIELDS.items()],
)

WORKSHEET_CONFIGS = MappingProxyType({
    WorksheetKind.DEPARTMENT: DEPARTMENT_WORKSHEET_CONFIG,
    WorksheetKind.STAFF: STAFF_WORKSHEET_CONFIG,
    WorksheetKind.CUSTOMER: CUSTOMER_WORKSHEET_CONFIG,
})

# Atributo de staff que contiene los IDs externos de departamento
STAFF_DEPARTMENT_LINK_KEY = "wecomDepId"
