"""
Resolución por defecto petición → DeviceContext.

El parseo real de user-agent y la geo-IP son colaboradores externos: se enchufan
sobreescribiendo la dependencia `get_device_context`. Este resolver solo extrae la IP
del cliente, guarda el user-agent en crudo y marca como `Local` las direcciones privadas.
"""
import ipaddress

from fastapi import Request

from sessionguard.domain.device import LOCAL_COUNTRY, UNKNOWN_COUNTRY, DeviceContext


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "0.0.0.0"


def _is_local(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return addr.is_private or addr.is_loopback


def get_device_context(request: Request) -> DeviceContext:
    ip = client_ip(request)
    where = LOCAL_COUNTRY if _is_local(ip) else UNKNOWN_COUNTRY
    return DeviceContext(
        ip_address=ip,
        user_agent=request.headers.get("user-agent", ""),
        country=where,
        city=where,
    )
