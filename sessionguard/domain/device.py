"""
Contexto de dispositivo/red de una petición y captura de ubicación.

- `DeviceContext` lo produce un componente externo (parser de user-agent + geo-IP).
- La ubicación GPS es un parámetro explícito y etiquetado (`IPDerived` | `GPSProvided`):
  si el cliente envía coordenadas, éstas reemplazan la ubicación por IP solo para esa sesión.
"""
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

LOCAL_COUNTRY = "Local"
UNKNOWN_COUNTRY = "Unknown"
SENTINEL_COUNTRIES = frozenset({LOCAL_COUNTRY, UNKNOWN_COUNTRY})


class DeviceContext(BaseModel):
    device_name: str = "Unknown Device"
    browser: str = "Unknown Browser"
    os: str = "Unknown OS"
    ip_address: str
    user_agent: Optional[str] = None
    country: str = UNKNOWN_COUNTRY
    city: str = UNKNOWN_COUNTRY
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_source: Literal["ip", "gps"] = "ip"


class IPDerived(BaseModel):
    """Ubicación derivada de la IP (comportamiento por defecto)."""

    source: Literal["ip"] = "ip"


class GPSProvided(BaseModel):
    """Coordenadas GPS aportadas por el cliente."""

    source: Literal["gps"] = "gps"
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


LocationCapture = Annotated[Union[IPDerived, GPSProvided], Field(discriminator="source")]


def apply_location(device: DeviceContext, location: Optional[LocationCapture] = None) -> DeviceContext:
    """Devuelve una copia del contexto con la captura de ubicación aplicada."""
    if isinstance(location, GPSProvided):
        return device.model_copy(
            update={
                "latitude": location.latitude,
                "longitude": location.longitude,
                "location_source": "gps",
            }
        )
    return device.model_copy(update={"latitude": None, "longitude": None, "location_source": "ip"})
