"""
Heurística de login sospechoso por país y rango de IP.

Es intencionalmente gruesa: compara el país contra los conocidos y la IP por
prefijo /24 (primeros tres octetos IPv4; cualquier otra dirección por igualdad exacta).
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from sessionguard.domain.device import SENTINEL_COUNTRIES


@dataclass(frozen=True)
class SuspiciousCheck:
    is_suspicious: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class KnownLocationUpdate:
    country: Optional[str] = None
    ip_address: Optional[str] = None


def is_same_ip_range(ip1: str, ip2: str) -> bool:
    parts1 = ip1.split(".")
    parts2 = ip2.split(".")
    if len(parts1) != 4 or len(parts2) != 4:
        return ip1 == ip2
    return parts1[:3] == parts2[:3]


def _is_known_range(known_ips: Iterable[str], ip_address: str) -> bool:
    return any(is_same_ip_range(ip, ip_address) for ip in known_ips)


def check_suspicious_login(
    known_countries: Iterable[str],
    known_ips: Iterable[str],
    country: Optional[str],
    ip_address: Optional[str],
) -> SuspiciousCheck:
    """Clasifica un login contra la línea base del usuario.

    Sin países ni IPs conocidas (cuenta nueva o reseteada) nunca es sospechoso:
    ese login establece la línea base.
    """
    countries = list(known_countries or [])
    ips = list(known_ips or [])
    if not countries and not ips:
        return SuspiciousCheck(False)

    if country and country not in SENTINEL_COUNTRIES:
        if countries and country not in countries:
            return SuspiciousCheck(True, f"new country: {country}")

    if ip_address and ips and not _is_known_range(ips, ip_address):
        return SuspiciousCheck(True, f"new IP range: {ip_address}")

    return SuspiciousCheck(False)


def known_location_updates(
    known_countries: Iterable[str],
    known_ips: Iterable[str],
    country: Optional[str],
    ip_address: Optional[str],
) -> KnownLocationUpdate:
    """Qué agregar a los conjuntos conocidos tras un login no sospechoso."""
    countries = list(known_countries or [])
    new_country = None
    if country and country not in SENTINEL_COUNTRIES and country not in countries:
        new_country = country
    new_ip = None
    if ip_address and not _is_known_range(known_ips or [], ip_address):
        new_ip = ip_address
    return KnownLocationUpdate(country=new_country, ip_address=new_ip)
