"""
Reloj y duraciones del servicio.

- Todas las fechas persistidas son UTC *naive* (lo que devuelve pymongo por defecto).
- Las duraciones siguen la gramática `<entero><unidad>` con unidad s|m|h|d.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}


def utcnow() -> datetime:
    """Hora actual en UTC sin tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(dt: datetime) -> datetime:
    # Normaliza fechas aware a UTC naive para comparar con lo guardado en Mongo
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_duration(value: str | None, default: timedelta) -> timedelta:
    """Convierte "15m", "7d", "24h"... en timedelta.

    Si el formato no se reconoce devuelve `default` (no lanza).
    """
    m = _DURATION_RE.match((value or "").strip())
    if not m:
        return default
    amount, unit = m.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])
