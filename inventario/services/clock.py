# ==============================================================================
# RELOJ E IDENTIFICADORES
# ==============================================================================
# Puertos inyectables para la hora actual y la generación de ids.
# En producción: SystemClock + UuidIdGenerator.
# En pruebas: reemplazar por implementaciones deterministas.
# ==============================================================================

import uuid
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


def format_iso(dt: datetime) -> str:
    """ISO-8601 UTC con milisegundos y sufijo Z (2024-01-01T10:00:00.000Z)."""
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@runtime_checkable
class Clock(Protocol):
    def now_iso(self) -> str:
        ...


@runtime_checkable
class IdGenerator(Protocol):
    def new_id(self) -> str:
        ...


class SystemClock:
    """Hora real del sistema en UTC."""

    def now_iso(self) -> str:
        return format_iso(datetime.now(timezone.utc))


class UuidIdGenerator:
    """Ids opacos basados en uuid4."""

    def new_id(self) -> str:
        return uuid.uuid4().hex
