"""
=============================================================================
ERRORS.PY — Errores del Dominio
=============================================================================
Los servicios (tracker.py) lanzan estos errores; main.py los convierte en
respuestas JSON {"detail": "..."} con el código HTTP de cada uno.

  InvalidRequest → 400  Faltan campos o valores no válidos
  NotFound       → 404  No existe O no es del usuario (no se distingue)
  Conflict       → 409  Nombre duplicado / borrado bloqueado por registros
  InternalFault  → 500  Fallo inesperado de la BD (sin detalles internos)

El 401 (no autenticado) lo produce auth.py, no el motor.
"""

from fastapi import status


class TrackerError(Exception):
    """Base de todos los errores del motor de puntos"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(TrackerError):
    status_code = status.HTTP_409_CONFLICT


class InternalFault(TrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
