"""
=============================================================================
GAMIFICATION.PY — Motor de Puntos
=============================================================================
Gestiona:
  - Niveles de foco (low → zen) y sus tablas de valores
  - Duración de una actividad a partir de "HH:MM" de inicio y fin
  - Cálculo de los puntos ganados al completar una actividad

Todo lo de este archivo es CÁLCULO PURO: no toca la base de datos, no
guarda estado y se puede llamar desde cualquier hilo.

Matriz de cálculo (tipo × método):

                 │ multiplier                  │ fixed_points
  ───────────────┼─────────────────────────────┼──────────────────────────
  fixed          │ round(base × tabla[foco])   │ tabla[foco]  (o base)
  time_based     │ round(minutos × tabla[foco])│ tabla[foco]  (o 0)

Una etiqueta de foco desconocida NUNCA hace fallar el registro: se degrada
a "sin multiplicador" (1.0), o al valor base en fixed_points.
"""

import json
import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Optional, Union

from models import ActivityKind, FocusLevel, ScoringMethod

logger = logging.getLogger("focuspoints.gamification")


# =============================================================================
# ===================== NIVELES DE FOCO =======================================
# =============================================================================

FOCUS_LABELS = tuple(level.value for level in FocusLevel)
# ("low", "medium", "good", "zen") → en orden creciente de implicación

DEFAULT_FOCUS_TABLE = {
    "low": 0.5,      # x0.5
    "medium": 1.0,   # x1
    "good": 1.5,     # x1.5
    "zen": 2.0,      # x2
}

NEUTRAL_MULTIPLIER = 1.0


def normalize_label(raw) -> Optional[str]:
    """
    Convierte el foco recibido en el texto que se guarda en el registro.

    Cualquier valor no nulo se pasa a string (un número, por ejemplo un
    timestamp enviado por error, se guarda como "1735356260"). None sigue
    siendo None. Lo que no coincida con una etiqueta conocida se tratará
    luego como foco desconocido.

    Los valores JSON se escriben como en JSON: true → "true", 1.0 → "1",
    ["good"] → '["good"]'.
    """
    if raw is None:
        return None
    if isinstance(raw, FocusLevel):
        return raw.value
    if isinstance(raw, str):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, (bool, list, dict)):
        return json.dumps(raw, ensure_ascii=False)
    return str(raw)


def _lookup(focus_table, label: Optional[str]) -> Optional[float]:
    """Valor de la tabla para la etiqueta, o None si no es una etiqueta válida"""
    if label not in FOCUS_LABELS:
        return None
    if focus_table is None:
        focus_table = DEFAULT_FOCUS_TABLE

    if isinstance(focus_table, Mapping):
        value = focus_table.get(label)
    else:
        value = getattr(focus_table, label, None)

    if value is None:
        return None
    return float(value)


def resolve_value(focus_table, label: Optional[str]) -> float:
    """
    Devuelve tabla[label] si label es uno de los cuatro niveles y está en la
    tabla. En cualquier otro caso → 1.0 (como si no hubiera multiplicador).

    focus_table puede ser un dict o un objeto con atributos low/medium/good/zen.
    """
    value = _lookup(focus_table, label)
    return NEUTRAL_MULTIPLIER if value is None else value


def fractional_levels(focus_table) -> list[str]:
    """
    Niveles cuyo valor no es un número entero.

    En fixed_points la tabla se usa tal cual (sin redondear), así que una
    tabla válida para ese método tiene que devolver aquí una lista vacía.
    """
    labels = []
    for label in FOCUS_LABELS:
        value = _lookup(focus_table, label)
        if value is not None and not value.is_integer():
            labels.append(label)
    return labels


# =============================================================================
# ===================== DURACIÓN ==============================================
# =============================================================================
# Las horas se anclan a una fecha de referencia fija. Solo importa la hora:
# la fecha real del registro se guarda aparte.

REFERENCE_DATE = date(1970, 1, 1)

TimeInput = Union[str, time, datetime]


def parse_time_of_day(value: TimeInput) -> datetime:
    """
    "09:30" (o "09:30:15") → datetime(1970, 1, 1, 9, 30).

    Lanza ValueError si el texto no es una hora válida.
    """
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return datetime.combine(REFERENCE_DATE, value)

    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.combine(REFERENCE_DATE, datetime.strptime(text, fmt).time())
        except ValueError:
            continue
    raise ValueError(f"Hora no válida: {value!r} (formato esperado HH:MM)")


def round_half_up(value: float) -> int:
    """Redondeo al entero más cercano, .5 hacia arriba (2.5 → 3, no 2)"""
    return int(math.floor(value + 0.5))


def minutes_between(start: TimeInput, end: TimeInput) -> int:
    """
    Minutos enteros entre dos horas del MISMO día.

    No hay paso de medianoche: 23:00 → 01:00 da un valor negativo, y una
    actividad por tiempo con duración <= 0 vale 0 puntos.
    """
    delta = parse_time_of_day(end) - parse_time_of_day(start)
    return round_half_up(delta.total_seconds() / 60)


# =============================================================================
# ===================== CÁLCULO DE PUNTOS =====================================
# =============================================================================

def _value_of(field) -> str:
    """Acepta tanto el enum como su valor en texto (así se guarda en BD)"""
    return field.value if isinstance(field, (ActivityKind, ScoringMethod)) else field


def calculate_points(activity, focus_label: Optional[str], duration_minutes: Optional[int] = None) -> int:
    """
    Puntos ganados por una actividad con un nivel de foco.

    activity → cualquier objeto con kind, scoring_method, base_points y
               focus_levels (el modelo Activity o un ActivitySnapshot).
    focus_label → etiqueta ya normalizada (ver normalize_label).
    duration_minutes → solo para actividades por tiempo.

    Nunca lanza errores por una etiqueta rara y nunca devuelve negativos.
    """
    kind = _value_of(activity.kind)
    method = _value_of(activity.scoring_method)
    base_points = activity.base_points or 0
    table = activity.focus_levels

    if kind == ActivityKind.time_based.value:
        if duration_minutes is None or duration_minutes <= 0:
            logger.debug(f"Actividad por tiempo sin duración válida ({duration_minutes}) → 0 puntos")
            return 0

        if method == ScoringMethod.fixed_points.value:
            value = _lookup(table, focus_label)
            points = int(value) if value is not None else 0
            logger.debug(f"Por tiempo, puntos fijos: foco={focus_label} → {points}")
            return max(points, 0)

        multiplier = resolve_value(table, focus_label)
        points = round_half_up(duration_minutes * multiplier)
        logger.debug(f"Por tiempo: {duration_minutes} min × {multiplier} = {points}")
        return max(points, 0)

    # ── Actividad fija ──
    if method == ScoringMethod.fixed_points.value:
        value = _lookup(table, focus_label)
        points = int(value) if value is not None else base_points
        logger.debug(f"Fija, puntos fijos: foco={focus_label} → {points}")
        return max(points, 0)

    multiplier = resolve_value(table, focus_label)
    points = round_half_up(base_points * multiplier)
    logger.debug(f"Fija: {base_points} × {multiplier} = {points}")
    return max(points, 0)
