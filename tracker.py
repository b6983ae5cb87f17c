"""
=============================================================================
TRACKER.PY — Servicios del Motor de Puntos
=============================================================================
Gestiona:
  - Categorías de puntos y sus benchmarks
  - Actividades (crear, actualizar, listar, borrar con o sin cascada)
  - Registro de actividades completadas (calcula y congela los puntos)
  - Agregados: puntos por categoría, por día/semana/mes, actividad reciente

Todas las funciones reciben el user_id YA AUTENTICADO (nunca uno que venga
del cliente) y lanzan errores de errors.py. main.py se encarga de HTTP.

Nada de aquí reintenta: si la BD falla, se hace rollback, se registra el
error y se devuelve InternalFault al que llama.
"""

import logging
from calendar import monthrange
from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from errors import Conflict, InternalFault, InvalidRequest, NotFound
from gamification import (
    calculate_points, fractional_levels, minutes_between, normalize_label,
    parse_time_of_day
)
from models import (
    Activity, ActivityKind, Benchmark, Insight, LoggedActivity, PointCategory,
    ScoringMethod
)
from schemas import ActivityCreate, BenchmarkCreate, CategoryCreate

logger = logging.getLogger("focuspoints.tracker")

DEFAULT_CATEGORY_COLOR = "#3b82f6"


def _commit(db: Session, conflict_message: Optional[str] = None, not_found_message: Optional[str] = None):
    """
    Confirma la transacción de la sesión.

    Si falla → rollback (no queda nada a medias). Un error de integridad se
    traduce en Conflict (choca un nombre único) o en NotFound (la fila
    padre desapareció antes del commit) cuando el que llama lo indica; el
    resto de errores de BD se ocultan tras InternalFault.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if conflict_message:
            raise Conflict(conflict_message)
        if not_found_message:
            logger.warning(f"⚠️ Integridad rota al confirmar: {not_found_message}")
            raise NotFound(not_found_message)
        logger.exception("❌ Error de integridad en la BD")
        raise InternalFault()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("❌ Error de BD al confirmar la transacción")
        raise InternalFault()


def _get_owned_category(db: Session, user_id: int, category_id: int) -> PointCategory:
    category = db.query(PointCategory).filter(
        PointCategory.id == category_id, PointCategory.user_id == user_id
    ).first()
    if not category:
        raise NotFound("Categoría no encontrada")
    return category


def _get_owned_activity(db: Session, user_id: int, activity_id: int) -> Activity:
    # Una actividad de otro usuario es indistinguible de una que no existe
    activity = db.query(Activity).filter(
        Activity.id == activity_id, Activity.user_id == user_id
    ).first()
    if not activity:
        raise NotFound("Actividad no encontrada")
    return activity


# =============================================================================
# ===================== CATEGORÍAS ============================================
# =============================================================================

def create_category(db: Session, user_id: int, data: CategoryCreate) -> PointCategory:
    """Crea una categoría. El nombre es obligatorio y único por usuario."""
    name = (data.name or "").strip()
    if not name:
        raise InvalidRequest("El nombre es obligatorio")

    existing = db.query(PointCategory).filter(
        PointCategory.user_id == user_id, PointCategory.name == name
    ).first()
    if existing:
        raise Conflict("Ya existe una categoría con este nombre")

    category = PointCategory(
        user_id=user_id,
        name=name,
        description=data.description,
        color=data.color or DEFAULT_CATEGORY_COLOR,
    )
    db.add(category)
    _commit(db, "Ya existe una categoría con este nombre")
    db.refresh(category)

    logger.info(f"📁 Categoría creada: {category.name} (user: {user_id})")
    return category


def add_benchmark(db: Session, user_id: int, category_id: int, data: BenchmarkCreate) -> Benchmark:
    """Añade un umbral de puntos a una categoría del usuario"""
    category = _get_owned_category(db, user_id, category_id)

    benchmark = Benchmark(
        point_category_id=category.id,
        name=data.name,
        points_required=data.points_required,
        description=data.description,
    )
    db.add(benchmark)
    _commit(db)
    db.refresh(benchmark)
    return benchmark


# =============================================================================
# ===================== ACTIVIDADES ===========================================
# =============================================================================

def _validate_definition(data: ActivityCreate):
    """Comprobaciones comunes a crear y actualizar (antes de escribir nada)"""
    if not (data.name or "").strip() or data.point_category_id is None:
        raise InvalidRequest("El nombre y la categoría son obligatorios")

    if data.kind == ActivityKind.fixed and not data.base_points:
        raise InvalidRequest("Las actividades fijas necesitan puntos base")

    if data.focus_levels is None:
        raise InvalidRequest("Los niveles de foco son obligatorios")

    valid_methods = [m.value for m in ScoringMethod]
    if data.scoring_method not in valid_methods:
        raise InvalidRequest("Método de puntuación no válido (multiplier o fixed_points)")

    if data.scoring_method == ScoringMethod.fixed_points.value:
        fractional = fractional_levels(data.focus_levels)
        if fractional:
            raise InvalidRequest(f"Con fixed_points los puntos deben ser enteros ({', '.join(fractional)})")


def _apply_definition(activity: Activity, data: ActivityCreate):
    activity.name = data.name.strip()
    activity.description = data.description or None
    activity.point_category_id = data.point_category_id
    activity.kind = data.kind.value
    activity.scoring_method = data.scoring_method
    # Las actividades por tiempo no usan base_points
    activity.base_points = data.base_points if data.kind == ActivityKind.fixed else 0
    activity.focus_levels = data.focus_levels.model_dump()


def _check_unique_name(db: Session, user_id: int, data: ActivityCreate, exclude_id: Optional[int] = None):
    query = db.query(Activity).filter(
        Activity.user_id == user_id,
        Activity.point_category_id == data.point_category_id,
        Activity.name == data.name.strip(),
    )
    if exclude_id is not None:
        query = query.filter(Activity.id != exclude_id)
    if query.first():
        raise Conflict("Ya existe una actividad con este nombre en esta categoría")


def create_activity(db: Session, user_id: int, data: ActivityCreate) -> Activity:
    """
    Crea una actividad.

    Orden de comprobaciones:
      1. Campos obligatorios y método de puntuación → InvalidRequest
      2. La categoría es del usuario → NotFound
      3. Nombre único en (usuario, categoría) → Conflict
    """
    _validate_definition(data)
    _get_owned_category(db, user_id, data.point_category_id)
    _check_unique_name(db, user_id, data)

    activity = Activity(user_id=user_id)
    _apply_definition(activity, data)
    db.add(activity)
    _commit(db, "Ya existe una actividad con este nombre en esta categoría")
    db.refresh(activity)

    logger.info(f"➕ Actividad creada: {activity.name} ({activity.kind}/{activity.scoring_method}, user: {user_id})")
    return activity


def update_activity(db: Session, user_id: int, activity_id: int, data: ActivityCreate) -> Activity:
    """
    Reemplaza la definición de una actividad.

    Los registros ya existentes NO se tocan: sus puntos se quedan como se
    calcularon en su momento.
    """
    _validate_definition(data)
    activity = _get_owned_activity(db, user_id, activity_id)
    if data.point_category_id != activity.point_category_id:
        _get_owned_category(db, user_id, data.point_category_id)
    _check_unique_name(db, user_id, data, exclude_id=activity.id)

    _apply_definition(activity, data)
    _commit(db, "Ya existe una actividad con este nombre en esta categoría")
    db.refresh(activity)

    logger.info(f"✏️ Actividad actualizada: {activity.name} (user: {user_id})")
    return activity


def list_activities(db: Session, user_id: int, category_id: Optional[int]) -> list[dict]:
    """Actividades de una categoría, por nombre, con cuántas veces se registraron"""
    if category_id is None:
        raise InvalidRequest("La categoría es obligatoria")

    counts = dict(
        db.query(LoggedActivity.activity_id, func.count(LoggedActivity.id))
        .join(Activity, LoggedActivity.activity_id == Activity.id)
        .filter(Activity.user_id == user_id, Activity.point_category_id == category_id)
        .group_by(LoggedActivity.activity_id)
        .all()
    )

    activities = (
        db.query(Activity)
        .options(joinedload(Activity.point_category))
        .filter(Activity.user_id == user_id, Activity.point_category_id == category_id)
        .order_by(Activity.name)
        .all()
    )
    return [
        {"activity": activity, "logged_activities_count": counts.get(activity.id, 0)}
        for activity in activities
    ]


def delete_activity(db: Session, user_id: int, activity_id: int, cascade_logs: bool = False) -> int:
    """
    Borra una actividad. Devuelve cuántos registros se borraron con ella.

    cascade_logs=False y hay registros → Conflict (no se borra nada).
    cascade_logs=True → registros + insights + actividad en UNA transacción:
    si algo falla, rollback y todo sigue como estaba.
    """
    activity = _get_owned_activity(db, user_id, activity_id)

    deleted_logs = 0
    try:
        if cascade_logs:
            deleted_logs = db.query(LoggedActivity).filter(
                LoggedActivity.activity_id == activity.id
            ).delete(synchronize_session=False)
        else:
            logged_count = db.query(LoggedActivity).filter(
                LoggedActivity.activity_id == activity.id
            ).count()
            if logged_count > 0:
                raise Conflict(
                    "No se puede borrar una actividad con registros. "
                    "Borra antes los registros o usa deleteLoggedActivities=true."
                )

        db.query(Insight).filter(
            Insight.activity_id == activity.id
        ).delete(synchronize_session=False)
        db.delete(activity)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"❌ Error borrando la actividad {activity_id}")
        raise InternalFault()

    _commit(db)
    logger.info(f"🗑️ Actividad borrada: {activity_id} (registros borrados: {deleted_logs}, user: {user_id})")
    return deleted_logs


# =============================================================================
# ===================== REGISTRO DE ACTIVIDADES ===============================
# =============================================================================

def log_activity(
    db: Session,
    user_id: int,
    activity_id: Optional[int],
    log_date: Optional[date],
    focus_label_raw=None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    notes: Optional[str] = None,
) -> LoggedActivity:
    """
    Registra UNA actividad completada y devuelve el registro creado.

    Flujo:
      1. activity_id y fecha obligatorios → InvalidRequest
      2. La actividad es del usuario → NotFound
      3. Duración solo si hay inicio Y fin
      4. Puntos = calculate_points(actividad, foco normalizado, duración)
      5. Se guarda el registro con los puntos CONGELADOS

    Sin reintentos: un envío duplicado crea dos registros (es cosa de la UI).
    """
    if activity_id is None or log_date is None:
        raise InvalidRequest("La actividad y la fecha son obligatorias")

    activity = db.query(Activity).options(joinedload(Activity.point_category)).filter(
        Activity.id == activity_id, Activity.user_id == user_id
    ).first()
    if not activity:
        raise NotFound("Actividad no encontrada")

    try:
        start_dt = parse_time_of_day(start_time) if start_time else None
        end_dt = parse_time_of_day(end_time) if end_time else None
    except ValueError as e:
        raise InvalidRequest(str(e))

    duration = minutes_between(start_dt, end_dt) if start_dt and end_dt else None

    focus_label = normalize_label(focus_label_raw)
    points = calculate_points(activity, focus_label, duration)

    logged = LoggedActivity(
        user_id=user_id,
        activity_id=activity.id,
        date=log_date,
        start_time=start_dt,
        end_time=end_dt,
        focus_level=focus_label,
        notes=notes or None,
        points_earned=points,
    )
    db.add(logged)
    # Si otra petición borró la actividad entre la consulta y el commit,
    # la FK rechaza el INSERT: para el cliente la actividad ya no existe
    _commit(db, not_found_message="Actividad no encontrada")
    db.refresh(logged)

    logger.info(
        f"✅ Actividad registrada: {activity.name} foco={focus_label} "
        f"duración={duration} → {points} puntos (user: {user_id})"
    )
    return logged


# =============================================================================
# ===================== AGREGADOS =============================================
# =============================================================================

def _points_by_category(db: Session, user_id: int, category_ids: list[int]) -> dict[int, int]:
    """
    Suma de points_earned por categoría con UNA sola consulta.
    Solo se proyectan (puntos, categoría); la suma se hace en memoria.
    """
    if not category_ids:
        return {}

    rows = (
        db.query(LoggedActivity.points_earned, Activity.point_category_id)
        .join(Activity, LoggedActivity.activity_id == Activity.id)
        .filter(
            LoggedActivity.user_id == user_id,
            Activity.point_category_id.in_(category_ids),
        )
        .all()
    )

    totals = defaultdict(int)
    for points_earned, category_id in rows:
        totals[category_id] += points_earned or 0
    return totals


def _user_categories(db: Session, user_id: int) -> list[PointCategory]:
    return (
        db.query(PointCategory)
        .options(selectinload(PointCategory.benchmarks))
        .filter(PointCategory.user_id == user_id)
        .order_by(PointCategory.created_at, PointCategory.id)
        .all()
    )


def _benchmark_status(category: PointCategory, total: int) -> list[dict]:
    return [
        {
            "id": b.id,
            "name": b.name,
            "points_required": b.points_required,
            "description": b.description,
            "achieved": total >= b.points_required,
        }
        for b in sorted(category.benchmarks, key=lambda b: b.points_required)
    ]


def aggregate_by_category(db: Session, user_id: int) -> dict:
    """
    Puntos totales por categoría (de los points_earned guardados, sin
    recalcular nada) y estado de cada benchmark.

    Retorna:
      {
        "categories": {1: {"total_points": 322, "benchmarks": [...]},
                       2: {"total_points": 0, "benchmarks": []}},
        "total_points": 322
      }
    """
    categories = _user_categories(db, user_id)
    totals = _points_by_category(db, user_id, [c.id for c in categories])

    result = {}
    for category in categories:
        total = totals.get(category.id, 0)
        result[category.id] = {
            "total_points": total,
            "benchmarks": _benchmark_status(category, total),
        }

    return {
        "categories": result,
        "total_points": sum(c["total_points"] for c in result.values()),
    }


def list_categories_with_stats(db: Session, user_id: int) -> dict:
    """aggregate_by_category + los datos que pinta el dashboard (nombre, color, nº de actividades)"""
    summary = aggregate_by_category(db, user_id)
    category_ids = list(summary["categories"])
    if not category_ids:
        return {"categories": [], "total_points": 0}

    categories = {
        c.id: c for c in db.query(PointCategory).filter(PointCategory.id.in_(category_ids)).all()
    }
    activity_counts = dict(
        db.query(Activity.point_category_id, func.count(Activity.id))
        .filter(Activity.user_id == user_id, Activity.point_category_id.in_(category_ids))
        .group_by(Activity.point_category_id)
        .all()
    )

    items = []
    for category_id, stats in summary["categories"].items():
        category = categories[category_id]
        items.append({
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "color": category.color,
            "points": stats["total_points"],
            "benchmarks": stats["benchmarks"],
            "activity_count": activity_counts.get(category_id, 0),
        })

    return {
        "categories": items,
        "total_points": summary["total_points"],
    }


def recent_activity(db: Session, user_id: int, limit: int = 10) -> list[dict]:
    """Últimos registros del usuario con el nombre y color de su categoría"""
    logs = (
        db.query(LoggedActivity)
        .options(joinedload(LoggedActivity.activity).joinedload(Activity.point_category))
        .filter(LoggedActivity.user_id == user_id)
        .order_by(LoggedActivity.date.desc(), LoggedActivity.created_at.desc(), LoggedActivity.id.desc())
        .limit(limit)
        .all()
    )

    return [
        {
            "id": log.id,
            "type": "activity",
            "name": log.activity.name,
            "points": log.points_earned,
            "category_name": log.activity.point_category.name,
            "category_color": log.activity.point_category.color,
            "date": log.date,
            "time": log.start_time.strftime("%H:%M") if log.start_time else None,
        }
        for log in logs
    ]


def _day_range(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def aggregate_by_period(db: Session, user_id: int, today: Optional[date] = None) -> dict:
    """
    Puntos por día para: semana actual, semana anterior, mes actual y mes
    anterior. Las semanas empiezan en lunes. Los días sin registros valen 0.
    """
    today = today or date.today()

    week_start = today - timedelta(days=today.weekday())
    prev_week_start = week_start - timedelta(days=7)
    month_start = today.replace(day=1)
    prev_month_end = month_start - timedelta(days=1)
    prev_month_start = prev_month_end.replace(day=1)
    month_end = today.replace(day=monthrange(today.year, today.month)[1])

    periods = {
        "current_week": (week_start, week_start + timedelta(days=6)),
        "previous_week": (prev_week_start, week_start - timedelta(days=1)),
        "current_month": (month_start, month_end),
        "previous_month": (prev_month_start, prev_month_end),
    }

    first_day = min(start for start, _ in periods.values())
    last_day = max(end for _, end in periods.values())

    rows = (
        db.query(LoggedActivity.date, LoggedActivity.points_earned)
        .filter(
            LoggedActivity.user_id == user_id,
            LoggedActivity.date >= first_day,
            LoggedActivity.date <= last_day,
        )
        .all()
    )

    by_day = defaultdict(int)
    for log_date, points_earned in rows:
        by_day[log_date] += points_earned or 0

    return {
        name: [{"date": day, "points": by_day.get(day, 0)} for day in _day_range(start, end)]
        for name, (start, end) in periods.items()
    }
