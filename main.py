"""
=============================================================================
MAIN.PY — La API de FocusPoints
=============================================================================
Endpoints REST del motor de puntos.

Organización por secciones:
  1. CATEGORÍAS   → Crear, listar con puntos y benchmarks
  2. ACTIVIDADES  → CRUD de actividades (borrado con cascada opcional)
  3. REGISTRO     → Registrar una actividad completada
  4. PUNTOS       → Calcular puntos sin guardar (preview)
  5. DASHBOARD    → Actividad reciente, puntos por día/semana/mes

Toda la lógica está en tracker.py y gamification.py; aquí solo se traduce
HTTP ⇄ servicios y errores del dominio ⇄ códigos de estado.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import tracker
from auth import get_current_user
from database import get_db, init_db
from errors import InvalidRequest, TrackerError
from gamification import calculate_points, fractional_levels, minutes_between, normalize_label
from models import ScoringMethod, User
from schemas import (
    ActivityCreate, ActivityResponse, ActivityUpdate, ActivityWithCount,
    BenchmarkCreate, BenchmarkResponse, CategoryCreate, CategoryResponse,
    LogActivityResult, LoggedActivityCreate, PeriodData, PointCategoriesResponse,
    PointsPreviewRequest, PointsPreviewResponse, RecentActivityResponse
)

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
)
logger = logging.getLogger("focuspoints.api")


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN (Arranque y apagado)
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Al arrancar: crear las tablas si no existen"""
    logger.info("🚀 Arrancando FocusPoints...")
    init_db()
    logger.info("✅ Base de datos inicializada")

    yield

    logger.info("👋 Apagado completo")


# ─────────────────────────────────────────────────────────────────────────────
# APLICACIÓN FASTAPI
# ─────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="FocusPoints API",
    description="Motor de puntos por actividad, foco y categoría",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────────────────────
# MANEJO DE ERRORES
# ─────────────────────────────────────────────────────────────────────────────

@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    """Errores del dominio → {"detail": "..."} con su código HTTP"""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Cualquier otro error: se registra completo, al cliente solo un 500 genérico"""
    logger.exception(f"❌ Error no manejado en {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# =============================================================================
# ===================== HEALTH CHECK ==========================================
# =============================================================================

@app.get("/", tags=["Health"])
def health_check():
    """Verifica que la API está viva"""
    return {
        "status": "ok",
        "app": "FocusPoints",
        "version": "1.0.0",
        "timestamp": datetime.utcnow().isoformat()
    }


# =============================================================================
# ===================== SECCIÓN 1: CATEGORÍAS =================================
# =============================================================================

@app.get("/point-categories", response_model=PointCategoriesResponse, tags=["Categories"])
def list_point_categories(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Categorías del usuario con sus puntos totales y benchmarks conseguidos"""
    return tracker.list_categories_with_stats(db, user.id)


@app.post("/point-categories", response_model=CategoryResponse,
          status_code=status.HTTP_201_CREATED, tags=["Categories"])
def create_point_category(data: CategoryCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Crea una categoría (nombre único por usuario)"""
    return tracker.create_category(db, user.id, data)


@app.post("/point-categories/{category_id}/benchmarks", response_model=BenchmarkResponse,
          status_code=status.HTTP_201_CREATED, tags=["Categories"])
def create_benchmark(
    category_id: int, data: BenchmarkCreate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Añade un umbral de puntos a una categoría"""
    return tracker.add_benchmark(db, user.id, category_id, data)


# =============================================================================
# ===================== SECCIÓN 2: ACTIVIDADES ================================
# =============================================================================

@app.get("/activities", response_model=dict[str, list[ActivityWithCount]], tags=["Activities"])
def list_activities(
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Actividades de una categoría con cuántas veces se han registrado"""
    items = tracker.list_activities(db, user.id, category_id)
    activities = []
    for item in items:
        activity = ActivityResponse.model_validate(item["activity"])
        activities.append(ActivityWithCount(
            **activity.model_dump(),
            logged_activities_count=item["logged_activities_count"]
        ))
    return {"activities": activities}


@app.post("/activities", response_model=ActivityResponse,
          status_code=status.HTTP_201_CREATED, tags=["Activities"])
def create_activity(data: ActivityCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Crea una actividad (nombre único dentro de su categoría)"""
    return tracker.create_activity(db, user.id, data)


@app.put("/activities/{activity_id}", response_model=ActivityResponse, tags=["Activities"])
def update_activity(
    activity_id: int, data: ActivityUpdate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Actualiza la definición. Los registros antiguos conservan sus puntos."""
    return tracker.update_activity(db, user.id, activity_id, data)


@app.delete("/activities/{activity_id}", tags=["Activities"])
def delete_activity(
    activity_id: int,
    delete_logged_activities: bool = Query(default=False, alias="deleteLoggedActivities"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Borra una actividad.
    Si tiene registros, hace falta deleteLoggedActivities=true (si no → 409).
    """
    deleted_logs = tracker.delete_activity(db, user.id, activity_id, cascade_logs=delete_logged_activities)
    if delete_logged_activities:
        message = "Actividad y sus registros eliminados"
    else:
        message = "Actividad eliminada"
    return {"message": message, "deleted_logged_activities": deleted_logs}


# =============================================================================
# ===================== SECCIÓN 3: REGISTRO ===================================
# =============================================================================

@app.post("/activities/log", response_model=LogActivityResult,
          status_code=status.HTTP_201_CREATED, tags=["Logging"])
def log_activity(data: LoggedActivityCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Registra una actividad completada.

    Los puntos se calculan AHORA con la definición actual de la actividad
    y se quedan congelados en el registro.
    """
    logged = tracker.log_activity(
        db, user.id,
        activity_id=data.activity_id,
        log_date=data.date,
        focus_label_raw=data.focus_level,
        start_time=data.start_time,
        end_time=data.end_time,
        notes=data.notes,
    )
    return {"message": "Actividad registrada", "logged_activity": logged}


# =============================================================================
# ===================== SECCIÓN 4: PUNTOS =====================================
# =============================================================================

@app.post("/points/calculate", response_model=PointsPreviewResponse, tags=["Points"])
def preview_points(data: PointsPreviewRequest, user: User = Depends(get_current_user)):
    """Calcula los puntos de una definición + foco sin guardar nada"""
    if data.scoring_method == ScoringMethod.fixed_points and fractional_levels(data.focus_levels):
        raise InvalidRequest("Con fixed_points los puntos deben ser enteros")

    duration = data.duration_minutes
    if data.start_time and data.end_time:
        try:
            duration = minutes_between(data.start_time, data.end_time)
        except ValueError as e:
            raise InvalidRequest(str(e))

    focus_label = normalize_label(data.focus_level)
    return {
        "focus_level": focus_label,
        "duration_minutes": duration,
        "points": calculate_points(data, focus_label, duration),
    }


# =============================================================================
# ===================== SECCIÓN 5: DASHBOARD ==================================
# =============================================================================

@app.get("/recent-activity", response_model=RecentActivityResponse, tags=["Dashboard"])
def get_recent_activity(
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Últimos registros con el nombre y color de su categoría"""
    return {"activities": tracker.recent_activity(db, user.id, limit)}


@app.get("/dashboard/weekly-data", response_model=PeriodData, tags=["Dashboard"])
def get_weekly_data(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Puntos por día: semana actual/anterior y mes actual/anterior"""
    return tracker.aggregate_by_period(db, user.id)
