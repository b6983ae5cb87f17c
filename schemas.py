"""
=============================================================================
SCHEMAS.PY — Esquemas de Validación (Pydantic)
=============================================================================
  - Models (SQLAlchemy) → definen las TABLAS de la BD
  - Schemas (Pydantic) → definen qué DATOS acepta/devuelve la API

Convención de nombres:
  XxxCreate → para crear algo nuevo (POST)
  XxxUpdate → para actualizar algo (PUT)
  XxxResponse → lo que devuelve la API (GET)

Los campos "obligatorios" del dominio (nombre, categoría, fecha...) se
declaran opcionales aquí y los comprueba tracker.py, que responde 400 con un
mensaje concreto en vez del 422 genérico de Pydantic.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Any, Optional

from models import ActivityKind, ScoringMethod


# =============================================================================
# ===================== TABLA DE FOCO =========================================
# =============================================================================

class FocusTable(BaseModel):
    """
    Los cuatro niveles de foco con su valor.
    multiplier → 0.5 / 1.0 / 1.5 / 2.0
    fixed_points → 8 / 12 / 18 / 25 (puntos absolutos)
    """
    low: float = Field(gt=0)
    medium: float = Field(gt=0)
    good: float = Field(gt=0)
    zen: float = Field(gt=0)


# =============================================================================
# ===================== CATEGORÍAS Y BENCHMARKS ===============================
# =============================================================================

class CategoryCreate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{3,8}$")

class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    color: str
    created_at: datetime
    model_config = {"from_attributes": True}

class BenchmarkCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    points_required: int = Field(ge=0)
    description: Optional[str] = None

class BenchmarkResponse(BaseModel):
    id: int
    name: str
    points_required: int
    description: Optional[str]
    model_config = {"from_attributes": True}

class BenchmarkStatus(BenchmarkResponse):
    achieved: bool

class CategoryWithStats(BaseModel):
    id: int
    name: str
    description: Optional[str]
    color: str
    points: int
    benchmarks: list[BenchmarkStatus]
    activity_count: int

class PointCategoriesResponse(BaseModel):
    categories: list[CategoryWithStats]
    total_points: int


# =============================================================================
# ===================== ACTIVIDADES ===========================================
# =============================================================================

class ActivityCreate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    point_category_id: Optional[int] = None
    kind: ActivityKind = ActivityKind.fixed
    scoring_method: Optional[str] = None
    # scoring_method → "multiplier" | "fixed_points" (se valida en tracker.py)
    base_points: Optional[int] = Field(default=None, ge=0)
    focus_levels: Optional[FocusTable] = None

class ActivityUpdate(ActivityCreate):
    """Mismos campos que al crear: el PUT reemplaza la definición completa"""

class CategoryBrief(BaseModel):
    id: int
    name: str
    color: str
    model_config = {"from_attributes": True}

class ActivityResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    point_category_id: int
    kind: str
    scoring_method: str
    base_points: int
    focus_levels: FocusTable
    point_category: CategoryBrief
    created_at: datetime
    model_config = {"from_attributes": True}

class ActivityWithCount(ActivityResponse):
    logged_activities_count: int = 0


# =============================================================================
# ===================== REGISTROS (LOGGED ACTIVITIES) =========================
# =============================================================================

LogDate = Optional[date]

class LoggedActivityCreate(BaseModel):
    activity_id: Optional[int] = None
    date: LogDate = None
    start_time: Optional[str] = Field(default=None, description="Formato HH:MM")
    end_time: Optional[str] = Field(default=None, description="Formato HH:MM")
    focus_level: Any = None
    # focus_level → normalmente "low"/"medium"/"good"/"zen", pero se acepta
    # cualquier cosa: lo desconocido no bloquea el registro
    notes: Optional[str] = None

class ActivityBrief(BaseModel):
    id: int
    name: str
    point_category: CategoryBrief
    model_config = {"from_attributes": True}

class LoggedActivityResponse(BaseModel):
    id: int
    activity_id: int
    date: date
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    focus_level: Optional[str]
    notes: Optional[str]
    points_earned: int
    created_at: datetime
    activity: ActivityBrief
    model_config = {"from_attributes": True}

class LogActivityResult(BaseModel):
    message: str
    logged_activity: LoggedActivityResponse


# =============================================================================
# ===================== CÁLCULO (PREVIEW) =====================================
# =============================================================================

class PointsPreviewRequest(BaseModel):
    """Definición de actividad + foco para calcular puntos sin guardar nada"""
    kind: ActivityKind = ActivityKind.fixed
    scoring_method: ScoringMethod = ScoringMethod.multiplier
    base_points: int = Field(default=0, ge=0)
    focus_levels: Optional[FocusTable] = None
    focus_level: Any = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_minutes: Optional[int] = None

class PointsPreviewResponse(BaseModel):
    focus_level: Optional[str]
    duration_minutes: Optional[int]
    points: int


# =============================================================================
# ===================== DASHBOARD =============================================
# =============================================================================

class RecentActivityItem(BaseModel):
    id: int
    type: str = "activity"
    name: str
    points: int
    category_name: str
    category_color: str
    date: date
    time: Optional[str] = None

class RecentActivityResponse(BaseModel):
    activities: list[RecentActivityItem]

class DayPoints(BaseModel):
    date: date
    points: int

class PeriodData(BaseModel):
    current_week: list[DayPoints]
    previous_week: list[DayPoints]
    current_month: list[DayPoints]
    previous_month: list[DayPoints]
