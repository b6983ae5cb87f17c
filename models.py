"""
=============================================================================
MODELS.PY — Modelos (Tablas) de la Base de Datos
=============================================================================
Cada clase = una tabla. Cada atributo = una columna.

RELACIONES:
  USER
  └── point_categories[] ──→ benchmarks[]
                          └─→ activities[] ──→ logged_activities[]
                                           └─→ insights[]

Un LoggedActivity es un HECHO INMUTABLE: "el usuario completó la actividad X
el día D con foco F y ganó P puntos". Los puntos se calculan una vez al
registrarlo y NUNCA se recalculan, aunque la actividad cambie después.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, ForeignKey, JSON,
    UniqueConstraint
)
from sqlalchemy.orm import relationship
from database import Base
import enum


# =============================================================================
# ===================== ENUMS =================================================
# =============================================================================

class FocusLevel(str, enum.Enum):
    """Nivel de foco durante la actividad, de menos a más implicación"""
    low = "low"        # Distraído, multitarea
    medium = "medium"  # Algo centrado
    good = "good"      # Centrado y productivo
    zen = "zen"        # Concentración profunda (flow)


class ActivityKind(str, enum.Enum):
    """Cómo se mide una actividad"""
    fixed = "fixed"            # Puntos base por completarla
    time_based = "time_based"  # Puntos según los minutos dedicados


class ScoringMethod(str, enum.Enum):
    """Cómo se interpreta la tabla de foco de una actividad"""
    multiplier = "multiplier"      # base × multiplicador del nivel de foco
    fixed_points = "fixed_points"  # puntos absolutos por nivel de foco


# =============================================================================
# ===================== TABLA 1: USERS ========================================
# =============================================================================
# La autenticación vive fuera del motor de puntos; aquí solo guardamos la
# identidad a la que pertenecen las categorías y los registros.

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    point_categories = relationship("PointCategory", back_populates="user", cascade="all, delete-orphan")
    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan")
    logged_activities = relationship("LoggedActivity", back_populates="user", cascade="all, delete-orphan")


# =============================================================================
# ===================== TABLA 2: POINT_CATEGORIES =============================
# =============================================================================

class PointCategory(Base):
    __tablename__ = "point_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), default="#3b82f6")
    # color → hex para pintar la categoría en la web

    created_at = Column(DateTime, default=datetime.utcnow)

    # ── Un nombre de categoría por usuario ──
    __table_args__ = (
        UniqueConstraint('user_id', 'name', name='uq_category_user_name'),
    )

    user = relationship("User", back_populates="point_categories")
    benchmarks = relationship("Benchmark", back_populates="point_category", cascade="all, delete-orphan",
                              order_by="Benchmark.points_required")
    activities = relationship("Activity", back_populates="point_category")


# =============================================================================
# ===================== TABLA 3: BENCHMARKS ===================================
# =============================================================================
# Umbrales de puntos dentro de una categoría. Ej: "Bronce" → 100 puntos.

class Benchmark(Base):
    __tablename__ = "benchmarks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    point_category_id = Column(Integer, ForeignKey("point_categories.id"), nullable=False)

    name = Column(String(100), nullable=False)
    points_required = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    point_category = relationship("PointCategory", back_populates="benchmarks")


# =============================================================================
# ===================== TABLA 4: ACTIVITIES ===================================
# =============================================================================

class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    point_category_id = Column(Integer, ForeignKey("point_categories.id"), nullable=False)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    # ── Reglas de puntuación ──
    kind = Column(String(20), nullable=False, default=ActivityKind.fixed.value)
    scoring_method = Column(String(20), nullable=False, default=ScoringMethod.multiplier.value)
    base_points = Column(Integer, nullable=False, default=0)
    # base_points → solo tiene sentido en actividades "fixed"
    focus_levels = Column(JSON, nullable=False)
    # focus_levels → {"low": 0.5, "medium": 1.0, "good": 1.5, "zen": 2.0}

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ── Un nombre por categoría y usuario ──
    __table_args__ = (
        UniqueConstraint('user_id', 'point_category_id', 'name', name='uq_activity_category_name'),
    )

    user = relationship("User", back_populates="activities")
    point_category = relationship("PointCategory", back_populates="activities")
    logged_activities = relationship("LoggedActivity", back_populates="activity", passive_deletes="all")
    insights = relationship("Insight", back_populates="activity", passive_deletes="all")
    # Sin cascade: borrar una actividad con registros exige opt-in explícito


# =============================================================================
# ===================== TABLA 5: LOGGED_ACTIVITIES ============================
# =============================================================================

class LoggedActivity(Base):
    __tablename__ = "logged_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    # start/end → solo la hora importa; la fecha es siempre 1970-01-01

    focus_level = Column(Text, nullable=True)
    # focus_level → etiqueta tal como llegó (normalizada a texto, sin límite de largo)
    notes = Column(Text, nullable=True)
    points_earned = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="logged_activities")
    activity = relationship("Activity", back_populates="logged_activities")


# =============================================================================
# ===================== TABLA 6: INSIGHTS =====================================
# =============================================================================
# Observaciones derivadas de los registros de una actividad.
# Se borran junto con los registros en el borrado en cascada.

class Insight(Base):
    __tablename__ = "insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=False, index=True)

    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    activity = relationship("Activity", back_populates="insights")
