"""
=============================================================================
DATABASE.PY — Configuración de la Base de Datos
=============================================================================
Conexión, sesiones y creación de tablas.

En DESARROLLO: SQLite (archivo focuspoints.db)
En PRODUCCIÓN: PostgreSQL (variable de entorno DATABASE_URL)

Las operaciones del motor de puntos que escriben varias tablas a la vez
(borrado en cascada de una actividad) usan la transacción de la sesión:
o se borra todo, o no se borra nada.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

# ─────────────────────────────────────────────────────────────────────────────
# CONEXIÓN
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./focuspoints.db")

# Usamos psycopg (v3) como driver → la URL debe ser "postgresql+psycopg://"
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)


# ─────────────────────────────────────────────────────────────────────────────
# ENGINE
# ─────────────────────────────────────────────────────────────────────────────

def build_engine(url: str, **kwargs):
    """
    Crea el engine para una URL.

    SQLite necesita check_same_thread=False (FastAPI usa varios hilos) y
    PRAGMA foreign_keys=ON para que las claves foráneas se respeten igual
    que en PostgreSQL.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    new_engine = create_engine(url, echo=False, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(DATABASE_URL)

# ─────────────────────────────────────────────────────────────────────────────
# SESSION
# ─────────────────────────────────────────────────────────────────────────────

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ─────────────────────────────────────────────────────────────────────────────
# BASE
# ─────────────────────────────────────────────────────────────────────────────

Base = declarative_base()


def get_db():
    """
    Dependencia de FastAPI: abre una sesión por petición y la cierra al final.

      @app.get("/algo")
      def mi_endpoint(db: Session = Depends(get_db)):
          ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Crea todas las tablas si no existen. Se llama al arrancar."""
    import models  # noqa: F401  (registra los modelos en Base.metadata)
    Base.metadata.create_all(bind=bind or engine)
