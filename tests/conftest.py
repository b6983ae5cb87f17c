"""
Fixtures compartidas de los tests.

- BD SQLite en memoria (StaticPool → una sola conexión para todas las sesiones)
- Cliente de FastAPI con get_db apuntando a esa BD
- Usuarios de prueba y tokens JWT para las cabeceras
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth import create_access_token
from database import Base, build_engine, get_db, init_db
from main import app
from models import Activity, PointCategory, User
from gamification import DEFAULT_FOCUS_TABLE


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    u = User(email="ana@example.com", name="Ana")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def other_user(db):
    u = User(email="luis@example.com", name="Luis")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def headers_for(u: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(u.id, u.email)}"}


@pytest.fixture
def auth_headers(user):
    return headers_for(user)


def make_category(db, owner: User, name: str = "Salud", color: str = "#10b981") -> PointCategory:
    category = PointCategory(user_id=owner.id, name=name, color=color)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def make_activity(db, owner: User, category: PointCategory, name: str = "Correr", **rules) -> Activity:
    activity = Activity(
        user_id=owner.id,
        point_category_id=category.id,
        name=name,
        kind=rules.get("kind", "fixed"),
        scoring_method=rules.get("scoring_method", "multiplier"),
        base_points=rules.get("base_points", 10),
        focus_levels=rules.get("focus_levels", dict(DEFAULT_FOCUS_TABLE)),
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity
