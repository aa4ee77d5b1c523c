"""
Configuration partagée pour tous les tests.
Force une base SQLite en mémoire avant l'import de l'application : aucune connexion
réelle à PostgreSQL.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

from app.database import Base, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def client(mock_db):
    """Client HTTP de test avec la BDD mockée."""
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_client():
    """Client HTTP de test sur une vraie base SQLite en mémoire, recréée à chaque test."""
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)
