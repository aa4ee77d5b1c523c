"""
Point d'entrée principal de l'API Students.
Démarrage : uvicorn app.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import app.models  # noqa: F401 — enregistre les modèles dans Base.metadata avant create_all
from app.config import settings
from app.database import Base, engine
from app.error_handlers import register_error_handlers
from app.routers import students

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : crée les tables si AUTO_CREATE_TABLES est activé."""
    if settings.AUTO_CREATE_TABLES:
        logger.info("Création des tables (%s)", settings.ENV)
        Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Students API",
    description="API de gestion des élèves : CRUD, désactivation, recherche, filtres et tri",
    version=VERSION,
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# CORS — autorise tous les ports localhost en développement (à restreindre en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

register_error_handlers(app)

app.include_router(students.router)


@app.get(f"{settings.API_PREFIX}/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "Students API", "version": VERSION}
