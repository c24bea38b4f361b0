import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Imports de l'application
from skillmap.core.config import settings
from skillmap.db.base import Base
from skillmap.db import session as db_session
from skillmap.api.v2.api import api_router

# --- Configuration du logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Initialisation de l'application FastAPI ---
app = FastAPI(
    title="SkillMap API V2",
    openapi_url="/api/v2/openapi.json"
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


cors_origins = sorted({o for o in (_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS) if o})
logger.info("CORS origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router, prefix="/api/v2")


# --- Événement de Démarrage ---
@app.on_event("startup")
def startup():
    logger.info("Checking and creating database tables...")
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("Database tables are ready.")


# --- Route Racine ---
@app.get("/")
def read_root():
    return {"message": "Welcome to SkillMap API V2!"}
