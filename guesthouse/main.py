from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from guesthouse.core.config import settings
from guesthouse.core.logging import configure_logging, get_logger
from guesthouse.api.v1.api import api_router
from guesthouse.db.session import SessionLocal

configure_logging()
logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME)

# Booking site and admin console origins; localhost defaults for development
_default_origins = [
    "http://127.0.0.1:3000", "http://localhost:3000",
]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
def health():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("health_database_unreachable", error=str(e))
        database = "unreachable"
    finally:
        db.close()
    return {"status": "ok" if database == "ok" else "degraded", "database": database, "env": settings.ENV}
