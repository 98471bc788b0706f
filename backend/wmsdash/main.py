# backend/wmsdash/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import Base, engine

from .apps.accounts.router import router as accounts_router
from .apps.data.router import router as data_router
from .apps.smart_fields.router import router as smart_fields_router
from .apps.receipts.router import router as receipts_router
from .apps.rules.router import router as rules_router
from .apps.valuation.router import router as valuation_router
from .apps.serials.router import router as serials_router
from .apps.imports.router import router as imports_router

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:4173",
    ]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if os.getenv("DB_AUTO_CREATE", "true").lower() in {"1", "true", "yes", "on"}:
        Base.metadata.create_all(bind=engine)
        logger.info("database tables ensured")
    yield


app = FastAPI(title="Warehouse Dashboard API", version="1.0.0", lifespan=lifespan)
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Warehouse dashboard backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(accounts_router)
app.include_router(data_router)
app.include_router(smart_fields_router)
app.include_router(receipts_router)
app.include_router(rules_router)
app.include_router(valuation_router)
app.include_router(serials_router)
app.include_router(imports_router)
