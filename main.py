import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from core.errors import register_exception_handlers
from core.logging import configure_logging
from database import close_db, init_db
from api.gate import router as gate_router
from api.proposals import router as proposals_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    logger.info("%s started", settings.app_name)
    yield
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Group loan proposal submission and back-office review API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(proposals_router)
app.include_router(gate_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
