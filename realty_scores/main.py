from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging

from realty_scores.db.session import init_models
from realty_scores.logging_config import configure_logging
from realty_scores.routers import score

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Realty Scores API started")
    yield


app = FastAPI(
    title="Realty Scores",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Register Routers ---
app.include_router(score.router)    # /api/v1/scores/*


# --- Root health check ---
@app.get("/")
async def root():
    return {"message": "Realty Scores API is running"}
