# triage_ai/backend/app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import config
from .api.v1.triage import router as triage_router
from .ml.train_classifier import load_or_train

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Restore the saved classifier (or train one) before serving."""
    try:
        stats = load_or_train()
    except Exception:
        logger.exception("[ML] Failed to load/train classifier at startup")
        raise
    logger.info("[ML] Classifier ready: %s", stats.model_dump())
    yield


app = FastAPI(title="AI Email Triage", lifespan=lifespan)


@app.get("/health")
def health_check():
    return {"status": "ok"}


# JSON API v1
app.include_router(triage_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
