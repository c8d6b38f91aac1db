import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from brainflow.api.routes import router
from brainflow.assets.startup import init_catalog_for_app
from brainflow.config import settings_from_env

load_dotenv()

settings = settings_from_env()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="brainflow", version="0.1.0")
app.include_router(router)


@app.on_event("startup")
async def _startup() -> None:
    init_catalog_for_app(settings)
    logger.info("Content catalog loaded")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "brainflow", "version": "0.1.0"}
